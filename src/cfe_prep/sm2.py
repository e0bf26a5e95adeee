"""SM-2 spaced repetition algorithm."""
import math
from datetime import date, timedelta

MIN_EASE = 1.3
QUALITIES = (1, 2, 3, 4)  # 1=again, 2=hard, 3=good, 4=easy
MAX_MASTERY = 5


def round_half_up(x: float) -> int:
    """Round to the nearest integer, .5 always going up (2.5 -> 3, not 2)."""
    return math.floor(x + 0.5)


def mastery_for(times_reviewed: int) -> int:
    return min(MAX_MASTERY, times_reviewed // 3)


def xp_for_review(quality: int) -> int:
    return 5 if quality >= 3 else 2


def compute_next_state(
    quality: int,
    ease_factor: float,
    interval_days: int,
    times_reviewed: int,
    today: date | None = None,
) -> dict:
    """Calculate the next review state of a flashcard.

    Args:
        quality: Rating 1-4 (below 3 counts as a failed recall)
        ease_factor: Current ease factor (minimum 1.3)
        interval_days: Current interval in days
        times_reviewed: Reviews recorded before this one
        today: Review date, defaults to today

    Returns:
        Dict with ease_factor, interval_days, next_review_date (ISO),
        times_reviewed and mastery_level.
    """
    if isinstance(quality, bool) or quality not in QUALITIES:
        raise ValueError(f"quality must be one of {QUALITIES}, got {quality!r}")
    today = today or date.today()

    if quality < 3:
        # Failed recall: start over
        new_ef = max(MIN_EASE, ease_factor - 0.2)
        new_interval = 1
    else:
        new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
        new_ef = max(MIN_EASE, new_ef)
        if times_reviewed == 0:
            new_interval = 1
        elif times_reviewed == 1:
            new_interval = 6
        else:
            new_interval = max(1, round_half_up(interval_days * new_ef))

    new_times = times_reviewed + 1
    return {
        "ease_factor": new_ef,
        "interval_days": new_interval,
        "next_review_date": (today + timedelta(days=new_interval)).isoformat(),
        "times_reviewed": new_times,
        "mastery_level": mastery_for(new_times),
    }
