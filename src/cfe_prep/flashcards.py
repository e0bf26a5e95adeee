"""Flashcard review sessions with SM-2 scheduling."""
import logging
from datetime import date, datetime

from cfe_prep.db import insert_row, insert_rows, run_query, select_rows, update_rows
from cfe_prep.gamification import record_flashcard_review, update_streak
from cfe_prep.sm2 import compute_next_state, xp_for_review

logger = logging.getLogger(__name__)


def get_due_cards(db_path: str, limit: int = 50, section_id: int | None = None, today: date | None = None) -> list:
    today = (today or date.today()).isoformat()
    sql = "SELECT * FROM flashcards WHERE (next_review_date IS NULL OR next_review_date <= ?)"
    params = [today]
    if section_id is not None:
        sql += " AND section_id = ?"
        params.append(section_id)
    sql += " ORDER BY next_review_date ASC NULLS FIRST, id LIMIT ?"
    params.append(limit)
    return run_query(db_path, sql, params)


def get_cards_for_domain(db_path: str, domain_id: str, limit: int = 15, today: date | None = None) -> list:
    today = (today or date.today()).isoformat()
    return run_query(
        db_path,
        """SELECT * FROM flashcards
        WHERE domain_id = ? AND (next_review_date IS NULL OR next_review_date <= ?)
        ORDER BY next_review_date ASC NULLS FIRST, RANDOM()
        LIMIT ?""",
        (domain_id, today, limit),
    )


def count_due_cards(db_path: str, today: date | None = None) -> int:
    today = (today or date.today()).isoformat()
    rows = run_query(
        db_path,
        "SELECT COUNT(*) AS n FROM flashcards WHERE next_review_date IS NULL OR next_review_date <= ?",
        (today,),
    )
    return rows[0]["n"]


def record_flashcard_result(
    db_path: str, user_id: str, card_id: int, quality: int, today: date | None = None
) -> dict:
    """Reschedule a card after a review and grant the review XP."""
    rows = select_rows(db_path, "flashcards", {"id": card_id})
    if not rows:
        raise LookupError(f"Flashcard {card_id} not found")
    card = rows[0]
    updated = compute_next_state(
        quality=quality,
        ease_factor=card["ease_factor"],
        interval_days=card["interval_days"],
        times_reviewed=card["times_reviewed"],
        today=today,
    )
    update_rows(db_path, "flashcards", updated, {"id": card_id})
    insert_rows(db_path, "flashcard_reviews", [{
        "user_id": user_id,
        "flashcard_id": card_id,
        "quality": quality,
        "reviewed_at": datetime.now().isoformat(),
    }])
    record_flashcard_review(db_path, user_id, xp_for_review(quality))
    update_streak(db_path, user_id, today)
    logger.debug("Card %s rescheduled in %s days", card_id, updated["interval_days"])
    return updated


def add_custom_flashcard(db_path: str, section_id: int, domain_id: str, front: str, back: str) -> int:
    """Create a user-authored card that is due immediately."""
    if not front.strip() or not back.strip():
        raise ValueError("Flashcard front and back must not be empty")
    return insert_row(db_path, "flashcards", {
        "section_id": section_id,
        "domain_id": domain_id,
        "front": front.strip(),
        "back": back.strip(),
        "is_custom": 1,
    })
