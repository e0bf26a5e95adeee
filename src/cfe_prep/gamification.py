"""XP, levels, streaks and achievements."""
import logging
from dataclasses import asdict, fields
from datetime import date, datetime, timedelta

from cfe_prep.db import run_query, run_write, select_rows, upsert_row
from cfe_prep.models import Achievement, GamificationState

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 1000
XP_CORRECT_ANSWER = 10
XP_INCORRECT_ANSWER = 5

_STATE_FIELDS = [f.name for f in fields(GamificationState)]

# Achievement condition type -> GamificationState attribute it is measured against
CONDITION_FIELDS = {
    "questions_answered": "questions_answered",
    "correct_answers": "questions_correct",
    "streak": "streak_days",
    "level": "level",
    "xp": "xp",
    "mocks_completed": "mocks_completed",
    "flashcards_reviewed": "flashcards_reviewed",
}


def level_for_xp(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


def get_state(db_path: str, user_id: str) -> GamificationState:
    """Load the user's gamification record, creating it on first access."""
    rows = select_rows(db_path, "gamification_state", {"user_id": user_id})
    if not rows:
        upsert_row(db_path, "gamification_state", {"user_id": user_id}, conflict=("user_id",))
        rows = select_rows(db_path, "gamification_state", {"user_id": user_id})
    row = rows[0]
    return GamificationState(**{k: row[k] for k in _STATE_FIELDS})


def _bump(db_path: str, user_id: str, **deltas) -> None:
    get_state(db_path, user_id)
    assignments = ", ".join(f"{col} = {col} + ?" for col in deltas)
    run_write(
        db_path,
        f"UPDATE gamification_state SET {assignments} WHERE user_id = ?",
        list(deltas.values()) + [user_id],
    )


def add_xp(db_path: str, user_id: str, amount: int) -> GamificationState:
    if amount < 0:
        raise ValueError(f"XP amount must be non-negative, got {amount}")
    get_state(db_path, user_id)
    run_write(
        db_path,
        "UPDATE gamification_state SET xp = xp + ?, level = (xp + ?) / ? + 1 WHERE user_id = ?",
        (amount, amount, XP_PER_LEVEL, user_id),
    )
    return get_state(db_path, user_id)


def increment_questions(db_path: str, user_id: str, correct: bool) -> GamificationState:
    _bump(db_path, user_id, questions_answered=1, questions_correct=int(correct))
    return add_xp(db_path, user_id, XP_CORRECT_ANSWER if correct else XP_INCORRECT_ANSWER)


def record_flashcard_review(db_path: str, user_id: str, xp: int) -> GamificationState:
    _bump(db_path, user_id, flashcards_reviewed=1)
    return add_xp(db_path, user_id, xp)


def record_mock_completed(db_path: str, user_id: str, xp: int) -> GamificationState:
    _bump(db_path, user_id, mocks_completed=1)
    return add_xp(db_path, user_id, xp)


def add_study_minutes(db_path: str, user_id: str, minutes: int) -> GamificationState:
    _bump(db_path, user_id, total_study_minutes=minutes)
    return get_state(db_path, user_id)


def update_streak(db_path: str, user_id: str, today: date | None = None) -> GamificationState:
    """Extend the streak on consecutive study days, restart it after a gap."""
    today = today or date.today()
    state = get_state(db_path, user_id)
    if state.last_study_date == today.isoformat():
        return state
    yesterday = (today - timedelta(days=1)).isoformat()
    streak = state.streak_days + 1 if state.last_study_date == yesterday else 1
    longest = max(streak, state.longest_streak)
    run_write(
        db_path,
        "UPDATE gamification_state SET last_study_date = ?, streak_days = ?, longest_streak = ? WHERE user_id = ?",
        (today.isoformat(), streak, longest, user_id),
    )
    return get_state(db_path, user_id)


# --- Achievements ---

def _achievement(row: dict) -> Achievement:
    return Achievement(
        id=row["id"],
        name=row["name"],
        condition_type=row["condition_type"],
        condition_value=row["condition_value"],
        description=row["description"] or "",
        category=row["category"] or "",
        xp_reward=row["xp_reward"],
        rarity=row["rarity"],
    )


def get_achievements(db_path: str) -> list[Achievement]:
    return [_achievement(r) for r in select_rows(db_path, "achievements", order_by="xp_reward, id")]


def _study_session_count(db_path: str, user_id: str) -> int:
    rows = run_query(db_path, "SELECT COUNT(*) AS n FROM study_sessions WHERE user_id = ?", (user_id,))
    return rows[0]["n"]


def achievement_progress(achievement: Achievement, state: GamificationState, study_sessions: int = 0) -> float:
    """Percentage (0-100) of the way towards unlocking an achievement."""
    if achievement.condition_type == "study_sessions":
        current = study_sessions
    elif achievement.condition_type in CONDITION_FIELDS:
        current = getattr(state, CONDITION_FIELDS[achievement.condition_type])
    else:
        return 0.0
    if achievement.condition_value <= 0:
        return 100.0
    return min(100.0, current / achievement.condition_value * 100)


def get_unlocked_ids(db_path: str, user_id: str) -> set[str]:
    return {r["achievement_id"] for r in select_rows(db_path, "user_achievements", {"user_id": user_id})}


def check_achievements(db_path: str, user_id: str) -> list[Achievement]:
    """Unlock every achievement whose condition is now met and grant its XP.

    Rewards can push XP or level over another threshold, so the check
    repeats until a pass unlocks nothing.
    """
    sessions = _study_session_count(db_path, user_id)
    newly = []
    while True:
        state = get_state(db_path, user_id)
        unlocked = get_unlocked_ids(db_path, user_id)
        ach = next(
            (a for a in get_achievements(db_path)
             if a.id not in unlocked and achievement_progress(a, state, sessions) >= 100),
            None,
        )
        if ach is None:
            return newly
        upsert_row(
            db_path,
            "user_achievements",
            {"user_id": user_id, "achievement_id": ach.id, "unlocked_at": datetime.now().isoformat()},
            conflict=("user_id", "achievement_id"),
        )
        add_xp(db_path, user_id, ach.xp_reward)
        logger.info("User %s unlocked achievement %s", user_id, ach.name)
        newly.append(ach)


def list_achievements(db_path: str, user_id: str) -> list[dict]:
    state = get_state(db_path, user_id)
    sessions = _study_session_count(db_path, user_id)
    unlocked = get_unlocked_ids(db_path, user_id)
    return [
        {
            **asdict(ach),
            "unlocked": ach.id in unlocked,
            "progress": 100.0 if ach.id in unlocked else round(achievement_progress(ach, state, sessions), 1),
        }
        for ach in get_achievements(db_path)
    ]
