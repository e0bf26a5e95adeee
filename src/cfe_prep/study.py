"""User settings and study session tracking."""
from datetime import date, datetime

from cfe_prep.db import insert_rows, run_query, select_rows, upsert_row
from cfe_prep.gamification import add_study_minutes, update_streak

# Setting key -> default value; the default's type is the setting's type
SETTINGS = {
    "target_exam_date": None,
    "daily_goal_minutes": 60,
    "daily_flashcard_goal": 20,
    "show_explanations": True,
}


def _coerce(key: str, value):
    default = SETTINGS[key]
    if value is None:
        return None
    if key == "target_exam_date":
        return date.fromisoformat(str(value)).isoformat()
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    return int(value)


def get_setting(db_path: str, user_id: str, key: str, default=None):
    if key not in SETTINGS:
        raise ValueError(f"Unknown setting: {key}")
    rows = select_rows(db_path, "user_settings", {"user_id": user_id, "key": key})
    if not rows or rows[0]["value"] is None:
        return default if default is not None else SETTINGS[key]
    return _coerce(key, rows[0]["value"])


def set_setting(db_path: str, user_id: str, key: str, value) -> None:
    if key not in SETTINGS:
        raise ValueError(f"Unknown setting: {key}")
    value = _coerce(key, value)
    upsert_row(
        db_path,
        "user_settings",
        {"user_id": user_id, "key": key, "value": None if value is None else str(value)},
        conflict=("user_id", "key"),
    )


def get_settings(db_path: str, user_id: str) -> dict:
    return {key: get_setting(db_path, user_id, key) for key in SETTINGS}


def days_until_exam(db_path: str, user_id: str, today: date | None = None) -> int | None:
    target = get_setting(db_path, user_id, "target_exam_date")
    if not target:
        return None
    return (date.fromisoformat(target) - (today or date.today())).days


def log_study_session(db_path: str, user_id: str, activity: str, minutes: int, today: date | None = None) -> None:
    if minutes < 0:
        raise ValueError(f"minutes must be non-negative, got {minutes}")
    today = today or date.today()
    insert_rows(db_path, "study_sessions", [{
        "user_id": user_id,
        "activity": activity,
        "minutes": minutes,
        "study_date": today.isoformat(),
        "created_at": datetime.now().isoformat(),
    }])
    add_study_minutes(db_path, user_id, minutes)
    update_streak(db_path, user_id, today)


def get_study_sessions(db_path: str, user_id: str, limit: int = 30) -> list[dict]:
    return select_rows(db_path, "study_sessions", {"user_id": user_id}, order_by="created_at DESC, id DESC", limit=limit)


def minutes_studied_on(db_path: str, user_id: str, day: date) -> int:
    row = run_query(
        db_path,
        "SELECT COALESCE(SUM(minutes), 0) AS m FROM study_sessions WHERE user_id = ? AND study_date = ?",
        (user_id, day.isoformat()),
    )[0]
    return row["m"]
