"""Readiness dashboard scoring and statistics."""
from dataclasses import asdict
from datetime import date

from cfe_prep.db import select_rows
from cfe_prep.flashcards import count_due_cards
from cfe_prep.gamification import get_state
from cfe_prep.progress import get_progress_report
from cfe_prep.study import days_until_exam, get_setting, minutes_studied_on

RECENT_MOCKS = 10


def get_readiness_label(score: float) -> str:
    if score >= 80:
        return "READY"
    elif score >= 65:
        return "LIKELY"
    elif score >= 50:
        return "NEEDS WORK"
    return "NOT READY"


def get_readiness_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 65:
        return "yellow"
    elif score >= 50:
        return "dark_orange"
    return "red"


def get_recent_mock_attempts(db_path: str, user_id: str, limit: int = RECENT_MOCKS) -> list[dict]:
    return select_rows(db_path, "mock_exam_attempts", {"user_id": user_id}, order_by="created_at DESC, id DESC", limit=limit)


def get_dashboard(db_path: str, user_id: str, today: date | None = None) -> dict:
    today = today or date.today()
    report = get_progress_report(db_path, user_id)
    mocks = get_recent_mock_attempts(db_path, user_id)
    avg_mock = round(sum(m["score"] for m in mocks) / len(mocks), 1) if mocks else 0.0
    return {
        "readiness": report["readiness"],
        "label": get_readiness_label(report["readiness"]),
        "color": get_readiness_color(report["readiness"]),
        "per_section": report["per_section"],
        "weakest": report["weakest"],
        "gamification": asdict(get_state(db_path, user_id)),
        "due_flashcards": count_due_cards(db_path, today),
        "avg_mock_score": avg_mock,
        "mock_attempts": len(mocks),
        "days_until_exam": days_until_exam(db_path, user_id, today),
        "minutes_today": minutes_studied_on(db_path, user_id, today),
        "daily_goal_minutes": get_setting(db_path, user_id, "daily_goal_minutes"),
    }
