# tests/test_dashboard.py
from datetime import date

from cfe_prep.dashboard import get_dashboard, get_readiness_color, get_readiness_label, get_recent_mock_attempts
from cfe_prep.db import insert_rows, upsert_row
from cfe_prep.models import MockExam
from cfe_prep.progress import record_answer
from cfe_prep.study import log_study_session, set_setting

USER = "u1"
TODAY = date(2026, 3, 1)


def test_readiness_label():
    assert get_readiness_label(85) == "READY"
    assert get_readiness_label(70) == "LIKELY"
    assert get_readiness_label(55) == "NEEDS WORK"
    assert get_readiness_label(40) == "NOT READY"


def test_readiness_color():
    assert get_readiness_color(80) == "green"
    assert get_readiness_color(65) == "yellow"
    assert get_readiness_color(50) == "dark_orange"
    assert get_readiness_color(0) == "red"


def test_dashboard_with_no_data(seeded_db):
    dash = get_dashboard(seeded_db, USER, today=TODAY)
    assert dash["readiness"] == 0.0
    assert dash["label"] == "NOT READY"
    assert dash["due_flashcards"] == 18
    assert dash["avg_mock_score"] == 0.0
    assert dash["mock_attempts"] == 0
    assert dash["days_until_exam"] is None
    assert dash["minutes_today"] == 0
    assert dash["daily_goal_minutes"] == 60
    assert dash["gamification"]["level"] == 1


def test_dashboard_with_progress(seeded_db):
    for correct in (True, True, True, True, False):
        record_answer(seeded_db, USER, 1, "1-2", correct)
    set_setting(seeded_db, USER, "target_exam_date", "2026-03-31")
    log_study_session(seeded_db, USER, "practice", 20, today=TODAY)

    dash = get_dashboard(seeded_db, USER, today=TODAY)
    assert dash["readiness"] == 80.0
    assert dash["label"] == "READY"
    assert dash["color"] == "green"
    assert dash["per_section"][1]["attempts"] == 5
    assert dash["weakest"][0]["domain_id"] == "1-2"
    assert dash["days_until_exam"] == 30
    assert dash["minutes_today"] == 20
    assert dash["gamification"]["streak_days"] == 1


def test_recent_mock_attempts_average(seeded_db):
    upsert_row(seeded_db, "mock_exams", MockExam(id="section-1", title="S1", exam_type="section", question_ids=[1]).to_row(), conflict=("id",))
    insert_rows(seeded_db, "mock_exam_attempts", [
        {"user_id": USER, "mock_exam_id": "section-1", "score": 70, "created_at": "2026-02-01T10:00:00"},
        {"user_id": USER, "mock_exam_id": "section-1", "score": 81, "created_at": "2026-02-02T10:00:00"},
        {"user_id": "other", "mock_exam_id": "section-1", "score": 10, "created_at": "2026-02-03T10:00:00"},
    ])
    attempts = get_recent_mock_attempts(seeded_db, USER)
    assert [a["score"] for a in attempts] == [81, 70]
    dash = get_dashboard(seeded_db, USER, today=TODAY)
    assert dash["avg_mock_score"] == 75.5
    assert dash["mock_attempts"] == 2
