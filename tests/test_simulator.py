"""Tests for timed mock exam sessions."""
from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from cfe_prep.db import StoreError, get_connection, init_db, insert_rows, select_rows, upsert_row
from cfe_prep.gamification import get_state
from cfe_prep.models import MockExam
from cfe_prep.quiz import get_practice_questions
from cfe_prep.seed import seed_sections
from cfe_prep.simulator import CONFIRMED, ROLLED_BACK, ExamSession

USER = "u1"
START = datetime(2026, 3, 1, 9, 0, 0)


def _wrong(question):
    return next(letter for letter in "ABCD" if letter != question["correct_answer"])


def _session(db_path, count=8):
    questions = sorted(get_practice_questions(db_path, section_id=1, count=count), key=lambda q: q["id"])
    exam = MockExam(
        id="section-1", title="Section 1 Mock Exam", exam_type="section",
        question_ids=[q["id"] for q in questions],
    )
    upsert_row(db_path, "mock_exams", exam.to_row(), conflict=("id",))
    return ExamSession(db_path, USER, exam, questions, started_at=START)


def test_answer_is_saved(seeded_db):
    session = _session(seeded_db)
    assert session.answer(0, "b") == CONFIRMED
    assert session.answers == {0: "B"}
    conn = get_connection(seeded_db)
    row = conn.execute("SELECT * FROM exam_answers WHERE session_id = ?", (session.session_id,)).fetchone()
    conn.close()
    assert row["answer"] == "B"
    assert row["question_id"] == session.questions[0]["id"]


def test_changing_answer_overwrites(seeded_db):
    session = _session(seeded_db)
    session.answer(0, "A")
    session.answer(0, "C")
    conn = get_connection(seeded_db)
    rows = conn.execute("SELECT answer FROM exam_answers WHERE session_id = ?", (session.session_id,)).fetchall()
    conn.close()
    assert [r["answer"] for r in rows] == ["C"]
    assert session.answer_states[0] == CONFIRMED


def test_failed_save_rolls_back_to_previous_answer(seeded_db):
    session = _session(seeded_db)
    session.answer(0, "A")
    with patch("cfe_prep.simulator.upsert_row", side_effect=StoreError("disk I/O error")):
        with pytest.raises(StoreError):
            session.answer(0, "D")
    assert session.answers[0] == "A"
    assert session.answer_states[0] == ROLLED_BACK


def test_failed_first_save_leaves_question_unanswered(seeded_db):
    session = _session(seeded_db)
    with patch("cfe_prep.simulator.upsert_row", side_effect=StoreError("disk I/O error")):
        with pytest.raises(StoreError):
            session.answer(2, "B")
    assert 2 not in session.answers
    assert 2 in session.unanswered()


def test_answer_validation(seeded_db):
    session = _session(seeded_db)
    with pytest.raises(ValueError):
        session.answer(0, "E")
    with pytest.raises(IndexError):
        session.answer(99, "A")
    assert session.answers == {}


def test_toggle_flag(seeded_db):
    session = _session(seeded_db)
    assert session.toggle_flag(3) is True
    assert session.flags == {3}
    assert session.toggle_flag(3) is False
    assert session.flags == set()


def test_timer(seeded_db):
    session = _session(seeded_db)
    assert session.time_remaining(now=START + timedelta(minutes=30)) == 90 * 60
    assert not session.is_expired(now=START + timedelta(minutes=119))
    assert session.is_expired(now=START + timedelta(minutes=120))
    assert session.time_remaining(now=START + timedelta(minutes=200)) == 0


def test_finish_scores_and_grants_xp(seeded_db):
    session = _session(seeded_db, count=8)
    for i, q in enumerate(session.questions):
        session.answer(i, q["correct_answer"] if i < 6 else _wrong(q))
    session.toggle_flag(7)

    result = session.finish(now=START + timedelta(minutes=42, seconds=30))
    assert result["correct"] == 6
    assert result["total"] == 8
    assert result["score"] == 75
    assert result["passed"] is True
    assert result["xp_earned"] == 375
    assert result["time_spent_minutes"] == 42
    assert result["unanswered"] == 0
    assert result["flagged"] == [7]

    state = get_state(seeded_db, USER)
    assert state.mocks_completed == 1
    assert state.xp == 375
    conn = get_connection(seeded_db)
    attempt = conn.execute("SELECT * FROM mock_exam_attempts").fetchone()
    conn.close()
    assert attempt["score"] == 75
    assert attempt["mock_exam_id"] == "section-1"


def test_finish_floors_xp_and_counts_unanswered(seeded_db):
    session = _session(seeded_db, count=3)
    session.answer(0, session.questions[0]["correct_answer"])
    result = session.finish(now=START + timedelta(minutes=5))
    # 33.33% -> 166.67 XP
    assert result["score"] == 33
    assert result["xp_earned"] == 166
    assert result["unanswered"] == 2
    assert result["passed"] is False


def test_finish_domain_breakdown(seeded_db):
    session = _session(seeded_db, count=9)
    for i, q in enumerate(session.questions):
        if q["domain_id"] == "1-3":
            session.answer(i, q["correct_answer"])
    breakdown = session.finish(now=START)["domain_breakdown"]
    assert breakdown["1-3"] == {"correct": 2, "incorrect": 0, "accuracy": 100.0}
    assert breakdown["1-2"]["accuracy"] == 0.0


def test_finish_twice_rejected(seeded_db):
    session = _session(seeded_db)
    session.finish(now=START)
    with pytest.raises(RuntimeError):
        session.finish(now=START)


def test_empty_exam_rejected(seeded_db):
    exam = MockExam(id="empty", title="Empty", exam_type="section")
    with pytest.raises(ValueError):
        ExamSession(seeded_db, USER, exam, [])


def test_half_percent_score_rounds_up_to_pass(tmp_db):
    """149 of 200 is 74.5%, which scores 75 and meets the pass mark."""
    init_db(tmp_db)
    seed_sections(tmp_db)
    insert_rows(tmp_db, "questions", [
        {
            "section_id": 1, "domain_id": "1-1", "question_text": f"Question {i}",
            "option_a": "A", "option_b": "B", "option_c": "C", "option_d": "D",
            "correct_answer": "A",
        }
        for i in range(200)
    ])
    questions = select_rows(tmp_db, "questions", order_by="id")
    exam = MockExam(id="grand", title="Grand Mock Exam", exam_type="grand", question_ids=[q["id"] for q in questions])
    upsert_row(tmp_db, "mock_exams", exam.to_row(), conflict=("id",))
    session = ExamSession(tmp_db, USER, exam, questions, started_at=START)
    for i in range(200):
        session.answer(i, "A" if i < 149 else "B")

    result = session.finish(now=START + timedelta(minutes=90))
    assert result["correct"] == 149
    assert result["score"] == 75
    assert result["passed"] is True
    assert result["xp_earned"] == 372
