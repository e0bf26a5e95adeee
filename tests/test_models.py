"""Tests for data model classes."""
import json

from cfe_prep.models import Achievement, Domain, GamificationState, ImportResult, MockExam


def test_domain_creation():
    d = Domain(id="1-2", section_id=1, name="Financial Statement Fraud Schemes", weight="10-15%")
    assert d.name == "Financial Statement Fraud Schemes"
    assert d.weight == "10-15%"
    assert d.section_id == 1
    assert d.description == ""
    assert d.position == 0


def test_mock_exam_defaults():
    exam = MockExam(id="section-1", title="Section 1 Mock Exam", exam_type="section")
    assert exam.question_ids == []
    assert exam.question_count == 0
    assert exam.time_limit_minutes == 120
    assert exam.passing_score == 75


def test_mock_exam_row_round_trip():
    exam = MockExam(id="grand", title="Grand", exam_type="grand", question_ids=[3, 1, 2], time_limit_minutes=480)
    row = exam.to_row()
    assert json.loads(row["question_ids"]) == [3, 1, 2]
    assert row["question_count"] == 3
    assert MockExam.from_row(row) == exam


def test_gamification_state_defaults():
    state = GamificationState(user_id="u1")
    assert state.xp == 0
    assert state.level == 1
    assert state.streak_days == 0
    assert state.last_study_date is None


def test_achievement_defaults():
    a = Achievement(id="x", name="X", condition_type="xp", condition_value=10)
    assert a.xp_reward == 0
    assert a.rarity == "common"


def test_import_result_errors_not_shared():
    a = ImportResult()
    b = ImportResult()
    a.errors.append("boom")
    assert b.errors == []
    assert a.success is True
