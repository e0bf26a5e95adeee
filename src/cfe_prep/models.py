"""Data classes for the exam-prep domain model."""
import json
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Domain:
    id: str
    section_id: int
    name: str
    weight: str
    description: str = ""
    position: int = 0


@dataclass
class MockExam:
    id: str
    title: str
    exam_type: str
    question_ids: list = field(default_factory=list)
    time_limit_minutes: int = 120
    passing_score: int = 75
    description: str = ""

    @property
    def question_count(self) -> int:
        return len(self.question_ids)

    @classmethod
    def from_row(cls, row: dict) -> "MockExam":
        return cls(
            id=row["id"],
            title=row["title"],
            exam_type=row["exam_type"],
            question_ids=json.loads(row["question_ids"]),
            time_limit_minutes=row["time_limit_minutes"],
            passing_score=row["passing_score"],
            description=row["description"] or "",
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "exam_type": self.exam_type,
            "question_ids": json.dumps(self.question_ids),
            "question_count": self.question_count,
            "time_limit_minutes": self.time_limit_minutes,
            "passing_score": self.passing_score,
        }


@dataclass
class CaseStudy:
    """A fraud scenario followed by multiple-choice questions.

    Each question is a dict with question, options (list), correct_answer
    (option letter) and explanation.
    """
    id: str
    title: str
    scenario: str
    questions: list = field(default_factory=list)
    section_id: Optional[int] = None
    domain_id: Optional[str] = None
    industry: str = ""
    fraud_type: str = ""
    difficulty: str = "medium"
    learning_points: list = field(default_factory=list)
    red_flags: list = field(default_factory=list)
    tags: list = field(default_factory=list)
    estimated_minutes: int = 30

    @classmethod
    def from_row(cls, row: dict) -> "CaseStudy":
        return cls(
            id=row["id"],
            title=row["title"],
            scenario=row["scenario"],
            questions=json.loads(row["questions"]),
            section_id=row["section_id"],
            domain_id=row["domain_id"],
            industry=row["industry"] or "",
            fraud_type=row["fraud_type"] or "",
            difficulty=row["difficulty"] or "medium",
            learning_points=json.loads(row["learning_points"] or "[]"),
            red_flags=json.loads(row["red_flags"] or "[]"),
            tags=json.loads(row["tags"] or "[]"),
            estimated_minutes=row["estimated_minutes"],
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "section_id": self.section_id,
            "domain_id": self.domain_id,
            "title": self.title,
            "scenario": self.scenario,
            "industry": self.industry,
            "fraud_type": self.fraud_type,
            "difficulty": self.difficulty,
            "questions": json.dumps(self.questions),
            "learning_points": json.dumps(self.learning_points),
            "red_flags": json.dumps(self.red_flags),
            "tags": json.dumps(self.tags),
            "estimated_minutes": self.estimated_minutes,
        }


@dataclass
class GamificationState:
    user_id: str
    xp: int = 0
    level: int = 1
    streak_days: int = 0
    longest_streak: int = 0
    last_study_date: Optional[str] = None
    total_study_minutes: int = 0
    questions_answered: int = 0
    questions_correct: int = 0
    mocks_completed: int = 0
    flashcards_reviewed: int = 0


@dataclass
class Achievement:
    id: str
    name: str
    condition_type: str
    condition_value: int
    description: str = ""
    category: str = ""
    xp_reward: int = 0
    rarity: str = "common"


@dataclass
class ImportResult:
    success: bool = True
    imported: int = 0
    failed: int = 0
    errors: list = field(default_factory=list)
