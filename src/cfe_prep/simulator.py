"""Timed mock exam sessions."""
import json
import logging
import math
import uuid
from datetime import datetime

from cfe_prep.db import StoreError, insert_rows, upsert_row
from cfe_prep.gamification import record_mock_completed
from cfe_prep.models import MockExam
from cfe_prep.progress import accuracy
from cfe_prep.quiz import question_options
from cfe_prep.sm2 import round_half_up

logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
ROLLED_BACK = "failed-rolled-back"

XP_PER_PERCENT = 5


class ExamSession:
    """One sitting of a mock exam.

    Answers are saved to the store before they count locally. A failed save
    restores the previous answer for that question and marks it rolled back.
    """

    def __init__(self, db_path: str, user_id: str, exam: MockExam, questions: list[dict], started_at: datetime | None = None):
        if not questions:
            raise ValueError(f"Mock exam {exam.id} has no questions")
        self.db_path = db_path
        self.user_id = user_id
        self.exam = exam
        self.questions = questions
        self.session_id = str(uuid.uuid4())
        self.started_at = started_at or datetime.now()
        self.answers: dict[int, str] = {}
        self.answer_states: dict[int, str] = {}
        self.flags: set[int] = set()
        self.finished = False

    def _question(self, index: int) -> dict:
        if not 0 <= index < len(self.questions):
            raise IndexError(f"Question index {index} out of range")
        return self.questions[index]

    def answer(self, index: int, letter: str) -> str:
        question = self._question(index)
        letter = letter.strip().upper()
        if letter not in question_options(question):
            raise ValueError(f"Answer must be one of {', '.join(question_options(question))}, got {letter!r}")

        previous = self.answers.get(index)
        self.answer_states[index] = PENDING
        try:
            upsert_row(
                self.db_path,
                "exam_answers",
                {
                    "session_id": self.session_id,
                    "user_id": self.user_id,
                    "mock_exam_id": self.exam.id,
                    "question_index": index,
                    "question_id": question["id"],
                    "answer": letter,
                    "answered_at": datetime.now().isoformat(),
                },
                conflict=("session_id", "question_index"),
            )
        except StoreError:
            if previous is None:
                self.answers.pop(index, None)
            else:
                self.answers[index] = previous
            self.answer_states[index] = ROLLED_BACK
            logger.error("Answer to question %d not saved; kept previous answer %r", index + 1, previous)
            raise
        self.answers[index] = letter
        self.answer_states[index] = CONFIRMED
        return CONFIRMED

    def toggle_flag(self, index: int) -> bool:
        self._question(index)
        if index in self.flags:
            self.flags.discard(index)
            return False
        self.flags.add(index)
        return True

    def elapsed_seconds(self, now: datetime | None = None) -> int:
        now = now or datetime.now()
        return max(0, int((now - self.started_at).total_seconds()))

    def time_remaining(self, now: datetime | None = None) -> int:
        return max(0, self.exam.time_limit_minutes * 60 - self.elapsed_seconds(now))

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.time_remaining(now) == 0

    def unanswered(self) -> list[int]:
        return [i for i in range(len(self.questions)) if i not in self.answers]

    def correct_count(self) -> int:
        return sum(
            1 for i, q in enumerate(self.questions)
            if self.answers.get(i) == q["correct_answer"].strip().upper()
        )

    def finish(self, now: datetime | None = None) -> dict:
        """Score the sitting, store the attempt and grant XP."""
        if self.finished:
            raise RuntimeError(f"Exam session {self.session_id} already finished")
        correct = self.correct_count()
        total = len(self.questions)
        raw = correct / total * 100
        score = round_half_up(raw)
        minutes = self.elapsed_seconds(now) // 60

        breakdown: dict[str, dict] = {}
        for i, q in enumerate(self.questions):
            entry = breakdown.setdefault(q["domain_id"], {"correct": 0, "incorrect": 0})
            if self.answers.get(i) == q["correct_answer"].strip().upper():
                entry["correct"] += 1
            else:
                entry["incorrect"] += 1
        for entry in breakdown.values():
            entry["accuracy"] = accuracy(entry["correct"], entry["incorrect"])

        insert_rows(self.db_path, "mock_exam_attempts", [{
            "user_id": self.user_id,
            "mock_exam_id": self.exam.id,
            "score": score,
            "time_spent_minutes": minutes,
            "answers": json.dumps({str(i): a for i, a in sorted(self.answers.items())}),
            "created_at": (now or datetime.now()).isoformat(),
        }])
        xp = math.floor(raw * XP_PER_PERCENT)
        record_mock_completed(self.db_path, self.user_id, xp)
        self.finished = True
        logger.info("Exam %s finished: %d%% (%d/%d)", self.exam.id, score, correct, total)
        return {
            "exam_id": self.exam.id,
            "correct": correct,
            "total": total,
            "score": score,
            "passed": score >= self.exam.passing_score,
            "time_spent_minutes": minutes,
            "xp_earned": xp,
            "unanswered": len(self.unanswered()),
            "flagged": sorted(self.flags),
            "domain_breakdown": breakdown,
        }
