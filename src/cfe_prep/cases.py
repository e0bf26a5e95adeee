"""Case study lab: fraud scenarios with scored follow-up questions."""
import json
import logging
from datetime import date, datetime

from cfe_prep.db import insert_row, select_rows
from cfe_prep.gamification import add_xp, update_streak
from cfe_prep.models import CaseStudy
from cfe_prep.quiz import OPTION_LETTERS
from cfe_prep.sm2 import round_half_up

logger = logging.getLogger(__name__)

DIFFICULTIES = ("easy", "medium", "hard")

CASE_XP = 50
CASE_XP_STRONG = 100  # score >= 80
CASE_XP_PERFECT = 150


def case_xp(score: int) -> int:
    if score == 100:
        return CASE_XP_PERFECT
    if score >= 80:
        return CASE_XP_STRONG
    return CASE_XP


def case_options(question: dict) -> dict[str, str]:
    """Map option letters to option text for one case question."""
    return dict(zip(OPTION_LETTERS, question["options"]))


def list_cases(db_path: str, difficulty: str | None = None) -> list[CaseStudy]:
    """All cases, easiest first. Optionally only one difficulty."""
    if difficulty is not None and difficulty not in DIFFICULTIES:
        raise ValueError(f"Difficulty must be one of {', '.join(DIFFICULTIES)}, got {difficulty!r}")
    where = {"difficulty": difficulty} if difficulty else None
    cases = [CaseStudy.from_row(r) for r in select_rows(db_path, "cases", where, order_by="title")]
    return sorted(cases, key=lambda c: DIFFICULTIES.index(c.difficulty) if c.difficulty in DIFFICULTIES else len(DIFFICULTIES))


def get_case(db_path: str, case_id: str) -> CaseStudy:
    rows = select_rows(db_path, "cases", {"id": case_id})
    if not rows:
        raise LookupError(f"Case {case_id} not found")
    return CaseStudy.from_row(rows[0])


def score_case(case: CaseStudy, answers: list) -> dict:
    """Grade answer letters against a case's questions.

    Missing or blank answers count as wrong. The score is the rounded
    percentage and decides the XP reward.
    """
    if not case.questions:
        raise ValueError(f"Case {case.id} has no questions")
    results = []
    for i, question in enumerate(case.questions):
        selected = (answers[i] or "").strip().upper() if i < len(answers) else ""
        correct_answer = question["correct_answer"].strip().upper()
        results.append({
            "question": question["question"],
            "selected": selected or None,
            "correct_answer": correct_answer,
            "is_correct": selected == correct_answer,
            "explanation": question.get("explanation", ""),
        })
    correct = sum(1 for r in results if r["is_correct"])
    total = len(results)
    score = round_half_up(correct / total * 100)
    return {
        "case_id": case.id,
        "correct": correct,
        "total": total,
        "score": score,
        "xp_earned": case_xp(score),
        "results": results,
    }


def complete_case(db_path: str, user_id: str, case_id: str, answers: list, today: date | None = None) -> dict:
    """Score a finished case, store the attempt and grant its XP."""
    case = get_case(db_path, case_id)
    result = score_case(case, answers)
    result["attempt_id"] = insert_row(db_path, "case_attempts", {
        "user_id": user_id,
        "case_id": case.id,
        "correct": result["correct"],
        "total": result["total"],
        "score": result["score"],
        "xp_earned": result["xp_earned"],
        "answers": json.dumps([r["selected"] for r in result["results"]]),
        "created_at": datetime.now().isoformat(),
    })
    add_xp(db_path, user_id, result["xp_earned"])
    update_streak(db_path, user_id, today)
    logger.info("User %s completed case %s: %d%% (+%d XP)", user_id, case.id, result["score"], result["xp_earned"])
    return result


def get_case_attempts(db_path: str, user_id: str, case_id: str | None = None) -> list[dict]:
    where = {"user_id": user_id}
    if case_id is not None:
        where["case_id"] = case_id
    return select_rows(db_path, "case_attempts", where, order_by="id")


def completed_case_ids(db_path: str, user_id: str) -> set[str]:
    return {a["case_id"] for a in get_case_attempts(db_path, user_id)}
