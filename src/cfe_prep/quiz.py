"""Practice question engine."""
from datetime import date, datetime

from cfe_prep.db import insert_rows, run_query, select_rows
from cfe_prep.gamification import increment_questions, update_streak
from cfe_prep.progress import aggregate, get_progress_records, record_answer, weakest_domains

OPTION_LETTERS = ("A", "B", "C", "D", "E")
PRACTICE_MODES = ("smart", "weak")

SMART_MAX_ACCURACY = 0.7
SMART_MIN_ATTEMPTS = 5
WEAK_MIN_ATTEMPTS = 3
WEAK_LIMIT = 3


def focus_domains(db_path: str, user_id: str, mode: str) -> list[str]:
    """Domains a practice mode should draw from, based on the user's answers.

    smart: every domain under 70% accuracy with at least 5 answers.
    weak: the 3 lowest-accuracy domains with at least 3 answers.
    """
    if mode not in PRACTICE_MODES:
        raise ValueError(f"Practice mode must be one of {', '.join(PRACTICE_MODES)}, got {mode!r}")
    per_domain = aggregate(get_progress_records(db_path, user_id))["per_domain"]
    if mode == "smart":
        return [
            d["domain_id"] for d in per_domain
            if d["attempts"] >= SMART_MIN_ATTEMPTS and d["correct"] / d["attempts"] < SMART_MAX_ACCURACY
        ]
    return [d["domain_id"] for d in weakest_domains(per_domain, min_attempts=WEAK_MIN_ATTEMPTS, limit=WEAK_LIMIT)]


def get_practice_questions(
    db_path: str,
    section_id: int | None = None,
    domain_id: str | None = None,
    difficulty: str | None = None,
    count: int = 10,
    mode: str | None = None,
    user_id: str | None = None,
) -> list:
    """Random practice questions matching the filters.

    A mode narrows the draw to the user's focus domains. When no domain
    qualifies yet, the mode adds no filter.
    """
    sql = "SELECT * FROM questions WHERE 1 = 1"
    params = []
    if section_id is not None:
        sql += " AND section_id = ?"
        params.append(section_id)
    if domain_id is not None:
        sql += " AND domain_id = ?"
        params.append(domain_id)
    if difficulty is not None:
        sql += " AND difficulty = ?"
        params.append(difficulty)
    if mode is not None:
        if user_id is None:
            raise ValueError(f"Practice mode {mode!r} needs a user_id")
        domains = focus_domains(db_path, user_id, mode)
        if domains:
            sql += f" AND domain_id IN ({', '.join('?' for _ in domains)})"
            params.extend(domains)
    sql += " ORDER BY RANDOM() LIMIT ?"
    params.append(count)
    return run_query(db_path, sql, params)


def question_options(question: dict) -> dict[str, str]:
    """Letter -> option text for the options this question actually has."""
    return {
        letter: question[f"option_{letter.lower()}"]
        for letter in OPTION_LETTERS
        if question.get(f"option_{letter.lower()}")
    }


def answer_question(db_path: str, user_id: str, question_id: int, answer: str, today: date | None = None) -> dict:
    rows = select_rows(db_path, "questions", {"id": question_id})
    if not rows:
        raise LookupError(f"Question {question_id} not found")
    question = rows[0]
    letter = answer.strip().upper()
    if letter not in question_options(question):
        raise ValueError(f"Answer must be one of {', '.join(question_options(question))}, got {answer!r}")

    is_correct = letter == question["correct_answer"].strip().upper()
    insert_rows(db_path, "question_attempts", [{
        "user_id": user_id,
        "question_id": question_id,
        "selected_answer": letter,
        "is_correct": int(is_correct),
        "created_at": datetime.now().isoformat(),
    }])
    record_answer(db_path, user_id, question["section_id"], question["domain_id"], is_correct)
    increment_questions(db_path, user_id, is_correct)
    update_streak(db_path, user_id, today)
    return {
        "is_correct": is_correct,
        "correct_answer": question["correct_answer"],
        "explanation": question["explanation"] or "",
    }


def get_attempt_stats(db_path: str, user_id: str) -> dict:
    row = run_query(
        db_path,
        "SELECT COUNT(*) AS total, SUM(is_correct) AS correct FROM question_attempts WHERE user_id = ?",
        (user_id,),
    )[0]
    total = row["total"]
    correct = row["correct"] or 0
    return {
        "total": total,
        "correct": correct,
        "score": round(correct / total * 100, 1) if total else 0.0,
    }
