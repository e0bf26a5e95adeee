"""Progress export (JSON / CSV snapshots) and full progress reset."""
import csv
import io
import json
import logging
from dataclasses import asdict
from datetime import date, datetime

from cfe_prep.db import delete_rows, run_write, select_rows
from cfe_prep.gamification import get_state
from cfe_prep.progress import accuracy, get_progress_records
from cfe_prep.study import get_settings

logger = logging.getLogger(__name__)

CSV_HEADERS = ["Section ID", "Domain ID", "Correct", "Incorrect", "Accuracy"]

USER_TABLES = (
    "user_progress", "question_attempts", "mock_exam_attempts", "exam_answers",
    "user_achievements", "study_sessions", "flashcard_reviews", "case_attempts", "gamification_state",
)


def default_export_name(kind: str, today: date | None = None) -> str:
    if kind not in ("json", "csv"):
        raise ValueError(f"Unknown export format: {kind}")
    return f"cfe-progress-{(today or date.today()).isoformat()}.{kind}"


def export_json(db_path: str, user_id: str, now: datetime | None = None) -> str:
    data = {
        "exported_at": (now or datetime.now()).isoformat(),
        "gamification_state": asdict(get_state(db_path, user_id)),
        "progress": get_progress_records(db_path, user_id),
        "question_attempts": select_rows(db_path, "question_attempts", {"user_id": user_id}, order_by="id"),
        "mock_exam_attempts": select_rows(db_path, "mock_exam_attempts", {"user_id": user_id}, order_by="id"),
        "case_attempts": select_rows(db_path, "case_attempts", {"user_id": user_id}, order_by="id"),
        "settings": get_settings(db_path, user_id),
    }
    return json.dumps(data, indent=2)


def export_progress_csv(db_path: str, user_id: str) -> str:
    records = get_progress_records(db_path, user_id)
    if not records:
        raise LookupError("No progress data to export")
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for r in records:
        writer.writerow([
            r["section_id"], r["domain_id"], r["correct"], r["incorrect"],
            f"{accuracy(r['correct'], r['incorrect']):.1f}%",
        ])
    return buf.getvalue()


def reset_progress(db_path: str, user_id: str) -> None:
    """Delete everything the user has done and put every flashcard back to unreviewed."""
    for table in USER_TABLES:
        delete_rows(db_path, table, {"user_id": user_id})
    run_write(
        db_path,
        """UPDATE flashcards SET ease_factor = 2.5, interval_days = 1, next_review_date = NULL,
        times_reviewed = 0, mastery_level = 0""",
    )
    logger.info("Progress reset for %s", user_id)
