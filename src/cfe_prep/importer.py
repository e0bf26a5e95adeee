"""CSV question import."""
import csv
import io
import json
import logging
from pathlib import Path

from cfe_prep.db import StoreError, insert_rows
from cfe_prep.models import ImportResult

logger = logging.getLogger(__name__)

BATCH_SIZE = 100

REQUIRED_FIELDS = (
    "section_id", "domain_id", "question_type", "question_text",
    "option_a", "option_b", "option_c", "option_d",
    "correct_answer", "explanation",
)
TEMPLATE_COLUMNS = (
    "section_id", "domain_id", "subtopic_id", "question_type", "question_text",
    "option_a", "option_b", "option_c", "option_d",
    "correct_answer", "explanation", "difficulty", "tags", "pdf_reference",
)
ANSWER_LETTERS = ("A", "B", "C", "D")
QUESTION_TYPES = ("single", "multiple", "true-false")

SAMPLE_ROWS = [
    [
        "1", "1-1", "accounting-basics", "single",
        "What is the accounting equation?",
        "Assets = Liabilities + Equity", "Assets = Revenue - Expenses",
        "Assets + Liabilities = Equity", "Revenue = Assets + Liabilities",
        "A",
        "The fundamental accounting equation states that Assets = Liabilities + Equity, which must always balance.",
        "easy", "accounting,fundamentals", "Section 1, Page 3",
    ],
    [
        "2", "2-1", "legal-systems", "single",
        "What is the burden of proof in criminal cases?",
        "Preponderance of evidence", "Clear and convincing",
        "Beyond a reasonable doubt", "Probable cause",
        "C",
        "Criminal cases require proof beyond a reasonable doubt, the highest standard of proof.",
        "medium", "law,burden-of-proof", "Section 2, Page 4",
    ],
]


def _text(row: dict, field: str) -> str:
    return (row.get(field) or "").strip()


def validate_row(row: dict, row_number: int) -> str | None:
    """Return an error message for an invalid row, or None if it can be imported."""
    for field in REQUIRED_FIELDS:
        if not _text(row, field):
            return f'Row {row_number}: Missing required field "{field}"'

    try:
        section_id = int(_text(row, "section_id"))
    except ValueError:
        section_id = None
    if section_id is None or not 1 <= section_id <= 4:
        return f"Row {row_number}: section_id must be between 1 and 4"

    if _text(row, "correct_answer").upper() not in ANSWER_LETTERS:
        return f"Row {row_number}: correct_answer must be A, B, C, or D"

    if _text(row, "question_type").lower() not in QUESTION_TYPES:
        return f'Row {row_number}: question_type must be "single", "multiple", or "true-false"'

    return None


def map_row(row: dict) -> dict:
    """Map a validated CSV row onto the question record shape."""
    tags = [t.strip() for t in _text(row, "tags").split(",") if t.strip()]
    return {
        "section_id": int(_text(row, "section_id")),
        "domain_id": _text(row, "domain_id"),
        "subtopic_id": _text(row, "subtopic_id") or None,
        "question_type": _text(row, "question_type").lower(),
        "question_text": _text(row, "question_text"),
        "option_a": _text(row, "option_a"),
        "option_b": _text(row, "option_b"),
        "option_c": _text(row, "option_c"),
        "option_d": _text(row, "option_d"),
        "correct_answer": _text(row, "correct_answer").upper(),
        "explanation": _text(row, "explanation"),
        "difficulty": _text(row, "difficulty").lower() or "medium",
        "tags": tags,
        "pdf_reference": _text(row, "pdf_reference") or None,
    }


def _record(question: dict) -> dict:
    return {**question, "tags": json.dumps(question["tags"]), "source": "imported"}


def import_csv(db_path: str, file_path: str, batch_size: int = BATCH_SIZE) -> ImportResult:
    """Validate every row, then insert the valid ones in fixed-size batches.

    Invalid rows and failed batches are reported in the result; neither stops the import.
    """
    result = ImportResult()
    try:
        with open(file_path, newline="", encoding="utf-8-sig") as f:
            rows = list(csv.DictReader(f))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        return ImportResult(success=False, errors=[f"CSV parsing error: {e}"])

    valid = []
    for index, row in enumerate(rows):
        if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
            continue
        row_number = index + 2
        error = validate_row(row, row_number)
        if error:
            result.errors.append(error)
            result.failed += 1
            continue
        valid.append(_record(map_row(row)))

    for start in range(0, len(valid), batch_size):
        batch = valid[start:start + batch_size]
        try:
            insert_rows(db_path, "questions", batch)
            result.imported += len(batch)
        except StoreError as e:
            result.errors.append(f"Batch {start // batch_size + 1}: Database error - {e}")
            result.failed += len(batch)

    result.success = not result.errors
    logger.info("Imported %d questions from %s (%d failed)", result.imported, Path(file_path).name, result.failed)
    return result


def generate_template() -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(TEMPLATE_COLUMNS)
    writer.writerows(SAMPLE_ROWS)
    return buf.getvalue()


def write_template(path: str) -> Path:
    target = Path(path)
    target.write_text(generate_template(), encoding="utf-8")
    return target
