# tests/test_importer.py
import csv
import json
from unittest.mock import patch

from cfe_prep.db import StoreError, get_connection, init_db
from cfe_prep.importer import (
    TEMPLATE_COLUMNS, generate_template, import_csv, map_row, validate_row, write_template,
)


def _row(**overrides):
    row = {
        "section_id": "1", "domain_id": "1-3", "subtopic_id": "", "question_type": "single",
        "question_text": "Which scheme removes cash before it is recorded?",
        "option_a": "Cash larceny", "option_b": "Skimming", "option_c": "Lapping", "option_d": "Kiting",
        "correct_answer": "B", "explanation": "Skimming is off-book theft.",
        "difficulty": "", "tags": "", "pdf_reference": "",
    }
    row.update(overrides)
    return row


def _write_csv(path, rows):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(TEMPLATE_COLUMNS))
        writer.writeheader()
        writer.writerows(rows)
    return str(path)


def test_validate_row_accepts_valid_row():
    assert validate_row(_row(), 2) is None


def test_validate_row_missing_field():
    assert validate_row(_row(option_b="  "), 3) == 'Row 3: Missing required field "option_b"'


def test_validate_row_section_range():
    assert validate_row(_row(section_id="5"), 2) == "Row 2: section_id must be between 1 and 4"
    assert validate_row(_row(section_id="one"), 2) == "Row 2: section_id must be between 1 and 4"


def test_validate_row_rejects_fifth_option_answer():
    assert validate_row(_row(correct_answer="E"), 4) == "Row 4: correct_answer must be A, B, C, or D"


def test_validate_row_question_type():
    error = validate_row(_row(question_type="essay"), 2)
    assert error == 'Row 2: question_type must be "single", "multiple", or "true-false"'


def test_map_row_normalizes():
    mapped = map_row(_row(correct_answer=" b ", question_type="True-False", tags="cash, skimming,", subtopic_id="  "))
    assert mapped["correct_answer"] == "B"
    assert mapped["question_type"] == "true-false"
    assert mapped["difficulty"] == "medium"
    assert mapped["tags"] == ["cash", "skimming"]
    assert mapped["subtopic_id"] is None
    assert mapped["section_id"] == 1


def test_import_csv(tmp_path, tmp_db):
    init_db(tmp_db)
    path = _write_csv(tmp_path / "q.csv", [_row(correct_answer="b", tags="cash,skimming"), _row(domain_id="1-4")])
    result = import_csv(tmp_db, path)
    assert result.success is True
    assert result.imported == 2
    assert result.failed == 0
    conn = get_connection(tmp_db)
    rows = conn.execute("SELECT * FROM questions ORDER BY id").fetchall()
    conn.close()
    assert rows[0]["correct_answer"] == "B"
    assert json.loads(rows[0]["tags"]) == ["cash", "skimming"]
    assert rows[0]["source"] == "imported"


def test_import_csv_reports_invalid_rows(tmp_path, tmp_db):
    init_db(tmp_db)
    path = _write_csv(tmp_path / "q.csv", [_row(), _row(option_b=""), _row(correct_answer="E"), _row()])
    result = import_csv(tmp_db, path)
    assert result.success is False
    assert result.imported == 2
    assert result.failed == 2
    assert result.errors == [
        'Row 3: Missing required field "option_b"',
        "Row 4: correct_answer must be A, B, C, or D",
    ]


def test_import_csv_skips_blank_rows(tmp_path, tmp_db):
    init_db(tmp_db)
    blank = {col: "" for col in TEMPLATE_COLUMNS}
    path = _write_csv(tmp_path / "q.csv", [_row(), blank, _row()])
    result = import_csv(tmp_db, path)
    assert result.imported == 2
    assert result.errors == []


def test_import_csv_failed_batch_does_not_stop_import(tmp_path, tmp_db):
    init_db(tmp_db)
    path = _write_csv(tmp_path / "q.csv", [_row() for _ in range(5)])
    with patch("cfe_prep.importer.insert_rows", side_effect=[2, StoreError("database is locked"), 1]) as insert:
        result = import_csv(tmp_db, path, batch_size=2)
    assert insert.call_count == 3
    assert result.imported == 3
    assert result.failed == 2
    assert result.errors == ["Batch 2: Database error - database is locked"]
    assert result.success is False


def test_import_csv_handles_bom(tmp_path, tmp_db):
    init_db(tmp_db)
    path = tmp_path / "bom.csv"
    path.write_text("\ufeff" + generate_template(), encoding="utf-8")
    result = import_csv(tmp_db, str(path))
    assert result.imported == 2


def test_import_csv_missing_file(tmp_path, tmp_db):
    init_db(tmp_db)
    result = import_csv(tmp_db, str(tmp_path / "missing.csv"))
    assert result.success is False
    assert result.errors[0].startswith("CSV parsing error:")


def test_template_round_trips_through_importer(tmp_path, tmp_db):
    init_db(tmp_db)
    path = write_template(str(tmp_path / "template.csv"))
    header = path.read_text(encoding="utf-8").splitlines()[0]
    assert header.startswith('"section_id","domain_id"')
    result = import_csv(tmp_db, str(path))
    assert result.imported == 2
    assert result.success is True
