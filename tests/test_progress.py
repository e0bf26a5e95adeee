"""Tests for accuracy aggregation and progress counters."""
from cfe_prep.db import init_db
from cfe_prep.progress import (
    accuracy, aggregate, get_progress_records, get_progress_report,
    overall_readiness, record_answer, weakest_domains,
)

USER = "u1"


def _rec(section_id, domain_id, correct, incorrect):
    return {"section_id": section_id, "domain_id": domain_id, "correct": correct, "incorrect": incorrect}


def test_accuracy():
    assert accuracy(0, 0) == 0.0
    assert accuracy(2, 1) == 66.7
    assert accuracy(5, 0) == 100.0


def test_section_accuracy_pools_domains():
    """8/2 and 3/7 pool to 11 correct out of 20."""
    report = aggregate([_rec(1, "1-1", 8, 2), _rec(1, "1-2", 3, 7)])
    section = report["per_section"][1]
    assert section["correct"] == 11
    assert section["incorrect"] == 9
    assert section["accuracy"] == 55.0


def test_section_accuracy_weighted_by_attempts():
    report = aggregate([_rec(2, "2-1", 9, 1), _rec(2, "2-2", 0, 30)])
    # 9 / 40, not the mean of 90% and 0%
    assert report["per_section"][2]["accuracy"] == 22.5


def test_aggregate_merges_duplicate_records():
    report = aggregate([_rec(1, "1-1", 1, 1), _rec(1, "1-1", 2, 0)])
    assert len(report["per_domain"]) == 1
    assert report["per_domain"][0]["attempts"] == 4
    assert report["per_domain"][0]["accuracy"] == 75.0


def test_aggregate_sections_sorted():
    report = aggregate([_rec(3, "3-1", 1, 0), _rec(1, "1-1", 1, 0)])
    assert list(report["per_section"]) == [1, 3]


def test_aggregate_empty():
    assert aggregate([]) == {"per_domain": [], "per_section": {}}


def test_weakest_domains_needs_minimum_attempts():
    per_domain = aggregate([
        _rec(1, "1-1", 0, 4),   # 4 attempts, too few
        _rec(1, "1-2", 1, 4),
        _rec(1, "1-3", 4, 1),
        _rec(1, "1-4", 2, 3),
    ])["per_domain"]
    weakest = weakest_domains(per_domain)
    assert [d["domain_id"] for d in weakest] == ["1-2", "1-4", "1-3"]


def test_weakest_domains_limit():
    per_domain = aggregate([_rec(1, f"1-{i}", i, 10) for i in range(1, 8)])["per_domain"]
    weakest = weakest_domains(per_domain)
    assert len(weakest) == 5
    assert weakest[0]["domain_id"] == "1-1"


def test_overall_readiness_ignores_unattempted_sections():
    per_section = {
        1: {"correct": 8, "incorrect": 2, "accuracy": 80.0},
        2: {"correct": 0, "incorrect": 0, "accuracy": 0.0},
        3: {"correct": 3, "incorrect": 2, "accuracy": 60.0},
    }
    assert overall_readiness(per_section) == 70.0
    assert overall_readiness({}) == 0.0


def test_record_answer_increments_counters(tmp_db):
    init_db(tmp_db)
    record_answer(tmp_db, USER, 1, "1-1", True)
    record_answer(tmp_db, USER, 1, "1-1", True)
    record_answer(tmp_db, USER, 1, "1-1", False)
    records = get_progress_records(tmp_db, USER)
    assert len(records) == 1
    assert records[0]["correct"] == 2
    assert records[0]["incorrect"] == 1


def test_record_answer_per_user(tmp_db):
    init_db(tmp_db)
    record_answer(tmp_db, "alice", 1, "1-1", True)
    record_answer(tmp_db, "bob", 1, "1-1", False)
    assert get_progress_records(tmp_db, "alice")[0]["correct"] == 1
    assert get_progress_records(tmp_db, "bob")[0]["correct"] == 0


def test_progress_report_names_domains(seeded_db):
    for _ in range(4):
        record_answer(seeded_db, USER, 1, "1-3", False)
    record_answer(seeded_db, USER, 1, "1-3", True)
    record_answer(seeded_db, USER, 4, "4-2", True)
    report = get_progress_report(seeded_db, USER)
    names = {d["domain_id"]: d["domain_name"] for d in report["per_domain"]}
    assert names["1-3"] == "Asset Misappropriation: Cash Receipts"
    assert [d["domain_id"] for d in report["weakest"]] == ["1-3"]
    assert report["readiness"] == 60.0
