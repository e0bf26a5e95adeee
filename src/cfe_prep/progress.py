"""Per-domain and per-section accuracy for the progress screens."""
from cfe_prep.db import run_query, run_write, select_rows

WEAKEST_MIN_ATTEMPTS = 5
WEAKEST_LIMIT = 5


def accuracy(correct: int, incorrect: int) -> float:
    total = correct + incorrect
    if total == 0:
        return 0.0
    return round(correct / total * 100, 1)


def aggregate(records: list[dict]) -> dict:
    """Fold raw progress counters into domain and section accuracy.

    Section accuracy pools the counters of all its domains; it is not the
    mean of the domain percentages.
    """
    domains: dict[tuple, dict] = {}
    for r in records:
        key = (r["section_id"], r["domain_id"])
        entry = domains.setdefault(key, {"section_id": r["section_id"], "domain_id": r["domain_id"], "correct": 0, "incorrect": 0})
        entry["correct"] += r["correct"]
        entry["incorrect"] += r["incorrect"]

    per_domain = []
    per_section: dict[int, dict] = {}
    for entry in domains.values():
        entry["attempts"] = entry["correct"] + entry["incorrect"]
        entry["accuracy"] = accuracy(entry["correct"], entry["incorrect"])
        per_domain.append(entry)
        section = per_section.setdefault(entry["section_id"], {"correct": 0, "incorrect": 0})
        section["correct"] += entry["correct"]
        section["incorrect"] += entry["incorrect"]

    for section in per_section.values():
        section["attempts"] = section["correct"] + section["incorrect"]
        section["accuracy"] = accuracy(section["correct"], section["incorrect"])

    return {"per_domain": per_domain, "per_section": dict(sorted(per_section.items()))}


def weakest_domains(per_domain: list[dict], min_attempts: int = WEAKEST_MIN_ATTEMPTS, limit: int = WEAKEST_LIMIT) -> list[dict]:
    eligible = [d for d in per_domain if d["correct"] + d["incorrect"] >= min_attempts]
    return sorted(eligible, key=lambda d: d["accuracy"])[:limit]


def overall_readiness(per_section: dict) -> float:
    """Mean section accuracy, ignoring sections with no attempts."""
    attempted = [s["accuracy"] for s in per_section.values() if s["correct"] + s["incorrect"] > 0]
    if not attempted:
        return 0.0
    return round(sum(attempted) / len(attempted), 1)


def record_answer(db_path: str, user_id: str, section_id: int, domain_id: str, is_correct: bool) -> None:
    """Add one answer to the user's counters as a single atomic upsert."""
    run_write(
        db_path,
        """INSERT INTO user_progress (user_id, section_id, domain_id, correct, incorrect)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(user_id, section_id, domain_id) DO UPDATE SET
            correct = correct + excluded.correct,
            incorrect = incorrect + excluded.incorrect""",
        (user_id, section_id, domain_id, int(is_correct), int(not is_correct)),
    )


def get_progress_records(db_path: str, user_id: str) -> list[dict]:
    return select_rows(db_path, "user_progress", {"user_id": user_id}, order_by="section_id, domain_id")


def get_progress_report(db_path: str, user_id: str) -> dict:
    report = aggregate(get_progress_records(db_path, user_id))
    names = {r["id"]: r["name"] for r in run_query(db_path, "SELECT id, name FROM domains")}
    for d in report["per_domain"]:
        d["domain_name"] = names.get(d["domain_id"], d["domain_id"])
    report["weakest"] = weakest_domains(report["per_domain"])
    report["readiness"] = overall_readiness(report["per_section"])
    return report
