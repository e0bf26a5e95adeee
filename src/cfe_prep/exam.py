"""Mock exam assembly: weighted, domain-proportional question selection."""
import logging
import random
import re

from cfe_prep.db import run_query, select_rows, upsert_row
from cfe_prep.models import Domain, MockExam
from cfe_prep.sm2 import round_half_up

logger = logging.getLogger(__name__)

SECTION_IDS = (1, 2, 3, 4)

SECTION_TARGET = 100
SECTION_MINIMUM = 50
SECTION_TIME_LIMIT = 120

GRAND_TARGET_PER_SECTION = 100
GRAND_MINIMUM = 200
GRAND_TIME_LIMIT = 480

PASSING_SCORE = 75

_WEIGHT_RE = re.compile(r"(\d+)-(\d+)%")


def parse_weight(weight: str) -> float:
    """Midpoint of a published range such as "10-15%" (-> 12.5). 0.0 when unparseable."""
    match = _WEIGHT_RE.search(weight or "")
    if not match:
        return 0.0
    return (int(match.group(1)) + int(match.group(2))) / 2


def _numeric_weights(domain_weights: dict) -> dict[str, float]:
    return {
        domain_id: parse_weight(w) if isinstance(w, str) else float(w)
        for domain_id, w in domain_weights.items()
    }


def domain_quotas(domain_weights: dict, target_count: int) -> dict[str, int]:
    """Per-domain question counts, each rounded independently.

    The quotas can sum to a few more or fewer than target_count.
    """
    weights = _numeric_weights(domain_weights)
    total = sum(weights.values())
    if total <= 0:
        return {d: 0 for d in weights}
    return {d: round_half_up(target_count * w / total) for d, w in weights.items()}


def largest_remainder_quotas(domain_weights: dict, target_count: int) -> dict[str, int]:
    """Per-domain counts that sum exactly to target_count (Hamilton apportionment)."""
    weights = _numeric_weights(domain_weights)
    total = sum(weights.values())
    if total <= 0:
        return {d: 0 for d in weights}
    exact = {d: target_count * w / total for d, w in weights.items()}
    quotas = {d: int(v) for d, v in exact.items()}
    leftover = target_count - sum(quotas.values())
    by_remainder = sorted(exact, key=lambda d: exact[d] - quotas[d], reverse=True)
    for d in by_remainder[:leftover]:
        quotas[d] += 1
    return quotas


def assemble_exam(
    question_pool: list,
    domain_weights: dict,
    target_count: int,
    exact: bool = False,
    rng: random.Random | None = None,
) -> list:
    """Pick a domain-proportional random subset of question ids.

    Args:
        question_pool: Questions with at least "id" and "domain_id"
        domain_weights: domain_id -> weight (number or "a-b%" range), in exam order
        target_count: Desired exam size
        exact: Use largest-remainder quotas so the sum hits target_count
        rng: Random source, for reproducible exams

    A domain with fewer questions than its quota contributes all it has.
    """
    rng = rng or random.Random()
    quotas = (largest_remainder_quotas if exact else domain_quotas)(domain_weights, target_count)

    by_domain: dict[str, list] = {}
    for q in question_pool:
        by_domain.setdefault(q["domain_id"], []).append(q["id"])

    selected = []
    seen = set()
    for domain_id, quota in quotas.items():
        candidates = [qid for qid in dict.fromkeys(by_domain.get(domain_id, [])) if qid not in seen]
        rng.shuffle(candidates)
        picked = candidates[:quota]
        if len(picked) < quota:
            logger.warning("Domain %s has %d of %d questions", domain_id, len(picked), quota)
        seen.update(picked)
        selected.extend(picked)
    return selected


def get_domains(db_path: str, section_id: int | None = None) -> list[Domain]:
    where = {"section_id": section_id} if section_id is not None else None
    rows = select_rows(db_path, "domains", where, order_by="section_id, position, id")
    return [
        Domain(
            id=r["id"], section_id=r["section_id"], name=r["name"], weight=r["weight"],
            description=r["description"] or "", position=r["position"],
        )
        for r in rows
    ]


def build_mock_exams(db_path: str, rng: random.Random | None = None, exact: bool = False) -> list[MockExam]:
    """Assemble the per-section and grand mock exams and store those large enough."""
    rng = rng or random.Random()
    pool = run_query(db_path, "SELECT id, section_id, domain_id FROM questions")
    if not pool:
        logger.warning("No questions found, skipping mock exam creation")
        return []

    exams = []
    grand_ids = []
    for section_id in SECTION_IDS:
        domains = get_domains(db_path, section_id)
        if not domains:
            continue
        weights = {d.id: d.weight for d in domains}
        section_pool = [q for q in pool if q["section_id"] == section_id]

        ids = assemble_exam(section_pool, weights, SECTION_TARGET, exact=exact, rng=rng)
        if len(ids) >= SECTION_MINIMUM:
            exams.append(MockExam(
                id=f"section-{section_id}",
                title=f"Section {section_id} Mock Exam",
                description=f"Weighted {SECTION_TARGET}-question exam for Section {section_id} matching the exam blueprint",
                exam_type="section",
                question_ids=ids,
                time_limit_minutes=SECTION_TIME_LIMIT,
                passing_score=PASSING_SCORE,
            ))
        else:
            logger.warning("Section %d exam discarded: %d questions (< %d)", section_id, len(ids), SECTION_MINIMUM)

        grand_ids.extend(assemble_exam(section_pool, weights, GRAND_TARGET_PER_SECTION, exact=exact, rng=rng))

    if len(grand_ids) >= GRAND_MINIMUM:
        exams.append(MockExam(
            id="grand",
            title="Grand Mock Exam - All Sections",
            description="Comprehensive exam across all four sections with weighted domain distribution",
            exam_type="grand",
            question_ids=grand_ids,
            time_limit_minutes=GRAND_TIME_LIMIT,
            passing_score=PASSING_SCORE,
        ))
    else:
        logger.warning("Grand exam discarded: %d questions (< %d)", len(grand_ids), GRAND_MINIMUM)

    for exam in exams:
        upsert_row(db_path, "mock_exams", exam.to_row(), conflict=("id",))
    logger.info("Stored %d mock exams", len(exams))
    return exams


def list_mock_exams(db_path: str) -> list[MockExam]:
    return [MockExam.from_row(r) for r in select_rows(db_path, "mock_exams", order_by="exam_type DESC, id")]


def get_mock_exam(db_path: str, exam_id: str) -> MockExam:
    rows = select_rows(db_path, "mock_exams", {"id": exam_id})
    if not rows:
        raise LookupError(f"Mock exam {exam_id} not found")
    return MockExam.from_row(rows[0])


def load_exam_questions(db_path: str, exam: MockExam) -> list[dict]:
    """Fetch an exam's questions in the exam's own order, skipping ids no longer stored."""
    rows = select_rows(db_path, "questions", {"id": exam.question_ids})
    by_id = {r["id"]: r for r in rows}
    return [by_id[qid] for qid in exam.question_ids if qid in by_id]
