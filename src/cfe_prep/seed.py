"""Seed the database with exam sections, domains, study content and mock exams."""
import json
import logging
from pathlib import Path

from cfe_prep.db import get_connection, insert_rows
from cfe_prep.exam import build_mock_exams
from cfe_prep.models import CaseStudy

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"


def _load(name: str) -> dict:
    return json.loads((CONTENT_DIR / name).read_text(encoding="utf-8"))


def is_seeded(db_path: str) -> bool:
    """Check whether the database has already been seeded with domains."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM domains").fetchone()[0]
    conn.close()
    return count > 0


def seed_sections(db_path: str) -> None:
    """Insert the four exam sections and their weighted domains from sections.json."""
    data = _load("sections.json")
    conn = get_connection(db_path)
    for section in data["sections"]:
        conn.execute(
            "INSERT OR IGNORE INTO sections (id, title, description) VALUES (?, ?, ?)",
            (section["id"], section["title"], section["description"]),
        )
        for position, domain in enumerate(section["domains"]):
            conn.execute(
                "INSERT OR IGNORE INTO domains (id, section_id, name, weight, description, position) VALUES (?, ?, ?, ?, ?, ?)",
                (domain["id"], section["id"], domain["name"], domain["weight"], domain["description"], position),
            )
    conn.commit()
    conn.close()


def seed_flashcards(db_path: str) -> None:
    cards = _load("flashcards.json")["flashcards"]
    insert_rows(db_path, "flashcards", [
        {
            "section_id": c["section_id"],
            "domain_id": c["domain_id"],
            "front": c["front"],
            "back": c["back"],
            "difficulty": c.get("difficulty", "medium"),
        }
        for c in cards
    ])


def seed_questions(db_path: str) -> None:
    questions = _load("questions.json")["questions"]
    insert_rows(db_path, "questions", [
        {**q, "tags": json.dumps(q.get("tags", [])), "source": "seeded"}
        for q in questions
    ])


def seed_achievements(db_path: str) -> None:
    data = _load("achievements.json")
    conn = get_connection(db_path)
    for a in data["achievements"]:
        conn.execute(
            """INSERT OR IGNORE INTO achievements
            (id, name, description, category, condition_type, condition_value, xp_reward, rarity)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (a["id"], a["name"], a["description"], a["category"], a["condition_type"],
             a["condition_value"], a["xp_reward"], a["rarity"]),
        )
    conn.commit()
    conn.close()


def seed_cases(db_path: str) -> None:
    cases = [CaseStudy(**c) for c in _load("cases.json")["cases"]]
    insert_rows(db_path, "cases", [c.to_row() for c in cases])


def seed_mock_exams(db_path: str) -> None:
    build_mock_exams(db_path)


def seed_all(db_path: str) -> None:
    """Run all seed functions in order."""
    if is_seeded(db_path):
        return
    seed_sections(db_path)
    seed_flashcards(db_path)
    seed_questions(db_path)
    seed_achievements(db_path)
    seed_cases(db_path)
    seed_mock_exams(db_path)
    logger.info("Seeded database at %s", db_path)
