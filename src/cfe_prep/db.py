"""Database initialization, connection management and generic CRUD helpers."""
import logging
import sqlite3
from pathlib import Path

from cfe_prep.config import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS sections (
    id INTEGER PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT
);

CREATE TABLE IF NOT EXISTS domains (
    id TEXT PRIMARY KEY,
    section_id INTEGER NOT NULL REFERENCES sections(id),
    name TEXT NOT NULL,
    weight TEXT NOT NULL,
    description TEXT,
    position INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS flashcards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    section_id INTEGER NOT NULL,
    domain_id TEXT NOT NULL,
    front TEXT NOT NULL,
    back TEXT NOT NULL,
    difficulty TEXT DEFAULT 'medium',
    ease_factor REAL DEFAULT 2.5,
    interval_days INTEGER DEFAULT 1,
    next_review_date TEXT,
    times_reviewed INTEGER DEFAULT 0,
    mastery_level INTEGER DEFAULT 0,
    is_custom INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS flashcard_reviews (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    flashcard_id INTEGER NOT NULL REFERENCES flashcards(id),
    quality INTEGER NOT NULL,
    reviewed_at TEXT
);

CREATE TABLE IF NOT EXISTS questions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    section_id INTEGER NOT NULL,
    domain_id TEXT NOT NULL,
    subtopic_id TEXT,
    question_type TEXT DEFAULT 'single',
    question_text TEXT NOT NULL,
    option_a TEXT NOT NULL,
    option_b TEXT NOT NULL,
    option_c TEXT NOT NULL,
    option_d TEXT NOT NULL,
    option_e TEXT,
    correct_answer TEXT NOT NULL,
    explanation TEXT,
    difficulty TEXT DEFAULT 'medium',
    tags TEXT DEFAULT '[]',
    pdf_reference TEXT,
    source TEXT DEFAULT 'seeded'
);

CREATE TABLE IF NOT EXISTS question_attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    question_id INTEGER NOT NULL REFERENCES questions(id),
    selected_answer TEXT NOT NULL,
    is_correct INTEGER NOT NULL,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS mock_exams (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    description TEXT,
    exam_type TEXT NOT NULL,
    question_ids TEXT NOT NULL,
    question_count INTEGER NOT NULL,
    time_limit_minutes INTEGER NOT NULL,
    passing_score INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS mock_exam_attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    mock_exam_id TEXT NOT NULL REFERENCES mock_exams(id),
    score INTEGER NOT NULL,
    time_spent_minutes INTEGER DEFAULT 0,
    answers TEXT DEFAULT '{}',
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS exam_answers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    mock_exam_id TEXT NOT NULL,
    question_index INTEGER NOT NULL,
    question_id INTEGER NOT NULL,
    answer TEXT NOT NULL,
    answered_at TEXT,
    UNIQUE(session_id, question_index)
);

CREATE TABLE IF NOT EXISTS user_progress (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    section_id INTEGER NOT NULL,
    domain_id TEXT NOT NULL,
    correct INTEGER DEFAULT 0,
    incorrect INTEGER DEFAULT 0,
    UNIQUE(user_id, section_id, domain_id)
);

CREATE TABLE IF NOT EXISTS gamification_state (
    user_id TEXT PRIMARY KEY,
    xp INTEGER DEFAULT 0,
    level INTEGER DEFAULT 1,
    streak_days INTEGER DEFAULT 0,
    longest_streak INTEGER DEFAULT 0,
    last_study_date TEXT,
    total_study_minutes INTEGER DEFAULT 0,
    questions_answered INTEGER DEFAULT 0,
    questions_correct INTEGER DEFAULT 0,
    mocks_completed INTEGER DEFAULT 0,
    flashcards_reviewed INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS achievements (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    category TEXT,
    condition_type TEXT NOT NULL,
    condition_value INTEGER NOT NULL,
    xp_reward INTEGER DEFAULT 0,
    rarity TEXT DEFAULT 'common'
);

CREATE TABLE IF NOT EXISTS user_achievements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    achievement_id TEXT NOT NULL REFERENCES achievements(id),
    unlocked_at TEXT,
    UNIQUE(user_id, achievement_id)
);

CREATE TABLE IF NOT EXISTS study_sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    activity TEXT NOT NULL,
    minutes INTEGER NOT NULL,
    study_date TEXT NOT NULL,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT,
    UNIQUE(user_id, key)
);

CREATE TABLE IF NOT EXISTS study_content (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT NOT NULL,
    section_id INTEGER,
    domain_id TEXT,
    content_text TEXT,
    imported_at TEXT
);

CREATE TABLE IF NOT EXISTS cases (
    id TEXT PRIMARY KEY,
    section_id INTEGER,
    domain_id TEXT,
    title TEXT NOT NULL,
    scenario TEXT NOT NULL,
    industry TEXT,
    fraud_type TEXT,
    difficulty TEXT DEFAULT 'medium',
    questions TEXT NOT NULL DEFAULT '[]',
    learning_points TEXT DEFAULT '[]',
    red_flags TEXT DEFAULT '[]',
    tags TEXT DEFAULT '[]',
    estimated_minutes INTEGER DEFAULT 30
);

CREATE TABLE IF NOT EXISTS case_attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    case_id TEXT NOT NULL REFERENCES cases(id),
    correct INTEGER NOT NULL,
    total INTEGER NOT NULL,
    score INTEGER NOT NULL,
    xp_earned INTEGER DEFAULT 0,
    answers TEXT DEFAULT '[]',
    created_at TEXT
);
"""

TABLES = frozenset({
    "sections", "domains", "flashcards", "flashcard_reviews", "questions",
    "question_attempts", "mock_exams", "mock_exam_attempts", "exam_answers",
    "user_progress", "gamification_state", "achievements", "user_achievements",
    "study_sessions", "user_settings", "study_content", "cases", "case_attempts",
})


class StoreError(Exception):
    """A read or write against the store failed."""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def _check_table(table: str) -> None:
    if table not in TABLES:
        raise ValueError(f"Unknown collection: {table}")


def _where_clause(where: dict | None) -> tuple[str, list]:
    if not where:
        return "", []
    parts, params = [], []
    for column, value in where.items():
        if value is None:
            parts.append(f"{column} IS NULL")
        elif isinstance(value, (list, tuple, set)):
            values = list(value)
            if not values:
                parts.append("0")
                continue
            parts.append(f"{column} IN ({', '.join('?' for _ in values)})")
            params.extend(values)
        else:
            parts.append(f"{column} = ?")
            params.append(value)
    return " WHERE " + " AND ".join(parts), params


def run_write(db_path: str, sql: str, params: tuple | list = ()) -> int:
    """Execute a single write statement and return the affected row count."""
    conn = get_connection(db_path)
    try:
        cursor = conn.execute(sql, params)
        conn.commit()
        return cursor.rowcount
    except sqlite3.Error as e:
        logger.exception("Store write failed: %s", sql.split("\n")[0])
        raise StoreError(str(e)) from e
    finally:
        conn.close()


def run_query(db_path: str, sql: str, params: tuple | list = ()) -> list[dict]:
    """Execute a read and return rows as plain dicts."""
    conn = get_connection(db_path)
    try:
        return [dict(r) for r in conn.execute(sql, params).fetchall()]
    except sqlite3.Error as e:
        logger.exception("Store read failed: %s", sql.split("\n")[0])
        raise StoreError(str(e)) from e
    finally:
        conn.close()


def select_rows(
    db_path: str,
    table: str,
    where: dict | None = None,
    order_by: str | None = None,
    limit: int | None = None,
) -> list[dict]:
    _check_table(table)
    clause, params = _where_clause(where)
    sql = f"SELECT * FROM {table}{clause}"
    if order_by:
        sql += f" ORDER BY {order_by}"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)
    return run_query(db_path, sql, params)


def insert_rows(db_path: str, table: str, rows: list[dict]) -> int:
    """Insert all rows in one transaction. Either every row lands or none do."""
    _check_table(table)
    if not rows:
        return 0
    columns = list(rows[0].keys())
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})"
    conn = get_connection(db_path)
    try:
        with conn:
            conn.executemany(sql, [tuple(r.get(c) for c in columns) for r in rows])
    except sqlite3.Error as e:
        logger.exception("Insert into %s failed (%d rows)", table, len(rows))
        raise StoreError(str(e)) from e
    finally:
        conn.close()
    return len(rows)


def insert_row(db_path: str, table: str, row: dict) -> int:
    """Insert one row and return its new id."""
    _check_table(table)
    columns = list(row.keys())
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})"
    conn = get_connection(db_path)
    try:
        with conn:
            cursor = conn.execute(sql, [row[c] for c in columns])
        return cursor.lastrowid
    except sqlite3.Error as e:
        logger.exception("Insert into %s failed", table)
        raise StoreError(str(e)) from e
    finally:
        conn.close()


def update_rows(db_path: str, table: str, values: dict, where: dict) -> int:
    _check_table(table)
    assignments = ", ".join(f"{c} = ?" for c in values)
    clause, params = _where_clause(where)
    return run_write(db_path, f"UPDATE {table} SET {assignments}{clause}", list(values.values()) + params)


def upsert_row(db_path: str, table: str, row: dict, conflict: tuple[str, ...]) -> int:
    """Insert a row, or overwrite the non-key columns when the conflict target exists."""
    _check_table(table)
    columns = list(row.keys())
    updates = [c for c in columns if c not in conflict]
    sql = (
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)}) "
        f"ON CONFLICT({', '.join(conflict)}) DO "
    )
    if updates:
        sql += "UPDATE SET " + ", ".join(f"{c} = excluded.{c}" for c in updates)
    else:
        sql += "NOTHING"
    return run_write(db_path, sql, [row[c] for c in columns])


def delete_rows(db_path: str, table: str, where: dict) -> int:
    _check_table(table)
    clause, params = _where_clause(where)
    return run_write(db_path, f"DELETE FROM {table}{clause}", params)
