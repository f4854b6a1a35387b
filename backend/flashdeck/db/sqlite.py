import logging
import math
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from flashdeck.config import settings
from flashdeck.models.flashcard import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    CollectionState,
    Flashcard,
    FlashcardCreate,
    FlashcardUpdate,
)
from flashdeck.models.quiz import ProgressStats, QuizAttempt, QuizDailyStat

logger = logging.getLogger(__name__)

_db_path: Path | None = None

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS categories (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    locked      INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL,
    parent_id   TEXT
);

CREATE TABLE IF NOT EXISTS flashcards (
    id          TEXT PRIMARY KEY,
    front       TEXT NOT NULL,
    back        TEXT NOT NULL,
    learned     INTEGER NOT NULL DEFAULT 0,
    category_id TEXT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    img         TEXT
);
CREATE INDEX IF NOT EXISTS idx_flashcards_category ON flashcards(category_id);

CREATE TABLE IF NOT EXISTS quiz_attempts (
    id              TEXT PRIMARY KEY,
    total_questions INTEGER NOT NULL,
    correct_answers INTEGER NOT NULL,
    created_at      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_quiz_attempts_time ON quiz_attempts(created_at);

CREATE TABLE IF NOT EXISTS settings (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""


class LockedCategoryError(Exception):
    """Raised when writing to a flashcard whose category (current or target) is locked."""


async def init_sqlite(data_dir: Path) -> None:
    global _db_path
    _db_path = data_dir / settings.sqlite_filename
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON")
        yield db


def format_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a Z suffix; sorts lexically."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


# --- Categories ---


def _row_to_category(row: aiosqlite.Row) -> Category:
    d = dict(row)
    d["locked"] = bool(d["locked"])
    return Category(**d)


async def list_categories(db: aiosqlite.Connection) -> list[Category]:
    cursor = await db.execute(
        "SELECT id, name, locked, created_at, parent_id FROM categories ORDER BY rowid ASC"
    )
    rows = await cursor.fetchall()
    return [_row_to_category(r) for r in rows]


async def get_category(db: aiosqlite.Connection, category_id: str) -> Category | None:
    cursor = await db.execute(
        "SELECT id, name, locked, created_at, parent_id FROM categories WHERE id = ?",
        (category_id,),
    )
    row = await cursor.fetchone()
    return _row_to_category(row) if row else None


async def create_category(db: aiosqlite.Connection, body: CategoryCreate) -> Category:
    name = body.name.strip()
    if not name:
        raise ValueError("Category name must not be empty")

    # An unknown parent makes this a root category
    parent_id = None
    if body.parent_id and await get_category(db, body.parent_id):
        parent_id = body.parent_id

    category_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO categories (id, name, locked, created_at, parent_id)
           VALUES (?, ?, ?, ?, ?)""",
        (category_id, name, int(body.locked), _now(), parent_id),
    )
    await db.commit()
    return await get_category(db, category_id)  # type: ignore[return-value]


async def update_category(
    db: aiosqlite.Connection, category_id: str, body: CategoryUpdate
) -> Category | None:
    category = await get_category(db, category_id)
    if not category:
        return None

    fields: dict = {}
    if body.name is not None and body.name.strip():
        fields["name"] = body.name.strip()
    if body.locked is not None:
        fields["locked"] = int(body.locked)
    if not fields:
        return category

    set_clause = ", ".join(f"{k} = ?" for k in fields)
    await db.execute(
        f"UPDATE categories SET {set_clause} WHERE id = ?",  # noqa: S608
        list(fields.values()) + [category_id],
    )
    await db.commit()
    return await get_category(db, category_id)


async def delete_category(db: aiosqlite.Connection, category_id: str) -> bool:
    """Delete a category, moving its cards and children to a fallback category.

    The fallback is the first remaining unlocked category, else the first
    remaining one. Raises ValueError when this is the last category.
    """
    categories = await list_categories(db)
    if not any(c.id == category_id for c in categories):
        return False

    remaining = [c for c in categories if c.id != category_id]
    if not remaining:
        raise ValueError("Cannot delete the last category")

    fallback = next((c for c in remaining if not c.locked), remaining[0])
    await db.execute(
        "UPDATE flashcards SET category_id = ? WHERE category_id = ?",
        (fallback.id, category_id),
    )
    await db.execute(
        "UPDATE categories SET parent_id = CASE WHEN id = ? THEN NULL ELSE ? END "
        "WHERE parent_id = ?",
        (fallback.id, fallback.id, category_id),
    )
    await db.execute("DELETE FROM categories WHERE id = ?", (category_id,))
    await db.commit()
    logger.info("Deleted category %s; cards moved to %s", category_id, fallback.id)
    return True


# --- Flashcards ---


def _row_to_flashcard(row: aiosqlite.Row) -> Flashcard:
    d = dict(row)
    d["learned"] = bool(d["learned"])
    return Flashcard(**d)


async def list_flashcards(
    db: aiosqlite.Connection,
    category_id: str | None = None,
    learned: bool | None = None,
) -> list[Flashcard]:
    clauses: list[str] = []
    params: list = []
    if category_id is not None:
        clauses.append("category_id = ?")
        params.append(category_id)
    if learned is not None:
        clauses.append("learned = ?")
        params.append(int(learned))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    cursor = await db.execute(
        f"SELECT id, front, back, learned, category_id, img FROM flashcards {where} ORDER BY rowid ASC",  # noqa: S608
        params,
    )
    rows = await cursor.fetchall()
    return [_row_to_flashcard(r) for r in rows]


async def get_flashcard(db: aiosqlite.Connection, card_id: str) -> Flashcard | None:
    cursor = await db.execute(
        "SELECT id, front, back, learned, category_id, img FROM flashcards WHERE id = ?",
        (card_id,),
    )
    row = await cursor.fetchone()
    return _row_to_flashcard(row) if row else None


async def _writable_category(db: aiosqlite.Connection, category_id: str) -> Category | None:
    category = await get_category(db, category_id)
    if category and category.locked:
        raise LockedCategoryError(f"Category {category_id} is locked")
    return category


async def create_flashcard(
    db: aiosqlite.Connection, body: FlashcardCreate
) -> Flashcard | None:
    """Returns None when the category does not exist."""
    if not await _writable_category(db, body.category_id):
        return None

    card_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO flashcards (id, front, back, learned, category_id, img)
           VALUES (?, ?, ?, 0, ?, ?)""",
        (card_id, body.front, body.back, body.category_id, body.img),
    )
    await db.commit()
    return await get_flashcard(db, card_id)


async def update_flashcard(
    db: aiosqlite.Connection, card_id: str, body: FlashcardUpdate
) -> Flashcard | None:
    card = await get_flashcard(db, card_id)
    if not card:
        return None
    await _writable_category(db, card.category_id)

    fields = body.model_dump(exclude_none=True)
    if "category_id" in fields and fields["category_id"] != card.category_id:
        if not await _writable_category(db, fields["category_id"]):
            raise ValueError(f"Category {fields['category_id']} not found")
    if not fields:
        return card

    set_clause = ", ".join(f"{k} = ?" for k in fields)
    await db.execute(
        f"UPDATE flashcards SET {set_clause} WHERE id = ?",  # noqa: S608
        list(fields.values()) + [card_id],
    )
    await db.commit()
    return await get_flashcard(db, card_id)


async def delete_flashcard(db: aiosqlite.Connection, card_id: str) -> bool:
    card = await get_flashcard(db, card_id)
    if not card:
        return False
    await _writable_category(db, card.category_id)
    cursor = await db.execute("DELETE FROM flashcards WHERE id = ?", (card_id,))
    await db.commit()
    return (cursor.rowcount or 0) > 0


async def set_flashcard_learned(
    db: aiosqlite.Connection, card_id: str, learned: bool
) -> Flashcard | None:
    card = await get_flashcard(db, card_id)
    if not card:
        return None
    await _writable_category(db, card.category_id)
    await db.execute(
        "UPDATE flashcards SET learned = ? WHERE id = ?", (int(learned), card_id)
    )
    await db.commit()
    return await get_flashcard(db, card_id)


# --- Whole-collection mirror ---


async def get_collections(db: aiosqlite.Connection) -> CollectionState:
    return CollectionState(
        categories=await list_categories(db),
        flashcards=await list_flashcards(db),
    )


async def replace_collections(
    db: aiosqlite.Connection,
    categories: list[Category],
    flashcards: list[Flashcard],
) -> None:
    """Replace every category and flashcard in one transaction.

    Raises ValueError (after rolling back) when a card references a category
    that is not part of the payload.
    """
    try:
        await db.execute("DELETE FROM flashcards")
        await db.execute("DELETE FROM categories")
        await db.executemany(
            """INSERT INTO categories (id, name, locked, created_at, parent_id)
               VALUES (?, ?, ?, ?, ?)""",
            [(c.id, c.name, int(c.locked), c.created_at, c.parent_id) for c in categories],
        )
        await db.executemany(
            """INSERT INTO flashcards (id, front, back, learned, category_id, img)
               VALUES (?, ?, ?, ?, ?, ?)""",
            [
                (f.id, f.front, f.back, int(f.learned), f.category_id, f.img)
                for f in flashcards
            ],
        )
    except aiosqlite.IntegrityError as e:
        await db.rollback()
        raise ValueError(f"Invalid collection payload: {e}") from e
    await db.commit()


# --- Quiz attempts ---


async def record_quiz_attempt(
    db: aiosqlite.Connection,
    total_questions: int,
    correct_answers: int,
    created_at: datetime | None = None,
) -> QuizAttempt:
    if total_questions <= 0:
        raise ValueError("total_questions must be a positive integer")
    if correct_answers < 0:
        raise ValueError("correct_answers must be a non-negative integer")
    if correct_answers > total_questions:
        raise ValueError("correct_answers cannot exceed total_questions")

    attempt = QuizAttempt(
        id=str(uuid.uuid4()),
        total_questions=int(total_questions),
        correct_answers=int(correct_answers),
        created_at=format_timestamp(created_at or datetime.now(timezone.utc)),
    )
    await db.execute(
        """INSERT INTO quiz_attempts (id, total_questions, correct_answers, created_at)
           VALUES (?, ?, ?, ?)""",
        (attempt.id, attempt.total_questions, attempt.correct_answers, attempt.created_at),
    )
    await db.commit()
    return attempt


def history_start(days: int, now: datetime | None = None) -> datetime:
    """UTC midnight ``days - 1`` days before ``now``."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return today - timedelta(days=days - 1)


async def get_quiz_attempt_summary(
    db: aiosqlite.Connection, days: int, now: datetime | None = None
) -> list[QuizDailyStat]:
    """Per-day totals for the last ``days`` UTC days, only for days with attempts."""
    if days <= 0:
        raise ValueError("days must be a positive number")

    start = history_start(days, now)
    cursor = await db.execute(
        """SELECT date(created_at) AS date,
                  COUNT(*) AS attempt_count,
                  SUM(total_questions) AS total_questions,
                  SUM(correct_answers) AS correct_answers
           FROM quiz_attempts
           WHERE created_at >= ?
           GROUP BY date
           ORDER BY date ASC""",
        (format_timestamp(start),),
    )
    rows = await cursor.fetchall()
    return [
        QuizDailyStat(
            date=row["date"],
            attempt_count=row["attempt_count"] or 0,
            total_questions=row["total_questions"] or 0,
            correct_answers=row["correct_answers"] or 0,
        )
        for row in rows
    ]


# --- Progress ---


def _percent(part: int, total: int) -> int:
    return int(math.floor(part * 100 / total + 0.5)) if total else 0


async def get_progress_stats(db: aiosqlite.Connection) -> ProgressStats:
    cursor = await db.execute(
        "SELECT COUNT(*), COALESCE(SUM(learned), 0) FROM flashcards"
    )
    row = await cursor.fetchone()
    total, learned = int(row[0]), int(row[1])
    unlearned = total - learned
    return ProgressStats(
        total=total,
        learned=learned,
        unlearned=unlearned,
        learned_percentage=_percent(learned, total),
        unlearned_percentage=_percent(unlearned, total),
    )


# --- Settings key-value store ---


async def get_setting(db: aiosqlite.Connection, key: str) -> str | None:
    cursor = await db.execute("SELECT value FROM settings WHERE key = ?", (key,))
    row = await cursor.fetchone()
    return row[0] if row else None


async def set_setting(db: aiosqlite.Connection, key: str, value: str) -> None:
    await db.execute(
        "INSERT INTO settings(key, value, updated_at) VALUES (?, ?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
        (key, value, _now()),
    )
    await db.commit()
