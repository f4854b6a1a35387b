"""
Shared Test Fixtures and Configuration

Fixtures used across unit and integration tests: flashcard factories, a seeded
random source, a temporary SQLite database and a FastAPI test client.
"""

import random
import sys
from pathlib import Path
from typing import AsyncIterator, Iterator

import aiosqlite
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from flashdeck import create_app  # noqa: E402
from flashdeck.config import settings  # noqa: E402
from flashdeck.db.sqlite import init_sqlite  # noqa: E402
from flashdeck.models.flashcard import Flashcard  # noqa: E402


# ============================================================================
# Flashcard Factories
# ============================================================================


def make_cards(count: int, category_id: str = "cat-1") -> list[Flashcard]:
    """Build ``count`` distinct, valid flashcards."""
    return [
        Flashcard(
            id=f"card-{i}",
            front=f"Front {i}",
            back=f"Back {i}",
            category_id=category_id,
        )
        for i in range(count)
    ]


@pytest.fixture
def six_cards() -> list[Flashcard]:
    """Six valid flashcards in one category."""
    return make_cards(6)


@pytest.fixture
def seeded_rng() -> random.Random:
    """Deterministic random source for quiz generation."""
    return random.Random(1234)


# ============================================================================
# Database
# ============================================================================


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the application at a throwaway data directory."""
    monkeypatch.setattr(settings, "data_dir", tmp_path)
    return tmp_path


@pytest_asyncio.fixture
async def db(data_dir: Path) -> AsyncIterator[aiosqlite.Connection]:
    """Open a connection to a freshly initialised database."""
    await init_sqlite(data_dir)
    async with aiosqlite.connect(data_dir / settings.sqlite_filename) as conn:
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys=ON")
        yield conn


# ============================================================================
# API Client
# ============================================================================


@pytest.fixture
def test_client(data_dir: Path) -> Iterator[TestClient]:
    """Test client running the app lifespan against a temporary database."""
    with TestClient(create_app()) as client:
        yield client


@pytest.fixture
def seeded_client(test_client: TestClient) -> TestClient:
    """Test client whose collection holds one unlocked and one locked category."""
    response = test_client.put(
        "/collections",
        json={
            "categories": [
                {"id": "cat-1", "name": "Spanish", "locked": False, "created_at": "2024-01-01T00:00:00.000Z"},
                {"id": "cat-2", "name": "Verbs", "locked": False, "created_at": "2024-01-02T00:00:00.000Z", "parent_id": "cat-1"},
                {"id": "cat-locked", "name": "Archive", "locked": True, "created_at": "2024-01-03T00:00:00.000Z"},
            ],
            "flashcards": [
                {"id": f"card-{i}", "front": f"Front {i}", "back": f"Back {i}", "category_id": "cat-1"}
                for i in range(6)
            ]
            + [{"id": "card-locked", "front": "Old", "back": "Viejo", "category_id": "cat-locked"}],
        },
    )
    assert response.status_code == 200
    return test_client
