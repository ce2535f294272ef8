import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Generator

import pytest

from recallcore.db import RecallDatabase
from recallcore.models import Card, CardState
from recallcore.parameters import ParameterSet


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Run each test with the working directory set to its own temporary directory,
    so no stray .env or database file from the repository is picked up.
    """
    monkeypatch.chdir(tmp_path)
    yield


# --- Parameter Fixtures ---
@pytest.fixture
def default_params() -> ParameterSet:
    """The documented default parameter set."""
    return ParameterSet()


# --- Database Fixtures ---
@pytest.fixture
def db_path_memory() -> str:
    return ":memory:"


@pytest.fixture
def db_path_file(tmp_path: Path) -> Path:
    """
    Provide the filesystem path for a temporary test database file.

    Returns:
        Path: Path to the file named "test_recall.db" inside `tmp_path`.
    """
    return tmp_path / "test_recall.db"


@pytest.fixture(params=["memory", "file"])
def db_manager(
    request, db_path_memory: str, db_path_file: Path
) -> Generator[RecallDatabase, None, None]:
    """
    Provide a RecallDatabase instance for tests, either in-memory or file-backed, and ensure proper teardown.
    """
    if request.param == "memory":
        db_man = RecallDatabase(db_path_memory)
    else:
        db_man = RecallDatabase(db_path_file)
    try:
        yield db_man
    finally:
        db_man.close_connection()
        if request.param == "file" and db_path_file.exists():
            try:
                db_path_file.unlink()
            except OSError as e:
                logging.warning(
                    f"Error removing temporary DB file in test fixture teardown: {e}"
                )


@pytest.fixture
def initialized_db_manager(db_manager: RecallDatabase) -> RecallDatabase:
    """Ensure the provided RecallDatabase has its schema created and return it."""
    db_manager.initialize_schema()
    return db_manager


@pytest.fixture
def in_memory_db() -> Generator[RecallDatabase, None, None]:
    db = RecallDatabase(":memory:")
    db.initialize_schema()
    try:
        yield db
    finally:
        db.close_connection()


# --- Card Fixtures ---
@pytest.fixture
def new_card() -> Card:
    """A fresh card for item "problem-1", due on 2024-01-01."""
    return Card(
        uuid="11111111-1111-1111-1111-111111111111",
        item_id="problem-1",
        due=date(2024, 1, 1),
        created_at=datetime(2023, 12, 31, 10, 0, tzinfo=timezone.utc),
        updated_at=datetime(2023, 12, 31, 10, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def review_card() -> Card:
    """A card in Review with 30 days of stability, last reviewed on 2024-01-01."""
    return Card(
        uuid="22222222-2222-2222-2222-222222222222",
        item_id="problem-2",
        due=date(2024, 1, 31),
        state=CardState.Review,
        stability=30.0,
        difficulty=5.0,
        reps=3,
        lapses=0,
        last_review=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        scheduled_days=30,
        created_at=datetime(2023, 12, 1, 10, 0, tzinfo=timezone.utc),
        updated_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
    )
