"""Shared pytest fixtures for Xpense tests.

Provides reusable fixtures for:
- default_categories: The built-in category taxonomy.
- memory_backend / stores / ledger: An in-memory key/value store and a
  ledger built on top of it, so ledger tests never touch the filesystem.
- sample_expenses: A handful of realistic Expense objects spanning two
  months and several categories (including a dangling category id).
- tmp_project_dir: A temporary directory initialized with ``config.toml``,
  ``categories.toml``, and the data/backups directories.
- Convenience fixtures for fixture file paths.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from xpense.config import DEFAULT_CATEGORIES, initialize
from xpense.ledger import Ledger
from xpense.models import Category, Expense
from xpense.store import CATEGORIES_KEY, EXPENSES_KEY, CollectionStore

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the tests/fixtures/ directory."""
    return FIXTURES_DIR


@pytest.fixture
def bank_export_csv() -> Path:
    """Path to a messy bank export with quoted amounts and noise rows."""
    return FIXTURES_DIR / "bank_export.csv"


@pytest.fixture
def backup_json() -> Path:
    """Path to a valid backup document."""
    return FIXTURES_DIR / "backup_valid.json"


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------


class MemoryStore:
    """Dict-backed key/value store with a write log."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self.writes: list[str] = []

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self.writes.append(key)


class RecordingConfirmer:
    """Confirmer that returns a fixed answer and records every prompt."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def confirm(self, message: str) -> bool:
        self.prompts.append(message)
        return self.answer


class RecordingNotifier:
    """Notifier that records every message."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture
def default_categories() -> list[Category]:
    """A fresh copy of the built-in categories."""
    return [Category(c.id, c.name, c.color, c.icon) for c in DEFAULT_CATEGORIES]


@pytest.fixture
def memory_backend() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def stores(memory_backend: MemoryStore):
    """``(expense_store, category_store)`` backed by *memory_backend*."""
    return (
        CollectionStore(memory_backend, EXPENSES_KEY, Expense),
        CollectionStore(memory_backend, CATEGORIES_KEY, Category),
    )


@pytest.fixture
def sample_expenses() -> list[Expense]:
    """Five expenses across March and April 2024, newest first.

    The last one references category id ``"99"`` which does not exist.
    """
    return [
        Expense(id="e5", amount=40.0, category_id="99", description="Old gym", date="2024-04-02"),
        Expense(id="e4", amount=1200.5, category_id="5", description="Rent", date="2024-04-01"),
        Expense(id="e3", amount=15.25, category_id="2", description="Bus pass", date="2024-03-20"),
        Expense(id="e2", amount=250.0, category_id="1", description="Dinner", date="2024-03-02"),
        Expense(id="e1", amount=30.0, category_id="1", description="Lunch", date="2024-03-01"),
    ]


@pytest.fixture
def ledger(stores, default_categories) -> Ledger:
    """An empty ledger with the default categories."""
    expense_store, category_store = stores
    return Ledger.load(expense_store, category_store, default_categories)


@pytest.fixture
def populated_ledger(stores, default_categories, sample_expenses) -> Ledger:
    """A ledger holding *sample_expenses* and the default categories."""
    expense_store, category_store = stores
    expense_store.save(sample_expenses)
    category_store.save(default_categories)
    return Ledger.load(expense_store, category_store, default_categories)


# ---------------------------------------------------------------------------
# tmp_project_dir -- temp directory with full project structure
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Create a temporary directory with the standard project structure.

    Contains the default ``config.toml`` and ``categories.toml`` plus empty
    ``data/`` and ``backups/`` directories.
    """
    project = tmp_path / "xpense-project"
    initialize(project)
    return project


# ---------------------------------------------------------------------------
# User interaction doubles
# ---------------------------------------------------------------------------


@pytest.fixture
def confirm_yes() -> RecordingConfirmer:
    return RecordingConfirmer(True)


@pytest.fixture
def confirm_no() -> RecordingConfirmer:
    return RecordingConfirmer(False)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
