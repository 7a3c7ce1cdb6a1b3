"""Core data models for Xpense.

This module defines the dataclasses shared by the importer, the backup codec,
the ledger, and the CLI. It has zero internal imports -- everything depends on
it, but it depends on nothing within the package.

Records are converted to and from the JSON shape used on disk (camelCase keys
such as ``categoryId`` and ``exportedAt``) with ``to_dict``/``from_dict``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

UNKNOWN_CATEGORY_NAME = "Unknown"
UNKNOWN_CATEGORY_COLOR = "#cbd5e1"

MATCH_EXACT_FIRST = "exact-first"
MATCH_IN_ORDER = "in-order"
MATCH_ORDERS = (MATCH_EXACT_FIRST, MATCH_IN_ORDER)

DEFAULT_DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%d-%b-%Y",
]


def generate_id() -> str:
    """Return a new opaque record identifier.

    A random UUID4 hex string, so that many records created within the same
    instant (a bulk CSV import, for instance) never collide.
    """
    return uuid.uuid4().hex


@dataclass
class Category:
    """A user-defined expense category.

    Attributes:
        id: Stable opaque identifier, assigned once and never reused.
        name: Display label, also the key for fuzzy matching during CSV
            import.  Non-empty after trimming.
        color: Display color hint, e.g. ``"#f87171"``.
        icon: Display icon hint, usually a single emoji.
    """

    id: str
    name: str
    color: str
    icon: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color, "icon": self.icon}

    @classmethod
    def from_dict(cls, raw: dict) -> Category:
        return cls(
            id=raw.get("id", ""),
            name=raw.get("name", ""),
            color=raw.get("color", ""),
            icon=raw.get("icon", ""),
        )


@dataclass
class ExpenseDraft:
    """An expense that has not been given an identity yet.

    The CSV importer produces drafts; the ledger assigns the ``id`` when it
    commits them.

    Attributes:
        amount: Positive amount in the user's (single, implicit) currency.
        category_id: Foreign key into the category set.
        description: Free text label.
        date: Calendar date as ``YYYY-MM-DD``.
    """

    amount: float
    category_id: str
    description: str
    date: str


@dataclass
class Expense:
    """A recorded expense.

    Attributes:
        id: Opaque identifier assigned by the ledger.
        amount: Positive amount in the user's currency.
        category_id: Id of the category this expense belongs to.  May dangle
            if the category was removed after the fact.
        description: Free text label.
        date: Calendar date as ``YYYY-MM-DD``.
    """

    id: str
    amount: float
    category_id: str
    description: str
    date: str

    @classmethod
    def from_draft(cls, draft: ExpenseDraft, expense_id: str | None = None) -> Expense:
        return cls(
            id=expense_id or generate_id(),
            amount=draft.amount,
            category_id=draft.category_id,
            description=draft.description,
            date=draft.date,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "categoryId": self.category_id,
            "description": self.description,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, raw: dict) -> Expense:
        return cls(
            id=raw.get("id", ""),
            amount=raw.get("amount", 0),
            category_id=raw.get("categoryId", ""),
            description=raw.get("description", ""),
            date=raw.get("date", ""),
        )


@dataclass
class CsvImportResult:
    """Outcome counters for one CSV import call.

    Attributes:
        imported: Number of rows that became expense drafts.
        skipped: Number of data rows rejected by validation.
        errors: Structural problems (missing header columns, too few
            lines).  Individual row rejections are never listed here.
    """

    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class BackupDocument:
    """The full application state as written to a backup file.

    Attributes:
        expenses: Every recorded expense, in collection order.
        categories: Every category, in collection order.
        version: Backup format version, currently ``"1.0"``.
        exported_at: ISO-8601 timestamp of the export.
    """

    expenses: list[Expense] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    version: str = "1.0"
    exported_at: str = ""

    def to_dict(self) -> dict:
        return {
            "expenses": [e.to_dict() for e in self.expenses],
            "categories": [c.to_dict() for c in self.categories],
            "version": self.version,
            "exportedAt": self.exported_at,
        }


@dataclass
class CategorySpend:
    """Total spend for one category within a period."""

    category_id: str
    name: str
    color: str
    total: float


@dataclass
class PeriodSummary:
    """Aggregate spend for a period.

    Attributes:
        label: Human-readable period, e.g. ``"Mar 2024"`` or ``"All time"``.
        total: Sum of all expense amounts in the period.
        count: Number of expenses in the period.
        by_category: Per-category totals, largest first.
    """

    label: str
    total: float = 0.0
    count: int = 0
    by_category: list[CategorySpend] = field(default_factory=list)


@dataclass
class AppConfig:
    """Top-level application configuration loaded from config.toml.

    Attributes:
        data_dir: Directory holding the persisted collections.
            Default: "data".
        backup_dir: Directory that ``export`` writes backups into.
            Default: "backups".
        date_formats: ``strptime`` patterns accepted for CSV dates, tried
            in order.  The first pattern that parses wins, so the order
            decides how ambiguous dates such as ``03/04/2024`` are read.
        category_match: Tie-break order for category matching during CSV
            import: ``"exact-first"`` or ``"in-order"``.
        strict_backup: When True, backup restore validates the shape of
            every expense and category before accepting the file.
    """

    data_dir: str = "data"
    backup_dir: str = "backups"
    date_formats: list[str] = field(default_factory=lambda: list(DEFAULT_DATE_FORMATS))
    category_match: str = MATCH_EXACT_FIRST
    strict_backup: bool = False
