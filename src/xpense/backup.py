"""Backup codec: full-state JSON export and import.

A backup document carries every expense and every category plus a format
version and an export timestamp::

    {
        "expenses": [{"id": "...", "amount": 250, "categoryId": "1",
                      "description": "...", "date": "2024-03-01"}, ...],
        "categories": [{"id": "1", "name": "Food & Dining",
                        "color": "#f87171", "icon": "..."}, ...],
        "version": "1.0",
        "exportedAt": "2024-03-05T10:15:00.000Z"
    }

Import is all-or-nothing.  :func:`parse_backup` only produces a
:class:`~xpense.models.BackupDocument`; replacing the live collections (after
the user confirms) is the ledger's job.

By default import validation is lenient: the file must have ``expenses`` and
``categories`` fields holding lists of objects, and the values inside those
objects are not checked.  Strict mode additionally checks every element's
shape.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone

from xpense.models import BackupDocument, Category, Expense

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"
BACKUP_FILENAME_TEMPLATE = "xpense_backup_{date}.json"


class BackupFormatError(ValueError):
    """Raised when a parsed backup document does not have the expected shape."""


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def build_backup(
    expenses: list[Expense],
    categories: list[Category],
    now: datetime | None = None,
) -> BackupDocument:
    """Snapshot *expenses* and *categories* into a backup document.

    Args:
        expenses: The current expense collection.
        categories: The current category collection.
        now: Export time.  Defaults to the current UTC time.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return BackupDocument(
        expenses=list(expenses),
        categories=list(categories),
        version=BACKUP_VERSION,
        exported_at=_format_timestamp(now),
    )


def dump_backup(document: BackupDocument) -> str:
    """Serialize *document* as indented JSON text."""
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False)


def backup_filename(today: date | None = None) -> str:
    """Return the conventional backup file name for *today*.

    >>> backup_filename(date(2024, 3, 5))
    'xpense_backup_2024-03-05.json'
    """
    if today is None:
        today = datetime.now(timezone.utc).date()
    return BACKUP_FILENAME_TEMPLATE.format(date=today.isoformat())


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def parse_backup(text: str, strict: bool = False) -> BackupDocument:
    """Parse backup *text* into a :class:`~xpense.models.BackupDocument`.

    Each element is read with ``Expense.from_dict``/``Category.from_dict``:
    keys those records do not know are dropped, and missing keys take
    their defaults (empty strings, amount ``0``).  Outside strict mode the
    values themselves are not checked, but both fields must still be lists
    of objects.

    Args:
        text: Contents of a backup file.
        strict: When True, validate every expense and category element
            (types, positive amounts, ISO dates, non-blank names).

    Returns:
        The parsed document.

    Raises:
        json.JSONDecodeError: If *text* is not valid JSON.
        BackupFormatError: If the document lacks ``expenses`` or
            ``categories``, either field is not a list of objects, or (in
            strict mode) an element has the wrong shape.
    """
    data = json.loads(text)

    if not isinstance(data, dict):
        raise BackupFormatError("Backup document must be a JSON object")
    for key in ("expenses", "categories"):
        if key not in data or data[key] is None:
            raise BackupFormatError(f"Backup document is missing {key!r}")

    raw_expenses = data["expenses"]
    raw_categories = data["categories"]

    if strict:
        _validate_strict(raw_expenses, raw_categories)

    expenses = [Expense.from_dict(item) for item in _objects(raw_expenses, "expenses")]
    categories = [Category.from_dict(item) for item in _objects(raw_categories, "categories")]

    logger.debug(
        "Parsed backup version %s: %d expenses, %d categories",
        data.get("version", ""),
        len(expenses),
        len(categories),
    )

    return BackupDocument(
        expenses=expenses,
        categories=categories,
        version=str(data.get("version", "")),
        exported_at=str(data.get("exportedAt", "")),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _format_timestamp(moment: datetime) -> str:
    """Format *moment* as UTC ISO-8601 with milliseconds, e.g. ``...T10:15:00.000Z``."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _objects(items: object, key: str) -> list[dict]:
    """Return *items* as a list of dicts, or raise if any element is not one."""
    if not isinstance(items, list):
        raise BackupFormatError(f"Backup field {key!r} must be a list")
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise BackupFormatError(f"{key}[{position}] is not an object")
    return items


def _validate_strict(raw_expenses: object, raw_categories: object) -> None:
    """Check every element's shape; raise :class:`BackupFormatError` on the first problem."""
    if not isinstance(raw_expenses, list):
        raise BackupFormatError("'expenses' must be a list")
    if not isinstance(raw_categories, list):
        raise BackupFormatError("'categories' must be a list")

    for position, item in enumerate(raw_expenses):
        where = f"expenses[{position}]"
        if not isinstance(item, dict):
            raise BackupFormatError(f"{where} is not an object")
        for key in ("id", "categoryId", "description", "date"):
            if not isinstance(item.get(key), str):
                raise BackupFormatError(f"{where}.{key} must be a string")
        amount = item.get("amount")
        if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
            raise BackupFormatError(f"{where}.amount must be a positive number")
        try:
            parsed = date.fromisoformat(item["date"])
        except ValueError:
            raise BackupFormatError(f"{where}.date is not a YYYY-MM-DD date") from None
        if parsed.isoformat() != item["date"]:
            raise BackupFormatError(f"{where}.date is not a YYYY-MM-DD date")

    for position, item in enumerate(raw_categories):
        where = f"categories[{position}]"
        if not isinstance(item, dict):
            raise BackupFormatError(f"{where} is not an object")
        for key in ("id", "name"):
            if not isinstance(item.get(key), str):
                raise BackupFormatError(f"{where}.{key} must be a string")
        if not item["name"].strip():
            raise BackupFormatError(f"{where}.name must not be blank")
        for key in ("color", "icon"):
            if key not in item:
                raise BackupFormatError(f"{where}.{key} is missing")
