"""Application layer: the in-memory expense and category collections.

The :class:`Ledger` owns both collections, persists them through the
collection stores after every change, and is the only place that mutates
them.  The CSV importer and the backup codec return new values; the ledger
commits those values only once an operation has fully succeeded, so a failed
import never leaves the collections half-updated.

User interaction (yes/no prompts, notifications) is supplied by the caller
through the :class:`Confirmer` and :class:`Notifier` protocols.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Protocol

from xpense.backup import BackupFormatError, build_backup, dump_backup, parse_backup
from xpense.csv_import import import_csv
from xpense.models import (
    MATCH_EXACT_FIRST,
    UNKNOWN_CATEGORY_NAME,
    Category,
    CsvImportResult,
    Expense,
    ExpenseDraft,
    generate_id,
)
from xpense.store import CollectionStore

logger = logging.getLogger(__name__)

RESTORE_CONFIRM_PROMPT = (
    "Importing this data will replace your current expenses and categories. Proceed?"
)
RESTORE_SUCCESS_MESSAGE = "Data imported successfully!"
RESTORE_FAILURE_MESSAGE = "Failed to import data. Please ensure the file is a valid Xpense backup."
CLEAR_CONFIRM_PROMPT = "Are you sure you want to clear all data? This cannot be undone."


class Confirmer(Protocol):
    """Asks the user a yes/no question."""

    def confirm(self, message: str) -> bool:
        ...


class Notifier(Protocol):
    """Shows the user a message."""

    def notify(self, message: str) -> None:
        ...


class CategoryInUseError(Exception):
    """Raised when deleting a category that expenses still reference."""


class RestoreOutcome(str, Enum):
    """Result of a backup restore."""

    REPLACED = "replaced"
    DECLINED = "declined"
    INVALID = "invalid"


class Ledger:
    """The expense and category collections plus their persistence.

    Use :meth:`load` to build a ledger from the stores.  Expenses are kept
    newest-first: new and imported expenses are prepended.
    """

    def __init__(
        self,
        expense_store: CollectionStore[Expense],
        category_store: CollectionStore[Category],
        expenses: list[Expense],
        categories: list[Category],
    ) -> None:
        self.expense_store = expense_store
        self.category_store = category_store
        self.expenses = expenses
        self.categories = categories

    @classmethod
    def load(
        cls,
        expense_store: CollectionStore[Expense],
        category_store: CollectionStore[Category],
        default_categories: list[Category],
    ) -> Ledger:
        """Read both collections once.

        A missing expense collection starts empty; a missing category
        collection starts from *default_categories*.
        """
        expenses = expense_store.load()
        categories = category_store.load()
        if categories is None:
            logger.info("No saved categories, using %d defaults", len(default_categories))
            categories = list(default_categories)
        return cls(expense_store, category_store, expenses or [], categories)

    # -- Expenses -------------------------------------------------------------

    def add_expense(self, draft: ExpenseDraft) -> Expense:
        expense = Expense.from_draft(draft)
        self._commit_expenses([expense] + self.expenses)
        return expense

    def update_expense(self, expense_id: str, draft: ExpenseDraft) -> Expense:
        """Replace the expense *expense_id* with *draft*, keeping its id.

        Raises:
            KeyError: If no expense has that id.
        """
        index = self._expense_index(expense_id)
        updated = Expense.from_draft(draft, expense_id=expense_id)
        expenses = list(self.expenses)
        expenses[index] = updated
        self._commit_expenses(expenses)
        return updated

    def delete_expense(self, expense_id: str) -> None:
        """Raises ``KeyError`` if no expense has that id."""
        self._expense_index(expense_id)
        self._commit_expenses([e for e in self.expenses if e.id != expense_id])

    # -- Categories -----------------------------------------------------------

    def find_category(self, category_id: str) -> Category | None:
        for cat in self.categories:
            if cat.id == category_id:
                return cat
        return None

    def category_name(self, category_id: str) -> str:
        """Name of *category_id*, or ``"Unknown"`` for a dangling reference."""
        cat = self.find_category(category_id)
        return cat.name if cat is not None else UNKNOWN_CATEGORY_NAME

    def add_category(self, name: str, color: str, icon: str) -> Category:
        """Create a category with a fresh id.

        Raises:
            ValueError: If *name* is blank.
        """
        if not name.strip():
            raise ValueError("Category name must not be empty")
        category = Category(id=generate_id(), name=name.strip(), color=color, icon=icon)
        self._commit_categories(self.categories + [category])
        return category

    def update_category(
        self,
        category_id: str,
        name: str | None = None,
        color: str | None = None,
        icon: str | None = None,
    ) -> Category:
        """Replace any subset of a category's name, color and icon.

        Raises:
            KeyError: If no category has that id.
            ValueError: If *name* is given but blank.
        """
        current = self.find_category(category_id)
        if current is None:
            raise KeyError(category_id)
        if name is not None and not name.strip():
            raise ValueError("Category name must not be empty")

        updated = Category(
            id=current.id,
            name=name.strip() if name is not None else current.name,
            color=color if color is not None else current.color,
            icon=icon if icon is not None else current.icon,
        )
        self._commit_categories([updated if c.id == category_id else c for c in self.categories])
        return updated

    def delete_category(self, category_id: str) -> None:
        """Delete a category no expense refers to.

        Raises:
            KeyError: If no category has that id.
            CategoryInUseError: If any expense still references it.
        """
        if self.find_category(category_id) is None:
            raise KeyError(category_id)
        if any(e.category_id == category_id for e in self.expenses):
            raise CategoryInUseError(
                "Cannot delete category with existing expenses. "
                "Please re-assign or delete those expenses first."
            )
        self._commit_categories([c for c in self.categories if c.id != category_id])

    # -- Import / export ------------------------------------------------------

    def import_csv(
        self,
        text: str,
        date_formats: list[str] | None = None,
        match_order: str = MATCH_EXACT_FIRST,
    ) -> CsvImportResult:
        """Import CSV *text*, prepending the resulting expenses.

        Every draft gets a fresh id.  Nothing is written when no row was
        imported.
        """
        drafts, result = import_csv(text, self.categories, date_formats, match_order)
        if drafts:
            imported = [Expense.from_draft(d) for d in drafts]
            self._commit_expenses(imported + self.expenses)
        return result

    def export_backup(self, now: datetime | None = None) -> str:
        """Serialize both collections as backup JSON text."""
        return dump_backup(build_backup(self.expenses, self.categories, now))

    def restore_backup(
        self,
        text: str,
        confirmer: Confirmer,
        notifier: Notifier,
        strict: bool = False,
    ) -> RestoreOutcome:
        """Replace both collections with the contents of backup *text*.

        The user is asked to confirm before anything is replaced.  A
        malformed or incomplete file produces one generic notification (the
        cause is logged) and changes nothing.

        Both collections are written before either is swapped in.  If the
        category write fails, the previous expenses are written back and the
        error propagates.

        Returns:
            ``REPLACED``, ``DECLINED`` when the user said no, or ``INVALID``
            when the file could not be parsed.
        """
        try:
            document = parse_backup(text, strict=strict)
        except (json.JSONDecodeError, BackupFormatError) as exc:
            logger.warning("Backup import failed: %s", exc)
            notifier.notify(RESTORE_FAILURE_MESSAGE)
            return RestoreOutcome.INVALID

        if not confirmer.confirm(RESTORE_CONFIRM_PROMPT):
            logger.info("Backup import declined by user")
            return RestoreOutcome.DECLINED

        self.expense_store.save(document.expenses)
        try:
            self.category_store.save(document.categories)
        except Exception:
            logger.error("Category write failed during restore, rolling back expenses")
            self.expense_store.save(self.expenses)
            raise
        self.expenses = document.expenses
        self.categories = document.categories
        notifier.notify(RESTORE_SUCCESS_MESSAGE)
        return RestoreOutcome.REPLACED

    def clear(self, confirmer: Confirmer) -> bool:
        """Delete every expense after confirmation.  Categories are kept."""
        if not confirmer.confirm(CLEAR_CONFIRM_PROMPT):
            return False
        self._commit_expenses([])
        return True

    # -- Internal helpers -----------------------------------------------------

    def _expense_index(self, expense_id: str) -> int:
        for index, expense in enumerate(self.expenses):
            if expense.id == expense_id:
                return index
        raise KeyError(expense_id)

    def _commit_expenses(self, expenses: list[Expense]) -> None:
        self.expense_store.save(expenses)
        self.expenses = expenses

    def _commit_categories(self, categories: list[Category]) -> None:
        self.category_store.save(categories)
        self.categories = categories
