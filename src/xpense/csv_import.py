"""CSV import: row tokenizer, column detector, and import pipeline.

Third-party exports (bank statements, card statements, spreadsheets) use
inconsistent headers and column orders.  Instead of a fixed schema, the
importer finds the date, category and amount columns by header content, then
runs every data row through the field normalizers:

    text -> lines -> header -> detect_columns -> per row: tokenize_row
         -> normalize_date / normalize_amount / match_category -> ExpenseDraft

Row-level problems (bad date, bad or non-positive amount, unknown category)
skip the row and are only counted.  Structural problems (too few lines, a
column that cannot be detected) abort the import and are reported as
messages in :class:`~xpense.models.CsvImportResult`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from xpense.models import (
    DEFAULT_DATE_FORMATS,
    MATCH_EXACT_FIRST,
    Category,
    CsvImportResult,
    ExpenseDraft,
)
from xpense.normalizers import match_category, normalize_amount, normalize_date

logger = logging.getLogger(__name__)

DATE_ALIASES = [
    "date",
    "dates",
    "transaction date",
    "transaction_date",
    "trans date",
    "trans_date",
]
CATEGORY_ALIASES = [
    "category",
    "categories",
    "expense category",
    "expense_category",
    "expensecategory",
    "type",
    "description",
    "expense type",
]
AMOUNT_ALIASES = [
    "amount",
    "amounts",
    "value",
    "values",
    "price",
    "cost",
    "expense",
    "expenses",
    "debit",
]

NOT_FOUND = -1

TOO_FEW_LINES_ERROR = "CSV must have a header row and at least one data row"
MISSING_DATE_ERROR = "Could not detect Date column. Use headers like: Date, Transaction Date"
MISSING_CATEGORY_ERROR = (
    "Could not detect Expense Category column. Use headers like: Category, Expense Category"
)
MISSING_AMOUNT_ERROR = "Could not detect Amount column. Use headers like: Amount, Value, Expense"

_HEADER_SEPARATORS = re.compile(r"[\s_-]+")
_LINE_BREAK = re.compile(r"\r?\n")


@dataclass
class ColumnMap:
    """Detected column index per role, or ``NOT_FOUND`` (-1)."""

    date: int
    category: int
    amount: int

    @property
    def complete(self) -> bool:
        return NOT_FOUND not in (self.date, self.category, self.amount)


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


def tokenize_row(line: str) -> list[str]:
    """Split one CSV line into trimmed fields.

    Commas inside a double-quoted span do not split.  Quote characters only
    toggle the quoted state and are dropped from the output, so a literal
    quote inside a field is lost.  Embedded newlines are not supported; call
    this once per physical line.

    Always returns at least one field: ``tokenize_row("") == [""]``.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


# ---------------------------------------------------------------------------
# Column detection
# ---------------------------------------------------------------------------


def normalize_header(header: str) -> str:
    """Trim, lowercase, and collapse whitespace/underscore/hyphen runs."""
    return _HEADER_SEPARATORS.sub(" ", header.strip().lower())


def find_column(headers: list[str], aliases: list[str]) -> int:
    """Return the index of the first header matching any alias.

    Headers are scanned left to right; for each header the aliases are tried
    in priority order.  A header matches an alias when either string
    contains the other, which tolerates both verbose headers
    (``"Amount (USD)"``) and short ones.

    A header that equals an alias outright is preferred over a containment
    match: in ``Date,Expense Category,Amount`` the amount role resolves to
    ``Amount`` rather than to ``Expense Category`` (which contains the
    ``expense`` alias).

    Returns:
        The matching index, or ``NOT_FOUND`` (-1).
    """
    normalized = [normalize_header(h) for h in headers]

    for index, header in enumerate(normalized):
        if header in aliases:
            return index

    for index, header in enumerate(normalized):
        for alias in aliases:
            if alias in header or header in alias:
                return index
    return NOT_FOUND


def detect_columns(headers: list[str]) -> ColumnMap:
    """Detect the date, category and amount columns of a header row.

    Roles are resolved independently; two roles may end up on the same
    column and that is not reconciled.
    """
    return ColumnMap(
        date=find_column(headers, DATE_ALIASES),
        category=find_column(headers, CATEGORY_ALIASES),
        amount=find_column(headers, AMOUNT_ALIASES),
    )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def import_csv(
    text: str,
    categories: list[Category],
    date_formats: list[str] | None = None,
    match_order: str = MATCH_EXACT_FIRST,
) -> tuple[list[ExpenseDraft], CsvImportResult]:
    """Parse CSV *text* into expense drafts.

    1. Split into lines and discard every blank line.
    2. Require a header and at least one data row.
    3. Detect the date, category and amount columns from the header.  If
       any role is missing, report it and stop.
    4. Normalize each data row; rows with an unparseable date, an
       unparseable or non-positive amount, or an unknown category are
       skipped.  Cells beyond the end of a short row read as empty.
    5. The draft description is the raw category cell text.

    This function is pure: it neither assigns ids nor touches storage.

    Args:
        text: Full CSV file contents.  CRLF and LF line endings accepted.
        categories: Categories that imported rows may be matched to.
        date_formats: Ordered ``strptime`` patterns for the date column.
        match_order: Category match tie-break order.

    Returns:
        A ``(drafts, result)`` tuple.  ``result.imported + result.skipped``
        equals the number of data rows whenever detection succeeds.
    """
    if date_formats is None:
        date_formats = DEFAULT_DATE_FORMATS

    result = CsvImportResult()
    lines = [line for line in _LINE_BREAK.split(text) if line.strip()]

    if len(lines) < 2:
        result.errors.append(TOO_FEW_LINES_ERROR)
        return [], result

    headers = tokenize_row(lines[0])
    columns = detect_columns(headers)
    logger.debug(
        "Detected columns in %s: date=%d category=%d amount=%d",
        headers,
        columns.date,
        columns.category,
        columns.amount,
    )

    if columns.date == NOT_FOUND:
        result.errors.append(MISSING_DATE_ERROR)
    if columns.category == NOT_FOUND:
        result.errors.append(MISSING_CATEGORY_ERROR)
    if columns.amount == NOT_FOUND:
        result.errors.append(MISSING_AMOUNT_ERROR)
    if not columns.complete:
        return [], result

    drafts: list[ExpenseDraft] = []
    rows = lines[1:]

    for row_number, line in enumerate(rows, start=1):
        cells = tokenize_row(line)
        date_text = _cell(cells, columns.date)
        category_text = _cell(cells, columns.category)
        amount_text = _cell(cells, columns.amount)

        txn_date = normalize_date(date_text, date_formats)
        if txn_date is None:
            logger.debug("Row %d skipped: invalid date %r", row_number, date_text)
            continue

        amount = normalize_amount(amount_text)
        if amount is None or amount <= 0:
            logger.debug("Row %d skipped: invalid amount %r", row_number, amount_text)
            continue

        category = match_category(category_text, categories, match_order)
        if category is None:
            logger.debug("Row %d skipped: no category matches %r", row_number, category_text)
            continue

        drafts.append(
            ExpenseDraft(
                amount=amount,
                category_id=category.id,
                description=category_text,
                date=txn_date,
            )
        )

    result.imported = len(drafts)
    result.skipped = len(rows) - len(drafts)
    logger.info("CSV import: %d imported, %d skipped", result.imported, result.skipped)
    return drafts, result


def read_csv_file(file_path: Path) -> str:
    """Read a CSV file as text.

    A UTF-8 byte order mark (common in spreadsheet exports) is removed.

    Raises:
        OSError: If the file cannot be read.
    """
    return Path(file_path).read_text(encoding="utf-8-sig")


def _cell(cells: list[str], index: int) -> str:
    """Return ``cells[index]``, or an empty string past the end of the row."""
    if index < len(cells):
        return cells[index]
    return ""
