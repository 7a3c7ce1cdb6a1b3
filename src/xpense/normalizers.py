"""Field normalizers for CSV import.

Each normalizer turns the raw text of one CSV cell into a typed value, or
``None`` when the text cannot be interpreted.  Normalizers never raise for
bad input; the import pipeline decides what a ``None`` means for the row.

- :func:`normalize_date` -- date text to ``YYYY-MM-DD``.
- :func:`normalize_amount` -- amount text (currency symbols, thousands
  separators) to a number.  Sign is *not* checked here.
- :func:`match_category` -- free text to one of the known categories.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

from xpense.models import (
    DEFAULT_DATE_FORMATS,
    MATCH_EXACT_FIRST,
    MATCH_IN_ORDER,
    Category,
)

# Currency symbols, thousands separators, and any whitespace.
_AMOUNT_NOISE = re.compile(r"[₹$,\s]")


def normalize_date(text: str, date_formats: list[str] | None = None) -> str | None:
    """Parse *text* as a date and return it as ``YYYY-MM-DD``.

    Formats are tried in order and the first one that parses wins, so the
    list order decides how day/month-ambiguous input is read.  Any
    time-of-day or timezone component is dropped; the date is taken as
    written, not converted to another zone.

    Args:
        text: Raw cell text.
        date_formats: Ordered ``strptime`` patterns.  Defaults to
            :data:`~xpense.models.DEFAULT_DATE_FORMATS`.

    Returns:
        The ISO calendar date, or ``None`` if *text* is blank or matches
        none of the formats.
    """
    value = text.strip()
    if not value:
        return None

    if date_formats is None:
        date_formats = DEFAULT_DATE_FORMATS

    for fmt in date_formats:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed.date().isoformat()
    return None


def normalize_amount(text: str) -> float | None:
    """Parse an amount such as ``"₹1,200.50"`` or ``"$ 50"``.

    Strips ``₹``, ``$``, commas and whitespace, then parses the remainder as
    a decimal number.  Negative and zero values are returned unchanged.

    Returns:
        The amount as a float, or ``None`` if the remainder is not a finite
        number, contains an underscore, or is too large for a float.
    """
    cleaned = _AMOUNT_NOISE.sub("", text.strip())
    # Decimal() would otherwise accept "1_000".
    if not cleaned or "_" in cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    amount = float(value)
    if not math.isfinite(amount):
        return None
    return amount


def match_category(
    text: str,
    categories: list[Category],
    match_order: str = MATCH_EXACT_FIRST,
) -> Category | None:
    """Find the category that *text* refers to.

    Matching is case-insensitive.  A category matches when its name equals
    the candidate, contains it, or is contained in it.

    With ``match_order="exact-first"`` an exact name match anywhere in the
    list beats a containment match earlier in the list.  With
    ``match_order="in-order"`` the first category satisfying any of the
    three checks wins.

    Args:
        text: Raw cell text, e.g. ``"food & dining"``.
        categories: Known categories, in priority order.
        match_order: ``"exact-first"`` or ``"in-order"``.

    Returns:
        The matched :class:`~xpense.models.Category`, or ``None`` if *text*
        is blank or nothing matches.

    Raises:
        ValueError: If *match_order* is not a known order.
    """
    candidate = text.strip().lower()
    if not candidate:
        return None

    if match_order == MATCH_EXACT_FIRST:
        for cat in categories:
            if cat.name.lower() == candidate:
                return cat
        for cat in categories:
            name = cat.name.lower()
            if candidate in name or name in candidate:
                return cat
        return None

    if match_order == MATCH_IN_ORDER:
        for cat in categories:
            name = cat.name.lower()
            if name == candidate or candidate in name or name in candidate:
                return cat
        return None

    raise ValueError(f"Unknown category match order: {match_order!r}")
