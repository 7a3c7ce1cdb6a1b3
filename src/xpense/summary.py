"""Aggregate spend by period and by category."""

from __future__ import annotations

from collections import defaultdict

from xpense.models import (
    UNKNOWN_CATEGORY_COLOR,
    UNKNOWN_CATEGORY_NAME,
    Category,
    CategorySpend,
    Expense,
    PeriodSummary,
)

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def filter_period(
    expenses: list[Expense],
    year: int | None = None,
    month: int | None = None,
) -> list[Expense]:
    """Keep the expenses dated in *year*/*month*.

    With neither given, every expense is kept ("all time").  With only
    *year*, the whole year is kept.
    """
    if year is None:
        return list(expenses)
    prefix = f"{year:04d}-" if month is None else f"{year:04d}-{month:02d}-"
    return [e for e in expenses if e.date.startswith(prefix)]


def period_label(year: int | None = None, month: int | None = None) -> str:
    """``"Mar 2024"``, ``"2024"``, or ``"All time"``."""
    if year is None:
        return "All time"
    if month is None:
        return str(year)
    return f"{MONTH_NAMES[month - 1]} {year}"


def spend_by_category(expenses: list[Expense], categories: list[Category]) -> list[CategorySpend]:
    """Total *expenses* per category id, largest total first.

    Expenses whose category no longer exists are grouped under their id and
    reported as ``"Unknown"``.
    """
    totals: defaultdict[str, float] = defaultdict(float)
    for e in expenses:
        totals[e.category_id] += e.amount

    by_id = {c.id: c for c in categories}
    rows = []
    for category_id, total in totals.items():
        cat = by_id.get(category_id)
        rows.append(
            CategorySpend(
                category_id=category_id,
                name=cat.name if cat else UNKNOWN_CATEGORY_NAME,
                color=cat.color if cat else UNKNOWN_CATEGORY_COLOR,
                total=total,
            )
        )
    rows.sort(key=lambda r: r.total, reverse=True)
    return rows


def summarize(
    expenses: list[Expense],
    categories: list[Category],
    year: int | None = None,
    month: int | None = None,
) -> PeriodSummary:
    """Build the total, count and per-category breakdown for a period."""
    selected = filter_period(expenses, year, month)
    return PeriodSummary(
        label=period_label(year, month),
        total=float(sum(e.amount for e in selected)),
        count=len(selected),
        by_category=spend_by_category(selected, categories),
    )
