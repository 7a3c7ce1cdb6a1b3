"""Tests for xpense.summary -- period filtering and spend aggregation."""

from __future__ import annotations

import pytest

from xpense.summary import filter_period, period_label, spend_by_category, summarize


class TestFilterPeriod:
    def test_all_time(self, sample_expenses):
        assert filter_period(sample_expenses) == sample_expenses

    def test_month(self, sample_expenses):
        assert [e.id for e in filter_period(sample_expenses, 2024, 3)] == ["e3", "e2", "e1"]

    def test_year(self, sample_expenses):
        assert len(filter_period(sample_expenses, 2024)) == 5
        assert filter_period(sample_expenses, 2023) == []

    def test_month_with_no_expenses(self, sample_expenses):
        assert filter_period(sample_expenses, 2024, 5) == []


class TestPeriodLabel:
    @pytest.mark.parametrize(
        "year, month, expected",
        [(None, None, "All time"), (2024, None, "2024"), (2024, 3, "Mar 2024"), (2023, 12, "Dec 2023")],
    )
    def test_labels(self, year, month, expected):
        assert period_label(year, month) == expected


class TestSpendByCategory:
    """Tests for the per-category breakdown."""

    def test_sorted_descending(self, sample_expenses, default_categories):
        rows = spend_by_category(sample_expenses, default_categories)

        assert [r.name for r in rows] == [
            "Bills & Utilities",
            "Food & Dining",
            "Unknown",
            "Transport",
        ]
        assert rows[0].total == 1200.5
        assert rows[1].total == 280.0

    def test_dangling_category_is_unknown(self, sample_expenses, default_categories):
        rows = spend_by_category(sample_expenses, default_categories)
        unknown = next(r for r in rows if r.category_id == "99")
        assert unknown.name == "Unknown"
        assert unknown.color == "#cbd5e1"

    def test_uses_category_color(self, sample_expenses, default_categories):
        rows = spend_by_category(sample_expenses, default_categories)
        food = next(r for r in rows if r.category_id == "1")
        assert food.color == "#f87171"

    def test_empty(self, default_categories):
        assert spend_by_category([], default_categories) == []


class TestSummarize:
    def test_month_summary(self, sample_expenses, default_categories):
        summary = summarize(sample_expenses, default_categories, 2024, 3)

        assert summary.label == "Mar 2024"
        assert summary.count == 3
        assert summary.total == pytest.approx(295.25)
        assert [r.name for r in summary.by_category] == ["Food & Dining", "Transport"]

    def test_all_time_summary(self, sample_expenses, default_categories):
        summary = summarize(sample_expenses, default_categories)

        assert summary.label == "All time"
        assert summary.count == 5
        assert summary.total == pytest.approx(1535.75)

    def test_empty_period(self, sample_expenses, default_categories):
        summary = summarize(sample_expenses, default_categories, 2020, 1)
        assert summary.count == 0
        assert summary.total == 0.0
        assert summary.by_category == []
