"""Tests for xpense.store -- key/value storage and collection stores."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from xpense.models import Category, Expense
from xpense.store import (
    CATEGORIES_KEY,
    EXPENSES_KEY,
    CollectionStore,
    FileKeyValueStore,
    open_stores,
)


class TestFileKeyValueStore:
    """Tests for the file-backed key/value store."""

    def test_missing_key_returns_none(self, tmp_path: Path):
        store = FileKeyValueStore(tmp_path)
        assert store.get("absent") is None

    def test_set_then_get(self, tmp_path: Path):
        store = FileKeyValueStore(tmp_path)
        store.set("k", '["v"]')
        assert store.get("k") == '["v"]'
        assert (tmp_path / "k.json").read_text(encoding="utf-8") == '["v"]'

    def test_set_creates_directory(self, tmp_path: Path):
        store = FileKeyValueStore(tmp_path / "nested" / "data")
        store.set("k", "1")
        assert store.get("k") == "1"

    def test_overwrite_leaves_no_temp_files(self, tmp_path: Path):
        store = FileKeyValueStore(tmp_path)
        store.set("k", "1")
        store.set("k", "2")
        assert store.get("k") == "2"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["k.json"]


class TestCollectionStore:
    """Tests for whole-collection load/save."""

    def test_load_absent_returns_none(self, memory_backend):
        store = CollectionStore(memory_backend, EXPENSES_KEY, Expense)
        assert store.load() is None

    def test_save_then_load_expenses(self, memory_backend, sample_expenses):
        backend = memory_backend
        store = CollectionStore(backend, EXPENSES_KEY, Expense)
        store.save(sample_expenses)

        assert store.load() == sample_expenses
        saved = json.loads(backend.data[EXPENSES_KEY])
        assert saved[0]["categoryId"] == "99"

    def test_save_then_load_categories(self, memory_backend, default_categories):
        store = CollectionStore(memory_backend, CATEGORIES_KEY, Category)
        store.save(default_categories)
        assert store.load() == default_categories

    def test_empty_list_is_not_absent(self, memory_backend):
        store = CollectionStore(memory_backend, EXPENSES_KEY, Expense)
        store.save([])
        assert store.load() == []

    def test_corrupt_value_raises(self, memory_backend):
        memory_backend.set(EXPENSES_KEY, "{oops")
        store = CollectionStore(memory_backend, EXPENSES_KEY, Expense)
        with pytest.raises(json.JSONDecodeError):
            store.load()


class TestOpenStores:
    def test_keys_and_files(self, tmp_path: Path, sample_expenses, default_categories):
        expense_store, category_store = open_stores(tmp_path)
        expense_store.save(sample_expenses)
        category_store.save(default_categories)

        assert (tmp_path / f"{EXPENSES_KEY}.json").is_file()
        assert (tmp_path / f"{CATEGORIES_KEY}.json").is_file()

        expense_store, category_store = open_stores(tmp_path)
        assert expense_store.load() == sample_expenses
        assert category_store.load() == default_categories
