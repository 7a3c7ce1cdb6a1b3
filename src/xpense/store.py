"""Local persistence for the expense and category collections.

Storage is an opaque string key/value store.  :class:`FileKeyValueStore`
keeps each key in its own file under the data directory; tests can use any
object with the same ``get``/``set`` methods.

:class:`CollectionStore` binds one key to one record type and exposes the
two operations the ledger needs: ``load()`` (``None`` when nothing has been
saved yet) and ``save(records)`` (rewrite the whole collection).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Generic, Protocol, TypeVar

from xpense.models import Category, Expense

logger = logging.getLogger(__name__)

EXPENSES_KEY = "xpense_data_v1"
CATEGORIES_KEY = "xpense_categories_v1"

T = TypeVar("T", Expense, Category)


class KeyValueStore(Protocol):
    """String key/value storage."""

    def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None`` if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...


class FileKeyValueStore:
    """Key/value store backed by one ``<key>.json`` file per key.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash never leaves a half-written collection.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s", target)


class CollectionStore(Generic[T]):
    """A named, whole-collection store for one record type.

    Args:
        backend: The key/value store to read and write.
        key: Storage key, e.g. ``"xpense_data_v1"``.
        record_type: :class:`~xpense.models.Expense` or
            :class:`~xpense.models.Category`.
    """

    def __init__(self, backend: KeyValueStore, key: str, record_type: type[T]) -> None:
        self.backend = backend
        self.key = key
        self.record_type = record_type

    def load(self) -> list[T] | None:
        """Return the saved collection, or ``None`` if nothing was saved.

        Raises:
            json.JSONDecodeError: If the stored value is not valid JSON.
        """
        raw = self.backend.get(self.key)
        if raw is None:
            return None
        items = json.loads(raw)
        return [self.record_type.from_dict(item) for item in items]

    def save(self, records: list[T]) -> None:
        """Replace the saved collection with *records*."""
        payload = [r.to_dict() for r in records]
        self.backend.set(self.key, json.dumps(payload, ensure_ascii=False))


def open_stores(data_dir: Path) -> tuple[CollectionStore[Expense], CollectionStore[Category]]:
    """Return the expense and category stores rooted at *data_dir*."""
    backend = FileKeyValueStore(data_dir)
    return (
        CollectionStore(backend, EXPENSES_KEY, Expense),
        CollectionStore(backend, CATEGORIES_KEY, Category),
    )
