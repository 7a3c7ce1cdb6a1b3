"""Configuration loading, writing, and project initialization.

Reads TOML config files using stdlib ``tomllib`` and writes them using
``tomli_w``.  Depends only on ``models.py``.
"""

from __future__ import annotations

import sys
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from xpense.models import (
    DEFAULT_DATE_FORMATS,
    MATCH_EXACT_FIRST,
    MATCH_ORDERS,
    AppConfig,
    Category,
)

# ---------------------------------------------------------------------------
# Default file content
# ---------------------------------------------------------------------------

DEFAULT_CATEGORIES = [
    Category(id="1", name="Food & Dining", color="#f87171", icon="🍔"),
    Category(id="2", name="Transport", color="#60a5fa", icon="🚗"),
    Category(id="3", name="Shopping", color="#c084fc", icon="🛍️"),
    Category(id="4", name="Entertainment", color="#facc15", icon="🎬"),
    Category(id="5", name="Bills & Utilities", color="#4ade80", icon="💡"),
    Category(id="6", name="Others", color="#94a3b8", icon="📦"),
]

_DEFAULT_CONFIG_HEADER = """\
# Xpense configuration
#
# [import] date_formats are strptime patterns tried in order; the first one
# that parses wins.  Put "%d/%m/%Y" before "%m/%d/%Y" for day-first exports.
# category_match is "exact-first" or "in-order".
#
# [backup] strict = true validates every record of a backup before restoring.

"""

_DEFAULT_CATEGORIES_HEADER = """\
# Category taxonomy used when no categories have been saved yet.
# The table key is the category id.

"""

# Directories that ``initialize`` creates.
_INIT_DIRS = ["data", "backups"]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(root: Path) -> AppConfig:
    """Load ``config.toml`` from *root* and return an :class:`AppConfig`.

    Args:
        root: Project root directory containing ``config.toml``.

    Returns:
        A fully-populated :class:`AppConfig` instance.  Missing keys fall
        back to their defaults.

    Raises:
        FileNotFoundError: If ``config.toml`` does not exist.
        ValueError: If ``category_match`` is not a known order or
            ``date_formats`` is empty.
    """
    data = _read_toml(root / "config.toml")

    general = data.get("general", {})
    import_section = data.get("import", {})
    backup = data.get("backup", {})

    category_match = import_section.get("category_match", MATCH_EXACT_FIRST)
    if category_match not in MATCH_ORDERS:
        raise ValueError(
            f"Invalid category_match {category_match!r}; expected one of {', '.join(MATCH_ORDERS)}"
        )

    date_formats = list(import_section.get("date_formats", DEFAULT_DATE_FORMATS))
    if not date_formats:
        raise ValueError("date_formats must list at least one format")

    return AppConfig(
        data_dir=general.get("data_dir", "data"),
        backup_dir=general.get("backup_dir", "backups"),
        date_formats=date_formats,
        category_match=category_match,
        strict_backup=bool(backup.get("strict", False)),
    )


def save_config(root: Path, config: AppConfig) -> None:
    """Write *config* to ``config.toml`` in *root*, replacing the file."""
    body = tomli_w.dumps(_config_to_dict(config))
    (root / "config.toml").write_text(_DEFAULT_CONFIG_HEADER + body, encoding="utf-8")


def load_categories(root: Path) -> list[Category]:
    """Load the default category taxonomy from ``categories.toml``.

    Each top-level table is one category keyed by id::

        ["1"]
        name = "Food & Dining"
        color = "#f87171"
        icon = "..."

    Args:
        root: Project root directory.

    Returns:
        The categories in file order, or :data:`DEFAULT_CATEGORIES` if
        ``categories.toml`` does not exist.
    """
    path = root / "categories.toml"
    if not path.exists():
        return list(DEFAULT_CATEGORIES)
    data = _read_toml(path)
    return [
        Category(
            id=str(cat_id),
            name=section.get("name", ""),
            color=section.get("color", ""),
            icon=section.get("icon", ""),
        )
        for cat_id, section in data.items()
        if isinstance(section, dict)
    ]


def initialize(target_dir: Path) -> None:
    """Create the standard directory structure and default config files.

    Idempotent: existing directories are left alone and existing files
    are **not** overwritten.

    Args:
        target_dir: The directory in which to create the project structure.
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    for d in _INIT_DIRS:
        (target_dir / d).mkdir(parents=True, exist_ok=True)

    config_text = _DEFAULT_CONFIG_HEADER + tomli_w.dumps(_config_to_dict(AppConfig()))
    categories_text = _DEFAULT_CATEGORIES_HEADER + tomli_w.dumps(
        {c.id: {"name": c.name, "color": c.color, "icon": c.icon} for c in DEFAULT_CATEGORIES}
    )
    _write_if_missing(target_dir / "config.toml", config_text)
    _write_if_missing(target_dir / "categories.toml", categories_text)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_toml(path: Path) -> dict:
    """Read and parse a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _config_to_dict(config: AppConfig) -> dict:
    """Lay out *config* as the TOML sections ``load_config`` reads."""
    return {
        "general": {"data_dir": config.data_dir, "backup_dir": config.backup_dir},
        "import": {
            "date_formats": list(config.date_formats),
            "category_match": config.category_match,
        },
        "backup": {"strict": config.strict_backup},
    }


def _write_if_missing(path: Path, content: str) -> None:
    """Write *content* to *path* only if the file does not already exist."""
    if not path.exists():
        path.write_text(content, encoding="utf-8")
