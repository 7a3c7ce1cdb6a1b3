"""Click CLI entry point for the xpense command.

Handles argument parsing, config loading, user prompts, and error display.
All business logic is delegated to ``ledger``, ``csv_import``, ``backup``,
``summary``, and ``config`` modules.
"""

from __future__ import annotations

import logging
import re
import sys
from datetime import date
from pathlib import Path

import click

from xpense import __version__
from xpense.models import AppConfig, ExpenseDraft

logger = logging.getLogger(__name__)


class ClickConfirmer:
    """Confirmer that prompts on the terminal, or always agrees with ``--yes``."""

    def __init__(self, assume_yes: bool = False) -> None:
        self.assume_yes = assume_yes

    def confirm(self, message: str) -> bool:
        if self.assume_yes:
            return True
        return click.confirm(message, default=False)


class EchoNotifier:
    """Notifier that prints messages to stdout."""

    def notify(self, message: str) -> None:
        click.echo(message)


def _validate_month(month: str) -> tuple[int, int]:
    """Validate that *month* matches ``YYYY-MM`` and represents a real month.

    Returns ``(year, month)``, or raises ``click.BadParameter``.
    """
    if not re.fullmatch(r"\d{4}-\d{2}", month):
        raise click.BadParameter(
            f"Invalid month format: {month!r}. Expected YYYY-MM (e.g. 2024-03)."
        )
    year, mon = (int(part) for part in month.split("-"))
    if mon < 1 or mon > 12:
        raise click.BadParameter(
            f"Invalid month: {month!r}. Month must be between 01 and 12."
        )
    return year, mon


def _resolve_period(month: str | None, all_time: bool) -> tuple[int | None, int | None]:
    """Turn ``--month``/``--all`` into a ``(year, month)`` filter.

    Neither flag selects the current month.
    """
    if all_time:
        return None, None
    if month is None:
        today = date.today()
        return today.year, today.month
    try:
        return _validate_month(month)
    except click.BadParameter as exc:
        click.echo(f"Error: {exc.format_message()}", err=True)
        sys.exit(1)


def _configure_logging(verbose: bool, debug: bool) -> None:
    """Set up logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _open_ledger(root: Path):
    """Load config and the ledger from *root*, exiting on failure."""
    from xpense.config import load_categories, load_config
    from xpense.ledger import Ledger
    from xpense.store import open_stores

    try:
        config = load_config(root)
        default_categories = load_categories(root)
    except FileNotFoundError as exc:
        click.echo(
            f"Error: {exc}. Run 'xpense init' to create the project structure.",
            err=True,
        )
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error loading configuration: {exc}", err=True)
        sys.exit(1)

    expense_store, category_store = open_stores(root / config.data_dir)
    try:
        ledger = Ledger.load(expense_store, category_store, default_categories)
    except Exception as exc:
        click.echo(f"Error loading saved data: {exc}", err=True)
        sys.exit(1)

    return config, ledger


def _build_draft(
    config: AppConfig,
    ledger,
    amount: float,
    category_name: str,
    expense_date: str,
    description: str,
) -> ExpenseDraft:
    """Validate CLI input for one expense, exiting with an error if invalid."""
    from xpense.normalizers import match_category

    if amount <= 0:
        click.echo("Error: amount must be greater than zero.", err=True)
        sys.exit(1)

    category = match_category(category_name, ledger.categories, config.category_match)
    if category is None:
        click.echo(f"Error: no category matches {category_name!r}.", err=True)
        sys.exit(1)

    try:
        iso_date = date.fromisoformat(expense_date).isoformat()
    except ValueError:
        click.echo(f"Error: invalid date {expense_date!r}. Expected YYYY-MM-DD.", err=True)
        sys.exit(1)

    return ExpenseDraft(
        amount=amount,
        category_id=category.id,
        description=description,
        date=iso_date,
    )


def _format_amount(amount: float) -> str:
    return f"${amount:,.2f}"


verbose_option = click.option(
    "--verbose", is_flag=True, default=False, help="Detailed progress output."
)
debug_option = click.option(
    "--debug", is_flag=True, default=False, help="Developer-level diagnostics."
)


@click.group()
@click.version_option(version=__version__, prog_name="xpense")
def cli() -> None:
    """Personal expense tracker with CSV import and JSON backups."""


@cli.command()
@click.option(
    "--dir", "target_dir", default=".", type=click.Path(), help="Directory to initialize."
)
def init(target_dir: str) -> None:
    """Initialize a new project directory with the standard structure."""
    from xpense.config import initialize

    target = Path(target_dir).resolve()

    try:
        initialize(target)
    except Exception as exc:
        click.echo(f"Error initializing project: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Initialized xpense project in {target}")


@cli.command()
@click.option("--amount", required=True, type=float, help="Amount spent (positive).")
@click.option("--category", "category_name", required=True, help="Category name.")
@click.option("--date", "expense_date", default=None, help="Date as YYYY-MM-DD. Default: today.")
@click.option("--description", default="", help="Free text description.")
@verbose_option
@debug_option
def add(
    amount: float,
    category_name: str,
    expense_date: str | None,
    description: str,
    verbose: bool,
    debug: bool,
) -> None:
    """Record a new expense."""
    _configure_logging(verbose, debug)
    config, ledger = _open_ledger(Path.cwd())

    if expense_date is None:
        expense_date = date.today().isoformat()
    draft = _build_draft(config, ledger, amount, category_name, expense_date, description)
    expense = ledger.add_expense(draft)
    click.echo(
        f"Added {_format_amount(expense.amount)} to {ledger.category_name(expense.category_id)} "
        f"on {expense.date} (id {expense.id})"
    )


@cli.command(name="list")
@click.option("--month", default=None, help="Month in YYYY-MM format. Default: current month.")
@click.option("--all", "all_time", is_flag=True, default=False, help="List every expense.")
def list_expenses(month: str | None, all_time: bool) -> None:
    """List expenses for a month."""
    year, mon = _resolve_period(month, all_time)
    _, ledger = _open_ledger(Path.cwd())

    from xpense.summary import filter_period, period_label

    selected = filter_period(ledger.expenses, year, mon)
    click.echo(f"== Expenses: {period_label(year, mon)} ==")
    if not selected:
        click.echo("No expenses.")
        return
    for e in selected:
        label = e.description or ledger.category_name(e.category_id)
        click.echo(
            f"  {e.date}  {_format_amount(e.amount):>12}  "
            f"{ledger.category_name(e.category_id):<20} {label}  [{e.id}]"
        )


@cli.command()
@click.option("--month", default=None, help="Month in YYYY-MM format. Default: current month.")
@click.option("--all", "all_time", is_flag=True, default=False, help="Summarize all time.")
def summary(month: str | None, all_time: bool) -> None:
    """Show total spend and spend by category."""
    year, mon = _resolve_period(month, all_time)
    _, ledger = _open_ledger(Path.cwd())

    from xpense.summary import summarize

    result = summarize(ledger.expenses, ledger.categories, year, mon)

    click.echo()
    click.echo(f"== Summary: {result.label} ==")
    click.echo(f"Total spent:   {_format_amount(result.total)}")
    click.echo(f"Transactions:  {result.count}")
    if result.by_category:
        click.echo()
        click.echo("Spending by category:")
        for row in result.by_category:
            click.echo(f"  {row.name + ':':<25} {_format_amount(row.total)}")
    click.echo()


@cli.command(name="import-csv")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@verbose_option
@debug_option
def import_csv_command(csv_file: str, verbose: bool, debug: bool) -> None:
    """Import expenses from a bank or spreadsheet CSV export."""
    _configure_logging(verbose, debug)
    config, ledger = _open_ledger(Path.cwd())

    from xpense.csv_import import read_csv_file

    try:
        text = read_csv_file(Path(csv_file))
        result = ledger.import_csv(text, config.date_formats, config.category_match)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", csv_file, exc)
        click.echo("Failed to parse CSV file.", err=True)
        sys.exit(1)

    if result.errors:
        click.echo("CSV Import Issues:", err=True)
        for error in result.errors:
            click.echo(f"  - {error}", err=True)

    if result.imported > 0:
        click.echo(
            f"Imported {result.imported} expenses from CSV. {result.skipped} rows skipped "
            "(unmatched category or invalid data)."
        )
    elif not result.errors:
        click.echo(
            "No valid expenses found in CSV. Ensure columns: Date, Expense Category, Amount. "
            "Category names must match your app categories."
        )

    if result.errors:
        sys.exit(1)


@cli.command()
@click.option("--output", default=None, type=click.Path(dir_okay=False), help="Backup file path.")
@verbose_option
def export(output: str | None, verbose: bool) -> None:
    """Write a JSON backup of all expenses and categories."""
    _configure_logging(verbose, debug=False)
    root = Path.cwd()
    config, ledger = _open_ledger(root)

    from xpense.backup import backup_filename

    if output is None:
        output_path = root / config.backup_dir / backup_filename()
    else:
        output_path = Path(output)

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(ledger.export_backup(), encoding="utf-8")
    except OSError as exc:
        click.echo(f"Error writing backup: {exc}", err=True)
        sys.exit(1)

    click.echo(
        f"Exported {len(ledger.expenses)} expenses and {len(ledger.categories)} categories "
        f"to {output_path}"
    )


@cli.command()
@click.argument("backup_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--yes", is_flag=True, default=False, help="Replace data without asking.")
@click.option("--strict", is_flag=True, default=False, help="Validate every record.")
@verbose_option
@debug_option
def restore(backup_file: str, yes: bool, strict: bool, verbose: bool, debug: bool) -> None:
    """Replace all expenses and categories with a JSON backup."""
    _configure_logging(verbose, debug)
    config, ledger = _open_ledger(Path.cwd())

    from xpense.ledger import RESTORE_FAILURE_MESSAGE, RestoreOutcome

    try:
        text = Path(backup_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", backup_file, exc)
        click.echo(RESTORE_FAILURE_MESSAGE, err=True)
        sys.exit(1)

    try:
        outcome = ledger.restore_backup(
            text,
            confirmer=ClickConfirmer(assume_yes=yes),
            notifier=EchoNotifier(),
            strict=strict or config.strict_backup,
        )
    except OSError as exc:
        click.echo(f"Error writing restored data: {exc}", err=True)
        sys.exit(1)
    if outcome is RestoreOutcome.INVALID:
        sys.exit(1)
    if outcome is RestoreOutcome.DECLINED:
        click.echo("No changes made.")


@cli.command()
@click.option("--yes", is_flag=True, default=False, help="Clear without asking.")
def clear(yes: bool) -> None:
    """Delete every expense.  Categories are kept."""
    _, ledger = _open_ledger(Path.cwd())
    if ledger.clear(ClickConfirmer(assume_yes=yes)):
        click.echo("All expenses deleted.")
    else:
        click.echo("No changes made.")


# ---------------------------------------------------------------------------
# categories
# ---------------------------------------------------------------------------


@cli.group()
def categories() -> None:
    """Manage expense categories."""


@categories.command(name="list")
def categories_list() -> None:
    """List categories."""
    _, ledger = _open_ledger(Path.cwd())
    for cat in ledger.categories:
        click.echo(f"  {cat.icon} {cat.name:<25} {cat.color}  [{cat.id}]")


@categories.command(name="add")
@click.argument("name")
@click.option("--color", default="#64748b", help="Display color.")
@click.option("--icon", default="📦", help="Display icon.")
def categories_add(name: str, color: str, icon: str) -> None:
    """Add a category."""
    _, ledger = _open_ledger(Path.cwd())
    try:
        cat = ledger.add_category(name, color, icon)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Added category {cat.name} (id {cat.id})")


@categories.command(name="update")
@click.argument("category_id")
@click.option("--name", default=None, help="New name.")
@click.option("--color", default=None, help="New display color.")
@click.option("--icon", default=None, help="New display icon.")
def categories_update(
    category_id: str, name: str | None, color: str | None, icon: str | None
) -> None:
    """Update a category's name, color, or icon."""
    _, ledger = _open_ledger(Path.cwd())
    try:
        cat = ledger.update_category(category_id, name=name, color=color, icon=icon)
    except KeyError:
        click.echo(f"Error: no category with id {category_id!r}.", err=True)
        sys.exit(1)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Updated category {cat.name} (id {cat.id})")


@categories.command(name="delete")
@click.argument("category_id")
def categories_delete(category_id: str) -> None:
    """Delete a category that no expense uses."""
    from xpense.ledger import CategoryInUseError

    _, ledger = _open_ledger(Path.cwd())
    try:
        ledger.delete_category(category_id)
    except KeyError:
        click.echo(f"Error: no category with id {category_id!r}.", err=True)
        sys.exit(1)
    except CategoryInUseError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"Deleted category {category_id}")


# ---------------------------------------------------------------------------
# expense edits
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("expense_id")
def delete(expense_id: str) -> None:
    """Delete an expense by id."""
    _, ledger = _open_ledger(Path.cwd())
    try:
        ledger.delete_expense(expense_id)
    except KeyError:
        click.echo(f"Error: no expense with id {expense_id!r}.", err=True)
        sys.exit(1)
    click.echo(f"Deleted expense {expense_id}")


@cli.command()
@click.argument("expense_id")
@click.option("--amount", required=True, type=float, help="Amount spent (positive).")
@click.option("--category", "category_name", required=True, help="Category name.")
@click.option("--date", "expense_date", required=True, help="Date as YYYY-MM-DD.")
@click.option("--description", default="", help="Free text description.")
def edit(
    expense_id: str,
    amount: float,
    category_name: str,
    expense_date: str,
    description: str,
) -> None:
    """Replace an expense by id."""
    config, ledger = _open_ledger(Path.cwd())
    draft = _build_draft(config, ledger, amount, category_name, expense_date, description)

    try:
        expense = ledger.update_expense(expense_id, draft)
    except KeyError:
        click.echo(f"Error: no expense with id {expense_id!r}.", err=True)
        sys.exit(1)
    click.echo(f"Updated expense {expense.id}")
