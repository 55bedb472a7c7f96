from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from grimoire.cli_validate import fail
from grimoire.compendium import DEFAULT_SPELLS, SpellCompendium
from grimoire.config import EngineConfig, FileSettingsStore
from grimoire.notify import ConsoleNotificationSink
from grimoire.rules.types import REASON_TEXT, EditContext, EnforcementBehavior, RuleRegime
from grimoire.spellbook import Spellbook
from grimoire.store import JsonCharacterStore, StoreError
from grimoire.validation import PrettyError

cantrips_app = typer.Typer(help="Inspect and edit prepared cantrips")

console = Console()


def _open(file: Path, compendium: Path = DEFAULT_SPELLS) -> Spellbook:
    try:
        store = JsonCharacterStore(file)
    except PrettyError as e:
        fail(file, e)
    book = Spellbook(
        store,
        settings=FileSettingsStore(),
        compendium=SpellCompendium.load(compendium),
        sink=ConsoleNotificationSink(console),
        config=EngineConfig.from_env(),
    )
    try:
        book.initialize_flags()
    except StoreError as e:
        fail(file, e)
    return book


def _context(book: Spellbook, level_up: bool, long_rest: bool) -> EditContext:
    if level_up or long_rest:
        return EditContext(is_level_up=level_up, is_long_rest=long_rest)
    return book.edit_context()


def _window_label(ctx: EditContext) -> str:
    return ctx.window.value if ctx.window else "none"


@cantrips_app.command()
def status(
    file: Path = typer.Argument(..., exists=True),
    compendium: Path = typer.Option(DEFAULT_SPELLS, help="Spell compendium file"),
    level_up: bool = typer.Option(False, "--level-up", help="Treat this as a level-up"),
    long_rest: bool = typer.Option(False, "--long-rest", help="Treat this as a long rest"),
):
    """Show cantrip caps, rules and lock state."""
    book = _open(file, compendium)
    ctx = _context(book, level_up, long_rest)
    rules = book.settings_for_character()
    typer.echo(f"{book.character.name} (level {book.character.level})")
    typer.echo(f"Rules: {rules.regime.value}  Enforcement: {rules.behavior.value}  Window: {_window_label(ctx)}")
    typer.echo(f"Cantrips: {book.get_current_count()}/{book.get_max_allowed()}")

    table = Table(title="Cantrips")
    table.add_column("Name")
    table.add_column("UUID")
    table.add_column("Prepared")
    table.add_column("Lock")
    statuses = book.lock_statuses(ctx)
    for ref in book.cantrip_refs():
        lock = statuses[ref.uuid]
        table.add_row(
            ref.name or ref.uuid,
            ref.uuid,
            "yes" if book.is_checked(ref) else "",
            REASON_TEXT[lock.reason] if lock.locked and lock.reason else "",
        )
    console.print(table)


@cantrips_app.command()
def toggle(
    file: Path = typer.Argument(..., exists=True),
    check: Optional[List[str]] = typer.Option(None, "--check", help="Cantrip uuid to prepare"),
    uncheck: Optional[List[str]] = typer.Option(None, "--uncheck", help="Cantrip uuid to unprepare"),
    compendium: Path = typer.Option(DEFAULT_SPELLS, help="Spell compendium file"),
    level_up: bool = typer.Option(False, "--level-up"),
    long_rest: bool = typer.Option(False, "--long-rest"),
):
    """Apply cantrip changes (unchecks first) and save the character."""
    book = _open(file, compendium)
    ctx = _context(book, level_up, long_rest)
    moves = [(u, False) for u in uncheck or []] + [(u, True) for u in check or []]
    if not moves:
        typer.echo("Nothing to change.")
        return
    for uuid, want in moves:
        try:
            decision = book.toggle(uuid, want, ctx)
        except KeyError:
            typer.secho(f"Unknown spell: {uuid}", fg=typer.colors.RED)
            raise typer.Exit(1)
        if not decision.allowed:
            typer.secho(f"Refused {uuid}: {REASON_TEXT[decision.reason]}", fg=typer.colors.RED)
            raise typer.Exit(1)

    result = book.commit()
    if not result.ok:
        raise typer.Exit(1)
    typer.secho(
        f"Saved {file}: {len(result.created)} created, {len(result.updated)} updated, {len(result.deleted)} removed",
        fg=typer.colors.GREEN,
    )


@cantrips_app.command()
def settings(
    file: Path = typer.Argument(..., exists=True),
    rules: Optional[RuleRegime] = typer.Option(None, "--rules", help="Cantrip rule regime"),
    behavior: Optional[EnforcementBehavior] = typer.Option(None, "--behavior", help="Enforcement behavior"),
):
    """Show or change the character's cantrip rules."""
    book = _open(file)
    current = book.settings_for_character()
    if rules is not None or behavior is not None:
        current = book.save_settings(rules or current.regime, behavior or current.behavior)
        typer.secho("Settings saved.", fg=typer.colors.GREEN)
    typer.echo(f"Rules: {current.regime.value}")
    typer.echo(f"Enforcement: {current.behavior.value}")


@cantrips_app.command("long-rest")
def long_rest_cmd(file: Path = typer.Argument(..., exists=True)):
    """Open a long-rest swap window for the character."""
    book = _open(file)
    book.begin_long_rest()
    typer.echo(f"{book.character.name} begins a long rest.")


@cantrips_app.command()
def complete(file: Path = typer.Argument(..., exists=True)):
    """Close the current swap window (level-up or long rest)."""
    book = _open(file)
    ctx = book.edit_context()
    if ctx.window is None:
        typer.echo("No swap window is open.")
        return
    book.complete_transaction(ctx)
    typer.secho(f"Completed {ctx.window.value} for {book.character.name}.", fg=typer.colors.GREEN)


__all__ = ["cantrips_app"]
