from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from grimoire.compendium import SpellCompendium
from grimoire.validation import load_character, PrettyError


validate_app = typer.Typer(help="Validate Grimoire data files")


def fail(file: Path, err: Exception) -> NoReturn:
    """Report a bad data file and exit with status 1."""
    typer.secho(f"ERR: {file}\n{err}", fg=typer.colors.RED)
    raise typer.Exit(1)


@validate_app.command()
def character(file: Path = typer.Argument(..., exists=True)):
    """Validate a character json file."""
    try:
        ch = load_character(file)
    except PrettyError as e:
        fail(file, e)
    typer.secho(f"OK: {file} ({ch.name}, {len(ch.spells)} spells)", fg=typer.colors.GREEN)


@validate_app.command()
def compendium(file: Path = typer.Argument(..., exists=True)):
    """Validate a spell compendium (json or yaml)."""
    try:
        spells = SpellCompendium.load(file)
    except (KeyError, TypeError, ValueError) as e:
        fail(file, e)
    typer.secho(f"OK: {file} ({len(spells)} spells)", fg=typer.colors.GREEN)


__all__ = ["fail", "validate_app"]
