from __future__ import annotations

from functools import partial

import typer
from rich import box

try:
    import typer.rich_utils as tru
except ModuleNotFoundError:  # pragma: no cover - older Typer versions
    tru = None

from grimoire.cli_cantrips import cantrips_app
from grimoire.cli_validate import validate_app

if tru is not None:  # pragma: no branch
    tru.Panel = partial(tru.Panel, box=box.ASCII)


app = typer.Typer(no_args_is_help=True, help="Grimoire - cantrip preparation rules.")
app.add_typer(cantrips_app, name="cantrips")
app.add_typer(validate_app, name="validate")


def main() -> None:  # pragma: no cover - console entry
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
