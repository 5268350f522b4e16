"""Main Typer application: imports and registers all CLI commands.

Entry point: ``contribattest`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from contribattest.cli.commands.attest import attest_cmd
from contribattest.cli.commands.ledger_cmd import ledger_app

app = typer.Typer(
    name="contribattest",
    help="contribattest: idempotent on-ledger attestation of pull-request contributors.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="attest", help="Attest the contributors of a merged pull request.")(attest_cmd)
app.add_typer(ledger_app, name="ledger")


@app.command(name="version", help="Show the installed version.")
def version_cmd() -> None:
    from rich.console import Console

    from contribattest import __version__

    Console().print(f"contribattest {__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
