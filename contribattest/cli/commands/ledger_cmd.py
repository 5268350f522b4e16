"""``contribattest ledger`` inspects and funds the local ledger.

Subcommands: ``fund AMOUNT``, ``balance`` and ``show``.  All of them act
on the account derived from the configured private key.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from contribattest.cli.options import load_config
from contribattest.cli.render import SummaryRenderer, format_amount
from contribattest.core.errors import AttestationError, describe_error
from contribattest.core.validation import (
    validate_network,
    validate_positive_int,
    validate_private_key,
)
from contribattest.gateway.local_ledger import LocalLedgerGateway
from contribattest.models.config import get_network_config

console = Console()

ledger_app = typer.Typer(
    name="ledger",
    help="Inspect and fund the local ledger.",
    no_args_is_help=True,
    add_completion=False,
)

_LEDGER_OPTION = typer.Option(
    None, "--ledger", "-l", help="Path to the local ledger SQLite database."
)
_KEY_OPTION = typer.Option(
    None, "--private-key", help="Funding credential (default: CONTRIBATTEST_PRIVATE_KEY)."
)
_NETWORK_OPTION = typer.Option(None, "--network", "-n", help="testnet or mainnet.")


def _open_gateway(
    ledger_db: Path | None, private_key: str | None, network: str | None
) -> LocalLedgerGateway:
    config = load_config(
        ledger_path=ledger_db, private_key=private_key, network=network
    )
    try:
        key = validate_private_key(config.private_key)
        network_config = get_network_config(validate_network(config.network))
        return LocalLedgerGateway(config.ledger_path, key, network_config)
    except AttestationError as exc:
        console.print(f"[bold red]Ledger error:[/bold red] {describe_error(exc)}")
        raise typer.Exit(code=1) from exc


@ledger_app.command(name="fund", help="Credit the funding account.")
def fund_cmd(
    amount: str = typer.Argument(..., help="Amount to credit, in wei."),
    ledger_db: Optional[Path] = _LEDGER_OPTION,
    private_key: Optional[str] = _KEY_OPTION,
    network: Optional[str] = _NETWORK_OPTION,
) -> None:
    """Credit AMOUNT wei to the account of the configured key."""
    try:
        value = validate_positive_int(amount, "amount")
    except AttestationError as exc:
        console.print(f"[bold red]Ledger error:[/bold red] {describe_error(exc)}")
        raise typer.Exit(code=1) from exc

    with _open_gateway(ledger_db, private_key, network) as gateway:
        new_balance = gateway.fund(value)
        console.print(f"[bold]Account:[/bold] {gateway.address()}")
        console.print(f"[bold green]Funded.[/bold green] Balance: {format_amount(new_balance)}")


@ledger_app.command(name="balance", help="Show the funding account balance.")
def balance_cmd(
    ledger_db: Optional[Path] = _LEDGER_OPTION,
    private_key: Optional[str] = _KEY_OPTION,
    network: Optional[str] = _NETWORK_OPTION,
) -> None:
    with _open_gateway(ledger_db, private_key, network) as gateway:
        console.print(f"[bold]Account:[/bold] {gateway.address()}")
        console.print(f"[bold]Balance:[/bold] {format_amount(gateway.balance())}")


@ledger_app.command(name="show", help="List subjects and relationships on the ledger.")
def show_cmd(
    ledger_db: Optional[Path] = _LEDGER_OPTION,
    private_key: Optional[str] = _KEY_OPTION,
    network: Optional[str] = _NETWORK_OPTION,
) -> None:
    """Print every subject and relationship with its accumulated stake."""
    renderer = SummaryRenderer(console)
    with _open_gateway(ledger_db, private_key, network) as gateway:
        subjects = gateway.list_subjects()
        relationships = gateway.list_relationships()
        head = gateway.head_block()

    if not subjects:
        console.print("[dim]The ledger is empty.[/dim]")
        return

    names = {row["subject_id"]: row["name"] for row in subjects}
    console.print(renderer.render_subjects(subjects))
    if relationships:
        console.print(renderer.render_relationships(relationships, names))
    console.print(
        f"[bold]Subjects:[/bold] {len(subjects)}  |  "
        f"[bold]Relationships:[/bold] {len(relationships)}  |  "
        f"[bold]Head block:[/bold] {head}"
    )
