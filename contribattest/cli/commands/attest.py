"""``contribattest attest`` attests the contributors of a merged pull request.

Reads the pull-request event payload and the commit list, ensures the
project and every contributor on the ledger, links each contributor to the
project, writes the run outputs and prints the summary.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from contribattest.cli.options import build_observer, configure_logging, load_config
from contribattest.cli.render import SummaryRenderer, format_amount
from contribattest.config import AttestConfig
from contribattest.core.errors import InvalidInputError, describe_error
from contribattest.core.orchestrator import AttestationOrchestrator
from contribattest.core.retry import RetryExecutor
from contribattest.core.validation import validate_config, validate_url
from contribattest.gateway.local_ledger import LocalLedgerGateway
from contribattest.models.results import AttestationSummary
from contribattest.providers.pull_request import PullRequestEventProvider

console = Console()
logger = logging.getLogger(__name__)

PULL_REQUEST_EVENT = "pull_request"


def attest_cmd(
    event: Path = typer.Option(
        ...,
        "--event",
        "-e",
        help="Path to the pull-request event payload (JSON).",
    ),
    commits: Path = typer.Option(
        ...,
        "--commits",
        "-c",
        help="Path to the pull request's commit list (JSON).",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the run outputs to this JSON file.",
    ),
    event_name: str = typer.Option(
        PULL_REQUEST_EVENT,
        "--event-name",
        envvar="GITHUB_EVENT_NAME",
        help="Name of the triggering event.",
    ),
    github_output: Optional[Path] = typer.Option(
        None,
        "--github-output",
        envvar="GITHUB_OUTPUT",
        help="Append outputs as key=value lines to this file.",
    ),
    private_key: Optional[str] = typer.Option(
        None,
        "--private-key",
        help="Funding credential (default: CONTRIBATTEST_PRIVATE_KEY).",
    ),
    network: Optional[str] = typer.Option(
        None, "--network", "-n", help="Ledger network: testnet or mainnet."
    ),
    failure_mode: Optional[str] = typer.Option(
        None,
        "--failure-mode",
        "-f",
        help="fail: abort on the first contributor error. warn: record it and continue.",
    ),
    min_deposit: Optional[str] = typer.Option(
        None, "--min-deposit", help="Deposit per write, overriding the network default."
    ),
    retry_attempts: Optional[str] = typer.Option(
        None, "--retry-attempts", help="Total attempts per ledger operation (1-10)."
    ),
    retry_delay: Optional[str] = typer.Option(
        None, "--retry-delay", help="Base retry delay in milliseconds (100-30000)."
    ),
    ledger_db: Optional[Path] = typer.Option(
        None, "--ledger", "-l", help="Path to the local ledger SQLite database."
    ),
) -> None:
    """Attest every contributor of a merged pull request on the ledger.

    Exits with code 1 and an ``Action failed`` message on any error.
    """
    config = load_config(
        private_key=private_key,
        network=network,
        failure_mode=failure_mode,
        min_deposit_amount=min_deposit,
        retry_attempts=retry_attempts,
        retry_delay_ms=retry_delay,
        ledger_path=ledger_db,
    )
    configure_logging(config.log_level, console)

    try:
        summary = _run(config, event, commits, event_name)
    except Exception as exc:
        console.print(f"[bold red]Action failed:[/bold red] {describe_error(exc)}")
        logger.debug("Action failed", exc_info=True)
        raise typer.Exit(code=1) from exc

    if summary is not None:
        outputs = summary.to_outputs()
        if output is not None:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(json.dumps(outputs, indent=2) + "\n", encoding="utf-8")
        if github_output is not None:
            with github_output.open("a", encoding="utf-8") as fh:
                for key, value in outputs.items():
                    fh.write(f"{key}={value}{os.linesep}")


def _run(
    config: AttestConfig, event: Path, commits: Path, event_name: str
) -> AttestationSummary | None:
    if event_name != PULL_REQUEST_EVENT:
        raise InvalidInputError(
            "This action must be triggered by a pull_request event "
            f"(current event: {event_name})"
        )

    observer = build_observer(config)
    provider = PullRequestEventProvider.from_files(event, commits, observer)
    if not provider.is_merged:
        console.print("Pull request is not merged yet. Skipping attestation creation.")
        return None

    console.print(
        Panel(
            "[bold]Contributor Attestation[/bold]",
            border_style="cyan",
            expand=True,
        )
    )
    settings = validate_config(config)
    console.print(f"[bold]Network:[/bold] {settings.network.value}")
    console.print(f"[bold]Failure mode:[/bold] {settings.failure_mode.value}")
    console.print(f"[bold]Retry attempts:[/bold] {settings.retry_attempts}")

    policy = settings.retry_policy()
    retry = RetryExecutor(observer)

    with LocalLedgerGateway(
        config.ledger_path, settings.private_key, settings.network_config()
    ) as gateway:
        console.print(f"[bold]Account:[/bold] {gateway.address()}")
        balance = retry.execute(gateway.balance, policy)
        console.print(f"[bold]Balance:[/bold] {format_amount(balance)}")

        project = provider.fetch_project_descriptor()
        validate_url(project.url)
        contributors = provider.fetch_contributors()
        if not contributors:
            console.print(
                "[yellow]No contributors found in this PR. Nothing to attest.[/yellow]"
            )
            return None

        orchestrator = AttestationOrchestrator(gateway, observer, retry=retry)
        summary = orchestrator.run(
            project, contributors, settings.failure_mode, policy
        )

        console.print()
        SummaryRenderer(console).print_summary(project.name, summary)

        final_balance = retry.execute(gateway.balance, policy)
        console.print(f"[bold]Final balance:[/bold] {format_amount(final_balance)}")

    console.print("[bold green]Attestation completed successfully[/bold green]")
    return summary
