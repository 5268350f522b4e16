"""Rich terminal renderer for attestation summaries and ledger listings.

Color scheme
------------
- green   : created / succeeded
- cyan    : updated (stake added to an existing relationship)
- red     : failed
"""

from __future__ import annotations

from decimal import Decimal

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from contribattest.models.results import AttestationSummary, ContributorOutcome

WEI_PER_TOKEN = Decimal(10) ** 18


def format_amount(wei: int) -> str:
    """Render an amount as ``"<wei> wei (<tokens> tokens)"``."""
    tokens = (Decimal(wei) / WEI_PER_TOKEN).normalize()
    return f"{wei} wei ({tokens:f} tokens)"


def _status_cell(outcome: ContributorOutcome) -> str:
    if not outcome.success:
        return "[bold red]FAILED[/bold red]"
    if outcome.relationship_result and outcome.relationship_result.existed_before:
        return "[cyan]UPDATED[/cyan]"
    return "[green]CREATED[/green]"


class SummaryRenderer:
    """Renders ``AttestationSummary`` and ledger rows as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Attestation summary
    # ------------------------------------------------------------------

    def render_summary(self, repository: str, summary: AttestationSummary) -> Panel:
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("#", justify="right", width=3)
        table.add_column("Contributor", style="cyan", min_width=16)
        table.add_column("Commits", justify="right", width=8)
        table.add_column("Status", justify="center", width=10)
        table.add_column("Cost (wei)", justify="right")
        table.add_column("Detail", ratio=1)

        for idx, outcome in enumerate(summary.results, start=1):
            cost = sum(
                r.cost
                for r in (outcome.subject_result, outcome.relationship_result)
                if r is not None
            )
            detail = (
                outcome.error_message or ""
                if not outcome.success
                else outcome.contributor.profile_url
            )
            table.add_row(
                str(idx),
                outcome.contributor.label,
                str(outcome.contributor.commit_count),
                _status_cell(outcome),
                str(cost),
                detail,
            )

        lines = [
            f"[bold]Repository:[/bold] {repository}",
            f"[bold]Project subject:[/bold] {summary.project_subject_id}",
            "",
            f"[bold]Contributors:[/bold] {summary.contributor_count} total, "
            f"[green]{summary.success_count} processed[/green]"
            + (
                f", [red]{summary.failure_count} failed[/red]"
                if summary.failure_count
                else ""
            ),
            f"[bold]Attestations:[/bold] [green]{summary.created_count} created[/green], "
            f"[cyan]{summary.updated_count} updated[/cyan]",
            f"[bold]Transactions:[/bold] {len(summary.tx_refs)}",
        ]
        lines.extend(f"  [dim]- {ref}[/dim]" for ref in summary.tx_refs)
        lines.append(f"[bold]Total cost:[/bold] {format_amount(summary.total_cost)}")

        return Panel(
            Group(table, Text(""), Text.from_markup("\n".join(lines))),
            title="[bold]Contributor Attestation Summary[/bold]",
            border_style="red" if summary.failure_count else "green",
            padding=(1, 2),
        )

    def print_summary(self, repository: str, summary: AttestationSummary) -> None:
        self.console.print(self.render_summary(repository, summary))

    # ------------------------------------------------------------------
    # Ledger listings
    # ------------------------------------------------------------------

    def render_subjects(self, rows: list[dict]) -> Table:
        table = Table(title="Subjects", expand=True)
        table.add_column("Block", justify="right", width=6)
        table.add_column("Name", style="cyan")
        table.add_column("URL")
        table.add_column("Stake (wei)", justify="right")
        table.add_column("Id", style="dim", max_width=20, overflow="ellipsis")
        for row in rows:
            table.add_row(
                str(row["block"]), row["name"], row["url"], str(row["stake"]), row["subject_id"]
            )
        return table

    def render_relationships(self, rows: list[dict], names: dict[str, str]) -> Table:
        table = Table(title="Relationships", expand=True)
        table.add_column("Block", justify="right", width=6)
        table.add_column("Subject", style="cyan")
        table.add_column("Object", style="cyan")
        table.add_column("Stake (wei)", justify="right")
        table.add_column("Id", style="dim", max_width=20, overflow="ellipsis")
        for row in rows:
            table.add_row(
                str(row["block"]),
                names.get(row["subject_id"], row["subject_id"]),
                names.get(row["object_id"], row["object_id"]),
                str(row["stake"]),
                row["relationship_id"],
            )
        return table
