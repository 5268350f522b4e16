"""contribattest CLI: Typer-based command-line interface.

Provides the ``contribattest`` command with subcommands for attesting the
contributors of a merged pull request and for inspecting and funding the
local ledger.

All human-facing output uses Rich for formatted terminal display.
"""
