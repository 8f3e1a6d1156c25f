"""Main Typer application: imports and registers all CLI commands.

Entry point: ``freightline`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from freightline.cli.commands.freight import approve_cmd, freight_id_cmd, publish_cmd
from freightline.cli.commands.promotion import promote_cmd, verify_cmd
from freightline.cli.commands.query import available_cmd, history_cmd
from freightline.cli.commands.resources import stage_add_cmd, warehouse_add_cmd
from freightline.config import config

app = typer.Typer(
    name="freightline",
    help="Freightline: Freight identity, lifecycle and availability for GitOps promotion.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    store: Optional[Path] = typer.Option(
        None,
        "--store",
        envvar="FREIGHTLINE_STORE_PATH",
        help="Path to the store database.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    """Freightline command-line interface."""
    level = logging.DEBUG if verbose or config.debug else config.log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.obj = {"store_path": store or config.store_path}


# Register subcommands
app.command(name="warehouse-add", help="Register a Warehouse.")(warehouse_add_cmd)
app.command(name="stage-add", help="Register a Stage.")(stage_add_cmd)
app.command(name="publish", help="Publish artifacts as Freight.")(publish_cmd)
app.command(name="approve", help="Approve Freight for a Stage.")(approve_cmd)
app.command(name="promote", help="Promote Freight into a Stage.")(promote_cmd)
app.command(name="verify", help="Record a verification result for a Stage.")(verify_cmd)
app.command(name="available", help="List Freight available to a Stage.")(available_cmd)
app.command(name="history", help="Show a Stage's Freight and verification history.")(history_cmd)
app.command(name="freight-id", help="Compute a Freight ID without publishing.")(freight_id_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
