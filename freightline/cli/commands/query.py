"""``freightline available`` and ``freightline history``: read-only views of a Stage."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from freightline.cli.context import fail, open_orchestrator, resolve_namespace
from freightline.cli.render import ResourceRenderer
from freightline.core.availability import (
    UnsupportedAvailabilityStrategyError,
    WarehouseNotFoundError,
)
from freightline.core.freight_store import StoreError
from freightline.core.orchestrator import StageNotFoundError

console = Console()


def available_cmd(
    ctx: typer.Context,
    stage: str = typer.Argument(..., help="Stage to list eligible Freight for."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace."),
    names_only: bool = typer.Option(
        False, "--names-only", help="Print one Freight name per line instead of a table."
    ),
) -> None:
    """List Freight that may be promoted into a Stage right now."""
    orchestrator = open_orchestrator(ctx)
    try:
        freight = orchestrator.list_available_freight(resolve_namespace(namespace), stage)
    except (
        StageNotFoundError,
        WarehouseNotFoundError,
        UnsupportedAvailabilityStrategyError,
        StoreError,
    ) as exc:
        fail(console, "Cannot list available Freight:", exc)

    if names_only:
        for f in freight:
            console.print(f.name)
        return
    if not freight:
        console.print(f"[dim]No Freight is available to Stage {stage}.[/dim]")
        return
    renderer = ResourceRenderer(console=console)
    console.print(renderer.freight_table(freight, title=f"Freight available to {stage}"))


def history_cmd(
    ctx: typer.Context,
    stage: str = typer.Argument(..., help="Stage whose history to show."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace."),
) -> None:
    """Show a Stage's recent Freight and verification attempts, newest first."""
    orchestrator = open_orchestrator(ctx)
    try:
        current = orchestrator.get_stage(resolve_namespace(namespace), stage)
    except (StageNotFoundError, StoreError) as exc:
        fail(console, "Cannot show history:", exc)
    ResourceRenderer(console=console).print_stage_history(current)
