"""``freightline warehouse-add`` and ``freightline stage-add``: register resources."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from freightline.cli.context import fail, open_orchestrator, resolve_namespace
from freightline.cli.parsing import parse_duration
from freightline.core.availability import WarehouseNotFoundError, resolve_strategy
from freightline.core.freight_store import StoreError
from freightline.models.freight import FreightOrigin
from freightline.models.stage import (
    FreightRequest,
    FreightSources,
    RepoSubscription,
    Stage,
    SubscriptionKind,
    Warehouse,
)

console = Console()


def warehouse_add_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Warehouse name."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace."),
    git: list[str] = typer.Option([], "--git", help="Git repository URL to subscribe to."),
    image: list[str] = typer.Option([], "--image", help="Image repository to subscribe to."),
    chart: list[str] = typer.Option(
        [], "--chart", help="Chart repository to subscribe to, as REPO_URL[#NAME]."
    ),
) -> None:
    """Register a Warehouse and the repositories it watches."""
    subscriptions = [RepoSubscription(kind=SubscriptionKind.GIT, repo_url=url) for url in git]
    subscriptions += [RepoSubscription(kind=SubscriptionKind.IMAGE, repo_url=url) for url in image]
    for ref in chart:
        repo_url, _, chart_name = ref.partition("#")
        subscriptions.append(
            RepoSubscription(kind=SubscriptionKind.CHART, repo_url=repo_url, name=chart_name)
        )

    warehouse = Warehouse(
        name=name, namespace=resolve_namespace(namespace), subscriptions=subscriptions
    )
    orchestrator = open_orchestrator(ctx)
    try:
        orchestrator.register_warehouse(warehouse)
    except StoreError as exc:
        fail(console, "Cannot register Warehouse:", exc)

    console.print(
        Panel(
            "\n".join([
                "[bold green]Warehouse registered[/bold green]",
                "",
                f"[bold]Name:[/bold]          {warehouse.name}",
                f"[bold]Namespace:[/bold]     {warehouse.namespace}",
                f"[bold]Subscriptions:[/bold] {len(subscriptions)}",
            ]),
            title="[bold]Freightline[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )


def stage_add_cmd(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Stage name."),
    warehouse: list[str] = typer.Option(
        ..., "--warehouse", "-w", help="Warehouse to request Freight from."
    ),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace."),
    direct: bool = typer.Option(
        False, "--direct", help="Accept Freight straight from the Warehouse."
    ),
    upstream: list[str] = typer.Option(
        [], "--upstream", "-u", help="Upstream Stage Freight must be verified in."
    ),
    soak: Optional[str] = typer.Option(
        None, "--soak", help="Required soak time in upstream Stages, e.g. 1h30m."
    ),
    strategy: str = typer.Option(
        "", "--strategy", help="Availability strategy across upstream Stages: All or OneOf."
    ),
) -> None:
    """Register a Stage and where it may obtain Freight."""
    if not direct and not upstream:
        raise typer.BadParameter("give --direct or at least one --upstream", param_hint="--upstream")
    try:
        resolve_strategy(strategy)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--strategy") from exc
    try:
        required_soak = parse_duration(soak) if soak else None
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--soak") from exc

    sources = FreightSources(
        direct=direct,
        stages=upstream,
        required_soak_time=required_soak,
        availability_strategy=strategy,
    )
    stage = Stage(
        name=name,
        namespace=resolve_namespace(namespace),
        requested_freight=[
            FreightRequest(origin=FreightOrigin(name=wh), sources=sources) for wh in warehouse
        ],
    )
    orchestrator = open_orchestrator(ctx)
    try:
        orchestrator.register_stage(stage)
    except (WarehouseNotFoundError, StoreError) as exc:
        fail(console, "Cannot register Stage:", exc)

    source_desc = "direct" if direct else ", ".join(upstream)
    console.print(
        Panel(
            "\n".join([
                "[bold green]Stage registered[/bold green]",
                "",
                f"[bold]Name:[/bold]       {stage.name}",
                f"[bold]Namespace:[/bold]  {stage.namespace}",
                f"[bold]Warehouses:[/bold] {', '.join(warehouse)}",
                f"[bold]Sources:[/bold]    {source_desc}",
            ]),
            title="[bold]Freightline[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
