"""``freightline publish``, ``freightline approve`` and ``freightline freight-id``.

``publish`` records a set of artifacts as Freight from a Warehouse; the same
set published twice, in any order, yields the same Freight. ``freight-id``
computes that identity without touching the store.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from freightline.cli.context import fail, open_orchestrator, resolve_namespace
from freightline.cli.parsing import (
    as_parameter,
    parse_artifact,
    parse_chart,
    parse_commit,
    parse_image,
)
from freightline.cli.render import ResourceRenderer
from freightline.core.availability import WarehouseNotFoundError
from freightline.core.freight_store import StoreError
from freightline.core.hasher import freight_hash_parts
from freightline.core.orchestrator import (
    FreightNotFoundError,
    StageNotFoundError,
    UnsubscribedArtifactError,
)
from freightline.models.freight import Freight, FreightOrigin

console = Console()

_COMMIT_HELP = "Git commit as REPO_URL@COMMIT_ID[#TAG]."
_IMAGE_HELP = "Container image as REPO[:TAG][@DIGEST]."
_CHART_HELP = "Helm chart as REPO_URL[#NAME]@VERSION."
_ARTIFACT_HELP = "Generic artifact as TYPE:SUBSCRIPTION:VERSION."


def publish_cmd(
    ctx: typer.Context,
    warehouse: str = typer.Argument(..., help="Warehouse the artifacts were discovered by."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace."),
    commit: list[str] = typer.Option([], "--commit", help=_COMMIT_HELP),
    image: list[str] = typer.Option([], "--image", help=_IMAGE_HELP),
    chart: list[str] = typer.Option([], "--chart", help=_CHART_HELP),
    artifact: list[str] = typer.Option([], "--artifact", help=_ARTIFACT_HELP),
) -> None:
    """Publish discovered artifacts as Freight and print its name."""
    commits = as_parameter(parse_commit, commit, "--commit")
    images = as_parameter(parse_image, image, "--image")
    charts = as_parameter(parse_chart, chart, "--chart")
    artifacts = as_parameter(parse_artifact, artifact, "--artifact")

    orchestrator = open_orchestrator(ctx)
    try:
        freight = orchestrator.publish_freight(
            resolve_namespace(namespace),
            FreightOrigin(name=warehouse),
            commits=commits,
            images=images,
            charts=charts,
            artifacts=artifacts,
        )
    except (WarehouseNotFoundError, UnsubscribedArtifactError, StoreError) as exc:
        fail(console, "Cannot publish Freight:", exc)

    renderer = ResourceRenderer(console=console)
    console.print(renderer.freight_panel(freight, "Freight published"))
    # Print the name plainly for scripting
    console.print(freight.name)


def approve_cmd(
    ctx: typer.Context,
    freight: str = typer.Argument(..., help="Freight name."),
    stage: str = typer.Option(..., "--stage", "-s", help="Stage to approve the Freight for."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace."),
) -> None:
    """Manually approve Freight for a Stage."""
    orchestrator = open_orchestrator(ctx)
    try:
        orchestrator.approve_freight(resolve_namespace(namespace), freight, stage)
    except (FreightNotFoundError, StageNotFoundError, StoreError) as exc:
        fail(console, "Cannot approve Freight:", exc)
    console.print(f"[bold green]Approved[/bold green] {freight} for Stage {stage}")


def freight_id_cmd(
    warehouse: str = typer.Argument(..., help="Warehouse the artifacts come from."),
    commit: list[str] = typer.Option([], "--commit", help=_COMMIT_HELP),
    image: list[str] = typer.Option([], "--image", help=_IMAGE_HELP),
    chart: list[str] = typer.Option([], "--chart", help=_CHART_HELP),
    artifact: list[str] = typer.Option([], "--artifact", help=_ARTIFACT_HELP),
    show_parts: bool = typer.Option(
        False, "--show-parts", help="Also print the canonical parts that were hashed."
    ),
) -> None:
    """Compute the Freight ID of a set of artifacts without publishing it."""
    freight = Freight(
        origin=FreightOrigin(name=warehouse),
        commits=as_parameter(parse_commit, commit, "--commit"),
        images=as_parameter(parse_image, image, "--image"),
        charts=as_parameter(parse_chart, chart, "--chart"),
        artifacts=as_parameter(parse_artifact, artifact, "--artifact"),
    )
    if show_parts:
        for part in freight_hash_parts(freight):
            console.print(f"[dim]{part}[/dim]", soft_wrap=True)
    console.print(freight.id)
