"""``freightline promote`` and ``freightline verify``: move Freight through Stages."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from freightline.cli.context import fail, open_orchestrator, resolve_namespace
from freightline.core.availability import UnsupportedAvailabilityStrategyError
from freightline.core.freight_store import StoreError
from freightline.core.orchestrator import (
    FreightNotAvailableError,
    FreightNotFoundError,
    StageNotFoundError,
)
from freightline.models.history import AnalysisRunReference, VerificationInfo, VerificationPhase

console = Console()


def promote_cmd(
    ctx: typer.Context,
    stage: str = typer.Argument(..., help="Stage to promote into."),
    freight: str = typer.Argument(..., help="Freight name."),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace."),
) -> None:
    """Promote Freight into a Stage."""
    orchestrator = open_orchestrator(ctx)
    try:
        orchestrator.promote(resolve_namespace(namespace), stage, freight)
    except FreightNotAvailableError as exc:
        fail(console, "Promotion rejected:", exc)
    except (
        FreightNotFoundError,
        StageNotFoundError,
        UnsupportedAvailabilityStrategyError,
        StoreError,
    ) as exc:
        fail(console, "Cannot promote:", exc)
    console.print(f"[bold green]Promoted[/bold green] {freight} into Stage {stage}")


def verify_cmd(
    ctx: typer.Context,
    stage: str = typer.Argument(..., help="Stage the verification ran in."),
    verification_id: str = typer.Option(..., "--id", help="Verification ID."),
    phase: VerificationPhase = typer.Option(
        VerificationPhase.SUCCESSFUL, "--phase", "-p", help="Verification outcome."
    ),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace."),
    actor: str = typer.Option("", "--actor", help="Who or what ran the verification."),
    message: str = typer.Option("", "--message", "-m", help="Free-form outcome message."),
    analysis_run: Optional[str] = typer.Option(
        None, "--analysis-run", help="Name of the analysis run that performed it."
    ),
) -> None:
    """Record the outcome of a verification of a Stage's current Freight."""
    ns = resolve_namespace(namespace)
    orchestrator = open_orchestrator(ctx)
    now = orchestrator.tracker.now()
    finished = phase not in (VerificationPhase.PENDING, VerificationPhase.RUNNING)
    info = VerificationInfo(
        id=verification_id,
        actor=actor,
        start_time=now,
        finish_time=now if finished else None,
        phase=phase,
        message=message,
        analysis_run=(
            AnalysisRunReference(name=analysis_run, namespace=ns, phase=phase.value)
            if analysis_run
            else None
        ),
    )
    try:
        orchestrator.record_verification(ns, stage, info)
    except (FreightNotFoundError, StageNotFoundError, StoreError) as exc:
        fail(console, "Cannot record verification:", exc)
    console.print(
        f"Recorded verification [bold]{verification_id}[/bold] ({phase.value}) for Stage {stage}"
    )
