"""State shared by every CLI command: where the store lives and how to fail."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from freightline.config import EngineConfig, config
from freightline.core.freight_store import FreightStore
from freightline.core.orchestrator import Orchestrator


def store_path(ctx: typer.Context) -> Path:
    obj = ctx.obj or {}
    return Path(obj.get("store_path") or config.store_path)


def open_orchestrator(ctx: typer.Context) -> Orchestrator:
    path = store_path(ctx)
    engine_config = EngineConfig(store_path=path)
    return Orchestrator(FreightStore(path), engine_config=engine_config)


def resolve_namespace(namespace: str | None) -> str:
    return namespace or config.default_namespace


def fail(console: Console, message: str, exc: Exception | None = None) -> NoReturn:
    """Print an error and exit with status 1."""
    detail = f" {exc}" if exc is not None else ""
    console.print(f"[bold red]{message}[/bold red]{detail}")
    raise typer.Exit(code=1)
