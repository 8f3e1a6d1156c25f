"""Shared test fixtures for Freightline."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from freightline.config import EngineConfig
from freightline.core.freight_store import FreightStore
from freightline.core.lifecycle import LifecycleTracker
from freightline.core.orchestrator import Orchestrator
from freightline.models.freight import Freight, FreightOrigin, GitCommit, Image
from freightline.models.stage import RepoSubscription, SubscriptionKind, Warehouse

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """A settable clock for deterministic soak-time tests."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        self.current += delta if delta is not None else timedelta(**kwargs)
        return self.current


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test databases."""
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(clock: FakeClock) -> LifecycleTracker:
    """Provide a LifecycleTracker driven by the fake clock."""
    return LifecycleTracker(clock=clock)


@pytest.fixture
def store(tmp_dir: Path) -> FreightStore:
    """Provide a fresh FreightStore backed by a temp SQLite database."""
    return FreightStore(tmp_dir / "store.db")


@pytest.fixture
def engine_config(tmp_dir: Path) -> EngineConfig:
    return EngineConfig(store_path=tmp_dir / "store.db", conflict_retries=5)


@pytest.fixture
def orchestrator(
    store: FreightStore, tracker: LifecycleTracker, engine_config: EngineConfig
) -> Orchestrator:
    """Provide an Orchestrator wired to the test store and fake clock."""
    return Orchestrator(store, engine_config=engine_config, tracker=tracker)


@pytest.fixture
def warehouse() -> Warehouse:
    return Warehouse(
        name="w1",
        namespace="default",
        subscriptions=[
            RepoSubscription(kind=SubscriptionKind.GIT, repo_url="https://github.com/example/app"),
            RepoSubscription(kind=SubscriptionKind.IMAGE, repo_url="ghcr.io/example/app"),
        ],
    )


# ---------------------------------------------------------------------------
# Freight factory shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_freight() -> Callable[..., Freight]:
    """Factory fixture: build Freight from warehouse ``w1`` with one commit."""

    def _factory(
        commit_id: str = "abc123",
        warehouse: str = "w1",
        namespace: str = "default",
        **overrides: Any,
    ) -> Freight:
        defaults: dict[str, Any] = {
            "namespace": namespace,
            "origin": FreightOrigin(name=warehouse),
            "commits": [GitCommit(repo_url="https://github.com/example/app", id=commit_id)],
            "images": [Image(repo_url="ghcr.io/example/app", tag="v1", digest="sha256:aaa")],
        }
        defaults.update(overrides)
        return Freight(**defaults)

    return _factory
