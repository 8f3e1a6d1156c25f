"""Warehouse and Stage models.

A Warehouse subscribes to artifact repositories and produces Freight. A Stage
requests Freight from one or more Warehouses, either directly or once it has
been verified in upstream Stages.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from freightline.core.urls import normalize_chart, normalize_git, normalize_image
from freightline.models.freight import FreightOrigin
from freightline.models.history import FreightReferenceStack, VerificationInfoStack


class AvailabilityStrategy(str, Enum):
    """How Freight verified in several upstream Stages qualifies downstream.

    An empty strategy string is treated as ``ONE_OF``.
    """

    ALL = "All"
    ONE_OF = "OneOf"


# ---------------------------------------------------------------------------
# Warehouse
# ---------------------------------------------------------------------------


class SubscriptionKind(str, Enum):
    GIT = "git"
    IMAGE = "image"
    CHART = "chart"


_NORMALIZERS = {
    SubscriptionKind.GIT: normalize_git,
    SubscriptionKind.IMAGE: normalize_image,
    SubscriptionKind.CHART: normalize_chart,
}


class RepoSubscription(BaseModel):
    """A single repository a Warehouse watches for new artifacts."""

    model_config = ConfigDict(frozen=True)

    kind: SubscriptionKind
    repo_url: str
    name: str = ""  # chart name, for classic chart repositories

    def matches(self, kind: SubscriptionKind, repo_url: str, name: str = "") -> bool:
        if kind != self.kind:
            return False
        if kind == SubscriptionKind.CHART and name != self.name:
            return False
        normalize = _NORMALIZERS[kind]
        return normalize(self.repo_url) == normalize(repo_url)


class Warehouse(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str = "default"
    subscriptions: list[RepoSubscription] = []

    @property
    def origin(self) -> FreightOrigin:
        return FreightOrigin(name=self.name)

    def subscribes_to(self, kind: SubscriptionKind | str, repo_url: str, name: str = "") -> bool:
        """Whether any subscription points at ``repo_url``, however it is spelled.

        Charts also match on ``name``, which is empty for OCI repositories.
        """
        kind = SubscriptionKind(kind)
        return any(sub.matches(kind, repo_url, name) for sub in self.subscriptions)


# ---------------------------------------------------------------------------
# Stage
# ---------------------------------------------------------------------------


class FreightSources(BaseModel):
    """Where a Stage may obtain Freight of one origin.

    Parameters
    ----------
    direct:
        Freight may come straight from the origin Warehouse.
    stages:
        Upstream Stages in which Freight must have been verified.
    required_soak_time:
        Minimum continuous time Freight must have spent in an upstream Stage
        after verification there.
    availability_strategy:
        ``"All"`` or ``"OneOf"``; empty means ``"OneOf"``.
    """

    model_config = ConfigDict(frozen=True)

    direct: bool = False
    stages: list[str] = []
    required_soak_time: timedelta | None = None
    availability_strategy: str = ""


class FreightRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    origin: FreightOrigin
    sources: FreightSources = FreightSources()


class StageStatus(BaseModel):
    freight_history: FreightReferenceStack = Field(default_factory=FreightReferenceStack)
    verification_history: VerificationInfoStack = Field(
        default_factory=VerificationInfoStack
    )


class Stage(BaseModel):
    """A deployment target in the promotion pipeline."""

    name: str = Field(frozen=True)
    namespace: str = Field(default="default", frozen=True)
    requested_freight: list[FreightRequest] = Field(default_factory=list, frozen=True)
    status: StageStatus = Field(default_factory=StageStatus)
    resource_version: int = 0

    def requests_for(self, origin: FreightOrigin) -> list[FreightRequest]:
        return [req for req in self.requested_freight if req.origin == origin]
