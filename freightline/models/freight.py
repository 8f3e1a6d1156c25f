"""Freight models: content-identified bundles of artifact references.

A Freight's content (origin plus artifacts) is frozen once created. Only its
``status`` mutates, and only through the lifecycle tracker or the metadata
helpers below.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from pydantic_core import to_json

from freightline.core.hasher import generate_freight_id


class MetadataDecodeError(ValueError):
    """Raised when stored Freight metadata cannot be decoded into the requested type."""


class FreightOriginKind(str, Enum):
    """Kinds of resources that can produce Freight."""

    WAREHOUSE = "Warehouse"


class FreightOrigin(BaseModel):
    """Identifies the Warehouse (or other producer) a piece of Freight came from."""

    model_config = ConfigDict(frozen=True)

    kind: FreightOriginKind = FreightOriginKind.WAREHOUSE
    name: str

    def __str__(self) -> str:
        return f"{self.kind.value}/{self.name}"


# ---------------------------------------------------------------------------
# Artifact references
# ---------------------------------------------------------------------------


class GitCommit(BaseModel):
    """A specific commit from a specific Git repository."""

    model_config = ConfigDict(frozen=True)

    repo_url: str
    id: str = ""
    branch: str = ""
    tag: str = ""  # tag that matched selection criteria and resolved to this commit
    message: str = ""  # subject line only
    author: str = ""
    committer: str = ""


class Image(BaseModel):
    """A specific version of a container image."""

    model_config = ConfigDict(frozen=True)

    repo_url: str
    tag: str = ""
    digest: str = ""
    git_repo_url: str = ""  # source repository, when it could be inferred


class Chart(BaseModel):
    """A specific version of a Helm chart.

    For OCI registries the chart is addressed entirely by ``repo_url`` and
    ``name`` is left empty.
    """

    model_config = ConfigDict(frozen=True)

    repo_url: str
    name: str = ""
    version: str = ""


class Artifact(BaseModel):
    """A generic, subscription-defined artifact reference."""

    model_config = ConfigDict(frozen=True)

    artifact_type: str
    subscription_name: str
    version: str
    metadata: dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


class CurrentStage(BaseModel):
    """A Stage's current use of a piece of Freight."""

    since: datetime | None = None  # most recent time the Stage started using it


class VerifiedStage(BaseModel):
    """A Stage in which a piece of Freight has been verified.

    ``longest_completed_soak`` is the longest interval of continuous use that
    has already ended. It is updated as Freight exits the Stage; an ongoing
    soak may currently exceed it.
    """

    verified_at: datetime | None = None
    longest_completed_soak: timedelta | None = None


class ApprovedStage(BaseModel):
    """A Stage for which a piece of Freight was manually approved."""

    approved_at: datetime | None = None


class FreightStatus(BaseModel):
    """Mutable per-Stage bookkeeping attached 1:1 to a piece of Freight.

    The three maps are keyed by Stage name; membership is decided by key
    presence alone.
    """

    currently_in: dict[str, CurrentStage] = Field(default_factory=dict)
    verified_in: dict[str, VerifiedStage] = Field(default_factory=dict)
    approved_for: dict[str, ApprovedStage] = Field(default_factory=dict)
    metadata: dict[str, str] = Field(default_factory=dict)  # key -> JSON document

    def upsert_metadata(self, key: str, value: Any) -> None:
        """Store ``value`` as a JSON document under ``key``, replacing any previous value."""
        if not key:
            raise ValueError("Freight metadata key must not be empty")
        self.metadata[key] = to_json(value).decode("utf-8")

    def get_metadata(self, key: str, type_: Any = Any) -> tuple[Any, bool]:
        """Return ``(value, found)`` for ``key``, decoding into ``type_``.

        Raises ``MetadataDecodeError`` if the stored document does not decode
        into the requested type.
        """
        raw = self.metadata.get(key)
        if raw is None:
            return None, False
        try:
            return TypeAdapter(type_).validate_json(raw), True
        except ValidationError as exc:
            raise MetadataDecodeError(
                f"Freight metadata {key!r} cannot be decoded as {type_!r}: {exc}"
            ) from exc


# ---------------------------------------------------------------------------
# Freight
# ---------------------------------------------------------------------------


class Freight(BaseModel):
    """A named, namespaced, content-identified bundle of artifacts.

    ``name`` defaults to the computed ID. Content fields are frozen; only
    ``status`` and ``resource_version`` may change after creation.
    """

    name: str = Field(default="", frozen=True)
    namespace: str = Field(default="default", frozen=True)
    origin: FreightOrigin = Field(frozen=True)
    commits: list[GitCommit] = Field(default_factory=list, frozen=True)
    images: list[Image] = Field(default_factory=list, frozen=True)
    charts: list[Chart] = Field(default_factory=list, frozen=True)
    artifacts: list[Artifact] = Field(default_factory=list, frozen=True)
    status: FreightStatus = Field(default_factory=FreightStatus)
    resource_version: int = 0  # set by the store, not part of identity

    @model_validator(mode="after")
    def _default_name_to_id(self) -> Freight:
        if not self.name:
            object.__setattr__(self, "name", self.id)
        return self

    @property
    def id(self) -> str:
        """Deterministic ID derived from origin and artifacts."""
        return generate_freight_id(self)

    def is_currently_in(self, stage: str) -> bool:
        return stage in self.status.currently_in

    def is_verified_in(self, stage: str) -> bool:
        return stage in self.status.verified_in

    def is_approved_for(self, stage: str) -> bool:
        return stage in self.status.approved_for
