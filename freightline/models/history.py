"""Bounded, most-recent-first history stacks kept on a Stage's status.

Two mutation entry points are offered and they are deliberately distinct:

- ``push`` prepends blindly. Every entry is kept, repeats included.
- ``update_or_push`` first drops any existing entry with the same key, then
  prepends. An item therefore appears at most once, at its newest position.

Both truncate to ``MAX_HISTORY_DEPTH`` entries, discarding the oldest.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Generic, Iterator, TypeVar

from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator

from freightline.models.freight import (
    Artifact,
    Chart,
    Freight,
    FreightOrigin,
    GitCommit,
    Image,
)

MAX_HISTORY_DEPTH = 10

T = TypeVar("T", bound=BaseModel)


class FreightReference(BaseModel):
    """Lightweight snapshot of a piece of Freight, as recorded in Stage history."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    origin: FreightOrigin | None = None
    commits: list[GitCommit] = []
    images: list[Image] = []
    charts: list[Chart] = []
    artifacts: list[Artifact] = []

    @classmethod
    def from_freight(cls, freight: Freight) -> FreightReference:
        return cls(
            name=freight.name,
            origin=freight.origin,
            commits=list(freight.commits),
            images=list(freight.images),
            charts=list(freight.charts),
            artifacts=list(freight.artifacts),
        )


class VerificationPhase(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCESSFUL = "Successful"
    FAILED = "Failed"
    ERROR = "Error"
    ABORTED = "Aborted"
    INCONCLUSIVE = "Inconclusive"


_NON_TERMINAL_PHASES = frozenset({VerificationPhase.PENDING, VerificationPhase.RUNNING})


class AnalysisRunReference(BaseModel):
    """Points at the analysis run that carried out a verification."""

    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str = "default"
    phase: str = ""


class VerificationInfo(BaseModel):
    """One verification attempt of a Stage's current Freight."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    actor: str = ""
    start_time: datetime | None = None
    finish_time: datetime | None = None
    phase: VerificationPhase | None = None
    message: str = ""
    analysis_run: AnalysisRunReference | None = None

    @property
    def is_terminal(self) -> bool:
        """True once the attempt has reached a final outcome."""
        return self.phase is not None and self.phase not in _NON_TERMINAL_PHASES

    def has_analysis_run(self) -> bool:
        return self.analysis_run is not None


# ---------------------------------------------------------------------------
# Stacks
# ---------------------------------------------------------------------------


class HistoryStack(RootModel[list[T]], Generic[T]):
    """Common behaviour of the Stage history stacks.

    Subclasses set ``item_type`` (used to build the zero value returned from
    an empty stack) and implement ``_key``.
    """

    root: list[T] = Field(default_factory=list)

    item_type: ClassVar[type[BaseModel]]

    @model_validator(mode="before")
    @classmethod
    def _none_is_empty(cls, data: Any) -> Any:
        # An absent history deserializes as an empty stack.
        return [] if data is None else data

    @staticmethod
    def _key(item: T) -> str:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.root)

    def __iter__(self) -> Iterator[T]:  # type: ignore[override]
        return iter(self.root)

    def __getitem__(self, index: int) -> T:
        return self.root[index]

    def empty(self) -> bool:
        return len(self.root) == 0

    def top(self) -> tuple[T, bool]:
        """Return a copy of the newest entry without removing it."""
        if not self.root:
            return self.item_type(), False  # type: ignore[return-value]
        return self.root[0].model_copy(deep=True), True

    def pop(self) -> tuple[T, bool]:
        """Remove and return the newest entry."""
        if not self.root:
            return self.item_type(), False  # type: ignore[return-value]
        return self.root.pop(0), True

    def push(self, *items: T) -> None:
        """Prepend ``items`` in the order given, keeping any duplicates."""
        self.root = [*items, *self.root][:MAX_HISTORY_DEPTH]

    def update_or_push(self, *items: T) -> None:
        """Replace entries sharing a key with ``items`` and move them to the front."""
        keys = {self._key(item) for item in items}
        kept = [entry for entry in self.root if self._key(entry) not in keys]
        self.root = [*items, *kept][:MAX_HISTORY_DEPTH]


class FreightReferenceStack(HistoryStack[FreightReference]):
    """Recent Freight used by a Stage, keyed by Freight name."""

    item_type: ClassVar[type[BaseModel]] = FreightReference

    @staticmethod
    def _key(item: FreightReference) -> str:
        return item.name

    def current(self) -> tuple[FreightReference, bool]:
        """The Freight the Stage is currently using, if any."""
        return self.top()


class VerificationInfoStack(HistoryStack[VerificationInfo]):
    """Recent verification attempts of a Stage, keyed by verification ID."""

    item_type: ClassVar[type[BaseModel]] = VerificationInfo

    @staticmethod
    def _key(item: VerificationInfo) -> str:
        return item.id

    def current(self) -> tuple[VerificationInfo, bool]:
        """The most recent verification attempt, if any."""
        return self.top()
