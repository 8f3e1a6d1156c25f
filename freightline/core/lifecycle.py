"""Per-Stage lifecycle bookkeeping on a Freight's status.

Tracks which Stages are currently using a piece of Freight, which have
verified it, and which have approved it, along with how long it has soaked
in each verified Stage.

Every operation works on an in-memory ``FreightStatus`` snapshot and never
raises. Persisting the snapshot, and retrying on a concurrent write, is the
caller's job (see ``freightline.core.freight_store.retry_on_conflict``).

Soak time is measured against an injected clock. The default is the wall
clock, so two hosts with skewed clocks can disagree about elapsed time; a
negative elapsed time is counted as zero.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from freightline.models.freight import (
    ApprovedStage,
    CurrentStage,
    FreightStatus,
    VerifiedStage,
)

Clock = Callable[[], datetime]

_ZERO = timedelta(0)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleTracker:
    """Applies Stage lifecycle transitions to ``FreightStatus`` records.

    Parameters
    ----------
    clock:
        Zero-argument callable returning the current time as an aware
        ``datetime``. Defaults to ``utc_now``.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def _elapsed_since(self, since: datetime | None) -> timedelta:
        if since is None:
            return _ZERO
        return max(self._clock() - since, _ZERO)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    @staticmethod
    def is_currently_in(status: FreightStatus, stage: str) -> bool:
        return stage in status.currently_in

    @staticmethod
    def is_verified_in(status: FreightStatus, stage: str) -> bool:
        return stage in status.verified_in

    @staticmethod
    def is_approved_for(status: FreightStatus, stage: str) -> bool:
        return stage in status.approved_for

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def add_current_stage(
        self, status: FreightStatus, stage: str, since: datetime | None = None
    ) -> None:
        """Record that ``stage`` started using the Freight.

        A Stage already using the Freight keeps its original ``since`` so
        its soak clock is not reset.
        """
        if stage not in status.currently_in:
            status.currently_in[stage] = CurrentStage(since=since or self._clock())

    def remove_current_stage(self, status: FreightStatus, stage: str) -> None:
        """Record that ``stage`` stopped using the Freight.

        If the Freight was verified in ``stage``, the just-completed stretch
        of use is folded into ``longest_completed_soak`` (max, not sum).
        """
        current = status.currently_in.get(stage)
        if current is None:
            return
        verified = status.verified_in.get(stage)
        if verified is not None:
            soak = self._elapsed_since(current.since)
            longest = verified.longest_completed_soak or _ZERO
            verified.longest_completed_soak = max(longest, soak)
        del status.currently_in[stage]

    def add_verified_stage(
        self, status: FreightStatus, stage: str, verified_at: datetime | None = None
    ) -> None:
        """Mark the Freight verified in ``stage``; the first verification wins."""
        if stage not in status.verified_in:
            status.verified_in[stage] = VerifiedStage(verified_at=verified_at or self._clock())

    def add_approved_stage(
        self, status: FreightStatus, stage: str, approved_at: datetime | None = None
    ) -> None:
        """Mark the Freight approved for ``stage``; the first approval wins."""
        if stage not in status.approved_for:
            status.approved_for[stage] = ApprovedStage(approved_at=approved_at or self._clock())

    # ------------------------------------------------------------------
    # Soak time
    # ------------------------------------------------------------------

    def get_longest_soak(self, status: FreightStatus, stage: str) -> timedelta:
        """Longest continuous use of the Freight in ``stage`` since verification.

        Zero for Freight not verified in ``stage``. Ongoing use counts, so
        Freight still in the Stage accrues credit before it leaves.
        """
        verified = status.verified_in.get(stage)
        if verified is None:
            return _ZERO
        longest = verified.longest_completed_soak or _ZERO
        current = status.currently_in.get(stage)
        if current is not None:
            longest = max(longest, self._elapsed_since(current.since))
        return longest

    def has_soaked_in(
        self,
        status: FreightStatus | None,
        stage: str,
        min_duration: timedelta | None,
    ) -> bool:
        """Whether the Freight has soaked in ``stage`` for at least ``min_duration``.

        No requirement (``None`` or zero) is always satisfied. A missing
        status never is.
        """
        if status is None:
            return False
        if not min_duration:
            return True
        return self.get_longest_soak(status, stage) >= min_duration
