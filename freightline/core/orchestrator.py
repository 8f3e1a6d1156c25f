"""Promotion orchestrator: the central coordinator for Freightline.

The Orchestrator wires together the FreightStore, LifecycleTracker and
AvailabilityResolver, standing in for the Warehouse and Stage reconciliation
loops: it publishes Freight, records approvals, promotions and verification
results, and answers which Freight a Stage may take next.

Every mutation is a read-mutate-write cycle run under ``retry_on_conflict``,
so concurrent callers converge instead of overwriting one another.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from freightline.config import EngineConfig
from freightline.core.availability import (
    AvailabilityResolver,
    WarehouseNotFoundError,
    is_freight_available,
    resolve_strategy,
)
from freightline.core.freight_store import AlreadyExistsError, FreightStore, retry_on_conflict
from freightline.core.lifecycle import LifecycleTracker
from freightline.models.freight import Artifact, Chart, Freight, FreightOrigin, GitCommit, Image
from freightline.models.history import FreightReference, VerificationInfo, VerificationPhase
from freightline.models.stage import Stage, SubscriptionKind, Warehouse

logger = logging.getLogger(__name__)

R = TypeVar("R")


class StageNotFoundError(LookupError):
    """Raised when an operation names a Stage that does not exist."""


class FreightNotFoundError(LookupError):
    """Raised when an operation names Freight that does not exist."""


class FreightNotAvailableError(ValueError):
    """Raised when promoting Freight the Stage is not eligible to receive."""


class UnsubscribedArtifactError(ValueError):
    """Raised when publishing an artifact from a repository the Warehouse does not watch."""


class Orchestrator:
    """Central promotion orchestrator.

    Parameters
    ----------
    store:
        Resource store. Opened at ``engine_config.store_path`` if not given.
    engine_config:
        Engine settings. Uses environment-driven defaults if not provided.
    tracker:
        Lifecycle tracker, and with it the clock used for every timestamp.
    """

    def __init__(
        self,
        store: FreightStore | None = None,
        *,
        engine_config: EngineConfig | None = None,
        tracker: LifecycleTracker | None = None,
    ) -> None:
        self.config = engine_config or EngineConfig()
        self.store = store or FreightStore(self.config.store_path)
        self.tracker = tracker or LifecycleTracker()
        self.resolver = AvailabilityResolver(self.store, self.tracker)

    def _retry(self, fn: Callable[[], R]) -> R:
        return retry_on_conflict(fn, attempts=self.config.conflict_retries)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_warehouse(self, namespace: str, name: str) -> Warehouse:
        warehouse = self.store.get_warehouse(namespace, name)
        if warehouse is None:
            raise WarehouseNotFoundError(f"Warehouse {name!r} not found in namespace {namespace!r}")
        return warehouse

    def get_stage(self, namespace: str, name: str) -> Stage:
        stage = self.store.get_stage(namespace, name)
        if stage is None:
            raise StageNotFoundError(f"Stage {name!r} not found in namespace {namespace!r}")
        return stage

    def get_freight(self, namespace: str, name: str) -> Freight:
        freight = self.store.get_freight(namespace, name)
        if freight is None:
            raise FreightNotFoundError(f"Freight {name!r} not found in namespace {namespace!r}")
        return freight

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_warehouse(self, warehouse: Warehouse) -> Warehouse:
        self.store.create_warehouse(warehouse)
        logger.info("Registered Warehouse %s/%s", warehouse.namespace, warehouse.name)
        return warehouse

    def register_stage(self, stage: Stage) -> Stage:
        """Persist a new Stage.

        Every Warehouse it requests Freight from must exist and every
        availability strategy must be supported.
        """
        for request in stage.requested_freight:
            self.get_warehouse(stage.namespace, request.origin.name)
            resolve_strategy(request.sources.availability_strategy)
        self.store.create_stage(stage)
        logger.info("Registered Stage %s/%s", stage.namespace, stage.name)
        return stage

    # ------------------------------------------------------------------
    # Freight
    # ------------------------------------------------------------------

    def publish_freight(
        self,
        namespace: str,
        origin: FreightOrigin,
        commits: Iterable[GitCommit] = (),
        images: Iterable[Image] = (),
        charts: Iterable[Chart] = (),
        artifacts: Iterable[Artifact] = (),
    ) -> Freight:
        """Record newly discovered artifacts as Freight.

        Artifacts already published under the same origin, in any order,
        resolve to the existing Freight, which is returned unchanged.

        Raises ``UnsubscribedArtifactError`` if a commit, image or chart comes
        from a repository the Warehouse does not subscribe to.
        """
        warehouse = self.get_warehouse(namespace, origin.name)
        freight = Freight(
            namespace=namespace,
            origin=origin,
            commits=list(commits),
            images=list(images),
            charts=list(charts),
            artifacts=list(artifacts),
        )
        _check_subscriptions(warehouse, freight)
        existing = self.store.get_freight(namespace, freight.name)
        if existing is not None:
            logger.debug("Freight %s/%s already published", namespace, freight.name)
            return existing
        try:
            self.store.create_freight(freight)
        except AlreadyExistsError:
            # Lost a race with another publisher of the same content.
            return self.get_freight(namespace, freight.name)
        logger.info("Published Freight %s/%s from %s", namespace, freight.name, origin)
        return freight

    def approve_freight(self, namespace: str, freight_name: str, stage_name: str) -> Freight:
        """Manually approve Freight for a Stage, bypassing verification and soak time."""
        self.get_stage(namespace, stage_name)

        def _approve() -> Freight:
            freight = self.get_freight(namespace, freight_name)
            self.tracker.add_approved_stage(freight.status, stage_name)
            return self.store.update_freight(freight)

        freight = self._retry(_approve)
        logger.info("Approved Freight %s/%s for Stage %s", namespace, freight_name, stage_name)
        return freight

    # ------------------------------------------------------------------
    # Promotion
    # ------------------------------------------------------------------

    def promote(self, namespace: str, stage_name: str, freight_name: str) -> Stage:
        """Make ``freight_name`` the Freight currently used by ``stage_name``.

        A reference to the Freight is pushed onto the Stage's Freight history
        in one conditional write, so concurrent promotions into the same Stage
        are serialized. Only then do the entering and the previously current
        Freight have their ``currently_in`` entries brought in line with the
        Stage, the leaving one folding its soak into its verification record.

        Raises ``FreightNotAvailableError`` if the Stage may not take the
        Freight.
        """

        def _record() -> tuple[Stage, str]:
            stage = self.get_stage(namespace, stage_name)
            freight = self.get_freight(namespace, freight_name)
            if not is_freight_available(stage, freight, self.tracker):
                raise FreightNotAvailableError(
                    f"Freight {freight_name!r} is not available to Stage {stage_name!r}"
                )
            previous, found = stage.status.freight_history.current()
            stage.status.freight_history.push(FreightReference.from_freight(freight))
            return self.store.update_stage(stage), previous.name if found else ""

        promoted, previous = self._retry(_record)
        self._sync_current_stage(namespace, stage_name, freight_name)
        if previous and previous != freight_name:
            self._sync_current_stage(namespace, stage_name, previous)
        logger.info("Promoted Freight %s/%s into Stage %s", namespace, freight_name, stage_name)
        return promoted

    def _sync_current_stage(self, namespace: str, stage_name: str, freight_name: str) -> None:
        """Set the Freight's ``currently_in`` entry for the Stage from the Stage's history.

        The Freight is read before the Stage and always written back, so a
        sync working from an older Stage read conflicts with any sync that
        saw a newer one.
        """

        def _sync() -> None:
            freight = self.store.get_freight(namespace, freight_name)
            if freight is None:
                return
            stage = self.get_stage(namespace, stage_name)
            current, found = stage.status.freight_history.current()
            if found and current.name == freight_name:
                self.tracker.add_current_stage(freight.status, stage_name, self.tracker.now())
            elif freight.is_currently_in(stage_name):
                self.tracker.remove_current_stage(freight.status, stage_name)
                logger.debug("Freight %s/%s left Stage %s", namespace, freight_name, stage_name)
            self.store.update_freight(freight)

        self._retry(_sync)

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def record_verification(
        self, namespace: str, stage_name: str, info: VerificationInfo
    ) -> Stage:
        """Record a verification attempt in the Stage's verification history.

        A newer report for the same verification ID replaces the older one.
        A ``Successful`` result marks the Stage's current Freight verified.
        """

        def _record() -> Stage:
            stage = self.get_stage(namespace, stage_name)
            stage.status.verification_history.update_or_push(info)
            return self.store.update_stage(stage)

        stage = self._retry(_record)
        logger.info(
            "Recorded verification %s (%s) for Stage %s/%s",
            info.id, info.phase.value if info.phase else "unknown", namespace, stage_name,
        )

        if info.phase is VerificationPhase.SUCCESSFUL:
            current, found = stage.status.freight_history.current()
            if found:
                verified_at = info.finish_time or self.tracker.now()

                def _verify() -> Freight:
                    freight = self.get_freight(namespace, current.name)
                    self.tracker.add_verified_stage(freight.status, stage_name, verified_at)
                    return self.store.update_freight(freight)

                self._retry(_verify)
                logger.info(
                    "Freight %s/%s verified in Stage %s", namespace, current.name, stage_name
                )
        return stage

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def list_available_freight(self, namespace: str, stage_name: str) -> list[Freight]:
        """Freight that may be promoted into ``stage_name`` right now."""
        return self.resolver.list_freight_available_to_stage(self.get_stage(namespace, stage_name))


def _check_subscriptions(warehouse: Warehouse, freight: Freight) -> None:
    refs = [(SubscriptionKind.GIT, c.repo_url, "") for c in freight.commits]
    refs += [(SubscriptionKind.IMAGE, i.repo_url, "") for i in freight.images]
    refs += [(SubscriptionKind.CHART, c.repo_url, c.name) for c in freight.charts]
    for kind, repo_url, name in refs:
        if not warehouse.subscribes_to(kind, repo_url, name):
            shown = f"{repo_url}#{name}" if name else repo_url
            raise UnsubscribedArtifactError(
                f"Warehouse {warehouse.namespace}/{warehouse.name} does not subscribe "
                f"to {kind.value} repository {shown!r}"
            )
