"""Which Freight may be promoted into a Stage right now.

Eligibility comes from three sources: manual approval for the Stage,
verification in upstream Stages (under an ``All`` or ``OneOf`` strategy),
and an optional minimum soak time in those upstream Stages. Approval always
bypasses verification and soak requirements.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from pydantic import BaseModel, ConfigDict

from freightline.core.freight_store import FreightQuery, FreightStore, StoreError
from freightline.core.lifecycle import LifecycleTracker
from freightline.models.freight import Freight
from freightline.models.stage import AvailabilityStrategy, FreightSources, Stage, Warehouse

logger = logging.getLogger(__name__)


class UnsupportedAvailabilityStrategyError(ValueError):
    """Raised for an availability strategy other than ``All`` or ``OneOf``."""


class WarehouseNotFoundError(LookupError):
    """Raised when a Stage requests Freight from a Warehouse that does not exist."""


class ListWarehouseFreightOptions(BaseModel):
    """Eligibility policy for listing a Warehouse's Freight.

    Parameters
    ----------
    approved_for:
        Freight approved for this Stage is eligible regardless of
        verification or soak time.
    verified_in:
        Freight verified in these Stages is eligible, subject to
        ``availability_strategy`` and ``required_soak_time``.
    availability_strategy:
        ``"All"`` (verified in every listed Stage) or ``"OneOf"`` (any one).
        Empty means ``"OneOf"``.
    required_soak_time:
        Minimum continuous soak in a qualifying upstream Stage.
    currently_in:
        Restrict results to Freight currently used by this Stage.
    """

    model_config = ConfigDict(frozen=True)

    approved_for: str = ""
    verified_in: list[str] = []
    availability_strategy: str = ""
    required_soak_time: timedelta | None = None
    currently_in: str = ""


def resolve_strategy(value: str) -> AvailabilityStrategy:
    """Map a strategy string to ``AvailabilityStrategy``; empty means ``ONE_OF``."""
    if not value:
        return AvailabilityStrategy.ONE_OF
    try:
        return AvailabilityStrategy(value)
    except ValueError as exc:
        raise UnsupportedAvailabilityStrategyError(
            f"unsupported availability strategy {value!r}"
        ) from exc


def build_queries(
    warehouse: Warehouse,
    options: ListWarehouseFreightOptions,
    strategy: AvailabilityStrategy,
) -> list[FreightQuery]:
    """Independent predicates whose union is the candidate Freight."""
    base = {
        "namespace": warehouse.namespace,
        "warehouse": warehouse.name,
        "currently_in": options.currently_in,
    }
    if not options.approved_for and not options.verified_in:
        return [FreightQuery(**base)]

    queries = []
    if options.approved_for:
        queries.append(FreightQuery(**base, approved_for=options.approved_for))
    # An All predicate over no Stages would match the whole Warehouse, so
    # none is added; this agrees with is_freight_available.
    if options.verified_in:
        if strategy is AvailabilityStrategy.ALL:
            queries.append(FreightQuery(**base, verified_in=list(options.verified_in)))
        else:
            queries.extend(FreightQuery(**base, verified_in=[stage]) for stage in options.verified_in)
    return queries


class AvailabilityResolver:
    """Answers availability queries against a ``FreightStore``.

    Parameters
    ----------
    store:
        Where Freight, Warehouses and Stages are read from.
    tracker:
        Supplies soak-time math and the clock. Defaults to a wall-clock
        ``LifecycleTracker``.
    """

    def __init__(self, store: FreightStore, tracker: LifecycleTracker | None = None) -> None:
        self._store = store
        self._tracker = tracker or LifecycleTracker()

    def list_freight_from_warehouse(
        self,
        warehouse: Warehouse,
        options: ListWarehouseFreightOptions | None = None,
    ) -> list[Freight]:
        """Freight from ``warehouse`` eligible under ``options``, sorted by name.

        Raises ``UnsupportedAvailabilityStrategyError`` before querying if the
        strategy is not recognized.
        """
        options = options or ListWarehouseFreightOptions()
        strategy = resolve_strategy(options.availability_strategy)

        by_name: dict[str, Freight] = {}
        for query in build_queries(warehouse, options, strategy):
            logger.debug("Listing Freight: %s", query)
            try:
                matches = self._store.list_freight(query)
            except StoreError as exc:
                raise StoreError(
                    f"error listing Freight for Warehouse {warehouse.name!r} "
                    f"in namespace {warehouse.namespace!r}: {exc}"
                ) from exc
            for freight in matches:
                by_name.setdefault(freight.name, freight)
        candidates = [by_name[name] for name in sorted(by_name)]

        if not options.verified_in or options.required_soak_time is None:
            return candidates
        return [f for f in candidates if self._passes_soak(f, options, strategy)]

    def _passes_soak(
        self,
        freight: Freight,
        options: ListWarehouseFreightOptions,
        strategy: AvailabilityStrategy,
    ) -> bool:
        if options.approved_for and freight.is_approved_for(options.approved_for):
            return True
        qualified = [
            self._tracker.has_soaked_in(freight.status, stage, options.required_soak_time)
            for stage in options.verified_in
        ]
        if strategy is AvailabilityStrategy.ALL:
            return all(qualified)
        return any(qualified)

    def list_freight_available_to_stage(self, stage: Stage) -> list[Freight]:
        """All Freight any of ``stage``'s requests currently allow, sorted by name."""
        by_name: dict[str, Freight] = {}
        for request in stage.requested_freight:
            warehouse = self._store.get_warehouse(stage.namespace, request.origin.name)
            if warehouse is None:
                raise WarehouseNotFoundError(
                    f"Warehouse {request.origin.name!r} not found in namespace {stage.namespace!r}"
                )
            options = None
            if not request.sources.direct:
                options = ListWarehouseFreightOptions(
                    approved_for=stage.name,
                    verified_in=request.sources.stages,
                    availability_strategy=request.sources.availability_strategy,
                    required_soak_time=request.sources.required_soak_time,
                )
            for freight in self.list_freight_from_warehouse(warehouse, options):
                by_name.setdefault(freight.name, freight)
        return [by_name[name] for name in sorted(by_name)]


def _sources_satisfied(
    freight: Freight, sources: FreightSources, tracker: LifecycleTracker
) -> bool:
    if sources.direct:
        return True
    strategy = resolve_strategy(sources.availability_strategy)
    qualified = [
        freight.is_verified_in(upstream)
        and tracker.has_soaked_in(freight.status, upstream, sources.required_soak_time)
        for upstream in sources.stages
    ]
    if strategy is AvailabilityStrategy.ALL:
        return bool(qualified) and all(qualified)
    return any(qualified)


def is_freight_available(
    stage: Stage | None,
    freight: Freight | None,
    tracker: LifecycleTracker | None = None,
) -> bool:
    """Whether ``freight`` may be promoted into ``stage``, from in-memory state alone."""
    if stage is None or freight is None or stage.namespace != freight.namespace:
        return False
    if freight.is_approved_for(stage.name):
        return True
    tracker = tracker or LifecycleTracker()
    return any(
        _sources_satisfied(freight, request.sources, tracker)
        for request in stage.requests_for(freight.origin)
    )
