"""SQLite-backed resource store for Freight, Warehouses and Stages.

Every resource is stored as a JSON document keyed by (kind, namespace, name)
together with an integer ``resource_version``. Writes are conditional on the
version the writer last read; a mismatch means someone else wrote first and
raises ``ConflictError``. Callers rerun their whole read-mutate-write cycle
through ``retry_on_conflict``.

Design:
- One table, one row per resource.
- Freight rows carry their origin Warehouse in an indexed column.
- WAL journal mode for concurrent readers.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict

from freightline.models.freight import Freight
from freightline.models.stage import Stage, Warehouse

logger = logging.getLogger(__name__)

R = TypeVar("R")

KIND_FREIGHT = "Freight"
KIND_WAREHOUSE = "Warehouse"
KIND_STAGE = "Stage"


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_RESOURCES = """
CREATE TABLE IF NOT EXISTS resources (
    kind              TEXT NOT NULL,
    namespace         TEXT NOT NULL,
    name              TEXT NOT NULL,
    resource_version  INTEGER NOT NULL DEFAULT 1,
    warehouse         TEXT NOT NULL DEFAULT '',
    body              TEXT NOT NULL,
    PRIMARY KEY (kind, namespace, name)
);
"""

_CREATE_IDX_WAREHOUSE = """
CREATE INDEX IF NOT EXISTS idx_freight_warehouse ON resources(kind, namespace, warehouse, name);
"""


class StoreError(RuntimeError):
    """Raised when a resource cannot be read or written."""


class ConflictError(StoreError):
    """Raised when a conditional write loses to a concurrent writer."""


class AlreadyExistsError(StoreError):
    """Raised when creating a resource whose name is already taken."""


class FreightQuery(BaseModel):
    """A predicate over the Freight of one Warehouse.

    Empty fields impose no constraint. ``verified_in`` requires verification
    in every listed Stage.
    """

    model_config = ConfigDict(frozen=True)

    namespace: str
    warehouse: str
    currently_in: str = ""
    approved_for: str = ""
    verified_in: list[str] = []

    def matches(self, freight: Freight) -> bool:
        if freight.namespace != self.namespace or freight.origin.name != self.warehouse:
            return False
        if self.currently_in and not freight.is_currently_in(self.currently_in):
            return False
        if self.approved_for and not freight.is_approved_for(self.approved_for):
            return False
        return all(freight.is_verified_in(stage) for stage in self.verified_in)


class FreightStore:
    """Versioned document store for engine resources.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_RESOURCES)
            conn.execute(_CREATE_IDX_WAREHOUSE)
            conn.commit()

    # ------------------------------------------------------------------
    # Freight
    # ------------------------------------------------------------------

    def create_freight(self, freight: Freight) -> Freight:
        """Persist new Freight. Raises ``AlreadyExistsError`` if the name is taken."""
        freight.resource_version = self._create(
            KIND_FREIGHT,
            freight.namespace,
            freight.name,
            _dump(freight),
            warehouse=freight.origin.name,
        )
        return freight

    def get_freight(self, namespace: str, name: str) -> Freight | None:
        row = self._get(KIND_FREIGHT, namespace, name)
        return _load(Freight, *row) if row else None

    def update_freight(self, freight: Freight) -> Freight:
        """Write back Freight read earlier. Raises ``ConflictError`` if it changed since."""
        freight.resource_version = self._update(
            KIND_FREIGHT, freight.namespace, freight.name, _dump(freight), freight.resource_version
        )
        return freight

    def list_freight(self, query: FreightQuery) -> list[Freight]:
        """Return Freight matching ``query``, ordered by name."""
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT resource_version, body FROM resources "
                    "WHERE kind = ? AND namespace = ? AND warehouse = ? ORDER BY name",
                    (KIND_FREIGHT, query.namespace, query.warehouse),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(
                f"Cannot list Freight of Warehouse {query.warehouse!r} "
                f"in namespace {query.namespace!r}: {exc}"
            ) from exc
        found = [_load(Freight, rv, body) for rv, body in rows]
        return [freight for freight in found if query.matches(freight)]

    # ------------------------------------------------------------------
    # Warehouses
    # ------------------------------------------------------------------

    def create_warehouse(self, warehouse: Warehouse) -> Warehouse:
        self._create(KIND_WAREHOUSE, warehouse.namespace, warehouse.name, _dump(warehouse))
        return warehouse

    def get_warehouse(self, namespace: str, name: str) -> Warehouse | None:
        row = self._get(KIND_WAREHOUSE, namespace, name)
        return _load(Warehouse, *row) if row else None

    def list_warehouses(self, namespace: str) -> list[Warehouse]:
        return [_load(Warehouse, rv, body) for rv, body in self._list(KIND_WAREHOUSE, namespace)]

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def create_stage(self, stage: Stage) -> Stage:
        stage.resource_version = self._create(KIND_STAGE, stage.namespace, stage.name, _dump(stage))
        return stage

    def get_stage(self, namespace: str, name: str) -> Stage | None:
        row = self._get(KIND_STAGE, namespace, name)
        return _load(Stage, *row) if row else None

    def update_stage(self, stage: Stage) -> Stage:
        stage.resource_version = self._update(
            KIND_STAGE, stage.namespace, stage.name, _dump(stage), stage.resource_version
        )
        return stage

    def list_stages(self, namespace: str) -> list[Stage]:
        return [_load(Stage, rv, body) for rv, body in self._list(KIND_STAGE, namespace)]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _create(
        self, kind: str, namespace: str, name: str, body: str, *, warehouse: str = ""
    ) -> int:
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO resources (kind, namespace, name, resource_version, warehouse, body) "
                    "VALUES (?, ?, ?, 1, ?, ?)",
                    (kind, namespace, name, warehouse, body),
                )
                conn.commit()
        except sqlite3.IntegrityError as exc:
            raise AlreadyExistsError(f"{kind} {namespace}/{name} already exists") from exc
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot create {kind} {namespace}/{name}: {exc}") from exc
        logger.debug("Created %s %s/%s", kind, namespace, name)
        return 1

    def _get(self, kind: str, namespace: str, name: str) -> tuple[int, str] | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT resource_version, body FROM resources "
                    "WHERE kind = ? AND namespace = ? AND name = ?",
                    (kind, namespace, name),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot read {kind} {namespace}/{name}: {exc}") from exc
        return (row[0], row[1]) if row else None

    def _update(
        self, kind: str, namespace: str, name: str, body: str, expected_version: int
    ) -> int:
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "UPDATE resources SET body = ?, resource_version = resource_version + 1 "
                    "WHERE kind = ? AND namespace = ? AND name = ? AND resource_version = ?",
                    (body, kind, namespace, name, expected_version),
                )
                conn.commit()
                updated = cursor.rowcount
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot update {kind} {namespace}/{name}: {exc}") from exc

        if updated == 0:
            if self._get(kind, namespace, name) is None:
                raise StoreError(f"{kind} {namespace}/{name} does not exist")
            raise ConflictError(
                f"{kind} {namespace}/{name} was modified concurrently "
                f"(expected resource_version {expected_version})"
            )
        return expected_version + 1

    def _list(self, kind: str, namespace: str) -> list[tuple[int, str]]:
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT resource_version, body FROM resources "
                    "WHERE kind = ? AND namespace = ? ORDER BY name",
                    (kind, namespace),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot list {kind} in namespace {namespace!r}: {exc}") from exc
        return [(row[0], row[1]) for row in rows]


def _dump(resource: BaseModel) -> str:
    return resource.model_dump_json(exclude={"resource_version"})


def _load(model: type[Any], resource_version: int, body: str) -> Any:
    data = json.loads(body)
    if "resource_version" in model.model_fields:
        data["resource_version"] = resource_version
    return model.model_validate(data)


def retry_on_conflict(fn: Callable[[], R], attempts: int = 5) -> R:
    """Run a read-mutate-write cycle, rerunning it whenever a write conflicts.

    ``fn`` must re-read everything it writes. The last ``ConflictError`` is
    re-raised once ``attempts`` runs have all conflicted.
    """
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except ConflictError as exc:
            if attempt == attempts:
                raise
            logger.warning("Write conflict (attempt %d/%d), retrying: %s", attempt, attempts, exc)
    raise ValueError(f"attempts must be positive, got {attempts}")
