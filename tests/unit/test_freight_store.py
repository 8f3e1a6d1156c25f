"""Tests for the SQLite resource store and optimistic concurrency."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from freightline.core.freight_store import (
    AlreadyExistsError,
    ConflictError,
    FreightQuery,
    FreightStore,
    StoreError,
    retry_on_conflict,
)
from freightline.models.history import FreightReference
from freightline.models.stage import Stage, Warehouse


class TestFreightRecords:
    def test_create_sets_version(self, store: FreightStore, make_freight):
        freight = store.create_freight(make_freight())
        assert freight.resource_version == 1

    def test_get_round_trip(self, store: FreightStore, make_freight, tracker):
        freight = make_freight()
        tracker.add_approved_stage(freight.status, "prod")
        store.create_freight(freight)
        loaded = store.get_freight("default", freight.name)
        assert loaded is not None
        assert loaded.id == freight.id
        assert loaded.is_approved_for("prod")
        assert loaded.resource_version == 1

    def test_get_missing(self, store: FreightStore):
        assert store.get_freight("default", "nope") is None

    def test_duplicate_create_rejected(self, store: FreightStore, make_freight):
        store.create_freight(make_freight())
        with pytest.raises(AlreadyExistsError):
            store.create_freight(make_freight())

    def test_namespaces_are_separate(self, store: FreightStore, make_freight):
        store.create_freight(make_freight(namespace="a"))
        store.create_freight(make_freight(namespace="b"))
        assert store.get_freight("a", make_freight().name) is not None

    def test_update_bumps_version(self, store: FreightStore, make_freight, tracker):
        freight = store.create_freight(make_freight())
        tracker.add_verified_stage(freight.status, "qa")
        updated = store.update_freight(freight)
        assert updated.resource_version == 2
        assert store.get_freight("default", freight.name).is_verified_in("qa")

    def test_stale_update_conflicts(self, store: FreightStore, make_freight, tracker):
        created = store.create_freight(make_freight())
        first = store.get_freight("default", created.name)
        second = store.get_freight("default", created.name)
        tracker.add_verified_stage(first.status, "qa")
        store.update_freight(first)
        tracker.add_approved_stage(second.status, "prod")
        with pytest.raises(ConflictError):
            store.update_freight(second)
        # The losing write left no trace.
        assert not store.get_freight("default", created.name).is_approved_for("prod")

    def test_update_missing_is_store_error(self, store: FreightStore, make_freight):
        with pytest.raises(StoreError) as excinfo:
            store.update_freight(make_freight())
        assert not isinstance(excinfo.value, ConflictError)


class TestFreightQuery:
    @pytest.fixture
    def seeded(self, store: FreightStore, make_freight, tracker):
        f1 = make_freight("c1")
        tracker.add_approved_stage(f1.status, "prod")
        f2 = make_freight("c2")
        tracker.add_verified_stage(f2.status, "qa")
        tracker.add_current_stage(f2.status, "qa")
        f3 = make_freight("c3")
        tracker.add_verified_stage(f3.status, "qa")
        tracker.add_verified_stage(f3.status, "staging")
        other = make_freight("c4", warehouse="w2")
        for freight in (f1, f2, f3, other):
            store.create_freight(freight)
        return f1, f2, f3, other

    def _names(self, store: FreightStore, **kwargs) -> set[str]:
        query = FreightQuery(namespace="default", warehouse="w1", **kwargs)
        return {f.name for f in store.list_freight(query)}

    def test_all_from_warehouse(self, store, seeded):
        f1, f2, f3, _ = seeded
        assert self._names(store) == {f1.name, f2.name, f3.name}

    def test_approved_for(self, store, seeded):
        assert self._names(store, approved_for="prod") == {seeded[0].name}

    def test_verified_in_requires_every_stage(self, store, seeded):
        _, f2, f3, _ = seeded
        assert self._names(store, verified_in=["qa"]) == {f2.name, f3.name}
        assert self._names(store, verified_in=["qa", "staging"]) == {f3.name}

    def test_currently_in(self, store, seeded):
        assert self._names(store, currently_in="qa") == {seeded[1].name}

    def test_results_sorted_by_name(self, store, seeded):
        query = FreightQuery(namespace="default", warehouse="w1")
        names = [f.name for f in store.list_freight(query)]
        assert names == sorted(names)


class TestOtherResources:
    def test_warehouse_round_trip(self, store: FreightStore, warehouse: Warehouse):
        store.create_warehouse(warehouse)
        assert store.get_warehouse("default", "w1") == warehouse
        assert store.list_warehouses("default") == [warehouse]
        assert store.get_warehouse("other", "w1") is None

    def test_stage_update_keeps_history(self, store: FreightStore, make_freight):
        stage = store.create_stage(Stage(name="qa"))
        stage.status.freight_history.push(FreightReference.from_freight(make_freight()))
        store.update_stage(stage)
        loaded = store.get_stage("default", "qa")
        assert len(loaded.status.freight_history) == 1
        assert loaded.resource_version == 2
        assert [s.name for s in store.list_stages("default")] == ["qa"]


class TestStoreFailures:
    def test_unreadable_database_raises_store_error(self, tmp_path: Path):
        store = FreightStore(tmp_path / "store.db")
        with sqlite3.connect(str(tmp_path / "store.db")) as conn:
            conn.execute("DROP TABLE resources")
        with pytest.raises(StoreError):
            store.get_freight("default", "x")
        with pytest.raises(StoreError):
            store.list_freight(FreightQuery(namespace="default", warehouse="w1"))


class TestRetryOnConflict:
    def test_returns_first_success(self):
        assert retry_on_conflict(lambda: 42) == 42

    def test_retries_until_success(self):
        calls = []

        def flaky() -> str:
            calls.append(1)
            if len(calls) < 3:
                raise ConflictError("busy")
            return "done"

        assert retry_on_conflict(flaky, attempts=5) == "done"
        assert len(calls) == 3

    def test_gives_up_after_attempts(self):
        calls = []

        def always() -> None:
            calls.append(1)
            raise ConflictError("busy")

        with pytest.raises(ConflictError):
            retry_on_conflict(always, attempts=3)
        assert len(calls) == 3

    def test_other_errors_propagate_immediately(self):
        calls = []

        def broken() -> None:
            calls.append(1)
            raise StoreError("disk gone")

        with pytest.raises(StoreError):
            retry_on_conflict(broken, attempts=3)
        assert len(calls) == 1
