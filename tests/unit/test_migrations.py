"""Tests for the migration registry, version store, runner and built-in catalog."""

from __future__ import annotations

import pytest

from checklistdb.migration.catalog import BUILTIN_MIGRATIONS, default_registry
from checklistdb.migration.registry import (
    Migration,
    MigrationContext,
    MigrationRegistry,
    RegistryOrderError,
)
from checklistdb.migration.runner import MigrationRunner
from checklistdb.migration.version_store import CorruptVersionMarkerError, VersionStore
from checklistdb.models.version import InvalidVersionError
from checklistdb.storage.adapter import StoreNotFoundError, StoreUnavailableError
from checklistdb.storage.layout import InvalidTenantIdError, contact_path, version_path
from checklistdb.storage.memory import InMemoryDocumentStore
from tests.conftest import (
    StepRecorder,
    seed_healthy_tenant,
    seed_preferences,
    seed_version,
    seed_year,
)


async def _noop(ctx: MigrationContext) -> None:
    return None


class FlakyStore(InMemoryDocumentStore):
    """Fails the next commit with the configured error."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_next: Exception | None = None

    def _apply(self, ops):
        if self.fail_next is not None:
            exc, self.fail_next = self.fail_next, None
            raise exc
        super()._apply(ops)


class UnreadableVersionStore(InMemoryDocumentStore):
    def __init__(self, exc: Exception) -> None:
        super().__init__()
        self.exc = exc

    async def get(self, path: str):
        if path.endswith("/system/version"):
            raise self.exc
        return await super().get(path)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestMigrationRegistry:
    def test_sorted_numerically_at_construction(self) -> None:
        registry = MigrationRegistry([
            Migration("1.10.0", "c", _noop),
            Migration("1.2.0", "b", _noop),
            Migration("1.0.0", "a", _noop),
        ])
        assert registry.versions == ["1.0.0", "1.2.0", "1.10.0"]
        assert registry.latest == "1.10.0"
        assert len(registry) == 3

    def test_require_ordered_rejects_out_of_order(self) -> None:
        with pytest.raises(RegistryOrderError, match="strictly increasing"):
            MigrationRegistry(
                [Migration("1.1.0", "b", _noop), Migration("1.0.0", "a", _noop)],
                require_ordered=True,
            )

    def test_duplicates_rejected(self) -> None:
        with pytest.raises(RegistryOrderError, match="Duplicate"):
            MigrationRegistry([Migration("1.0", "a", _noop), Migration("1.0.0", "b", _noop)])

    def test_malformed_version_rejected(self) -> None:
        with pytest.raises(InvalidVersionError):
            MigrationRegistry([Migration("one", "a", _noop)])

    def test_empty_registry(self) -> None:
        registry = MigrationRegistry([])
        assert registry.latest == "0.0.0"
        assert registry.after("0.0.0") == []

    def test_lookup_helpers(self, small_registry: MigrationRegistry) -> None:
        assert small_registry.get("1.1").version == "1.1.0"
        assert small_registry.get("9.9.9") is None
        assert [m.version for m in small_registry.after("1.0.0")] == ["1.1.0", "1.2.0"]
        assert small_registry.previous("1.2.0") == "1.1.0"
        assert small_registry.previous("1.0.0") == "0.0.0"

    def test_builtin_registry(self) -> None:
        registry = default_registry()
        assert registry.versions == ["1.0.0", "1.1.0", "1.2.0", "1.3.0"]
        assert [m.reversible for m in BUILTIN_MIGRATIONS] == [False, True, False, False]


# ---------------------------------------------------------------------------
# Version store
# ---------------------------------------------------------------------------


class TestVersionStore:
    async def test_missing_marker_is_zero(self, store: InMemoryDocumentStore, tenant_id: str) -> None:
        assert await VersionStore(store).get_version(tenant_id) == "0.0.0"

    async def test_set_then_get(self, store: InMemoryDocumentStore, tenant_id: str) -> None:
        versions = VersionStore(store)
        await versions.set_version(tenant_id, "1.2.0")
        assert await versions.get_version(tenant_id) == "1.2.0"
        data = (await store.get(version_path(tenant_id))).data
        assert data["updatedAt"] is not None

    async def test_set_merges(self, store: InMemoryDocumentStore, tenant_id: str) -> None:
        store.put(version_path(tenant_id), {"version": "1.0.0", "owner": "ops"})
        await VersionStore(store).set_version(tenant_id, "1.1.0")
        data = (await store.get(version_path(tenant_id))).data
        assert data["owner"] == "ops"
        assert data["version"] == "1.1.0"

    async def test_not_found_error_means_zero(self, tenant_id: str) -> None:
        store = UnreadableVersionStore(StoreNotFoundError("gone"))
        assert await VersionStore(store).get_version(tenant_id) == "0.0.0"

    async def test_transport_failure_is_wrapped(self, tenant_id: str) -> None:
        store = UnreadableVersionStore(ConnectionError("down"))
        with pytest.raises(StoreUnavailableError):
            await VersionStore(store).get_version(tenant_id)

    async def test_caller_errors(self, store: InMemoryDocumentStore) -> None:
        versions = VersionStore(store)
        with pytest.raises(InvalidTenantIdError):
            await versions.get_version("")
        with pytest.raises(InvalidVersionError):
            await versions.set_version("t1", "1.x")
        assert store.commit_count == 0

    async def test_corrupt_marker_raises_data_state_error(
        self, store: InMemoryDocumentStore, tenant_id: str
    ) -> None:
        seed_version(store, "v2-beta")
        with pytest.raises(CorruptVersionMarkerError) as info:
            await VersionStore(store).get_version(tenant_id)
        assert info.value.tenant_id == tenant_id
        assert info.value.raw == "v2-beta"
        assert not isinstance(info.value, ValueError)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class TestRunAll:
    async def test_runs_pending_in_order(
        self,
        store: InMemoryDocumentStore,
        tenant_id: str,
        small_registry: MigrationRegistry,
        recorder: StepRecorder,
    ) -> None:
        runner = MigrationRunner(store, small_registry)
        result = await runner.run_all(tenant_id)

        assert result.success
        assert result.migrations_run == 3
        assert result.errors == []
        assert result.final_version == "1.2.0"
        assert recorder.calls == ["apply 1.0.0", "apply 1.1.0", "apply 1.2.0"]
        assert await runner.versions.get_version(tenant_id) == "1.2.0"

        history = await runner.history(tenant_id)
        assert [(e.version, e.success) for e in history] == [
            ("1.0.0", True), ("1.1.0", True), ("1.2.0", True),
        ]

    async def test_only_newer_migrations_run(
        self,
        store: InMemoryDocumentStore,
        tenant_id: str,
        small_registry: MigrationRegistry,
        recorder: StepRecorder,
    ) -> None:
        seed_version(store, "1.1.0")
        runner = MigrationRunner(store, small_registry)
        assert [m.version for m in await runner.pending_migrations(tenant_id)] == ["1.2.0"]
        result = await runner.run_all(tenant_id)
        assert result.migrations_run == 1
        assert recorder.calls == ["apply 1.2.0"]

    async def test_up_to_date_is_a_no_op(
        self, store: InMemoryDocumentStore, tenant_id: str, small_registry: MigrationRegistry
    ) -> None:
        seed_version(store, "1.2.0")
        runner = MigrationRunner(store, small_registry)
        assert not await runner.needs_migration(tenant_id)
        result = await runner.run_all(tenant_id)
        assert result.success
        assert result.migrations_run == 0
        assert result.final_version == "1.2.0"
        assert store.commit_count == 0

    async def test_stops_on_first_failure(
        self, store: InMemoryDocumentStore, tenant_id: str, recorder: StepRecorder
    ) -> None:
        registry = MigrationRegistry([
            Migration("1.0.0", "a", recorder.step("A")),
            Migration("1.1.0", "b", recorder.step("B", fail=True)),
            Migration("1.2.0", "c", recorder.step("C")),
        ])
        runner = MigrationRunner(store, registry)
        result = await runner.run_all(tenant_id)

        assert not result.success
        assert result.migrations_run == 1
        assert result.final_version == "1.0.0"
        assert result.errors == ["Migration 1.1.0 failed: B exploded"]
        assert recorder.calls == ["A", "B"]
        assert await runner.versions.get_version(tenant_id) == "1.0.0"

        history = await runner.history(tenant_id)
        assert [(e.version, e.success, e.error) for e in history] == [
            ("1.0.0", True, None),
            ("1.1.0", False, "B exploded"),
        ]

    async def test_resume_after_failure(
        self, store: InMemoryDocumentStore, tenant_id: str
    ) -> None:
        attempts = {"count": 0}

        async def flaky(ctx: MigrationContext) -> None:
            attempts["count"] += 1
            if attempts["count"] == 1:
                raise RuntimeError("transient")

        registry = MigrationRegistry([
            Migration("1.0.0", "a", _noop),
            Migration("1.1.0", "b", flaky),
        ])
        runner = MigrationRunner(store, registry)
        first = await runner.run_all(tenant_id)
        second = await runner.run_all(tenant_id)
        assert first.final_version == "1.0.0"
        assert second.success
        assert second.migrations_run == 1
        assert second.final_version == "1.1.0"

    async def test_version_never_regresses(
        self, store: InMemoryDocumentStore, tenant_id: str, small_registry: MigrationRegistry
    ) -> None:
        seed_version(store, "5.0.0")
        runner = MigrationRunner(store, small_registry)
        result = await runner.run_all(tenant_id)
        assert result.migrations_run == 0
        assert await runner.versions.get_version(tenant_id) == "5.0.0"

    async def test_version_write_failure_stops_run(self, tenant_id: str) -> None:
        store = FlakyStore()
        registry = MigrationRegistry([Migration("1.0.0", "a", _noop)])
        store.fail_next = ConnectionError("network down")
        result = await MigrationRunner(store, registry).run_all(tenant_id)
        assert not result.success
        assert result.migrations_run == 0
        assert result.final_version == "0.0.0"
        assert "network down" in result.errors[0]

    async def test_history_write_failure_is_reported(self, tenant_id: str) -> None:
        store = FlakyStore()
        registry = MigrationRegistry([Migration("1.0.0", "a", _noop)])
        runner = MigrationRunner(store, registry)

        original = runner.versions.set_version

        async def set_then_break(tenant: str, version: str) -> None:
            await original(tenant, version)
            store.fail_next = ConnectionError("history unavailable")

        runner.versions.set_version = set_then_break
        result = await runner.run_all(tenant_id)
        assert result.migrations_run == 1
        assert result.final_version == "1.0.0"
        assert not result.success
        assert any("Failed to record history for 1.0.0" in e for e in result.errors)

    async def test_invalid_tenant_raises_before_io(
        self, store: InMemoryDocumentStore, small_registry: MigrationRegistry
    ) -> None:
        with pytest.raises(InvalidTenantIdError):
            await MigrationRunner(store, small_registry).run_all("  ")
        assert store.paths() == []

    async def test_corrupt_marker_is_reported_not_raised(
        self,
        store: InMemoryDocumentStore,
        tenant_id: str,
        small_registry: MigrationRegistry,
        recorder: StepRecorder,
    ) -> None:
        seed_version(store, "v2-beta")
        commits = store.commit_count
        result = await MigrationRunner(store, small_registry).run_all(tenant_id)
        assert not result.success
        assert result.migrations_run == 0
        assert len(result.errors) == 1
        assert "v2-beta" in result.errors[0]
        assert recorder.calls == []
        assert store.commit_count == commits


class TestRunOne:
    async def test_runs_named_migration(
        self,
        store: InMemoryDocumentStore,
        tenant_id: str,
        small_registry: MigrationRegistry,
        recorder: StepRecorder,
    ) -> None:
        runner = MigrationRunner(store, small_registry)
        outcome = await runner.run_one(tenant_id, "1.1.0")
        assert outcome.success
        assert outcome.error is None
        assert recorder.calls == ["apply 1.1.0"]
        assert await runner.versions.get_version(tenant_id) == "1.1.0"

    async def test_does_not_lower_version(
        self, store: InMemoryDocumentStore, tenant_id: str, small_registry: MigrationRegistry
    ) -> None:
        seed_version(store, "1.2.0")
        runner = MigrationRunner(store, small_registry)
        assert (await runner.run_one(tenant_id, "1.0.0")).success
        assert await runner.versions.get_version(tenant_id) == "1.2.0"

    async def test_not_found(
        self, store: InMemoryDocumentStore, tenant_id: str, small_registry: MigrationRegistry
    ) -> None:
        outcome = await MigrationRunner(store, small_registry).run_one(tenant_id, "3.0.0")
        assert not outcome.success
        assert outcome.error == "Migration 3.0.0 not found"

    async def test_failure_recorded(
        self, store: InMemoryDocumentStore, tenant_id: str, recorder: StepRecorder
    ) -> None:
        registry = MigrationRegistry([Migration("1.0.0", "a", recorder.step("A", fail=True))])
        runner = MigrationRunner(store, registry)
        outcome = await runner.run_one(tenant_id, "1.0.0")
        assert not outcome.success
        assert outcome.error == "A exploded"
        history = await runner.history(tenant_id)
        assert [(e.version, e.success) for e in history] == [("1.0.0", False)]
        assert await runner.versions.get_version(tenant_id) == "0.0.0"

    async def test_malformed_version_raises(
        self, store: InMemoryDocumentStore, tenant_id: str, small_registry: MigrationRegistry
    ) -> None:
        with pytest.raises(InvalidVersionError):
            await MigrationRunner(store, small_registry).run_one(tenant_id, "latest")

    async def test_corrupt_marker_stops_before_apply(
        self,
        store: InMemoryDocumentStore,
        tenant_id: str,
        small_registry: MigrationRegistry,
        recorder: StepRecorder,
    ) -> None:
        seed_version(store, "v2-beta")
        outcome = await MigrationRunner(store, small_registry).run_one(tenant_id, "1.1.0")
        assert not outcome.success
        assert "unreadable" in outcome.error
        assert recorder.calls == []


class TestRollback:
    async def test_rollback_steps_to_previous_version(
        self,
        store: InMemoryDocumentStore,
        tenant_id: str,
        small_registry: MigrationRegistry,
        recorder: StepRecorder,
    ) -> None:
        seed_version(store, "1.2.0")
        runner = MigrationRunner(store, small_registry)
        outcome = await runner.rollback(tenant_id, "1.2.0")
        assert outcome.success
        assert recorder.calls == ["rollback 1.2.0"]
        assert await runner.versions.get_version(tenant_id) == "1.1.0"
        history = await runner.history(tenant_id)
        assert [(e.version, e.success) for e in history] == [("1.2.0-rollback", True)]

    async def test_rollback_lowest_goes_to_zero(
        self, store: InMemoryDocumentStore, tenant_id: str, small_registry: MigrationRegistry
    ) -> None:
        seed_version(store, "1.0.0")
        runner = MigrationRunner(store, small_registry)
        assert (await runner.rollback(tenant_id, "1.0.0")).success
        assert await runner.versions.get_version(tenant_id) == "0.0.0"

    async def test_rollback_unsupported(
        self, store: InMemoryDocumentStore, tenant_id: str, small_registry: MigrationRegistry
    ) -> None:
        seed_version(store, "1.2.0")
        outcome = await MigrationRunner(store, small_registry).rollback(tenant_id, "1.1.0")
        assert not outcome.success
        assert outcome.error == "Migration 1.1.0 does not support rollback"

    async def test_rollback_not_found(
        self, store: InMemoryDocumentStore, tenant_id: str, small_registry: MigrationRegistry
    ) -> None:
        outcome = await MigrationRunner(store, small_registry).rollback(tenant_id, "2.0.0")
        assert outcome.error == "Migration 2.0.0 not found"

    async def test_rollback_of_unapplied_migration_refused(
        self,
        store: InMemoryDocumentStore,
        tenant_id: str,
        small_registry: MigrationRegistry,
        recorder: StepRecorder,
    ) -> None:
        seed_version(store, "1.0.0")
        outcome = await MigrationRunner(store, small_registry).rollback(tenant_id, "1.2.0")
        assert not outcome.success
        assert "has not been applied" in outcome.error
        assert recorder.calls == []

    async def test_corrupt_marker_refuses_rollback(
        self,
        store: InMemoryDocumentStore,
        tenant_id: str,
        small_registry: MigrationRegistry,
        recorder: StepRecorder,
    ) -> None:
        store.put(version_path(tenant_id), {"version": 12})
        outcome = await MigrationRunner(store, small_registry).rollback(tenant_id, "1.2.0")
        assert not outcome.success
        assert "unreadable" in outcome.error
        assert recorder.calls == []


# ---------------------------------------------------------------------------
# Built-in catalog
# ---------------------------------------------------------------------------


class TestBuiltinMigrations:
    async def test_full_run_shapes_legacy_contacts(
        self, store: InMemoryDocumentStore, tenant_id: str
    ) -> None:
        seed_preferences(store, lastSelectedYearId="y1", createdAt=None)
        seed_year(store, "y1", updatedAt=None)
        legacy = {"tenantId": tenant_id, "yearId": "y1", "firstName": "A",
                  "lastName": "B", "enterpriseName": "C", "delivered": True}
        store.put(contact_path(tenant_id, "y1", "c1"), legacy)
        store.put(contact_path(tenant_id, "y1", "c2"), {**legacy, "delivered": False})

        runner = MigrationRunner(store, default_registry())
        result = await runner.run_all(tenant_id)
        assert result.success
        assert result.final_version == "1.3.0"

        delivered = (await store.get(contact_path(tenant_id, "y1", "c1"))).data
        pending = (await store.get(contact_path(tenant_id, "y1", "c2"))).data
        assert delivered["deliveredAt"] is not None
        assert pending["deliveredAt"] is None
        for data in (delivered, pending):
            assert data["comments"] == ""
            assert data["createdAt"] is not None
            assert data["updatedAt"] is not None

    async def test_steps_are_idempotent(
        self, store: InMemoryDocumentStore, tenant_id: str
    ) -> None:
        seed_preferences(store, lastSelectedYearId="y1", updatedAt=None)
        seed_year(store, "y1")
        store.put(
            contact_path(tenant_id, "y1", "c1"),
            {"tenantId": tenant_id, "yearId": "y1", "firstName": "A",
             "lastName": "B", "enterpriseName": "C", "delivered": True},
        )
        registry = default_registry()
        runner = MigrationRunner(store, registry)

        async def tenant_documents() -> dict:
            return {
                p: (await store.get(p)).data for p in store.paths() if "/system/" not in p
            }

        for migration in registry:
            assert (await runner.run_one(tenant_id, migration.version)).success
        before = await tenant_documents()
        for migration in registry:
            assert (await runner.run_one(tenant_id, migration.version)).success
        after = await tenant_documents()
        assert before == after

    async def test_rollback_removes_delivered_at(
        self, store: InMemoryDocumentStore, tenant_id: str
    ) -> None:
        seed_healthy_tenant(store)
        seed_version(store, "1.3.0")
        runner = MigrationRunner(store, default_registry())
        assert (await runner.rollback(tenant_id, "1.1.0")).success
        assert await runner.versions.get_version(tenant_id) == "1.0.0"
        for contact_id in ("c1", "c2"):
            data = (await store.get(contact_path(tenant_id, "y1", contact_id))).data
            assert "deliveredAt" not in data

    async def test_large_tenant_respects_batch_ceiling(self, tenant_id: str) -> None:
        store = InMemoryDocumentStore(max_batch_operations=10)
        seed_year(store, "y1")
        for i in range(25):
            store.put(
                contact_path(tenant_id, "y1", f"c{i:02d}"),
                {"tenantId": tenant_id, "yearId": "y1", "firstName": "F",
                 "lastName": str(i), "enterpriseName": "E", "delivered": False},
            )
        runner = MigrationRunner(store, default_registry())
        result = await runner.run_all(tenant_id)
        assert result.success
        assert max(store.commit_sizes) <= 10
        data = (await store.get(contact_path(tenant_id, "y1", "c24"))).data
        assert data["comments"] == ""
        assert "deliveredAt" in data
