"""Shared test fixtures for checklistdb."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from checklistdb.migration.registry import Migration, MigrationContext, MigrationRegistry
from checklistdb.storage.layout import contact_path, preferences_path, version_path, year_path
from checklistdb.storage.memory import InMemoryDocumentStore

TENANT = "tenant-1"
SEED_TIME = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def tenant_id() -> str:
    return TENANT


# ---------------------------------------------------------------------------
# Seeding helpers: raw documents written straight into the store
# ---------------------------------------------------------------------------


def seed_preferences(
    store: InMemoryDocumentStore, tenant_id: str = TENANT, **overrides: Any
) -> dict[str, Any]:
    data = {
        "tenantId": tenant_id,
        "lastSelectedYearId": None,
        "createdAt": SEED_TIME,
        "updatedAt": SEED_TIME,
        **overrides,
    }
    store.put(preferences_path(tenant_id), data)
    return data


def seed_year(
    store: InMemoryDocumentStore,
    year_id: str,
    tenant_id: str = TENANT,
    **overrides: Any,
) -> dict[str, Any]:
    data = {
        "tenantId": tenant_id,
        "name": "2025",
        "createdAt": SEED_TIME,
        "updatedAt": SEED_TIME,
        **overrides,
    }
    store.put(year_path(tenant_id, year_id), data)
    return data


def seed_contact(
    store: InMemoryDocumentStore,
    year_id: str,
    contact_id: str,
    tenant_id: str = TENANT,
    **overrides: Any,
) -> dict[str, Any]:
    data = {
        "tenantId": tenant_id,
        "yearId": year_id,
        "firstName": "Ada",
        "lastName": "Lovelace",
        "enterpriseName": "Analytical Engines",
        "comments": "",
        "delivered": False,
        "deliveredAt": None,
        "createdAt": SEED_TIME,
        "updatedAt": SEED_TIME,
        **overrides,
    }
    store.put(contact_path(tenant_id, year_id, contact_id), data)
    return data


def seed_version(store: InMemoryDocumentStore, version: str, tenant_id: str = TENANT) -> None:
    store.put(version_path(tenant_id), {"version": version, "updatedAt": SEED_TIME})


def seed_healthy_tenant(store: InMemoryDocumentStore, tenant_id: str = TENANT) -> None:
    """Preferences pointing at one year holding two distinct contacts."""
    seed_preferences(store, tenant_id, lastSelectedYearId="y1")
    seed_year(store, "y1", tenant_id)
    seed_contact(store, "y1", "c1", tenant_id)
    seed_contact(
        store, "y1", "c2", tenant_id,
        firstName="Grace", lastName="Hopper", enterpriseName="Navy",
        delivered=True, deliveredAt=SEED_TIME,
    )


# ---------------------------------------------------------------------------
# Small registries
# ---------------------------------------------------------------------------


class StepRecorder:
    """Builds migration steps that log their calls and can be told to fail."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def step(self, label: str, *, fail: bool = False):
        async def run(ctx: MigrationContext) -> None:
            self.calls.append(label)
            if fail:
                raise RuntimeError(f"{label} exploded")

        return run


@pytest.fixture
def recorder() -> StepRecorder:
    return StepRecorder()


@pytest.fixture
def small_registry(recorder: StepRecorder) -> MigrationRegistry:
    return MigrationRegistry([
        Migration("1.0.0", "first", recorder.step("apply 1.0.0"),
                  rollback=recorder.step("rollback 1.0.0")),
        Migration("1.1.0", "second", recorder.step("apply 1.1.0")),
        Migration("1.2.0", "third", recorder.step("apply 1.2.0"),
                  rollback=recorder.step("rollback 1.2.0")),
    ])
