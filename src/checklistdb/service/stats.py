"""Read-only inspection of a tenant's data."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from checklistdb.migration.version_store import CorruptVersionMarkerError, VersionStore
from checklistdb.models.documents import DELIVERED, UPDATED_AT
from checklistdb.models.version import ZERO_VERSION
from checklistdb.storage.adapter import DocumentSnapshot, DocumentStore, store_errors
from checklistdb.storage.codec import year_label
from checklistdb.storage.layout import preferences_path, require_tenant_id, walk_contacts

logger = logging.getLogger("checklistdb.stats")


@dataclass
class TenantStats:
    years_count: int = 0
    contacts_count: int = 0
    contacts_by_year: dict[str, int] = field(default_factory=dict)
    delivered_contacts_count: int = 0
    has_preferences: bool = False
    last_updated: datetime | None = None
    schema_version: str | None = ZERO_VERSION


def _latest(current: datetime | None, snapshot: DocumentSnapshot) -> datetime | None:
    value = snapshot.data.get(UPDATED_AT)
    if not isinstance(value, datetime):
        return current
    return value if current is None or value > current else current


async def collect_stats(store: DocumentStore, tenant_id: str) -> TenantStats:
    """Count years and contacts and find the most recent update time.

    Contacts of years sharing a display name are counted together.  An
    unreadable version marker is reported as a ``None`` schema version.
    """
    require_tenant_id(tenant_id)
    stats = TenantStats()
    try:
        stats.schema_version = await VersionStore(store).get_version(tenant_id)
    except CorruptVersionMarkerError as exc:
        logger.warning("Stats for tenant %s: %s", tenant_id, exc)
        stats.schema_version = None

    with store_errors("collect tenant stats"):
        preferences = await store.get(preferences_path(tenant_id))
        if preferences is not None:
            stats.has_preferences = True
            stats.last_updated = _latest(stats.last_updated, preferences)

        async for year, contacts in walk_contacts(store, tenant_id):
            stats.years_count += 1
            stats.last_updated = _latest(stats.last_updated, year)
            label = year_label(year)
            stats.contacts_by_year[label] = stats.contacts_by_year.get(label, 0) + len(contacts)
            for contact in contacts:
                stats.contacts_count += 1
                if contact.data.get(DELIVERED) is True:
                    stats.delivered_contacts_count += 1
                stats.last_updated = _latest(stats.last_updated, contact)
    return stats
