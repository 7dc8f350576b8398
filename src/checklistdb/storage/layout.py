"""Tenant-scoped storage layout: document paths and tree walkers.

::

    tenants/{tenantId}/preferences/main
    tenants/{tenantId}/years/{yearId}
    tenants/{tenantId}/years/{yearId}/contacts/{contactId}
    tenants/{tenantId}/system/version
    tenants/{tenantId}/system/migrations/history/{entryId}
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from checklistdb.storage.adapter import DocumentSnapshot, DocumentStore

TENANTS = "tenants"
PREFERENCES_DOC = "main"


class InvalidTenantIdError(ValueError):
    """Raised when a tenant id is empty, blank, or not a single path segment."""


def require_tenant_id(tenant_id: object) -> str:
    """Return *tenant_id* unchanged if it is usable, else raise before any I/O."""
    if not isinstance(tenant_id, str) or not tenant_id.strip():
        raise InvalidTenantIdError("Tenant ID is required and must be a non-empty string")
    if "/" in tenant_id:
        raise InvalidTenantIdError(f"Tenant ID must not contain '/': {tenant_id!r}")
    return tenant_id


def tenant_root(tenant_id: str) -> str:
    return f"{TENANTS}/{tenant_id}"


def preferences_path(tenant_id: str) -> str:
    return f"{tenant_root(tenant_id)}/preferences/{PREFERENCES_DOC}"


def years_collection(tenant_id: str) -> str:
    return f"{tenant_root(tenant_id)}/years"


def year_path(tenant_id: str, year_id: str) -> str:
    return f"{years_collection(tenant_id)}/{year_id}"


def contacts_collection(tenant_id: str, year_id: str) -> str:
    return f"{year_path(tenant_id, year_id)}/contacts"


def contact_path(tenant_id: str, year_id: str, contact_id: str) -> str:
    return f"{contacts_collection(tenant_id, year_id)}/{contact_id}"


def version_path(tenant_id: str) -> str:
    return f"{tenant_root(tenant_id)}/system/version"


def history_collection(tenant_id: str) -> str:
    return f"{tenant_root(tenant_id)}/system/migrations/history"


def history_entry_path(tenant_id: str, entry_id: str) -> str:
    return f"{history_collection(tenant_id)}/{entry_id}"


async def walk_contacts(
    store: DocumentStore, tenant_id: str
) -> AsyncIterator[tuple[DocumentSnapshot, list[DocumentSnapshot]]]:
    """Yield ``(year, contacts)`` for every year of *tenant_id*, in id order."""
    for year in await store.list(years_collection(tenant_id)):
        contacts = await store.list(contacts_collection(tenant_id, year.id))
        yield year, contacts
