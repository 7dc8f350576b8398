"""Reads and writes the per-tenant schema version marker."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from checklistdb.models.version import ZERO_VERSION, parse_version
from checklistdb.storage.adapter import DocumentStore, StoreNotFoundError, store_errors
from checklistdb.storage.codec import decode_version_marker, encode_version_marker
from checklistdb.storage.layout import require_tenant_id, version_path

logger = logging.getLogger("checklistdb.migrations")


class CorruptVersionMarkerError(Exception):
    """The stored version marker exists but does not hold a version string.

    This is a data-state failure, not caller misuse: the runner reports it in
    its result and the admin API answers 409.
    """

    def __init__(self, tenant_id: str, raw: object) -> None:
        self.tenant_id = tenant_id
        self.raw = raw
        super().__init__(f"Stored schema version for tenant {tenant_id} is unreadable: {raw!r}")


class VersionStore:
    """Access to ``tenants/{tenantId}/system/version``."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_version(self, tenant_id: str) -> str:
        """Return the tenant's schema version, ``0.0.0`` if never migrated.

        Transport failures raise as ``StoreError`` subclasses; a marker that
        does not parse raises :class:`CorruptVersionMarkerError`.
        """
        require_tenant_id(tenant_id)
        try:
            with store_errors("get schema version"):
                snapshot = await self._store.get(version_path(tenant_id))
        except StoreNotFoundError:
            return ZERO_VERSION
        try:
            return decode_version_marker(snapshot).version
        except ValidationError:
            raw = snapshot.data.get("version") if snapshot else None
            raise CorruptVersionMarkerError(tenant_id, raw) from None

    async def set_version(self, tenant_id: str, version: str) -> None:
        """Upsert the marker, merging so unrelated fields survive."""
        require_tenant_id(tenant_id)
        parse_version(version)
        batch = self._store.batch()
        batch.set(version_path(tenant_id), encode_version_marker(version), merge=True)
        with store_errors("set schema version"):
            await batch.commit()
        logger.info("Schema version set to %s for tenant %s", version.strip(), tenant_id)
