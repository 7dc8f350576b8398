"""Creates the minimal document set a tenant needs to be usable."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime

from checklistdb.models.documents import LAST_SELECTED_YEAR_ID, UPDATED_AT, Preferences, Year
from checklistdb.storage.adapter import SERVER_TIMESTAMP, DocumentStore, store_errors
from checklistdb.storage.codec import encode_preferences, encode_year
from checklistdb.storage.layout import (
    preferences_path,
    require_tenant_id,
    year_path,
    years_collection,
)

logger = logging.getLogger("checklistdb.bootstrap")


def _utc_today() -> date:
    return datetime.now(UTC).date()


@dataclass
class BootstrapResult:
    """What :meth:`SchemaBootstrapper.ensure` created (nothing, on a no-op)."""

    created_preferences: bool = False
    created_year_id: str | None = None

    @property
    def changed(self) -> bool:
        return self.created_preferences or self.created_year_id is not None


class SchemaBootstrapper:
    """Ensures preferences plus at least one year exist for a tenant.

    Each case writes a single batch, so a tenant is never left with
    preferences pointing at a year that was not created.
    """

    def __init__(self, store: DocumentStore, *, today: Callable[[], date] | None = None) -> None:
        self._store = store
        self._today = today or _utc_today

    async def ensure(self, tenant_id: str) -> BootstrapResult:
        require_tenant_id(tenant_id)
        with store_errors("read tenant shape"):
            preferences = await self._store.get(preferences_path(tenant_id))
            years = await self._store.list(years_collection(tenant_id))

        if preferences is not None and years:
            logger.debug("Tenant %s already bootstrapped", tenant_id)
            return BootstrapResult()

        year_id = self._store.new_id()
        year = Year(tenant_id=tenant_id, name=str(self._today().year))
        batch = self._store.batch()
        batch.set(year_path(tenant_id, year_id), encode_year(year))

        if preferences is None:
            prefs = Preferences(tenant_id=tenant_id, last_selected_year_id=year_id)
            batch.set(preferences_path(tenant_id), encode_preferences(prefs))
        else:
            batch.set(
                preferences_path(tenant_id),
                {LAST_SELECTED_YEAR_ID: year_id, UPDATED_AT: SERVER_TIMESTAMP},
                merge=True,
            )

        with store_errors("bootstrap tenant"):
            await batch.commit()

        result = BootstrapResult(created_preferences=preferences is None, created_year_id=year_id)
        logger.info(
            "Bootstrapped tenant %s (preferences=%s, year=%s '%s')",
            tenant_id, result.created_preferences, year_id, year.name,
        )
        return result
