"""Option-gated, idempotent corrections of what validation reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from checklistdb.models.documents import (
    LAST_SELECTED_YEAR_ID,
    TENANT_ID,
    TIMESTAMP_FIELDS,
    UPDATED_AT,
    YEAR_ID,
)
from checklistdb.storage.adapter import SERVER_TIMESTAMP, DocumentSnapshot, DocumentStore
from checklistdb.storage.batch import BatchWriter
from checklistdb.storage.layout import (
    preferences_path,
    require_tenant_id,
    walk_contacts,
)

logger = logging.getLogger("checklistdb.repair")


@dataclass
class RepairOptions:
    """Which fix families to apply.  Every fix is opt-in."""

    fix_invalid_references: bool = False
    fix_missing_timestamps: bool = False

    @classmethod
    def full(cls) -> RepairOptions:
        return cls(fix_invalid_references=True, fix_missing_timestamps=True)


@dataclass
class RepairResult:
    """``operations`` logs each committed fix; ``errors`` holds captured failures."""

    changes_applied: bool = False
    operations: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class IntegrityRepairService:
    """Fixes owning ids, parent-year ids, timestamps and the selected-year link.

    Every fix is a guarded update staged through a :class:`BatchWriter`, so a
    second run over repaired data stages nothing.
    """

    def __init__(self, store: DocumentStore, *, max_batch_operations: int | None = None) -> None:
        self._store = store
        self._max_batch_operations = max_batch_operations

    async def repair(self, tenant_id: str, options: RepairOptions | None = None) -> RepairResult:
        """Apply the fixes enabled in *options*; with no options nothing changes.

        A fix is logged in ``operations`` only once the batch holding it has
        committed, so a failed commit never shows up as an applied change.
        """
        require_tenant_id(tenant_id)
        options = options or RepairOptions()
        result = RepairResult()
        writer = BatchWriter(self._store, self._max_batch_operations)
        staged: list[str] = []
        logger.info("Repairing data for tenant %s (%s)", tenant_id, options)

        async def fix(snapshot: DocumentSnapshot, fixes: dict[str, Any]) -> None:
            if not fixes:
                return
            staged.append(f"Updated {snapshot.path}: {', '.join(sorted(fixes))}")
            committed = writer.committed_batches
            await writer.update(snapshot.path, {**fixes, UPDATED_AT: SERVER_TIMESTAMP})
            if writer.committed_batches != committed:
                result.operations.extend(staged)
                staged.clear()

        try:
            year_ids: list[str] = []
            async for year, contacts in walk_contacts(self._store, tenant_id):
                year_ids.append(year.id)
                await fix(year, self._year_fixes(year, tenant_id, options))
                for contact in contacts:
                    await fix(contact, self._contact_fixes(contact, tenant_id, year.id, options))

            preferences = await self._store.get(preferences_path(tenant_id))
            if preferences is not None:
                await fix(
                    preferences, self._preferences_fixes(preferences, tenant_id, year_ids, options)
                )

            await writer.flush()
            result.operations.extend(staged)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.warning("Repair failed for tenant %s: %s", tenant_id, message)
            result.errors.append(f"Repair failed: {message}")

        result.changes_applied = writer.committed_operations > 0
        logger.info(
            "Repair finished for tenant %s (changes=%s, committed=%d, errors=%d)",
            tenant_id, result.changes_applied, len(result.operations), len(result.errors),
        )
        return result

    # -- fixes -----------------------------------------------------------------

    @staticmethod
    def _timestamp_fixes(data: dict[str, Any], options: RepairOptions) -> dict[str, Any]:
        if not options.fix_missing_timestamps:
            return {}
        return {name: SERVER_TIMESTAMP for name in TIMESTAMP_FIELDS if not data.get(name)}

    def _year_fixes(
        self, year: DocumentSnapshot, tenant_id: str, options: RepairOptions
    ) -> dict[str, Any]:
        fixes = self._timestamp_fixes(year.data, options)
        if options.fix_invalid_references and year.data.get(TENANT_ID) != tenant_id:
            fixes[TENANT_ID] = tenant_id
        return fixes

    def _contact_fixes(
        self, contact: DocumentSnapshot, tenant_id: str, year_id: str, options: RepairOptions
    ) -> dict[str, Any]:
        fixes = self._timestamp_fixes(contact.data, options)
        if options.fix_invalid_references:
            if contact.data.get(TENANT_ID) != tenant_id:
                fixes[TENANT_ID] = tenant_id
            if contact.data.get(YEAR_ID) != year_id:
                fixes[YEAR_ID] = year_id
        return fixes

    def _preferences_fixes(
        self,
        preferences: DocumentSnapshot,
        tenant_id: str,
        year_ids: list[str],
        options: RepairOptions,
    ) -> dict[str, Any]:
        fixes = self._timestamp_fixes(preferences.data, options)
        if not options.fix_invalid_references:
            return fixes
        if preferences.data.get(TENANT_ID) != tenant_id:
            fixes[TENANT_ID] = tenant_id
        selected = preferences.data.get(LAST_SELECTED_YEAR_ID)
        if selected is not None and selected not in year_ids:
            # any valid year will do; null when the tenant has none
            fixes[LAST_SELECTED_YEAR_ID] = year_ids[0] if year_ids else None
        return fixes

