"""Applies pending migrations to a tenant, in order, stopping on first failure."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from checklistdb.migration.registry import Migration, MigrationContext, MigrationRegistry
from checklistdb.migration.version_store import CorruptVersionMarkerError, VersionStore
from checklistdb.models.documents import MigrationHistoryEntry
from checklistdb.models.version import ZERO_VERSION, compare_versions, parse_version
from checklistdb.storage.adapter import DocumentStore, store_errors
from checklistdb.storage.codec import decode_history_entry, encode_history_entry
from checklistdb.storage.layout import history_collection, history_entry_path, require_tenant_id

logger = logging.getLogger("checklistdb.migrations")

ROLLBACK_SUFFIX = "-rollback"


@dataclass
class MigrationRunResult:
    """Outcome of :meth:`MigrationRunner.run_all`."""

    success: bool
    migrations_run: int
    errors: list[str] = field(default_factory=list)
    final_version: str = ZERO_VERSION


@dataclass
class MigrationOutcome:
    """Outcome of running or rolling back one named migration."""

    success: bool
    error: str | None = None


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class MigrationRunner:
    """Brings a tenant's data up to the registry's latest version.

    Migrations run strictly one after another.  After each successful step the
    version marker advances and a history entry is appended; a failing step
    is recorded and stops the sweep, leaving the marker at the last success.
    """

    def __init__(
        self,
        store: DocumentStore,
        registry: MigrationRegistry,
        *,
        max_batch_operations: int | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._versions = VersionStore(store)
        self._max_batch_operations = max_batch_operations

    @property
    def registry(self) -> MigrationRegistry:
        return self._registry

    @property
    def versions(self) -> VersionStore:
        return self._versions

    # -- queries -------------------------------------------------------------

    async def pending_migrations(self, tenant_id: str) -> list[Migration]:
        current = await self._versions.get_version(tenant_id)
        return self._registry.after(current)

    async def needs_migration(self, tenant_id: str) -> bool:
        return bool(await self.pending_migrations(tenant_id))

    async def history(self, tenant_id: str) -> list[MigrationHistoryEntry]:
        """Recorded attempts, oldest first."""
        require_tenant_id(tenant_id)
        with store_errors("get migration history"):
            snapshots = await self._store.list(history_collection(tenant_id))
        entries = [decode_history_entry(s) for s in snapshots]
        entries.sort(key=lambda e: (e.executed_at is None, e.executed_at))
        return entries

    # -- execution -----------------------------------------------------------

    async def run_all(self, tenant_id: str) -> MigrationRunResult:
        """Run every pending migration in ascending version order."""
        require_tenant_id(tenant_id)
        try:
            final_version = await self._versions.get_version(tenant_id)
        except CorruptVersionMarkerError as exc:
            logger.warning("Cannot migrate tenant %s: %s", tenant_id, exc)
            return MigrationRunResult(success=False, migrations_run=0, errors=[str(exc)])
        pending = self._registry.after(final_version)
        result = MigrationRunResult(success=True, migrations_run=0, final_version=final_version)

        if not pending:
            logger.info("No pending migrations for tenant %s", tenant_id)
            return result

        logger.info("Running %d migrations for tenant %s", len(pending), tenant_id)
        for migration in pending:
            logger.info("Running migration %s: %s", migration.version, migration.description)
            try:
                await migration.apply(self._context(tenant_id))
                await self._versions.set_version(tenant_id, migration.version)
            except Exception as exc:
                message = _describe(exc)
                logger.warning("Migration %s failed for tenant %s: %s", migration.version, tenant_id, message)
                result.errors.append(f"Migration {migration.version} failed: {message}")
                await self._record(tenant_id, migration.version, False, message, result.errors)
                break

            result.migrations_run += 1
            result.final_version = migration.version
            await self._record(tenant_id, migration.version, True, None, result.errors)

        result.success = not result.errors
        logger.info(
            "Migration run finished for tenant %s (success=%s, run=%d, version=%s)",
            tenant_id, result.success, result.migrations_run, result.final_version,
        )
        return result

    async def run_one(self, tenant_id: str, version: str) -> MigrationOutcome:
        """Run a single migration outside the ordered sweep.

        The marker is only moved forward; re-running an older migration for
        repair purposes never lowers the tenant's version.
        """
        require_tenant_id(tenant_id)
        parse_version(version)
        migration = self._registry.get(version)
        if migration is None:
            return MigrationOutcome(success=False, error=f"Migration {version} not found")

        try:
            current = await self._versions.get_version(tenant_id)
        except CorruptVersionMarkerError as exc:
            return MigrationOutcome(success=False, error=str(exc))

        logger.info("Running migration %s: %s", migration.version, migration.description)
        errors: list[str] = []
        try:
            await migration.apply(self._context(tenant_id))
            if compare_versions(migration.version, current) > 0:
                await self._versions.set_version(tenant_id, migration.version)
        except Exception as exc:
            message = _describe(exc)
            logger.warning("Migration %s failed for tenant %s: %s", migration.version, tenant_id, message)
            await self._record(tenant_id, migration.version, False, message, errors)
            return MigrationOutcome(success=False, error="; ".join([message, *errors]))

        await self._record(tenant_id, migration.version, True, None, errors)
        if errors:
            return MigrationOutcome(success=False, error="; ".join(errors))
        return MigrationOutcome(success=True)

    async def rollback(self, tenant_id: str, version: str) -> MigrationOutcome:
        """Reverse one applied migration and step the marker down.

        The marker becomes the greatest registered version below *version*
        (``0.0.0`` when there is none).  Effects of migrations between that
        version and the current one are left in place.
        """
        require_tenant_id(tenant_id)
        parse_version(version)
        migration = self._registry.get(version)
        if migration is None:
            return MigrationOutcome(success=False, error=f"Migration {version} not found")
        if migration.rollback is None:
            return MigrationOutcome(
                success=False, error=f"Migration {migration.version} does not support rollback"
            )

        try:
            current = await self._versions.get_version(tenant_id)
        except CorruptVersionMarkerError as exc:
            return MigrationOutcome(success=False, error=str(exc))
        if compare_versions(current, migration.version) < 0:
            return MigrationOutcome(
                success=False,
                error=f"Migration {migration.version} has not been applied (current version {current})",
            )

        tag = f"{migration.version}{ROLLBACK_SUFFIX}"
        logger.info("Rolling back migration %s: %s", migration.version, migration.description)
        errors: list[str] = []
        try:
            await migration.rollback(self._context(tenant_id))
            await self._versions.set_version(tenant_id, self._registry.previous(migration.version))
        except Exception as exc:
            message = _describe(exc)
            logger.warning("Rollback of %s failed for tenant %s: %s", migration.version, tenant_id, message)
            await self._record(tenant_id, tag, False, message, errors)
            return MigrationOutcome(success=False, error="; ".join([message, *errors]))

        await self._record(tenant_id, tag, True, None, errors)
        if errors:
            return MigrationOutcome(success=False, error="; ".join(errors))
        return MigrationOutcome(success=True)

    # -- internal ------------------------------------------------------------

    def _context(self, tenant_id: str) -> MigrationContext:
        return MigrationContext(self._store, tenant_id, self._max_batch_operations)

    async def _record(
        self,
        tenant_id: str,
        version: str,
        success: bool,
        error: str | None,
        errors: list[str],
    ) -> None:
        """Append a history entry; a failed write is reported into *errors*."""
        batch = self._store.batch()
        batch.set(
            history_entry_path(tenant_id, self._store.new_id()),
            encode_history_entry(version, success, error),
        )
        try:
            with store_errors("record migration history"):
                await batch.commit()
        except Exception as exc:
            message = _describe(exc)
            logger.warning("Could not record history for %s: %s", version, message)
            errors.append(f"Failed to record history for {version}: {message}")
