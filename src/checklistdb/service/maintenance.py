"""Per-tenant maintenance pipeline shared by the admin API and scripts."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from checklistdb.migration.catalog import default_registry
from checklistdb.migration.registry import MigrationRegistry
from checklistdb.migration.runner import MigrationRunner, MigrationRunResult
from checklistdb.models.issues import ValidationReport
from checklistdb.service.bootstrap import BootstrapResult, SchemaBootstrapper
from checklistdb.service.repair import IntegrityRepairService, RepairOptions, RepairResult
from checklistdb.service.stats import TenantStats, collect_stats
from checklistdb.settings import Settings
from checklistdb.storage.adapter import DocumentStore
from checklistdb.storage.layout import require_tenant_id
from checklistdb.validation.engine import ValidationEngine
from checklistdb.validation.rules import ValidationRule

logger = logging.getLogger("checklistdb.maintenance")


@dataclass
class MaintenanceReport:
    """Everything one :meth:`TenantMaintenance.run` did to a tenant.

    When repairs were applied, ``validation`` is the report taken after the
    repair and ``validation_before_repair`` the one that triggered it.
    """

    tenant_id: str
    bootstrap: BootstrapResult
    migrations: MigrationRunResult
    validation: ValidationReport
    stats: TenantStats
    repair: RepairResult | None = None
    validation_before_repair: ValidationReport | None = None

    @property
    def success(self) -> bool:
        repair_ok = self.repair is None or not self.repair.errors
        return self.migrations.success and self.validation.valid and repair_ok


class TenantMaintenance:
    """Composes bootstrap, migrations, validation, repair and stats over one store.

    The registry and rule catalog are built once and shared by every tenant;
    tests pass smaller ones in.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        registry: MigrationRegistry | None = None,
        rules: Sequence[ValidationRule] | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or Settings()
        self.store = store
        self.bootstrapper = SchemaBootstrapper(store)
        self.runner = MigrationRunner(
            store,
            registry if registry is not None else default_registry(),
            max_batch_operations=settings.batch_max_operations,
        )
        self.engine = ValidationEngine(
            store,
            rules,
            concurrent=settings.validation_concurrent,
            comments_max_length=settings.comments_max_length,
        )
        self.repairs = IntegrityRepairService(
            store, max_batch_operations=settings.batch_max_operations
        )

    async def stats(self, tenant_id: str) -> TenantStats:
        return await collect_stats(self.store, tenant_id)

    async def run(
        self,
        tenant_id: str,
        *,
        include_info: bool = False,
        apply_repairs: bool = False,
        repair_options: RepairOptions | None = None,
    ) -> MaintenanceReport:
        """Bootstrap, migrate, validate, optionally repair, then report.

        Repairs only run when asked for and the first validation found
        something; a clean tenant is left untouched.  Without explicit
        *repair_options* every fix family is enabled.
        """
        require_tenant_id(tenant_id)
        logger.info("Starting maintenance for tenant %s", tenant_id)

        bootstrap = await self.bootstrapper.ensure(tenant_id)
        migrations = await self.runner.run_all(tenant_id)
        validation = await self.engine.validate_all(tenant_id, include_info=include_info)

        repair = None
        before_repair = None
        if apply_repairs and validation.issues:
            repair = await self.repairs.repair(tenant_id, repair_options or RepairOptions.full())
            before_repair = validation
            validation = await self.engine.validate_all(tenant_id, include_info=include_info)

        report = MaintenanceReport(
            tenant_id=tenant_id,
            bootstrap=bootstrap,
            migrations=migrations,
            validation=validation,
            stats=await self.stats(tenant_id),
            repair=repair,
            validation_before_repair=before_repair,
        )
        logger.info("Maintenance finished for tenant %s (success=%s)", tenant_id, report.success)
        return report
