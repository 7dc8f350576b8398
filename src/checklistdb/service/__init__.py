"""Tenant-level services built on the storage, migration and validation layers."""

from checklistdb.service.bootstrap import BootstrapResult, SchemaBootstrapper
from checklistdb.service.maintenance import MaintenanceReport, TenantMaintenance
from checklistdb.service.repair import IntegrityRepairService, RepairOptions, RepairResult
from checklistdb.service.stats import TenantStats, collect_stats

__all__ = [
    "BootstrapResult",
    "IntegrityRepairService",
    "MaintenanceReport",
    "RepairOptions",
    "RepairResult",
    "SchemaBootstrapper",
    "TenantMaintenance",
    "TenantStats",
    "collect_stats",
]
