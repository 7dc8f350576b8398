"""Per-tenant endpoints: bootstrap, migrations, validation, repair, stats."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from checklistdb.api.deps import get_maintenance
from checklistdb.api.routers.migrations import migration_info
from checklistdb.api.schemas import (
    BootstrapResponse,
    DocumentValidateRequest,
    DocumentValidateResponse,
    HistoryEntryResponse,
    HistoryResponse,
    MaintenanceRequest,
    MaintenanceResponse,
    MigrationOutcomeResponse,
    MigrationRunResponse,
    PendingResponse,
    RepairRequest,
    RepairResponse,
    StatsResponse,
    ValidateRequest,
    VersionResponse,
)
from checklistdb.models.issues import Severity, ValidationReport
from checklistdb.service.bootstrap import BootstrapResult
from checklistdb.service.maintenance import TenantMaintenance
from checklistdb.service.repair import RepairOptions, RepairResult
from checklistdb.service.stats import TenantStats

router = APIRouter()


# -- helpers -----------------------------------------------------------------


def _bootstrap_response(tenant_id: str, result: BootstrapResult) -> BootstrapResponse:
    return BootstrapResponse(tenant_id=tenant_id, **asdict(result))


def _stats_response(tenant_id: str, stats: TenantStats) -> StatsResponse:
    return StatsResponse(tenant_id=tenant_id, **asdict(stats))


def _repair_response(result: RepairResult) -> RepairResponse:
    return RepairResponse(**asdict(result))


def _repair_options(body: RepairRequest | None) -> RepairOptions | None:
    return RepairOptions(**body.model_dump()) if body else None


# -- bootstrap & stats -------------------------------------------------------


@router.post("/{tenant_id}/bootstrap", response_model=BootstrapResponse)
async def bootstrap_tenant(
    tenant_id: str,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> BootstrapResponse:
    """Create preferences and a default year if the tenant lacks them."""
    result = await maintenance.bootstrapper.ensure(tenant_id)
    return _bootstrap_response(tenant_id, result)


@router.get("/{tenant_id}/stats", response_model=StatsResponse)
async def tenant_stats(
    tenant_id: str,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> StatsResponse:
    stats = await maintenance.stats(tenant_id)
    return _stats_response(tenant_id, stats)


# -- migrations --------------------------------------------------------------


@router.get("/{tenant_id}/version", response_model=VersionResponse)
async def tenant_version(
    tenant_id: str,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> VersionResponse:
    runner = maintenance.runner
    version = await runner.versions.get_version(tenant_id)
    return VersionResponse(
        tenant_id=tenant_id,
        version=version,
        latest=runner.registry.latest,
        needs_migration=bool(runner.registry.after(version)),
    )


@router.get("/{tenant_id}/migrations/pending", response_model=PendingResponse)
async def pending_migrations(
    tenant_id: str,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> PendingResponse:
    runner = maintenance.runner
    current = await runner.versions.get_version(tenant_id)
    return PendingResponse(
        tenant_id=tenant_id,
        current_version=current,
        pending=[migration_info(m) for m in runner.registry.after(current)],
    )


@router.post("/{tenant_id}/migrations/run", response_model=MigrationRunResponse)
async def run_migrations(
    tenant_id: str,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> MigrationRunResponse:
    """Run every pending migration; stops at the first failure."""
    result = await maintenance.runner.run_all(tenant_id)
    return MigrationRunResponse(**asdict(result))


@router.post("/{tenant_id}/migrations/{version}/run", response_model=MigrationOutcomeResponse)
async def run_migration(
    tenant_id: str,
    version: str,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> MigrationOutcomeResponse:
    outcome = await maintenance.runner.run_one(tenant_id, version)
    return MigrationOutcomeResponse(**asdict(outcome))


@router.post(
    "/{tenant_id}/migrations/{version}/rollback", response_model=MigrationOutcomeResponse
)
async def rollback_migration(
    tenant_id: str,
    version: str,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> MigrationOutcomeResponse:
    outcome = await maintenance.runner.rollback(tenant_id, version)
    return MigrationOutcomeResponse(**asdict(outcome))


@router.get("/{tenant_id}/migrations/history", response_model=HistoryResponse)
async def migration_history(
    tenant_id: str,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> HistoryResponse:
    entries = await maintenance.runner.history(tenant_id)
    return HistoryResponse(
        tenant_id=tenant_id,
        entries=[HistoryEntryResponse(**e.model_dump()) for e in entries],
    )


# -- validation & repair -----------------------------------------------------


@router.post("/{tenant_id}/validate", response_model=ValidationReport)
async def validate_tenant(
    tenant_id: str,
    body: ValidateRequest | None = None,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> ValidationReport:
    """Run the validation catalog (or a subset of it) against live data."""
    body = body or ValidateRequest()
    return await maintenance.engine.validate_all(
        tenant_id, rules=body.rules, include_info=body.include_info
    )


@router.post("/{tenant_id}/validate/document", response_model=DocumentValidateResponse)
async def validate_document(
    tenant_id: str,
    body: DocumentValidateRequest,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> DocumentValidateResponse:
    issues = await maintenance.engine.validate_document(tenant_id, body.path, body.kind)
    return DocumentValidateResponse(
        valid=not any(i.severity is Severity.ERROR for i in issues),
        issues=issues,
    )


@router.post("/{tenant_id}/repair", response_model=RepairResponse)
async def repair_tenant(
    tenant_id: str,
    body: RepairRequest | None = None,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> RepairResponse:
    result = await maintenance.repairs.repair(tenant_id, _repair_options(body))
    return _repair_response(result)


@router.post("/{tenant_id}/maintenance", response_model=MaintenanceResponse)
async def run_maintenance(
    tenant_id: str,
    body: MaintenanceRequest | None = None,
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> MaintenanceResponse:
    """Bootstrap, migrate, validate and optionally repair in one call."""
    body = body or MaintenanceRequest()
    report = await maintenance.run(
        tenant_id,
        include_info=body.include_info,
        apply_repairs=body.apply_repairs,
        repair_options=_repair_options(body.repair),
    )
    return MaintenanceResponse(
        tenant_id=tenant_id,
        success=report.success,
        bootstrap=_bootstrap_response(tenant_id, report.bootstrap),
        migrations=MigrationRunResponse(**asdict(report.migrations)),
        validation=report.validation,
        validation_before_repair=report.validation_before_repair,
        repair=_repair_response(report.repair) if report.repair else None,
        stats=_stats_response(tenant_id, report.stats),
    )
