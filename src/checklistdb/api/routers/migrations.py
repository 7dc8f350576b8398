"""Migration catalog endpoint: GET /migrations."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from checklistdb.api.deps import get_maintenance
from checklistdb.api.schemas import MigrationInfo, MigrationListResponse
from checklistdb.migration.registry import Migration
from checklistdb.service.maintenance import TenantMaintenance

router = APIRouter()


def migration_info(migration: Migration) -> MigrationInfo:
    return MigrationInfo(
        version=migration.version,
        description=migration.description,
        reversible=migration.reversible,
    )


@router.get("", response_model=MigrationListResponse)
async def list_migrations(
    maintenance: TenantMaintenance = Depends(get_maintenance),  # noqa: B008
) -> MigrationListResponse:
    """List registered migrations in the order they apply."""
    registry = maintenance.runner.registry
    return MigrationListResponse(
        latest=registry.latest,
        migrations=[migration_info(m) for m in registry],
    )
