"""API request/response Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from checklistdb.models.issues import ValidationIssue, ValidationReport
from checklistdb.validation.engine import DocumentKind


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = ""


class ErrorResponse(BaseModel):
    """Body of every mapped error response."""

    error: str
    message: str


# ---------------------------------------------------------------------------
# Bootstrap / stats
# ---------------------------------------------------------------------------


class BootstrapResponse(BaseModel):
    tenant_id: str
    created_preferences: bool
    created_year_id: str | None = None


class StatsResponse(BaseModel):
    """Response for GET /tenants/{tenant_id}/stats."""

    tenant_id: str
    years_count: int
    contacts_count: int
    contacts_by_year: dict[str, int] = {}
    delivered_contacts_count: int
    has_preferences: bool
    last_updated: datetime | None = None
    schema_version: str | None


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


class MigrationInfo(BaseModel):
    version: str
    description: str
    reversible: bool = False


class MigrationListResponse(BaseModel):
    """Response for GET /migrations."""

    latest: str
    migrations: list[MigrationInfo] = []


class VersionResponse(BaseModel):
    tenant_id: str
    version: str
    latest: str
    needs_migration: bool


class PendingResponse(BaseModel):
    tenant_id: str
    current_version: str
    pending: list[MigrationInfo] = []


class MigrationRunResponse(BaseModel):
    """Response for POST /tenants/{tenant_id}/migrations/run."""

    success: bool
    migrations_run: int
    errors: list[str] = []
    final_version: str


class MigrationOutcomeResponse(BaseModel):
    success: bool
    error: str | None = None


class HistoryEntryResponse(BaseModel):
    version: str
    success: bool
    error: str | None = None
    executed_at: datetime | None = None


class HistoryResponse(BaseModel):
    tenant_id: str
    entries: list[HistoryEntryResponse] = []


# ---------------------------------------------------------------------------
# Validation / repair
# ---------------------------------------------------------------------------


class ValidateRequest(BaseModel):
    """Request body for POST /tenants/{tenant_id}/validate."""

    rules: list[str] | None = Field(None, description="Rule names to run; all when omitted")
    include_info: bool = False


class DocumentValidateRequest(BaseModel):
    """Request body for POST /tenants/{tenant_id}/validate/document."""

    path: str
    kind: DocumentKind


class DocumentValidateResponse(BaseModel):
    valid: bool
    issues: list[ValidationIssue] = []


class RepairRequest(BaseModel):
    """Fix families to apply; each is off unless requested."""

    fix_invalid_references: bool = False
    fix_missing_timestamps: bool = False


class RepairResponse(BaseModel):
    changes_applied: bool
    operations: list[str] = []
    errors: list[str] = []


class MaintenanceRequest(BaseModel):
    """Request body for POST /tenants/{tenant_id}/maintenance."""

    include_info: bool = False
    apply_repairs: bool = False
    repair: RepairRequest | None = None


class MaintenanceResponse(BaseModel):
    tenant_id: str
    success: bool
    bootstrap: BootstrapResponse
    migrations: MigrationRunResponse
    validation: ValidationReport
    validation_before_repair: ValidationReport | None = None
    repair: RepairResponse | None = None
    stats: StatsResponse
