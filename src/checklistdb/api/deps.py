"""Dependency injection for FastAPI: TenantMaintenance singleton."""

from __future__ import annotations

from checklistdb.service.maintenance import TenantMaintenance

_maintenance: TenantMaintenance | None = None


def init_maintenance(maintenance: TenantMaintenance) -> None:
    """Set the global TenantMaintenance (called at app startup)."""
    global _maintenance  # noqa: PLW0603
    _maintenance = maintenance


def get_maintenance() -> TenantMaintenance:
    """FastAPI ``Depends`` provider for TenantMaintenance."""
    if _maintenance is None:
        raise RuntimeError("TenantMaintenance not initialised, call init_maintenance() first")
    return _maintenance


def reset_maintenance() -> None:
    """Clear the global TenantMaintenance (for tests)."""
    global _maintenance  # noqa: PLW0603
    _maintenance = None
