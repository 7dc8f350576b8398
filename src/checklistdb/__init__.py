"""Schema migration and integrity engine for per-tenant checklist data."""

__version__ = "0.1.0"
