"""Schema version tracking and ordered, resumable migrations."""

from checklistdb.migration.catalog import BUILTIN_MIGRATIONS, default_registry
from checklistdb.migration.registry import (
    Migration,
    MigrationContext,
    MigrationRegistry,
    RegistryOrderError,
)
from checklistdb.migration.runner import MigrationOutcome, MigrationRunner, MigrationRunResult
from checklistdb.migration.version_store import CorruptVersionMarkerError, VersionStore

__all__ = [
    "BUILTIN_MIGRATIONS",
    "CorruptVersionMarkerError",
    "Migration",
    "MigrationContext",
    "MigrationOutcome",
    "MigrationRegistry",
    "MigrationRunResult",
    "MigrationRunner",
    "RegistryOrderError",
    "VersionStore",
    "default_registry",
]
