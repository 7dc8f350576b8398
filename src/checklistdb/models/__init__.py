"""Pydantic domain models for checklistdb."""

from checklistdb.models.documents import (
    Contact,
    MigrationHistoryEntry,
    Preferences,
    VersionMarker,
    Year,
)
from checklistdb.models.issues import IssueSummary, Severity, ValidationIssue, ValidationReport
from checklistdb.models.version import (
    ZERO_VERSION,
    InvalidVersionError,
    compare_versions,
    parse_version,
)

__all__ = [
    "ZERO_VERSION",
    "Contact",
    "InvalidVersionError",
    "IssueSummary",
    "MigrationHistoryEntry",
    "Preferences",
    "Severity",
    "ValidationIssue",
    "ValidationReport",
    "VersionMarker",
    "Year",
    "compare_versions",
    "parse_version",
]
