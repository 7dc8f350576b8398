"""Structured validation findings with severity and remediation hints."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationIssue(BaseModel):
    """A single finding produced by a validation rule.  Never persisted."""

    severity: Severity
    rule: str
    message: str
    path: str
    document_id: str | None = None
    field: str | None = None
    suggested_fix: str | None = None


class IssueSummary(BaseModel):
    """Issue counts per severity."""

    errors: int = 0
    warnings: int = 0
    info: int = 0

    @classmethod
    def of(cls, issues: list[ValidationIssue]) -> IssueSummary:
        return cls(
            errors=sum(1 for i in issues if i.severity is Severity.ERROR),
            warnings=sum(1 for i in issues if i.severity is Severity.WARNING),
            info=sum(1 for i in issues if i.severity is Severity.INFO),
        )


class ValidationReport(BaseModel):
    """Result of validating one tenant's data."""

    valid: bool
    issues: list[ValidationIssue] = []
    summary: IssueSummary = IssueSummary()
