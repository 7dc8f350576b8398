"""Read-only integrity checks over a tenant's stored data."""

from checklistdb.validation.engine import (
    DocumentKind,
    DocumentPathError,
    UnknownRuleError,
    ValidationEngine,
)
from checklistdb.validation.rules import ValidationRule, builtin_rules

__all__ = [
    "DocumentKind",
    "DocumentPathError",
    "UnknownRuleError",
    "ValidationEngine",
    "ValidationRule",
    "builtin_rules",
]
