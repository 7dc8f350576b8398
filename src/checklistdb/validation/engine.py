"""Runs validation rules against a tenant and aggregates their findings."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from enum import StrEnum

from checklistdb.models.documents import (
    COMMENTS_MAX_LENGTH,
    CONTACT_NAME_FIELDS,
    DELIVERED,
    NAME,
    TENANT_ID,
    TIMESTAMP_FIELDS,
    YEAR_ID,
)
from checklistdb.models.issues import IssueSummary, Severity, ValidationIssue, ValidationReport
from checklistdb.storage.adapter import DocumentStore
from checklistdb.storage.layout import require_tenant_id, tenant_root
from checklistdb.validation.rules import ValidationRule, builtin_rules

logger = logging.getLogger("checklistdb.validation")

DOCUMENT_RULE = "validate-document"


class DocumentKind(StrEnum):
    PREFERENCES = "preferences"
    YEAR = "year"
    CONTACT = "contact"


class UnknownRuleError(ValueError):
    """Raised when a requested rule name is not in the catalog."""

    def __init__(self, names: list[str], available: list[str]) -> None:
        self.rule_names = names
        self.available = available
        super().__init__(
            f"Unknown validation rule(s): {', '.join(names)}. Available: {', '.join(available)}"
        )


class DocumentPathError(ValueError):
    """Raised when a document path does not belong to the tenant being validated."""

    def __init__(self, tenant_id: str, path: str) -> None:
        self.tenant_id = tenant_id
        self.path = path
        super().__init__(f"Document path '{path}' is outside tenant {tenant_id}")


class ValidationEngine:
    """A fixed, ordered catalog of rules bound to one document store.

    Rules are independent.  With ``concurrent=True`` they are fanned out with
    :func:`asyncio.gather`; issues are still concatenated in catalog order, so
    the report is identical either way.
    """

    def __init__(
        self,
        store: DocumentStore,
        rules: Sequence[ValidationRule] | None = None,
        *,
        concurrent: bool = True,
        comments_max_length: int = COMMENTS_MAX_LENGTH,
    ) -> None:
        self._store = store
        if rules is None:
            rules = builtin_rules(comments_max_length=comments_max_length)
        self._rules: tuple[ValidationRule, ...] = tuple(rules)
        names = [r.name for r in self._rules]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate validation rule names in catalog: {names}")
        self._concurrent = concurrent

    @property
    def rules(self) -> list[ValidationRule]:
        return list(self._rules)

    @property
    def rule_names(self) -> list[str]:
        return [r.name for r in self._rules]

    def _select(self, names: Sequence[str] | None) -> list[ValidationRule]:
        if names is None:
            return list(self._rules)
        unknown = [n for n in names if n not in self.rule_names]
        if unknown:
            raise UnknownRuleError(unknown, self.rule_names)
        return [r for r in self._rules if r.name in names]

    async def _run_rule(self, rule: ValidationRule, tenant_id: str) -> list[ValidationIssue]:
        logger.debug("Running validation rule %s for tenant %s", rule.name, tenant_id)
        try:
            return await rule.validate(self._store, tenant_id)
        except Exception as exc:
            logger.warning("Validation rule %s failed for tenant %s: %s", rule.name, tenant_id, exc)
            return [
                ValidationIssue(
                    severity=Severity.ERROR,
                    rule=rule.name,
                    message=f"Validation rule failed: {exc or type(exc).__name__}",
                    path=tenant_root(tenant_id),
                )
            ]

    async def validate_all(
        self,
        tenant_id: str,
        *,
        rules: Sequence[str] | None = None,
        include_info: bool = False,
    ) -> ValidationReport:
        """Run the selected rules (all by default) and summarise the issues.

        ``info`` issues are dropped unless *include_info* is set.  The tenant
        is valid when no ``error`` issue remains.
        """
        require_tenant_id(tenant_id)
        selected = self._select(rules)
        logger.info("Running %d validation rules for tenant %s", len(selected), tenant_id)

        if self._concurrent:
            per_rule = await asyncio.gather(*(self._run_rule(r, tenant_id) for r in selected))
        else:
            per_rule = [await self._run_rule(r, tenant_id) for r in selected]

        issues = [issue for found in per_rule for issue in found]
        if not include_info:
            issues = [i for i in issues if i.severity is not Severity.INFO]

        summary = IssueSummary.of(issues)
        report = ValidationReport(valid=summary.errors == 0, issues=issues, summary=summary)
        logger.info(
            "Validation completed for tenant %s (valid=%s, errors=%d, warnings=%d, info=%d)",
            tenant_id, report.valid, summary.errors, summary.warnings, summary.info,
        )
        return report

    async def quick_validate(self, tenant_id: str) -> bool:
        """True when a full run reports zero errors."""
        report = await self.validate_all(tenant_id)
        return report.summary.errors == 0

    async def validate_document(
        self, tenant_id: str, path: str, kind: DocumentKind | str
    ) -> list[ValidationIssue]:
        """Structural check of a single document addressed by *path*.

        *path* must lie under the tenant's root; anything else raises
        :class:`DocumentPathError` before the store is read.
        """
        require_tenant_id(tenant_id)
        kind = DocumentKind(kind)
        path = path.strip().strip("/")
        if not path.startswith(tenant_root(tenant_id) + "/") or "/../" in f"/{path}/":
            raise DocumentPathError(tenant_id, path)

        def issue(severity: Severity, message: str, field: str | None = None) -> ValidationIssue:
            return ValidationIssue(
                severity=severity, rule=DOCUMENT_RULE, message=message, path=path, field=field
            )

        try:
            snapshot = await self._store.get(path)
        except Exception as exc:
            return [issue(Severity.ERROR, f"Failed to validate document: {exc}")]
        if snapshot is None:
            return [issue(Severity.ERROR, "Document does not exist")]

        data = snapshot.data
        issues: list[ValidationIssue] = []
        if data.get(TENANT_ID) != tenant_id:
            issues.append(issue(Severity.ERROR, f"Invalid {TENANT_ID} in {kind} document", TENANT_ID))

        if kind is DocumentKind.YEAR:
            if not isinstance(data.get(NAME), str) or not data[NAME].strip():
                issues.append(issue(Severity.ERROR, "Invalid name in year document", NAME))
        elif kind is DocumentKind.CONTACT:
            for name in (YEAR_ID, *CONTACT_NAME_FIELDS):
                if not isinstance(data.get(name), str) or not data[name].strip():
                    issues.append(issue(Severity.ERROR, f"Invalid {name} in contact document", name))
            if not isinstance(data.get(DELIVERED), bool):
                issues.append(
                    issue(Severity.ERROR, "Invalid delivered field in contact document", DELIVERED)
                )

        for name in TIMESTAMP_FIELDS:
            if not data.get(name):
                issues.append(issue(Severity.WARNING, f"Missing {name} timestamp", name))
        return issues
