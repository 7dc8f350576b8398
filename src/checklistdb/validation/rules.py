"""Validation rules: independent, read-only inspectors of live tenant data.

Each rule re-reads what it needs from the store and returns its findings in a
stable order.  Rules never write and never trust derived flags; a rule that
raises is reported by the engine as a single error issue.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from checklistdb.models.documents import (
    COMMENTS,
    COMMENTS_MAX_LENGTH,
    CONTACT_NAME_FIELDS,
    DELIVERED,
    DELIVERED_AT,
    ENTERPRISE_NAME,
    FIRST_NAME,
    LAST_NAME,
    LAST_SELECTED_YEAR_ID,
    NAME,
    TENANT_ID,
    TIMESTAMP_FIELDS,
    YEAR_ID,
)
from checklistdb.models.issues import Severity, ValidationIssue
from checklistdb.storage.adapter import DocumentSnapshot, DocumentStore
from checklistdb.storage.codec import year_label
from checklistdb.storage.layout import (
    contacts_collection,
    preferences_path,
    tenant_root,
    walk_contacts,
    year_path,
    years_collection,
)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


class ValidationRule(ABC):
    """Base class for a named rule producing :class:`ValidationIssue` items."""

    name: str
    description: str

    @abstractmethod
    async def validate(self, store: DocumentStore, tenant_id: str) -> list[ValidationIssue]: ...

    def issue(
        self,
        severity: Severity,
        message: str,
        path: str,
        *,
        document_id: str | None = None,
        field: str | None = None,
        suggested_fix: str | None = None,
    ) -> ValidationIssue:
        return ValidationIssue(
            severity=severity,
            rule=self.name,
            message=message,
            path=path,
            document_id=document_id,
            field=field,
            suggested_fix=suggested_fix,
        )

    def _timestamp_issues(
        self, snapshot: DocumentSnapshot, kind: str, *, document_id: str | None = None
    ) -> list[ValidationIssue]:
        return [
            self.issue(
                Severity.WARNING,
                f"Missing {name} timestamp in {kind}",
                snapshot.path,
                document_id=document_id,
                field=name,
                suggested_fix=f"Add {name} timestamp from the server clock",
            )
            for name in TIMESTAMP_FIELDS
            if not snapshot.data.get(name)
        ]

    def _owner_issue(
        self, snapshot: DocumentSnapshot, tenant_id: str, kind: str, *, document_id: str | None = None
    ) -> list[ValidationIssue]:
        if snapshot.data.get(TENANT_ID) == tenant_id:
            return []
        return [
            self.issue(
                Severity.ERROR,
                f"Invalid or missing {TENANT_ID} in {kind}",
                snapshot.path,
                document_id=document_id,
                field=TENANT_ID,
                suggested_fix=f"Update {TENANT_ID} field to match document path",
            )
        ]


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


class PreferencesExistRule(ValidationRule):
    name = "preferences-exist"
    description = "Check that the tenant preferences document exists"

    async def validate(self, store: DocumentStore, tenant_id: str) -> list[ValidationIssue]:
        path = preferences_path(tenant_id)
        if await store.get(path) is not None:
            return []
        return [
            self.issue(
                Severity.ERROR,
                "Tenant preferences document does not exist",
                path,
                suggested_fix="Run the schema bootstrapper for this tenant",
            )
        ]


class PreferencesStructureRule(ValidationRule):
    name = "preferences-structure"
    description = "Validate the preferences document structure and year reference"

    async def validate(self, store: DocumentStore, tenant_id: str) -> list[ValidationIssue]:
        prefs = await store.get(preferences_path(tenant_id))
        if prefs is None:
            return []

        issues = self._owner_issue(prefs, tenant_id, "preferences")
        issues.extend(self._timestamp_issues(prefs, "preferences"))

        selected = prefs.data.get(LAST_SELECTED_YEAR_ID)
        if selected is not None and not isinstance(selected, str):
            issues.append(
                self.issue(
                    Severity.WARNING,
                    f"{LAST_SELECTED_YEAR_ID} must be a year id or null",
                    prefs.path,
                    field=LAST_SELECTED_YEAR_ID,
                    suggested_fix=f"Set {LAST_SELECTED_YEAR_ID} to a valid year id or null",
                )
            )
        elif selected and await store.get(year_path(tenant_id, selected)) is None:
            issues.append(
                self.issue(
                    Severity.WARNING,
                    f"{LAST_SELECTED_YEAR_ID} references non-existent year '{selected}'",
                    prefs.path,
                    field=LAST_SELECTED_YEAR_ID,
                    suggested_fix=(
                        f"Update {LAST_SELECTED_YEAR_ID} to reference a valid year or set to null"
                    ),
                )
            )
        return issues


# ---------------------------------------------------------------------------
# Years
# ---------------------------------------------------------------------------


class YearsExistRule(ValidationRule):
    name = "years-exist"
    description = "Check that the tenant has at least one year"

    async def validate(self, store: DocumentStore, tenant_id: str) -> list[ValidationIssue]:
        if await store.list(years_collection(tenant_id)):
            return []
        return [
            self.issue(
                Severity.WARNING,
                "Tenant has no years defined",
                years_collection(tenant_id),
                suggested_fix="Create at least one year for the tenant",
            )
        ]


class YearStructureRule(ValidationRule):
    name = "year-structure"
    description = "Validate year document structure"

    async def validate(self, store: DocumentStore, tenant_id: str) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        for year in await store.list(years_collection(tenant_id)):
            issues.extend(self._owner_issue(year, tenant_id, "year", document_id=year.id))
            if not _is_text(year.data.get(NAME)):
                issues.append(
                    self.issue(
                        Severity.ERROR,
                        "Invalid or missing name in year",
                        year.path,
                        document_id=year.id,
                        field=NAME,
                        suggested_fix="Add a valid name for the year",
                    )
                )
            issues.extend(self._timestamp_issues(year, "year", document_id=year.id))
        return issues


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------


class ContactStructureRule(ValidationRule):
    name = "contact-structure"
    description = "Validate contact document structure"

    def __init__(self, comments_max_length: int = COMMENTS_MAX_LENGTH) -> None:
        self.comments_max_length = comments_max_length

    async def validate(self, store: DocumentStore, tenant_id: str) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        async for year, contacts in walk_contacts(store, tenant_id):
            for contact in contacts:
                issues.extend(self.check(contact, tenant_id, year.id))
        return issues

    def check(
        self, contact: DocumentSnapshot, tenant_id: str, year_id: str
    ) -> list[ValidationIssue]:
        data = contact.data
        cid = contact.id
        issues = self._owner_issue(contact, tenant_id, "contact", document_id=cid)

        if data.get(YEAR_ID) != year_id:
            issues.append(
                self.issue(
                    Severity.ERROR,
                    f"Invalid or missing {YEAR_ID} in contact",
                    contact.path,
                    document_id=cid,
                    field=YEAR_ID,
                    suggested_fix=f"Update {YEAR_ID} field to match parent year document",
                )
            )

        for name in CONTACT_NAME_FIELDS:
            if not _is_text(data.get(name)):
                issues.append(
                    self.issue(
                        Severity.ERROR,
                        f"Invalid or missing {name} in contact",
                        contact.path,
                        document_id=cid,
                        field=name,
                        suggested_fix=f"Add a valid {name} for the contact",
                    )
                )

        if COMMENTS in data:
            comments = data[COMMENTS]
            if not isinstance(comments, str):
                issues.append(
                    self.issue(
                        Severity.WARNING,
                        "Invalid comments field type in contact",
                        contact.path,
                        document_id=cid,
                        field=COMMENTS,
                        suggested_fix="Ensure comments field is a string",
                    )
                )
            elif len(comments) > self.comments_max_length:
                issues.append(
                    self.issue(
                        Severity.WARNING,
                        f"Comments exceed {self.comments_max_length} characters "
                        f"({len(comments)})",
                        contact.path,
                        document_id=cid,
                        field=COMMENTS,
                        suggested_fix="Shorten the contact comments",
                    )
                )

        if not isinstance(data.get(DELIVERED), bool):
            issues.append(
                self.issue(
                    Severity.ERROR,
                    "Invalid delivered field in contact",
                    contact.path,
                    document_id=cid,
                    field=DELIVERED,
                    suggested_fix="Ensure delivered field is a boolean",
                )
            )

        issues.extend(self._timestamp_issues(contact, "contact", document_id=cid))
        return issues


class DeliveryConsistencyRule(ValidationRule):
    """``delivered`` and ``deliveredAt`` must agree.

    Disagreement is a hygiene warning: showing a stale delivery time is not
    destructive.
    """

    name = "contact-delivery-consistency"
    description = "Check delivered / deliveredAt agreement on contacts"

    async def validate(self, store: DocumentStore, tenant_id: str) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        async for _year, contacts in walk_contacts(store, tenant_id):
            for contact in contacts:
                issues.extend(self.check(contact))
        return issues

    def check(self, contact: DocumentSnapshot) -> list[ValidationIssue]:
        delivered = contact.data.get(DELIVERED)
        delivered_at = contact.data.get(DELIVERED_AT)
        if delivered is True and not delivered_at:
            return [
                self.issue(
                    Severity.WARNING,
                    "Contact marked as delivered but missing deliveredAt timestamp",
                    contact.path,
                    document_id=contact.id,
                    field=DELIVERED_AT,
                    suggested_fix="Add deliveredAt timestamp for delivered contacts",
                )
            ]
        if delivered is False and delivered_at:
            return [
                self.issue(
                    Severity.WARNING,
                    "Contact not delivered but has deliveredAt timestamp",
                    contact.path,
                    document_id=contact.id,
                    field=DELIVERED_AT,
                    suggested_fix="Remove deliveredAt timestamp for non-delivered contacts",
                )
            ]
        return []


class DuplicateContactsRule(ValidationRule):
    """Flag contacts sharing first, last, and enterprise name within one year.

    Names are compared trimmed and case-insensitively; one pass per year.
    """

    name = "duplicate-contacts"
    description = "Check for duplicate contacts within years"

    async def validate(self, store: DocumentStore, tenant_id: str) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        async for year, contacts in walk_contacts(store, tenant_id):
            groups: dict[tuple[str, str, str], list[str]] = {}
            for contact in contacts:
                key = self.key(contact.data)
                if key is not None:
                    groups.setdefault(key, []).append(contact.id)

            for key, ids in groups.items():
                if len(ids) < 2:
                    continue
                names = " / ".join(key)
                issues.append(
                    self.issue(
                        Severity.WARNING,
                        f"Duplicate contacts found in year {year_label(year)}: {names} "
                        f"({', '.join(ids)})",
                        contacts_collection(tenant_id, year.id),
                        document_id=ids[0],
                        suggested_fix=f"Review and merge duplicate contacts: {', '.join(ids)}",
                    )
                )
        return issues

    @staticmethod
    def key(data: dict[str, Any]) -> tuple[str, str, str] | None:
        parts = [data.get(FIRST_NAME), data.get(LAST_NAME), data.get(ENTERPRISE_NAME)]
        if not all(_is_text(p) for p in parts):
            return None
        first, last, enterprise = (p.strip().lower() for p in parts)
        return first, last, enterprise


class OrphanedDataRule(ValidationRule):
    """Informational scan summary; broken references are reported by the
    structure rules above."""

    name = "orphaned-data"
    description = "Summarise the scan for orphaned data and broken references"

    async def validate(self, store: DocumentStore, tenant_id: str) -> list[ValidationIssue]:
        years = 0
        contacts = 0
        async for _year, year_contacts in walk_contacts(store, tenant_id):
            years += 1
            contacts += len(year_contacts)
        return [
            self.issue(
                Severity.INFO,
                f"Orphaned data check completed ({years} years, {contacts} contacts scanned); "
                f"references are covered by the structure rules",
                tenant_root(tenant_id),
            )
        ]


def builtin_rules(*, comments_max_length: int = COMMENTS_MAX_LENGTH) -> list[ValidationRule]:
    """The default rule catalog, in reporting order."""
    return [
        PreferencesExistRule(),
        PreferencesStructureRule(),
        YearsExistRule(),
        YearStructureRule(),
        ContactStructureRule(comments_max_length=comments_max_length),
        DeliveryConsistencyRule(),
        DuplicateContactsRule(),
        OrphanedDataRule(),
    ]

