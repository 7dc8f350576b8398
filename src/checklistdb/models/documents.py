"""Per-tenant document schemas: preferences, years, contacts, version, history.

Storage uses camelCase field names; the models expose snake_case attributes
and accept either spelling.  Timestamps left as ``None`` are filled in by the
store's server clock when the document is encoded for writing.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from checklistdb.models.version import ZERO_VERSION, parse_version

# Stored field names
TENANT_ID = "tenantId"
LAST_SELECTED_YEAR_ID = "lastSelectedYearId"
YEAR_ID = "yearId"
NAME = "name"
FIRST_NAME = "firstName"
LAST_NAME = "lastName"
ENTERPRISE_NAME = "enterpriseName"
COMMENTS = "comments"
DELIVERED = "delivered"
DELIVERED_AT = "deliveredAt"
CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"
VERSION = "version"

CONTACT_NAME_FIELDS = (FIRST_NAME, LAST_NAME, ENTERPRISE_NAME)
TIMESTAMP_FIELDS = (CREATED_AT, UPDATED_AT)

COMMENTS_MAX_LENGTH = 1000


def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class Preferences(BaseModel):
    """One per tenant; remembers the currently selected year."""

    tenant_id: str = Field(alias=TENANT_ID)
    last_selected_year_id: str | None = Field(None, alias=LAST_SELECTED_YEAR_ID)
    created_at: datetime | None = Field(None, alias=CREATED_AT)
    updated_at: datetime | None = Field(None, alias=UPDATED_AT)

    model_config = {"populate_by_name": True}


class Year(BaseModel):
    """A named checklist period (e.g. ``"2025"``) owning a set of contacts."""

    id: str | None = Field(None, exclude=True)
    tenant_id: str = Field(alias=TENANT_ID)
    name: str
    created_at: datetime | None = Field(None, alias=CREATED_AT)
    updated_at: datetime | None = Field(None, alias=UPDATED_AT)

    model_config = {"populate_by_name": True}

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return _required_text(value)


class Contact(BaseModel):
    """A checklist entry belonging to exactly one year."""

    id: str | None = Field(None, exclude=True)
    tenant_id: str = Field(alias=TENANT_ID)
    year_id: str = Field(alias=YEAR_ID)
    first_name: str = Field(alias=FIRST_NAME)
    last_name: str = Field(alias=LAST_NAME)
    enterprise_name: str = Field(alias=ENTERPRISE_NAME)
    comments: str = Field("", max_length=COMMENTS_MAX_LENGTH)
    delivered: bool = False
    delivered_at: datetime | None = Field(None, alias=DELIVERED_AT)
    created_at: datetime | None = Field(None, alias=CREATED_AT)
    updated_at: datetime | None = Field(None, alias=UPDATED_AT)

    model_config = {"populate_by_name": True}

    @field_validator("first_name", "last_name", "enterprise_name")
    @classmethod
    def check_names(cls, value: str) -> str:
        return _required_text(value)

    @model_validator(mode="after")
    def check_delivery(self) -> Contact:
        if not self.delivered and self.delivered_at is not None:
            raise ValueError("deliveredAt must be null for contacts that are not delivered")
        return self


class VersionMarker(BaseModel):
    """The single schema-version marker of a tenant."""

    version: str = ZERO_VERSION
    updated_at: datetime | None = Field(None, alias=UPDATED_AT)

    model_config = {"populate_by_name": True}

    @field_validator("version")
    @classmethod
    def check_version(cls, value: str) -> str:
        parse_version(value)
        return value.strip()


class MigrationHistoryEntry(BaseModel):
    """Append-only audit record of one migration or rollback attempt."""

    version: str
    success: bool
    error: str | None = None
    executed_at: datetime | None = Field(None, alias="executedAt")

    model_config = {"populate_by_name": True}
