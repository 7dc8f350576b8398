"""Boundary between raw store field bags and typed entities.

Writers hand typed models to ``encode_*``; readers that need typed values
(version marker, history, stats) go through ``decode_*``.  Validation rules
deliberately inspect the raw ``DocumentSnapshot.data`` instead, because their
job is to report documents that would not decode.
"""

from __future__ import annotations

from typing import Any

from checklistdb.models.documents import (
    CREATED_AT,
    DELIVERED,
    DELIVERED_AT,
    NAME,
    UPDATED_AT,
    Contact,
    MigrationHistoryEntry,
    Preferences,
    VersionMarker,
    Year,
)
from checklistdb.models.version import ZERO_VERSION
from checklistdb.storage.adapter import SERVER_TIMESTAMP, DocumentSnapshot


def _with_server_timestamps(fields: dict[str, Any], *names: str) -> dict[str, Any]:
    for name in names:
        if fields.get(name) is None:
            fields[name] = SERVER_TIMESTAMP
    return fields


def encode_preferences(preferences: Preferences) -> dict[str, Any]:
    fields = preferences.model_dump(by_alias=True)
    return _with_server_timestamps(fields, CREATED_AT, UPDATED_AT)


def encode_year(year: Year) -> dict[str, Any]:
    fields = year.model_dump(by_alias=True)
    return _with_server_timestamps(fields, CREATED_AT, UPDATED_AT)


def encode_contact(contact: Contact) -> dict[str, Any]:
    fields = contact.model_dump(by_alias=True)
    if fields[DELIVERED]:
        _with_server_timestamps(fields, DELIVERED_AT)
    return _with_server_timestamps(fields, CREATED_AT, UPDATED_AT)


def encode_version_marker(version: str) -> dict[str, Any]:
    marker = VersionMarker(version=version)
    return {"version": marker.version, UPDATED_AT: SERVER_TIMESTAMP}


def encode_history_entry(version: str, success: bool, error: str | None) -> dict[str, Any]:
    entry = MigrationHistoryEntry(version=version, success=success, error=error)
    fields = entry.model_dump(by_alias=True)
    fields["executedAt"] = SERVER_TIMESTAMP
    return fields


def decode_version_marker(snapshot: DocumentSnapshot | None) -> VersionMarker:
    """Decode the marker; a missing document or empty version means ``0.0.0``."""
    if snapshot is None or not snapshot.data.get("version"):
        return VersionMarker(version=ZERO_VERSION)
    return VersionMarker.model_validate(snapshot.data)


def decode_history_entry(snapshot: DocumentSnapshot) -> MigrationHistoryEntry:
    return MigrationHistoryEntry.model_validate(snapshot.data)


def year_label(snapshot: DocumentSnapshot) -> str:
    """Display name of a raw year document, falling back to its id."""
    name = snapshot.data.get(NAME)
    if isinstance(name, str) and name.strip():
        return name
    return snapshot.id
