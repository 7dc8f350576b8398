"""Built-in migrations for the checklist data model.

Every step checks each document's current shape before staging a write, so
re-running a step after a partial failure touches only what is still missing.
"""

from __future__ import annotations

import logging

from checklistdb.migration.registry import Migration, MigrationContext, MigrationRegistry
from checklistdb.models.documents import (
    COMMENTS,
    DELIVERED,
    DELIVERED_AT,
    TIMESTAMP_FIELDS,
    UPDATED_AT,
)
from checklistdb.storage.adapter import DELETE_FIELD, SERVER_TIMESTAMP
from checklistdb.storage.layout import preferences_path, walk_contacts

logger = logging.getLogger("checklistdb.migrations")


def _missing_timestamps(data: dict) -> dict:
    return {name: SERVER_TIMESTAMP for name in TIMESTAMP_FIELDS if not data.get(name)}


async def initial_schema(ctx: MigrationContext) -> None:
    # The bootstrapper creates preferences and the first year.
    logger.info("Migration 1.0.0 (initial schema) completed for tenant %s", ctx.tenant_id)


async def add_delivered_at(ctx: MigrationContext) -> None:
    writer = ctx.writer()
    async for _year, contacts in walk_contacts(ctx.store, ctx.tenant_id):
        for contact in contacts:
            if DELIVERED_AT in contact.data:
                continue
            await writer.update(
                contact.path,
                {
                    DELIVERED_AT: SERVER_TIMESTAMP if contact.data.get(DELIVERED) else None,
                    UPDATED_AT: SERVER_TIMESTAMP,
                },
            )
    await writer.flush()


async def remove_delivered_at(ctx: MigrationContext) -> None:
    writer = ctx.writer()
    async for _year, contacts in walk_contacts(ctx.store, ctx.tenant_id):
        for contact in contacts:
            if DELIVERED_AT not in contact.data:
                continue
            await writer.update(
                contact.path, {DELIVERED_AT: DELETE_FIELD, UPDATED_AT: SERVER_TIMESTAMP}
            )
    await writer.flush()


async def ensure_timestamps(ctx: MigrationContext) -> None:
    writer = ctx.writer()

    preferences = await ctx.store.get(preferences_path(ctx.tenant_id))
    if preferences is not None:
        updates = _missing_timestamps(preferences.data)
        if updates:
            await writer.update(preferences.path, updates)

    async for year, contacts in walk_contacts(ctx.store, ctx.tenant_id):
        updates = _missing_timestamps(year.data)
        if updates:
            await writer.update(year.path, updates)
        for contact in contacts:
            updates = _missing_timestamps(contact.data)
            if updates:
                await writer.update(contact.path, updates)
    await writer.flush()


async def add_comments(ctx: MigrationContext) -> None:
    writer = ctx.writer()
    async for _year, contacts in walk_contacts(ctx.store, ctx.tenant_id):
        for contact in contacts:
            if COMMENTS in contact.data:
                continue
            await writer.update(contact.path, {COMMENTS: "", UPDATED_AT: SERVER_TIMESTAMP})
    await writer.flush()


BUILTIN_MIGRATIONS: tuple[Migration, ...] = (
    Migration("1.0.0", "Initial schema setup", initial_schema),
    Migration(
        "1.1.0",
        "Add deliveredAt timestamp to existing contacts",
        add_delivered_at,
        rollback=remove_delivered_at,
    ),
    Migration("1.2.0", "Ensure all documents have proper timestamps", ensure_timestamps),
    Migration("1.3.0", "Add comments field to contacts without it", add_comments),
)


def default_registry() -> MigrationRegistry:
    """Registry of the built-in migrations, checked for declaration order."""
    return MigrationRegistry(BUILTIN_MIGRATIONS, require_ordered=True)
