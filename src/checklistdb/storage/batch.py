"""Batch writer that respects the store's per-batch operation ceiling."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from checklistdb.storage.adapter import DocumentStore, WriteBatch

logger = logging.getLogger("checklistdb.storage")


class WriteKind(StrEnum):
    SET = "set"
    MERGE = "merge"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Write:
    """One logical mutation against a single document."""

    kind: WriteKind
    path: str
    fields: dict[str, Any] = field(default_factory=dict)


class BatchWriter:
    """Stages writes and commits them in batches of at most ``max_operations``.

    When the staged count reaches the ceiling the current batch is committed
    before :meth:`stage` returns, and a fresh batch is opened.  Callers must
    :meth:`flush` at the end of every unit of work.  Commit failures propagate
    unchanged; the failed batch is discarded and nothing is retried.
    """

    def __init__(self, store: DocumentStore, max_operations: int | None = None) -> None:
        limit = max_operations if max_operations is not None else store.max_batch_operations
        if limit < 1:
            raise ValueError("max_operations must be at least 1")
        self._store = store
        self._max = min(limit, store.max_batch_operations)
        self._batch: WriteBatch = store.batch()
        self._pending = 0
        self.committed_batches = 0
        self.committed_operations = 0

    @property
    def pending(self) -> int:
        """Number of writes staged but not yet committed."""
        return self._pending

    async def stage(self, write: Write) -> None:
        if write.kind is WriteKind.SET:
            self._batch.set(write.path, write.fields)
        elif write.kind is WriteKind.MERGE:
            self._batch.set(write.path, write.fields, merge=True)
        elif write.kind is WriteKind.UPDATE:
            self._batch.update(write.path, write.fields)
        else:
            self._batch.delete(write.path)
        self._pending += 1
        if self._pending >= self._max:
            await self._commit()

    async def set(self, path: str, fields: dict[str, Any], *, merge: bool = False) -> None:
        await self.stage(Write(WriteKind.MERGE if merge else WriteKind.SET, path, fields))

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        await self.stage(Write(WriteKind.UPDATE, path, fields))

    async def delete(self, path: str) -> None:
        await self.stage(Write(WriteKind.DELETE, path))

    async def flush(self) -> None:
        """Commit any staged writes.  A flush with nothing staged is a no-op."""
        if self._pending:
            await self._commit()

    async def _commit(self) -> None:
        batch, count = self._batch, self._pending
        self._batch = self._store.batch()
        self._pending = 0
        await batch.commit()
        self.committed_batches += 1
        self.committed_operations += count
        logger.debug("Committed batch of %d operations", count)
