"""In-memory document store for development/testing."""

from __future__ import annotations

import copy
import threading
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from checklistdb.storage.adapter import (
    DEFAULT_MAX_BATCH_OPERATIONS,
    DELETE_FIELD,
    SERVER_TIMESTAMP,
    DocumentSnapshot,
    DocumentStore,
    StoreNotFoundError,
    WriteBatch,
)


def _split(path: str) -> list[str]:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        raise ValueError("Document path must not be empty")
    return parts


def _document_path(path: str) -> str:
    parts = _split(path)
    if len(parts) % 2 != 0:
        raise ValueError(f"'{path}' is a collection path, not a document path")
    return "/".join(parts)


class InMemoryWriteBatch(WriteBatch):
    """Batch of staged operations applied to an :class:`InMemoryDocumentStore`."""

    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store
        self._ops: list[tuple[str, str, dict[str, Any], bool]] = []
        self._committed = False

    def _stage(self, kind: str, path: str, fields: dict[str, Any], merge: bool) -> None:
        if self._committed:
            raise RuntimeError("Batch has already been committed")
        if len(self._ops) >= self._store.max_batch_operations:
            raise ValueError(
                f"Batch exceeds the maximum of {self._store.max_batch_operations} operations"
            )
        self._ops.append((kind, _document_path(path), dict(fields), merge))

    def set(self, path: str, fields: dict[str, Any], *, merge: bool = False) -> None:
        self._stage("set", path, fields, merge)

    def update(self, path: str, fields: dict[str, Any]) -> None:
        self._stage("update", path, fields, True)

    def delete(self, path: str) -> None:
        self._stage("delete", path, {}, False)

    async def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Batch has already been committed")
        self._store._apply(self._ops)
        self._committed = True


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store keyed by full document path.

    Writes resolve ``SERVER_TIMESTAMP`` with a strictly increasing clock and
    ``DELETE_FIELD`` by removing the key.  Every successful commit is counted
    in :attr:`commit_sizes`.
    """

    def __init__(self, max_batch_operations: int = DEFAULT_MAX_BATCH_OPERATIONS) -> None:
        if max_batch_operations < 1:
            raise ValueError("max_batch_operations must be at least 1")
        self.max_batch_operations = max_batch_operations
        self._lock = threading.Lock()
        self._docs: dict[str, dict[str, Any]] = {}
        self._last_timestamp: datetime | None = None
        self.commit_sizes: list[int] = []

    @property
    def commit_count(self) -> int:
        return len(self.commit_sizes)

    # -- reads ---------------------------------------------------------------

    async def get(self, path: str) -> DocumentSnapshot | None:
        key = _document_path(path)
        with self._lock:
            data = self._docs.get(key)
            if data is None:
                return None
            return DocumentSnapshot(path=key, data=copy.deepcopy(data))

    async def list(self, collection_path: str) -> list[DocumentSnapshot]:
        parts = _split(collection_path)
        if len(parts) % 2 != 1:
            raise ValueError(f"'{collection_path}' is a document path, not a collection path")
        prefix = "/".join(parts) + "/"
        with self._lock:
            found = [
                DocumentSnapshot(path=key, data=copy.deepcopy(data))
                for key, data in self._docs.items()
                if key.startswith(prefix) and "/" not in key[len(prefix) :]
            ]
        return sorted(found, key=lambda snap: snap.id)

    # -- writes --------------------------------------------------------------

    def batch(self) -> InMemoryWriteBatch:
        return InMemoryWriteBatch(self)

    def new_id(self) -> str:
        return uuid.uuid4().hex[:20]

    def _server_now(self) -> datetime:
        now = datetime.now(UTC)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _apply(self, ops: list[tuple[str, str, dict[str, Any], bool]]) -> None:
        """Apply *ops* atomically: either every operation lands or none does."""
        with self._lock:
            staged = copy.deepcopy(self._docs)
            last_timestamp = self._last_timestamp
            timestamp = self._server_now()
            try:
                for kind, path, fields, merge in ops:
                    if kind == "delete":
                        staged.pop(path, None)
                        continue
                    if kind == "update" and path not in staged:
                        raise StoreNotFoundError(
                            f"No document to update at '{path}'", operation="update"
                        )
                    current = staged.get(path, {}) if merge else {}
                    for name, value in fields.items():
                        if value is DELETE_FIELD:
                            current.pop(name, None)
                        elif value is SERVER_TIMESTAMP:
                            current[name] = timestamp
                        else:
                            current[name] = copy.deepcopy(value)
                    staged[path] = current
            except Exception:
                self._last_timestamp = last_timestamp
                raise
            self._docs = staged
            self.commit_sizes.append(len(ops))

    # -- test helpers --------------------------------------------------------

    def put(self, path: str, fields: dict[str, Any]) -> None:
        """Write a raw document directly, bypassing batches (seeding only)."""
        with self._lock:
            self._docs[_document_path(path)] = copy.deepcopy(fields)

    def paths(self) -> list[str]:
        """Return every stored document path, sorted."""
        with self._lock:
            return sorted(self._docs)
