"""Abstract document store interfaces consumed by the engine.

The remote hierarchical store is an external collaborator.  The engine only
relies on point reads, direct-child listing, and an atomic batched write with
a fixed operation ceiling.
"""

from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

DEFAULT_MAX_BATCH_OPERATIONS = 500


class _Sentinel:
    """Marker value resolved by the store when a write is committed."""

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


SERVER_TIMESTAMP: Any = _Sentinel("SERVER_TIMESTAMP")
DELETE_FIELD: Any = _Sentinel("DELETE_FIELD")


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """Base class for failures reported by a document store."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        self.operation = operation
        super().__init__(message)


class StoreUnavailableError(StoreError):
    """Transient transport failure; the unit of work may be retried."""


class StorePermissionError(StoreError):
    """The caller is not allowed to perform the operation; do not retry."""


class StoreNotFoundError(StoreError):
    """The addressed document does not exist."""


@contextlib.contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Wrap raw transport exceptions into :class:`StoreUnavailableError`.

    ``StoreError`` subclasses pass through untouched so callers can still
    tell permission and not-found failures apart.
    """
    try:
        yield
    except StoreError:
        raise
    except (OSError, TimeoutError) as exc:
        raise StoreUnavailableError(
            f"Document store unavailable during {operation}: {exc}", operation=operation
        ) from exc


# ---------------------------------------------------------------------------
# Snapshots and writes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentSnapshot:
    """A document read from the store: its full path, id, and raw fields."""

    path: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class WriteBatch(ABC):
    """A set of writes committed atomically (all-or-nothing for this batch only)."""

    @abstractmethod
    def set(self, path: str, fields: dict[str, Any], *, merge: bool = False) -> None: ...

    @abstractmethod
    def update(self, path: str, fields: dict[str, Any]) -> None: ...

    @abstractmethod
    def delete(self, path: str) -> None: ...

    @abstractmethod
    async def commit(self) -> None: ...


class DocumentStore(ABC):
    """Narrow contract of the hierarchical document store."""

    max_batch_operations: int = DEFAULT_MAX_BATCH_OPERATIONS

    @abstractmethod
    async def get(self, path: str) -> DocumentSnapshot | None: ...

    @abstractmethod
    async def list(self, collection_path: str) -> list[DocumentSnapshot]: ...

    @abstractmethod
    def batch(self) -> WriteBatch: ...

    @abstractmethod
    def new_id(self) -> str: ...
