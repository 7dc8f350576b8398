"""Document store adapter, batch writer, and tenant storage layout."""

from checklistdb.storage.adapter import (
    DELETE_FIELD,
    SERVER_TIMESTAMP,
    DocumentSnapshot,
    DocumentStore,
    StoreError,
    StoreNotFoundError,
    StorePermissionError,
    StoreUnavailableError,
    WriteBatch,
)
from checklistdb.storage.batch import BatchWriter, Write, WriteKind
from checklistdb.storage.layout import InvalidTenantIdError, require_tenant_id
from checklistdb.storage.memory import InMemoryDocumentStore

__all__ = [
    "DELETE_FIELD",
    "SERVER_TIMESTAMP",
    "BatchWriter",
    "DocumentSnapshot",
    "DocumentStore",
    "InMemoryDocumentStore",
    "InvalidTenantIdError",
    "StoreError",
    "StoreNotFoundError",
    "StorePermissionError",
    "StoreUnavailableError",
    "Write",
    "WriteBatch",
    "WriteKind",
    "require_tenant_id",
]
