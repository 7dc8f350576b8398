"""Ordered, immutable catalog of schema migrations."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass

from checklistdb.models.version import ZERO_VERSION, compare_versions, parse_version, version_key
from checklistdb.storage.adapter import DocumentStore
from checklistdb.storage.batch import BatchWriter


@dataclass(frozen=True)
class MigrationContext:
    """What a migration step gets to work with for one tenant."""

    store: DocumentStore
    tenant_id: str
    max_batch_operations: int | None = None

    def writer(self) -> BatchWriter:
        """Open a batch writer bounded by the configured ceiling."""
        return BatchWriter(self.store, self.max_batch_operations)


MigrationStep = Callable[[MigrationContext], Awaitable[None]]


@dataclass(frozen=True)
class Migration:
    """A versioned, idempotent forward step with an optional reverse step."""

    version: str
    description: str
    apply: MigrationStep
    rollback: MigrationStep | None = None

    @property
    def reversible(self) -> bool:
        return self.rollback is not None


class RegistryOrderError(ValueError):
    """Raised when registry versions are duplicated or declared out of order."""


class MigrationRegistry:
    """Migrations sorted once, at construction, by numeric version.

    With ``require_ordered=True`` the declaration order itself must already be
    strictly increasing, which catches a migration appended in the wrong place.
    Duplicate versions (``"1.0"`` and ``"1.0.0"`` count as equal) are always
    rejected.
    """

    def __init__(self, migrations: Iterable[Migration], *, require_ordered: bool = False) -> None:
        declared = list(migrations)
        for m in declared:
            parse_version(m.version)

        if require_ordered:
            for prev, cur in zip(declared, declared[1:], strict=False):
                if compare_versions(cur.version, prev.version) <= 0:
                    raise RegistryOrderError(
                        f"Migration {cur.version} is declared after {prev.version}; "
                        f"versions must be strictly increasing"
                    )

        ordered = sorted(declared, key=lambda m: version_key(m.version))
        for prev, cur in zip(ordered, ordered[1:], strict=False):
            if compare_versions(cur.version, prev.version) == 0:
                raise RegistryOrderError(
                    f"Duplicate migration version: {prev.version} / {cur.version}"
                )
        self._migrations: tuple[Migration, ...] = tuple(ordered)

    def __iter__(self) -> Iterator[Migration]:
        return iter(self._migrations)

    def __len__(self) -> int:
        return len(self._migrations)

    @property
    def versions(self) -> list[str]:
        return [m.version for m in self._migrations]

    @property
    def latest(self) -> str:
        """Highest registered version, ``0.0.0`` for an empty registry."""
        return self._migrations[-1].version if self._migrations else ZERO_VERSION

    def get(self, version: str) -> Migration | None:
        """Find the migration whose version compares equal to *version*."""
        parse_version(version)
        for m in self._migrations:
            if compare_versions(m.version, version) == 0:
                return m
        return None

    def after(self, version: str) -> list[Migration]:
        """Migrations strictly newer than *version*, ascending."""
        return [m for m in self._migrations if compare_versions(m.version, version) > 0]

    def previous(self, version: str) -> str:
        """Greatest registered version strictly below *version*, else ``0.0.0``."""
        lower = [m for m in self._migrations if compare_versions(m.version, version) < 0]
        return lower[-1].version if lower else ZERO_VERSION
