"""Schema version strings: parsing and field-wise numeric comparison."""

from __future__ import annotations

ZERO_VERSION = "0.0.0"


class InvalidVersionError(ValueError):
    """Raised when a version string is empty or has a non-numeric field."""


def parse_version(version: object) -> tuple[int, ...]:
    """Split *version* on ``.`` into non-negative integer fields.

    ``"1.10.0"`` parses to ``(1, 10, 0)``.  Surrounding whitespace is ignored.
    """
    if not isinstance(version, str) or not version.strip():
        raise InvalidVersionError("Version is required and must be a non-empty string")
    fields = version.strip().split(".")
    if not all(f.isdigit() and f.isascii() for f in fields):
        raise InvalidVersionError(f"Malformed version string: {version!r}")
    return tuple(int(f) for f in fields)


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0 or 1 comparing *left* to *right* field by field.

    Missing trailing fields count as 0, so ``"1.2"`` equals ``"1.2.0"``.
    """
    a, b = parse_version(left), parse_version(right)
    for i in range(max(len(a), len(b))):
        x = a[i] if i < len(a) else 0
        y = b[i] if i < len(b) else 0
        if x < y:
            return -1
        if x > y:
            return 1
    return 0


def version_key(version: str) -> tuple[int, ...]:
    """Sort key consistent with :func:`compare_versions` (trailing zeros dropped)."""
    fields = list(parse_version(version))
    while len(fields) > 1 and fields[-1] == 0:
        fields.pop()
    return tuple(fields)
