"""
Marker for patch fields the caller left alone.

A patch field holds either a new value, ``None`` (clear a nullable column) or
``MISSING`` (keep whatever is stored).
"""

import enum
from dataclasses import fields
from typing import Any, Literal


class MissingType(enum.Enum):
    MISSING = "MISSING"

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> Literal[False]:
        return False


MISSING = MissingType.MISSING


def is_set(value: Any) -> bool:
    """Return True if a patch field carries a value (None included)."""
    return value is not MISSING


def provided_fields(patch: Any) -> dict[str, Any]:
    """Return the fields of a patch dataclass that carry a value."""
    return {
        f.name: getattr(patch, f.name)
        for f in fields(patch)
        if is_set(getattr(patch, f.name))
    }
