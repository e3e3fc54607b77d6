"""
Opaque identifiers for regions, levels and whole structures.

An Id wraps a random 128-bit UUID. It is immutable, hashable (used as a
mapping key and as a graph node) and totally ordered, so iteration over a set
of ids can be made deterministic by sorting.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import uuid


@dataclass(frozen=True, order=True)
class Id:
    """Globally unique handle."""

    value: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def new(cls) -> Id:
        """Create a fresh random handle."""
        return cls()

    @property
    def uuid(self) -> uuid.UUID:
        return self.value

    def __str__(self) -> str:
        return f"Id({self.value})"

    def __repr__(self) -> str:
        return str(self)
