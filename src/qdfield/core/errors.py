"""
Errors raised by region graphs and level trees.

All of them are recoverable: a failed call reports the problem and leaves
the structure usable, and the caller can retry with a corrected argument.
"""

from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qdfield.core.ids import Id


class EntityKind(Enum):
    """What kind of entity a lookup failed to find."""

    SPACE = "space"  # Region of a RegionGraph
    LEVEL = "level"  # Node of a LevelTree
    FIELD = "field"  # RegionGraph owned by a LevelTree leaf


class QDFError(Exception):
    """Base class for all qdfield errors."""


class NotFoundError(QDFError, LookupError):
    """The referenced id is unknown to the structure queried."""

    def __init__(self, kind: EntityKind, id: "Id"):
        self.kind = kind
        self.id = id
        super().__init__(f"{kind.value} {id} does not exist")


class InvalidFanOutError(QDFError, ValueError):
    """A child count does not match the structure's fixed fan-out."""

    def __init__(self, actual: int, expected: int | None = None):
        self.actual = actual
        self.expected = expected
        if expected is None:
            message = f"invalid number of subdivisions: {actual}"
        else:
            message = f"invalid number of subdivisions: {actual} (expected {expected})"
        super().__init__(message)


class NotSubdividedError(QDFError, ValueError):
    """An operation that needs a refined region was given a leaf."""

    def __init__(self, id: "Id"):
        self.id = id
        super().__init__(f"space {id} is not subdivided")
