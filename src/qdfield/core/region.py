"""
Region: one node record of a RegionGraph.

A region is a leaf when it has no children, otherwise it has
exactly fan_out children. Refined regions keep their record so hierarchical
state queries keep working after they leave the adjacency graph.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from qdfield.core.ids import Id


@dataclass
class Region:
    """A region of the information space."""

    id: Id
    parent: Id | None = None  # Set at creation, never changes
    state: Any = None  # Caller-defined payload
    children: list[Id] = field(default_factory=list)  # Empty, or exactly fan_out ids

    @property
    def is_leaf(self) -> bool:
        """True if the region has not been refined."""
        return not self.children

    @property
    def is_root(self) -> bool:
        return self.parent is None
