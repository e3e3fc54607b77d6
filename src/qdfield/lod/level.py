"""
Level nodes and level-tree configuration.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from qdfield.core.ids import Id


@dataclass
class LevelTreeConfig:
    """Configuration for a fixed-depth level tree."""

    dimensions: int  # Dimensionality of the space (and of every leaf field)
    depth_count: int  # Depth of the leaves; 0 = the root is the only level
    fan_out: int | None = None  # Children per node (None = dimensions + 2)

    def __post_init__(self):
        if self.dimensions < 0:
            raise ValueError("dimensions must be non-negative")
        if self.depth_count < 0:
            raise ValueError("depth_count must be non-negative")
        if self.fan_out is None:
            self.fan_out = self.dimensions + 2
        if self.fan_out < 2:
            raise ValueError("fan_out must be at least 2")


@dataclass
class LevelNode:
    """
    One node of a level tree.

    Internal nodes have exactly fan_out children and no field. Leaves (depth
    == max_depth) have no children and own exactly one field, a RegionGraph
    seeded with the leaf's state.
    """

    id: Id
    parent: Id | None  # None for the root
    depth: int  # 0 for the root
    index: int  # Position among the parent's children (0 for the root)
    state: Any = None
    children: list[Id] = field(default_factory=list)
    field_id: Id | None = None  # Id of the owned RegionGraph (leaves only)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def has_field(self) -> bool:
        return self.field_id is not None
