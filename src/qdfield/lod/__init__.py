"""
Level of detail: fixed-depth multiresolution trees.

A LevelTree samples the space at every depth from the root down to a fixed
leaf depth at once. It is built in one go and only its states change
afterwards; online topology change is RegionGraph's job.
"""

from qdfield.lod.level import LevelNode, LevelTreeConfig
from qdfield.lod.level_tree import LevelTree

__all__ = [
    "LevelNode",
    "LevelTreeConfig",
    "LevelTree",
]
