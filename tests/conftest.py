"""
Pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def plane():
    """2-D region graph holding 9 units in a single root region."""
    from qdfield.core import RegionGraph
    return RegionGraph(2, 9)


@pytest.fixture
def refined_plane():
    """2-D region graph refined twice everywhere: 9 leaves of 1 unit each."""
    from qdfield.core import RegionGraph
    return RegionGraph.with_levels(2, 9, 2)


@pytest.fixture
def level_tree():
    """2-D level tree of depth 2 (fan-out 4) holding 16 units."""
    from qdfield.lod import LevelTree
    return LevelTree(2, 2, 16)


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(seed=42)
