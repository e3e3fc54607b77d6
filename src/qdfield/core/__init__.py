"""
Core engine primitives.

This layer knows NOTHING about coordinates, geometry or visualization.
It only knows:
- Regions with a caller-defined state and an ordered child list
- An undirected adjacency graph over the current leaves
- How to split a leaf and how to merge a cluster back (state models)
- How to evolve leaves from their neighbors (simulation rules)

RegionGraph is the adaptive engine; the fixed-depth LevelTree lives in
qdfield.lod and reuses the wiring primitives defined here.
"""

from qdfield.core.ids import Id
from qdfield.core.errors import (
    EntityKind,
    QDFError,
    NotFoundError,
    InvalidFanOutError,
    NotSubdividedError,
)
from qdfield.core.state import (
    StateModel,
    UnitState,
    BooleanState,
    IntegerState,
    RealState,
    ArrayState,
    DelegatingState,
    resolve_state_model,
    subdivide_state,
    super_state_at_level,
)
from qdfield.core.simulate import (
    Simulate,
    SimulationConfig,
    Diffusion,
    LeafTask,
    compute_next_states,
    identity_simulation,
)
from qdfield.core.region import Region
from qdfield.core.region_graph import RegionGraph

__all__ = [
    "Id",
    "EntityKind",
    "QDFError",
    "NotFoundError",
    "InvalidFanOutError",
    "NotSubdividedError",
    "StateModel",
    "UnitState",
    "BooleanState",
    "IntegerState",
    "RealState",
    "ArrayState",
    "DelegatingState",
    "resolve_state_model",
    "subdivide_state",
    "super_state_at_level",
    "Simulate",
    "SimulationConfig",
    "Diffusion",
    "LeafTask",
    "compute_next_states",
    "identity_simulation",
    "Region",
    "RegionGraph",
]
