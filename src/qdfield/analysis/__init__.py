"""
Analysis layer: derived quantities for inspection and validation.

IMPORTANT: This is NOT seen by the engine. One-way derivation only.

- adjacency_matrix / graph_laplacian: sparse matrices over a structure
- leaf_state_vector: numeric leaf states as a numpy array
- check_topology: verify the invariants of a RegionGraph
"""

from qdfield.analysis.topology import (
    TopologyReport,
    adjacency_matrix,
    check_topology,
    graph_laplacian,
    leaf_state_vector,
)

__all__ = [
    "TopologyReport",
    "adjacency_matrix",
    "check_topology",
    "graph_laplacian",
    "leaf_state_vector",
]
