"""
Topology analysis: matrices and invariant checks derived from a structure.

IMPORTANT: One-way derivation only. Nothing here mutates a RegionGraph or a
LevelTree; the engine never sees these results.

- adjacency_matrix: sparse adjacency over a chosen set of ids
- graph_laplacian: L = D - A over the current leaves
- leaf_state_vector: numeric leaf states as one numpy array
- check_topology: the structural invariants a RegionGraph must satisfy
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence, Union

import networkx as nx
import numpy as np
from scipy import sparse

from qdfield.core.ids import Id

if TYPE_CHECKING:
    from qdfield.core.region_graph import RegionGraph
    from qdfield.lod.level_tree import LevelTree


def adjacency_matrix(
    structure: Union["RegionGraph", "LevelTree"],
    ids: Sequence[Id] | None = None,
) -> tuple[list[Id], sparse.csr_array]:
    """
    Sparse adjacency matrix of a structure.

    Args:
        structure: RegionGraph or LevelTree
        ids: Rows/columns to include (default: every adjacency node, sorted)

    Returns:
        (ids, A) with A[i, j] = 1 where ids[i] and ids[j] are adjacent
    """
    graph = structure.adjacency
    if ids is None:
        ids = sorted(graph.nodes())
    ids = list(ids)
    if not ids:
        return ids, sparse.csr_array((0, 0), dtype=np.float64)
    matrix = nx.to_scipy_sparse_array(graph, nodelist=ids, weight=None, dtype=np.float64, format="csr")
    return ids, matrix


def graph_laplacian(region_graph: "RegionGraph") -> tuple[list[Id], sparse.csr_array]:
    """
    Graph Laplacian L = D - A over the current leaves.

    With this convention (Lx)(v) = degree(v) * x(v) - sum of neighbor values,
    so L is positive semi-definite and every row sums to zero.

    Returns:
        (ids, L) with rows/columns in id order
    """
    ids, adjacency = adjacency_matrix(region_graph, sorted(region_graph.leaves))
    degree = sparse.diags_array(np.asarray(adjacency.sum(axis=1)).ravel())
    return ids, sparse.csr_array(degree - adjacency)


def leaf_state_vector(region_graph: "RegionGraph") -> tuple[list[Id], np.ndarray]:
    """
    Numeric leaf states as an array (rows in id order).

    Scalar states give shape (n,), array states give shape (n, *state_shape).
    """
    ids = sorted(region_graph.leaves)
    values = np.asarray([region_graph.state(id) for id in ids], dtype=np.float64)
    return ids, values


@dataclass
class TopologyReport:
    """Results of checking a RegionGraph's structural invariants."""

    fan_out_violations: list[Id] = field(default_factory=list)  # Regions with 0 < children != fan_out
    asymmetric_pairs: list[tuple[Id, Id]] = field(default_factory=list)  # a lists b but b does not list a
    dangling_nodes: list[Id] = field(default_factory=list)  # In the graph but refined or unknown
    missing_leaves: list[Id] = field(default_factory=list)  # Leaves absent from the graph
    conserved: bool = True  # Root state equals merge of the leaves under it

    @property
    def ok(self) -> bool:
        return (
            not self.fan_out_violations
            and not self.asymmetric_pairs
            and not self.dangling_nodes
            and not self.missing_leaves
            and self.conserved
        )


def _states_equal(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is b
    try:
        return bool(np.all(np.isclose(np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64))))
    except (TypeError, ValueError):
        return a == b


def _merged_leaves(region_graph: "RegionGraph", id: Id) -> Any:
    order = []
    stack = [id]
    while stack:
        region = region_graph.get_region(stack.pop())
        order.append(region)
        stack.extend(region.children)

    merged: dict[Id, Any] = {}
    for region in reversed(order):
        if region.is_leaf:
            merged[region.id] = region.state
        else:
            merged[region.id] = region_graph.model.merge([merged[c] for c in region.children])
    return merged[id]


def check_topology(region_graph: "RegionGraph") -> TopologyReport:
    """
    Check the structural invariants of a RegionGraph.

    - Every region has 0 or fan_out children
    - Adjacency is symmetric
    - The adjacency graph holds exactly the leaves
    - The root state equals the merge of its leaf states
    """
    report = TopologyReport()
    graph = region_graph.adjacency
    leaves = region_graph.leaves

    for region in region_graph.regions():
        if region.children and len(region.children) != region_graph.fan_out:
            report.fan_out_violations.append(region.id)

    for a in graph.nodes():
        for b in graph.neighbors(a):
            if a not in set(graph.neighbors(b)):
                report.asymmetric_pairs.append((a, b))
        if a not in leaves:
            report.dangling_nodes.append(a)

    report.missing_leaves = [id for id in leaves if id not in graph]

    root = region_graph.root
    report.conserved = _states_equal(region_graph.state(root), _merged_leaves(region_graph, root))
    return report
