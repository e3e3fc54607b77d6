"""
Adjacency wiring shared by RegionGraph and LevelTree.

The engine has no coordinates, so "which child touches which old neighbor"
is defined purely by enumeration order: the i-th neighbor of a region, in
adjacency insertion order, inherits the i-th child. networkx keeps each
node's adjacency in insertion order, which makes this order stable and
observable.

Rules:
- Children of one region are pairwise adjacent (a simplex's children touch)
- On refinement, neighbor i of the parent is rewired to child i; children
  past the neighbor count get no external edge
- On level-tree construction, a cluster is mirrored onto each neighboring
  cluster by sibling index
"""

from __future__ import annotations
import logging
from typing import Hashable, Sequence

import networkx as nx

logger = logging.getLogger("qdfield.wiring")


def clique(graph: nx.Graph, members: Sequence[Hashable]) -> None:
    """Connect every pair of members, in member order."""
    for a in members:
        for b in members:
            if a != b:
                graph.add_edge(a, b)


def wire_children(
    graph: nx.Graph,
    parent: Hashable,
    children: Sequence[Hashable],
    rewire: bool = True,
) -> list[tuple[Hashable, Hashable]]:
    """
    Wire a freshly created cluster of children into the adjacency graph.

    The children are cliqued. With `rewire=True` (refinement) the parent's
    neighbors are handed over to the children by position and the parent is
    removed from the graph. With `rewire=False` (level trees, where every
    depth keeps its own adjacency) the parent is left untouched.

    If the parent has more neighbors than there are children, neighbor i is
    attached to child i modulo the child count so no adjacency is dropped.

    Returns:
        The (neighbor, child) edges created by the hand-over
    """
    for child in children:
        graph.add_node(child)
    clique(graph, children)

    if not rewire:
        return []

    inherited: list[tuple[Hashable, Hashable]] = []
    if parent in graph:
        neighbors = list(graph.neighbors(parent))
        if len(neighbors) > len(children):
            logger.debug(
                f"{parent} has {len(neighbors)} neighbors for {len(children)} children; wrapping"
            )
        for i, neighbor in enumerate(neighbors):
            child = children[i % len(children)]
            graph.remove_edge(neighbor, parent)
            graph.add_edge(neighbor, child)
            inherited.append((neighbor, child))
        graph.remove_node(parent)
    return inherited


def external_neighbors(graph: nx.Graph, members: Sequence[Hashable]) -> list[Hashable]:
    """
    Neighbors of any member that are not members themselves.

    Returned in first-seen order (member order, then adjacency order), without
    duplicates.
    """
    inside = set(members)
    seen: dict[Hashable, None] = {}
    for member in members:
        if member not in graph:
            continue
        for neighbor in graph.neighbors(member):
            if neighbor not in inside:
                seen.setdefault(neighbor, None)
    return list(seen)


def absorb_children(graph: nx.Graph, parent: Hashable, children: Sequence[Hashable]) -> list[Hashable]:
    """
    Inverse of wire_children(rewire=True).

    The parent takes over every external neighbor of the child set and the
    children leave the graph.

    Returns:
        The external neighbors the parent is now adjacent to
    """
    outside = external_neighbors(graph, children)
    graph.add_node(parent)
    for neighbor in outside:
        graph.add_edge(parent, neighbor)
    graph.remove_nodes_from([c for c in children if c in graph])
    return outside


def connect_clusters(
    graph: nx.Graph,
    children: Sequence[Hashable],
    neighbor_children: Sequence[Hashable],
    skip: set[int],
) -> None:
    """
    Mirror a cluster onto a neighboring cluster of the same depth.

    Child i of one cluster is joined to child i of the other for every i >= 1
    that is not in `skip` (the parent's own sibling index, typically).
    """
    for i in range(1, min(len(children), len(neighbor_children))):
        if i in skip:
            continue
        graph.add_edge(children[i], neighbor_children[i])


def shortest_path(graph: nx.Graph, source: Hashable, target: Hashable) -> list[Hashable]:
    """
    Fewest-hops path between two nodes, endpoints included.

    Returns an empty list when either node is absent from the graph or no
    path exists.
    """
    if source not in graph or target not in graph:
        return []
    try:
        return list(nx.shortest_path(graph, source, target))
    except nx.NetworkXNoPath:
        return []
