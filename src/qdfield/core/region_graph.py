"""
RegionGraph: the adaptive engine.

Owns every region plus an undirected adjacency graph over the regions that
are currently materialized at the finest resolution (the leaves).

Operations:
- refine: split leaves into dimensions+1 mutually adjacent children
- coarsen: collapse a cluster of leaves back into its parent, one level
  per call
- neighbors / find_path: adjacency queries
- set_state: impose a state and keep the hierarchy consistent
- simulation_step: evolve every leaf from its neighbors' states

Refine followed by coarsen_fully is the identity on topology: the parent gets
back exactly the neighbors it had before.

None of the mutating operations is re-entrant; one structural change must
finish before the next begins.
"""

from __future__ import annotations
import logging
from typing import Any, Iterator

import networkx as nx

from qdfield.core.errors import EntityKind, NotFoundError, NotSubdividedError
from qdfield.core.ids import Id
from qdfield.core.region import Region
from qdfield.core.simulate import (
    LeafTask,
    Simulate,
    SimulationConfig,
    compute_next_states,
    identity_simulation,
)
from qdfield.core.state import (
    StateModel,
    resolve_state_model,
    subdivide_state,
    super_state_at_level,
)
from qdfield.core.wiring import absorb_children, shortest_path, wire_children

logger = logging.getLogger("qdfield.region_graph")


class RegionGraph:
    """
    Hierarchically refinable partition of an N-dimensional space.

    Invariants:
    - leaves ⊆ nodes(adjacency) ⊆ regions
    - every region has 0 or fan_out (= dimensions + 1) children
    - adjacency is symmetric (undirected graph)
    """

    def __init__(self, dimensions: int, root_state: Any, model: StateModel | None = None):
        """
        Create a structure made of a single root region.

        Args:
            dimensions: Dimensionality of the space (fan-out is dimensions + 1)
            root_state: State of the whole space
            model: Subdivide/merge rules (resolved from root_state if None)
        """
        if dimensions < 0:
            raise ValueError("dimensions must be non-negative")

        self._id = Id.new()
        self._dimensions = dimensions
        self._model = model if model is not None else resolve_state_model(root_state)

        root = Region(id=Id.new(), state=root_state)
        self._root = root.id
        self._regions: dict[Id, Region] = {root.id: root}
        self._graph = nx.Graph()
        self._graph.add_node(root.id)
        self._leaves: set[Id] = {root.id}

    @classmethod
    def with_levels(
        cls,
        dimensions: int,
        root_state: Any,
        levels: int,
        model: StateModel | None = None,
    ) -> RegionGraph:
        """Create a structure whose every leaf has been refined `levels` times."""
        if levels < 0:
            raise ValueError("levels must be non-negative")
        graph = cls(dimensions, root_state, model=model)
        for _ in range(levels):
            graph.refine(graph.root)
        logger.info(
            f"Built {dimensions}-D region graph with {levels} levels "
            f"({len(graph._leaves)} leaves)"
        )
        return graph

    @classmethod
    def with_levels_and_minimum_state(
        cls,
        dimensions: int,
        leaf_state: Any,
        levels: int,
        model: StateModel | None = None,
    ) -> RegionGraph:
        """
        Like with_levels, but `leaf_state` is the state every leaf ends up with.

        The root state is back-computed from the leaf state.
        """
        if model is None:
            model = resolve_state_model(leaf_state)
        root_state = super_state_at_level(model, leaf_state, dimensions + 1, levels)
        return cls.with_levels(dimensions, root_state, levels, model=model)

    # ═══════════════════════════════════════════════════════════════
    # LOOKUPS
    # ═══════════════════════════════════════════════════════════════

    @property
    def id(self) -> Id:
        """Identity of the structure itself."""
        return self._id

    @property
    def root(self) -> Id:
        return self._root

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def fan_out(self) -> int:
        """Number of children produced by one refinement."""
        return self._dimensions + 1

    @property
    def model(self) -> StateModel:
        return self._model

    @property
    def adjacency(self) -> nx.Graph:
        """Read-only view of the adjacency graph."""
        return self._graph.copy(as_view=True)

    @property
    def leaves(self) -> frozenset[Id]:
        """Snapshot of the current leaf set."""
        return frozenset(self._leaves)

    def __len__(self) -> int:
        return len(self._regions)

    def __contains__(self, id: object) -> bool:
        return id in self._regions

    def region_exists(self, id: Id) -> bool:
        return id in self._regions

    def try_get_region(self, id: Id) -> Region | None:
        return self._regions.get(id)

    def get_region(self, id: Id) -> Region:
        """
        Get a region record.

        Raises:
            NotFoundError: If the id is unknown
        """
        region = self._regions.get(id)
        if region is None:
            raise NotFoundError(EntityKind.SPACE, id)
        return region

    def regions(self) -> Iterator[Region]:
        """Iterate over every region record, refined ones included."""
        return iter(list(self._regions.values()))

    def state(self, id: Id) -> Any:
        return self.get_region(id).state

    def depth(self, id: Id) -> int:
        """Number of refinements between the root and this region."""
        depth = 0
        region = self.get_region(id)
        while not region.is_root:
            region = self._regions[region.parent]
            depth += 1
        return depth

    # ═══════════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════════

    def neighbors(self, id: Id) -> list[Id]:
        """
        Regions adjacent to `id`, in adjacency insertion order.

        Raises:
            NotFoundError: If `id` is not in the adjacency graph (unknown, or
                           refined)
        """
        if id not in self._graph:
            raise NotFoundError(EntityKind.SPACE, id)
        return list(self._graph.neighbors(id))

    def find_path(self, source: Id, target: Id) -> list[Id]:
        """
        Shortest-hop path between two regions, endpoints included.

        Returns an empty list if no path exists (including when an endpoint
        has been refined and so no longer takes part in the adjacency).

        Raises:
            NotFoundError: If either endpoint is unknown to the structure
        """
        for id in (source, target):
            if id not in self._regions:
                raise NotFoundError(EntityKind.SPACE, id)
        return shortest_path(self._graph, source, target)

    # ═══════════════════════════════════════════════════════════════
    # REFINEMENT / COARSENING
    # ═══════════════════════════════════════════════════════════════

    def refine(self, id: Id) -> list[Id]:
        """
        Increase local resolution under `id`.

        A leaf is split into fan_out children; an internal region pushes the
        refinement down to every leaf beneath it. Each pre-existing neighbor
        of a split leaf inherits the child at its own position in the leaf's
        adjacency order.

        Every child state is computed and checked before the graph is
        touched, so a failing state model leaves the structure unchanged.

        Returns:
            Ids of all regions created by this call

        Raises:
            NotFoundError: If the id is unknown
            InvalidFanOutError: If the state model returns the wrong number
                                of child states
        """
        if id not in self._regions:
            raise NotFoundError(EntityKind.SPACE, id)

        plan = [
            (leaf, subdivide_state(self._model, self._regions[leaf].state, self.fan_out))
            for leaf in self._frontier(id)
        ]

        created: list[Id] = []
        for leaf, child_states in plan:
            created.extend(self._split(leaf, child_states))
        return created

    def _walk(self, id: Id) -> list[Region]:
        """Regions under `id` (inclusive), depth-first pre-order in child order."""
        order: list[Region] = []
        stack = [id]
        while stack:
            region = self._regions[stack.pop()]
            order.append(region)
            stack.extend(reversed(region.children))
        return order

    def _frontier(self, id: Id) -> list[Id]:
        """Leaves under `id`, depth-first in child order."""
        return [region.id for region in self._walk(id) if region.is_leaf]

    def _split(self, id: Id, child_states: list[Any]) -> list[Id]:
        region = self._regions[id]
        children = [Region(id=Id.new(), parent=id, state=s) for s in child_states]
        child_ids = [c.id for c in children]
        for child in children:
            self._regions[child.id] = child

        inherited = wire_children(self._graph, id, child_ids, rewire=True)

        region.children = child_ids
        self._leaves.discard(id)
        self._leaves.update(child_ids)
        logger.debug(
            f"Refined {id} into {len(child_ids)} regions: "
            + ", ".join(f"{n} -> child {child_ids.index(c)}" for n, c in inherited)
        )
        return child_ids

    def coarsen(self, id: Id) -> bool:
        """
        Collapse one level of refinement under `id`.

        Every region under `id` whose children are all leaves when the call
        starts is collapsed, in depth-first child order; its parent then
        takes over every neighbor of the child set. A region whose children
        only become leaves during this call waits for the next one.

        A deep call mutates child subtrees in visit order: each collapse it
        performs is complete, but none is rolled back if a later one fails.

        Returns:
            True if `id` was already a leaf (nothing left to do), False if
            work was done or deeper levels still need collapsing

        Raises:
            NotFoundError: If the id is unknown
        """
        region = self._regions.get(id)
        if region is None:
            raise NotFoundError(EntityKind.SPACE, id)
        if region.is_leaf:
            return True

        ready = [
            r for r in self._walk(id)
            if not r.is_leaf and all(self._regions[c].is_leaf for c in r.children)
        ]
        for r in ready:
            self._absorb(r)
        return False

    def _absorb(self, region: Region) -> None:
        outside = absorb_children(self._graph, region.id, region.children)
        for child in region.children:
            del self._regions[child]
            self._leaves.discard(child)
        logger.debug(
            f"Coarsened {len(region.children)} regions into {region.id} "
            f"({len(outside)} neighbors taken over)"
        )
        region.children = []
        self._leaves.add(region.id)

    def coarsen_fully(self, id: Id) -> None:
        """
        Collapse the whole subtree under `id` into a single leaf.

        Raises:
            NotFoundError: If the id is unknown
        """
        while not self.coarsen(id):
            pass

    def collapse(self, id: Id) -> None:
        """
        Strict coarsen_fully: `id` must have been refined.

        Raises:
            NotFoundError: If the id is unknown
            NotSubdividedError: If `id` is a leaf
        """
        if self.get_region(id).is_leaf:
            raise NotSubdividedError(id)
        self.coarsen_fully(id)

    # ═══════════════════════════════════════════════════════════════
    # STATE
    # ═══════════════════════════════════════════════════════════════

    def set_state(self, id: Id, state: Any) -> None:
        """
        Impose a state on a region.

        The new state is subdivided down through any finer structure already
        present under `id`, then every ancestor is re-merged from its
        children up to the root.

        Raises:
            NotFoundError: If the id is unknown
            InvalidFanOutError: If the state model returns the wrong number
                                of child states
        """
        if id not in self._regions:
            raise NotFoundError(EntityKind.SPACE, id)
        self._push_down(id, state)
        self._merge_ancestors(id)

    def _push_down(self, id: Id, state: Any) -> None:
        stack = [(id, state)]
        while stack:
            current, current_state = stack.pop()
            region = self._regions[current]
            region.state = current_state
            if region.is_leaf:
                continue
            child_states = subdivide_state(self._model, current_state, len(region.children))
            stack.extend(zip(region.children, child_states))

    def _merge_ancestors(self, id: Id) -> None:
        parent = self._regions[id].parent
        while parent is not None:
            region = self._regions[parent]
            region.state = self._model.merge([self._regions[c].state for c in region.children])
            parent = region.parent

    def recalculate_state(self, id: Id | None = None) -> Any:
        """
        Re-merge every internal region under `id` (default: root) bottom-up.

        Returns:
            The recomputed state of `id`
        """
        if id is None:
            id = self._root
        if id not in self._regions:
            raise NotFoundError(EntityKind.SPACE, id)
        return self._merge_subtree(id)

    def _merge_subtree(self, id: Id) -> Any:
        # reversed pre-order visits children before their parent
        for region in reversed(self._walk(id)):
            if not region.is_leaf:
                region.state = self._model.merge([self._regions[c].state for c in region.children])
        return self._regions[id].state

    # ═══════════════════════════════════════════════════════════════
    # SIMULATION
    # ═══════════════════════════════════════════════════════════════

    def _snapshot(self) -> list[LeafTask]:
        return [
            LeafTask(
                id=leaf,
                state=self._regions[leaf].state,
                neighbor_states=tuple(self._regions[n].state for n in self._graph.neighbors(leaf)),
            )
            for leaf in sorted(self._leaves)
        ]

    def simulate_states(
        self,
        simulate: Simulate = identity_simulation,
        config: SimulationConfig | None = None,
    ) -> dict[Id, Any]:
        """
        Compute every leaf's next state without mutating anything.

        All leaves read the same pre-step snapshot, so the result does not
        depend on visiting order or on serial vs parallel execution.

        Returns:
            Mapping leaf id -> next state, in id order
        """
        return compute_next_states(self._snapshot(), simulate, config)

    def simulate_states_parallel(
        self,
        simulate: Simulate = identity_simulation,
        max_workers: int | None = None,
    ) -> dict[Id, Any]:
        """simulate_states on a thread pool."""
        return self.simulate_states(simulate, SimulationConfig(parallel=True, max_workers=max_workers))

    def simulation_step(
        self,
        simulate: Simulate = identity_simulation,
        config: SimulationConfig | None = None,
    ) -> dict[Id, Any]:
        """
        Advance every leaf by one step.

        Computes simulate_states(), writes each next state into its leaf,
        then re-merges every internal region bottom-up.

        Returns:
            The states written to the leaves
        """
        next_states = self.simulate_states(simulate, config)
        for id, state in next_states.items():
            self._regions[id].state = state
        self._merge_subtree(self._root)
        return next_states

    def simulation_step_parallel(
        self,
        simulate: Simulate = identity_simulation,
        max_workers: int | None = None,
    ) -> dict[Id, Any]:
        """simulation_step with the compute phase on a thread pool."""
        return self.simulation_step(simulate, SimulationConfig(parallel=True, max_workers=max_workers))

    def __repr__(self) -> str:
        return (
            f"RegionGraph(dimensions={self._dimensions}, regions={len(self._regions)}, "
            f"leaves={len(self._leaves)})"
        )
