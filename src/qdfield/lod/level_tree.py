"""
LevelTree: the same space sampled at several uniform zoom levels at once.

The tree is built completely at construction time down to a fixed depth and
never gains or loses nodes afterwards; only states change. Every depth has
its own adjacency (edges only ever join two nodes of the same depth), built
in one top-down pass:

1. The children of every internal node are cliqued (the same wiring
   primitive RegionGraph uses on refinement, without retiring the parent)
2. Each cluster is mirrored onto every neighboring cluster of the same
   depth: child i joins the neighbor's child i, for i >= 1 and i different
   from the node's own sibling index. The pass visits each pair of
   neighbors from both sides

Every leaf owns a field: a RegionGraph seeded with the leaf's state, which
the caller may refine adaptively on its own.
"""

from __future__ import annotations
import logging
from typing import Any

import networkx as nx

from qdfield.core.errors import EntityKind, NotFoundError
from qdfield.core.ids import Id
from qdfield.core.region_graph import RegionGraph
from qdfield.core.simulate import (
    LeafTask,
    Simulate,
    SimulationConfig,
    compute_next_states,
    identity_simulation,
)
from qdfield.core.state import StateModel, resolve_state_model, subdivide_state
from qdfield.core.wiring import connect_clusters, shortest_path, wire_children
from qdfield.lod.level import LevelNode, LevelTreeConfig

logger = logging.getLogger("qdfield.lod")


class LevelTree:
    """Fixed-depth multiresolution view of an N-dimensional space."""

    def __init__(
        self,
        dimensions: int,
        level_count: int,
        root_state: Any,
        fan_out: int | None = None,
        model: StateModel | None = None,
    ):
        """
        Build the complete tree.

        Args:
            dimensions: Dimensionality of the space and of the leaf fields
            level_count: Depth of the leaves (0 = root only)
            root_state: State of the whole space
            fan_out: Children per node (default dimensions + 2)
            model: Subdivide/merge rules (resolved from root_state if None)
        """
        self.config = LevelTreeConfig(dimensions=dimensions, depth_count=level_count, fan_out=fan_out)
        self._id = Id.new()
        self._model = model if model is not None else resolve_state_model(root_state)
        self._graph = nx.Graph()
        self._levels: dict[Id, LevelNode] = {}
        self._fields: dict[Id, RegionGraph] = {}
        self._by_depth: list[list[Id]] = [[] for _ in range(level_count + 1)]

        root = self._add_node(parent=None, depth=0, index=0, state=root_state)
        self._root = root.id
        self._subdivide_level(root.id)
        self._connect_clusters()
        logger.info(
            f"Built level tree: {dimensions}-D, depth {level_count}, fan-out {self.fan_out}, "
            f"{len(self._levels)} levels, {self._graph.number_of_edges()} edges"
        )

    @classmethod
    def from_config(cls, config: LevelTreeConfig, root_state: Any, model: StateModel | None = None) -> LevelTree:
        return cls(
            config.dimensions,
            config.depth_count,
            root_state,
            fan_out=config.fan_out,
            model=model,
        )

    # ═══════════════════════════════════════════════════════════════
    # CONSTRUCTION
    # ═══════════════════════════════════════════════════════════════

    def _add_node(self, parent: Id | None, depth: int, index: int, state: Any) -> LevelNode:
        node = LevelNode(id=Id.new(), parent=parent, depth=depth, index=index, state=state)
        self._levels[node.id] = node
        self._by_depth[depth].append(node.id)
        self._graph.add_node(node.id)
        return node

    def _subdivide_level(self, id: Id) -> None:
        node = self._levels[id]
        if node.depth < self.max_depth:
            child_states = subdivide_state(self._model, node.state, self.fan_out)
            node.children = [
                self._add_node(parent=id, depth=node.depth + 1, index=i, state=s).id
                for i, s in enumerate(child_states)
            ]
            for child in node.children:
                self._subdivide_level(child)
        else:
            field = RegionGraph(self.dimensions, node.state, model=self._model)
            self._fields[field.id] = field
            node.field_id = field.id

    def _connect_clusters(self) -> None:
        for depth in range(self.max_depth):
            nodes = [self._levels[id] for id in self._by_depth[depth]]
            for node in nodes:
                wire_children(self._graph, node.id, node.children, rewire=False)
            for node in nodes:
                for neighbor_id in list(self._graph.neighbors(node.id)):
                    neighbor = self._levels[neighbor_id]
                    connect_clusters(
                        self._graph,
                        node.children,
                        neighbor.children,
                        skip={node.index},
                    )

    # ═══════════════════════════════════════════════════════════════
    # LOOKUPS
    # ═══════════════════════════════════════════════════════════════

    @property
    def id(self) -> Id:
        return self._id

    @property
    def root(self) -> Id:
        return self._root

    @property
    def dimensions(self) -> int:
        return self.config.dimensions

    @property
    def fan_out(self) -> int:
        return self.config.fan_out

    @property
    def max_depth(self) -> int:
        return self.config.depth_count

    @property
    def levels_count(self) -> int:
        return self.config.depth_count

    @property
    def model(self) -> StateModel:
        return self._model

    @property
    def adjacency(self) -> nx.Graph:
        """Read-only view of the adjacency graph (all depths)."""
        return self._graph.copy(as_view=True)

    @property
    def root_state(self) -> Any:
        return self._levels[self._root].state

    @property
    def leaves(self) -> list[Id]:
        """Ids of the deepest level, in construction order."""
        return list(self._by_depth[self.max_depth])

    def __len__(self) -> int:
        return len(self._levels)

    def __contains__(self, id: object) -> bool:
        return id in self._levels

    def level_exists(self, id: Id) -> bool:
        return id in self._levels

    def try_get_level(self, id: Id) -> LevelNode | None:
        return self._levels.get(id)

    def get_level(self, id: Id) -> LevelNode:
        """
        Raises:
            NotFoundError: If the id is unknown
        """
        node = self._levels.get(id)
        if node is None:
            raise NotFoundError(EntityKind.LEVEL, id)
        return node

    def state(self, id: Id) -> Any:
        return self.get_level(id).state

    def levels_at_depth(self, depth: int) -> list[Id]:
        """Ids of every node at `depth`, in construction order."""
        if not 0 <= depth <= self.max_depth:
            raise ValueError(f"depth must be in [0, {self.max_depth}], got {depth}")
        return list(self._by_depth[depth])

    def field_exists(self, id: Id) -> bool:
        return id in self._fields

    def get_field(self, id: Id) -> RegionGraph:
        """
        Get a leaf field by its own id.

        Raises:
            NotFoundError: If no field has this id
        """
        field = self._fields.get(id)
        if field is None:
            raise NotFoundError(EntityKind.FIELD, id)
        return field

    def field_of(self, id: Id) -> RegionGraph:
        """
        Get the field owned by a leaf level.

        Raises:
            NotFoundError: LEVEL if the id is unknown, FIELD if the level is
                           not a leaf
        """
        node = self.get_level(id)
        if node.field_id is None:
            raise NotFoundError(EntityKind.FIELD, id)
        return self._fields[node.field_id]

    # ═══════════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════════

    def neighbors(self, id: Id) -> list[Id]:
        """Same-depth neighbors of a level, in adjacency insertion order."""
        if id not in self._levels:
            raise NotFoundError(EntityKind.LEVEL, id)
        return list(self._graph.neighbors(id))

    def find_path(self, source: Id, target: Id) -> list[Id]:
        """
        Shortest-hop path between two levels of the same depth.

        Returns an empty list when the levels sit at different depths or no
        path exists.

        Raises:
            NotFoundError: If either endpoint is unknown
        """
        a = self.get_level(source)
        b = self.get_level(target)
        if a.depth != b.depth:
            return []
        return shortest_path(self._graph, source, target)

    # ═══════════════════════════════════════════════════════════════
    # STATE
    # ═══════════════════════════════════════════════════════════════

    def set_level_state(self, id: Id, state: Any) -> None:
        """
        Impose a state on a level.

        The state is subdivided down to the leaves under `id` (and into each
        leaf's field), then every ancestor is re-merged up to the root.

        Raises:
            NotFoundError: If the id is unknown
            InvalidFanOutError: If the state model returns the wrong number
                                of child states
        """
        if id not in self._levels:
            raise NotFoundError(EntityKind.LEVEL, id)
        self._push_down(id, state)
        self._merge_ancestors(id)

    def _push_down(self, id: Id, state: Any) -> None:
        stack = [(id, state)]
        while stack:
            current, current_state = stack.pop()
            node = self._levels[current]
            node.state = current_state
            if node.is_leaf:
                field = self._fields[node.field_id]
                field.set_state(field.root, current_state)
                continue
            child_states = subdivide_state(self._model, current_state, len(node.children))
            stack.extend(zip(node.children, child_states))

    def _merge_ancestors(self, id: Id) -> None:
        parent = self._levels[id].parent
        while parent is not None:
            node = self._levels[parent]
            node.state = self._model.merge([self._levels[c].state for c in node.children])
            parent = node.parent

    def recalculate_level_state(self, id: Id | None = None) -> Any:
        """
        Bring levels back in line with their fields.

        Leaf states under `id` (default: root) are read from their fields'
        root regions, internal levels under `id` are re-merged bottom-up, and
        so are the ancestors of `id`.

        Returns:
            The recomputed state of `id`
        """
        if id is None:
            id = self._root
        if id not in self._levels:
            raise NotFoundError(EntityKind.LEVEL, id)
        state = self._refresh(id)
        self._merge_ancestors(id)
        return state

    def _refresh(self, id: Id) -> Any:
        order: list[LevelNode] = []
        stack = [id]
        while stack:
            node = self._levels[stack.pop()]
            order.append(node)
            stack.extend(node.children)
        # children before parents
        for node in reversed(order):
            if node.is_leaf:
                field = self._fields[node.field_id]
                node.state = field.state(field.root)
            else:
                node.state = self._model.merge([self._levels[c].state for c in node.children])
        return self._levels[id].state

    def _merge_internal(self) -> None:
        for depth in range(self.max_depth - 1, -1, -1):
            for id in self._by_depth[depth]:
                node = self._levels[id]
                node.state = self._model.merge([self._levels[c].state for c in node.children])

    # ═══════════════════════════════════════════════════════════════
    # SIMULATION
    # ═══════════════════════════════════════════════════════════════

    def _snapshot(self) -> list[LeafTask]:
        return [
            LeafTask(
                id=leaf,
                state=self._levels[leaf].state,
                neighbor_states=tuple(self._levels[n].state for n in self._graph.neighbors(leaf)),
            )
            for leaf in sorted(self._by_depth[self.max_depth])
        ]

    def simulate_states(
        self,
        simulate: Simulate = identity_simulation,
        config: SimulationConfig | None = None,
    ) -> dict[Id, Any]:
        """Compute every leaf level's next state from the pre-step snapshot."""
        return compute_next_states(self._snapshot(), simulate, config)

    def simulation_step(
        self,
        simulate: Simulate = identity_simulation,
        config: SimulationConfig | None = None,
    ) -> dict[Id, Any]:
        """
        Advance every leaf level by one step.

        New leaf states are written to the leaves and imposed on their
        fields, then internal levels are re-merged bottom-up.
        """
        next_states = self.simulate_states(simulate, config)
        for id, state in next_states.items():
            node = self._levels[id]
            node.state = state
            field = self._fields[node.field_id]
            field.set_state(field.root, state)
        self._merge_internal()
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
            f"LevelTree(dimensions={self.dimensions}, depth={self.max_depth}, "
            f"fan_out={self.fan_out}, levels={len(self._levels)})"
        )
