"""Unit tests for the shared wiring primitives."""

import networkx as nx

from qdfield.core.wiring import (
    absorb_children,
    clique,
    connect_clusters,
    external_neighbors,
    shortest_path,
    wire_children,
)


def _star(center, leaves):
    graph = nx.Graph()
    graph.add_node(center)
    for leaf in leaves:
        graph.add_edge(center, leaf)
    return graph


class TestClique:
    """Tests for clique."""

    def test_all_pairs_connected(self):
        graph = nx.Graph()
        clique(graph, ["a", "b", "c", "d"])
        assert graph.number_of_edges() == 6

    def test_insertion_order(self):
        graph = nx.Graph()
        clique(graph, ["a", "b", "c"])
        assert list(graph.neighbors("a")) == ["b", "c"]
        assert list(graph.neighbors("b")) == ["a", "c"]
        assert list(graph.neighbors("c")) == ["a", "b"]


class TestWireChildren:
    """Tests for refinement wiring."""

    def test_positional_inheritance(self):
        graph = _star("p", ["n0", "n1"])
        inherited = wire_children(graph, "p", ["c0", "c1", "c2"])

        assert inherited == [("n0", "c0"), ("n1", "c1")]
        assert list(graph.neighbors("c0")) == ["c1", "c2", "n0"]
        assert list(graph.neighbors("c1")) == ["c0", "c2", "n1"]
        assert list(graph.neighbors("c2")) == ["c0", "c1"]

    def test_parent_leaves_graph(self):
        graph = _star("p", ["n0"])
        wire_children(graph, "p", ["c0", "c1"])
        assert "p" not in graph
        assert list(graph.neighbors("n0")) == ["c0"]

    def test_extra_neighbors_wrap_around(self):
        graph = _star("p", ["n0", "n1", "n2"])
        wire_children(graph, "p", ["c0", "c1"])
        assert graph.has_edge("n0", "c0")
        assert graph.has_edge("n1", "c1")
        assert graph.has_edge("n2", "c0")

    def test_without_rewire_parent_is_kept(self):
        graph = _star("p", ["n0"])
        assert wire_children(graph, "p", ["c0", "c1"], rewire=False) == []
        assert list(graph.neighbors("p")) == ["n0"]
        assert graph.has_edge("c0", "c1")
        assert not graph.has_edge("n0", "c0")


class TestAbsorbChildren:
    """Tests for coarsening wiring."""

    def test_external_neighbors_first_seen_order(self):
        graph = nx.Graph()
        clique(graph, ["c0", "c1", "c2"])
        graph.add_edge("c1", "x")
        graph.add_edge("c0", "y")
        graph.add_edge("c2", "x")
        assert external_neighbors(graph, ["c0", "c1", "c2"]) == ["y", "x"]

    def test_inverse_of_wire_children(self):
        graph = _star("p", ["n0", "n1"])
        graph.add_edge("n0", "n1")
        wire_children(graph, "p", ["c0", "c1", "c2"])

        outside = absorb_children(graph, "p", ["c0", "c1", "c2"])

        assert outside == ["n0", "n1"]
        assert list(graph.neighbors("p")) == ["n0", "n1"]
        assert set(graph.nodes()) == {"p", "n0", "n1"}

    def test_isolated_cluster(self):
        graph = nx.Graph()
        wire_children(graph, "p", ["c0", "c1", "c2"])
        assert absorb_children(graph, "p", ["c0", "c1", "c2"]) == []
        assert list(graph.nodes()) == ["p"]


class TestConnectClusters:
    """Tests for level-tree cluster mirroring."""

    def test_skips_index_zero_and_own_indices(self):
        graph = nx.Graph()
        a = ["a0", "a1", "a2", "a3"]
        b = ["b0", "b1", "b2", "b3"]
        connect_clusters(graph, a, b, skip={0, 3})
        assert sorted(graph.edges()) == [("a1", "b1"), ("a2", "b2")]

    def test_skip_middle_index(self):
        graph = nx.Graph()
        connect_clusters(graph, ["a0", "a1", "a2", "a3"], ["b0", "b1", "b2", "b3"], skip={0, 1})
        assert sorted(graph.edges()) == [("a2", "b2"), ("a3", "b3")]


class TestShortestPath:
    """Tests for path search."""

    def test_self_path(self):
        graph = nx.Graph()
        graph.add_node("a")
        assert shortest_path(graph, "a", "a") == ["a"]

    def test_fewest_hops(self):
        graph = nx.path_graph(["a", "b", "c", "d"])
        graph.add_edge("a", "d")
        assert shortest_path(graph, "a", "d") == ["a", "d"]

    def test_no_path(self):
        graph = nx.Graph()
        graph.add_nodes_from(["a", "b"])
        assert shortest_path(graph, "a", "b") == []

    def test_missing_node(self):
        graph = nx.Graph()
        graph.add_node("a")
        assert shortest_path(graph, "a", "zzz") == []
