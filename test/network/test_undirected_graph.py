from taxanet.network.graph import UndirectedSparseGraph


def build_path_graph():
    """a - b - c"""
    graph = UndirectedSparseGraph()
    graph.add_edge("ab", "a", "b")
    graph.add_edge("bc", "b", "c")
    return graph


def test_add_edge_adds_missing_vertices():
    graph = build_path_graph()
    assert graph.vertex_count == 3
    assert graph.edge_count == 2
    assert graph.find_edge("a", "b") == "ab"
    assert graph.find_edge("b", "a") == "ab"
    assert graph.endpoints("bc") == ("b", "c")


def test_rejected_insertions_return_false():
    graph = build_path_graph()
    assert not graph.add_vertex(None)
    assert not graph.add_vertex("a")
    assert not graph.add_edge(None, "a", "c")
    assert not graph.add_edge("aa", "a", "a")
    assert not graph.add_edge("ab", "a", "c"), "edge object already present"
    assert not graph.add_edge("ba", "b", "a"), "pair already connected"
    assert graph.find_edge("a", "b") == "ab"
    assert graph.edge_count == 2


def test_neighbors_and_incident_edges():
    graph = build_path_graph()
    assert sorted(graph.neighbors("b")) == ["a", "c"]
    assert sorted(graph.incident_edges("b")) == ["ab", "bc"]
    assert graph.degree("b") == 2
    assert graph.neighbors("zzz") == []
    assert graph.incident_edges("zzz") == []


def test_remove_edge():
    graph = build_path_graph()
    assert graph.remove_edge("ab")
    assert not graph.remove_edge("ab")
    assert graph.find_edge("a", "b") is None
    assert graph.contains_vertex("a")
    assert graph.degree("a") == 0


def test_remove_vertex_cascades():
    graph = build_path_graph()
    assert graph.remove_vertex("b")
    assert not graph.contains_vertex("b")
    assert not graph.contains_edge("ab")
    assert not graph.contains_edge("bc")
    assert graph.edge_count == 0
    assert sorted(graph.vertices) == ["a", "c"]
    assert not graph.remove_vertex("b")
