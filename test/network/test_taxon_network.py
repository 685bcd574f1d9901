import numpy as np
import pytest

from taxanet.correlation import CorrelationEngine
from taxanet.network import TaxonEdge, TaxonNetwork, TaxonVertex, canonical_pair
from taxanet.taxonomy import TaxonNode


@pytest.fixture
def genus_network(genus_tree, genus_samples):
    result = CorrelationEngine(genus_tree).analyze(genus_samples, "genus")
    return TaxonNetwork.build_from(
        result.taxa, result.correlation, result.p_values, result.max_relative_frequencies
    )


def test_build_creates_complete_graph(genus_network):
    assert genus_network.vertex_count == 4
    assert genus_network.edge_count == 6
    for vertex in genus_network.vertices:
        assert genus_network.degree(vertex) == 3


def test_edges_carry_matrix_values(genus_network):
    edge = genus_network.edge_between(100, 102)
    assert edge.correlation == pytest.approx(0.8)
    assert 0.0 < edge.p_value < 1.0
    assert edge.pair == (100, 102)


def test_reverse_index_is_symmetric(genus_network, genus_tree):
    a, b = genus_tree.lookup(101), genus_tree.lookup(103)
    assert genus_network.edge_between(a, b) is genus_network.edge_between(b, a)
    assert genus_network.edge_between(103, 101) is genus_network.edge_between(101, 103)

    va, vb = genus_network.vertex_for(a), genus_network.vertex_for(b)
    edge = genus_network.edge_between(a, b)
    assert edge.other(va) is vb
    assert edge in genus_network.incident_edges(va)
    assert vb in genus_network.neighbors(va)


def test_duplicate_edge_is_rejected(genus_network):
    first = genus_network.edge_between(100, 101)
    correlation, p_value = first.correlation, first.p_value

    assert genus_network.connect(101, 100, -0.5, 0.5) is None
    duplicate = TaxonEdge(
        genus_network.vertex_for(100), genus_network.vertex_for(101), 0.1, 0.9
    )
    assert not genus_network.add_edge(duplicate)

    assert genus_network.edge_between(100, 101) is first
    assert first.correlation == correlation
    assert first.p_value == p_value
    assert genus_network.edge_count == 6


def test_null_and_duplicate_vertices_are_rejected(genus_network, genus_tree):
    assert not genus_network.add_vertex(None)
    assert not genus_network.add_vertex(TaxonVertex(genus_tree.lookup(100)))
    assert not genus_network.add_edge(None)
    assert genus_network.vertex_count == 4


def test_edge_with_foreign_vertex_object_is_rejected(genus_network, genus_tree):
    impostor = TaxonVertex(genus_tree.lookup(100))
    stranger = TaxonVertex(genus_tree.lookup(1000))
    assert not genus_network.add_edge(TaxonEdge(impostor, stranger, 0.3, 0.1))
    assert genus_network.vertex_for(1000) is None


def test_add_edge_registers_new_vertex(genus_network, genus_tree):
    newcomer = TaxonVertex(genus_tree.lookup(1000))
    edge = TaxonEdge(genus_network.vertex_for(100), newcomer, 0.3, 0.1)
    assert genus_network.add_edge(edge)
    assert genus_network.vertex_for(1000) is newcomer
    assert genus_network.edge_between(1000, 100) is edge


def test_remove_vertex_cascades_to_index(genus_network):
    vertex = genus_network.vertex_for(102)
    assert genus_network.remove_vertex(vertex)
    assert genus_network.vertex_for(102) is None
    assert genus_network.edge_count == 3
    for other in (100, 101, 103):
        assert genus_network.edge_between(102, other) is None
    for edge in genus_network.edges:
        assert genus_network.vertex_for(edge.first.taxon_id) is edge.first
        assert genus_network.vertex_for(edge.second.taxon_id) is edge.second
    assert not genus_network.remove_vertex(vertex)


def test_remove_edge_updates_index(genus_network):
    edge = genus_network.edge_between(100, 103)
    assert genus_network.remove_edge(edge)
    assert genus_network.edge_between(100, 103) is None
    assert not genus_network.remove_edge(edge)
    # The pair can be connected again afterwards
    assert genus_network.connect(100, 103, -0.2, 0.4) is not None


def test_build_rejects_misaligned_matrices():
    taxa = [TaxonNode(1, "a", "genus"), TaxonNode(2, "b", "genus")]
    with pytest.raises(ValueError):
        TaxonNetwork.build_from(taxa, np.eye(3), np.zeros((3, 3)))


def test_build_rejects_repeated_taxa():
    taxon = TaxonNode(1, "a", "genus")
    with pytest.raises(ValueError):
        TaxonNetwork.build_from([taxon, taxon], np.eye(2), np.zeros((2, 2)))


def test_canonical_pair():
    assert canonical_pair(5, 3) == (3, 5)
    assert canonical_pair(3, 5) == (3, 5)
