import pytest

from alignment_engine.algorithms.poa import PoaGraph, poa_consensus
from alignment_engine.core.errors import EmptyInputError, InvalidScoringError, InvalidSequenceError
from alignment_engine.core.scoring import PoaScoring, ScoringMatrix


def _assert_topological(graph):
    pos = {v: i for i, v in enumerate(graph.topological_order)}
    assert len(pos) == graph.n_nodes
    for u, v in graph.edges():
        assert pos[u] < pos[v]


def test_from_sequence_is_a_chain():
    g = PoaGraph.from_sequence("ACGT")
    assert g.n_nodes == 4
    assert g.n_sequences == 1
    assert g.edges() == {(0, 1): 1, (1, 2): 1, (2, 3): 1}
    assert g.consensus() == b"ACGT"
    _assert_topological(g)


def test_identical_sequence_reinforces_path():
    g = PoaGraph.from_sequence("AC")
    g.add_sequence("AC")
    assert [n.multiplicity for n in g.nodes] == [2, 2]
    assert g.edge_weight(0, 1) == 2
    assert g.consensus() == b"AC"
    assert g.n_sequences == 2


def test_substitution_reuses_node():
    g = PoaGraph.from_sequence("AC")
    g.add_sequence("AG", PoaScoring())
    assert g.n_nodes == 2
    assert g.node(1).multiplicity == 2
    assert g.consensus() == b"AC"


def test_deletion_adds_skip_edge():
    g = PoaGraph.from_sequence("ACGT")
    g.add_sequence("ACT")
    assert g.n_nodes == 4
    assert g.edge_weight(1, 3) == 1
    assert g.node(2).multiplicity == 1
    assert g.node(3).multiplicity == 2
    _assert_topological(g)
    # Path through G carries more weight than the skip edge
    assert g.consensus() == b"ACGT"


def test_insertion_adds_node():
    g = PoaGraph.from_sequence("ACT")
    g.add_sequence("ACGT")
    assert g.n_nodes == 4
    assert g.node(3).residue == ord("G")
    assert g.edge_weight(1, 3) == 1
    assert g.edge_weight(3, 2) == 1
    _assert_topological(g)


def test_majority_consensus():
    assert poa_consensus(["ACT", "ACGT", "ACT"]) == b"ACT"
    assert poa_consensus(["ACGT", "ACT"]) == b"ACGT"


def test_single_sequence_consensus():
    assert poa_consensus(["GATTACA"]) == b"GATTACA"


def test_empty_inputs_rejected():
    with pytest.raises(EmptyInputError):
        poa_consensus([])
    with pytest.raises(EmptyInputError):
        PoaGraph.from_sequence("")
    g = PoaGraph.from_sequence("ACGT")
    with pytest.raises(EmptyInputError):
        g.add_sequence("")


def test_non_ascii_sequence_rejected():
    with pytest.raises(InvalidSequenceError):
        PoaGraph.from_sequence("AÇ")
    g = PoaGraph.from_sequence("ACGT")
    with pytest.raises(InvalidSequenceError):
        g.add_sequence("ACGTé")
    assert g.n_sequences == 1


def test_affine_scoring_rejected():
    g = PoaGraph.from_sequence("ACGT")
    with pytest.raises(InvalidScoringError):
        g.add_sequence("ACGT", ScoringMatrix.dna_default())


def test_node_accessors_return_copies():
    g = PoaGraph.from_sequence("AC")
    g.nodes[0].multiplicity = 99
    assert g.node(0).multiplicity == 1
