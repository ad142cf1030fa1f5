import pickle
import random

import pytest

from alignment_engine.algorithms.nw_affine import align, align_batch
from alignment_engine.core.alignment import AlignmentMode, parse_alignment_mode
from alignment_engine.core.cigar import collapse_matches, query_consumed, reference_consumed
from alignment_engine.core.errors import (
    AlignmentEngineError,
    EmptyInputError,
    InvalidModeError,
    InvalidSequenceError,
)
from alignment_engine.core.scoring import ScoringMatrix, SubstitutionMatrix
from alignment_engine.core.utilities import compute_alignment_stats, strip_gaps


def test_identical_global():
    """Identical sequences align without gaps at 4 x match."""
    r = align("ACGT", "ACGT", "global")
    assert r.score == 8
    assert r.identity == 1.0
    assert r.num_gaps == 0
    assert r.cigar_string() == "4M"
    assert (r.query_start, r.query_end, r.target_start, r.target_end) == (0, 4, 0, 4)


def test_single_gap_global():
    r = align("ACGT", "AGT", AlignmentMode.GLOBAL)
    assert r.aligned_query == b"ACGT"
    assert r.aligned_target == b"A-GT"
    assert r.score == -1
    assert r.length == 4
    assert r.num_gaps == 1
    assert r.num_matches == 3
    assert r.cigar_string() == "1M1I2M"


def test_affine_gap_kept_contiguous():
    """One gap of length 2 beats two gaps of length 1."""
    r = align("AAGGTT", "AATT", "global")
    assert r.aligned_target == b"AA--TT"
    assert r.score == 4 * 2 + (-5 + 2 * -2)
    assert r.cigar_string() == "2M2I2M"


def test_global_rows_reproduce_inputs():
    q, t = "GATTACA", "GCATGCT"
    r = align(q, t, "global")
    assert len(r.aligned_query) == len(r.aligned_target)
    assert strip_gaps(r.aligned_query) == q.encode()
    assert strip_gaps(r.aligned_target) == t.encode()
    assert (r.query_end, r.target_end) == (len(q), len(t))


def test_local_finds_embedded_match():
    r = align("GGACGTGG", "ACGT", "local")
    assert r.score == 8
    assert r.aligned_query == b"ACGT"
    assert (r.query_start, r.query_end) == (2, 6)
    assert (r.target_start, r.target_end) == (0, 4)


def test_local_without_positive_cell_is_empty():
    r = align("AAAA", "CCCC", "local")
    assert r.score == 0
    assert r.aligned_query == b""
    assert r.cigar_string() == ""
    assert r.identity == 0.0


def test_semiglobal_end_gaps_free():
    r = align("ACGT", "TTACGTTT", "semiglobal")
    assert r.score == 8
    assert r.aligned_query == b"ACGT"
    assert (r.target_start, r.target_end) == (2, 6)
    assert r.cigar_string() == "4M"


def test_semiglobal_score_at_least_global():
    q, t = "ACGTT", "GGACGTTCC"
    assert align(q, t, "semiglobal").score >= align(q, t, "global").score


def test_protein_alignment_with_blosum62():
    r = align("MKTAYIAK", "MKTAYIAK", "global", SubstitutionMatrix.blosum62())
    assert r.score == 5 + 5 + 5 + 4 + 7 + 4 + 4 + 5


def test_custom_scoring_changes_score():
    r = align("ACGT", "ACGT", "global", ScoringMatrix(1, -1, -2, -1))
    assert r.score == 4


def test_bytes_and_str_inputs_agree():
    assert align(b"ACGT", bytearray(b"AGT")).score == align("ACGT", "AGT").score


@pytest.mark.parametrize("text, mode", [
    ("local", AlignmentMode.LOCAL),
    ("GLOBAL", AlignmentMode.GLOBAL),
    ("semi-global", AlignmentMode.SEMIGLOBAL),
    ("semi_global", AlignmentMode.SEMIGLOBAL),
])
def test_parse_alignment_mode(text, mode):
    assert parse_alignment_mode(text) is mode


def test_unknown_mode_rejected():
    with pytest.raises(InvalidModeError):
        align("ACGT", "ACGT", "fuzzy")


@pytest.mark.parametrize("query, target", [("", "ACGT"), ("ACGT", ""), (b"", b"")])
def test_empty_sequence_rejected(query, target):
    with pytest.raises(EmptyInputError):
        align(query, target)


def test_result_as_dict():
    d = align("ACGT", "AGT").as_dict()
    assert d["aligned_query"] == "ACGT"
    assert d["aligned_target"] == "A-GT"
    assert d["mode"] == "global"
    assert d["cigar"] == "1M1I2M"
    assert d["num_gaps"] == 1
    assert d["alignment_length"] == 4


def test_extended_cigar():
    r = align("ACGT", "ACTT", "global")
    assert r.cigar_string(extended=True) == "2=1X1="


def test_compute_alignment_stats():
    stats = compute_alignment_stats(b"AC-GT", b"ACTG-")
    assert stats["matches"] == 3
    assert stats["deletions"] == 1
    assert stats["insertions"] == 1
    assert stats["gap_openings"] == 2
    assert stats["length"] == 5


def test_batch_matches_individual_alignments():
    pairs = [("ACGT", "ACGT"), ("ACGT", "AGT"), ("GGACGTGG", "ACGT")]
    results = align_batch(pairs, "global")
    assert [r.score for r in results] == [align(q, t).score for q, t in pairs]


def test_batch_empty():
    assert align_batch([], "local") == []


def test_batch_fails_fast_on_bad_pair():
    pairs = [("ACGT", "ACGT"), ("ACGT", ""), ("", "ACGT")]
    with pytest.raises(EmptyInputError) as exc_info:
        align_batch(pairs)
    assert "Batch pair 1" in str(exc_info.value)


def test_batch_process_pool_preserves_order():
    pairs = [("ACGT" * i, "ACGA" * i) for i in range(1, 6)]
    parallel = align_batch(pairs, "global", num_workers=2)
    serial = align_batch(pairs, "global")
    assert parallel == serial


def test_errors_survive_pickling():
    err = EmptyInputError("query is empty", suggestion="Supply at least one residue")
    restored = pickle.loads(pickle.dumps(err))
    assert isinstance(restored, EmptyInputError)
    assert restored.message == "query is empty"
    assert restored.suggestion == "Supply at least one residue"


def test_non_ascii_text_rejected():
    with pytest.raises(InvalidSequenceError) as exc_info:
        align("ACGTé", "ACGT")
    assert isinstance(exc_info.value, AlignmentEngineError)
    assert "position 4" in exc_info.value.context


@pytest.mark.parametrize("query", [123, None, ["A", "C"]])
def test_non_sequence_input_rejected(query):
    with pytest.raises(InvalidSequenceError):
        align(query, "ACGT")


@pytest.mark.parametrize("item", [("ACGT",), ("A", "C", "G"), 5])
def test_batch_rejects_malformed_items(item):
    with pytest.raises(InvalidSequenceError) as exc_info:
        align_batch([("ACGT", "ACGT"), item])
    assert "Batch item 1" in str(exc_info.value)


def test_batch_rejects_non_ascii_pair():
    with pytest.raises(InvalidSequenceError) as exc_info:
        align_batch([("ACGT", "ACGT"), ("ACÇT", "ACGT")])
    assert "Batch pair 1" in str(exc_info.value)
    assert "position 2" in exc_info.value.context


def test_local_tie_keeps_first_maximum():
    """Two equal hits: the earlier one in row-major order wins."""
    r = align("ACGTTTTTACGT", "ACGT", "local")
    assert r.score == 8
    assert (r.query_start, r.query_end) == (0, 4)
    assert (r.target_start, r.target_end) == (0, 4)


def _random_seq(rng, alphabet, lo=1, hi=30):
    return "".join(rng.choice(alphabet) for _ in range(rng.randint(lo, hi)))


@pytest.mark.parametrize("alphabet, scoring", [
    ("ACGT", ScoringMatrix.dna_default()),
    ("ACDEFGHIKLMNPQRSTVWY", SubstitutionMatrix.blosum62()),
])
def test_global_score_symmetric(alphabet, scoring):
    rng = random.Random(7)
    for _ in range(40):
        q, t = _random_seq(rng, alphabet), _random_seq(rng, alphabet)
        assert align(q, t, "global", scoring).score == align(t, q, "global", scoring).score


@pytest.mark.parametrize("mode", ["global", "local", "semiglobal"])
def test_aligned_rows_match_reported_spans(mode):
    """Gap-free rows equal the reported slices and the CIGAR consumes exactly the spans."""
    rng = random.Random(11)
    for _ in range(40):
        q, t = _random_seq(rng, "ACGT"), _random_seq(rng, "ACGT")
        r = align(q, t, mode)
        assert strip_gaps(r.aligned_query) == q.encode()[r.query_start:r.query_end]
        assert strip_gaps(r.aligned_target) == t.encode()[r.target_start:r.target_end]
        ops = collapse_matches(r.cigar)
        assert query_consumed(ops) == r.query_end - r.query_start
        assert reference_consumed(ops) == r.target_end - r.target_start
