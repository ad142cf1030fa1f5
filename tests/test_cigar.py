import random

import pytest

from alignment_engine.core.cigar import (
    CigarOp,
    alignment_columns,
    alignment_to_cigar,
    cigar_identity,
    cigar_stats,
    cigar_string,
    cigar_to_alignment,
    collapse_matches,
    gap_bases,
    gap_count,
    generate_md_tag,
    hard_clip_to_soft,
    hard_clipped,
    merge_adjacent,
    parse_cigar,
    query_consumed,
    reference_consumed,
    reverse_cigar,
    soft_clipped,
    split_at_reference,
    validate_cigar,
)
from alignment_engine.core.errors import (
    InconsistentCigarError,
    LengthMismatchError,
    MalformedCigarError,
)


def test_parse_and_consumption():
    ops = parse_cigar("3M1I2M")
    assert ops == [CigarOp('M', 3), CigarOp('I', 1), CigarOp('M', 2)]
    assert reference_consumed(ops) == 5
    assert query_consumed(ops) == 6
    assert cigar_string(ops) == "3M1I2M"


@pytest.mark.parametrize("text", ["3Q", "M3", "3", "0M", "3M 2I", "-1M", "\u0663M", "1\u00b2M"])
def test_malformed_cigar(text):
    with pytest.raises(MalformedCigarError):
        parse_cigar(text)


def test_empty_cigar_parses_but_is_invalid():
    assert parse_cigar("") == []
    with pytest.raises(InconsistentCigarError):
        validate_cigar("")


@pytest.mark.parametrize("text", ["5S3M", "2H3S4M3S1H", "1H4M", "4M2S"])
def test_valid_clip_placement(text):
    assert cigar_string(validate_cigar(text)) == text


@pytest.mark.parametrize("text", ["3M2S3M", "3S2H4M", "2M1H2M"])
def test_interior_clips_rejected(text):
    with pytest.raises(InconsistentCigarError):
        validate_cigar(text)


def test_counters():
    text = "2S3M1I2D4M1H"
    assert reference_consumed(text) == 9
    assert query_consumed(text) == 10
    assert alignment_columns(text) == 13
    assert gap_count(text) == 2
    assert gap_bases(text) == 3
    assert soft_clipped(text) == 2
    assert hard_clipped(text) == 1


def test_identity_from_ops_and_sequences():
    assert cigar_identity("3=1X") == 0.75
    assert cigar_identity("4M1I") == 0.8
    assert cigar_identity("4M", "ACGT", "ACCT") == 0.75


def test_identity_length_mismatch():
    with pytest.raises(LengthMismatchError):
        cigar_identity("4M", "ACG", "ACGT")


def test_cigar_stats():
    stats = cigar_stats("3M1I2M")
    assert stats.reference_consumed == 5
    assert stats.query_consumed == 6
    assert stats.gap_count == 1
    assert stats.identity == pytest.approx(5 / 6)
    assert stats.as_dict()["cigar_string"] == "3M1I2M"


def test_cigar_to_alignment():
    assert cigar_to_alignment("2M1I1D1M", "ACGT", "ACTT") == (b"ACG-T", b"AC-TT")


def test_cigar_to_alignment_skips_clips_and_introns():
    assert cigar_to_alignment("2S2M", "TTAC", "AC") == (b"AC", b"AC")
    assert cigar_to_alignment("1M2N1M", "AC", "AGGC") == (b"AC", b"AC")
    assert cigar_to_alignment("1M1P1M", "AC", "AC") == (b"A-C", b"A-C")


def test_cigar_to_alignment_length_mismatch():
    with pytest.raises(LengthMismatchError):
        cigar_to_alignment("3M", "ACGT", "ACG")


def test_alignment_to_cigar():
    assert cigar_string(alignment_to_cigar(b"ACG-T", b"AC-TT")) == "2M1I1D1M"
    assert cigar_string(alignment_to_cigar("ACGT", "ACTT", extended=True)) == "2=1X1="
    assert cigar_string(alignment_to_cigar("A-C", "A-C")) == "1M1P1M"


def test_alignment_to_cigar_unequal_rows():
    with pytest.raises(LengthMismatchError):
        alignment_to_cigar("ACGT", "ACG")


@pytest.mark.parametrize("cigar, query, reference, expected", [
    ("4M", "ACGT", "ACGT", "4"),
    ("4M", "ACGT", "ACCT", "2C1"),
    ("2M", "TC", "AC", "0A1"),
    ("2M1D2M", "ACGT", "ACTGT", "2^T2"),
    ("1S2M1I1M", "TACGT", "ACT", "3"),
])
def test_md_tag(cigar, query, reference, expected):
    assert generate_md_tag(cigar, query, reference) == expected


def test_merge_adjacent_is_pure():
    ops = [CigarOp('M', 2), CigarOp('M', 3), CigarOp('I', 1)]
    merged = merge_adjacent(ops)
    assert cigar_string(merged) == "5M1I"
    assert ops == [CigarOp('M', 2), CigarOp('M', 3), CigarOp('I', 1)]


def test_transformations():
    assert cigar_string(reverse_cigar("3M1I2M")) == "2M1I3M"
    assert cigar_string(collapse_matches("2=1X3=1I")) == "6M1I"
    assert cigar_string(hard_clip_to_soft("2H3M")) == "2S3M"


def test_split_at_reference():
    left, right = split_at_reference("4M", 2)
    assert (cigar_string(left), cigar_string(right)) == ("2M", "2M")

    left, right = split_at_reference("2M1I2M", 2)
    assert (cigar_string(left), cigar_string(right)) == ("2M", "1I2M")

    left, right = split_at_reference("4M", 0)
    assert (left, right) == ([], [CigarOp('M', 4)])


def test_split_preserves_spans():
    text = "3M2D1I4M"
    for pos in range(reference_consumed(text) + 1):
        left, right = split_at_reference(text, pos)
        assert reference_consumed(left) == pos
        assert reference_consumed(left) + reference_consumed(right) == 9
        assert query_consumed(left) + query_consumed(right) == query_consumed(text)


def test_split_out_of_range():
    with pytest.raises(LengthMismatchError):
        split_at_reference("4M", 5)


@pytest.mark.parametrize("ops", [
    [('M', 0)],
    [('M', 3), ('I', -2)],
    [CigarOp('D', 0), CigarOp('M', 1)],
])
def test_op_lists_reject_non_positive_lengths(ops):
    """Op lists obey the same positive-length rule as CIGAR text."""
    for fn in (cigar_string, merge_adjacent, reverse_cigar, validate_cigar, query_consumed):
        with pytest.raises(MalformedCigarError):
            fn(ops)


def _random_cigar(rng):
    return "".join(
        f"{rng.randint(1, 12)}{rng.choice('MIDN=XP')}" for _ in range(rng.randint(1, 10))
    )


def test_cigar_transform_properties():
    """Render/parse round trip, idempotent merge and double reversal."""
    rng = random.Random(17)
    for _ in range(200):
        text = _random_cigar(rng)
        ops = parse_cigar(text)
        assert parse_cigar(cigar_string(ops)) == ops
        merged = merge_adjacent(ops)
        assert merge_adjacent(merged) == merged
        assert reverse_cigar(reverse_cigar(ops)) == ops
        assert reference_consumed(merged) == reference_consumed(ops)
        assert query_consumed(merged) == query_consumed(ops)
