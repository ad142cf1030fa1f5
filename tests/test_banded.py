import logging

import pytest

from alignment_engine.algorithms.banded import banded_align, banded_score_only, check_bandwidth
from alignment_engine.algorithms.nw_affine import align
from alignment_engine.core.alignment import AlignmentMode
from alignment_engine.core.errors import EmptyInputError, InvalidBandwidthError


def test_banded_global_matches_full_when_path_in_band():
    """A single-gap optimum lies within a band of width 2."""
    r = banded_align("ACGTACGT", "ACGACGT", "global", bandwidth=2)
    assert r.score == 7
    assert r.score == align("ACGTACGT", "ACGACGT", "global").score
    assert len(r.aligned_query) == len(r.aligned_target)


@pytest.mark.parametrize("mode", ["global", "local", "semiglobal"])
def test_full_width_band_equals_full_alignment(mode):
    q, t = "GATTACAGATT", "GCATGCTAGT"
    assert banded_align(q, t, mode, bandwidth=11).score == align(q, t, mode).score


@pytest.mark.parametrize("mode", ["global", "local", "semiglobal"])
def test_score_only_agrees_with_traceback(mode):
    q, t = "ACGTACGTTGCA", "ACGACGTTGGCA"
    assert banded_score_only(q, t, mode, bandwidth=3) == banded_align(q, t, mode, bandwidth=3).score


def test_banded_local():
    r = banded_align("GGACGTGG", "ACGT", "local", bandwidth=4)
    assert r.score == 8
    assert (r.query_start, r.query_end) == (2, 6)


def test_banded_semiglobal():
    r = banded_align("ACGT", "TTACGTTT", "semiglobal", bandwidth=3)
    assert r.score == 8
    assert (r.target_start, r.target_end) == (2, 6)


@pytest.mark.parametrize("bandwidth", [0, -1, 2.5, True])
def test_invalid_bandwidth_rejected(bandwidth):
    with pytest.raises(InvalidBandwidthError):
        banded_align("ACGT", "ACGT", "global", bandwidth=bandwidth)


def test_global_band_must_reach_end_cell():
    with pytest.raises(InvalidBandwidthError):
        banded_score_only("ACGTACGT", "AC", "global", bandwidth=3)
    # Local mode has no fixed end cell
    assert banded_score_only("ACGTACGT", "AC", "local", bandwidth=3) == 4


def test_oversized_band_is_clamped_with_warning(caplog):
    with caplog.at_level(logging.WARNING):
        assert check_bandwidth(100, 8, 6, AlignmentMode.GLOBAL) == 8
    assert any("covers the whole" in rec.getMessage() for rec in caplog.records)


def test_banded_empty_input():
    with pytest.raises(EmptyInputError):
        banded_align("", "ACGT", "global", bandwidth=4)
