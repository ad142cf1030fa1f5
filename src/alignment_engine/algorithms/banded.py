"""
Banded affine-gap alignment.

The DP is restricted to cells with ``|j - i| <= bandwidth``; everything
outside the band is unreachable. Band rows are stored at offset
``k = j - i + bandwidth`` so each row holds ``2 * bandwidth + 1`` cells:

- H[i-1][j-1] is at k in the previous row
- H[i-1][j]   is at k + 1 in the previous row
- H[i][j-1]   is at k - 1 in the current row

If the optimal alignment leaves the band the returned score is that of the
best in-band alignment; the band is never widened automatically.
Author: Rowel Facunla
"""

import logging
from typing import Union

import numpy as np

from ..core.alignment import AlignmentMode, AlignmentResult, parse_alignment_mode
from ..core.errors import InvalidBandwidthError
from ..core.scoring import ScoringScheme, resolve_scoring
from ..core.utilities import SequenceLike, as_sequence
from .nw_affine import (
    DEL_EXTEND,
    FROM_DEL,
    FROM_DIAG,
    FROM_INS,
    INS_EXTEND,
    NEG_INF,
    STOP,
    traceback,
)

logger = logging.getLogger(__name__)


def check_bandwidth(bandwidth, m: int, n: int, mode: AlignmentMode) -> int:
    """
    Validate a band width for an m x n problem.

    Returns:
        Effective band width (clamped to max(m, n) when larger)

    Raises:
        InvalidBandwidthError: bandwidth < 1, or in global mode a band too
            narrow to reach the bottom-right cell
    """
    if isinstance(bandwidth, bool) or not isinstance(bandwidth, (int, np.integer)) or bandwidth < 1:
        raise InvalidBandwidthError(
            f"Bandwidth must be a positive integer, got {bandwidth!r}",
            suggestion="Use a bandwidth of at least the expected indel drift",
        )
    bandwidth = int(bandwidth)

    if mode is AlignmentMode.GLOBAL and abs(m - n) > bandwidth:
        raise InvalidBandwidthError(
            f"Bandwidth {bandwidth} cannot reach the end cell of a {m}x{n} global alignment",
            suggestion=f"Use a bandwidth of at least {abs(m - n)}",
        )

    full = max(m, n)
    if bandwidth >= full:
        logger.warning(
            f"Bandwidth {bandwidth} covers the whole {m}x{n} matrix; using {full} "
            f"(full alignment is equivalent)"
        )
        bandwidth = full
    return bandwidth


def _fill_band(query: bytes, target: bytes, mode: AlignmentMode, scoring: ScoringScheme,
               w: int, keep_trace: bool = True):
    """
    Fill the banded DP.

    Returns:
        Tuple of (trace or None, best score, best_i, best_j)
    """
    m, n = len(query), len(target)
    go, ge = scoring.gap_open, scoring.gap_extend
    rows = scoring.rows()
    width = 2 * w + 1
    is_global = mode is AlignmentMode.GLOBAL
    is_local = mode is AlignmentMode.LOCAL

    trace = np.full((m + 1, width), STOP, dtype=np.uint8) if keep_trace else None

    # Row 0: j = k - w for k >= w
    H_prev = [NEG_INF] * width
    F_prev = [NEG_INF] * width
    trow = [STOP] * width
    for j in range(0, min(n, w) + 1):
        k = j + w
        if is_global and j > 0:
            H_prev[k] = go + j * ge
            trow[k] = FROM_DEL | DEL_EXTEND if j > 1 else FROM_DEL
        else:
            H_prev[k] = 0
    if keep_trace:
        trace[0] = trow

    best = 0
    best_i = best_j = 0
    last_row = None
    last_col = {}
    if n <= w:
        last_col[0] = H_prev[n + w]

    for i in range(1, m + 1):
        qrow = rows[query[i - 1]]
        H_cur = [NEG_INF] * width
        F_cur = [NEG_INF] * width
        trow = [STOP] * width

        j_lo = max(1, i - w)
        j_hi = min(n, i + w)

        if i <= w:
            # Column 0 lies inside the band
            k0 = w - i
            if is_global:
                H_cur[k0] = go + i * ge
                F_cur[k0] = H_cur[k0]
                trow[k0] = FROM_INS | INS_EXTEND if i > 1 else FROM_INS
            else:
                H_cur[k0] = 0

        e = NEG_INF
        for j in range(j_lo, j_hi + 1):
            k = j - i + w

            h_left = H_cur[k - 1] if k > 0 else NEG_INF
            e_open = h_left + go + ge
            e_ext = e + ge
            if e_open >= e_ext:
                e = e_open
                p = 0
            else:
                e = e_ext
                p = DEL_EXTEND

            if k + 1 < width:
                f_open = H_prev[k + 1] + go + ge
                f_ext = F_prev[k + 1] + ge
            else:
                f_open = f_ext = NEG_INF
            if f_open >= f_ext:
                f = f_open
            else:
                f = f_ext
                p |= INS_EXTEND
            F_cur[k] = f

            d = H_prev[k] + qrow[target[j - 1]]
            if d >= f and d >= e:
                h = d
                src = FROM_DIAG
            elif f >= e:
                h = f
                src = FROM_INS
            else:
                h = e
                src = FROM_DEL

            if is_local:
                if h <= 0:
                    h = 0
                    src = STOP
                elif h > best:
                    best = h
                    best_i, best_j = i, j

            H_cur[k] = h
            trow[k] = p | src

        if keep_trace:
            trace[i] = trow
        if abs(n - i) <= w:
            last_col[i] = H_cur[n - i + w]
        if i == m:
            last_row = H_cur
        H_prev, F_prev = H_cur, F_cur

    if is_global:
        best, best_i, best_j = last_col[m], m, n
    elif mode is AlignmentMode.SEMIGLOBAL:
        best = NEG_INF
        for j in range(max(1, m - w), min(n, m + w) + 1):
            value = last_row[j - m + w]
            if value > best:
                best, best_i, best_j = value, m, j
        for i in range(1, m + 1):
            value = last_col.get(i, NEG_INF)
            if value > best:
                best, best_i, best_j = value, i, n
        if best == NEG_INF:
            # No in-band cell on the last row or column
            best = 0
            best_i = best_j = 0

    return trace, int(best), best_i, best_j


def banded_align(
    query: SequenceLike,
    target: SequenceLike,
    mode: Union[str, AlignmentMode] = AlignmentMode.GLOBAL,
    scoring=None,
    bandwidth: int = 16
) -> AlignmentResult:
    """
    Affine-gap alignment restricted to a diagonal band.

    Time O(max(m, n) * bandwidth); traceback storage O(m * bandwidth).

    Args:
        query: Query residues
        target: Target residues
        mode: 'global', 'local' or 'semiglobal'
        scoring: Scoring scheme or specification (None = DNA default)
        bandwidth: Half-width of the band around the main diagonal

    Returns:
        AlignmentResult
    """
    q = as_sequence(query, "query")
    t = as_sequence(target, "target")
    mode = parse_alignment_mode(mode)
    scoring = resolve_scoring(scoring)
    w = check_bandwidth(bandwidth, len(q), len(t), mode)

    logger.debug(f"Banded {mode.value} alignment {len(q)}x{len(t)}, bandwidth {w}")
    trace, score, end_i, end_j = _fill_band(q, t, mode, scoring, w)
    a1, a2, start_i, start_j = traceback(q, t, lambda i, j: trace[i, j - i + w], end_i, end_j)

    return AlignmentResult(
        score=score,
        aligned_query=a1,
        aligned_target=a2,
        query_start=start_i,
        query_end=end_i,
        target_start=start_j,
        target_end=end_j,
        mode=mode,
    )


def banded_score_only(
    query: SequenceLike,
    target: SequenceLike,
    mode: Union[str, AlignmentMode] = AlignmentMode.GLOBAL,
    scoring=None,
    bandwidth: int = 16
) -> int:
    """Score of ``banded_align`` without traceback storage (O(bandwidth) memory)."""
    q = as_sequence(query, "query")
    t = as_sequence(target, "target")
    mode = parse_alignment_mode(mode)
    scoring = resolve_scoring(scoring)
    w = check_bandwidth(bandwidth, len(q), len(t), mode)

    _, score, _, _ = _fill_band(q, t, mode, scoring, w, keep_trace=False)
    return score


__all__ = [
    'banded_align',
    'banded_score_only',
    'check_bandwidth',
]
