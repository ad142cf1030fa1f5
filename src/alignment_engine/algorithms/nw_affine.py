"""
Full dynamic-programming pairwise alignment with affine gaps.

Three tracks per cell (Gotoh):
- H: best score of any alignment ending at (i, j)
- F: best score ending with query[i-1] against a gap (vertical move, CIGAR I)
- E: best score ending with target[j-1] against a gap (horizontal move, CIGAR D)

Only the current and previous score rows are kept; the per-cell track
choices are packed into one uint8 per cell for traceback.
Author: Rowel Facunla
"""

import logging
from functools import partial
from multiprocessing import Pool
from typing import Iterable, List, Tuple, Union

import numpy as np

from ..core.alignment import AlignmentMode, AlignmentResult, parse_alignment_mode
from ..core.errors import EmptyInputError, InvalidSequenceError
from ..core.scoring import ScoringScheme, resolve_scoring
from ..core.utilities import GAP, SequenceLike, as_sequence, parse_num_workers

logger = logging.getLogger(__name__)

NEG_INF = float('-inf')

# Trace byte layout: bits 0-1 = source of H, bit 2 = F extended, bit 3 = E extended
FROM_DIAG = 0
FROM_INS = 1
FROM_DEL = 2
STOP = 3
SOURCE_MASK = 3
INS_EXTEND = 4
DEL_EXTEND = 8


def traceback(query: bytes, target: bytes, trace_at, i: int, j: int) -> Tuple[bytes, bytes, int, int]:
    """
    Walk recorded track choices back from (i, j) until a STOP cell.

    Args:
        query: Query residues
        target: Target residues
        trace_at: Callable (i, j) -> trace byte
        i, j: Start cell (the optimum)

    Returns:
        Tuple of (aligned_query, aligned_target, start_i, start_j)
    """
    a1 = bytearray()
    a2 = bytearray()
    state = FROM_DIAG

    while True:
        p = trace_at(i, j)
        if state == FROM_DIAG:
            src = p & SOURCE_MASK
            if src == STOP:
                break
            if src == FROM_DIAG:
                a1.append(query[i - 1])
                a2.append(target[j - 1])
                i -= 1
                j -= 1
            else:
                # Same cell, continue in the gap track that produced H
                state = src
        elif state == FROM_INS:
            a1.append(query[i - 1])
            a2.append(GAP)
            state = FROM_INS if p & INS_EXTEND else FROM_DIAG
            i -= 1
        else:
            a1.append(GAP)
            a2.append(target[j - 1])
            state = FROM_DEL if p & DEL_EXTEND else FROM_DIAG
            j -= 1

    a1.reverse()
    a2.reverse()
    return bytes(a1), bytes(a2), i, j


def _fill_matrix(query: bytes, target: bytes, mode: AlignmentMode, scoring: ScoringScheme):
    """
    Fill the DP and record track choices.

    Returns:
        Tuple of (trace matrix, best score, best_i, best_j)
    """
    m, n = len(query), len(target)
    go, ge = scoring.gap_open, scoring.gap_extend
    rows = scoring.rows()
    is_global = mode is AlignmentMode.GLOBAL
    is_local = mode is AlignmentMode.LOCAL

    trace = np.full((m + 1, n + 1), STOP, dtype=np.uint8)

    # Row 0
    H_prev = [0] * (n + 1)
    F_prev = [NEG_INF] * (n + 1)
    if is_global:
        for j in range(1, n + 1):
            H_prev[j] = go + j * ge
        trace[0, 1:] = FROM_DEL | DEL_EXTEND
        if n >= 1:
            trace[0, 1] = FROM_DEL

    best = 0
    best_i = best_j = 0
    last_col = [H_prev[n]]

    for i in range(1, m + 1):
        qrow = rows[query[i - 1]]
        H_cur = [0] * (n + 1)
        F_cur = [NEG_INF] * (n + 1)
        trow = [STOP] * (n + 1)
        if is_global:
            H_cur[0] = go + i * ge
            F_cur[0] = H_cur[0]
            trow[0] = FROM_INS | INS_EXTEND if i > 1 else FROM_INS

        e = NEG_INF
        for j in range(1, n + 1):
            # E: horizontal gap track
            e_open = H_cur[j - 1] + go + ge
            e_ext = e + ge
            if e_open >= e_ext:
                e = e_open
                p = 0
            else:
                e = e_ext
                p = DEL_EXTEND

            # F: vertical gap track
            f_open = H_prev[j] + go + ge
            f_ext = F_prev[j] + ge
            if f_open >= f_ext:
                f = f_open
            else:
                f = f_ext
                p |= INS_EXTEND
            F_cur[j] = f

            d = H_prev[j - 1] + qrow[target[j - 1]]
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
                    # Row-major scan: first maximum is smallest row, then smallest column
                    best = h
                    best_i, best_j = i, j

            H_cur[j] = h
            trow[j] = p | src

        trace[i] = trow
        last_col.append(H_cur[n])
        H_prev, F_prev = H_cur, F_cur

    if is_global:
        best, best_i, best_j = H_prev[n], m, n
    elif mode is AlignmentMode.SEMIGLOBAL:
        best = NEG_INF
        for j in range(1, n + 1):
            if H_prev[j] > best:
                best, best_i, best_j = H_prev[j], m, j
        for i in range(1, m + 1):
            if last_col[i] > best:
                best, best_i, best_j = last_col[i], i, n

    return trace, int(best), best_i, best_j


def align(
    query: SequenceLike,
    target: SequenceLike,
    mode: Union[str, AlignmentMode] = AlignmentMode.GLOBAL,
    scoring=None
) -> AlignmentResult:
    """
    Optimal pairwise alignment under affine gap scoring.

    Args:
        query: Query residues
        target: Target residues
        mode: 'global', 'local' or 'semiglobal'
        scoring: ScoringMatrix / SubstitutionMatrix, or anything
            ``resolve_scoring`` accepts (None = DNA default)

    Returns:
        AlignmentResult

    Raises:
        EmptyInputError: empty query or target
        InvalidScoringError: unresolvable scoring
        InvalidModeError: unknown mode
    """
    q = as_sequence(query, "query")
    t = as_sequence(target, "target")
    mode = parse_alignment_mode(mode)
    scoring = resolve_scoring(scoring)

    logger.debug(f"{mode.value} alignment {len(q)}x{len(t)}")
    trace, score, end_i, end_j = _fill_matrix(q, t, mode, scoring)
    a1, a2, start_i, start_j = traceback(q, t, lambda i, j: trace[i, j], end_i, end_j)

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


def _align_pair(pair: Tuple[bytes, bytes], mode: AlignmentMode, scoring: ScoringScheme) -> AlignmentResult:
    return align(pair[0], pair[1], mode, scoring)


def align_batch(
    pairs: Iterable[Tuple[SequenceLike, SequenceLike]],
    mode: Union[str, AlignmentMode] = AlignmentMode.GLOBAL,
    scoring=None,
    num_workers=1
) -> List[AlignmentResult]:
    """
    Align many (query, target) pairs under one mode and scoring.

    Fail-fast: every pair is checked before any work starts and the first
    bad pair (in input order) aborts the whole batch. Pairs are independent,
    so with ``num_workers`` > 1 (or 'auto') they are spread over a process
    pool; results always come back in input order.
    """
    mode = parse_alignment_mode(mode)
    scoring = resolve_scoring(scoring)

    prepared = []
    for idx, pair in enumerate(pairs):
        try:
            query, target = pair
        except (TypeError, ValueError):
            raise InvalidSequenceError(
                f"Batch item {idx} is not a (query, target) pair",
                suggestion="Pass an iterable of (query, target) tuples",
                context=f"got {pair!r}",
            ) from None
        try:
            prepared.append((as_sequence(query, "query"), as_sequence(target, "target")))
        except (EmptyInputError, InvalidSequenceError) as e:
            context = f"{idx} pair(s) before it were valid; no pairs were aligned"
            if e.context:
                context = f"{e.context}; {context}"
            raise type(e)(
                f"Batch pair {idx}: {e.message}",
                suggestion=e.suggestion,
                context=context,
            )

    workers = min(parse_num_workers(num_workers), len(prepared))
    logger.debug(f"Aligning batch of {len(prepared)} pair(s) with {max(workers, 1)} worker(s)")

    worker = partial(_align_pair, mode=mode, scoring=scoring)
    if workers <= 1:
        return [worker(pair) for pair in prepared]

    with Pool(processes=workers) as pool:
        return pool.map(worker, prepared)


__all__ = [
    'align',
    'align_batch',
    'traceback',
    'NEG_INF',
    'FROM_DIAG',
    'FROM_INS',
    'FROM_DEL',
    'STOP',
    'INS_EXTEND',
    'DEL_EXTEND',
]
