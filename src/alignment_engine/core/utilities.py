"""
Utility functions for the alignment engine.
Author: Rowel Facunla
"""

from multiprocessing import cpu_count
from typing import Dict, Union

from .errors import EmptyInputError, InvalidSequenceError, LengthMismatchError

GAP = ord('-')
GAP_SYMBOL = b'-'

SequenceLike = Union[bytes, bytearray, memoryview, str]

# Upper-case lookup for single bytes, used by case-insensitive comparisons
_UPPER = bytes(range(256)).upper()


def as_sequence(seq: SequenceLike, name: str = "sequence", allow_empty: bool = False) -> bytes:
    """
    Normalise a caller-supplied sequence to ``bytes``.

    Args:
        seq: Raw sequence (bytes-like or ASCII str)
        name: Name used in error messages
        allow_empty: Accept zero-length input

    Returns:
        Immutable bytes copy of the sequence
    """
    if isinstance(seq, str):
        try:
            data = seq.encode('ascii')
        except UnicodeEncodeError as e:
            raise InvalidSequenceError(
                f"{name} contains a non-ASCII character",
                suggestion="Residues are single ASCII letters",
                context=f"{seq[e.start]!r} at position {e.start}",
            ) from None
    elif isinstance(seq, (bytes, bytearray, memoryview)):
        data = bytes(seq)
    else:
        raise InvalidSequenceError(f"{name} must be bytes-like or str, got {type(seq).__name__}")

    if not data and not allow_empty:
        raise EmptyInputError(f"{name} is empty", suggestion="Supply at least one residue")
    return data


def upper_byte(b: int) -> int:
    return _UPPER[b]


def residues_match(a: int, b: int) -> bool:
    """Exact, case-insensitive residue match. Gaps never match."""
    if a == GAP or b == GAP:
        return False
    return _UPPER[a] == _UPPER[b]


def compute_alignment_stats(a1: bytes, a2: bytes) -> Dict:
    """
    Compute alignment statistics for a pair of gapped rows.

    Returns:
        Dictionary with:
        - matches, mismatches
        - insertions (residue in a1 against a gap in a2)
        - deletions (gap in a1 against a residue in a2)
        - gap_columns, gap_openings
        - length (number of columns), identity (matches / length)
    """
    if len(a1) != len(a2):
        raise LengthMismatchError(
            f"Alignment length mismatch: {len(a1)} != {len(a2)}",
            suggestion="Aligned rows must have the same number of columns",
        )

    matches = mismatches = insertions = deletions = 0
    gap_openings = 0
    prev_gap = None

    for x, y in zip(a1, a2):
        if x != GAP and y != GAP:
            if _UPPER[x] == _UPPER[y]:
                matches += 1
            else:
                mismatches += 1
            prev_gap = None
            continue

        if x == GAP and y == GAP:
            # Padding column, only present in rows taken from a multiple alignment
            continue

        kind = 'I' if y == GAP else 'D'
        if kind == 'I':
            insertions += 1
        else:
            deletions += 1
        if kind != prev_gap:
            gap_openings += 1
        prev_gap = kind

    length = len(a1)
    return {
        "matches": matches,
        "mismatches": mismatches,
        "insertions": insertions,
        "deletions": deletions,
        "gap_columns": insertions + deletions,
        "gap_openings": gap_openings,
        "length": length,
        "identity": matches / length if length else 0.0,
    }


def strip_gaps(aligned: bytes) -> bytes:
    return aligned.replace(GAP_SYMBOL, b'')


def parse_num_workers(num_workers_spec) -> int:
    """Parse num_workers specification ('auto', digit string or int)."""
    if num_workers_spec == 'auto':
        return max(1, cpu_count() - 1)
    elif isinstance(num_workers_spec, str) and num_workers_spec.isdigit():
        return max(1, int(num_workers_spec))
    elif isinstance(num_workers_spec, int) and not isinstance(num_workers_spec, bool):
        return max(1, num_workers_spec)
    else:
        return 1


__all__ = [
    'GAP',
    'GAP_SYMBOL',
    'SequenceLike',
    'as_sequence',
    'upper_byte',
    'residues_match',
    'compute_alignment_stats',
    'strip_gaps',
    'parse_num_workers',
]
