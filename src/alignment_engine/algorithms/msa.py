"""
Progressive multiple sequence alignment.

Sequences are merged one at a time, in input order, onto a growing profile:
each new sequence is globally aligned against the profile's consensus row
and gap columns are opened in every existing row where the new sequence
carries an insertion. There is no guide tree and no refinement, so the
result depends on input order.
Author: Rowel Facunla
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence

from ..core.alignment import AlignmentMode
from ..core.errors import EmptyInputError
from ..core.scoring import resolve_scoring
from ..core.utilities import GAP, SequenceLike, as_sequence, upper_byte
from .nw_affine import align

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MsaResult:
    """Aligned rows (one per input sequence, input order) plus summary values."""
    aligned: List[bytes]
    n_sequences: int
    n_columns: int
    conservation: float

    def as_dict(self) -> Dict:
        return {
            "aligned": [row.decode('ascii', 'replace') for row in self.aligned],
            "n_sequences": self.n_sequences,
            "n_columns": self.n_columns,
            "conservation": self.conservation,
        }


def _column_majority(rows: Sequence[bytearray], col: int):
    """Most common non-gap residue in a column (ties to the smallest byte) and its count."""
    counts = Counter(upper_byte(row[col]) for row in rows if row[col] != GAP)
    if not counts:
        return None, 0
    residue = min(counts, key=lambda b: (-counts[b], b))
    return residue, counts[residue]


def profile_consensus(rows: Sequence[bytearray]) -> bytes:
    """One residue per column; columns are never all-gap in a progressive profile."""
    n_columns = len(rows[0])
    out = bytearray()
    for col in range(n_columns):
        residue, _ = _column_majority(rows, col)
        out.append(residue if residue is not None else GAP)
    return bytes(out)


def conservation_score(rows: Sequence[bytes]) -> float:
    """
    Mean per-column fraction of rows carrying the column's majority residue.

    Gaps never count as agreeing.
    """
    if not rows or not rows[0]:
        return 0.0
    n_rows = len(rows)
    n_columns = len(rows[0])
    total = 0.0
    for col in range(n_columns):
        _, count = _column_majority(rows, col)
        total += count / n_rows
    return total / n_columns


def _merge(rows: List[bytearray], aligned_new: bytes, aligned_consensus: bytes) -> List[bytearray]:
    """Thread a new row into the profile using its alignment to the consensus."""
    merged = [bytearray() for _ in rows]
    new_row = bytearray()
    col = 0

    for x, y in zip(aligned_new, aligned_consensus):
        if y == GAP:
            # Insertion relative to the profile: open a gap column everywhere
            for row in merged:
                row.append(GAP)
            new_row.append(x)
        else:
            for src, row in zip(rows, merged):
                row.append(src[col])
            new_row.append(x)
            col += 1

    merged.append(new_row)
    return merged


def progressive_msa(sequences: Sequence[SequenceLike], scoring=None) -> MsaResult:
    """
    Build a multiple alignment by progressive merging.

    Args:
        sequences: One or more sequences; the first seeds the profile
        scoring: Scoring scheme or specification (None = DNA default)

    Returns:
        MsaResult

    Raises:
        EmptyInputError: empty list, or any empty sequence
    """
    if not sequences:
        raise EmptyInputError(
            "progressive_msa needs at least one sequence",
            suggestion="Pass a non-empty list of sequences",
        )
    scoring = resolve_scoring(scoring)
    seqs = [as_sequence(s, f"sequence {i}") for i, s in enumerate(sequences)]

    rows = [bytearray(seqs[0])]
    for idx, seq in enumerate(seqs[1:], start=1):
        consensus = profile_consensus(rows)
        result = align(seq, consensus, AlignmentMode.GLOBAL, scoring)
        rows = _merge(rows, result.aligned_query, result.aligned_target)
        logger.debug(f"Merged sequence {idx}: {len(rows[0])} columns, score {result.score}")

    aligned = [bytes(row) for row in rows]
    return MsaResult(
        aligned=aligned,
        n_sequences=len(aligned),
        n_columns=len(aligned[0]),
        conservation=conservation_score(aligned),
    )


__all__ = [
    'MsaResult',
    'progressive_msa',
    'profile_consensus',
    'conservation_score',
]
