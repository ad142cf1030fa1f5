"""
Alignment modes and the immutable pairwise alignment result.
Author: Rowel Facunla
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Union

from .cigar import CigarOp, alignment_to_cigar, cigar_string
from .errors import InvalidModeError
from .utilities import compute_alignment_stats


class AlignmentMode(str, Enum):
    """DP boundary conditions and traceback start for pairwise alignment."""
    LOCAL = 'local'
    GLOBAL = 'global'
    SEMIGLOBAL = 'semiglobal'

    def __str__(self) -> str:
        return self.value


def parse_alignment_mode(mode: Union[str, AlignmentMode]) -> AlignmentMode:
    """Accept an AlignmentMode or its name (case-insensitive; 'semi-global' also allowed)."""
    if isinstance(mode, AlignmentMode):
        return mode
    key = str(mode).strip().lower().replace('-', '').replace('_', '')
    try:
        return AlignmentMode(key)
    except ValueError:
        raise InvalidModeError(
            f"Unknown alignment mode: {mode}",
            suggestion="Expected local, global, or semiglobal",
        )


@dataclass(frozen=True)
class AlignmentResult:
    """
    Result of one pairwise alignment.

    ``aligned_query`` and ``aligned_target`` have equal length; every column
    is a residue pair or a residue against the gap symbol ``-``. Coordinates
    are zero-based half-open ranges into the original sequences.
    """
    score: int
    aligned_query: bytes
    aligned_target: bytes
    query_start: int
    query_end: int
    target_start: int
    target_end: int
    mode: AlignmentMode = AlignmentMode.GLOBAL

    def stats(self) -> Dict:
        return compute_alignment_stats(self.aligned_query, self.aligned_target)

    @property
    def num_matches(self) -> int:
        return self.stats()["matches"]

    @property
    def num_mismatches(self) -> int:
        return self.stats()["mismatches"]

    @property
    def num_gaps(self) -> int:
        """Number of gap columns."""
        return self.stats()["gap_columns"]

    @property
    def length(self) -> int:
        return len(self.aligned_query)

    @property
    def identity(self) -> float:
        return self.stats()["identity"]

    @property
    def cigar(self) -> List[CigarOp]:
        if not self.aligned_query:
            return []
        return alignment_to_cigar(self.aligned_query, self.aligned_target)

    def cigar_string(self, extended: bool = False) -> str:
        if not self.aligned_query:
            return ''
        return cigar_string(alignment_to_cigar(self.aligned_query, self.aligned_target, extended=extended))

    def as_dict(self) -> Dict[str, Any]:
        """Plain-type view for host marshalling layers."""
        stats = self.stats()
        return {
            "score": self.score,
            "aligned_query": self.aligned_query.decode('ascii', 'replace'),
            "aligned_target": self.aligned_target.decode('ascii', 'replace'),
            "query_start": self.query_start,
            "query_end": self.query_end,
            "target_start": self.target_start,
            "target_end": self.target_end,
            "mode": self.mode.value,
            "cigar": self.cigar_string(),
            "identity": stats["identity"],
            "num_matches": stats["matches"],
            "num_mismatches": stats["mismatches"],
            "num_gaps": stats["gap_columns"],
            "alignment_length": stats["length"],
        }

    def __str__(self) -> str:
        return (
            f"Alignment Score: {self.score}\n"
            f"Mode: {self.mode.value}\n"
            f"Identity: {self.identity:.2%}\n"
            f"Gaps: {self.num_gaps}\n"
            f"Range: [{self.query_start}-{self.query_end}] x [{self.target_start}-{self.target_end}]\n"
        )


__all__ = [
    'AlignmentMode',
    'parse_alignment_mode',
    'AlignmentResult',
]
