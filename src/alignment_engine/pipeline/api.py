"""
Host-facing entry points.

Thin wrappers that pick scoring defaults from the loaded configuration and
hand off to the algorithm modules. Errors from the algorithms propagate
unchanged.
Author: Rowel Facunla
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..algorithms.banded import banded_align, banded_score_only
from ..algorithms.msa import MsaResult, progressive_msa
from ..algorithms.nw_affine import align, align_batch
from ..algorithms.poa import poa_consensus as _poa_consensus
from ..config.config_loader import get_config
from ..core.alignment import AlignmentMode, AlignmentResult, parse_alignment_mode
from ..core.cigar import CigarStats
from ..core.cigar import cigar_stats as _cigar_stats
from ..core.errors import InvalidScoringError
from ..core.scoring import (
    KNOWN_MATRICES,
    PROTEIN_GAP_EXTEND,
    PROTEIN_GAP_OPEN,
    PoaScoring,
    ScoringMatrix,
    SubstitutionMatrix,
    scoring_from_config,
)
from ..core.utilities import SequenceLike

logger = logging.getLogger(__name__)

MSA_KINDS = ('dna', 'protein')


def _dna_scoring() -> ScoringMatrix:
    return scoring_from_config(get_config().get_dna_scoring_params())


def _default_mode() -> str:
    return get_config().get_alignment_params().get('mode', 'global')


def parse_substitution_matrix(name: str) -> SubstitutionMatrix:
    """
    Named amino-acid matrix with the configured protein gap penalties.

    Raises:
        InvalidScoringError: name is not one of blosum62, blosum45, blosum80, pam250
    """
    if str(name).lower() not in KNOWN_MATRICES:
        raise InvalidScoringError(
            f"Unknown substitution matrix: {name}",
            suggestion=f"Expected one of: {', '.join(KNOWN_MATRICES)}",
        )
    params = get_config().get_protein_scoring_params()
    return SubstitutionMatrix.from_name(
        name,
        params.get('gap_open', PROTEIN_GAP_OPEN),
        params.get('gap_extend', PROTEIN_GAP_EXTEND),
    )


def align_dna(query: SequenceLike, target: SequenceLike, mode: Optional[str] = None) -> AlignmentResult:
    """Nucleotide alignment with the configured DNA scoring."""
    return align(query, target, parse_alignment_mode(mode or _default_mode()), _dna_scoring())


def align_dna_custom(
    query: SequenceLike,
    target: SequenceLike,
    mode: str,
    match_score: int,
    mismatch_score: int,
    gap_open: int,
    gap_extend: int
) -> AlignmentResult:
    """Nucleotide alignment with explicit match/mismatch/gap values."""
    mode = parse_alignment_mode(mode)
    scoring = ScoringMatrix(match_score, mismatch_score, gap_open, gap_extend)
    return align(query, target, mode, scoring)


def align_protein(
    query: SequenceLike,
    target: SequenceLike,
    mode: Optional[str] = None,
    matrix: Optional[str] = None
) -> AlignmentResult:
    """Protein alignment with a named substitution matrix (configured default when omitted)."""
    mode = parse_alignment_mode(mode or _default_mode())
    if matrix is None:
        matrix = get_config().get_protein_scoring_params().get('matrix', 'blosum62')
    return align(query, target, mode, parse_substitution_matrix(matrix))


def align_batch_dna(
    pairs: Sequence[Tuple[SequenceLike, SequenceLike]],
    mode: Optional[str] = None,
    num_workers=None
) -> List[AlignmentResult]:
    """Batch nucleotide alignment; fails on the first invalid pair."""
    mode = parse_alignment_mode(mode or _default_mode())
    if num_workers is None:
        num_workers = get_config().get_batch_params().get('num_workers', 1)
    return align_batch(pairs, mode, _dna_scoring(), num_workers=num_workers)


def msa(sequences: Sequence[SequenceLike], kind: str = 'dna') -> MsaResult:
    """
    Progressive multiple alignment.

    Args:
        sequences: Sequences in merge order
        kind: 'dna' (configured DNA scoring) or 'protein' (configured matrix)
    """
    key = str(kind).lower()
    if key == 'dna':
        scoring = _dna_scoring()
    elif key == 'protein':
        scoring = scoring_from_config(get_config().get_protein_scoring_params())
    else:
        raise InvalidScoringError(
            f"Unknown MSA kind: {kind}",
            suggestion=f"Expected one of: {', '.join(MSA_KINDS)}",
        )
    return progressive_msa(sequences, scoring)


def _bandwidth(bandwidth: Optional[int]) -> int:
    if bandwidth is None:
        return get_config().get_banded_params().get('bandwidth', 16)
    return bandwidth


def banded_align_dna(
    query: SequenceLike,
    target: SequenceLike,
    mode: Optional[str] = None,
    bandwidth: Optional[int] = None
) -> AlignmentResult:
    """Banded nucleotide alignment with the configured DNA scoring."""
    mode = parse_alignment_mode(mode or _default_mode())
    return banded_align(query, target, mode, _dna_scoring(), _bandwidth(bandwidth))


def banded_score_only_dna(
    query: SequenceLike,
    target: SequenceLike,
    mode: Optional[str] = None,
    bandwidth: Optional[int] = None
) -> int:
    mode = parse_alignment_mode(mode or _default_mode())
    return banded_score_only(query, target, mode, _dna_scoring(), _bandwidth(bandwidth))


def poa_consensus(sequences: Sequence[SequenceLike]) -> bytes:
    """Consensus of a partial-order graph built with the configured POA scoring."""
    params = get_config().get_poa_params()
    scoring = PoaScoring(
        params.get('match_score', 2),
        params.get('mismatch_score', -1),
        params.get('gap_score', -2),
    )
    logger.debug(f"POA consensus of {len(sequences)} sequence(s)")
    return _poa_consensus(sequences, scoring)


def cigar_stats(cigar: str) -> CigarStats:
    return _cigar_stats(cigar)


__all__ = [
    'AlignmentMode',
    'parse_alignment_mode',
    'parse_substitution_matrix',
    'align_dna',
    'align_dna_custom',
    'align_protein',
    'align_batch_dna',
    'msa',
    'banded_align_dna',
    'banded_score_only_dna',
    'poa_consensus',
    'cigar_stats',
]
