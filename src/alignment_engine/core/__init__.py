"""
Core modules for the alignment engine.
"""

from .errors import (
    AlignmentEngineError,
    EmptyInputError,
    InvalidScoringError,
    InvalidModeError,
    InvalidBandwidthError,
    MalformedCigarError,
    InconsistentCigarError,
    LengthMismatchError,
    InvalidSequenceError,
)
from .scoring import (
    ScoringMatrix,
    SubstitutionMatrix,
    PoaScoring,
    scoring_from_config,
    resolve_scoring,
)
from .alignment import AlignmentMode, AlignmentResult, parse_alignment_mode
from .cigar import (
    CigarOp,
    CigarStats,
    parse_cigar,
    cigar_string,
    validate_cigar,
    cigar_stats,
    cigar_to_alignment,
    alignment_to_cigar,
    generate_md_tag,
)
from .utilities import compute_alignment_stats

__all__ = [
    # Errors
    'AlignmentEngineError',
    'EmptyInputError',
    'InvalidScoringError',
    'InvalidModeError',
    'InvalidBandwidthError',
    'MalformedCigarError',
    'InconsistentCigarError',
    'LengthMismatchError',
    'InvalidSequenceError',

    # Scoring
    'ScoringMatrix',
    'SubstitutionMatrix',
    'PoaScoring',
    'scoring_from_config',
    'resolve_scoring',

    # Results
    'AlignmentMode',
    'AlignmentResult',
    'parse_alignment_mode',

    # CIGAR
    'CigarOp',
    'CigarStats',
    'parse_cigar',
    'cigar_string',
    'validate_cigar',
    'cigar_stats',
    'cigar_to_alignment',
    'alignment_to_cigar',
    'generate_md_tag',

    # Utility functions
    'compute_alignment_stats',
]
