"""
Sequence alignment engine: pairwise, banded, progressive multiple and
partial-order alignment with a CIGAR codec.
"""

# Version info - keep at top
__version__ = "1.0.0"
__author__ = "Rowel Facunla"
__description__ = "Affine-gap sequence alignment engine with MSA, POA and CIGAR utilities"

from .core import (
    AlignmentEngineError,
    AlignmentMode,
    AlignmentResult,
    PoaScoring,
    ScoringMatrix,
    SubstitutionMatrix,
    parse_alignment_mode,
)
from .algorithms import (
    MsaResult,
    PoaGraph,
    align,
    align_batch,
    banded_align,
    banded_score_only,
    poa_consensus,
    progressive_msa,
)

__all__ = [
    # Core types
    'AlignmentEngineError',
    'AlignmentMode',
    'AlignmentResult',
    'PoaScoring',
    'ScoringMatrix',
    'SubstitutionMatrix',
    'parse_alignment_mode',

    # Algorithms
    'align',
    'align_batch',
    'banded_align',
    'banded_score_only',
    'progressive_msa',
    'MsaResult',
    'PoaGraph',
    'poa_consensus',

    # Version info
    '__version__',
    '__author__',
    '__description__',
]
