from .nw_affine import align, align_batch
from .banded import banded_align, banded_score_only
from .msa import MsaResult, progressive_msa
from .poa import PoaGraph, PoaNode, poa_consensus

__all__ = [
    # Full DP
    'align',
    'align_batch',

    # Banded DP
    'banded_align',
    'banded_score_only',

    # Multiple alignment
    'MsaResult',
    'progressive_msa',

    # Partial-order alignment
    'PoaGraph',
    'PoaNode',
    'poa_consensus',
]
