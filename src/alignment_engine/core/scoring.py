"""
Scoring schemes for pairwise, banded, progressive and graph alignment.

Two kinds of scheme share one interface (``gap_open``, ``gap_extend``,
``score(a, b)`` and ``rows()``):

- ScoringMatrix: match/mismatch plus affine gap values (nucleotides)
- SubstitutionMatrix: amino-acid matrix from Biopython plus affine gap values

Gap values are non-positive and added to the score. A gap of length k
scores ``gap_open + k * gap_extend``.
Author: Rowel Facunla
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Mapping, Optional, Tuple, Union

import numpy as np
from Bio.Align import substitution_matrices

from .errors import InvalidScoringError
from .utilities import upper_byte

logger = logging.getLogger(__name__)

# Matrix names accepted by SubstitutionMatrix.from_name -> Biopython resource names
KNOWN_MATRICES = {
    'blosum62': 'BLOSUM62',
    'blosum45': 'BLOSUM45',
    'blosum80': 'BLOSUM80',
    'pam250': 'PAM250',
}

DNA_MATCH = 2
DNA_MISMATCH = -1
DNA_GAP_OPEN = -5
DNA_GAP_EXTEND = -2

PROTEIN_GAP_OPEN = -10
PROTEIN_GAP_EXTEND = -1


def _check_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidScoringError(
            f"{name} must be an integer, got {value!r}",
            suggestion="Scores and penalties are signed integers",
        )
    return int(value)


def _check_gaps(gap_open: Any, gap_extend: Any) -> Tuple[int, int]:
    gap_open = _check_int('gap_open', gap_open)
    gap_extend = _check_int('gap_extend', gap_extend)
    if gap_open > 0 or gap_extend > 0:
        raise InvalidScoringError(
            f"Gap penalties must be <= 0 (gap_open={gap_open}, gap_extend={gap_extend})",
            suggestion="Pass penalties as negative numbers, e.g. gap_open=-5, gap_extend=-2",
        )
    return gap_open, gap_extend


@lru_cache(maxsize=32)
def _simple_rows(match: int, mismatch: int) -> Tuple[Tuple[int, ...], ...]:
    upper = np.array([upper_byte(b) for b in range(256)], dtype=np.uint8)
    table = np.where(upper[:, None] == upper[None, :], match, mismatch)
    return tuple(tuple(row) for row in table.tolist())


@lru_cache(maxsize=16)
def _matrix_rows(resource: str) -> Tuple[Tuple[int, ...], ...]:
    """Load a Biopython matrix into a 256x256 byte-indexed table."""
    try:
        matrix = substitution_matrices.load(resource)
    except (FileNotFoundError, ValueError) as e:
        raise InvalidScoringError(
            f"Could not load substitution matrix {resource}",
            context=str(e),
        )

    alphabet = matrix.alphabet
    values = np.asarray(matrix, dtype=float)
    table = np.full((256, 256), int(values.min()), dtype=np.int64)
    for i, a in enumerate(alphabet):
        for j, b in enumerate(alphabet):
            score = int(round(values[i, j]))
            for ca in {a.upper(), a.lower()}:
                for cb in {b.upper(), b.lower()}:
                    table[ord(ca), ord(cb)] = score

    logger.debug(f"Loaded substitution matrix {resource} ({len(alphabet)} residues)")
    return tuple(tuple(row) for row in table.tolist())


def _check_residue_pair(key) -> Tuple[str, str]:
    """Mapping keys are (a, b) tuples of single ASCII characters."""
    if isinstance(key, tuple) and len(key) == 2 and all(
        isinstance(c, str) and len(c) == 1 and c.isascii() for c in key
    ):
        return key
    raise InvalidScoringError(
        f"Invalid substitution matrix key: {key!r}",
        suggestion="Keys must be (a, b) tuples of single ASCII residue letters, e.g. ('A', 'C')",
    )


def _mapping_rows(scores: Mapping[Tuple[str, str], int], default: int) -> Tuple[Tuple[int, ...], ...]:
    table = np.full((256, 256), default, dtype=np.int64)
    for key, score in scores.items():
        a, b = _check_residue_pair(key)
        score = _check_int(f"score[{a!r}, {b!r}]", score)
        for ca in {a.upper(), a.lower()}:
            for cb in {b.upper(), b.lower()}:
                table[ord(ca), ord(cb)] = score
                table[ord(cb), ord(ca)] = score
    return tuple(tuple(row) for row in table.tolist())


@dataclass(frozen=True)
class ScoringMatrix:
    """Match/mismatch scoring with affine gaps. Residues compare case-insensitively."""
    match: int
    mismatch: int
    gap_open: int
    gap_extend: int

    def __post_init__(self):
        object.__setattr__(self, 'match', _check_int('match', self.match))
        object.__setattr__(self, 'mismatch', _check_int('mismatch', self.mismatch))
        gap_open, gap_extend = _check_gaps(self.gap_open, self.gap_extend)
        object.__setattr__(self, 'gap_open', gap_open)
        object.__setattr__(self, 'gap_extend', gap_extend)

    @classmethod
    def dna_default(cls) -> 'ScoringMatrix':
        return cls(DNA_MATCH, DNA_MISMATCH, DNA_GAP_OPEN, DNA_GAP_EXTEND)

    def rows(self) -> Tuple[Tuple[int, ...], ...]:
        """256x256 score lookup indexed by raw residue bytes."""
        return _simple_rows(self.match, self.mismatch)

    def score(self, a: int, b: int) -> int:
        return self.match if upper_byte(a) == upper_byte(b) else self.mismatch

    @property
    def name(self) -> str:
        return f"simple({self.match},{self.mismatch},{self.gap_open},{self.gap_extend})"


@dataclass(frozen=True)
class SubstitutionMatrix:
    """
    Residue-pair substitution scores with affine gaps.

    Built either from a named Biopython matrix (``from_name``) or from an
    explicit symmetric ``{(a, b): score}`` mapping. Pairs absent from the
    matrix score as the matrix minimum.
    """
    name: str
    gap_open: int = PROTEIN_GAP_OPEN
    gap_extend: int = PROTEIN_GAP_EXTEND
    scores: Optional[Mapping[Tuple[str, str], int]] = field(default=None, compare=False, repr=False)
    _rows: Tuple[Tuple[int, ...], ...] = field(default=(), init=False, compare=False, repr=False)

    def __post_init__(self):
        gap_open, gap_extend = _check_gaps(self.gap_open, self.gap_extend)
        object.__setattr__(self, 'gap_open', gap_open)
        object.__setattr__(self, 'gap_extend', gap_extend)

        if self.scores is not None:
            if not self.scores:
                raise InvalidScoringError(f"Substitution matrix {self.name!r} has no entries")
            default = min(_check_int('score', v) for v in self.scores.values())
            rows = _mapping_rows(self.scores, default)
        else:
            resource = KNOWN_MATRICES.get(str(self.name).lower())
            if resource is None:
                raise InvalidScoringError(
                    f"Unknown substitution matrix: {self.name}",
                    suggestion=f"Expected one of: {', '.join(KNOWN_MATRICES)}",
                )
            rows = _matrix_rows(resource)
        object.__setattr__(self, '_rows', rows)

    @classmethod
    def from_name(cls, name: str, gap_open: int = PROTEIN_GAP_OPEN,
                  gap_extend: int = PROTEIN_GAP_EXTEND) -> 'SubstitutionMatrix':
        return cls(str(name).lower(), gap_open, gap_extend)

    @classmethod
    def blosum62(cls) -> 'SubstitutionMatrix':
        return cls.from_name('blosum62')

    @classmethod
    def blosum45(cls) -> 'SubstitutionMatrix':
        return cls.from_name('blosum45')

    @classmethod
    def blosum80(cls) -> 'SubstitutionMatrix':
        return cls.from_name('blosum80')

    @classmethod
    def pam250(cls) -> 'SubstitutionMatrix':
        return cls.from_name('pam250')

    def rows(self) -> Tuple[Tuple[int, ...], ...]:
        return self._rows

    def score(self, a: int, b: int) -> int:
        return self._rows[a][b]


ScoringScheme = Union[ScoringMatrix, SubstitutionMatrix]


@dataclass(frozen=True)
class PoaScoring:
    """Linear scoring used when aligning a sequence to a partial-order graph."""
    match_score: int = 2
    mismatch_score: int = -1
    gap_score: int = -2

    def __post_init__(self):
        for name in ('match_score', 'mismatch_score', 'gap_score'):
            object.__setattr__(self, name, _check_int(name, getattr(self, name)))
        if self.gap_score > 0:
            raise InvalidScoringError(
                f"gap_score must be <= 0, got {self.gap_score}",
                suggestion="Pass the gap score as a negative number",
            )

    def score(self, a: int, b: int) -> int:
        return self.match_score if upper_byte(a) == upper_byte(b) else self.mismatch_score


def scoring_from_config(params: Mapping[str, Any]) -> ScoringScheme:
    """
    Build a scoring scheme from a configuration section.

    A section with a ``matrix`` key gives a SubstitutionMatrix; otherwise
    ``match_score``/``mismatch_score``/``gap_open``/``gap_extend`` give a
    ScoringMatrix.

    Args:
        params: Mapping such as the ``alignment.dna`` or ``alignment.protein``
            section of the YAML configuration

    Returns:
        Scoring scheme
    """
    if not isinstance(params, Mapping):
        raise InvalidScoringError(f"Scoring configuration must be a mapping, got {type(params).__name__}")

    if 'matrix' in params:
        return SubstitutionMatrix.from_name(
            params['matrix'],
            params.get('gap_open', PROTEIN_GAP_OPEN),
            params.get('gap_extend', PROTEIN_GAP_EXTEND),
        )

    return ScoringMatrix(
        params.get('match_score', params.get('match', DNA_MATCH)),
        params.get('mismatch_score', params.get('mismatch', DNA_MISMATCH)),
        params.get('gap_open', DNA_GAP_OPEN),
        params.get('gap_extend', DNA_GAP_EXTEND),
    )


def resolve_scoring(scoring: Union[None, str, Mapping[str, Any], ScoringScheme]) -> ScoringScheme:
    """
    Resolve the accepted scoring specifications to a scheme.

    ``None`` and ``"dna"`` give the DNA default, ``"protein"`` gives BLOSUM62,
    a matrix name gives that matrix with default protein gaps, and a mapping
    is passed to ``scoring_from_config``.
    """
    if scoring is None:
        return ScoringMatrix.dna_default()
    if isinstance(scoring, (ScoringMatrix, SubstitutionMatrix)):
        return scoring
    if isinstance(scoring, str):
        key = scoring.lower()
        if key == 'dna':
            return ScoringMatrix.dna_default()
        if key == 'protein':
            return SubstitutionMatrix.blosum62()
        return SubstitutionMatrix.from_name(key)
    if isinstance(scoring, Mapping):
        return scoring_from_config(scoring)
    raise InvalidScoringError(
        f"Unsupported scoring specification: {scoring!r}",
        suggestion="Pass a ScoringMatrix, SubstitutionMatrix, matrix name or config mapping",
    )


__all__ = [
    'KNOWN_MATRICES',
    'ScoringMatrix',
    'SubstitutionMatrix',
    'ScoringScheme',
    'PoaScoring',
    'scoring_from_config',
    'resolve_scoring',
]
