"""
CIGAR codec: parse, validate, render and transform run-length alignment
operation strings.

Operations follow the SAM convention: ``I`` is a query residue against a
gap in the reference, ``D`` a reference residue against a gap in the query.

CIGAR operations:
- M: alignment match (match or mismatch)
- I: insertion to the reference
- D: deletion from the reference
- N: skipped reference region
- S: soft clip (query bases present but not aligned)
- H: hard clip (query bases absent)
- P: padding (gap in both rows)
- =: sequence match
- X: sequence mismatch

Every transformation is pure: it returns a new list and leaves its input
untouched.
Author: Rowel Facunla
"""

import re
from dataclasses import asdict, dataclass
from typing import Iterable, List, NamedTuple, Optional, Tuple, Union

from .errors import (
    InconsistentCigarError,
    LengthMismatchError,
    MalformedCigarError,
)
from .utilities import GAP, SequenceLike, as_sequence, residues_match

CIGAR_OPS = 'MIDNSHP=X'
REFERENCE_CONSUMING = frozenset('MDN=X')
QUERY_CONSUMING = frozenset('MIS=X')
ALIGNED_OPS = frozenset('M=X')
CLIP_OPS = frozenset('SH')

_TOKEN = re.compile(r'([0-9]+)([MIDNSHP=X])')


class CigarOp(NamedTuple):
    """One run-length operation, e.g. ``CigarOp('M', 3)``."""
    code: str
    length: int

    def __str__(self) -> str:
        return f"{self.length}{self.code}"


CigarLike = Union[str, Iterable[Tuple[str, int]]]


def parse_cigar(cigar: str) -> List[CigarOp]:
    """
    Parse CIGAR text into an ordered op list.

    Args:
        cigar: CIGAR string such as ``"3M1I2M"``

    Returns:
        List of CigarOp

    Raises:
        MalformedCigarError: on anything that is not <digits><op> tokens,
            or on a zero-length run
    """
    if not isinstance(cigar, str):
        raise MalformedCigarError(f"CIGAR must be a string, got {type(cigar).__name__}")

    ops = []
    pos = 0
    while pos < len(cigar):
        m = _TOKEN.match(cigar, pos)
        if m is None:
            raise MalformedCigarError(
                f"Malformed CIGAR: {cigar!r}",
                context=f"Unexpected token at offset {pos}: {cigar[pos:pos + 8]!r}",
                suggestion=f"Each run is a length followed by one of {CIGAR_OPS}",
            )
        length = int(m.group(1))
        if length == 0:
            raise MalformedCigarError(
                f"Malformed CIGAR: {cigar!r}",
                context=f"Zero-length run at offset {pos}",
            )
        ops.append(CigarOp(m.group(2), length))
        pos = m.end()
    return ops


def as_ops(cigar: CigarLike) -> List[CigarOp]:
    """Accept CIGAR text or an iterable of (code, length) pairs."""
    if isinstance(cigar, str):
        return parse_cigar(cigar)

    ops = []
    for item in cigar:
        try:
            code, length = item
        except (TypeError, ValueError):
            raise MalformedCigarError(f"CIGAR op must be a (code, length) pair, got {item!r}")
        if not isinstance(code, str) or len(code) != 1 or code not in CIGAR_OPS:
            raise MalformedCigarError(
                f"Unknown CIGAR op code: {code!r}",
                suggestion=f"Expected one of {CIGAR_OPS}",
            )
        if isinstance(length, bool) or not isinstance(length, int):
            raise MalformedCigarError(f"CIGAR op length must be an integer, got {length!r}")
        if length <= 0:
            raise MalformedCigarError(f"CIGAR op length must be positive, got {length}")
        ops.append(CigarOp(code, length))
    return ops


def cigar_string(ops: CigarLike) -> str:
    """Render ops back to CIGAR text."""
    return ''.join(str(op) for op in as_ops(ops))


def validate_cigar(cigar: CigarLike) -> List[CigarOp]:
    """
    Check internal consistency and return the op list.

    Raises:
        MalformedCigarError: unparsable text, or an op with an unknown code
            or a non-positive run length
        InconsistentCigarError: empty op list, or soft/hard clips anywhere
            other than the two ends (hard clips outermost, soft clips inside them)
    """
    ops = as_ops(cigar)
    if not ops:
        raise InconsistentCigarError("CIGAR has no operations")

    lo, hi = 0, len(ops)
    if lo < hi and ops[lo].code == 'H':
        lo += 1
    if lo < hi and ops[hi - 1].code == 'H':
        hi -= 1
    if lo < hi and ops[lo].code == 'S':
        lo += 1
    if lo < hi and ops[hi - 1].code == 'S':
        hi -= 1

    for i in range(lo, hi):
        if ops[i].code in CLIP_OPS:
            raise InconsistentCigarError(
                f"Clip operation {ops[i]} at interior position {i} of {cigar_string(ops)}",
                suggestion="Soft/hard clips may only appear at the ends; hard clips outermost",
            )
    return ops


def reference_consumed(ops: CigarLike) -> int:
    return sum(op.length for op in as_ops(ops) if op.code in REFERENCE_CONSUMING)


def query_consumed(ops: CigarLike) -> int:
    return sum(op.length for op in as_ops(ops) if op.code in QUERY_CONSUMING)


def alignment_columns(ops: CigarLike) -> int:
    """Sum of all run lengths."""
    return sum(op.length for op in as_ops(ops))


def gap_count(ops: CigarLike) -> int:
    """Number of I/D runs."""
    return sum(1 for op in as_ops(ops) if op.code in 'ID')


def gap_bases(ops: CigarLike) -> int:
    """Total I/D length."""
    return sum(op.length for op in as_ops(ops) if op.code in 'ID')


def soft_clipped(ops: CigarLike) -> int:
    return sum(op.length for op in as_ops(ops) if op.code == 'S')


def hard_clipped(ops: CigarLike) -> int:
    return sum(op.length for op in as_ops(ops) if op.code == 'H')


def _check_lengths(ops: List[CigarOp], query: bytes, reference: bytes) -> None:
    q_need = query_consumed(ops)
    r_need = reference_consumed(ops)
    if q_need != len(query) or r_need != len(reference):
        raise LengthMismatchError(
            f"CIGAR {cigar_string(ops)} consumes query={q_need}, reference={r_need}; "
            f"supplied query={len(query)}, reference={len(reference)}",
            suggestion="Pass the exact query and reference spans covered by the CIGAR",
        )


def cigar_identity(cigar: CigarLike, query: Optional[SequenceLike] = None,
                   reference: Optional[SequenceLike] = None) -> float:
    """
    matches / (matches + mismatches + indel bases).

    With ``query`` and ``reference`` supplied, aligned columns are compared
    residue by residue. Without them ``=`` counts as a match, ``X`` as a
    mismatch and plain ``M`` as a match, so the value is an upper bound for
    CIGARs written with ``M``.
    """
    ops = as_ops(cigar)
    matches = mismatches = 0

    if query is not None and reference is not None:
        q = as_sequence(query, "query", allow_empty=True)
        r = as_sequence(reference, "reference", allow_empty=True)
        _check_lengths(ops, q, r)
        qi = ri = 0
        for op in ops:
            if op.code in ALIGNED_OPS:
                for k in range(op.length):
                    if residues_match(q[qi + k], r[ri + k]):
                        matches += 1
                    else:
                        mismatches += 1
            if op.code in QUERY_CONSUMING:
                qi += op.length
            if op.code in REFERENCE_CONSUMING:
                ri += op.length
    else:
        for op in ops:
            if op.code in 'M=':
                matches += op.length
            elif op.code == 'X':
                mismatches += op.length

    total = matches + mismatches + gap_bases(ops)
    return matches / total if total else 0.0


@dataclass(frozen=True)
class CigarStats:
    """Summary of one CIGAR string."""
    cigar_string: str
    reference_consumed: int
    query_consumed: int
    alignment_columns: int
    identity: float
    gap_count: int
    gap_bases: int
    soft_clipped: int
    hard_clipped: int

    def as_dict(self):
        return asdict(self)


def cigar_stats(cigar: CigarLike) -> CigarStats:
    """Parse, validate and summarise a CIGAR."""
    ops = validate_cigar(cigar)
    return CigarStats(
        cigar_string=cigar_string(ops),
        reference_consumed=reference_consumed(ops),
        query_consumed=query_consumed(ops),
        alignment_columns=alignment_columns(ops),
        identity=cigar_identity(ops),
        gap_count=gap_count(ops),
        gap_bases=gap_bases(ops),
        soft_clipped=soft_clipped(ops),
        hard_clipped=hard_clipped(ops),
    )


def cigar_to_alignment(cigar: CigarLike, query: SequenceLike, target: SequenceLike) -> Tuple[bytes, bytes]:
    """
    Rebuild the gapped query/target rows implied by a CIGAR.

    Soft-clipped query bases and skipped (N) reference bases are consumed
    without producing columns; padding produces a column gapped on both
    sides.

    Args:
        cigar: CIGAR text or op list
        query: Original query (including soft-clipped bases)
        target: Reference span covered by the alignment

    Returns:
        Tuple of (aligned_query, aligned_target)
    """
    ops = validate_cigar(cigar)
    q = as_sequence(query, "query", allow_empty=True)
    t = as_sequence(target, "target", allow_empty=True)
    _check_lengths(ops, q, t)

    a1 = bytearray()
    a2 = bytearray()
    i = j = 0

    for op in ops:
        n = op.length
        if op.code in ALIGNED_OPS:
            a1 += q[i:i + n]
            a2 += t[j:j + n]
            i += n
            j += n
        elif op.code == 'I':
            a1 += q[i:i + n]
            a2 += b'-' * n
            i += n
        elif op.code == 'D':
            a1 += b'-' * n
            a2 += t[j:j + n]
            j += n
        elif op.code == 'N':
            j += n
        elif op.code == 'S':
            i += n
        elif op.code == 'P':
            a1 += b'-' * n
            a2 += b'-' * n

    return bytes(a1), bytes(a2)


def alignment_to_cigar(aligned_query: SequenceLike, aligned_target: SequenceLike,
                       extended: bool = False) -> List[CigarOp]:
    """
    Run-length encode a pair of gapped rows.

    Mismatches are encoded as ``M`` unless ``extended`` is set, in which
    case ``=``/``X`` distinguish matches from mismatches. Columns gapped on
    both sides become ``P``.
    """
    a1 = as_sequence(aligned_query, "aligned_query")
    a2 = as_sequence(aligned_target, "aligned_target")
    if len(a1) != len(a2):
        raise LengthMismatchError(
            f"Aligned rows differ in length: {len(a1)} != {len(a2)}",
        )

    ops = []
    last_op = None
    count = 0

    for x, y in zip(a1, a2):
        if x != GAP and y != GAP:
            if extended:
                op = '=' if residues_match(x, y) else 'X'
            else:
                op = 'M'
        elif y == GAP and x != GAP:
            op = 'I'
        elif x == GAP and y != GAP:
            op = 'D'
        else:
            op = 'P'

        if op == last_op:
            count += 1
        else:
            if last_op is not None:
                ops.append(CigarOp(last_op, count))
            last_op = op
            count = 1

    ops.append(CigarOp(last_op, count))
    return ops


def generate_md_tag(cigar: CigarLike, query: SequenceLike, reference: SequenceLike) -> str:
    """
    Build a SAM-style MD tag.

    Match runs are written as counts, mismatches as the reference base and
    deletions as ``^`` followed by the deleted reference bases. A count
    (possibly 0) always separates two non-match elements and ends the tag.
    """
    ops = validate_cigar(cigar)
    q = as_sequence(query, "query", allow_empty=True)
    r = as_sequence(reference, "reference", allow_empty=True)
    _check_lengths(ops, q, r)

    parts = []
    run = 0
    qi = ri = 0

    for op in ops:
        n = op.length
        if op.code in ALIGNED_OPS:
            for k in range(n):
                if residues_match(q[qi + k], r[ri + k]):
                    run += 1
                else:
                    parts.append(str(run))
                    parts.append(chr(r[ri + k]))
                    run = 0
            qi += n
            ri += n
        elif op.code == 'D':
            parts.append(str(run))
            parts.append('^' + r[ri:ri + n].decode('ascii', 'replace'))
            run = 0
            ri += n
        elif op.code in ('I', 'S'):
            qi += n
        elif op.code == 'N':
            ri += n

    parts.append(str(run))
    return ''.join(parts)


def merge_adjacent(cigar: CigarLike) -> List[CigarOp]:
    """Coalesce consecutive runs with the same code."""
    merged = []
    for op in as_ops(cigar):
        if merged and merged[-1].code == op.code:
            merged[-1] = CigarOp(op.code, merged[-1].length + op.length)
        else:
            merged.append(op)
    return merged


def reverse_cigar(cigar: CigarLike) -> List[CigarOp]:
    """Reverse op order, as needed for the opposite strand."""
    return list(reversed(as_ops(cigar)))


def collapse_matches(cigar: CigarLike) -> List[CigarOp]:
    """Fold ``=``/``X`` into ``M`` and merge the resulting neighbours."""
    return merge_adjacent(
        CigarOp('M', op.length) if op.code in '=X' else op
        for op in as_ops(cigar)
    )


def hard_clip_to_soft(cigar: CigarLike) -> List[CigarOp]:
    """
    Reclassify ``H`` runs as ``S``.

    Soft clips consume the query and hard clips do not, so the result's
    ``query_consumed`` grows by the hard-clipped total; re-validate against
    the query before relying on it.
    """
    return [CigarOp('S', op.length) if op.code == 'H' else op for op in as_ops(cigar)]


def split_at_reference(cigar: CigarLike, ref_pos: int) -> Tuple[List[CigarOp], List[CigarOp]]:
    """
    Partition a CIGAR into two whose reference spans meet at ``ref_pos``.

    A reference-consuming op spanning the split point is cut into two ops
    of the same code. Non-reference ops sitting exactly at the split point
    go to the right-hand part.

    Args:
        cigar: CIGAR text or op list
        ref_pos: Offset into the aligned reference span, 0..reference_consumed

    Returns:
        Tuple of (left_ops, right_ops)
    """
    ops = as_ops(cigar)
    total = reference_consumed(ops)
    if isinstance(ref_pos, bool) or not isinstance(ref_pos, int) or not 0 <= ref_pos <= total:
        raise LengthMismatchError(
            f"Split position {ref_pos!r} outside reference span 0..{total}",
        )

    left = []
    right = []
    consumed = 0
    for op in ops:
        if consumed >= ref_pos:
            right.append(op)
            continue
        if op.code not in REFERENCE_CONSUMING:
            left.append(op)
            continue

        take = min(op.length, ref_pos - consumed)
        left.append(CigarOp(op.code, take))
        if take < op.length:
            right.append(CigarOp(op.code, op.length - take))
        consumed += take

    return left, right


__all__ = [
    'CIGAR_OPS',
    'REFERENCE_CONSUMING',
    'QUERY_CONSUMING',
    'CigarOp',
    'CigarStats',
    'parse_cigar',
    'as_ops',
    'cigar_string',
    'validate_cigar',
    'reference_consumed',
    'query_consumed',
    'alignment_columns',
    'gap_count',
    'gap_bases',
    'soft_clipped',
    'hard_clipped',
    'cigar_identity',
    'cigar_stats',
    'cigar_to_alignment',
    'alignment_to_cigar',
    'generate_md_tag',
    'merge_adjacent',
    'reverse_cigar',
    'collapse_matches',
    'hard_clip_to_soft',
    'split_at_reference',
]
