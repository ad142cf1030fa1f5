"""
Exception hierarchy for the alignment engine.

Every operation either returns a value or raises one of the errors below.
All of them derive from ``ValueError`` so callers that only care about
"bad input" can catch a single built-in type.
Author: Rowel Facunla
"""

from typing import Optional


class AlignmentEngineError(ValueError):
    """Base exception for all alignment engine errors.

    Carries a message plus an optional suggestion and context, formatted
    together for display.

    Args:
        message: What went wrong
        suggestion: What the caller should do about it
        context: Additional detail (offending value, position, ...)
    """

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[str] = None,
    ):
        self.message = message
        self.suggestion = suggestion
        self.context = context
        super().__init__(self.formatted())

    def formatted(self) -> str:
        """Get fully formatted error message for display."""
        msg = f"[ERROR] {self.message}"

        if self.context:
            msg += f"\n  Context: {self.context}"

        if self.suggestion:
            msg += f"\n  Suggestion: {self.suggestion}"

        return msg

    def __str__(self) -> str:
        return self.formatted()

    def __reduce__(self):
        # Batch workers send errors back across process boundaries
        return (self.__class__, (self.message, self.suggestion, self.context))


class EmptyInputError(AlignmentEngineError):
    """A sequence was empty, or a collection that needs at least one element was empty."""


class InvalidScoringError(AlignmentEngineError):
    """Malformed or unrecognised scoring configuration."""


class InvalidModeError(AlignmentEngineError):
    """Unknown alignment mode name."""


class InvalidBandwidthError(AlignmentEngineError):
    """Band width is non-positive or cannot reach the required end cell."""


class MalformedCigarError(AlignmentEngineError):
    """CIGAR text is not a sequence of <length><op> tokens."""


class InconsistentCigarError(AlignmentEngineError):
    """CIGAR parses but is semantically invalid (empty, misplaced clips, ...)."""


class LengthMismatchError(AlignmentEngineError):
    """Lengths implied by a CIGAR or alignment disagree with the supplied sequences."""


class InvalidSequenceError(AlignmentEngineError):
    """A sequence is not bytes-like or ASCII text, or a batch item is not a pair."""


__all__ = [
    'AlignmentEngineError',
    'EmptyInputError',
    'InvalidScoringError',
    'InvalidModeError',
    'InvalidBandwidthError',
    'MalformedCigarError',
    'InconsistentCigarError',
    'LengthMismatchError',
    'InvalidSequenceError',
]
