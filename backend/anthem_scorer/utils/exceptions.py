"""Custom exception classes."""

from typing import Optional


class AnthemScorerError(Exception):
    """Base exception for all scoring engine errors."""

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(self.message)


class ReferenceTextError(AnthemScorerError):
    """Raised when the reference text is malformed (configuration error)."""
    pass


class AlignmentInvariantError(AnthemScorerError):
    """Raised when an alignment does not cover both sequences exactly once."""
    pass


class InvalidOptionsError(AnthemScorerError):
    """Raised when scoring options cannot be built from the given values."""
    pass
