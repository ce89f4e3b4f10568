"""
Pipeline interface definitions.

This module defines abstract interfaces for each stage of the anthem
scoring pipeline: alignment, line segmentation and error classification.
Stages report expected conditions (empty input, undecodable characters)
through their return values; only invariant violations raise.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from anthem_scorer.core.schemas import (
    Alignment,
    ErrorPattern,
    LineStat,
    NormalizedText
)


class IAligner(ABC):
    """Interface for character-level alignment."""

    @abstractmethod
    def align(
        self,
        submitted: NormalizedText,
        reference: NormalizedText
    ) -> Alignment:
        """
        Compute a minimum-edit alignment between two normalized texts.

        Args:
            submitted: Normalized submission
            reference: Normalized reference

        Returns:
            Alignment covering every character of both inputs exactly once

        Raises:
            AlignmentInvariantError: If the computed alignment is inconsistent
        """
        pass


class ILineMapper(ABC):
    """Interface for projecting an alignment onto reference lines."""

    @abstractmethod
    def segment_by_line(
        self,
        alignment: Alignment,
        boundaries: Sequence[Tuple[int, int]],
        expected_lines: Sequence[str]
    ) -> Tuple[List[LineStat], List[str]]:
        """
        Compute per-line statistics.

        Args:
            alignment: Global alignment
            boundaries: (start, end) range of each line in the normalized reference
            expected_lines: Reference line texts, one per boundary

        Returns:
            Tuple of (line stats in line order, warnings)
        """
        pass


class IErrorClassifier(ABC):
    """Interface for error pattern classification."""

    @abstractmethod
    def classify(self, alignment: Alignment) -> List[ErrorPattern]:
        """
        Bucket non-matching operations into error patterns.

        Args:
            alignment: Global alignment

        Returns:
            Aggregated error patterns, one per occurring category
        """
        pass
