"""
Projection of the global alignment onto the reference line structure.

The alignment is computed once for the whole text; this module walks it a
single time and attributes every operation to a reference line. Line
separators are layout only and never count as characters or errors. When a
separator is aligned against a scored character, only the separator side is
dropped.
"""

from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple

from anthem_scorer.config import settings
from anthem_scorer.core.schemas import (
    Alignment,
    AlignmentOp,
    CharacterDiff,
    DiffType,
    LineStat,
    OpKind
)
from anthem_scorer.pipeline.interfaces import ILineMapper
from anthem_scorer.utils.logger import setup_logger

logger = setup_logger(__name__)


def meets_threshold(correct: int, total: int, threshold_percent: float) -> bool:
    """
    Exact comparison of correct/total against a percentage threshold.

    Uses rational arithmetic so that a score landing exactly on the
    threshold passes regardless of float rounding.
    """
    if total == 0:
        return True
    return Fraction(correct * 100, total) >= Fraction(repr(float(threshold_percent)))


def line_for_position(boundaries: Sequence[Tuple[int, int]], ref_index: int) -> int:
    """
    Find the 0-indexed line containing a normalized reference position.

    A separator position belongs to the line that follows it.
    """
    for line_idx, (_, end) in enumerate(boundaries):
        if ref_index < end:
            return line_idx
    return len(boundaries) - 1


def attribute_line(
    op: AlignmentOp,
    boundaries: Sequence[Tuple[int, int]],
    current_line: int
) -> int:
    """
    Line an op belongs to, given the line of the op before it.

    Inserts stay on the current line, so extra text typed after a line break
    starts the next line. A character typed in place of a line break is extra
    text at the end of the line before that break.
    """
    if op.ref_index is None:
        return current_line
    if op.scored_kind == OpKind.INSERT:
        return line_for_position(boundaries, max(0, op.ref_index - 1))
    return line_for_position(boundaries, op.ref_index)


def submitted_piece(op: AlignmentOp) -> str:
    """Scored submitted character as it reads inside a single line."""
    char = op.scored_sub_original
    if char is None:
        return ""
    return " " if char.isspace() else char


class LineMapper(ILineMapper):
    """Computes per-line accuracy from a global alignment."""

    def __init__(
        self,
        pass_threshold_percent: Optional[float] = None,
        precision: Optional[int] = None
    ):
        """
        Initialize line mapper.

        Args:
            pass_threshold_percent: Per-line pass threshold (default: from settings)
            precision: Decimal places for reported accuracy (default: from settings)
        """
        if pass_threshold_percent is None:
            pass_threshold_percent = settings.pass_threshold_percent
        if precision is None:
            precision = settings.accuracy_precision
        self.pass_threshold_percent = pass_threshold_percent
        self.precision = precision

    def segment_by_line(
        self,
        alignment: Alignment,
        boundaries: Sequence[Tuple[int, int]],
        expected_lines: Sequence[str]
    ) -> Tuple[List[LineStat], List[str]]:
        """
        Attribute each alignment op to a reference line and compute line stats.

        Reference-side ops go to the line containing their reference position.
        Inserts go to the line of the op before them, so extra text typed at
        the start of a line (right after its line break) belongs to that line,
        and extra text at the very start belongs to line 1. A character typed
        in place of a line break is extra text on the line before the break.

        Args:
            alignment: Global alignment
            boundaries: (start, end) range of each line in the normalized reference
            expected_lines: Reference line texts, one per boundary

        Returns:
            Tuple of (line stats in line order, warnings)
        """
        line_count = len(boundaries)
        totals = [0] * line_count
        correct = [0] * line_count
        errors = [0] * line_count
        submitted_parts: List[List[str]] = [[] for _ in range(line_count)]

        current_line = 0
        for op in alignment.ops:
            current_line = attribute_line(op, boundaries, current_line)
            if op.is_structural:
                continue

            kind = op.scored_kind
            if kind != OpKind.INSERT:
                totals[current_line] += 1
            if kind == OpKind.MATCH:
                correct[current_line] += 1
            else:
                errors[current_line] += 1
            submitted_parts[current_line].append(submitted_piece(op))

        warnings: List[str] = []
        line_stats: List[LineStat] = []
        for line_idx in range(line_count):
            total = totals[line_idx]
            if total == 0:
                message = f"Reference line {line_idx + 1} has no characters; reported as 100%"
                logger.warning(message)
                warnings.append(message)
                accuracy = 100.0
            else:
                accuracy = 100.0 * correct[line_idx] / total

            line_stats.append(
                LineStat(
                    line_number=line_idx + 1,
                    accuracy=round(accuracy, self.precision),
                    passed=meets_threshold(correct[line_idx], total, self.pass_threshold_percent),
                    error_count=errors[line_idx],
                    expected_line=expected_lines[line_idx],
                    submitted_line="".join(submitted_parts[line_idx]).strip(),
                    total_characters=total,
                    correct_characters=correct[line_idx]
                )
            )

        logger.debug(
            f"Segmented alignment into {line_count} lines, "
            f"passed={sum(1 for stat in line_stats if stat.passed)}"
        )
        return line_stats, warnings


def collect_character_differences(
    alignment: Alignment,
    boundaries: Sequence[Tuple[int, int]]
) -> List[CharacterDiff]:
    """
    List every scored non-matching op as a positioned difference.

    Extra characters are positioned at the next reference character (or
    just past the last one), on the same line that the line stats give
    them. A character typed in place of a line break is extra at the end of
    the line before the break; a line break typed in place of a character
    leaves that character missing.

    Args:
        alignment: Global alignment
        boundaries: (start, end) range of each line in the normalized reference

    Returns:
        Differences in text order
    """
    diff_types: Dict[OpKind, DiffType] = {
        OpKind.SUBSTITUTE: DiffType.INCORRECT,
        OpKind.DELETE: DiffType.MISSING,
        OpKind.INSERT: DiffType.EXTRA,
    }

    differences: List[CharacterDiff] = []
    next_ref = 0
    current_line = 0
    for op in alignment.ops:
        current_line = attribute_line(op, boundaries, current_line)
        if op.ref_index is not None:
            next_ref = op.ref_index + 1
        kind = op.scored_kind
        if kind == OpKind.MATCH or op.is_structural:
            continue

        if op.ref_index is not None:
            position = op.ref_index
        else:
            position = next_ref
        line_start, line_end = boundaries[current_line]

        differences.append(
            CharacterDiff(
                position=position,
                expected=op.scored_ref_original or "",
                actual=op.scored_sub_original or "",
                type=diff_types[kind],
                line_number=current_line + 1,
                line_position=max(1, min(position, line_end) - line_start + 1),
                reference_offset=op.ref_offset if kind != OpKind.INSERT else None,
                submitted_offset=op.sub_offset if kind != OpKind.DELETE else None
            )
        )

    return differences
