"""Canonical data models and schemas for the anthem scoring pipeline."""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from anthem_scorer.config import settings
from anthem_scorer.utils.exceptions import AlignmentInvariantError


LINE_SEPARATOR = "\n"

# Stands in for undecodable input; never equal to any reference character
SENTINEL_CHAR = "\ufffd"


# ============================================================================
# Enumerations
# ============================================================================

class OpKind(str, Enum):
    """Alignment operation kind."""
    MATCH = "match"
    SUBSTITUTE = "substitute"
    INSERT = "insert"
    DELETE = "delete"


class ErrorType(str, Enum):
    """Error pattern categories, in report order."""
    DIACRITIC_MISSING = "diacritic_missing"
    CASE_ERROR = "case_error"
    WORD_ORDER = "word_order"
    SPELLING = "spelling"
    PUNCTUATION = "punctuation"


class DiffType(str, Enum):
    """Character difference type as seen from the reference."""
    MISSING = "missing"
    EXTRA = "extra"
    INCORRECT = "incorrect"


# ============================================================================
# Normalized Text
# ============================================================================

class NormalizedText(BaseModel):
    """
    Comparable form of a raw string with a mapping back to the raw text.

    Attributes:
        chars: Comparison characters (case folded unless case-sensitive)
        originals: Same characters before case folding
        offsets: Offset in the raw text of each character's source
        source_length: Length of the raw text in characters
        encoding_issues: Number of sentinel replacements made
        truncated: Whether the input was cut at the length limit
    """
    model_config = ConfigDict(frozen=True)

    chars: str = Field(default="", description="Comparison characters")
    originals: str = Field(default="", description="Characters before case folding")
    offsets: Tuple[int, ...] = Field(default=(), description="Raw-text offset per character")
    source_length: int = Field(default=0, ge=0, description="Raw text length")
    encoding_issues: int = Field(default=0, ge=0, description="Sentinel replacements")
    truncated: bool = Field(default=False, description="Cut at the length limit")

    @model_validator(mode="after")
    def validate_mapping(self) -> "NormalizedText":
        """Ensure the three parallel sequences agree and offsets never go back."""
        if not (len(self.chars) == len(self.originals) == len(self.offsets)):
            raise ValueError("chars, originals and offsets must have equal length")
        for previous, current in zip(self.offsets, self.offsets[1:]):
            if current < previous:
                raise ValueError("offsets must be monotonically non-decreasing")
        return self

    def __len__(self) -> int:
        return len(self.chars)


# ============================================================================
# Alignment
# ============================================================================

class AlignmentOp(BaseModel):
    """
    One step of a character alignment.

    ``ref_*`` fields are None for INSERT, ``sub_*`` fields are None for DELETE.
    """
    model_config = ConfigDict(frozen=True)

    kind: OpKind
    ref_index: Optional[int] = Field(default=None, ge=0, description="Normalized reference position")
    sub_index: Optional[int] = Field(default=None, ge=0, description="Normalized submitted position")
    ref_char: Optional[str] = None
    sub_char: Optional[str] = None
    ref_original: Optional[str] = None
    sub_original: Optional[str] = None
    ref_offset: Optional[int] = Field(default=None, description="Raw reference offset")
    sub_offset: Optional[int] = Field(default=None, description="Raw submitted offset")

    @property
    def consumes_reference(self) -> bool:
        return self.kind != OpKind.INSERT

    @property
    def consumes_submitted(self) -> bool:
        return self.kind != OpKind.DELETE

    @property
    def is_structural(self) -> bool:
        """
        Layout-only op: a line separator deleted, inserted or matched.

        A substitution always carries one scored character, so it is never
        structural even when its other side is a separator.
        """
        if self.kind == OpKind.SUBSTITUTE:
            return False
        if self.ref_char is not None:
            return self.ref_char == LINE_SEPARATOR
        return self.sub_char == LINE_SEPARATOR

    @property
    def scored_kind(self) -> OpKind:
        """
        Kind as scored once separator sides are dropped.

        A character typed in place of a line break is extra (INSERT); a line
        break typed in place of a character leaves it missing (DELETE).
        """
        if self.kind == OpKind.SUBSTITUTE:
            if self.ref_char == LINE_SEPARATOR:
                return OpKind.INSERT
            if self.sub_char == LINE_SEPARATOR:
                return OpKind.DELETE
        return self.kind

    @property
    def scored_ref_original(self) -> Optional[str]:
        """Reference character that counts, if any."""
        return None if self.scored_kind == OpKind.INSERT else self.ref_original

    @property
    def scored_sub_original(self) -> Optional[str]:
        """Submitted character that counts, if any."""
        return None if self.scored_kind == OpKind.DELETE else self.sub_original


class Alignment(BaseModel):
    """Complete alignment between normalized submitted and reference text."""
    model_config = ConfigDict(frozen=True)

    ops: Tuple[AlignmentOp, ...] = Field(default=(), description="Ordered operations")
    ref_length: int = Field(..., ge=0, description="Normalized reference length")
    sub_length: int = Field(..., ge=0, description="Normalized submitted length")
    distance: int = Field(..., ge=0, description="Edit distance")

    def verify_coverage(self) -> None:
        """
        Check that every position of both sequences is consumed exactly once, in order.

        Raises:
            AlignmentInvariantError: If the alignment skips, repeats or reorders a position
        """
        next_ref = 0
        next_sub = 0
        cost = 0
        for op in self.ops:
            if op.consumes_reference:
                if op.ref_index != next_ref:
                    raise AlignmentInvariantError(
                        "Alignment does not cover the reference",
                        detail=f"expected ref_index={next_ref}, got {op.ref_index}"
                    )
                next_ref += 1
            elif op.ref_index is not None:
                raise AlignmentInvariantError("Insert op carries a reference index")
            if op.consumes_submitted:
                if op.sub_index != next_sub:
                    raise AlignmentInvariantError(
                        "Alignment does not cover the submission",
                        detail=f"expected sub_index={next_sub}, got {op.sub_index}"
                    )
                next_sub += 1
            elif op.sub_index is not None:
                raise AlignmentInvariantError("Delete op carries a submitted index")
            if op.kind != OpKind.MATCH:
                cost += 1

        if next_ref != self.ref_length or next_sub != self.sub_length:
            raise AlignmentInvariantError(
                "Alignment ends early",
                detail=(
                    f"covered ref={next_ref}/{self.ref_length}, "
                    f"sub={next_sub}/{self.sub_length}"
                )
            )
        if cost != self.distance:
            raise AlignmentInvariantError(
                "Alignment cost does not match its distance",
                detail=f"ops cost {cost}, distance {self.distance}"
            )


# ============================================================================
# Options and Inputs
# ============================================================================

class ScoreOptions(BaseModel):
    """Per-call scoring options. Defaults come from the engine settings."""
    model_config = ConfigDict(frozen=True)

    pass_threshold_percent: float = Field(
        default_factory=lambda: settings.pass_threshold_percent,
        ge=0.0,
        le=100.0,
        description="Minimum accuracy to pass"
    )
    case_sensitive: bool = Field(
        default_factory=lambda: settings.case_sensitive,
        description="Count case differences against accuracy"
    )
    normalize_whitespace: bool = Field(
        default_factory=lambda: settings.normalize_whitespace,
        description="Collapse whitespace runs and drop blank lines"
    )


class TimingSignal(BaseModel):
    """Typing telemetry collected by the caller while the text was entered."""
    typing_time_ms: int = Field(..., ge=0, description="Time spent typing")
    thinking_time_ms: int = Field(default=0, ge=0, description="Time before the first keystroke")
    pause_durations_ms: List[int] = Field(default_factory=list, description="Gaps between keystrokes")

    @field_validator("pause_durations_ms")
    @classmethod
    def validate_pauses(cls, v: List[int]) -> List[int]:
        """Pauses cannot be negative."""
        if any(pause < 0 for pause in v):
            raise ValueError("pause durations must be >= 0")
        return v


# ============================================================================
# Result Components
# ============================================================================

class CharacterDiff(BaseModel):
    """A positioned character difference."""
    position: int = Field(..., ge=0, description="Normalized reference index")
    expected: str = Field(default="", description="Reference character, empty if extra")
    actual: str = Field(default="", description="Submitted character, empty if missing")
    type: DiffType
    line_number: int = Field(..., ge=1, description="Reference line (1-indexed)")
    line_position: int = Field(..., ge=1, description="Column within the reference line (1-indexed)")
    reference_offset: Optional[int] = Field(default=None, description="Raw reference offset")
    submitted_offset: Optional[int] = Field(default=None, description="Raw submitted offset")


class LineStat(BaseModel):
    """Accuracy statistics for one reference line."""
    line_number: int = Field(..., ge=1, description="Line number (1-indexed)")
    accuracy: float = Field(..., ge=0.0, le=100.0, description="Line accuracy percentage, rounded for display")
    passed: bool = Field(..., description="Whether the exact line ratio meets the pass threshold")
    error_count: int = Field(default=0, ge=0, description="Non-matching operations on this line")
    expected_line: str = Field(..., description="Reference line text")
    submitted_line: str = Field(default="", description="Submitted text aligned to this line")
    total_characters: int = Field(default=0, ge=0, description="Reference characters in line")
    correct_characters: int = Field(default=0, ge=0, description="Matched characters in line")


class ErrorPattern(BaseModel):
    """Aggregated occurrences of one error category."""
    type: ErrorType
    count: int = Field(..., ge=1, description="Number of occurrences")
    examples: List[str] = Field(default_factory=list, description="Literal examples, first seen first")
    suggestion: Optional[str] = Field(default=None, description="Human-readable advice")


class AnthemTiming(BaseModel):
    """Timing figures derived from a TimingSignal."""
    typing_time_ms: int = Field(..., ge=0)
    typing_speed_cpm: float = Field(..., ge=0.0, description="Characters per minute")
    long_pauses: int = Field(default=0, ge=0, description="Pauses above the long-pause limit")
    thinking_time_ms: int = Field(default=0, ge=0)
    possible_paste: bool = Field(default=False, description="Typing speed implausible for manual entry")


class QualityMetrics(BaseModel):
    """Input quality flags and the secondary quality score."""
    encoding_issues: bool = Field(default=False, description="Undecodable or out-of-range characters")
    whitespace_issues: bool = Field(default=False, description="Tabs or long whitespace runs")
    non_standard_characters: List[str] = Field(default_factory=list)
    length_exceeded: bool = Field(default=False, description="Submission was truncated")
    text_quality: float = Field(default=100.0, ge=0.0, le=100.0, description="Input-only quality")
    quality_score: float = Field(default=100.0, ge=0.0, le=100.0, description="Combined diagnostic score")


class AnthemResult(BaseModel):
    """
    Complete scoring result for one submission.

    A pure function of (submitted text, reference text, options, timing):
    identical inputs give identical results.

    ``accuracy`` is rounded for display; ``passed`` compares the exact ratio
    ``correct_characters / total_characters`` with the threshold, so a text
    just under the threshold can show the threshold value and still fail.
    """
    passed: bool = Field(..., description="Exact correct/total ratio meets the pass threshold")
    accuracy: float = Field(
        ..., ge=0.0, le=100.0,
        description="Character accuracy percentage, rounded for display; passed uses the unrounded ratio"
    )
    total_characters: int = Field(..., ge=0, description="Scored reference characters")
    correct_characters: int = Field(..., ge=0, description="Matched reference characters")
    character_differences: List[CharacterDiff] = Field(default_factory=list)
    line_stats: List[LineStat] = Field(default_factory=list)
    error_patterns: List[ErrorPattern] = Field(default_factory=list)
    quality_metrics: QualityMetrics = Field(default_factory=QualityMetrics)
    timing: Optional[AnthemTiming] = None
    submitted_text: str = Field(default="", description="Submission as decoded")
    reference_text: str = Field(..., description="Reference text used")
    warnings: List[str] = Field(default_factory=list, description="Non-fatal anomalies")

    def get_pattern(self, error_type: ErrorType) -> Optional[ErrorPattern]:
        """Return the pattern for a category, if any occurred."""
        for pattern in self.error_patterns:
            if pattern.type == error_type:
                return pattern
        return None


# ============================================================================
# Submission Readiness
# ============================================================================

class IssueCode(str, Enum):
    """Submission readiness issue codes."""
    REQUIRED_FIELD = "required_field"
    INSUFFICIENT_ACCURACY = "insufficient_accuracy"


class LineIssue(BaseModel):
    """A problem that blocks submitting the anthem text."""
    code: IssueCode
    message: str = Field(..., description="User-facing message (Latvian)")
    suggestion: Optional[str] = Field(default=None, description="User-facing advice (Latvian)")
    line_number: Optional[int] = Field(default=None, ge=1, description="Affected line, if any")


class SubmissionCheck(BaseModel):
    """Outcome of the pre-submission check."""
    is_ready: bool
    issues: List[LineIssue] = Field(default_factory=list)
    accuracy: Optional[float] = Field(default=None, ge=0.0, le=100.0, description="Set once scoring ran")
    invalid_characters: List[str] = Field(default_factory=list, description="Characters outside the Latvian set")
