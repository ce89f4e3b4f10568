"""
Anthem scoring orchestration.

Runs normalization, alignment, line segmentation and error classification
for one submission and assembles the AnthemResult. Scoring is a pure function
of its inputs: no I/O besides logging and no state shared between calls.
"""

import re
import unicodedata
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from anthem_scorer.config import settings
from anthem_scorer.core.reference import NATIONAL_ANTHEM, PreparedReference, ReferenceText
from anthem_scorer.core.schemas import (
    AnthemResult,
    AnthemTiming,
    NormalizedText,
    QualityMetrics,
    ScoreOptions,
    TimingSignal
)
from anthem_scorer.pipeline.aligner import CharacterAligner
from anthem_scorer.pipeline.error_classifier import ErrorClassifier
from anthem_scorer.pipeline.interfaces import IAligner, IErrorClassifier
from anthem_scorer.pipeline.line_mapper import (
    LineMapper,
    collect_character_differences,
    meets_threshold
)
from anthem_scorer.utils.exceptions import InvalidOptionsError
from anthem_scorer.utils.logger import log_score_event, setup_logger
from anthem_scorer.utils.text_normalizer import TextNormalizer

logger = setup_logger(__name__)

# Basic Latin, Latin Extended-A and Latin Extended Additional plus whitespace
STANDARD_TEXT_PATTERN = re.compile(r"^[\u0000-\u007F\u0100-\u017F\u1E00-\u1EFF\s]*$")
WHITESPACE_ISSUE_PATTERN = re.compile(r"\s{3,}|\t")

ENCODING_PENALTY = 20
WHITESPACE_PENALTY = 10
NON_STANDARD_PENALTY = 5
LONG_PAUSE_PENALTY = 2
MAX_PAUSE_PENALTY = 10
PASTE_PENALTY = 10

OptionsInput = Union[ScoreOptions, Mapping[str, Any], None]
TimingInput = Union[TimingSignal, Mapping[str, Any], None]


def resolve_options(options: OptionsInput) -> ScoreOptions:
    """
    Build ScoreOptions from a model, a mapping or None.

    Raises:
        InvalidOptionsError: If a mapping holds invalid values
    """
    if options is None:
        return ScoreOptions()
    if isinstance(options, ScoreOptions):
        return options
    try:
        return ScoreOptions.model_validate(dict(options))
    except (ValidationError, TypeError, ValueError) as e:
        raise InvalidOptionsError("Invalid scoring options", detail=str(e)) from e


def assess_text_quality(decoded: str, normalized: NormalizedText) -> QualityMetrics:
    """
    Flag encoding, whitespace and character-set problems in the raw input.

    Args:
        decoded: Submission as decoded text
        normalized: Its normalized form

    Returns:
        QualityMetrics with text_quality set; quality_score is left at text_quality
    """
    composed = unicodedata.normalize("NFC", decoded)
    encoding_issues = normalized.encoding_issues > 0 or not STANDARD_TEXT_PATTERN.match(composed)
    whitespace_issues = bool(WHITESPACE_ISSUE_PATTERN.search(decoded))

    non_standard: List[str] = []
    non_standard_count = 0
    for char in composed:
        if char.isspace() or unicodedata.category(char)[0] in ("L", "N", "P", "Z"):
            continue
        non_standard_count += 1
        if char not in non_standard:
            non_standard.append(char)

    text_quality = 100.0
    if encoding_issues:
        text_quality -= ENCODING_PENALTY
    if whitespace_issues:
        text_quality -= WHITESPACE_PENALTY
    text_quality -= NON_STANDARD_PENALTY * non_standard_count
    text_quality = max(0.0, text_quality)

    return QualityMetrics(
        encoding_issues=encoding_issues,
        whitespace_issues=whitespace_issues,
        non_standard_characters=non_standard,
        length_exceeded=normalized.truncated,
        text_quality=text_quality,
        quality_score=text_quality
    )


def calculate_timing(timing: TimingSignal, typed_characters: int) -> AnthemTiming:
    """
    Derive typing speed, long pauses and a paste flag from typing telemetry.

    Args:
        timing: Caller-supplied telemetry
        typed_characters: Normalized submission length
    """
    if timing.typing_time_ms > 0:
        speed = typed_characters / timing.typing_time_ms * 60000
    else:
        speed = 0.0
    long_pauses = sum(1 for pause in timing.pause_durations_ms if pause > settings.long_pause_ms)

    return AnthemTiming(
        typing_time_ms=timing.typing_time_ms,
        typing_speed_cpm=round(speed, 1),
        long_pauses=long_pauses,
        thinking_time_ms=timing.thinking_time_ms,
        possible_paste=speed > settings.paste_speed_cpm
    )


class AnthemScorer:
    """
    Scores submissions against one reference text.

    The reference is normalized once for the default options; calls with
    other whitespace or case options normalize it again locally. Instances
    hold no per-call state and can be shared between threads.
    """

    def __init__(
        self,
        reference: ReferenceText = NATIONAL_ANTHEM,
        options: OptionsInput = None,
        aligner: Optional[IAligner] = None,
        error_classifier: Optional[IErrorClassifier] = None
    ):
        """
        Initialize scorer.

        Args:
            reference: Reference text (default: the national anthem)
            options: Default scoring options
            aligner: Aligner implementation (default: CharacterAligner)
            error_classifier: Classifier implementation (default: ErrorClassifier)

        Raises:
            InvalidOptionsError: If options are invalid
            ReferenceTextError: If the reference cannot be normalized
        """
        self.reference = reference
        self.options = resolve_options(options)
        self.aligner = aligner or CharacterAligner()
        self.error_classifier = error_classifier or ErrorClassifier()
        self._prepared = reference.prepare(self._normalizer_for(self.options))

    def score(
        self,
        submitted_text: Any,
        options: OptionsInput = None,
        timing: TimingInput = None
    ) -> AnthemResult:
        """
        Score one submission.

        Args:
            submitted_text: Submission (str, UTF-8 bytes or None)
            options: Per-call options (default: the scorer's options)
            timing: Optional typing telemetry

        Returns:
            AnthemResult

        Raises:
            InvalidOptionsError: If options are given as an invalid mapping
        """
        opts = self.options if options is None else resolve_options(options)
        text_normalizer = self._normalizer_for(opts)
        prepared = self._prepared_for(opts, text_normalizer)
        warnings: List[str] = []

        decoded = TextNormalizer.decode(submitted_text)
        submitted = text_normalizer.normalize(decoded, max_chars=settings.max_submission_chars)
        if submitted.truncated:
            message = f"Submission truncated to {settings.max_submission_chars} characters"
            logger.warning(message)
            warnings.append(message)

        alignment = self.aligner.align(submitted, prepared.normalized)

        line_stats, line_warnings = LineMapper(opts.pass_threshold_percent).segment_by_line(
            alignment, prepared.boundaries, self.reference.lines
        )
        warnings.extend(line_warnings)

        error_patterns = self.error_classifier.classify(alignment)
        differences = collect_character_differences(alignment, prepared.boundaries)

        total = sum(stat.total_characters for stat in line_stats)
        correct = sum(stat.correct_characters for stat in line_stats)
        exact_accuracy = 100.0 * correct / total if total else 100.0
        accuracy = round(exact_accuracy, settings.accuracy_precision)
        passed = meets_threshold(correct, total, opts.pass_threshold_percent)

        timing_signal, timing_warning = self._resolve_timing(timing)
        if timing_warning:
            warnings.append(timing_warning)
        anthem_timing = None
        if timing_signal is not None:
            anthem_timing = calculate_timing(timing_signal, len(submitted))

        quality_metrics = assess_text_quality(decoded, submitted)
        quality_metrics.quality_score = self._quality_score(
            quality_metrics.text_quality, exact_accuracy, anthem_timing
        )

        result = AnthemResult(
            passed=passed,
            accuracy=accuracy,
            total_characters=total,
            correct_characters=correct,
            character_differences=differences,
            line_stats=line_stats,
            error_patterns=error_patterns,
            quality_metrics=quality_metrics,
            timing=anthem_timing,
            submitted_text=decoded,
            reference_text=self.reference.text,
            warnings=warnings
        )

        log_score_event(
            logger,
            self.reference.version,
            "Scored submission",
            accuracy=accuracy,
            passed=passed,
            distance=alignment.distance,
            lines_passed=sum(1 for stat in line_stats if stat.passed)
        )
        return result

    @staticmethod
    def _normalizer_for(options: ScoreOptions) -> TextNormalizer:
        return TextNormalizer(
            case_sensitive=options.case_sensitive,
            normalize_whitespace=options.normalize_whitespace
        )

    def _prepared_for(self, options: ScoreOptions, text_normalizer: TextNormalizer) -> PreparedReference:
        if (
            options.case_sensitive == self.options.case_sensitive
            and options.normalize_whitespace == self.options.normalize_whitespace
        ):
            return self._prepared
        return self.reference.prepare(text_normalizer)

    @staticmethod
    def _resolve_timing(timing: TimingInput) -> Tuple[Optional[TimingSignal], Optional[str]]:
        """Telemetry is advisory: invalid values are reported as a warning, not raised."""
        if timing is None or isinstance(timing, TimingSignal):
            return timing, None
        try:
            return TimingSignal.model_validate(dict(timing)), None
        except (ValidationError, TypeError, ValueError) as e:
            message = "Ignored invalid timing signal"
            logger.warning(f"{message}: {e}")
            return None, message

    @staticmethod
    def _quality_score(
        text_quality: float,
        accuracy: float,
        timing: Optional[AnthemTiming]
    ) -> float:
        score = 0.5 * text_quality + 0.5 * accuracy
        if timing is not None:
            score -= min(MAX_PAUSE_PENALTY, LONG_PAUSE_PENALTY * timing.long_pauses)
            if timing.possible_paste:
                score -= PASTE_PENALTY
        return round(min(100.0, max(0.0, score)), settings.accuracy_precision)


# Shared scorer for the national anthem with default options
default_scorer = AnthemScorer()


def score(
    submitted_text: Any,
    reference_text: Union[ReferenceText, str, None] = None,
    options: OptionsInput = None,
    timing: TimingInput = None
) -> AnthemResult:
    """
    Score a submission against a reference text.

    Args:
        submitted_text: Submission (str, UTF-8 bytes or None)
        reference_text: ReferenceText or multi-line text (default: the national anthem)
        options: ScoreOptions or a mapping of option values
        timing: TimingSignal or a mapping of timing values

    Returns:
        AnthemResult
    """
    if reference_text is None or reference_text is NATIONAL_ANTHEM:
        return default_scorer.score(submitted_text, options=options, timing=timing)
    if isinstance(reference_text, str):
        reference_text = ReferenceText.from_text(reference_text)
    return AnthemScorer(reference_text).score(submitted_text, options=options, timing=timing)


def is_anthem_text_correct(text: Any) -> bool:
    """Check if a transcription of the anthem passes."""
    return score(text).passed


def get_anthem_accuracy(text: Any) -> float:
    """Character accuracy of a transcription of the anthem, in percent."""
    return score(text).accuracy
