"""Tests for anthem scoring."""

import pytest

from anthem_scorer.core.reference import NATIONAL_ANTHEM, ReferenceText
from anthem_scorer.core.schemas import DiffType, ErrorType, ScoreOptions, TimingSignal
from anthem_scorer.pipeline.scorer import (
    AnthemScorer,
    get_anthem_accuracy,
    is_anthem_text_correct,
    resolve_options,
    score
)
from anthem_scorer.utils.exceptions import InvalidOptionsError
from anthem_scorer.utils.latvian import remove_latvian_diacritics

ANTHEM_TEXT = NATIONAL_ANTHEM.display_text()

# Eight lines of ten characters: 80 scored characters
GRID_REFERENCE = ReferenceText(["abcdefghij"] * 8)


def _grid_submission(replaced: int) -> str:
    """Grid reference text with the first ``replaced`` characters replaced by '#'."""
    chars = list("".join(GRID_REFERENCE.lines))
    for idx in range(replaced):
        chars[idx] = "#"
    flat = "".join(chars)
    return "\n".join(flat[i:i + 10] for i in range(0, 80, 10))


class TestIdentity:
    """Test scoring the reference against itself."""

    def test_display_text_scores_perfectly(self):
        """Test that the anthem with its stanza break scores 100."""
        result = score(ANTHEM_TEXT)

        assert result.passed is True
        assert result.accuracy == 100.0
        assert result.total_characters == 157
        assert result.correct_characters == 157
        assert result.character_differences == []
        assert result.error_patterns == []
        assert len(result.line_stats) == 8
        assert all(stat.accuracy == 100.0 for stat in result.line_stats)

    def test_scored_text_scores_perfectly(self):
        """Test that the anthem without the blank line scores 100."""
        assert score(NATIONAL_ANTHEM.text).accuracy == 100.0

    def test_extra_whitespace_is_ignored(self):
        """Test that spacing differences do not cost accuracy."""
        spaced = "\n\n".join("   " + line.replace(" ", "  ") + "\t" for line in NATIONAL_ANTHEM.lines)
        result = score(spaced)

        assert result.accuracy == 100.0
        assert result.quality_metrics.whitespace_issues is True

    def test_result_serializes(self):
        """Test that the result dumps to JSON-compatible data."""
        dumped = score(ANTHEM_TEXT).model_dump(mode="json")

        assert dumped["passed"] is True
        assert len(dumped["line_stats"]) == 8


class TestEmptyInput:
    """Test scoring empty and missing input."""

    @pytest.mark.parametrize("text", ["", None, "   \n\n  "])
    def test_empty_input_scores_zero(self, text):
        """Test that empty input fails with every character missing."""
        result = score(text)

        assert result.accuracy == 0.0
        assert result.passed is False
        assert result.correct_characters == 0
        assert result.total_characters == 157
        assert len(result.character_differences) == 157
        assert all(diff.type == DiffType.MISSING for diff in result.character_differences)
        assert all(stat.passed is False for stat in result.line_stats)


class TestDiacritics:
    """Test a submission typed without diacritics."""

    def test_stripped_diacritics(self):
        """Test that all 13 diacritics are reported and nothing else."""
        result = score(remove_latvian_diacritics(ANTHEM_TEXT))

        assert result.correct_characters == 144
        assert result.accuracy == 91.72
        assert result.passed is True
        assert [p.type for p in result.error_patterns] == [ErrorType.DIACRITIC_MISSING]
        assert result.get_pattern(ErrorType.DIACRITIC_MISSING).count == 13


class TestLineSegmentation:
    """Test per-line attribution."""

    def test_first_stanza_only(self):
        """Test that lines 1-4 are perfect and lines 5-8 are empty."""
        result = score("\n".join(NATIONAL_ANTHEM.lines[:4]))

        assert [stat.accuracy for stat in result.line_stats[:4]] == [100.0] * 4
        assert [stat.accuracy for stat in result.line_stats[4:]] == [0.0] * 4
        assert result.correct_characters == 74
        assert result.accuracy == 47.13
        assert result.passed is False

    def test_line_stats_sum_to_totals(self):
        """Test that line counts add up to the overall counts."""
        result = score("Dievs svētī Latviju\nMūs dargo tēviju\nSvētī jel")

        assert sum(stat.total_characters for stat in result.line_stats) == result.total_characters
        assert sum(stat.correct_characters for stat in result.line_stats) == result.correct_characters

    def test_differences_account_for_every_character(self):
        """Test that correct plus missing plus incorrect covers the reference."""
        result = score("Dievs svētī Latviju\nMūs dargo tēviju\nSvētī jel")

        not_matched = [
            diff for diff in result.character_differences
            if diff.type in (DiffType.MISSING, DiffType.INCORRECT)
        ]
        assert result.correct_characters + len(not_matched) == result.total_characters


class TestLineBreakSubstitutions:
    """Test characters typed where a line break belongs, and the reverse."""

    def test_letter_in_place_of_line_break_is_extra(self):
        """Test that a letter typed instead of a line break is reported as extra."""
        lines = NATIONAL_ANTHEM.lines
        result = score(lines[0] + "X" + "\n".join(lines[1:]))

        assert result.accuracy == 100.0
        assert result.correct_characters == 157
        assert [p.type for p in result.error_patterns] == [ErrorType.SPELLING]
        assert result.get_pattern(ErrorType.SPELLING).count == 1
        assert result.get_pattern(ErrorType.SPELLING).examples == ["X → ∅"]

        assert len(result.character_differences) == 1
        diff = result.character_differences[0]
        assert diff.type == DiffType.EXTRA
        assert diff.actual == "X"
        assert diff.expected == ""
        assert diff.line_number == 1
        assert diff.line_position == len(lines[0]) + 1

        assert result.line_stats[0].error_count == 1
        assert result.line_stats[0].submitted_line == lines[0] + "X"
        assert result.line_stats[1].error_count == 0
        assert result.line_stats[1].submitted_line == lines[1]

    def test_digits_in_place_of_every_line_break(self):
        """Test that digits replacing all seven line breaks are seven punctuation extras."""
        lines = NATIONAL_ANTHEM.lines
        submission = "".join(line + str(idx + 1) for idx, line in enumerate(lines[:-1])) + lines[-1]
        result = score(submission)

        assert result.accuracy == 100.0
        assert [p.type for p in result.error_patterns] == [ErrorType.PUNCTUATION]
        assert result.get_pattern(ErrorType.PUNCTUATION).count == 7
        assert [diff.type for diff in result.character_differences] == [DiffType.EXTRA] * 7
        assert [diff.actual for diff in result.character_differences] == list("1234567")
        assert [diff.line_number for diff in result.character_differences] == [1, 2, 3, 4, 5, 6, 7]
        assert [stat.error_count for stat in result.line_stats] == [1, 1, 1, 1, 1, 1, 1, 0]

    def test_line_broken_at_a_space(self):
        """Test that breaking a line where it has a space costs nothing."""
        lines = list(NATIONAL_ANTHEM.lines)
        lines[0] = lines[0].replace(" ", "\n", 1)
        result = score("\n".join(lines))

        assert result.accuracy == 100.0
        assert result.error_patterns == []
        assert result.character_differences == []
        assert result.line_stats[0].submitted_line == NATIONAL_ANTHEM.lines[0]

    def test_lines_joined_with_a_space(self):
        """Test that joining two lines with a space costs nothing."""
        lines = NATIONAL_ANTHEM.lines
        result = score(lines[0] + " " + "\n".join(lines[1:]))

        assert result.accuracy == 100.0
        assert result.error_patterns == []
        assert result.character_differences == []


class TestThreshold:
    """Test the pass/fail boundary."""

    def test_exactly_75_percent_passes(self):
        """Test that 60 of 80 characters passes."""
        result = score(_grid_submission(20), reference_text=GRID_REFERENCE)

        assert result.accuracy == 75.0
        assert result.passed is True

    def test_just_below_75_percent_fails(self):
        """Test that 59 of 80 characters fails."""
        result = score(_grid_submission(21), reference_text=GRID_REFERENCE)

        assert result.accuracy == 73.75
        assert result.passed is False

    def test_custom_threshold(self):
        """Test that options override the default threshold."""
        result = score(
            _grid_submission(21),
            reference_text=GRID_REFERENCE,
            options={"pass_threshold_percent": 73.75}
        )

        assert result.passed is True


class TestMonotonicity:
    """Test that adding errors never helps."""

    def test_extra_substitution_lowers_accuracy(self):
        """Test that one more wrong letter cannot raise accuracy."""
        one_error = ANTHEM_TEXT.replace("svētī Latviju", "sveti Latviju", 1)
        two_errors = one_error.replace("Dievs", "Diavs", 1)

        first = score(one_error)
        second = score(two_errors)

        assert second.accuracy < first.accuracy
        assert second.get_pattern(ErrorType.DIACRITIC_MISSING).count == first.get_pattern(
            ErrorType.DIACRITIC_MISSING
        ).count
        assert second.get_pattern(ErrorType.SPELLING).count == 1

    def test_single_substitution_only_touches_one_category(self):
        """Test that one wrong letter yields exactly one spelling error."""
        result = score(ANTHEM_TEXT.replace("Dievs", "Diavs", 1))

        assert [p.type for p in result.error_patterns] == [ErrorType.SPELLING]
        assert result.correct_characters == 156


class TestDeterminism:
    """Test that scoring is a pure function."""

    def test_repeated_calls_identical(self):
        """Test that identical inputs give identical results."""
        text = "Dievs, sveti Latviju\nMūs dārgo tēviju!!\nsveti jel latviju"

        assert score(text).model_dump() == score(text).model_dump()

    def test_fresh_scorer_matches_shared_scorer(self):
        """Test that scorer instances do not influence results."""
        text = "Kur latvju meitas zied"

        assert AnthemScorer().score(text).model_dump() == score(text).model_dump()


class TestCaseHandling:
    """Test case sensitivity options."""

    def test_lowercase_passes_by_default(self):
        """Test that case is ignored for accuracy but noted."""
        result = score(ANTHEM_TEXT.lower())

        assert result.accuracy == 100.0
        assert result.get_pattern(ErrorType.CASE_ERROR).count == 11

    def test_lowercase_costs_accuracy_when_case_sensitive(self):
        """Test that case-sensitive scoring counts case differences."""
        result = score(ANTHEM_TEXT.lower(), options=ScoreOptions(case_sensitive=True))

        assert result.correct_characters == 146
        assert result.get_pattern(ErrorType.CASE_ERROR).count == 11


class TestMalformedInput:
    """Test that user input never raises."""

    def test_utf8_bytes(self):
        """Test that UTF-8 bytes score like text."""
        assert score(ANTHEM_TEXT.encode("utf-8")).accuracy == 100.0

    def test_invalid_bytes_flagged(self):
        """Test that undecodable bytes are an extra character and a quality issue."""
        result = score(ANTHEM_TEXT.encode("utf-8") + b"\xff")

        assert result.accuracy == 100.0
        assert result.quality_metrics.encoding_issues is True
        assert result.quality_metrics.text_quality == 75.0
        assert [diff.type for diff in result.character_differences] == [DiffType.EXTRA]

    def test_lone_surrogate(self):
        """Test that a lone surrogate does not raise."""
        result = score("Dievs\ud800")

        assert result.quality_metrics.encoding_issues is True

    def test_overlong_submission_truncated(self):
        """Test that very long input is cut and flagged."""
        result = score("a" * 6000)

        assert result.quality_metrics.length_exceeded is True
        assert any("truncated" in warning for warning in result.warnings)


class TestOptions:
    """Test option handling."""

    def test_invalid_options_raise(self):
        """Test that an out-of-range threshold is rejected."""
        with pytest.raises(InvalidOptionsError):
            score(ANTHEM_TEXT, options={"pass_threshold_percent": 150})

    def test_mapping_options(self):
        """Test that options may be passed as a mapping."""
        options = resolve_options({"case_sensitive": True})

        assert options.case_sensitive is True
        assert options.pass_threshold_percent == 75.0

    def test_scorer_default_options(self):
        """Test that a scorer applies its own options."""
        scorer = AnthemScorer(options=ScoreOptions(pass_threshold_percent=95.0))

        assert scorer.score(remove_latvian_diacritics(ANTHEM_TEXT)).passed is False


class TestTiming:
    """Test timing-derived signals."""

    def test_no_timing(self):
        """Test that timing is omitted without a signal."""
        result = score(ANTHEM_TEXT)

        assert result.timing is None
        assert result.quality_metrics.quality_score == 100.0

    def test_long_pauses(self):
        """Test speed, pause counting and the pause penalty."""
        result = score(
            ANTHEM_TEXT,
            timing=TimingSignal(typing_time_ms=60000, pause_durations_ms=[6000, 100, 7000])
        )

        # 157 characters plus 7 line separators in one minute
        assert result.timing.typing_speed_cpm == 164.0
        assert result.timing.long_pauses == 2
        assert result.timing.possible_paste is False
        assert result.quality_metrics.quality_score == 96.0

    def test_possible_paste(self):
        """Test that implausibly fast entry is flagged."""
        result = score(ANTHEM_TEXT, timing={"typing_time_ms": 1000})

        assert result.timing.possible_paste is True
        assert result.quality_metrics.quality_score == 90.0

    def test_invalid_timing_is_a_warning(self):
        """Test that bad telemetry is ignored with a warning."""
        result = score(ANTHEM_TEXT, timing={"typing_time_ms": -1})

        assert result.timing is None
        assert result.warnings == ["Ignored invalid timing signal"]


class TestConvenience:
    """Test convenience helpers."""

    def test_is_anthem_text_correct(self):
        """Test the boolean helper."""
        assert is_anthem_text_correct(ANTHEM_TEXT) is True
        assert is_anthem_text_correct("") is False

    def test_get_anthem_accuracy(self):
        """Test the accuracy helper."""
        assert get_anthem_accuracy(ANTHEM_TEXT) == 100.0

    def test_reference_from_string(self):
        """Test scoring against a reference given as text."""
        raw = "\n".join(["abcdefghij"] * 8)

        assert score(raw, reference_text=raw).accuracy == 100.0
