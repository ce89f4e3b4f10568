"""Tests for pre-submission checks."""

from anthem_scorer.core.reference import NATIONAL_ANTHEM, ReferenceText
from anthem_scorer.core.schemas import IssueCode
from anthem_scorer.pipeline.scorer import AnthemScorer
from anthem_scorer.pipeline.validation import validate_anthem_lines, validate_for_submission

ANTHEM_TEXT = NATIONAL_ANTHEM.display_text()


class TestValidateAnthemLines:
    """Test the line completeness check."""

    def test_empty_text_reports_every_line(self):
        """Test that all eight lines are reported for empty input."""
        issues = validate_anthem_lines("")

        assert len(issues) == 8
        assert issues[0].message == "1. rinda ir tukša vai nesatur burtus"
        assert issues[0].suggestion == "Lūdzu, ierakstiet himnas tekstu šajā rindā"
        assert issues[7].line_number == 8
        assert all(issue.code == IssueCode.REQUIRED_FIELD for issue in issues)

    def test_complete_anthem_has_no_issues(self):
        """Test that the stanza blank line is not counted as a line."""
        assert validate_anthem_lines(ANTHEM_TEXT) == []

    def test_single_line(self):
        """Test that missing lines are reported."""
        issues = validate_anthem_lines("Short text")

        assert [issue.line_number for issue in issues] == [2, 3, 4, 5, 6, 7, 8]

    def test_line_without_letters(self):
        """Test that a punctuation-only line is reported."""
        lines = list(NATIONAL_ANTHEM.lines)
        lines[2] = "... !"

        issues = validate_anthem_lines("\n".join(lines))

        assert [issue.line_number for issue in issues] == [3]

    def test_custom_line_count(self):
        """Test a different number of expected lines."""
        assert validate_anthem_lines("ab\ncd", expected_lines=2) == []


class TestValidateForSubmission:
    """Test the submission readiness check."""

    def test_correct_anthem_is_ready(self):
        """Test that the reference text is ready to submit."""
        check = validate_for_submission(ANTHEM_TEXT)

        assert check.is_ready is True
        assert check.issues == []
        assert check.accuracy == 100.0
        assert check.invalid_characters == []

    def test_incomplete_text_is_not_scored(self):
        """Test that line issues stop the check before scoring."""
        check = validate_for_submission("")

        assert check.is_ready is False
        assert check.accuracy is None
        assert len(check.issues) == 8

    def test_low_accuracy_blocks_submission(self):
        """Test that a complete but inaccurate text is rejected."""
        text = "\n".join(list(NATIONAL_ANTHEM.lines[:4]) + ["la la la"] * 4)

        check = validate_for_submission(text)

        assert check.is_ready is False
        assert len(check.issues) == 1
        issue = check.issues[0]
        assert issue.code == IssueCode.INSUFFICIENT_ACCURACY
        assert issue.message.startswith("Himnas precizitāte (")
        assert issue.message.endswith("ir zemāka par nepieciešamo (75%)")
        assert issue.suggestion == "Lūdzu, pārbaudiet un uzlabojiet himnas tekstu"

    def test_invalid_characters_reported(self):
        """Test that characters outside the Latvian set are listed."""
        check = validate_for_submission(ANTHEM_TEXT + " @")

        assert check.is_ready is True
        assert check.invalid_characters == ["@"]

    def test_custom_scorer(self):
        """Test readiness against another reference."""
        reference = ReferenceText(["ab", "cd"], expected_line_count=2)
        scorer = AnthemScorer(reference)

        assert validate_for_submission("ab\ncd", scorer=scorer).is_ready is True
        assert validate_for_submission("ab", scorer=scorer).is_ready is False
