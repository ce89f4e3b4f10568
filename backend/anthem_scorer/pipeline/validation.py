"""Pre-submission checks for anthem transcriptions."""

from typing import Any, List, Optional

from anthem_scorer.config import settings
from anthem_scorer.core.schemas import IssueCode, LineIssue, SubmissionCheck
from anthem_scorer.pipeline.scorer import AnthemScorer, default_scorer
from anthem_scorer.utils.latvian import find_invalid_characters, is_latvian_letter
from anthem_scorer.utils.logger import setup_logger
from anthem_scorer.utils.text_normalizer import TextNormalizer

logger = setup_logger(__name__)


EMPTY_LINE_SUGGESTION = "Lūdzu, ierakstiet himnas tekstu šajā rindā"
LOW_ACCURACY_SUGGESTION = "Lūdzu, pārbaudiet un uzlabojiet himnas tekstu"


def _has_letter(line: str) -> bool:
    return any((char.isascii() and char.isalpha()) or is_latvian_letter(char) for char in line)


def validate_anthem_lines(text: Any, expected_lines: Optional[int] = None) -> List[LineIssue]:
    """
    Check that every anthem line has been filled in.

    Blank lines (such as the one between stanzas) are skipped; each of the
    first ``expected_lines`` remaining lines must contain at least one letter,
    and missing lines are reported as empty.

    Args:
        text: Submitted text
        expected_lines: Number of lines required (default: from settings)

    Returns:
        One issue per empty or letterless line, in line order
    """
    if expected_lines is None:
        expected_lines = settings.expected_line_count

    lines = [line for line in TextNormalizer.decode(text).splitlines() if line.strip()]

    issues: List[LineIssue] = []
    for idx in range(expected_lines):
        line = lines[idx] if idx < len(lines) else ""
        if not _has_letter(line):
            issues.append(
                LineIssue(
                    code=IssueCode.REQUIRED_FIELD,
                    message=f"{idx + 1}. rinda ir tukša vai nesatur burtus",
                    suggestion=EMPTY_LINE_SUGGESTION,
                    line_number=idx + 1
                )
            )
    return issues


def validate_for_submission(text: Any, scorer: Optional[AnthemScorer] = None) -> SubmissionCheck:
    """
    Decide whether a transcription is ready to submit.

    Line completeness is checked first; only complete texts are scored, and
    a score below the pass threshold blocks submission.

    Args:
        text: Submitted text
        scorer: Scorer to use (default: the shared national anthem scorer)

    Returns:
        SubmissionCheck
    """
    scorer = scorer or default_scorer
    decoded = TextNormalizer.decode(text)
    invalid_characters = find_invalid_characters(decoded)

    issues = validate_anthem_lines(decoded, expected_lines=len(scorer.reference))
    if issues:
        logger.debug(f"Submission not ready: {len(issues)} incomplete lines")
        return SubmissionCheck(is_ready=False, issues=issues, invalid_characters=invalid_characters)

    result = scorer.score(decoded)
    if not result.passed:
        threshold = scorer.options.pass_threshold_percent
        issues.append(
            LineIssue(
                code=IssueCode.INSUFFICIENT_ACCURACY,
                message=(
                    f"Himnas precizitāte ({result.accuracy:.1f}%) ir zemāka par "
                    f"nepieciešamo ({threshold:g}%)"
                ),
                suggestion=LOW_ACCURACY_SUGGESTION
            )
        )

    return SubmissionCheck(
        is_ready=not issues,
        issues=issues,
        accuracy=result.accuracy,
        invalid_characters=invalid_characters
    )
