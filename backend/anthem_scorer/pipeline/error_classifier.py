"""
Error pattern classification over a character alignment.

Each non-matching op gets exactly one category from a fixed rule order;
a second pass looks for swapped words among the spelling errors.
"""

from collections import Counter
from typing import Dict, List, Optional

from anthem_scorer.config import settings
from anthem_scorer.core.schemas import (
    LINE_SEPARATOR,
    Alignment,
    AlignmentOp,
    ErrorPattern,
    ErrorType,
    OpKind
)
from anthem_scorer.pipeline.interfaces import IErrorClassifier
from anthem_scorer.utils.exceptions import AlignmentInvariantError
from anthem_scorer.utils.latvian import is_diacritic_loss
from anthem_scorer.utils.logger import setup_logger

logger = setup_logger(__name__)


SUGGESTIONS: Dict[ErrorType, str] = {
    ErrorType.DIACRITIC_MISSING: "Pievienojiet trūkstošās diakritiskās zīmes",
    ErrorType.CASE_ERROR: "Pārbaudiet lielo un mazo burtu lietojumu",
    ErrorType.WORD_ORDER: "Pārbaudiet vārdu secību",
    ErrorType.SPELLING: "Pārbaudiet pareizrakstību",
    ErrorType.PUNCTUATION: "Pārbaudiet interpunkcijas zīmes",
}

# Marks the absent side of an insert or delete in examples
EMPTY_MARK = "∅"

# Visible stand-ins for whitespace in examples
LINE_BREAK_MARK = "⏎"
SPACE_MARK = "␣"

# Matched runs this short do not end an edit block
MAX_BLOCK_GAP = 2

# Each side of a swapped-word block needs this many letters
MIN_BLOCK_LETTERS = 3


def is_punctuation(char: Optional[str]) -> bool:
    """Anything that is neither a letter nor whitespace (digits and symbols included)."""
    return bool(char) and not char.isalpha() and not char.isspace()


def show_example_side(text: Optional[str]) -> str:
    """Render one side of an example; blank sides are made visible."""
    if not text:
        return EMPTY_MARK
    if text.isspace():
        return "".join(LINE_BREAK_MARK if char == "\n" else SPACE_MARK for char in text)
    return text


def format_example(actual: Optional[str], expected: Optional[str]) -> str:
    return f"{show_example_side(actual)} → {show_example_side(expected)}"


class ErrorClassifier(IErrorClassifier):
    """
    Buckets alignment ops into diacritic, case, word order, spelling and
    punctuation errors.

    Rule order for a single op (first match wins):
    1. diacritic_missing: reference letter carries a Latvian diacritic and
       the submitted letter is its base letter
    2. case_error: letters differ only in case
    3. punctuation: either side is not a letter or whitespace
    4. spelling: everything else

    In case-insensitive mode the aligner sees folded text, so case
    differences show up on matched ops; they are reported as case_error
    notes without touching accuracy.
    """

    def __init__(self, max_examples: Optional[int] = None):
        """
        Initialize error classifier.

        Args:
            max_examples: Examples kept per category (default: from settings)
        """
        if max_examples is None:
            max_examples = settings.max_error_examples
        self.max_examples = max_examples

    def classify(self, alignment: Alignment) -> List[ErrorPattern]:
        """
        Classify every scored op and aggregate by category.

        Args:
            alignment: Global alignment

        Returns:
            One ErrorPattern per occurring category, in ErrorType order
        """
        ops = alignment.ops
        tags: List[Optional[ErrorType]] = [None] * len(ops)
        for idx, op in enumerate(ops):
            if op.is_structural:
                continue
            tags[idx] = self.classify_op(op)

        counts: Dict[ErrorType, int] = {}
        examples: Dict[ErrorType, List[str]] = {}

        for block in self._word_order_blocks(ops, tags):
            expected = "".join(ops[k].scored_ref_original or "" for k in block)
            actual = "".join(ops[k].scored_sub_original or "" for k in block)
            for k in block:
                if tags[k] == ErrorType.SPELLING:
                    tags[k] = ErrorType.WORD_ORDER
            self._record(counts, examples, ErrorType.WORD_ORDER, format_example(actual.strip(), expected.strip()))

        for op, tag in zip(ops, tags):
            if tag is None or tag == ErrorType.WORD_ORDER:
                continue
            self._record(
                counts, examples, tag,
                format_example(op.scored_sub_original, op.scored_ref_original)
            )

        patterns = [
            ErrorPattern(
                type=error_type,
                count=counts[error_type],
                examples=examples[error_type],
                suggestion=SUGGESTIONS[error_type]
            )
            for error_type in ErrorType
            if error_type in counts
        ]

        logger.debug(
            "Classified errors: "
            + (", ".join(f"{p.type.value}={p.count}" for p in patterns) or "none")
        )
        return patterns

    @staticmethod
    def classify_op(op: AlignmentOp) -> Optional[ErrorType]:
        """
        Categorize a single op.

        A substitution with a line break on one side is judged by its other
        side alone, as the extra or missing character it leaves.

        Returns:
            The error category, or None for a match with no case note

        Raises:
            AlignmentInvariantError: If the op kind is unknown
        """
        kind = op.scored_kind
        if kind == OpKind.MATCH:
            if op.ref_original.isspace():
                return None
            if op.ref_original != op.sub_original:
                return ErrorType.CASE_ERROR
            return None

        if kind == OpKind.SUBSTITUTE:
            expected = op.ref_original
            actual = op.sub_original
            if is_diacritic_loss(expected, actual):
                return ErrorType.DIACRITIC_MISSING
            if expected != actual and expected.lower() == actual.lower():
                return ErrorType.CASE_ERROR
            if is_punctuation(expected) or is_punctuation(actual):
                return ErrorType.PUNCTUATION
            return ErrorType.SPELLING

        if kind == OpKind.DELETE:
            return ErrorType.PUNCTUATION if is_punctuation(op.scored_ref_original) else ErrorType.SPELLING

        if kind == OpKind.INSERT:
            return ErrorType.PUNCTUATION if is_punctuation(op.scored_sub_original) else ErrorType.SPELLING

        raise AlignmentInvariantError(f"Unknown alignment op kind: {op.kind!r}")

    @staticmethod
    def _word_order_blocks(
        ops: tuple,
        tags: List[Optional[ErrorType]]
    ) -> List[List[int]]:
        """
        Find edit blocks that look like transposed words.

        A block is a run of non-matching ops, bridged across matched runs of
        at most MAX_BLOCK_GAP characters and cut at any op with a line break
        on either side. It qualifies when both sides hold enough letters,
        differ, and are anagrams (or near-anagrams, for longer blocks), and at
        least two of its ops were tagged as spelling.
        """
        blocks: List[List[int]] = []
        current: List[int] = []
        gap: List[int] = []

        for idx, op in enumerate(ops):
            if LINE_SEPARATOR in (op.ref_char, op.sub_char):
                if current:
                    blocks.append(current)
                current, gap = [], []
            elif op.kind == OpKind.MATCH:
                if current:
                    gap.append(idx)
                    if len(gap) > MAX_BLOCK_GAP:
                        blocks.append(current)
                        current, gap = [], []
            else:
                current.extend(gap)
                gap = []
                current.append(idx)
        if current:
            blocks.append(current)

        qualifying = []
        for block in blocks:
            if sum(1 for k in block if tags[k] == ErrorType.SPELLING) < 2:
                continue
            expected = "".join(ops[k].ref_char for k in block if ops[k].ref_char is not None)
            actual = "".join(ops[k].sub_char for k in block if ops[k].sub_char is not None)
            if expected == actual:
                continue
            if sum(1 for c in expected if c.isalpha()) < MIN_BLOCK_LETTERS:
                continue
            if sum(1 for c in actual if c.isalpha()) < MIN_BLOCK_LETTERS:
                continue
            if _near_anagram(expected, actual):
                qualifying.append(block)
        return qualifying

    def _record(
        self,
        counts: Dict[ErrorType, int],
        examples: Dict[ErrorType, List[str]],
        error_type: ErrorType,
        example: str
    ) -> None:
        counts[error_type] = counts.get(error_type, 0) + 1
        bucket = examples.setdefault(error_type, [])
        if len(bucket) < self.max_examples and example not in bucket:
            bucket.append(example)


def _near_anagram(first: str, second: str) -> bool:
    """Same letters, or at most two unmatched letters when both sides have four or more."""
    first_letters = Counter(c for c in first if not c.isspace())
    second_letters = Counter(c for c in second if not c.isspace())
    if first_letters == second_letters:
        return True
    if sum(first_letters.values()) < 4 or sum(second_letters.values()) < 4:
        return False
    difference = (first_letters - second_letters) + (second_letters - first_letters)
    return sum(difference.values()) <= 2
