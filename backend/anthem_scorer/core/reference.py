"""Immutable reference text and its normalized, line-segmented form."""

import hashlib
from typing import Iterable, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from anthem_scorer.config import settings
from anthem_scorer.core.schemas import LINE_SEPARATOR, SENTINEL_CHAR, NormalizedText
from anthem_scorer.utils.exceptions import ReferenceTextError
from anthem_scorer.utils.text_normalizer import TextNormalizer


# Official text of the Latvian national anthem, as required by the citizenship exam
NATIONAL_ANTHEM_LINES: Tuple[str, ...] = (
    "Dievs, svētī Latviju,",
    "Mūs' dārgo tēviju,",
    "Svētī jel Latviju,",
    "Ak, svētī jel to!",
    "Kur latvju meitas zied,",
    "Kur latvju dēli dzied,",
    "Laid mums tur laimē diet,",
    "Mūs' Latvijā!",
)

# The stanza break sits after the fourth line
NATIONAL_ANTHEM_STANZA_BREAKS: Tuple[int, ...] = (4,)


class PreparedReference(BaseModel):
    """
    Reference text normalized under one set of options.

    Attributes:
        normalized: Normalized reference characters
        boundaries: Half-open (start, end) index range of each line in ``normalized``
    """
    model_config = ConfigDict(frozen=True)

    normalized: NormalizedText
    boundaries: Tuple[Tuple[int, int], ...] = Field(..., min_length=1)


class ReferenceText:
    """
    Ordered, immutable sequence of non-empty reference lines.

    Validated at construction; a malformed reference is a configuration error
    and raises ReferenceTextError immediately rather than during scoring.
    """

    def __init__(
        self,
        lines: Iterable[str],
        stanza_breaks: Sequence[int] = (),
        expected_line_count: Optional[int] = None
    ):
        """
        Initialize reference text.

        Args:
            lines: Reference lines in order
            stanza_breaks: Line counts after which a blank stanza line sits
            expected_line_count: Required number of lines (default: from settings)

        Raises:
            ReferenceTextError: If the lines are missing, blank or malformed
        """
        if lines is None:
            raise ReferenceTextError("Reference text has no lines")
        lines = tuple(lines)
        if expected_line_count is None:
            expected_line_count = settings.expected_line_count

        if not lines:
            raise ReferenceTextError("Reference text has no lines")
        if len(lines) != expected_line_count:
            raise ReferenceTextError(
                f"Reference text must have {expected_line_count} lines",
                detail=f"got {len(lines)}"
            )
        for number, line in enumerate(lines, start=1):
            if not isinstance(line, str):
                raise ReferenceTextError(f"Reference line {number} is not a string")
            if not line.strip():
                raise ReferenceTextError(f"Reference line {number} is empty")
            if any(char in line for char in ("\n", "\r")):
                raise ReferenceTextError(f"Reference line {number} contains a line break")
            if SENTINEL_CHAR in line:
                raise ReferenceTextError(
                    f"Reference line {number} contains the replacement character"
                )

        breaks = tuple(sorted(set(stanza_breaks)))
        for position in breaks:
            if not 0 < position < len(lines):
                raise ReferenceTextError(
                    f"Stanza break after line {position} is out of range"
                )

        self._lines = lines
        self._stanza_breaks = breaks
        self._version = hashlib.sha256(LINE_SEPARATOR.join(lines).encode("utf-8")).hexdigest()

    @classmethod
    def from_text(cls, raw: str, expected_line_count: Optional[int] = None) -> "ReferenceText":
        """
        Build a reference from multi-line text.

        Blank lines are not reference lines; each blank run is recorded as a
        stanza break after the preceding line.
        """
        if not isinstance(raw, str) or not raw.strip():
            raise ReferenceTextError("Reference text is empty")

        lines = []
        breaks = []
        for raw_line in raw.splitlines():
            if raw_line.strip():
                lines.append(raw_line.strip())
            elif lines and (not breaks or breaks[-1] != len(lines)):
                breaks.append(len(lines))
        # A trailing blank run is not a stanza break
        breaks = [position for position in breaks if position < len(lines)]
        return cls(lines, stanza_breaks=breaks, expected_line_count=expected_line_count)

    @property
    def lines(self) -> Tuple[str, ...]:
        return self._lines

    @property
    def stanza_breaks(self) -> Tuple[int, ...]:
        return self._stanza_breaks

    @property
    def version(self) -> str:
        """SHA-256 of the lines; identifies the reference in cache keys and logs."""
        return self._version

    @property
    def text(self) -> str:
        """Lines joined by single line separators (the scored form)."""
        return LINE_SEPARATOR.join(self._lines)

    def display_text(self) -> str:
        """Lines with a blank line at each stanza break."""
        parts = []
        for number, line in enumerate(self._lines, start=1):
            parts.append(line)
            if number in self._stanza_breaks:
                parts.append("")
        return LINE_SEPARATOR.join(parts)

    def prepare(self, text_normalizer: TextNormalizer) -> PreparedReference:
        """
        Normalize the reference and locate its line boundaries.

        Each line is normalized on its own so that line structure survives
        any whitespace policy.

        Raises:
            ReferenceTextError: If a line normalizes to nothing
        """
        chars = []
        originals = []
        offsets = []
        boundaries = []
        line_start_offset = 0
        for number, line in enumerate(self._lines, start=1):
            normalized_line = text_normalizer.normalize(line)
            if not normalized_line.chars:
                raise ReferenceTextError(f"Reference line {number} normalizes to empty text")
            if number > 1:
                chars.append(LINE_SEPARATOR)
                originals.append(LINE_SEPARATOR)
                offsets.append(line_start_offset - 1)
            start = len(chars)
            chars.extend(normalized_line.chars)
            originals.extend(normalized_line.originals)
            offsets.extend(line_start_offset + offset for offset in normalized_line.offsets)
            boundaries.append((start, len(chars)))
            line_start_offset += len(line) + 1

        normalized = NormalizedText(
            chars="".join(chars),
            originals="".join(originals),
            offsets=tuple(offsets),
            source_length=len(self.text)
        )
        return PreparedReference(normalized=normalized, boundaries=tuple(boundaries))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ReferenceText):
            return NotImplemented
        return self._lines == other._lines and self._stanza_breaks == other._stanza_breaks

    def __hash__(self) -> int:
        return hash((self._lines, self._stanza_breaks))

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self) -> str:
        return f"ReferenceText(lines={len(self._lines)}, version={self._version[:12]})"


# Shared read-only constant
NATIONAL_ANTHEM = ReferenceText(NATIONAL_ANTHEM_LINES, stanza_breaks=NATIONAL_ANTHEM_STANZA_BREAKS)
