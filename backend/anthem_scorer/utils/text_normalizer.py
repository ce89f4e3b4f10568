"""Deterministic, offset-preserving text normalization for anthem scoring."""

import unicodedata
from typing import Any, List, Optional, Tuple

from anthem_scorer.config import settings
from anthem_scorer.core.schemas import LINE_SEPARATOR, SENTINEL_CHAR, NormalizedText
from anthem_scorer.utils.latvian import AUTOCORRECT_MAPPINGS, INPUT_METHOD_MAPPINGS

# Characters str.splitlines() treats as line boundaries
LINE_BREAKS = frozenset("\n\r\v\f\x1c\x1d\x1e\x85\u2028\u2029")

# (comparison char, original char, raw offset)
_Item = Tuple[str, str, int]


class TextNormalizer:
    """
    Canonicalizes raw text into a comparable form without losing track of
    where each character came from.

    Transformations (order matters for determinism):
    1. Decode bytes, replace invalid sequences and lone surrogates with U+FFFD
    2. Remove zero-width and control characters (whitespace is kept)
    3. Unicode NFC, one combining cluster at a time
    4. Latvian autocorrect cleanup (and input-method digraphs if enabled)
    5. Lowercase, unless case-sensitive
    6. Whitespace policy: collapse runs, trim lines, drop blank lines
    7. Truncate to the length limit, if one is given

    Never raises for any input.
    """

    def __init__(
        self,
        case_sensitive: bool = False,
        normalize_whitespace: bool = True,
        expand_input_digraphs: Optional[bool] = None
    ):
        self.case_sensitive = case_sensitive
        self.normalize_whitespace = normalize_whitespace
        if expand_input_digraphs is None:
            expand_input_digraphs = settings.expand_input_digraphs
        self.expand_input_digraphs = expand_input_digraphs

    def normalize(self, text: Any, max_chars: Optional[int] = None) -> NormalizedText:
        """
        Normalize text for character comparison.

        Args:
            text: Raw text (str, UTF-8 bytes or None)
            max_chars: Optional limit on the normalized length

        Returns:
            NormalizedText with per-character offsets into the decoded text
        """
        decoded = self.decode(text)
        encoding_issues = decoded.count(SENTINEL_CHAR)

        pairs = [
            (char, offset) for offset, char in enumerate(decoded)
            if char.isspace() or unicodedata.category(char) not in ("Cf", "Cc")
        ]
        pairs = self._compose(pairs)
        pairs = self._apply_input_variations(pairs)

        items: List[_Item] = []
        for char, offset in pairs:
            items.append((self._fold(char), char, offset))

        if self.normalize_whitespace:
            items = self._normalize_whitespace(items)

        truncated = False
        if max_chars is not None and len(items) > max_chars:
            items = items[:max_chars]
            truncated = True

        return NormalizedText(
            chars="".join(item[0] for item in items),
            originals="".join(item[1] for item in items),
            offsets=tuple(item[2] for item in items),
            source_length=len(decoded),
            encoding_issues=encoding_issues,
            truncated=truncated
        )

    @staticmethod
    def decode(text: Any) -> str:
        """
        Turn caller input into a well-formed str.

        Undecodable bytes and lone surrogates become U+FFFD so they count as
        mismatches instead of failing the call.
        """
        if text is None:
            return ""
        if isinstance(text, (bytes, bytearray)):
            return bytes(text).decode("utf-8", errors="replace")
        if not isinstance(text, str):
            text = str(text)
        if any(0xD800 <= ord(char) <= 0xDFFF for char in text):
            text = "".join(
                SENTINEL_CHAR if 0xD800 <= ord(char) <= 0xDFFF else char
                for char in text
            )
        return text

    @staticmethod
    def _compose(pairs: List[Tuple[str, int]]) -> List[Tuple[str, int]]:
        """NFC each base character with its combining marks; results keep the base offset."""
        composed: List[Tuple[str, int]] = []
        i = 0
        while i < len(pairs):
            start_offset = pairs[i][1]
            cluster = pairs[i][0]
            i += 1
            while i < len(pairs) and unicodedata.combining(pairs[i][0]):
                cluster += pairs[i][0]
                i += 1
            for char in unicodedata.normalize("NFC", cluster):
                composed.append((char, start_offset))
        return composed

    def _apply_input_variations(self, pairs: List[Tuple[str, int]]) -> List[Tuple[str, int]]:
        result: List[Tuple[str, int]] = []
        i = 0
        while i < len(pairs):
            char, offset = pairs[i]
            if self.expand_input_digraphs and i + 1 < len(pairs):
                digraph = char + pairs[i + 1][0]
                if digraph in INPUT_METHOD_MAPPINGS:
                    result.append((INPUT_METHOD_MAPPINGS[digraph], offset))
                    i += 2
                    continue
            result.append((AUTOCORRECT_MAPPINGS.get(char, char), offset))
            i += 1
        return result

    def _fold(self, char: str) -> str:
        if self.case_sensitive:
            return char
        lowered = char.lower()
        # Keep the mapping one-to-one (e.g. "İ".lower() has two code points)
        return lowered if len(lowered) == 1 else char

    @staticmethod
    def _normalize_whitespace(items: List[_Item]) -> List[_Item]:
        """
        Collapse whitespace runs to one space, trim every line, drop blank
        lines and join the remaining lines with a single line separator.
        """
        lines: List[Tuple[List[_Item], Optional[int]]] = []
        current: List[_Item] = []
        i = 0
        while i < len(items):
            char, original, offset = items[i]
            if original in LINE_BREAKS:
                lines.append((current, offset))
                current = []
                # "\r\n" is one break
                if original == "\r" and i + 1 < len(items) and items[i + 1][1] == "\n":
                    i += 1
            else:
                current.append(items[i])
            i += 1
        lines.append((current, None))

        result: List[_Item] = []
        pending_break: Optional[int] = None
        for line_items, break_offset in lines:
            collapsed: List[_Item] = []
            for char, original, offset in line_items:
                if original.isspace():
                    if collapsed and collapsed[-1][1] == " ":
                        continue
                    collapsed.append((" ", " ", offset))
                else:
                    collapsed.append((char, original, offset))
            while collapsed and collapsed[0][1] == " ":
                collapsed.pop(0)
            while collapsed and collapsed[-1][1] == " ":
                collapsed.pop()

            if collapsed:
                if pending_break is not None and result:
                    result.append((LINE_SEPARATOR, LINE_SEPARATOR, pending_break))
                result.extend(collapsed)
                pending_break = break_offset

        return result


# Singleton instance with default settings
normalizer = TextNormalizer()
