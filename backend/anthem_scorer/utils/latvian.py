"""
Latvian language tables and character helpers.

The Latvian alphabet has 33 letters, 11 of which carry a diacritic
(macron, caron or cedilla). The tables here drive diacritic-aware error
classification and the input-variation cleanup done during normalization.
"""

from typing import Dict, List, Tuple


LATVIAN_DIACRITICS: Tuple[str, ...] = ("ā", "č", "ē", "ģ", "ī", "ķ", "ļ", "ņ", "š", "ū", "ž")

LATVIAN_BASE_LETTERS: Tuple[str, ...] = ("a", "c", "e", "g", "i", "k", "l", "n", "s", "u", "z")

LATVIAN_ALPHABET: Tuple[str, ...] = (
    "a", "ā", "b", "c", "č", "d", "e", "ē", "f", "g", "ģ", "h", "i", "ī", "j", "k", "ķ",
    "l", "ļ", "m", "n", "ņ", "o", "p", "r", "s", "š", "t", "u", "ū", "v", "z", "ž",
)

# Both cases, built from the lowercase pairs
DIACRITIC_TO_BASE: Dict[str, str] = {}
for _diacritic, _base in zip(LATVIAN_DIACRITICS, LATVIAN_BASE_LETTERS):
    DIACRITIC_TO_BASE[_diacritic] = _base
    DIACRITIC_TO_BASE[_diacritic.upper()] = _base.upper()

# Single characters produced by autocorrect or non-Baltic keyboard layouts
AUTOCORRECT_MAPPINGS: Dict[str, str] = {
    "â": "ā", "ê": "ē", "î": "ī", "ô": "ō", "û": "ū",
    "à": "ā", "è": "ē", "ì": "ī", "ù": "ū",
    "Â": "Ā", "Ê": "Ē", "Î": "Ī", "Ô": "Ō", "Û": "Ū",
    "À": "Ā", "È": "Ē", "Ì": "Ī", "Ù": "Ū",
}

# Two-character notations used by some input methods
INPUT_METHOD_MAPPINGS: Dict[str, str] = {
    "a:": "ā", "e:": "ē", "i:": "ī", "u:": "ū",
    "A:": "Ā", "E:": "Ē", "I:": "Ī", "U:": "Ū",
    "c^": "č", "g^": "ģ", "k^": "ķ", "l^": "ļ", "n^": "ņ", "s^": "š", "z^": "ž",
    "C^": "Č", "G^": "Ģ", "K^": "Ķ", "L^": "Ļ", "N^": "Ņ", "S^": "Š", "Z^": "Ž",
}

# Punctuation that may appear in a well-formed transcription
ALLOWED_PUNCTUATION = set(".,!?;:'\"()-–—’")


def is_latvian_letter(char: str) -> bool:
    """Check if a single character is in the Latvian alphabet (either case)."""
    if not char or len(char) != 1:
        return False
    return char.lower() in LATVIAN_ALPHABET


def is_latvian_diacritic(char: str) -> bool:
    """Check if a single character is one of the 11 Latvian diacritic letters."""
    if not char or len(char) != 1:
        return False
    return char.lower() in LATVIAN_DIACRITICS


def is_latvian_base_letter(char: str) -> bool:
    """Check if a single character is a base letter that has a diacritic variant."""
    if not char or len(char) != 1:
        return False
    return char.lower() in LATVIAN_BASE_LETTERS


def get_base_letter(char: str) -> str:
    """
    Get the base letter for a character.

    Args:
        char: Character, possibly with a Latvian diacritic

    Returns:
        Base letter, or the character unchanged if it has no diacritic
    """
    if not char:
        return ""
    return DIACRITIC_TO_BASE.get(char, char)


def is_diacritic_loss(expected: str, actual: str) -> bool:
    """
    Check whether ``actual`` is ``expected`` with its diacritic dropped.

    Case is ignored so "Ā" typed as "a" still counts as a lost macron.

    Args:
        expected: Reference character
        actual: Submitted character

    Returns:
        True if expected is a Latvian diacritic letter and actual its base letter
    """
    if not is_latvian_diacritic(expected) or not is_latvian_base_letter(actual):
        return False
    return get_base_letter(expected.lower()) == actual.lower()


def remove_latvian_diacritics(text: str) -> str:
    """Replace every Latvian diacritic letter with its base letter."""
    if not text:
        return ""
    return "".join(DIACRITIC_TO_BASE.get(char, char) for char in text)


def count_latvian_diacritics(text: str) -> Dict[str, object]:
    """
    Count Latvian diacritic letters in text.

    Args:
        text: Text to analyze

    Returns:
        Dict with 'total' and 'by_character' (lowercased letter -> count)
    """
    by_character: Dict[str, int] = {}
    for char in text or "":
        if is_latvian_diacritic(char):
            key = char.lower()
            by_character[key] = by_character.get(key, 0) + 1
    return {"total": sum(by_character.values()), "by_character": by_character}


def find_invalid_characters(text: str) -> List[str]:
    """
    Find characters that are neither Latvian letters, whitespace nor allowed punctuation.

    Args:
        text: Text to check

    Returns:
        Unique offending characters in first-seen order
    """
    invalid: List[str] = []
    for char in text or "":
        if char.isspace() or char in ALLOWED_PUNCTUATION or is_latvian_letter(char):
            continue
        if char not in invalid:
            invalid.append(char)
    return invalid
