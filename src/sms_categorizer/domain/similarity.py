"""
String helpers shared by the categorization layers and the pattern engines.

All comparisons are case-insensitive. Edit distances come from rapidfuzz.
"""
import math
import re
from difflib import SequenceMatcher

from rapidfuzz.distance import Levenshtein

_LEGAL_SUFFIX_RE = re.compile(r"\s+(S\.?A\.?S?|LTDA\.?|INC\.?|LLC\.?|CO\.?)$")
_WHITESPACE_RE = re.compile(r"\s+")


def levenshtein_distance(s1: str, s2: str) -> int:
    return Levenshtein.distance(s1.lower(), s2.lower())


def similarity(s1: str, s2: str) -> float:
    """1 - distance / longest length; 1.0 for two empty strings."""
    if not s1 and not s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    max_len = max(len(s1), len(s2))
    return clamp_confidence(1.0 - levenshtein_distance(s1, s2) / max_len)


def contains_ignore_case(text: str, fragment: str) -> bool:
    return fragment.lower() in text.lower()


def normalize_merchant_name(merchant_name: str) -> str:
    """
    Uppercase, drop a trailing legal-entity suffix (S.A., SAS, LTDA, INC, LLC, CO)
    and collapse whitespace.
    """
    normalized = _LEGAL_SUFFIX_RE.sub("", merchant_name.upper())
    return _WHITESPACE_RE.sub(" ", normalized).strip()


def longest_common_substring(s1: str, s2: str) -> str:
    """
    Longest run of characters shared by both strings, compared case-insensitively.

    The result is sliced from ``s1`` so it keeps s1's casing. On ties the run
    that starts earliest in ``s1`` wins.
    """
    if not s1 or not s2:
        return ""

    # Per-character lowering keeps indices aligned with the original string.
    a = [char.lower() for char in s1]
    b = [char.lower() for char in s2]
    matcher = SequenceMatcher(None, a, b, autojunk=False)
    block = matcher.find_longest_match(0, len(a), 0, len(b))
    if block.size == 0:
        return ""
    return s1[block.a:block.a + block.size]


def clamp_confidence(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return min(1.0, max(0.0, value))
