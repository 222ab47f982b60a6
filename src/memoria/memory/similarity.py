"""Lexical duplicate detection for extracted facts.

This is a cheap, high-recall check: two facts are "the same" when one
normalized string contains the other. It prefers suppressing a near
duplicate over storing it, and accepts that short distinct facts may
occasionally collide.
"""

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")


def normalize_fact(text: str) -> str:
    """Normalize fact text for comparison.

    NFKC-folds full-width forms, case-folds, and removes all whitespace so
    that "喜欢 咖啡" and "喜欢咖啡" compare equal.
    """
    folded = unicodedata.normalize("NFKC", text).casefold()
    return _WHITESPACE.sub("", folded)


def is_similar(a: str, b: str) -> bool:
    """Whether two facts should be treated as duplicates.

    Symmetric, and true for any two strings that normalize identically.
    A fact that normalizes to nothing only matches another empty fact;
    otherwise the empty string would be a substring of everything.
    """
    norm_a = normalize_fact(a)
    norm_b = normalize_fact(b)
    if not norm_a or not norm_b:
        return norm_a == norm_b
    return norm_a in norm_b or norm_b in norm_a


def find_similar(content: str, existing: list[str]) -> str | None:
    """Return the first existing fact similar to content, if any."""
    for candidate in existing:
        if is_similar(candidate, content):
            return candidate
    return None
