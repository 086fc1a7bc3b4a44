"""Anchor lookup shared by every patch operation."""

from __future__ import annotations

import re
from dataclasses import dataclass

EMPTY_ANCHOR = "Empty anchor/text"
ANCHOR_NOT_FOUND = "Anchor/text not found"
ANCHOR_NOT_UNIQUE = "Anchor/text is not unique"


class AnchorError(ValueError):
    """Raised when an anchor is empty, missing, or ambiguous."""


@dataclass(frozen=True)
class AnchorMatch:
    """Located anchor: where it starts and the exact text it covers."""

    index: int
    matched_text: str

    @property
    def end(self) -> int:
        return self.index + len(self.matched_text)


def count_occurrences(haystack: str, needle: str) -> int:
    """Count non-overlapping occurrences of ``needle``, scanning left to right."""

    if not needle:
        return 0
    count = 0
    index = haystack.find(needle)
    while index != -1:
        count += 1
        index = haystack.find(needle, index + len(needle))
    return count


def find_unique(haystack: str, needle: str, *, whitespace_tolerant: bool = False) -> AnchorMatch:
    """Locate the single occurrence of ``needle`` in ``haystack``.

    Raises ``AnchorError`` when the needle is empty, absent, or occurs more
    than once; the second occurrence is searched for after the end of the
    first, so ``"aa"`` is unique in ``"aaa"``. With ``whitespace_tolerant``
    an absent needle is retried with every whitespace run in it matching any
    whitespace run (or none) in the haystack; that match must be unique as
    well.
    """

    if not needle:
        raise AnchorError(EMPTY_ANCHOR)

    first = haystack.find(needle)
    if first != -1:
        if haystack.find(needle, first + len(needle)) != -1:
            raise AnchorError(ANCHOR_NOT_UNIQUE)
        return AnchorMatch(index=first, matched_text=needle)

    if whitespace_tolerant and needle.strip():
        return _find_unique_flexible(haystack, needle)
    raise AnchorError(ANCHOR_NOT_FOUND)


def _find_unique_flexible(haystack: str, needle: str) -> AnchorMatch:
    parts = [re.escape(part) for part in needle.strip().split()]
    pattern = re.compile(r"\s*".join(parts))
    matches = list(pattern.finditer(haystack))
    if not matches:
        raise AnchorError(ANCHOR_NOT_FOUND)
    if len(matches) > 1:
        raise AnchorError(ANCHOR_NOT_UNIQUE)
    match = matches[0]
    return AnchorMatch(index=match.start(), matched_text=match.group(0))
