"""Instruction tokenization for excerpt scoring."""

from __future__ import annotations

import re
from collections.abc import Collection

from core.config.models import DEFAULT_STOP_WORDS

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\s\-.#]")
_SECTION_NUMBER = re.compile(r"\bsection\s+(\d+)\b")
_BARE_NUMBER = re.compile(r"(?<![\w.])(\d{1,3})(?!\w)")


def tokenize_instruction(
    instruction: str,
    *,
    stop_words: Collection[str] = DEFAULT_STOP_WORDS,
    min_length: int = 3,
    max_keywords: int = 24,
) -> list[str]:
    """Return deduplicated lowercase keywords in first-seen order."""

    cleaned = _DISALLOWED_CHARS.sub("", instruction.lower())
    keywords: list[str] = []
    seen: set[str] = set()
    for token in cleaned.split():
        if len(token) < min_length or token in stop_words or token in seen:
            continue
        seen.add(token)
        keywords.append(token)
        if len(keywords) >= max_keywords:
            break
    return keywords


def extract_number_hints(instruction: str) -> list[str]:
    """Return clause numbers referenced by the instruction.

    Both ``section 12`` and a bare ``12`` yield ``"12"``. Numbers longer
    than three digits, and digits inside words such as ``2nd`` or ``v3``,
    are not treated as clause references.
    """

    lowered = instruction.lower()
    hints: list[str] = []
    for match in _SECTION_NUMBER.finditer(lowered):
        _append_unique(hints, match.group(1))
    for match in _BARE_NUMBER.finditer(lowered):
        _append_unique(hints, match.group(1))
    return hints


def _append_unique(items: list[str], value: str) -> None:
    if value not in items:
        items.append(value)
