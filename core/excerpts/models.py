"""Section views produced while selecting excerpts."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Section:
    """Contiguous character range of a document with its label."""

    index: int
    header: str
    start: int
    end: int
    content: str


@dataclass(frozen=True)
class ScoredSection:
    """Section paired with its relevance score for one instruction."""

    section: Section
    score: int
