"""Data models for engine tunables."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_STOP_WORDS: tuple[str, ...] = (
    "the",
    "a",
    "an",
    "and",
    "or",
    "to",
    "of",
    "in",
    "for",
    "on",
    "with",
    "by",
    "be",
    "is",
    "are",
    "as",
    "at",
    "from",
    "it",
    "this",
    "that",
    "these",
    "those",
)


class ExcerptSettings(BaseModel):
    """Sizes and limits used by excerpt selection."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    short_circuit_chars: int = Field(default=6000, ge=0)
    chunk_chars: int = Field(default=2500, gt=0)
    max_excerpt_chars: int = Field(default=4000, gt=0)
    intro_outro_chars: int = Field(default=1200, gt=0)
    overlap_sample_chars: int = Field(default=80, gt=0)
    max_keywords: int = Field(default=24, ge=0)
    min_keyword_length: int = Field(default=3, ge=1)
    stop_words: frozenset[str] = Field(default_factory=lambda: frozenset(DEFAULT_STOP_WORDS))


class AttemptBudget(BaseModel):
    """Excerpt budget for one revision attempt."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_sections: int = Field(gt=0)
    include_intro_outro: bool


class EnginePolicy(BaseModel):
    """Engine policy loaded from YAML.

    Rules:
    - exactly two attempts run: ``first_attempt`` then ``retry_attempt``
    - ``retry_attempt`` is expected to widen the context, never shrink it
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    excerpts: ExcerptSettings = Field(default_factory=ExcerptSettings)
    first_attempt: AttemptBudget = AttemptBudget(max_sections=3, include_intro_outro=False)
    retry_attempt: AttemptBudget = AttemptBudget(max_sections=6, include_intro_outro=True)
    whitespace_tolerant_anchors: bool = False
