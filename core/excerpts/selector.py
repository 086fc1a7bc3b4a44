"""Excerpt selection: pick the sections an instruction most likely refers to."""

from __future__ import annotations

import re

from core.config.models import ExcerptSettings
from core.excerpts.keywords import extract_number_hints, tokenize_instruction
from core.excerpts.models import ScoredSection, Section
from core.excerpts.sections import split_sections

HEADER_KEYWORD_POINTS = 4
BODY_KEYWORD_CAP = 10
HEADER_NUMBER_POINTS = 6
BODY_NUMBER_POINTS = 4


def select_excerpts(
    full_text: str,
    instruction: str,
    max_sections: int = 3,
    include_intro_outro: bool = False,
    settings: ExcerptSettings | None = None,
) -> list[str]:
    """Return a short, document-ordered list of excerpts for ``instruction``.

    Documents no longer than ``settings.short_circuit_chars`` are returned
    whole as the single excerpt. Otherwise sections are scored against the
    instruction keywords and clause numbers, the best ones are picked along
    with their neighbours, and optional intro/outro slices are added around
    them. Every excerpt is capped to ``settings.max_excerpt_chars``.
    """

    settings = settings or ExcerptSettings()
    if len(full_text) <= settings.short_circuit_chars:
        return [full_text]

    sections = split_sections(full_text, settings.chunk_chars)
    ranked = rank_sections(sections, instruction, settings)
    chosen = sorted(_pick_indices(ranked, max_sections))
    excerpts = [sections[index].content[: settings.max_excerpt_chars] for index in chosen]

    if include_intro_outro:
        excerpts = _with_intro_outro(full_text, excerpts, chosen, sections, settings)
    return excerpts


def rank_sections(
    sections: list[Section],
    instruction: str,
    settings: ExcerptSettings | None = None,
) -> list[ScoredSection]:
    """Score every section and order them best first, ties by position."""

    settings = settings or ExcerptSettings()
    keywords = tokenize_instruction(
        instruction,
        stop_words=settings.stop_words,
        min_length=settings.min_keyword_length,
        max_keywords=settings.max_keywords,
    )
    number_hints = extract_number_hints(instruction)
    scored = [
        ScoredSection(section=section, score=score_section(section, keywords, number_hints))
        for section in sections
    ]
    scored.sort(key=lambda item: (-item.score, item.section.index))
    return scored


def score_section(section: Section, keywords: list[str], number_hints: list[str]) -> int:
    """Score one section against instruction keywords and clause numbers."""

    header = section.header.lower()
    body = _section_body(section).lower()
    score = 0

    for keyword in keywords:
        if keyword in header:
            score += HEADER_KEYWORD_POINTS
        occurrences = len(re.findall(_word_pattern(keyword), body))
        score += min(BODY_KEYWORD_CAP, occurrences)

    for number in number_hints:
        if number in header:
            score += HEADER_NUMBER_POINTS
        if re.search(_clause_number_pattern(number), body):
            score += BODY_NUMBER_POINTS

    score += max(0, 2 - section.index // 3)
    return score


def _pick_indices(ranked: list[ScoredSection], max_sections: int) -> list[int]:
    max_sections = max(1, max_sections)
    total = len(ranked)
    chosen: list[int] = []

    def add(index: int) -> None:
        if 0 <= index < total and index not in chosen and len(chosen) < max_sections:
            chosen.append(index)

    for item in ranked:
        if len(chosen) >= max_sections:
            break
        if item.score <= 0 and chosen:
            break
        index = item.section.index
        first_pick = not chosen
        add(index)
        if item.score > 0 or first_pick:
            add(index - 1)
            add(index + 1)
    return chosen


def _with_intro_outro(
    full_text: str,
    excerpts: list[str],
    chosen: list[int],
    sections: list[Section],
    settings: ExcerptSettings,
) -> list[str]:
    # Only the first and last sections can cover the intro and outro, and only
    # as truncated; ``chosen`` is sorted and aligned with ``excerpts``.
    size = min(settings.intro_outro_chars, settings.max_excerpt_chars)
    intro = full_text[:size]
    outro = full_text[-size:]
    sample = settings.overlap_sample_chars

    intro_covered = bool(chosen) and chosen[0] == 0 and excerpts[0].startswith(intro[:sample])
    outro_covered = (
        bool(chosen)
        and chosen[-1] == len(sections) - 1
        and len(sections[-1].content) <= settings.max_excerpt_chars
        and excerpts[-1].endswith(outro[-sample:])
    )

    result = list(excerpts)
    if not intro_covered:
        result.insert(0, intro)
    if not outro_covered:
        result.append(outro)
    return result


def _section_body(section: Section) -> str:
    if section.header.startswith("## "):
        _header_line, _sep, rest = section.content.partition("\n")
        return rest
    return section.content


def _word_pattern(keyword: str) -> str:
    return rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])"


def _clause_number_pattern(number: str) -> str:
    escaped = re.escape(number)
    return rf"(?:[\n#][ \t]*{escaped}(?!\d)|(?<!\d){escaped}\.)"
