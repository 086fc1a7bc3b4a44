"""Document segmentation into header-delimited sections or fixed chunks."""

from __future__ import annotations

import re

from core.excerpts.models import Section

HEADER_PATTERN = re.compile(r"^## .+$", re.MULTILINE)
PREAMBLE_LABEL = "PREAMBLE"


def split_sections(text: str, chunk_chars: int = 2500) -> list[Section]:
    """Split ``text`` on level-2 Markdown headers, or into fixed chunks.

    Each header section runs from its header line (inclusive) to the next
    header (exclusive); the last one runs to the end of the text. Non-blank
    text ahead of the first header becomes a ``PREAMBLE`` section. Without
    any header the text is cut into ``chunk_chars`` pieces labelled
    ``CHUNK_1``, ``CHUNK_2`` and so on.
    """

    matches = list(HEADER_PATTERN.finditer(text))
    if not matches:
        return _split_chunks(text, chunk_chars)

    sections: list[Section] = []
    first_start = matches[0].start()
    if first_start > 0 and text[:first_start].strip():
        sections.append(
            Section(
                index=0,
                header=PREAMBLE_LABEL,
                start=0,
                end=first_start,
                content=text[:first_start],
            )
        )

    for position, match in enumerate(matches):
        start = match.start()
        end = matches[position + 1].start() if position + 1 < len(matches) else len(text)
        sections.append(
            Section(
                index=len(sections),
                header=match.group(0).strip(),
                start=start,
                end=end,
                content=text[start:end],
            )
        )
    return sections


def _split_chunks(text: str, chunk_chars: int) -> list[Section]:
    if chunk_chars <= 0:
        raise ValueError(f"chunk_chars must be positive, got {chunk_chars}")

    sections: list[Section] = []
    for start in range(0, len(text), chunk_chars):
        end = min(start + chunk_chars, len(text))
        sections.append(
            Section(
                index=len(sections),
                header=f"CHUNK_{len(sections) + 1}",
                start=start,
                end=end,
                content=text[start:end],
            )
        )
    return sections
