"""Whole-section edits addressed by header key instead of anchors."""

from __future__ import annotations

import re
from collections.abc import Sequence

from core.sections.models import DocumentSection, SectionEdit, SectionEditResult

_HEADER_LINE = re.compile(r"^(## .+)$", re.MULTILINE)
_NON_WORD = re.compile(r"[^\w\s]")
_LEADING_NUMBER = re.compile(r"^(\d+)")


def normalize_header_key(header: str) -> str:
    """``"## 8. Fees and Payment"`` -> ``"8 fees and payment"``."""

    stripped = re.sub(r"^##\s*", "", header)
    return _NON_WORD.sub("", stripped.lower()).strip()


def parse_document_sections(text: str) -> list[DocumentSection]:
    """Split ``text`` into ``##`` sections whose contents rebuild the document."""

    matches = list(_HEADER_LINE.finditer(text))
    if not matches:
        return [DocumentSection(header="## Document", header_key="document", content=text, start=0)]

    sections: list[DocumentSection] = []
    first_start = matches[0].start()
    if first_start > 0:
        preamble = text[:first_start].strip()
        if preamble:
            sections.append(
                DocumentSection(
                    header="## Preamble",
                    header_key="preamble",
                    content=preamble + "\n\n",
                    start=0,
                )
            )

    for position, match in enumerate(matches):
        start = match.start()
        end = matches[position + 1].start() if position + 1 < len(matches) else len(text)
        header = match.group(1)
        sections.append(
            DocumentSection(
                header=header,
                header_key=normalize_header_key(header),
                content=text[start:end],
                start=start,
            )
        )
    return sections


def apply_section_edits(text: str, edits: Sequence[SectionEdit]) -> SectionEditResult:
    """Apply section edits in order against the evolving section list."""

    sections = parse_document_sections(text)
    failures: list[str] = []
    applied_count = 0

    for edit in edits:
        key = normalize_header_key(edit.header_key)
        position = _find_section(sections, key)
        if position is None:
            failures.append(f'Section not found: "{edit.header_key}"')
            continue

        if edit.action == "replace":
            content = _terminate(edit.new_content)
            sections[position] = sections[position].model_copy(update={"content": content})
        elif edit.action == "insert_after":
            content = _terminate(edit.new_content)
            header_match = _HEADER_LINE.search(content)
            header = header_match.group(1) if header_match else "## New Section"
            sections.insert(
                position + 1,
                DocumentSection(header=header, header_key="inserted", content=content, start=-1),
            )
        else:
            del sections[position]
        applied_count += 1

    return SectionEditResult(
        text="".join(section.content for section in sections),
        applied_count=applied_count,
        failures=failures,
    )


def _find_section(sections: list[DocumentSection], key: str) -> int | None:
    if not key:
        return None
    key_number = _leading_number(key)
    for position, section in enumerate(sections):
        if section.header_key == key:
            return position
        if section.header_key and (section.header_key in key or key in section.header_key):
            return position
        if key_number is not None and key_number == _leading_number(section.header_key):
            return position
    return None


def _leading_number(key: str) -> str | None:
    match = _LEADING_NUMBER.match(key)
    return match.group(1) if match else None


def _terminate(content: str) -> str:
    return content.strip() + "\n\n"
