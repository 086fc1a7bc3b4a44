"""Load documents as Markdown-ish text and render revised text back to .docx."""

from __future__ import annotations

import re
from pathlib import Path

from docx import Document
from docx.document import Document as DocxDocument

TEXT_SUFFIXES = {".md", ".markdown", ".txt"}
DOCX_SUFFIX = ".docx"

_HEADING_STYLE = re.compile(r"^Heading ([1-3])$")
_MARKDOWN_HEADING = re.compile(r"^(#{1,3}) (.*)$")


def load_document_text(path: Path) -> str:
    """Read ``path`` as text; ``.docx`` headings become ``#``/``##``/``###`` lines."""

    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        return path.read_text(encoding="utf-8")
    if suffix == DOCX_SUFFIX:
        return docx_to_text(Document(str(path)))
    raise ValueError(f"Unsupported document type: {path.suffix or '<none>'}")


def docx_to_text(document: DocxDocument) -> str:
    """Flatten body paragraphs to one line each, tables are skipped."""

    lines: list[str] = []
    for paragraph in document.paragraphs:
        style_name = paragraph.style.name if paragraph.style is not None else ""
        heading = _HEADING_STYLE.match(style_name or "")
        if heading:
            lines.append("#" * int(heading.group(1)) + " " + paragraph.text)
        else:
            lines.append(paragraph.text)
    return "\n".join(lines)


def build_docx(text: str) -> DocxDocument:
    """Render text into a new document, mapping ``#`` lines to heading styles."""

    document = Document()
    for line in text.split("\n"):
        heading = _MARKDOWN_HEADING.match(line)
        if heading:
            document.add_heading(heading.group(2), level=len(heading.group(1)))
        else:
            document.add_paragraph(line)
    return document
