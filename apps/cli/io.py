"""CLI I/O helpers for atomic output writing."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from docx.document import Document as DocxDocument

from core.patches.parsing import extract_json_object


@dataclass(frozen=True)
class OutputPaths:
    """Fixed output artifact paths for a single run."""

    text: Path
    report: Path
    diagnostics: Path
    docx: Path


def build_output_paths(out_dir: Path) -> OutputPaths:
    """Build fixed output file paths under out_dir."""

    return OutputPaths(
        text=out_dir / "out.txt",
        report=out_dir / "out.patch_report.json",
        diagnostics=out_dir / "out.revision_diagnostics.json",
        docx=out_dir / "out.docx",
    )


def existing_output_files(paths: OutputPaths) -> list[Path]:
    """Return existing output files among fixed artifact paths."""

    candidates = [paths.text, paths.report, paths.diagnostics, paths.docx]
    return [path for path in candidates if path.exists()]


def write_text_output_atomic(paths: OutputPaths, text: str, report: dict[str, Any]) -> None:
    """Write revised text and its JSON report using temporary files + replace."""

    paths.text.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_text(paths.text, text)
    _atomic_write_json(paths.report, report)


def write_diagnostics_atomic(paths: OutputPaths, payload: dict[str, Any]) -> None:
    """Write revision diagnostics JSON atomically."""

    paths.diagnostics.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_json(paths.diagnostics, payload)


def write_docx_atomic(path: Path, document: DocxDocument) -> None:
    """Write a rendered .docx atomically."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, raw_tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f"{path.name}.",
        suffix=".tmp",
    )
    os.close(fd)
    tmp_path = Path(raw_tmp_path)

    try:
        document.save(str(tmp_path))
        tmp_path.replace(path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise


def read_json_payload(path: Path) -> Any:
    """Read a JSON file, tolerating model output wrapped in prose or code fences."""

    raw = path.read_text(encoding="utf-8")
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        extracted = extract_json_object(raw)
        if extracted is None:
            raise ValueError(f"No JSON object found in {path}") from None
        return extracted


def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    tmp_path.replace(path)


def _atomic_write_text(path: Path, text: str) -> None:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
        newline="",
    ) as tmp:
        tmp_path = Path(tmp.name)
        tmp.write(text)

    tmp_path.replace(path)
