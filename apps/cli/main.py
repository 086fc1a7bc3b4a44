"""Typer CLI entrypoint for docrevise-engine."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import typer

from apps.cli.format_human import render_apply_summary, render_revision_diagnostics
from apps.cli.io import (
    OutputPaths,
    build_output_paths,
    existing_output_files,
    read_json_payload,
    write_diagnostics_atomic,
    write_docx_atomic,
    write_text_output_atomic,
)
from core.ai.client import DEFAULT_TIMEOUT_SECONDS, HttpRevisionClient
from core.config.models import EnginePolicy
from core.config.policy_loader import load_policy
from core.documents.loader import build_docx, load_document_text
from core.excerpts.sections import split_sections
from core.excerpts.selector import rank_sections, select_excerpts
from core.orchestrator.models import RevisionTask
from core.orchestrator.revision import run_revision
from core.patches.applier import apply_patches
from core.patches.parsing import parse_patches
from core.sections.editor import apply_section_edits
from core.sections.models import SectionEdit
from core.utils.errors import RevisionFailedError, RevisionTransportError

app = typer.Typer(help="Document revision engine CLI", rich_markup_mode=None)


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("excerpts")
def excerpts_command(
    document: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    instruction: Annotated[str, typer.Option(...)],
    max_sections: Annotated[int, typer.Option(min=1)] = 3,
    intro_outro: Annotated[
        bool, typer.Option("--intro-outro", help="Add intro/outro slices around the picks.")
    ] = False,
    scores: Annotated[
        bool, typer.Option("--scores", help="Include per-section scores in the output.")
    ] = False,
    policy: Annotated[Path | None, typer.Option()] = None,
) -> None:
    """Print the excerpts that would be sent for an instruction, as JSON."""

    policy_model = _load_policy_or_exit(policy)
    text = _load_document_or_exit(document)
    settings = policy_model.excerpts
    payload: dict[str, Any] = {
        "excerpts": select_excerpts(
            text,
            instruction,
            max_sections=max_sections,
            include_intro_outro=intro_outro,
            settings=settings,
        )
    }
    if scores:
        ranked = rank_sections(split_sections(text, settings.chunk_chars), instruction, settings)
        payload["scores"] = [
            {"index": item.section.index, "header": item.section.header, "score": item.score}
            for item in ranked
        ]
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command("apply")
def apply_command(
    document: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    patches: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    out_dir: Annotated[Path, typer.Option()] = Path("."),
    whitespace_tolerant: Annotated[
        bool,
        typer.Option(
            "--whitespace-tolerant",
            help="Retry missing anchors with flexible whitespace matching.",
        ),
    ] = False,
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite outputs when they already exist.")
    ] = False,
    no_overwrite: Annotated[
        bool, typer.Option("--no-overwrite", help="Fail when outputs already exist.")
    ] = False,
) -> None:
    """Apply a patch list to a document and write out.txt plus a JSON report."""

    paths = build_output_paths(out_dir)
    _guard_overwrite(paths, force=force, no_overwrite=no_overwrite)

    try:
        text = load_document_text(document)
        raw = read_json_payload(patches)
        raw_items = raw.get("patches") if isinstance(raw, dict) else raw
        parsed = parse_patches(raw_items)
        result = apply_patches(text, parsed.patches, whitespace_tolerant=whitespace_tolerant)
        report = result.model_dump(mode="json", exclude={"text"})
        report["rejected"] = [item.model_dump(mode="json") for item in parsed.rejected]
        write_text_output_atomic(paths, result.text, report)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1) from exc

    typer.echo(render_apply_summary(result, parsed.rejected))
    if result.failures or parsed.rejected:
        typer.echo("WARNING: some patches were not applied")
        raise typer.Exit(code=2)
    typer.echo("INFO: success")


@app.command("sections")
def sections_command(
    document: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    edits: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    out_dir: Annotated[Path, typer.Option()] = Path("."),
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite outputs when they already exist.")
    ] = False,
    no_overwrite: Annotated[
        bool, typer.Option("--no-overwrite", help="Fail when outputs already exist.")
    ] = False,
) -> None:
    """Apply whole-section edits addressed by header key."""

    paths = build_output_paths(out_dir)
    _guard_overwrite(paths, force=force, no_overwrite=no_overwrite)

    try:
        text = load_document_text(document)
        raw = read_json_payload(edits)
        raw_items = raw.get("edits") if isinstance(raw, dict) else raw
        if not isinstance(raw_items, list):
            raise ValueError("edits must be a JSON list or an object with an 'edits' list")
        section_edits = [SectionEdit.model_validate(item) for item in raw_items]
        result = apply_section_edits(text, section_edits)
        write_text_output_atomic(paths, result.text, result.model_dump(mode="json", exclude={"text"}))
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1) from exc

    typer.echo(f"section_summary: applied={result.applied_count} failed={len(result.failures)}")
    for failure in result.failures:
        typer.echo(f"  {failure}")
    if result.failures:
        raise typer.Exit(code=2)
    typer.echo("INFO: success")


@app.command("run")
def run_command(
    document: Annotated[Path, typer.Option(..., exists=True, dir_okay=False, file_okay=True)],
    instruction: Annotated[str, typer.Option(...)],
    endpoint: Annotated[str, typer.Option(envvar="REVISE_AI_ENDPOINT_URL")],
    out_dir: Annotated[Path, typer.Option()] = Path("."),
    document_type: Annotated[str | None, typer.Option()] = None,
    original_prompt: Annotated[str | None, typer.Option()] = None,
    requires_signature: Annotated[bool, typer.Option("--requires-signature")] = False,
    timeout: Annotated[float, typer.Option(min=0.1)] = DEFAULT_TIMEOUT_SECONDS,
    policy: Annotated[Path | None, typer.Option()] = None,
    docx: Annotated[
        bool, typer.Option("--docx", help="Also write the revised document as out.docx.")
    ] = False,
    force: Annotated[
        bool, typer.Option("--force", help="Overwrite outputs when they already exist.")
    ] = False,
    no_overwrite: Annotated[
        bool, typer.Option("--no-overwrite", help="Fail when outputs already exist.")
    ] = False,
) -> None:
    """Run the two-attempt AI revision workflow against an endpoint."""

    paths = build_output_paths(out_dir)
    _guard_overwrite(paths, force=force, no_overwrite=no_overwrite)
    policy_model = _load_policy_or_exit(policy)
    text = _load_document_or_exit(document)

    task = RevisionTask(
        text=text,
        revision_prompt=instruction,
        document_type=document_type,
        original_prompt=original_prompt,
        requires_signature=requires_signature,
    )
    client = HttpRevisionClient(endpoint, timeout_seconds=timeout)

    try:
        outcome = asyncio.run(run_revision(task, client, policy_model))
    except RevisionFailedError as exc:
        typer.echo(f"ERROR: {exc}")
        typer.echo(render_revision_diagnostics(exc.diagnostics))
        _safe_write_diagnostics(paths, exc.diagnostics.model_dump(mode="json"))
        raise typer.Exit(code=3) from exc
    except RevisionTransportError as exc:
        typer.echo(f"ERROR(transport): {exc}")
        if exc.body_preview:
            typer.echo(f"response_preview: {exc.body_preview}")
        raise typer.Exit(code=4) from exc

    report = outcome.model_dump(mode="json", exclude={"text"})
    try:
        write_text_output_atomic(paths, outcome.text, report)
        if docx:
            write_docx_atomic(paths.docx, build_docx(outcome.text))
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: write output failed: {exc}")
        raise typer.Exit(code=1) from exc

    typer.echo(
        f"INFO: revised via {outcome.mode} after {len(outcome.attempts)} attempt(s), "
        f"applied={outcome.applied_count}"
    )
    typer.echo("INFO: success")


def _guard_overwrite(paths: OutputPaths, *, force: bool, no_overwrite: bool) -> None:
    if force and no_overwrite:
        typer.echo("ERROR: --force and --no-overwrite cannot be used together.")
        raise typer.Exit(code=1)

    existing = existing_output_files(paths)
    if existing and no_overwrite:
        typer.echo("ERROR: outputs already exist and --no-overwrite is enabled.")
        raise typer.Exit(code=1)
    if existing:
        names = ", ".join(path.name for path in existing)
        typer.echo(f"INFO: overwriting existing outputs: {names}")


def _load_policy_or_exit(path: Path | None) -> EnginePolicy:
    try:
        return load_policy(path)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc


def _load_document_or_exit(path: Path) -> str:
    try:
        return load_document_text(path)
    except (ValueError, OSError) as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc


def _safe_write_diagnostics(paths: OutputPaths, payload: dict[str, Any]) -> None:
    try:
        write_diagnostics_atomic(paths, payload)
    except OSError as exc:
        typer.echo(f"ERROR: diagnostics write failed: {exc}")


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
