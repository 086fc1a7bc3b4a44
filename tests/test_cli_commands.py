from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import apps.cli.main as cli_main
from apps.cli.main import app
from core.ai.models import RevisionRequest, RevisionResponse
from core.utils.errors import RevisionTransportError

runner = CliRunner()

DOCUMENT = "## 1. Scope\nServices as listed.\n\n## 2. Fees\nPayment is due within 30 days.\n"


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def _write_json(path: Path, payload: object) -> Path:
    return _write(path, json.dumps(payload))


class _FakeClient:
    def __init__(self, responses: list[RevisionResponse | Exception]) -> None:
        self._responses = responses
        self.requests: list[RevisionRequest] = []

    async def request_revision(self, request: RevisionRequest) -> RevisionResponse:
        self.requests.append(request)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _patch_client(monkeypatch: pytest.MonkeyPatch, *responses: RevisionResponse | Exception) -> _FakeClient:
    client = _FakeClient(list(responses))
    monkeypatch.setattr(cli_main, "HttpRevisionClient", lambda endpoint, **kwargs: client)
    return client


def test_apply_writes_text_and_report(tmp_path: Path) -> None:
    document = _write(tmp_path / "doc.md", DOCUMENT)
    patches = _write_json(
        tmp_path / "patches.json",
        {"patches": [{"type": "replace_exact", "old_text": "30 days", "new_text": "45 days"}]},
    )
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app, ["apply", "--document", str(document), "--patches", str(patches), "--out-dir", str(out_dir)]
    )

    assert result.exit_code == 0, result.stdout
    assert "INFO: success" in result.stdout
    assert (out_dir / "out.txt").read_text(encoding="utf-8") == DOCUMENT.replace("30 days", "45 days")
    report = json.loads((out_dir / "out.patch_report.json").read_text(encoding="utf-8"))
    assert report["applied_count"] == 1
    assert report["failures"] == []
    assert report["rejected"] == []


def test_apply_with_failures_exits_2_and_keeps_partial_result(tmp_path: Path) -> None:
    document = _write(tmp_path / "doc.md", DOCUMENT)
    patches = _write_json(
        tmp_path / "patches.json",
        [
            {"type": "replace_exact", "old_text": "30 days", "new_text": "45 days"},
            {"type": "replace_exact", "old_text": "60 days", "new_text": "90 days"},
            {"type": "move_section"},
        ],
    )

    result = runner.invoke(
        app, ["apply", "--document", str(document), "--patches", str(patches), "--out-dir", str(tmp_path)]
    )

    assert result.exit_code == 2
    assert "patches=3 applied=1 failed=1 rejected=1" in result.stdout
    assert "old_text not found" in result.stdout
    assert "45 days" in (tmp_path / "out.txt").read_text(encoding="utf-8")


def test_apply_rejects_conflicting_overwrite_flags(tmp_path: Path) -> None:
    document = _write(tmp_path / "doc.md", DOCUMENT)
    patches = _write_json(tmp_path / "patches.json", [])

    result = runner.invoke(
        app,
        [
            "apply",
            "--document",
            str(document),
            "--patches",
            str(patches),
            "--out-dir",
            str(tmp_path),
            "--force",
            "--no-overwrite",
        ],
    )

    assert result.exit_code == 1
    assert "cannot be used together" in result.stdout


def test_apply_no_overwrite_refuses_existing_outputs(tmp_path: Path) -> None:
    document = _write(tmp_path / "doc.md", DOCUMENT)
    patches = _write_json(tmp_path / "patches.json", [])
    _write(tmp_path / "out.txt", "previous")

    result = runner.invoke(
        app,
        [
            "apply",
            "--document",
            str(document),
            "--patches",
            str(patches),
            "--out-dir",
            str(tmp_path),
            "--no-overwrite",
        ],
    )

    assert result.exit_code == 1
    assert (tmp_path / "out.txt").read_text(encoding="utf-8") == "previous"


def test_excerpts_prints_json_with_scores(tmp_path: Path) -> None:
    document = _write(tmp_path / "doc.md", DOCUMENT)

    result = runner.invoke(
        app, ["excerpts", "--document", str(document), "--instruction", "change fees", "--scores"]
    )

    assert result.exit_code == 0, result.stdout
    payload = json.loads(result.stdout)
    assert payload["excerpts"] == [DOCUMENT]
    assert payload["scores"][0]["header"] == "## 2. Fees"


def test_sections_applies_edits(tmp_path: Path) -> None:
    document = _write(tmp_path / "doc.md", DOCUMENT)
    edits = _write_json(
        tmp_path / "edits.json",
        {"edits": [{"header_key": "2. Fees", "new_content": "## 2. Fees\nPayment is due on receipt."}]},
    )

    result = runner.invoke(
        app, ["sections", "--document", str(document), "--edits", str(edits), "--out-dir", str(tmp_path)]
    )

    assert result.exit_code == 0, result.stdout
    assert (tmp_path / "out.txt").read_text(encoding="utf-8").endswith(
        "## 2. Fees\nPayment is due on receipt.\n\n"
    )


def test_run_writes_revised_text(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    document = _write(tmp_path / "doc.md", DOCUMENT)
    client = _patch_client(
        monkeypatch,
        RevisionResponse(patches=[{"type": "replace_exact", "old_text": "30 days", "new_text": "45 days"}]),
    )

    result = runner.invoke(
        app,
        [
            "run",
            "--document",
            str(document),
            "--instruction",
            "extend payment to 45 days",
            "--endpoint",
            "http://ai.test/revise",
            "--out-dir",
            str(tmp_path),
            "--docx",
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert "revised via patches after 1 attempt(s)" in result.stdout
    assert client.requests[0].revision_prompt == "extend payment to 45 days"
    assert "45 days" in (tmp_path / "out.txt").read_text(encoding="utf-8")
    assert (tmp_path / "out.docx").exists()


def test_run_failure_exits_3_and_writes_diagnostics(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    document = _write(tmp_path / "doc.md", DOCUMENT)
    _patch_client(monkeypatch, RevisionResponse(), RevisionResponse(patches=[]))

    result = runner.invoke(
        app,
        [
            "run",
            "--document",
            str(document),
            "--instruction",
            "x",
            "--endpoint",
            "http://ai.test/revise",
            "--out-dir",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 3
    assert "revision_diagnostics:" in result.stdout
    diagnostics = json.loads((tmp_path / "out.revision_diagnostics.json").read_text(encoding="utf-8"))
    assert len(diagnostics["attempts"]) == 2
    assert diagnostics["states"][-1] == "failed"
    assert not (tmp_path / "out.txt").exists()


def test_run_transport_error_exits_4(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    document = _write(tmp_path / "doc.md", DOCUMENT)
    _patch_client(
        monkeypatch,
        RevisionTransportError("upstream down", status_code=502, body_preview="<html>"),
    )

    result = runner.invoke(
        app,
        [
            "run",
            "--document",
            str(document),
            "--instruction",
            "x",
            "--endpoint",
            "http://ai.test/revise",
            "--out-dir",
            str(tmp_path),
        ],
    )

    assert result.exit_code == 4
    assert "ERROR(transport): upstream down" in result.stdout
    assert "response_preview: <html>" in result.stdout
