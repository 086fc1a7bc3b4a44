"""FastAPI wrapper for the document revision engine."""

from __future__ import annotations

import importlib.metadata
import json
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from core.ai.client import DEFAULT_TIMEOUT_SECONDS, HttpRevisionClient, RevisionClient
from core.config.models import EnginePolicy
from core.config.policy_loader import load_policy
from core.excerpts.sections import split_sections
from core.excerpts.selector import rank_sections, select_excerpts
from core.orchestrator.models import RevisionTask
from core.orchestrator.revision import run_revision
from core.patches.applier import apply_patches
from core.patches.parsing import parse_patches
from core.sections.editor import apply_section_edits
from core.sections.models import SectionEdit
from core.utils.errors import RevisionFailedError, RevisionTransportError

app = FastAPI(title="docrevise-engine API", version="0.1.0")
logger = logging.getLogger("revise.api")

_REQUEST_ID_HEADER = "X-Revise-Request-Id"
_DEFAULT_MAX_DOCUMENT_CHARS = 2_000_000


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


class ExcerptsBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str
    instruction: str
    max_sections: int = Field(default=3, ge=1)
    include_intro_outro: bool = False
    include_scores: bool = False


class ApplyPatchesBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str
    patches: list[Any]
    whitespace_tolerant: bool | None = None


class ApplySectionsBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str
    edits: list[SectionEdit]


class ReviseBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str
    revision_prompt: str
    document_type: str | None = None
    original_prompt: str | None = None
    requires_signature: bool = False


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        logger.exception("unhandled error for request %s", request_id)
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(_REQUEST_ID_HEADER, request_id)
    return response


@app.exception_handler(ApiRequestError)
async def api_request_error_handler(request: Request, exc: ApiRequestError) -> JSONResponse:
    request_id = _request_id_from_request(request)
    _log_event(
        logging.WARNING,
        "error",
        request_id,
        error_code=exc.error_code,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return _error_response(
        status_code=exc.status_code,
        error_code=exc.error_code,
        message=exc.message,
        request_id=request_id,
        detail=exc.detail,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    request_id = _request_id_from_request(request)
    _log_event(
        logging.WARNING,
        "error",
        request_id,
        error_code="INVALID_ARGUMENT",
        status_code=400,
        path=request.url.path,
    )
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return _error_response(
        status_code=400,
        error_code="INVALID_ARGUMENT",
        message="invalid request body",
        request_id=request_id,
        detail={"errors": errors},
    )


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok", "version": _package_version()}


@app.post("/v1/excerpts")
async def excerpts_v1(request: Request, body: ExcerptsBody) -> JSONResponse:
    """Select excerpts for an instruction."""

    request_id = _request_id_from_request(request)
    _check_document_size(body.text)
    settings = _load_policy_with_api_error().excerpts

    payload: dict[str, Any] = {
        "excerpts": select_excerpts(
            body.text,
            body.instruction,
            max_sections=body.max_sections,
            include_intro_outro=body.include_intro_outro,
            settings=settings,
        ),
        "request_id": request_id,
    }
    if body.include_scores:
        ranked = rank_sections(split_sections(body.text, settings.chunk_chars), body.instruction, settings)
        payload["scores"] = [
            {"index": item.section.index, "header": item.section.header, "score": item.score}
            for item in ranked
        ]
    return JSONResponse(status_code=200, content=payload)


@app.post("/v1/patches/apply")
async def apply_patches_v1(request: Request, body: ApplyPatchesBody) -> JSONResponse:
    """Apply untrusted patches to a document and report per-patch outcomes."""

    request_id = _request_id_from_request(request)
    _check_document_size(body.text)
    policy = _load_policy_with_api_error()
    whitespace_tolerant = (
        policy.whitespace_tolerant_anchors
        if body.whitespace_tolerant is None
        else body.whitespace_tolerant
    )

    parsed = parse_patches(body.patches)
    result = apply_patches(body.text, parsed.patches, whitespace_tolerant=whitespace_tolerant)
    _log_event(
        logging.INFO,
        "patches_applied",
        request_id,
        patch_count=len(body.patches),
        applied_count=result.applied_count,
        failure_count=len(result.failures),
        rejected_count=len(parsed.rejected),
    )
    content = result.model_dump(mode="json")
    content["rejected"] = [item.model_dump(mode="json") for item in parsed.rejected]
    content["request_id"] = request_id
    return JSONResponse(status_code=200, content=content)


@app.post("/v1/sections/apply")
async def apply_sections_v1(request: Request, body: ApplySectionsBody) -> JSONResponse:
    """Apply whole-section edits addressed by header key."""

    request_id = _request_id_from_request(request)
    _check_document_size(body.text)
    result = apply_section_edits(body.text, body.edits)
    content = result.model_dump(mode="json")
    content["request_id"] = request_id
    return JSONResponse(status_code=200, content=content)


@app.post("/v1/revise")
async def revise_v1(request: Request, body: ReviseBody) -> JSONResponse:
    """Run the two-attempt revision workflow against the configured AI endpoint."""

    request_id = _request_id_from_request(request)
    started = time.perf_counter()
    _check_document_size(body.text)
    if not body.revision_prompt.strip():
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="revision_prompt must not be empty",
        )

    policy = _load_policy_with_api_error()
    client = _revision_client()
    task = RevisionTask(
        text=body.text,
        revision_prompt=body.revision_prompt,
        document_type=body.document_type,
        original_prompt=body.original_prompt,
        requires_signature=body.requires_signature,
    )
    _log_event(logging.INFO, "start", request_id, text_chars=len(body.text))

    try:
        outcome = await run_revision(task, client, policy, request_id=request_id)
    except RevisionFailedError as exc:
        detail: dict[str, Any] = {"attempts": len(exc.diagnostics.attempts)}
        if _debug_diagnostics_enabled():
            detail["diagnostics"] = exc.diagnostics.model_dump(mode="json")
        raise ApiRequestError(
            status_code=422,
            error_code="REVISION_FAILED",
            message=str(exc),
            detail=detail,
        ) from exc
    except RevisionTransportError as exc:
        raise ApiRequestError(
            status_code=502,
            error_code="UPSTREAM_ERROR",
            message=str(exc),
            detail={"upstream_status": exc.status_code, "body_preview": exc.body_preview},
        ) from exc

    _log_event(
        logging.INFO,
        "done",
        request_id,
        mode=outcome.mode,
        attempts=len(outcome.attempts),
        applied_count=outcome.applied_count,
        total_ms=_elapsed_ms(started),
    )
    content: dict[str, Any] = {
        "text": outcome.text,
        "mode": outcome.mode,
        "applied_count": outcome.applied_count,
        "summary": outcome.summary,
        "attempts": len(outcome.attempts),
        "request_id": request_id,
    }
    if _debug_diagnostics_enabled():
        content["diagnostics"] = [report.model_dump(mode="json") for report in outcome.attempts]
    return JSONResponse(status_code=200, content=content)


def _revision_client() -> RevisionClient:
    endpoint = os.getenv("REVISE_AI_ENDPOINT_URL", "").strip()
    if not endpoint:
        raise ApiRequestError(
            status_code=503,
            error_code="AI_ENDPOINT_NOT_CONFIGURED",
            message="REVISE_AI_ENDPOINT_URL is not configured",
        )
    return HttpRevisionClient(endpoint, timeout_seconds=_timeout_seconds())


def _load_policy_with_api_error() -> EnginePolicy:
    raw = os.getenv("REVISE_POLICY_PATH")
    try:
        return load_policy(Path(raw) if raw else None)
    except ValueError as exc:
        raise ApiRequestError(
            status_code=500,
            error_code="POLICY_ERROR",
            message=str(exc),
        ) from exc


def _check_document_size(text: str) -> None:
    limit = _max_document_chars()
    if len(text) > limit:
        raise ApiRequestError(
            status_code=413,
            error_code="DOCUMENT_TOO_LARGE",
            message="document exceeds the configured size limit",
            detail={"max_chars": limit, "actual_chars": len(text)},
        )


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    return request_id


def _debug_diagnostics_enabled() -> bool:
    return os.getenv("REVISE_DEBUG_DIAGNOSTICS", "0") == "1"


def _timeout_seconds() -> float:
    raw = os.getenv("REVISE_AI_TIMEOUT_SECONDS")
    if raw is None:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        parsed = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS
    return parsed if parsed > 0 else DEFAULT_TIMEOUT_SECONDS


def _max_document_chars() -> int:
    raw = os.getenv("REVISE_MAX_DOCUMENT_CHARS")
    if raw is None:
        return _DEFAULT_MAX_DOCUMENT_CHARS
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_DOCUMENT_CHARS
    return parsed if parsed > 0 else _DEFAULT_MAX_DOCUMENT_CHARS


def _package_version() -> str:
    try:
        return importlib.metadata.version("docrevise-engine")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={_REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
