"""Clients for the external AI revision endpoint."""

from __future__ import annotations

import json
from typing import Any, Protocol

import httpx

from core.ai.models import RevisionRequest, RevisionResponse
from core.utils.errors import RevisionTransportError

DEFAULT_TIMEOUT_SECONDS = 25.0
MAX_EXCERPTS_SENT = 10
MAX_EXCERPT_CHARS_SENT = 5000
BODY_PREVIEW_CHARS = 300


class RevisionClient(Protocol):
    """Anything that turns excerpts plus an instruction into patches or text."""

    async def request_revision(self, request: RevisionRequest) -> RevisionResponse:
        """Ask the AI collaborator for a revision of the given excerpts."""


class HttpRevisionClient:
    """POSTs revision requests as JSON to a configured endpoint."""

    def __init__(
        self,
        endpoint_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._timeout_seconds = timeout_seconds
        self._headers = dict(headers or {})
        self._transport = transport

    async def request_revision(self, request: RevisionRequest) -> RevisionResponse:
        payload = sanitize_request(request).to_payload()
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self._endpoint_url, json=payload, headers=self._headers
                )
        except httpx.TimeoutException as exc:
            raise RevisionTransportError(
                f"TimeoutError: revision request timed out after {self._timeout_seconds:g} seconds"
            ) from exc
        except httpx.HTTPError as exc:
            raise RevisionTransportError(f"{type(exc).__name__}: {exc}") from exc

        body_preview = _preview(response.text)
        data = _decode_json(response, body_preview)

        if response.is_error:
            message = _error_message(data) or f"revision request failed with HTTP {response.status_code}"
            raise RevisionTransportError(
                message, status_code=response.status_code, body_preview=body_preview
            )
        if not isinstance(data, dict):
            raise RevisionTransportError(
                "revision response must be a JSON object",
                status_code=response.status_code,
                body_preview=body_preview,
            )
        return coerce_response(data)


def sanitize_request(request: RevisionRequest) -> RevisionRequest:
    """Drop blank excerpts, keep at most ten, cap each one's length."""

    excerpts = [excerpt for excerpt in request.excerpts if excerpt.strip()]
    excerpts = [excerpt[:MAX_EXCERPT_CHARS_SENT] for excerpt in excerpts[:MAX_EXCERPTS_SENT]]
    return request.model_copy(update={"excerpts": excerpts})


def coerce_response(data: dict[str, Any]) -> RevisionResponse:
    """Keep only well-typed ``patches``/``content``/``summary`` fields."""

    patches = data.get("patches")
    content = data.get("content")
    summary = data.get("summary")
    return RevisionResponse(
        patches=patches if isinstance(patches, list) else None,
        content=content if isinstance(content, str) else None,
        summary=summary if isinstance(summary, str) else None,
    )


def _decode_json(response: httpx.Response, body_preview: str) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RevisionTransportError(
            f"revision endpoint returned non-JSON response (HTTP {response.status_code})",
            status_code=response.status_code,
            body_preview=body_preview,
        ) from exc


def _error_message(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, str) and error.strip():
        return error
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return None


def _preview(body: str) -> str:
    if len(body) <= BODY_PREVIEW_CHARS:
        return body
    return body[:BODY_PREVIEW_CHARS] + "..."
