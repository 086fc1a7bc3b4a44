from __future__ import annotations

import json

import httpx
import pytest

from core.ai.client import HttpRevisionClient, coerce_response, sanitize_request
from core.ai.models import RevisionRequest
from core.utils.errors import RevisionTransportError

ENDPOINT = "http://ai.test/revise"


def _request(**overrides: object) -> RevisionRequest:
    fields: dict[str, object] = {"excerpts": ["## 1. Scope\nText."], "revision_prompt": "tighten"}
    fields.update(overrides)
    return RevisionRequest(**fields)


@pytest.mark.anyio
async def test_posts_camel_case_payload_and_parses_patches() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"patches": [{"type": "replace_exact", "old_text": "a", "new_text": "b"}], "summary": "ok"},
        )

    client = HttpRevisionClient(ENDPOINT, transport=httpx.MockTransport(handler))
    response = await client.request_revision(
        _request(document_type="contract", requires_signature=True)
    )

    assert seen["url"] == ENDPOINT
    assert seen["body"] == {
        "mode": "patches",
        "excerpts": ["## 1. Scope\nText."],
        "revisionPrompt": "tighten",
        "documentType": "contract",
        "originalPrompt": None,
        "requiresSignature": True,
    }
    assert response.has_patches
    assert response.summary == "ok"


@pytest.mark.anyio
async def test_error_status_uses_error_message_from_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": "rate limited"})

    client = HttpRevisionClient(ENDPOINT, transport=httpx.MockTransport(handler))

    with pytest.raises(RevisionTransportError, match="rate limited") as exc_info:
        await client.request_revision(_request())

    assert exc_info.value.status_code == 429


@pytest.mark.anyio
async def test_error_status_without_message_names_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "x"})

    client = HttpRevisionClient(ENDPOINT, transport=httpx.MockTransport(handler))

    with pytest.raises(RevisionTransportError, match="HTTP 500"):
        await client.request_revision(_request())


@pytest.mark.anyio
async def test_non_json_response_keeps_body_preview() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>" + "x" * 400)

    client = HttpRevisionClient(ENDPOINT, transport=httpx.MockTransport(handler))

    with pytest.raises(RevisionTransportError, match="non-JSON") as exc_info:
        await client.request_revision(_request())

    assert exc_info.value.body_preview is not None
    assert exc_info.value.body_preview.startswith("<html>")
    assert len(exc_info.value.body_preview) == 303


@pytest.mark.anyio
async def test_non_object_json_is_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["a"])

    client = HttpRevisionClient(ENDPOINT, transport=httpx.MockTransport(handler))

    with pytest.raises(RevisionTransportError, match="JSON object"):
        await client.request_revision(_request())


@pytest.mark.anyio
async def test_timeout_is_reported_as_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    client = HttpRevisionClient(ENDPOINT, timeout_seconds=2, transport=httpx.MockTransport(handler))

    with pytest.raises(RevisionTransportError, match="timed out after 2 seconds"):
        await client.request_revision(_request())


@pytest.mark.anyio
async def test_connection_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = HttpRevisionClient(ENDPOINT, transport=httpx.MockTransport(handler))

    with pytest.raises(RevisionTransportError, match="ConnectError"):
        await client.request_revision(_request())


def test_sanitize_request_drops_blank_and_caps_excerpts() -> None:
    request = _request(excerpts=["  ", "y" * 6000] + [f"e{i}" for i in range(12)])

    sanitized = sanitize_request(request)

    assert len(sanitized.excerpts) == 10
    assert sanitized.excerpts[0] == "y" * 5000
    assert sanitized.excerpts[1:] == [f"e{i}" for i in range(9)]
    assert len(request.excerpts) == 14


def test_coerce_response_ignores_wrongly_typed_fields() -> None:
    response = coerce_response({"patches": "nope", "content": 12, "summary": None, "extra": True})

    assert response.patches is None
    assert response.content is None
    assert not response.has_patches
    assert not response.has_content
