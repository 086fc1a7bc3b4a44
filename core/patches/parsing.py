"""Validation of untrusted patch payloads returned by the AI collaborator."""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import TypeAdapter, ValidationError

from core.patches.models import ParsedPatches, Patch, RejectedPatch

_PATCH_ADAPTER: TypeAdapter[Patch] = TypeAdapter(Patch)
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")


def parse_patches(raw_items: Any) -> ParsedPatches:
    """Validate each raw item as a patch, keeping the good ones in order.

    Items that are not objects, carry an unknown ``type`` or lack a required
    anchor field are rejected with a short reason; their position in the
    original payload is preserved in ``patch_index``.
    """

    if not isinstance(raw_items, list):
        raise TypeError(f"patches must be a list, got {type(raw_items).__name__}")

    patches: list[Patch] = []
    rejected: list[RejectedPatch] = []
    for patch_index, item in enumerate(raw_items):
        if not isinstance(item, dict):
            rejected.append(
                RejectedPatch(
                    patch_index=patch_index,
                    raw=item,
                    reason=f"patch must be an object, got {type(item).__name__}",
                )
            )
            continue
        try:
            patches.append(_PATCH_ADAPTER.validate_python(_normalize_item(item)))
        except ValidationError as exc:
            rejected.append(
                RejectedPatch(patch_index=patch_index, raw=item, reason=_summarize(exc))
            )
    return ParsedPatches(patches=patches, rejected=rejected)


def extract_json_object(raw: str) -> dict[str, Any] | None:
    """Recover a JSON object from model output that may be wrapped in prose."""

    text = (raw or "").strip()
    if not text:
        return None

    candidates = [text]
    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    span = _OBJECT_SPAN.search(text)
    if span:
        candidates.append(span.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def _normalize_item(item: dict[str, Any]) -> dict[str, Any]:
    normalized = dict(item)
    patch_type = normalized.get("type")
    if isinstance(patch_type, str):
        normalized["type"] = patch_type.strip().lower()
    if normalized.get("keep_anchors") is None:
        normalized.pop("keep_anchors", None)
    for key in ("new_text", "insert_text"):
        if normalized.get(key) is None:
            normalized.pop(key, None)
    return normalized


def _summarize(exc: ValidationError) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)
