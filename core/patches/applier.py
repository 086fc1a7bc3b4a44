"""Sequential, anchor-based patch application over a full document."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import assert_never

from core.patches.anchors import (
    ANCHOR_NOT_FOUND,
    ANCHOR_NOT_UNIQUE,
    AnchorError,
    AnchorMatch,
    find_unique,
)
from core.patches.models import (
    ApplyResult,
    DeleteBetweenPatch,
    InsertAfterPatch,
    Patch,
    PatchFailure,
    ReplaceBetweenPatch,
    ReplaceExactPatch,
)

logger = logging.getLogger("revise.patches")

ORDER_VIOLATION = "end_anchor occurs before start_anchor"

_OLD_TEXT_REASONS = {
    ANCHOR_NOT_FOUND: "old_text not found",
    ANCHOR_NOT_UNIQUE: "old_text not unique",
}


def apply_patches(
    text: str,
    patches: Sequence[Patch],
    *,
    whitespace_tolerant: bool = False,
) -> ApplyResult:
    """Apply ``patches`` in order, each one to the result of the previous ones.

    A patch that cannot be applied is recorded in ``failures`` and skipped;
    later patches keep working on the last successful text. Nothing is
    raised for unusable anchors.
    """

    current = text
    failures: list[PatchFailure] = []
    applied_count = 0

    logger.debug("applying %d patches to document of length %d", len(patches), len(current))

    for patch_index, patch in enumerate(patches):
        try:
            current = _apply_one(current, patch, whitespace_tolerant)
        except AnchorError as exc:
            logger.debug("patch #%d (%s) failed: %s", patch_index, patch.type, exc)
            failures.append(PatchFailure(patch_index=patch_index, patch=patch, reason=str(exc)))
            continue
        applied_count += 1
        logger.debug("patch #%d (%s) applied", patch_index, patch.type)

    return ApplyResult(text=current, applied_count=applied_count, failures=failures)


def _apply_one(text: str, patch: Patch, whitespace_tolerant: bool) -> str:
    match patch:
        case ReplaceExactPatch():
            found = _locate_old_text(text, patch.old_text, whitespace_tolerant)
            return text[: found.index] + patch.new_text + text[found.end :]
        case InsertAfterPatch():
            found = _locate(text, patch.after_anchor, "after_anchor", whitespace_tolerant)
            return text[: found.end] + patch.insert_text + text[found.end :]
        case ReplaceBetweenPatch():
            return _splice_between(
                text,
                patch.start_anchor,
                patch.end_anchor,
                patch.new_text,
                keep_anchors=patch.keep_anchors,
                whitespace_tolerant=whitespace_tolerant,
            )
        case DeleteBetweenPatch():
            return _splice_between(
                text,
                patch.start_anchor,
                patch.end_anchor,
                "",
                keep_anchors=patch.keep_anchors,
                whitespace_tolerant=whitespace_tolerant,
            )
        case _:
            assert_never(patch)


def _splice_between(
    text: str,
    start_anchor: str,
    end_anchor: str,
    replacement: str,
    *,
    keep_anchors: bool,
    whitespace_tolerant: bool,
) -> str:
    start = _locate(text, start_anchor, "start_anchor", whitespace_tolerant)
    end = _locate(text, end_anchor, "end_anchor", whitespace_tolerant)
    if end.index < start.end:
        raise AnchorError(ORDER_VIOLATION)

    if keep_anchors:
        return text[: start.end] + replacement + text[end.index :]
    return text[: start.index] + replacement + text[end.end :]


def _locate(text: str, anchor: str, field_name: str, whitespace_tolerant: bool) -> AnchorMatch:
    try:
        return find_unique(text, anchor, whitespace_tolerant=whitespace_tolerant)
    except AnchorError as exc:
        raise AnchorError(f"{field_name}: {exc}") from exc


def _locate_old_text(text: str, old_text: str, whitespace_tolerant: bool) -> AnchorMatch:
    try:
        return find_unique(text, old_text, whitespace_tolerant=whitespace_tolerant)
    except AnchorError as exc:
        reason = str(exc)
        raise AnchorError(_OLD_TEXT_REASONS.get(reason, reason)) from exc
