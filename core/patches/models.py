"""Patch operations and application reports."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ReplaceExactPatch(BaseModel):
    """Replace the single occurrence of ``old_text`` with ``new_text``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["replace_exact"] = "replace_exact"
    old_text: str
    new_text: str = ""


class InsertAfterPatch(BaseModel):
    """Insert ``insert_text`` immediately after the unique ``after_anchor``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["insert_after"] = "insert_after"
    after_anchor: str
    insert_text: str = ""


class ReplaceBetweenPatch(BaseModel):
    """Replace the span bounded by two unique anchors.

    With ``keep_anchors`` only the text strictly between the anchors is
    replaced; otherwise the anchors are replaced too.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["replace_between"] = "replace_between"
    start_anchor: str
    end_anchor: str
    new_text: str = ""
    keep_anchors: bool = True


class DeleteBetweenPatch(BaseModel):
    """Delete the span bounded by two unique anchors."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["delete_between"] = "delete_between"
    start_anchor: str
    end_anchor: str
    keep_anchors: bool = True


Patch = Annotated[
    ReplaceExactPatch | InsertAfterPatch | ReplaceBetweenPatch | DeleteBetweenPatch,
    Field(discriminator="type"),
]


class PatchFailure(BaseModel):
    """One patch that could not be applied, with a readable reason."""

    model_config = ConfigDict(extra="forbid")

    patch_index: int
    patch: Patch
    reason: str


class ApplyResult(BaseModel):
    """Patch application report.

    Rules:
    - every input patch is counted exactly once: applied or failed
    - ``text`` reflects every patch that could be applied, in input order
    """

    model_config = ConfigDict(extra="forbid")

    text: str
    applied_count: int
    failures: list[PatchFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class RejectedPatch(BaseModel):
    """AI payload item that is not a structurally valid patch."""

    model_config = ConfigDict(extra="forbid")

    patch_index: int
    raw: Any
    reason: str


class ParsedPatches(BaseModel):
    """Patches recovered from an untrusted payload plus the items rejected."""

    model_config = ConfigDict(extra="forbid")

    patches: list[Patch] = Field(default_factory=list)
    rejected: list[RejectedPatch] = Field(default_factory=list)
