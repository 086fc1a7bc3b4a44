"""Revision workflow inputs, per-attempt reports, and outcomes."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from core.patches.models import PatchFailure, RejectedPatch


class RevisionState(str, Enum):
    """States visited by one revision request."""

    IDLE = "idle"
    EXCERPTING = "excerpting"
    AWAIT_AI = "await_ai"
    APPLYING = "applying"
    DONE = "done"
    FAILED = "failed"


class RevisionTask(BaseModel):
    """One revision request against a caller-owned document."""

    model_config = ConfigDict(extra="forbid")

    text: str
    revision_prompt: str
    document_type: str | None = None
    original_prompt: str | None = None
    requires_signature: bool = False


class AttemptReport(BaseModel):
    """What one attempt sent, received, and managed to apply."""

    model_config = ConfigDict(extra="forbid")

    attempt: int
    max_sections: int
    include_intro_outro: bool
    excerpts: list[str] = Field(default_factory=list)
    excerpt_count: int = 0
    response_kind: Literal["patches", "content", "empty"] = "empty"
    patch_count: int = 0
    applied_count: int = 0
    failures: list[PatchFailure] = Field(default_factory=list)
    rejected: list[RejectedPatch] = Field(default_factory=list)
    summary: str | None = None

    @property
    def succeeded(self) -> bool:
        if self.response_kind == "content":
            return True
        return self.response_kind == "patches" and not self.failures and not self.rejected


class RevisionDiagnostics(BaseModel):
    """Per-attempt detail for operators when a revision cannot be applied."""

    model_config = ConfigDict(extra="forbid")

    attempts: list[AttemptReport] = Field(default_factory=list)
    states: list[RevisionState] = Field(default_factory=list)


class RevisionOutcome(BaseModel):
    """Successful revision result."""

    model_config = ConfigDict(extra="forbid")

    text: str
    mode: Literal["patches", "full"]
    applied_count: int
    summary: str | None = None
    attempts: list[AttemptReport] = Field(default_factory=list)
    states: list[RevisionState] = Field(default_factory=list)
