"""Wire models exchanged with the AI revision endpoint."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RevisionRequest(BaseModel):
    """Payload sent to the AI endpoint; serialized with camelCase keys."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)

    mode: Literal["patches"] = "patches"
    excerpts: list[str]
    revision_prompt: str
    document_type: str | None = None
    original_prompt: str | None = None
    requires_signature: bool = False

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RevisionResponse(BaseModel):
    """AI endpoint answer: patches, or a fully rewritten document."""

    model_config = ConfigDict(extra="ignore")

    patches: list[Any] | None = None
    content: str | None = None
    summary: str | None = None

    @property
    def has_patches(self) -> bool:
        return bool(self.patches)

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())
