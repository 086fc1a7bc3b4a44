"""Models for whole-section editing."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SectionAction = Literal["replace", "insert_after", "delete"]


class DocumentSection(BaseModel):
    """One ``##`` section of a document, keyed by its normalized header."""

    model_config = ConfigDict(extra="forbid")

    header: str
    header_key: str
    content: str
    start: int


class SectionEdit(BaseModel):
    """Replace, delete, or insert after the section matching ``header_key``."""

    model_config = ConfigDict(extra="ignore")

    header_key: str
    new_content: str = ""
    action: SectionAction = "replace"


class SectionEditResult(BaseModel):
    """Section edit report; failures never abort the batch."""

    model_config = ConfigDict(extra="forbid")

    text: str
    applied_count: int
    failures: list[str] = Field(default_factory=list)
