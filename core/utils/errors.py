"""Custom exceptions for core logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.orchestrator.models import RevisionDiagnostics


class RevisionFailedError(Exception):
    """Raised when no attempt produced an applicable revision."""

    def __init__(self, message: str, *, diagnostics: RevisionDiagnostics) -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


class RevisionTransportError(Exception):
    """Raised when the AI revision endpoint cannot be reached or answers badly."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body_preview: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_preview = body_preview
