"""Human-readable patch and revision summaries for CLI output."""

from __future__ import annotations

from collections import Counter

from core.orchestrator.models import RevisionDiagnostics
from core.patches.models import ApplyResult, RejectedPatch

_REASON_PREVIEW_CHARS = 120


def render_apply_summary(result: ApplyResult, rejected: list[RejectedPatch] | None = None) -> str:
    """Render one-screen summary of a patch application."""

    rejected = rejected or []
    total = result.applied_count + len(result.failures) + len(rejected)
    lines: list[str] = ["patch_summary:"]
    lines.append(
        f"patches={total} applied={result.applied_count} "
        f"failed={len(result.failures)} rejected={len(rejected)}"
    )
    lines.append(f"result={'APPLIED' if not result.failures and not rejected else 'PARTIAL'}")

    for failure in result.failures:
        lines.append(f"  #{failure.patch_index} {failure.patch.type}: {_preview(failure.reason)}")
    for item in rejected:
        lines.append(f"  #{item.patch_index} rejected: {_preview(item.reason)}")

    if result.failures:
        reasons: Counter[str] = Counter(_reason_code(failure.reason) for failure in result.failures)
        top = ", ".join(f"{code}={count}" for code, count in sorted(reasons.items()))
        lines.append(f"failure_reasons: {top}")
    return "\n".join(lines)


def render_revision_diagnostics(diagnostics: RevisionDiagnostics) -> str:
    """Render per-attempt counts for a failed revision."""

    lines: list[str] = ["revision_diagnostics:"]
    lines.append("states=" + "->".join(state.value for state in diagnostics.states))
    for report in diagnostics.attempts:
        lines.append(
            f"attempt={report.attempt} max_sections={report.max_sections} "
            f"intro_outro={report.include_intro_outro} excerpts={report.excerpt_count} "
            f"response={report.response_kind} patches={report.patch_count} "
            f"applied={report.applied_count} failed={len(report.failures)} "
            f"rejected={len(report.rejected)}"
        )
        for failure in report.failures:
            lines.append(f"  #{failure.patch_index} {failure.patch.type}: {_preview(failure.reason)}")
    return "\n".join(lines)


def _reason_code(reason: str) -> str:
    lowered = reason.lower()
    if "not unique" in lowered:
        return "not_unique"
    if "not found" in lowered:
        return "not_found"
    if "before" in lowered:
        return "order"
    if "empty" in lowered:
        return "empty"
    return "other"


def _preview(text: str) -> str:
    if len(text) <= _REASON_PREVIEW_CHARS:
        return text
    return text[:_REASON_PREVIEW_CHARS] + "..."
