"""Two-attempt revision workflow: excerpts -> AI patches -> apply."""

from __future__ import annotations

import json
import logging
from typing import Any

from core.ai.client import RevisionClient
from core.ai.models import RevisionRequest, RevisionResponse
from core.config.models import AttemptBudget, EnginePolicy
from core.excerpts.selector import select_excerpts
from core.orchestrator.models import (
    AttemptReport,
    RevisionDiagnostics,
    RevisionOutcome,
    RevisionState,
    RevisionTask,
)
from core.patches.applier import apply_patches
from core.patches.parsing import parse_patches
from core.utils.errors import RevisionFailedError

logger = logging.getLogger("revise.orchestrator")

NO_USABLE_RESPONSE_MESSAGE = (
    "The AI returned no usable patches or content. Please be more specific, "
    "for example by naming the exact section header to change."
)
PATCHES_FAILED_MESSAGE = (
    "The suggested edits could not be applied to the document after a retry. "
    "Please be more specific, for example by naming the exact section header to change."
)


class RevisionOrchestrator:
    """Runs one revision request through at most two attempts.

    The first attempt sends a small excerpt set; any failure retries once
    with the wider retry budget. Patches are always applied to the original
    text, so a failed first attempt leaves no trace in the final result.
    """

    def __init__(self, client: RevisionClient, policy: EnginePolicy | None = None) -> None:
        self._client = client
        self._policy = policy or EnginePolicy()

    async def revise(self, task: RevisionTask, *, request_id: str | None = None) -> RevisionOutcome:
        states: list[RevisionState] = [RevisionState.IDLE]
        attempts: list[AttemptReport] = []
        budgets = (self._policy.first_attempt, self._policy.retry_attempt)

        for attempt_number, budget in enumerate(budgets, start=1):
            report, outcome = await self._run_attempt(task, attempt_number, budget, states)
            attempts.append(report)
            _log_event(
                logging.INFO if report.succeeded else logging.WARNING,
                "attempt",
                request_id,
                attempt=attempt_number,
                max_sections=budget.max_sections,
                include_intro_outro=budget.include_intro_outro,
                excerpt_count=report.excerpt_count,
                response_kind=report.response_kind,
                patch_count=report.patch_count,
                applied_count=report.applied_count,
                failure_count=len(report.failures),
                rejected_count=len(report.rejected),
            )
            if outcome is not None:
                states.append(RevisionState.DONE)
                return outcome.model_copy(update={"attempts": attempts, "states": states})

        states.append(RevisionState.FAILED)
        diagnostics = RevisionDiagnostics(attempts=attempts, states=states)
        no_usable = all(report.response_kind == "empty" for report in attempts)
        message = NO_USABLE_RESPONSE_MESSAGE if no_usable else PATCHES_FAILED_MESSAGE
        _log_event(logging.ERROR, "failed", request_id, attempts=len(attempts), message=message)
        raise RevisionFailedError(message, diagnostics=diagnostics)

    async def _run_attempt(
        self,
        task: RevisionTask,
        attempt_number: int,
        budget: AttemptBudget,
        states: list[RevisionState],
    ) -> tuple[AttemptReport, RevisionOutcome | None]:
        states.append(RevisionState.EXCERPTING)
        excerpts = select_excerpts(
            task.text,
            task.revision_prompt,
            max_sections=budget.max_sections,
            include_intro_outro=budget.include_intro_outro,
            settings=self._policy.excerpts,
        )
        report = AttemptReport(
            attempt=attempt_number,
            max_sections=budget.max_sections,
            include_intro_outro=budget.include_intro_outro,
            excerpts=excerpts,
            excerpt_count=len(excerpts),
        )

        states.append(RevisionState.AWAIT_AI)
        response = await self._client.request_revision(_build_request(task, excerpts))
        report.summary = response.summary

        if response.has_patches:
            return self._apply_response(task, response, report, states)

        if response.has_content:
            report.response_kind = "content"
            outcome = RevisionOutcome(
                text=response.content or "",
                mode="full",
                applied_count=0,
                summary=response.summary,
            )
            return report, outcome

        return report, None

    def _apply_response(
        self,
        task: RevisionTask,
        response: RevisionResponse,
        report: AttemptReport,
        states: list[RevisionState],
    ) -> tuple[AttemptReport, RevisionOutcome | None]:
        states.append(RevisionState.APPLYING)
        parsed = parse_patches(response.patches)
        result = apply_patches(
            task.text,
            parsed.patches,
            whitespace_tolerant=self._policy.whitespace_tolerant_anchors,
        )
        report.response_kind = "patches"
        report.patch_count = len(response.patches or [])
        report.applied_count = result.applied_count
        report.failures = result.failures
        report.rejected = parsed.rejected

        if not report.succeeded:
            return report, None
        outcome = RevisionOutcome(
            text=result.text,
            mode="patches",
            applied_count=result.applied_count,
            summary=response.summary,
        )
        return report, outcome


async def run_revision(
    task: RevisionTask,
    client: RevisionClient,
    policy: EnginePolicy | None = None,
    *,
    request_id: str | None = None,
) -> RevisionOutcome:
    """Convenience wrapper around ``RevisionOrchestrator.revise``."""

    return await RevisionOrchestrator(client, policy).revise(task, request_id=request_id)


def _build_request(task: RevisionTask, excerpts: list[str]) -> RevisionRequest:
    return RevisionRequest(
        excerpts=excerpts,
        revision_prompt=task.revision_prompt,
        document_type=task.document_type,
        original_prompt=task.original_prompt,
        requires_signature=task.requires_signature,
    )


def _log_event(level: int, event: str, request_id: str | None, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":")))
