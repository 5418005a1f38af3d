"""
Content Factory Run Graph - Pydantic Graph state machine for one run.

Pipeline: StartRun → ExecuteWorker (×N) → [AwaitApproval → PAUSE] → FinalizeRun

    pending → running → {paused ⇄ running} → {completed | failed | expired}

ExecuteWorkerNode runs the next worker in the resolved order and records
the outcome. A worker whose result asks for sign-off routes to
AwaitApprovalNode, which either auto-approves (test mode) or creates a
pending Approval, dispatches it to Slack and ends the graph run with the
run paused. The Orchestrator re-enters the graph at ExecuteWorkerNode or
FinalizeRunNode when a decision arrives.

The state is written to PipelineRun.workflow_data after every step.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Union

from pydantic_graph import BaseNode, End, Graph, GraphRunContext

from ...core.models import Approval, ApprovalDecision, ApprovalStatus, RunStatus, utc_now
from ...services.pipeline_logger import PipelineLogger
from .dependencies import FactoryDependencies
from .nodes.base import ApprovalSpec, WorkerResult
from .state import ContentRunState

logger = logging.getLogger(__name__)


async def persist_run(deps: FactoryDependencies, state: ContentRunState, **extra: Any) -> None:
    """Write the run record and its serialized state."""
    patch: Dict[str, Any] = {
        "status": RunStatus(state.status),
        "current_stage": state.current_stage,
        "stages_completed": list(state.stages_completed),
        "stages_failed": list(state.stages_failed),
        "not_attempted": list(state.not_attempted),
        "artifacts": state.artifacts,
        "workflow_data": state.to_dict(),
        "error": state.error,
        "revision_count": state.revision_count,
    }
    patch.update(extra)
    await deps.store.update_pipeline_run(state.run_id, patch)


@dataclass
class StartRunNode(BaseNode[ContentRunState]):
    """Step 1: Move the run from pending to running."""

    async def run(
        self,
        ctx: GraphRunContext[ContentRunState, FactoryDependencies]
    ) -> Union["ExecuteWorkerNode", "FinalizeRunNode"]:
        state = ctx.state
        state.status = RunStatus.RUNNING.value
        await persist_run(ctx.deps, state)

        log = PipelineLogger(ctx.deps.store, state.run_id)
        await log.info(
            f"Run started with {len(state.requested_workers)} workers",
            {"workers": state.requested_workers, "test_mode": state.test_mode, "skip_failures": state.skip_failures},
        )

        if state.finished:
            return FinalizeRunNode()
        return ExecuteWorkerNode()


@dataclass
class ExecuteWorkerNode(BaseNode[ContentRunState]):
    """Step 2: Run the next worker and record its outcome."""

    async def run(
        self,
        ctx: GraphRunContext[ContentRunState, FactoryDependencies]
    ) -> Union["ExecuteWorkerNode", "AwaitApprovalNode", "FinalizeRunNode"]:
        state, deps = ctx.state, ctx.deps
        if state.finished:
            return FinalizeRunNode()

        worker_id = state.requested_workers[state.next_index]
        worker_cls = deps.registry.get(worker_id)
        log = PipelineLogger(deps.store, state.run_id, worker_id)
        state.current_stage = worker_id

        unmet = [
            p for p in worker_cls.spec.depends_on
            if p in state.requested_workers and p not in state.stages_completed
        ]
        if unmet:
            result = WorkerResult(success=False, worker=worker_id, error=f"Dependency not satisfied: {unmet[0]}")
        else:
            await persist_run(deps, state)
            await log.info(f"Starting {worker_id}")
            result = await worker_cls().run(state, deps)
        state.next_index += 1

        if result.success:
            state.record_success(worker_id, result.artifacts)
            await log.success(f"{worker_id} completed", result.artifacts.model_dump(mode="json", exclude_none=True))
            await persist_run(deps, state)
            if result.requires_approval:
                return AwaitApprovalNode(approval=result.requires_approval)
        else:
            error = result.error or "Unknown error"
            state.record_failure(worker_id, error)
            await log.error(f"{worker_id} failed: {error}")
            if not state.skip_failures:
                state.stop(f"{worker_id} failed: {error}")
            await persist_run(deps, state)

        if state.finished:
            return FinalizeRunNode()
        return ExecuteWorkerNode()


@dataclass
class AwaitApprovalNode(BaseNode[ContentRunState]):
    """
    Step 3: Gate the run on a human decision.

    Creates exactly one Approval for the run. With auto_approve it is
    recorded as approved and the run continues; otherwise it stays pending,
    is sent to Slack, and the graph run ends with the run paused.
    """

    approval: ApprovalSpec

    async def run(
        self,
        ctx: GraphRunContext[ContentRunState, FactoryDependencies]
    ) -> Union["ExecuteWorkerNode", "FinalizeRunNode", End[dict]]:
        state, deps = ctx.state, ctx.deps
        stage = state.stages_completed[-1]
        log = PipelineLogger(deps.store, state.run_id, stage)
        state.revision_feedback = None

        approval = Approval(
            run_id=state.run_id,
            type=self.approval.type,
            stage=stage,
            related_id=self.approval.related_id,
            related_title=self.approval.related_title,
            details=self.approval.details,
        )

        if state.auto_approve:
            approval.status = ApprovalStatus.APPROVED
            approval.decision = ApprovalDecision.APPROVE
            approval.response_user_id = "auto-approve"
            approval.response_timestamp = utc_now()
            await deps.store.create_approval(approval)
            await log.info(f"Auto-approved {approval.type.value}: {approval.related_title}")
            if state.finished:
                return FinalizeRunNode()
            return ExecuteWorkerNode()

        approval = await deps.store.create_approval(approval)
        state.pending_approval_id = approval.id
        state.status = RunStatus.PAUSED.value
        await persist_run(deps, state)

        try:
            ref = await deps.slack.send_approval_request(approval, state.run_id)
            await deps.store.update_approval(approval.id, {"slack_channel": ref.channel, "slack_message_ts": ref.ts})
        except Exception as e:
            await log.error(f"Failed to dispatch approval request {approval.id}: {e}")

        await log.info(f"Paused for {approval.type.value}: {approval.related_title}", {"approval_id": approval.id})
        return End({"status": RunStatus.PAUSED.value, "approval_id": approval.id})


@dataclass
class FinalizeRunNode(BaseNode[ContentRunState]):
    """Step 4: Set the terminal status and notify."""

    async def run(
        self,
        ctx: GraphRunContext[ContentRunState, FactoryDependencies]
    ) -> End[dict]:
        state, deps = ctx.state, ctx.deps
        log = PipelineLogger(deps.store, state.run_id)

        if state.final_status:
            status = RunStatus(state.final_status)
        elif state.error or state.stages_failed:
            status = RunStatus.FAILED
        else:
            status = RunStatus.COMPLETED
        state.status = status.value
        state.pending_approval_id = None
        await persist_run(deps, state, completed_at=utc_now())

        summary = (
            f"{len(state.stages_completed)} completed, {len(state.stages_failed)} failed, "
            f"{len(state.not_attempted)} not attempted"
        )
        if status == RunStatus.COMPLETED:
            await log.success(f"Run completed ({summary})")
        else:
            await log.error(f"Run {status.value} ({summary}): {state.error or state.worker_errors}")

        try:
            await deps.slack.send_notification(
                f"Content pipeline {status.value}",
                _notification_body(state, summary),
                run_id=state.run_id,
            )
        except Exception as e:
            logger.error(f"Failed to send run notification for {state.run_id}: {e}")

        return End({"status": status.value})


def _notification_body(state: ContentRunState, summary: str) -> str:
    lines = [summary]
    if state.artifacts.hebrew_title:
        lines.append(f"Article: {state.artifacts.hebrew_title}")
    for url in (state.artifacts.hebrew_post_url, state.artifacts.english_post_url):
        if url:
            lines.append(url)
    if state.error:
        lines.append(f"Error: {state.error}")
    return "\n".join(lines)


# Build the graph
content_factory_graph = Graph(
    nodes=(
        StartRunNode,
        ExecuteWorkerNode,
        AwaitApprovalNode,
        FinalizeRunNode,
    ),
    name="content_factory_run"
)
