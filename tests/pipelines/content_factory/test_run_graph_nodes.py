"""
Tests for the run graph nodes in isolation.

Tests: ExecuteWorkerNode dependency checks, stop-on-failure, approval
routing; AwaitApprovalNode auto-approve and pause; FinalizeRunNode
status selection and notification failures.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from pydantic_graph import End

from contentfactory.core.models import ApprovalStatus, ApprovalType, RunArtifacts, RunStatus
from contentfactory.pipelines.content_factory.graph import (
    AwaitApprovalNode,
    ExecuteWorkerNode,
    FinalizeRunNode,
    StartRunNode,
)
from contentfactory.pipelines.content_factory.nodes import build_registry
from contentfactory.pipelines.content_factory.nodes.base import ApprovalSpec, WorkerResult
from contentfactory.pipelines.content_factory.nodes.gutenberg_builder import GutenbergBuilderWorker
from contentfactory.pipelines.content_factory.state import ContentRunState
from contentfactory.services.slack_service import SlackMessageRef

PATCH_GUTENBERG_RUN = "contentfactory.pipelines.content_factory.nodes.gutenberg_builder.GutenbergBuilderWorker.run"


def _make_state(**overrides):
    defaults = {
        "run_id": "run-1",
        "requested_workers": ["content-generator", "gutenberg-builder"],
        "status": RunStatus.RUNNING.value,
    }
    defaults.update(overrides)
    return ContentRunState(**defaults)


def _make_ctx(state):
    """Create a mock GraphRunContext."""
    ctx = MagicMock()
    ctx.state = state
    ctx.deps = MagicMock()
    ctx.deps.registry = build_registry()
    ctx.deps.store = AsyncMock()
    ctx.deps.store.create_approval = AsyncMock(side_effect=lambda approval: approval)
    ctx.deps.slack = MagicMock()
    ctx.deps.slack.send_approval_request = AsyncMock(return_value=SlackMessageRef(channel="C1", ts="171.000"))
    ctx.deps.slack.send_notification = AsyncMock()
    return ctx


# ============================================================================
# StartRunNode
# ============================================================================

class TestStartRunNode:

    @pytest.mark.asyncio
    async def test_marks_run_running(self):
        state = _make_state(status=RunStatus.PENDING.value)
        ctx = _make_ctx(state)

        result = await StartRunNode().run(ctx)

        assert isinstance(result, ExecuteWorkerNode)
        assert state.status == "running"
        patch_arg = ctx.deps.store.update_pipeline_run.call_args[0][1]
        assert patch_arg["status"] == RunStatus.RUNNING


# ============================================================================
# ExecuteWorkerNode
# ============================================================================

class TestExecuteWorkerNode:

    @pytest.mark.asyncio
    async def test_unmet_dependency_fails_without_invoking_worker(self):
        """A worker whose predecessor failed is failed, not run."""
        state = _make_state(stages_failed=["content-generator"], next_index=1, skip_failures=True)
        ctx = _make_ctx(state)

        with patch(PATCH_GUTENBERG_RUN, new=AsyncMock()) as mock_run:
            result = await ExecuteWorkerNode().run(ctx)

        mock_run.assert_not_called()
        assert isinstance(result, FinalizeRunNode)
        assert state.stages_failed == ["content-generator", "gutenberg-builder"]
        assert state.worker_errors["gutenberg-builder"] == "Dependency not satisfied: content-generator"

    @pytest.mark.asyncio
    async def test_predecessor_outside_request_is_satisfied(self):
        state = _make_state(requested_workers=["gutenberg-builder"])
        ctx = _make_ctx(state)
        ok = WorkerResult(success=True, worker="gutenberg-builder", artifacts=RunArtifacts(hebrew_post_id=5))

        with patch(PATCH_GUTENBERG_RUN, new=AsyncMock(return_value=ok)):
            result = await ExecuteWorkerNode().run(ctx)

        assert isinstance(result, FinalizeRunNode)
        assert state.stages_completed == ["gutenberg-builder"]
        assert state.artifacts.hebrew_post_id == 5

    @pytest.mark.asyncio
    async def test_success_with_approval_routes_to_gate(self):
        state = _make_state(requested_workers=["gutenberg-builder"])
        ctx = _make_ctx(state)
        spec = ApprovalSpec(type=ApprovalType.CONTENT_REVIEW, related_id="5", related_title="מדריך FBAR")
        ok = WorkerResult(success=True, worker="gutenberg-builder", requires_approval=spec)

        with patch(PATCH_GUTENBERG_RUN, new=AsyncMock(return_value=ok)):
            result = await ExecuteWorkerNode().run(ctx)

        assert isinstance(result, AwaitApprovalNode)
        assert result.approval is spec

    @pytest.mark.asyncio
    async def test_failure_stops_run(self):
        state = _make_state(requested_workers=["gutenberg-builder", "translator", "media-processor"])
        ctx = _make_ctx(state)
        failed = WorkerResult(success=False, worker="gutenberg-builder", error="WordPress create_post failed")

        with patch(PATCH_GUTENBERG_RUN, new=AsyncMock(return_value=failed)):
            result = await ExecuteWorkerNode().run(ctx)

        assert isinstance(result, FinalizeRunNode)
        assert state.stages_failed == ["gutenberg-builder"]
        assert state.not_attempted == ["translator", "media-processor"]
        assert state.error == "gutenberg-builder failed: WordPress create_post failed"

    @pytest.mark.asyncio
    async def test_failure_with_skip_continues(self):
        state = _make_state(requested_workers=["gutenberg-builder", "media-processor"], skip_failures=True)
        ctx = _make_ctx(state)
        failed = WorkerResult(success=False, worker="gutenberg-builder", error="boom")

        with patch(PATCH_GUTENBERG_RUN, new=AsyncMock(return_value=failed)):
            result = await ExecuteWorkerNode().run(ctx)

        assert isinstance(result, ExecuteWorkerNode)
        assert state.error is None
        assert state.next_index == 1


# ============================================================================
# AwaitApprovalNode
# ============================================================================

class TestAwaitApprovalNode:

    def _gate(self):
        return AwaitApprovalNode(approval=ApprovalSpec(
            type=ApprovalType.CONTENT_REVIEW, related_id="5", related_title="מדריך FBAR"
        ))

    @pytest.mark.asyncio
    async def test_pauses_and_dispatches(self):
        state = _make_state(stages_completed=["content-generator", "gutenberg-builder"], next_index=2)
        ctx = _make_ctx(state)

        result = await self._gate().run(ctx)

        assert isinstance(result, End)
        assert result.data["status"] == "paused"
        assert state.status == "paused"
        assert state.pending_approval_id == result.data["approval_id"]

        approval = ctx.deps.store.create_approval.call_args[0][0]
        assert approval.stage == "gutenberg-builder"
        assert approval.status == ApprovalStatus.PENDING
        ctx.deps.store.update_approval.assert_awaited_once_with(
            approval.id, {"slack_channel": "C1", "slack_message_ts": "171.000"}
        )

    @pytest.mark.asyncio
    async def test_dispatch_failure_still_pauses(self):
        state = _make_state(stages_completed=["gutenberg-builder"], requested_workers=["gutenberg-builder"], next_index=1)
        ctx = _make_ctx(state)
        ctx.deps.slack.send_approval_request = AsyncMock(side_effect=RuntimeError("channel_not_found"))

        result = await self._gate().run(ctx)

        assert isinstance(result, End)
        assert state.status == "paused"
        ctx.deps.store.update_approval.assert_not_called()

    @pytest.mark.asyncio
    async def test_auto_approve_continues(self):
        state = _make_state(
            requested_workers=["gutenberg-builder", "translator"],
            stages_completed=["gutenberg-builder"],
            next_index=1,
            auto_approve=True,
            revision_feedback="shorter intro",
        )
        ctx = _make_ctx(state)

        result = await self._gate().run(ctx)

        assert isinstance(result, ExecuteWorkerNode)
        assert state.pending_approval_id is None
        assert state.revision_feedback is None
        approval = ctx.deps.store.create_approval.call_args[0][0]
        assert approval.status == ApprovalStatus.APPROVED
        assert approval.response_user_id == "auto-approve"
        ctx.deps.slack.send_approval_request.assert_not_called()


# ============================================================================
# FinalizeRunNode
# ============================================================================

class TestFinalizeRunNode:

    @pytest.mark.asyncio
    async def test_completed(self):
        state = _make_state(stages_completed=["content-generator", "gutenberg-builder"], next_index=2)
        ctx = _make_ctx(state)

        result = await FinalizeRunNode().run(ctx)

        assert result.data == {"status": "completed"}
        patch_arg = ctx.deps.store.update_pipeline_run.call_args[0][1]
        assert patch_arg["status"] == RunStatus.COMPLETED
        assert patch_arg["completed_at"] is not None

    @pytest.mark.asyncio
    async def test_failed_when_any_worker_failed(self):
        state = _make_state(stages_completed=["content-generator"], stages_failed=["gutenberg-builder"], next_index=2)
        result = await FinalizeRunNode().run(_make_ctx(state))
        assert result.data == {"status": "failed"}

    @pytest.mark.asyncio
    async def test_explicit_final_status(self):
        state = _make_state(final_status="expired", error="Approval a-1 for run run-1 timed out")
        result = await FinalizeRunNode().run(_make_ctx(state))
        assert result.data == {"status": "expired"}
        assert state.status == "expired"

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_raise(self):
        state = _make_state(stages_completed=["content-generator", "gutenberg-builder"], next_index=2)
        ctx = _make_ctx(state)
        ctx.deps.slack.send_notification = AsyncMock(side_effect=RuntimeError("rate_limited"))

        result = await FinalizeRunNode().run(ctx)
        assert result.data == {"status": "completed"}
