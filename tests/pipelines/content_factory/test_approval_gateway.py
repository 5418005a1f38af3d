"""
Tests for the approval gate - pausing, Slack decisions and resuming.

Tests: pause with exactly one pending approval, approve/reject by
reaction, revision by reply (rewind and re-run), revision limit,
ignored events, decisions on terminal runs, resume from the store with
a new Orchestrator, dispatch failures.
"""

from unittest.mock import patch

import pytest

from contentfactory.core.exceptions import ContentFactoryError, RunAlreadyTerminalError
from contentfactory.core.models import ApprovalDecision, ApprovalStatus, RunStatus, Topic, TopicStatus
from contentfactory.pipelines.content_factory import (
    DEFAULT_CONTENT_PIPELINE,
    FactoryDependencies,
    Orchestrator,
)
from contentfactory.services.fakes import FakeClaudeService, FakeSlack, build_fake_article
from contentfactory.services.record_store import InMemoryRecordStore

PATCH_CONFIG = "contentfactory.pipelines.content_factory.orchestrator.Config"

GATED = ["topic-manager", "content-generator", "gutenberg-builder"]


def _make_deps(**overrides):
    store = InMemoryRecordStore(topics=[
        Topic(id="rec-fbar", topic="FBAR filing", keywords=["FBAR"], status=TopicStatus.READY),
    ])
    return FactoryDependencies.create(test_mode=True, store=store, **overrides)


async def _paused_run(deps):
    orchestrator = Orchestrator(deps)
    result = await orchestrator.run_content_pipeline(test_mode=True, auto_approve=False)
    approval = deps.store.approvals[result.awaiting_approval_id]
    return orchestrator, result, approval


def _pending(deps, run_id):
    return [
        a for a in deps.store.approvals.values()
        if a.run_id == run_id and a.status == ApprovalStatus.PENDING
    ]


class TestPause:

    @pytest.mark.asyncio
    async def test_run_pauses_after_gated_worker(self):
        """The run pauses after gutenberg-builder with one pending approval."""
        deps = _make_deps()
        _, result, approval = await _paused_run(deps)

        assert result.status == "paused"
        assert result.success
        assert result.completed_workers == GATED
        assert result.not_attempted == []
        assert len(_pending(deps, result.run_id)) == 1
        assert approval.stage == "gutenberg-builder"
        assert approval.related_id == str(result.artifacts.hebrew_post_id)

        run = await deps.store.get_pipeline_run(result.run_id)
        assert run.status == RunStatus.PAUSED
        assert run.completed_at is None

    @pytest.mark.asyncio
    async def test_approval_request_dispatched(self):
        deps = _make_deps()
        _, result, approval = await _paused_run(deps)

        requests = deps.slack.of_kind("approval_request")
        assert len(requests) == 1
        assert requests[0]["approval_id"] == approval.id
        assert approval.slack_message_ts == requests[0]["ts"]
        assert approval.slack_channel == FakeSlack.channel_id

    @pytest.mark.asyncio
    async def test_hebrew_post_stays_draft_while_paused(self):
        deps = _make_deps()
        _, result, _ = await _paused_run(deps)
        assert deps.wordpress.posts[result.artifacts.hebrew_post_id]["status"] == "draft"
        assert result.artifacts.english_post_id is None

    @pytest.mark.asyncio
    async def test_dispatch_failure_leaves_run_paused(self):
        """A Slack outage keeps the approval pending; an operator can still resume."""
        deps = _make_deps(slack=FakeSlack(fail=True))
        orchestrator, result, approval = await _paused_run(deps)

        assert result.status == "paused"
        assert approval.status == ApprovalStatus.PENDING
        assert approval.slack_message_ts is None

        resumed = await orchestrator.resume_run(result.run_id)
        assert resumed.status == "completed"


class TestDecisions:

    @pytest.mark.asyncio
    async def test_approve_by_reaction(self):
        deps = _make_deps()
        orchestrator, result, approval = await _paused_run(deps)

        resumed = await orchestrator.handle_approval_response(
            approval.slack_message_ts, "U-REVIEWER", reaction="white_check_mark"
        )

        assert resumed.status == "completed"
        assert resumed.run_id == result.run_id
        assert resumed.completed_workers == DEFAULT_CONTENT_PIPELINE

        stored = deps.store.approvals[approval.id]
        assert stored.status == ApprovalStatus.APPROVED
        assert stored.decision == ApprovalDecision.APPROVE
        assert stored.response_user_id == "U-REVIEWER"
        assert stored.response_timestamp is not None

    @pytest.mark.asyncio
    async def test_reject_by_reaction(self):
        deps = _make_deps()
        orchestrator, result, approval = await _paused_run(deps)

        resumed = await orchestrator.handle_approval_response(approval.slack_message_ts, "U-REVIEWER", reaction="x")

        assert resumed.status == "failed"
        assert resumed.error == "Rejected by U-REVIEWER"
        assert resumed.not_attempted == ["translator", "media-processor", "social-publisher"]
        assert deps.store.approvals[approval.id].status == ApprovalStatus.REJECTED

        run = await deps.store.get_pipeline_run(result.run_id)
        assert run.status == RunStatus.FAILED
        assert run.completed_at is not None

    @pytest.mark.asyncio
    async def test_reject_with_feedback_in_reason(self):
        deps = _make_deps()
        orchestrator, result, approval = await _paused_run(deps)

        resumed = await orchestrator.handle_approval_response(
            approval.slack_message_ts, "U-REVIEWER", reply_text="reject, wrong audience"
        )
        assert resumed.status == "failed"
        assert resumed.error.startswith("Rejected by U-REVIEWER: ")

    @pytest.mark.asyncio
    async def test_revision_reruns_from_content_generator(self):
        """A revise reply rewinds to content-generator and pauses at a fresh gate."""
        prompts = []

        def article(prompt, context):
            prompts.append(prompt)
            return build_fake_article(context["focus_keyword"], context["title"])

        deps = _make_deps(claude=FakeClaudeService(responses={"article": article}))
        orchestrator, result, approval = await _paused_run(deps)

        resumed = await orchestrator.handle_approval_response(
            approval.slack_message_ts, "U-REVIEWER", reply_text="please revise the intro"
        )

        assert resumed.status == "paused"
        assert resumed.completed_workers == GATED
        assert resumed.awaiting_approval_id != approval.id
        assert len(prompts) == 2
        assert "please revise the intro" in prompts[1]

        old = deps.store.approvals[approval.id]
        assert old.status == ApprovalStatus.REJECTED
        assert old.decision == ApprovalDecision.REQUEST_REVISION
        assert old.feedback == "please revise the intro"
        assert len(_pending(deps, result.run_id)) == 1

        revisions = deps.slack.of_kind("revision_request")
        assert len(revisions) == 1
        assert revisions[0]["feedback"] == "please revise the intro"

        run = await deps.store.get_pipeline_run(result.run_id)
        assert run.revision_count == 1

    @pytest.mark.asyncio
    async def test_revision_updates_existing_draft(self):
        deps = _make_deps()
        orchestrator, result, approval = await _paused_run(deps)

        resumed = await orchestrator.handle_approval_response(
            approval.slack_message_ts, "U-REVIEWER", reply_text="please revise the intro"
        )
        assert resumed.artifacts.hebrew_post_id == result.artifacts.hebrew_post_id
        assert resumed.artifacts.content_piece_id == result.artifacts.content_piece_id
        assert len(deps.wordpress.posts) == 1
        assert len(deps.store.content_pieces) == 1

    @pytest.mark.asyncio
    async def test_revision_limit_fails_run(self):
        deps = _make_deps()
        orchestrator, result, approval = await _paused_run(deps)

        with patch(PATCH_CONFIG) as mock_config:
            mock_config.MAX_REVISIONS = 1
            first = await orchestrator.handle_approval_response(
                approval.slack_message_ts, "U-REVIEWER", reply_text="revise the intro"
            )
            second_approval = deps.store.approvals[first.awaiting_approval_id]
            second = await orchestrator.handle_approval_response(
                second_approval.slack_message_ts, "U-REVIEWER", reply_text="revise it again"
            )

        assert second.status == "failed"
        assert second.error == "Revision limit reached (1)"

    @pytest.mark.asyncio
    async def test_structured_decision_wins(self):
        deps = _make_deps()
        orchestrator, result, approval = await _paused_run(deps)

        resumed = await orchestrator.handle_approval_response(
            approval.slack_message_ts, "U-REVIEWER", reply_text="looks good", decision=ApprovalDecision.REJECT
        )
        assert resumed.status == "failed"


class TestIgnoredEvents:

    @pytest.mark.asyncio
    async def test_unrelated_reaction_ignored(self):
        deps = _make_deps()
        orchestrator, result, approval = await _paused_run(deps)

        assert await orchestrator.handle_approval_response(approval.slack_message_ts, "U1", reaction="tada") is None
        assert deps.store.approvals[approval.id].status == ApprovalStatus.PENDING
        assert (await deps.store.get_pipeline_run(result.run_id)).status == RunStatus.PAUSED

    @pytest.mark.asyncio
    async def test_unknown_message_ignored(self):
        deps = _make_deps()
        orchestrator, _, _ = await _paused_run(deps)
        assert await orchestrator.handle_approval_response("999.000", "U1", reaction="white_check_mark") is None

    @pytest.mark.asyncio
    async def test_second_decision_ignored(self):
        deps = _make_deps()
        orchestrator, _, approval = await _paused_run(deps)

        await orchestrator.handle_approval_response(approval.slack_message_ts, "U1", reaction="white_check_mark")
        again = await orchestrator.handle_approval_response(approval.slack_message_ts, "U2", reaction="x")

        assert again is None
        assert deps.store.approvals[approval.id].response_user_id == "U1"

    @pytest.mark.asyncio
    async def test_decision_on_terminal_run_raises(self):
        deps = _make_deps()
        orchestrator, result, approval = await _paused_run(deps)
        await deps.store.update_pipeline_run(result.run_id, {"status": RunStatus.COMPLETED})

        with pytest.raises(RunAlreadyTerminalError):
            await orchestrator.handle_approval_response(approval.slack_message_ts, "U1", reaction="white_check_mark")
        assert deps.store.approvals[approval.id].status == ApprovalStatus.PENDING


class TestResume:

    @pytest.mark.asyncio
    async def test_resume_with_new_orchestrator(self):
        """A paused run is rebuilt from the store by a different Orchestrator."""
        deps = _make_deps()
        _, result, approval = await _paused_run(deps)

        fresh = FactoryDependencies.create(
            test_mode=True, store=deps.store, wordpress=deps.wordpress, slack=deps.slack
        )
        resumed = await Orchestrator(fresh).handle_approval_response(
            approval.slack_message_ts, "U-REVIEWER", reaction="thumbsup"
        )

        assert resumed.status == "completed"
        assert resumed.completed_workers == DEFAULT_CONTENT_PIPELINE
        assert resumed.artifacts.english_post_id is not None

    @pytest.mark.asyncio
    async def test_resume_run_as_operator(self):
        deps = _make_deps()
        orchestrator, result, approval = await _paused_run(deps)

        resumed = await orchestrator.resume_run(result.run_id, approved=False, feedback="off topic")

        assert resumed.status == "failed"
        assert resumed.error == "Rejected by operator: off topic"
        assert deps.store.approvals[approval.id].response_user_id == "operator"

    @pytest.mark.asyncio
    async def test_resume_completed_run_raises(self):
        deps = _make_deps()
        orchestrator = Orchestrator(deps)
        result = await orchestrator.run_content_pipeline(test_mode=True)

        with pytest.raises(RunAlreadyTerminalError):
            await orchestrator.resume_run(result.run_id)

    @pytest.mark.asyncio
    async def test_resume_running_run_raises(self):
        deps = _make_deps()
        orchestrator, result, _ = await _paused_run(deps)
        await deps.store.update_pipeline_run(result.run_id, {"status": RunStatus.RUNNING})

        with pytest.raises(ContentFactoryError, match="not paused"):
            await orchestrator.resume_run(result.run_id)
