"""
Tests for InMemoryRecordStore.

Tests: copies on read, patch validation, unknown-id updates, approval
lookup by Slack message, pending approvals, run listing.
"""

import pytest

from contentfactory.core.exceptions import RecordNotFoundError
from contentfactory.core.models import (
    Approval,
    ApprovalStatus,
    PipelineRun,
    RunArtifacts,
    RunStatus,
    Topic,
    TopicStatus,
)
from contentfactory.services.record_store import InMemoryRecordStore


class TestTopics:

    @pytest.mark.asyncio
    async def test_reads_return_copies(self):
        store = InMemoryRecordStore(topics=[Topic(id="t1", topic="FBAR")])
        topic = await store.get_topic("t1")
        topic.title = "changed outside the store"
        assert (await store.get_topic("t1")).title is None

    @pytest.mark.asyncio
    async def test_filter_by_status(self):
        store = InMemoryRecordStore(topics=[
            Topic(id="a", status=TopicStatus.READY),
            Topic(id="b", status=TopicStatus.COMPLETED),
        ])
        topics = await store.get_topics(statuses=[TopicStatus.READY])
        assert [t.id for t in topics] == ["a"]

    @pytest.mark.asyncio
    async def test_update_validates_patch(self):
        store = InMemoryRecordStore(topics=[Topic(id="t1")])
        updated = await store.update_topic("t1", {"status": "completed", "hebrew_post_id": 5})
        assert updated.status == TopicStatus.COMPLETED
        assert updated.hebrew_post_id == 5

    @pytest.mark.asyncio
    async def test_update_unknown_raises(self):
        with pytest.raises(RecordNotFoundError, match="Topic not found: nope"):
            await InMemoryRecordStore().update_topic("nope", {"title": "x"})

    @pytest.mark.asyncio
    async def test_lookup_unknown_returns_none(self):
        assert await InMemoryRecordStore().get_topic("nope") is None


class TestRunsAndApprovals:

    @pytest.mark.asyncio
    async def test_run_update_accepts_artifacts_model(self):
        store = InMemoryRecordStore()
        run = await store.create_pipeline_run(PipelineRun())
        updated = await store.update_pipeline_run(run.id, {
            "status": RunStatus.RUNNING,
            "artifacts": RunArtifacts(hebrew_post_id=7),
        })
        assert updated.status == RunStatus.RUNNING
        assert updated.artifacts.hebrew_post_id == 7
        assert updated.updated_at >= run.updated_at

    @pytest.mark.asyncio
    async def test_list_runs_by_status(self):
        store = InMemoryRecordStore()
        paused = await store.create_pipeline_run(PipelineRun(status=RunStatus.PAUSED))
        await store.create_pipeline_run(PipelineRun(status=RunStatus.COMPLETED))
        runs = await store.list_pipeline_runs(status=RunStatus.PAUSED)
        assert [r.id for r in runs] == [paused.id]

    @pytest.mark.asyncio
    async def test_approval_lookup_by_slack_message(self):
        store = InMemoryRecordStore()
        run = await store.create_pipeline_run(PipelineRun())
        approval = await store.create_approval(
            Approval(run_id=run.id, slack_channel="C1", slack_message_ts="1700.1")
        )

        assert (await store.get_approval_by_slack_message("1700.1")).id == approval.id
        assert (await store.get_approval_by_slack_message("1700.1", "C1")).id == approval.id
        assert await store.get_approval_by_slack_message("1700.1", "C2") is None
        assert await store.get_approval_by_slack_message("1700.2") is None
        assert (await store.get_pipeline_run_by_approval(approval.id)).id == run.id

    @pytest.mark.asyncio
    async def test_pending_approvals(self):
        store = InMemoryRecordStore()
        pending = await store.create_approval(Approval(run_id="r1"))
        await store.create_approval(Approval(run_id="r1", status=ApprovalStatus.APPROVED))
        await store.create_approval(Approval(run_id="r2"))

        assert [a.id for a in await store.get_pending_approvals("r1")] == [pending.id]
        assert len(await store.get_pending_approvals()) == 2
