"""
Tests for Orchestrator.run_content_pipeline - end-to-end runs in test mode.

Tests: full six-worker run with auto-approval, run record bookkeeping,
stop-on-failure and skip_failures partitions, dependency-not-satisfied
propagation, missing topics, unknown workers, run logs, test mode refused
on live dependencies.
"""

import pytest

from contentfactory.core.exceptions import ContentFactoryError, UnknownWorkerError
from contentfactory.core.models import ApprovalStatus, RunStatus, Topic, TopicStatus
from contentfactory.pipelines.content_factory import (
    DEFAULT_CONTENT_PIPELINE,
    FactoryDependencies,
    Orchestrator,
)
from contentfactory.services.fakes import FakeClaudeService, FakeKieService
from contentfactory.services.record_store import InMemoryRecordStore


def _make_topic(**overrides):
    defaults = {
        "id": "rec-fbar",
        "topic": "FBAR filing",
        "keywords": ["FBAR"],
        "status": TopicStatus.READY,
        "priority": "high",
    }
    defaults.update(overrides)
    return Topic(**defaults)


def _make_deps(topics=None, **overrides):
    store = InMemoryRecordStore(topics=topics if topics is not None else [_make_topic()])
    return FactoryDependencies.create(test_mode=True, store=store, **overrides)


def _assert_partition(result, requested):
    """Every requested worker is in exactly one outcome list."""
    groups = [result.completed_workers, result.failed_workers, result.not_attempted]
    flat = [w for group in groups for w in group]
    assert sorted(flat) == sorted(requested)
    assert len(flat) == len(set(flat))


class TestFullRun:

    @pytest.mark.asyncio
    async def test_all_workers_succeed(self):
        """A clean test-mode run completes every worker and links both posts."""
        deps = _make_deps()
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True)

        assert result.success
        assert result.status == "completed"
        assert result.completed_workers == DEFAULT_CONTENT_PIPELINE
        assert result.failed_workers == []
        assert result.not_attempted == []
        assert result.artifacts.hebrew_post_id is not None
        assert result.artifacts.english_post_id is not None
        assert {p.platform for p in result.artifacts.social_posts} == {"linkedin", "facebook"}

    @pytest.mark.asyncio
    async def test_run_record_and_topic_updated(self):
        deps = _make_deps()
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True)

        run = await deps.store.get_pipeline_run(result.run_id)
        assert run.status == RunStatus.COMPLETED
        assert run.stages_completed == DEFAULT_CONTENT_PIPELINE
        assert run.completed_at is not None
        assert run.current_stage == "social-publisher"
        assert run.workflow_data["run_id"] == result.run_id

        topic = await deps.store.get_topic("rec-fbar")
        assert topic.status == TopicStatus.COMPLETED
        assert topic.hebrew_post_id == result.artifacts.hebrew_post_id
        assert topic.english_post_id == result.artifacts.english_post_id
        assert topic.completed_at is not None

    @pytest.mark.asyncio
    async def test_posts_published_and_linked(self):
        deps = _make_deps()
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True)

        hebrew = deps.wordpress.posts[result.artifacts.hebrew_post_id]
        english = deps.wordpress.posts[result.artifacts.english_post_id]
        assert hebrew["status"] == "publish"
        assert english["status"] == "publish"
        assert english["translations"] == {"lang": "en", "translations[he]": hebrew["id"]}
        assert hebrew["featured_media"] == result.artifacts.featured_media_id

    @pytest.mark.asyncio
    async def test_auto_approval_recorded_without_dispatch(self):
        """Test mode auto-approves the content review gate and sends no request."""
        deps = _make_deps()
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True)

        approvals = [a for a in deps.store.approvals.values() if a.run_id == result.run_id]
        assert len(approvals) == 1
        assert approvals[0].status == ApprovalStatus.APPROVED
        assert approvals[0].response_user_id == "auto-approve"
        assert deps.slack.of_kind("approval_request") == []
        assert deps.slack.of_kind("notification")[-1]["title"] == "Content pipeline completed"

    @pytest.mark.asyncio
    async def test_logs_written_for_run(self):
        deps = _make_deps()
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True)

        logs = await deps.store.get_pipeline_logs(result.run_id)
        stages = {log.stage for log in logs if log.stage}
        assert set(DEFAULT_CONTENT_PIPELINE) <= stages
        assert logs[-1].level.value == "success"

    @pytest.mark.asyncio
    async def test_subset_runs_in_dependency_order(self):
        deps = _make_deps()
        result = await Orchestrator(deps).run_content_pipeline(
            workers=["content-generator", "topic-manager"], test_mode=True
        )
        assert result.completed_workers == ["topic-manager", "content-generator"]
        assert result.artifacts.content_piece_id is not None


class TestFailures:

    @pytest.mark.asyncio
    async def test_failure_stops_run(self):
        """Without skip_failures the run stops at the first failed worker."""
        deps = _make_deps(kie=FakeKieService(fail=True))
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True)

        assert not result.success
        assert result.status == "failed"
        assert result.completed_workers == ["topic-manager", "content-generator", "gutenberg-builder", "translator"]
        assert result.failed_workers == ["media-processor"]
        assert result.not_attempted == ["social-publisher"]
        assert "content policy violation" in result.errors[0]
        _assert_partition(result, DEFAULT_CONTENT_PIPELINE)

    @pytest.mark.asyncio
    async def test_completed_artifacts_preserved_on_failure(self):
        deps = _make_deps(kie=FakeKieService(fail=True))
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True)

        run = await deps.store.get_pipeline_run(result.run_id)
        assert run.status == RunStatus.FAILED
        assert run.artifacts.english_post_id == result.artifacts.english_post_id
        assert run.not_attempted == ["social-publisher"]
        assert run.error.startswith("media-processor failed")

    @pytest.mark.asyncio
    async def test_skip_failures_marks_dependents(self):
        """A dependent of a failed worker fails without being invoked."""
        deps = _make_deps(kie=FakeKieService(fail=True))
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True, skip_failures=True)

        assert result.failed_workers == ["media-processor", "social-publisher"]
        assert result.not_attempted == []
        assert "social-publisher: Dependency not satisfied: media-processor" in result.errors
        assert deps.social.published == []
        _assert_partition(result, DEFAULT_CONTENT_PIPELINE)

    @pytest.mark.asyncio
    async def test_skip_failures_keeps_independent_workers_running(self):
        """media-processor only needs content-generator, so it still runs after translator fails."""
        deps = _make_deps(claude=FakeClaudeService(failures={"translation"}))
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True, skip_failures=True)

        assert "media-processor" in result.completed_workers
        assert result.failed_workers == ["translator", "social-publisher"]
        assert result.status == "failed"
        _assert_partition(result, DEFAULT_CONTENT_PIPELINE)

    @pytest.mark.asyncio
    async def test_no_ready_topics(self):
        deps = _make_deps(topics=[_make_topic(status=TopicStatus.COMPLETED)])
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True)

        assert result.failed_workers == ["topic-manager"]
        assert result.errors == ["topic-manager: No topics ready for content generation"]
        assert len(result.not_attempted) == 5

    @pytest.mark.asyncio
    async def test_requested_topic_missing(self):
        deps = _make_deps()
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True, topic_id="rec-missing")
        assert result.errors == ["topic-manager: Topic not found: rec-missing"]

    @pytest.mark.asyncio
    async def test_unknown_worker_raises_before_run_created(self):
        deps = _make_deps()
        with pytest.raises(UnknownWorkerError):
            await Orchestrator(deps).run_content_pipeline(workers=["topic-manager", "nope"], test_mode=True)
        assert deps.store.runs == {}


class TestTopicSelection:

    @pytest.mark.asyncio
    async def test_highest_priority_topic_picked(self):
        deps = _make_deps(topics=[
            _make_topic(id="low", priority="low"),
            _make_topic(id="high", priority="high"),
        ])
        result = await Orchestrator(deps).run_content_pipeline(workers=["topic-manager"], test_mode=True)
        assert result.artifacts.topic_id == "high"

    @pytest.mark.asyncio
    async def test_unplanned_topic_is_planned(self):
        deps = _make_deps()
        await Orchestrator(deps).run_content_pipeline(workers=["topic-manager"], test_mode=True)

        topic = await deps.store.get_topic("rec-fbar")
        assert topic.title == "FBAR filing: Complete Guide"
        assert topic.keywords[0] == "FBAR"
        assert topic.outline
        assert topic.status == TopicStatus.PROCESSING


class TestLiveDependencies:

    @pytest.mark.asyncio
    async def test_test_mode_refused_without_touching_store(self):
        live = _make_deps().model_copy(update={"test_mode": False})
        orchestrator = Orchestrator(live)

        with pytest.raises(ContentFactoryError, match="test_mode requires test dependencies"):
            await orchestrator.run_content_pipeline(test_mode=True)
        with pytest.raises(ContentFactoryError, match="test_mode requires test dependencies"):
            await orchestrator.run_data_healer(test_mode=True)

        assert live.store.runs == {}
        topic = await live.store.get_topic("rec-fbar")
        assert topic.status == TopicStatus.READY
        assert topic.hebrew_post_id is None
