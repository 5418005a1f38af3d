"""
Tests for VideoStudioWorker - the media_approval gate.

Tests: video runs after content review and pauses for media approval,
approval publishes both posts with the video cover, a revision replaces
the video only, Kie failures stop the run before publishing.
"""

import pytest

from contentfactory.core.models import ApprovalDecision, ApprovalType, Topic, TopicStatus
from contentfactory.pipelines.content_factory import DEFAULT_CONTENT_PIPELINE, FactoryDependencies, Orchestrator
from contentfactory.services.fakes import FakeKieService
from contentfactory.services.record_store import InMemoryRecordStore

VIDEO_PIPELINE = DEFAULT_CONTENT_PIPELINE + ["video-studio"]


def _make_deps(**overrides):
    store = InMemoryRecordStore(topics=[
        Topic(id="rec-fbar", topic="FBAR filing", keywords=["FBAR"], status=TopicStatus.READY),
    ])
    return FactoryDependencies.create(test_mode=True, store=store, **overrides)


async def _paused_for_media(orchestrator):
    """Run the video pipeline and approve the content review gate."""
    paused = await orchestrator.run_content_pipeline(workers=VIDEO_PIPELINE, test_mode=True, auto_approve=False)
    return await orchestrator.resume_run(paused.run_id)


def _rendered(deps, post_id):
    return deps.wordpress.posts[post_id]["content"]["rendered"]


class TestVideoGate:

    @pytest.mark.asyncio
    async def test_pauses_for_media_approval_after_review(self):
        deps = _make_deps()
        result = await _paused_for_media(Orchestrator(deps))

        assert result.status == "paused"
        assert result.completed_workers == [
            "topic-manager",
            "content-generator",
            "gutenberg-builder",
            "video-studio",
        ]
        video_url = result.artifacts.video_url
        assert video_url.endswith(".mp4")
        assert deps.kie.submitted[-1]["kind"] == "video"

        approval = deps.store.approvals[result.awaiting_approval_id]
        assert approval.type == ApprovalType.MEDIA_APPROVAL
        assert approval.stage == "video-studio"
        assert approval.details["video_url"] == video_url

        post = deps.wordpress.posts[result.artifacts.hebrew_post_id]
        assert post["status"] == "draft"
        assert f'<video src="{video_url}"' in _rendered(deps, post["id"])
        assert post["meta"]["tax4us_video_url"] == video_url
        assert deps.store.content_pieces[result.artifacts.content_piece_id].media_urls == [video_url]

    @pytest.mark.asyncio
    async def test_approval_publishes_with_video_cover(self):
        deps = _make_deps()
        orchestrator = Orchestrator(deps)
        paused = await _paused_for_media(orchestrator)

        result = await orchestrator.resume_run(paused.run_id)

        assert result.status == "completed"
        assert result.completed_workers[-4:] == ["video-studio", "translator", "media-processor", "social-publisher"]
        video_url = paused.artifacts.video_url
        assert deps.wordpress.posts[result.artifacts.hebrew_post_id]["status"] == "publish"
        assert f'<video src="{video_url}"' in _rendered(deps, result.artifacts.hebrew_post_id)
        assert f'<video src="{video_url}"' in _rendered(deps, result.artifacts.english_post_id)

    @pytest.mark.asyncio
    async def test_revision_replaces_video_only(self):
        deps = _make_deps()
        orchestrator = Orchestrator(deps)
        paused = await _paused_for_media(orchestrator)
        claude_calls = len(deps.claude.calls)

        revised = await orchestrator.resume_run(
            paused.run_id, feedback="calmer scenes", decision=ApprovalDecision.REQUEST_REVISION
        )

        assert revised.status == "paused"
        assert revised.completed_workers[-1] == "video-studio"
        assert len(deps.claude.calls) == claude_calls
        assert deps.kie.submitted[-1]["prompt"].endswith("Reviewer notes: calmer scenes")

        new_url = revised.artifacts.video_url
        assert new_url != paused.artifacts.video_url
        assert deps.store.content_pieces[revised.artifacts.content_piece_id].media_urls == [new_url]
        assert f'<video src="{new_url}"' in _rendered(deps, revised.artifacts.hebrew_post_id)
        assert deps.store.approvals[revised.awaiting_approval_id].details["feedback_addressed"] == "calmer scenes"


class TestVideoFailure:

    @pytest.mark.asyncio
    async def test_kie_failure_stops_before_publishing(self):
        deps = _make_deps(kie=FakeKieService(fail=True))
        result = await Orchestrator(deps).run_content_pipeline(workers=VIDEO_PIPELINE, test_mode=True)

        assert result.status == "failed"
        assert result.failed_workers == ["video-studio"]
        assert result.not_attempted == ["translator", "media-processor", "social-publisher"]
        assert deps.wordpress.posts[result.artifacts.hebrew_post_id]["status"] == "draft"

    @pytest.mark.asyncio
    async def test_default_pipeline_has_no_video(self):
        deps = _make_deps()
        result = await Orchestrator(deps).run_content_pipeline(test_mode=True)

        assert result.artifacts.video_url is None
        assert all(job["kind"] == "image" for job in deps.kie.submitted)
        assert "<video" not in _rendered(deps, result.artifacts.hebrew_post_id)
