"""
Tests for the Content Factory models.

Tests: artifact merge semantics, unknown artifact keys, terminal run
statuses, enum values stored in Supabase.
"""

import pytest
from pydantic import ValidationError

from contentfactory.core.models import (
    PipelineRun,
    PostRef,
    RunArtifacts,
    RunStatus,
    TERMINAL_RUN_STATUSES,
)


class TestRunArtifacts:

    def test_merge_applies_non_empty_values(self):
        base = RunArtifacts(topic_id="t1", hebrew_post_id=10)
        merged = base.merge(RunArtifacts(english_post_id=11))
        assert merged.topic_id == "t1"
        assert merged.hebrew_post_id == 10
        assert merged.english_post_id == 11

    def test_merge_never_clears_existing_values(self):
        base = RunArtifacts(hebrew_post_id=10)
        merged = base.merge(RunArtifacts())
        assert merged.hebrew_post_id == 10

    def test_merge_appends_social_posts(self):
        base = RunArtifacts(social_posts=[PostRef(platform="linkedin", post_id="1")])
        merged = base.merge(RunArtifacts(social_posts=[PostRef(platform="facebook", post_id="2")]))
        assert [p.platform for p in merged.social_posts] == ["linkedin", "facebook"]

    def test_merge_returns_new_instance(self):
        base = RunArtifacts(topic_id="t1")
        base.merge(RunArtifacts(topic_id="t2"))
        assert base.topic_id == "t1"

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            RunArtifacts(hebrew_postid=10)


class TestPipelineRun:

    @pytest.mark.parametrize("status", [RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.EXPIRED])
    def test_terminal_statuses(self, status):
        assert PipelineRun(status=status).is_terminal

    @pytest.mark.parametrize("status", [RunStatus.PENDING, RunStatus.RUNNING, RunStatus.PAUSED])
    def test_non_terminal_statuses(self, status):
        assert not PipelineRun(status=status).is_terminal

    def test_terminal_set(self):
        assert {s.value for s in TERMINAL_RUN_STATUSES} == {"completed", "failed", "expired"}

    def test_json_dump_uses_enum_values(self):
        data = PipelineRun(artifacts=RunArtifacts(hebrew_post_id=5)).model_dump(mode="json")
        assert data["status"] == "pending"
        assert data["trigger_type"] == "manual"
        assert data["artifacts"]["hebrew_post_id"] == 5
