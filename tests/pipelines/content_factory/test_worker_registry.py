"""
Tests for WorkerRegistry - dependency-ordered execution.

Tests: default content order, subset ordering with predecessors outside the
request, registration-order tie-break, determinism, duplicate ids, unknown
workers, cycle detection, weekday schedules, approval gates.
"""

import pytest
from typing import ClassVar

from contentfactory.core.exceptions import CyclicDependencyError, UnknownWorkerError
from contentfactory.pipelines.content_factory.nodes import (
    DEFAULT_CONTENT_PIPELINE,
    PROPOSAL_PIPELINE,
    build_registry,
)
from contentfactory.pipelines.registry import WorkerRegistry, WorkerSpec


def _worker(worker_id, depends_on=None, schedule=None):
    """Build a minimal worker class with a spec."""
    class _Worker:
        spec: ClassVar[WorkerSpec] = WorkerSpec(
            id=worker_id,
            depends_on=list(depends_on or []),
            schedule=list(schedule or []),
        )
    _Worker.__name__ = f"Worker_{worker_id}"
    return _Worker


class TestResolveExecutionOrder:

    def test_full_content_pipeline_order(self):
        """The six content workers resolve to the documented order."""
        registry = build_registry()
        order = registry.resolve_execution_order(DEFAULT_CONTENT_PIPELINE)
        assert order == [
            "topic-manager",
            "content-generator",
            "gutenberg-builder",
            "translator",
            "media-processor",
            "social-publisher",
        ]

    def test_every_worker_after_its_predecessors(self):
        """For each requested worker, requested predecessors come first."""
        registry = build_registry()
        order = registry.resolve_execution_order(reversed(registry.ids()))
        for worker_id in order:
            for predecessor in registry.spec(worker_id).depends_on:
                assert order.index(predecessor) < order.index(worker_id)

    def test_request_order_does_not_matter(self):
        """Shuffled requests give the same order."""
        registry = build_registry()
        a = registry.resolve_execution_order(["social-publisher", "translator", "topic-manager"])
        b = registry.resolve_execution_order(["topic-manager", "social-publisher", "translator"])
        assert a == b == ["topic-manager", "translator", "social-publisher"]

    def test_proposal_and_video_order(self):
        """The proposer leads and the video gate sits between the draft and publishing."""
        registry = build_registry()
        order = registry.resolve_execution_order(PROPOSAL_PIPELINE + ["video-studio"])
        assert order == [
            "topic-proposer",
            "topic-manager",
            "content-generator",
            "gutenberg-builder",
            "video-studio",
            "translator",
            "media-processor",
            "social-publisher",
        ]

    def test_predecessors_outside_request_are_satisfied(self):
        """Requesting only downstream workers does not pull in their predecessors."""
        registry = build_registry()
        assert registry.resolve_execution_order(["podcast-producer"]) == ["podcast-producer"]

    def test_duplicates_collapsed(self):
        registry = build_registry()
        order = registry.resolve_execution_order(["translator", "translator", "content-generator"])
        assert order == ["content-generator", "translator"]

    def test_registration_order_breaks_ties(self):
        """Independent workers run in registration order."""
        registry = WorkerRegistry([_worker("b"), _worker("a"), _worker("c", ["a"])])
        assert registry.resolve_execution_order(["c", "a", "b"]) == ["b", "a", "c"]

    def test_unknown_worker_raises(self):
        registry = build_registry()
        with pytest.raises(UnknownWorkerError, match="Unknown worker: ghost-writer"):
            registry.resolve_execution_order(["topic-manager", "ghost-writer"])

    def test_unknown_predecessor_raises(self):
        registry = WorkerRegistry([_worker("a", ["missing"])])
        with pytest.raises(UnknownWorkerError):
            registry.resolve_execution_order(["a"])

    def test_cycle_detected(self):
        """A cycle anywhere in the declared graph is a configuration error."""
        registry = WorkerRegistry([
            _worker("a", ["c"]),
            _worker("b", ["a"]),
            _worker("c", ["b"]),
        ])
        with pytest.raises(CyclicDependencyError) as exc_info:
            registry.resolve_execution_order(["a"])
        assert "->" in str(exc_info.value)

    def test_self_dependency_is_a_cycle(self):
        registry = WorkerRegistry([_worker("a", ["a"])])
        with pytest.raises(CyclicDependencyError):
            registry.resolve_execution_order(["a"])


class TestRegistry:

    def test_duplicate_registration_rejected(self):
        registry = WorkerRegistry([_worker("a")])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(_worker("a"))

    def test_get_unknown_raises(self):
        with pytest.raises(UnknownWorkerError):
            build_registry().get("nope")

    def test_contains_and_len(self):
        registry = build_registry()
        assert "translator" in registry
        assert "nope" not in registry
        assert len(registry) == 9

    def test_scheduled_on(self):
        """Podcast runs on Wednesday, content workers on Monday and Thursday."""
        registry = build_registry()
        assert registry.scheduled_on("Wednesday") == ["podcast-producer"]
        assert registry.scheduled_on("monday") == DEFAULT_CONTENT_PIPELINE
        assert registry.scheduled_on("sunday") == []

    def test_gated_workers_and_revision_targets(self):
        registry = build_registry()
        gated = [s.id for s in registry.specs() if s.requires_approval]
        assert gated == ["topic-proposer", "gutenberg-builder", "video-studio"]
        assert registry.spec("topic-proposer").revision_target == "topic-proposer"
        assert registry.spec("gutenberg-builder").revision_target == "content-generator"
        assert registry.spec("video-studio").revision_target == "video-studio"

    def test_on_demand_workers_not_scheduled(self):
        registry = build_registry()
        on_demand = [s.id for s in registry.specs() if s.on_demand]
        assert on_demand == ["topic-proposer", "video-studio"]
