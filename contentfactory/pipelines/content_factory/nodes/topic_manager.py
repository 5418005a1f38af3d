"""
TopicManagerWorker - Picks the topic a run will write about.

Uses the requested topic when the run names one, otherwise the next ready
or approved topic by priority. Topics without a title or outline are
researched and planned with Claude first.
"""

import logging
from typing import Any, ClassVar, List

from ....core.models import RunArtifacts, Topic, TopicStatus
from ...registry import WorkerSpec
from ..state import ContentRunState
from .base import BaseWorker, WorkerResult, require_topic

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def next_topic(topics: List[Topic]) -> Topic:
    return sorted(topics, key=lambda t: (PRIORITY_ORDER.get(t.priority, 1), t.created_at))[0]


class TopicManagerWorker(BaseWorker):
    """Step 1: Select and plan a topic."""

    spec: ClassVar[WorkerSpec] = WorkerSpec(
        id="topic-manager",
        depends_on=["topic-proposer"],
        services=["store.get_topics", "store.update_topic", "claude.generate_json"],
        produces=["topic_id"],
        schedule=["monday", "thursday"],
        llm="Claude Sonnet",
        llm_purpose="Research the topic and plan title, keywords and outline",
    )

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        topic_id = state.topic_id or state.artifacts.topic_id
        if topic_id:
            topic = await require_topic(deps, topic_id)
        else:
            candidates = await deps.store.get_topics(statuses=[TopicStatus.READY, TopicStatus.APPROVED])
            candidates = [t for t in candidates if t.hebrew_post_id is None]
            if not candidates:
                return WorkerResult(success=False, worker=self.spec.id, error="No topics ready for content generation")
            topic = next_topic(candidates)

        patch = {"status": TopicStatus.PROCESSING}
        if not topic.title or not topic.outline:
            plan = await deps.writer.research_and_plan(topic)
            keywords = list(topic.keywords)
            keywords.extend(k for k in plan["keywords"] if k not in keywords)
            patch.update({
                "title": plan["title"],
                "keywords": keywords,
                "outline": plan["outline"],
                "strategy": plan["strategy"],
            })
            logger.info(f"Planned topic {topic.id}: {plan['title']}")

        await deps.store.update_topic(topic.id, patch)
        return self.ok(RunArtifacts(topic_id=topic.id))
