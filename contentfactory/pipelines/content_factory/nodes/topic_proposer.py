"""
TopicProposerWorker - Suggests a new topic for a reviewer to accept.

Reads recent post titles from WordPress, asks Claude for one topic they do
not cover and stores it as a pending topic. The run then waits on a
topic_selection approval; a revision request re-proposes in place using
the reviewer's feedback.
"""

import logging
from typing import Any, ClassVar

from ....core.models import ApprovalType, RunArtifacts, Topic, TopicStatus
from ...registry import WorkerSpec
from ..state import ContentRunState
from .base import ApprovalSpec, BaseWorker, WorkerResult

logger = logging.getLogger(__name__)

RECENT_POSTS = 20


class TopicProposerWorker(BaseWorker):
    """Step 0: Propose a topic and ask for a go-ahead."""

    spec: ClassVar[WorkerSpec] = WorkerSpec(
        id="topic-proposer",
        services=["wordpress.get_posts", "claude.generate_json", "store.create_topic", "store.update_topic"],
        produces=["topic_id"],
        llm="Claude Haiku",
        llm_purpose="Propose a new topic that recent posts have not covered",
        requires_approval=ApprovalType.TOPIC_SELECTION,
        revision_target="topic-proposer",
    )

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        posts = await deps.wordpress.get_posts(status="publish", per_page=RECENT_POSTS)
        titles = [p["title"]["rendered"] for p in posts if p.get("title")]

        proposal = await deps.writer.propose_topic(titles, feedback=state.revision_feedback)
        fields = {
            "topic": proposal["topic"],
            "audience": proposal["audience"],
            "strategy": proposal["reasoning"],
            "status": TopicStatus.PENDING,
        }
        if state.artifacts.topic_id:
            topic = await deps.store.update_topic(state.artifacts.topic_id, fields)
        else:
            topic = await deps.store.create_topic(Topic(**fields))
        logger.info(f"Proposed topic {topic.id}: {topic.topic}")

        approval = ApprovalSpec(
            type=self.spec.requires_approval,
            related_id=topic.id,
            related_title=topic.topic,
            details={
                "audience": topic.audience,
                "reasoning": proposal["reasoning"],
                "feedback_addressed": state.revision_feedback,
            },
        )
        return self.ok(RunArtifacts(topic_id=topic.id), approval)
