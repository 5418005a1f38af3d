"""
SocialPublisherWorker - Promotes the published article.

Generates LinkedIn and Facebook copy with Claude and publishes it through
Upload-Post, linking to the English post (or the Hebrew one when no
English post exists).
"""

import logging
from typing import Any, ClassVar

from ....core.exceptions import WorkerExecutionError
from ....core.models import RunArtifacts
from ...registry import WorkerSpec
from ..state import ContentRunState
from .base import BaseWorker, WorkerResult, require_content_piece

logger = logging.getLogger(__name__)


class SocialPublisherWorker(BaseWorker):
    """Step 6: Publish social posts."""

    spec: ClassVar[WorkerSpec] = WorkerSpec(
        id="social-publisher",
        depends_on=["translator", "media-processor"],
        services=["claude.generate", "social.publish"],
        produces=["social_posts"],
        consumes=["content_piece_id", "english_post_url", "featured_image_url"],
        schedule=["monday", "thursday"],
        llm="Claude Sonnet",
        llm_purpose="Write LinkedIn and Facebook posts",
    )

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        piece = await require_content_piece(deps, state.artifacts.content_piece_id)
        title = state.artifacts.english_title or piece.title_en or piece.title_he or ""
        article = piece.content_en or piece.content_he or ""
        link = state.artifacts.english_post_url or state.artifacts.hebrew_post_url

        copy = await deps.writer.social_copy(title, article)
        posts = await deps.social.publish(copy, link=link, image_url=state.artifacts.featured_image_url)

        published = [p for p in posts if p.status != "failed"]
        if not published:
            raise WorkerExecutionError(self.spec.id, "All social platforms failed")
        logger.info(f"Published {len(published)}/{len(posts)} social posts for '{title}'")

        return self.ok(RunArtifacts(social_posts=posts))
