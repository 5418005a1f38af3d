"""
GutenbergBuilderWorker - Creates the Hebrew WordPress draft.

Converts the article to Gutenberg blocks, creates (or, after a revision,
updates) the Hebrew draft post, and asks a reviewer to approve it.
"""

import logging
from typing import Any, ClassVar

from ....core.models import ApprovalType, ContentStatus, RunArtifacts
from ...registry import WorkerSpec
from ..state import ContentRunState
from .base import ApprovalSpec, BaseWorker, WorkerResult, hebrew_draft, render_body, require_content_piece

logger = logging.getLogger(__name__)


class GutenbergBuilderWorker(BaseWorker):
    """Step 3: Build blocks and create the Hebrew draft for review."""

    spec: ClassVar[WorkerSpec] = WorkerSpec(
        id="gutenberg-builder",
        depends_on=["content-generator"],
        services=["gutenberg.markdown_to_blocks", "wordpress.create_post", "wordpress.resolve_categories"],
        produces=["hebrew_post_id", "hebrew_post_url"],
        consumes=["content_piece_id", "featured_image_url"],
        schedule=["monday", "thursday"],
        requires_approval=ApprovalType.CONTENT_REVIEW,
        revision_target="content-generator",
    )

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        piece = await require_content_piece(deps, state.artifacts.content_piece_id)
        draft = hebrew_draft(piece)

        fields = {
            "title": draft.title,
            "content": render_body(
                deps, draft.markdown, state.artifacts.featured_image_url, state.artifacts.video_url
            ),
            "excerpt": draft.excerpt,
            "status": "draft",
            "categories": await deps.wordpress.resolve_categories(draft.categories),
            "tags": await deps.wordpress.resolve_tags(draft.tags),
            "meta": draft.rank_math_meta(),
        }
        if state.artifacts.hebrew_post_id:
            post = await deps.wordpress.update_post(state.artifacts.hebrew_post_id, fields)
        else:
            post = await deps.wordpress.create_post(fields)

        post_id = post["id"]
        await deps.store.update_content_piece(piece.id, {
            "hebrew_post_id": post_id,
            "status": ContentStatus.PENDING_APPROVAL,
        })
        logger.info(f"Hebrew draft {post_id} ready for review: {draft.title}")

        approval = ApprovalSpec(
            type=self.spec.requires_approval,
            related_id=str(post_id),
            related_title=draft.title,
            details={
                "preview_url": post.get("link"),
                "focus_keyword": draft.focus_keyword,
                "seo_score": draft.seo_score,
                "word_count": draft.word_count,
            },
        )
        return self.ok(RunArtifacts(hebrew_post_id=post_id, hebrew_post_url=post.get("link")), approval)
