"""
TranslatorWorker - Publishes the approved Hebrew post and its English twin.

Publishes the Hebrew draft, translates the article to English, creates the
English post, links the pair through Polylang, and marks the topic
completed with both post ids.
"""

import logging
from typing import Any, ClassVar

from ....core.models import ContentStatus, RunArtifacts, TopicStatus, utc_now
from ...registry import WorkerSpec
from ..state import ContentRunState
from .base import BaseWorker, WorkerResult, hebrew_draft, render_body, require_content_piece

logger = logging.getLogger(__name__)


class TranslatorWorker(BaseWorker):
    """Step 4: Publish Hebrew, translate, publish English."""

    spec: ClassVar[WorkerSpec] = WorkerSpec(
        id="translator",
        depends_on=["gutenberg-builder", "video-studio"],
        services=["wordpress.update_post", "claude.generate_json", "wordpress.create_post"],
        produces=["english_post_id", "english_title", "hebrew_post_url", "english_post_url"],
        consumes=["content_piece_id", "hebrew_post_id", "topic_id"],
        schedule=["monday", "thursday"],
        llm="Claude Haiku",
        llm_purpose="Translate the Hebrew article to English",
    )

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        piece = await require_content_piece(deps, state.artifacts.content_piece_id)
        hebrew_post_id = state.artifacts.hebrew_post_id or piece.hebrew_post_id
        if not hebrew_post_id:
            return WorkerResult(success=False, worker=self.spec.id, error="No Hebrew post to publish")

        hebrew_post = await deps.wordpress.update_post(hebrew_post_id, {"status": "publish"})
        logger.info(f"Published Hebrew post {hebrew_post_id}")

        english = await deps.writer.translate_he_to_en(hebrew_draft(piece))
        english_post = await deps.wordpress.create_post({
            "title": english.title,
            "content": render_body(
                deps, english.markdown, state.artifacts.featured_image_url, state.artifacts.video_url
            ),
            "excerpt": english.excerpt,
            "status": "publish",
            "categories": await deps.wordpress.resolve_categories(english.categories),
            "tags": await deps.wordpress.resolve_tags(english.tags),
            "featured_media": state.artifacts.featured_media_id or 0,
            "meta": english.rank_math_meta(),
        })
        english_post_id = english_post["id"]

        await deps.wordpress.update_post(
            english_post_id,
            {},
            query={"lang": "en", "translations[he]": hebrew_post_id},
        )
        logger.info(f"Linked English post {english_post_id} to Hebrew post {hebrew_post_id}")

        await deps.store.update_content_piece(piece.id, {
            "title_en": english.title,
            "content_en": english.markdown,
            "english_post_id": english_post_id,
            "status": ContentStatus.PUBLISHED,
        })
        if piece.topic_id:
            await deps.store.update_topic(piece.topic_id, {
                "status": TopicStatus.COMPLETED,
                "hebrew_post_id": hebrew_post_id,
                "english_post_id": english_post_id,
                "english_seo_score": english.seo_score,
                "completed_at": utc_now(),
            })

        return self.ok(RunArtifacts(
            english_post_id=english_post_id,
            english_title=english.title,
            hebrew_post_url=hebrew_post.get("link"),
            english_post_url=english_post.get("link"),
        ))
