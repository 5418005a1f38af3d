"""
VideoStudioWorker - Adds a cover video to the Hebrew draft.

Generates a short Kie.ai video for the article, swaps it in as the draft's
cover and asks a reviewer to approve the media before the post is
published. Video jobs poll with VIDEO_POLL_ATTEMPTS / VIDEO_POLL_INTERVAL.
"""

import logging
from typing import Any, ClassVar

from ....core.models import ApprovalType, RunArtifacts
from ...registry import WorkerSpec
from ..state import ContentRunState
from .base import ApprovalSpec, BaseWorker, WorkerResult, hebrew_draft, render_body, require_content_piece

logger = logging.getLogger(__name__)

VIDEO_PROMPT = (
    "Short cinematic b-roll for a tax advisory article titled '{title}' about {keyword}. "
    "Calm office and document scenes, blue and white palette, no text, no faces."
)


class VideoStudioWorker(BaseWorker):
    """Optional step: Generate a cover video for the Hebrew draft."""

    spec: ClassVar[WorkerSpec] = WorkerSpec(
        id="video-studio",
        depends_on=["gutenberg-builder"],
        services=["kie.submit", "kie.poll_status", "wordpress.update_post"],
        produces=["video_url"],
        consumes=["content_piece_id", "hebrew_post_id", "featured_image_url"],
        requires_approval=ApprovalType.MEDIA_APPROVAL,
        revision_target="video-studio",
    )

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        piece = await require_content_piece(deps, state.artifacts.content_piece_id)
        hebrew_post_id = state.artifacts.hebrew_post_id or piece.hebrew_post_id
        if not hebrew_post_id:
            return WorkerResult(success=False, worker=self.spec.id, error="No Hebrew draft to add a video to")

        title = piece.title_en or piece.title_he or ""
        prompt = VIDEO_PROMPT.format(title=title, keyword=piece.focus_keyword or title)
        if state.revision_feedback:
            prompt += f" Reviewer notes: {state.revision_feedback}"

        video_url = await deps.kie.generate_video(prompt)
        draft = hebrew_draft(piece)
        post = await deps.wordpress.update_post(hebrew_post_id, {
            "content": render_body(deps, draft.markdown, state.artifacts.featured_image_url, video_url),
            "meta": {"tax4us_video_url": video_url},
        })
        logger.info(f"Cover video added to Hebrew draft {hebrew_post_id}")

        media_urls = [u for u in piece.media_urls if u != state.artifacts.video_url]
        await deps.store.update_content_piece(piece.id, {"media_urls": media_urls + [video_url]})

        approval = ApprovalSpec(
            type=self.spec.requires_approval,
            related_id=str(hebrew_post_id),
            related_title=draft.title,
            details={
                "video_url": video_url,
                "preview_url": post.get("link"),
                "feedback_addressed": state.revision_feedback,
            },
        )
        return self.ok(RunArtifacts(video_url=video_url), approval)
