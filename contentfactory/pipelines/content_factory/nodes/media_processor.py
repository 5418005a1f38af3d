"""
MediaProcessorWorker - Generates the featured image.

Submits a Kie.ai image job, polls it to completion (bounded by
GENERATION_POLL_ATTEMPTS), uploads the image to the WordPress media
library and sets it as featured media on every post the run has created.
"""

import logging
from typing import Any, ClassVar

from ....core.models import RunArtifacts
from ...registry import WorkerSpec
from ..state import ContentRunState
from .base import BaseWorker, WorkerResult, require_content_piece

logger = logging.getLogger(__name__)

IMAGE_PROMPT = (
    "Professional editorial illustration for a tax advisory blog post titled "
    "'{title}' about {keyword}. Clean, modern, trustworthy, blue and white palette. No text."
)


class MediaProcessorWorker(BaseWorker):
    """Step 5: Generate and attach the featured image."""

    spec: ClassVar[WorkerSpec] = WorkerSpec(
        id="media-processor",
        depends_on=["content-generator"],
        services=["kie.submit", "kie.poll_status", "wordpress.upload_media", "wordpress.update_post"],
        produces=["featured_media_id", "featured_image_url"],
        consumes=["content_piece_id", "hebrew_post_id", "english_post_id"],
        schedule=["monday", "thursday"],
    )

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        piece = await require_content_piece(deps, state.artifacts.content_piece_id)
        title = piece.title_en or piece.title_he or ""

        image_url = await deps.kie.generate_image(
            IMAGE_PROMPT.format(title=title, keyword=piece.focus_keyword or title)
        )
        data, content_type = await deps.kie.download(image_url)
        extension = "jpg" if "jpeg" in content_type else "png"
        media = await deps.wordpress.upload_media(data, f"tax4us-{piece.id}.{extension}", content_type)
        logger.info(f"Uploaded featured image {media['id']} for {piece.id}")

        for post_id in (state.artifacts.hebrew_post_id, state.artifacts.english_post_id):
            if post_id:
                await deps.wordpress.update_post(post_id, {"featured_media": media["id"]})

        await deps.store.update_content_piece(piece.id, {"media_urls": piece.media_urls + [media["source_url"]]})

        return self.ok(RunArtifacts(featured_media_id=media["id"], featured_image_url=media["source_url"]))
