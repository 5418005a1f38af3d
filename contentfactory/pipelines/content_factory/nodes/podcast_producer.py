"""
PodcastProducerWorker - Builds a "Tax4Us Weekly" episode.

Writes a podcast script from the run's English article, synthesizes it
with ElevenLabs, and uploads the audio to the WordPress media library.
"""

import logging
import re
from typing import Any, ClassVar, Tuple

from ....core.models import PodcastEpisode, RunArtifacts
from ...registry import WorkerSpec
from ..state import ContentRunState
from .base import BaseWorker, WorkerResult

logger = logging.getLogger(__name__)

SHOW_NAME = "Tax4Us Weekly"
WORDS_PER_MINUTE = 150
TAG_PATTERN = re.compile(r"<[^>]+>")


class PodcastProducerWorker(BaseWorker):
    """Produce a podcast episode from published content."""

    spec: ClassVar[WorkerSpec] = WorkerSpec(
        id="podcast-producer",
        depends_on=["translator"],
        services=["claude.generate", "elevenlabs.submit", "elevenlabs.poll_status", "wordpress.upload_media"],
        produces=["episode"],
        consumes=["content_piece_id", "english_post_id", "english_title"],
        schedule=["wednesday"],
        llm="Claude Sonnet",
        llm_purpose="Write the episode script and show notes",
    )

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        title, article = await self._source(state, deps)

        script = await deps.writer.podcast_script(title, article)
        summary = await deps.writer.episode_summary(script)

        task_id = await deps.elevenlabs.submit({"text": script})
        audio = await deps.elevenlabs.poll_until_complete(task_id)

        episode_title = f"{SHOW_NAME}: {title}"
        slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")[:60] or "episode"
        media = await deps.wordpress.upload_media(audio, f"tax4us-weekly-{slug}.mp3", "audio/mpeg")
        logger.info(f"Uploaded episode audio {media['id']}: {episode_title}")

        episode = PodcastEpisode(
            title=episode_title,
            audio_url=media["source_url"],
            summary=summary,
            script=script,
            source_content_id=state.artifacts.english_post_id,
            source_content_date=state.source_content_date,
            duration_seconds=round(len(script.split()) / WORDS_PER_MINUTE * 60),
        )
        return self.ok(RunArtifacts(episode=episode))

    async def _source(self, state: ContentRunState, deps: Any) -> Tuple[str, str]:
        """Title and article text the episode is built from."""
        if state.artifacts.content_piece_id:
            piece = await deps.store.get_content_piece(state.artifacts.content_piece_id)
            if piece and (piece.content_en or piece.content_he):
                title = state.artifacts.english_title or piece.title_en or piece.title_he or ""
                return title, piece.content_en or piece.content_he

        if state.artifacts.english_post_id:
            post = await deps.wordpress.get_post(state.artifacts.english_post_id)
            if post:
                title = state.artifacts.english_title or TAG_PATTERN.sub("", post["title"]["rendered"])
                return title, TAG_PATTERN.sub("", post["content"]["rendered"])

        raise ValueError("No source content for the episode")
