"""
ContentGeneratorWorker - Writes the Hebrew article.

Drafts the article with Claude, derives SEO metadata and a score, and
auto-enhances drafts that score below SEO_ENHANCE_THRESHOLD. The draft is
stored as a ContentPiece. On a revision rewind the reviewer's feedback is
passed to Claude and the existing piece is overwritten.
"""

import logging
from typing import Any, ClassVar

from ....core.config import Config
from ....core.models import ContentPiece, ContentStatus, RunArtifacts
from ...registry import WorkerSpec
from ..state import ContentRunState
from .base import BaseWorker, WorkerResult, require_topic

logger = logging.getLogger(__name__)


class ContentGeneratorWorker(BaseWorker):
    """Step 2: Generate the Hebrew article."""

    spec: ClassVar[WorkerSpec] = WorkerSpec(
        id="content-generator",
        depends_on=["topic-manager"],
        services=["claude.generate", "seo_scorer.calculate_score", "store.create_content_piece"],
        produces=["content_piece_id", "focus_keyword", "seo_score", "hebrew_title"],
        consumes=["topic_id"],
        schedule=["monday", "thursday"],
        llm="Claude Sonnet",
        llm_purpose="Write the Hebrew article and its SEO metadata",
    )

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        topic = await require_topic(deps, state.artifacts.topic_id)

        draft = await deps.writer.write_article(topic, language="he", revision_feedback=state.revision_feedback)
        if draft.seo_score < Config.SEO_ENHANCE_THRESHOLD:
            analysis = deps.scorer.analyze_issues(draft.markdown, draft.title, draft.focus_keyword)
            logger.warning(f"Hebrew SEO score low ({draft.seo_score}), enhancing: {analysis.issues}")
            draft = await deps.writer.enhance_article(draft, analysis.issues, analysis.improvements)

        fields = {
            "topic_id": topic.id,
            "title_he": draft.title,
            "content_he": draft.markdown,
            "excerpt": draft.excerpt,
            "focus_keyword": draft.focus_keyword,
            "keywords": draft.keywords,
            "seo_title": draft.seo_title,
            "seo_description": draft.seo_description,
            "categories": draft.categories,
            "tags": draft.tags,
            "seo_score": draft.seo_score,
            "status": ContentStatus.DRAFT,
        }
        if state.artifacts.content_piece_id:
            piece = await deps.store.update_content_piece(state.artifacts.content_piece_id, fields)
        else:
            piece = await deps.store.create_content_piece(ContentPiece(**fields))

        await deps.store.update_topic(topic.id, {"hebrew_seo_score": draft.seo_score})

        return self.ok(RunArtifacts(
            content_piece_id=piece.id,
            focus_keyword=draft.focus_keyword,
            seo_score=draft.seo_score,
            hebrew_title=draft.title,
        ))
