"""
Worker execution contract shared by all content factory workers.

    result = await WorkerCls().run(state, deps)

run() wraps execute() in a logfire span and converts any exception into a
failed WorkerResult, so adapter errors never escape a single worker.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

import logfire

from ....core.exceptions import RecordNotFoundError
from ....core.models import ApprovalType, ContentPiece, RunArtifacts, Topic
from ....services.content_writer import ArticleDraft
from ...registry import WorkerSpec
from ..state import ContentRunState

logger = logging.getLogger(__name__)


@dataclass
class ApprovalSpec:
    """What a worker asks a human to sign off on."""
    type: ApprovalType
    related_id: Optional[str] = None
    related_title: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WorkerResult:
    """Uniform outcome of one worker execution."""
    success: bool
    worker: str
    artifacts: RunArtifacts = field(default_factory=RunArtifacts)
    requires_approval: Optional[ApprovalSpec] = None
    error: Optional[str] = None


class BaseWorker:
    """Base class for workers. Subclasses set `spec` and implement execute()."""

    spec: ClassVar[WorkerSpec]

    async def execute(self, state: ContentRunState, deps: Any) -> WorkerResult:
        raise NotImplementedError

    async def run(self, state: ContentRunState, deps: Any) -> WorkerResult:
        worker_id = self.spec.id
        with logfire.span("worker {worker_id}", worker_id=worker_id, run_id=state.run_id):
            try:
                result = await self.execute(state, deps)
            except Exception as e:
                logger.error(f"Worker {worker_id} failed: {e}")
                return WorkerResult(success=False, worker=worker_id, error=str(e))
        return result

    def ok(self, artifacts: Optional[RunArtifacts] = None, approval: Optional[ApprovalSpec] = None) -> WorkerResult:
        return WorkerResult(
            success=True,
            worker=self.spec.id,
            artifacts=artifacts or RunArtifacts(),
            requires_approval=approval,
        )


# ============================================================================
# Shared lookups
# ============================================================================

async def require_topic(deps: Any, topic_id: Optional[str]) -> Topic:
    topic = await deps.store.get_topic(topic_id) if topic_id else None
    if topic is None:
        raise RecordNotFoundError("Topic", str(topic_id))
    return topic


async def require_content_piece(deps: Any, piece_id: Optional[str]) -> ContentPiece:
    piece = await deps.store.get_content_piece(piece_id) if piece_id else None
    if piece is None:
        raise RecordNotFoundError("Content piece", str(piece_id))
    return piece


def hebrew_draft(piece: ContentPiece) -> ArticleDraft:
    """Rebuild the Hebrew ArticleDraft stored on a content piece."""
    return ArticleDraft(
        title=piece.title_he or "",
        markdown=piece.content_he or "",
        focus_keyword=piece.focus_keyword or "",
        language="he",
        excerpt=piece.excerpt or "",
        seo_title=piece.seo_title or "",
        seo_description=piece.seo_description or "",
        keywords=list(piece.keywords),
        categories=list(piece.categories),
        tags=list(piece.tags),
        seo_score=piece.seo_score,
    )


def render_body(
    deps: Any, markdown: str, image_url: Optional[str] = None, video_url: Optional[str] = None
) -> str:
    """Gutenberg markup for an article. A cover video takes the place of the cover image."""
    if video_url:
        return deps.gutenberg.build_article(markdown, video_url, is_video=True)
    if image_url:
        return deps.gutenberg.build_article(markdown, image_url, is_video=False)
    return deps.gutenberg.markdown_to_blocks(markdown)
