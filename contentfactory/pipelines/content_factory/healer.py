"""
Data Auto-Healer - Repairs topics left inconsistent by interrupted runs.

Checks for each topic:
1. completed, Hebrew post, no English post  -> translate and publish English
2. completed, English post, no Hebrew post  -> publish Hebrew from the content piece
3. completed, neither post                  -> requeue the topic (status approved)
4. ready/approved without title or outline  -> research and plan it

A failed repair is logged and counted; the sweep moves on to the next topic.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...core.exceptions import PartialHealError, WorkerExecutionError
from ...core.models import ContentPiece, ContentStatus, Topic, TopicStatus
from ...services.content_writer import ArticleDraft
from ...services.pipeline_logger import PipelineLogger
from .nodes.base import hebrew_draft, render_body

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"<[^>]+>")

CREATED_MISSING_ENGLISH_POST = "created_missing_english_post"
CREATED_MISSING_HEBREW_POST = "created_missing_hebrew_post"
REQUEUED_TOPIC = "requeued_topic"
ENRICHED_TOPIC_PLAN = "enriched_topic_plan"

SCANNED_STATUSES = [TopicStatus.COMPLETED, TopicStatus.READY, TopicStatus.APPROVED]


@dataclass
class HealerResult:
    """Outcome of one healer sweep."""
    success: bool = True
    records_scanned: int = 0
    issues_found: int = 0
    issues_fixed: int = 0
    healing_actions: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    repairs: List[Dict[str, Any]] = field(default_factory=list)
    run_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "records_scanned": self.records_scanned,
            "issues_found": self.issues_found,
            "issues_fixed": self.issues_fixed,
            "healing_actions": list(self.healing_actions),
            "errors": list(self.errors),
            "repairs": list(self.repairs),
            "run_id": self.run_id,
        }


class DataAutoHealer:
    """Scans the record store and applies the repair for each violated check."""

    def __init__(self, deps: Any, log: Optional[PipelineLogger] = None):
        self.deps = deps
        self.log = log or PipelineLogger(deps.store, stage="data-healer")

    async def heal(self, check_all_records: bool = True, auto_fix: bool = True) -> HealerResult:
        """
        Run one sweep.

        Args:
            check_all_records: Scan every topic (otherwise only completed, ready and approved)
            auto_fix: Apply repairs (otherwise only count issues)

        Returns:
            HealerResult

        Raises:
            Exception: The topics could not be loaded
        """
        topics = await self.deps.store.get_topics(None if check_all_records else SCANNED_STATUSES)
        result = HealerResult(records_scanned=len(topics))
        await self.log.info(f"Healer scanning {len(topics)} topics (auto_fix={auto_fix})")

        for topic in topics:
            action = self._violated_check(topic)
            if action is None:
                continue

            result.issues_found += 1
            await self.log.warn(f"Topic {topic.id} needs {action}", {"topic_id": topic.id, "status": topic.status.value})
            if not auto_fix:
                continue

            try:
                detail = await self._repair(topic, action)
            except Exception as e:
                error = PartialHealError(topic.id, action, e)
                result.errors.append(str(error))
                await self.log.error(str(error))
                continue

            result.issues_fixed += 1
            if action not in result.healing_actions:
                result.healing_actions.append(action)
            result.repairs.append({"topic_id": topic.id, "action": action, **detail})
            await self.log.success(f"Applied {action} to topic {topic.id}", detail)

        await self.log.info(
            f"Healer finished: {result.issues_found} issues, {result.issues_fixed} fixed, {len(result.errors)} errors"
        )
        return result

    @staticmethod
    def _violated_check(topic: Topic) -> Optional[str]:
        if topic.status == TopicStatus.COMPLETED:
            if topic.hebrew_post_id and not topic.english_post_id:
                return CREATED_MISSING_ENGLISH_POST
            if topic.english_post_id and not topic.hebrew_post_id:
                return CREATED_MISSING_HEBREW_POST
            if not topic.hebrew_post_id and not topic.english_post_id:
                return REQUEUED_TOPIC
        elif topic.status in (TopicStatus.READY, TopicStatus.APPROVED):
            if not topic.title or not topic.outline:
                return ENRICHED_TOPIC_PLAN
        return None

    async def _repair(self, topic: Topic, action: str) -> Dict[str, Any]:
        if action == CREATED_MISSING_ENGLISH_POST:
            return await self._create_english_post(topic)
        if action == CREATED_MISSING_HEBREW_POST:
            return await self._create_hebrew_post(topic)
        if action == REQUEUED_TOPIC:
            await self.deps.store.update_topic(topic.id, {"status": TopicStatus.APPROVED, "completed_at": None})
            return {"status": TopicStatus.APPROVED.value}
        if action == ENRICHED_TOPIC_PLAN:
            plan = await self.deps.writer.research_and_plan(topic)
            await self.deps.store.update_topic(topic.id, {
                "title": topic.title or plan["title"],
                "keywords": topic.keywords or plan["keywords"],
                "outline": plan["outline"],
                "strategy": plan["strategy"],
            })
            return {"title": topic.title or plan["title"]}
        raise ValueError(f"Unknown healing action: {action}")

    # =========================================================================
    # REPAIRS
    # =========================================================================

    async def _latest_piece(self, topic: Topic) -> Optional[ContentPiece]:
        pieces = await self.deps.store.get_content_pieces(topic_id=topic.id)
        return max(pieces, key=lambda p: p.updated_at) if pieces else None

    async def _hebrew_source(self, topic: Topic, piece: Optional[ContentPiece]) -> ArticleDraft:
        if piece and piece.content_he:
            return hebrew_draft(piece)

        post = await self.deps.wordpress.get_post(topic.hebrew_post_id)
        if post is None:
            raise WorkerExecutionError("data-healer", f"Hebrew post {topic.hebrew_post_id} not found")
        keyword = (post.get("meta") or {}).get("rank_math_focus_keyword") or (topic.keywords[0] if topic.keywords else "")
        return ArticleDraft(
            title=TAG_PATTERN.sub("", post["title"]["rendered"]),
            markdown=TAG_PATTERN.sub("", post["content"]["rendered"]),
            focus_keyword=keyword,
            language="he",
            keywords=list(topic.keywords),
            categories=[topic.category],
        )

    async def _create_english_post(self, topic: Topic) -> Dict[str, Any]:
        piece = await self._latest_piece(topic)
        english = await self.deps.writer.translate_he_to_en(await self._hebrew_source(topic, piece))

        post = await self.deps.wordpress.create_post({
            "title": english.title,
            "content": render_body(self.deps, english.markdown),
            "excerpt": english.excerpt,
            "status": "publish",
            "categories": await self.deps.wordpress.resolve_categories(english.categories),
            "tags": await self.deps.wordpress.resolve_tags(english.tags),
            "meta": english.rank_math_meta(),
        })
        await self.deps.wordpress.update_post(
            post["id"],
            {},
            query={"lang": "en", "translations[he]": topic.hebrew_post_id},
        )

        await self.deps.store.update_topic(topic.id, {
            "english_post_id": post["id"],
            "english_seo_score": english.seo_score,
        })
        if piece:
            await self.deps.store.update_content_piece(piece.id, {
                "title_en": english.title,
                "content_en": english.markdown,
                "english_post_id": post["id"],
            })
        return {"english_post_id": post["id"], "hebrew_post_id": topic.hebrew_post_id}

    async def _create_hebrew_post(self, topic: Topic) -> Dict[str, Any]:
        piece = await self._latest_piece(topic)
        if piece is None or not piece.content_he:
            raise WorkerExecutionError("data-healer", f"No Hebrew content stored for topic {topic.id}")

        draft = hebrew_draft(piece)
        post = await self.deps.wordpress.create_post({
            "title": draft.title,
            "content": render_body(self.deps, draft.markdown),
            "excerpt": draft.excerpt,
            "status": "publish",
            "categories": await self.deps.wordpress.resolve_categories(draft.categories),
            "tags": await self.deps.wordpress.resolve_tags(draft.tags),
            "meta": draft.rank_math_meta(),
        })
        await self.deps.wordpress.update_post(
            topic.english_post_id,
            {},
            query={"lang": "en", "translations[he]": post["id"]},
        )

        await self.deps.store.update_topic(topic.id, {"hebrew_post_id": post["id"]})
        await self.deps.store.update_content_piece(piece.id, {
            "hebrew_post_id": post["id"],
            "status": ContentStatus.PUBLISHED,
        })
        return {"hebrew_post_id": post["id"], "english_post_id": topic.english_post_id}
