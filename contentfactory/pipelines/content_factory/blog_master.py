"""
BlogMaster - One-call article production without approval gates.

Runs the full content pipeline for a topic (generate, enhance, translate,
media, publish both languages, social) with every gate auto-approved, and
offers batch helpers over it.

Usage:
    blog_master = BlogMaster(FactoryDependencies.create())
    result = await blog_master.execute(topic_id="rec123")
    results = await blog_master.process_all_pending()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...core.config import Config
from ...core.exceptions import ContentFactoryError, RecordNotFoundError
from ...core.models import PipelineType, TopicStatus
from .dependencies import FactoryDependencies
from .nodes import DEFAULT_CONTENT_PIPELINE
from .orchestrator import Orchestrator

logger = logging.getLogger(__name__)


@dataclass
class BlogMasterConfig:
    """Options for one BlogMaster execution."""
    topic_id: Optional[str] = None
    test_mode: bool = False
    skip_existing: bool = True
    force_regenerate: bool = False


@dataclass
class BlogMasterResult:
    success: bool
    topic_id: str
    hebrew_post_id: Optional[int] = None
    english_post_id: Optional[int] = None
    errors: List[str] = field(default_factory=list)
    media_generated: bool = False
    social_published: List[Dict[str, Any]] = field(default_factory=list)
    run_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "topic_id": self.topic_id,
            "hebrew_post_id": self.hebrew_post_id,
            "english_post_id": self.english_post_id,
            "errors": list(self.errors),
            "media_generated": self.media_generated,
            "social_published": list(self.social_published),
            "run_id": self.run_id,
        }


class BlogMaster:
    """Produces complete bilingual articles for topics."""

    def __init__(self, deps: FactoryDependencies, orchestrator: Optional[Orchestrator] = None):
        self.deps = deps
        self.orchestrator = orchestrator or Orchestrator(deps)

    async def execute(
        self,
        topic_id: Optional[str] = None,
        test_mode: bool = False,
        skip_existing: bool = True,
        force_regenerate: bool = False,
    ) -> BlogMasterResult:
        """
        Produce the article for one topic.

        Args:
            topic_id: Topic to produce (defaults to the next approved topic without a Hebrew post)
            test_mode: Use fake adapters
            skip_existing: Return the existing posts when both still exist in WordPress
            force_regenerate: Produce the article even if posts exist

        Returns:
            BlogMasterResult. Failures are reported in `errors`, never raised.
        """
        logger.info(
            f"BlogMaster started: topic={topic_id} test_mode={test_mode} "
            f"skip_existing={skip_existing} force_regenerate={force_regenerate}"
        )

        try:
            deps = self.orchestrator._deps_for(test_mode)
            if topic_id:
                topic = await deps.store.get_topic(topic_id)
                if topic is None:
                    raise RecordNotFoundError("Topic", topic_id)
            else:
                pending = await self._pending_topics(deps)
                if not pending:
                    raise ContentFactoryError("No pending topics")
                topic = pending[0]

            if skip_existing and not force_regenerate:
                existing = await self._existing_posts(deps, topic)
                if existing:
                    logger.info(f"Posts already exist for topic {topic.id}, skipping")
                    return BlogMasterResult(
                        success=True,
                        topic_id=topic.id,
                        hebrew_post_id=existing[0],
                        english_post_id=existing[1],
                    )

            pipeline = await self.orchestrator.run_content_pipeline(
                workers=DEFAULT_CONTENT_PIPELINE,
                test_mode=test_mode,
                auto_approve=True,
                topic_id=topic.id,
                pipeline_type=PipelineType.BLOG_MASTER,
            )
        except Exception as e:
            logger.error(f"BlogMaster failed for topic {topic_id}: {e}")
            return BlogMasterResult(success=False, topic_id=topic_id or "unknown", errors=[str(e)])

        artifacts = pipeline.artifacts
        errors = list(pipeline.errors)
        if pipeline.error and not errors:
            errors.append(pipeline.error)

        result = BlogMasterResult(
            success=pipeline.success,
            topic_id=topic.id,
            hebrew_post_id=artifacts.hebrew_post_id,
            english_post_id=artifacts.english_post_id,
            errors=errors,
            media_generated=artifacts.featured_media_id is not None,
            social_published=[p.model_dump(mode="json") for p in artifacts.social_posts],
            run_id=pipeline.run_id,
        )
        if result.success:
            logger.info(f"BlogMaster completed topic {topic.id}: he={result.hebrew_post_id} en={result.english_post_id}")
        else:
            logger.error(f"BlogMaster failed for topic {topic.id}: {errors}")
        return result

    async def process_batch(self, configs: List[BlogMasterConfig]) -> List[BlogMasterResult]:
        """
        Execute several topics with bounded concurrency.

        Returns one result per config, in input order. A failing item never
        affects the others.
        """
        semaphore = asyncio.Semaphore(Config.BATCH_CONCURRENCY)

        async def process_one(config: BlogMasterConfig) -> BlogMasterResult:
            async with semaphore:
                try:
                    return await self.execute(
                        topic_id=config.topic_id,
                        test_mode=config.test_mode,
                        skip_existing=config.skip_existing,
                        force_regenerate=config.force_regenerate,
                    )
                except Exception as e:
                    logger.error(f"Batch item {config.topic_id} failed: {e}")
                    return BlogMasterResult(success=False, topic_id=config.topic_id or "unknown", errors=[str(e)])

        logger.info(f"Processing batch of {len(configs)} topics (concurrency={Config.BATCH_CONCURRENCY})")
        return list(await asyncio.gather(*(process_one(c) for c in configs)))

    async def process_all_pending(self, test_mode: bool = False) -> List[BlogMasterResult]:
        """Process every approved topic that has no Hebrew post yet."""
        deps = self.orchestrator._deps_for(test_mode)
        try:
            pending = await self._pending_topics(deps)
        except Exception as e:
            logger.error(f"Failed to load pending topics: {e}")
            return []

        if not pending:
            logger.info("No pending topics found")
            return []

        logger.info(f"Processing {len(pending)} pending topics")
        return await self.process_batch([
            BlogMasterConfig(topic_id=t.id, test_mode=test_mode, skip_existing=True) for t in pending
        ])

    @staticmethod
    async def _pending_topics(deps: FactoryDependencies) -> List[Any]:
        topics = await deps.store.get_topics(statuses=[TopicStatus.APPROVED])
        pending = [t for t in topics if t.hebrew_post_id is None]
        return sorted(pending, key=lambda t: t.created_at)

    @staticmethod
    async def _existing_posts(deps: FactoryDependencies, topic: Any) -> Optional[tuple]:
        if not (topic.hebrew_post_id and topic.english_post_id):
            return None
        try:
            hebrew = await deps.wordpress.get_post(topic.hebrew_post_id)
            english = await deps.wordpress.get_post(topic.english_post_id)
        except Exception as e:
            logger.warning(f"Could not verify existing posts for topic {topic.id}: {e}")
            return None
        if hebrew is None or english is None:
            return None
        return topic.hebrew_post_id, topic.english_post_id
