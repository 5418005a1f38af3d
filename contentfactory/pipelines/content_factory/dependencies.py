"""
Factory Dependencies - Typed dependency injection for the run engine.

Every adapter the workers, healer and BlogMaster call is held here and
passed explicitly. create(test_mode=True) wires the deterministic fakes
from services.fakes, so test-mode runs never reach external systems.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from ...core.config import Config
from ...services.content_writer import ContentWriter
from ...services.fakes import (
    FakeClaudeService,
    FakeElevenLabsService,
    FakeKieService,
    FakeSlack,
    FakeSocialService,
    InMemoryWordPress,
)
from ...services.generation import ClaudeService, ElevenLabsService, KieService
from ...services.gutenberg_builder import GutenbergBuilder
from ...services.record_store import InMemoryRecordStore, RecordStore
from ...services.seo_scorer import SEOScorer
from ...services.slack_service import SlackService
from ...services.social_service import SocialService
from ...services.supabase_store import SupabaseRecordStore
from ...services.wordpress_service import WordPressService
from ..registry import WorkerRegistry
from .nodes import build_registry

logger = logging.getLogger(__name__)


class FactoryDependencies(BaseModel):
    """
    Adapters available to the content factory.

    Attributes:
        store: Record store (topics, content pieces, runs, logs, approvals)
        wordpress: Publishing target
        claude: Text generation
        kie: Image/video generation
        elevenlabs: Text-to-speech
        slack: Approval and notification channel
        social: Social publishing
        writer: Prompt layer over claude
        scorer: SEO scorer
        gutenberg: Markdown to Gutenberg blocks
        registry: Worker registry
        test_mode: Whether the external adapters are fakes
    """

    store: Any = Field(..., description="RecordStore implementation")
    wordpress: Any = Field(..., description="WordPressService or InMemoryWordPress")
    claude: Any = Field(..., description="ClaudeService or FakeClaudeService")
    kie: Any = Field(..., description="KieService or FakeKieService")
    elevenlabs: Any = Field(..., description="ElevenLabsService or FakeElevenLabsService")
    slack: Any = Field(..., description="SlackService or FakeSlack")
    social: Any = Field(..., description="SocialService or FakeSocialService")
    writer: ContentWriter
    scorer: SEOScorer
    gutenberg: GutenbergBuilder
    registry: WorkerRegistry
    test_mode: bool = False

    model_config = {"arbitrary_types_allowed": True}

    @classmethod
    def create(
        cls,
        test_mode: bool = False,
        store: Optional[RecordStore] = None,
        registry: Optional[WorkerRegistry] = None,
        **overrides: Any,
    ) -> "FactoryDependencies":
        """
        Build dependencies with live or fake adapters.

        Args:
            test_mode: Use fakes for every external system
            store: Record store (defaults to Supabase live, in-memory in test mode)
            registry: Worker registry (defaults to the content factory workers)
            **overrides: Replace individual adapters (e.g., claude=FakeClaudeService(...))

        Returns:
            FactoryDependencies instance
        """
        if test_mode:
            adapters = {
                "store": store or InMemoryRecordStore(),
                "wordpress": InMemoryWordPress(),
                "claude": FakeClaudeService(),
                "kie": FakeKieService(),
                "elevenlabs": FakeElevenLabsService(),
                "slack": FakeSlack(),
                "social": FakeSocialService(),
            }
        else:
            Config.validate_live_mode()
            adapters = {
                "store": store or SupabaseRecordStore(),
                "wordpress": overrides.get("wordpress") or WordPressService(),
                "claude": overrides.get("claude") or ClaudeService(),
                "kie": overrides.get("kie") or KieService(),
                "elevenlabs": overrides.get("elevenlabs") or ElevenLabsService(),
                "slack": overrides.get("slack") or SlackService(),
                "social": overrides.get("social") or SocialService(),
            }
        adapters.update(overrides)

        scorer = SEOScorer()
        deps = cls(
            writer=ContentWriter(adapters["claude"], scorer),
            scorer=scorer,
            gutenberg=GutenbergBuilder(),
            registry=registry or build_registry(),
            test_mode=test_mode,
            **adapters,
        )
        logger.info(f"FactoryDependencies created (test_mode={test_mode})")
        return deps

    def __str__(self) -> str:
        return (
            f"FactoryDependencies(test_mode={self.test_mode}, store={type(self.store).__name__}, "
            f"workers={self.registry.ids()})"
        )
