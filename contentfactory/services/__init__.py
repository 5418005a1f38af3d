"""
Services layer for the Content Factory.

Adapters for the external systems the orchestration core consumes:
record store (Supabase), publishing target (WordPress), generation
services (Claude, Kie.ai, ElevenLabs), approval channel (Slack), and
social publishing (Upload-Post). Each has a deterministic fake in
services.fakes behind the same interface.
"""

from .record_store import RecordStore, InMemoryRecordStore
from .seo_scorer import SEOScorer
from .gutenberg_builder import GutenbergBuilder
from .pipeline_logger import PipelineLogger

__all__ = ['RecordStore', 'InMemoryRecordStore', 'SEOScorer', 'GutenbergBuilder', 'PipelineLogger']
