"""
Content factory workers.

Registration order is the tie-break for workers with no relative
dependency, so it follows the pipeline's natural reading order.
"""

from ...registry import WorkerRegistry
from .base import ApprovalSpec, BaseWorker, WorkerResult
from .topic_proposer import TopicProposerWorker
from .topic_manager import TopicManagerWorker
from .content_generator import ContentGeneratorWorker
from .gutenberg_builder import GutenbergBuilderWorker
from .video_studio import VideoStudioWorker
from .translator import TranslatorWorker
from .media_processor import MediaProcessorWorker
from .social_publisher import SocialPublisherWorker
from .podcast_producer import PodcastProducerWorker

CONTENT_WORKERS = (
    TopicProposerWorker,
    TopicManagerWorker,
    ContentGeneratorWorker,
    GutenbergBuilderWorker,
    VideoStudioWorker,
    TranslatorWorker,
    MediaProcessorWorker,
    SocialPublisherWorker,
    PodcastProducerWorker,
)

DEFAULT_CONTENT_PIPELINE = [
    "topic-manager",
    "content-generator",
    "gutenberg-builder",
    "translator",
    "media-processor",
    "social-publisher",
]

PROPOSAL_PIPELINE = ["topic-proposer", *DEFAULT_CONTENT_PIPELINE]


def build_registry() -> WorkerRegistry:
    return WorkerRegistry(CONTENT_WORKERS)


__all__ = [
    'ApprovalSpec',
    'BaseWorker',
    'WorkerResult',
    'TopicProposerWorker',
    'TopicManagerWorker',
    'ContentGeneratorWorker',
    'GutenbergBuilderWorker',
    'VideoStudioWorker',
    'TranslatorWorker',
    'MediaProcessorWorker',
    'SocialPublisherWorker',
    'PodcastProducerWorker',
    'CONTENT_WORKERS',
    'DEFAULT_CONTENT_PIPELINE',
    'PROPOSAL_PIPELINE',
    'build_registry',
]
