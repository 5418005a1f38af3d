"""
Pydantic models for the Content Factory.

These models provide validated data structures for:
- Pipeline runs and their logs (PipelineRun, PipelineLog)
- Human approval gates (Approval)
- Content store records (Topic, ContentPiece)
- Typed run artifacts (RunArtifacts, PostRef, PodcastEpisode)

All models use Pydantic v2 and serialize with model_dump(mode="json")
for storage in Supabase.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


# ============================================================================
# Enums
# ============================================================================

class RunStatus(str, Enum):
    """Lifecycle states of a pipeline run."""
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"


TERMINAL_RUN_STATUSES = {RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.EXPIRED}


class TriggerType(str, Enum):
    CRON = "cron"
    MANUAL = "manual"
    HEALER = "healer"


class PipelineType(str, Enum):
    CONTENT = "content"
    PODCAST = "podcast"
    SEO = "seo"
    HEALER = "healer"
    BLOG_MASTER = "blog_master"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ApprovalType(str, Enum):
    TOPIC_SELECTION = "topic_selection"
    CONTENT_REVIEW = "content_review"
    MEDIA_APPROVAL = "media_approval"


class ApprovalDecision(str, Enum):
    """Normalized human decision carried by an approval response."""
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_REVISION = "request_revision"


class ContentStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    PUBLISHED = "published"


class TopicStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class LogLevel(str, Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    SUCCESS = "success"
    AGENT = "agent"


# ============================================================================
# Artifacts
# ============================================================================

class PostRef(BaseModel):
    """Reference to a post published on a social platform."""
    platform: str = Field(..., description="Platform name (facebook, linkedin, ...)")
    post_id: Optional[str] = Field(None, description="Platform-side post id")
    url: Optional[str] = Field(None, description="Public URL if known")
    status: str = Field(default="published", description="published, queued, or failed")


class PodcastEpisode(BaseModel):
    """A produced podcast episode."""
    title: str
    audio_url: str
    summary: str = ""
    script: str = ""
    source_content_id: Optional[int] = Field(None, description="WordPress post id the episode was built from")
    source_content_date: Optional[str] = Field(None, description="ISO date of the source content")
    duration_seconds: Optional[int] = None


class RunArtifacts(BaseModel):
    """
    Typed artifact map of a run.

    Holds identifiers already written to the record store or the CMS;
    the store stays the source of truth for the content itself.
    Unknown keys are rejected so a misspelled artifact fails loudly.
    """
    model_config = ConfigDict(extra="forbid")

    topic_id: Optional[str] = None
    content_piece_id: Optional[str] = None
    focus_keyword: Optional[str] = None
    seo_score: Optional[int] = None

    hebrew_title: Optional[str] = None
    hebrew_post_id: Optional[int] = None
    hebrew_post_url: Optional[str] = None

    english_title: Optional[str] = None
    english_post_id: Optional[int] = None
    english_post_url: Optional[str] = None

    featured_media_id: Optional[int] = None
    featured_image_url: Optional[str] = None
    video_url: Optional[str] = None

    social_posts: List[PostRef] = Field(default_factory=list)
    episode: Optional[PodcastEpisode] = None

    def merge(self, other: "RunArtifacts") -> "RunArtifacts":
        """Return a new map with other's non-empty values applied and social posts appended."""
        update: Dict[str, Any] = {}
        for name in RunArtifacts.model_fields:
            value = getattr(other, name)
            if name == "social_posts":
                if value:
                    update[name] = list(self.social_posts) + list(value)
            elif value is not None:
                update[name] = value
        return self.model_copy(update=update)


# ============================================================================
# Run records
# ============================================================================

class PipelineRun(BaseModel):
    """
    One execution of a named pipeline.

    stages_completed is kept in true execution order. workflow_data holds
    the serialized engine state so a run can be resumed from the store alone.
    """
    id: str = Field(default_factory=new_id)
    pipeline_type: PipelineType = PipelineType.CONTENT
    trigger_type: TriggerType = TriggerType.MANUAL
    status: RunStatus = RunStatus.PENDING
    current_stage: Optional[str] = None

    requested_workers: List[str] = Field(default_factory=list)
    stages_completed: List[str] = Field(default_factory=list)
    stages_failed: List[str] = Field(default_factory=list)
    not_attempted: List[str] = Field(default_factory=list)

    artifacts: RunArtifacts = Field(default_factory=RunArtifacts)
    options: Dict[str, Any] = Field(default_factory=dict)
    workflow_data: Dict[str, Any] = Field(default_factory=dict)

    error: Optional[str] = None
    revision_count: int = 0

    started_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RUN_STATUSES


class PipelineLog(BaseModel):
    """A timestamped log entry attached to a run."""
    id: str = Field(default_factory=new_id)
    run_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)
    level: LogLevel = LogLevel.INFO
    stage: Optional[str] = None
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class Approval(BaseModel):
    """
    A human decision tied to one run and one artifact.

    Approvals are never deleted; resolved ones remain as an audit trail.
    """
    id: str = Field(default_factory=new_id)
    run_id: Optional[str] = None
    type: ApprovalType = ApprovalType.CONTENT_REVIEW
    status: ApprovalStatus = ApprovalStatus.PENDING
    stage: Optional[str] = Field(None, description="Worker id that produced the artifact")
    related_id: Optional[str] = Field(None, description="Artifact id (e.g., WordPress draft id)")
    related_title: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)

    slack_channel: Optional[str] = None
    slack_message_ts: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)
    response_user_id: Optional[str] = None
    response_timestamp: Optional[datetime] = None
    decision: Optional[ApprovalDecision] = None
    feedback: Optional[str] = None


# ============================================================================
# Content store records
# ============================================================================

class Topic(BaseModel):
    """A planned article topic (one row of the topics table)."""
    id: str = Field(default_factory=new_id)
    topic: str = ""
    title: Optional[str] = None
    audience: str = "US citizens in Israel"
    language: str = "he"
    keywords: List[str] = Field(default_factory=list)
    outline: Optional[str] = None
    strategy: Optional[str] = None
    status: TopicStatus = TopicStatus.PENDING
    priority: str = "medium"
    category: str = "Tax Planning"

    hebrew_post_id: Optional[int] = None
    english_post_id: Optional[int] = None
    hebrew_seo_score: Optional[int] = None
    english_seo_score: Optional[int] = None

    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None


class ContentPiece(BaseModel):
    """A generated bilingual article and its derived media."""
    id: str = Field(default_factory=new_id)
    topic_id: Optional[str] = None

    title_he: Optional[str] = None
    title_en: Optional[str] = None
    content_he: Optional[str] = None
    content_en: Optional[str] = None
    excerpt: Optional[str] = None

    focus_keyword: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    seo_score: int = Field(default=0, ge=0, le=100)
    status: ContentStatus = ContentStatus.DRAFT

    hebrew_post_id: Optional[int] = None
    english_post_id: Optional[int] = None
    media_urls: List[str] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
