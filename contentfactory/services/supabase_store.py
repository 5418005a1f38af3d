"""
SupabaseRecordStore - Production RecordStore backed by Supabase tables.

Tables: topics, content_pieces, pipeline_runs, pipeline_logs, approvals.
Rows are the models' JSON dumps; nested fields (artifacts, workflow_data)
are stored as jsonb.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ..core.database import (
    APPROVALS_TABLE,
    CONTENT_PIECES_TABLE,
    PIPELINE_LOGS_TABLE,
    PIPELINE_RUNS_TABLE,
    TOPICS_TABLE,
    get_supabase_client,
)
from ..core.exceptions import RecordNotFoundError
from ..core.models import (
    Approval,
    ApprovalStatus,
    ContentPiece,
    PipelineLog,
    PipelineRun,
    RunStatus,
    Topic,
    TopicStatus,
    utc_now,
)
from .record_store import RecordStore

logger = logging.getLogger(__name__)


def _serialize(value: Any) -> Any:
    """Convert a patch value to its JSON column form."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


class SupabaseRecordStore(RecordStore):
    """RecordStore over the Supabase REST client."""

    def __init__(self, supabase_client: Optional[Any] = None):
        """
        Initialize the store.

        Args:
            supabase_client: Supabase client (defaults to the shared client)
        """
        self.supabase = supabase_client or get_supabase_client()

    def _insert(self, table: str, record: BaseModel) -> Dict[str, Any]:
        result = self.supabase.table(table).insert(record.model_dump(mode="json")).execute()
        return result.data[0] if result.data else record.model_dump(mode="json")

    def _get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(table).select("*").eq("id", record_id).limit(1).execute()
        return result.data[0] if result.data else None

    def _update(self, table: str, kind: str, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        result = self.supabase.table(table).update(_serialize(patch)).eq("id", record_id).execute()
        if not result.data:
            raise RecordNotFoundError(kind, record_id)
        return result.data[0]

    # =========================================================================
    # TOPICS
    # =========================================================================

    async def get_topics(self, statuses: Optional[List[TopicStatus]] = None) -> List[Topic]:
        query = self.supabase.table(TOPICS_TABLE).select("*")
        if statuses:
            query = query.in_("status", [s.value for s in statuses])
        result = query.order("created_at").execute()
        return [Topic.model_validate(row) for row in result.data or []]

    async def get_topic(self, topic_id: str) -> Optional[Topic]:
        row = self._get(TOPICS_TABLE, topic_id)
        return Topic.model_validate(row) if row else None

    async def create_topic(self, topic: Topic) -> Topic:
        return Topic.model_validate(self._insert(TOPICS_TABLE, topic))

    async def update_topic(self, topic_id: str, patch: Dict[str, Any]) -> Topic:
        return Topic.model_validate(self._update(TOPICS_TABLE, "Topic", topic_id, patch))

    # =========================================================================
    # CONTENT PIECES
    # =========================================================================

    async def get_content_pieces(self, topic_id: Optional[str] = None) -> List[ContentPiece]:
        query = self.supabase.table(CONTENT_PIECES_TABLE).select("*")
        if topic_id is not None:
            query = query.eq("topic_id", topic_id)
        result = query.order("created_at").execute()
        return [ContentPiece.model_validate(row) for row in result.data or []]

    async def get_content_piece(self, piece_id: str) -> Optional[ContentPiece]:
        row = self._get(CONTENT_PIECES_TABLE, piece_id)
        return ContentPiece.model_validate(row) if row else None

    async def create_content_piece(self, piece: ContentPiece) -> ContentPiece:
        return ContentPiece.model_validate(self._insert(CONTENT_PIECES_TABLE, piece))

    async def update_content_piece(self, piece_id: str, patch: Dict[str, Any]) -> ContentPiece:
        patch = {**patch, "updated_at": utc_now()}
        return ContentPiece.model_validate(
            self._update(CONTENT_PIECES_TABLE, "ContentPiece", piece_id, patch)
        )

    # =========================================================================
    # PIPELINE RUNS AND LOGS
    # =========================================================================

    async def create_pipeline_run(self, run: PipelineRun) -> PipelineRun:
        row = self._insert(PIPELINE_RUNS_TABLE, run)
        logger.info(f"Created pipeline run {run.id} ({run.pipeline_type.value})")
        return PipelineRun.model_validate(row)

    async def get_pipeline_run(self, run_id: str) -> Optional[PipelineRun]:
        row = self._get(PIPELINE_RUNS_TABLE, run_id)
        return PipelineRun.model_validate(row) if row else None

    async def update_pipeline_run(self, run_id: str, patch: Dict[str, Any]) -> PipelineRun:
        patch = {**patch, "updated_at": utc_now()}
        return PipelineRun.model_validate(
            self._update(PIPELINE_RUNS_TABLE, "PipelineRun", run_id, patch)
        )

    async def list_pipeline_runs(
        self,
        status: Optional[RunStatus] = None,
        limit: int = 50
    ) -> List[PipelineRun]:
        query = self.supabase.table(PIPELINE_RUNS_TABLE).select("*")
        if status is not None:
            query = query.eq("status", status.value)
        result = query.order("started_at", desc=True).limit(limit).execute()
        return [PipelineRun.model_validate(row) for row in result.data or []]

    async def add_pipeline_log(self, run_id: Optional[str], entry: PipelineLog) -> PipelineLog:
        entry = entry.model_copy(update={"run_id": run_id})
        self.supabase.table(PIPELINE_LOGS_TABLE).insert(entry.model_dump(mode="json")).execute()
        return entry

    async def get_pipeline_logs(self, run_id: str) -> List[PipelineLog]:
        result = self.supabase.table(PIPELINE_LOGS_TABLE).select("*").eq(
            "run_id", run_id
        ).order("timestamp").execute()
        return [PipelineLog.model_validate(row) for row in result.data or []]

    # =========================================================================
    # APPROVALS
    # =========================================================================

    async def create_approval(self, approval: Approval) -> Approval:
        return Approval.model_validate(self._insert(APPROVALS_TABLE, approval))

    async def get_approval(self, approval_id: str) -> Optional[Approval]:
        row = self._get(APPROVALS_TABLE, approval_id)
        return Approval.model_validate(row) if row else None

    async def update_approval(self, approval_id: str, patch: Dict[str, Any]) -> Approval:
        return Approval.model_validate(self._update(APPROVALS_TABLE, "Approval", approval_id, patch))

    async def get_approval_by_slack_message(
        self,
        message_ts: str,
        channel: Optional[str] = None
    ) -> Optional[Approval]:
        query = self.supabase.table(APPROVALS_TABLE).select("*").eq("slack_message_ts", message_ts)
        if channel:
            query = query.eq("slack_channel", channel)
        result = query.limit(1).execute()
        return Approval.model_validate(result.data[0]) if result.data else None

    async def get_pipeline_run_by_approval(self, approval_id: str) -> Optional[PipelineRun]:
        approval = await self.get_approval(approval_id)
        if approval is None or approval.run_id is None:
            return None
        return await self.get_pipeline_run(approval.run_id)

    async def get_pending_approvals(self, run_id: Optional[str] = None) -> List[Approval]:
        query = self.supabase.table(APPROVALS_TABLE).select("*").eq(
            "status", ApprovalStatus.PENDING.value
        )
        if run_id is not None:
            query = query.eq("run_id", run_id)
        result = query.execute()
        return [Approval.model_validate(row) for row in result.data or []]
