"""
RecordStore - Interface to the content record store.

The store is the single source of truth for topics, content pieces,
pipeline runs, logs and approvals. Lookups of unknown ids return None;
updates of unknown ids raise RecordNotFoundError.

InMemoryRecordStore backs tests and test_mode runs. It hands out copies so
callers only see changes that went through the store, matching how a
remote store behaves.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Type, TypeVar

from pydantic import BaseModel

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

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def apply_patch(model_cls: Type[M], record: M, patch: Dict[str, Any]) -> M:
    """Validate a partial update against the record's model."""
    data = record.model_dump()
    data.update(patch)
    return model_cls.model_validate(data)


class RecordStore(ABC):
    """Abstract content record store. All operations are async."""

    # Topics
    @abstractmethod
    async def get_topics(self, statuses: Optional[List[TopicStatus]] = None) -> List[Topic]: ...

    @abstractmethod
    async def get_topic(self, topic_id: str) -> Optional[Topic]: ...

    @abstractmethod
    async def create_topic(self, topic: Topic) -> Topic: ...

    @abstractmethod
    async def update_topic(self, topic_id: str, patch: Dict[str, Any]) -> Topic: ...

    # Content pieces
    @abstractmethod
    async def get_content_pieces(self, topic_id: Optional[str] = None) -> List[ContentPiece]: ...

    @abstractmethod
    async def get_content_piece(self, piece_id: str) -> Optional[ContentPiece]: ...

    @abstractmethod
    async def create_content_piece(self, piece: ContentPiece) -> ContentPiece: ...

    @abstractmethod
    async def update_content_piece(self, piece_id: str, patch: Dict[str, Any]) -> ContentPiece: ...

    # Pipeline runs and logs
    @abstractmethod
    async def create_pipeline_run(self, run: PipelineRun) -> PipelineRun: ...

    @abstractmethod
    async def get_pipeline_run(self, run_id: str) -> Optional[PipelineRun]: ...

    @abstractmethod
    async def update_pipeline_run(self, run_id: str, patch: Dict[str, Any]) -> PipelineRun: ...

    @abstractmethod
    async def list_pipeline_runs(
        self,
        status: Optional[RunStatus] = None,
        limit: int = 50
    ) -> List[PipelineRun]: ...

    @abstractmethod
    async def add_pipeline_log(self, run_id: Optional[str], entry: PipelineLog) -> PipelineLog: ...

    @abstractmethod
    async def get_pipeline_logs(self, run_id: str) -> List[PipelineLog]: ...

    # Approvals
    @abstractmethod
    async def create_approval(self, approval: Approval) -> Approval: ...

    @abstractmethod
    async def get_approval(self, approval_id: str) -> Optional[Approval]: ...

    @abstractmethod
    async def update_approval(self, approval_id: str, patch: Dict[str, Any]) -> Approval: ...

    @abstractmethod
    async def get_approval_by_slack_message(
        self,
        message_ts: str,
        channel: Optional[str] = None
    ) -> Optional[Approval]: ...

    @abstractmethod
    async def get_pipeline_run_by_approval(self, approval_id: str) -> Optional[PipelineRun]: ...

    @abstractmethod
    async def get_pending_approvals(self, run_id: Optional[str] = None) -> List[Approval]: ...


class InMemoryRecordStore(RecordStore):
    """Dict-backed RecordStore."""

    def __init__(
        self,
        topics: Optional[List[Topic]] = None,
        content_pieces: Optional[List[ContentPiece]] = None,
    ):
        self.topics: Dict[str, Topic] = {t.id: t for t in topics or []}
        self.content_pieces: Dict[str, ContentPiece] = {c.id: c for c in content_pieces or []}
        self.runs: Dict[str, PipelineRun] = {}
        self.logs: List[PipelineLog] = []
        self.approvals: Dict[str, Approval] = {}

    @staticmethod
    def _copy(record: Optional[M]) -> Optional[M]:
        return record.model_copy(deep=True) if record is not None else None

    # Topics

    async def get_topics(self, statuses: Optional[List[TopicStatus]] = None) -> List[Topic]:
        topics = self.topics.values()
        if statuses:
            topics = [t for t in topics if t.status in statuses]
        return [self._copy(t) for t in topics]

    async def get_topic(self, topic_id: str) -> Optional[Topic]:
        return self._copy(self.topics.get(topic_id))

    async def create_topic(self, topic: Topic) -> Topic:
        self.topics[topic.id] = self._copy(topic)
        return self._copy(topic)

    async def update_topic(self, topic_id: str, patch: Dict[str, Any]) -> Topic:
        if topic_id not in self.topics:
            raise RecordNotFoundError("Topic", topic_id)
        self.topics[topic_id] = apply_patch(Topic, self.topics[topic_id], patch)
        return self._copy(self.topics[topic_id])

    # Content pieces

    async def get_content_pieces(self, topic_id: Optional[str] = None) -> List[ContentPiece]:
        pieces = self.content_pieces.values()
        if topic_id is not None:
            pieces = [p for p in pieces if p.topic_id == topic_id]
        return [self._copy(p) for p in pieces]

    async def get_content_piece(self, piece_id: str) -> Optional[ContentPiece]:
        return self._copy(self.content_pieces.get(piece_id))

    async def create_content_piece(self, piece: ContentPiece) -> ContentPiece:
        self.content_pieces[piece.id] = self._copy(piece)
        return self._copy(piece)

    async def update_content_piece(self, piece_id: str, patch: Dict[str, Any]) -> ContentPiece:
        if piece_id not in self.content_pieces:
            raise RecordNotFoundError("ContentPiece", piece_id)
        patch = {**patch, "updated_at": utc_now()}
        self.content_pieces[piece_id] = apply_patch(ContentPiece, self.content_pieces[piece_id], patch)
        return self._copy(self.content_pieces[piece_id])

    # Pipeline runs and logs

    async def create_pipeline_run(self, run: PipelineRun) -> PipelineRun:
        self.runs[run.id] = self._copy(run)
        return self._copy(run)

    async def get_pipeline_run(self, run_id: str) -> Optional[PipelineRun]:
        return self._copy(self.runs.get(run_id))

    async def update_pipeline_run(self, run_id: str, patch: Dict[str, Any]) -> PipelineRun:
        if run_id not in self.runs:
            raise RecordNotFoundError("PipelineRun", run_id)
        patch = {**patch, "updated_at": utc_now()}
        self.runs[run_id] = apply_patch(PipelineRun, self.runs[run_id], patch)
        return self._copy(self.runs[run_id])

    async def list_pipeline_runs(
        self,
        status: Optional[RunStatus] = None,
        limit: int = 50
    ) -> List[PipelineRun]:
        runs = sorted(self.runs.values(), key=lambda r: r.started_at, reverse=True)
        if status is not None:
            runs = [r for r in runs if r.status == status]
        return [self._copy(r) for r in runs[:limit]]

    async def add_pipeline_log(self, run_id: Optional[str], entry: PipelineLog) -> PipelineLog:
        entry = entry.model_copy(update={"run_id": run_id})
        self.logs.append(entry)
        return entry

    async def get_pipeline_logs(self, run_id: str) -> List[PipelineLog]:
        return [log for log in self.logs if log.run_id == run_id]

    # Approvals

    async def create_approval(self, approval: Approval) -> Approval:
        self.approvals[approval.id] = self._copy(approval)
        return self._copy(approval)

    async def get_approval(self, approval_id: str) -> Optional[Approval]:
        return self._copy(self.approvals.get(approval_id))

    async def update_approval(self, approval_id: str, patch: Dict[str, Any]) -> Approval:
        if approval_id not in self.approvals:
            raise RecordNotFoundError("Approval", approval_id)
        self.approvals[approval_id] = apply_patch(Approval, self.approvals[approval_id], patch)
        return self._copy(self.approvals[approval_id])

    async def get_approval_by_slack_message(
        self,
        message_ts: str,
        channel: Optional[str] = None
    ) -> Optional[Approval]:
        for approval in self.approvals.values():
            if approval.slack_message_ts != message_ts:
                continue
            if channel and approval.slack_channel and approval.slack_channel != channel:
                continue
            return self._copy(approval)
        return None

    async def get_pipeline_run_by_approval(self, approval_id: str) -> Optional[PipelineRun]:
        approval = self.approvals.get(approval_id)
        if approval is None or approval.run_id is None:
            return None
        return self._copy(self.runs.get(approval.run_id))

    async def get_pending_approvals(self, run_id: Optional[str] = None) -> List[Approval]:
        return [
            self._copy(a) for a in self.approvals.values()
            if a.status == ApprovalStatus.PENDING and (run_id is None or a.run_id == run_id)
        ]
