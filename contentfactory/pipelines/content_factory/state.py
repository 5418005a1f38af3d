"""
Content Factory Run State - dataclass passed through all run graph nodes.

The state is persisted to PipelineRun.workflow_data after every step, so
a paused run can be rebuilt from the record store alone (for example
after a process restart) and resumed by a different process.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...core.models import PipelineType, RunArtifacts, RunStatus


@dataclass
class ContentRunState:
    """
    State for one run of the content factory.

    Lifecycle:
        1. Orchestrator creates it with the resolved worker order and options
        2. ExecuteWorkerNode advances next_index and records stage outcomes
        3. AwaitApprovalNode pauses the run (End) or continues on auto-approve
        4. FinalizeRunNode sets the terminal status
    """

    # === REQUIRED INPUT ===
    run_id: str
    requested_workers: List[str]

    # === CONFIGURATION (set at creation, not changed by nodes) ===
    pipeline_type: str = PipelineType.CONTENT.value
    test_mode: bool = False
    skip_failures: bool = False
    auto_approve: bool = False
    topic_id: Optional[str] = None
    source_content_date: Optional[str] = None

    # === PROGRESS ===
    status: str = RunStatus.PENDING.value
    next_index: int = 0
    current_stage: Optional[str] = None
    stages_completed: List[str] = field(default_factory=list)
    stages_failed: List[str] = field(default_factory=list)
    not_attempted: List[str] = field(default_factory=list)
    worker_errors: Dict[str, str] = field(default_factory=dict)
    artifacts: RunArtifacts = field(default_factory=RunArtifacts)

    # === APPROVAL GATE ===
    pending_approval_id: Optional[str] = None
    revision_feedback: Optional[str] = None
    revision_count: int = 0
    rejected_stage: Optional[str] = None

    # === TERMINAL ===
    final_status: Optional[str] = None
    error: Optional[str] = None

    @property
    def remaining_workers(self) -> List[str]:
        return self.requested_workers[self.next_index:]

    @property
    def finished(self) -> bool:
        return self.next_index >= len(self.requested_workers)

    def record_success(self, worker_id: str, artifacts: RunArtifacts) -> None:
        self.artifacts = self.artifacts.merge(artifacts)
        self.stages_completed.append(worker_id)
        self.worker_errors.pop(worker_id, None)

    def record_failure(self, worker_id: str, error: str) -> None:
        self.stages_failed.append(worker_id)
        self.worker_errors[worker_id] = error

    def stop(self, error: str) -> None:
        """Abort the run: everything not yet reached is reported as not attempted."""
        self.error = error
        self.not_attempted = [
            w for w in self.remaining_workers
            if w not in self.stages_completed and w not in self.stages_failed
        ]
        self.next_index = len(self.requested_workers)

    def rewind_to(self, worker_id: str) -> None:
        """Re-run worker_id and everything after it."""
        index = self.requested_workers.index(worker_id)
        rerun = set(self.requested_workers[index:])
        self.stages_completed = [w for w in self.stages_completed if w not in rerun]
        self.stages_failed = [w for w in self.stages_failed if w not in rerun]
        for w in rerun:
            self.worker_errors.pop(w, None)
        self.not_attempted = []
        self.next_index = index

    def to_dict(self) -> Dict[str, Any]:
        """Serialize state for persistence."""
        import dataclasses
        result = {}
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if isinstance(val, RunArtifacts):
                val = val.model_dump(mode="json")
            result[f.name] = val
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentRunState":
        """Deserialize state from persistence."""
        import dataclasses
        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered = {k: v for k, v in data.items() if k in field_names}
        filtered["artifacts"] = RunArtifacts.model_validate(filtered.get("artifacts") or {})
        return cls(**filtered)
