"""
Error taxonomy for the Content Factory.

Configuration errors (unknown worker, cyclic graph) and terminal-state
violations propagate to callers. Worker-level failures are converted to
failed WorkerResults at the worker boundary and never escape a worker.
"""

from typing import List, Optional


class ContentFactoryError(Exception):
    """Base class for all Content Factory errors."""


class UnknownWorkerError(ContentFactoryError):
    """A requested worker id is not registered."""

    def __init__(self, worker_id: str):
        self.worker_id = worker_id
        super().__init__(f"Unknown worker: {worker_id}")


class CyclicDependencyError(ContentFactoryError):
    """The declared worker dependency graph contains a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Cyclic worker dependency: {' -> '.join(cycle)}")


class WorkerExecutionError(ContentFactoryError):
    """A worker's external call failed."""

    def __init__(self, worker_id: str, message: str):
        self.worker_id = worker_id
        super().__init__(f"{worker_id}: {message}")


class GenerationJobError(WorkerExecutionError):
    """A polled generation job failed or did not finish within its attempts."""

    def __init__(self, task_id: str, status: str, detail: Optional[str] = None):
        self.task_id = task_id
        self.status = status
        message = f"Generation job {task_id} ended with status '{status}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__("generation", message)


class ApprovalTimeoutError(ContentFactoryError):
    """A paused run's approval went unanswered past the configured timeout."""

    def __init__(self, run_id: str, approval_id: str):
        self.run_id = run_id
        self.approval_id = approval_id
        super().__init__(f"Approval {approval_id} for run {run_id} timed out")


class RunAlreadyTerminalError(ContentFactoryError):
    """Attempted mutation of a completed, failed, or expired run."""

    def __init__(self, run_id: str, status: str):
        self.run_id = run_id
        self.status = status
        super().__init__(f"Run {run_id} is already {status}")


class RecordNotFoundError(ContentFactoryError):
    """A topic, content piece, run, or approval lookup missed."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class PartialHealError(ContentFactoryError):
    """An individual record's auto-repair failed during a healer sweep."""

    def __init__(self, record_id: str, action: str, cause: Exception):
        self.record_id = record_id
        self.action = action
        self.cause = cause
        super().__init__(f"Failed to apply {action} to {record_id}: {cause}")
