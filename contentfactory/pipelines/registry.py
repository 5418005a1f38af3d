"""
Worker Registry - Declared workers and their dependency graph.

Each worker class carries a WorkerSpec describing its id, the workers it
depends on, the services and LLM it uses, what it produces, the days it
is scheduled on, and whether its output needs human sign-off.

Usage:
    registry = WorkerRegistry()
    registry.register(TopicManagerWorker)
    registry.register(ContentGeneratorWorker)

    order = registry.resolve_execution_order({"content-generator", "topic-manager"})
    # ["topic-manager", "content-generator"]
"""

import heapq
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Type

from ..core.exceptions import CyclicDependencyError, UnknownWorkerError
from ..core.models import ApprovalType


@dataclass
class WorkerSpec:
    """
    Declaration of a pipeline worker.

    Attributes:
        id: Stable worker identifier (e.g., "translator")
        depends_on: Worker ids that must complete first within a run
        services: Service methods called (e.g., "wordpress.create_post")
        produces: Artifact fields written by this worker
        consumes: Artifact fields read by this worker
        schedule: Weekdays the worker is eligible to run, empty for on-demand
        llm: LLM model used, if any
        llm_purpose: What the LLM does in this worker
        requires_approval: Approval type raised after the worker succeeds
        revision_target: Worker to rewind to when a reviewer asks for a revision
    """

    id: str
    depends_on: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    produces: List[str] = field(default_factory=list)
    consumes: List[str] = field(default_factory=list)
    schedule: List[str] = field(default_factory=list)
    llm: Optional[str] = None
    llm_purpose: Optional[str] = None
    requires_approval: Optional[ApprovalType] = None
    revision_target: Optional[str] = None

    @property
    def uses_llm(self) -> bool:
        return self.llm is not None

    @property
    def on_demand(self) -> bool:
        return not self.schedule

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "depends_on": self.depends_on,
            "services": self.services,
            "produces": self.produces,
            "consumes": self.consumes,
            "schedule": self.schedule or ["on-demand"],
            "llm": self.llm,
            "llm_purpose": self.llm_purpose,
            "requires_approval": self.requires_approval.value if self.requires_approval else None,
            "revision_target": self.revision_target,
        }


class WorkerRegistry:
    """Workers keyed by id, in registration order."""

    def __init__(self, workers: Iterable[type] = ()):
        self._workers: Dict[str, type] = {}
        for worker_cls in workers:
            self.register(worker_cls)

    def register(self, worker_cls: Type) -> Type:
        """Register a worker class (anything with a `spec: WorkerSpec` attribute)."""
        spec = worker_cls.spec
        if spec.id in self._workers:
            raise ValueError(f"Worker already registered: {spec.id}")
        self._workers[spec.id] = worker_cls
        return worker_cls

    def __contains__(self, worker_id: str) -> bool:
        return worker_id in self._workers

    def __len__(self) -> int:
        return len(self._workers)

    def ids(self) -> List[str]:
        return list(self._workers)

    def get(self, worker_id: str) -> Type:
        try:
            return self._workers[worker_id]
        except KeyError:
            raise UnknownWorkerError(worker_id)

    def spec(self, worker_id: str) -> WorkerSpec:
        return self.get(worker_id).spec

    def specs(self) -> List[WorkerSpec]:
        return [worker_cls.spec for worker_cls in self._workers.values()]

    def scheduled_on(self, day: str) -> List[str]:
        """Worker ids whose schedule includes the given weekday name."""
        day = day.lower()
        return [spec.id for spec in self.specs() if day in spec.schedule]

    def resolve_execution_order(self, requested: Iterable[str]) -> List[str]:
        """
        Order the requested workers so each runs after its predecessors.

        Predecessors outside the requested set count as already satisfied.
        Workers with no relative dependency keep registration order, so the
        result is deterministic.

        Raises:
            UnknownWorkerError: A requested id (or a declared predecessor) is not registered
            CyclicDependencyError: The declared graph contains a cycle
        """
        wanted = []
        for worker_id in requested:
            if worker_id not in self._workers:
                raise UnknownWorkerError(worker_id)
            if worker_id not in wanted:
                wanted.append(worker_id)

        self.check_acyclic()

        position = {worker_id: index for index, worker_id in enumerate(self._workers)}
        selected = set(wanted)
        pending = {
            worker_id: {p for p in self.spec(worker_id).depends_on if p in selected}
            for worker_id in wanted
        }
        dependents: Dict[str, List[str]] = {worker_id: [] for worker_id in wanted}
        for worker_id, predecessors in pending.items():
            for predecessor in predecessors:
                dependents[predecessor].append(worker_id)

        ready = [(position[w], w) for w, predecessors in pending.items() if not predecessors]
        heapq.heapify(ready)

        order: List[str] = []
        while ready:
            _, worker_id = heapq.heappop(ready)
            order.append(worker_id)
            for dependent in dependents[worker_id]:
                pending[dependent].discard(worker_id)
                if not pending[dependent]:
                    heapq.heappush(ready, (position[dependent], dependent))

        return order

    def check_acyclic(self) -> None:
        """Raise CyclicDependencyError if the declared graph has a cycle."""
        visiting: List[str] = []
        done = set()

        def visit(worker_id: str) -> None:
            if worker_id in done:
                return
            if worker_id in visiting:
                start = visiting.index(worker_id)
                raise CyclicDependencyError(visiting[start:] + [worker_id])
            if worker_id not in self._workers:
                raise UnknownWorkerError(worker_id)

            visiting.append(worker_id)
            for predecessor in self.spec(worker_id).depends_on:
                visit(predecessor)
            visiting.pop()
            done.add(worker_id)

        for worker_id in self._workers:
            visit(worker_id)
