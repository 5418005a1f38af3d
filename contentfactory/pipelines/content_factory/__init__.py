"""
Tax4Us content factory run engine.

- orchestrator: run_content_pipeline, approvals, retry/expiry, scheduled pipelines
- graph: the pydantic-graph state machine for one run
- nodes: the content workers (proposal, writing, video, publishing, podcast)
- healer: DataAutoHealer sweep
- blog_master: gate-free single-call article production and batches
"""

from .blog_master import BlogMaster, BlogMasterConfig, BlogMasterResult
from .dependencies import FactoryDependencies
from .graph import (
    AwaitApprovalNode,
    ExecuteWorkerNode,
    FinalizeRunNode,
    StartRunNode,
    content_factory_graph,
)
from .healer import DataAutoHealer, HealerResult
from .nodes import CONTENT_WORKERS, DEFAULT_CONTENT_PIPELINE, PROPOSAL_PIPELINE, build_registry
from .orchestrator import Orchestrator, PipelineResult
from .state import ContentRunState

__all__ = [
    "BlogMaster",
    "BlogMasterConfig",
    "BlogMasterResult",
    "FactoryDependencies",
    "StartRunNode",
    "ExecuteWorkerNode",
    "AwaitApprovalNode",
    "FinalizeRunNode",
    "content_factory_graph",
    "DataAutoHealer",
    "HealerResult",
    "CONTENT_WORKERS",
    "DEFAULT_CONTENT_PIPELINE",
    "PROPOSAL_PIPELINE",
    "build_registry",
    "Orchestrator",
    "PipelineResult",
    "ContentRunState",
]
