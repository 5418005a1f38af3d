"""
Pydantic Graph Pipelines for the Content Factory.

- registry: worker declarations and dependency-ordered execution
- content_factory: the Tax4Us run engine, workers, healer and BlogMaster
"""

from .registry import WorkerRegistry, WorkerSpec

__all__ = ['WorkerRegistry', 'WorkerSpec']
