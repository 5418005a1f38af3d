"""
PipelineLogger - Run-scoped log sink.

Every entry is persisted to the record store as a PipelineLog (so the
dashboard can show a run's timeline) and mirrored to the Python logger.
"""

import logging
from typing import Any, Dict, Optional

from ..core.models import LogLevel, PipelineLog
from .record_store import RecordStore

logger = logging.getLogger(__name__)

_PYTHON_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.AGENT: logging.INFO,
    LogLevel.SUCCESS: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class PipelineLogger:
    """Writes timestamped log entries for one run."""

    def __init__(self, store: RecordStore, run_id: Optional[str] = None, stage: Optional[str] = None):
        self.store = store
        self.run_id = run_id
        self.stage = stage

    def for_stage(self, stage: str) -> "PipelineLogger":
        return PipelineLogger(self.store, self.run_id, stage)

    async def log(
        self,
        level: LogLevel,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        stage: Optional[str] = None,
    ) -> None:
        stage = stage or self.stage
        prefix = f"[{self.run_id}]" if self.run_id else "[-]"
        if stage:
            prefix = f"{prefix}[{stage}]"
        logger.log(_PYTHON_LEVELS[level], f"{prefix} {message}")

        entry = PipelineLog(run_id=self.run_id, level=level, stage=stage, message=message, data=data or {})
        try:
            await self.store.add_pipeline_log(self.run_id, entry)
        except Exception as e:
            logger.error(f"Failed to persist pipeline log for run {self.run_id}: {e}")

    async def info(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        await self.log(LogLevel.INFO, message, data)

    async def warn(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        await self.log(LogLevel.WARN, message, data)

    async def error(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        await self.log(LogLevel.ERROR, message, data)

    async def success(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        await self.log(LogLevel.SUCCESS, message, data)

    async def agent(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        await self.log(LogLevel.AGENT, message, data)
