"""
Cleanup Service - periodic removal of old finished approvals

Runs ``ApprovalEngine.clean`` on a fixed interval from inside an asyncio
loop. The engine is synchronous and touches the filesystem, so each run is
pushed to a worker thread.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from actiongate.core.structured_logger import TraceContext, get_logger

if TYPE_CHECKING:
    from actiongate.config.settings import CleanupConfig
    from actiongate.core.engine import ApprovalEngine

logger = get_logger("CleanupService")


class CleanupService:
    """
    Background task that keeps the approvals directory bounded.

    Args:
        engine: Engine whose ``clean`` is invoked
        interval_seconds: Seconds between runs
        older_than_days: Age threshold handed to ``clean``
        run_on_startup: Clean once immediately when started
    """

    def __init__(
        self,
        engine: ApprovalEngine,
        interval_seconds: float = 3600,
        older_than_days: float = 7,
        run_on_startup: bool = True,
    ) -> None:
        self.engine = engine
        self.interval_seconds = interval_seconds
        self.older_than_days = older_than_days
        self.run_on_startup = run_on_startup
        self.runs = 0
        self.total_removed = 0
        self._task: asyncio.Task | None = None
        self._running = False

    @classmethod
    def from_config(cls, engine: ApprovalEngine, config: CleanupConfig, older_than_days: float) -> CleanupService:
        return cls(
            engine,
            interval_seconds=config.interval_seconds,
            older_than_days=older_than_days,
            run_on_startup=config.run_on_startup,
        )

    @property
    def running(self) -> bool:
        return self._running

    async def run_once(self) -> int:
        """Clean once; errors are logged and reported as zero removals."""
        with TraceContext():
            try:
                removed = await asyncio.to_thread(self.engine.clean, self.older_than_days)
            except Exception as e:
                logger.error("Approval cleanup failed", error=str(e), error_type=type(e).__name__)
                return 0
        self.runs += 1
        self.total_removed += removed
        if removed:
            logger.info("Cleaned old approvals", removed=removed, older_than_days=self.older_than_days)
        return removed

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        if self.run_on_startup:
            await self.run_once()
        self._task = asyncio.create_task(self._loop())
        logger.info("Cleanup service started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Cleanup service stopped", runs=self.runs, total_removed=self.total_removed)

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)
                await self.run_once()
            except asyncio.CancelledError:
                break
