"""Periodic tick scheduling on asyncio.

Detector ticks are synchronous and CPU-bound, so each one runs directly on the
event loop thread.  All tickers of one MonitorService therefore share a single
writer and the detectors' internal maps never see concurrent mutation.  A
``PeriodicTask`` additionally refuses to re-enter its own callback.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from vtms.config import Settings, settings as _default_settings
from vtms.modules.activity_detection import ActivityOrchestrator
from vtms.modules.vessel_store import InMemoryVesselStore

logger = logging.getLogger(__name__)


class PeriodicTask:
    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], object],
        run_immediately: bool = True,
    ):
        if interval_seconds <= 0:
            raise ValueError(f"{name}: interval must be positive, got {interval_seconds}")
        self.name = name
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.run_immediately = run_immediately
        self.runs = 0
        self.skipped = 0
        self.failures = 0
        self._busy = False
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> asyncio.Task:
        """Schedule the loop on the running event loop."""
        if self._task is not None and not self._task.done():
            logger.info("%s already running", self.name)
            return self._task
        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._loop(), name=self.name)
        logger.info("Started %s (interval: %ss)", self.name, self.interval_seconds)
        return self._task

    def run_once(self) -> bool:
        """Run the callback now; returns False if a run is already in progress."""
        if self._busy:
            self.skipped += 1
            logger.debug("%s: previous tick still running, skipping", self.name)
            return False
        self._busy = True
        try:
            self.callback()
            self.runs += 1
        except Exception:
            self.failures += 1
            logger.exception("%s tick failed", self.name)
        finally:
            self._busy = False
        return True

    async def _loop(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval_seconds)
        while self._running:
            self.run_once()
            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break
        logger.info("%s stopped", self.name)

    async def stop(self) -> None:
        self._running = False
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


class MonitorService:
    """Collision, activity and cleanup tickers over one orchestrator."""

    def __init__(
        self,
        orchestrator: ActivityOrchestrator,
        settings: Optional[Settings] = None,
        store: Optional[InMemoryVesselStore] = None,
    ):
        s = settings or _default_settings
        self.settings = s
        self.orchestrator = orchestrator
        self.store = store
        self.collision_task = PeriodicTask(
            "collision-detection", s.COLLISION_INTERVAL_SECONDS, orchestrator.run_collision
        )
        self.activity_task = PeriodicTask(
            "activity-detection", s.ACTIVITY_INTERVAL_SECONDS, orchestrator.run_detection
        )
        self.cleanup_task = PeriodicTask(
            "cleanup", s.CLEANUP_INTERVAL_SECONDS, self._cleanup, run_immediately=False
        )

    @property
    def tasks(self) -> tuple[PeriodicTask, PeriodicTask, PeriodicTask]:
        return (self.collision_task, self.activity_task, self.cleanup_task)

    def _cleanup(self) -> None:
        self.orchestrator.cleanup()
        if self.store is not None:
            self.store.cleanup_old_vessels(self.settings.VESSEL_STALE_MINUTES)

    def start(self) -> None:
        for task in self.tasks:
            task.start()

    async def stop(self) -> None:
        for task in self.tasks:
            await task.stop()
