"""Tests for PeriodicTask and MonitorService scheduling."""
import asyncio
from unittest.mock import MagicMock

import pytest

from vtms.config import Settings
from vtms.modules.ticker import MonitorService, PeriodicTask


def test_run_once_refuses_reentry():
    results = []
    task = PeriodicTask("reentrant", 1.0, lambda: results.append(task.run_once()))

    assert task.run_once() is True
    assert results == [False]
    assert task.skipped == 1
    assert task.runs == 1


def test_run_once_swallows_and_counts_failures():
    task = PeriodicTask("failing", 1.0, MagicMock(side_effect=RuntimeError("bad tick")))
    assert task.run_once() is True
    assert task.failures == 1
    assert task.runs == 0


def test_non_positive_interval_is_rejected():
    with pytest.raises(ValueError):
        PeriodicTask("bad", 0, lambda: None)


def test_loop_keeps_running_after_a_failed_tick():
    calls = []

    def callback():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first tick fails")

    async def scenario():
        task = PeriodicTask("flaky", 0.01, callback)
        task.start()
        await asyncio.sleep(0.1)
        await task.stop()
        return task

    task = asyncio.run(scenario())

    assert task.failures == 1
    assert task.runs >= 1
    assert not task.is_running


def test_stop_without_start_is_a_noop():
    asyncio.run(PeriodicTask("idle", 1.0, lambda: None).stop())


def test_monitor_service_drives_all_tickers():
    orchestrator = MagicMock()
    store = MagicMock()
    settings = Settings(
        COLLISION_INTERVAL_SECONDS=0.01,
        ACTIVITY_INTERVAL_SECONDS=0.01,
        CLEANUP_INTERVAL_SECONDS=0.01,
        VESSEL_STALE_MINUTES=15,
    )

    async def scenario():
        service = MonitorService(orchestrator, settings=settings, store=store)
        service.start()
        await asyncio.sleep(0.1)
        await service.stop()
        return service

    service = asyncio.run(scenario())

    assert orchestrator.run_collision.called
    assert orchestrator.run_detection.called
    assert orchestrator.cleanup.called
    store.cleanup_old_vessels.assert_called_with(15)
    assert all(not task.is_running for task in service.tasks)
