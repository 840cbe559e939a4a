"""Unit tests for the keyed asyncio scheduler."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import pytest
from unittest.mock import MagicMock
from app.services.scheduler import Scheduler


class TestRepeating:
    @pytest.mark.asyncio
    async def test_runs_immediately_and_repeats(self):
        scheduler = Scheduler()
        calls = []
        scheduler.every("tick", 0.02, lambda: calls.append(1))
        await asyncio.sleep(0.09)
        await scheduler.shutdown()
        assert len(calls) >= 3

    @pytest.mark.asyncio
    async def test_cancel_stops_loop(self):
        scheduler = Scheduler()
        calls = []
        scheduler.every("tick", 0.02, lambda: calls.append(1))
        await asyncio.sleep(0.01)
        assert scheduler.cancel("tick") is True
        count = len(calls)
        await asyncio.sleep(0.06)
        assert len(calls) == count
        assert not scheduler.is_pending("tick")

    @pytest.mark.asyncio
    async def test_errors_do_not_kill_the_loop(self):
        scheduler = Scheduler()
        func = MagicMock(side_effect=RuntimeError("boom"))
        scheduler.every("tick", 0.02, func)
        await asyncio.sleep(0.07)
        await scheduler.shutdown()
        assert func.call_count >= 2

    @pytest.mark.asyncio
    async def test_overlap_does_not_wait_for_slow_runs(self):
        scheduler = Scheduler()
        started = []

        async def slow():
            started.append(1)
            await asyncio.sleep(1)

        scheduler.every("slow", 0.02, slow, overlap=True)
        await asyncio.sleep(0.09)
        assert len(started) >= 3
        await scheduler.shutdown()


class TestOneShot:
    @pytest.mark.asyncio
    async def test_fires_once_after_delay(self):
        scheduler = Scheduler()
        calls = []
        scheduler.once("close", 0.03, lambda: calls.append("closed"))
        assert scheduler.is_pending("close")
        await asyncio.sleep(0.08)
        assert calls == ["closed"]
        assert not scheduler.is_pending("close")

    @pytest.mark.asyncio
    async def test_same_key_supersedes(self):
        scheduler = Scheduler()
        calls = []
        scheduler.once("close", 0.03, lambda: calls.append("first"))
        scheduler.once("close", 0.03, lambda: calls.append("second"))
        await asyncio.sleep(0.08)
        assert calls == ["second"]

    @pytest.mark.asyncio
    async def test_async_callback(self):
        scheduler = Scheduler()
        calls = []

        async def job():
            calls.append("ran")

        scheduler.once("job", 0.01, job)
        await asyncio.sleep(0.05)
        assert calls == ["ran"]

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending(self):
        scheduler = Scheduler()
        calls = []
        scheduler.once("later", 0.05, lambda: calls.append(1))
        await scheduler.shutdown()
        await asyncio.sleep(0.08)
        assert calls == []
        assert scheduler.keys == []
