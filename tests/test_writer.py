"""Tests for the single-writer persistence queue."""

import asyncio

import pytest

from airwatch.detection.storage import StorageError
from airwatch.detection.writer import AlertWriter


class FakeStorage:
    """Counts persist calls; optionally fails."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.persisted = 0

    async def persist(self, timestamp=None):
        await asyncio.sleep(0)
        if self.fail:
            raise StorageError("disk full")
        self.persisted += 1
        return {"current": {"count": self.persisted}, "daily": None}


@pytest.fixture
async def writer():
    writer = AlertWriter(FakeStorage())
    await writer.start()
    yield writer
    await writer.stop()


class TestRequest:
    """Non-blocking background save requests"""

    def test_ignored_when_not_running(self):
        writer = AlertWriter(FakeStorage())
        assert writer.request("hijack_alert") is False

    async def test_requests_coalesce_while_pending(self, writer):
        assert writer.request("hijack_alert") is True
        assert writer.request("emergency_code_alert") is False

        await writer.flush("manual")

        assert writer.storage.persisted == 2

    async def test_new_request_after_save_started(self, writer):
        assert writer.request("first") is True
        await writer.flush("barrier")

        assert writer.request("second") is True
        await writer.flush("barrier")

        assert writer.storage.persisted == 4

    async def test_stop_drains_queue(self):
        writer = AlertWriter(FakeStorage())
        await writer.start()
        writer.request("auto_save")

        await writer.stop()

        assert writer.storage.persisted == 1
        assert writer.is_running is False


class TestSubmit:
    """Awaited writes"""

    async def test_flush_inline_when_not_running(self):
        writer = AlertWriter(FakeStorage())
        result = await writer.flush("manual")

        assert result["current"]["count"] == 1

    async def test_flush_returns_result(self, writer):
        result = await writer.flush("manual")

        assert result["current"]["count"] == 1
        assert writer.saves == 1
        assert writer.last_saved is not None

    async def test_submit_runs_arbitrary_operation(self, writer):
        async def archive():
            return 42

        assert await writer.submit("archive", archive) == 42

    async def test_submit_propagates_errors(self, writer):
        async def broken():
            raise StorageError("read-only filesystem")

        with pytest.raises(StorageError, match="read-only"):
            await writer.submit("archive", broken)

        assert writer.failures == 1
        assert writer.is_running

    async def test_submit_during_stop_runs_after_worker_exits(self):
        writer = AlertWriter(FakeStorage())
        await writer.start()
        writer.request("auto_save")
        stopping = asyncio.create_task(writer.stop())
        await asyncio.sleep(0)

        worker_running = []

        async def archive():
            worker_running.append(writer.is_running)
            return "archived"

        result = await asyncio.wait_for(writer.submit("shutdown_archive", archive), timeout=1)
        await stopping

        assert result == "archived"
        assert worker_running == [False]
        assert writer.storage.persisted == 1
        assert writer.request("late") is False

    async def test_background_failure_is_recorded(self):
        writer = AlertWriter(FakeStorage(fail=True))
        await writer.start()
        writer.request("critical_alert")
        await writer.stop()

        status = writer.status()
        assert status["failures"] == 1
        assert status["saves"] == 0
        assert status["lastError"] == "disk full"
        assert status["running"] is False
