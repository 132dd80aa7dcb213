"""
Single-writer queue for alert persistence.

This module provides the AlertWriter class. Every write to the alert files
goes through one asyncio queue drained by one worker task, so at most one
write to a given file is in flight at any time.

Key Features:
    - ``request()`` never blocks and coalesces background saves
    - ``flush()`` and ``submit()`` await the outcome of their write
    - Background save failures are logged and not retried
    - ``stop()`` drains queued writes before returning

Example:
    >>> writer = AlertWriter(storage)
    >>> await writer.start()
    >>> writer.request("critical_alert")
    >>> await writer.flush("manual")
    >>> await writer.stop()
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from airwatch.clock import now_ms
from airwatch.detection.storage import AlertStorage

logger = structlog.get_logger(__name__)

Operation = Callable[[], Awaitable[Any]]


@dataclass
class _WriteJob:
    reason: str
    operation: Operation
    future: Optional["asyncio.Future[Any]"] = None
    queued_at: int = field(default_factory=now_ms)


class AlertWriter:
    """
    Serializes all storage writes through a single worker task.

    Attributes:
        storage: Storage whose ``persist`` is the default write.
        saves: Writes completed successfully.
        failures: Writes that raised.
        last_saved: Completion time of the last successful write (epoch ms).
        last_error: Message of the last failed write.
    """

    def __init__(self, storage: AlertStorage) -> None:
        self.storage = storage
        self._queue: "asyncio.Queue[Optional[_WriteJob]]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._background_pending = False
        self._stopping = False

        self.saves = 0
        self.failures = 0
        self.last_saved: Optional[int] = None
        self.last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._run(), name="alert-writer")
        logger.info("alert_writer_started")

    async def stop(self) -> None:
        """Process every queued write, then stop the worker."""
        if not self.is_running:
            return
        self._stopping = True
        await self._queue.put(None)
        await self._task  # type: ignore[misc]
        self._task = None
        self._stopping = False
        logger.info("alert_writer_stopped", saves=self.saves, failures=self.failures)

    def request(self, reason: str) -> bool:
        """
        Ask for a background save of the current state.

        Never blocks. While a background save is already queued the request
        is dropped, since that save will capture the latest state.

        Args:
            reason: Short label for logs (e.g. ``"hijack_alert"``).

        Returns:
            bool: True if a save was queued.
        """
        if not self.is_running or self._stopping:
            logger.debug("save_request_ignored", reason=reason, cause="writer_not_running")
            return False
        if self._background_pending:
            logger.debug("save_request_coalesced", reason=reason)
            return False

        self._background_pending = True
        self._queue.put_nowait(_WriteJob(reason=reason, operation=self.storage.persist))
        return True

    async def flush(self, reason: str) -> Dict[str, Any]:
        """Save the current state and wait for the result."""
        return await self.submit(reason, self.storage.persist)

    async def submit(self, reason: str, operation: Operation) -> Any:
        """
        Run a storage operation on the writer and wait for it.

        When the worker is not running the operation runs inline. While the
        worker is stopping, the operation runs inline once it has exited.

        Raises:
            Exception: Whatever the operation raised.
        """
        if self._stopping and self._task is not None:
            await asyncio.wait({self._task})
        if not self.is_running:
            return await operation()

        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_WriteJob(reason=reason, operation=operation, future=future))
        return await future

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job is None:
                    return
                await self._execute(job)
            finally:
                self._queue.task_done()

    async def _execute(self, job: _WriteJob) -> None:
        if job.future is None:
            # Requests arriving from here on need a new save
            self._background_pending = False

        try:
            result = await job.operation()
        except Exception as e:
            self.failures += 1
            self.last_error = str(e)
            logger.error("alert_write_failed", reason=job.reason, error=str(e))
            if job.future is not None and not job.future.done():
                job.future.set_exception(e)
            return

        self.saves += 1
        self.last_saved = now_ms()
        logger.debug(
            "alert_write_completed",
            reason=job.reason,
            queued_ms=self.last_saved - job.queued_at,
        )
        if job.future is not None and not job.future.done():
            job.future.set_result(result)

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "queued": self._queue.qsize(),
            "saves": self.saves,
            "failures": self.failures,
            "lastSaved": self.last_saved,
            "lastError": self.last_error,
        }
