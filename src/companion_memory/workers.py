"""
Background worker pool.

Post-processing jobs (fact extraction, preference updates, compaction) are
queued here after the reply has been produced and run on a fixed number of
asyncio worker tasks. A failing job is logged and counted; it never reaches
the request that scheduled it.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from loguru import logger

from .config import WorkerConfig

JobFactory = Callable[[], Awaitable[Any]]


@dataclass
class Job:
    name: str
    factory: JobFactory
    enqueued_at: float


class BackgroundWorkerPool:
    """Fixed-size asyncio worker pool fed by a bounded queue."""

    def __init__(self, config: WorkerConfig | None = None):
        self.config = config or WorkerConfig()
        self._queue: asyncio.Queue[Job] | None = None
        self._workers: list[asyncio.Task] = []
        self._running = False

        self._total_submitted = 0
        self._total_processed = 0
        self._total_failed = 0
        self._total_dropped = 0
        self._processing_times: list[float] = []

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Spawn the worker tasks on the running loop."""
        if self._running:
            logger.warning("BackgroundWorkerPool is already running")
            return

        self._queue = asyncio.Queue(maxsize=self.config.max_queue_size)
        self._running = True
        for i in range(self.config.worker_count):
            worker = asyncio.create_task(self._worker(worker_id=i), name=f"memory_worker_{i}")
            self._workers.append(worker)

        logger.info(f"BackgroundWorkerPool started ({self.config.worker_count} workers)")

    async def stop(self, timeout: float | None = None) -> None:
        """Drain queued jobs (bounded by ``timeout``) and cancel the workers."""
        if not self._running:
            return

        timeout = self.config.stop_timeout_seconds if timeout is None else timeout
        try:
            await self.join(timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.pending} background jobs still pending at shutdown")

        self._running = False
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        logger.info("BackgroundWorkerPool stopped")

    async def join(self, timeout: float | None = None) -> None:
        """Wait until every queued job has finished."""
        if self._queue is None:
            return
        await asyncio.wait_for(self._queue.join(), timeout=timeout)

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def submit(self, name: str, factory: JobFactory) -> bool:
        """Queue a job without waiting.

        Returns:
            False if the pool is not running or the queue is full.
        """
        if not self._running or self._queue is None:
            logger.warning(f"BackgroundWorkerPool not running, job dropped: {name}")
            self._total_dropped += 1
            return False

        try:
            self._queue.put_nowait(Job(name=name, factory=factory, enqueued_at=time.monotonic()))
        except asyncio.QueueFull:
            self._total_dropped += 1
            logger.warning(f"Background queue full, job dropped: {name}")
            return False

        self._total_submitted += 1
        return True

    async def _worker(self, worker_id: int) -> None:
        assert self._queue is not None
        logger.debug(f"Worker {worker_id} started")

        while True:
            job = await self._queue.get()
            started = time.monotonic()
            try:
                await job.factory()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._total_failed += 1
                logger.exception(f"Background job failed ({job.name}): {e}")
            else:
                self._total_processed += 1
                self._record_time(time.monotonic() - started)
            finally:
                self._queue.task_done()

    def _record_time(self, seconds: float) -> None:
        self._processing_times.append(seconds)
        if len(self._processing_times) > 100:
            self._processing_times = self._processing_times[-100:]

    def get_status(self) -> dict[str, Any]:
        avg = (
            sum(self._processing_times) / len(self._processing_times)
            if self._processing_times
            else 0.0
        )
        return {
            "running": self._running,
            "workers": len(self._workers),
            "pending": self.pending,
            "max_size": self.config.max_queue_size,
            "total_submitted": self._total_submitted,
            "total_processed": self._total_processed,
            "total_failed": self._total_failed,
            "total_dropped": self._total_dropped,
            "avg_processing_time": round(avg, 4),
        }
