import asyncio
import logging
from typing import List, Optional

from domain.errors import WorkerPoolStoppedError
from domain.services.evaluation_pipeline import EvaluationPipeline

logger = logging.getLogger(__name__)


class WorkerPool:
    """Fixed set of asyncio workers draining one bounded FIFO job queue.

    ``submit`` blocks while the queue is full. ``stop`` sets the shared
    cancellation event: idle workers exit at once and busy workers finish their
    current job first. Submitters still waiting for room get
    ``WorkerPoolStoppedError``; jobs already queued are left for startup
    recovery.
    """

    def __init__(self, pipeline: EvaluationPipeline, worker_count: int = 3, queue_size: int = 100):
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        self.pipeline = pipeline
        self.worker_count = worker_count
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._stopping = asyncio.Event()
        self._workers: List[asyncio.Task] = []

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        for i in range(1, self.worker_count + 1):
            self._workers.append(asyncio.create_task(self._worker(i), name=f"evaluation-worker-{i}"))
        logger.info("Started %d workers", self.worker_count)

    async def submit(self, job_id: str) -> None:
        if self._stopping.is_set():
            raise WorkerPoolStoppedError(f"cannot submit job {job_id}: worker pool is stopped")
        put_job = asyncio.ensure_future(self._queue.put(job_id))
        stopped = asyncio.ensure_future(self._stopping.wait())
        try:
            await asyncio.wait({put_job, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
            if not put_job.done():
                put_job.cancel()
        if not put_job.done() or put_job.cancelled():
            raise WorkerPoolStoppedError(f"cannot submit job {job_id}: worker pool stopped while waiting")
        logger.info("Queued job %s (%d pending)", job_id, self._queue.qsize())

    async def stop(self) -> None:
        logger.info("Stopping worker pool...")
        self._stopping.set()
        await asyncio.gather(*self._workers)
        logger.info("Worker pool stopped (%d job(s) left in queue)", self._queue.qsize())

    async def _next_job(self) -> Optional[str]:
        """Wait for a job ID, or return None once the pool is stopping."""
        get_job = asyncio.ensure_future(self._queue.get())
        stopped = asyncio.ensure_future(self._stopping.wait())
        try:
            await asyncio.wait({get_job, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
            if not get_job.done():
                get_job.cancel()
        if get_job.done() and not get_job.cancelled():
            # dequeued before the stop signal won the race; it is ours to run
            return get_job.result()
        return None

    async def _worker(self, worker_id: int) -> None:
        logger.info("Worker %d started", worker_id)
        while not self._stopping.is_set():
            job_id = await self._next_job()
            if job_id is None:
                break
            logger.info("Worker %d processing job: %s", worker_id, job_id)
            try:
                status = await self.pipeline.process_job(job_id)
            except Exception:
                logger.exception("Worker %d failed to process job %s", worker_id, job_id)
            else:
                logger.info("Worker %d finished job %s: %s", worker_id, job_id, status.value)
            finally:
                self._queue.task_done()
        logger.info("Worker %d stopping", worker_id)
