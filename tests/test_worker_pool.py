import asyncio

import pytest

from conftest import wait_until
from domain.errors import PersistenceError, WorkerPoolStoppedError
from domain.schemas import JobStatus
from domain.services.worker_pool import WorkerPool


class GatedPipeline:
    """Holds every job until ``release`` is set."""

    def __init__(self, failing=()):
        self.release = asyncio.Event()
        self.failing = set(failing)
        self.started = []
        self.finished = []

    async def process_job(self, job_id):
        self.started.append(job_id)
        await self.release.wait()
        self.finished.append(job_id)
        if job_id in self.failing:
            raise PersistenceError(f"could not write {job_id}")
        return JobStatus.COMPLETED


def test_jobs_are_dequeued_in_submission_order():
    async def scenario():
        pipeline = GatedPipeline()
        pipeline.release.set()
        pool = WorkerPool(pipeline, worker_count=1, queue_size=10)
        for job_id in ("a", "b", "c"):
            await pool.submit(job_id)
        pool.start()
        await wait_until(lambda: len(pipeline.finished) == 3)
        await pool.stop()
        return pipeline.started

    assert asyncio.run(scenario()) == ["a", "b", "c"]


def test_workers_run_concurrently():
    async def scenario():
        pipeline = GatedPipeline()
        pool = WorkerPool(pipeline, worker_count=3, queue_size=10)
        pool.start()
        for job_id in ("a", "b", "c"):
            await pool.submit(job_id)
        await wait_until(lambda: len(pipeline.started) == 3)
        assert pipeline.finished == []
        pipeline.release.set()
        await wait_until(lambda: len(pipeline.finished) == 3)
        await pool.stop()

    asyncio.run(scenario())


def test_submit_blocks_while_queue_is_full():
    async def scenario():
        pipeline = GatedPipeline()
        pool = WorkerPool(pipeline, worker_count=1, queue_size=1)
        pool.start()
        await pool.submit("a")
        await wait_until(lambda: pipeline.started == ["a"])
        await pool.submit("b")

        blocked = asyncio.create_task(pool.submit("c"))
        await asyncio.sleep(0.05)
        assert not blocked.done()

        pipeline.release.set()
        await asyncio.wait_for(blocked, timeout=1)
        await wait_until(lambda: pipeline.finished == ["a", "b", "c"])
        await pool.stop()

    asyncio.run(scenario())


def test_stop_waits_for_in_flight_job_and_leaves_queue_untouched():
    async def scenario():
        pipeline = GatedPipeline()
        pool = WorkerPool(pipeline, worker_count=1, queue_size=10)
        pool.start()
        for job_id in ("a", "b", "c"):
            await pool.submit(job_id)
        await wait_until(lambda: pipeline.started == ["a"])

        stopping = asyncio.create_task(pool.stop())
        await asyncio.sleep(0.05)
        assert not stopping.done()

        pipeline.release.set()
        await asyncio.wait_for(stopping, timeout=1)
        assert pipeline.finished == ["a"]
        assert pool.pending == 2

        with pytest.raises(WorkerPoolStoppedError):
            await pool.submit("d")

    asyncio.run(scenario())


def test_submitter_waiting_for_room_is_rejected_on_stop():
    async def scenario():
        pipeline = GatedPipeline()
        pool = WorkerPool(pipeline, worker_count=1, queue_size=1)
        pool.start()
        await pool.submit("a")
        await wait_until(lambda: pipeline.started == ["a"])
        await pool.submit("b")

        blocked = asyncio.create_task(pool.submit("c"))
        await asyncio.sleep(0.05)
        assert not blocked.done()

        stopping = asyncio.create_task(pool.stop())
        with pytest.raises(WorkerPoolStoppedError):
            await asyncio.wait_for(blocked, timeout=1)

        pipeline.release.set()
        await asyncio.wait_for(stopping, timeout=1)
        assert pipeline.finished == ["a"]
        assert pool.pending == 1

    asyncio.run(scenario())


def test_idle_workers_exit_promptly_on_stop():
    async def scenario():
        pool = WorkerPool(GatedPipeline(), worker_count=4, queue_size=10)
        pool.start()
        await asyncio.sleep(0)
        await asyncio.wait_for(pool.stop(), timeout=1)

    asyncio.run(scenario())


def test_failing_job_does_not_stop_the_worker():
    async def scenario():
        pipeline = GatedPipeline(failing={"bad"})
        pipeline.release.set()
        pool = WorkerPool(pipeline, worker_count=1, queue_size=10)
        pool.start()
        await pool.submit("bad")
        await pool.submit("good")
        await wait_until(lambda: pipeline.finished == ["bad", "good"])
        await pool.stop()

    asyncio.run(scenario())


def test_worker_count_must_be_positive():
    with pytest.raises(ValueError):
        WorkerPool(GatedPipeline(), worker_count=0)
