import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.settings import settings
from app.logging import configure_logging
from app.error_handlers import attach_error_handlers
from api.router import api_router
from domain.errors import WorkerPoolStoppedError
from domain.services.evaluation_pipeline import EvaluationPipeline
from domain.services.worker_pool import WorkerPool
from infra.db.session import init_db
from infra.documents.accessor import StoredDocumentAccessor
from infra.llm.client import LLMClient
from infra.rag.retriever import QdrantRetriever
from infra.repositories.jobs_repository import JobsRepository

configure_logging()
logger = logging.getLogger(__name__)


def build_worker_pool() -> WorkerPool:
    pipeline = EvaluationPipeline(
        jobs=JobsRepository(),
        documents=StoredDocumentAccessor(),
        retriever=QdrantRetriever(),
        llm=LLMClient(),
    )
    return WorkerPool(pipeline, worker_count=settings.WORKER_COUNT, queue_size=settings.JOB_QUEUE_SIZE)


async def resubmit_pending_jobs(pool: WorkerPool, jobs: JobsRepository) -> int:
    """Requeue jobs left over from a previous run, oldest first.

    Blocks whenever the queue is full, so it runs as a background task next to
    the HTTP surface. Jobs not resubmitted before the pool stops stay queued in
    the database for the next start.
    """
    queued = jobs.recover_interrupted_jobs()
    submitted = 0
    for job_id in queued:
        try:
            await pool.submit(job_id)
        except WorkerPoolStoppedError:
            logger.info("Worker pool stopped; %d recovered job(s) left queued", len(queued) - submitted)
            break
        submitted += 1
    if submitted:
        logger.info("Resubmitted %d queued job(s) from a previous run", submitted)
    return submitted


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    pool = build_worker_pool()
    pool.start()
    app.state.worker_pool = pool
    recovery = None
    if settings.RECOVER_JOBS_ON_STARTUP:
        recovery = asyncio.create_task(resubmit_pending_jobs(pool, pool.pipeline.jobs), name="job-recovery")
    try:
        yield
    finally:
        await pool.stop()
        if recovery is not None:
            await recovery


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
attach_error_handlers(app)
app.include_router(api_router)
