import uuid
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from domain.errors import InvalidTransitionError, NotFoundError, PersistenceError
from domain.schemas import (
    EvaluationJob, EvaluationResults, JobFailure, JobStatus, JobStatusResponse,
)
from infra.db.session import SessionLocal
from infra.db.models import EvaluationJobRecord
from infra.repositories.files_repository import to_document_ref

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    JobStatus.QUEUED: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}

INTERRUPTED_MESSAGE = "interrupted: worker stopped before the job finished"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_job(rec: EvaluationJobRecord, with_documents: bool = False) -> EvaluationJob:
    job = EvaluationJob(
        id=rec.id,
        job_title=rec.job_title,
        status=JobStatus(rec.status),
        cv_document_id=rec.cv_document_id,
        report_document_id=rec.report_document_id,
        created_at=rec.created_at,
        completed_at=rec.completed_at,
    )
    if with_documents:
        if rec.cv_document is None:
            raise NotFoundError(f"CV document {rec.cv_document_id} not found")
        if rec.report_document is None:
            raise NotFoundError(f"report document {rec.report_document_id} not found")
        job.cv_document = to_document_ref(rec.cv_document)
        job.report_document = to_document_ref(rec.report_document)
    return job


class JobsRepository:
    """SQLAlchemy-backed job store.

    Every method is a single short transaction. Status changes are checked
    against ``ALLOWED_TRANSITIONS`` so a job only ever moves forward.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session = session_factory

    @contextmanager
    def _tx(self, what: str) -> Iterator[Session]:
        try:
            with self._session() as s:
                yield s
                s.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to {what}: {exc}") from exc

    @staticmethod
    def _get_for_update(s: Session, job_id: str) -> EvaluationJobRecord:
        job = s.get(EvaluationJobRecord, job_id)
        if not job:
            raise NotFoundError(f"job {job_id} not found")
        return job

    @staticmethod
    def _transition(job: EvaluationJobRecord, target: JobStatus) -> None:
        current = JobStatus(job.status)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(job.id, current.value, target.value)
        job.status = target.value

    def create_job(self, job_title: str, cv_id: str, report_id: str) -> str:
        jid = str(uuid.uuid4())
        with self._tx("create job") as s:
            s.add(EvaluationJobRecord(
                id=jid, status=JobStatus.QUEUED.value, job_title=job_title,
                cv_document_id=cv_id, report_document_id=report_id,
                created_at=_now()))
        return jid

    def set_status(self, job_id: str, status: JobStatus) -> None:
        with self._tx(f"update status of job {job_id}") as s:
            job = self._get_for_update(s, job_id)
            self._transition(job, JobStatus(status))

    def load_with_documents(self, job_id: str) -> EvaluationJob:
        with self._tx(f"load job {job_id}") as s:
            job = self._get_for_update(s, job_id)
            return _to_job(job, with_documents=True)

    def complete_with_results(self, job_id: str, results: EvaluationResults) -> None:
        with self._tx(f"save results of job {job_id}") as s:
            job = self._get_for_update(s, job_id)
            self._transition(job, JobStatus.COMPLETED)
            job.completed_at = _now()
            job.error_message = None
            job.cv_match_rate = results.cv_match_rate
            job.cv_feedback = results.cv_feedback
            job.project_score = results.project_score
            job.project_feedback = results.project_feedback
            job.overall_summary = results.overall_summary

    def fail_with_message(self, job_id: str, failure: JobFailure) -> None:
        with self._tx(f"mark job {job_id} as failed") as s:
            job = self._get_for_update(s, job_id)
            self._transition(job, JobStatus.FAILED)
            job.completed_at = _now()
            job.error_message = failure.message
            job.cv_match_rate = None
            job.cv_feedback = None
            job.project_score = None
            job.project_feedback = None
            job.overall_summary = None

    def get(self, job_id: str) -> Optional[JobStatusResponse]:
        with self._session() as s:
            job = s.get(EvaluationJobRecord, job_id)
            if not job:
                return None
            out = JobStatusResponse(id=job.id, status=JobStatus(job.status))
            if job.status == JobStatus.COMPLETED.value:
                out.result = EvaluationResults(
                    cv_match_rate=job.cv_match_rate,
                    cv_feedback=job.cv_feedback,
                    project_score=job.project_score,
                    project_feedback=job.project_feedback,
                    overall_summary=job.overall_summary,
                )
            if job.status == JobStatus.FAILED.value:
                out.error = job.error_message
            return out

    def list_by_status(self, status: JobStatus, limit: int | None = None) -> List[EvaluationJob]:
        stmt = (select(EvaluationJobRecord)
                .where(EvaluationJobRecord.status == JobStatus(status).value)
                .order_by(EvaluationJobRecord.created_at))
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as s:
            return [_to_job(rec) for rec in s.scalars(stmt)]

    def recover_interrupted_jobs(self) -> List[str]:
        """Fail jobs stranded in processing and return queued job IDs, oldest first.

        Call once on startup, before the worker pool accepts new submissions.
        """
        with self._tx("recover interrupted jobs") as s:
            stranded = s.scalars(select(EvaluationJobRecord).where(
                EvaluationJobRecord.status == JobStatus.PROCESSING.value)).all()
            for job in stranded:
                self._transition(job, JobStatus.FAILED)
                job.error_message = INTERRUPTED_MESSAGE
                job.completed_at = _now()
                logger.warning("Recovered stranded job %s as failed", job.id)
            queued = s.scalars(
                select(EvaluationJobRecord.id)
                .where(EvaluationJobRecord.status == JobStatus.QUEUED.value)
                .order_by(EvaluationJobRecord.created_at)).all()
        if stranded:
            logger.info("Recovered %d stranded job(s)", len(stranded))
        return list(queued)
