import asyncio
import logging
from typing import Tuple

from domain.errors import (
    EvaluatorError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    RetrievalError,
)
from domain.ports import DocumentAccessor, JobStore, LLMGateway, RetrievalClient
from domain.schemas import (
    EvaluationJob,
    EvaluationResults,
    GroundTruthType,
    JobFailure,
    JobStatus,
    ScoredFeedback,
)
from infra.llm.prompts import CV_EVAL_PROMPT, FINAL_SUMMARY_PROMPT, PROJECT_EVAL_PROMPT
from infra.llm.response_parser import parse_cv_response, parse_project_response

logger = logging.getLogger(__name__)

CV_TEMPERATURE = 0.3
PROJECT_TEMPERATURE = 0.3
SUMMARY_TEMPERATURE = 0.4

DEFAULT_JOB_DESCRIPTION = "No specific job description available."
DEFAULT_CV_RUBRIC = "Evaluate based on standard criteria."
DEFAULT_CASE_BRIEF = "Evaluate based on general backend project standards."
DEFAULT_PROJECT_RUBRIC = "Evaluate based on standard project criteria."


class StageFailed(Exception):
    """Internal signal: a pipeline stage failed and the job must be marked failed."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _clamp(value: float, low: float, high: float, name: str) -> float:
    if value < low or value > high:
        clamped = min(max(value, low), high)
        logger.warning("%s=%s outside [%s, %s]; clamped to %s", name, value, low, high, clamped)
        return clamped
    return value


class EvaluationPipeline:
    """Runs one evaluation job end to end.

    The pipeline is the only writer of a job's status and result fields.
    Stage failures (missing documents, extraction, LLM, parsing) become a
    single failed-status update. ``PersistenceError`` from the job store is
    not converted, since the job's own status cannot be trusted at that
    point; it propagates to the caller.
    """

    def __init__(
        self,
        jobs: JobStore,
        documents: DocumentAccessor,
        retriever: RetrievalClient,
        llm: LLMGateway,
    ):
        self.jobs = jobs
        self.documents = documents
        self.retriever = retriever
        self.llm = llm

    async def process_job(self, job_id: str) -> JobStatus:
        """Evaluate ``job_id`` and return the terminal status it reached."""
        try:
            self.jobs.set_status(job_id, JobStatus.PROCESSING)
        except NotFoundError:
            logger.error("Job %s does not exist; skipping", job_id)
            raise
        except InvalidTransitionError as exc:
            logger.warning("Skipping job %s: %s", job_id, exc)
            return JobStatus(exc.current)

        try:
            results = await self._evaluate(job_id)
        except StageFailed as exc:
            message = exc.message
            logger.error("Job %s failed: %s", job_id, message)
        except PersistenceError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error while evaluating job %s", job_id)
            message = f"unexpected error: {exc}"
        else:
            self.jobs.complete_with_results(job_id, results)
            logger.info(
                "Job %s completed (cv_match_rate=%.2f, project_score=%.1f)",
                job_id, results.cv_match_rate, results.project_score)
            return JobStatus.COMPLETED

        self.jobs.fail_with_message(job_id, JobFailure(message=message))
        return JobStatus.FAILED

    async def _evaluate(self, job_id: str) -> EvaluationResults:
        try:
            job = self.jobs.load_with_documents(job_id)
        except NotFoundError as exc:
            raise StageFailed(f"failed to load job: {exc}") from exc

        cv_text, report_text = await self._extract_texts(job)

        try:
            cv_eval = await self.evaluate_cv(cv_text, job.job_title)
        except EvaluatorError as exc:
            raise StageFailed(f"CV evaluation failed: {exc}") from exc

        try:
            project_eval = await self.evaluate_project(report_text)
        except EvaluatorError as exc:
            raise StageFailed(f"project evaluation failed: {exc}") from exc

        cv_match_rate = _clamp(cv_eval.score, 0.0, 1.0, "cv_match_rate")
        project_score = _clamp(project_eval.score, 1.0, 5.0, "project_score")

        try:
            summary = await self.generate_summary(
                cv_match_rate, cv_eval.feedback, project_score, project_eval.feedback, job.job_title)
        except EvaluatorError as exc:
            raise StageFailed(f"summary generation failed: {exc}") from exc
        if not summary:
            raise StageFailed("summary generation failed: model returned an empty summary")

        return EvaluationResults(
            cv_match_rate=cv_match_rate,
            cv_feedback=cv_eval.feedback,
            project_score=project_score,
            project_feedback=project_eval.feedback,
            overall_summary=summary,
        )

    async def _extract_texts(self, job: EvaluationJob) -> Tuple[str, str]:
        texts = []
        for label, document_id in (("CV", job.cv_document_id), ("report", job.report_document_id)):
            try:
                text = await asyncio.to_thread(self.documents.get_text, document_id)
            except PersistenceError:
                raise
            except EvaluatorError as exc:
                raise StageFailed(f"failed to extract {label} text: {exc}") from exc
            if not text or not text.strip():
                raise StageFailed(f"failed to extract {label} text: document is empty")
            logger.info("Job %s: %s text length %d chars", job.id, label, len(text))
            texts.append(text)
        return texts[0], texts[1]

    async def _context(self, query: str, doc_type: GroundTruthType, max_results: int, default: str) -> str:
        try:
            return await self.retriever.get_relevant_context(query, doc_type.value, max_results)
        except (NotFoundError, RetrievalError) as exc:
            logger.warning("Using default %s context: %s", doc_type.value, exc)
            return default

    async def evaluate_cv(self, cv_text: str, job_title: str) -> ScoredFeedback:
        jd_context = await self._context(
            f"{job_title} job description requirements",
            GroundTruthType.JOB_DESCRIPTION, 2, DEFAULT_JOB_DESCRIPTION)
        rubric_context = await self._context(
            "CV evaluation rubric scoring criteria",
            GroundTruthType.CV_RUBRIC, 1, DEFAULT_CV_RUBRIC)

        prompt = CV_EVAL_PROMPT.format(
            job_title=job_title, job_description=jd_context,
            rubric=rubric_context, cv_text=cv_text)
        logger.info("Calling LLM for CV evaluation")
        response = await self.llm.generate(prompt, CV_TEMPERATURE)
        parsed = parse_cv_response(response)
        logger.info("CV evaluation result: match_rate=%s", parsed.score)
        return parsed

    async def evaluate_project(self, report_text: str) -> ScoredFeedback:
        brief_context = await self._context(
            "case study brief requirements specifications",
            GroundTruthType.CASE_STUDY_BRIEF, 1, DEFAULT_CASE_BRIEF)
        rubric_context = await self._context(
            "project evaluation rubric scoring criteria",
            GroundTruthType.PROJECT_RUBRIC, 1, DEFAULT_PROJECT_RUBRIC)

        prompt = PROJECT_EVAL_PROMPT.format(
            case_brief=brief_context, rubric=rubric_context, report_text=report_text)
        logger.info("Calling LLM for project evaluation")
        response = await self.llm.generate(prompt, PROJECT_TEMPERATURE)
        parsed = parse_project_response(response)
        logger.info("Project evaluation result: score=%s", parsed.score)
        return parsed

    async def generate_summary(
        self,
        cv_match_rate: float,
        cv_feedback: str,
        project_score: float,
        project_feedback: str,
        job_title: str,
    ) -> str:
        prompt = FINAL_SUMMARY_PROMPT.format(
            job_title=job_title,
            cv_match_rate=cv_match_rate, cv_feedback=cv_feedback,
            project_score=project_score, project_feedback=project_feedback)
        logger.info("Calling LLM for overall summary synthesis")
        response = await self.llm.generate(prompt, SUMMARY_TEMPERATURE)
        return response.strip()
