from fastapi import APIRouter, HTTPException, Request
from domain.schemas import DocumentType, EvaluateRequest, JobStatus, JobStatusResponse
from infra.repositories.files_repository import FilesRepository
from infra.repositories.jobs_repository import JobsRepository

router = APIRouter()
files_repo = FilesRepository()
jobs_repo = JobsRepository()


@router.post("/evaluate", response_model=JobStatusResponse)
async def evaluate(body: EvaluateRequest, request: Request) -> JobStatusResponse:
    if not files_repo.exists(body.cv_id, DocumentType.CV):
        raise HTTPException(status_code=404, detail="CV document not found")
    if not files_repo.exists(body.report_id, DocumentType.PROJECT_REPORT):
        raise HTTPException(status_code=404, detail="Report document not found")

    job_id = jobs_repo.create_job(body.job_title, body.cv_id, body.report_id)
    await request.app.state.worker_pool.submit(job_id)
    return JobStatusResponse(id=job_id, status=JobStatus.QUEUED)
