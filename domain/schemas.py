from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class DocumentType(str, Enum):
    CV = "cv"
    PROJECT_REPORT = "project_report"


class GroundTruthType(str, Enum):
    JOB_DESCRIPTION = "job_description"
    CASE_STUDY_BRIEF = "case_study_brief"
    CV_RUBRIC = "cv_rubric"
    PROJECT_RUBRIC = "project_rubric"


class DocumentRef(BaseModel):
    id: str
    type: DocumentType
    path: str
    name: str


class EvaluationJob(BaseModel):
    id: str
    job_title: str
    status: JobStatus
    cv_document_id: str
    report_document_id: str
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cv_document: Optional[DocumentRef] = None
    report_document: Optional[DocumentRef] = None


class EvaluationResults(BaseModel):
    cv_match_rate: float = Field(..., ge=0.0, le=1.0)
    cv_feedback: str
    project_score: float = Field(..., ge=1.0, le=5.0)
    project_feedback: str
    overall_summary: str = Field(..., min_length=1)


class JobFailure(BaseModel):
    message: str = Field(..., min_length=1)


class ScoredFeedback(BaseModel):
    score: float
    feedback: str


class UploadResponse(BaseModel):
    cv_id: Optional[str] = None
    report_id: Optional[str] = None

class EvaluateRequest(BaseModel):
    job_title: str = Field(..., min_length=1)
    cv_id: str
    report_id: str

class JobStatusResponse(BaseModel):
    id: str
    status: JobStatus
    result: Optional[EvaluationResults] = None
    error: Optional[str] = None
