from sqlalchemy import Column, String, Float, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from infra.db.session import Base

class DocumentRecord(Base):
    __tablename__ = "documents"
    id = Column(String, primary_key=True)
    type = Column(String, nullable=False)   # 'cv' | 'project_report'
    path = Column(String, nullable=False)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

class EvaluationJobRecord(Base):
    __tablename__ = "evaluation_jobs"
    id = Column(String, primary_key=True)
    status = Column(String, nullable=False, default="queued", index=True)
    job_title = Column(String, nullable=False)
    cv_document_id = Column(String, ForeignKey("documents.id"), nullable=False)
    report_document_id = Column(String, ForeignKey("documents.id"), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    completed_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)
    cv_match_rate = Column(Float, nullable=True)
    cv_feedback = Column(Text, nullable=True)
    project_score = Column(Float, nullable=True)
    project_feedback = Column(Text, nullable=True)
    overall_summary = Column(Text, nullable=True)
    cv_document = relationship("DocumentRecord", foreign_keys=[cv_document_id])
    report_document = relationship("DocumentRecord", foreign_keys=[report_document_id])

class GroundTruthRecord(Base):
    __tablename__ = "ground_truth_documents"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False)   # see domain.schemas.GroundTruthType
    source_path = Column(String, nullable=False)
    version = Column(String, nullable=True)
    ingested_at = Column(DateTime, server_default=func.now())
