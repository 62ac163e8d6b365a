"""Collaborator contracts consumed by the evaluation pipeline.

Concrete implementations live under ``infra/``; tests substitute fakes.
"""
from typing import Protocol

from domain.schemas import EvaluationJob, EvaluationResults, JobFailure, JobStatus


class JobStore(Protocol):
    def set_status(self, job_id: str, status: JobStatus) -> None: ...

    def load_with_documents(self, job_id: str) -> EvaluationJob: ...

    def complete_with_results(self, job_id: str, results: EvaluationResults) -> None: ...

    def fail_with_message(self, job_id: str, failure: JobFailure) -> None: ...


class DocumentAccessor(Protocol):
    def get_text(self, document_id: str) -> str: ...


class RetrievalClient(Protocol):
    async def get_relevant_context(self, query: str, doc_type: str, max_results: int) -> str: ...


class LLMGateway(Protocol):
    async def generate(self, prompt: str, temperature: float) -> str: ...
