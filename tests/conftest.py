import asyncio
from typing import Dict, List, Optional, Union

import pytest

from domain.errors import NotFoundError
from domain.schemas import DocumentType
from infra.db import models  # noqa: F401  registers tables on Base.metadata
from infra.db.session import Base, make_engine, make_session_factory
from infra.repositories.files_repository import FilesRepository
from infra.repositories.jobs_repository import JobsRepository


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.sqlite3'}")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def files_repo(session_factory):
    return FilesRepository(session_factory)


@pytest.fixture
def jobs_repo(session_factory):
    return JobsRepository(session_factory)


@pytest.fixture
def store_document(tmp_path, files_repo):
    """Write ``content`` to disk and register it as an uploaded document."""
    def _store(name: str, content: str, ftype: DocumentType = DocumentType.CV) -> str:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return files_repo.save(ftype=ftype, path=str(path), name=name)
    return _store


class FakeRetriever:
    """Returns canned context per document type; unknown types are NotFound."""

    def __init__(self, contexts: Optional[Dict[str, Union[str, Exception]]] = None):
        self.contexts = contexts or {}
        self.calls: List[tuple] = []

    async def get_relevant_context(self, query: str, doc_type: str, max_results: int) -> str:
        self.calls.append((query, doc_type, max_results))
        value = self.contexts.get(doc_type)
        if value is None:
            raise NotFoundError(f"no relevant documents found for type: {doc_type}")
        if isinstance(value, Exception):
            raise value
        return value


class ScriptedLLM:
    """Replays scripted replies in order; an Exception entry is raised instead."""

    def __init__(self, replies: List[Union[str, Exception]]):
        self.replies = list(replies)
        self.prompts: List[str] = []
        self.temperatures: List[float] = []

    async def generate(self, prompt: str, temperature: float) -> str:
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)
