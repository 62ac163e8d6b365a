import asyncio
import json

import httpx
import pytest
from qdrant_client import QdrantClient

from app.settings import settings
from domain.errors import NotFoundError, RetrievalError
from infra.rag import embeddings
from infra.rag.embeddings import embed_texts_openai
from infra.rag.qdrant_client import ensure_collection, upsert_chunks
from infra.rag.retriever import QdrantRetriever

COLLECTION = "ground_truth_test"


def keyword_vector(text):
    text = text.lower()
    return [float("rubric" in text), float("job" in text), float("brief" in text)]


async def fake_embed(texts):
    return [keyword_vector(t) for t in texts]


@pytest.fixture
def qdrant():
    client = QdrantClient(":memory:")
    ensure_collection(COLLECTION, vector_size=3, client=client)
    payloads = [
        {"doc_type": "cv_rubric", "source": "cv_rubric.md", "chunk_index": 0,
         "text": "CV rubric: technical skills 40%."},
        {"doc_type": "job_description", "source": "job_description.md", "chunk_index": 0,
         "text": "Job: backend engineer."},
        {"doc_type": "job_description", "source": "job_description.md", "chunk_index": 1,
         "text": "Job: Go and Kubernetes."},
    ]
    upsert_chunks(COLLECTION, [keyword_vector(p["text"]) for p in payloads], payloads, client=client)
    return client


def test_context_is_filtered_by_document_type(qdrant):
    retriever = QdrantRetriever(COLLECTION, client=qdrant, embed=fake_embed)
    context = asyncio.run(retriever.get_relevant_context("job rubric", "job_description", 2))

    blocks = context.split("\n\n")
    assert sorted(blocks) == ["Job: Go and Kubernetes.", "Job: backend engineer."]


def test_max_results_limits_blocks(qdrant):
    retriever = QdrantRetriever(COLLECTION, client=qdrant, embed=fake_embed)
    context = asyncio.run(retriever.get_relevant_context("job", "job_description", 1))
    assert "\n\n" not in context


def test_unknown_document_type_is_not_found(qdrant):
    retriever = QdrantRetriever(COLLECTION, client=qdrant, embed=fake_embed)
    with pytest.raises(NotFoundError):
        asyncio.run(retriever.get_relevant_context("brief", "case_study_brief", 1))


def test_backend_failure_is_retrieval_error(qdrant):
    async def broken_embed(texts):
        raise httpx.ConnectError("embedding service down")

    retriever = QdrantRetriever(COLLECTION, client=qdrant, embed=broken_embed)
    with pytest.raises(RetrievalError):
        asyncio.run(retriever.get_relevant_context("job", "job_description", 1))


def test_embeddings_are_batched_and_ordered(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(embeddings, "EMBED_BATCH_SIZE", 2)
    batches = []

    def handler(request):
        inputs = json.loads(request.content)["input"]
        batches.append(inputs)
        # returned out of index order
        data = [{"index": i, "embedding": [float(len(t))]} for i, t in enumerate(inputs)][::-1]
        return httpx.Response(200, json={"data": data})

    texts = ["a", "bb", "ccc"]
    vectors = asyncio.run(embed_texts_openai(texts, transport=httpx.MockTransport(handler)))

    assert batches == [["a", "bb"], ["ccc"]]
    assert vectors == [[1.0], [2.0], [3.0]]


def test_embeddings_require_api_key(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
    with pytest.raises(RuntimeError):
        asyncio.run(embed_texts_openai(["query"]))
    assert asyncio.run(embed_texts_openai([])) == []
