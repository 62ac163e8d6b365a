import asyncio
import logging
from typing import Awaitable, Callable, List, Optional
from qdrant_client import QdrantClient
from app.settings import settings
from domain.errors import NotFoundError, RetrievalError
from infra.rag.embeddings import embed_texts_openai
from infra.rag.qdrant_client import get_client, search_by_doc_type

logger = logging.getLogger(__name__)

Embedder = Callable[[List[str]], Awaitable[List[List[float]]]]


class QdrantRetriever:
    """Semantic lookup of ground-truth material filtered by document type."""

    def __init__(
        self,
        collection: Optional[str] = None,
        client: Optional[QdrantClient] = None,
        embed: Embedder = embed_texts_openai,
    ):
        self.collection = collection or settings.QDRANT_COLLECTION
        self._client = client
        self._embed = embed

    @property
    def client(self) -> QdrantClient:
        if self._client is None:
            self._client = get_client()
        return self._client

    async def get_relevant_context(self, query: str, doc_type: str, max_results: int) -> str:
        try:
            [qvec] = await self._embed([query])
            hits = await asyncio.to_thread(
                search_by_doc_type, self.collection, qvec, doc_type, max_results, self.client)
        except Exception as exc:
            raise RetrievalError(f"retrieval of {doc_type} context failed: {exc}") from exc

        texts = [h["payload"].get("text", "") for h in hits]
        texts = [t for t in texts if t]
        if not texts:
            raise NotFoundError(f"no relevant documents found for type: {doc_type}")
        logger.info("Retrieved %d %s block(s) for %r", len(texts), doc_type, query)
        return "\n\n".join(texts)
