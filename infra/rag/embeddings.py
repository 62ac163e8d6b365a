from typing import List, Optional
import httpx
from app.settings import settings

OPENAI_EMBEDDINGS_URL = "https://api.openai.com/v1/embeddings"
# ground-truth chunks are embedded in slices to stay under the request size limit
EMBED_BATCH_SIZE = 64


async def embed_texts_openai(
    texts: List[str],
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[List[float]]:
    """Embed ``texts`` with the configured OpenAI embedding model, in input order."""
    if not texts:
        return []
    if not settings.OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY is required for embeddings")

    headers = {"Authorization": f"Bearer {settings.OPENAI_API_KEY}"}
    vectors: List[List[float]] = []
    async with httpx.AsyncClient(timeout=60, transport=transport) as client:
        for start in range(0, len(texts), EMBED_BATCH_SIZE):
            batch = texts[start:start + EMBED_BATCH_SIZE]
            r = await client.post(
                OPENAI_EMBEDDINGS_URL,
                headers=headers,
                json={"model": settings.OPENAI_EMBEDDING_MODEL, "input": batch},
            )
            r.raise_for_status()
            items = sorted(r.json()["data"], key=lambda item: item["index"])
            vectors.extend(item["embedding"] for item in items)
    return vectors
