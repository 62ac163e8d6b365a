import uuid
from typing import Optional
from qdrant_client import QdrantClient
from qdrant_client.models import Distance, VectorParams, PointStruct, Filter, FieldCondition, MatchValue
from app.settings import settings


def get_client():
    return QdrantClient(url=settings.QDRANT_URL, api_key=settings.QDRANT_API_KEY or None)


def ensure_collection(name: str, vector_size: int = 1536, client: Optional[QdrantClient] = None):
    c = client or get_client()
    names = {x.name for x in c.get_collections().collections}
    if name not in names:
        c.create_collection(collection_name=name, vectors_config=VectorParams(
            size=vector_size, distance=Distance.COSINE))
    c.create_payload_index(collection_name=name, field_name="doc_type", field_schema="keyword")


def stable_point_id(doc_type: str, source: str, chunk_index: int) -> str:
    # re-ingesting the same file overwrites its points instead of duplicating them
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{doc_type}|{source}|{chunk_index}"))


def upsert_chunks(collection: str, vectors: list[list[float]], payloads: list[dict],
                  client: Optional[QdrantClient] = None):
    points = [
        PointStruct(
            id=stable_point_id(p["doc_type"], p.get("source", ""), p.get("chunk_index", 0)),
            vector=v,
            payload=p,
        )
        for v, p in zip(vectors, payloads)
    ]
    (client or get_client()).upsert(collection_name=collection, points=points)


def search_by_doc_type(
    collection: str,
    query_vector: list[float],
    doc_type: str,
    k: int,
    client: Optional[QdrantClient] = None,
):
    q_filter = Filter(must=[FieldCondition(key="doc_type", match=MatchValue(value=doc_type))])
    res = (client or get_client()).query_points(
        collection_name=collection,
        query=query_vector,
        query_filter=q_filter,
        limit=k,
        with_payload=True,
    )
    return [{"payload": h.payload or {}, "score": float(h.score)} for h in res.points]
