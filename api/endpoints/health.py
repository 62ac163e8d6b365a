from fastapi import APIRouter, HTTPException, Request
from app.settings import settings
from infra.rag.qdrant_client import get_client

router = APIRouter()


@router.get("/health")
def health(request: Request):
    pool = getattr(request.app.state, "worker_pool", None)
    return {
        "status": "ok",
        "workers": pool.worker_count if pool else 0,
        "pending_jobs": pool.pending if pool else 0,
    }


@router.get("/vector-db/health")
def vector_db_health():
    client = get_client()
    try:
        collections = client.get_collections()
    except Exception as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    names = [col.name for col in collections.collections]
    return {
        "status": "ok",
        "collections": names,
        "ground_truth_ready": settings.QDRANT_COLLECTION in names,
    }
