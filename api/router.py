from fastapi import APIRouter
from api.endpoints import evaluate, health, result, upload

api_router = APIRouter()
# uploads feed jobs; health covers the worker pool and the vector store
api_router.include_router(upload.router, tags=["documents"])
for jobs_router in (evaluate.router, result.router):
    api_router.include_router(jobs_router, tags=["jobs"])
api_router.include_router(health.router, tags=["health"])
