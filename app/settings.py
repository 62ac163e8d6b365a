import os
from pydantic import BaseModel
from functools import lru_cache
from dotenv import load_dotenv
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    APP_NAME: str = os.getenv("APP_NAME", "AI CV & Project Evaluator")
    ENV: str = os.getenv("ENV", "development")
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", "storage/uploads")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    EVALUATION_LOG_FILE: str | None = os.getenv("EVALUATION_LOG_FILE") or None
    SQLITE_PATH: str = os.getenv("SQLITE_PATH", "app.sqlite3")

    QDRANT_URL: str = os.getenv("QDRANT_URL", "http://localhost:6333")
    QDRANT_API_KEY: str | None = os.getenv("QDRANT_API_KEY") or None
    QDRANT_COLLECTION: str = os.getenv("QDRANT_COLLECTION", "ground_truth")
    OPENAI_API_KEY: str | None = os.getenv("OPENAI_API_KEY") or None
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_EMBEDDING_MODEL: str = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
    EMBEDDING_VECTOR_SIZE: int = int(os.getenv("EMBEDDING_VECTOR_SIZE", "1536"))
    OPENROUTER_API_KEY: str | None = os.getenv("OPENROUTER_API_KEY") or None
    OPENROUTER_MODEL: str = os.getenv("OPENROUTER_MODEL", "openai/gpt-4o-mini")

    # "ollama" | "openai" | "openrouter"
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "ollama")
    OLLAMA_URL: str = os.getenv("OLLAMA_URL", "http://localhost:11434")
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL", "gemma3:4b")
    LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "300"))
    LLM_MAX_ATTEMPTS: int = int(os.getenv("LLM_MAX_ATTEMPTS", "3"))
    LLM_BACKOFF_SECONDS: float = float(os.getenv("LLM_BACKOFF_SECONDS", "2"))

    WORKER_COUNT: int = int(os.getenv("WORKER_COUNT", "3"))
    JOB_QUEUE_SIZE: int = int(os.getenv("JOB_QUEUE_SIZE", "100"))
    RECOVER_JOBS_ON_STARTUP: bool = _env_bool("RECOVER_JOBS_ON_STARTUP", "true")


@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
