import os
import uuid
import asyncio
import logging
from typing import List, Optional
from app.logging import configure_logging
from app.settings import settings
from domain.schemas import GroundTruthType
from infra.db.models import GroundTruthRecord
from infra.db.session import SessionLocal, init_db
from infra.pdf.parser import read_document
from infra.rag.embeddings import embed_texts_openai
from infra.rag.qdrant_client import ensure_collection, upsert_chunks

log = logging.getLogger("ingest_groundtruth")

VERSION = "1.0"

# (filename, type, display name)
GROUND_TRUTH_FILES = [
    ("job_description_backend.md", GroundTruthType.JOB_DESCRIPTION, "Backend Engineer Job Description"),
    ("case_study_brief.md", GroundTruthType.CASE_STUDY_BRIEF, "CV AI Evaluator Case Study"),
    ("cv_scoring_rubric.md", GroundTruthType.CV_RUBRIC, "CV Evaluation Rubric"),
    ("project_scoring_rubric.md", GroundTruthType.PROJECT_RUBRIC, "Project Evaluation Rubric"),
]


def chunk_text(text: str, size=1000, overlap=150) -> List[str]:
    out, i = [], 0
    n = len(text)
    while i < n:
        piece = text[i:i+size].strip()
        if piece:
            out.append(piece)
        i += max(1, size - overlap)
    return out


def find_file(directory: str, filename: str) -> Optional[str]:
    """Match ``filename`` or the same stem with a .pdf/.txt extension."""
    stem = os.path.splitext(filename)[0]
    for candidate in (filename, f"{stem}.pdf", f"{stem}.txt"):
        path = os.path.join(directory, candidate)
        if os.path.isfile(path):
            return path
    return None


async def ingest_one(path: str, doc_type: GroundTruthType, name: str) -> int:
    text = read_document(path)
    if not text:
        log.warning("%s is empty, skipping", path)
        return 0
    chunks = chunk_text(text)
    vecs = await embed_texts_openai(chunks)
    source = os.path.basename(path)
    payloads = [{
        "text": t,
        "doc_type": doc_type.value,
        "name": name,
        "source": source,
        "chunk_index": i,
        "version": VERSION,
    } for i, t in enumerate(chunks)]
    upsert_chunks(settings.QDRANT_COLLECTION, vecs, payloads)

    with SessionLocal() as s:
        s.add(GroundTruthRecord(id=str(uuid.uuid4()), name=name, type=doc_type.value,
                                source_path=path, version=VERSION))
        s.commit()
    log.info("Ingested %s: %d chars in %d chunk(s)", source, len(text), len(chunks))
    return len(chunks)


async def main(directory: str) -> int:
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Ground truth directory not found: {directory}")
    init_db()
    ensure_collection(settings.QDRANT_COLLECTION, vector_size=settings.EMBEDDING_VECTOR_SIZE)

    ok = 0
    for filename, doc_type, name in GROUND_TRUTH_FILES:
        path = find_file(directory, filename)
        if path is None:
            log.error("File not found for %s: %s", doc_type.value, os.path.join(directory, filename))
            continue
        try:
            if await ingest_one(path, doc_type, name):
                ok += 1
        except Exception:
            log.exception("Failed to ingest %s", path)
    log.info("Ground truth ingestion completed (%d/%d files)", ok, len(GROUND_TRUTH_FILES))
    return ok


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(
        description="Ingest job description, case brief and rubrics into the vector store")
    parser.add_argument("--dir", default=os.path.join("storage", "groundtruth"),
                        help="Directory holding the ground truth files")
    args = parser.parse_args()
    configure_logging()
    asyncio.run(main(args.dir))
