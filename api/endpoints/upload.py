import os
import uuid
from fastapi import APIRouter, UploadFile, File, HTTPException
from typing import Optional
from app.settings import settings
from domain.schemas import DocumentType, UploadResponse
from infra.pdf.parser import SUPPORTED_EXTENSIONS
from infra.repositories.files_repository import FilesRepository

router = APIRouter()
files_repo = FilesRepository()


def _check_extension(f: UploadFile, field: str) -> None:
    ext = os.path.splitext(f.filename or "")[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"'{field}' must be one of {', '.join(SUPPORTED_EXTENSIONS)}, got '{ext or 'no extension'}'")


@router.post("/upload", response_model=UploadResponse)
async def upload(cv: Optional[UploadFile] = File(default=None),
                 report: Optional[UploadFile] = File(default=None)) -> UploadResponse:
    if not cv and not report:
        raise HTTPException(
            status_code=400, detail="Upload at least one file: 'cv' or 'report'")
    for f, field in ((cv, "cv"), (report, "report")):
        if f:
            _check_extension(f, field)
    os.makedirs(settings.STORAGE_DIR, exist_ok=True)
    resp = UploadResponse()

    async def save_one(f: UploadFile, ftype: DocumentType) -> str:
        file_id = str(uuid.uuid4())
        name = f.filename or "uploaded.pdf"
        safe_name = os.path.basename(name).replace(" ", "_")
        path = os.path.join(settings.STORAGE_DIR, f"{file_id}_{safe_name}")
        content = await f.read()
        with open(path, "wb") as out:
            out.write(content)
        try:
            return files_repo.save(ftype=ftype, path=path, name=name, file_id=file_id)
        except Exception:
            os.remove(path)
            raise

    if cv:
        resp.cv_id = await save_one(cv, DocumentType.CV)
    if report:
        resp.report_id = await save_one(report, DocumentType.PROJECT_REPORT)
    return resp
