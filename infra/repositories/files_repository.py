import uuid
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from domain.errors import NotFoundError, PersistenceError
from domain.schemas import DocumentRef, DocumentType
from infra.db.session import SessionLocal
from infra.db.models import DocumentRecord


def to_document_ref(rec: DocumentRecord) -> DocumentRef:
    return DocumentRef(id=rec.id, type=DocumentType(rec.type), path=rec.path, name=rec.name)


class FilesRepository:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session = session_factory

    def save(self, ftype: DocumentType, path: str, name: str, file_id: str | None = None) -> str:
        fid = file_id or str(uuid.uuid4())
        try:
            with self._session() as s:
                s.add(DocumentRecord(id=fid, type=DocumentType(ftype).value, path=path, name=name))
                s.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to save document {name}: {exc}") from exc
        return fid

    def exists(self, file_id: str, ftype: DocumentType | None = None) -> bool:
        try:
            with self._session() as s:
                rec = s.get(DocumentRecord, file_id)
                if rec is None:
                    return False
                return ftype is None or rec.type == DocumentType(ftype).value
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to look up document {file_id}: {exc}") from exc

    def get(self, file_id: str) -> DocumentRef:
        try:
            with self._session() as s:
                rec = s.get(DocumentRecord, file_id)
                ref = to_document_ref(rec) if rec else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to load document {file_id}: {exc}") from exc
        if ref is None:
            raise NotFoundError(f"document {file_id} not found")
        return ref
