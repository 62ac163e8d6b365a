import logging
from domain.errors import ExtractionFailedError
from infra.pdf.parser import read_document
from infra.repositories.files_repository import FilesRepository

logger = logging.getLogger(__name__)


class StoredDocumentAccessor:
    """Resolves an uploaded document ID to its cleaned text."""

    def __init__(self, files_repo: FilesRepository | None = None):
        self.files_repo = files_repo or FilesRepository()

    def get_text(self, document_id: str) -> str:
        doc = self.files_repo.get(document_id)
        try:
            text = read_document(doc.path)
        except FileNotFoundError as exc:
            raise ExtractionFailedError(f"file for document {document_id} is missing: {doc.path}") from exc
        except ValueError as exc:
            raise ExtractionFailedError(str(exc)) from exc
        except Exception as exc:
            # pdfplumber/pdfminer raise a wide range of parser errors on corrupt files
            raise ExtractionFailedError(f"could not read {doc.name}: {exc}") from exc
        if not text:
            raise ExtractionFailedError(f"no text extracted from {doc.name}")
        logger.info("Extracted %d chars from %s (%s)", len(text), doc.name, doc.type.value)
        return text
