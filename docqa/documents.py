"""Document lifecycle: upload, listing, download, deletion and re-indexing."""
import uuid
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Any
import structlog

from docqa import config
from docqa.db import Database, DocumentRecord
from docqa.extraction import TextExtractor
from docqa.rag.ingest import IngestPipeline
from docqa.rag.store_faiss import FAISSVectorStore
from docqa.rag.types import IngestReport
from docqa.storage import LocalBlobStorage

logger = structlog.get_logger()


class DocumentError(Exception):
    """Base class for user-correctable document problems."""


class UnsupportedDocumentError(DocumentError, ValueError):
    pass


class DocumentTooLargeError(DocumentError, ValueError):
    pass


class DuplicateDocumentError(DocumentError, ValueError):
    pass


class DocumentNotFoundError(DocumentError, LookupError):
    pass


def make_storage_key(filename: str) -> str:
    """Generate a unique blob key that keeps the original extension."""
    return f"{uuid.uuid4().hex}{Path(filename).suffix.lower()}"


class DocumentService:
    """Coordinates blob storage, metadata and ingestion for documents."""

    def __init__(
        self,
        database: Database,
        storage: LocalBlobStorage,
        extractor: TextExtractor,
        pipeline: IngestPipeline,
        vector_store: FAISSVectorStore,
        max_upload_bytes: int = None,
        allowed_extensions: Tuple[str, ...] = None,
    ):
        self.database = database
        self.storage = storage
        self.extractor = extractor
        self.pipeline = pipeline
        self.vector_store = vector_store
        self.max_upload_bytes = max_upload_bytes or config.MAX_UPLOAD_BYTES
        self.allowed_extensions = allowed_extensions or config.ALLOWED_EXTENSIONS

    def validate_upload(self, filename: str, size: int) -> None:
        """Reject uploads that can never be stored.

        Raises:
            UnsupportedDocumentError: Missing name, empty payload or unknown extension
            DocumentTooLargeError: Payload above the size limit
            DuplicateDocumentError: A document with the same name exists
        """
        if not filename or not filename.strip():
            raise UnsupportedDocumentError("No file provided.")

        if Path(filename).suffix.lower() not in self.allowed_extensions:
            allowed = ", ".join(self.allowed_extensions)
            raise UnsupportedDocumentError(
                f"Unsupported file type. Allowed types: {allowed}."
            )

        if size <= 0:
            raise UnsupportedDocumentError("The uploaded file is empty.")

        if size > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes // (1024 * 1024)
            raise DocumentTooLargeError(f"File size exceeds the limit of {limit_mb}MB.")

        if self.database.display_name_exists(filename):
            raise DuplicateDocumentError(
                f"A file with the name '{filename}' already exists. "
                "Please rename the file or delete the existing one first."
            )

    async def save_document(
        self, filename: str, data: bytes, content_type: str = ""
    ) -> Tuple[DocumentRecord, IngestReport]:
        """Store a document and index its text.

        Args:
            filename: Original filename, kept as the display name
            data: Raw file bytes
            content_type: MIME type reported by the client

        Returns:
            Tuple of (stored record, ingestion report)

        Raises:
            DocumentError: If the upload is rejected
            Exception: Storage or indexing failures propagate after logging
        """
        filename = Path(filename).name
        self.validate_upload(filename, len(data))

        storage_key = make_storage_key(filename)

        try:
            self.storage.upload(storage_key, data)
            record = self.database.insert_document(
                storage_key=storage_key,
                display_name=filename,
                content_type=content_type,
                size_bytes=len(data),
            )

            text = self.extractor.extract(data, filename)
            if text.strip():
                report = await self.pipeline.ingest(record.id, text)
            else:
                logger.warning("document_has_no_text", document_id=record.id)
                report = IngestReport(document_id=record.id)

        except Exception as e:
            logger.error("document_save_failed", filename=filename, error=str(e))
            raise

        logger.info(
            "document_saved",
            document_id=record.id,
            display_name=filename,
            chunks_stored=report.chunks_stored,
        )

        return record, report

    def list_documents(self, page: int = 1, page_size: int = None) -> List[DocumentRecord]:
        return self.database.list_documents(page, page_size)

    def count_documents(self) -> int:
        return self.database.count_documents()

    def get_document(self, document_id: int) -> Optional[DocumentRecord]:
        return self.database.get_document(document_id)

    def download(self, document_id: int) -> Tuple[DocumentRecord, bytes]:
        """Fetch a document's record and raw bytes.

        Raises:
            DocumentNotFoundError: If the record or its blob is missing
        """
        record = self.database.get_document(document_id)
        if record is None:
            raise DocumentNotFoundError("Document not found.")

        data = self.storage.download(record.storage_key)
        if data is None:
            raise DocumentNotFoundError("File not found in storage.")

        return record, data

    async def delete_document(self, document_id: int) -> bool:
        """Delete a document, its vectors and its stored file.

        Returns:
            False if the document does not exist
        """
        record = self.database.get_document(document_id)
        if record is None:
            return False

        await self.vector_store.delete_document(document_id)
        deleted = self.database.delete_document(document_id)
        await self.vector_store.persist()

        try:
            self.storage.delete(record.storage_key)
        except OSError as e:
            logger.warning(
                "blob_delete_failed",
                key=record.storage_key,
                error=str(e),
            )

        return deleted

    async def reindex_all(
        self, progress_callback: Optional[Callable[[int, int, DocumentRecord], None]] = None
    ) -> Dict[str, Any]:
        """Rebuild the vector index from every stored document.

        Args:
            progress_callback: Optional callback(current, total, record)

        Returns:
            Dictionary with re-indexing statistics
        """
        await self.vector_store.rebuild_index()

        stats = {
            "documents_processed": 0,
            "documents_failed": 0,
            "chunks_created": 0,
            "chunks_stored": 0,
            "chunks_failed": 0,
        }

        documents = self.database.list_all_documents()

        for idx, record in enumerate(documents, 1):
            if progress_callback:
                progress_callback(idx, len(documents), record)

            data = self.storage.download(record.storage_key)
            if data is None:
                stats["documents_failed"] += 1
                continue

            text = self.extractor.extract(data, record.display_name)
            try:
                report = await self.pipeline.ingest(record.id, text)
            except (ValueError, RuntimeError) as e:
                logger.error(
                    "document_reindex_failed",
                    document_id=record.id,
                    error=str(e),
                )
                stats["documents_failed"] += 1
                continue

            stats["documents_processed"] += 1
            stats["chunks_created"] += report.chunks_created
            stats["chunks_stored"] += report.chunks_stored
            stats["chunks_failed"] += report.chunks_failed

        await self.vector_store.persist()

        logger.info("reindex_completed", stats=stats)

        return stats
