"""Database helpers for document metadata and chunk text.

SQLite database for storing:
- Uploaded document records (storage key, display name)
- Text chunks, whose row ids double as FAISS vector ids
"""
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List, Dict, Any
import structlog

from docqa import config

logger = structlog.get_logger()


@dataclass
class DocumentRecord:
    """An uploaded document.

    ``storage_key`` locates the raw bytes in blob storage and
    ``display_name`` is the original filename shown to users.
    """

    id: int
    storage_key: str
    display_name: str
    content_type: str
    size_bytes: int
    created_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "DocumentRecord":
        return cls(
            id=row["id"],
            storage_key=row["storage_key"],
            display_name=row["display_name"],
            content_type=row["content_type"] or "",
            size_bytes=row["size_bytes"] or 0,
            created_at=row["created_at"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "file_name": self.display_name,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "date_uploaded": self.created_at,
        }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """SQLite access for documents and chunks."""

    def __init__(self, db_path: Path = None):
        self.db_path = Path(db_path or config.DB_PATH)

    def get_connection(self) -> sqlite3.Connection:
        """Get a connection to the SQLite database.

        Returns:
            sqlite3.Connection with row_factory set to sqlite3.Row
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_database(self) -> None:
        """Initialize the database schema.

        Creates tables if they don't exist:
        - documents: one row per uploaded file
        - chunks: chunk text owned by a document, deleted with it
        """
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    storage_key TEXT NOT NULL UNIQUE,
                    display_name TEXT NOT NULL,
                    content_type TEXT,
                    size_bytes INTEGER,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chunks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    document_id INTEGER NOT NULL
                        REFERENCES documents(id) ON DELETE CASCADE,
                    sequence_index INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_chunks_document_id
                ON chunks(document_id)
            """)

            conn.commit()
            logger.info("database_initialized", db_path=str(self.db_path))

        except Exception as e:
            conn.rollback()
            logger.error("database_init_failed", error=str(e))
            raise
        finally:
            conn.close()

    def insert_document(
        self,
        storage_key: str,
        display_name: str,
        content_type: str = "",
        size_bytes: int = 0,
    ) -> DocumentRecord:
        """Record a newly stored document.

        Args:
            storage_key: Key of the raw bytes in blob storage
            display_name: Original filename
            content_type: MIME type reported at upload
            size_bytes: Payload size

        Returns:
            The created DocumentRecord
        """
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            created_at = _now()
            cursor.execute("""
                INSERT INTO documents (
                    storage_key, display_name, content_type, size_bytes, created_at
                ) VALUES (?, ?, ?, ?, ?)
            """, (storage_key, display_name, content_type, size_bytes, created_at))

            conn.commit()
            row_id = cursor.lastrowid
            logger.info("document_inserted", id=row_id, display_name=display_name)
            return DocumentRecord(
                id=row_id,
                storage_key=storage_key,
                display_name=display_name,
                content_type=content_type,
                size_bytes=size_bytes,
                created_at=created_at,
            )

        except Exception as e:
            conn.rollback()
            logger.error("document_insert_failed", error=str(e), display_name=display_name)
            raise
        finally:
            conn.close()

    def get_document(self, document_id: int) -> Optional[DocumentRecord]:
        conn = self.get_connection()
        try:
            row = conn.execute(
                "SELECT * FROM documents WHERE id = ?", (document_id,)
            ).fetchone()
            return DocumentRecord.from_row(row) if row else None
        finally:
            conn.close()

    def get_display_name(self, document_id: int) -> Optional[str]:
        """Look up the display filename for a document id."""
        document = self.get_document(document_id)
        return document.display_name if document else None

    def list_documents(self, page: int = 1, page_size: int = None) -> List[DocumentRecord]:
        """List documents newest first.

        Args:
            page: 1-based page number
            page_size: Rows per page (default from config)

        Returns:
            Documents on the requested page
        """
        page_size = page_size or config.DEFAULT_PAGE_SIZE
        offset = (max(page, 1) - 1) * page_size

        conn = self.get_connection()
        try:
            rows = conn.execute("""
                SELECT * FROM documents
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
            """, (page_size, offset)).fetchall()
            return [DocumentRecord.from_row(row) for row in rows]
        finally:
            conn.close()

    def list_all_documents(self) -> List[DocumentRecord]:
        conn = self.get_connection()
        try:
            rows = conn.execute("SELECT * FROM documents ORDER BY id").fetchall()
            return [DocumentRecord.from_row(row) for row in rows]
        finally:
            conn.close()

    def count_documents(self) -> int:
        conn = self.get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
        finally:
            conn.close()

    def display_name_exists(self, display_name: str) -> bool:
        """Check whether a document with this name exists (case-insensitive)."""
        conn = self.get_connection()
        try:
            row = conn.execute(
                "SELECT 1 FROM documents WHERE lower(display_name) = lower(?) LIMIT 1",
                (display_name,),
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def delete_document(self, document_id: int) -> bool:
        """Delete a document; its chunks are removed by the foreign key cascade.

        Returns:
            True if a row was deleted
        """
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("DELETE FROM documents WHERE id = ?", (document_id,))
            conn.commit()
            deleted = cursor.rowcount > 0
            logger.info("document_deleted", id=document_id, deleted=deleted)
            return deleted

        except Exception as e:
            conn.rollback()
            logger.error("document_delete_failed", error=str(e), id=document_id)
            raise
        finally:
            conn.close()

    def insert_chunk(
        self,
        document_id: int,
        sequence_index: int,
        content: str,
    ) -> int:
        """Insert a text chunk.

        Args:
            document_id: Owning document
            sequence_index: Position of the chunk within the document
            content: Chunk text

        Returns:
            ID of the inserted chunk row
        """
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO chunks (document_id, sequence_index, content, created_at)
                VALUES (?, ?, ?, ?)
            """, (document_id, sequence_index, content, _now()))

            conn.commit()
            return cursor.lastrowid

        except Exception as e:
            conn.rollback()
            logger.error("chunk_insert_failed", error=str(e), document_id=document_id)
            raise
        finally:
            conn.close()

    def delete_chunks(self, chunk_ids: List[int]) -> int:
        """Delete chunk rows by id (used to roll back unindexed rows)."""
        if not chunk_ids:
            return 0

        conn = self.get_connection()
        try:
            placeholders = ",".join("?" * len(chunk_ids))
            cursor = conn.execute(
                f"DELETE FROM chunks WHERE id IN ({placeholders})", chunk_ids
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def get_chunks_by_ids(self, chunk_ids: List[int]) -> Dict[int, Dict[str, Any]]:
        """Retrieve chunks keyed by id.

        Args:
            chunk_ids: Chunk (vector) ids to fetch

        Returns:
            Mapping of id to chunk row dict; unknown ids are absent
        """
        if not chunk_ids:
            return {}

        conn = self.get_connection()
        try:
            placeholders = ",".join("?" * len(chunk_ids))
            rows = conn.execute(f"""
                SELECT id, document_id, sequence_index, content
                FROM chunks
                WHERE id IN ({placeholders})
            """, chunk_ids).fetchall()
            return {row["id"]: dict(row) for row in rows}

        except Exception as e:
            logger.error("chunks_retrieval_failed", error=str(e))
            raise
        finally:
            conn.close()

    def get_chunk_ids_for_document(self, document_id: int) -> List[int]:
        conn = self.get_connection()
        try:
            rows = conn.execute(
                "SELECT id FROM chunks WHERE document_id = ? ORDER BY id",
                (document_id,),
            ).fetchall()
            return [row["id"] for row in rows]
        finally:
            conn.close()

    def get_chunks_for_document(self, document_id: int) -> List[Dict[str, Any]]:
        conn = self.get_connection()
        try:
            rows = conn.execute("""
                SELECT id, document_id, sequence_index, content
                FROM chunks
                WHERE document_id = ?
                ORDER BY sequence_index
            """, (document_id,)).fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    def count_chunks(self) -> int:
        conn = self.get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]
        finally:
            conn.close()

    def clear_all_chunks(self) -> int:
        """Delete all chunks from the database.

        Used when rebuilding the index from scratch.

        Returns:
            Number of chunks deleted
        """
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT COUNT(*) FROM chunks")
            count = cursor.fetchone()[0]

            cursor.execute("DELETE FROM chunks")
            conn.commit()

            logger.info("chunks_cleared", count=count)
            return count

        except Exception as e:
            conn.rollback()
            logger.error("chunks_clear_failed", error=str(e))
            raise
        finally:
            conn.close()
