"""FAISS vector store for cosine-similarity search.

Handles:
- Embedding dimension validation
- FAISS index initialization, loading and persistence
- Record insertion keyed by owning document
- Thresholded nearest-neighbour search
- Cascading removal of a document's vectors

Vectors are L2-normalised before they reach an inner-product index, so
the raw search score is cosine similarity (``1 - cosine distance``).
Chunk text and ownership live in SQLite; the chunk row id is the FAISS id.
"""
import asyncio
import json
from pathlib import Path
from typing import List, Optional, Dict, Any
import numpy as np
import faiss
import structlog

from docqa import config
from docqa.db import Database
from docqa.rag.types import RetrievedChunk, StoredVectorRecord

logger = structlog.get_logger()

INDEX_TYPE = "IndexIDMap2(IndexFlatIP)"


def _normalize(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return (vectors / norms).astype(np.float32)


class FAISSVectorStore:
    """FAISS-backed vector index with SQLite record storage."""

    def __init__(
        self,
        database: Database,
        index_dir: Path = None,
        dimension: Optional[int] = None,
        embedding_model: str = None,
    ):
        """Initialize the FAISS vector store.

        Args:
            database: Database holding chunk rows
            index_dir: Directory to store index and metadata (default from config)
            dimension: Embedding dimension (default from config)
            embedding_model: Embedding model name recorded in metadata
        """
        self.database = database
        self.index_dir = Path(index_dir or config.INDEX_DIR)
        self.dimension = dimension or config.EMBEDDING_DIMENSION
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL

        self.index_path = self.index_dir / "vectors.index"
        self.metadata_path = self.index_dir / "metadata.json"

        self.index: Optional[faiss.Index] = None
        self.metadata: Dict[str, Any] = {}
        self._lock = asyncio.Lock()

        logger.info(
            "faiss_store_initialized",
            index_dir=str(self.index_dir),
            dimension=self.dimension,
        )

    def init_new_index(self) -> None:
        """Initialize a new, empty FAISS index."""
        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(self.dimension))

        self.metadata = {
            "embedding_model": self.embedding_model,
            "embedding_dimension": self.dimension,
            "index_type": INDEX_TYPE,
            "vector_count": 0,
        }

        logger.info(
            "faiss_index_initialized",
            dimension=self.dimension,
            index_type=INDEX_TYPE,
        )

    def load_index(self) -> None:
        """Load existing FAISS index from disk.

        Raises:
            FileNotFoundError: If index files don't exist
            ValueError: If the stored dimension differs from the configured one
            RuntimeError: If loading fails
        """
        if not self.index_path.exists():
            raise FileNotFoundError(f"Index not found: {self.index_path}")

        if not self.metadata_path.exists():
            raise FileNotFoundError(f"Metadata not found: {self.metadata_path}")

        try:
            with open(self.metadata_path, "r") as f:
                self.metadata = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RuntimeError(f"Failed to load metadata: {e}") from e

        stored_model = self.metadata.get("embedding_model")
        stored_dim = self.metadata.get("embedding_dimension")

        if stored_dim != self.dimension:
            raise ValueError(
                f"Dimension mismatch: index was built with {stored_model} "
                f"(dim={stored_dim}), but the configured dimension is "
                f"{self.dimension}. Please rebuild the index."
            )

        try:
            self.index = faiss.read_index(str(self.index_path))
        except RuntimeError as e:
            raise RuntimeError(f"Failed to load FAISS index: {e}") from e

        chunk_count = self.database.count_chunks()
        if chunk_count != self.index.ntotal:
            logger.warning(
                "index_database_out_of_sync",
                vector_count=self.index.ntotal,
                chunk_count=chunk_count,
            )

        logger.info(
            "faiss_index_loaded",
            dimension=self.dimension,
            vector_count=self.index.ntotal,
            model=stored_model,
        )

    def save_index(self) -> None:
        """Save FAISS index and metadata to disk.

        Raises:
            RuntimeError: If save fails
        """
        if self.index is None:
            raise RuntimeError("No index to save. Initialize or load an index first.")

        self.index_dir.mkdir(parents=True, exist_ok=True)
        self.metadata["vector_count"] = self.index.ntotal

        try:
            faiss.write_index(self.index, str(self.index_path))
        except RuntimeError as e:
            raise RuntimeError(f"Failed to save FAISS index: {e}") from e

        try:
            with open(self.metadata_path, "w") as f:
                json.dump(self.metadata, f, indent=2)
        except OSError as e:
            raise RuntimeError(f"Failed to save metadata: {e}") from e

        logger.info(
            "faiss_index_saved",
            index_path=str(self.index_path),
            vector_count=self.index.ntotal,
        )

    def init_or_load(self) -> None:
        """Load the index if it exists on disk, otherwise create a new one."""
        if self.index_path.exists() and self.metadata_path.exists():
            logger.info("existing_index_detected", path=str(self.index_path))
            self.load_index()
        else:
            logger.info("no_index_found_initializing_new")
            self.init_new_index()

    def _require_index(self) -> faiss.Index:
        if self.index is None:
            raise RuntimeError("No index initialized. Call init_or_load() first.")
        return self.index

    def _as_matrix(self, vector: List[float], what: str) -> np.ndarray:
        matrix = np.asarray([vector], dtype=np.float32)
        if matrix.ndim != 2 or matrix.shape[1] != self.dimension:
            got = matrix.shape[1] if matrix.ndim == 2 else len(vector)
            raise ValueError(
                f"{what} dimension mismatch: expected {self.dimension}, got {got}"
            )
        return _normalize(matrix)

    async def insert(
        self,
        document_id: int,
        content: str,
        vector: List[float],
        sequence_index: int = 0,
    ) -> StoredVectorRecord:
        """Persist one chunk and its vector.

        Args:
            document_id: Owning document
            content: Chunk text
            vector: Chunk embedding
            sequence_index: Position of the chunk within the document

        Returns:
            The stored record

        Raises:
            ValueError: On dimension mismatch
            RuntimeError: If no index is initialized
        """
        matrix = self._as_matrix(vector, "Embedding")

        async with self._lock:
            index = self._require_index()
            chunk_id = self.database.insert_chunk(document_id, sequence_index, content)
            try:
                index.add_with_ids(matrix, np.array([chunk_id], dtype=np.int64))
            except RuntimeError:
                self.database.delete_chunks([chunk_id])
                raise

        return StoredVectorRecord(
            id=chunk_id,
            document_id=document_id,
            content=content,
            vector=list(vector),
        )

    async def search(
        self,
        query_vector: List[float],
        limit: int = None,
        similarity_threshold: float = 0.0,
    ) -> List[RetrievedChunk]:
        """Find the stored chunks most similar to a query vector.

        Args:
            query_vector: Query embedding
            limit: Maximum number of results (default from config)
            similarity_threshold: Minimum cosine similarity; 0 or below disables filtering

        Returns:
            Retrieved chunks, similarity descending, ties in insertion order

        Raises:
            ValueError: On dimension mismatch
            RuntimeError: If no index is initialized
        """
        index = self._require_index()
        matrix = self._as_matrix(query_vector, "Query")

        if limit is None:
            limit = config.RETRIEVAL_LIMIT

        top_k = min(limit, index.ntotal)
        if top_k <= 0:
            return []

        scores, ids = index.search(matrix, top_k)

        hits = []
        for chunk_id, score in zip(ids[0].tolist(), scores[0].tolist()):
            if chunk_id < 0:
                continue
            similarity = max(-1.0, min(1.0, float(score)))
            if similarity_threshold > 0 and similarity < similarity_threshold:
                continue
            hits.append((chunk_id, similarity))

        rows = self.database.get_chunks_by_ids([chunk_id for chunk_id, _ in hits])

        results = []
        for chunk_id, similarity in hits:
            row = rows.get(chunk_id)
            if row is None:
                logger.warning("vector_id_not_found_in_database", vector_id=chunk_id)
                continue
            results.append(
                RetrievedChunk(
                    id=chunk_id,
                    document_id=row["document_id"],
                    content=row["content"],
                    similarity=similarity,
                )
            )

        results.sort(key=lambda r: (-r.similarity, r.id))

        logger.info(
            "vector_search_completed",
            limit=limit,
            similarity_threshold=similarity_threshold,
            results_found=len(results),
        )

        return results

    async def delete_document(self, document_id: int) -> int:
        """Remove every vector and chunk row owned by a document.

        Args:
            document_id: Document whose records are removed

        Returns:
            Number of vectors removed
        """
        async with self._lock:
            index = self._require_index()
            chunk_ids = self.database.get_chunk_ids_for_document(document_id)
            if not chunk_ids:
                return 0

            removed = index.remove_ids(np.array(chunk_ids, dtype=np.int64))
            self.database.delete_chunks(chunk_ids)

        logger.info(
            "document_vectors_deleted",
            document_id=document_id,
            vectors_removed=removed,
        )

        return removed

    async def persist(self) -> None:
        """Save the index while holding the write lock."""
        async with self._lock:
            self.save_index()

    def count(self) -> int:
        """Number of vectors currently indexed."""
        return self._require_index().ntotal

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the vector store.

        Returns:
            Dictionary with store statistics
        """
        if self.index is None:
            return {
                "initialized": False,
                "vector_count": 0,
                "dimension": self.dimension,
            }

        return {
            "initialized": True,
            "vector_count": self.index.ntotal,
            "dimension": self.dimension,
            "embedding_model": self.embedding_model,
            "index_exists_on_disk": self.index_path.exists(),
        }

    async def rebuild_index(self) -> None:
        """Discard all vectors and chunk rows and start from an empty index."""
        logger.warning("rebuilding_index", index_dir=str(self.index_dir))

        async with self._lock:
            for path in (self.index_path, self.metadata_path):
                if path.exists():
                    path.unlink()
                    logger.info("deleted_existing_index_file", path=str(path))

            self.database.clear_all_chunks()
            self.init_new_index()
