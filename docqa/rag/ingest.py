"""Ingest pipeline for indexing extracted document text.

Orchestrates:
- Text chunking
- Embedding generation (failed chunks are dropped, not fatal)
- Vector and chunk storage
"""
import structlog

from docqa.rag.chunker import WordWindowChunker
from docqa.rag.embedder import EmbeddingClient
from docqa.rag.store_faiss import FAISSVectorStore
from docqa.rag.types import IngestReport

logger = structlog.get_logger()


class IngestPipeline:
    """Pipeline for ingesting one document's text into the vector index."""

    def __init__(
        self,
        chunker: WordWindowChunker,
        embedder: EmbeddingClient,
        vector_store: FAISSVectorStore,
    ):
        self.chunker = chunker
        self.embedder = embedder
        self.vector_store = vector_store

        logger.info(
            "ingest_pipeline_initialized",
            max_window_chars=chunker.max_window_chars,
            overlap_chars=chunker.overlap_chars,
            embedding_model=embedder.model,
        )

    async def ingest(self, document_id: int, text: str) -> IngestReport:
        """Chunk, embed and index a document's text.

        Chunks whose embedding fails are logged and omitted. Only storage
        errors fail the ingestion.

        Args:
            document_id: Owning document
            text: Extracted plain text

        Returns:
            IngestReport with chunk counts

        Raises:
            ValueError: On embedding/index dimension mismatch
            RuntimeError: If the index is unavailable or cannot be saved
        """
        report = IngestReport(document_id=document_id)

        chunks = self.chunker.chunk(text)
        report.chunks_created = len(chunks)

        if not chunks:
            logger.warning("no_chunks_created", document_id=document_id)
            return report

        embedded, failed = await self.embedder.embed_chunks(chunks)
        report.failed_sequence_indices = failed

        for chunk in embedded:
            await self.vector_store.insert(
                document_id,
                chunk.content,
                chunk.vector,
                sequence_index=chunk.sequence_index,
            )
            report.chunks_stored += 1

        await self.vector_store.persist()

        if failed:
            logger.warning(
                "chunks_dropped_after_embedding_failure",
                document_id=document_id,
                failed_sequence_indices=failed,
            )

        logger.info(
            "document_ingested",
            document_id=document_id,
            chunks_created=report.chunks_created,
            chunks_stored=report.chunks_stored,
            chunk_stats=self.chunker.get_chunk_stats(chunks),
        )

        return report
