"""Retriever for semantic search over indexed documents.

Runs a two-stage cascade so a populated index almost never produces a bare
refusal because of threshold tuning alone:

1. Search with the primary limit and similarity threshold.
2. If nothing clears the threshold, search again with no threshold and a
   wider limit. An empty second search means the index holds no content;
   otherwise the best ``primary_limit`` results are used anyway.
"""
from typing import Optional, List
import structlog

from docqa import config
from docqa.rag.store_faiss import FAISSVectorStore
from docqa.rag.types import RetrievalResult, RetrievalStatus

logger = structlog.get_logger()


class Retriever:
    """Threshold-with-fallback retriever for RAG pipeline."""

    def __init__(
        self,
        vector_store: FAISSVectorStore,
        primary_limit: int = None,
        primary_threshold: float = None,
        fallback_limit: int = None,
    ):
        """Initialize the retriever.

        Args:
            vector_store: Index to search
            primary_limit: Result count for the first search (default from config)
            primary_threshold: Minimum similarity for the first search (default from config)
            fallback_limit: Result count for the unfiltered second search (default from config)

        Raises:
            ValueError: If a limit is not positive
        """
        self.vector_store = vector_store
        self.primary_limit = (
            config.RETRIEVAL_LIMIT if primary_limit is None else primary_limit
        )
        self.primary_threshold = (
            config.SIMILARITY_THRESHOLD if primary_threshold is None else primary_threshold
        )
        self.fallback_limit = (
            config.FALLBACK_LIMIT if fallback_limit is None else fallback_limit
        )

        if self.primary_limit < 1 or self.fallback_limit < 1:
            raise ValueError(
                f"Limits must be positive, got primary={self.primary_limit} "
                f"fallback={self.fallback_limit}"
            )

        logger.info(
            "retriever_initialized",
            primary_limit=self.primary_limit,
            primary_threshold=self.primary_threshold,
            fallback_limit=self.fallback_limit,
        )

    async def retrieve(
        self,
        query_vector: List[float],
        primary_limit: Optional[int] = None,
        primary_threshold: Optional[float] = None,
    ) -> RetrievalResult:
        """Retrieve the chunks most relevant to a query vector.

        Args:
            query_vector: Embedded query
            primary_limit: Overrides the configured primary limit
            primary_threshold: Overrides the configured primary threshold

        Returns:
            RetrievalResult whose status tells which branch produced it

        Raises:
            ValueError: If the effective limit is not positive
        """
        limit = self.primary_limit if primary_limit is None else primary_limit
        if limit < 1:
            raise ValueError(f"Limit must be positive, got {limit}")
        threshold = self.primary_threshold if primary_threshold is None else primary_threshold

        chunks = await self.vector_store.search(
            query_vector, limit=limit, similarity_threshold=threshold
        )
        if chunks:
            logger.info(
                "retrieval_completed",
                status=RetrievalStatus.MATCHED.value,
                results_returned=len(chunks),
                top_similarity=chunks[0].similarity,
            )
            return RetrievalResult(status=RetrievalStatus.MATCHED, chunks=chunks)

        fallback = await self.vector_store.search(
            query_vector, limit=self.fallback_limit, similarity_threshold=0.0
        )
        if not fallback:
            logger.warning("empty_index_no_results")
            return RetrievalResult(status=RetrievalStatus.EMPTY_INDEX)

        chunks = fallback[:limit]
        logger.info(
            "retrieval_completed",
            status=RetrievalStatus.BELOW_THRESHOLD.value,
            threshold=threshold,
            results_returned=len(chunks),
            top_similarity=chunks[0].similarity,
        )
        return RetrievalResult(status=RetrievalStatus.BELOW_THRESHOLD, chunks=chunks)
