"""Embedding generation for chunks and queries.

Wraps the hosted embedding endpoint with:
- Blank-text short-circuit (no network call)
- Dimension validation against the deployment's fixed size
- Bounded-concurrency batch embedding with per-text failure isolation
"""
import asyncio
from typing import List, Optional, Tuple
import structlog

from docqa import config
from docqa.rag.types import Chunk, EmbeddedChunk, EmbeddingOutcome

logger = structlog.get_logger()


class EmbeddingError(RuntimeError):
    """Raised when a single text cannot be embedded."""


class EmbeddingClient:
    """Turns text into fixed-dimension vectors via a hosted model."""

    def __init__(
        self,
        api,
        model: str = None,
        dimension: Optional[int] = None,
        max_concurrency: int = None,
    ):
        """Initialize the embedding client.

        Args:
            api: Object exposing ``async embeddings(text, model=...) -> list[float]``
            model: Embedding model name (default from config)
            dimension: Expected vector size; ``None`` skips the check
            max_concurrency: Upper bound on in-flight requests in ``embed_batch``
        """
        self.api = api
        self.model = model or config.EMBEDDING_MODEL
        self.dimension = dimension
        self.max_concurrency = max(1, max_concurrency or config.EMBEDDING_CONCURRENCY)

    async def embed(self, text: str) -> List[float]:
        """Embed a single text.

        Args:
            text: Chunk or query text

        Returns:
            Embedding vector, or an empty list for blank text

        Raises:
            EmbeddingError: If the API call fails or returns an unusable vector
        """
        if not text or not text.strip():
            return []

        try:
            vector = await self.api.embeddings(text, model=self.model)
        except Exception as e:
            raise EmbeddingError(f"Failed to generate embedding: {e}") from e

        if not vector:
            raise EmbeddingError("Empty embedding returned")

        if self.dimension is not None and len(vector) != self.dimension:
            raise EmbeddingError(
                f"Embedding dimension mismatch: expected {self.dimension}, "
                f"got {len(vector)}"
            )

        return [float(x) for x in vector]

    async def embed_batch(self, texts: List[str]) -> List[EmbeddingOutcome]:
        """Embed many texts, isolating failures per text.

        Args:
            texts: Texts to embed

        Returns:
            One outcome per input text, in input order
        """
        if not texts:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _embed_one(text: str) -> EmbeddingOutcome:
            async with semaphore:
                try:
                    vector = await self.embed(text)
                except EmbeddingError as e:
                    logger.error(
                        "embedding_generation_failed",
                        text_preview=text[:100],
                        error=str(e),
                    )
                    return EmbeddingOutcome(text=text, error=str(e))

            if not vector:
                return EmbeddingOutcome(text=text, error="blank text")
            return EmbeddingOutcome(text=text, vector=vector)

        outcomes = await asyncio.gather(*(_embed_one(t) for t in texts))

        logger.debug(
            "embeddings_batch_generated",
            batch_size=len(texts),
            succeeded=sum(1 for o in outcomes if o.ok),
            concurrency=self.max_concurrency,
        )

        return list(outcomes)

    async def embed_chunks(
        self, chunks: List[Chunk]
    ) -> Tuple[List[EmbeddedChunk], List[int]]:
        """Embed document chunks.

        Args:
            chunks: Chunks produced by the chunker

        Returns:
            Tuple of (embedded chunks in order, sequence indices that failed)
        """
        outcomes = await self.embed_batch([c.content for c in chunks])

        embedded: List[EmbeddedChunk] = []
        failed: List[int] = []
        for chunk, outcome in zip(chunks, outcomes):
            if outcome.ok:
                embedded.append(
                    EmbeddedChunk(
                        content=chunk.content,
                        vector=outcome.vector,
                        sequence_index=chunk.sequence_index,
                    )
                )
            else:
                failed.append(chunk.sequence_index)

        return embedded, failed
