"""Word-window text chunking for the RAG pipeline.

Text is split on whitespace and packed into windows bounded by a character
budget, so no tokenizer is needed.
"""
from typing import List
import structlog

from docqa import config
from docqa.rag.types import Chunk

logger = structlog.get_logger()


class WordWindowChunker:
    """Packs whitespace-separated words into overlapping character windows."""

    def __init__(
        self,
        max_window_chars: int = None,
        overlap_chars: int = None,
    ):
        """Initialize the text chunker.

        Args:
            max_window_chars: Character budget of one window (default from config)
            overlap_chars: Overlap budget between windows (default from config)

        Raises:
            ValueError: If the window is not positive or the overlap is negative
        """
        self.max_window_chars = (
            config.CHUNK_MAX_CHARS if max_window_chars is None else max_window_chars
        )
        self.overlap_chars = (
            config.CHUNK_OVERLAP_CHARS if overlap_chars is None else overlap_chars
        )

        if self.max_window_chars <= 0:
            raise ValueError(
                f"Window size must be positive, got {self.max_window_chars}"
            )
        if self.overlap_chars < 0:
            raise ValueError(
                f"Overlap must not be negative, got {self.overlap_chars}"
            )

        logger.info(
            "chunker_initialized",
            max_window_chars=self.max_window_chars,
            overlap_chars=self.overlap_chars,
        )

    @property
    def overlap_words(self) -> int:
        """Number of trailing words carried into the next window.

        The overlap is a coarse approximation: the character budget is
        converted to a word count assuming roughly ten characters per word,
        so the actual overlap in characters varies with word length. The
        carried words are further trimmed in ``chunk`` so the seeded window
        plus the next word fits in ``max_window_chars``.
        """
        return self.overlap_chars // 10

    def _carry(self, window: List[str], next_word_length: int) -> List[str]:
        """Trailing words of a closed window that seed the next one."""
        carried = min(self.overlap_words, len(window))
        carried_length = sum(len(w) + 1 for w in window[len(window) - carried:])

        while carried and carried_length + next_word_length > self.max_window_chars:
            carried_length -= len(window[len(window) - carried]) + 1
            carried -= 1

        return window[len(window) - carried:]

    def chunk(self, text: str) -> List[Chunk]:
        """Split text into overlapping word windows.

        Each word costs its length plus one separator. A window is closed
        when the next word would push it past ``max_window_chars`` and it
        already holds at least one word, so a single oversized word still
        forms its own chunk.

        Args:
            text: Extracted document text

        Returns:
            Ordered list of chunks; empty for blank input
        """
        words = text.split() if text else []
        if not words:
            return []

        chunks: List[Chunk] = []
        window: List[str] = []
        window_length = 0

        for word in words:
            word_length = len(word) + 1

            if window_length + word_length > self.max_window_chars and window:
                chunks.append(Chunk(content=" ".join(window), sequence_index=len(chunks)))

                window = self._carry(window, word_length)
                window_length = sum(len(w) + 1 for w in window)

            window.append(word)
            window_length += word_length

        if window:
            chunks.append(Chunk(content=" ".join(window), sequence_index=len(chunks)))

        logger.debug(
            "text_chunked",
            word_count=len(words),
            chunk_count=len(chunks),
        )

        return chunks

    def get_chunk_stats(self, chunks: List[Chunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of Chunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
            }

        chunk_sizes = [len(c.content) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap_words": self.overlap_words,
        }
