"""Shared data types for the RAG pipeline."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

NO_DOCUMENTS_MESSAGE = (
    "No information found. Please ensure documents have been uploaded and processed."
)
REFUSAL_PHRASE = "No information found."
GENERIC_ERROR_MESSAGE = "An error occurred while answering your question. Please try again."


@dataclass(frozen=True)
class Chunk:
    """A contiguous window of a document's extracted text."""

    content: str
    sequence_index: int


@dataclass(frozen=True)
class EmbeddedChunk:
    """A chunk together with its embedding vector."""

    content: str
    vector: List[float]
    sequence_index: int

    @property
    def dimension(self) -> int:
        return len(self.vector)


@dataclass(frozen=True)
class StoredVectorRecord:
    """The persisted unit of the vector index."""

    id: int
    document_id: int
    content: str
    vector: List[float]


@dataclass(frozen=True)
class RetrievedChunk:
    """A stored record scored against one query vector."""

    id: int
    document_id: int
    content: str
    similarity: float


class RetrievalStatus(str, Enum):
    """Which branch of the retrieval cascade produced a result."""

    MATCHED = "matched"
    BELOW_THRESHOLD = "below_threshold"
    EMPTY_INDEX = "empty_index"


@dataclass
class RetrievalResult:
    """Ranked chunks for one query, similarity descending."""

    status: RetrievalStatus
    chunks: List[RetrievedChunk] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.chunks

    @property
    def document_ids(self) -> List[int]:
        """Distinct document ids in retrieval order."""
        seen = []
        for chunk in self.chunks:
            if chunk.document_id not in seen:
                seen.append(chunk.document_id)
        return seen


@dataclass
class EmbeddingOutcome:
    """Result of embedding one text; exactly one of vector/error is set."""

    text: str
    vector: Optional[List[float]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.vector is not None


@dataclass
class IngestReport:
    """Summary of one document ingestion."""

    document_id: int
    chunks_created: int = 0
    chunks_stored: int = 0
    failed_sequence_indices: List[int] = field(default_factory=list)

    @property
    def chunks_failed(self) -> int:
        return len(self.failed_sequence_indices)


@dataclass
class ChatAnswer:
    """Answer returned to the caller of the chat service."""

    success: bool
    message: str
    cited_document_names: List[str] = field(default_factory=list)
