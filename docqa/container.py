"""Explicit wiring of clients and services.

Every collaborator is constructed here and passed down, so nothing in the
pipeline reaches for a process-global client.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import structlog

from docqa import config
from docqa.chat import ChatService
from docqa.db import Database
from docqa.documents import DocumentService
from docqa.extraction import TextExtractor
from docqa.llm_client import OpenAIClient
from docqa.rag.chunker import WordWindowChunker
from docqa.rag.embedder import EmbeddingClient
from docqa.rag.ingest import IngestPipeline
from docqa.rag.retriever import Retriever
from docqa.rag.store_faiss import FAISSVectorStore
from docqa.rag.synthesizer import AnswerSynthesizer
from docqa.storage import LocalBlobStorage

logger = structlog.get_logger()


@dataclass
class Container:
    api: OpenAIClient
    database: Database
    storage: LocalBlobStorage
    vector_store: FAISSVectorStore
    embedder: EmbeddingClient
    retriever: Retriever
    synthesizer: AnswerSynthesizer
    pipeline: IngestPipeline
    chat: ChatService
    documents: DocumentService

    def startup(self) -> None:
        """Create the schema and load (or create) the vector index."""
        self.database.init_database()
        self.vector_store.init_or_load()
        logger.info("container_started", stats=self.vector_store.get_stats())


def build_container(
    api=None,
    data_dir: Optional[Path] = None,
    dimension: Optional[int] = None,
) -> Container:
    """Build the service graph.

    Args:
        api: Hosted model client (an OpenAIClient from config when omitted)
        data_dir: Root for the database, index and blobs (default from config)
        dimension: Embedding dimension (default from config)

    Returns:
        Container; call ``startup()`` before serving requests
    """
    api = api or OpenAIClient()
    dimension = dimension or config.EMBEDDING_DIMENSION

    if data_dir is None:
        database = Database(config.DB_PATH)
        storage = LocalBlobStorage(config.STORAGE_DIR)
        index_dir = config.INDEX_DIR
    else:
        data_dir = Path(data_dir)
        database = Database(data_dir / "docqa.sqlite")
        storage = LocalBlobStorage(data_dir / "files")
        index_dir = data_dir

    vector_store = FAISSVectorStore(database, index_dir=index_dir, dimension=dimension)
    embedder = EmbeddingClient(api, dimension=dimension)
    retriever = Retriever(vector_store)
    synthesizer = AnswerSynthesizer(api, name_resolver=database.get_display_name)
    pipeline = IngestPipeline(WordWindowChunker(), embedder, vector_store)

    return Container(
        api=api,
        database=database,
        storage=storage,
        vector_store=vector_store,
        embedder=embedder,
        retriever=retriever,
        synthesizer=synthesizer,
        pipeline=pipeline,
        chat=ChatService(embedder, retriever, synthesizer),
        documents=DocumentService(
            database, storage, TextExtractor(), pipeline, vector_store
        ),
    )
