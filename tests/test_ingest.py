"""Tests for the ingestion pipeline."""
import pytest

from docqa.rag.chunker import WordWindowChunker
from docqa.rag.embedder import EmbeddingClient
from docqa.rag.ingest import IngestPipeline
from tests.helpers import DIM

FIVE_CHUNKS = "aaaaa bbbbb ccccc ddddd eeeee"


@pytest.fixture
def pipeline(fake_api, vector_store):
    # Every five-letter word fills a six-character window on its own.
    chunker = WordWindowChunker(max_window_chars=6, overlap_chars=0)
    embedder = EmbeddingClient(fake_api, dimension=DIM, max_concurrency=1)
    return IngestPipeline(chunker, embedder, vector_store)


@pytest.mark.asyncio
async def test_failed_chunk_is_dropped_and_ingestion_succeeds(
    pipeline, fake_api, vector_store, database, make_document
):
    doc = make_document()
    fake_api.fail_on.add("ccccc")

    report = await pipeline.ingest(doc, FIVE_CHUNKS)

    assert report.chunks_created == 5
    assert report.chunks_stored == 4
    assert report.failed_sequence_indices == [2]
    assert vector_store.count() == 4
    stored = database.get_chunks_for_document(doc)
    assert [c["content"] for c in stored] == ["aaaaa", "bbbbb", "ddddd", "eeeee"]
    assert [c["sequence_index"] for c in stored] == [0, 1, 3, 4]


@pytest.mark.asyncio
async def test_all_chunks_stored_and_index_persisted(pipeline, vector_store, make_document):
    doc = make_document()

    report = await pipeline.ingest(doc, FIVE_CHUNKS)

    assert report.chunks_stored == 5
    assert report.chunks_failed == 0
    assert vector_store.index_path.exists()


@pytest.mark.asyncio
async def test_blank_text_stores_nothing(pipeline, fake_api, vector_store, make_document):
    report = await pipeline.ingest(make_document(), "   \n ")

    assert report.chunks_created == 0
    assert report.chunks_stored == 0
    assert fake_api.embedding_calls == []
    assert vector_store.count() == 0


@pytest.mark.asyncio
async def test_storage_errors_propagate(fake_api, vector_store, make_document):
    fake_api.vectors["aaaaa"] = [1.0, 0.0, 0.0]
    embedder = EmbeddingClient(fake_api, dimension=None)
    pipeline = IngestPipeline(WordWindowChunker(6, 0), embedder, vector_store)

    with pytest.raises(ValueError):
        await pipeline.ingest(make_document(), "aaaaa")


@pytest.mark.asyncio
async def test_documents_keep_their_own_chunks(pipeline, vector_store, database, make_document):
    first = make_document("first.txt")
    second = make_document("second.txt")

    await pipeline.ingest(first, "aaaaa bbbbb")
    await pipeline.ingest(second, "ccccc")

    assert len(database.get_chunk_ids_for_document(first)) == 2
    assert len(database.get_chunk_ids_for_document(second)) == 1
