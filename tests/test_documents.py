"""Tests for the document service."""
import pytest

from docqa.documents import (
    DocumentNotFoundError,
    DocumentService,
    DocumentTooLargeError,
    DuplicateDocumentError,
    UnsupportedDocumentError,
)
from docqa.extraction import TextExtractor
from docqa.rag.chunker import WordWindowChunker
from docqa.rag.embedder import EmbeddingClient
from docqa.rag.ingest import IngestPipeline
from docqa.storage import LocalBlobStorage
from tests.helpers import DIM

TEXT = b"Employees receive twenty five vacation days per year. Requests need approval."


@pytest.fixture
def storage(tmp_path):
    return LocalBlobStorage(tmp_path / "files")


@pytest.fixture
def service(fake_api, database, vector_store, storage):
    pipeline = IngestPipeline(
        WordWindowChunker(max_window_chars=40, overlap_chars=10),
        EmbeddingClient(fake_api, dimension=DIM),
        vector_store,
    )
    return DocumentService(
        database,
        storage,
        TextExtractor(),
        pipeline,
        vector_store,
        max_upload_bytes=1024,
    )


@pytest.mark.asyncio
async def test_save_stores_blob_record_and_chunks(service, storage, vector_store, database):
    record, report = await service.save_document("Handbook.txt", TEXT, "text/plain")

    assert record.display_name == "Handbook.txt"
    assert record.storage_key != record.display_name
    assert record.storage_key.endswith(".txt")
    assert storage.download(record.storage_key) == TEXT
    assert report.chunks_stored == report.chunks_created > 0
    assert vector_store.count() == report.chunks_stored
    assert database.get_display_name(record.id) == "Handbook.txt"


@pytest.mark.asyncio
async def test_client_path_components_are_stripped(service):
    record, _ = await service.save_document("../../etc/notes.txt", TEXT)

    assert record.display_name == "notes.txt"


@pytest.mark.asyncio
async def test_duplicate_names_are_rejected_case_insensitively(service):
    await service.save_document("report.txt", TEXT)

    with pytest.raises(DuplicateDocumentError):
        await service.save_document("REPORT.txt", TEXT)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "filename,data,error",
    [
        ("image.png", TEXT, UnsupportedDocumentError),
        ("empty.txt", b"", UnsupportedDocumentError),
        ("", TEXT, UnsupportedDocumentError),
        ("huge.txt", b"x" * 2048, DocumentTooLargeError),
    ],
)
async def test_invalid_uploads_are_rejected(service, storage, filename, data, error):
    with pytest.raises(error):
        await service.save_document(filename, data)

    assert list(storage.root.iterdir()) == []


@pytest.mark.asyncio
async def test_document_without_text_is_kept_but_not_indexed(service, vector_store):
    record, report = await service.save_document("blank.txt", b"   \n  ")

    assert service.get_document(record.id) is not None
    assert report.chunks_created == 0
    assert vector_store.count() == 0


@pytest.mark.asyncio
async def test_download_returns_original_bytes(service):
    record, _ = await service.save_document("a.txt", TEXT)

    found, data = service.download(record.id)

    assert found.display_name == "a.txt"
    assert data == TEXT


@pytest.mark.asyncio
async def test_download_missing_blob_or_record(service, storage):
    with pytest.raises(DocumentNotFoundError):
        service.download(12345)

    record, _ = await service.save_document("a.txt", TEXT)
    storage.delete(record.storage_key)

    with pytest.raises(DocumentNotFoundError):
        service.download(record.id)


@pytest.mark.asyncio
async def test_delete_removes_vectors_record_and_blob(service, storage, vector_store, database):
    keep, _ = await service.save_document("keep.txt", TEXT)
    drop, _ = await service.save_document("drop.txt", b"Parking is free on weekends.")
    kept_vectors = len(database.get_chunk_ids_for_document(keep.id))

    assert await service.delete_document(drop.id) is True

    assert service.get_document(drop.id) is None
    assert not storage.exists(drop.storage_key)
    assert vector_store.count() == kept_vectors
    assert database.get_chunk_ids_for_document(drop.id) == []
    assert await service.delete_document(drop.id) is False


@pytest.mark.asyncio
async def test_listing_is_paginated_newest_first(service):
    for name in ["one.txt", "two.txt", "three.txt"]:
        await service.save_document(name, TEXT)

    first_page = service.list_documents(page=1, page_size=2)
    second_page = service.list_documents(page=2, page_size=2)

    assert [d.display_name for d in first_page] == ["three.txt", "two.txt"]
    assert [d.display_name for d in second_page] == ["one.txt"]
    assert service.count_documents() == 3


@pytest.mark.asyncio
async def test_reindex_rebuilds_from_stored_blobs(service, vector_store):
    await service.save_document("one.txt", TEXT)
    await service.save_document("two.txt", b"Parking is free on weekends.")
    before = vector_store.count()

    stats = await service.reindex_all()

    assert stats["documents_processed"] == 2
    assert stats["documents_failed"] == 0
    assert stats["chunks_stored"] == before
    assert vector_store.count() == before


@pytest.mark.asyncio
async def test_reindex_counts_missing_blobs_as_failures(service, storage):
    record, _ = await service.save_document("one.txt", TEXT)
    storage.delete(record.storage_key)
    seen = []

    stats = await service.reindex_all(progress_callback=lambda i, n, r: seen.append((i, n)))

    assert stats["documents_failed"] == 1
    assert seen == [(1, 1)]
