"""Shared fixtures: temp-dir database, FAISS index and a scripted model API."""
import os
import tempfile

os.environ.setdefault("DOCQA_DATA_DIR", tempfile.mkdtemp(prefix="docqa-test-"))

import pytest

from docqa.db import Database
from docqa.rag.store_faiss import FAISSVectorStore
from tests.helpers import DIM, FakeModelAPI


@pytest.fixture
def fake_api() -> FakeModelAPI:
    return FakeModelAPI()


@pytest.fixture
def database(tmp_path) -> Database:
    db = Database(tmp_path / "test.sqlite")
    db.init_database()
    return db


@pytest.fixture
def vector_store(database, tmp_path) -> FAISSVectorStore:
    store = FAISSVectorStore(database, index_dir=tmp_path / "index", dimension=DIM)
    store.init_new_index()
    return store


@pytest.fixture
def make_document(database):
    """Insert a document row and return its id."""

    def _make(name: str = "doc.txt") -> int:
        record = database.insert_document(
            storage_key=f"key-{name}", display_name=name, content_type="text/plain"
        )
        return record.id

    return _make
