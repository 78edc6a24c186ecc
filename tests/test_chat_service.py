"""Tests for the chat service boundary."""
import pytest

from docqa.chat import ChatService
from docqa.llm_client import LLMClientError
from docqa.rag.embedder import EmbeddingClient
from docqa.rag.retriever import Retriever
from docqa.rag.store_faiss import FAISSVectorStore
from docqa.rag.synthesizer import AnswerSynthesizer
from docqa.rag.types import GENERIC_ERROR_MESSAGE, NO_DOCUMENTS_MESSAGE, REFUSAL_PHRASE
from tests.helpers import DIM, query_vector, unit_vector


@pytest.fixture
def service(fake_api, vector_store, database):
    embedder = EmbeddingClient(fake_api, dimension=DIM)
    retriever = Retriever(vector_store, primary_limit=5, primary_threshold=0.5)
    synthesizer = AnswerSynthesizer(fake_api, name_resolver=database.get_display_name)
    return ChatService(embedder, retriever, synthesizer, debug_errors=False)


@pytest.mark.asyncio
async def test_no_indexed_documents(service, fake_api):
    answer = await service.ask("What is the refund policy?")

    assert answer.success is True
    assert answer.message == NO_DOCUMENTS_MESSAGE
    assert answer.cited_document_names == []
    assert fake_api.chat_calls == []


@pytest.mark.asyncio
async def test_query_embedding_failure_degrades_to_refusal(service, fake_api):
    fake_api.fail_on.add("question")

    answer = await service.ask("question")

    assert answer.success is True
    assert answer.message == REFUSAL_PHRASE
    assert fake_api.chat_calls == []


@pytest.mark.asyncio
async def test_answer_cites_distinct_documents(service, fake_api, vector_store, make_document):
    handbook = make_document("handbook.pdf")
    policy = make_document("policy.docx")
    await vector_store.insert(handbook, "Staff get 25 vacation days.", unit_vector(0.81))
    await vector_store.insert(handbook, "Holidays are listed yearly.", unit_vector(0.77))
    await vector_store.insert(policy, "Vacation requests need approval.", unit_vector(0.52))
    fake_api.vectors["How many vacation days?"] = query_vector()
    fake_api.chat_reply = "25 days."

    answer = await service.ask("How many vacation days?")

    assert answer.success is True
    assert answer.message == "25 days."
    assert answer.cited_document_names == ["handbook.pdf", "policy.docx"]
    user_turn = fake_api.chat_calls[0][1]["content"]
    assert "[Document 3]\nVacation requests need approval." in user_turn


@pytest.mark.asyncio
async def test_below_threshold_content_still_answers(
    service, fake_api, vector_store, make_document
):
    doc = make_document("notes.txt")
    await vector_store.insert(doc, "loosely related", unit_vector(0.2))
    fake_api.vectors["q"] = query_vector()

    answer = await service.ask("q")

    assert answer.success is True
    assert answer.cited_document_names == ["notes.txt"]
    assert len(fake_api.chat_calls) == 1


@pytest.mark.asyncio
async def test_chat_failure_is_reported_without_raising(
    service, fake_api, vector_store, make_document
):
    await vector_store.insert(make_document(), "content", unit_vector(0.9))
    fake_api.vectors["q"] = query_vector()
    fake_api.chat_error = LLMClientError("upstream 503")

    answer = await service.ask("q")

    assert answer.success is False
    assert answer.message == GENERIC_ERROR_MESSAGE
    assert "503" not in answer.message


@pytest.mark.asyncio
async def test_debug_errors_append_detail(service, fake_api, vector_store, make_document):
    await vector_store.insert(make_document(), "content", unit_vector(0.9))
    fake_api.vectors["q"] = query_vector()
    fake_api.chat_error = LLMClientError("upstream 503")
    service.debug_errors = True

    answer = await service.ask("q")

    assert answer.success is False
    assert answer.message.startswith(GENERIC_ERROR_MESSAGE)
    assert "LLMClientError: upstream 503" in answer.message


@pytest.mark.asyncio
async def test_uninitialised_index_is_an_infrastructure_failure(fake_api, database, tmp_path):
    store = FAISSVectorStore(database, index_dir=tmp_path, dimension=DIM)
    service = ChatService(
        EmbeddingClient(fake_api, dimension=DIM),
        Retriever(store),
        AnswerSynthesizer(fake_api, name_resolver=database.get_display_name),
        debug_errors=False,
    )

    answer = await service.ask("anything")

    assert answer.success is False
