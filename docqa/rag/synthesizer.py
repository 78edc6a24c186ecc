"""Grounded answer synthesis from retrieved chunks."""
from typing import Callable, Dict, List, Optional
import structlog

from docqa import config
from docqa.rag.types import (
    ChatAnswer,
    NO_DOCUMENTS_MESSAGE,
    REFUSAL_PHRASE,
    RetrievalResult,
    RetrievedChunk,
)

logger = structlog.get_logger()

SYSTEM_PROMPT = f"""You are a document assistant. Answer the user's question using ONLY the information in the provided context.

RULES:
- Do not use any knowledge that is not contained in the context.
- If the context does not contain enough information to answer, reply exactly: "{REFUSAL_PHRASE}"
- Be concise and accurate."""


class AnswerSynthesizer:
    """Builds a context-only prompt and asks the chat model for an answer."""

    def __init__(
        self,
        chat_api,
        name_resolver: Callable[[int], Optional[str]],
        model: str = None,
        temperature: Optional[float] = None,
    ):
        """Initialize the synthesizer.

        Args:
            chat_api: Object exposing ``async chat(messages, model=..., temperature=...) -> str``
            name_resolver: Maps a document id to its display name
            model: Chat model name (default from config)
            temperature: Sampling temperature (default from config)
        """
        self.chat_api = chat_api
        self.name_resolver = name_resolver
        self.model = model or config.CHAT_MODEL
        self.temperature = config.CHAT_TEMPERATURE if temperature is None else temperature

    @staticmethod
    def build_context(chunks: List[RetrievedChunk]) -> str:
        """Label each chunk with its 1-based rank and join them."""
        return "\n\n".join(
            f"[Document {i}]\n{chunk.content}" for i, chunk in enumerate(chunks, 1)
        )

    def build_messages(
        self, question: str, chunks: List[RetrievedChunk]
    ) -> List[Dict[str, str]]:
        user_content = (
            f"Context:\n{self.build_context(chunks)}\n\n"
            f"Question: {question}"
        )
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_content},
        ]

    def cite(self, result: RetrievalResult) -> List[str]:
        """Distinct display names of the documents behind the result."""
        names: List[str] = []
        for document_id in result.document_ids:
            name = self.name_resolver(document_id)
            if name is None:
                logger.warning("citation_document_missing", document_id=document_id)
                continue
            if name not in names:
                names.append(name)
        return names

    async def synthesize(self, question: str, result: RetrievalResult) -> ChatAnswer:
        """Answer a question from retrieved context.

        Args:
            question: The user's question, passed to the model verbatim
            result: Output of the retriever

        Returns:
            ChatAnswer with the model's reply and cited document names

        Raises:
            Exception: Whatever the chat API raises; the caller decides how to degrade
        """
        if result.is_empty:
            logger.info("no_context_available", status=result.status.value)
            return ChatAnswer(success=True, message=NO_DOCUMENTS_MESSAGE)

        messages = self.build_messages(question, result.chunks)
        reply = await self.chat_api.chat(
            messages, model=self.model, temperature=self.temperature
        )

        message = reply if reply and reply.strip() else REFUSAL_PHRASE
        citations = self.cite(result)

        logger.info(
            "answer_synthesized",
            context_chunks=len(result.chunks),
            citations=len(citations),
            refused=message == REFUSAL_PHRASE,
        )

        return ChatAnswer(success=True, message=message, cited_document_names=citations)
