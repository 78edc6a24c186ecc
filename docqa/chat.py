"""Question answering over indexed documents.

The chat service is the boundary of the RAG core: it always returns a
ChatAnswer and never lets an exception escape.
"""
import structlog

from docqa import config
from docqa.rag.embedder import EmbeddingClient, EmbeddingError
from docqa.rag.retriever import Retriever
from docqa.rag.synthesizer import AnswerSynthesizer
from docqa.rag.types import ChatAnswer, GENERIC_ERROR_MESSAGE, REFUSAL_PHRASE

logger = structlog.get_logger()


class ChatService:
    """Embeds a question, retrieves context and synthesizes an answer."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        retriever: Retriever,
        synthesizer: AnswerSynthesizer,
        debug_errors: bool = None,
    ):
        self.embedder = embedder
        self.retriever = retriever
        self.synthesizer = synthesizer
        self.debug_errors = config.DEBUG_ERRORS if debug_errors is None else debug_errors

    async def ask(self, question: str) -> ChatAnswer:
        """Answer a question from the indexed documents.

        Args:
            question: The user's question

        Returns:
            ChatAnswer; ``success`` is False only for infrastructure failures
        """
        logger.info("question_received", question_length=len(question or ""))

        try:
            query_vector = await self.embedder.embed(question)
        except EmbeddingError as e:
            logger.warning("query_embedding_failed", error=str(e))
            return ChatAnswer(success=True, message=REFUSAL_PHRASE)

        if not query_vector:
            logger.warning("query_embedding_empty")
            return ChatAnswer(success=True, message=REFUSAL_PHRASE)

        try:
            result = await self.retriever.retrieve(query_vector)
            return await self.synthesizer.synthesize(question, result)
        except Exception as e:
            logger.error(
                "question_answering_failed",
                error=str(e),
                error_type=type(e).__name__,
                question_preview=question[:100],
            )
            message = GENERIC_ERROR_MESSAGE
            if self.debug_errors:
                message = f"{message}\n\n{type(e).__name__}: {e}"
            return ChatAnswer(success=False, message=message)
