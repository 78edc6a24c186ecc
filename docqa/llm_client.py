"""OpenAI-compatible API client wrapper with error handling."""
import httpx
from typing import List, Dict, Optional
import structlog

from docqa import config

logger = structlog.get_logger()


class LLMClientError(RuntimeError):
    """Raised when the hosted model API fails or returns an unusable payload."""


class OpenAIClient:
    """Async client for embedding and chat completion endpoints."""

    def __init__(
        self,
        base_url: str = None,
        api_key: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: API base URL (defaults to config.OPENAI_BASE_URL)
            api_key: Bearer token (defaults to config.OPENAI_API_KEY)
            timeout: Request timeout in seconds (defaults to config.LLM_TIMEOUT)
            transport: Optional httpx transport, used to stub the API in tests
        """
        self.base_url = (base_url or config.OPENAI_BASE_URL).rstrip("/")
        self.api_key = config.OPENAI_API_KEY if api_key is None else api_key
        self.timeout = timeout or config.LLM_TIMEOUT
        self.transport = transport

    def _client(self, timeout: float = None) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout or self.timeout,
            transport=self.transport,
        )

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: str = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to config.CHAT_MODEL)
            temperature: Sampling temperature (0.0-2.0)

        Returns:
            Text of the first choice, or an empty string if the model sent none

        Raises:
            LLMClientError: On transport, HTTP or payload errors
        """
        model = model or config.CHAT_MODEL

        payload = {
            "model": model,
            "messages": messages,
        }
        if temperature is not None:
            payload["temperature"] = temperature

        try:
            async with self._client() as client:
                logger.info(
                    "chat_request",
                    model=model,
                    message_count=len(messages),
                )

                response = await client.post("/chat/completions", json=payload)
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "chat_http_error",
                error=str(e),
                status_code=e.response.status_code,
            )
            raise LLMClientError(f"Chat completion failed: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("chat_request_error", error=str(e), base_url=self.base_url)
            raise LLMClientError(f"Chat completion failed: {e}") from e

        try:
            content = data["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.error("chat_malformed_response", error=str(e))
            raise LLMClientError("Malformed chat completion response") from e

        logger.info("chat_response", model=model, response_length=len(content))

        return content

    async def embeddings(
        self,
        text: str,
        model: str = None,
    ) -> List[float]:
        """Generate an embedding for one text.

        Args:
            text: Text to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)

        Returns:
            Embedding vector

        Raises:
            LLMClientError: On transport, HTTP or payload errors
        """
        model = model or config.EMBEDDING_MODEL

        payload = {
            "model": model,
            "input": text,
        }

        try:
            async with self._client() as client:
                logger.debug(
                    "embedding_request",
                    model=model,
                    text_length=len(text),
                )

                response = await client.post("/embeddings", json=payload)
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "embedding_http_error",
                error=str(e),
                status_code=e.response.status_code,
            )
            raise LLMClientError(f"Embedding request failed: {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("embedding_request_error", error=str(e))
            raise LLMClientError(f"Embedding request failed: {e}") from e

        try:
            embedding = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("embedding_malformed_response", error=str(e))
            raise LLMClientError("Malformed embedding response") from e

        logger.debug("embedding_response", model=model, dimension=len(embedding))

        return embedding

    async def list_models(self) -> List[str]:
        """List the model ids the API exposes.

        Returns:
            List of model ids

        Raises:
            LLMClientError: On API errors
        """
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get("/models")
                response.raise_for_status()
                data = response.json()
                return [m["id"] for m in data.get("data", [])]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.error("list_models_error", error=str(e))
            raise LLMClientError(f"Listing models failed: {e}") from e
