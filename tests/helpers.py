"""Test doubles and vector builders shared across test modules."""
import asyncio
import math
import zlib

from docqa.llm_client import LLMClientError

DIM = 8


def unit_vector(similarity: float, dim: int = DIM) -> list:
    """Vector whose cosine similarity to ``query_vector()`` equals ``similarity``."""
    vector = [0.0] * dim
    vector[0] = similarity
    vector[1] = math.sqrt(max(0.0, 1.0 - similarity * similarity))
    return vector


def query_vector(dim: int = DIM) -> list:
    vector = [0.0] * dim
    vector[0] = 1.0
    return vector


def hashed_vector(text: str, dim: int = DIM) -> list:
    """Deterministic bag-of-words embedding."""
    vector = [0.0] * dim
    for token in text.lower().split():
        vector[zlib.crc32(token.encode()) % dim] += 1.0
    if not any(vector):
        vector[0] = 1.0
    return vector


class FakeModelAPI:
    """Stand-in for the hosted embedding and chat endpoints."""

    def __init__(self, dim: int = DIM):
        self.dim = dim
        self.vectors = {}
        self.fail_on = set()
        self.embedding_calls = []
        self.chat_calls = []
        self.chat_reply = "The answer is in the documents."
        self.chat_error = None
        self.delay = 0.0
        self.in_flight = 0
        self.peak_in_flight = 0

    async def embeddings(self, text, model=None):
        self.embedding_calls.append(text)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if text in self.fail_on:
                raise LLMClientError("quota exceeded")
            if text in self.vectors:
                return list(self.vectors[text])
            return hashed_vector(text, self.dim)
        finally:
            self.in_flight -= 1

    async def chat(self, messages, model=None, temperature=None):
        self.chat_calls.append(messages)
        if self.chat_error is not None:
            raise self.chat_error
        return self.chat_reply

    async def list_models(self):
        return ["fake-embedding", "fake-chat"]
