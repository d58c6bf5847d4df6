"""Pytest configuration and fixtures."""
import hashlib
from typing import List, Sequence

import pytest

from legalqa.exceptions import UpstreamError
from legalqa.rag.chunker import Chunk
from legalqa.rag.store_faiss import EmbeddedChunk, IndexHolder, VectorIndex


FIXED_ANSWER = "Kira süresi bir yıldır."


class HashEmbedder:
    """Deterministic embedder: the same text always maps to the same vector."""

    def __init__(self, dimension: int = 16):
        self.dimension = dimension
        self.document_batches: List[List[str]] = []
        self.queries: List[str] = []

    def vector_for(self, text: str) -> List[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(byte - 127.5) / 127.5 for byte in digest[: self.dimension]]

    async def embed_documents(self, texts: Sequence[str]) -> List[List[float]]:
        self.document_batches.append(list(texts))
        return [self.vector_for(text) for text in texts]

    async def embed_query(self, text: str) -> List[float]:
        self.queries.append(text)
        return self.vector_for(text)


class FailingEmbedder(HashEmbedder):
    """Embedder whose provider is down."""

    async def embed_documents(self, texts):
        raise UpstreamError("Gemini request failed with status 503")

    async def embed_query(self, text):
        raise UpstreamError("Gemini request failed with status 503")


class EchoGenerator:
    """Generator that records its inputs and answers with a fixed string."""

    def __init__(self, answer: str = FIXED_ANSWER):
        self.answer = answer
        self.prompts: List[str] = []
        self.histories: List[list] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer

    async def generate_chat(self, history) -> str:
        self.histories.append(list(history))
        return self.answer


@pytest.fixture
def embedder():
    return HashEmbedder()


@pytest.fixture
def failing_embedder():
    return FailingEmbedder()


@pytest.fixture
def generator():
    return EchoGenerator()


@pytest.fixture
def holder():
    """Holder with nothing published yet."""
    return IndexHolder()


@pytest.fixture
def make_index(embedder):
    """Build a VectorIndex synchronously from a list of texts."""

    def _make_index(texts: Sequence[str]) -> VectorIndex:
        chunks = [
            Chunk(text=text, source_id=f"doc{i}.txt", offset=0)
            for i, text in enumerate(texts)
        ]
        return VectorIndex(
            EmbeddedChunk(chunk=chunk, vector=tuple(embedder.vector_for(chunk.text)))
            for chunk in chunks
        )

    return _make_index


@pytest.fixture
def corpus():
    return [
        "Madde 1: Kira süresi bir yıldır.",
        "Madde 2: Kira bedeli her ayın ilk beş günü içinde ödenir.",
        "Madde 3: Kiracı, kiralananı özenle kullanmakla yükümlüdür.",
        "Madde 4: Depozito sözleşme sonunda iade edilir.",
        "Madde 5: Taraflar arasındaki uyuşmazlıklarda İstanbul mahkemeleri yetkilidir.",
        "Madde 6: Sözleşme iki nüsha olarak düzenlenmiştir.",
        "Madde 7: Aidatlar kiracıya aittir.",
    ]


@pytest.fixture
def ready_holder(make_index, corpus):
    holder = IndexHolder()
    holder.publish(make_index(corpus))
    return holder
