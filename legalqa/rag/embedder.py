"""Embedding capability used by the index build and the retriever."""
from typing import List, Protocol, Sequence
import structlog

from legalqa import config
from legalqa.llm_client import GeminiClient, gemini_client

logger = structlog.get_logger()

Vector = List[float]


class Embedder(Protocol):
    """Maps text to fixed-length vectors."""

    async def embed_documents(self, texts: Sequence[str]) -> List[Vector]:
        ...

    async def embed_query(self, text: str) -> Vector:
        ...


class GeminiEmbedder:
    """Embedder backed by the Gemini embeddings endpoints."""

    def __init__(
        self,
        client: GeminiClient = None,
        model: str = None,
        batch_size: int = None,
    ):
        self.client = client or gemini_client
        self.model = model or config.EMBEDDING_MODEL
        self.batch_size = batch_size or config.EMBED_BATCH_SIZE

        if not 0 < self.batch_size <= 100:
            raise ValueError(f"Batch size must be between 1 and 100, got {self.batch_size}")

    async def embed_documents(self, texts: Sequence[str]) -> List[Vector]:
        """Embed document chunks, batched to the provider limit.

        Raises:
            UpstreamError: If any batch fails
        """
        embeddings: List[Vector] = []

        for i in range(0, len(texts), self.batch_size):
            batch = list(texts[i : i + self.batch_size])
            embeddings.extend(
                await self.client.batch_embed_contents(
                    batch, model=self.model, task_type="RETRIEVAL_DOCUMENT"
                )
            )

            logger.debug(
                "embeddings_batch_generated",
                batch_size=len(batch),
                total_so_far=len(embeddings),
            )

        return embeddings

    async def embed_query(self, text: str) -> Vector:
        return await self.client.embed_content(
            text, model=self.model, task_type="RETRIEVAL_QUERY"
        )
