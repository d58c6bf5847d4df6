"""Retriever for semantic search over indexed documents.

Handles:
- Readiness check against the published index
- Query embedding generation
- Top-K similarity search
"""
from typing import List, Optional
from dataclasses import dataclass
import structlog

from legalqa import config
from legalqa.rag.chunker import Chunk
from legalqa.rag.embedder import Embedder
from legalqa.rag.store_faiss import IndexHolder

logger = structlog.get_logger()


@dataclass(frozen=True)
class RetrievalResult:
    """A single retrieved chunk with its similarity score."""

    chunk: Chunk
    score: float
    rank: int

    @property
    def source(self) -> str:
        """Get a formatted source string for display."""
        return f"{self.chunk.source_id}@{self.chunk.offset}"


class Retriever:
    """Semantic retriever for RAG pipeline.

    Always returns the top K chunks; there is no relevance threshold.
    """

    def __init__(
        self,
        embedder: Embedder,
        holder: IndexHolder,
        top_k: Optional[int] = None,
    ):
        """Initialize the retriever.

        Args:
            embedder: Embedding capability for queries
            holder: Holder of the published vector index
            top_k: Number of results to retrieve (default from config)
        """
        self.embedder = embedder
        self.holder = holder
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k

        logger.info("retriever_initialized", top_k=self.top_k)

    async def retrieve(self, query: str) -> List[RetrievalResult]:
        """Retrieve the most similar chunks for a query.

        Args:
            query: User query text

        Returns:
            List of RetrievalResult objects, best first

        Raises:
            NotReadyError: If the index has not been published
            UpstreamError: If the query embedding fails
        """
        # Resolve the index first so a missing index never costs an upstream call
        index = self.holder.current

        logger.info("retrieval_started", query_length=len(query), top_k=self.top_k)

        query_embedding = await self.embedder.embed_query(query)
        matches = index.query(query_embedding, self.top_k)

        results = [
            RetrievalResult(chunk=chunk, score=score, rank=rank)
            for rank, (chunk, score) in enumerate(matches, 1)
        ]

        logger.info(
            "retrieval_completed",
            query_length=len(query),
            results_returned=len(results),
            top_score=round(results[0].score, 4) if results else None,
            sources=[result.source for result in results],
        )

        return results

    async def retrieve_context(self, query: str) -> List[str]:
        """Retrieve the ordered chunk texts for a query."""
        results = await self.retrieve(query)
        return [result.chunk.text for result in results]
