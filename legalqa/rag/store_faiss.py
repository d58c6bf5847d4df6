"""In-memory FAISS vector index for semantic search.

Handles:
- One-shot index construction from embedded chunks
- Cosine similarity search (inner product over L2-normalized vectors)
- Publication of the finished index to request handlers
"""
from dataclasses import dataclass
from typing import List, Tuple, Optional, Sequence, Dict, Any
import numpy as np
import faiss
import structlog

from legalqa.exceptions import IndexBuildError, NotReadyError
from legalqa.rag.chunker import Chunk
from legalqa.rag.embedder import Embedder

logger = structlog.get_logger()


@dataclass(frozen=True)
class EmbeddedChunk:
    """A chunk together with its embedding vector."""

    chunk: Chunk
    vector: Tuple[float, ...]


class VectorIndex:
    """Read-only FAISS flat index over a fixed set of chunks."""

    INDEX_TYPE = "IndexFlatIP"

    def __init__(self, embedded_chunks: Sequence[EmbeddedChunk]):
        """Create the index from precomputed embeddings.

        Args:
            embedded_chunks: Chunks with vectors, in insertion order

        Raises:
            ValueError: If vectors are empty or differ in length
        """
        self._entries: Tuple[EmbeddedChunk, ...] = tuple(embedded_chunks)
        self.dimension: Optional[int] = None
        self._index: Optional[faiss.Index] = None

        if not self._entries:
            logger.warning("vector_index_empty")
            return

        dimensions = {len(entry.vector) for entry in self._entries}
        if len(dimensions) != 1:
            raise ValueError(f"Embedding dimension mismatch: got {sorted(dimensions)}")

        self.dimension = dimensions.pop()
        if self.dimension == 0:
            raise ValueError("Embedding vectors must not be empty")

        vectors = np.array([entry.vector for entry in self._entries], dtype=np.float32)
        faiss.normalize_L2(vectors)

        self._index = faiss.IndexFlatIP(self.dimension)
        self._index.add(vectors)

        logger.info(
            "vector_index_created",
            dimension=self.dimension,
            vector_count=self._index.ntotal,
            index_type=self.INDEX_TYPE,
        )

    @classmethod
    async def build(cls, chunks: Sequence[Chunk], embedder: Embedder) -> "VectorIndex":
        """Embed every chunk and build the index.

        Raises:
            IndexBuildError: If embedding fails for any chunk
        """
        logger.info("index_embedding_started", chunk_count=len(chunks))

        try:
            vectors = await embedder.embed_documents([chunk.text for chunk in chunks])
        except Exception as e:
            logger.error(
                "index_embedding_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise IndexBuildError(f"Failed to embed chunks: {e}") from e

        if len(vectors) != len(chunks):
            raise IndexBuildError(
                f"Expected {len(chunks)} embeddings, got {len(vectors)}"
            )

        try:
            return cls(
                EmbeddedChunk(chunk=chunk, vector=tuple(vector))
                for chunk, vector in zip(chunks, vectors)
            )
        except ValueError as e:
            raise IndexBuildError(str(e)) from e

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[EmbeddedChunk, ...]:
        return self._entries

    def query(self, query_vector: Sequence[float], k: int) -> List[Tuple[Chunk, float]]:
        """Return the k most similar chunks.

        Every stored vector is scored; ties keep insertion order.

        Args:
            query_vector: Query embedding
            k: Number of results to return

        Returns:
            List of (chunk, cosine similarity), best first

        Raises:
            ValueError: If the query dimension doesn't match the index
        """
        if k <= 0 or self._index is None:
            return []

        query = np.array([query_vector], dtype=np.float32)

        if query.shape[1] != self.dimension:
            raise ValueError(
                f"Query dimension mismatch: expected {self.dimension}, "
                f"got {query.shape[1]}"
            )

        faiss.normalize_L2(query)

        # Score the whole index so ties can be ordered by position
        scores, indices = self._index.search(query, self._index.ntotal)

        ranked = sorted(
            zip(indices[0].tolist(), scores[0].tolist()),
            key=lambda pair: (-pair[1], pair[0]),
        )

        results = [
            (self._entries[position].chunk, float(score))
            for position, score in ranked[:k]
        ]

        logger.debug(
            "vector_search_completed",
            top_k=k,
            results_found=len(results),
        )

        return results

    def get_stats(self) -> Dict[str, Any]:
        return {
            "vector_count": len(self._entries),
            "dimension": self.dimension,
            "index_type": self.INDEX_TYPE,
        }


class IndexHolder:
    """Owns the single published reference to the current index.

    Request handlers only read ``current``; the builder calls ``publish``
    once with a fully constructed index.
    """

    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"

    def __init__(self):
        self._index: Optional[VectorIndex] = None
        self.state = self.BUILDING
        self.error: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self._index is not None

    @property
    def current(self) -> VectorIndex:
        """Return the published index.

        Raises:
            NotReadyError: If no index has been published
        """
        index = self._index
        if index is None:
            raise NotReadyError(details=self.error)
        return index

    def publish(self, index: VectorIndex) -> None:
        self._index = index
        self.state = self.READY
        self.error = None
        logger.info("vector_index_published", vector_count=len(index))

    def mark_failed(self, error: str) -> None:
        self.state = self.FAILED
        self.error = error
        logger.error("vector_index_unavailable", error=error)

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {"state": self.state}
        if self._index is not None:
            index_stats = self._index.get_stats()
            stats["chunk_count"] = index_stats["vector_count"]
            stats["dimension"] = index_stats["dimension"]
        else:
            stats["chunk_count"] = 0
            stats["dimension"] = None
        if self.error:
            stats["error"] = self.error
        return stats
