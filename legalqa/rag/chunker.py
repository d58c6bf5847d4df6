"""Text chunking with overlap for RAG pipeline.

Implements character-based chunking to avoid tokenizer dependencies.
"""
from typing import List
from dataclasses import dataclass
import structlog

from legalqa import config

logger = structlog.get_logger()


@dataclass(frozen=True)
class Chunk:
    """A bounded substring of a source document."""

    text: str
    source_id: str
    offset: int
    chunk_index: int = 0

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


class TextChunker:
    """Character-based text chunker with overlap support."""

    # Natural boundaries, largest first: (separator, minimum fill ratio)
    BOUNDARIES = (
        ("\n\n", 0.7),
        (". ", 0.7),
        ("! ", 0.7),
        ("? ", 0.7),
        (".\n", 0.7),
        ("!\n", 0.7),
        ("?\n", 0.7),
        ("\n", 0.7),
        (" ", 0.8),
    )

    def __init__(
        self,
        chunk_size: int = None,
        chunk_overlap: int = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in characters (default from config)
            chunk_overlap: Overlap between chunks in characters (default from config)
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap

        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")

        if self.chunk_overlap < 0:
            raise ValueError(f"Overlap must not be negative, got {self.chunk_overlap}")

        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )

        logger.info(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    def chunk_text(self, text: str, source_id: str = "") -> List[Chunk]:
        """Split text into overlapping chunks.

        Args:
            text: Text to chunk
            source_id: Identifier of the document the text came from

        Returns:
            Ordered list of Chunk objects
        """
        if not text:
            return []

        text_length = len(text)

        if text_length <= self.chunk_size:
            logger.debug(
                "text_shorter_than_chunk_size",
                text_length=text_length,
                chunk_size=self.chunk_size,
            )
            return [Chunk(text=text, source_id=source_id, offset=0, chunk_index=0)]

        chunks: List[Chunk] = []
        start = 0

        while start < text_length:
            end = min(start + self.chunk_size, text_length)
            chunk_content = text[start:end]

            # Only shorten windows that stop before the end of the text
            if end < text_length:
                chunk_content = self._adjust_chunk_boundary(chunk_content)
                end = start + len(chunk_content)

            chunks.append(
                Chunk(
                    text=chunk_content,
                    source_id=source_id,
                    offset=start,
                    chunk_index=len(chunks),
                )
            )

            if end >= text_length:
                break

            next_start = end - self.chunk_overlap

            # Prevent infinite loop when the window was shortened below the overlap
            if next_start <= start:
                next_start = end

            start = next_start

        logger.debug(
            "text_chunked",
            source_id=source_id,
            text_length=text_length,
            chunk_count=len(chunks),
            avg_chunk_size=sum(len(c.text) for c in chunks) // len(chunks),
        )

        return chunks

    def _adjust_chunk_boundary(self, chunk_content: str) -> str:
        """Cut the window at the largest natural boundary near its end.

        Args:
            chunk_content: Current chunk content

        Returns:
            Adjusted chunk content (unchanged if no boundary qualifies)
        """
        for separator, min_ratio in self.BOUNDARIES:
            last_break = chunk_content.rfind(separator)
            if last_break > len(chunk_content) * min_ratio:
                return chunk_content[: last_break + len(separator)]

        return chunk_content

    def get_chunk_stats(self, chunks: List[Chunk]) -> dict:
        """Get statistics about a set of chunks."""
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
            }

        chunk_sizes = [len(c.text) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.chunk_overlap,
        }
