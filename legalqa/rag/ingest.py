"""Ingest pipeline for indexing legal documents.

Orchestrates:
- File discovery
- Text / PDF extraction
- Text chunking
- Embedding generation
- Index publication
"""
import asyncio
from pathlib import Path
from typing import List, Dict, Tuple, Optional, Callable
import structlog

from legalqa import config
from legalqa.exceptions import IndexBuildError
from legalqa.rag.chunker import Chunk, TextChunker
from legalqa.rag.embedder import Embedder
from legalqa.rag.loader import DocumentLoader
from legalqa.rag.store_faiss import IndexHolder, VectorIndex

logger = structlog.get_logger()


class IngestPipeline:
    """Pipeline that turns a documents directory into a VectorIndex."""

    def __init__(
        self,
        embedder: Embedder,
        documents_dir: Path = None,
        chunker: Optional[TextChunker] = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            embedder: Embedding capability used for every chunk
            documents_dir: Directory containing .txt/.pdf files (default from config)
            chunker: Text chunker (default uses config chunk size/overlap)
        """
        self.documents_dir = Path(documents_dir or config.DOCUMENTS_DIR)
        self.embedder = embedder
        self.loader = DocumentLoader(self.documents_dir)
        self.chunker = chunker or TextChunker()

        self.stats = self._empty_stats()

        logger.info(
            "ingest_pipeline_initialized",
            documents_dir=str(self.documents_dir),
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
        )

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            "files_processed": 0,
            "files_failed": 0,
            "chunks_created": 0,
            "embeddings_generated": 0,
        }

    def collect_chunks(
        self, progress_callback: Optional[Callable[[int, int, Path], None]] = None
    ) -> List[Chunk]:
        """Load and chunk every document in the directory.

        Unreadable files are logged and skipped.

        Args:
            progress_callback: Optional callback function(current, total, file_path)

        Returns:
            All chunks, grouped by file in sorted path order
        """
        files = self.loader.discover_files()
        chunks: List[Chunk] = []

        for idx, file_path in enumerate(files, 1):
            if progress_callback:
                progress_callback(idx, len(files), file_path)

            try:
                document = self.loader.load_file(file_path)
            except Exception as e:
                logger.error(
                    "file_ingestion_failed",
                    path=str(file_path),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self.stats["files_failed"] += 1
                continue

            if not document.text.strip():
                logger.warning("no_text_extracted", path=str(file_path))
                self.stats["files_processed"] += 1
                continue

            file_chunks = self.chunker.chunk_text(document.text, source_id=document.source_id)
            chunks.extend(file_chunks)

            self.stats["files_processed"] += 1
            self.stats["chunks_created"] += len(file_chunks)

            logger.info(
                "file_ingested",
                source_id=document.source_id,
                page_count=document.page_count,
                chunks_created=len(file_chunks),
            )

        return chunks

    async def build_index(
        self, progress_callback: Optional[Callable[[int, int, Path], None]] = None
    ) -> Tuple[VectorIndex, Dict[str, int]]:
        """Build a complete index from the documents directory.

        Returns:
            Tuple of (index, ingestion statistics)

        Raises:
            FileNotFoundError: If the documents directory doesn't exist
            IndexBuildError: If no text was found or any chunk fails to embed
        """
        logger.info("index_build_started", documents_dir=str(self.documents_dir))

        self.stats = self._empty_stats()
        # File reads and PDF parsing stay off the event loop
        chunks = await asyncio.to_thread(self.collect_chunks, progress_callback)

        if not chunks:
            logger.error("no_chunks_to_index", documents_dir=str(self.documents_dir))
            raise IndexBuildError(
                f"No document text found in {self.documents_dir}",
                details=f"{self.stats['files_failed']} file(s) failed to load",
            )

        index = await VectorIndex.build(chunks, self.embedder)
        self.stats["embeddings_generated"] = len(index)

        logger.info("index_build_completed", stats=self.stats)

        return index, self.stats

    async def ingest_into(self, holder: IndexHolder) -> Dict[str, int]:
        """Build the index and publish it to ``holder``.

        On failure the holder is marked failed and the error re-raised.
        """
        try:
            index, stats = await self.build_index()
        except Exception as e:
            holder.mark_failed(str(e))
            raise

        holder.publish(index)
        return stats
