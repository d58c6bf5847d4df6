#!/usr/bin/env python
"""Build the in-memory document index and optionally run a test query.

Nothing is persisted; the server builds its own index at startup. Use this
to check that documents load, chunk and embed before deploying.

Usage:
    python scripts/build_index.py                         # Build and show stats
    python scripts/build_index.py --query "Kira süresi?"  # Show top matches
    python scripts/build_index.py --documents ./docs      # Other directory
"""
import argparse
import asyncio
import sys
from pathlib import Path
from datetime import datetime

from legalqa import config
from legalqa.rag.embedder import GeminiEmbedder
from legalqa.rag.ingest import IngestPipeline
from legalqa.rag.retriever import Retriever
from legalqa.rag.store_faiss import IndexHolder
import structlog

logger = structlog.get_logger()


class ProgressReporter:
    """Simple progress reporter for CLI."""

    def __init__(self):
        self.start_time = None

    def start(self, message: str):
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def update(self, current: int, total: int, file_path: Path):
        percentage = (current / total) * 100 if total > 0 else 0
        bar_length = 40
        filled = int(bar_length * current / total) if total > 0 else 0
        bar = "█" * filled + "░" * (bar_length - filled)

        print(
            f"\r  [{bar}] {percentage:5.1f}% ({current}/{total}) {file_path.name[:30]:<30}",
            end="",
            flush=True,
        )

    def finish(self, stats: dict):
        print("\n")
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()

        print(f"  Files processed:      {stats['files_processed']}")
        print(f"  Files failed:         {stats['files_failed']}")
        print(f"  Chunks created:       {stats['chunks_created']}")
        print(f"  Embeddings generated: {stats['embeddings_generated']}")
        print(f"  Time elapsed:         {elapsed_seconds:.1f}s")

        if stats["files_failed"] > 0:
            print(f"\n  Warning: {stats['files_failed']} file(s) failed to load. Check logs.")

        print()


async def main():
    """Main entry point for the index build script."""
    parser = argparse.ArgumentParser(
        description="Build the document index and run an optional test query",
    )
    parser.add_argument(
        "--documents",
        type=Path,
        default=None,
        help=f"Documents directory (default: {config.DOCUMENTS_DIR})",
    )
    parser.add_argument("--query", "-q", default=None, help="Query to run against the index")
    parser.add_argument(
        "--top-k",
        type=int,
        default=config.RETRIEVAL_TOP_K,
        help=f"Number of matches to show (default: {config.RETRIEVAL_TOP_K})",
    )
    args = parser.parse_args()

    progress = ProgressReporter()

    print("\nConfiguration:")
    print(f"   Documents directory: {args.documents or config.DOCUMENTS_DIR}")
    print(f"   Embedding model:     {config.EMBEDDING_MODEL}")
    print(f"   Chunk size:          {config.CHUNK_SIZE} chars")
    print(f"   Chunk overlap:       {config.CHUNK_OVERLAP} chars")

    embedder = GeminiEmbedder()
    holder = IndexHolder()
    pipeline = IngestPipeline(embedder, documents_dir=args.documents)

    try:
        progress.start("Indexing Documents")
        index, stats = await pipeline.build_index(progress_callback=progress.update)
        holder.publish(index)
        progress.finish(stats)

        if args.query:
            retriever = Retriever(embedder, holder, top_k=args.top_k)
            results = await retriever.retrieve(args.query)

            print(f"Top {len(results)} matches for: {args.query}\n")
            for result in results:
                preview = result.chunk.text[:160].replace("\n", " ")
                print(f"  {result.rank}. [{result.score:.3f}] {result.source}")
                print(f"     {preview}\n")

    except KeyboardInterrupt:
        print("\n\nIndexing cancelled by user.\n")
        sys.exit(1)

    except Exception as e:
        print(f"\nError: {e}\n")
        logger.error("build_index_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
