#!/usr/bin/env python
"""Rebuild the vector index from every stored document.

Usage:
    python scripts/reindex.py              # Rebuild after a confirmation delay
    python scripts/reindex.py --yes        # Rebuild immediately
    python scripts/reindex.py --verbose    # Show detailed progress
"""
import argparse
import asyncio
import sys
from datetime import datetime

import structlog

from docqa import config
from docqa.container import build_container
from docqa.db import DocumentRecord

logger = structlog.get_logger()


class ProgressReporter:
    """Simple progress reporter for CLI."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.start_time = None

    def start(self, message: str):
        self.start_time = datetime.now()
        print(f"\n{'=' * 60}")
        print(f"  {message}")
        print(f"{'=' * 60}\n")

    def update(self, current: int, total: int, record: DocumentRecord):
        percentage = (current / total) * 100 if total > 0 else 0
        bar_length = 40
        filled = int(bar_length * current / total) if total > 0 else 0
        bar = "█" * filled + "░" * (bar_length - filled)

        print(
            f"\r  [{bar}] {percentage:5.1f}% ({current}/{total}) {record.display_name[:30]:<30}",
            end="",
            flush=True,
        )

        if self.verbose:
            print()

    def finish(self, stats: dict):
        print("\n")
        elapsed_seconds = (datetime.now() - self.start_time).total_seconds()

        print(f"{'=' * 60}")
        print("  Re-indexing Complete!")
        print(f"{'=' * 60}\n")
        print(f"  Documents processed:  {stats['documents_processed']}")
        print(f"  Documents failed:     {stats['documents_failed']}")
        print(f"  Chunks created:       {stats['chunks_created']}")
        print(f"  Chunks stored:        {stats['chunks_stored']}")
        print(f"  Chunks dropped:       {stats['chunks_failed']}")
        print(f"  Time elapsed:         {elapsed_seconds:.1f}s")

        if stats["chunks_stored"] > 0 and elapsed_seconds > 0:
            rate = stats["chunks_stored"] / elapsed_seconds
            print(f"  Indexing rate:        {rate:.1f} chunks/sec")

        print(f"\n{'=' * 60}\n")

        if stats["documents_failed"] > 0:
            print(f"Warning: {stats['documents_failed']} document(s) failed to index.")
            print("   Check logs for details.\n")


async def main():
    """Main entry point for reindex script."""
    parser = argparse.ArgumentParser(
        description="Rebuild the vector index from stored documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip the confirmation delay",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show verbose progress output",
    )
    args = parser.parse_args()

    progress = ProgressReporter(verbose=args.verbose)

    try:
        print("\nConfiguration:")
        print(f"   Data directory:   {config.DATA_DIR}")
        print(f"   Embedding model:  {config.EMBEDDING_MODEL} (dim={config.EMBEDDING_DIMENSION})")
        print(f"   Window size:      {config.CHUNK_MAX_CHARS} chars")
        print(f"   Overlap budget:   {config.CHUNK_OVERLAP_CHARS} chars")

        if not args.yes:
            print("\nThe existing index and chunk table will be cleared.")
            print("   Press Ctrl+C within 3 seconds to cancel...")
            await asyncio.sleep(3)

        container = build_container()
        container.startup()

        progress.start("Re-indexing Documents")
        stats = await container.documents.reindex_all(progress_callback=progress.update)
        progress.finish(stats)

        if stats["documents_failed"] > 0:
            sys.exit(1)

    except KeyboardInterrupt:
        print("\n\nRe-indexing cancelled by user.\n")
        sys.exit(1)

    except Exception as e:
        print(f"\nError: {e}\n")
        logger.error("reindex_script_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
