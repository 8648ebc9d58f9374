#!/usr/bin/env python3
"""
Re-embed Notes Script

Generates embeddings for notes that have none (created while the provider
was down or disabled) or whose embedding comes from a provider of another
dimensionality (provider switched between restarts).

Usage:
    Requires the database and the configured embedding provider:
    $ python scripts/reembed_notes.py
    $ python scripts/reembed_notes.py --batch-size 64
"""

import argparse
import asyncio
import logging
import os
import sys

# Required for direct script execution without package installation
sys.path.append(os.path.join(os.path.dirname(__file__), "../src"))

from neuralmd.core.config import settings  # noqa: E402
from neuralmd.core.database import AsyncSessionLocal, engine  # noqa: E402
from neuralmd.core.logging import setup_logging  # noqa: E402
from neuralmd.services.embeddings import EmbeddingService  # noqa: E402
from neuralmd.services.indexing import REINDEX_BATCH_SIZE, NoteIndexer  # noqa: E402

logger = logging.getLogger("neuralmd.scripts.reembed")


async def main(batch_size: int) -> int:
    """Re-embed stale notes and return how many were updated."""
    embeddings = EmbeddingService(settings)
    if not embeddings.enabled:
        logger.error(
            "No embedding provider available (EMBEDDING_PROVIDER=%s)",
            settings.EMBEDDING_PROVIDER,
        )
        return 0

    indexer = NoteIndexer(embeddings)
    async with AsyncSessionLocal() as session:
        count = await indexer.reindex_stale(session, batch_size=batch_size)

    await engine.dispose()
    logger.info("Re-embedded %d notes (dim=%d)", count, embeddings.dimensions)
    return count


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Re-embed notes with missing or stale embeddings"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=REINDEX_BATCH_SIZE,
        help="Notes per provider call",
    )
    args = parser.parse_args()

    setup_logging()
    asyncio.run(main(args.batch_size))
