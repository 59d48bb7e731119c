"""
Worker entrypoint for the ingest backlog.
Runs the pipeline for every ingest log still in `pending`, oldest first
(messages received while the API was down or the queue was full).
"""
import argparse
import asyncio
import logging
from typing import Optional

from jobboard import database
from jobboard.dependencies import build_pipeline
from jobboard.exceptions import ConfigError, JobBoardError
from jobboard.services.extraction import ExtractionClient
from jobboard.services.pipeline import PipelineResult
from jobboard.services.stores import SqlMessageStore

logger = logging.getLogger(__name__)


async def worker_main(limit: int = 100, extractor: Optional[ExtractionClient] = None) -> list[PipelineResult]:
    async with database.AsyncSessionLocal() as db:
        # Step 1: Collect the backlog
        pending = await SqlMessageStore(db).list_pending(limit)
        if not pending:
            logger.info("No pending ingest logs found.")
            return []
        logger.info(f"Processing {len(pending)} pending ingest logs")
        
        # Step 2: Run each through the pipeline, one at a time
        pipeline = build_pipeline(db, extractor=extractor)
        results = []
        for log_id in [log.id for log in pending]:
            try:
                result = await pipeline.run(log_id)
            except ConfigError as e:
                logger.error(f"Stopping backlog run: {e}")
                break
            except JobBoardError as e:
                logger.error(f"Skipping ingest log {log_id}: {e}")
                continue
            logger.info(f"Ingest log {log_id} → {result.status.value}")
            results.append(result)
        return results


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    parser = argparse.ArgumentParser(description="Process pending ingest logs")
    parser.add_argument("--limit", type=int, default=100, help="Max logs to process")
    args = parser.parse_args()
    asyncio.run(worker_main(args.limit))
