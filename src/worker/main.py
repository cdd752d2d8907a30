"""Cleanup worker entry point."""

import os
import sys
import logging
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from adapter.mongodb.connection import get_mongodb_client, DATABASE_NAME
from adapter.mongodb.user_repository import MongoUserRepository
from utils.logging import setup_structured_logging
from worker.cleanup import DEFAULT_INTERVAL_SECONDS, run_cleanup_loop

setup_structured_logging()

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = float(os.getenv('CLEANUP_INTERVAL_SECONDS', DEFAULT_INTERVAL_SECONDS))
ACTIVATION_RETENTION_DAYS = float(os.getenv('ACTIVATION_RETENTION_DAYS', 3))


def main():
    """Main entry point for the cleanup worker."""
    logger.info("Starting user directory cleanup worker...")

    try:
        client = get_mongodb_client()
        if client is None:
            logger.error("Cannot start worker: MongoDB connection failed")
            sys.exit(1)
        repo = MongoUserRepository(client[DATABASE_NAME])

        run_cleanup_loop(
            repo,
            interval_seconds=CLEANUP_INTERVAL_SECONDS,
            retention=timedelta(days=ACTIVATION_RETENTION_DAYS),
        )
    except KeyboardInterrupt:
        logger.info("Worker stopped")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
