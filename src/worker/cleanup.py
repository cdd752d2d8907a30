"""Periodic removal of registrations that were never activated."""

import logging
import threading
from datetime import timedelta

from port.user_repository import UserRepository
from services.user_service import ACTIVATION_RETENTION, remove_not_activated_users

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 24 * 60 * 60


def run_cleanup_once(repo: UserRepository, retention: timedelta = ACTIVATION_RETENTION) -> int:
    """Run one cleanup pass. Return the number of users removed, 0 on failure."""
    try:
        return len(remove_not_activated_users(repo, retention=retention))
    except Exception as e:
        # Keep the loop alive; the next pass retries
        logger.error(f"Cleanup pass failed: {e}", exc_info=True)
        return 0


def run_cleanup_loop(
    repo: UserRepository,
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    stop_event: threading.Event | None = None,
    retention: timedelta = ACTIVATION_RETENTION,
) -> None:
    """Run cleanup passes until stop_event is set.

    A pass runs immediately, then once per interval. Waiting on the
    event instead of sleeping lets a shutdown interrupt the wait.
    """
    stop_event = stop_event or threading.Event()
    logger.info("Cleanup worker started", extra={"intervalSeconds": interval_seconds})

    while not stop_event.is_set():
        removed = run_cleanup_once(repo, retention)
        logger.debug("Cleanup pass finished", extra={"removed": removed})
        stop_event.wait(interval_seconds)

    logger.info("Cleanup worker stopped")
