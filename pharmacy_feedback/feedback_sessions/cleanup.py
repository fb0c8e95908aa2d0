"""Periodic sweep of abandoned feedback sessions"""
import asyncio
import logging
import os
from pharmacy_feedback.db.postgres import async_session
from pharmacy_feedback.feedback_sessions.service import FeedbackSessionService

logger = logging.getLogger(__name__)

CLEANUP_INTERVAL_SECONDS = int(os.getenv("CLEANUP_INTERVAL_SECONDS", "3600"))
CLEANUP_ENABLED = os.getenv("CLEANUP_ENABLED", "true").lower() == "true"


async def run_cleanup_once(session_factory=async_session) -> int:
    """Open a database session and sweep stale sessions once."""
    async with session_factory() as db:
        service = FeedbackSessionService(db)
        return await service.process_abandoned_sessions()


async def run_cleanup_loop(
    interval_seconds: int = CLEANUP_INTERVAL_SECONDS,
    session_factory=async_session,
):
    """Sweep forever. A failed pass is logged and retried on the next tick."""
    logger.info(f"Abandoned session cleanup running every {interval_seconds}s")
    while True:
        try:
            count = await run_cleanup_once(session_factory)
            logger.info(f"Cleanup pass finished, {count} sessions handled")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Cleanup pass failed: {e}")
        await asyncio.sleep(interval_seconds)
