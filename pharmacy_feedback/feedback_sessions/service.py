import logging
import os
from uuid import UUID
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from pharmacy_feedback.db.exceptions import StorageException
from pharmacy_feedback.feedback_sessions.models import (
    DEFAULT_INACTIVITY_TIMEOUT_MINUTES,
    FeedbackSession,
    SessionStatus,
    TERMINAL_STATUSES,
)
from pharmacy_feedback.feedback_sessions.repository import FeedbackSessionRepository
from pharmacy_feedback.feedback_sessions.exceptions import (
    FeedbackSessionNotFoundException,
    InvalidStatusTransitionException,
)
from pharmacy_feedback.feedback_sessions.staleness import is_stale, has_feedback_data
from pharmacy_feedback.feedback_sessions.validators import (
    normalize_client_data,
    normalize_employee_ratings,
    parse_session_id,
    validate_rating,
)

logger = logging.getLogger(__name__)

# Shared in-store tablets drop a visit after two idle minutes
KIOSK_INACTIVITY_TIMEOUT_MINUTES = int(os.getenv("KIOSK_INACTIVITY_TIMEOUT_MINUTES", "2"))


class FeedbackSessionService:
    """Lifecycle manager: the only writer of feedback session records"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = FeedbackSessionRepository(db)

    async def initialize_session(
        self,
        device_id: str,
        inactivity_timeout_minutes: int = DEFAULT_INACTIVITY_TIMEOUT_MINUTES,
    ) -> FeedbackSession:
        """Create an empty active session for a device."""
        now = datetime.utcnow()
        session = FeedbackSession(
            device_id=device_id,
            employee_ratings=[],
            status=SessionStatus.ACTIVE.value,
            started_at=now,
            last_active_at=now,
            inactivity_timeout_minutes=inactivity_timeout_minutes,
        )
        session = await self.repository.create(session)
        logger.info(f"Feedback session {session.id} started on device {device_id}")
        return session

    async def create_session(
        self,
        device_id: str,
        pharmacy_rating: Any,
        employee_ratings: Any,
        inactivity_timeout_minutes: int = KIOSK_INACTIVITY_TIMEOUT_MINUTES,
    ) -> FeedbackSession:
        """
        Start a session from the first kiosk screen.

        Both ratings are validated before anything is written, so a malformed
        payload never leaves a record behind.
        """
        rating = validate_rating(pharmacy_rating, "pharmacy rating")
        ratings = normalize_employee_ratings(employee_ratings)

        session = await self.initialize_session(device_id, inactivity_timeout_minutes)
        await self.update_pharmacy_rating(session.id, rating)
        return await self.update_employee_ratings(session.id, ratings)

    async def get_session(self, session_id: UUID | str) -> FeedbackSession:
        """Get a feedback session by ID"""
        session = await self.repository.get_by_id(parse_session_id(session_id))

        if not session:
            raise FeedbackSessionNotFoundException(str(session_id))

        return session

    async def get_active_session_by_device(self, device_id: str) -> Optional[FeedbackSession]:
        """Most recent active, non-stale session for a device, if any."""
        session = await self.repository.get_active_by_device(device_id)
        if session is None or is_stale(session):
            return None
        return session

    async def update_pharmacy_rating(self, session_id: UUID | str, rating: Any) -> FeedbackSession:
        rating = validate_rating(rating, "pharmacy rating")
        session = await self.get_session(session_id)

        session.pharmacy_rating = rating
        session.last_active_at = datetime.utcnow()

        return await self.repository.update(session)

    async def update_employee_ratings(self, session_id: UUID | str, ratings: Any) -> FeedbackSession:
        """Replace the whole employee ratings list (last write wins)."""
        ratings = normalize_employee_ratings(ratings)
        session = await self.get_session(session_id)

        session.employee_ratings = ratings
        session.last_active_at = datetime.utcnow()

        return await self.repository.update(session)

    async def update_client_data(self, session_id: UUID | str, data: Optional[Dict]) -> FeedbackSession:
        client_data = normalize_client_data(data)
        session = await self.get_session(session_id)

        session.client_data = client_data
        session.last_active_at = datetime.utcnow()

        return await self.repository.update(session)

    async def update_suggestion(self, session_id: UUID | str, suggestion: str) -> FeedbackSession:
        """Store the suggestion verbatim; an empty string records a skipped step."""
        session = await self.get_session(session_id)

        session.suggestion = "" if suggestion is None else str(suggestion)
        session.last_active_at = datetime.utcnow()

        return await self.repository.update(session)

    async def complete_session(self, session_id: UUID | str) -> FeedbackSession:
        """
        Mark a session completed.

        Completing an already completed or processed session changes nothing,
        the first completed_at is kept.
        """
        session = await self.get_session(session_id)

        if session.status in TERMINAL_STATUSES:
            logger.info(f"Feedback session {session.id} already {session.status}, nothing to do")
            return session

        now = datetime.utcnow()
        session.status = SessionStatus.COMPLETED.value
        session.completed_at = now
        session.last_active_at = now

        session = await self.repository.update(session)
        logger.info(f"Feedback session {session.id} completed")
        return session

    async def mark_processed(self, session_id: UUID | str) -> FeedbackSession:
        """Reporting pass: completed -> processed. completed_at is kept."""
        session = await self.get_session(session_id)

        if session.status == SessionStatus.PROCESSED.value:
            return session
        if session.status != SessionStatus.COMPLETED.value:
            raise InvalidStatusTransitionException(session.status, SessionStatus.PROCESSED.value)

        session.status = SessionStatus.PROCESSED.value
        return await self.repository.update(session)

    async def update_session_activity(self, session_id: UUID | str) -> bool:
        """
        Touch last_active_at.

        Best-effort: unknown ids and storage failures are logged and reported
        as False instead of raising.
        """
        try:
            session = await self.get_session(session_id)
            session.last_active_at = datetime.utcnow()
            await self.repository.update(session)
            return True
        except FeedbackSessionNotFoundException:
            return False
        except StorageException as e:
            logger.warning(f"Could not touch feedback session {session_id}: {e.detail}")
            return False

    async def process_abandoned_sessions(self, now: Optional[datetime] = None) -> int:
        """
        Sweep stale active sessions.

        Sessions holding feedback are kept and marked abandoned, empty ones are
        deleted. Each write is conditional on the row being unchanged since it
        was listed, so a completion or update landing mid-sweep wins. Returns
        the number of sessions handled.
        """
        if now is None:
            now = datetime.utcnow()

        handled = 0
        for session in await self.repository.list_by_status(SessionStatus.ACTIVE.value):
            if not is_stale(session, now):
                continue
            if has_feedback_data(session):
                applied = await self.repository.abandon_if_unchanged(session)
            else:
                applied = await self.repository.delete_if_unchanged(session)
            if applied:
                handled += 1
            else:
                logger.info(f"Feedback session {session.id} changed during sweep, left as is")

        if handled:
            logger.info(f"Processed {handled} abandoned feedback sessions")
        return handled
