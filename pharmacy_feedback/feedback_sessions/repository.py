"""Feedback Session Repository Layer"""
from uuid import UUID
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, update, delete, and_, or_, func
from pharmacy_feedback.db.repository import BaseRepository
from pharmacy_feedback.feedback_sessions.models import FeedbackSession, SessionStatus
from pharmacy_feedback.utils.pagination import page_offset

CLIENT_SEARCH_FIELDS = ("firstName", "lastName", "email", "phone")


class FeedbackSessionRepository(BaseRepository):
    """Repository for feedback session database operations"""

    async def create(self, session: FeedbackSession) -> FeedbackSession:
        """Create a new feedback session"""
        self.db.add(session)
        return await self._commit(session, "create feedback session")

    async def get_by_id(self, session_id: UUID) -> Optional[FeedbackSession]:
        """Get feedback session by ID"""
        stmt = select(FeedbackSession).where(FeedbackSession.id == session_id)
        result = await self._execute(stmt, "load feedback session")
        return result.scalar_one_or_none()

    async def update(self, session: FeedbackSession) -> FeedbackSession:
        """Persist changes made to a feedback session"""
        session.updated_at = datetime.utcnow()
        return await self._commit(session, "update feedback session")

    async def delete(self, session: FeedbackSession) -> None:
        """Hard delete a feedback session"""
        await self.db.delete(session)
        await self._commit(None, "delete feedback session")

    def _unchanged_since_read(self, session: FeedbackSession):
        """Row is still active and nobody touched it after `session` was loaded"""
        return and_(
            FeedbackSession.id == session.id,
            FeedbackSession.status == SessionStatus.ACTIVE.value,
            FeedbackSession.last_active_at == session.last_active_at,
        )

    async def abandon_if_unchanged(self, session: FeedbackSession) -> bool:
        """Conditionally move an active session to abandoned. False if it changed meanwhile."""
        stmt = (
            update(FeedbackSession)
            .where(self._unchanged_since_read(session))
            .values(status=SessionStatus.ABANDONED.value, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = await self._execute(stmt, "mark feedback session abandoned")
        await self._commit(None, "mark feedback session abandoned")
        return result.rowcount == 1

    async def delete_if_unchanged(self, session: FeedbackSession) -> bool:
        """Conditionally delete an active session. False if it changed meanwhile."""
        stmt = (
            delete(FeedbackSession)
            .where(self._unchanged_since_read(session))
            .execution_options(synchronize_session="fetch")
        )
        result = await self._execute(stmt, "delete abandoned feedback session")
        await self._commit(None, "delete abandoned feedback session")
        return result.rowcount == 1

    async def get_active_by_device(self, device_id: str) -> Optional[FeedbackSession]:
        """Most recently active session for a device"""
        stmt = select(FeedbackSession).where(
            and_(
                FeedbackSession.device_id == device_id,
                FeedbackSession.status == SessionStatus.ACTIVE.value,
            )
        ).order_by(FeedbackSession.last_active_at.desc()).limit(1)
        result = await self._execute(stmt, "load active session for device")
        return result.scalar_one_or_none()

    async def list_by_status(self, status: str) -> List[FeedbackSession]:
        """All sessions in a given status, oldest activity first"""
        stmt = select(FeedbackSession).where(
            FeedbackSession.status == status
        ).order_by(FeedbackSession.last_active_at)
        result = await self._execute(stmt, "list feedback sessions by status")
        return list(result.scalars().all())

    def _in_period(self, stmt, start: Optional[datetime], end: Optional[datetime]):
        if start is not None:
            stmt = stmt.where(FeedbackSession.last_active_at >= start)
        if end is not None:
            stmt = stmt.where(FeedbackSession.last_active_at <= end)
        return stmt

    async def _page(self, stmt, page: int, page_size: int, operation: str) -> Tuple[List[FeedbackSession], int]:
        """Run one page of `stmt` plus a count of all its rows"""
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = (await self._execute(count_stmt, f"count {operation}")).scalar_one()

        stmt = stmt.limit(page_size).offset(page_offset(page, page_size))
        result = await self._execute(stmt, operation)
        return list(result.scalars().all()), int(total)

    async def list_in_period(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[FeedbackSession]:
        """Sessions whose last activity falls in [start, end], most recent first"""
        stmt = self._in_period(select(FeedbackSession), start, end)
        stmt = stmt.order_by(FeedbackSession.last_active_at.desc())
        result = await self._execute(stmt, "list feedback sessions")
        return list(result.scalars().all())

    async def page_pharmacy_ratings(
        self,
        page: int,
        page_size: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        min_rating: Optional[int] = None,
        max_rating: Optional[int] = None,
    ) -> Tuple[List[FeedbackSession], int]:
        """Sessions carrying a pharmacy rating within [min_rating, max_rating], most recent first"""
        stmt = select(FeedbackSession).where(FeedbackSession.pharmacy_rating.is_not(None))
        stmt = self._in_period(stmt, start, end)
        if min_rating is not None:
            stmt = stmt.where(FeedbackSession.pharmacy_rating >= min_rating)
        if max_rating is not None:
            stmt = stmt.where(FeedbackSession.pharmacy_rating <= max_rating)
        stmt = stmt.order_by(FeedbackSession.last_active_at.desc())
        return await self._page(stmt, page, page_size, "list pharmacy ratings")

    async def pharmacy_rating_counts(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[int, int]:
        """Number of sessions per pharmacy rating value"""
        stmt = select(FeedbackSession.pharmacy_rating, func.count()).where(
            FeedbackSession.pharmacy_rating.is_not(None)
        )
        stmt = self._in_period(stmt, start, end).group_by(FeedbackSession.pharmacy_rating)
        result = await self._execute(stmt, "count pharmacy ratings")
        return {rating: count for rating, count in result.all()}

    async def list_with_employee_ratings(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[FeedbackSession]:
        """Sessions carrying at least one employee rating, most recent first"""
        stmt = select(FeedbackSession).where(func.json_array_length(FeedbackSession.employee_ratings) > 0)
        stmt = self._in_period(stmt, start, end).order_by(FeedbackSession.last_active_at.desc())
        result = await self._execute(stmt, "list employee ratings")
        return list(result.scalars().all())

    async def page_clients(
        self,
        page: int,
        page_size: int,
        search: Optional[str] = None,
    ) -> Tuple[List[FeedbackSession], int]:
        """Sessions where the client left contact details, matching a case-insensitive search"""
        stmt = select(FeedbackSession).where(FeedbackSession.client_data.is_not(None))
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(*(
                FeedbackSession.client_data[field].as_string().ilike(pattern)
                for field in CLIENT_SEARCH_FIELDS
            )))
        stmt = stmt.order_by(FeedbackSession.last_active_at.desc())
        return await self._page(stmt, page, page_size, "list clients")

    async def page_suggestions(
        self,
        page: int,
        page_size: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Tuple[List[FeedbackSession], int]:
        """Sessions carrying a non-blank suggestion, most recent first"""
        stmt = select(FeedbackSession).where(
            FeedbackSession.suggestion.is_not(None),
            func.trim(FeedbackSession.suggestion) != "",
        )
        stmt = self._in_period(stmt, start, end).order_by(FeedbackSession.last_active_at.desc())
        return await self._page(stmt, page, page_size, "list suggestions")
