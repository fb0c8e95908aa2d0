"""Read-only aggregates over feedback sessions for the admin dashboard"""
import logging
from io import BytesIO
from uuid import UUID
from datetime import datetime
from typing import Dict, List, Optional, Tuple
import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession
from pharmacy_feedback.directory.repository import EmployeeRepository
from pharmacy_feedback.directory.service import PositionService
from pharmacy_feedback.feedback_sessions.models import FeedbackSession, SessionStatus
from pharmacy_feedback.feedback_sessions.repository import FeedbackSessionRepository
from pharmacy_feedback.statistics.periods import resolve_previous_period, resolve_time_filter
from pharmacy_feedback.statistics.satisfaction import compute_metrics, employee_score, rating_distribution
from pharmacy_feedback.statistics.schemas import (
    ClientListItem,
    EmployeeRatingReportItem,
    EmployeeStatisticsItem,
    PharmacyRatingItem,
    PharmacyRatingStats,
    SuggestionItem,
)
from pharmacy_feedback.utils.pagination import paginate
from pharmacy_feedback.utils.timezone import convert_to_local

logger = logging.getLogger(__name__)

SENTIMENTS = ("all", "positive", "negative")

# Pharmacy ratings of 4 and up read as positive, employee ratings of 3 and up
PHARMACY_POSITIVE_THRESHOLD = 4
EMPLOYEE_POSITIVE_THRESHOLD = 3


def client_name(session: FeedbackSession) -> str:
    data = session.client_data or {}
    name = f"{data.get('firstName', '')} {data.get('lastName', '')}".strip()
    return name or "Anonymous"


def _check_sentiment(sentiment: str) -> None:
    if sentiment not in SENTIMENTS:
        raise ValueError(f"Invalid sentiment '{sentiment}'. Must be one of: {', '.join(SENTIMENTS)}")


def _sentiment_bounds(sentiment: str, positive_threshold: int) -> Tuple[Optional[int], Optional[int]]:
    """Inclusive (min, max) rating range of a sentiment"""
    if sentiment == "positive":
        return positive_threshold, None
    if sentiment == "negative":
        return None, positive_threshold - 1
    return None, None


def _matches_sentiment(rating: int, sentiment: str, positive_threshold: int) -> bool:
    if sentiment == "positive":
        return rating >= positive_threshold
    if sentiment == "negative":
        return rating < positive_threshold
    return True


class StatisticsService:
    """Service for dashboard lists, aggregates and exports"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.sessions = FeedbackSessionRepository(db)
        self.employees = EmployeeRepository(db)
        self.positions = PositionService(db)

    async def _employee_lookup(self) -> Dict[str, Tuple[str, Optional[str]]]:
        """employee id (as stored in sessions) -> (full name, position title)"""
        titles = await self.positions.titles_by_id()
        return {
            str(employee.id): (employee.full_name, titles.get(employee.position_id))
            for employee in await self.employees.list_employees()
        }

    async def pharmacy_ratings(self, start: Optional[datetime], end: Optional[datetime]) -> List[int]:
        """Every pharmacy rating in the window, expanded from per-value counts"""
        counts = await self.sessions.pharmacy_rating_counts(start, end)
        return [rating for rating, count in sorted(counts.items()) for _ in range(count)]

    async def list_clients(
        self,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
    ) -> Tuple[List[ClientListItem], int]:
        """Clients with contact details, optionally filtered by a case-insensitive search"""
        page_items, total = await self.sessions.page_clients(page, page_size, search)
        items = [
            ClientListItem(
                session_id=s.id,
                first_name=s.client_data.get("firstName", ""),
                last_name=s.client_data.get("lastName", ""),
                email=s.client_data.get("email", ""),
                phone=s.client_data.get("phone", ""),
                consent=bool(s.client_data.get("consent", False)),
                date_joined=convert_to_local(s.started_at),
                last_visit=convert_to_local(s.last_active_at),
                total_reviews=1 if (s.pharmacy_rating or s.employee_ratings) else 0,
                avg_rating=s.pharmacy_rating or 0,
            )
            for s in page_items
        ]
        return items, total

    async def get_pharmacy_ratings(
        self,
        time_filter: str = "all",
        page: int = 1,
        page_size: int = 10,
        rating: Optional[int] = None,
        sentiment: str = "all",
        now: Optional[datetime] = None,
    ) -> Tuple[List[PharmacyRatingItem], int]:
        """Pharmacy ratings in a window, filtered by exact value or sentiment"""
        _check_sentiment(sentiment)
        start, end = resolve_time_filter(time_filter, now)
        min_rating, max_rating = _sentiment_bounds(sentiment, PHARMACY_POSITIVE_THRESHOLD)
        if rating is not None:
            min_rating = rating if min_rating is None else max(min_rating, rating)
            max_rating = rating if max_rating is None else min(max_rating, rating)

        page_items, total = await self.sessions.page_pharmacy_ratings(
            page, page_size, start, end, min_rating=min_rating, max_rating=max_rating
        )
        items = [
            PharmacyRatingItem(
                session_id=s.id,
                rating=s.pharmacy_rating,
                date=convert_to_local(s.last_active_at),
                client_name=client_name(s),
                status=s.status,
            )
            for s in page_items
        ]
        return items, total

    async def pharmacy_rating_stats(self, time_filter: str = "all", now: Optional[datetime] = None) -> PharmacyRatingStats:
        """
        Average, count and distribution of pharmacy ratings in a window,
        with the change in average against the window just before it.
        """
        start, end = resolve_time_filter(time_filter, now)
        ratings = await self.pharmacy_ratings(start, end)
        metrics = compute_metrics(ratings)
        average = round(metrics["average_rating"], 1)

        comparison = 0.0
        prev_start, prev_end = resolve_previous_period(time_filter, now)
        if prev_start is not None:
            previous = await self.pharmacy_ratings(prev_start, prev_end)
            previous_average = round(compute_metrics(previous)["average_rating"], 1)
            if previous_average > 0:
                comparison = round(average - previous_average, 1)

        return PharmacyRatingStats(
            average_rating=average,
            total_reviews=metrics["total_feedbacks"],
            ratings_distribution=rating_distribution(ratings),
            comparison_to_last_period=comparison,
            satisfaction_index=metrics["satisfaction_index"],
        )

    async def get_employee_ratings(
        self,
        page: int = 1,
        page_size: int = 10,
        employee_id: Optional[str] = None,
        sentiment: str = "all",
    ) -> Tuple[List[EmployeeRatingReportItem], int]:
        """Every employee rating as its own row, most recent session first"""
        _check_sentiment(sentiment)
        lookup = await self._employee_lookup()

        rows = []
        for session in await self.sessions.list_with_employee_ratings():
            for entry in session.employee_ratings:
                if employee_id and entry.get("employeeId") != employee_id:
                    continue
                if not _matches_sentiment(entry.get("rating", 0), sentiment, EMPLOYEE_POSITIVE_THRESHOLD):
                    continue
                rows.append((session, entry))

        page_rows, total = paginate(rows, page, page_size)
        items = []
        for session, entry in page_rows:
            name, position = lookup.get(entry.get("employeeId"), ("N/A", None))
            items.append(EmployeeRatingReportItem(
                session_id=session.id,
                employee_id=entry.get("employeeId"),
                employee_name=name,
                position=position,
                rating=entry.get("rating"),
                comment=entry.get("comment") or "",
                date=convert_to_local(session.last_active_at),
                client_name=client_name(session),
            ))
        return items, total

    async def get_employee_statistics(self, employee_id: Optional[str] = None) -> List[EmployeeStatisticsItem]:
        """Per-employee review count, average, distribution and weighted score, best score first"""
        collected: Dict[str, List[int]] = {}
        for session in await self.sessions.list_with_employee_ratings():
            for entry in session.employee_ratings:
                key = entry.get("employeeId")
                if employee_id and key != employee_id:
                    continue
                collected.setdefault(key, []).append(entry.get("rating"))

        lookup = await self._employee_lookup()
        stats = []
        for key, ratings in collected.items():
            average = sum(ratings) / len(ratings)
            name, position = lookup.get(key, ("N/A", None))
            stats.append(EmployeeStatisticsItem(
                employee_id=key,
                employee_name=name,
                position=position,
                total_reviews=len(ratings),
                average_rating=round(average, 1),
                score=employee_score(average, len(ratings)),
                rating_distribution=rating_distribution(ratings),
            ))

        stats.sort(key=lambda item: item.score, reverse=True)
        return stats

    async def get_suggestions(
        self,
        page: int = 1,
        page_size: int = 10,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[SuggestionItem], int]:
        """Non-empty suggestions; "processed" once the session went through reporting"""
        page_items, total = await self.sessions.page_suggestions(page, page_size, start_date, end_date)
        items = [
            SuggestionItem(
                session_id=s.id,
                suggestion=s.suggestion,
                date=convert_to_local(s.last_active_at),
                client_name=client_name(s),
                status="processed" if s.status == SessionStatus.PROCESSED.value else "new",
            )
            for s in page_items
        ]
        return items, total

    async def export_rows(self, time_filter: str = "all", now: Optional[datetime] = None) -> List[Dict]:
        """One flat row per session in the window, for CSV or JSON export"""
        start, end = resolve_time_filter(time_filter, now)
        rows = []
        for session in await self.sessions.list_in_period(start, end):
            ratings = session.employee_ratings or []
            rows.append({
                "ID": str(session.id),
                "Device ID": session.device_id,
                "Status": session.status,
                "Pharmacy Rating": session.pharmacy_rating if session.pharmacy_rating is not None else "",
                "Employee Ratings": "; ".join(f"{r.get('employeeId')}={r.get('rating')}" for r in ratings),
                "Client": client_name(session),
                "Suggestion": session.suggestion or "",
                "Started At": convert_to_local(session.started_at).isoformat(),
                "Last Active At": convert_to_local(session.last_active_at).isoformat(),
                "Completed At": convert_to_local(session.completed_at).isoformat() if session.completed_at else "",
            })
        logger.info(f"Exporting {len(rows)} feedback sessions (filter: {time_filter})")
        return rows

    def generate_csv(self, rows: List[Dict]) -> BytesIO:
        """Generate CSV file from exported rows"""
        df = pd.DataFrame(rows)
        buffer = BytesIO()
        df.to_csv(buffer, index=False)
        buffer.seek(0)
        return buffer


async def employee_rating_stats(db: AsyncSession, employee_id: UUID) -> Optional[EmployeeStatisticsItem]:
    """Statistics for a single employee, or None if never rated"""
    stats = await StatisticsService(db).get_employee_statistics(str(employee_id))
    return stats[0] if stats else None
