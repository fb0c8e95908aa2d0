"""Chart and summary aggregates for the statistics and home dashboards"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from pharmacy_feedback.directory.repository import EmployeeRepository
from pharmacy_feedback.directory.service import PositionService
from pharmacy_feedback.feedback_sessions.models import FeedbackSession, TERMINAL_STATUSES
from pharmacy_feedback.feedback_sessions.repository import FeedbackSessionRepository
from pharmacy_feedback.statistics.periods import (
    Bucket,
    resolve_comparison_frame,
    resolve_time_frame,
    trend_buckets,
)
from pharmacy_feedback.statistics.satisfaction import compute_metrics, get_satisfaction_level, rating_distribution
from pharmacy_feedback.statistics.schemas import (
    ClientCompletion,
    EmployeeReviewDistribution,
    FeedbackByTimeSlot,
    HomeDashboard,
    MonthlyRating,
    RecentEmployeeReview,
    RoleDistributionItem,
    StarDistribution,
    StatisticsSummary,
    StatsSummary,
    TopEmployee,
    TrendPoint,
)
from pharmacy_feedback.statistics.service import PHARMACY_POSITIVE_THRESHOLD, StatisticsService
from pharmacy_feedback.utils.timezone import convert_to_local

logger = logging.getLogger(__name__)

# Opening hours split into two-hour slots, local time
TIME_SLOTS = ((8, 10), (10, 12), (12, 14), (14, 16), (16, 18), (18, 20))

TOP_EMPLOYEES = 5
RECENT_REVIEWS = 4
# How many of the latest employee ratings are scanned for known employees
RECENT_REVIEWS_SCAN = 50


def has_rating(session: FeedbackSession) -> bool:
    return session.pharmacy_rating is not None or bool(session.employee_ratings)


def _percentage(part: int, whole: int, digits: int = 0) -> float:
    if whole == 0:
        return 0
    value = part / whole * 100
    return round(value, digits) if digits else round(value)


def _relative_change(current: int, previous: int) -> int:
    """Change in percent of the previous value; 0 when there is nothing to compare to."""
    if previous == 0:
        return 0
    return round((current - previous) / previous * 100)


def _employee_ratings(sessions: Sequence[FeedbackSession]) -> List[int]:
    return [entry.get("rating") for s in sessions for entry in (s.employee_ratings or [])]


def _average(values: Sequence[int]) -> float:
    return round(sum(values) / len(values), 1) if values else 0


def _satisfaction_rate(sessions: Sequence[FeedbackSession]) -> int:
    ratings = [s.pharmacy_rating for s in sessions if s.pharmacy_rating is not None]
    satisfied = sum(1 for rating in ratings if rating >= PHARMACY_POSITIVE_THRESHOLD)
    return _percentage(satisfied, len(ratings))


def _local_activity(session: FeedbackSession) -> datetime:
    return convert_to_local(session.last_active_at)


def _in_bucket(sessions: Sequence[FeedbackSession], bucket: Bucket) -> List[FeedbackSession]:
    return [s for s in sessions if bucket.start <= _local_activity(s) < bucket.end]


class DashboardService:
    """Aggregates behind the dashboard charts, bucketed in pharmacy local time"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.sessions = FeedbackSessionRepository(db)
        self.employees = EmployeeRepository(db)
        self.positions = PositionService(db)
        self.statistics = StatisticsService(db)

    async def _sessions_in_frame(self, time_frame: str, now: Optional[datetime] = None) -> List[FeedbackSession]:
        start, end = resolve_time_frame(time_frame, now)
        return await self.sessions.list_in_period(start, end)

    async def _comparison_sessions(self, time_frame: str, now: Optional[datetime] = None) -> List[FeedbackSession]:
        start, end = resolve_comparison_frame(time_frame, now)
        if start is None:
            return []
        return await self.sessions.list_in_period(start, end)

    def _buckets(self, time_frame: str, sessions: Sequence[FeedbackSession], now: Optional[datetime]) -> List[Bucket]:
        local_now = convert_to_local(now or datetime.utcnow())
        earliest = min((_local_activity(s) for s in sessions), default=None)
        return trend_buckets(time_frame, local_now, earliest)

    async def get_summary(self, time_frame: str = "year", now: Optional[datetime] = None) -> StatisticsSummary:
        """
        Headline figures of the statistics page and how the client funnel completes.

        Changes compare against the same length of time just before the frame
        (the month or year before). Changes are 0 for the "all" frame, which has
        no such window, and when that earlier window holds no sessions.
        """
        current = await self._sessions_in_frame(time_frame, now)
        previous = await self._comparison_sessions(time_frame, now)
        logger.info(f"Dashboard summary over '{time_frame}': {len(current)} sessions, {len(previous)} to compare")
        has_comparison = bool(previous)

        def feedbacks(sessions):
            return [s for s in sessions if has_rating(s)]

        def visitors(sessions):
            return len({s.device_id for s in sessions})

        def feedback_percentage(sessions):
            # Unique devices that rated, over unique devices seen
            rated = len({s.device_id for s in feedbacks(sessions)})
            return min(100, _percentage(rated, visitors(sessions)))

        def completion_rate(sessions):
            completed = sum(1 for s in sessions if s.status in TERMINAL_STATUSES)
            return _percentage(completed, len(sessions), digits=1)

        employee_ratings = _employee_ratings(current)
        previous_employee_ratings = _employee_ratings(previous)

        def change(current_value, previous_value):
            return round(current_value - previous_value, 1) if has_comparison else 0

        stats = StatsSummary(
            satisfaction_rate=_satisfaction_rate(current),
            satisfaction_change=change(_satisfaction_rate(current), _satisfaction_rate(previous)),
            total_feedbacks=len(feedbacks(current)),
            feedback_change=_relative_change(len(feedbacks(current)), len(feedbacks(previous))),
            total_visitors=visitors(current),
            visitors_change=_relative_change(visitors(current), visitors(previous)),
            feedback_percentage=feedback_percentage(current),
            feedback_percentage_change=change(feedback_percentage(current), feedback_percentage(previous)),
            employee_avg_rating=_average(employee_ratings),
            employee_rating_change=change(_average(employee_ratings), _average(previous_employee_ratings)),
            employee_review_count=len(employee_ratings),
            employee_review_change=_relative_change(len(employee_ratings), len(previous_employee_ratings)),
        )
        completion = ClientCompletion(
            started_feedbacks=len(current),
            completed_feedbacks=sum(1 for s in current if s.status in TERMINAL_STATUSES),
            completion_rate=completion_rate(current),
            completion_rate_change=change(completion_rate(current), completion_rate(previous)),
        )
        return StatisticsSummary(stats_summary=stats, client_completion=completion)

    async def get_monthly_ratings(self, year: Optional[int] = None) -> List[MonthlyRating]:
        """Average pharmacy and employee rating for each month of a calendar year"""
        if year is None:
            year = convert_to_local(datetime.utcnow()).year
        first = datetime(year, 1, 1)
        # Local month edges can sit up to a day away from UTC
        sessions = await self.sessions.list_in_period(first - timedelta(days=1), datetime(year + 1, 1, 1) + timedelta(days=1))

        months = []
        for bucket in trend_buckets("year", datetime(year, 12, 1)):
            in_month = _in_bucket(sessions, bucket)
            pharmacy = [s.pharmacy_rating for s in in_month if s.pharmacy_rating is not None]
            months.append(MonthlyRating(
                month=bucket.label,
                pharmacy_rating=_average(pharmacy),
                employee_rating=_average(_employee_ratings(in_month)),
                total_ratings=len(pharmacy),
            ))
        return months

    async def get_satisfaction_trends(self, time_frame: str = "year", now: Optional[datetime] = None) -> List[TrendPoint]:
        """Share of pharmacy ratings of 4 and up, per day or month"""
        sessions = [s for s in await self._sessions_in_frame(time_frame, now) if s.pharmacy_rating is not None]
        points = []
        for bucket in self._buckets(time_frame, sessions, now):
            in_bucket = _in_bucket(sessions, bucket)
            points.append(TrendPoint(label=bucket.label, value=_satisfaction_rate(in_bucket), total=len(in_bucket)))
        return points

    async def get_visitors(self, time_frame: str = "year", now: Optional[datetime] = None) -> List[TrendPoint]:
        """Unique kiosk devices per day or month, with the number of sessions they opened"""
        sessions = await self._sessions_in_frame(time_frame, now)
        points = []
        for bucket in self._buckets(time_frame, sessions, now):
            in_bucket = _in_bucket(sessions, bucket)
            points.append(TrendPoint(
                label=bucket.label,
                value=len({s.device_id for s in in_bucket}),
                total=len(in_bucket),
            ))
        return points

    async def get_star_distribution(self, time_frame: str = "year", now: Optional[datetime] = None) -> StarDistribution:
        start, end = resolve_time_frame(time_frame, now)
        ratings = await self.statistics.pharmacy_ratings(start, end)
        metrics = compute_metrics(ratings)
        return StarDistribution(
            counts=rating_distribution(ratings),
            percentages=metrics["distribution"],
            satisfaction_levels=metrics["satisfaction_levels"],
            average_rating=metrics["average_rating"],
            satisfaction_index=metrics["satisfaction_index"],
            total=metrics["total_feedbacks"],
        )

    async def get_feedback_by_time(self, time_frame: str = "year", now: Optional[datetime] = None) -> List[FeedbackByTimeSlot]:
        """Rated sessions per two-hour slot of the local day. Activity outside opening hours is not counted."""
        counts = {slot: 0 for slot in TIME_SLOTS}
        for session in await self._sessions_in_frame(time_frame, now):
            if not has_rating(session):
                continue
            hour = _local_activity(session).hour
            for start, end in TIME_SLOTS:
                if start <= hour < end:
                    counts[(start, end)] += 1
                    break
        return [FeedbackByTimeSlot(label=f"{start}h-{end}h", count=count) for (start, end), count in counts.items()]

    async def get_role_distribution(self, time_frame: str = "year", now: Optional[datetime] = None) -> List[RoleDistributionItem]:
        """Employee ratings per position title. Every position is listed; ratings of unknown employees are left out."""
        titles = await self.positions.titles_by_id()
        position_of = {
            str(employee.id): titles.get(employee.position_id)
            for employee in await self.employees.list_employees()
        }

        start, end = resolve_time_frame(time_frame, now)
        by_title: Dict[str, List[int]] = {title: [] for title in sorted(titles.values())}
        for session in await self.sessions.list_with_employee_ratings(start, end):
            for entry in session.employee_ratings:
                title = position_of.get(entry.get("employeeId"))
                if title is not None:
                    by_title[title].append(entry.get("rating"))

        return [
            RoleDistributionItem(role=title, count=len(ratings), average_rating=_average(ratings))
            for title, ratings in by_title.items()
        ]

    async def get_home(self) -> HomeDashboard:
        """Top rated employees, latest reviews of known employees, and review coverage"""
        stats = await self.statistics.get_employee_statistics()
        employees = await self.employees.list_employees()
        known = {str(employee.id): employee for employee in employees}
        titles = await self.positions.titles_by_id()

        top = [
            TopEmployee(
                employee_id=item.employee_id,
                name=item.employee_name,
                role=item.position,
                photo=known[item.employee_id].photo,
                rating=item.average_rating,
                review_count=item.total_reviews,
                score=item.score,
            )
            for item in stats
            if item.employee_id in known
        ][:TOP_EMPLOYEES]

        recent = []
        latest, _ = await self.statistics.get_employee_ratings(page=1, page_size=RECENT_REVIEWS_SCAN)
        for rating in latest:
            employee = known.get(rating.employee_id)
            if employee is None:
                continue
            recent.append(RecentEmployeeReview(
                session_id=rating.session_id,
                employee_id=rating.employee_id,
                employee_name=employee.full_name,
                employee_role=titles.get(employee.position_id),
                rating=rating.rating,
                satisfaction=get_satisfaction_level(rating.rating),
                comment=rating.comment,
                date=rating.date,
                client_name=rating.client_name,
            ))
            if len(recent) == RECENT_REVIEWS:
                break

        rated = [item for item in stats if item.employee_id in known]
        total_reviews = sum(item.total_reviews for item in rated)
        weighted = sum(item.average_rating * item.total_reviews for item in rated)
        distribution = EmployeeReviewDistribution(
            with_reviews=len(rated),
            total_employees=len(employees),
            average_rating=round(weighted / total_reviews, 1) if total_reviews else 0,
            total_reviews=total_reviews,
        )
        return HomeDashboard(top_employees=top, recent_reviews=recent, review_distribution=distribution)
