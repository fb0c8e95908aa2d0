from typing import Dict, List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel
from pharmacy_feedback.statistics.satisfaction import SatisfactionLevel


class ClientListItem(BaseModel):
    """Client who left contact details at the kiosk"""
    session_id: UUID
    first_name: str
    last_name: str
    email: str
    phone: str
    consent: bool
    date_joined: datetime
    last_visit: datetime
    total_reviews: int
    avg_rating: int


class ClientListPage(BaseModel):
    items: List[ClientListItem]
    total: int
    page: int
    page_size: int
    total_pages: int


class PharmacyRatingItem(BaseModel):
    session_id: UUID
    rating: int
    date: datetime
    client_name: str
    status: str


class PharmacyRatingStats(BaseModel):
    """Aggregate over the whole filtered window, independent of pagination."""
    average_rating: float
    total_reviews: int
    ratings_distribution: Dict[str, int]
    comparison_to_last_period: float
    satisfaction_index: float


class PharmacyRatingsPage(BaseModel):
    items: List[PharmacyRatingItem]
    stats: PharmacyRatingStats
    total: int
    page: int
    page_size: int
    total_pages: int


class EmployeeRatingReportItem(BaseModel):
    """One employee rating flattened out of its session"""
    session_id: UUID
    employee_id: str
    employee_name: str
    position: Optional[str] = None
    rating: int
    comment: str
    date: datetime
    client_name: str


class EmployeeRatingsPage(BaseModel):
    items: List[EmployeeRatingReportItem]
    total: int
    page: int
    page_size: int
    total_pages: int


class EmployeeStatisticsItem(BaseModel):
    employee_id: str
    employee_name: str
    position: Optional[str] = None
    total_reviews: int
    average_rating: float
    score: float
    rating_distribution: Dict[str, int]


class EmployeeStatisticsResponse(BaseModel):
    employees: List[EmployeeStatisticsItem]
    top_employees: List[EmployeeStatisticsItem]


class SuggestionItem(BaseModel):
    session_id: UUID
    suggestion: str
    date: datetime
    client_name: str
    status: str  # processed | new


class SuggestionsPage(BaseModel):
    items: List[SuggestionItem]
    total: int
    page: int
    page_size: int
    total_pages: int


class StatsSummary(BaseModel):
    """Headline figures; `*_change` of counts is in percent, of rates and averages in points."""
    satisfaction_rate: int
    satisfaction_change: float
    total_feedbacks: int
    feedback_change: int
    total_visitors: int
    visitors_change: int
    feedback_percentage: int
    feedback_percentage_change: float
    employee_avg_rating: float
    employee_rating_change: float
    employee_review_count: int
    employee_review_change: int


class ClientCompletion(BaseModel):
    started_feedbacks: int
    completed_feedbacks: int
    completion_rate: float
    completion_rate_change: float


class StatisticsSummary(BaseModel):
    stats_summary: StatsSummary
    client_completion: ClientCompletion


class MonthlyRating(BaseModel):
    month: str
    pharmacy_rating: float
    employee_rating: float
    total_ratings: int


class TrendPoint(BaseModel):
    """One chart column: `value` is the plotted figure, `total` the sessions behind it"""
    label: str
    value: float
    total: int


class StarDistribution(BaseModel):
    counts: Dict[str, int]
    percentages: Dict[str, float]  # "5_star".."1_star"
    satisfaction_levels: Dict[str, int]
    average_rating: float
    satisfaction_index: float
    total: int


class FeedbackByTimeSlot(BaseModel):
    label: str  # "8h-10h"
    count: int


class RoleDistributionItem(BaseModel):
    role: str
    count: int
    average_rating: float


class TopEmployee(BaseModel):
    employee_id: str
    name: str
    role: Optional[str] = None
    photo: Optional[str] = None
    rating: float
    review_count: int
    score: float


class RecentEmployeeReview(BaseModel):
    session_id: UUID
    employee_id: str
    employee_name: str
    employee_role: Optional[str] = None
    rating: int
    satisfaction: SatisfactionLevel
    comment: str
    date: datetime
    client_name: str


class EmployeeReviewDistribution(BaseModel):
    with_reviews: int
    total_employees: int
    average_rating: float
    total_reviews: int


class HomeDashboard(BaseModel):
    top_employees: List[TopEmployee]
    recent_reviews: List[RecentEmployeeReview]
    review_distribution: EmployeeReviewDistribution
