"""Admin dashboard REST API endpoints"""
from datetime import datetime
from typing import List
from fastapi import APIRouter, Depends, Query, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from pharmacy_feedback.db.postgres import get_db
from pharmacy_feedback.statistics.dashboard import TOP_EMPLOYEES, DashboardService
from pharmacy_feedback.statistics.periods import TIME_FILTERS, TIME_FRAMES
from pharmacy_feedback.statistics.service import SENTIMENTS, StatisticsService
from pharmacy_feedback.statistics.schemas import (
    ClientListPage,
    EmployeeRatingsPage,
    EmployeeStatisticsResponse,
    FeedbackByTimeSlot,
    HomeDashboard,
    MonthlyRating,
    PharmacyRatingsPage,
    RoleDistributionItem,
    StarDistribution,
    StatisticsSummary,
    SuggestionsPage,
    TrendPoint,
)
from pharmacy_feedback.auth.middleware import JWTPayload, verify_token, check_permission
from pharmacy_feedback.utils.pagination import total_pages

router = APIRouter(
    prefix="/admin",
    tags=["statistics"],
)


def get_statistics_service(db: AsyncSession = Depends(get_db)) -> StatisticsService:
    """Dependency to get StatisticsService"""
    return StatisticsService(db)


def get_dashboard_service(db: AsyncSession = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


@router.get("/clients", response_model=ClientListPage)
async def list_clients(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: str | None = Query(None),
    service: StatisticsService = Depends(get_statistics_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Clients who left their contact details.

    Required permission: feedback:read
    """
    check_permission(jwt_payload, "feedback:read")
    items, total = await service.list_clients(page, page_size, search)
    return ClientListPage(items=items, total=total, page=page, page_size=page_size, total_pages=total_pages(total, page_size))


@router.get("/pharmacy-ratings", response_model=PharmacyRatingsPage)
async def get_pharmacy_ratings(
    time_filter: str = Query("all", enum=list(TIME_FILTERS)),
    rating: int | None = Query(None, ge=1, le=5),
    sentiment: str = Query("all", enum=list(SENTIMENTS)),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    service: StatisticsService = Depends(get_statistics_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Pharmacy ratings with aggregate statistics for the selected window.

    Required permission: feedback:read
    """
    check_permission(jwt_payload, "feedback:read")
    try:
        items, total = await service.get_pharmacy_ratings(time_filter, page, page_size, rating, sentiment)
        stats = await service.pharmacy_rating_stats(time_filter)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PharmacyRatingsPage(
        items=items,
        stats=stats,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.get("/employee-ratings", response_model=EmployeeRatingsPage)
async def get_employee_ratings(
    employee_id: str | None = Query(None),
    sentiment: str = Query("all", enum=list(SENTIMENTS)),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    service: StatisticsService = Depends(get_statistics_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Individual employee ratings with employee names and positions.

    Required permission: feedback:read
    """
    check_permission(jwt_payload, "feedback:read")
    try:
        items, total = await service.get_employee_ratings(page, page_size, employee_id, sentiment)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return EmployeeRatingsPage(items=items, total=total, page=page, page_size=page_size, total_pages=total_pages(total, page_size))


@router.get("/employees/statistics", response_model=EmployeeStatisticsResponse)
async def get_employee_statistics(
    service: StatisticsService = Depends(get_statistics_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Per-employee rating statistics and the top rated employees.

    Required permission: employees:read
    """
    check_permission(jwt_payload, "employees:read")
    employees = await service.get_employee_statistics()
    return EmployeeStatisticsResponse(employees=employees, top_employees=employees[:TOP_EMPLOYEES])


@router.get("/suggestions", response_model=SuggestionsPage)
async def get_suggestions(
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    service: StatisticsService = Depends(get_statistics_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Client suggestions, newest first.

    Required permission: feedback:read
    """
    check_permission(jwt_payload, "feedback:read")
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be before end_date")
    items, total = await service.get_suggestions(page, page_size, start_date, end_date)
    return SuggestionsPage(items=items, total=total, page=page, page_size=page_size, total_pages=total_pages(total, page_size))


@router.get("/exports/feedback-sessions")
async def export_feedback_sessions(
    format: str = Query("json", enum=["json", "csv"]),
    time_filter: str = Query("all", enum=list(TIME_FILTERS)),
    service: StatisticsService = Depends(get_statistics_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Download feedback sessions as JSON or CSV.

    Required permission: feedback:export
    """
    check_permission(jwt_payload, "feedback:export")
    try:
        rows = await service.export_rows(time_filter)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if format == "csv":
        csv_buffer = service.generate_csv(rows)
        return StreamingResponse(csv_buffer, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename=feedback_sessions_{time_filter}.csv"})
    elif format == "json":
        return rows
    else:
        raise HTTPException(status_code=400, detail="Invalid format")


@router.get("/dashboard/summary", response_model=StatisticsSummary)
async def get_dashboard_summary(
    time_frame: str = Query("year", enum=list(TIME_FRAMES)),
    service: DashboardService = Depends(get_dashboard_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Satisfaction, feedback, visitor and employee figures with their change
    against the previous frame, plus the client completion rate.

    Required permission: feedback:read
    """
    check_permission(jwt_payload, "feedback:read")
    try:
        return await service.get_summary(time_frame)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/dashboard/monthly-ratings", response_model=List[MonthlyRating])
async def get_monthly_ratings(
    year: int | None = Query(None, ge=2000, le=2100),
    service: DashboardService = Depends(get_dashboard_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Average pharmacy and employee ratings for each month of a year (current year by default).

    Required permission: feedback:read
    """
    check_permission(jwt_payload, "feedback:read")
    return await service.get_monthly_ratings(year)


@router.get("/dashboard/satisfaction-trends", response_model=List[TrendPoint])
async def get_satisfaction_trends(
    time_frame: str = Query("year", enum=list(TIME_FRAMES)),
    service: DashboardService = Depends(get_dashboard_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """Required permission: feedback:read"""
    check_permission(jwt_payload, "feedback:read")
    try:
        return await service.get_satisfaction_trends(time_frame)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/dashboard/visitors", response_model=List[TrendPoint])
async def get_visitors(
    time_frame: str = Query("year", enum=list(TIME_FRAMES)),
    service: DashboardService = Depends(get_dashboard_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """Required permission: feedback:read"""
    check_permission(jwt_payload, "feedback:read")
    try:
        return await service.get_visitors(time_frame)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/dashboard/star-distribution", response_model=StarDistribution)
async def get_star_distribution(
    time_frame: str = Query("year", enum=list(TIME_FRAMES)),
    service: DashboardService = Depends(get_dashboard_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Pharmacy star counts, percentages and satisfaction levels.

    Required permission: feedback:read
    """
    check_permission(jwt_payload, "feedback:read")
    try:
        return await service.get_star_distribution(time_frame)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/dashboard/feedback-by-time", response_model=List[FeedbackByTimeSlot])
async def get_feedback_by_time(
    time_frame: str = Query("year", enum=list(TIME_FRAMES)),
    service: DashboardService = Depends(get_dashboard_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """Required permission: feedback:read"""
    check_permission(jwt_payload, "feedback:read")
    try:
        return await service.get_feedback_by_time(time_frame)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/dashboard/role-distribution", response_model=List[RoleDistributionItem])
async def get_role_distribution(
    time_frame: str = Query("year", enum=list(TIME_FRAMES)),
    service: DashboardService = Depends(get_dashboard_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Employee ratings grouped by position, with every position listed.

    Required permission: feedback:read
    """
    check_permission(jwt_payload, "feedback:read")
    try:
        return await service.get_role_distribution(time_frame)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/dashboard/home", response_model=HomeDashboard)
async def get_home_dashboard(
    service: DashboardService = Depends(get_dashboard_service),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Top rated employees, latest employee reviews and review coverage.

    Required permission: employees:read
    """
    check_permission(jwt_payload, "employees:read")
    return await service.get_home()
