"""Positions and employees REST API endpoints"""
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from pharmacy_feedback.db.postgres import get_db
from pharmacy_feedback.db.models import Position
from pharmacy_feedback.directory.service import EmployeeService, PositionService, to_response
from pharmacy_feedback.directory.schemas import (
    CreateEmployeeRequest,
    CreatePositionRequest,
    EmployeeDetailResponse,
    EmployeeListResponse,
    EmployeeRatingStats,
    EmployeeResponse,
    PositionListResponse,
    PositionResponse,
    UpdateEmployeePositionRequest,
    UpdateEmployeeRequest,
)
from pharmacy_feedback.statistics.service import employee_rating_stats
from pharmacy_feedback.auth.middleware import JWTPayload, verify_token, check_permission
from pharmacy_feedback.utils.timezone import convert_to_local

router = APIRouter(
    tags=["directory"],
)


def position_response(position: Position) -> PositionResponse:
    return PositionResponse(id=position.id, title=position.title, created_at=convert_to_local(position.created_at))


@router.get("/employees", response_model=EmployeeListResponse)
async def list_active_employees(db: AsyncSession = Depends(get_db)):
    """Public: active employees shown on the kiosk rating screen."""
    service = EmployeeService(db)
    employees = await service.to_responses(await service.list_employees(active_only=True))
    return EmployeeListResponse(employees=employees, count=len(employees))


@router.get("/admin/positions", response_model=PositionListResponse)
async def list_positions(
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    List all positions.

    Required permission: employees:read
    """
    check_permission(jwt_payload, "employees:read")
    positions = [position_response(p) for p in await PositionService(db).list_positions()]
    return PositionListResponse(positions=positions, count=len(positions))


@router.post("/admin/positions", response_model=PositionResponse, status_code=status.HTTP_201_CREATED)
async def create_position(
    request: CreatePositionRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Create a position.

    Required permission: positions:manage
    """
    check_permission(jwt_payload, "positions:manage")
    return position_response(await PositionService(db).create_position(request.title))


@router.put("/admin/positions/{position_id}", response_model=PositionResponse)
async def update_position(
    position_id: UUID,
    request: CreatePositionRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Rename a position.

    Required permission: positions:manage
    """
    check_permission(jwt_payload, "positions:manage")
    return position_response(await PositionService(db).update_position(position_id, request.title))


@router.delete("/admin/positions/{position_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_position(
    position_id: UUID,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Delete a position no employee holds.

    Required permission: positions:manage
    """
    check_permission(jwt_payload, "positions:manage")
    await PositionService(db).delete_position(position_id)


@router.get("/admin/employees", response_model=EmployeeListResponse)
async def list_employees(
    active_only: bool = Query(False),
    position_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    List employees, optionally only active ones or one position.

    Required permission: employees:read
    """
    check_permission(jwt_payload, "employees:read")
    service = EmployeeService(db)
    employees = await service.to_responses(
        await service.list_employees(active_only=active_only, position_id=position_id)
    )
    return EmployeeListResponse(employees=employees, count=len(employees))


@router.post("/admin/employees", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    request: CreateEmployeeRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Add an employee to the directory.

    Required permission: employees:manage
    """
    check_permission(jwt_payload, "employees:manage")
    service = EmployeeService(db)
    employee = await service.create_employee(request)
    return (await service.to_responses([employee]))[0]


@router.get("/admin/employees/{employee_id}", response_model=EmployeeDetailResponse)
async def get_employee(
    employee_id: UUID,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Get an employee with their rating statistics.

    Required permission: employees:read
    """
    check_permission(jwt_payload, "employees:read")
    service = EmployeeService(db)
    employee = await service.get_employee(employee_id)
    titles = await service.position_service.titles_by_id()

    stats = await employee_rating_stats(db, employee.id)
    statistics = None
    if stats:
        statistics = EmployeeRatingStats(
            employee_id=stats.employee_id,
            total_reviews=stats.total_reviews,
            average_rating=stats.average_rating,
            score=stats.score,
            rating_distribution=stats.rating_distribution,
        )

    base = to_response(employee, titles.get(employee.position_id))
    return EmployeeDetailResponse(**base.model_dump(), statistics=statistics)


@router.put("/admin/employees/{employee_id}/position", response_model=EmployeeResponse)
async def update_employee_position(
    employee_id: UUID,
    request: UpdateEmployeePositionRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Assign or clear an employee's position.

    Required permission: employees:manage
    """
    check_permission(jwt_payload, "employees:manage")
    service = EmployeeService(db)
    employee = await service.update_employee_position(employee_id, request.position_id)
    return (await service.to_responses([employee]))[0]


@router.put("/admin/employees/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: UUID,
    request: UpdateEmployeeRequest,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Edit an employee's details, position or active flag.

    Required permission: employees:manage
    """
    check_permission(jwt_payload, "employees:manage")
    service = EmployeeService(db)
    employee = await service.update_employee(employee_id, request)
    return (await service.to_responses([employee]))[0]


@router.delete("/admin/employees/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_employee(
    employee_id: UUID,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Remove an employee from the directory.

    Required permission: employees:manage
    """
    check_permission(jwt_payload, "employees:manage")
    await EmployeeService(db).delete_employee(employee_id)
