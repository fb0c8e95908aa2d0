"""Directory service layer for positions and employees"""
import logging
from uuid import UUID
from typing import Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from pharmacy_feedback.db.models import Position, Employee
from pharmacy_feedback.directory.repository import PositionRepository, EmployeeRepository
from pharmacy_feedback.directory.schemas import CreateEmployeeRequest, EmployeeResponse, UpdateEmployeeRequest
from pharmacy_feedback.directory.exceptions import (
    DuplicateEmployeeException,
    DuplicatePositionException,
    EmployeeNotFoundException,
    PositionInUseException,
    PositionNotFoundException,
)

logger = logging.getLogger(__name__)


class PositionService:
    """Service layer for pharmacy positions"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = PositionRepository(db)

    async def list_positions(self) -> List[Position]:
        return await self.repository.list_all()

    async def get_position(self, position_id: UUID) -> Position:
        position = await self.repository.get_by_id(position_id)
        if not position:
            raise PositionNotFoundException(str(position_id))
        return position

    async def create_position(self, title: str) -> Position:
        title = title.strip()
        if await self.repository.get_by_title(title):
            raise DuplicatePositionException(title)
        position = await self.repository.create(Position(title=title))
        logger.info(f"Position '{title}' created")
        return position

    async def update_position(self, position_id: UUID, title: str) -> Position:
        position = await self.get_position(position_id)
        title = title.strip()

        existing = await self.repository.get_by_title(title)
        if existing and existing.id != position.id:
            raise DuplicatePositionException(title)

        position.title = title
        return await self.repository.update(position)

    async def delete_position(self, position_id: UUID) -> None:
        """Delete a position that no employee holds."""
        position = await self.get_position(position_id)
        if await self.repository.count_employees(position.id) > 0:
            raise PositionInUseException(position.title)
        await self.repository.delete(position)
        logger.info(f"Position '{position.title}' deleted")

    async def titles_by_id(self) -> Dict[UUID, str]:
        return {position.id: position.title for position in await self.repository.list_all()}


class EmployeeService:
    """Service layer for the employee directory"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = EmployeeRepository(db)
        self.position_service = PositionService(db)

    async def list_employees(
        self,
        active_only: bool = False,
        position_id: Optional[UUID] = None,
    ) -> List[Employee]:
        return await self.repository.list_employees(active_only=active_only, position_id=position_id)

    async def get_employee(self, employee_id: UUID) -> Employee:
        employee = await self.repository.get_by_id(employee_id)
        if not employee:
            raise EmployeeNotFoundException(str(employee_id))
        return employee

    async def create_employee(self, request: CreateEmployeeRequest) -> Employee:
        if request.email and await self.repository.get_by_email(request.email):
            raise DuplicateEmployeeException(request.email)
        if request.position_id:
            await self.position_service.get_position(request.position_id)

        employee = Employee(
            first_name=request.first_name.strip(),
            last_name=request.last_name.strip(),
            email=request.email,
            phone=request.phone,
            photo=request.photo,
            position_id=request.position_id,
            is_active=True,
        )
        return await self.repository.create(employee)

    async def update_employee(self, employee_id: UUID, request: UpdateEmployeeRequest) -> Employee:
        """Apply the fields present in the request; first and last names cannot be blanked."""
        employee = await self.get_employee(employee_id)
        changes = request.model_dump(exclude_unset=True)

        if changes.get("is_active") is None:
            changes.pop("is_active", None)
        for field in ("first_name", "last_name"):
            if field in changes:
                value = (changes[field] or "").strip()
                if not value:
                    changes.pop(field)
                else:
                    changes[field] = value

        email = changes.get("email")
        if email and email != employee.email:
            existing = await self.repository.get_by_email(email)
            if existing and existing.id != employee.id:
                raise DuplicateEmployeeException(email)
        if changes.get("position_id"):
            await self.position_service.get_position(changes["position_id"])

        for field, value in changes.items():
            setattr(employee, field, value)

        employee = await self.repository.update(employee)
        logger.info(f"Employee {employee.id} updated ({', '.join(sorted(changes)) or 'no changes'})")
        return employee

    async def delete_employee(self, employee_id: UUID) -> None:
        """
        Remove an employee from the directory.

        Ratings already stored in sessions keep the id and show up as "N/A".
        """
        employee = await self.get_employee(employee_id)
        await self.repository.delete(employee)
        logger.info(f"Employee {employee_id} deleted")

    async def update_employee_position(self, employee_id: UUID, position_id: Optional[UUID]) -> Employee:
        employee = await self.get_employee(employee_id)
        if position_id:
            await self.position_service.get_position(position_id)

        employee.position_id = position_id
        return await self.repository.update(employee)

    async def to_responses(self, employees: List[Employee]) -> List[EmployeeResponse]:
        """Attach position titles to a batch of employees"""
        titles = await self.position_service.titles_by_id()
        return [to_response(employee, titles.get(employee.position_id)) for employee in employees]


def to_response(employee: Employee, position_title: Optional[str] = None) -> EmployeeResponse:
    """Convert Employee model to response schema"""
    return EmployeeResponse(
        id=employee.id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        full_name=employee.full_name,
        email=employee.email,
        phone=employee.phone,
        photo=employee.photo,
        position_id=employee.position_id,
        position=position_title,
        is_active=employee.is_active,
    )
