"""Directory repositories for positions and employees"""
from uuid import UUID
from typing import Optional, List
from sqlalchemy import select, func
from pharmacy_feedback.db.models import Position, Employee
from pharmacy_feedback.db.repository import BaseRepository


class PositionRepository(BaseRepository):
    """Repository for position database operations"""

    async def create(self, position: Position) -> Position:
        self.db.add(position)
        return await self._commit(position, "create position")

    async def get_by_id(self, position_id: UUID) -> Optional[Position]:
        stmt = select(Position).where(Position.id == position_id)
        result = await self._execute(stmt, "load position")
        return result.scalar_one_or_none()

    async def get_by_title(self, title: str) -> Optional[Position]:
        stmt = select(Position).where(Position.title == title)
        result = await self._execute(stmt, "load position by title")
        return result.scalar_one_or_none()

    async def list_all(self) -> List[Position]:
        stmt = select(Position).order_by(Position.title)
        result = await self._execute(stmt, "list positions")
        return list(result.scalars().all())

    async def update(self, position: Position) -> Position:
        return await self._commit(position, "update position")

    async def delete(self, position: Position) -> None:
        await self.db.delete(position)
        await self._commit(None, "delete position")

    async def count_employees(self, position_id: UUID) -> int:
        """Number of employees holding a position"""
        stmt = select(func.count()).select_from(Employee).where(Employee.position_id == position_id)
        result = await self._execute(stmt, "count employees for position")
        return int(result.scalar() or 0)


class EmployeeRepository(BaseRepository):
    """Repository for employee database operations"""

    async def create(self, employee: Employee) -> Employee:
        self.db.add(employee)
        return await self._commit(employee, "create employee")

    async def get_by_id(self, employee_id: UUID) -> Optional[Employee]:
        stmt = select(Employee).where(Employee.id == employee_id)
        result = await self._execute(stmt, "load employee")
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[Employee]:
        stmt = select(Employee).where(Employee.email == email)
        result = await self._execute(stmt, "load employee by email")
        return result.scalar_one_or_none()

    async def list_employees(
        self,
        active_only: bool = False,
        position_id: Optional[UUID] = None,
    ) -> List[Employee]:
        stmt = select(Employee)
        if active_only:
            stmt = stmt.where(Employee.is_active.is_(True))
        if position_id:
            stmt = stmt.where(Employee.position_id == position_id)
        stmt = stmt.order_by(Employee.last_name, Employee.first_name)
        result = await self._execute(stmt, "list employees")
        return list(result.scalars().all())

    async def update(self, employee: Employee) -> Employee:
        return await self._commit(employee, "update employee")

    async def delete(self, employee: Employee) -> None:
        await self.db.delete(employee)
        await self._commit(None, "delete employee")
