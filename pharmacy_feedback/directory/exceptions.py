"""Custom exceptions for the employee directory"""
from fastapi import HTTPException, status


class PositionNotFoundException(HTTPException):
    """Raised when a position is not found"""
    def __init__(self, position_id: str = None):
        detail = "Position not found"
        if position_id:
            detail = f"Position {position_id} not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class DuplicatePositionException(HTTPException):
    """Raised when a position title is already taken"""
    def __init__(self, title: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Position '{title}' already exists"
        )


class PositionInUseException(HTTPException):
    """Raised when deleting a position still assigned to employees"""
    def __init__(self, title: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Position '{title}' is assigned to employees and cannot be deleted"
        )


class EmployeeNotFoundException(HTTPException):
    """Raised when an employee is not found"""
    def __init__(self, employee_id: str = None):
        detail = "Employee not found"
        if employee_id:
            detail = f"Employee {employee_id} not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class DuplicateEmployeeException(HTTPException):
    """Raised when an employee email is already registered"""
    def __init__(self, email: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Employee with email '{email}' already exists"
        )
