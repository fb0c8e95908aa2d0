"""Directory Pydantic schemas"""
from uuid import UUID
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class CreatePositionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)


class PositionResponse(BaseModel):
    id: UUID
    title: str
    created_at: datetime


class PositionListResponse(BaseModel):
    positions: List[PositionResponse]
    count: int


class CreateEmployeeRequest(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    photo: Optional[str] = None
    position_id: Optional[UUID] = None


class UpdateEmployeeRequest(BaseModel):
    """Partial update; only the fields sent are changed"""
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    photo: Optional[str] = None
    position_id: Optional[UUID] = None
    is_active: Optional[bool] = None


class UpdateEmployeePositionRequest(BaseModel):
    position_id: Optional[UUID] = None


class EmployeeResponse(BaseModel):
    """Employee as listed on the dashboard and the rating screen"""
    id: UUID
    first_name: str
    last_name: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    photo: Optional[str] = None
    position_id: Optional[UUID] = None
    position: Optional[str] = None
    is_active: bool


class EmployeeListResponse(BaseModel):
    employees: List[EmployeeResponse]
    count: int


class EmployeeRatingStats(BaseModel):
    """Aggregated ratings for one employee"""
    employee_id: str
    total_reviews: int
    average_rating: float
    score: float
    rating_distribution: Dict[str, int]


class EmployeeDetailResponse(EmployeeResponse):
    statistics: Optional[EmployeeRatingStats] = None
