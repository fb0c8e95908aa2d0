from uuid import UUID
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field


class SyncOperation(BaseModel):
    """Fields shared by every sync request"""
    session_id: Optional[str] = Field(None, alias="sessionId")

    class Config:
        populate_by_name = True
        extra = "ignore"


class CreateSessionRequest(SyncOperation):
    """First screen: both ratings are sent before any record exists"""
    operation: Literal["create-session"]
    device_id: Optional[str] = Field(None, alias="deviceId")
    pharmacy_rating: Any = Field(None, alias="pharmacyRating")
    employee_ratings: Any = Field(None, alias="employeeRatings")


class PharmacyRatingRequest(SyncOperation):
    operation: Literal["pharmacy-rating"]
    rating: Any = None


class EmployeeRatingsRequest(SyncOperation):
    operation: Literal["employee-ratings"]
    ratings: Any = None


class ClientDataRequest(SyncOperation):
    operation: Literal["client-data"]
    client_data: Any = Field(None, alias="clientData")


class SuggestionRequest(SyncOperation):
    operation: Literal["suggestion"]
    suggestion: Optional[str] = None


class CompleteRequest(SyncOperation):
    operation: Literal["complete"]


SyncRequest = Annotated[
    Union[
        CreateSessionRequest,
        PharmacyRatingRequest,
        EmployeeRatingsRequest,
        ClientDataRequest,
        SuggestionRequest,
        CompleteRequest,
    ],
    Field(discriminator="operation"),
]

SYNC_OPERATIONS = (
    "create-session",
    "pharmacy-rating",
    "employee-ratings",
    "client-data",
    "suggestion",
    "complete",
)


class EmployeeRatingItem(BaseModel):
    """Single employee rating inside a session"""
    employee_id: str = Field(..., alias="employeeId")
    rating: int
    comment: str = ""

    class Config:
        populate_by_name = True


class ClientDataItem(BaseModel):
    """Client contact details"""
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    email: str = ""
    phone: str = ""
    consent: bool = False

    class Config:
        populate_by_name = True


class FeedbackSessionResponse(BaseModel):
    """Feedback session response"""
    id: UUID
    device_id: str
    pharmacy_rating: Optional[int] = None
    employee_ratings: List[EmployeeRatingItem] = []
    client_data: Optional[ClientDataItem] = None
    suggestion: Optional[str] = None
    status: str  # active | completed | abandoned | processed
    started_at: datetime
    last_active_at: datetime
    completed_at: Optional[datetime] = None
    inactivity_timeout_minutes: int
    is_stale: bool


class SweepResponse(BaseModel):
    """Result of a manual cleanup sweep"""
    processed: int


def sync_success(data: Optional[Dict]) -> Dict:
    return {"success": True, "data": data}


def sync_failure(error: str) -> Dict:
    return {"success": False, "error": error}
