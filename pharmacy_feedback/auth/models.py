"""JWT Payload Models"""
from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime


class JWTPayload(BaseModel):
    """JWT token payload for dashboard users"""
    user_id: str = Field(..., alias="sub")
    email: Optional[str] = None
    roles: list[str] = []
    permissions: list[str] = []
    iat: Optional[datetime] = None
    exp: Optional[datetime] = None

    class Config:
        populate_by_name = True
