"""Feedback session database model"""
import os
from datetime import datetime
from enum import Enum
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Integer, Text, JSON, Index, Uuid
from pharmacy_feedback.db.base import Base

DEFAULT_INACTIVITY_TIMEOUT_MINUTES = int(os.getenv("DEFAULT_INACTIVITY_TIMEOUT_MINUTES", "1440"))


class SessionStatus(str, Enum):
    """Lifecycle states of a feedback session"""
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    PROCESSED = "processed"


TERMINAL_STATUSES = (SessionStatus.COMPLETED.value, SessionStatus.PROCESSED.value)


class FeedbackSession(Base):
    """One customer visit, filled in step by step from the kiosk"""
    __tablename__ = "feedback_sessions"
    __table_args__ = (
        Index("ix_feedback_sessions_device_last_active", "device_id", "last_active_at"),
        Index("ix_feedback_sessions_status_last_active", "status", "last_active_at"),
        {'extend_existing': True},
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    device_id = Column(String(255), nullable=False, index=True)
    pharmacy_rating = Column(Integer, nullable=True)  # 1-5
    employee_ratings = Column(JSON, nullable=False, default=list)  # [{employeeId, rating, comment}]
    client_data = Column(JSON(none_as_null=True), nullable=True)  # {firstName, lastName, email, phone, consent}
    suggestion = Column(Text, nullable=True)  # "" means the step was skipped
    status = Column(String(50), default=SessionStatus.ACTIVE.value, nullable=False, index=True)
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_active_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    inactivity_timeout_minutes = Column(Integer, default=DEFAULT_INACTIVITY_TIMEOUT_MINUTES, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
