"""Application settings database model"""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Boolean, Uuid
from pharmacy_feedback.db.base import Base


class AppSettings(Base):
    """Single row of dashboard and kiosk settings"""
    __tablename__ = "app_settings"
    __table_args__ = {'extend_existing': True}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    dark_mode = Column(Boolean, nullable=False, default=False)
    email_notifications = Column(Boolean, nullable=False, default=True)
    auto_generate_monthly_report = Column(Boolean, nullable=False, default=True)
    monthly_report_format = Column(String(10), nullable=False, default="PDF")  # PDF | EXCEL | BOTH
    feedback_collection_enabled = Column(Boolean, nullable=False, default=True)  # always on
    client_info_enabled = Column(Boolean, nullable=False, default=True)
    suggestion_enabled = Column(Boolean, nullable=False, default=True)
    thank_you_enabled = Column(Boolean, nullable=False, default=True)
    updated_by = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
