from datetime import datetime
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Uuid
from pharmacy_feedback.db.base import Base


class Position(Base):
    """
    Job positions in the pharmacy (pharmacist, preparer, ...).
    Managed from the admin dashboard.
    """
    __tablename__ = "positions"
    __table_args__ = {'extend_existing': True}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String(255), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Employee(Base):
    """
    Employee directory.
    Feedback sessions reference employees by id inside their rating lists.
    """
    __tablename__ = "employees"
    __table_args__ = {'extend_existing': True}

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(50), nullable=True)
    photo = Column(String(500), nullable=True)
    position_id = Column(Uuid(as_uuid=True), ForeignKey("positions.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return " ".join(name for name in [self.first_name, self.last_name] if name)
