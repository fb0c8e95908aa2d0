"""Local mirror of the in-progress feedback session"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ValidationError
from pharmacy_feedback.feedback_sessions.schemas import ClientDataItem, EmployeeRatingItem

logger = logging.getLogger(__name__)


class FeedbackDraft(BaseModel):
    """Same shape as the server record, plus the id the server handed back"""
    device_id: str = Field(..., alias="deviceId")
    session_id: Optional[str] = Field(None, alias="sessionId")
    pharmacy_rating: Optional[int] = Field(None, alias="pharmacyRating")
    employee_ratings: List[EmployeeRatingItem] = Field(default_factory=list, alias="employeeRatings")
    client_data: Optional[ClientDataItem] = Field(None, alias="clientData")
    suggestion: Optional[str] = None
    last_active_at: Optional[datetime] = Field(None, alias="lastActiveAt")

    class Config:
        populate_by_name = True


class DraftStore:
    """Persists a FeedbackDraft as JSON so a reload does not lose progress"""

    def __init__(self, path: str | Path, device_id: str):
        self.path = Path(path)
        self.device_id = device_id

    def load(self) -> FeedbackDraft:
        """Stored draft, or an empty one for this device if none is readable."""
        if not self.path.exists():
            return FeedbackDraft(device_id=self.device_id)
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return FeedbackDraft.model_validate(data)
        except (ValueError, ValidationError) as e:
            logger.warning(f"Discarding unreadable feedback draft {self.path}: {e}")
            return FeedbackDraft(device_id=self.device_id)

    def save(self, draft: FeedbackDraft) -> FeedbackDraft:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(draft.model_dump_json(by_alias=True), encoding="utf-8")
        return draft

    def clear(self) -> FeedbackDraft:
        """Drop everything but the device identifier."""
        return self.save(FeedbackDraft(device_id=self.device_id))

    def reconcile(self, draft: FeedbackDraft, session_id: str, confirmed: Dict[str, Any]) -> FeedbackDraft:
        """
        Replace the stored draft with what the server just accepted.

        `confirmed` holds only the fields of the step that succeeded; fields
        from earlier confirmed steps are carried over from `draft`.
        """
        updated = FeedbackDraft.model_validate({
            **draft.model_dump(),
            **confirmed,
            "session_id": session_id,
            "last_active_at": datetime.utcnow(),
        })
        return self.save(updated)
