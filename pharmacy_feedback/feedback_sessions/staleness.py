"""Staleness rules for feedback sessions"""
from datetime import datetime, timedelta
from typing import Optional
from pharmacy_feedback.feedback_sessions.models import FeedbackSession


def is_stale(session: FeedbackSession, now: Optional[datetime] = None) -> bool:
    """True once the time since last activity exceeds the session's timeout."""
    if now is None:
        now = datetime.utcnow()
    return (now - session.last_active_at) > timedelta(minutes=session.inactivity_timeout_minutes)


def has_feedback_data(session: FeedbackSession) -> bool:
    """A session is worth keeping if it holds any rating or a suggestion."""
    return bool(session.pharmacy_rating) or bool(session.employee_ratings) or bool(session.suggestion)
