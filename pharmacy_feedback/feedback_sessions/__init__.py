from pharmacy_feedback.feedback_sessions.repository import FeedbackSessionRepository
from pharmacy_feedback.feedback_sessions.service import FeedbackSessionService
from pharmacy_feedback.feedback_sessions.models import FeedbackSession

__all__ = ["FeedbackSessionRepository", "FeedbackSessionService", "FeedbackSession"]
