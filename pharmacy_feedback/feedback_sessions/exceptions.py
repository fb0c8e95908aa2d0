"""Custom exceptions for feedback sessions"""
from fastapi import HTTPException, status


class FeedbackSessionNotFoundException(HTTPException):
    """Raised when a feedback session is not found"""
    def __init__(self, session_id: str = None):
        detail = "Feedback session not found"
        if session_id:
            detail = f"Feedback session {session_id} not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class FeedbackValidationException(HTTPException):
    """Raised when a sync payload carries invalid or missing values"""
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidStatusTransitionException(HTTPException):
    """Raised when a status change would move a session backwards"""
    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot move session from '{current_status}' to '{target_status}'"
        )
