"""Validation and normalization of feedback session payloads"""
import json
from typing import Any, Dict, List, Optional
from uuid import UUID

from pharmacy_feedback.feedback_sessions.exceptions import (
    FeedbackSessionNotFoundException,
    FeedbackValidationException,
)

MIN_RATING = 1
MAX_RATING = 5

CLIENT_TEXT_FIELDS = ("firstName", "lastName", "email", "phone")
TRUTHY_VALUES = ("true", "1", "on", "yes")


def parse_session_id(session_id: Any) -> UUID:
    """Parse a session id; anything unparseable cannot exist in storage."""
    if isinstance(session_id, UUID):
        return session_id
    try:
        return UUID(str(session_id))
    except (TypeError, ValueError):
        raise FeedbackSessionNotFoundException(str(session_id))


def parse_json_field(value: Any, field: str) -> Any:
    """Form submissions carry nested values as JSON strings."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        raise FeedbackValidationException(f"Invalid {field} format")


def validate_rating(value: Any, field: str = "rating") -> int:
    """
    Coerce a rating to an int and check it lies in [1, 5].

    Accepts ints, integral floats and numeric strings (form posts).
    """
    rating = None
    if isinstance(value, bool) or value is None:
        rating = None
    elif isinstance(value, int):
        rating = value
    elif isinstance(value, float) and value.is_integer():
        rating = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            rating = int(text)

    if rating is None or not MIN_RATING <= rating <= MAX_RATING:
        raise FeedbackValidationException(f"Valid {field} ({MIN_RATING}-{MAX_RATING}) is required")
    return rating


def normalize_employee_ratings(ratings: Any) -> List[Dict]:
    """
    Validate an employee ratings list.

    The list must be non-empty and every element must carry an employeeId and a
    rating in range. Missing or null comments become empty strings.
    """
    ratings = parse_json_field(ratings, "employee ratings")
    if not isinstance(ratings, list) or len(ratings) == 0:
        raise FeedbackValidationException("At least one employee rating is required")

    normalized = []
    for item in ratings:
        if not isinstance(item, dict):
            raise FeedbackValidationException("Invalid employee rating format")
        employee_id = item.get("employeeId")
        if employee_id is None or str(employee_id).strip() == "":
            raise FeedbackValidationException("Each employee rating needs an employeeId")
        comment = item.get("comment")
        normalized.append({
            "employeeId": str(employee_id),
            "rating": validate_rating(item.get("rating"), "employee rating"),
            "comment": "" if comment is None else str(comment),
        })
    return normalized


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_VALUES
    return bool(value)


def normalize_client_data(data: Optional[Dict]) -> Dict:
    """Fill every unset contact field with an empty string and consent with False."""
    data = parse_json_field(data, "client data") or {}
    if not isinstance(data, dict):
        raise FeedbackValidationException("Invalid client data format")

    normalized = {field: str(data.get(field) or "") for field in CLIENT_TEXT_FIELDS}
    normalized["consent"] = _to_bool(data.get("consent", False))
    return normalized
