"""HTTP client the kiosk uses to talk to the sync endpoint"""
import logging
from typing import Any, Dict, List, Optional
import requests
from pydantic import BaseModel
from pharmacy_feedback.settings.schemas import FeedbackPageSettings

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 10


class SyncResult(BaseModel):
    """Tagged result of one sync call"""
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def session_id(self) -> Optional[str]:
        return (self.data or {}).get("sessionId")


class SyncClient:
    """
    Client for the feedback server using direct HTTP requests.

    Every failure, including network errors, comes back as a failed
    SyncResult instead of an exception so the kiosk flow never crashes.
    """

    def __init__(self, base_url: str, timeout: float = DEFAULT_REQUEST_TIMEOUT, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def sync(self, operation: str, session_id: Optional[str] = None, **fields) -> SyncResult:
        """Post one operation to /sync"""
        payload = {"operation": operation, **fields}
        if session_id:
            payload["sessionId"] = session_id

        try:
            response = self.http.post(f"{self.base_url}/sync", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Sync '{operation}' failed: {e}")
            return SyncResult(success=False, error=str(e))

        return self._to_result(response, operation)

    def _to_result(self, response: requests.Response, operation: str) -> SyncResult:
        try:
            body = response.json()
        except ValueError:
            logger.error(f"Sync '{operation}' returned a non-JSON response ({response.status_code})")
            return SyncResult(success=False, error="Invalid response from server", status_code=response.status_code)

        if not body.get("success"):
            logger.warning(f"Sync '{operation}' rejected: {body.get('error')}")
            return SyncResult(success=False, error=body.get("error") or "Unknown error", status_code=response.status_code)

        return SyncResult(success=True, data=body.get("data"), status_code=response.status_code)

    def create_session(self, device_id: str, pharmacy_rating: int, employee_ratings: List[Dict]) -> SyncResult:
        return self.sync(
            "create-session",
            deviceId=device_id,
            pharmacyRating=pharmacy_rating,
            employeeRatings=employee_ratings,
        )

    def update_pharmacy_rating(self, session_id: str, rating: int) -> SyncResult:
        return self.sync("pharmacy-rating", session_id, rating=rating)

    def update_employee_ratings(self, session_id: str, ratings: List[Dict]) -> SyncResult:
        return self.sync("employee-ratings", session_id, ratings=ratings)

    def update_client_data(self, session_id: str, client_data: Dict) -> SyncResult:
        return self.sync("client-data", session_id, clientData=client_data)

    def update_suggestion(self, session_id: str, suggestion: str) -> SyncResult:
        return self.sync("suggestion", session_id, suggestion=suggestion)

    def complete(self, session_id: str) -> SyncResult:
        return self.sync("complete", session_id)

    def get_active_session(self, device_id: str) -> Optional[str]:
        """Id of a resumable session for this device, or None"""
        try:
            response = self.http.get(f"{self.base_url}/sync/active", params={"deviceId": device_id}, timeout=self.timeout)
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Could not look up active session for {device_id}: {e}")
            return None
        return (body.get("data") or {}).get("sessionId")

    def get_feedback_pages(self) -> FeedbackPageSettings:
        """Page visibility flags; defaults (all pages shown) if the server is unreachable"""
        try:
            response = self.http.get(f"{self.base_url}/settings/feedback-pages", timeout=self.timeout)
            response.raise_for_status()
            return FeedbackPageSettings.model_validate(response.json())
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Using default feedback page settings: {e}")
            return FeedbackPageSettings()
