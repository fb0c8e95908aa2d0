"""
Step controller for the public feedback flow.

Keeps the local draft in line with the server, decides which screen comes
next from the page visibility settings, and resets the kiosk after a period
of inactivity.
"""
import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Set
from pydantic import BaseModel
from pharmacy_feedback.feedback_sessions.validators import (
    normalize_client_data,
    normalize_employee_ratings,
    validate_rating,
)
from pharmacy_feedback.kiosk.draft import DraftStore, FeedbackDraft
from pharmacy_feedback.kiosk.sync_client import SyncClient, SyncResult
from pharmacy_feedback.settings.schemas import FeedbackPageSettings

logger = logging.getLogger(__name__)

FEEDBACK_ROUTE = "/feedback"
CONTACT_ROUTE = "/contact"
SUGGESTION_ROUTE = "/suggestion"
THANK_YOU_ROUTE = "/thank-you"

BACKUP_TIMEOUT_SECONDS = 5.0
INACTIVITY_TIMEOUT_SECONDS = int(os.getenv("KIOSK_INACTIVITY_TIMEOUT_MINUTES", "2")) * 60


class StepOutcome(BaseModel):
    """Where the kiosk goes after a step, and the message to show if it stays"""
    route: str
    error: Optional[str] = None
    timed_out: bool = False


class StepController:
    """Drives one kiosk through ratings, contact, suggestion and thank-you screens"""

    def __init__(
        self,
        client: SyncClient,
        store: DraftStore,
        page_settings: FeedbackPageSettings,
        backup_timeout: float = BACKUP_TIMEOUT_SECONDS,
        inactivity_timeout: float = INACTIVITY_TIMEOUT_SECONDS,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.client = client
        self.store = store
        self.page_settings = page_settings
        self.backup_timeout = backup_timeout
        self.inactivity_timeout = timedelta(seconds=inactivity_timeout)
        self.executor = executor or ThreadPoolExecutor(max_workers=2)
        self.draft = store.load()
        self.last_interaction = datetime.utcnow()
        self.pending: Set[Future] = set()
        self._pending_lock = threading.Lock()
        if not self.draft.session_id:
            self.resume()

    def close(self) -> None:
        self.executor.shutdown(wait=False)

    def resume(self) -> Optional[str]:
        """
        Adopt the session the server still holds open for this device, for a
        kiosk restarted with a lost or empty draft.
        """
        future = self.executor.submit(self.client.get_active_session, self.draft.device_id)
        try:
            session_id = future.result(timeout=self.backup_timeout)
        except FutureTimeoutError:
            logger.warning(f"No answer from server after {self.backup_timeout}s, starting without a session")
            return None

        if session_id:
            logger.info(f"Resuming feedback session {session_id} for device {self.draft.device_id}")
            self.draft = self.store.save(self.draft.model_copy(update={"session_id": session_id}))
        return session_id

    # Navigation

    def after_ratings(self) -> str:
        if self.page_settings.client_info_enabled:
            return CONTACT_ROUTE
        if self.page_settings.suggestion_enabled:
            return SUGGESTION_ROUTE
        return self.make_where_to_go_decision()

    def after_contact(self) -> str:
        if self.page_settings.suggestion_enabled:
            return SUGGESTION_ROUTE
        return self.make_where_to_go_decision()

    def after_suggestion(self) -> str:
        return self.make_where_to_go_decision()

    def make_where_to_go_decision(self) -> str:
        """
        Last step done: complete the session in the background. Show the
        thank-you page if enabled, otherwise reset the draft and go straight
        back to the first screen.
        """
        self._complete_in_background()
        if self.page_settings.thank_you_enabled:
            return THANK_YOU_ROUTE

        self.reset()
        return FEEDBACK_ROUTE

    def leave_thank_you(self) -> str:
        """Thank-you screen finished. The session was completed on arrival, only start over."""
        self.reset()
        return FEEDBACK_ROUTE

    def reset(self) -> FeedbackDraft:
        self.draft = self.store.clear()
        return self.draft

    def _complete_in_background(self) -> None:
        session_id = self.draft.session_id
        if not session_id:
            logger.info("No session to complete")
            return
        future = self.executor.submit(self.client.complete, session_id)
        with self._pending_lock:
            self.pending.add(future)
        future.add_done_callback(partial(self._on_completed, session_id))

    def _on_completed(self, session_id: str, future: Future) -> None:
        with self._pending_lock:
            self.pending.discard(future)
        try:
            result = future.result()
        except Exception as e:
            logger.error(f"Background completion of session {session_id} failed: {e}")
            return
        if not result.success:
            logger.warning(f"Server did not complete session {session_id}: {result.error}")

    # Steps

    def submit_ratings(self, pharmacy_rating: int, employee_ratings: List[Dict[str, Any]]) -> StepOutcome:
        """First screen: create the session, or update it when resuming one."""
        self.touch()
        session_id = self.draft.session_id
        if session_id:
            def call():
                result = self.client.update_pharmacy_rating(session_id, pharmacy_rating)
                if not result.success:
                    return result
                return self.client.update_employee_ratings(session_id, employee_ratings)
        else:
            def call():
                return self.client.create_session(self.draft.device_id, pharmacy_rating, employee_ratings)

        def confirmed():
            return {
                "pharmacy_rating": validate_rating(pharmacy_rating, "pharmacy rating"),
                "employee_ratings": normalize_employee_ratings(employee_ratings),
            }

        return self._submit(call, confirmed, current=FEEDBACK_ROUTE, forward=self.after_ratings)

    def submit_contact(self, client_data: Dict[str, Any]) -> StepOutcome:
        self.touch()
        session_id = self.draft.session_id
        return self._submit(
            lambda: self.client.update_client_data(session_id, client_data),
            lambda: {"client_data": normalize_client_data(client_data)},
            current=CONTACT_ROUTE,
            forward=self.after_contact,
        )

    def skip_contact(self) -> StepOutcome:
        self.touch()
        return StepOutcome(route=self.after_contact())

    def submit_suggestion(self, suggestion: str) -> StepOutcome:
        """An empty suggestion is still sent, it records the step as skipped."""
        self.touch()
        session_id = self.draft.session_id
        return self._submit(
            lambda: self.client.update_suggestion(session_id, suggestion),
            lambda: {"suggestion": "" if suggestion is None else str(suggestion)},
            current=SUGGESTION_ROUTE,
            forward=self.after_suggestion,
        )

    def _submit(
        self,
        call: Callable[[], SyncResult],
        confirmed: Callable[[], Dict[str, Any]],
        current: str,
        forward: Callable[[], str],
    ) -> StepOutcome:
        """
        Run a sync call, waiting at most backup_timeout for the answer.

        On success the draft is reconciled with the values as the server
        stores them (`confirmed` applies the same normalization) and the flow
        moves forward. A rejected call keeps the kiosk on the current screen.
        If the server is slow and the draft already has a session, the flow
        moves forward anyway and nothing is re-submitted.
        """
        future = self.executor.submit(call)
        try:
            result = future.result(timeout=self.backup_timeout)
        except FutureTimeoutError:
            if self.draft.session_id:
                logger.warning(f"No answer from server after {self.backup_timeout}s, moving on from {current}")
                return StepOutcome(route=forward(), timed_out=True)
            logger.warning(f"No answer from server after {self.backup_timeout}s on {current}, no session yet")
            return StepOutcome(route=current, error="Server is not responding, please try again", timed_out=True)

        if not result.success:
            return StepOutcome(route=current, error=result.error or "Unknown error during sync")

        session_id = result.session_id or self.draft.session_id
        self.draft = self.store.reconcile(self.draft, session_id, confirmed())
        return StepOutcome(route=forward())

    # Inactivity

    def touch(self, now: Optional[datetime] = None) -> None:
        """Record user interaction"""
        self.last_interaction = now or datetime.utcnow()

    def check_inactivity(self, now: Optional[datetime] = None) -> Optional[str]:
        """
        After the idle threshold, wipe the draft (device id kept) and send
        the kiosk back to the first screen. Returns None while still active.
        """
        now = now or datetime.utcnow()
        if now - self.last_interaction <= self.inactivity_timeout:
            return None

        logger.info("Inactivity timeout reached, resetting feedback form for shared device")
        self.reset()
        self.last_interaction = now
        return FEEDBACK_ROUTE
