from pharmacy_feedback.kiosk.controller import StepController, StepOutcome
from pharmacy_feedback.kiosk.device import get_device_identifier
from pharmacy_feedback.kiosk.draft import DraftStore, FeedbackDraft
from pharmacy_feedback.kiosk.sync_client import SyncClient, SyncResult

__all__ = [
    "StepController",
    "StepOutcome",
    "get_device_identifier",
    "DraftStore",
    "FeedbackDraft",
    "SyncClient",
    "SyncResult",
]
