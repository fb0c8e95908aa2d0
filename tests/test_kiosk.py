"""
Tests for the kiosk side: device identity, local draft and step navigation
"""
import json
import logging
import threading
import pytest
import requests
from datetime import datetime, timedelta
from unittest.mock import Mock
from pharmacy_feedback.kiosk.controller import StepController
from pharmacy_feedback.kiosk.device import get_device_identifier
from pharmacy_feedback.kiosk.draft import DraftStore, FeedbackDraft
from pharmacy_feedback.kiosk.sync_client import SyncClient, SyncResult
from pharmacy_feedback.settings.schemas import FeedbackPageSettings

SESSION_ID = "8d9f7f2e-1111-4c4c-9a9a-123456789abc"
RATINGS = [{"employeeId": "E", "rating": 5, "comment": "great"}]


def ok(session_id=SESSION_ID) -> SyncResult:
    return SyncResult(success=True, data={"sessionId": session_id}, status_code=200)


@pytest.fixture
def store(tmp_path):
    return DraftStore(tmp_path / "draft.json", device_id="device_kiosk")


@pytest.fixture
def sync_client():
    client = Mock(spec=SyncClient)
    client.create_session.return_value = ok()
    client.update_pharmacy_rating.return_value = ok()
    client.update_employee_ratings.return_value = ok()
    client.update_client_data.return_value = ok()
    client.update_suggestion.return_value = ok()
    client.complete.return_value = ok()
    client.get_active_session.return_value = None
    return client


def make_controller(sync_client, store, **pages) -> StepController:
    return StepController(sync_client, store, FeedbackPageSettings(**pages), backup_timeout=1.0)


def wait_for_pending(controller: StepController):
    controller.executor.shutdown(wait=True)
    assert controller.pending == set()


# Device identity

def test_device_identifier_is_cached(tmp_path):
    path = tmp_path / "device.json"
    first = get_device_identifier(path)

    assert first.startswith("device_")
    assert get_device_identifier(path) == first
    assert json.loads(path.read_text())["deviceIdentifier"] == first


def test_device_identifier_differs_per_cache(tmp_path):
    assert get_device_identifier(tmp_path / "a.json") != get_device_identifier(tmp_path / "b.json")


def test_device_identifier_regenerated_from_corrupt_cache(tmp_path):
    path = tmp_path / "device.json"
    path.write_text("{broken")
    device_id = get_device_identifier(path)
    assert device_id.startswith("device_")
    assert get_device_identifier(path) == device_id


# Draft store

def test_draft_store_load_empty(store):
    draft = store.load()
    assert draft.device_id == "device_kiosk"
    assert draft.session_id is None
    assert draft.employee_ratings == []


def test_draft_store_round_trip(store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID, pharmacy_rating=4))
    draft = store.load()
    assert draft.session_id == SESSION_ID
    assert draft.pharmacy_rating == 4


def test_draft_store_clear_keeps_device(store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID, suggestion="x"))
    draft = store.clear()
    assert draft.device_id == "device_kiosk"
    assert draft.session_id is None
    assert store.load().suggestion is None


def test_draft_store_reconcile(store):
    draft = FeedbackDraft(device_id="device_kiosk", pharmacy_rating=4)
    confirmed = store.reconcile(draft, SESSION_ID, {"client_data": {"firstName": "Marie"}})

    assert confirmed.session_id == SESSION_ID
    assert confirmed.pharmacy_rating == 4
    assert confirmed.client_data.first_name == "Marie"
    assert confirmed.last_active_at is not None
    assert store.load().client_data.first_name == "Marie"


def test_draft_store_unreadable_file(store):
    store.path.write_text("not json")
    assert store.load().device_id == "device_kiosk"


# Navigation

@pytest.mark.parametrize("pages, expected", [
    ({}, "/contact"),
    ({"client_info_enabled": False}, "/suggestion"),
    ({"client_info_enabled": False, "suggestion_enabled": False}, "/thank-you"),
    ({"client_info_enabled": False, "suggestion_enabled": False, "thank_you_enabled": False}, "/feedback"),
])
def test_route_after_ratings(sync_client, store, pages, expected):
    controller = make_controller(sync_client, store, **pages)

    outcome = controller.submit_ratings(4, RATINGS)

    assert outcome.route == expected
    assert outcome.error is None
    sync_client.create_session.assert_called_once_with("device_kiosk", 4, RATINGS)


def test_submit_ratings_stores_session_id(sync_client, store):
    controller = make_controller(sync_client, store)
    controller.submit_ratings(4, RATINGS)

    draft = store.load()
    assert draft.session_id == SESSION_ID
    assert draft.pharmacy_rating == 4
    assert draft.employee_ratings[0].comment == "great"


def test_submit_ratings_resumes_existing_session(sync_client, store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    controller = make_controller(sync_client, store)

    controller.submit_ratings(3, RATINGS)

    sync_client.create_session.assert_not_called()
    sync_client.update_pharmacy_rating.assert_called_once_with(SESSION_ID, 3)
    sync_client.update_employee_ratings.assert_called_once_with(SESSION_ID, RATINGS)


def test_rejected_step_stays_put(sync_client, store):
    sync_client.create_session.return_value = SyncResult(success=False, error="Valid pharmacy rating (1-5) is required", status_code=400)
    controller = make_controller(sync_client, store)

    outcome = controller.submit_ratings(0, RATINGS)

    assert outcome.route == "/feedback"
    assert outcome.error == "Valid pharmacy rating (1-5) is required"
    assert store.load().session_id is None


def test_route_after_contact(sync_client, store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    controller = make_controller(sync_client, store)
    assert controller.submit_contact({"firstName": "Marie"}).route == "/suggestion"

    controller = make_controller(sync_client, store, suggestion_enabled=False)
    assert controller.skip_contact().route == "/thank-you"


def test_suggestion_then_thank_you(sync_client, store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    controller = make_controller(sync_client, store)

    outcome = controller.submit_suggestion("")

    assert outcome.route == "/thank-you"
    sync_client.update_suggestion.assert_called_once_with(SESSION_ID, "")
    assert store.load().suggestion == ""


def test_where_to_go_without_thank_you_completes_and_resets(sync_client, store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID, pharmacy_rating=5))
    controller = make_controller(sync_client, store, thank_you_enabled=False)

    route = controller.make_where_to_go_decision()
    wait_for_pending(controller)

    assert route == "/feedback"
    sync_client.complete.assert_called_once_with(SESSION_ID)
    draft = store.load()
    assert draft.session_id is None
    assert draft.device_id == "device_kiosk"


def test_thank_you_completes_on_arrival(sync_client, store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    controller = make_controller(sync_client, store)

    assert controller.make_where_to_go_decision() == "/thank-you"
    assert controller.leave_thank_you() == "/feedback"
    wait_for_pending(controller)

    sync_client.complete.assert_called_once_with(SESSION_ID)
    assert store.load().session_id is None


def test_inactivity_on_thank_you_still_completes(sync_client, store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    controller = make_controller(sync_client, store, client_info_enabled=False)
    start = datetime(2024, 5, 1, 10, 0, 0)

    controller.touch(start)
    assert controller.submit_suggestion("Plus de caisses").route == "/thank-you"
    controller.touch(start)
    assert controller.check_inactivity(start + timedelta(minutes=3)) == "/feedback"
    wait_for_pending(controller)

    sync_client.complete.assert_called_once_with(SESSION_ID)
    assert store.load().session_id is None


def test_no_complete_without_session(sync_client, store):
    controller = make_controller(sync_client, store, thank_you_enabled=False)
    assert controller.make_where_to_go_decision() == "/feedback"
    sync_client.complete.assert_not_called()


# Backup timeout

def test_slow_server_moves_forward_when_session_known(sync_client, store):
    release = threading.Event()

    def slow_update(*args):
        release.wait(2)
        return ok()

    sync_client.update_client_data.side_effect = slow_update
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    controller = StepController(sync_client, store, FeedbackPageSettings(), backup_timeout=0.05)

    outcome = controller.submit_contact({"firstName": "Marie"})
    release.set()

    assert outcome.timed_out is True
    assert outcome.route == "/suggestion"
    assert sync_client.update_client_data.call_count == 1
    controller.close()


def test_slow_server_without_session_stays(sync_client, store):
    release = threading.Event()

    def slow_create(*args):
        release.wait(2)
        return ok()

    sync_client.create_session.side_effect = slow_create
    controller = StepController(sync_client, store, FeedbackPageSettings(), backup_timeout=0.05)

    outcome = controller.submit_ratings(4, RATINGS)
    release.set()

    assert outcome.timed_out is True
    assert outcome.route == "/feedback"
    assert outcome.error is not None
    controller.close()


# Inactivity

def test_inactivity_resets_draft(sync_client, store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID, pharmacy_rating=2))
    controller = StepController(sync_client, store, FeedbackPageSettings(), inactivity_timeout=120)
    start = datetime(2024, 5, 1, 10, 0, 0)
    controller.touch(start)

    assert controller.check_inactivity(start + timedelta(seconds=120)) is None
    assert store.load().session_id == SESSION_ID

    assert controller.check_inactivity(start + timedelta(seconds=121)) == "/feedback"
    draft = store.load()
    assert draft.session_id is None
    assert draft.pharmacy_rating is None
    assert draft.device_id == "device_kiosk"


# Sync client

def test_sync_client_posts_operation():
    http = Mock()
    http.post.return_value = Mock(status_code=200, json=Mock(return_value={"success": True, "data": {"sessionId": SESSION_ID}}))
    client = SyncClient("http://kiosk.local/", session=http)

    result = client.update_suggestion(SESSION_ID, "Merci")

    assert result.success is True
    assert result.session_id == SESSION_ID
    http.post.assert_called_once_with(
        "http://kiosk.local/sync",
        json={"operation": "suggestion", "suggestion": "Merci", "sessionId": SESSION_ID},
        timeout=10,
    )


def test_sync_client_failure_result():
    http = Mock()
    http.post.return_value = Mock(status_code=400, json=Mock(return_value={"success": False, "error": "Unknown operation"}))
    result = SyncClient("http://kiosk.local", session=http).sync("nope", SESSION_ID)

    assert result.success is False
    assert result.error == "Unknown operation"
    assert result.status_code == 400


def test_sync_client_network_error():
    http = Mock()
    http.post.side_effect = requests.ConnectionError("refused")
    result = SyncClient("http://kiosk.local", session=http).complete(SESSION_ID)

    assert result.success is False
    assert "refused" in result.error


def test_sync_client_feedback_pages_fallback():
    http = Mock()
    http.get.side_effect = requests.Timeout("slow")
    pages = SyncClient("http://kiosk.local", session=http).get_feedback_pages()
    assert pages.thank_you_enabled is True


def test_sync_client_feedback_pages():
    http = Mock()
    http.get.return_value = Mock(
        raise_for_status=Mock(),
        json=Mock(return_value={"feedbackCollectionEnabled": True, "clientInfoEnabled": False, "suggestionEnabled": True, "thankYouEnabled": False}),
    )
    pages = SyncClient("http://kiosk.local", session=http).get_feedback_pages()
    assert pages.client_info_enabled is False
    assert pages.thank_you_enabled is False


# Draft holds what the server stored

def test_null_comment_is_stored_as_empty_string(sync_client, store):
    controller = make_controller(sync_client, store)

    outcome = controller.submit_ratings("4", [{"employeeId": "E", "rating": 5, "comment": None}])

    assert outcome.route == "/contact"
    draft = store.load()
    assert draft.pharmacy_rating == 4
    assert draft.employee_ratings[0].comment == ""


def test_partial_contact_data_is_normalized(sync_client, store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    controller = make_controller(sync_client, store)

    outcome = controller.submit_contact({"firstName": "Ann", "email": None, "consent": "on"})

    assert outcome.route == "/suggestion"
    sync_client.update_client_data.assert_called_once_with(
        SESSION_ID, {"firstName": "Ann", "email": None, "consent": "on"}
    )
    client_data = store.load().client_data
    assert client_data.first_name == "Ann"
    assert client_data.last_name == ""
    assert client_data.email == ""
    assert client_data.consent is True


# Background completion

def test_failed_background_completion_is_logged(sync_client, store, caplog):
    caplog.set_level(logging.INFO, logger="pharmacy_feedback.kiosk.controller")
    sync_client.complete.side_effect = RuntimeError("connection reset")
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    controller = make_controller(sync_client, store, thank_you_enabled=False)

    assert controller.make_where_to_go_decision() == "/feedback"
    wait_for_pending(controller)

    assert "connection reset" in caplog.text


def test_refused_background_completion_is_logged(sync_client, store, caplog):
    caplog.set_level(logging.INFO, logger="pharmacy_feedback.kiosk.controller")
    sync_client.complete.return_value = SyncResult(success=False, error="Session not found", status_code=404)
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    controller = make_controller(sync_client, store, thank_you_enabled=False)

    controller.make_where_to_go_decision()
    wait_for_pending(controller)

    assert "Session not found" in caplog.text


# Resume

def test_resumes_server_session_when_draft_is_empty(sync_client, store):
    sync_client.get_active_session.return_value = SESSION_ID
    controller = make_controller(sync_client, store)

    assert controller.draft.session_id == SESSION_ID
    assert store.load().session_id == SESSION_ID
    sync_client.get_active_session.assert_called_once_with("device_kiosk")

    controller.submit_ratings(5, RATINGS)
    sync_client.create_session.assert_not_called()
    sync_client.update_pharmacy_rating.assert_called_once_with(SESSION_ID, 5)


def test_no_server_lookup_when_draft_has_session(sync_client, store):
    store.save(FeedbackDraft(device_id="device_kiosk", session_id=SESSION_ID))
    make_controller(sync_client, store)
    sync_client.get_active_session.assert_not_called()


def test_sync_client_active_session_lookup():
    http = Mock()
    http.get.return_value = Mock(json=Mock(return_value={"success": True, "data": {"sessionId": SESSION_ID}}))
    client = SyncClient("http://kiosk.local", session=http)

    assert client.get_active_session("device_kiosk") == SESSION_ID
    http.get.assert_called_once_with(
        "http://kiosk.local/sync/active", params={"deviceId": "device_kiosk"}, timeout=10
    )

    http.get.return_value = Mock(json=Mock(return_value={"success": True, "data": None}))
    assert client.get_active_session("device_kiosk") is None
