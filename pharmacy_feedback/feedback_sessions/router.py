import logging
import secrets
import string
from typing import Dict
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from pharmacy_feedback.db.postgres import get_db
from pharmacy_feedback.feedback_sessions.models import FeedbackSession
from pharmacy_feedback.feedback_sessions.service import FeedbackSessionService
from pharmacy_feedback.feedback_sessions.staleness import is_stale
from pharmacy_feedback.feedback_sessions.exceptions import FeedbackValidationException
from pharmacy_feedback.feedback_sessions.schemas import (
    SYNC_OPERATIONS,
    ClientDataRequest,
    CompleteRequest,
    CreateSessionRequest,
    EmployeeRatingsRequest,
    FeedbackSessionResponse,
    PharmacyRatingRequest,
    SuggestionRequest,
    SweepResponse,
    SyncRequest,
    sync_failure,
    sync_success,
)
from pharmacy_feedback.auth.middleware import JWTPayload, verify_token, check_permission
from pharmacy_feedback.utils.timezone import convert_to_local

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["sync"],
)

admin_router = APIRouter(
    prefix="/admin/feedback-sessions",
    tags=["feedback-sessions"],
)

sync_request_adapter = TypeAdapter(SyncRequest)

DEVICE_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def to_response(session: FeedbackSession) -> FeedbackSessionResponse:
    """Convert FeedbackSession model to response schema"""
    return FeedbackSessionResponse(
        id=session.id,
        device_id=session.device_id,
        pharmacy_rating=session.pharmacy_rating,
        employee_ratings=session.employee_ratings or [],
        client_data=session.client_data,
        suggestion=session.suggestion,
        status=session.status,
        started_at=convert_to_local(session.started_at),
        last_active_at=convert_to_local(session.last_active_at),
        completed_at=convert_to_local(session.completed_at),
        inactivity_timeout_minutes=session.inactivity_timeout_minutes,
        is_stale=is_stale(session),
    )


def _fallback_device_id() -> str:
    suffix = "".join(secrets.choice(DEVICE_SUFFIX_ALPHABET) for _ in range(7))
    return f"device_{suffix}"


async def _read_body(request: Request) -> Dict:
    """Accept both JSON and form-encoded bodies."""
    if "application/json" in request.headers.get("content-type", ""):
        try:
            body = await request.json()
        except ValueError:
            raise FeedbackValidationException("Invalid JSON body")
        if not isinstance(body, dict):
            raise FeedbackValidationException("Request body must be an object")
        return body

    form = await request.form()
    return {key: value for key, value in form.items()}


def _parse_sync_request(body: Dict):
    """
    Check the operation tag and session id before anything touches storage,
    then build the typed request variant.
    """
    operation = body.get("operation")
    if not operation:
        raise FeedbackValidationException("Operation is required")
    if operation not in SYNC_OPERATIONS:
        raise FeedbackValidationException("Unknown operation")
    if operation != "create-session" and not body.get("sessionId"):
        raise FeedbackValidationException("Session ID is required")

    try:
        return sync_request_adapter.validate_python(body)
    except ValidationError as e:
        first_error = e.errors()[0]
        field = ".".join(str(part) for part in first_error.get("loc", ()))
        raise FeedbackValidationException(f"Invalid field '{field}': {first_error.get('msg')}")


async def _dispatch(service: FeedbackSessionService, sync_request) -> FeedbackSession:
    if isinstance(sync_request, CreateSessionRequest):
        return await service.create_session(
            device_id=sync_request.device_id or _fallback_device_id(),
            pharmacy_rating=sync_request.pharmacy_rating,
            employee_ratings=sync_request.employee_ratings,
        )

    session_id = sync_request.session_id
    await service.update_session_activity(session_id)

    if isinstance(sync_request, PharmacyRatingRequest):
        return await service.update_pharmacy_rating(session_id, sync_request.rating)
    if isinstance(sync_request, EmployeeRatingsRequest):
        return await service.update_employee_ratings(session_id, sync_request.ratings)
    if isinstance(sync_request, ClientDataRequest):
        if sync_request.client_data is None:
            raise FeedbackValidationException("Client data is required")
        return await service.update_client_data(session_id, sync_request.client_data)
    if isinstance(sync_request, SuggestionRequest):
        if sync_request.suggestion is None:
            raise FeedbackValidationException("Suggestion is required")
        return await service.update_suggestion(session_id, sync_request.suggestion)
    if isinstance(sync_request, CompleteRequest):
        return await service.complete_session(session_id)

    raise FeedbackValidationException("Unknown operation")


@router.post("/sync")
async def sync_feedback_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Single mutation surface used by every step of the kiosk flow.

    The `operation` field selects the step:
    - create-session: start a session with pharmacy and employee ratings
    - pharmacy-rating, employee-ratings, client-data, suggestion: update one step
    - complete: close the session

    Always answers with {success, data} or {success, error}.
    """
    operation = None
    try:
        body = await _read_body(request)
        operation = body.get("operation")
        sync_request = _parse_sync_request(body)

        service = FeedbackSessionService(db)
        session = await _dispatch(service, sync_request)
        logger.info(f"Sync operation '{operation}' applied to session {session.id}")

        return JSONResponse(status_code=status.HTTP_200_OK, content=sync_success({"sessionId": str(session.id)}))

    except HTTPException as e:
        if e.status_code >= 500:
            logger.error(f"Sync operation '{operation}' failed: {e.detail}")
        return JSONResponse(status_code=e.status_code, content=sync_failure(str(e.detail)))
    except Exception as e:
        logger.exception(f"Unexpected error in sync operation '{operation}'")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=sync_failure(str(e) or "Unknown error during sync"),
        )


@router.get("/sync/active")
async def get_active_session(
    device_id: str = Query(..., alias="deviceId"),
    db: AsyncSession = Depends(get_db),
):
    """Resumable session for a device, so a reload does not lose progress."""
    service = FeedbackSessionService(db)
    try:
        session = await service.get_active_session_by_device(device_id)
    except HTTPException as e:
        return JSONResponse(status_code=e.status_code, content=sync_failure(str(e.detail)))

    data = {"sessionId": str(session.id)} if session else None
    return JSONResponse(status_code=status.HTTP_200_OK, content=sync_success(data))


@admin_router.get("/{session_id}", response_model=FeedbackSessionResponse)
async def get_feedback_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Get a feedback session with all its collected data.

    Required permission: feedback:read
    """
    check_permission(jwt_payload, "feedback:read")

    service = FeedbackSessionService(db)
    return to_response(await service.get_session(session_id))


@admin_router.post("/{session_id}/process", response_model=FeedbackSessionResponse)
async def process_feedback_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Mark a completed session as processed by the reporting team.

    Required permission: feedback:process
    """
    check_permission(jwt_payload, "feedback:process")

    service = FeedbackSessionService(db)
    return to_response(await service.mark_processed(session_id))


@admin_router.post("/sweep", response_model=SweepResponse)
async def sweep_abandoned_sessions(
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Run the abandoned-session cleanup immediately.

    Required permission: feedback:process
    """
    check_permission(jwt_payload, "feedback:process")

    service = FeedbackSessionService(db)
    return SweepResponse(processed=await service.process_abandoned_sessions())
