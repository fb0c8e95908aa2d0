"""Settings REST API endpoints"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from pharmacy_feedback.db.postgres import get_db
from pharmacy_feedback.settings.service import SettingsService, to_view_model
from pharmacy_feedback.settings.schemas import FeedbackPageSettings, SettingsViewModel
from pharmacy_feedback.auth.middleware import JWTPayload, verify_token, check_permission

router = APIRouter(
    tags=["settings"],
)


@router.get("/settings/feedback-pages", response_model=FeedbackPageSettings)
async def get_feedback_pages(db: AsyncSession = Depends(get_db)):
    """Public: which kiosk pages are enabled."""
    service = SettingsService(db)
    return await service.get_feedback_page_settings()


@router.get("/admin/settings", response_model=SettingsViewModel)
async def get_settings(
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Get application settings.

    Required permission: settings:read
    """
    check_permission(jwt_payload, "settings:read")

    service = SettingsService(db)
    return to_view_model(await service.get_settings(jwt_payload.user_id))


@router.put("/admin/settings", response_model=SettingsViewModel)
async def update_settings(
    request: SettingsViewModel,
    db: AsyncSession = Depends(get_db),
    jwt_payload: JWTPayload = Depends(verify_token),
):
    """
    Update application settings.

    Required permission: settings:update
    """
    check_permission(jwt_payload, "settings:update")

    service = SettingsService(db)
    return to_view_model(await service.update_settings(request, jwt_payload.user_id))
