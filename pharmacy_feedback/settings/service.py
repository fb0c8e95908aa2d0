"""Settings service layer"""
import logging
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from pharmacy_feedback.db.exceptions import StorageException
from pharmacy_feedback.db.repository import BaseRepository
from pharmacy_feedback.settings.models import AppSettings
from pharmacy_feedback.settings.schemas import (
    DisplaySettings,
    FeedbackPageSettings,
    ReportSettings,
    SettingsViewModel,
)

logger = logging.getLogger(__name__)


class SettingsRepository(BaseRepository):
    """Repository for the settings row"""

    async def get(self) -> Optional[AppSettings]:
        stmt = select(AppSettings).order_by(AppSettings.created_at).limit(1)
        result = await self._execute(stmt, "load settings")
        return result.scalar_one_or_none()

    async def save(self, settings: AppSettings) -> AppSettings:
        self.db.add(settings)
        return await self._commit(settings, "save settings")


class SettingsService:
    """Service layer for application settings"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = SettingsRepository(db)

    async def get_settings(self, user_id: Optional[str] = None) -> AppSettings:
        """Get the settings row, creating defaults on first use."""
        settings = await self.repository.get()
        if settings is None:
            logger.info("Creating default application settings")
            settings = await self.repository.save(AppSettings(updated_by=user_id))
        return settings

    async def update_settings(self, view_model: SettingsViewModel, user_id: str) -> AppSettings:
        settings = await self.get_settings(user_id)

        settings.dark_mode = view_model.display.dark_mode_enabled
        settings.email_notifications = view_model.reports.email_notifications
        settings.auto_generate_monthly_report = view_model.reports.auto_generate_monthly_report
        settings.monthly_report_format = view_model.reports.monthly_report_format
        # Feedback collection cannot be switched off
        settings.feedback_collection_enabled = True
        settings.client_info_enabled = view_model.feedback_pages.client_info_enabled
        settings.suggestion_enabled = view_model.feedback_pages.suggestion_enabled
        settings.thank_you_enabled = view_model.feedback_pages.thank_you_enabled
        settings.updated_by = user_id

        settings = await self.repository.save(settings)
        logger.info(f"Settings updated by {user_id}")
        return settings

    async def get_feedback_page_settings(self) -> FeedbackPageSettings:
        """Kiosk page flags. Falls back to every page enabled if storage fails."""
        try:
            settings = await self.get_settings()
        except StorageException as e:
            logger.warning(f"Using default feedback page settings: {e.detail}")
            return FeedbackPageSettings()
        return to_feedback_pages(settings)


def to_feedback_pages(settings: AppSettings) -> FeedbackPageSettings:
    return FeedbackPageSettings(
        feedback_collection_enabled=settings.feedback_collection_enabled is True,
        client_info_enabled=settings.client_info_enabled is True,
        suggestion_enabled=settings.suggestion_enabled is True,
        thank_you_enabled=settings.thank_you_enabled is True,
    )


def to_view_model(settings: AppSettings) -> SettingsViewModel:
    """Map the settings row to the grouped dashboard view"""
    return SettingsViewModel(
        display=DisplaySettings(dark_mode_enabled=settings.dark_mode is True),
        feedback_pages=to_feedback_pages(settings),
        reports=ReportSettings(
            auto_generate_monthly_report=settings.auto_generate_monthly_report is True,
            email_notifications=settings.email_notifications is True,
            monthly_report_format=settings.monthly_report_format or "PDF",
        ),
    )
