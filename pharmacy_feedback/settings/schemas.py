"""Settings Pydantic schemas"""
from typing import Literal
from pydantic import BaseModel, Field


class FeedbackPageSettings(BaseModel):
    """Which kiosk pages are shown"""
    feedback_collection_enabled: bool = Field(True, alias="feedbackCollectionEnabled")
    client_info_enabled: bool = Field(True, alias="clientInfoEnabled")
    suggestion_enabled: bool = Field(True, alias="suggestionEnabled")
    thank_you_enabled: bool = Field(True, alias="thankYouEnabled")

    class Config:
        populate_by_name = True


class DisplaySettings(BaseModel):
    dark_mode_enabled: bool = Field(False, alias="darkModeEnabled")

    class Config:
        populate_by_name = True


class ReportSettings(BaseModel):
    auto_generate_monthly_report: bool = Field(True, alias="autoGenerateMonthlyReport")
    email_notifications: bool = Field(True, alias="emailNotifications")
    monthly_report_format: Literal["PDF", "EXCEL", "BOTH"] = Field("PDF", alias="monthlyReportFormat")

    class Config:
        populate_by_name = True


class SettingsViewModel(BaseModel):
    """Settings grouped the way the dashboard edits them"""
    display: DisplaySettings = DisplaySettings()
    feedback_pages: FeedbackPageSettings = Field(FeedbackPageSettings(), alias="feedbackPages")
    reports: ReportSettings = ReportSettings()

    class Config:
        populate_by_name = True
