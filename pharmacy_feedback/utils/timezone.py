"""Timezone utilities for converting stored UTC to the pharmacy's local time"""
import os
from datetime import datetime
import pytz

# Pharmacy timezone (handles CET/CEST automatically)
LOCAL_TZ = pytz.timezone(os.getenv("APP_TIMEZONE", "Europe/Paris"))


def convert_to_local(dt: datetime | None) -> datetime | None:
    """
    Convert UTC naive datetime to the pharmacy timezone for API display.

    Args:
        dt: Naive datetime assumed to be in UTC, or None

    Returns:
        Naive local datetime, or None if input is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        # Assume it's UTC and convert to the local zone
        utc_dt = pytz.utc.localize(dt)
        local_dt = utc_dt.astimezone(LOCAL_TZ)
        # Return as naive local datetime
        return local_dt.replace(tzinfo=None)
    return dt
