"""
Date helpers for baseline capture.

Capture dates are stamped in the machine's local timezone so the
`YYYYMMDD` folder matches the operator's calendar day.
"""

from datetime import datetime, timezone

CAPTURE_DATE_FORMAT = "%Y%m%d"
REPORT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def now_local() -> datetime:
    """Return the current timezone-aware local time."""
    return datetime.now(timezone.utc).astimezone()


def today_capture_date() -> str:
    """Return today's capture date as YYYYMMDD."""
    return now_local().strftime(CAPTURE_DATE_FORMAT)


def iso_timestamp() -> str:
    """Return the current local time in ISO-8601 with offset."""
    return now_local().isoformat()


def report_timestamp() -> str:
    """Return the current local time in the report format."""
    return now_local().strftime(REPORT_TIMESTAMP_FORMAT)
