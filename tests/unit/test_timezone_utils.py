"""
Unit tests for timezone utility helpers.
"""

import re
from datetime import datetime

from apidrift.utils.timezone import iso_timestamp, now_local, report_timestamp, today_capture_date


def test_now_local_is_timezone_aware():
    """Local time carries an offset so stored timestamps are unambiguous."""
    assert now_local().tzinfo is not None


def test_capture_date_format():
    """Capture dates are eight digits, matching baseline folder names."""
    assert re.fullmatch(r"\d{8}", today_capture_date())


def test_iso_timestamp_parses():
    """ISO timestamps round-trip through datetime.fromisoformat."""
    assert datetime.fromisoformat(iso_timestamp()).tzinfo is not None


def test_report_timestamp_format():
    """Report timestamps use the human-readable report format."""
    datetime.strptime(report_timestamp(), "%Y-%m-%d %H:%M:%S")
