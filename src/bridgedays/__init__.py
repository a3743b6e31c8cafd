"""Bridge-day advisor.

Find short spans of leave that join weekends and public holidays into
long vacations.
"""

from bridgedays.bridges import (
    BridgeError,
    InvalidRange,
    InvalidRun,
    Run,
    Suggestion,
    bridge_gaps,
    compute_runs,
    compute_suggestions,
    detect_runs,
    merge_free_days,
    to_calendar_date,
    weekend_dates,
)
from bridgedays.holidays import GoogleCalendarSource, get_holidays, holidays_between

__all__ = [
    "BridgeError",
    "GoogleCalendarSource",
    "InvalidRange",
    "InvalidRun",
    "Run",
    "Suggestion",
    "bridge_gaps",
    "compute_runs",
    "compute_suggestions",
    "detect_runs",
    "get_holidays",
    "holidays_between",
    "merge_free_days",
    "to_calendar_date",
    "weekend_dates",
]
