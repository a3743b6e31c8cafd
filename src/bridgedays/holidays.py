"""Holiday sources: built-in country presets and Google Calendar.

Each preset computes public holidays for a given year.  The US preset
uses *observed* dates: if a holiday falls on Saturday the observed date is
the preceding Friday; if it falls on Sunday the observed date is the
following Monday.  Austrian holidays are never shifted.

``GoogleCalendarSource`` reads a public holiday calendar through the
Google Calendar v3 API and caches the raw events on disk.
"""

from __future__ import annotations

import datetime
import json
import pathlib
import urllib.parse
from collections.abc import Callable
from typing import Any

import httpx
from loguru import logger

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> datetime.date:
    """Return the *n*-th occurrence of *weekday* in *month* of *year*.

    *weekday* follows ``datetime`` convention: 0 = Monday … 6 = Sunday.
    *n* is 1-based (1 = first, 2 = second, …).
    """
    first = datetime.date(year, month, 1)
    delta = (weekday - first.weekday()) % 7
    first_occurrence = first + datetime.timedelta(days=delta)
    return first_occurrence + datetime.timedelta(weeks=n - 1)


def _last_weekday(year: int, month: int, weekday: int) -> datetime.date:
    """Return the last occurrence of *weekday* in *month* of *year*."""
    if month == 12:
        last = datetime.date(year, 12, 31)
    else:
        last = datetime.date(year, month + 1, 1) - datetime.timedelta(days=1)
    delta = (last.weekday() - weekday) % 7
    return last - datetime.timedelta(days=delta)


def _observed(d: datetime.date) -> datetime.date:
    """Shift a holiday to its *observed* date (Sat→Fri, Sun→Mon)."""
    if d.weekday() == 5:  # Saturday
        return d - datetime.timedelta(days=1)
    if d.weekday() == 6:  # Sunday
        return d + datetime.timedelta(days=1)
    return d


def _easter_sunday(year: int) -> datetime.date:
    """Compute Easter Sunday using the Anonymous Gregorian algorithm."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return datetime.date(year, month, day + 1)


# ---------------------------------------------------------------------------
# Country presets
# ---------------------------------------------------------------------------

PRESETS: dict[str, str] = {
    "at": "Austrian public holidays",
    "us": "United States federal holidays",
}


def us_holidays(year: int) -> list[tuple[datetime.date, str]]:
    """US federal holidays (observed) for *year*."""
    return sorted(
        [
            (_observed(datetime.date(year, 1, 1)), "New Year's Day"),
            (_nth_weekday(year, 1, 0, 3), "Martin Luther King Jr. Day"),
            (_nth_weekday(year, 2, 0, 3), "Presidents' Day"),
            (_last_weekday(year, 5, 0), "Memorial Day"),
            (_observed(datetime.date(year, 6, 19)), "Juneteenth"),
            (_observed(datetime.date(year, 7, 4)), "Independence Day"),
            (_nth_weekday(year, 9, 0, 1), "Labor Day"),
            (_nth_weekday(year, 11, 3, 4), "Thanksgiving"),
            (_observed(datetime.date(year, 12, 25)), "Christmas Day"),
        ]
    )


def at_holidays(year: int) -> list[tuple[datetime.date, str]]:
    """Austrian public holidays for *year*."""
    easter = _easter_sunday(year)
    return sorted(
        [
            (datetime.date(year, 1, 1), "New Year's Day"),
            (datetime.date(year, 1, 6), "Epiphany"),
            (easter + datetime.timedelta(days=1), "Easter Monday"),
            (datetime.date(year, 5, 1), "Labour Day"),
            (easter + datetime.timedelta(days=39), "Ascension Day"),
            (easter + datetime.timedelta(days=50), "Whit Monday"),
            (easter + datetime.timedelta(days=60), "Corpus Christi"),
            (datetime.date(year, 8, 15), "Assumption Day"),
            (datetime.date(year, 10, 26), "National Day"),
            (datetime.date(year, 11, 1), "All Saints' Day"),
            (datetime.date(year, 12, 8), "Immaculate Conception"),
            (datetime.date(year, 12, 25), "Christmas Day"),
            (datetime.date(year, 12, 26), "St. Stephen's Day"),
        ]
    )


_PRESET_FNS: dict[str, Callable[[int], list[tuple[datetime.date, str]]]] = {
    "at": at_holidays,
    "us": us_holidays,
}


def get_holidays(country: str, year: int) -> list[tuple[datetime.date, str]]:
    """Return ``(date, name)`` pairs for the given *country* preset and *year*.

    Raises ``KeyError`` if the country is not supported.
    """
    fn = _PRESET_FNS.get(country)
    if fn is None:
        supported = ", ".join(sorted(PRESETS))
        msg = f"Unknown country preset {country!r}. Supported: {supported}"
        raise KeyError(msg)
    return fn(year)


def holidays_between(
    country: str, start: datetime.date, end: datetime.date
) -> list[tuple[datetime.date, str]]:
    """Preset holidays falling inside ``[start, end]``, across year boundaries."""
    result: list[tuple[datetime.date, str]] = []
    for year in range(start.year, end.year + 1):
        result.extend((d, n) for d, n in get_holidays(country, year) if start <= d <= end)
    return result


# ---------------------------------------------------------------------------
# Google Calendar
# ---------------------------------------------------------------------------

DEFAULT_CALENDAR_ID = "en.austrian#holiday@group.v.calendar.google.com"
GOOGLE_CALENDAR_URL = "https://www.googleapis.com/calendar/v3"
_TIME_FORMAT = "%Y-%m-%dT00:00:00Z"


class HolidaySourceError(RuntimeError):
    """Holiday events could not be fetched, cached or parsed."""


def holidays_from_events(payload: dict[str, Any]) -> list[tuple[datetime.date, str]]:
    """Resolve the ``start.date`` of every event item in *payload*."""
    holidays: list[tuple[datetime.date, str]] = []
    for item in payload.get("items") or []:
        if not isinstance(item, dict) or not isinstance(item.get("start") or {}, dict):
            raise HolidaySourceError(f"Unexpected holiday event {item!r}.")
        raw = (item.get("start") or {}).get("date", "")
        try:
            d = datetime.date.fromisoformat(raw)
        except (TypeError, ValueError):
            raise HolidaySourceError(f"Invalid event date {raw!r}.") from None
        holidays.append((d, item.get("summary", "")))
    return holidays


class GoogleCalendarSource:
    """Public holidays from a Google Calendar, cached as JSON on disk.

    The events for a calendar are stored in ``<cache_dir>/<calendar_id>.json``.
    Once that file exists it is used instead of the API.
    """

    def __init__(
        self,
        api_key: str,
        calendar_id: str = DEFAULT_CALENDAR_ID,
        cache_dir: str | pathlib.Path | None = None,
        *,
        base_url: str = GOOGLE_CALENDAR_URL,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.calendar_id = calendar_id
        self.cache_dir = pathlib.Path(cache_dir) if cache_dir is not None else None
        self.base_url = base_url.rstrip("/")
        self._client = client

    @property
    def cache_path(self) -> pathlib.Path | None:
        if self.cache_dir is None:
            return None
        return self.cache_dir / f"{self.calendar_id}.json"

    def fetch_events(self, start: datetime.date, end: datetime.date) -> dict[str, Any]:
        """Return the raw events payload, from the cache when available."""
        path = self.cache_path
        if path is not None and path.exists():
            logger.info("Reading cached holiday events from {}", path)
            try:
                payload = json.loads(path.read_text())
            except json.JSONDecodeError as exc:
                raise HolidaySourceError(f"Invalid JSON in cache file {path}: {exc}") from exc
            if not isinstance(payload, dict):
                raise HolidaySourceError(f"Unexpected events payload in cache file {path}.")
            return payload

        payload = self._request(start, end)

        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=4))
            logger.debug("Cached {} holiday events in {}", len(payload.get("items") or []), path)
        return payload

    def _request(self, start: datetime.date, end: datetime.date) -> dict[str, Any]:
        url = f"{self.base_url}/calendars/{urllib.parse.quote(self.calendar_id, safe='')}/events"
        params = {
            "key": self.api_key,
            "timeMin": start.strftime(_TIME_FORMAT),
            "timeMax": end.strftime(_TIME_FORMAT),
        }
        logger.info("Requesting holiday events for {} ({} to {})", self.calendar_id, start, end)
        try:
            if self._client is not None:
                response = self._client.get(url, params=params)
            else:
                with httpx.Client(timeout=10.0) as client:
                    response = client.get(url, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPStatusError, httpx.RequestError, ValueError) as exc:
            raise HolidaySourceError(f"Failed to fetch holiday events: {exc}") from exc

        if not isinstance(payload, dict):
            raise HolidaySourceError("Unexpected holiday events payload.")
        return payload

    def holidays(self, start: datetime.date, end: datetime.date) -> list[tuple[datetime.date, str]]:
        """``(date, name)`` pairs for every holiday event in the range.

        The cache is keyed by calendar only, so events outside ``[start, end]``
        are dropped here.
        """
        events = holidays_from_events(self.fetch_events(start, end))
        return [(d, name) for d, name in events if start <= d <= end]
