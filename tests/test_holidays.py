from __future__ import annotations

import datetime
import json
import pathlib

import httpx
import pytest

from bridgedays.holidays import (
    GoogleCalendarSource,
    HolidaySourceError,
    at_holidays,
    get_holidays,
    holidays_between,
    holidays_from_events,
    us_holidays,
)

CALENDAR_ID = "en.austrian#holiday@group.v.calendar.google.com"


def _events() -> dict[str, object]:
    return {
        "summary": "Holidays in Austria",
        "items": [
            {"summary": "Labour Day", "start": {"date": "2024-05-01"}},
            {"summary": "New Year's Day", "start": {"date": "2024-01-01"}},
        ],
    }


def _source(
    handler: object, cache_dir: pathlib.Path | None = None
) -> GoogleCalendarSource:
    client = httpx.Client(transport=httpx.MockTransport(handler))  # type: ignore[arg-type]
    return GoogleCalendarSource("secret", CALENDAR_ID, cache_dir, client=client)


class TestHolidayPresets:
    def test_us_holidays_count(self) -> None:
        assert len(us_holidays(2025)) == 9

    def test_us_holidays_observed_saturday(self) -> None:
        # July 4, 2026 falls on Saturday -> observed Friday July 3
        dates = {d for d, _ in us_holidays(2026)}
        assert datetime.date(2026, 7, 3) in dates

    def test_at_holidays_easter_based(self) -> None:
        # Easter Sunday 2025 is April 20
        dates = {n: d for d, n in at_holidays(2025)}
        assert dates["Easter Monday"] == datetime.date(2025, 4, 21)
        assert dates["Ascension Day"] == datetime.date(2025, 5, 29)
        assert dates["Whit Monday"] == datetime.date(2025, 6, 9)
        assert dates["Corpus Christi"] == datetime.date(2025, 6, 19)

    def test_at_holidays_not_shifted(self) -> None:
        # National Day 2025 is a Sunday and stays there
        dates = {n: d for d, n in at_holidays(2025)}
        assert dates["National Day"] == datetime.date(2025, 10, 26)
        assert len(dates) == 13

    def test_presets_sorted(self) -> None:
        for fn in (us_holidays, at_holidays):
            dates = [d for d, _ in fn(2024)]
            assert dates == sorted(dates)

    def test_get_holidays_unknown_country(self) -> None:
        with pytest.raises(KeyError):
            get_holidays("xx", 2025)

    def test_holidays_between_crosses_year(self) -> None:
        result = holidays_between("us", datetime.date(2024, 12, 1), datetime.date(2025, 1, 31))
        assert [d for d, _ in result] == [
            datetime.date(2024, 12, 25),
            datetime.date(2025, 1, 1),
            datetime.date(2025, 1, 20),
        ]


class TestHolidaysFromEvents:
    def test_resolves_start_dates(self) -> None:
        assert holidays_from_events(_events()) == [
            (datetime.date(2024, 5, 1), "Labour Day"),
            (datetime.date(2024, 1, 1), "New Year's Day"),
        ]

    def test_no_items(self) -> None:
        assert holidays_from_events({"summary": "empty"}) == []

    def test_malformed_date(self) -> None:
        with pytest.raises(HolidaySourceError):
            holidays_from_events({"items": [{"start": {"date": "2024-5-1x"}}]})

    def test_missing_date(self) -> None:
        with pytest.raises(HolidaySourceError):
            holidays_from_events({"items": [{"summary": "no start"}]})

    def test_item_not_an_object(self) -> None:
        with pytest.raises(HolidaySourceError):
            holidays_from_events({"items": ["2024-05-01"]})

    def test_start_not_an_object(self) -> None:
        with pytest.raises(HolidaySourceError):
            holidays_from_events({"items": [{"start": "2024-05-01"}]})


class TestGoogleCalendarSource:
    def test_request_parameters(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_events())

        source = _source(handler)
        result = source.holidays(datetime.date(2024, 1, 1), datetime.date(2024, 12, 31))

        assert len(result) == 2
        request = seen[0]
        assert request.url.params["key"] == "secret"
        assert request.url.params["timeMin"] == "2024-01-01T00:00:00Z"
        assert request.url.params["timeMax"] == "2024-12-31T00:00:00Z"
        assert b"en.austrian%23holiday%40group" in request.url.raw_path

    def test_events_cached_and_reused(self, tmp_path: pathlib.Path) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=_events())

        source = _source(handler, tmp_path)
        start, end = datetime.date(2024, 1, 1), datetime.date(2024, 12, 31)

        first = source.holidays(start, end)
        second = source.holidays(start, end)

        assert first == second
        assert len(calls) == 1
        cached = json.loads((tmp_path / f"{CALENDAR_ID}.json").read_text())
        assert cached["items"][0]["summary"] == "Labour Day"

    def test_existing_cache_skips_request(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / f"{CALENDAR_ID}.json").write_text(json.dumps(_events()))

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("network should not be used")

        source = _source(handler, tmp_path)
        result = source.holidays(datetime.date(2024, 1, 1), datetime.date(2024, 12, 31))
        assert datetime.date(2024, 5, 1) in {d for d, _ in result}

    def test_corrupt_cache(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / f"{CALENDAR_ID}.json").write_text("not json{{{")
        source = _source(lambda request: httpx.Response(200, json=_events()), tmp_path)
        with pytest.raises(HolidaySourceError):
            source.fetch_events(datetime.date(2024, 1, 1), datetime.date(2024, 12, 31))

    @pytest.mark.parametrize("content", ["[]", '"x"', "null"])
    def test_cache_not_an_object(self, tmp_path: pathlib.Path, content: str) -> None:
        (tmp_path / f"{CALENDAR_ID}.json").write_text(content)
        source = _source(lambda request: httpx.Response(200, json=_events()), tmp_path)
        with pytest.raises(HolidaySourceError, match="cache file"):
            source.holidays(datetime.date(2024, 1, 1), datetime.date(2024, 12, 31))

    def test_events_outside_range_dropped(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / f"{CALENDAR_ID}.json").write_text(json.dumps(_events()))
        source = _source(lambda request: httpx.Response(200, json=_events()), tmp_path)
        result = source.holidays(datetime.date(2024, 3, 1), datetime.date(2024, 12, 31))
        assert result == [(datetime.date(2024, 5, 1), "Labour Day")]

    def test_http_error(self) -> None:
        source = _source(lambda request: httpx.Response(403, json={"error": "forbidden"}))
        with pytest.raises(HolidaySourceError):
            source.holidays(datetime.date(2024, 1, 1), datetime.date(2024, 12, 31))

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        source = _source(handler)
        with pytest.raises(HolidaySourceError):
            source.holidays(datetime.date(2024, 1, 1), datetime.date(2024, 12, 31))

    def test_failed_request_not_cached(self, tmp_path: pathlib.Path) -> None:
        source = _source(lambda request: httpx.Response(500), tmp_path)
        with pytest.raises(HolidaySourceError):
            source.fetch_events(datetime.date(2024, 1, 1), datetime.date(2024, 12, 31))
        assert not (tmp_path / f"{CALENDAR_ID}.json").exists()
