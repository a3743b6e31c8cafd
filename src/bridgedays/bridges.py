"""Bridge-day advisor

Finds stretches of consecutive free days (weekends plus public holidays)
and recommends short spans of leave that join two neighbouring stretches
into one longer vacation.

Pipeline:
  1. weekend_dates    - every Saturday/Sunday in the range
  2. merge_free_days  - holidays + weekends as one ordered timeline
  3. detect_runs      - contiguous free-day runs of a minimum length
  4. bridge_gaps      - one suggestion per worthwhile adjacent pair of runs
"""

from __future__ import annotations

import calendar
import datetime
from collections.abc import Iterable, Sequence
from typing import NamedTuple

from loguru import logger

DEFAULT_MIN_RUN_LENGTH = 3
DEFAULT_MAX_BRIDGE_GAP = 5

DateLike = datetime.date | datetime.datetime | str

_ONE_DAY = datetime.timedelta(days=1)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class BridgeError(ValueError):
    """Base class for errors raised by the bridge-day pipeline."""


class InvalidRange(BridgeError):
    """A date range is reversed or one of its bounds cannot be parsed."""


class InvalidRun(BridgeError):
    """A run's recorded length does not match its own start/end span."""


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


class Run(NamedTuple):
    """A span of consecutive free days."""

    start: datetime.date
    end: datetime.date
    length: int


class Suggestion(NamedTuple):
    """Taking *leave_days* off turns ``[start, end]`` into one vacation."""

    start: datetime.date
    end: datetime.date
    vacation_days: int
    leave_days: int


def to_calendar_date(value: DateLike) -> datetime.date:
    """Normalize *value* to a plain UTC calendar date.

    Accepts ``date`` objects, ``datetime`` objects (naive values are taken
    as UTC, aware values are converted to UTC first) and ISO strings such as
    ``2024-05-01`` or ``2024-05-01T00:00:00Z``.
    """
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if "T" in text:
                parsed = datetime.datetime.fromisoformat(text.replace("Z", "+00:00"))
                return to_calendar_date(parsed)
            return datetime.date.fromisoformat(text)
        except ValueError:
            raise InvalidRange(f"Invalid date {value!r}. Use YYYY-MM-DD.") from None
    raise InvalidRange(f"Invalid date {value!r}. Use YYYY-MM-DD.")


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


def weekend_dates(start: DateLike, end: DateLike) -> list[datetime.date]:
    """Return every Saturday and Sunday in ``[start, end]``, ascending."""
    first = to_calendar_date(start)
    last = to_calendar_date(end)
    if first > last:
        raise InvalidRange(f"Range start {first.isoformat()} is after end {last.isoformat()}.")

    # Jump straight to the first Saturday, then walk week by week
    weekends: list[datetime.date] = []
    if first.weekday() == 6:
        weekends.append(first)
    saturday = first + datetime.timedelta(days=(5 - first.weekday()) % 7)
    while saturday <= last:
        weekends.append(saturday)
        sunday = saturday + _ONE_DAY
        if sunday <= last:
            weekends.append(sunday)
        saturday += datetime.timedelta(weeks=1)
    return weekends


def merge_free_days(
    holidays: Iterable[datetime.date],
    weekends: Iterable[datetime.date],
    *,
    dedupe: bool = False,
) -> list[datetime.date]:
    """Combine holidays and weekend days into one ascending timeline.

    A holiday that falls on a weekend is kept twice unless *dedupe* is set.
    ``sorted`` is stable, so equal dates keep their input order.
    """
    free_days = [*holidays, *weekends]
    if dedupe:
        free_days = list(dict.fromkeys(free_days))
    return sorted(free_days)


def detect_runs(
    free_days: Sequence[datetime.date],
    min_run_length: int = DEFAULT_MIN_RUN_LENGTH,
    *,
    candidates: bool = False,
) -> list[Run]:
    """Find runs of consecutive free days at least *min_run_length* long.

    By default each contiguous block yields exactly one maximal run.  With
    *candidates* every position in *free_days* is tried as a run start, so a
    block of N days yields up to N overlapping runs, one per starting offset.

    *free_days* must already be sorted.
    """
    if not free_days:
        return []
    if candidates:
        return _candidate_runs(free_days, min_run_length)

    runs: list[Run] = []
    start = prev = free_days[0]
    for d in free_days[1:]:
        if d == prev:
            continue
        if d == prev + _ONE_DAY:
            prev = d
            continue
        _append_run(runs, start, prev, min_run_length)
        start = prev = d
    _append_run(runs, start, prev, min_run_length)
    return runs


def _append_run(
    runs: list[Run],
    start: datetime.date,
    end: datetime.date,
    min_run_length: int,
) -> None:
    length = (end - start).days + 1
    if length >= min_run_length:
        runs.append(Run(start, end, length))


def _candidate_runs(free_days: Sequence[datetime.date], min_run_length: int) -> list[Run]:
    present = set(free_days)
    runs: list[Run] = []
    for start in free_days:
        end = start
        while end + _ONE_DAY in present:
            end += _ONE_DAY
        _append_run(runs, start, end, min_run_length)
    return runs


def bridge_gaps(
    runs: Sequence[Run],
    max_bridge_gap: int = DEFAULT_MAX_BRIDGE_GAP,
) -> list[Suggestion]:
    """Suggest leave that joins each adjacent pair of runs.

    A pair qualifies when the calendar gap between them is at most
    *max_bridge_gap* days and the two runs together are longer than three
    days.  The gap is measured from the left run's end to the right run's
    start, so ``gap - 1`` days have to be taken off.

    Pairs with a gap below one day are skipped rather than reported with
    negative leave.  They only occur with ``detect_runs(..., candidates=True)``,
    where neighbouring runs can overlap.
    """
    suggestions: list[Suggestion] = []
    for left, right in zip(runs, runs[1:]):
        _check_run(left)
        _check_run(right)

        gap = (right.start - left.end).days
        if gap < 1:
            # Overlapping candidate runs of the same block
            continue
        if gap > max_bridge_gap or left.length + right.length <= 3:
            continue

        suggestions.append(
            Suggestion(
                start=left.start,
                end=right.end,
                vacation_days=left.length + right.length + gap,
                leave_days=gap - 1,
            )
        )
    return suggestions


def _check_run(run: Run) -> None:
    span = (run.end - run.start).days + 1
    if run.length != span:
        raise InvalidRun(
            f"Run {run.start.isoformat()}..{run.end.isoformat()} spans {span} days "
            f"but records length {run.length}."
        )


def compute_suggestions(
    holiday_dates: Iterable[DateLike],
    range_start: DateLike,
    range_end: DateLike,
    min_run_length: int = DEFAULT_MIN_RUN_LENGTH,
    max_bridge_gap: int = DEFAULT_MAX_BRIDGE_GAP,
    *,
    candidates: bool = False,
    dedupe: bool = False,
) -> list[Suggestion]:
    """Run the full pipeline and return the ordered suggestion list."""
    holidays = [to_calendar_date(h) for h in holiday_dates]
    weekends = weekend_dates(range_start, range_end)
    free_days = merge_free_days(holidays, weekends, dedupe=dedupe)
    runs = detect_runs(free_days, min_run_length, candidates=candidates)
    suggestions = bridge_gaps(runs, max_bridge_gap)
    logger.debug(
        "{} holidays + {} weekend days -> {} runs -> {} suggestions",
        len(holidays),
        len(weekends),
        len(runs),
        len(suggestions),
    )
    return suggestions


def compute_runs(
    holiday_dates: Iterable[DateLike],
    range_start: DateLike,
    range_end: DateLike,
    min_run_length: int = DEFAULT_MIN_RUN_LENGTH,
    *,
    candidates: bool = False,
    dedupe: bool = False,
) -> list[Run]:
    """Return the free-day runs that need no leave at all (long weekends)."""
    holidays = [to_calendar_date(h) for h in holiday_dates]
    free_days = merge_free_days(holidays, weekend_dates(range_start, range_end), dedupe=dedupe)
    return detect_runs(free_days, min_run_length, candidates=candidates)


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------


def _date_range_label(start: datetime.date, end: datetime.date) -> str:
    if start == end:
        return start.strftime("%a, %b %d %Y")
    return f"{start.strftime('%a, %b %d %Y')} -> {end.strftime('%a, %b %d %Y')}"


def format_runs(runs: Sequence[Run]) -> str:
    """Return a human-readable list of free-day runs."""
    lines: list[str] = ["", "  Free stretches (no leave needed):", "  " + "-" * 60]
    if not runs:
        lines.append("  (none)")
    for i, run in enumerate(runs, 1):
        lines.append(f"  {i:>2}. {_date_range_label(run.start, run.end)}  ({run.length} days)")
    return "\n".join(lines)


def format_suggestions(suggestions: Sequence[Suggestion]) -> str:
    """Return a human-readable summary of bridge suggestions."""
    lines: list[str] = ["", "  Bridge suggestions:", "  " + "-" * 60]
    if not suggestions:
        lines.append("  (none)")
        return "\n".join(lines)

    for i, s in enumerate(suggestions, 1):
        lines.append(f"  {i:>2}. {_date_range_label(s.start, s.end)}")
        leave_word = "day" if s.leave_days == 1 else "days"
        lines.append(f"      {s.vacation_days} days off for {s.leave_days} leave {leave_word}")
        if s.leave_days > 0:
            lines.append(f"      Efficiency: {s.vacation_days / s.leave_days:.1f}x")
        lines.append("")

    total_leave = sum(s.leave_days for s in suggestions)
    lines.append(f"  Leave days if all suggestions are taken: {total_leave}")
    return "\n".join(lines)


def format_calendar_view(
    suggestions: Sequence[Suggestion],
    holidays: Iterable[datetime.date],
    start: datetime.date,
    end: datetime.date,
) -> str:
    """Return a month-by-month calendar of the suggested vacations.

    ``H`` marks a holiday, ``L`` a weekday inside a suggestion that has to be
    taken as leave, ``*`` a weekend day inside a suggestion.
    """
    holiday_set = set(holidays)
    in_suggestion: set[datetime.date] = set()
    for s in suggestions:
        d = s.start
        while d <= s.end:
            in_suggestion.add(d)
            d += _ONE_DAY

    active_months = sorted(
        {(d.year, d.month) for d in in_suggestion | holiday_set if start <= d <= end}
    )
    if not active_months:
        return ""

    lines: list[str] = [
        "",
        f"  Calendar View {start.isoformat()} -> {end.isoformat()}",
        "  Legend: H=Holiday  L=Leave  *=Weekend inside a bridge",
        "",
    ]

    cal = calendar.Calendar(firstweekday=0)

    for year, month in active_months:
        lines.append(f"  {calendar.month_name[month]} {year}")
        lines.append("  Mo  Tu  We  Th  Fr  Sa  Su")

        row = ""
        for day_num, weekday in cal.itermonthdays2(year, month):
            if day_num == 0:
                row += "    "
            else:
                d = datetime.date(year, month, day_num)
                if d in holiday_set:
                    cell = f" {day_num:>2}H"
                elif d in in_suggestion and weekday >= 5:
                    cell = f" {day_num:>2}*"
                elif d in in_suggestion:
                    cell = f" {day_num:>2}L"
                else:
                    cell = f"  {day_num:>2}"
                row += cell

            if weekday == 6:
                lines.append(row)
                row = ""

        if row.strip():
            lines.append(row)
        lines.append("")

    return "\n".join(lines)
