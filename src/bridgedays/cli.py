"""Typer CLI for the bridge-day advisor."""

from __future__ import annotations

import datetime
import json
import pathlib
import sys
from typing import NamedTuple, NoReturn

import typer
from loguru import logger

from bridgedays.bridges import (
    DEFAULT_MAX_BRIDGE_GAP,
    DEFAULT_MIN_RUN_LENGTH,
    BridgeError,
    Run,
    Suggestion,
    compute_runs,
    compute_suggestions,
    format_calendar_view,
    format_runs,
    format_suggestions,
    to_calendar_date,
)
from bridgedays.holidays import (
    DEFAULT_CALENDAR_ID,
    PRESETS,
    GoogleCalendarSource,
    HolidaySourceError,
    get_holidays,
    holidays_between,
)
from bridgedays.trello import DEFAULT_BOARD_NAME, TrelloClient, TrelloError, publish_suggestions

app = typer.Typer(
    name="bridgedays",
    help="Bridge-day advisor: find where a few days of leave join weekends "
    "and public holidays into long vacations.",
    add_completion=False,
)

DEFAULT_CACHE_DIR = pathlib.Path.home() / ".cache" / "bridgedays"


@app.callback()
def _setup_logging(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log requests and pipeline steps."
    ),
) -> None:
    """Send log records to stderr: DEBUG with --verbose, otherwise WARNING and above."""
    logger.remove()
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<level>{message}</level>"
        ),
        level="DEBUG" if verbose else "WARNING",
    )


class Settings(NamedTuple):
    """Resolved run settings: command line first, then config file, then defaults."""

    start: datetime.date
    end: datetime.date
    min_run_length: int
    max_bridge_gap: int
    country: str
    extra_holidays: list[datetime.date]
    calendar_id: str


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _current_year() -> int:
    return datetime.date.today().year


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _load_config(path: str | None) -> dict[str, object]:
    """Load a JSON config file; an absent *path* yields an empty config."""
    if path is None:
        return {}
    p = pathlib.Path(path)
    if not p.exists():
        _fail(f"Config file not found: {path}")

    try:
        data = json.loads(p.read_text())
    except json.JSONDecodeError as exc:
        _fail(f"Invalid JSON in config file: {exc}")

    if not isinstance(data, dict):
        _fail("Config file must contain a JSON object.")

    return data


def _resolve_settings(
    data: dict[str, object],
    start: str | None,
    end: str | None,
    min_run: int | None,
    max_gap: int | None,
    country: str | None,
    holiday: list[str] | None,
    calendar_id: str | None,
    google: bool,
) -> Settings:
    year = _current_year()
    raw_start = start if start is not None else data.get("start", f"{year}-01-01")
    raw_end = end if end is not None else data.get("end", f"{year}-12-31")

    if min_run is None:
        min_run = data.get("min_run_length", DEFAULT_MIN_RUN_LENGTH)  # type: ignore[assignment]
    if max_gap is None:
        max_gap = data.get("max_bridge_gap", DEFAULT_MAX_BRIDGE_GAP)  # type: ignore[assignment]
    try:
        min_run_length = int(min_run)  # type: ignore[arg-type]
        max_bridge_gap = int(max_gap)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        _fail("min_run_length and max_bridge_gap must be whole numbers.")
    if min_run_length < 1 or max_bridge_gap < 1:
        _fail("min_run_length and max_bridge_gap must be at least 1.")

    resolved_country = country or data.get("country") or ("none" if google else "us")
    raw_holidays = [*data.get("holidays", []), *(holiday or [])]  # type: ignore[misc]

    return Settings(
        start=to_calendar_date(raw_start),  # type: ignore[arg-type]
        end=to_calendar_date(raw_end),  # type: ignore[arg-type]
        min_run_length=min_run_length,
        max_bridge_gap=max_bridge_gap,
        country=str(resolved_country),
        extra_holidays=[to_calendar_date(h) for h in raw_holidays],
        calendar_id=calendar_id or str(data.get("calendar_id", DEFAULT_CALENDAR_ID)),
    )


def _collect_holidays(
    settings: Settings,
    google: bool,
    api_key: str | None,
    cache_dir: str | None,
) -> dict[datetime.date, str]:
    """Gather holidays from the preset, Google Calendar and custom dates."""
    names: dict[datetime.date, str] = {}

    if settings.country != "none":
        names.update(holidays_between(settings.country, settings.start, settings.end))

    if google:
        if not api_key:
            _fail("A Google API key is required with --google (set GCP_API_KEY).")
        source = GoogleCalendarSource(
            api_key,
            settings.calendar_id,
            cache_dir if cache_dir is not None else DEFAULT_CACHE_DIR,
        )
        for d, name in source.holidays(settings.start, settings.end):
            names.setdefault(d, name)

    for d in settings.extra_holidays:
        names.setdefault(d, "Custom holiday")

    return dict(sorted(names.items()))


def _prepare(
    config: str | None,
    start: str | None,
    end: str | None,
    min_run: int | None,
    max_gap: int | None,
    country: str | None,
    holiday: list[str] | None,
    google: bool,
    calendar_id: str | None,
    api_key: str | None,
    cache_dir: str | None,
) -> tuple[Settings, dict[datetime.date, str]]:
    data = _load_config(config)
    try:
        settings = _resolve_settings(
            data, start, end, min_run, max_gap, country, holiday, calendar_id, google
        )
        if settings.start > settings.end:
            raise BridgeError(
                f"Range start {settings.start.isoformat()} is after end {settings.end.isoformat()}."
            )
        holidays = _collect_holidays(settings, google, api_key, cache_dir)
    except KeyError as exc:
        _fail(str(exc.args[0]))
    except (BridgeError, HolidaySourceError) as exc:
        _fail(str(exc))
    return settings, holidays


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def suggest(
    start: str | None = typer.Option(
        None, "--start", help="First day of the range (YYYY-MM-DD). Defaults to Jan 1."
    ),
    end: str | None = typer.Option(
        None, "--end", help="Last day of the range (YYYY-MM-DD). Defaults to Dec 31."
    ),
    min_run: int | None = typer.Option(
        None,
        "--min-run",
        "-m",
        help=f"Shortest free stretch worth bridging. Default {DEFAULT_MIN_RUN_LENGTH}.",
        min=1,
    ),
    max_gap: int | None = typer.Option(
        None,
        "--max-gap",
        "-g",
        help=f"Largest gap between stretches to bridge. Default {DEFAULT_MAX_BRIDGE_GAP}.",
        min=1,
    ),
    country: str | None = typer.Option(
        None,
        "--country",
        "-c",
        help=f"Holiday preset ({', '.join(sorted(PRESETS))}). Use 'none' to skip.",
    ),
    holiday: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--holiday",
        "-H",
        help="Additional holiday date (YYYY-MM-DD). Repeatable.",
    ),
    google: bool = typer.Option(
        False, "--google/--no-google", help="Read holidays from a Google Calendar."
    ),
    calendar_id: str | None = typer.Option(
        None, "--calendar-id", help=f"Google Calendar id. Default {DEFAULT_CALENDAR_ID}."
    ),
    api_key: str | None = typer.Option(
        None, "--api-key", envvar="GCP_API_KEY", help="Google API key."
    ),
    cache_dir: str | None = typer.Option(
        None, "--cache-dir", help="Directory for cached calendar events."
    ),
    candidates: bool = typer.Option(
        False,
        "--candidates",
        help="Try every free day as a run start (overlapping runs) instead of maximal runs.",
    ),
    dedupe: bool = typer.Option(
        False, "--dedupe", help="Drop holidays that coincide with weekend days before merging."
    ),
    calendar: bool = typer.Option(
        True,
        "--calendar/--no-calendar",
        help="Show month-by-month calendar view.",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        help="Output results as JSON.",
    ),
    config: str | None = typer.Option(
        None,
        "--config",
        help="Path to a JSON config file.",
    ),
) -> None:
    """Suggest leave days that bridge free stretches into long vacations."""
    settings, holidays = _prepare(
        config, start, end, min_run, max_gap, country, holiday,
        google, calendar_id, api_key, cache_dir,
    )

    suggestions = compute_suggestions(
        list(holidays),
        settings.start,
        settings.end,
        settings.min_run_length,
        settings.max_bridge_gap,
        candidates=candidates,
        dedupe=dedupe,
    )

    if output_json:
        _print_json(suggestions, settings, holidays)
    else:
        _print_header(settings, holidays)
        typer.echo(format_suggestions(suggestions))
        if calendar:
            typer.echo(format_calendar_view(suggestions, holidays, settings.start, settings.end))
        _print_footer(len(suggestions), "suggestion")


@app.command()
def runs(
    start: str | None = typer.Option(
        None, "--start", help="First day of the range (YYYY-MM-DD). Defaults to Jan 1."
    ),
    end: str | None = typer.Option(
        None, "--end", help="Last day of the range (YYYY-MM-DD). Defaults to Dec 31."
    ),
    min_run: int | None = typer.Option(
        None,
        "--min-run",
        "-m",
        help=f"Shortest free stretch to list. Default {DEFAULT_MIN_RUN_LENGTH}.",
        min=1,
    ),
    country: str | None = typer.Option(
        None,
        "--country",
        "-c",
        help=f"Holiday preset ({', '.join(sorted(PRESETS))}). Use 'none' to skip.",
    ),
    holiday: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--holiday",
        "-H",
        help="Additional holiday date (YYYY-MM-DD). Repeatable.",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        help="Output results as JSON.",
    ),
    config: str | None = typer.Option(
        None,
        "--config",
        help="Path to a JSON config file.",
    ),
) -> None:
    """List free stretches that need no leave at all (long weekends)."""
    settings, holidays = _prepare(
        config, start, end, min_run, None, country, holiday, False, None, None, None
    )
    found = compute_runs(list(holidays), settings.start, settings.end, settings.min_run_length)

    if output_json:
        json.dump([_serialize_run(r) for r in found], sys.stdout, indent=2)
        typer.echo()
        return

    _print_header(settings, holidays)
    typer.echo(format_runs(found))
    _print_footer(len(found), "free stretch", "free stretches")


@app.command()
def publish(
    start: str | None = typer.Option(
        None, "--start", help="First day of the range (YYYY-MM-DD). Defaults to Jan 1."
    ),
    end: str | None = typer.Option(
        None, "--end", help="Last day of the range (YYYY-MM-DD). Defaults to Dec 31."
    ),
    min_run: int | None = typer.Option(
        None,
        "--min-run",
        "-m",
        help=f"Shortest free stretch worth bridging. Default {DEFAULT_MIN_RUN_LENGTH}.",
        min=1,
    ),
    max_gap: int | None = typer.Option(
        None,
        "--max-gap",
        "-g",
        help=f"Largest gap between stretches to bridge. Default {DEFAULT_MAX_BRIDGE_GAP}.",
        min=1,
    ),
    country: str | None = typer.Option(
        None,
        "--country",
        "-c",
        help=f"Holiday preset ({', '.join(sorted(PRESETS))}). Use 'none' to skip.",
    ),
    holiday: list[str] | None = typer.Option(  # noqa: B008
        None,
        "--holiday",
        "-H",
        help="Additional holiday date (YYYY-MM-DD). Repeatable.",
    ),
    google: bool = typer.Option(
        False, "--google/--no-google", help="Read holidays from a Google Calendar."
    ),
    calendar_id: str | None = typer.Option(
        None, "--calendar-id", help=f"Google Calendar id. Default {DEFAULT_CALENDAR_ID}."
    ),
    api_key: str | None = typer.Option(
        None, "--api-key", envvar="GCP_API_KEY", help="Google API key."
    ),
    cache_dir: str | None = typer.Option(
        None, "--cache-dir", help="Directory for cached calendar events."
    ),
    board: str = typer.Option(DEFAULT_BOARD_NAME, "--board", help="Name of the Trello board."),
    trello_key: str | None = typer.Option(
        None, "--trello-key", envvar="TRELLO_KEY", help="Trello API key."
    ),
    trello_token: str | None = typer.Option(
        None, "--trello-token", envvar="TRELLO_TOKEN", help="Trello API token."
    ),
    config: str | None = typer.Option(
        None,
        "--config",
        help="Path to a JSON config file.",
    ),
) -> None:
    """Create a Trello board with one card per bridge suggestion."""
    if not trello_key or not trello_token:
        _fail("Trello credentials are required (set TRELLO_KEY and TRELLO_TOKEN).")

    settings, holidays = _prepare(
        config, start, end, min_run, max_gap, country, holiday,
        google, calendar_id, api_key, cache_dir,
    )
    suggestions = compute_suggestions(
        list(holidays),
        settings.start,
        settings.end,
        settings.min_run_length,
        settings.max_bridge_gap,
    )
    if not suggestions:
        typer.echo("No suggestions to publish.")
        return

    client = TrelloClient(trello_key, trello_token)
    try:
        board_id = publish_suggestions(client, suggestions, board)
    except TrelloError as exc:
        _fail(str(exc))
    typer.echo(f"Published {len(suggestions)} suggestions to board {board_id}.")


@app.command()
def holidays(
    country: str = typer.Option(
        "us",
        "--country",
        "-c",
        help=f"Country preset ({', '.join(sorted(PRESETS))}).",
    ),
    year: int = typer.Option(
        None,
        "--year",
        "-y",
        help="Year to list holidays for. Defaults to the current year.",
    ),
) -> None:
    """List holidays for a country preset."""
    resolved_year = year if year is not None else _current_year()

    try:
        preset = get_holidays(country, resolved_year)
    except KeyError as exc:
        _fail(str(exc.args[0]))

    typer.echo(f"  {PRESETS[country]}: {resolved_year}")
    typer.echo()
    for d, name in preset:
        typer.echo(f"    {d.strftime('%a, %b %d'):>12}  {name}")


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _print_header(settings: Settings, holidays: dict[datetime.date, str]) -> None:
    w = 64
    typer.echo("=" * w)
    typer.echo("  BRIDGE DAYS ADVISOR")
    typer.echo("=" * w)
    typer.echo(f"  Range:        {settings.start.isoformat()} -> {settings.end.isoformat()}")
    typer.echo(f"  Minimum run:  {settings.min_run_length} days")
    typer.echo(f"  Maximum gap:  {settings.max_bridge_gap} days")
    typer.echo(f"  Holidays:     {len(holidays)}")
    typer.echo()
    for d, name in holidays.items():
        typer.echo(f"    {d.strftime('%a, %b %d %Y'):>16}  {name}")


def _print_footer(count: int, noun: str, plural: str | None = None) -> None:
    w = 64
    label = noun if count == 1 else (plural or f"{noun}s")
    typer.echo()
    typer.echo("=" * w)
    typer.echo(f"  Found {count} {label}.")
    typer.echo("=" * w)


def _serialize_run(run: Run) -> dict[str, object]:
    return {"start": run.start.isoformat(), "end": run.end.isoformat(), "length": run.length}


def _serialize_suggestion(s: Suggestion) -> dict[str, object]:
    return {
        "start": s.start.isoformat(),
        "end": s.end.isoformat(),
        "vacation_days": s.vacation_days,
        "leave_days": s.leave_days,
    }


def _print_json(
    suggestions: list[Suggestion],
    settings: Settings,
    holidays: dict[datetime.date, str],
) -> None:
    output = {
        "start": settings.start.isoformat(),
        "end": settings.end.isoformat(),
        "min_run_length": settings.min_run_length,
        "max_bridge_gap": settings.max_bridge_gap,
        "holidays": [{"date": d.isoformat(), "name": n} for d, n in holidays.items()],
        "suggestions": [_serialize_suggestion(s) for s in suggestions],
        "summary": {
            "total_suggestions": len(suggestions),
            "total_leave_days": sum(s.leave_days for s in suggestions),
        },
    }
    json.dump(output, sys.stdout, indent=2)
    typer.echo()


def main() -> None:
    """Entry point for the CLI."""
    app()
