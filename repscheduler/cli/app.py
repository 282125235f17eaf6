"""
Main CLI application using Typer.
"""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.distance_matrix_client import DistanceMatrixClient
from ..adapters.json_store import JsonAppointmentStore
from ..adapters.mock_clients import MockDriveTimeProvider, MockGeocoder
from ..adapters.nominatim_geocoder import NominatimGeocoder
from ..config import AppConfig, get_default_config_path
from ..domain.distance import format_distance
from ..domain.exceptions import SchedulerError, StoreError
from ..domain.models import APPOINTMENT_STATUSES, Appointment
from ..domain.slot_suggester import SlotSuggester
from ..services.appointment_service import AppointmentService
from ..services.rate_limiter import RateLimiter
from ..services.suggestion_service import RankedAppointment, SuggestionService

app = typer.Typer(
    name="repscheduler",
    help="Suggest appointment slots and nearby visits for field reps",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
RepOption = Annotated[
    Optional[str],
    typer.Option("--rep", "-r", help="Rep name or id. Defaults to the first configured rep."),
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Use offline geocoding and estimated drive times."),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Field-rep scheduling assistant.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_rate_limiter(config: AppConfig) -> RateLimiter:
    return RateLimiter(limits=config.rate_limits)


def _build_suggestion_service(config: AppConfig, mock: bool, rate_limiter: RateLimiter) -> SuggestionService:
    """Wire geocoder and drive-time provider (real or mock) into the service."""
    if mock:
        geocoder = MockGeocoder()
        drive_time_provider = MockDriveTimeProvider()
    else:
        geocoder = NominatimGeocoder(
            base_url=config.geocoder.base_url,
            user_agent=config.geocoder.user_agent,
            timeout_seconds=config.geocoder.timeout_seconds,
        )
        drive_time_provider = None
        if config.drive_time.api_key:
            drive_time_provider = DistanceMatrixClient(
                api_key=config.drive_time.api_key,
                base_url=config.drive_time.base_url,
                timeout_seconds=config.drive_time.timeout_seconds,
            )

    return SuggestionService(
        geocoder=geocoder,
        drive_time_provider=drive_time_provider,
        slot_suggester=SlotSuggester(config.defaults.get_working_window()),
        rate_limiter=rate_limiter,
        min_address_length=config.min_address_length,
    )


def _build_appointment_service(config: AppConfig, rate_limiter: RateLimiter) -> AppointmentService:
    return AppointmentService(
        store=JsonAppointmentStore(config.store_path),
        rate_limiter=rate_limiter,
    )


def _parse_day(value: Optional[str], tz: str) -> date:
    """Parse YYYY-MM-DD, defaulting to today in the configured timezone."""
    if not value:
        return pendulum.today(tz).date()
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD") from e


def _duration(value: Optional[int], config: AppConfig) -> int:
    minutes = value if value is not None else config.defaults.duration_minutes
    if minutes <= 0:
        raise ValueError(f"Duration must be greater than zero, got {minutes}")
    return minutes


def _format_drive_time(minutes: Optional[float]) -> str:
    if minutes is None:
        return "-"
    return f"{round(minutes)} min"


def _ranked_table(title: str, rows: List[RankedAppointment], unit: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold yellow")
    table.add_column("Address")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Distance", justify="right")
    table.add_column("Drive", justify="right")

    for row in rows:
        apt = row.appointment
        table.add_row(
            apt.name,
            apt.address,
            apt.calendar_day.isoformat(),
            apt.time,
            format_distance(row.distance, unit),
            _format_drive_time(row.drive_time),
        )
    return table


def _fail(error: Exception) -> None:
    message = error.user_message if isinstance(error, StoreError) else str(error)
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


@app.command()
def suggest(
    address: Annotated[str, typer.Argument(help="Address of the new appointment")],
    rep: RepOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment duration in minutes")] = None,
    unit: Annotated[Optional[str], typer.Option("--unit", "-u", help="Distance unit: km or mi")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Suggest a day and start time near the closest existing appointment.

    Examples:

        repscheduler suggest "Union Station, Washington, DC"
        repscheduler suggest "Dupont Circle, Washington, DC" --duration 60 --unit mi --mock
    """
    try:
        config = _load_config(config_file)
        rep_id = config.resolve_rep(rep)
        display_unit = unit or config.distance_unit
        if display_unit not in ("km", "mi"):
            raise ValueError(f"Unknown unit '{display_unit}', use km or mi")
        min_duration = _duration(duration, config)

        rate_limiter = _build_rate_limiter(config)
        suggestions = _build_suggestion_service(config, mock, rate_limiter)
        appointments_service = _build_appointment_service(config, rate_limiter)

        async def _run():
            center = await suggestions.geocode(address)
            if center is None:
                return None, None, []
            existing = await appointments_service.list_appointments(rep_id)
            suggestion = await suggestions.suggest_for_coordinate(
                center, existing, duration_minutes=min_duration, unit=display_unit
            )
            return center, suggestion, existing

        if mock:
            console.print("[yellow]⚠  MOCK MODE: offline geocoding and estimated drive times[/yellow]\n")

        center, suggestion, existing = asyncio.run(_run())

        if center is None:
            console.print(f"[yellow]⚠ Address not found: {address}[/yellow]")
            raise typer.Exit(1)

        if suggestion is None:
            if existing:
                console.print("[yellow]⚠ None of the existing appointments has a location.[/yellow]")
            else:
                console.print("[yellow]⚠ No existing appointments to compare against.[/yellow]")
            raise typer.Exit(1)

        console.print(f"[bold green]✓ Suggested:[/bold green] {suggestion.format_display()}\n")
        console.print(_ranked_table("Closest appointments", list(suggestion.closest), display_unit))
        console.print()

    except (SchedulerError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def slot(
    day: Annotated[Optional[str], typer.Argument(help="Date (YYYY-MM-DD). Defaults to today.")] = None,
    rep: RepOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment duration in minutes")] = None,
    config_file: ConfigOption = None,
):
    """
    Suggest the earliest free start time on a day.
    """
    try:
        config = _load_config(config_file)
        rep_id = config.resolve_rep(rep)
        target_day = _parse_day(day, config.timezone)
        min_duration = _duration(duration, config)

        service = _build_appointment_service(config, _build_rate_limiter(config))
        appointments = asyncio.run(service.list_appointments(rep_id))

        suggester = SlotSuggester(config.defaults.get_working_window())
        suggested = suggester.suggest(appointments, target_day, min_duration)

        console.print(
            f"[bold green]✓ {target_day.isoformat()}:[/bold green] try {suggested} "
            f"({min_duration} min)"
        )

    except (SchedulerError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def nearby(
    address: Annotated[str, typer.Argument(help="Address to search around")],
    rep: RepOption = None,
    radius: Annotated[Optional[float], typer.Option("--radius", help="Search radius in km")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    List existing appointments close to an address.
    """
    try:
        config = _load_config(config_file)
        rep_id = config.resolve_rep(rep)
        radius_km = radius if radius is not None else config.nearby_radius_for_unit

        rate_limiter = _build_rate_limiter(config)
        suggestions = _build_suggestion_service(config, mock, rate_limiter)
        appointments_service = _build_appointment_service(config, rate_limiter)

        async def _run():
            center = await suggestions.geocode(address)
            if center is None:
                return None
            appointments = await appointments_service.list_appointments(rep_id)
            return await suggestions.nearby_with_drive_times(center, appointments, radius_km)

        rows = asyncio.run(_run())

        if rows is None:
            console.print(f"[yellow]⚠ Address not found: {address}[/yellow]")
            raise typer.Exit(1)

        if not rows:
            console.print(
                f"[yellow]No appointments within {format_distance(radius_km, config.distance_unit)}.[/yellow]"
            )
            return

        console.print()
        console.print(_ranked_table("Nearby appointments", rows, config.distance_unit))
        console.print()

    except (SchedulerError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def appointments(
    day: Annotated[Optional[str], typer.Option("--date", help="Only show this date (YYYY-MM-DD)")] = None,
    rep: RepOption = None,
    config_file: ConfigOption = None,
):
    """
    List a rep's appointments.
    """
    try:
        config = _load_config(config_file)
        rep_id = config.resolve_rep(rep)
        service = _build_appointment_service(config, _build_rate_limiter(config))

        if day:
            rows = asyncio.run(service.appointments_on(rep_id, _parse_day(day, config.timezone)))
        else:
            rows = asyncio.run(service.list_appointments(rep_id))

        if not rows:
            console.print("[yellow]No appointments found.[/yellow]")
            return

        table = Table(title=f"Appointments ({rep_id})", show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim")
        table.add_column("Date")
        table.add_column("Time")
        table.add_column("Min", justify="right")
        table.add_column("Name", style="bold yellow")
        table.add_column("Address")
        table.add_column("Status")

        for apt in rows:
            table.add_row(
                apt.id,
                apt.calendar_day.isoformat(),
                apt.time,
                str(apt.duration or ""),
                apt.name,
                apt.address,
                apt.status,
            )

        console.print()
        console.print(table)
        console.print()

    except (SchedulerError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def add(
    name: Annotated[str, typer.Argument(help="Customer name")],
    address: Annotated[str, typer.Argument(help="Appointment address")],
    day: Annotated[Optional[str], typer.Option("--date", help="Date (YYYY-MM-DD). Defaults to today.")] = None,
    start: Annotated[Optional[str], typer.Option("--time", help="Start time (HH:MM). Defaults to the suggested slot.")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Duration in minutes")] = None,
    notes: Annotated[str, typer.Option("--notes", help="Free-text notes")] = "",
    rep: RepOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
):
    """
    Geocode an address and add an appointment.
    """
    try:
        if not name.strip():
            raise ValueError("Name is required")
        if not address.strip():
            raise ValueError("Address is required")

        config = _load_config(config_file)
        rep_id = config.resolve_rep(rep)
        target_day = _parse_day(day, config.timezone)
        minutes = _duration(duration, config)

        rate_limiter = _build_rate_limiter(config)
        suggestions = _build_suggestion_service(config, mock, rate_limiter)
        appointments_service = _build_appointment_service(config, rate_limiter)
        suggester = SlotSuggester(config.defaults.get_working_window())

        async def _run():
            coordinate = await suggestions.geocode(address)
            if coordinate is None:
                return None, None
            existing = await appointments_service.list_appointments(rep_id)
            start_time = start or suggester.suggest(existing, target_day, minutes)
            appointment = Appointment(
                date=target_day,
                time=start_time,
                duration=minutes,
                name=name.strip(),
                address=address.strip(),
                coordinate=coordinate,
                notes=notes,
            )
            return await appointments_service.add_appointment(rep_id, appointment), appointment

        appointment_id, appointment = asyncio.run(_run())

        if appointment is None:
            console.print(f"[yellow]⚠ Could not find address: {address}[/yellow]")
            raise typer.Exit(1)

        console.print(
            f"[bold green]✓ Added[/bold green] {appointment.name} on "
            f"{appointment.calendar_day.isoformat()} at {appointment.time} [dim]({appointment_id})[/dim]"
        )

    except (SchedulerError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def status(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    new_status: Annotated[str, typer.Argument(help="scheduled, completed or cancelled")],
    rep: RepOption = None,
    config_file: ConfigOption = None,
):
    """
    Change the status of an appointment.
    """
    try:
        if new_status not in APPOINTMENT_STATUSES:
            raise ValueError(
                f"Unknown status '{new_status}', use one of: {', '.join(APPOINTMENT_STATUSES)}"
            )

        config = _load_config(config_file)
        rep_id = config.resolve_rep(rep)
        service = _build_appointment_service(config, _build_rate_limiter(config))
        asyncio.run(service.update_appointment(rep_id, appointment_id, {"status": new_status}))
        console.print(f"[green]✓ Appointment {appointment_id} marked {new_status}.[/green]")

    except (SchedulerError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def remove(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    rep: RepOption = None,
    config_file: ConfigOption = None,
):
    """
    Delete an appointment.
    """
    try:
        config = _load_config(config_file)
        rep_id = config.resolve_rep(rep)
        service = _build_appointment_service(config, _build_rate_limiter(config))
        asyncio.run(service.remove_appointment(rep_id, appointment_id))
        console.print(f"[green]✓ Removed appointment {appointment_id}.[/green]")

    except (SchedulerError, FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def reps(
    config_file: ConfigOption = None,
):
    """
    List all configured reps.
    """
    try:
        config = _load_config(config_file)

        if not config.reps:
            console.print("[yellow]No reps defined in the config file.[/yellow]")
            return

        table = Table(
            title="Configured reps",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Name (Alias)", style="bold yellow")
        table.add_column("Rep ID", style="dim")

        for configured_rep in config.reps:
            table.add_row(configured_rep.display_name(), configured_rep.rep_id)

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        _fail(e)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]repscheduler[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
