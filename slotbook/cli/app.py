"""
Main CLI application using Typer.
"""

import asyncio
from datetime import date, time
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..adapters.json_store import JsonFileSlotStore
from ..config import AppConfig, UserProfile, get_default_config_path
from ..domain.exceptions import ConflictDetected, SlotBookError
from ..domain.models import (
    OWN_SLOT_COLOR,
    Frequency,
    ProjectedSlot,
    RecurrenceRule,
    Slot,
    display_color,
)
from ..logging_setup import configure_logging
from ..services.slot_service import SlotService

app = typer.Typer(
    name="slotbook",
    help="Publish your availability on a shared calendar",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
ActorOption = Annotated[
    Optional[str],
    typer.Option("--as", help="Act as another configured user (id or name)."),
]


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    try:
        config = AppConfig.load_from_yaml(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(1)

    configure_logging(config.log_level)
    return config


def _build_service(config: AppConfig) -> SlotService:
    store = JsonFileSlotStore(config.store_path)
    return SlotService(store, max_occurrences=config.recurrence.max_occurrences)


def _resolve_actor(config: AppConfig, identifier: Optional[str]) -> UserProfile:
    if identifier is None:
        return config.user

    profile = config.find_user(identifier)
    if profile is None:
        console.print(f"[bold red]Error:[/bold red] Unknown user '{escape(identifier)}'.")
        raise typer.Exit(1)
    return profile


def _parse_date(value: str, label: str) -> date:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD").date()
    except ValueError as e:
        console.print(f"[red]Could not parse {label} '{escape(value)}': {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _parse_time(value: str, label: str) -> time:
    try:
        return pendulum.from_format(value, "HH:mm").time()
    except ValueError as e:
        console.print(f"[red]Could not parse {label} '{escape(value)}': {escape(str(e))}[/red]")
        raise typer.Exit(1)


def _report_error(error: SlotBookError) -> None:
    """Print a rejected operation, listing conflicts when there are any."""
    console.print(f"[bold red]Rejected ({error.kind}):[/bold red] {escape(str(error))}")

    if not isinstance(error, ConflictDetected):
        return

    if error.conflicts:
        table = Table(title="Conflicting slots", show_header=True, header_style="bold red")
        table.add_column("ID", justify="right")
        table.add_column("Slot")
        for slot in error.conflicts:
            table.add_row(str(slot.id), str(slot))
        console.print(table)

    for first, second in error.batch_conflicts:
        console.print(f"  [yellow]{first}[/yellow] overlaps [yellow]{second}[/yellow]")


def _render_slots(projected: List[ProjectedSlot], viewer: UserProfile, zone: str) -> None:
    table = Table(
        title=f"Availability ({zone})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("ID", justify="right")
    table.add_column("Owner", style="bold")
    table.add_column("When")
    table.add_column("Stored as", style="dim")

    for item in projected:
        slot = item.slot
        own = slot.owner_id == viewer.id
        color = OWN_SLOT_COLOR if own else display_color(slot.owner_id)
        owner = "You" if own else slot.owner_name or slot.owner_id
        if not slot.is_real:
            owner += " (demo)"
        table.add_row(str(slot.id), f"[{color}]{escape(owner)}[/]", item.format_display(), str(slot))

    console.print()
    console.print(table)
    console.print()


@app.command()
def add(
    day: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    end: Annotated[str, typer.Argument(help="End time (HH:MM)")],
    repeat: Annotated[Frequency, typer.Option("--repeat", "-r", help="Repeat frequency")] = Frequency.NONE,
    until: Annotated[Optional[str], typer.Option("--until", help="Last date of the repeat (YYYY-MM-DD)")] = None,
    tz: Annotated[Optional[str], typer.Option("--tz", help="Zone the times are given in. Defaults to the display zone.")] = None,
    actor: ActorOption = None,
    config_file: ConfigOption = None,
):
    """
    Publish an availability slot, optionally repeating.

    Examples:

        slotbook add 2025-03-01 09:00 10:00

        slotbook add 2025-03-03 09:00 10:00 --repeat weekly --until 2025-03-31
    """
    config = _load_config(config_file)
    profile = _resolve_actor(config, actor)
    service = _build_service(config)

    try:
        rule = RecurrenceRule(
            frequency=repeat,
            until=_parse_date(until, "until date") if until else None,
        )
        draft = Slot(
            owner_id=profile.id,
            owner_name=profile.name,
            date=_parse_date(day, "date"),
            start_time=_parse_time(start, "start time"),
            end_time=_parse_time(end, "end time"),
            timezone=tz or config.display_timezone,
        )
        stored = asyncio.run(service.add_slot(draft, rule))
    except SlotBookError as e:
        _report_error(e)
        raise typer.Exit(1)

    console.print(f"[green]✓ Stored {len(stored)} slot(s).[/green]")
    for slot in stored:
        console.print(f"  #{slot.id}  {slot}")


@app.command("list")
def list_slots(
    mine: Annotated[bool, typer.Option("--mine", help="Only show your own slots.")] = False,
    tz: Annotated[Optional[str], typer.Option("--tz", help="Display zone. Defaults to the configured one.")] = None,
    actor: ActorOption = None,
    config_file: ConfigOption = None,
):
    """
    List slots in your display timezone.
    """
    config = _load_config(config_file)
    profile = _resolve_actor(config, actor)
    service = _build_service(config)
    zone = tz or config.display_timezone

    try:
        projected = asyncio.run(
            service.list_for_display(zone, owner_id=profile.id if mine else None)
        )
    except SlotBookError as e:
        _report_error(e)
        raise typer.Exit(1)

    if not projected:
        console.print("[yellow]No slots published yet.[/yellow]")
        return

    _render_slots(projected, profile, zone)


@app.command()
def edit(
    slot_id: Annotated[int, typer.Argument(help="Slot id")],
    day: Annotated[Optional[str], typer.Option("--date", help="New date (YYYY-MM-DD)")] = None,
    start: Annotated[Optional[str], typer.Option("--start", help="New start time (HH:MM)")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="New end time (HH:MM)")] = None,
    tz: Annotated[Optional[str], typer.Option("--tz", help="Zone the new values are given in. Defaults to the display zone.")] = None,
    actor: ActorOption = None,
    config_file: ConfigOption = None,
):
    """
    Move one of your slots to another date or time.
    """
    config = _load_config(config_file)
    profile = _resolve_actor(config, actor)
    service = _build_service(config)

    try:
        edited = asyncio.run(
            service.edit_slot(
                profile.id,
                slot_id,
                date=_parse_date(day, "date") if day else None,
                start_time=_parse_time(start, "start time") if start else None,
                end_time=_parse_time(end, "end time") if end else None,
                input_zone=tz or config.display_timezone,
            )
        )
    except SlotBookError as e:
        _report_error(e)
        raise typer.Exit(1)

    console.print(f"[green]✓ Updated slot #{edited.id}:[/green] {edited}")


@app.command()
def delete(
    slot_id: Annotated[int, typer.Argument(help="Slot id")],
    actor: ActorOption = None,
    config_file: ConfigOption = None,
):
    """
    Delete one of your slots.
    """
    config = _load_config(config_file)
    profile = _resolve_actor(config, actor)
    service = _build_service(config)

    try:
        asyncio.run(service.delete_slot(profile.id, slot_id))
    except SlotBookError as e:
        _report_error(e)
        raise typer.Exit(1)

    console.print(f"[green]✓ Slot #{slot_id} deleted.[/green]")


@app.command()
def clear(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
    actor: ActorOption = None,
    config_file: ConfigOption = None,
):
    """
    Delete all of your slots. Demo slots stay.
    """
    config = _load_config(config_file)
    profile = _resolve_actor(config, actor)
    service = _build_service(config)

    if not yes and not typer.confirm(f"Delete all slots of {profile.name}?"):
        raise typer.Exit(0)

    try:
        removed = asyncio.run(service.clear_slots(profile.id))
    except SlotBookError as e:
        _report_error(e)
        raise typer.Exit(1)

    console.print(f"[green]✓ {removed} slot(s) cleared.[/green]")


@app.command("copy-day")
def copy_day(
    source: Annotated[str, typer.Argument(help="Day to copy from (YYYY-MM-DD)")],
    target: Annotated[str, typer.Argument(help="Day to copy to (YYYY-MM-DD)")],
    actor: ActorOption = None,
    config_file: ConfigOption = None,
):
    """
    Copy your availability from one day to another.
    """
    config = _load_config(config_file)
    profile = _resolve_actor(config, actor)
    service = _build_service(config)

    try:
        copied = asyncio.run(
            service.copy_day(
                profile.id,
                _parse_date(source, "source date"),
                _parse_date(target, "target date"),
            )
        )
    except SlotBookError as e:
        _report_error(e)
        raise typer.Exit(1)

    if not copied:
        console.print(f"[yellow]No slots on {source} to copy.[/yellow]")
        return

    console.print(f"[green]✓ Copied {len(copied)} slot(s) to {target}.[/green]")


@app.command()
def book(
    slot_id: Annotated[int, typer.Argument(help="Slot id")],
    actor: ActorOption = None,
    config_file: ConfigOption = None,
):
    """
    Ask another user for one of their slots.
    """
    config = _load_config(config_file)
    profile = _resolve_actor(config, actor)
    service = _build_service(config)

    try:
        request = asyncio.run(service.request_booking(profile.id, profile.name, slot_id))
    except SlotBookError as e:
        _report_error(e)
        raise typer.Exit(1)

    owner = request.slot.owner_name or request.slot.owner_id
    console.print(f"[green]✓ Booking request sent to {owner}[/green] for {request.slot}")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
