"""Raumvermietung: Haupt-CLI.

Verwendung:
  python main.py init                         Standard-Konfiguration + leeren Datensatz anlegen
  python main.py config show                  Konfiguration anzeigen
  python main.py availability <raum> <datum>  Slot-Raster eines Tages
  python main.py booked-dates <raum> <monat>  Ausgebuchte Tage eines Monats
  python main.py gallery <start> <ende>       Ausstellungszeitraum prüfen
  python main.py fees <antrag>                Gebühren einer Sitzung
  python main.py bundle <bündel>              Status und Preis eines Bündels
  python main.py audit                        Bestand auf Konflikte prüfen
  python main.py export                       Abrechnung als Excel exportieren
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

from engine.errors import BookingError

console = Console()

# Standard-Pfad für die gespeicherte Momentaufnahme
DEFAULT_DATA_JSON = Path("output/facility_data.json")

data_option = click.option(
    "--data", "data_path", default=str(DEFAULT_DATA_JSON),
    help="Pfad zur gespeicherten JSON-Momentaufnahme.",
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_snapshot_or_abort(data_path: str):
    """Lädt die Momentaufnahme oder bricht mit Fehlermeldung ab."""
    from models.facility_data import FacilitySnapshot
    p = Path(data_path)
    if not p.exists():
        console.print(
            f"[red]Keine Datendatei gefunden: {p}[/red]\n"
            "Führen Sie zunächst [bold]python main.py init[/bold] aus."
        )
        sys.exit(1)
    return FacilitySnapshot.load_json(p)


def _abort(e: BookingError) -> None:
    console.print(f"[red bold]{e.code}:[/red bold] {e}")
    sys.exit(1)


def _fee_table(title: str, fee) -> Table:
    from engine.pricing import format_krw
    table = Table(title=title, box=box.ROUNDED, show_header=False)
    table.add_column("Posten")
    table.add_column("Betrag", justify="right")
    table.add_row("Dauer", f"{fee.duration_hours:g} h")
    if fee.hourly_fee_krw:
        table.add_row("Stundensatz", format_krw(fee.hourly_fee_krw))
    table.add_row("Miete", format_krw(fee.rental_fee_krw))
    table.add_row("Zubehör", format_krw(fee.equipment_fee_krw))
    table.add_row("Summe", format_krw(fee.total_fee_krw))
    if fee.discount_amount_krw:
        reason = f" ({fee.discount_reason})" if fee.discount_reason else ""
        table.add_row(f"Rabatt {fee.discount_rate_pct:g} %{reason}",
                      f"-{format_krw(fee.discount_amount_krw)}")
    table.add_row("[bold]Endbetrag[/bold]", f"[bold]{format_krw(fee.final_fee_krw)}[/bold]")
    return table


# ─── INIT ─────────────────────────────────────────────────────────────────────

@click.command("init")
@data_option
@click.option("--force", is_flag=True, default=False,
              help="Vorhandene Dateien überschreiben.")
def cmd_init(data_path: str, force: bool):
    """Legt Standard-Konfiguration und einen leeren Datensatz an."""
    from config.manager import ConfigManager
    from config.defaults import default_facility_config
    from models.facility_data import FacilitySnapshot

    mgr = ConfigManager()
    if not mgr.first_run_check() and not force:
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]\n"
            "Verwenden Sie [bold]--force[/bold] zum Überschreiben."
        )
        config = mgr.load()
    else:
        config = default_facility_config()
        path = mgr.save(config)
        console.print(f"[green]✓[/green] Konfiguration gespeichert: {path}")

    p = Path(data_path)
    if p.exists() and not force:
        console.print(f"[yellow]Datensatz existiert bereits:[/yellow] {p}")
        return
    FacilitySnapshot(config=config).save_json(p)
    console.print(f"[green]✓[/green] Leerer Datensatz gespeichert: {p}")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen."""


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    from config.manager import ConfigManager
    from engine.operating import operating_notice_text
    from engine.pricing import format_krw
    from models.room import RoomCategory

    mgr = ConfigManager()
    if mgr.first_run_check():
        console.print(
            "[red]Keine Konfiguration gefunden.[/red]\n"
            "Führen Sie zunächst [bold]python main.py init[/bold] aus."
        )
        sys.exit(1)
    config = mgr.load()

    console.print(Panel(
        f"[bold]{config.facility_name}[/bold]  |  UTC{config.utc_offset_hours:+d}",
        title="Einrichtung",
        border_style="cyan",
    ))

    table = Table(title="Räume", box=box.ROUNDED)
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Kategorie")
    table.add_column("Stundensatz", justify="right")
    table.add_column("Plätze", justify="right")
    for room in config.rooms:
        fee = format_krw(room.hourly_fee_krw) if room.hourly_fee_krw else "nach Absprache"
        table.add_row(room.id, room.name, room.category.value, fee, str(room.capacity))
    console.print(table)

    console.print(f"\n[bold]Seminarräume:[/bold] "
                  f"{operating_notice_text(RoomCategory.LECTURE, config)}")
    console.print(f"[bold]Galerie:[/bold] "
                  f"{operating_notice_text(RoomCategory.GALLERY, config)}")
    b = config.booking
    console.print(
        f"[bold]Buchung:[/bold] Raster {b.slot_interval_minutes} min | "
        f"Dauer {b.min_duration_minutes}–{b.max_duration_minutes} min | "
        f"max. {b.max_batch_sessions} Termine pro Antrag"
    )


# ─── AVAILABILITY ─────────────────────────────────────────────────────────────

@click.command("availability")
@click.argument("room_id")
@click.argument("date")
@data_option
@click.option("--today", default=None, help="Heutiges Datum überschreiben (YYYY-MM-DD).")
@click.option("--slot-minutes", type=int, default=None, help="Slot-Breite in Minuten.")
def cmd_availability(room_id: str, date: str, data_path: str,
                     today: Optional[str], slot_minutes: Optional[int]):
    """Zeigt das Slot-Raster eines Raums an einem Tag."""
    from engine.availability import compute_availability

    snap = _load_snapshot_or_abort(data_path)
    try:
        result = compute_availability(
            room_id, date, snap.requests, snap.blocks, snap.schedules,
            today=today, slot_minutes=slot_minutes, config=snap.config,
        )
    except BookingError as e:
        _abort(e)

    room = snap.get_room(room_id)
    console.print(f"[bold]{room.name}[/bold] am {date}")
    if not result.slots:
        console.print(f"[yellow]{result.reason_message}[/yellow]")
        return

    table = Table(box=box.SIMPLE)
    table.add_column("Zeit")
    table.add_column("Status")
    table.add_column("Belegt durch")
    for s in result.slots:
        if s.available:
            table.add_row(f"{s.start}–{s.end}", "[green]frei[/green]", "")
        else:
            table.add_row(f"{s.start}–{s.end}", "[red]belegt[/red]",
                          f"{s.blocked_by.value} {s.blocked_by_id}")
    console.print(table)
    console.print(f"{result.available_slots}/{result.total_slots} Slots frei")
    if result.reason_message:
        console.print(f"[yellow]{result.reason_message}[/yellow]")


@click.command("booked-dates")
@click.argument("room_id")
@click.argument("month")
@data_option
def cmd_booked_dates(room_id: str, month: str, data_path: str):
    """Listet die ausgebuchten Tage eines Monats (YYYY-MM)."""
    from engine.availability import compute_booked_dates

    snap = _load_snapshot_or_abort(data_path)
    try:
        booked = compute_booked_dates(
            room_id, month, snap.requests, snap.blocks, snap.schedules,
            config=snap.config,
        )
    except BookingError as e:
        _abort(e)
    if not booked:
        console.print(f"[green]{room_id}: keine ausgebuchten Tage im {month}[/green]")
        return
    console.print(f"[bold]{room_id}[/bold] ausgebucht: " + ", ".join(booked))


# ─── GALLERY ──────────────────────────────────────────────────────────────────

@click.command("gallery")
@click.argument("start_date")
@click.argument("end_date")
@data_option
def cmd_gallery(start_date: str, end_date: str, data_path: str):
    """Prüft einen Ausstellungszeitraum und zeigt Termine und Preis."""
    from engine.gallery import compute_gallery_stats
    from engine.pricing import format_krw
    from engine.submission import validate_gallery_submission

    snap = _load_snapshot_or_abort(data_path)
    gallery = snap.config.gallery_room()
    if gallery is None:
        console.print("[red]Keine Galerie konfiguriert.[/red]")
        sys.exit(1)

    report = validate_gallery_submission(
        start_date, end_date, snap.requests, snap.blocks, snap.schedules,
        room_id=gallery.id, config=snap.config,
    )
    if report.error_code:
        console.print(f"[red bold]{report.error_code}:[/red bold] {report.error_message}")
        sys.exit(1)

    issues = {i.date: i for i in report.issues}
    table = Table(title=f"{gallery.name}: {start_date} – {end_date}", box=box.ROUNDED)
    table.add_column("Datum")
    table.add_column("Zeit")
    table.add_column("Art")
    table.add_column("Prüfung")
    for s in report.sessions:
        issue = issues.get(s.date)
        table.add_row(
            s.date,
            f"{s.start_time}–{s.end_time}",
            "Vorbereitung" if s.is_prep_day else "Ausstellung",
            f"[red]{issue.code}: {issue.message}[/red]" if issue else "[green]OK[/green]",
        )
    console.print(table)

    stats = compute_gallery_stats(start_date, end_date, snap.config)
    console.print(
        f"Werktage: {stats.weekday_count} | Samstage: {stats.saturday_count} | "
        f"Ausstellungstage: {stats.exhibition_day_count} | "
        f"[bold]Preis: {format_krw(stats.total_fee_krw)}[/bold]"
    )
    if not report.ok:
        sys.exit(1)


# ─── FEES ─────────────────────────────────────────────────────────────────────

@click.command("fees")
@click.argument("request_id")
@data_option
def cmd_fees(request_id: str, data_path: str):
    """Zeigt die Gebühren einer Sitzung (und ggf. ihres Bündels)."""
    from config.defaults import EQUIPMENT_LABELS
    from engine.pricing import compute_fees_for_session, compute_payable_for_bundle
    from export.helpers import rich_status

    snap = _load_snapshot_or_abort(data_path)
    req = snap.get_request(request_id)
    if req is None:
        console.print(f"[red]Antrag nicht gefunden: {request_id}[/red]")
        sys.exit(1)

    try:
        fee = compute_fees_for_session(req, config=snap.config)
    except BookingError as e:
        _abort(e)
    console.print(f"[bold]{req.request_id}[/bold]  {req.room_id}  {req.date} "
                  f"{req.start_time}–{req.end_time}  {rich_status(req.status)}")
    equipment = req.equipment.selected()
    if equipment:
        console.print("Zubehör: " + ", ".join(EQUIPMENT_LABELS.get(e, e) for e in equipment))
    console.print(_fee_table("Sitzung", fee))

    if req.is_bundled:
        payable = compute_payable_for_bundle(snap.bundle(req.batch_id), snap.config)
        console.print(_fee_table(f"Bündel {req.batch_id}", payable))


# ─── BUNDLE ───────────────────────────────────────────────────────────────────

@click.command("bundle")
@click.argument("batch_id")
@data_option
def cmd_bundle(batch_id: str, data_path: str):
    """Zeigt Gesamtstatus, Sitzungen und Preis eines Bündels."""
    from engine.bundle import analyze_bundle, pick_fee_basis
    from engine.pricing import compute_fees_for_bundle
    from export.helpers import rich_status, status_label

    snap = _load_snapshot_or_abort(data_path)
    items = snap.bundle(batch_id)
    if not items:
        console.print(f"[red]Bündel nicht gefunden: {batch_id}[/red]")
        sys.exit(1)

    summary = analyze_bundle(items)
    console.print(Panel(
        f"Status: [bold]{status_label(summary.display_status)}[/bold]  |  "
        f"Genehmigt: {summary.approved_count}  Abgelehnt: {summary.rejected_count}  "
        f"Offen: {summary.pending_count}  Gesamt: {summary.total_count}",
        title=f"Bündel {batch_id}",
        border_style="cyan",
    ))

    table = Table(box=box.ROUNDED)
    table.add_column("Nr.")
    table.add_column("Antrag")
    table.add_column("Datum")
    table.add_column("Zeit")
    table.add_column("Status")
    for r in items:
        table.add_row(str(r.batch_seq or ""), r.request_id, r.date,
                      f"{r.start_time}–{r.end_time}", rich_status(r.status))
    console.print(table)

    basis = pick_fee_basis(items)
    try:
        fee = compute_fees_for_bundle(basis, snap.config)
    except BookingError as e:
        _abort(e)
    title = "Preis (genehmigte Sitzungen)" if len(basis) < len(items) else "Preis"
    console.print(_fee_table(title, fee))


# ─── AUDIT ────────────────────────────────────────────────────────────────────

@click.command("audit")
@data_option
def cmd_audit(data_path: str):
    """Prüft den Bestand auf Doppelbelegungen und Regelverstöße."""
    from analysis.snapshot_audit import SnapshotAuditor

    snap = _load_snapshot_or_abort(data_path)
    console.print(f"\n{snap.summary()}\n")
    report = SnapshotAuditor().audit(snap)
    report.print_rich()
    sys.exit(0 if report.is_valid else 1)


# ─── EXPORT ───────────────────────────────────────────────────────────────────

@click.command("export")
@data_option
@click.option("--output", "-o", default="output/abrechnung.xlsx",
              help="Ausgabepfad für die Excel-Datei.")
@click.option("--status", type=click.Choice(
    ["received", "under review", "approved", "rejected", "cancelled"]),
    default=None, help="Nur Sitzungen mit diesem Status.")
@click.option("--room", "room_id", default=None, help="Nur Sitzungen dieses Raums.")
def cmd_export(data_path: str, output: str, status: Optional[str], room_id: Optional[str]):
    """Exportiert die Abrechnung als Excel-Datei."""
    from export.excel_export import BillingExporter
    from models.reservation import RequestStatus

    snap = _load_snapshot_or_abort(data_path)
    try:
        path = BillingExporter(snap).export(
            Path(output),
            status=RequestStatus(status) if status else None,
            room_id=room_id,
        )
    except BookingError as e:
        _abort(e)
    console.print(f"[green]✓[/green] Abrechnung gespeichert: {path}")


# ─── CLI ──────────────────────────────────────────────────────────────────────

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False,
              help="Ausführliche Log-Ausgabe.")
def cli(verbose: bool):
    """Raumvermietung: Verfügbarkeit, Konflikte und Gebühren.

    Starten Sie mit: python main.py init
    """
    _setup_logging(verbose)


def main():
    """Einstiegspunkt."""
    cli()


# Befehle registrieren
cli.add_command(cmd_init)
cli.add_command(cmd_config)
cli.add_command(cmd_availability)
cli.add_command(cmd_booked_dates)
cli.add_command(cmd_gallery)
cli.add_command(cmd_fees)
cli.add_command(cmd_bundle)
cli.add_command(cmd_audit)
cli.add_command(cmd_export)


if __name__ == "__main__":
    main()
