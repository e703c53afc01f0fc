"""Konsistenzprüfung einer gespeicherten Momentaufnahme.

Prüft den Bestand als Sicherheitsnetz unabhängig von der Antragsprüfung,
z.B. nach manuellen Änderungen an der Tabelle.
"""

from collections import defaultdict
from typing import Literal, Optional

from pydantic import BaseModel

from engine.availability import (
    block_occupancy,
    blocking_statuses,
    request_occupancy,
    schedule_occupancy,
)
from engine.operating import validate_operating_hours
from engine.pricing import discount_sources_disagree
from engine.timeutil import intervals_overlap, iter_dates
from models.facility_data import FacilitySnapshot
from models.reservation import ReservationRequest
from models.room import Room


class AuditViolation(BaseModel):
    """Ein einzelner Befund."""

    severity: Literal["error", "warning"]
    check: str           # z.B. "double_booking"
    description: str
    entity: str          # request_id / batch_id


class AuditReport(BaseModel):
    """Ergebnis der Bestandsprüfung."""

    violations: list[AuditViolation]
    is_valid: bool       # True wenn keine Errors (Warnings ok)

    @property
    def errors(self) -> list[AuditViolation]:
        return [v for v in self.violations if v.severity == "error"]

    @property
    def warnings(self) -> list[AuditViolation]:
        return [v for v in self.violations if v.severity == "warning"]

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        status = (
            "[bold green]✓ KONSISTENT[/bold green]"
            if self.is_valid
            else "[bold red]✗ KONFLIKTE GEFUNDEN[/bold red]"
        )
        lines = [status, f"Fehler: {len(self.errors)} | Warnungen: {len(self.warnings)}"]
        console.print(Panel("\n".join(lines), title="Bestandsprüfung", border_style="cyan"))

        if not self.violations:
            console.print("[dim]Keine Befunde.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=8)
        table.add_column("Prüfung", width=22)
        table.add_column("Entität", width=14)
        table.add_column("Beschreibung")

        for v in self.violations:
            color = "red" if v.severity == "error" else "yellow"
            table.add_row(
                f"[{color}]{v.severity.upper()}[/{color}]",
                v.check,
                v.entity,
                v.description,
            )
        console.print(table)


def _occupied_dates(r: ReservationRequest, room: Room) -> list[str]:
    """Alle Tage, die eine Anfrage belegt."""
    if r.is_consolidated_gallery(room):
        dates = list(iter_dates(r.start_date, r.end_date))
        if r.gallery_prep_date and r.gallery_prep_date not in dates:
            dates.insert(0, r.gallery_prep_date)
        return dates
    return [r.date]


class SnapshotAuditor:
    """Prüft eine FacilitySnapshot auf Doppelbelegungen und Regelverstöße."""

    def audit(self, snapshot: FacilitySnapshot) -> AuditReport:
        """Führt alle Prüfungen durch und gibt einen AuditReport zurück."""
        violations: list[AuditViolation] = []

        violations.extend(self._check_unknown_rooms(snapshot))
        violations.extend(self._check_double_booking(snapshot))
        violations.extend(self._check_blocks_and_schedules(snapshot))
        violations.extend(self._check_operating_hours(snapshot))
        violations.extend(self._check_bundle_discounts(snapshot))

        has_errors = any(v.severity == "error" for v in violations)
        return AuditReport(violations=violations, is_valid=not has_errors)

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    def _blocking(self, snapshot: FacilitySnapshot) -> list[tuple[ReservationRequest, Room]]:
        statuses = blocking_statuses(snapshot.config)
        out = []
        for r in snapshot.requests:
            room: Optional[Room] = snapshot.config.find_room(r.room_id)
            if room is not None and r.status in statuses:
                out.append((r, room))
        return out

    def _check_unknown_rooms(self, snapshot: FacilitySnapshot) -> list[AuditViolation]:
        return [
            AuditViolation(
                severity="error",
                check="unknown_room",
                entity=r.request_id,
                description=f"Unbekannter Raum '{r.room_id}'",
            )
            for r in snapshot.requests
            if snapshot.config.find_room(r.room_id) is None
        ]

    def _check_double_booking(self, snapshot: FacilitySnapshot) -> list[AuditViolation]:
        """Zwei belegende Anfragen dürfen sich in einem Raum nicht überschneiden."""
        violations: list[AuditViolation] = []
        by_slot: dict[tuple[str, str], list[tuple[int, int, str]]] = defaultdict(list)

        for r, room in self._blocking(snapshot):
            for ymd in _occupied_dates(r, room):
                iv = request_occupancy(r, room, ymd)
                if iv:
                    by_slot[(room.id, ymd)].append((iv[0], iv[1], r.request_id))

        for (room_id, ymd), items in sorted(by_slot.items()):
            items.sort()
            for i, (s1, e1, id1) in enumerate(items):
                for s2, e2, id2 in items[i + 1:]:
                    if intervals_overlap(s1, e1, s2, e2):
                        violations.append(AuditViolation(
                            severity="error",
                            check="double_booking",
                            entity=id1,
                            description=f"{room_id} am {ymd}: überschneidet sich mit {id2}",
                        ))
        return violations

    def _check_blocks_and_schedules(self, snapshot: FacilitySnapshot) -> list[AuditViolation]:
        """Belegende Anfragen dürfen nicht in Sperren oder Kurszeiten liegen."""
        violations: list[AuditViolation] = []
        for r, room in self._blocking(snapshot):
            for ymd in _occupied_dates(r, room):
                iv = request_occupancy(r, room, ymd)
                if not iv:
                    continue
                for b in snapshot.blocks:
                    occ = block_occupancy(b, room, ymd)
                    if occ and intervals_overlap(iv[0], iv[1], occ[0], occ[1]):
                        violations.append(AuditViolation(
                            severity="error",
                            check="blocked",
                            entity=r.request_id,
                            description=f"{room.id} am {ymd}: liegt in Sperre {b.block_id}",
                        ))
                for s in snapshot.schedules:
                    occ = schedule_occupancy(s, room, ymd)
                    if occ and intervals_overlap(iv[0], iv[1], occ[0], occ[1]):
                        violations.append(AuditViolation(
                            severity="error",
                            check="class_conflict",
                            entity=r.request_id,
                            description=f"{room.id} am {ymd}: kollidiert mit Kurs {s}",
                        ))
        return violations

    def _check_operating_hours(self, snapshot: FacilitySnapshot) -> list[AuditViolation]:
        violations: list[AuditViolation] = []
        for r, room in self._blocking(snapshot):
            if r.is_consolidated_gallery(room):
                continue
            check = validate_operating_hours(
                room.category, r.date, r.start_time, r.end_time, snapshot.config)
            if not check.ok:
                violations.append(AuditViolation(
                    severity="error",
                    check="out_of_hours",
                    entity=r.request_id,
                    description=f"{r.date} {r.start_time}–{r.end_time}: {check.message}",
                ))
        return violations

    def _check_bundle_discounts(self, snapshot: FacilitySnapshot) -> list[AuditViolation]:
        """Rabattangaben innerhalb eines Bündels sollten übereinstimmen."""
        return [
            AuditViolation(
                severity="warning",
                check="bundle_discount_mismatch",
                entity=batch_id,
                description="Sitzungen mit abweichenden Rabattangaben; "
                            "abgerechnet wird die erste mit Rabatt",
            )
            for batch_id, items in sorted(snapshot.bundles().items())
            if discount_sources_disagree(items)
        ]
