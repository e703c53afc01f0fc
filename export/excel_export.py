"""Excel-Export der Abrechnung (openpyxl)."""

import logging
from pathlib import Path
from typing import Optional

from engine.bundle import analyze_bundle, pick_fee_basis
from engine.pricing import compute_fees_for_bundle, compute_fees_for_session
from models.facility_data import FacilitySnapshot
from models.reservation import RequestStatus, ReservationRequest

from export.helpers import COLORS, status_color, status_label, today_str

logger = logging.getLogger(__name__)


class BillingExporter:
    """Exportiert die Sitzungen einer FacilitySnapshot mit Gebühren nach Excel.

    Blätter: Übersicht, Sitzungen (eine Zeile pro Sitzung), Bündel
    (Bündelpreis auf Basis der genehmigten Sitzungen, Rabatt auf die Summe).
    """

    SESSION_HEADERS = [
        "Antrag", "Bündel", "Nr.", "Raum", "Datum", "Beginn", "Ende", "Status",
        "Antragsteller", "Stunden", "Miete", "Zubehör", "Summe", "Rabatt", "Endbetrag",
    ]
    SESSION_WIDTHS = [14, 12, 5, 22, 12, 8, 8, 14, 18, 8, 12, 12, 12, 12, 12]

    BUNDLE_HEADERS = [
        "Bündel", "Raum", "Antragsteller", "Sitzungen", "Basis", "Status",
        "Summe", "Rabatt %", "Rabatt", "Grund", "Endbetrag",
    ]
    BUNDLE_WIDTHS = [12, 22, 18, 10, 8, 22, 12, 9, 12, 20, 12]

    MONEY_FORMAT = "#,##0"

    def __init__(self, snapshot: FacilitySnapshot):
        self.snapshot = snapshot
        self.config = snapshot.config
        self._skipped: set[str] = set()

    # ─── Öffentliche API ──────────────────────────────────────────────────────

    def export(self, output_path: Path, status: Optional[RequestStatus] = None,
               room_id: Optional[str] = None) -> Path:
        """Erstellt die Excel-Datei.

        status / room_id filtern die Sitzungen; Bündel erscheinen, wenn
        mindestens eine ihrer Sitzungen den Filter passiert.
        """
        from openpyxl import Workbook

        if room_id is not None:
            self.config.get_room(room_id)

        self._skipped.clear()
        sessions = self._known_rooms(self.snapshot.requests_for(room_id=room_id, status=status))
        sessions.sort(key=lambda r: (r.date, r.start_time, r.room_id))
        batch_ids = {r.batch_id for r in sessions if r.batch_id}
        bundles = {
            batch_id: self._known_rooms(items)
            for batch_id, items in self.snapshot.bundles().items()
            if batch_id in batch_ids
        }

        wb = Workbook()
        wb.remove(wb.active)   # Leeres Standard-Sheet entfernen

        self._sheet_uebersicht(wb, sessions, bundles, status, room_id)
        self._sheet_sitzungen(wb, sessions)
        self._sheet_buendel(wb, bundles)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        logger.info(
            f"Abrechnung exportiert: {output_path} "
            f"({len(sessions)} Sitzungen, {len(bundles)} Bündel)")
        return output_path

    # ─── Style-Helpers ────────────────────────────────────────────────────────

    def _fill(self, hex_color: str):
        from openpyxl.styles import PatternFill
        return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")

    def _thin_border(self):
        from openpyxl.styles import Border, Side
        s = Side(border_style="thin", color="BBBBBB")
        return Border(left=s, right=s, top=s, bottom=s)

    def _write_header(self, ws, headers: list[str], widths: list[int], row: int = 1) -> None:
        from openpyxl.styles import Alignment, Font
        from openpyxl.utils import get_column_letter
        fill = self._fill(COLORS["header"])
        border = self._thin_border()
        for col, text in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=text)
            cell.fill = fill
            cell.font = Font(bold=True, color="FFFFFF", size=10)
            cell.alignment = Alignment(horizontal="center", vertical="center")
            cell.border = border
        for col, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width
        ws.freeze_panes = ws.cell(row=row + 1, column=1)

    def _write_row(self, ws, row: int, values: list, money_cols: set[int],
                   fill_color: Optional[str] = None) -> None:
        border = self._thin_border()
        fill = self._fill(fill_color) if fill_color else None
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.border = border
            if col in money_cols:
                cell.number_format = self.MONEY_FORMAT
            if fill is not None:
                cell.fill = fill

    def _known_rooms(self, requests: list[ReservationRequest]) -> list[ReservationRequest]:
        """Anfragen mit unbekanntem Raum werden übersprungen (einmal geloggt)."""
        kept = []
        for r in requests:
            if self.config.find_room(r.room_id) is not None:
                kept.append(r)
            elif r.request_id not in self._skipped:
                self._skipped.add(r.request_id)
                logger.warning(
                    f"Anfrage {r.request_id} übersprungen: unbekannter Raum '{r.room_id}'")
        return kept

    def _room_name(self, r: ReservationRequest) -> str:
        room = self.config.find_room(r.room_id)
        return r.room_name or (room.name if room else r.room_id)

    # ─── Sheet: Übersicht ─────────────────────────────────────────────────────

    def _sheet_uebersicht(self, wb, sessions, bundles, status, room_id) -> None:
        from openpyxl.styles import Font

        ws = wb.create_sheet(title="Übersicht")
        ws.cell(row=1, column=1, value=self.config.facility_name).font = Font(bold=True, size=13)
        ws.cell(row=2, column=1, value=f"Erstellt: {today_str()}")
        filters = []
        if status is not None:
            filters.append(f"Status = {status_label(status)}")
        if room_id is not None:
            filters.append(f"Raum = {room_id}")
        ws.cell(row=3, column=1, value="Filter: " + (", ".join(filters) or "keine"))

        singles = [r for r in sessions if not r.is_bundled]
        single_total = sum(compute_fees_for_session(r, config=self.config).final_fee_krw
                           for r in singles)
        bundle_total = sum(
            compute_fees_for_bundle(pick_fee_basis(items), self.config).final_fee_krw
            for items in bundles.values()
        )

        rows = [
            ("Sitzungen", len(sessions)),
            ("Einzelsitzungen", len(singles)),
            ("Bündel", len(bundles)),
            ("Einzelsitzungen (Endbetrag)", single_total),
            ("Bündel (Endbetrag)", bundle_total),
            ("Gesamt", single_total + bundle_total),
        ]
        self._write_header(ws, ["Kennzahl", "Wert"], [30, 16], row=5)
        for i, (label, value) in enumerate(rows, 6):
            money = {2} if i >= 9 else set()
            fill = COLORS["total"] if label == "Gesamt" else None
            self._write_row(ws, i, [label, value], money, fill)

    # ─── Sheet: Sitzungen ─────────────────────────────────────────────────────

    def _sheet_sitzungen(self, wb, sessions: list[ReservationRequest]) -> None:
        ws = wb.create_sheet(title="Sitzungen")
        self._write_header(ws, self.SESSION_HEADERS, self.SESSION_WIDTHS)
        money = {11, 12, 13, 14, 15}
        for row, r in enumerate(sessions, 2):
            fee = compute_fees_for_session(r, config=self.config)
            self._write_row(ws, row, [
                r.request_id,
                r.batch_id or "",
                r.batch_seq if r.batch_seq is not None else "",
                self._room_name(r),
                r.date,
                r.start_time,
                r.end_time,
                status_label(r.status),
                r.applicant_name,
                fee.duration_hours,
                fee.rental_fee_krw,
                fee.equipment_fee_krw,
                fee.total_fee_krw,
                fee.discount_amount_krw,
                fee.final_fee_krw,
            ], money)
            ws.cell(row=row, column=8).fill = self._fill(status_color(r.status))

    # ─── Sheet: Bündel ────────────────────────────────────────────────────────

    def _sheet_buendel(self, wb, bundles: dict[str, list[ReservationRequest]]) -> None:
        ws = wb.create_sheet(title="Bündel")
        self._write_header(ws, self.BUNDLE_HEADERS, self.BUNDLE_WIDTHS)
        money = {7, 9, 11}
        for row, (batch_id, items) in enumerate(sorted(bundles.items()), 2):
            summary = analyze_bundle(items)
            basis = pick_fee_basis(items)
            fee = compute_fees_for_bundle(basis, self.config)
            first = items[0]
            self._write_row(ws, row, [
                batch_id,
                self._room_name(first),
                first.applicant_name,
                summary.total_count,
                len(basis),
                status_label(summary.display_status),
                fee.total_fee_krw,
                fee.discount_rate_pct,
                fee.discount_amount_krw,
                fee.discount_reason,
                fee.final_fee_krw,
            ], money, COLORS["bundle"])
