"""Gemeinsame Hilfsfunktionen für Excel-Export und CLI-Ausgabe."""

from datetime import date

from models.reservation import RequestStatus

# ─── Farbpalette (RRGGBB, ohne #) ─────────────────────────────────────────────

COLORS: dict[str, str] = {
    "header":      "4472C4",
    "received":    "FFF2B3",
    "under review": "FFE0B3",
    "approved":    "B3FFB3",
    "rejected":    "FF9999",
    "cancelled":   "E0E0E0",
    "bundle":      "D4E4FF",
    "total":       "DDDDDD",
}

# Deutsche Bezeichnungen für die Antragsstatus
STATUS_LABELS: dict[RequestStatus, str] = {
    RequestStatus.RECEIVED:     "Eingegangen",
    RequestStatus.UNDER_REVIEW: "In Prüfung",
    RequestStatus.APPROVED:     "Genehmigt",
    RequestStatus.REJECTED:     "Abgelehnt",
    RequestStatus.CANCELLED:    "Storniert",
}

# Rich-Farben für die Konsolenausgabe
STATUS_STYLES: dict[RequestStatus, str] = {
    RequestStatus.RECEIVED:     "yellow",
    RequestStatus.UNDER_REVIEW: "dark_orange",
    RequestStatus.APPROVED:     "green",
    RequestStatus.REJECTED:     "red",
    RequestStatus.CANCELLED:    "dim",
}


def today_str() -> str:
    """Gibt das heutige Datum als DD.MM.YYYY zurück."""
    return date.today().strftime("%d.%m.%Y")


def status_color(status: RequestStatus) -> str:
    return COLORS.get(status.value, COLORS["cancelled"])


def status_label(status) -> str:
    """Bezeichnung für RequestStatus oder Bündel-Anzeigestatus (String)."""
    if isinstance(status, RequestStatus):
        return STATUS_LABELS[status]
    try:
        return STATUS_LABELS[RequestStatus(status)]
    except ValueError:
        return "Teilweise entschieden" if status == "partially-finalized" else str(status)


def rich_status(status: RequestStatus) -> str:
    """Status mit Rich-Markup."""
    style = STATUS_STYLES[status]
    return f"[{style}]{STATUS_LABELS[status]}[/{style}]"
