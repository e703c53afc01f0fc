"""Datenmodell für eine Buchungsanfrage (eine Sitzung / ein Termin, Pydantic v2)."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from engine.errors import InvalidTransitionError
from engine.timeutil import minutes_of_day, parse_date
from models.room import Room


class RequestStatus(str, Enum):
    RECEIVED = "received"
    UNDER_REVIEW = "under review"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Zulässige Statuswechsel. Entschiedene Anfragen lassen sich nur noch stornieren.
ALLOWED_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.RECEIVED: {
        RequestStatus.UNDER_REVIEW, RequestStatus.APPROVED,
        RequestStatus.REJECTED, RequestStatus.CANCELLED,
    },
    RequestStatus.UNDER_REVIEW: {
        RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED,
    },
    RequestStatus.APPROVED: {RequestStatus.CANCELLED},
    RequestStatus.REJECTED: {RequestStatus.CANCELLED},
    RequestStatus.CANCELLED: set(),
}


class Equipment(BaseModel):
    """Zubehör-Auswahl. Welche Flags gelten, hängt von der Raumkategorie ab."""

    # Seminarräume
    laptop: bool = False
    projector: bool = False
    audio: bool = False
    # E-Studio (Aufnahmetechnik)
    mirrorless: bool = False
    camcorder: bool = False
    wireless_mic: bool = False
    pin_mic: bool = False
    rode_mic: bool = False
    electronic_board: bool = False

    def selected(self) -> list[str]:
        """Namen aller ausgewählten Zubehörteile."""
        return [name for name, on in self.model_dump().items() if on]


class ReservationRequest(BaseModel):
    """Eine einzelne Buchungssitzung (Datum + Zeitraum), kleinste gespeicherte Einheit.

    Mehrtägige Anträge bestehen aus mehreren Sitzungen mit gemeinsamer batch_id.
    Galerie-Anträge im konsolidierten Format sind EINE Zeile ohne batch_id mit
    start_date/end_date und Tageszählern.
    """

    request_id: str
    room_id: str
    room_name: str = ""
    date: str                          # "YYYY-MM-DD"
    start_time: str                    # "HH:MM"
    end_time: str                      # "HH:MM"
    status: RequestStatus = RequestStatus.RECEIVED
    created_at: str = ""

    # Antragsteller
    applicant_name: str = ""
    phone: str = ""
    email: str = ""
    org_name: str = ""
    headcount: int = 1
    purpose: str = ""

    equipment: Equipment = Field(default_factory=Equipment)

    # Bündel (mehrere Sitzungen, ein Antrag)
    batch_id: Optional[str] = None
    batch_seq: Optional[int] = None
    batch_size: Optional[int] = None

    # Rabatt (Verwaltung); bei Bündeln gilt er für das Bündel insgesamt
    discount_rate_pct: float = 0.0
    discount_amount_krw: int = 0
    discount_reason: str = ""

    # Galerie
    is_prep_day: bool = False
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    gallery_weekday_count: Optional[int] = None
    gallery_saturday_count: Optional[int] = None
    gallery_exhibition_day_count: Optional[int] = None
    gallery_prep_date: Optional[str] = None

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        parse_date(v)
        return v

    @field_validator("start_date", "end_date", "gallery_prep_date")
    @classmethod
    def _check_optional_date(cls, v: Optional[str]) -> Optional[str]:
        # Leere Strings aus dem Datenspeicher gelten als "nicht gesetzt"
        if v is None or not str(v).strip():
            return None
        parse_date(v)
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        minutes_of_day(v)
        return v

    @field_validator("batch_id")
    @classmethod
    def _blank_batch_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v if v and v.strip() else None

    # ─── Abgeleitete Eigenschaften ───

    @property
    def is_bundled(self) -> bool:
        return self.batch_id is not None

    @property
    def spans_period(self) -> bool:
        """1-Zeilen-Format: Zeitraum start_date–end_date statt einzelner Sitzungen."""
        return (
            self.batch_id is None
            and self.start_date is not None
            and self.end_date is not None
        )

    def is_consolidated_gallery(self, room: Room) -> bool:
        """Galerie-Antrag im 1-Zeilen-Format; entscheidet die Raumkategorie, nicht die ID."""
        return room.is_gallery and self.spans_period

    @property
    def has_discount(self) -> bool:
        return (
            self.discount_amount_krw > 0
            or self.discount_rate_pct > 0
            or bool(self.discount_reason.strip())
        )

    # ─── Statuswechsel ───

    def transition(self, new_status: RequestStatus) -> "ReservationRequest":
        """Gibt eine Kopie mit neuem Status zurück.

        Raises:
            InvalidTransitionError: wenn der Wechsel nicht zulässig ist
                (z.B. eine stornierte Anfrage erneut genehmigen).
        """
        new_status = RequestStatus(new_status)
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Anfrage {self.request_id}: Statuswechsel "
                f"'{self.status.value}' → '{new_status.value}' nicht zulässig."
            )
        return self.model_copy(update={"status": new_status})
