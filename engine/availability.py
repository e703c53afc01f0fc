"""Verfügbarkeit eines Raums an einem Tag (Slot-Raster) und ausgebuchte Tage eines Monats.

Die Engine liest keine Daten selbst: Anfragen, Sperren und Kursbelegungen
werden vom Aufrufer als vollständige Momentaufnahme übergeben.
"""

import logging
from enum import Enum
from typing import Optional, Sequence, Union

from pydantic import BaseModel

from config.schema import FacilityConfig
from engine.operating import operating_windows, resolve_config, slot_starts
from engine.timeutil import (
    date_in_range,
    day_of_week,
    days_in_month,
    format_minutes,
    intervals_overlap,
    minutes_of_day,
    parse_date,
    today_in_operating_timezone,
)
from models.block import ManualBlock
from models.class_schedule import ClassSchedule
from models.reservation import RequestStatus, ReservationRequest
from models.room import Room, RoomCategory

logger = logging.getLogger(__name__)

# Ganzer Tag in Minuten [0, 24:00)
WHOLE_DAY = (0, 24 * 60)


class ReasonCode(str, Enum):
    PAST_DATE = "PAST_DATE"
    CLOSED = "CLOSED"
    FULLY_BOOKED = "FULLY_BOOKED"


class BlockSource(str, Enum):
    """Art des Datensatzes, der einen Slot belegt."""

    REQUEST = "request"
    BLOCK = "block"
    SCHEDULE = "schedule"


class SlotStatus(BaseModel):
    start: str
    end: str
    available: bool
    blocked_by: Optional[BlockSource] = None
    blocked_by_id: Optional[str] = None


class NoAvailabilityReason(BaseModel):
    code: ReasonCode
    message: str


class AvailabilityResult(BaseModel):
    """Slot-Raster eines Tages. Keine freien Slots ist ein normales Ergebnis."""

    room_id: str
    date: str
    slots: list[SlotStatus]
    reason_code: Optional[ReasonCode] = None
    reason_message: Optional[str] = None

    @property
    def total_slots(self) -> int:
        return len(self.slots)

    @property
    def available_slots(self) -> int:
        return sum(1 for s in self.slots if s.available)

    @property
    def is_fully_booked(self) -> bool:
        return self.reason_code == ReasonCode.FULLY_BOOKED


# ─── Belegungsquellen ───

def blocking_statuses(config: Optional[FacilityConfig] = None) -> set[RequestStatus]:
    """Status, die einen Zeitraum belegen (Standard: received, approved)."""
    cfg = resolve_config(config)
    return {RequestStatus(s) for s in cfg.booking.blocking_statuses}


def request_occupancy(request: ReservationRequest, room: Room,
                      ymd: str) -> Optional[tuple[int, int]]:
    """Belegtes Intervall (Minuten) einer Anfrage an einem Tag, oder None.

    Konsolidierte Galerie-Anfragen (eine Zeile, kein batch_id) belegen jeden
    Tag ihres Zeitraums sowie den Vorbereitungstag komplett.
    """
    if request.is_consolidated_gallery(room):
        if request.gallery_prep_date and ymd == request.gallery_prep_date:
            return WHOLE_DAY
        if date_in_range(ymd, request.start_date, request.end_date):
            return WHOLE_DAY
        return None
    if request.date != ymd:
        return None
    return minutes_of_day(request.start_time), minutes_of_day(request.end_time)


def block_occupancy(block: ManualBlock, room: Room, ymd: str) -> Optional[tuple[int, int]]:
    """Belegtes Intervall einer Sperre an einem Tag, oder None."""
    if not block.room.matches(room.id) or not block.covers_date(ymd):
        return None
    # Galerie: Tagesbereich-Sperren gelten ganztägig, unabhängig von der Uhrzeit
    if room.is_gallery and block.is_day_range:
        return WHOLE_DAY
    return minutes_of_day(block.start_time), minutes_of_day(block.end_time)


def schedule_occupancy(schedule: ClassSchedule, room: Room, ymd: str) -> Optional[tuple[int, int]]:
    """Belegtes Intervall einer Kursbelegung an einem Tag, oder None."""
    if not schedule.room.matches(room.id):
        return None
    if schedule.day_of_week != day_of_week(ymd):
        return None
    if not schedule.is_effective_on(ymd):
        return None
    return minutes_of_day(schedule.start_time), minutes_of_day(schedule.end_time)


def _occupied_intervals(
    room: Room,
    ymd: str,
    requests: Sequence[ReservationRequest],
    blocks: Sequence[ManualBlock],
    schedules: Sequence[ClassSchedule],
    statuses: set[RequestStatus],
) -> list[tuple[int, int, BlockSource, str]]:
    out: list[tuple[int, int, BlockSource, str]] = []
    for r in requests:
        if r.room_id != room.id or r.status not in statuses:
            continue
        iv = request_occupancy(r, room, ymd)
        if iv:
            out.append((iv[0], iv[1], BlockSource.REQUEST, r.request_id))
    for b in blocks:
        iv = block_occupancy(b, room, ymd)
        if iv:
            out.append((iv[0], iv[1], BlockSource.BLOCK, b.block_id))
    for s in schedules:
        iv = schedule_occupancy(s, room, ymd)
        if iv:
            out.append((iv[0], iv[1], BlockSource.SCHEDULE, s.schedule_id))
    return out


# ─── Verfügbarkeit ───

def _resolve_room(room: Union[Room, str], cfg: FacilityConfig) -> Room:
    if isinstance(room, Room):
        return room
    return cfg.get_room(str(room).strip())


def explain_no_availability(
    ymd: str,
    category: RoomCategory = RoomCategory.LECTURE,
    *,
    today: Optional[str] = None,
    fully_booked: bool = False,
    config: Optional[FacilityConfig] = None,
) -> Optional[NoAvailabilityReason]:
    """Grund, warum an einem Tag nichts buchbar ist (None = es gibt freie Slots)."""
    cfg = resolve_config(config)
    today = today or today_in_operating_timezone(utc_offset_hours=cfg.utc_offset_hours)
    if ymd < today:
        return NoAvailabilityReason(
            code=ReasonCode.PAST_DATE,
            message="Vergangene Tage können nicht gebucht werden.")
    if not operating_windows(category, ymd, cfg):
        if day_of_week(ymd) == 0:
            msg = "Sonntag ist Ruhetag, keine Buchung möglich."
        else:
            msg = "An diesem Tag gibt es keine Betriebszeiten."
        return NoAvailabilityReason(code=ReasonCode.CLOSED, message=msg)
    if fully_booked:
        return NoAvailabilityReason(
            code=ReasonCode.FULLY_BOOKED,
            message="Dieser Tag ist ausgebucht oder aus betrieblichen Gründen gesperrt.")
    return None


def compute_availability(
    room: Union[Room, str],
    ymd: str,
    requests: Sequence[ReservationRequest] = (),
    blocks: Sequence[ManualBlock] = (),
    schedules: Sequence[ClassSchedule] = (),
    *,
    today: Optional[str] = None,
    slot_minutes: Optional[int] = None,
    config: Optional[FacilityConfig] = None,
) -> AvailabilityResult:
    """Slot-Raster eines Raums an einem Tag.

    Args:
        room: Raum oder Raum-ID.
        ymd: Zieldatum "YYYY-MM-DD".
        requests, blocks, schedules: vollständige Momentaufnahme.
        today: heutiges Datum (Standard: Zeitzone der Einrichtung).
        slot_minutes: Slot-Breite (Standard: booking.display_slot_minutes).

    Raises:
        FormatError: bei fehlerhaftem Datum oder unbekanntem Raum.
    """
    cfg = resolve_config(config)
    parse_date(ymd)
    room = _resolve_room(room, cfg)
    step = slot_minutes or cfg.booking.display_slot_minutes

    reason = explain_no_availability(ymd, room.category, today=today, config=cfg)
    if reason is not None:
        return AvailabilityResult(
            room_id=room.id, date=ymd, slots=[],
            reason_code=reason.code, reason_message=reason.message,
        )

    occupied = _occupied_intervals(
        room, ymd, requests, blocks, schedules, blocking_statuses(cfg))

    slots: list[SlotStatus] = []
    for s in slot_starts(operating_windows(room.category, ymd, cfg), step):
        e = s + step
        hit = next((o for o in occupied if intervals_overlap(s, e, o[0], o[1])), None)
        slots.append(SlotStatus(
            start=format_minutes(s),
            end=format_minutes(e),
            available=hit is None,
            blocked_by=hit[2] if hit else None,
            blocked_by_id=hit[3] if hit else None,
        ))

    result = AvailabilityResult(room_id=room.id, date=ymd, slots=slots)
    if slots and result.available_slots == 0:
        full = explain_no_availability(
            ymd, room.category, today=today, fully_booked=True, config=cfg)
        result = result.model_copy(update={
            "reason_code": full.code, "reason_message": full.message})
    logger.debug(
        f"Verfügbarkeit {room.id} {ymd}: {result.available_slots}/{result.total_slots} frei")
    return result


def compute_booked_dates(
    room: Union[Room, str],
    month: str,
    requests: Sequence[ReservationRequest] = (),
    blocks: Sequence[ManualBlock] = (),
    schedules: Sequence[ClassSchedule] = (),
    *,
    slot_minutes: Optional[int] = None,
    config: Optional[FacilityConfig] = None,
) -> list[str]:
    """Tage eines Monats "YYYY-MM", an denen jeder Slot belegt ist.

    Geschlossene Tage (Sonntag) zählen nicht als ausgebucht; vergangene Tage
    werden wie künftige bewertet, damit der Kalender konsistent bleibt.
    """
    cfg = resolve_config(config)
    days = days_in_month(month)
    room = _resolve_room(room, cfg)
    booked: list[str] = []
    for ymd in days:
        # Vergangenheits-Prüfung aushebeln: today = erster Tag des Monats
        result = compute_availability(
            room, ymd, requests, blocks, schedules,
            today=days[0], slot_minutes=slot_minutes, config=cfg,
        )
        if result.is_fully_booked:
            booked.append(ymd)
    return booked
