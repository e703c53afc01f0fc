"""Konfliktprüfung für neue Sperren, Kursbelegungen und Buchungssitzungen.

Reihenfolge je Kandidat: Format/Raster → Betriebszeiten → Überschneidungen.
Gemeldet wird nur der ERSTE gefundene Konflikt.
"""

import logging
from typing import Any, Optional, Sequence, Union

from pydantic import BaseModel

from config.schema import FacilityConfig
from engine.availability import (
    block_occupancy,
    blocking_statuses,
    request_occupancy,
    schedule_occupancy,
)
from engine.errors import ConflictError, FormatError, OutOfHoursError
from engine.operating import (
    operating_windows,
    resolve_config,
    validate_operating_hours,
    validate_operating_hours_by_weekday,
)
from engine.timeutil import (
    date_in_range,
    day_of_week,
    intervals_overlap,
    minutes_of_day,
    parse_date,
)
from models.block import ManualBlock
from models.class_schedule import ClassSchedule
from models.reservation import ReservationRequest
from models.room import Room, RoomCategory, RoomScope

logger = logging.getLogger(__name__)

# Ergebnis-Codes
OK = "OK"
VALIDATION = "VALIDATION"
OUT_OF_HOURS = "OUT_OF_HOURS"
CONFLICT = "CONFLICT"
CLASS_CONFLICT = "CLASS_CONFLICT"
BLOCKED = "BLOCKED"

# Tagesbereich-Sperren: feste Uhrzeiten
RANGE_BLOCK_TIMES = ("00:00", "23:59")
GALLERY_RANGE_BLOCK_TIMES = ("09:00", "18:00")


class SessionCandidate(BaseModel):
    """Eine beantragte Sitzung (noch nicht gespeichert)."""

    room_id: str
    date: str
    start_time: str
    end_time: str
    is_prep_day: bool = False


class ConflictCheck(BaseModel):
    """Prüfergebnis. ok=False ist ein normales Ergebnis, keine Ausnahme."""

    ok: bool
    code: str = OK
    message: str = ""
    conflicting_entity: Optional[Any] = None

    @classmethod
    def passed(cls) -> "ConflictCheck":
        return cls(ok=True)

    @classmethod
    def failed(cls, code: str, message: str,
               conflicting_entity: Optional[Any] = None) -> "ConflictCheck":
        return cls(ok=False, code=code, message=message,
                   conflicting_entity=conflicting_entity)

    def raise_for_status(self) -> None:
        """Wandelt ein negatives Ergebnis in die passende Ausnahme um."""
        if self.ok:
            return
        if self.code == VALIDATION:
            raise FormatError(self.message)
        if self.code == OUT_OF_HOURS:
            raise OutOfHoursError(self.message)
        raise ConflictError(self.message, code=self.code,
                            conflicting_entity=self.conflicting_entity)


# ─── Hilfen ───

def _category_for_scope(scope: RoomScope, cfg: FacilityConfig) -> RoomCategory:
    # "alle Räume" folgt den Seminarraum-Zeiten
    if scope.is_all_rooms:
        return RoomCategory.LECTURE
    return cfg.get_room(scope.room_id).category


def _check_shape(start: str, end: str, step: int) -> Optional[ConflictCheck]:
    s = minutes_of_day(start)
    e = minutes_of_day(end)
    if s % step or e % step:
        return ConflictCheck.failed(
            VALIDATION, f"Uhrzeiten nur im {step}-Minuten-Raster möglich.")
    if s >= e:
        return ConflictCheck.failed(
            VALIDATION, "Das Ende muss nach dem Beginn liegen.")
    return None


def session_shape_error(start: str, end: str, cfg: FacilityConfig) -> Optional[str]:
    """Beginn vor Ende, Raster und Dauer einer Sitzung (nicht Galerie); sonst None."""
    rules = cfg.booking
    s = minutes_of_day(start)
    e = minutes_of_day(end)
    if s >= e:
        return "Das Ende muss nach dem Beginn liegen."
    if s % rules.slot_interval_minutes or e % rules.slot_interval_minutes:
        return f"Uhrzeiten nur im {rules.slot_interval_minutes}-Minuten-Raster."
    duration = e - s
    if not rules.min_duration_minutes <= duration <= rules.max_duration_minutes:
        return (
            f"Dauer {duration} Minuten außerhalb "
            f"{rules.min_duration_minutes}–{rules.max_duration_minutes} Minuten."
        )
    return None


# ─── Sperren ───

def prepare_block(candidate: ManualBlock,
                  config: Optional[FacilityConfig] = None) -> ManualBlock:
    """Setzt die Uhrzeiten einer neuen Sperre so, wie sie gespeichert wird.

    Tagesbereiche bekommen feste Zeiten (Galerie 09:00–18:00, sonst ganztägig),
    eine eintägige Galerie-Sperre das Öffnungsfenster des Tages.

    Raises:
        OutOfHoursError: eintägige Galerie-Sperre an einem Sonntag.
    """
    cfg = resolve_config(config)
    is_gallery = _category_for_scope(candidate.room, cfg) == RoomCategory.GALLERY
    if candidate.is_day_range:
        start, end = GALLERY_RANGE_BLOCK_TIMES if is_gallery else RANGE_BLOCK_TIMES
        return candidate.model_copy(update={"start_time": start, "end_time": end})
    if is_gallery:
        windows = operating_windows(RoomCategory.GALLERY, candidate.date, cfg)
        if not windows:
            raise OutOfHoursError("Sonntags kann die Galerie nicht gesperrt werden.")
        return candidate.model_copy(update={
            "start_time": windows[0].start, "end_time": windows[-1].end})
    return candidate


def check_block_candidate(
    candidate: ManualBlock,
    existing_blocks: Sequence[ManualBlock] = (),
    existing_schedules: Sequence[ClassSchedule] = (),
    config: Optional[FacilityConfig] = None,
) -> ConflictCheck:
    """Prüft eine neue manuelle Sperre gegen bestehende Sperren und Kurse.

    Die Uhrzeiten werden vorher wie beim Speichern gesetzt (prepare_block).
    """
    cfg = resolve_config(config)
    try:
        candidate = prepare_block(candidate, cfg)
    except OutOfHoursError as e:
        return ConflictCheck.failed(OUT_OF_HOURS, str(e))

    if candidate.is_day_range:
        # Tagesbereich: jede bestehende Sperre im Bereich kollidiert
        for b in existing_blocks:
            if not b.room.overlaps(candidate.room):
                continue
            if b.is_day_range:
                hit = b.date <= candidate.last_date and b.last_date >= candidate.date
            else:
                hit = date_in_range(b.date, candidate.date, candidate.last_date)
            if hit:
                return ConflictCheck.failed(
                    CONFLICT, "Der Zeitraum überschneidet sich mit einer bestehenden Sperre.", b)
        return ConflictCheck.passed()

    shape = _check_shape(candidate.start_time, candidate.end_time,
                         cfg.booking.slot_interval_minutes)
    if shape:
        return shape

    category = _category_for_scope(candidate.room, cfg)
    hours = validate_operating_hours(category, candidate.date,
                                     candidate.start_time, candidate.end_time, cfg)
    if not hours.ok:
        return ConflictCheck.failed(OUT_OF_HOURS, hours.message)

    s = minutes_of_day(candidate.start_time)
    e = minutes_of_day(candidate.end_time)

    for b in existing_blocks:
        if not b.covers_date(candidate.date) or not b.room.overlaps(candidate.room):
            continue
        if intervals_overlap(minutes_of_day(b.start_time), minutes_of_day(b.end_time), s, e):
            return ConflictCheck.failed(
                CONFLICT, "Überschneidung mit einer bestehenden Sperre.", b)

    dow = day_of_week(candidate.date)
    for sc in existing_schedules:
        if sc.day_of_week != dow or not sc.is_effective_on(candidate.date):
            continue
        if not sc.room.overlaps(candidate.room):
            continue
        if intervals_overlap(minutes_of_day(sc.start_time), minutes_of_day(sc.end_time), s, e):
            return ConflictCheck.failed(
                CONFLICT, f"Überschneidung mit der Kursbelegung {sc}.", sc)

    return ConflictCheck.passed()


# ─── Kursbelegungen ───

def check_schedule_candidate(
    candidate: ClassSchedule,
    existing_schedules: Sequence[ClassSchedule] = (),
    config: Optional[FacilityConfig] = None,
) -> ConflictCheck:
    """Prüft eine neue wiederkehrende Kursbelegung gegen bestehende."""
    cfg = resolve_config(config)

    shape = _check_shape(candidate.start_time, candidate.end_time,
                         cfg.booking.slot_interval_minutes)
    if shape:
        return shape
    if (candidate.effective_from and candidate.effective_to
            and candidate.effective_from > candidate.effective_to):
        return ConflictCheck.failed(VALIDATION, "Gültigkeitszeitraum ist verdreht.")

    category = _category_for_scope(candidate.room, cfg)
    hours = validate_operating_hours_by_weekday(
        category, candidate.day_of_week, candidate.start_time, candidate.end_time, cfg)
    if not hours.ok:
        return ConflictCheck.failed(OUT_OF_HOURS, hours.message)

    s = minutes_of_day(candidate.start_time)
    e = minutes_of_day(candidate.end_time)
    for sc in existing_schedules:
        if not sc.effective_overlaps(candidate):
            continue
        if sc.day_of_week != candidate.day_of_week:
            continue
        if not sc.room.overlaps(candidate.room):
            continue
        if intervals_overlap(minutes_of_day(sc.start_time), minutes_of_day(sc.end_time), s, e):
            return ConflictCheck.failed(
                CONFLICT, f"Überschneidung mit der Kursbelegung {sc}.", sc)
    return ConflictCheck.passed()


# ─── Buchungssitzungen ───

def check_reservation_candidate(
    candidate: SessionCandidate,
    requests: Sequence[ReservationRequest] = (),
    blocks: Sequence[ManualBlock] = (),
    schedules: Sequence[ClassSchedule] = (),
    config: Optional[FacilityConfig] = None,
) -> ConflictCheck:
    """Prüft eine beantragte Sitzung: Form, Betriebszeiten, Buchungen, Kurse, Sperren.

    Raises:
        FormatError: bei fehlerhaftem Datum/Uhrzeit oder unbekanntem Raum.
    """
    cfg = resolve_config(config)
    parse_date(candidate.date)
    room: Room = cfg.get_room(candidate.room_id)

    if room.is_gallery:
        if minutes_of_day(candidate.start_time) >= minutes_of_day(candidate.end_time):
            return ConflictCheck.failed(VALIDATION, "Das Ende muss nach dem Beginn liegen.")
    else:
        err = session_shape_error(candidate.start_time, candidate.end_time, cfg)
        if err:
            return ConflictCheck.failed(VALIDATION, err)

    hours = validate_operating_hours(room.category, candidate.date,
                                     candidate.start_time, candidate.end_time, cfg)
    if not hours.ok:
        return ConflictCheck.failed(OUT_OF_HOURS, hours.message)

    s = minutes_of_day(candidate.start_time)
    e = minutes_of_day(candidate.end_time)
    statuses = blocking_statuses(cfg)

    for r in requests:
        if r.room_id != room.id or r.status not in statuses:
            continue
        iv = request_occupancy(r, room, candidate.date)
        if iv and intervals_overlap(iv[0], iv[1], s, e):
            return ConflictCheck.failed(
                CONFLICT,
                f"{room.name} ist am {candidate.date} {candidate.start_time}-"
                f"{candidate.end_time} nicht buchbar (Terminkonflikt).",
                r,
            )

    for sc in schedules:
        iv = schedule_occupancy(sc, room, candidate.date)
        if iv and intervals_overlap(iv[0], iv[1], s, e):
            return ConflictCheck.failed(
                CLASS_CONFLICT, "Zu dieser Zeit findet ein regelmäßiger Kurs statt.", sc)

    for b in blocks:
        iv = block_occupancy(b, room, candidate.date)
        if iv and intervals_overlap(iv[0], iv[1], s, e):
            return ConflictCheck.failed(
                BLOCKED, "Dieser Zeitraum ist aus betrieblichen Gründen gesperrt.", b)

    return ConflictCheck.passed()


# ─── Einheitlicher Einstieg ───

Candidate = Union[ManualBlock, ClassSchedule, SessionCandidate]


def validate_candidate(
    candidate: Candidate,
    *,
    requests: Sequence[ReservationRequest] = (),
    blocks: Sequence[ManualBlock] = (),
    schedules: Sequence[ClassSchedule] = (),
    config: Optional[FacilityConfig] = None,
) -> ConflictCheck:
    """Wählt die passende Prüfung nach Art des Kandidaten."""
    if isinstance(candidate, ManualBlock):
        result = check_block_candidate(candidate, blocks, schedules, config)
    elif isinstance(candidate, ClassSchedule):
        result = check_schedule_candidate(candidate, schedules, config)
    elif isinstance(candidate, SessionCandidate):
        result = check_reservation_candidate(candidate, requests, blocks, schedules, config)
    else:
        raise TypeError(f"Unbekannter Kandidat: {type(candidate).__name__}")
    if not result.ok:
        logger.info(f"Kandidat abgelehnt ({result.code}): {result.message}")
    return result
