"""Prüfung eines vollständigen Antrags (eine oder mehrere Sitzungen) vor dem Speichern.

Zuerst wird der Antrag als Ganzes geprüft (Format, Sonntage, Überschneidungen
innerhalb des Antrags, Größe). Erst danach jede Sitzung einzeln gegen den
Bestand. Die Sitzungs-Probleme werden gesammelt, nicht beim ersten abgebrochen.
"""

import logging
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from config.schema import FacilityConfig
from engine.conflicts import (
    SessionCandidate,
    check_reservation_candidate,
    session_shape_error,
)
from engine.errors import FormatError, InvalidPeriodError
from engine.gallery import GallerySession, compute_gallery_stats, require_gallery_sessions
from engine.operating import SUNDAY, resolve_config
from engine.timeutil import day_of_week, intervals_overlap, minutes_of_day, parse_date
from models.block import ManualBlock
from models.class_schedule import ClassSchedule
from models.reservation import ReservationRequest

logger = logging.getLogger(__name__)


class SessionIssue(BaseModel):
    date: str
    start_time: str
    end_time: str
    code: str
    message: str


class SubmissionReport(BaseModel):
    """Ergebnis der Antragsprüfung.

    error_code/error_message: Ablehnung des ganzen Antrags (VALIDATION).
    issues: Probleme einzelner Sitzungen (BATCH_CONFLICT).
    """

    room_id: str
    sessions: list[SessionCandidate] = Field(default_factory=list)
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    issues: list[SessionIssue] = Field(default_factory=list)
    # Nur Galerie: Kennzahlen für den konsolidierten Datensatz
    gallery_weekday_count: Optional[int] = None
    gallery_saturday_count: Optional[int] = None
    gallery_exhibition_day_count: Optional[int] = None
    gallery_prep_date: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_code is None and not self.issues

    @property
    def code(self) -> str:
        if self.error_code:
            return self.error_code
        return "BATCH_CONFLICT" if self.issues else "OK"

    @property
    def message(self) -> str:
        if self.error_message:
            return self.error_message
        return self.issues[0].message if self.issues else ""


def _dedupe_and_sort(sessions: Sequence[SessionCandidate]) -> list[SessionCandidate]:
    uniq: dict[tuple[str, str, str], SessionCandidate] = {}
    for s in sessions:
        uniq[(s.date, s.start_time, s.end_time)] = s
    return sorted(uniq.values(), key=lambda s: (s.date, s.start_time))


def _shape_error(s: SessionCandidate, cfg: FacilityConfig) -> Optional[str]:
    err = session_shape_error(s.start_time, s.end_time, cfg)
    return f"{s.date}: {err}" if err else None


def validate_submission(
    room_id: str,
    sessions: Sequence[SessionCandidate],
    requests: Sequence[ReservationRequest] = (),
    blocks: Sequence[ManualBlock] = (),
    schedules: Sequence[ClassSchedule] = (),
    config: Optional[FacilityConfig] = None,
) -> SubmissionReport:
    """Prüft einen Seminarraum-/Studio-Antrag mit beliebig vielen Sitzungen."""
    cfg = resolve_config(config)
    room = cfg.get_room(room_id)
    report = SubmissionReport(room_id=room.id)

    def reject(message: str) -> SubmissionReport:
        report.error_code = "VALIDATION"
        report.error_message = message
        logger.info(f"Antrag für {room.id} abgelehnt: {message}")
        return report

    if not sessions:
        return reject("Bitte mindestens einen Termin angeben.")

    limit = cfg.booking.max_batch_sessions
    if not room.is_gallery and len(sessions) > limit:
        return reject(f"Ein Antrag darf höchstens {limit} Termine enthalten.")

    for s in sessions:
        try:
            parse_date(s.date)
            minutes_of_day(s.start_time)
            minutes_of_day(s.end_time)
        except FormatError as e:
            return reject(str(e))

    ordered = _dedupe_and_sort(
        [s.model_copy(update={"room_id": room.id}) for s in sessions])
    report.sessions = ordered

    if any(day_of_week(s.date) == SUNDAY for s in ordered):
        return reject("Sonntag ist Ruhetag, keine Buchung möglich.")

    if not room.is_gallery:
        for s in ordered:
            err = _shape_error(s, cfg)
            if err:
                return reject(err)

    by_date: dict[str, list[SessionCandidate]] = {}
    for s in ordered:
        by_date.setdefault(s.date, []).append(s)
    for ymd, same_day in by_date.items():
        for prev, cur in zip(same_day, same_day[1:]):
            if intervals_overlap(
                minutes_of_day(prev.start_time), minutes_of_day(prev.end_time),
                minutes_of_day(cur.start_time), minutes_of_day(cur.end_time),
            ):
                return reject(f"Am {ymd} überschneiden sich Termine innerhalb des Antrags.")

    for s in ordered:
        check = check_reservation_candidate(s, requests, blocks, schedules, cfg)
        if not check.ok:
            report.issues.append(SessionIssue(
                date=s.date, start_time=s.start_time, end_time=s.end_time,
                code=check.code, message=check.message,
            ))

    if report.issues:
        logger.info(f"Antrag für {room.id}: {len(report.issues)} Termin(e) mit Konflikt")
    return report


def validate_gallery_submission(
    start_date: str,
    end_date: str,
    requests: Sequence[ReservationRequest] = (),
    blocks: Sequence[ManualBlock] = (),
    schedules: Sequence[ClassSchedule] = (),
    room_id: Optional[str] = None,
    config: Optional[FacilityConfig] = None,
) -> SubmissionReport:
    """Prüft einen Galerie-Antrag. Die Sitzungen werden aus dem Zeitraum erzeugt.

    Ohne room_id wird der Galerie-Raum der Konfiguration verwendet.

    Raises:
        FormatError: unbekannter Raum, kein Galerie-Raum oder Raum ohne Galerie-Kategorie.
    """
    cfg = resolve_config(config)
    if room_id is None:
        room = cfg.gallery_room()
        if room is None:
            raise FormatError("In der Konfiguration ist kein Galerie-Raum angelegt.")
    else:
        room = cfg.get_room(room_id)
        if not room.is_gallery:
            raise FormatError(f"{room.name} ist kein Galerie-Raum.")

    try:
        first = parse_date(start_date)
        last = parse_date(end_date)
    except FormatError as e:
        return SubmissionReport(room_id=room.id, error_code="VALIDATION",
                                error_message=str(e))
    if last < first:
        return SubmissionReport(room_id=room.id, error_code="VALIDATION",
                                error_message="Das Enddatum liegt vor dem Startdatum.")
    span = (last - first).days + 1
    if span > cfg.booking.gallery_max_period_days:
        return SubmissionReport(
            room_id=room.id, error_code="VALIDATION",
            error_message=(
                f"Ein Ausstellungszeitraum darf höchstens "
                f"{cfg.booking.gallery_max_period_days} Tage umfassen."))

    try:
        generated: list[GallerySession] = require_gallery_sessions(start_date, end_date, cfg)
    except InvalidPeriodError as e:
        return SubmissionReport(room_id=room.id, error_code=e.code, error_message=str(e))

    candidates = [
        SessionCandidate(room_id=room.id, date=g.date, start_time=g.start_time,
                         end_time=g.end_time, is_prep_day=g.is_prep_day)
        for g in generated
    ]
    report = validate_submission(room.id, candidates, requests, blocks, schedules, cfg)

    stats = compute_gallery_stats(start_date, end_date, cfg)
    report.gallery_weekday_count = stats.weekday_count
    report.gallery_saturday_count = stats.saturday_count
    report.gallery_exhibition_day_count = stats.exhibition_day_count
    report.gallery_prep_date = stats.prep_date
    return report
