"""Betriebszeiten: welche Zeitfenster an welchem Tag für welche Raumkategorie gelten.

Alle Fenster kommen aus der FacilityConfig; ohne explizite Config gelten die
Standardwerte aus config.defaults.
"""

import logging
from typing import Optional

from pydantic import BaseModel

from config.schema import FacilityConfig, TimeWindow
from engine.errors import OutOfHoursError
from engine.timeutil import (
    WEEKDAY_NAMES,
    day_of_week,
    format_minutes,
    intervals_overlap,
    minutes_of_day,
)
from models.room import RoomCategory

logger = logging.getLogger(__name__)

SUNDAY = 0
TUESDAY = 2
SATURDAY = 6

def resolve_config(config: Optional[FacilityConfig]) -> FacilityConfig:
    """Gibt config zurück oder eine frisch erzeugte Standard-Konfiguration."""
    if config is not None:
        return config
    from config.defaults import default_facility_config
    return default_facility_config()


class HoursCheck(BaseModel):
    """Ergebnis einer Betriebszeiten-Prüfung."""

    ok: bool
    message: str = ""


# ─── Fenster ───

def operating_windows_for_weekday(
    category: RoomCategory,
    dow: int,
    config: Optional[FacilityConfig] = None,
) -> list[TimeWindow]:
    """Fenster für einen Wochentag (0=So … 6=Sa), aufsteigend sortiert."""
    cfg = resolve_config(config)
    category = RoomCategory(category)
    if dow == SUNDAY:
        return []
    if category == RoomCategory.GALLERY:
        gh = cfg.gallery_hours
        if dow == SATURDAY:
            return [gh.saturday]
        if dow == TUESDAY:
            return [gh.tuesday]
        return [gh.weekday]
    oh = cfg.operating_hours
    if dow == SATURDAY:
        windows = oh.saturday
    elif dow == TUESDAY:
        windows = oh.tuesday
    else:
        windows = oh.weekday
    return sorted(windows, key=lambda w: w.start_minutes)


def operating_windows(
    category: RoomCategory,
    ymd: str,
    config: Optional[FacilityConfig] = None,
) -> list[TimeWindow]:
    """Fenster für ein konkretes Datum. Sonntag → leere Liste."""
    return operating_windows_for_weekday(category, day_of_week(ymd), config)


def slot_starts(windows: list[TimeWindow], step_minutes: int = 30) -> list[int]:
    """Alle Slot-Beginne (Minuten) über alle Fenster, nur vollständige Slots."""
    starts: set[int] = set()
    for w in windows:
        t = w.start_minutes
        while t + step_minutes <= w.end_minutes:
            starts.add(t)
            t += step_minutes
    return sorted(starts)


def build_slot_grid(
    category: RoomCategory,
    ymd: str,
    step_minutes: int = 30,
    config: Optional[FacilityConfig] = None,
) -> list[tuple[str, str]]:
    """Slot-Raster eines Tages als ("HH:MM", "HH:MM")-Paare."""
    windows = operating_windows(category, ymd, config)
    return [
        (format_minutes(s), format_minutes(s + step_minutes))
        for s in slot_starts(windows, step_minutes)
    ]


# ─── Prüfung ───

def _windows_text(windows: list[TimeWindow]) -> str:
    return " oder ".join(str(w) for w in windows)


def _check_against(windows: list[TimeWindow], dow: int, start: str, end: str,
                   verb: str) -> HoursCheck:
    if dow == SUNDAY:
        return HoursCheck(ok=False, message="Sonntag ist Ruhetag, keine Buchung möglich.")
    s = minutes_of_day(start)
    e = minutes_of_day(end)
    if not s < e:
        return HoursCheck(ok=False, message="Das Ende darf nicht vor dem Beginn liegen.")
    if not windows:
        return HoursCheck(ok=False, message="An diesem Tag gibt es keine Betriebszeiten.")
    if any(w.contains(s, e) for w in windows):
        return HoursCheck(ok=True)
    return HoursCheck(
        ok=False,
        message=(
            f"{WEEKDAY_NAMES[dow]}: nur innerhalb der Betriebszeiten "
            f"({_windows_text(windows)}) {verb}."
        ),
    )


def validate_operating_hours(
    category: RoomCategory,
    ymd: str,
    start: str,
    end: str,
    config: Optional[FacilityConfig] = None,
) -> HoursCheck:
    """Liegt [start, end) an diesem Datum vollständig in EINEM Fenster?"""
    dow = day_of_week(ymd)
    windows = operating_windows_for_weekday(category, dow, config)
    return _check_against(windows, dow, start, end, "buchbar")


def validate_operating_hours_by_weekday(
    category: RoomCategory,
    dow: int,
    start: str,
    end: str,
    config: Optional[FacilityConfig] = None,
) -> HoursCheck:
    """Wie validate_operating_hours, aber für wiederkehrende Kurse (Wochentag)."""
    windows = operating_windows_for_weekday(category, dow, config)
    return _check_against(windows, dow, start, end, "einplanbar")


def require_operating_hours(
    category: RoomCategory,
    ymd: str,
    start: str,
    end: str,
    config: Optional[FacilityConfig] = None,
) -> None:
    """Raises:
        OutOfHoursError: wenn der Zeitraum außerhalb der Betriebszeiten liegt.
    """
    check = validate_operating_hours(category, ymd, start, end, config)
    if not check.ok:
        logger.debug(f"Außerhalb der Betriebszeiten: {ymd} {start}-{end} ({category.value})")
        raise OutOfHoursError(check.message)


# ─── Anzeige-Hilfen ───

def _short(hhmm: str) -> str:
    h, m = hhmm.split(":")
    return str(int(h)) if m == "00" else f"{int(h)}:{m}"


def _short_range(w: TimeWindow) -> str:
    return f"{_short(w.start)}~{_short(w.end)}"


def operating_notice_text(
    category: RoomCategory,
    config: Optional[FacilityConfig] = None,
) -> str:
    """Einzeiliger Hinweis, z.B. "Werktags 10~17 / Di 18~20 abends / Sa 10~12 (So geschlossen)"."""
    cfg = resolve_config(config)
    if RoomCategory(category) == RoomCategory.GALLERY:
        gh = cfg.gallery_hours
        return (
            f"Werktags {_short_range(gh.weekday)} / Di {_short_range(gh.tuesday)} / "
            f"Sa {_short_range(gh.saturday)} (So und Feiertage geschlossen)"
        )
    oh = cfg.operating_hours
    weekday = " + ".join(_short_range(w) for w in oh.weekday)
    night = [w for w in oh.tuesday if w not in oh.weekday]
    sat = " + ".join(_short_range(w) for w in oh.saturday)
    parts = [f"Werktags {weekday}"]
    if night:
        parts.append("Di " + " + ".join(_short_range(w) for w in night) + " abends")
    parts.append(f"Sa {sat} (So geschlossen)")
    return " / ".join(parts)


def is_tuesday_night_overlap(
    ymd: Optional[str],
    start: Optional[str],
    end: Optional[str] = None,
    config: Optional[FacilityConfig] = None,
) -> bool:
    """Berührt der Zeitraum die Dienstag-Abendöffnung?

    Ohne Ende wird der Beginn als Zeitpunkt geprüft.
    """
    if not ymd or not start:
        return False
    if day_of_week(ymd) != TUESDAY:
        return False
    oh = resolve_config(config).operating_hours
    night = [w for w in oh.tuesday if w not in oh.weekday]
    s = minutes_of_day(start)
    e = minutes_of_day(end) if end else s
    for w in night:
        if e == s:
            if w.start_minutes <= s < w.end_minutes:
                return True
        elif intervals_overlap(s, e, w.start_minutes, w.end_minutes):
            return True
    return False
