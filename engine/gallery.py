"""Galerie: Sitzungen aus einem Ausstellungszeitraum erzeugen und Kennzahlen berechnen.

Die Galerie wird pro Kalendertag abgerechnet. Ein Vorbereitungstag vor dem
Start ist kostenlos; Sonntage sind geschlossen und werden übersprungen.
"""

import logging
from typing import Optional

from pydantic import BaseModel

from config.schema import FacilityConfig
from engine.errors import InvalidPeriodError
from engine.operating import SATURDAY, SUNDAY, operating_windows, resolve_config
from engine.timeutil import add_days, day_of_week, iter_dates, parse_date
from models.room import RoomCategory

logger = logging.getLogger(__name__)


class GallerySession(BaseModel):
    date: str
    start_time: str
    end_time: str
    is_prep_day: bool = False


class GalleryStats(BaseModel):
    prep_date: Optional[str] = None
    weekday_count: int = 0
    saturday_count: int = 0
    exhibition_day_count: int = 0
    total_fee_krw: int = 0


def prep_date_for(start_date: str) -> str:
    """Vorbereitungstag: Vortag des Starts, Sonntage rückwärts überspringen."""
    prep = add_days(start_date, -1)
    while day_of_week(prep) == SUNDAY:
        prep = add_days(prep, -1)
    return prep


def gallery_day_fee(ymd: str, is_prep_day: bool = False,
                    config: Optional[FacilityConfig] = None) -> int:
    """Tagespreis: 0 für Sonntag/Vorbereitungstag, Samstag ermäßigt, sonst voll."""
    if is_prep_day:
        return 0
    pricing = resolve_config(config).pricing
    dow = day_of_week(ymd)
    if dow == SUNDAY:
        return 0
    if dow == SATURDAY:
        return pricing.gallery_saturday_fee
    return pricing.gallery_weekday_fee


def _session_for(ymd: str, cfg: FacilityConfig, is_prep_day: bool) -> Optional[GallerySession]:
    windows = operating_windows(RoomCategory.GALLERY, ymd, cfg)
    if not windows:
        return None
    return GallerySession(
        date=ymd,
        start_time=windows[0].start,
        end_time=windows[-1].end,
        is_prep_day=is_prep_day,
    )


def generate_gallery_sessions(
    start_date: str,
    end_date: str,
    config: Optional[FacilityConfig] = None,
) -> list[GallerySession]:
    """Vorbereitungstag + ein Ausstellungstag pro geöffnetem Tag in [start, end].

    Liefert eine LEERE Liste, wenn kein einziger Ausstellungstag entsteht
    (z.B. nur Sonntage oder verdrehter Zeitraum).

    Raises:
        FormatError: bei fehlerhaftem Datumsformat.
    """
    cfg = resolve_config(config)
    parse_date(start_date)
    parse_date(end_date)

    exhibition = [
        s for s in (_session_for(d, cfg, False) for d in iter_dates(start_date, end_date))
        if s is not None
    ]
    if not exhibition:
        logger.debug(f"Galerie-Zeitraum {start_date}..{end_date} ohne Ausstellungstag")
        return []

    prep = _session_for(prep_date_for(start_date), cfg, True)
    return ([prep] if prep else []) + exhibition


def require_gallery_sessions(
    start_date: str,
    end_date: str,
    config: Optional[FacilityConfig] = None,
) -> list[GallerySession]:
    """Wie generate_gallery_sessions, aber ein leerer Zeitraum ist ein Fehler.

    Raises:
        InvalidPeriodError: wenn der Zeitraum keinen Ausstellungstag enthält.
    """
    sessions = generate_gallery_sessions(start_date, end_date, config)
    if not sessions:
        raise InvalidPeriodError(
            f"Zeitraum {start_date} bis {end_date} enthält keinen Ausstellungstag.")
    return sessions


def compute_gallery_stats(
    start_date: str,
    end_date: str,
    config: Optional[FacilityConfig] = None,
) -> GalleryStats:
    """Kennzahlen eines Ausstellungszeitraums (Tage und Gesamtpreis)."""
    cfg = resolve_config(config)
    sessions = generate_gallery_sessions(start_date, end_date, cfg)
    stats = GalleryStats()
    for s in sessions:
        if s.is_prep_day:
            stats.prep_date = s.date
            continue
        stats.exhibition_day_count += 1
        if day_of_week(s.date) == SATURDAY:
            stats.saturday_count += 1
        else:
            stats.weekday_count += 1
        stats.total_fee_krw += gallery_day_fee(s.date, config=cfg)
    return stats
