"""Kalender- und Uhrzeit-Hilfsfunktionen.

Alle Datumswerte werden als ISO-Strings ("YYYY-MM-DD") und alle Uhrzeiten
als "HH:MM" übergeben – so wie sie im externen Datenspeicher liegen.

Wochentage folgen der Konvention 0=Sonntag … 6=Samstag.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional

from engine.errors import FormatError

_YMD_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HHMM_RE = re.compile(r"^(\d{2}):(\d{2})$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")

# Feste Zeitzone der Einrichtung (KST, kein DST)
OPERATING_UTC_OFFSET_HOURS = 9

WEEKDAY_NAMES = ["So", "Mo", "Di", "Mi", "Do", "Fr", "Sa"]


# ─── Uhrzeit ─────────────────────────────────────────────────────────────────

def minutes_of_day(hhmm: str) -> int:
    """Wandelt "HH:MM" in Minuten seit Mitternacht um.

    Raises:
        FormatError: bei fehlerhaftem Format oder Werten außerhalb 00:00–23:59.
    """
    m = _HHMM_RE.match(str(hhmm or "").strip())
    if not m:
        raise FormatError(f"Ungültige Uhrzeit: {hhmm!r} (erwartet HH:MM)")
    h, mm = int(m.group(1)), int(m.group(2))
    if h > 23 or mm > 59:
        raise FormatError(f"Ungültige Uhrzeit: {hhmm!r}")
    return h * 60 + mm


def format_minutes(minutes: int) -> str:
    """Minuten seit Mitternacht → "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def is_slot_aligned(hhmm: str, step_minutes: int = 30) -> bool:
    """True wenn die Uhrzeit auf dem Raster liegt (z.B. :00 oder :30)."""
    return minutes_of_day(hhmm) % step_minutes == 0


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Halb-offener Überlappungstest [a_start, a_end) ∩ [b_start, b_end).

    Direkt aneinander anschließende Intervalle (a_end == b_start) überlappen
    NICHT. Leere oder verdrehte Intervalle muss der Aufrufer vorher ablehnen.
    """
    return a_start < b_end and b_start < a_end


def time_ranges_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Wie intervals_overlap, aber mit "HH:MM"-Strings."""
    return intervals_overlap(
        minutes_of_day(a_start), minutes_of_day(a_end),
        minutes_of_day(b_start), minutes_of_day(b_end),
    )


# ─── Datum ───────────────────────────────────────────────────────────────────

def parse_date(ymd: str) -> date:
    """ISO-Datum "YYYY-MM-DD" → date.

    Raises:
        FormatError: bei fehlerhaftem Format oder ungültigem Kalendertag.
    """
    s = str(ymd or "").strip()
    if not _YMD_RE.match(s):
        raise FormatError(f"Ungültiges Datum: {ymd!r} (erwartet YYYY-MM-DD)")
    try:
        return date(int(s[0:4]), int(s[5:7]), int(s[8:10]))
    except ValueError as e:
        raise FormatError(f"Ungültiges Datum: {ymd!r}") from e


def day_of_week(ymd: str) -> int:
    """Wochentag eines Kalendertags (0=Sonntag … 6=Samstag).

    Das Datum wird aus den Y/M/D-Bestandteilen als UTC-Zeitpunkt (Mitternacht
    UTC) konstruiert und dessen UTC-Wochentag gelesen. Die Zeitzone des Hosts
    spielt dadurch keine Rolle – lokales Parsen würde Samstag/Sonntag in der
    Nähe von Mitternacht sporadisch falsch zuordnen.
    """
    d = parse_date(ymd)
    anchored = datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
    # Python: Montag=0 … Sonntag=6  →  Sonntag=0 … Samstag=6
    return (anchored.weekday() + 1) % 7


def add_days(ymd: str, delta_days: int) -> str:
    """Verschiebt ein ISO-Datum um delta_days Tage."""
    return (parse_date(ymd) + timedelta(days=delta_days)).isoformat()


def iter_dates(start: str, end: str) -> Iterator[str]:
    """Alle Kalendertage von start bis end (beide inklusive)."""
    cur = parse_date(start)
    last = parse_date(end)
    while cur <= last:
        yield cur.isoformat()
        cur += timedelta(days=1)


def days_in_month(month: str) -> list[str]:
    """Alle Tage eines Monats "YYYY-MM" als ISO-Strings."""
    m = _MONTH_RE.match(str(month or "").strip())
    if not m:
        raise FormatError(f"Ungültiger Monat: {month!r} (erwartet YYYY-MM)")
    year, mon = int(m.group(1)), int(m.group(2))
    if not 1 <= mon <= 12:
        raise FormatError(f"Ungültiger Monat: {month!r}")
    first = date(year, mon, 1)
    nxt = date(year + 1, 1, 1) if mon == 12 else date(year, mon + 1, 1)
    return list(iter_dates(first.isoformat(), (nxt - timedelta(days=1)).isoformat()))


def today_in_operating_timezone(
    now: Optional[datetime] = None,
    utc_offset_hours: int = OPERATING_UTC_OFFSET_HOURS,
) -> str:
    """Heutiges Datum in der Zeitzone der Einrichtung (UTC+9), nicht des Hosts.

    Args:
        now: Referenzzeitpunkt (für Tests); naive Werte gelten als UTC.
        utc_offset_hours: fester Offset der Einrichtung.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(timezone(timedelta(hours=utc_offset_hours)))
    return local.date().isoformat()


def date_in_range(ymd: str, start: Optional[str] = None, end: Optional[str] = None) -> bool:
    """Inklusive Bereichsprüfung; leere Grenzen sind unbeschränkt.

    ISO-Strings sind lexikografisch sortierbar, daher genügt der String-Vergleich.
    """
    if start and ymd < start:
        return False
    if end and ymd > end:
        return False
    return True
