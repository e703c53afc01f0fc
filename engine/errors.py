"""Fehlerhierarchie der Buchungs-Engine.

Geschäftliche Ergebnisse (keine freien Slots, gemischter Bündel-Status) sind
KEINE Fehler, sondern Daten. Fehler entstehen nur bei ungültiger Eingabe oder
wenn ein Aufrufer ein negatives Prüfergebnis explizit in eine Ausnahme
umwandelt (z.B. ConflictCheck.raise_for_status()).

Keine der Ausnahmen wird intern wiederholt – der Aufrufer entscheidet nach
Korrektur der Eingabe.
"""

from typing import Any, Optional


class BookingError(Exception):
    """Basisklasse aller Fehler der Buchungs-Engine."""

    # Maschinenlesbarer Code für die aufrufende Schicht (HTTP-Mapping o.ä.)
    code: str = "ERROR"


class FormatError(BookingError, ValueError):
    """Ungültiges Datums-/Zeitformat oder unbekannter Raum.

    Erbt von ValueError, damit Pydantic-Validatoren den Fehler als
    Validierungsfehler melden.
    """

    code = "VALIDATION"


class OutOfHoursError(BookingError):
    """Zeitraum liegt außerhalb der Betriebszeiten (400-Äquivalent)."""

    code = "OUT_OF_HOURS"


class ConflictError(BookingError):
    """Überschneidung mit bestehender Sperre, Kursbelegung oder Buchung (409-Äquivalent)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        conflicting_entity: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.conflicting_entity = conflicting_entity


class InvalidPeriodError(BookingError):
    """Galerie-Zeitraum ohne einen einzigen Ausstellungstag (oder verdreht)."""

    code = "INVALID_PERIOD"


class InvalidTransitionError(BookingError):
    """Unzulässiger Statuswechsel einer Buchung."""

    code = "INVALID_TRANSITION"
