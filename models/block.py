"""Datenmodell für eine manuelle Sperre (Verwaltung, Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from engine.timeutil import date_in_range, minutes_of_day, parse_date
from models.room import RoomScope


class ManualBlock(BaseModel):
    """Von der Verwaltung gesetzte Sperre.

    Entweder ein Zeitraum an EINEM Tag (date + start/end) oder ein
    Tagesbereich (date … end_date), der die betroffenen Tage ganz sperrt.
    """

    block_id: str
    room: RoomScope                   # Raum-ID oder "all"
    date: str                         # erster Tag
    end_date: Optional[str] = None    # letzter Tag (inklusive) bei Tagesbereich
    start_time: str = "00:00"
    end_time: str = "23:59"
    reason: str = ""

    @field_validator("date")
    @classmethod
    def _check_date(cls, v: str) -> str:
        parse_date(v)
        return v

    @field_validator("end_date")
    @classmethod
    def _check_end_date(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        parse_date(v)
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        minutes_of_day(v)
        return v

    @model_validator(mode='after')
    def _check_range(self):
        if self.end_date is not None and self.end_date < self.date:
            raise ValueError(
                f"Sperre {self.block_id}: end_date {self.end_date} liegt vor {self.date}")
        return self

    @property
    def is_day_range(self) -> bool:
        return self.end_date is not None

    @property
    def last_date(self) -> str:
        return self.end_date or self.date

    def covers_date(self, ymd: str) -> bool:
        """True wenn die Sperre an diesem Tag gilt."""
        return date_in_range(ymd, self.date, self.last_date)
