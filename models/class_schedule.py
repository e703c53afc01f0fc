"""Datenmodell für eine wiederkehrende Kursbelegung (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from engine.timeutil import WEEKDAY_NAMES, date_in_range, minutes_of_day, parse_date
from models.room import RoomScope


class ClassSchedule(BaseModel):
    """Regelmäßiger Kurs: jede Woche am selben Wochentag zur selben Zeit."""

    schedule_id: str
    room: RoomScope
    day_of_week: int = Field(ge=0, le=6)     # 0=So … 6=Sa
    start_time: str
    end_time: str
    title: str = ""
    effective_from: Optional[str] = None     # leer = seit jeher
    effective_to: Optional[str] = None       # leer = unbefristet

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, v: str) -> str:
        minutes_of_day(v)
        return v

    @field_validator("effective_from", "effective_to")
    @classmethod
    def _check_date(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not str(v).strip():
            return None
        parse_date(v)
        return v

    @property
    def day_name(self) -> str:
        return WEEKDAY_NAMES[self.day_of_week]

    def is_effective_on(self, ymd: str) -> bool:
        return date_in_range(ymd, self.effective_from, self.effective_to)

    def effective_overlaps(self, other: "ClassSchedule") -> bool:
        """Überschneiden sich die Gültigkeitszeiträume (offene Enden = unbegrenzt)?"""
        a_from = self.effective_from or "0000-01-01"
        a_to = self.effective_to or "9999-12-31"
        b_from = other.effective_from or "0000-01-01"
        b_to = other.effective_to or "9999-12-31"
        return a_from <= b_to and b_from <= a_to

    def __str__(self) -> str:
        return f"{self.title or self.schedule_id} ({self.day_name} {self.start_time}-{self.end_time})"
