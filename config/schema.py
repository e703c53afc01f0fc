from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional

from engine.errors import FormatError
from engine.timeutil import minutes_of_day
from models.room import Room, RoomCategory


# ─── ZEITFENSTER ───

class TimeWindow(BaseModel):
    """Ein zusammenhängendes Betriebszeitfenster an einem Tag."""
    # Beginn im Format "HH:MM"
    start: str
    # Ende im Format "HH:MM" (exklusiv)
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_hhmm(cls, v: str) -> str:
        minutes_of_day(v)
        return v

    @model_validator(mode='after')
    def validate_order(self):
        if minutes_of_day(self.start) >= minutes_of_day(self.end):
            raise ValueError(
                f"Zeitfenster {self.start}-{self.end}: Beginn muss vor dem Ende liegen")
        return self

    @property
    def start_minutes(self) -> int:
        return minutes_of_day(self.start)

    @property
    def end_minutes(self) -> int:
        return minutes_of_day(self.end)

    def contains(self, start_min: int, end_min: int) -> bool:
        """True wenn [start_min, end_min) vollständig im Fenster liegt."""
        return self.start_minutes <= start_min and end_min <= self.end_minutes

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def _check_no_overlap(windows: list[TimeWindow], label: str) -> None:
    ordered = sorted(windows, key=lambda w: w.start_minutes)
    for prev, nxt in zip(ordered, ordered[1:]):
        if nxt.start_minutes < prev.end_minutes:
            raise ValueError(f"{label}: Zeitfenster {prev} und {nxt} überlappen")


# ─── BETRIEBSZEITEN ───

class OperatingHoursConfig(BaseModel):
    """Betriebszeiten für Seminarräume und E-Studio.

    Dienstag hat ZWEI getrennte Fenster (Tag + Abend). Eine Buchung muss
    vollständig in EINEM Fenster liegen, die Lücke dazwischen ist gesperrt.
    Sonntag ist immer geschlossen.
    """
    # Montag, Mittwoch, Donnerstag, Freitag
    weekday: list[TimeWindow] = Field(
        default_factory=lambda: [TimeWindow(start="10:00", end="17:00")],
        description="Fenster an normalen Werktagen")
    # Dienstag: Tagesfenster + Abendfenster
    tuesday: list[TimeWindow] = Field(
        default_factory=lambda: [
            TimeWindow(start="10:00", end="17:00"),
            TimeWindow(start="18:00", end="20:00"),
        ],
        description="Fenster am Dienstag (Abendöffnung)")
    # Samstag (verkürzt)
    saturday: list[TimeWindow] = Field(
        default_factory=lambda: [TimeWindow(start="10:00", end="12:00")],
        description="Fenster am Samstag")

    @model_validator(mode='after')
    def validate_windows(self):
        _check_no_overlap(self.weekday, "Werktag")
        _check_no_overlap(self.tuesday, "Dienstag")
        _check_no_overlap(self.saturday, "Samstag")
        return self


class GalleryHoursConfig(BaseModel):
    """Betriebszeiten der Galerie (ganztägige Ausstellungstage)."""
    weekday: TimeWindow = Field(
        default_factory=lambda: TimeWindow(start="09:00", end="18:00"))
    # Dienstag: ein einziges, verlängertes Fenster
    tuesday: TimeWindow = Field(
        default_factory=lambda: TimeWindow(start="09:00", end="20:00"))
    saturday: TimeWindow = Field(
        default_factory=lambda: TimeWindow(start="09:00", end="13:00"))


# ─── BUCHUNGSREGELN ───

class BookingRulesConfig(BaseModel):
    """Regeln für Anträge und das Slot-Raster der Verfügbarkeitsanzeige."""
    # Raster für Beginn/Ende einer Buchung
    slot_interval_minutes: int = Field(30, ge=5, le=120,
        description="Raster für Beginn/Ende (Minuten)")
    # Breite eines angezeigten Slots in der Verfügbarkeitsansicht
    display_slot_minutes: int = Field(30, ge=5, le=120,
        description="Breite eines Anzeige-Slots (Minuten)")
    # Mindestdauer einer Sitzung (nicht Galerie)
    min_duration_minutes: int = Field(60, ge=30,
        description="Mindestdauer einer Sitzung (Minuten)")
    # Höchstdauer einer Sitzung (nicht Galerie)
    max_duration_minutes: int = Field(360, ge=30,
        description="Höchstdauer einer Sitzung (Minuten)")
    # Höchstzahl Sitzungen pro Antrag (Seminar/Studio)
    max_batch_sessions: int = Field(20, ge=1,
        description="Max. Sitzungen pro Antrag")
    # Längster Galerie-Zeitraum in Tagen
    gallery_max_period_days: int = Field(30, ge=1,
        description="Max. Galerie-Zeitraum (Tage)")
    # Status, die einen Slot belegen (Konfliktquelle)
    blocking_statuses: list[str] = Field(
        default=["received", "approved"],
        description="Status, die einen Zeitraum belegen")

    @model_validator(mode='after')
    def validate_durations(self):
        if self.min_duration_minutes > self.max_duration_minutes:
            raise ValueError(
                f"Mindestdauer {self.min_duration_minutes} > "
                f"Höchstdauer {self.max_duration_minutes}")
        if self.min_duration_minutes % self.slot_interval_minutes != 0:
            raise ValueError("Mindestdauer muss ein Vielfaches des Rasters sein")
        return self


# ─── PREISE ───

class PricingConfig(BaseModel):
    """Preistabellen in KRW."""
    # Zubehör Seminarräume (Pauschale pro Sitzung)
    lecture_equipment_fees: dict[str, int] = Field(
        default_factory=lambda: {"laptop": 10000, "projector": 10000, "audio": 10000},
        description="Zubehör-Pauschalen Seminarräume")
    # Zubehör E-Studio (Pauschale pro Sitzung)
    studio_equipment_fees: dict[str, int] = Field(
        default_factory=lambda: {
            "mirrorless": 10000, "camcorder": 10000, "wireless_mic": 10000,
            "pin_mic": 5000, "rode_mic": 10000, "electronic_board": 20000,
        },
        description="Zubehör-Pauschalen E-Studio")
    # Galerie: Tagespreise
    gallery_weekday_fee: int = Field(20000, ge=0,
        description="Galerie-Tagespreis Werktag")
    gallery_saturday_fee: int = Field(10000, ge=0,
        description="Galerie-Tagespreis Samstag")

    def equipment_fees(self, category: RoomCategory) -> dict[str, int]:
        """Zubehörtabelle einer Kategorie (Galerie: keine)."""
        if category == RoomCategory.STUDIO:
            return self.studio_equipment_fees
        if category == RoomCategory.LECTURE:
            return self.lecture_equipment_fees
        return {}


# ─── GESAMT-CONFIG ───

class FacilityConfig(BaseModel):
    """Gesamtkonfiguration der Einrichtung."""
    # Name der Einrichtung
    facility_name: str = Field("Bürgerzentrum",
        description="Name der Einrichtung")
    # Feste Zeitzone der Einrichtung als UTC-Offset (KST = 9)
    utc_offset_hours: int = Field(9, ge=-12, le=14)
    # Alle vermietbaren Räume
    rooms: list[Room] = Field(default_factory=list)
    operating_hours: OperatingHoursConfig = Field(default_factory=OperatingHoursConfig)
    gallery_hours: GalleryHoursConfig = Field(default_factory=GalleryHoursConfig)
    booking: BookingRulesConfig = Field(default_factory=BookingRulesConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)

    @model_validator(mode='after')
    def validate_room_ids(self):
        ids = [r.id for r in self.rooms]
        dupes = {i for i in ids if ids.count(i) > 1}
        if dupes:
            raise ValueError(f"Doppelte Raum-IDs: {sorted(dupes)}")
        return self

    def find_room(self, room_id: str) -> Optional[Room]:
        for r in self.rooms:
            if r.id == room_id:
                return r
        return None

    def get_room(self, room_id: str) -> Room:
        """Raum nach ID.

        Raises:
            FormatError: bei unbekannter Raum-ID.
        """
        room = self.find_room(room_id)
        if room is None:
            raise FormatError(f"Unbekannter Raum: {room_id!r}")
        return room

    def gallery_room(self) -> Optional[Room]:
        """Erster Raum der Kategorie Galerie, unabhängig von seiner ID."""
        return next((r for r in self.rooms if r.is_gallery), None)
