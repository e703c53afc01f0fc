"""Datenmodell für Räume und Raum-Geltungsbereiche (Pydantic v2)."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_serializer, model_validator


# Legacy-Literal im Datenspeicher für "alle Räume"
ALL_ROOMS_LITERAL = "all"


class RoomCategory(str, Enum):
    """Raumkategorie – steuert Betriebszeiten, Preise und Zubehör."""

    LECTURE = "lecture"
    STUDIO = "studio"
    GALLERY = "gallery"

    @classmethod
    def normalize(cls, value: Optional[str]) -> "RoomCategory":
        """Externe Eingaben (Query-Strings o.ä.) tolerant auf eine Kategorie abbilden."""
        c = str(value or "").strip().lower()
        if c in ("studio", "e-studio", "estudio", "e_studio"):
            return cls.STUDIO
        if c == "gallery":
            return cls.GALLERY
        return cls.LECTURE


class Room(BaseModel):
    """Ein vermietbarer Raum (Stammdaten, beim Start geladen)."""

    model_config = ConfigDict(frozen=True)

    id: str                                    # "bookcafe", "gallery"
    name: str                                  # Anzeigename
    category: RoomCategory = RoomCategory.LECTURE
    hourly_fee_krw: int = 0                    # 0 = Preis nach Vereinbarung
    capacity: int = 0
    floor: str = ""                            # "4".."7"
    note: str = ""

    @property
    def is_gallery(self) -> bool:
        return self.category == RoomCategory.GALLERY


class RoomScope(BaseModel):
    """Geltungsbereich einer Sperre / Kursbelegung: ein Raum ODER alle Räume.

    Im Datenspeicher steht entweder die Raum-ID oder das Literal "all";
    beides wird beim Laden akzeptiert und beim Speichern wieder erzeugt.
    """

    model_config = ConfigDict(frozen=True)

    # None = alle Räume
    room_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_literal(cls, data: Any) -> Any:
        if isinstance(data, str):
            rid = data.strip()
            if not rid:
                raise ValueError("Raum-Geltungsbereich darf nicht leer sein.")
            return {"room_id": None if rid == ALL_ROOMS_LITERAL else rid}
        return data

    @model_serializer
    def _to_literal(self) -> str:
        return ALL_ROOMS_LITERAL if self.room_id is None else self.room_id

    @classmethod
    def all_rooms(cls) -> "RoomScope":
        return cls(room_id=None)

    @classmethod
    def specific(cls, room_id: str) -> "RoomScope":
        return cls(room_id=room_id)

    @property
    def is_all_rooms(self) -> bool:
        return self.room_id is None

    def matches(self, room_id: str) -> bool:
        """True wenn dieser Geltungsbereich den Raum einschließt."""
        return self.room_id is None or self.room_id == room_id

    def overlaps(self, other: "RoomScope") -> bool:
        """Zwei Bereiche kollidieren bei gleicher ID oder wenn einer "alle" ist."""
        if self.is_all_rooms or other.is_all_rooms:
            return True
        return self.room_id == other.room_id

    def __str__(self) -> str:
        return self._to_literal()
