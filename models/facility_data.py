"""FacilitySnapshot: Momentaufnahme des Datenspeichers (Anfragen, Sperren, Kurse)."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from config.schema import FacilityConfig
from engine.bundle import group_bundles
from models.block import ManualBlock
from models.class_schedule import ClassSchedule
from models.reservation import ReservationRequest, RequestStatus
from models.room import Room


class FacilitySnapshot(BaseModel):
    """Alle Datensätze, die die Engine für eine Entscheidung braucht.

    Die Engine selbst liest nie aus einem Speicher; CLI, Export und Prüfung
    arbeiten auf dieser JSON-Momentaufnahme.
    """

    config: FacilityConfig
    requests: list[ReservationRequest] = Field(default_factory=list)
    blocks: list[ManualBlock] = Field(default_factory=list)
    schedules: list[ClassSchedule] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"

    # ─── Übersicht ───

    def summary(self) -> str:
        """Kurze Übersicht über den Datensatz."""
        by_status: dict[str, int] = {}
        for r in self.requests:
            by_status[r.status.value] = by_status.get(r.status.value, 0) + 1
        status_text = ", ".join(f"{k}: {v}" for k, v in sorted(by_status.items()))
        lines = [
            f"Einrichtung: {self.config.facility_name}",
            f"Räume: {len(self.config.rooms)}",
            f"Sitzungen: {len(self.requests)}" + (f" ({status_text})" if status_text else ""),
            f"Bündel: {len(self.bundles())}",
            f"Sperren: {len(self.blocks)}",
            f"Kursbelegungen: {len(self.schedules)}",
        ]
        return "\n".join(lines)

    # ─── Zugriff ───

    def get_room(self, room_id: str) -> Room:
        return self.config.get_room(room_id)

    def get_request(self, request_id: str) -> Optional[ReservationRequest]:
        for r in self.requests:
            if r.request_id == request_id:
                return r
        return None

    def requests_for(self, room_id: Optional[str] = None,
                     status: Optional[RequestStatus] = None) -> list[ReservationRequest]:
        """Gefilterte Sitzungen (None = kein Filter)."""
        return [
            r for r in self.requests
            if (room_id is None or r.room_id == room_id)
            and (status is None or r.status == status)
        ]

    def bundles(self) -> dict[str, list[ReservationRequest]]:
        """Sitzungen nach batch_id gruppiert und sortiert."""
        return group_bundles(self.requests)

    def bundle(self, batch_id: str) -> list[ReservationRequest]:
        return self.bundles().get(batch_id, [])

    # ─── Persistenz ────────────────────────────────────────────────────────

    def save_json(self, path: Path) -> None:
        """Speichert die Momentaufnahme als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        now = datetime.now(timezone.utc)
        updated = self.model_copy(update={
            "modified_at": now,
            "created_at": self.created_at or now,
        })
        with open(path, "w", encoding="utf-8") as f:
            f.write(updated.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "FacilitySnapshot":
        """Lädt eine Momentaufnahme aus einer JSON-Datei."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"JSON-Datei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())
