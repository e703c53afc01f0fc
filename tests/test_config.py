"""Tests für das Konfigurationssystem und die Datenmodelle."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config.defaults import (
    EQUIPMENT_LABELS,
    default_facility_config,
    default_gallery_hours,
    default_operating_hours,
    default_rooms,
)
from config.manager import ConfigManager
from config.schema import (
    BookingRulesConfig,
    FacilityConfig,
    OperatingHoursConfig,
    PricingConfig,
    TimeWindow,
)
from engine.errors import FormatError, InvalidTransitionError
from models import (
    ClassSchedule,
    Equipment,
    ManualBlock,
    RequestStatus,
    ReservationRequest,
    Room,
    RoomCategory,
    RoomScope,
)
from models.facility_data import FacilitySnapshot


def _req(rid="r1", room="sangsang2", date="2026-02-16", start="10:00", end="12:00",
         status=RequestStatus.RECEIVED, **kw) -> ReservationRequest:
    return ReservationRequest(request_id=rid, room_id=room, date=date,
                              start_time=start, end_time=end, status=status, **kw)


# ─── DEFAULT-KONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_default_rooms(self):
        """Raumkatalog: 11 Räume, eine Galerie, ein Studio."""
        rooms = default_rooms()
        assert len(rooms) == 11
        assert [r.id for r in rooms if r.is_gallery] == ["gallery"]
        assert [r.id for r in rooms if r.category == RoomCategory.STUDIO] == ["media"]
        sangsang2 = next(r for r in rooms if r.id == "sangsang2")
        assert sangsang2.hourly_fee_krw == 50000

    def test_default_hours(self):
        oh = default_operating_hours()
        assert [str(w) for w in oh.tuesday] == ["10:00-17:00", "18:00-20:00"]
        gh = default_gallery_hours()
        assert str(gh.tuesday) == "09:00-20:00"
        assert str(gh.saturday) == "09:00-13:00"

    def test_default_facility_config(self):
        config = default_facility_config()
        assert config.utc_offset_hours == 9
        assert config.booking.blocking_statuses == ["received", "approved"]
        assert config.pricing.gallery_weekday_fee == 20000
        assert config.get_room("art").name

    def test_equipment_labels_cover_all_flags(self):
        assert set(EQUIPMENT_LABELS) == set(Equipment.model_fields)

    def test_equipment_fee_tables(self):
        pricing = PricingConfig()
        assert pricing.equipment_fees(RoomCategory.LECTURE)["projector"] == 10000
        assert pricing.equipment_fees(RoomCategory.STUDIO)["pin_mic"] == 5000
        assert pricing.equipment_fees(RoomCategory.GALLERY) == {}


# ─── SCHEMA-VALIDIERUNG ───────────────────────────────────────────────────────

class TestSchemaValidation:
    def test_time_window_order(self):
        with pytest.raises(ValidationError):
            TimeWindow(start="12:00", end="10:00")

    def test_time_window_format(self):
        with pytest.raises(ValidationError):
            TimeWindow(start="9:00", end="10:00")

    def test_time_window_contains(self):
        w = TimeWindow(start="10:00", end="17:00")
        assert w.contains(600, 1020)
        assert not w.contains(590, 700)

    def test_overlapping_windows_rejected(self):
        with pytest.raises(ValidationError):
            OperatingHoursConfig(tuesday=[
                TimeWindow(start="10:00", end="17:00"),
                TimeWindow(start="16:00", end="20:00"),
            ])

    def test_duration_bounds(self):
        with pytest.raises(ValidationError):
            BookingRulesConfig(min_duration_minutes=400, max_duration_minutes=360)
        with pytest.raises(ValidationError):
            BookingRulesConfig(min_duration_minutes=45)

    def test_duplicate_room_ids(self):
        room = Room(id="a", name="A")
        with pytest.raises(ValidationError):
            FacilityConfig(rooms=[room, room])

    def test_unknown_room(self):
        config = default_facility_config()
        assert config.find_room("keller") is None
        with pytest.raises(FormatError):
            config.get_room("keller")

    def test_category_normalize(self):
        assert RoomCategory.normalize("E-Studio") == RoomCategory.STUDIO
        assert RoomCategory.normalize("gallery") == RoomCategory.GALLERY
        assert RoomCategory.normalize(None) == RoomCategory.LECTURE

    def test_room_is_frozen(self):
        room = Room(id="a", name="A")
        with pytest.raises(ValidationError):
            room.name = "B"


# ─── CONFIG-MANAGER ───────────────────────────────────────────────────────────

class TestConfigManager:
    def test_first_run(self, tmp_path):
        mgr = ConfigManager(tmp_path / "cfg.yaml")
        assert mgr.first_run_check()

    def test_save_load_roundtrip(self, tmp_path):
        """YAML speichern und wieder laden ergibt dieselbe Konfiguration."""
        mgr = ConfigManager(tmp_path / "cfg.yaml")
        config = default_facility_config()
        path = mgr.save(config)
        assert path.exists()
        assert not mgr.first_run_check()
        loaded = mgr.load()
        assert loaded == config

    def test_yaml_has_comments(self, tmp_path):
        mgr = ConfigManager(tmp_path / "cfg.yaml")
        mgr.save(default_facility_config())
        text = (tmp_path / "cfg.yaml").read_text(encoding="utf-8")
        assert text.startswith("#")
        assert "KST" in text

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager(tmp_path / "fehlt.yaml").load()

    def test_empty_file(self, tmp_path):
        p = tmp_path / "leer.yaml"
        p.write_text("", encoding="utf-8")
        with pytest.raises(ValueError):
            ConfigManager(p).load()

    def test_invalid_file(self, tmp_path):
        p = tmp_path / "kaputt.yaml"
        p.write_text("utc_offset_hours: 99\n", encoding="utf-8")
        with pytest.raises(ValueError, match="ungültig"):
            ConfigManager(p).load()

    def test_load_or_default(self, tmp_path):
        config = ConfigManager(tmp_path / "fehlt.yaml").load_or_default()
        assert config == default_facility_config()

    def test_edited_value_survives(self, tmp_path):
        mgr = ConfigManager(tmp_path / "cfg.yaml")
        config = default_facility_config()
        config.pricing.gallery_saturday_fee = 15000
        mgr.save(config)
        assert mgr.load().pricing.gallery_saturday_fee == 15000


# ─── RAUM-GELTUNGSBEREICH ─────────────────────────────────────────────────────

class TestRoomScope:
    def test_literal_all(self):
        scope = RoomScope.model_validate("all")
        assert scope.is_all_rooms
        assert scope.matches("art")
        assert scope.model_dump() == "all"

    def test_specific(self):
        scope = RoomScope.model_validate("art")
        assert not scope.is_all_rooms
        assert scope.matches("art")
        assert not scope.matches("it")
        assert str(scope) == "art"

    def test_overlaps(self):
        art, it, every = RoomScope.specific("art"), RoomScope.specific("it"), RoomScope.all_rooms()
        assert art.overlaps(art)
        assert not art.overlaps(it)
        assert every.overlaps(it) and it.overlaps(every)

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            RoomScope.model_validate("  ")

    def test_block_serializes_scope(self):
        block = ManualBlock(block_id="b1", room="all", date="2026-02-16")
        dumped = block.model_dump()
        assert dumped["room"] == "all"
        assert ManualBlock.model_validate(dumped) == block


# ─── DATENMODELLE ─────────────────────────────────────────────────────────────

class TestModels:
    def test_request_validates_date_and_time(self):
        with pytest.raises(ValidationError):
            _req(date="2026-02-30")
        with pytest.raises(ValidationError):
            _req(start="25:00")

    def test_blank_optional_fields(self):
        r = _req(batch_id="  ", start_date="", end_date="")
        assert r.batch_id is None
        assert r.start_date is None
        assert not r.is_bundled

    def test_consolidated_gallery(self):
        gallery = Room(id="galerie", name="Galerie", category=RoomCategory.GALLERY)
        lecture = Room(id="art", name="Kunstraum")
        r = _req(room="galerie", start_date="2026-02-16", end_date="2026-02-20")
        assert r.spans_period
        assert r.is_consolidated_gallery(gallery)
        assert not r.is_consolidated_gallery(lecture)
        bundled = _req(room="galerie", batch_id="G1", start_date="2026-02-16",
                       end_date="2026-02-20")
        assert not bundled.spans_period
        assert not bundled.is_consolidated_gallery(gallery)

    def test_gallery_room_lookup(self):
        config = default_facility_config()
        assert config.gallery_room().id == "gallery"
        assert FacilityConfig(rooms=[Room(id="art", name="Kunst")]).gallery_room() is None

    def test_has_discount(self):
        assert not _req().has_discount
        assert _req(discount_rate_pct=5).has_discount
        assert _req(discount_reason="Verein").has_discount

    def test_equipment_selected(self):
        assert Equipment(laptop=True, pin_mic=True).selected() == ["laptop", "pin_mic"]

    def test_status_transitions(self):
        r = _req()
        approved = r.transition(RequestStatus.APPROVED)
        assert approved.status == RequestStatus.APPROVED
        assert r.status == RequestStatus.RECEIVED
        cancelled = approved.transition("cancelled")
        with pytest.raises(InvalidTransitionError):
            cancelled.transition(RequestStatus.APPROVED)
        with pytest.raises(InvalidTransitionError):
            approved.transition(RequestStatus.REJECTED)

    def test_block_range(self):
        block = ManualBlock(block_id="b", room="art", date="2026-02-16", end_date="2026-02-18")
        assert block.is_day_range
        assert block.covers_date("2026-02-17")
        assert not block.covers_date("2026-02-19")
        with pytest.raises(ValidationError):
            ManualBlock(block_id="b", room="art", date="2026-02-16", end_date="2026-02-10")

    def test_schedule(self):
        s = ClassSchedule(schedule_id="s", room="art", day_of_week=1,
                          start_time="10:00", end_time="11:00", title="Malen",
                          effective_from="", effective_to="2026-06-30")
        assert s.effective_from is None
        assert s.is_effective_on("2020-01-01")
        assert not s.is_effective_on("2026-07-01")
        assert "Malen" in str(s)
        with pytest.raises(ValidationError):
            ClassSchedule(schedule_id="s", room="art", day_of_week=7,
                          start_time="10:00", end_time="11:00")


# ─── MOMENTAUFNAHME ───────────────────────────────────────────────────────────

class TestFacilitySnapshot:
    def _snapshot(self) -> FacilitySnapshot:
        return FacilitySnapshot(
            config=default_facility_config(),
            requests=[
                _req("a", batch_id="B1", batch_seq=2, date="2026-02-18"),
                _req("b", batch_id="B1", batch_seq=1),
                _req("c", room="art", status=RequestStatus.APPROVED),
            ],
            blocks=[ManualBlock(block_id="x", room="all", date="2026-02-20")],
            schedules=[ClassSchedule(schedule_id="s", room="it", day_of_week=3,
                                     start_time="10:00", end_time="12:00")],
        )

    def test_json_roundtrip(self, tmp_path):
        snap = self._snapshot()
        path = tmp_path / "sub" / "data.json"
        snap.save_json(path)
        loaded = FacilitySnapshot.load_json(path)
        assert loaded.requests == snap.requests
        assert loaded.blocks == snap.blocks
        assert loaded.schedules == snap.schedules
        assert loaded.created_at is not None

    def test_missing_json(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FacilitySnapshot.load_json(tmp_path / "fehlt.json")

    def test_lookups(self):
        snap = self._snapshot()
        assert snap.get_request("c").room_id == "art"
        assert snap.get_request("zz") is None
        assert [r.request_id for r in snap.bundle("B1")] == ["b", "a"]
        assert snap.bundle("B9") == []
        assert [r.request_id for r in snap.requests_for(status=RequestStatus.APPROVED)] == ["c"]
        assert len(snap.requests_for(room_id="sangsang2")) == 2

    def test_summary(self):
        text = self._snapshot().summary()
        assert "Bündel: 1" in text
        assert "Sperren: 1" in text
