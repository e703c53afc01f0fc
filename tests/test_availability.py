"""Tests für die Verfügbarkeits-Engine (Slot-Raster, ausgebuchte Tage)."""

import pytest

from config.defaults import default_facility_config
from engine.availability import (
    BlockSource,
    ReasonCode,
    compute_availability,
    compute_booked_dates,
    explain_no_availability,
)
from engine.errors import FormatError
from models.block import ManualBlock
from models.class_schedule import ClassSchedule
from models.reservation import RequestStatus, ReservationRequest
from models.room import RoomCategory

TODAY = "2026-02-01"
MONDAY = "2026-02-16"
TUESDAY = "2026-02-17"
SATURDAY = "2026-02-14"
SUNDAY = "2026-02-15"


def _req(rid="r1", room="sangsang2", date=MONDAY, start="10:00", end="12:00",
         status=RequestStatus.RECEIVED, **kw) -> ReservationRequest:
    return ReservationRequest(request_id=rid, room_id=room, date=date,
                              start_time=start, end_time=end, status=status, **kw)


def _block(bid="b1", room="sangsang2", date=MONDAY, start="13:00", end="14:00",
           end_date=None) -> ManualBlock:
    return ManualBlock(block_id=bid, room=room, date=date, end_date=end_date,
                       start_time=start, end_time=end, reason="Wartung")


def _schedule(sid="s1", room="sangsang2", dow=1, start="15:00", end="16:00",
              eff_from=None, eff_to=None) -> ClassSchedule:
    return ClassSchedule(schedule_id=sid, room=room, day_of_week=dow,
                         start_time=start, end_time=end, title="Kurs",
                         effective_from=eff_from, effective_to=eff_to)


def _free(result) -> list[str]:
    return [s.start for s in result.slots if s.available]


# ─── GRUNDFÄLLE ───────────────────────────────────────────────────────────────

class TestBasicAvailability:
    def test_empty_day_all_free(self):
        res = compute_availability("sangsang2", MONDAY, today=TODAY)
        assert res.total_slots == 14
        assert res.available_slots == 14
        assert res.reason_code is None

    def test_past_date(self):
        res = compute_availability("sangsang2", "2026-01-05", today=TODAY)
        assert res.slots == []
        assert res.reason_code == ReasonCode.PAST_DATE

    def test_sunday_closed(self):
        res = compute_availability("sangsang2", SUNDAY, today=TODAY)
        assert res.slots == []
        assert res.reason_code == ReasonCode.CLOSED

    def test_hourly_slot_width(self):
        res = compute_availability("sangsang2", MONDAY, today=TODAY, slot_minutes=60)
        assert res.total_slots == 7

    def test_unknown_room_raises(self):
        with pytest.raises(FormatError):
            compute_availability("keller", MONDAY, today=TODAY)

    def test_malformed_date_raises(self):
        with pytest.raises(FormatError):
            compute_availability("sangsang2", "2026/02/16", today=TODAY)

    def test_tuesday_includes_evening(self):
        res = compute_availability("sangsang2", TUESDAY, today=TODAY)
        assert res.total_slots == 18
        assert "18:00" in _free(res)
        assert "17:00" not in [s.start for s in res.slots]


# ─── BELEGUNGSQUELLEN ─────────────────────────────────────────────────────────

class TestConflictSources:
    def test_request_blocks_overlapping_slots(self):
        res = compute_availability("sangsang2", MONDAY, [_req()], today=TODAY)
        blocked = [s for s in res.slots if not s.available]
        assert [s.start for s in blocked] == ["10:00", "10:30", "11:00", "11:30"]
        assert blocked[0].blocked_by == BlockSource.REQUEST
        assert blocked[0].blocked_by_id == "r1"

    def test_only_received_and_approved_block(self):
        reqs = [
            _req("a", status=RequestStatus.REJECTED),
            _req("b", status=RequestStatus.CANCELLED),
            _req("c", status=RequestStatus.UNDER_REVIEW),
        ]
        res = compute_availability("sangsang2", MONDAY, reqs, today=TODAY)
        assert res.available_slots == res.total_slots

    def test_other_room_ignored(self):
        res = compute_availability("sangsang2", MONDAY, [_req(room="art")], today=TODAY)
        assert res.available_slots == 14

    def test_block_and_all_rooms_block(self):
        res = compute_availability(
            "sangsang2", MONDAY, [],
            [_block(), _block("b2", room="all", start="16:00", end="17:00")],
            today=TODAY)
        blocked = {s.start: s.blocked_by_id for s in res.slots if not s.available}
        assert blocked == {"13:00": "b1", "13:30": "b1", "16:00": "b2", "16:30": "b2"}

    def test_day_range_block_covers_date(self):
        blk = _block(date="2026-02-13", end_date="2026-02-18", start="00:00", end="23:59")
        res = compute_availability("sangsang2", MONDAY, [], [blk], today=TODAY)
        assert res.available_slots == 0
        assert res.reason_code == ReasonCode.FULLY_BOOKED

    def test_gallery_range_block_blocks_whole_day(self):
        """Galerie: Tagesbereich-Sperre gilt ganztägig, auch außerhalb ihrer Uhrzeit."""
        blk = _block(room="gallery", date=TUESDAY, end_date=TUESDAY,
                     start="09:00", end="18:00")
        res = compute_availability("gallery", TUESDAY, [], [blk], today=TODAY)
        assert res.available_slots == 0
        assert any(s.start == "19:00" for s in res.slots)

    def test_schedule_respects_weekday_and_range(self):
        sched = _schedule(eff_from="2026-02-01", eff_to="2026-02-28")
        res = compute_availability("sangsang2", MONDAY, [], [], [sched], today=TODAY)
        assert [s.start for s in res.slots if not s.available] == ["15:00", "15:30"]
        assert res.slots[10].blocked_by == BlockSource.SCHEDULE

        tuesday = compute_availability("sangsang2", TUESDAY, [], [], [sched], today=TODAY)
        assert tuesday.available_slots == tuesday.total_slots

        expired = _schedule(eff_to="2026-02-10")
        res = compute_availability("sangsang2", MONDAY, [], [], [expired], today=TODAY)
        assert res.available_slots == 14

    def test_consolidated_gallery_request_blocks_range_and_prep(self):
        req = _req(room="gallery", date="2026-02-16", start="09:00", end="18:00",
                   start_date="2026-02-16", end_date="2026-02-20",
                   gallery_prep_date="2026-02-14")
        for ymd in ("2026-02-14", "2026-02-16", "2026-02-18", "2026-02-20"):
            res = compute_availability("gallery", ymd, [req], today=TODAY)
            assert res.available_slots == 0, ymd
        after = compute_availability("gallery", "2026-02-21", [req], today=TODAY)
        assert after.available_slots == after.total_slots

    def test_consolidated_row_in_renamed_gallery(self):
        """Galerie-Verhalten hängt an der Raumkategorie, nicht an der Raum-ID."""
        cfg = default_facility_config()
        cfg = cfg.model_copy(update={"rooms": [
            r.model_copy(update={"id": "galerie"}) if r.is_gallery else r for r in cfg.rooms]})
        req = _req(room="galerie", date="2026-02-16", start="09:00", end="18:00",
                   start_date="2026-02-16", end_date="2026-02-20",
                   gallery_prep_date="2026-02-14")
        for ymd in ("2026-02-14", "2026-02-18"):
            res = compute_availability("galerie", ymd, [req], today=TODAY, config=cfg)
            assert res.available_slots == 0, ymd

        blk = _block(room="galerie", date=TUESDAY, end_date=TUESDAY,
                     start="09:00", end="18:00")
        res = compute_availability("galerie", TUESDAY, [], [blk], today=TODAY, config=cfg)
        assert res.available_slots == 0

    def test_fully_booked_reason(self):
        req = _req(start="10:00", end="17:00", status=RequestStatus.APPROVED)
        res = compute_availability("sangsang2", MONDAY, [req], today=TODAY)
        assert res.is_fully_booked
        assert res.reason_message


# ─── MONATSANSICHT ────────────────────────────────────────────────────────────

class TestBookedDates:
    def test_booked_dates(self):
        reqs = [
            _req("a", start="10:00", end="17:00"),
            _req("b", date="2026-02-18", start="10:00", end="12:00"),
        ]
        blk = _block(date="2026-02-20", end_date="2026-02-21", start="00:00", end="23:59")
        booked = compute_booked_dates("sangsang2", "2026-02", reqs, [blk])
        assert booked == ["2026-02-16", "2026-02-20", "2026-02-21"]

    def test_sundays_never_booked(self):
        blk = _block(room="all", date="2026-02-01", end_date="2026-02-28",
                     start="00:00", end="23:59")
        booked = compute_booked_dates("art", "2026-02", [], [blk])
        assert SUNDAY not in booked
        assert len(booked) == 24


class TestExplain:
    def test_explain_codes(self):
        assert explain_no_availability("2026-01-01", today=TODAY).code == ReasonCode.PAST_DATE
        assert explain_no_availability(SUNDAY, today=TODAY).code == ReasonCode.CLOSED
        assert explain_no_availability(MONDAY, today=TODAY) is None
        full = explain_no_availability(MONDAY, RoomCategory.GALLERY, today=TODAY,
                                       fully_booked=True)
        assert full.code == ReasonCode.FULLY_BOOKED
