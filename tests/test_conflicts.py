"""Tests für die Konfliktprüfung (Sperren, Kurse, Sitzungen) und die Antragsprüfung."""

import pytest

from config.defaults import default_facility_config
from config.schema import FacilityConfig
from engine.conflicts import (
    BLOCKED,
    CLASS_CONFLICT,
    CONFLICT,
    OUT_OF_HOURS,
    VALIDATION,
    ConflictCheck,
    SessionCandidate,
    check_block_candidate,
    check_schedule_candidate,
    prepare_block,
    validate_candidate,
)
from engine.errors import ConflictError, FormatError, OutOfHoursError
from engine.submission import validate_gallery_submission, validate_submission
from models.block import ManualBlock
from models.class_schedule import ClassSchedule
from models.reservation import RequestStatus, ReservationRequest

MONDAY = "2026-02-16"
TUESDAY = "2026-02-17"
SUNDAY = "2026-02-15"


def _block(bid="b1", room="art", date=MONDAY, start="13:00", end="14:00",
           end_date=None) -> ManualBlock:
    return ManualBlock(block_id=bid, room=room, date=date, end_date=end_date,
                       start_time=start, end_time=end)


def _schedule(sid="s1", room="art", dow=1, start="15:00", end="16:00",
              eff_from="2026-01-01", eff_to="2026-06-30") -> ClassSchedule:
    return ClassSchedule(schedule_id=sid, room=room, day_of_week=dow,
                         start_time=start, end_time=end,
                         effective_from=eff_from, effective_to=eff_to)


def _session(room="art", date=MONDAY, start="10:00", end="12:00") -> SessionCandidate:
    return SessionCandidate(room_id=room, date=date, start_time=start, end_time=end)


def _req(rid="r1", room="art", date=MONDAY, start="10:00", end="12:00",
         status=RequestStatus.APPROVED, **kw) -> ReservationRequest:
    return ReservationRequest(request_id=rid, room_id=room, date=date,
                              start_time=start, end_time=end, status=status, **kw)


@pytest.fixture
def galerie_config() -> FacilityConfig:
    """Standard-Konfiguration, Galerie-Raum unter der ID 'galerie'."""
    cfg = default_facility_config()
    rooms = [r.model_copy(update={"id": "galerie"}) if r.is_gallery else r for r in cfg.rooms]
    return cfg.model_copy(update={"rooms": rooms})


# ─── SPERREN ──────────────────────────────────────────────────────────────────

class TestBlockCandidate:
    def test_free_slot_ok(self):
        assert check_block_candidate(_block(), [], []).ok

    def test_overlapping_block_same_room(self):
        existing = _block("old", start="13:30", end="15:00")
        res = check_block_candidate(_block(), [existing], [])
        assert not res.ok
        assert res.code == CONFLICT
        assert res.conflicting_entity.block_id == "old"

    def test_all_rooms_wildcard_conflicts(self):
        existing = _block("old", room="all")
        assert not check_block_candidate(_block(room="maru"), [existing], []).ok
        assert not check_block_candidate(_block(room="all"), [_block("x", room="it")], []).ok

    def test_different_room_no_conflict(self):
        assert check_block_candidate(_block(), [_block("old", room="it")], []).ok

    def test_back_to_back_no_conflict(self):
        assert check_block_candidate(_block(), [_block("old", start="14:00", end="15:00")], []).ok

    def test_out_of_hours_beats_conflict(self):
        """Betriebszeiten werden vor Überschneidungen geprüft."""
        cand = _block(start="16:00", end="18:00")
        res = check_block_candidate(cand, [_block("old", start="16:00", end="17:00")], [])
        assert res.code == OUT_OF_HOURS

    def test_unaligned_time_is_validation(self):
        res = check_block_candidate(_block(start="13:15", end="14:00"), [], [])
        assert res.code == VALIDATION

    def test_schedule_conflict(self):
        res = check_block_candidate(_block(start="15:30", end="16:30"), [], [_schedule()])
        assert res.code == CONFLICT
        assert res.conflicting_entity.schedule_id == "s1"

    def test_schedule_outside_effective_range(self):
        sched = _schedule(eff_from="2026-03-01", eff_to="2026-06-30")
        assert check_block_candidate(_block(start="15:30", end="16:30"), [], [sched]).ok

    def test_day_range_vs_timed_block_inside(self):
        cand = _block("new", date="2026-02-10", end_date="2026-02-20")
        res = check_block_candidate(cand, [_block("old", date=MONDAY)], [])
        assert res.code == CONFLICT

    def test_day_range_vs_day_range(self):
        cand = _block("new", date="2026-02-10", end_date="2026-02-12")
        old = _block("old", date="2026-02-12", end_date="2026-02-14")
        assert not check_block_candidate(cand, [old], []).ok
        later = _block("old", date="2026-02-13", end_date="2026-02-14")
        assert check_block_candidate(cand, [later], []).ok

    def test_timed_block_inside_existing_range(self):
        old = _block("old", date="2026-02-10", end_date="2026-02-20",
                     start="00:00", end="23:59")
        assert not check_block_candidate(_block(), [old], []).ok

    def test_prepare_block_times(self):
        rng = prepare_block(_block(date="2026-02-10", end_date="2026-02-12"))
        assert (rng.start_time, rng.end_time) == ("00:00", "23:59")
        gal = prepare_block(_block(room="gallery", date="2026-02-10", end_date="2026-02-12"))
        assert (gal.start_time, gal.end_time) == ("09:00", "18:00")
        day = prepare_block(_block(room="gallery", date=TUESDAY))
        assert (day.start_time, day.end_time) == ("09:00", "20:00")
        with pytest.raises(OutOfHoursError):
            prepare_block(_block(room="gallery", date=SUNDAY))

    def test_gallery_block_with_default_times(self):
        """Eintägige Galerie-Sperre ohne Uhrzeit wird auf das Tagesfenster gesetzt."""
        cand = ManualBlock(block_id="x", room="gallery", date=MONDAY)
        assert validate_candidate(cand).ok

        existing = _block("old", room="gallery", start="10:00", end="11:00")
        res = validate_candidate(cand, blocks=[existing])
        assert res.code == CONFLICT
        assert res.conflicting_entity.block_id == "old"

        sunday = ManualBlock(block_id="y", room="gallery", date=SUNDAY)
        assert validate_candidate(sunday).code == OUT_OF_HOURS

    def test_prepare_block_by_category_not_id(self, galerie_config):
        rng = prepare_block(_block(room="galerie", date="2026-02-16", end_date="2026-02-18"),
                            galerie_config)
        assert (rng.start_time, rng.end_time) == ("09:00", "18:00")
        day = prepare_block(_block(room="galerie", date=TUESDAY), galerie_config)
        assert (day.start_time, day.end_time) == ("09:00", "20:00")
        cand = ManualBlock(block_id="x", room="galerie", date=MONDAY)
        assert validate_candidate(cand, config=galerie_config).ok


# ─── KURSBELEGUNGEN ───────────────────────────────────────────────────────────

class TestScheduleCandidate:
    def test_ok(self):
        assert check_schedule_candidate(_schedule("new", start="10:00", end="11:00"),
                                        [_schedule()]).ok

    def test_conflict_same_weekday(self):
        res = check_schedule_candidate(_schedule("new", start="15:30", end="16:30"),
                                       [_schedule()])
        assert res.code == CONFLICT

    def test_no_conflict_other_weekday(self):
        assert check_schedule_candidate(_schedule("new", dow=3), [_schedule()]).ok

    def test_effective_ranges_must_overlap(self):
        cand = _schedule("new", eff_from="2026-07-01", eff_to="2026-12-31")
        assert check_schedule_candidate(cand, [_schedule()]).ok

    def test_open_ended_ranges_overlap(self):
        cand = _schedule("new", eff_from=None, eff_to=None)
        assert not check_schedule_candidate(cand, [_schedule()]).ok

    def test_tuesday_evening_by_weekday(self):
        assert check_schedule_candidate(_schedule("new", dow=2, start="18:00", end="20:00")).ok
        res = check_schedule_candidate(_schedule("new", dow=2, start="16:00", end="19:00"))
        assert res.code == OUT_OF_HOURS

    def test_sunday_out_of_hours(self):
        assert check_schedule_candidate(_schedule("new", dow=0)).code == OUT_OF_HOURS


# ─── SITZUNGEN ────────────────────────────────────────────────────────────────

class TestReservationCandidate:
    def test_ok(self):
        assert validate_candidate(_session()).ok

    def test_codes_in_order(self):
        reqs = [_req()]
        scheds = [_schedule(start="12:00", end="13:00")]
        blocks = [_block(start="13:00", end="14:00")]
        kw = dict(requests=reqs, blocks=blocks, schedules=scheds)
        assert validate_candidate(_session(start="09:00", end="11:00"), **kw).code == OUT_OF_HOURS
        assert validate_candidate(_session(start="11:00", end="12:00"), **kw).code == CONFLICT
        assert validate_candidate(_session(start="12:00", end="13:00"), **kw).code == CLASS_CONFLICT
        assert validate_candidate(_session(start="13:00", end="14:00"), **kw).code == BLOCKED
        assert validate_candidate(_session(start="14:00", end="15:00"), **kw).ok

    def test_shape_checked_before_hours(self):
        off_grid = validate_candidate(_session(room="sangsang2", start="10:15", end="10:45"))
        assert not off_grid.ok
        assert off_grid.code == VALIDATION
        assert validate_candidate(_session(start="10:00", end="10:30")).code == VALIDATION
        assert validate_candidate(_session(start="10:00", end="17:00")).code == VALIDATION
        inverted = validate_candidate(_session(start="12:00", end="10:00"))
        assert inverted.code == VALIDATION
        assert "Ende" in inverted.message

    def test_gallery_session_skips_duration_limit(self):
        """Galerie-Sitzungen belegen den ganzen Tag, Mindest-/Höchstdauer gilt nicht."""
        assert validate_candidate(_session(room="gallery", start="09:00", end="18:00")).ok
        res = validate_candidate(_session(room="gallery", start="18:00", end="09:00"))
        assert res.code == VALIDATION

    def test_consolidated_row_in_renamed_gallery(self, galerie_config):
        existing = _req(room="galerie", date="2026-02-16", start="09:00", end="18:00",
                        start_date="2026-02-16", end_date="2026-02-20",
                        gallery_prep_date="2026-02-14")
        for ymd in ("2026-02-14", "2026-02-18"):
            res = validate_candidate(
                _session(room="galerie", date=ymd, start="09:00", end="13:00"),
                requests=[existing], config=galerie_config)
            assert res.code == CONFLICT, ymd

    def test_rejected_request_does_not_conflict(self):
        assert validate_candidate(
            _session(), requests=[_req(status=RequestStatus.REJECTED)]).ok

    def test_unknown_room(self):
        with pytest.raises(FormatError):
            validate_candidate(_session(room="dach"))

    def test_raise_for_status(self):
        res = validate_candidate(_session(), requests=[_req()])
        with pytest.raises(ConflictError) as exc:
            res.raise_for_status()
        assert exc.value.code == CONFLICT
        assert exc.value.conflicting_entity.request_id == "r1"

        with pytest.raises(OutOfHoursError):
            ConflictCheck.failed(OUT_OF_HOURS, "zu spät").raise_for_status()
        ConflictCheck.passed().raise_for_status()

    def test_unknown_candidate_type(self):
        with pytest.raises(TypeError):
            validate_candidate("kein Kandidat")


# ─── ANTRAGSPRÜFUNG ───────────────────────────────────────────────────────────

class TestSubmission:
    def test_valid_batch_sorted_and_deduped(self):
        sessions = [
            _session(date="2026-02-18"),
            _session(date=MONDAY),
            _session(date=MONDAY),
        ]
        report = validate_submission("art", sessions)
        assert report.ok
        assert [s.date for s in report.sessions] == [MONDAY, "2026-02-18"]

    def test_sunday_rejected(self):
        report = validate_submission("art", [_session(date=SUNDAY)])
        assert report.code == "VALIDATION"

    def test_same_day_overlap_rejected(self):
        report = validate_submission("art", [
            _session(start="10:00", end="12:00"), _session(start="11:00", end="13:00")])
        assert report.code == "VALIDATION"
        assert MONDAY in report.message

    def test_duration_limits(self):
        assert validate_submission("art", [_session(start="10:00", end="10:30")]).code == "VALIDATION"
        assert validate_submission("art", [_session(start="10:00", end="17:00")]).code == "VALIDATION"
        assert validate_submission("art", [_session(start="10:00", end="16:00")]).ok

    def test_too_many_sessions(self):
        sessions = [_session(date=f"2026-03-{d:02d}") for d in range(1, 23)]
        report = validate_submission("art", sessions)
        assert report.code == "VALIDATION"

    def test_malformed_date(self):
        report = validate_submission("art", [_session(date="2026-02-30")])
        assert report.code == "VALIDATION"

    def test_issues_collected_per_session(self):
        report = validate_submission(
            "art",
            [_session(), _session(date="2026-02-18"), _session(date=TUESDAY, start="16:00", end="19:00")],
            requests=[_req()],
        )
        assert report.code == "BATCH_CONFLICT"
        assert [i.code for i in report.issues] == [CONFLICT, OUT_OF_HOURS]
        assert report.message == report.issues[0].message

    def test_gallery_submission_generates_sessions(self):
        report = validate_gallery_submission("2026-02-16", "2026-02-21")
        assert report.ok
        assert report.sessions[0].is_prep_day
        assert report.sessions[0].date == "2026-02-14"
        assert report.gallery_weekday_count == 5
        assert report.gallery_saturday_count == 1
        assert report.gallery_prep_date == "2026-02-14"

    def test_gallery_period_limits(self):
        assert validate_gallery_submission("2026-03-01", "2026-04-15").code == "VALIDATION"
        assert validate_gallery_submission("2026-02-20", "2026-02-16").code == "VALIDATION"
        assert validate_gallery_submission(SUNDAY, SUNDAY).code == "INVALID_PERIOD"

    def test_gallery_submission_conflicts_with_consolidated_row(self):
        existing = _req(room="gallery", date="2026-02-18", start="09:00", end="18:00",
                        status=RequestStatus.RECEIVED,
                        start_date="2026-02-18", end_date="2026-02-19")
        report = validate_gallery_submission("2026-02-16", "2026-02-21", requests=[existing])
        assert {i.date for i in report.issues} == {"2026-02-18", "2026-02-19"}

    def test_gallery_submission_finds_renamed_gallery(self, galerie_config):
        report = validate_gallery_submission("2026-02-16", "2026-02-21", config=galerie_config)
        assert report.ok
        assert report.room_id == "galerie"

    def test_gallery_submission_rejects_other_room(self):
        with pytest.raises(FormatError):
            validate_gallery_submission("2026-02-16", "2026-02-21", room_id="art")
