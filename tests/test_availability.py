import logging
from datetime import date

import pytest

from core.availability import (
    check_availability,
    conflict_report,
    day_status,
    is_available,
    occupancy_rate,
)
from core.models import ConflictInfo


def test_turnover_day_no_conflict(room_a101, reservation):
    existing = [reservation(status="confirmed")]
    assert check_availability(room_a101, date(2025, 1, 5), date(2025, 1, 8), existing) == []


def test_overlapping_block_conflicts(room_a101, reservation):
    existing = [reservation(status="confirmed")]
    conflicts = check_availability(room_a101, date(2025, 1, 4), date(2025, 1, 6), existing)
    assert conflicts == existing


def test_block_ending_on_checkin_day_is_free(room_a101, reservation):
    existing = [reservation()]
    assert is_available(room_a101, date(2024, 12, 28), date(2025, 1, 1), existing)


def test_returns_every_conflict_in_input_order(room_a101, reservation):
    existing = [
        reservation(id="R1", check_in=date(2025, 1, 1), check_out=date(2025, 1, 3)),
        reservation(id="R2", check_in=date(2025, 1, 3), check_out=date(2025, 1, 6)),
        reservation(id="R3", check_in=date(2025, 1, 20), check_out=date(2025, 1, 22)),
    ]
    conflicts = check_availability(room_a101, date(2025, 1, 2), date(2025, 1, 10), existing)
    assert [r.id for r in conflicts] == ["R1", "R2"]


def test_filters_room_cancelled_and_excluded(room_a101, reservation):
    existing = [
        reservation(id="other-room", room="B202"),
        reservation(id="cancelled", status="cancelled"),
        reservation(id="self"),
    ]
    assert check_availability(room_a101, date(2025, 1, 2), date(2025, 1, 3), existing, exclude_id="self") == []
    assert [r.id for r in check_availability(room_a101, date(2025, 1, 2), date(2025, 1, 3), existing)] == ["self"]


def test_zero_night_block_occupies_its_day(room_a101, reservation):
    block = [reservation(check_in=date(2025, 1, 10), check_out=date(2025, 1, 10), status="owner_block")]
    assert check_availability(room_a101, date(2025, 1, 9), date(2025, 1, 11), block) == block
    assert check_availability(room_a101, date(2025, 1, 10), date(2025, 1, 10), block) == block
    assert check_availability(room_a101, date(2025, 1, 11), date(2025, 1, 12), block) == []
    assert check_availability(room_a101, date(2025, 1, 8), date(2025, 1, 10), block) == []


def test_malformed_reservation_is_skipped_and_logged(room_a101, reservation, caplog):
    broken = reservation(id="broken", check_in=date(2025, 1, 5), check_out=date(2025, 1, 1))
    missing = reservation(id="missing", check_in=None, check_out=None)
    with caplog.at_level(logging.WARNING, logger="core.availability"):
        assert check_availability(room_a101, date(2025, 1, 1), date(2025, 1, 10), [broken, missing]) == []
    assert "broken" in caplog.text
    assert "missing" in caplog.text


def test_invalid_candidate_range_raises(room_a101):
    with pytest.raises(ValueError):
        check_availability(room_a101, date(2025, 1, 5), date(2025, 1, 1), [])


def test_input_is_not_mutated(room_a101, reservation):
    existing = [reservation(id="R1"), reservation(id="R2", room="B202")]
    snapshot = list(existing)
    check_availability(room_a101, date(2025, 1, 1), date(2025, 1, 3), existing)
    assert existing == snapshot


def test_conflict_report(reservation):
    r = reservation(id="R9", guest_name="Ada")
    assert conflict_report([r]) == [ConflictInfo("R9", "Ada", date(2025, 1, 1), date(2025, 1, 5))]


def test_day_status(reservation):
    reservations = [
        reservation(id="A", room="1", check_in=date(2025, 1, 1), check_out=date(2025, 1, 5)),
        reservation(id="B", room="2", check_in=date(2025, 1, 3), check_out=date(2025, 1, 5)),
    ]
    status = day_status(date(2025, 1, 3), reservations, ["1", "2"])
    assert status.is_arrival and status.is_booked and not status.is_departure

    status = day_status(date(2025, 1, 5), reservations, ["1", "2"])
    assert status.is_departure and not status.is_booked

    assert not day_status(date(2025, 1, 2), reservations, ["1", "2"]).is_booked
    assert day_status(date(2025, 1, 2), reservations, ["1"]).is_booked


def test_occupancy_rate(room_a101, reservation):
    existing = [
        reservation(id="R1", check_in=date(2025, 1, 1), check_out=date(2025, 1, 5)),
        reservation(id="R2", check_in=date(2025, 1, 8), check_out=date(2025, 1, 8)),
    ]
    assert occupancy_rate(room_a101, date(2025, 1, 1), date(2025, 1, 11), existing) == pytest.approx(0.4)
    assert occupancy_rate(room_a101, date(2025, 1, 1), date(2025, 1, 1), existing) == 0.0
