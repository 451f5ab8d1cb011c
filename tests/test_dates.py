from datetime import date, datetime
from itertools import product

import pytest

from core.dates import (
    candidate_interval,
    iter_days,
    nights_between,
    occupied_interval,
    overlaps,
    parse_date,
    stays_overlap,
)

D = date(2025, 1, 10)


def d(day):
    return date(2025, 1, day)


def test_occupied_interval_excludes_checkout_day():
    assert occupied_interval(d(1), d(5)) == (d(1), d(4))


def test_zero_night_block_occupies_single_day():
    assert occupied_interval(D, D) == (D, D)


def test_occupied_interval_rejects_inverted_range():
    with pytest.raises(ValueError):
        occupied_interval(d(5), d(1))


def test_overlaps_is_commutative():
    days = [d(i) for i in range(1, 7)]
    intervals = [(a, b) for a, b in product(days, days) if a <= b]
    for (a1, a2), (b1, b2) in product(intervals, intervals):
        assert overlaps(a1, a2, b1, b2) == overlaps(b1, b2, a1, a2)


def test_overlaps_containment_and_disjoint():
    assert overlaps(d(1), d(10), d(3), d(4))
    assert overlaps(d(3), d(4), d(1), d(10))
    assert overlaps(d(1), d(3), d(3), d(5))
    assert not overlaps(d(1), d(2), d(3), d(5))


def test_turnover_day_is_free():
    # arrivo il giorno D, partenza dell'altro soggiorno il giorno D
    assert not stays_overlap(d(5), d(8), d(1), d(5))
    assert not stays_overlap(d(1), d(5), d(5), d(8))


def test_zero_night_block_conflicts_only_on_its_day():
    assert stays_overlap(D, D, d(9), d(11))
    assert stays_overlap(D, D, d(10), d(11))
    assert not stays_overlap(D, D, d(11), d(13))
    # il giorno D è la partenza del candidato: libero
    assert not stays_overlap(D, D, d(8), d(10))


def test_nights_between():
    assert nights_between(d(1), d(5)) == 4
    assert nights_between(D, D) == 0


@pytest.mark.parametrize("val,expected", [
    ("2025-01-05", date(2025, 1, 5)),
    ("05/01/2025", date(2025, 1, 5)),
    (datetime(2025, 1, 5, 14, 0), date(2025, 1, 5)),
    (date(2025, 1, 5), date(2025, 1, 5)),
    ("", None),
    (None, None),
    ("pas une date", None),
    ("2025-13-45", None),
])
def test_parse_date(val, expected):
    assert parse_date(val) == expected


def test_iter_days_inclusive():
    assert list(iter_days(d(1), d(3))) == [d(1), d(2), d(3)]
    assert list(iter_days(d(3), d(1))) == []


def test_candidate_interval_leaves_departure_day_free():
    assert candidate_interval(d(5), d(8)) == (d(5), d(7))
    assert candidate_interval(d(9), d(9)) == (d(9), d(9))
    with pytest.raises(ValueError):
        candidate_interval(d(8), d(5))
