import pytest

from core.models import StatementTotals
from core.totals import (
    average_nightly_rate,
    commission_ratio,
    objective_progress,
    recalculate,
    with_owner_cleaning_fee,
)


@pytest.fixture
def three_rows(processed):
    return [
        processed(channel="Airbnb", stay_price=100.0, cleaning_fee=20.0, tourist_tax=0.0,
                  platform_commission=10.0, payment_fee=2.0, nights=2, guest_count=2),
        processed(channel="Direct", stay_price=250.0, cleaning_fee=40.0, tourist_tax=4.0,
                  platform_commission=0.0, payment_fee=3.5, nights=3, guest_count=4),
        processed(channel="Booking", stay_price=80.0, cleaning_fee=15.0, tourist_tax=0.0,
                  platform_commission=12.0, payment_fee=0.0, nights=1, guest_count=1),
    ]


def test_empty_input_gives_zero_totals():
    totals = recalculate([])
    assert totals == StatementTotals()
    assert totals.invoice_total == 0


def test_fold_correctness(three_rows):
    totals = recalculate(three_rows)
    assert totals.total_commission == pytest.approx(sum(r.management_commission for r in three_rows))
    assert totals.total_stay_price == pytest.approx(430)
    assert totals.total_cleaning_fee == pytest.approx(75)
    assert totals.total_tourist_tax == pytest.approx(4)
    assert totals.total_gross_revenue == pytest.approx(509)
    assert totals.total_net_paid_to_owner == pytest.approx(509 - 22 - 5.5)
    assert totals.total_nights == 6
    assert totals.total_guests == 7


def test_recalculate_is_idempotent(three_rows):
    assert recalculate(three_rows, 30.0) == recalculate(three_rows, 30.0)


def test_invoice_total_includes_owner_cleaning_fee(three_rows):
    totals = recalculate(three_rows)
    updated = with_owner_cleaning_fee(totals, 25.0)
    assert updated.invoice_total == pytest.approx(totals.total_commission + 75 + 25)
    assert updated.total_commission == totals.total_commission
    assert totals.owner_cleaning_fee == 0


def test_ratios_short_circuit_on_zero():
    empty = recalculate([])
    assert average_nightly_rate(empty) == 0
    assert commission_ratio(empty) == 0
    assert objective_progress(empty, 0) == 0


def test_ratios(three_rows):
    totals = recalculate(three_rows)
    assert average_nightly_rate(totals) == pytest.approx(430 / 6)
    assert commission_ratio(totals) == pytest.approx(totals.total_commission / 509)
    assert objective_progress(totals, totals.total_owner_net_revenue * 2) == pytest.approx(0.5)
