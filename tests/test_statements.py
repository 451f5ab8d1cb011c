import dataclasses
from datetime import datetime

import pytest

from core.statements import (
    StatementStateError,
    mark_saved,
    mark_sent,
    new_draft,
    statement_payload,
    update_statement,
    validate_for_save,
)


@pytest.fixture
def draft(processed):
    return new_draft("client-1", "2025-01", [processed(guest_name="A"), processed(guest_name="B")])


def test_new_draft_computes_totals(draft):
    assert draft.status == "draft"
    assert draft.totals.total_nights == 6
    assert draft.id is None


def test_save_then_send(draft):
    now = datetime(2025, 2, 1, 10, 0)
    saved = mark_saved(draft, "abc", now=now)
    assert saved.status == "saved"
    assert saved.id == "abc"
    assert saved.created_at == now

    later = datetime(2025, 2, 2, 9, 0)
    resaved = mark_saved(saved, "abc", now=later)
    assert resaved.created_at == now
    assert resaved.updated_at == later

    sent = mark_sent(resaved)
    assert sent.status == "sent"
    assert mark_saved(sent, "abc").status == "sent"


def test_cannot_send_unsaved_draft(draft):
    with pytest.raises(StatementStateError):
        mark_sent(draft)


def test_update_refolds_totals(draft, processed):
    updated = update_statement(draft, rows=draft.rows + (processed(nights=4),), owner_cleaning_fee=40.0)
    assert updated.totals.total_nights == 10
    assert updated.totals.owner_cleaning_fee == 40.0
    assert draft.totals.total_nights == 6


def test_update_keeps_owner_fee(draft):
    with_fee = update_statement(draft, owner_cleaning_fee=15.0)
    assert update_statement(with_fee, rows=with_fee.rows).totals.owner_cleaning_fee == 15.0


def test_saved_statement_rows_cannot_be_removed(draft):
    saved = mark_saved(draft, "abc")
    with pytest.raises(StatementStateError):
        update_statement(saved, rows=saved.rows[:1])
    # una bozza invece si può ridurre
    assert len(update_statement(draft, rows=draft.rows[:1]).rows) == 1


def test_saved_statement_row_cannot_be_replaced_by_duplicate(draft):
    saved = mark_saved(draft, "abc")
    a, b = saved.rows
    with pytest.raises(StatementStateError):
        update_statement(saved, rows=[b, b])


def test_saved_statement_accepts_amount_edits_and_new_rows(draft, processed):
    saved = mark_saved(draft, "abc")
    a, b = saved.rows
    edited = dataclasses.replace(a, stay_price=999.0)
    updated = update_statement(saved, rows=[b, edited, processed(guest_name="C")])
    assert [r.guest_name for r in updated.rows] == ["B", "A", "C"]
    assert updated.totals.total_stay_price == pytest.approx(999 + 300 + 300)


def test_validate_for_save(processed):
    with pytest.raises(ValueError):
        validate_for_save(new_draft("", "2025-01", [processed()]))
    with pytest.raises(ValueError):
        validate_for_save(new_draft("c", "2025-01", []))
    validate_for_save(new_draft("c", "2025-01", [processed()]))


def test_statement_payload(draft):
    payload = statement_payload(update_statement(draft, transfer_details={"sources": {}}))
    assert payload["client_id"] == "client-1"
    assert payload["period"] == "2025-01"
    assert len(payload["processed_rows"]) == 2
    assert payload["processed_rows"][0]["check_in"] == "2025-03-01"
    assert "management_commission" in payload["processed_rows"][0]
    assert payload["totals"]["invoice_total"] == pytest.approx(draft.totals.invoice_total)
    assert payload["totals"]["transfer_details"] == {"sources": {}}
