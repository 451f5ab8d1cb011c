from datetime import date

import pytest

from config import EXPORT_COL_MAP, EXPORT_MIN_COLUMNS
from core.models import ProcessedReservation, Reservation, Room


@pytest.fixture
def export_row():
    """Riga grezza dell'export Krossbooking (40 colonne) con valori di default."""
    def make(**values):
        defaults = {
            "arrivee": "2025-01-01",
            "depart": "2025-01-05",
            "nuits": "4",
            "voyageurs": "2",
            "portail": "Airbnb",
            "voyageur": "Jean Dupont",
            "total_paye": "130",
            "prix_sejour": "100",
            "taxe_sejour": "5",
            "frais_menage": "20",
            "commission_plateforme": "10",
            "frais_paiement": "2",
        }
        defaults.update(values)
        row = [""] * EXPORT_MIN_COLUMNS
        for key, val in defaults.items():
            row[EXPORT_COL_MAP[key]] = val
        return row
    return make


@pytest.fixture
def reservation():
    def make(id="R1", room="A101", check_in=date(2025, 1, 1), check_out=date(2025, 1, 5),
             guest_name=None, **kw):
        return Reservation(
            id=id,
            room_external_id=room,
            guest_name=guest_name or f"Ospite {id}",
            check_in=check_in,
            check_out=check_out,
            **kw,
        )
    return make


@pytest.fixture
def processed():
    def make(**kw):
        values = dict(
            channel="Direct",
            guest_name="Ospite",
            check_in=date(2025, 3, 1),
            check_out=date(2025, 3, 4),
            nights=3,
            guest_count=2,
            stay_price=300.0,
            cleaning_fee=50.0,
            tourist_tax=6.0,
            platform_commission=0.0,
            payment_fee=5.0,
            commission_rate=0.26,
        )
        values.update(kw)
        return ProcessedReservation(**values)
    return make


@pytest.fixture
def room_a101():
    return Room(id="1", external_room_id="A101", name="Studio A101")
