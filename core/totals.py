"""
Totali del relevé.

Un solo fold completo sulle righe, mai aggiornamenti incrementali: i totali
non possono divergere dalle righe. invoice_total è derivato a parte perché
dipende dall'override manuale delle pulizie proprietario.
"""

import dataclasses
from typing import Iterable

from core.models import ProcessedReservation, StatementTotals

# campo totale → attributo della riga
FOLD_FIELDS = {
    "total_commission": "management_commission",
    "total_stay_price": "stay_price",
    "total_cleaning_fee": "cleaning_fee",
    "total_tourist_tax": "tourist_tax",
    "total_gross_revenue": "gross_revenue",
    "total_net_paid_to_owner": "net_paid_to_owner",
    "total_owner_net_revenue": "owner_net_revenue",
    "total_nights": "nights",
    "total_guests": "guest_count",
}


def recalculate(rows: Iterable[ProcessedReservation], owner_cleaning_fee: float = 0.0) -> StatementTotals:
    sums = {name: 0 for name in FOLD_FIELDS}
    for row in rows:
        for name, attr in FOLD_FIELDS.items():
            sums[name] += getattr(row, attr)

    for name in sums:
        if name not in ("total_nights", "total_guests"):
            sums[name] = float(sums[name])
    return StatementTotals(owner_cleaning_fee=float(owner_cleaning_fee or 0.0), **sums)


def with_owner_cleaning_fee(totals: StatementTotals, owner_cleaning_fee: float) -> StatementTotals:
    """Nuovi totali con l'override pulizie aggiornato, senza rifare il fold."""
    return dataclasses.replace(totals, owner_cleaning_fee=float(owner_cleaning_fee or 0.0))


def average_nightly_rate(totals: StatementTotals) -> float:
    """Prezzo medio per notte; 0 se non ci sono notti."""
    if totals.total_nights == 0:
        return 0.0
    return totals.total_stay_price / totals.total_nights


def commission_ratio(totals: StatementTotals) -> float:
    """Commissione di gestione sul lordo; 0 se il lordo è nullo."""
    if totals.total_gross_revenue == 0:
        return 0.0
    return totals.total_commission / totals.total_gross_revenue


def objective_progress(totals: StatementTotals, objective_amount: float) -> float:
    """Avanzamento verso l'obiettivo di ricavo netto; 0 se l'obiettivo è 0."""
    if not objective_amount:
        return 0.0
    return totals.total_owner_net_revenue / objective_amount
