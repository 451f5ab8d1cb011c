"""
Generazione report e pivot per la UI.

Produce DataFrame pronti per st.dataframe / export:
  - righe del relevé con i campi calcolati
  - riepilogo per portale
  - tassa di soggiorno per mese (prenotazioni dirette)
  - conflitti di disponibilità
"""

from typing import Iterable

import pandas as pd

from config import TAX_EXEMPT_CHANNELS
from core.dates import nights_between
from core.models import ConflictInfo, ProcessedReservation, Reservation

STATEMENT_COLUMNS = {
    "channel": "Portale",
    "guest_name": "Ospite",
    "check_in": "Arrivo",
    "check_out": "Partenza",
    "nights": "Notti",
    "guest_count": "Ospiti",
    "stay_price": "Soggiorno €",
    "cleaning_fee": "Pulizie €",
    "tourist_tax": "Tassa soggiorno €",
    "gross_revenue": "Lordo €",
    "platform_commission": "Comm. piattaforma €",
    "payment_fee": "Costo pagamento €",
    "net_paid_to_owner": "Netto versato €",
    "owner_net_revenue": "Revenu net €",
    "management_commission": "Commissione €",
}

MONTHS_FR = [
    "Janvier", "Février", "Mars", "Avril", "Mai", "Juin",
    "Juillet", "Août", "Septembre", "Octobre", "Novembre", "Décembre",
]


def statement_dataframe(rows: Iterable[ProcessedReservation]) -> pd.DataFrame:
    """Righe del relevé con i campi calcolati, colonne etichettate."""
    records = [r.to_dict() for r in rows]
    if not records:
        return pd.DataFrame(columns=list(STATEMENT_COLUMNS.values()))
    df = pd.DataFrame(records)[list(STATEMENT_COLUMNS)]
    return df.rename(columns=STATEMENT_COLUMNS).round(2)


def summary_by_channel(rows: Iterable[ProcessedReservation]) -> pd.DataFrame:
    """Riepilogo per portale."""
    records = [r.to_dict() for r in rows]
    if not records:
        return pd.DataFrame()

    df = pd.DataFrame(records)
    summary = df.groupby("channel").agg(
        prenotazioni=("guest_name", "count"),
        notti=("nights", "sum"),
        lordo=("gross_revenue", "sum"),
        netto_versato=("net_paid_to_owner", "sum"),
        commissione=("management_commission", "sum"),
    ).reset_index()
    return summary.round(2)


def tourist_tax_by_month(reservations: Iterable[Reservation], year: int) -> pd.DataFrame:
    """
    Notti tassabili e tassa incassata per mese di arrivo.
    Esclusi Airbnb/Booking (versano loro la tassa), annullate e blocchi a zero notti.
    """
    df = pd.DataFrame({
        "mese": list(range(1, 13)),
        "mese_label": MONTHS_FR,
        "notti_tassabili": 0,
        "tassa_incassata": 0.0,
        "prenotazioni": 0,
    }).set_index("mese")

    for r in reservations:
        if r.check_in is None or r.check_out is None or r.check_in.year != year:
            continue
        if r.channel in TAX_EXEMPT_CHANNELS or r.status == "cancelled":
            continue
        nights = nights_between(r.check_in, r.check_out)
        if nights <= 0:
            continue
        df.loc[r.check_in.month, "notti_tassabili"] += nights
        df.loc[r.check_in.month, "tassa_incassata"] += r.tourist_tax
        df.loc[r.check_in.month, "prenotazioni"] += 1

    return df.reset_index()


def conflicts_dataframe(conflicts: Iterable[ConflictInfo]) -> pd.DataFrame:
    rows = [
        {
            "Prenotazione": c.reservation_id,
            "Ospite": c.guest_name,
            "Arrivo": c.check_in.strftime("%d/%m/%Y"),
            "Partenza": c.check_out.strftime("%d/%m/%Y"),
        }
        for c in conflicts
    ]
    return pd.DataFrame(rows, columns=["Prenotazione", "Ospite", "Arrivo", "Partenza"])
