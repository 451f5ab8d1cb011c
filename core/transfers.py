"""
Ripartizione dei bonifici verso il proprietario per sorgente di pagamento.

Instradamento: portale che contiene "airbnb" → sorgente airbnb, tutto il resto
→ sorgente di default (stripe). Le righe la cui sorgente non è configurata non
entrano in nessun totale (vedi unassigned_rows per mostrarle in UI).
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from config import AIRBNB_SOURCE, DEFAULT_SOURCE
from core.models import ProcessedReservation, TransferGroup

logger = logging.getLogger(__name__)


def source_for_channel(channel: str) -> str:
    return AIRBNB_SOURCE if "airbnb" in str(channel or "").lower() else DEFAULT_SOURCE


def allocate(
    selected_rows: Iterable[ProcessedReservation],
    payment_sources: Iterable[str],
    deduction_source: Optional[str] = None,
    invoice_total: float = 0.0,
) -> Dict[str, TransferGroup]:
    """
    Raggruppa le righe selezionate per sorgente e somma il netto versato.
    Se `deduction_source` è configurata, il totale fattura viene detratto
    solo da quel gruppo.
    """
    buckets: Dict[str, List[ProcessedReservation]] = {
        str(s).strip().lower(): [] for s in payment_sources if str(s).strip()
    }

    dropped = 0
    for row in selected_rows:
        key = source_for_channel(row.channel)
        if key in buckets:
            buckets[key].append(row)
        else:
            dropped += 1
    if dropped:
        logger.warning("%d prenotazioni senza sorgente di pagamento configurata", dropped)

    deduct_key = str(deduction_source).strip().lower() if deduction_source else None
    groups = {}
    for key, rows in buckets.items():
        total = sum(r.net_paid_to_owner for r in rows)
        deducted = 0.0
        if deduct_key == key:
            deducted = float(invoice_total)
            total -= deducted
        groups[key] = TransferGroup(source_key=key, reservations=tuple(rows), total=total, deducted=deducted)

    if deduct_key and deduct_key not in groups:
        logger.warning("Sorgente di detrazione '%s' non configurata: nessuna detrazione", deduction_source)
    return groups


def unassigned_rows(selected_rows: Iterable[ProcessedReservation],
                    payment_sources: Iterable[str]) -> List[ProcessedReservation]:
    """Righe escluse da tutti i bonifici perché la loro sorgente non è configurata."""
    configured = {str(s).strip().lower() for s in payment_sources}
    return [r for r in selected_rows if source_for_channel(r.channel) not in configured]


def _positions(reservations: Iterable[ProcessedReservation], rows: Sequence[ProcessedReservation],
               used: Set[int]) -> List[int]:
    positions = []
    for r in reservations:
        for i, candidate in enumerate(rows):
            if i not in used and candidate == r:
                used.add(i)
                positions.append(i)
                break
        else:
            raise ValueError(f"Prenotazione di {r.guest_name} non presente nel relevé")
    return positions


def transfer_details(groups: Dict[str, TransferGroup], deduction_source: Optional[str],
                     rows: Sequence[ProcessedReservation]) -> dict:
    """
    Dettaglio bonifici serializzabile, salvato insieme al relevé.
    Le prenotazioni sono indicate dalla loro posizione in `rows`, non copiate.
    """
    used: Set[int] = set()
    return {
        "sources": {
            key: {
                "rows": _positions(g.reservations, rows, used),
                "total": g.total,
                "deducted": g.deducted,
            }
            for key, g in groups.items()
        },
        "deduction_info": {
            "deducted": bool(deduction_source) and str(deduction_source).strip().lower() in groups,
            "source": deduction_source or "",
        },
    }
