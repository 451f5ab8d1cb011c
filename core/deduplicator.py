"""
Controllo duplicati sulle prenotazioni scaricate dalla sorgente.

L'API può restituire la stessa prenotazione più volte (una per camera o per
pagina): teniamo un solo record per id, l'ultimo ricevuto, nell'ordine della
prima apparizione.
"""

from typing import Iterable, List

from core.models import Reservation


def dedupe_reservations(reservations: Iterable[Reservation]) -> List[Reservation]:
    by_id = {}
    no_id = []
    for r in reservations:
        key = str(r.id).strip()
        if not key:
            # Senza id non si può deduplicare: li teniamo tutti
            no_id.append(r)
            continue
        by_id[key] = r
    return list(by_id.values()) + no_id


def is_duplicate(reservation_id: str, existing_ids: set) -> bool:
    return str(reservation_id).strip() in existing_ids
