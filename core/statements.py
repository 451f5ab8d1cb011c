"""
Ciclo di vita del relevé: draft → saved → sent.

  - draft: in memoria, modificabile, si può scartare intero
  - saved: salvato, modificabile solo con un aggiornamento esplicito
  - sent: inviato al cliente (email/PDF), ancora modificabile con aggiornamento

Nessuno stato permette di togliere singole righe da un relevé salvato:
l'unica rimozione è scartare l'intera bozza.
"""

import dataclasses
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from core.models import ProcessedReservation, Statement
from core.totals import recalculate

TRANSITIONS = {
    "draft": ("saved",),
    "saved": ("saved", "sent"),
    "sent": ("saved", "sent"),
}


class StatementStateError(ValueError):
    """Transizione di stato non permessa."""


def new_draft(client_id: str, period: str, rows: Iterable[ProcessedReservation],
              owner_cleaning_fee: float = 0.0) -> Statement:
    rows = tuple(rows)
    return Statement(
        client_id=client_id,
        period=period,
        rows=rows,
        totals=recalculate(rows, owner_cleaning_fee),
        status="draft",
    )


def line_key(row: ProcessedReservation) -> tuple:
    """Identità di una riga: portale, ospite e date non cambiano con le correzioni."""
    return row.channel, row.guest_name, row.check_in, row.check_out


def _transition(statement: Statement, target: str) -> None:
    if target not in TRANSITIONS.get(statement.status, ()):
        raise StatementStateError(f"Transizione {statement.status} → {target} non permessa")


def validate_for_save(statement: Statement) -> None:
    """Stessi controlli del form: cliente, periodo e almeno una riga."""
    if not statement.client_id or not statement.period or not statement.rows:
        raise ValueError("Seleziona un cliente, definisci un periodo e importa un file.")


def mark_saved(statement: Statement, statement_id: str, now: Optional[datetime] = None) -> Statement:
    """Registra il salvataggio (primo o aggiornamento) restituito dalla persistenza."""
    _transition(statement, "saved")
    now = now or datetime.now()
    return dataclasses.replace(
        statement,
        id=statement_id,
        status="saved" if statement.status == "draft" else statement.status,
        created_at=statement.created_at or now,
        updated_at=now,
    )


def mark_sent(statement: Statement, now: Optional[datetime] = None) -> Statement:
    if statement.id is None:
        raise StatementStateError("Il relevé va salvato prima dell'invio")
    _transition(statement, "sent")
    return dataclasses.replace(statement, status="sent", updated_at=now or datetime.now())


def update_statement(
    statement: Statement,
    rows: Optional[Iterable[ProcessedReservation]] = None,
    owner_cleaning_fee: Optional[float] = None,
    transfer_details: Optional[dict] = None,
) -> Statement:
    """
    Nuova versione del relevé con righe e/o override pulizie aggiornati.
    I totali vengono sempre ricalcolati da zero. Su un relevé già salvato ogni
    riga esistente (vedi line_key) deve restare: si correggono gli importi o si
    aggiungono righe, non se ne tolgono.
    """
    new_rows = statement.rows if rows is None else tuple(rows)
    if statement.status != "draft":
        missing = Counter(map(line_key, statement.rows)) - Counter(map(line_key, new_rows))
        if missing:
            raise StatementStateError(
                f"Non si possono eliminare righe da un relevé salvato ({sum(missing.values())} mancanti)"
            )

    fee = statement.totals.owner_cleaning_fee if owner_cleaning_fee is None else owner_cleaning_fee
    return dataclasses.replace(
        statement,
        rows=new_rows,
        totals=recalculate(new_rows, fee),
        transfer_details=statement.transfer_details if transfer_details is None else transfer_details,
    )


def statement_payload(statement: Statement) -> dict:
    """Payload per la persistenza: cliente, periodo, righe, totali."""
    totals = statement.totals.to_dict()
    totals["transfer_details"] = statement.transfer_details
    return {
        "client_id": statement.client_id,
        "period": statement.period,
        "processed_rows": [r.to_dict() for r in statement.rows],
        "totals": totals,
    }
