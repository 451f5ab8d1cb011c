"""
Google Sheets storage per i relevés salvati.

Il Google Sheet ha due fogli:
  - releves      → una riga per relevé (id, cliente, periodo, stato, date, payload JSON)
  - releve_righe → una riga per prenotazione (id relevé, posizione, riga JSON)

Il payload del relevé contiene solo totali e bonifici (le prenotazioni dei
bonifici sono posizioni nelle righe): ogni cella resta sotto il limite di
Google Sheets anche con centinaia di prenotazioni.

Autenticazione via Service Account (credenziali in Streamlit secrets).
Il salvataggio di un relevé già salvato aggiorna le stesse righe.
"""

import json
import logging
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional

import gspread
import streamlit as st

from config import SHEET_CELL_LIMIT, SHEET_STATEMENT_LINES, SHEET_STATEMENTS
from core.dates import parse_date
from core.deduplicator import is_duplicate
from core.models import ProcessedReservation, Statement
from core.statements import mark_saved, mark_sent, statement_payload, validate_for_save
from core.totals import recalculate

logger = logging.getLogger(__name__)

SHEET_COLUMNS = ["id", "client_id", "period", "status", "created_at", "updated_at", "payload"]
LINE_COLUMNS = ["statement_id", "position", "row"]


@st.cache_resource
def get_gspread_client():
    """
    Restituisce client gspread autenticato via Service Account.
    Le credenziali vengono da st.secrets (Streamlit Cloud) o da
    .streamlit/secrets.toml in locale.
    """
    creds_dict = dict(st.secrets["gcp_service_account"])
    return gspread.service_account_from_dict(creds_dict)


def get_sheet(sheet_name: str = SHEET_STATEMENTS, headers: Optional[List[str]] = None):
    """Apre il foglio specificato, creandolo con l'header se non esiste."""
    headers = headers or SHEET_COLUMNS
    gc = get_gspread_client()
    spreadsheet_id = st.secrets["google_sheets"]["spreadsheet_id"]
    sh = gc.open_by_key(spreadsheet_id)
    try:
        return sh.worksheet(sheet_name)
    except gspread.WorksheetNotFound:
        ws = sh.add_worksheet(title=sheet_name, rows=1000, cols=len(headers))
        ws.append_row(headers)
        return ws


def get_lines_sheet():
    return get_sheet(SHEET_STATEMENT_LINES, LINE_COLUMNS)


def _fmt(dt: Optional[datetime]) -> str:
    return dt.isoformat(timespec="seconds") if dt else ""


def _cell(value: dict) -> str:
    text = json.dumps(value, ensure_ascii=False, default=str)
    if len(text) > SHEET_CELL_LIMIT:
        raise ValueError(f"Dati troppo grandi per una cella del foglio ({len(text)} caratteri)")
    return text


def _statement_to_row(s: Statement) -> list:
    payload = statement_payload(s)
    payload["row_count"] = len(payload.pop("processed_rows"))
    return [
        s.id,
        s.client_id,
        s.period,
        s.status,
        _fmt(s.created_at),
        _fmt(s.updated_at),
        _cell(payload),
    ]


def _write(ws, s: Statement) -> None:
    ids = [v.strip() for v in ws.col_values(1)]
    if is_duplicate(s.id, set(ids[1:])):
        row_num = ids.index(s.id) + 1
        ws.batch_update(
            [{"range": f"A{row_num}:G{row_num}", "values": [_statement_to_row(s)]}],
            value_input_option="RAW",
        )
        logger.info("Relevé %s aggiornato (riga %d)", s.id, row_num)
    else:
        ws.append_row(_statement_to_row(s), value_input_option="RAW")
        logger.info("Relevé %s salvato per %s / %s", s.id, s.client_id, s.period)


def _write_lines(lines_ws, s: Statement) -> None:
    """Una riga per prenotazione: aggiorna le posizioni esistenti, aggiunge le nuove."""
    existing = {}
    for row_num, values in enumerate(lines_ws.get_all_values()[1:], start=2):
        if len(values) >= 2 and values[0] == s.id and values[1].isdigit():
            existing[int(values[1])] = row_num

    updates = []
    new_lines = []
    for position, row in enumerate(s.rows):
        line = [s.id, position, _cell(row.to_dict())]
        if position in existing:
            row_num = existing[position]
            updates.append({"range": f"A{row_num}:C{row_num}", "values": [line]})
        else:
            new_lines.append(line)

    if updates:
        lines_ws.batch_update(updates, value_input_option="RAW")
    if new_lines:
        lines_ws.append_rows(new_lines, value_input_option="RAW")
    logger.info("Relevé %s: %d righe aggiornate, %d aggiunte", s.id, len(updates), len(new_lines))


def save_statement(statement: Statement, ws=None, lines_ws=None) -> Statement:
    """
    Salva il relevé. Prima volta → nuova riga con id e data di creazione;
    relevé già salvato → aggiornamento della stessa riga.
    Le prenotazioni vanno nel foglio delle righe prima del relevé, così un
    relevé presente nel foglio principale ha sempre tutte le sue righe.
    """
    validate_for_save(statement)
    ws = ws or get_sheet()
    lines_ws = lines_ws or get_lines_sheet()
    saved = mark_saved(statement, statement.id or uuid.uuid4().hex)
    _write_lines(lines_ws, saved)
    _write(ws, saved)
    return saved


def record_sent(statement: Statement, ws=None) -> Statement:
    """Registra l'invio al cliente (email/PDF gestiti altrove). Le righe non cambiano."""
    ws = ws or get_sheet()
    sent = mark_sent(statement)
    _write(ws, sent)
    return sent


def _parse_dt(s: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(s) if s else None
    except ValueError:
        return None


def _row_from_dict(d: dict) -> ProcessedReservation:
    return ProcessedReservation(
        channel=d.get("channel", ""),
        guest_name=d.get("guest_name", ""),
        check_in=parse_date(d.get("check_in")),
        check_out=parse_date(d.get("check_out")),
        nights=int(d.get("nights", 0)),
        guest_count=int(d.get("guest_count", 0)),
        stay_price=float(d.get("stay_price", 0)),
        cleaning_fee=float(d.get("cleaning_fee", 0)),
        tourist_tax=float(d.get("tourist_tax", 0)),
        platform_commission=float(d.get("platform_commission", 0)),
        payment_fee=float(d.get("payment_fee", 0)),
        commission_rate=float(d.get("commission_rate", 0)),
        amount_paid_by_guest=float(d.get("amount_paid_by_guest", 0)),
    )


def statement_from_record(record: dict, lines: Optional[Dict[int, dict]] = None) -> Statement:
    """
    Ricostruisce un Statement da una riga del foglio e dalle sue righe
    (posizione → dict). Le posizioni oltre `row_count` sono residui e si ignorano.
    """
    payload = json.loads(record.get("payload") or "{}")
    lines = lines or {}
    row_count = int(payload.get("row_count", len(lines)))
    missing = [p for p in range(row_count) if p not in lines]
    if missing:
        raise ValueError(f"Relevé {record.get('id')}: righe mancanti alle posizioni {missing[:5]}")
    rows = [_row_from_dict(lines[p]) for p in range(row_count)]

    totals = payload.get("totals", {})
    return Statement(
        id=record.get("id") or None,
        client_id=record.get("client_id", ""),
        period=record.get("period", ""),
        rows=tuple(rows),
        # i totali salvati non fanno fede: si rifà il fold sulle righe
        totals=recalculate(rows, float(totals.get("owner_cleaning_fee", 0) or 0)),
        status=record.get("status") or "saved",
        created_at=_parse_dt(record.get("created_at", "")),
        updated_at=_parse_dt(record.get("updated_at", "")),
        transfer_details=totals.get("transfer_details"),
    )


def _lines_by_statement(lines_ws) -> Dict[str, Dict[int, dict]]:
    grouped: Dict[str, Dict[int, dict]] = defaultdict(dict)
    for values in lines_ws.get_all_values()[1:]:
        if len(values) < 3 or not values[1].isdigit():
            continue
        grouped[values[0]][int(values[1])] = json.loads(values[2])
    return grouped


def load_statements(client_id: Optional[str] = None, ws=None, lines_ws=None) -> List[Statement]:
    """Relevés salvati, dal più recente. Filtra per cliente se indicato."""
    ws = ws or get_sheet()
    values = ws.get_all_values()
    if len(values) <= 1:
        return []

    lines_ws = lines_ws or get_lines_sheet()
    lines = _lines_by_statement(lines_ws)

    headers = values[0]
    statements = []
    for row in values[1:]:
        record = dict(zip(headers, row))
        if client_id and record.get("client_id") != client_id:
            continue
        statements.append(statement_from_record(record, lines.get(record.get("id", ""))))

    statements.sort(key=lambda s: s.created_at or datetime.min, reverse=True)
    return statements
