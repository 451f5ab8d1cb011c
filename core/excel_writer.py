"""
Export del relevé in un file Excel.

Strategia:
  1. foglio 'releve' con una riga per prenotazione (valori già calcolati)
  2. riga TOTALE con formule SUM sulle colonne numeriche
  3. foglio 'totaux' con i totali del fold e il totale fattura
  4. salvataggio su bytes (download Streamlit) o su file
"""

import io
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from core.models import Statement
from reports.pivot import STATEMENT_COLUMNS

# Etichette dei totali nel foglio 'totaux'
TOTALS_LABELS = {
    "total_stay_price": "Totale soggiorni",
    "total_cleaning_fee": "Totale pulizie",
    "total_tourist_tax": "Totale tassa di soggiorno",
    "total_gross_revenue": "Totale lordo",
    "total_net_paid_to_owner": "Totale netto versato",
    "total_owner_net_revenue": "Totale revenu net",
    "total_commission": "Totale commissione",
    "total_nights": "Notti",
    "total_guests": "Ospiti",
    "owner_cleaning_fee": "Pulizie proprietario",
    "invoice_total": "Totale fattura",
}

NUMERIC_FIELDS = [k for k in STATEMENT_COLUMNS if k not in ("channel", "guest_name", "check_in", "check_out")]


def _write_rows_sheet(ws, statement: Statement) -> None:
    keys = list(STATEMENT_COLUMNS)
    ws.append(list(STATEMENT_COLUMNS.values()))
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for r in statement.rows:
        data = r.to_dict()
        ws.append([
            round(data[k], 2) if isinstance(data[k], float) else data[k]
            for k in keys
        ])

    last = ws.max_row
    total_row = last + 1
    ws.cell(row=total_row, column=1).value = "TOTALE"
    ws.cell(row=total_row, column=1).font = Font(bold=True)
    if last >= 2:
        for key in NUMERIC_FIELDS:
            col = keys.index(key) + 1
            letter = get_column_letter(col)
            ws.cell(row=total_row, column=col).value = f"=SUM({letter}2:{letter}{last})"


def _write_totals_sheet(ws, statement: Statement) -> None:
    ws.append(["Cliente", statement.client_id])
    ws.append(["Periodo", statement.period])
    ws.append([])
    totals = statement.totals.to_dict()
    for key, label in TOTALS_LABELS.items():
        val = totals[key]
        ws.append([label, round(val, 2) if isinstance(val, float) else val])
    ws.cell(row=ws.max_row, column=1).font = Font(bold=True)


def statement_to_workbook(statement: Statement) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = "releve"
    _write_rows_sheet(ws, statement)
    _write_totals_sheet(wb.create_sheet("totaux"), statement)
    return wb


def export_statement(statement: Statement, path: Optional[str] = None) -> bytes:
    """Scrive il relevé in XLSX. Restituisce sempre i bytes; salva anche su `path` se indicato."""
    wb = statement_to_workbook(statement)
    buf = io.BytesIO()
    wb.save(buf)
    data = buf.getvalue()
    if path:
        with open(path, "wb") as f:
            f.write(data)
    return data
