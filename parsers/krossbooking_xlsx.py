"""
Lettura del file XLSX esportato da Krossbooking per il relevé.

Come esportare da Krossbooking:
  Prenotazioni → Esporta → Excel (seleziona periodo e struttura)

Si legge solo il primo foglio; la prima riga è l'header e viene scartata.
Errori sull'intero file (file illeggibile, nessun foglio, meno di 2 righe)
sono fatali e vengono sollevati prima di elaborare qualsiasi riga.
"""

import io
import logging
import os
from typing import List, Union

from openpyxl import load_workbook

from core.statement_lines import ProcessingResult, process_rows

logger = logging.getLogger(__name__)


class StatementFileError(ValueError):
    """File di export inutilizzabile nel suo insieme."""


def _open(source):
    if isinstance(source, (bytes, bytearray)):
        return load_workbook(io.BytesIO(source), data_only=True)
    return load_workbook(source, data_only=True)


def read_export_rows(source: Union[str, bytes, "os.PathLike", io.IOBase]) -> List[tuple]:
    """
    Restituisce le righe dati del primo foglio (header escluso).
    `source`: percorso, bytes o file-like (es. upload Streamlit).
    """
    try:
        wb = _open(source)
    except Exception as e:
        raise StatementFileError(f"Errore lettura XLSX Krossbooking: {e}") from e

    try:
        if not wb.sheetnames:
            raise StatementFileError("Il file Excel non contiene alcun foglio di calcolo.")
        ws = wb[wb.sheetnames[0]]
        rows = [
            tuple("" if v is None else v for v in row)
            for row in ws.iter_rows(values_only=True)
            if any(v not in (None, "") for v in row)
        ]
    finally:
        wb.close()

    if len(rows) < 2:
        raise StatementFileError("Il file Excel è vuoto o non contiene dati dopo l'header.")

    logger.info("Export Krossbooking: %d righe dati", len(rows) - 1)
    return rows[1:]


def parse_statement_file(source, commission_rate: float) -> ProcessingResult:
    """Legge l'export ed elabora tutte le righe del relevé."""
    return process_rows(read_export_rows(source), commission_rate, first_row_number=2)
