import io

import pytest
from openpyxl import Workbook, load_workbook

from core.excel_writer import export_statement
from core.statements import new_draft
from parsers.krossbooking_xlsx import StatementFileError, parse_statement_file, read_export_rows


def workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


HEADER = [f"col{i}" for i in range(40)]


def test_parse_statement_file(export_row, tmp_path):
    path = tmp_path / "export.xlsx"
    path.write_bytes(workbook_bytes([
        HEADER,
        export_row(portail="Airbnb", prix_sejour=100, frais_menage=20, taxe_sejour=5,
                   commission_plateforme=10, frais_paiement=2),
        export_row(voyageur="PROPRIETAIRE"),
        export_row(portail="Hello Keys", arrivee="pas de date"),
    ]))

    result = parse_statement_file(str(path), 0.26)
    assert len(result.rows) == 1
    assert result.rows[0].management_commission == pytest.approx(22.88)
    assert result.tax_zeroed is True
    assert [w.row_number for w in result.warnings] == [3, 4]


def test_header_is_discarded(export_row):
    rows = read_export_rows(workbook_bytes([HEADER, export_row()]))
    assert len(rows) == 1
    assert rows[0][18] == "Jean Dupont"


@pytest.mark.parametrize("rows", [[], [HEADER]])
def test_too_few_rows_is_fatal(rows):
    with pytest.raises(StatementFileError):
        read_export_rows(workbook_bytes(rows))


def test_unreadable_file_is_fatal():
    with pytest.raises(StatementFileError):
        read_export_rows(b"not an excel file")


def test_export_statement_roundtrip(processed, tmp_path):
    statement = new_draft("client-1", "2025-01", [processed(guest_name="A"), processed(guest_name="B")])
    path = tmp_path / "releve.xlsx"
    data = export_statement(statement, path=str(path))
    assert path.read_bytes() == data

    wb = load_workbook(io.BytesIO(data))
    assert wb.sheetnames == ["releve", "totaux"]
    ws = wb["releve"]
    assert ws.cell(row=2, column=2).value == "A"
    assert ws.cell(row=4, column=1).value == "TOTALE"
    assert str(ws.cell(row=4, column=5).value).startswith("=SUM(")
    totals = {r[0]: r[1] for r in wb["totaux"].iter_rows(values_only=True) if r and r[0]}
    assert totals["Totale fattura"] == pytest.approx(round(statement.totals.invoice_total, 2))
