"""
Elaborazione delle righe dell'export Krossbooking in righe di relevé.

Colonne usate (0-indexed, vedi config.EXPORT_COL_MAP):
  2=arrivo, 3=partenza, 4=notti, 7=ospiti, 16=portale, 18=ospite,
  22=totale pagato, 23=prezzo soggiorno, 24=tassa di soggiorno, 25=pulizie,
  38=commissione piattaforma, 39=costo pagamento

Regole:
  - righe con meno di 40 colonne → avviso, riga saltata
  - ospite 'PROPRIETAIRE' → soggiorno del proprietario, riga saltata
  - Airbnb e Booking versano da soli la tassa di soggiorno → forzata a 0
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Tuple, Union

from config import EXPORT_COL_MAP, EXPORT_MIN_COLUMNS, TAX_EXEMPT_CHANNELS
from core.dates import parse_date
from core.models import ParseWarning, ProcessedReservation
from parsers.reservations import is_owner_row, to_float, to_int

logger = logging.getLogger(__name__)

# Campi calcolati: non si possono impostare dall'esterno
DERIVED_FIELDS = ("gross_revenue", "net_paid_to_owner", "owner_net_revenue", "management_commission")


@dataclass(frozen=True)
class ExportRow:
    """Riga dell'export validata una sola volta al confine."""
    row_number: int
    channel: str
    guest_name: str
    check_in: Optional[date]
    check_out: Optional[date]
    nights: int
    guest_count: int
    total_paid: float
    stay_price: float
    tourist_tax: float
    cleaning_fee: float
    platform_commission: float
    payment_fee: float

    @classmethod
    def from_raw(cls, row, row_number: int) -> Union["ExportRow", ParseWarning]:
        if row is None:
            return ParseWarning(row_number, "riga vuota")
        row = tuple(row)
        if len(row) < EXPORT_MIN_COLUMNS:
            return ParseWarning(row_number, f"solo {len(row)} colonne su {EXPORT_MIN_COLUMNS}", row)

        def col(key):
            val = row[EXPORT_COL_MAP[key]]
            return "" if val is None else val

        return cls(
            row_number=row_number,
            channel=str(col("portail")).strip() or "N/A",
            guest_name=str(col("voyageur")).strip(),
            check_in=parse_date(col("arrivee")),
            check_out=parse_date(col("depart")),
            nights=to_int(col("nuits")),
            guest_count=to_int(col("voyageurs")),
            total_paid=to_float(col("total_paye")),
            stay_price=to_float(col("prix_sejour")),
            tourist_tax=to_float(col("taxe_sejour")),
            cleaning_fee=to_float(col("frais_menage")),
            platform_commission=to_float(col("commission_plateforme")),
            payment_fee=to_float(col("frais_paiement")),
        )


@dataclass(frozen=True)
class ProcessingResult:
    rows: Tuple[ProcessedReservation, ...] = ()
    warnings: Tuple[ParseWarning, ...] = ()
    tax_zeroed: bool = False   # solo per il messaggio in UI


def is_tax_exempt(channel: str) -> bool:
    text = str(channel or "").lower()
    return any(c in text for c in TAX_EXEMPT_CHANNELS)


def validate_rate(commission_rate: float) -> float:
    rate = float(commission_rate)
    if not 0 <= rate <= 1:
        raise ValueError(f"Tasso di commissione fuori intervallo 0-1: {commission_rate}")
    return rate


def _process(row, commission_rate: float, row_number: int):
    """Restituisce (ProcessedReservation | ParseWarning, tassa_azzerata)."""
    parsed = ExportRow.from_raw(row, row_number)
    if isinstance(parsed, ParseWarning):
        return parsed, False

    if is_owner_row(parsed.guest_name):
        return ParseWarning(row_number, "soggiorno proprietario", tuple(row)), False
    if parsed.check_in is None or parsed.check_out is None:
        return ParseWarning(row_number, "date di arrivo/partenza non valide", tuple(row)), False
    if parsed.check_out < parsed.check_in:
        return ParseWarning(row_number, "partenza precedente all'arrivo", tuple(row)), False

    tourist_tax = parsed.tourist_tax
    zeroed = False
    if is_tax_exempt(parsed.channel):
        zeroed = tourist_tax != 0
        tourist_tax = 0.0

    return ProcessedReservation(
        channel=parsed.channel,
        guest_name=parsed.guest_name,
        check_in=parsed.check_in,
        check_out=parsed.check_out,
        nights=parsed.nights,
        guest_count=parsed.guest_count,
        stay_price=parsed.stay_price,
        cleaning_fee=parsed.cleaning_fee,
        tourist_tax=tourist_tax,
        platform_commission=parsed.platform_commission,
        payment_fee=parsed.payment_fee,
        commission_rate=commission_rate,
        amount_paid_by_guest=parsed.total_paid,
    ), zeroed


def process_row(row, commission_rate: float, row_number: int = 0) -> Union[ProcessedReservation, ParseWarning]:
    """Elabora una riga grezza dell'export."""
    result, _ = _process(row, validate_rate(commission_rate), row_number)
    return result


def process_rows(rows: Iterable, commission_rate: float, first_row_number: int = 2) -> ProcessingResult:
    """
    Elabora tutte le righe dati (header già scartato).
    `first_row_number` è il numero di riga Excel della prima riga dati.
    """
    rate = validate_rate(commission_rate)
    processed: List[ProcessedReservation] = []
    warnings: List[ParseWarning] = []
    tax_zeroed = False

    for i, row in enumerate(rows):
        result, zeroed = _process(row, rate, first_row_number + i)
        tax_zeroed = tax_zeroed or zeroed
        if isinstance(result, ParseWarning):
            warnings.append(result)
        else:
            processed.append(result)

    skipped = [w for w in warnings if w.reason != "soggiorno proprietario"]
    if skipped:
        logger.warning("%d righe del relevé ignorate", len(skipped))
    logger.info("Relevé: %d righe elaborate, tassa azzerata=%s", len(processed), tax_zeroed)
    return ProcessingResult(rows=tuple(processed), warnings=tuple(warnings), tax_zeroed=tax_zeroed)


def edit_row(row: ProcessedReservation, **changes) -> ProcessedReservation:
    """
    Correzione manuale di una riga: restituisce una nuova riga con gli input
    modificati. I campi calcolati non si impostano, si ricalcolano.
    """
    forbidden = [k for k in changes if k in DERIVED_FIELDS]
    if forbidden:
        raise ValueError(f"Campi calcolati non modificabili: {', '.join(forbidden)}")

    if "commission_rate" in changes:
        changes["commission_rate"] = validate_rate(changes["commission_rate"])
    for key in ("stay_price", "cleaning_fee", "tourist_tax", "platform_commission",
                "payment_fee", "amount_paid_by_guest"):
        if key in changes:
            changes[key] = to_float(changes[key])
    for key in ("nights", "guest_count"):
        if key in changes:
            changes[key] = to_int(changes[key])

    edited = dataclasses.replace(row, **changes)
    if is_tax_exempt(edited.channel) and edited.tourist_tax != 0:
        edited = dataclasses.replace(edited, tourist_tax=0.0)
    return edited


def replace_row(rows: Tuple[ProcessedReservation, ...], index: int, **changes) -> Tuple[ProcessedReservation, ...]:
    """Nuovo snapshot con la riga `index` corretta."""
    if not 0 <= index < len(rows):
        raise IndexError(f"Riga {index} inesistente")
    return rows[:index] + (edit_row(rows[index], **changes),) + rows[index + 1:]
