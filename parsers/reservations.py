"""
Normalizzazione delle prenotazioni grezze in Reservation.

Due sorgenti:
  - record JSON dell'API Krossbooking (via proxy), chiavi principali:
      id_reservation, label, rooms[0].id_room, arrival, departure,
      cod_reservation_status, cod_channel, charge_total_amount, city_tax_amount
  - righe dell'export XLSX (stesse colonne del relevé, vedi config.EXPORT_COL_MAP)

Una riga non valida non blocca mai il batch: diventa un ParseWarning.
"""

import logging
from typing import Iterable, List, Tuple, Union

from config import CHANNEL_KEYWORDS, EXPORT_COL_MAP, EXPORT_MIN_COLUMNS, OWNER_SENTINEL, STATUS_MAP
from core.dates import nights_between, parse_date
from core.deduplicator import dedupe_reservations
from core.models import ParseWarning, Reservation

logger = logging.getLogger(__name__)


def detect_channel(raw: str) -> str:
    """Mappa il testo libero del canale al canale canonico."""
    text = str(raw or "").strip().lower()
    if not text:
        return "unknown"
    for keyword, channel in CHANNEL_KEYWORDS:
        if keyword in text:
            return channel
    return "unknown"


def detect_status(raw: str) -> str:
    """Mappa il codice stato Krossbooking allo stato canonico."""
    return STATUS_MAP.get(str(raw or "").strip().upper(), "unknown")


def to_float(val) -> float:
    """Converte un valore in float. Vuoti e non numerici → 0.0."""
    if val is None or str(val).strip() in ("", "nan", "-", "None"):
        return 0.0
    if isinstance(val, (int, float)):
        return float(val)
    try:
        return float(str(val).replace("€", "").replace(" ", "").replace(",", "."))
    except (ValueError, TypeError):
        return 0.0


def to_int(val) -> int:
    """Converte un valore in int (anche '3.0'). Vuoti e non numerici → 0."""
    return int(to_float(val))


def is_owner_row(guest_name) -> bool:
    return str(guest_name or "").strip().upper() == OWNER_SENTINEL


def _build(
    row_number: int,
    raw,
    res_id,
    room_id,
    guest_name,
    check_in_raw,
    check_out_raw,
    **kwargs,
) -> Union[Reservation, ParseWarning]:
    if is_owner_row(guest_name):
        return ParseWarning(row_number, "riga proprietario", raw)

    check_in = parse_date(check_in_raw)
    check_out = parse_date(check_out_raw)
    if check_in is None or check_out is None:
        return ParseWarning(row_number, f"date non valide ({check_in_raw!r} → {check_out_raw!r})", raw)
    if check_out < check_in:
        return ParseWarning(row_number, f"check-out {check_out} precedente al check-in {check_in}", raw)

    nights = kwargs.pop("nights", 0) or nights_between(check_in, check_out)
    return Reservation(
        id=str(res_id or "").strip(),
        room_external_id=str(room_id or "").strip(),
        guest_name=str(guest_name or "").strip() or "N/A",
        check_in=check_in,
        check_out=check_out,
        nights=nights,
        **kwargs,
    )


def normalize_api_record(record: dict, row_number: int = 0) -> Union[Reservation, ParseWarning]:
    """Converte un record JSON dell'API in Reservation."""
    if not isinstance(record, dict):
        return ParseWarning(row_number, "record non valido", (record,))

    rooms = record.get("rooms") or []
    room_id = rooms[0].get("id_room", "") if rooms and isinstance(rooms[0], dict) else record.get("id_room", "")

    status = detect_status(record.get("cod_reservation_status"))
    channel = detect_channel(record.get("cod_channel"))
    if status == "owner_block" and channel == "unknown":
        channel = "owner_direct"

    return _build(
        row_number,
        (record,),
        record.get("id_reservation", ""),
        room_id,
        record.get("label", ""),
        record.get("arrival"),
        record.get("departure"),
        status=status,
        channel=channel,
        amount_paid_by_guest=to_float(record.get("charge_total_amount")),
        tourist_tax=to_float(record.get("city_tax_amount")),
        guest_count=to_int(record.get("n_guests")),
    )


def normalize_export_row(row, row_number: int, room_id: str = "") -> Union[Reservation, ParseWarning]:
    """Converte una riga dell'export XLSX in Reservation."""
    row = tuple(row)
    if len(row) < EXPORT_MIN_COLUMNS:
        return ParseWarning(row_number, f"solo {len(row)} colonne su {EXPORT_MIN_COLUMNS}", row)

    def col(key):
        return row[EXPORT_COL_MAP[key]]

    channel = detect_channel(col("portail"))
    return _build(
        row_number,
        row,
        f"row-{row_number}",
        room_id,
        col("voyageur"),
        col("arrivee"),
        col("depart"),
        status="owner_block" if channel == "owner_direct" else "confirmed",
        channel=channel,
        amount_paid_by_guest=to_float(col("total_paye")),
        platform_commission=to_float(col("commission_plateforme")),
        payment_processing_fee=to_float(col("frais_paiement")),
        stay_price=to_float(col("prix_sejour")),
        cleaning_fee=to_float(col("frais_menage")),
        tourist_tax=to_float(col("taxe_sejour")),
        nights=to_int(col("nuits")),
        guest_count=to_int(col("voyageurs")),
    )


def normalize_records(records: Iterable[dict]) -> Tuple[List[Reservation], List[ParseWarning]]:
    """
    Normalizza un batch di record API.
    Restituisce (prenotazioni senza duplicati di id, avvisi).
    """
    reservations = []
    warnings = []
    for i, record in enumerate(records, start=1):
        result = normalize_api_record(record, row_number=i)
        if isinstance(result, ParseWarning):
            warnings.append(result)
        else:
            reservations.append(result)

    if warnings:
        logger.warning("%d record di prenotazione scartati", len(warnings))
    return dedupe_reservations(reservations), warnings
