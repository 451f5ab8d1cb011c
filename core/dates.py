"""
Aritmetica degli intervalli di date.

Convenzione: il giorno di check-out è libero (giorno di cambio), quindi una
prenotazione occupa [check_in, check_out - 1]. Un blocco a zero notti
(check_in == check_out) occupa solo il giorno di check_in.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple

from config import DATE_FORMATS

ONE_DAY = timedelta(days=1)


def parse_date(val, formats: Tuple[str, ...] = DATE_FORMATS) -> Optional[date]:
    """Converte date/datetime/stringa in date. None se mancante o non valida."""
    if val is None:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    s = str(val).strip()
    if s in ("", "-", "nan", "None", "NaT"):
        return None
    for fmt in formats:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def occupied_interval(check_in: date, check_out: date) -> Tuple[date, date]:
    """Giorni effettivamente occupati, estremi inclusi."""
    if check_out < check_in:
        raise ValueError(f"check-out {check_out} precedente al check-in {check_in}")
    if check_in == check_out:
        return check_in, check_in
    return check_in, check_out - ONE_DAY


def candidate_interval(start: date, end: date) -> Tuple[date, date]:
    """Giorni richiesti da un nuovo blocco: stessa convenzione delle prenotazioni."""
    if end < start:
        raise ValueError(f"intervallo richiesto non valido: {start} → {end}")
    return occupied_interval(start, end)


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Sovrapposizione di due intervalli chiusi di giorni. Commutativa."""
    return a_start <= b_end and b_start <= a_end


def stays_overlap(a_in: date, a_out: date, b_in: date, b_out: date) -> bool:
    """Due soggiorni (arrivo, partenza) si sovrappongono sui giorni occupati."""
    return overlaps(*occupied_interval(a_in, a_out), *occupied_interval(b_in, b_out))


def nights_between(check_in: date, check_out: date) -> int:
    """Numero di notti; 0 per i blocchi tecnici."""
    return max((check_out - check_in).days, 0)


def iter_days(start: date, end: date):
    """Giorni da start a end inclusi."""
    day = start
    while day <= end:
        yield day
        day += ONE_DAY
