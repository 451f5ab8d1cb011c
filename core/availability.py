"""
Controllo disponibilità per i blocchi proprietario.

Funzioni pure: ricevono lo snapshot delle prenotazioni e restituiscono i
conflitti, senza I/O e senza modificare l'input. Le prenotazioni con date
malformate non bloccano mai: vengono saltate e segnalate nel log.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from core.dates import ONE_DAY, candidate_interval, iter_days, nights_between, occupied_interval, overlaps
from core.models import ConflictInfo, Reservation, Room

logger = logging.getLogger(__name__)


def _occupied(reservation: Reservation):
    """Intervallo occupato, o None se le date sono inutilizzabili."""
    try:
        return occupied_interval(reservation.check_in, reservation.check_out)
    except (TypeError, ValueError) as e:
        logger.warning(
            "Prenotazione %s ignorata nel controllo conflitti: date non valide (%s)",
            reservation.id, e,
        )
        return None


def _blocking(reservations: Iterable[Reservation], room_id: str, exclude_id: Optional[str]):
    for r in reservations:
        if str(r.room_external_id) != str(room_id):
            continue
        if r.status == "cancelled":
            continue
        if exclude_id is not None and str(r.id) == str(exclude_id):
            continue
        yield r


def check_availability(
    room: Room,
    candidate_start: date,
    candidate_end: date,
    reservations: Iterable[Reservation],
    exclude_id: Optional[str] = None,
) -> List[Reservation]:
    """
    Restituisce tutte le prenotazioni della camera che collidono con il
    periodo candidato (arrivo, partenza). `exclude_id` permette di modificare
    una prenotazione esistente senza che collida con se stessa.
    """
    cand_start, cand_end = candidate_interval(candidate_start, candidate_end)

    conflicts = []
    for r in _blocking(reservations, room.external_room_id, exclude_id):
        interval = _occupied(r)
        if interval is None:
            continue
        if overlaps(cand_start, cand_end, *interval):
            conflicts.append(r)

    if conflicts:
        logger.info(
            "Camera %s: %d conflitti per %s → %s",
            room.external_room_id, len(conflicts), candidate_start, candidate_end,
        )
    return conflicts


def is_available(room: Room, candidate_start: date, candidate_end: date,
                 reservations: Iterable[Reservation], exclude_id: Optional[str] = None) -> bool:
    return not check_availability(room, candidate_start, candidate_end, reservations, exclude_id)


def conflict_report(conflicts: Iterable[Reservation]) -> List[ConflictInfo]:
    """Conflitti in forma leggibile (id, ospite, date)."""
    return [
        ConflictInfo(
            reservation_id=r.id,
            guest_name=r.guest_name,
            check_in=r.check_in,
            check_out=r.check_out,
        )
        for r in conflicts
    ]


@dataclass(frozen=True)
class DayStatus:
    is_arrival: bool
    is_departure: bool
    is_booked: bool


def day_status(day: date, reservations: Iterable[Reservation], room_ids: Iterable[str]) -> DayStatus:
    """
    Stato di un giorno di calendario per un insieme di camere:
    arrivo / partenza su almeno una camera, occupato se tutte le camere lo sono.
    Come nella vista annuale, i blocchi a zero notti non rendono il giorno occupato.
    """
    room_ids = {str(r) for r in room_ids}
    arrivals, departures, booked = set(), set(), set()

    for r in reservations:
        if r.status == "cancelled" or str(r.room_external_id) not in room_ids:
            continue
        if r.check_in is None or r.check_out is None or r.check_out < r.check_in:
            continue
        if day == r.check_in:
            arrivals.add(r.room_external_id)
        if day == r.check_out:
            departures.add(r.room_external_id)
        if r.check_out > r.check_in:
            start, end = occupied_interval(r.check_in, r.check_out)
            if start <= day <= end:
                booked.add(r.room_external_id)

    return DayStatus(
        is_arrival=bool(arrivals),
        is_departure=bool(departures),
        is_booked=bool(room_ids) and room_ids <= booked,
    )


def occupancy_rate(room: Room, start: date, end: date, reservations: Iterable[Reservation]) -> float:
    """
    Quota di notti occupate nel periodo [start, end) per la camera.
    0 se il periodo è vuoto.
    """
    total = nights_between(start, end)
    if total == 0:
        return 0.0

    occupied = set()
    for r in _blocking(reservations, room.external_room_id, None):
        if r.is_zero_night:
            continue
        interval = _occupied(r)
        if interval is None:
            continue
        for day in iter_days(max(interval[0], start), min(interval[1], end - ONE_DAY)):
            occupied.add(day)
    return len(occupied) / total
