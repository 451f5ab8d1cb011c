"""
Sorgente prenotazioni: proxy HTTP verso Krossbooking.

POST {url} con {"action": "get_reservations"} → {"data": [...]}.
I record vengono normalizzati in Reservation. Cache in memoria di breve
durata (una interazione utente); in caso di errore HTTP si restituisce la
cache scaduta se disponibile.
"""

import logging
import time
from typing import List, Optional

import httpx

from config import RESERVATION_CACHE_SECONDS, RESERVATION_TIMEOUT_SECONDS
from core.models import Reservation
from parsers.reservations import normalize_records

logger = logging.getLogger(__name__)

_cache = {"data": None, "timestamp": 0.0}


class ReservationSourceError(RuntimeError):
    """La sorgente prenotazioni non ha risposto correttamente."""


def clear_reservations_cache() -> None:
    _cache["data"] = None
    _cache["timestamp"] = 0.0
    logger.info("Cache prenotazioni svuotata")


def _call_proxy(url: str, action: str, token: str = "", client: Optional[httpx.Client] = None, **payload):
    headers = {"Content-Type": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    own_client = client is None
    client = client or httpx.Client(timeout=RESERVATION_TIMEOUT_SECONDS)
    try:
        response = client.post(url, json={"action": action, **payload}, headers=headers)
        response.raise_for_status()
        return response.json().get("data")
    finally:
        if own_client:
            client.close()


def fetch_reservations(
    url: str,
    token: str = "",
    force_refresh: bool = False,
    client: Optional[httpx.Client] = None,
) -> List[Reservation]:
    """Scarica e normalizza tutte le prenotazioni della struttura."""
    now = time.monotonic()
    if not force_refresh and _cache["data"] is not None and now - _cache["timestamp"] < RESERVATION_CACHE_SECONDS:
        logger.debug("Prenotazioni dalla cache")
        return _cache["data"]

    try:
        data = _call_proxy(url, "get_reservations", token=token, client=client)
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Errore sorgente prenotazioni: %s", e)
        if _cache["data"] is not None:
            logger.warning("Uso la cache scaduta delle prenotazioni")
            return _cache["data"]
        raise ReservationSourceError(f"Impossibile scaricare le prenotazioni: {e}") from e

    if not isinstance(data, list):
        logger.warning("Risposta inattesa dalla sorgente prenotazioni: %r", type(data).__name__)
        data = []

    reservations, _ = normalize_records(data)
    _cache["data"] = reservations
    _cache["timestamp"] = now
    logger.info("Scaricate %d prenotazioni", len(reservations))
    return reservations


def save_owner_block(
    url: str,
    room_id: str,
    label: str,
    arrival: str,
    departure: str,
    with_cleaning: bool,
    token: str = "",
    email: str = "",
    phone: str = "",
    reservation_id: Optional[str] = None,
    client: Optional[httpx.Client] = None,
):
    """Crea (o modifica) un blocco proprietario. Svuota la cache."""
    payload = {
        "label": label,
        "arrival": arrival,
        "departure": departure,
        "email": email,
        "phone": phone,
        "cod_reservation_status": "PROPRI" if with_cleaning else "PROP0",
        "id_room": room_id,
    }
    if reservation_id:
        payload["id_reservation"] = reservation_id
    try:
        result = _call_proxy(url, "save_reservation", token=token, client=client, **payload)
    except (httpx.HTTPError, ValueError) as e:
        raise ReservationSourceError(f"Errore creazione blocco: {e}") from e
    clear_reservations_cache()
    return result
