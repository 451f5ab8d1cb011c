"""
Modelli dati: Room, Reservation (prenotazione canonica), ProcessedReservation
(riga di relevé), StatementTotals, TransferGroup, Statement.

Tutti immutabili: i calcoli ricevono uno snapshot e restituiscono un nuovo valore.
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Literal, Optional, Tuple

Channel = Literal["airbnb", "booking", "abritel", "direct", "owner_direct", "unknown"]
ReservationStatus = Literal["confirmed", "pending", "cancelled", "owner_block", "unknown"]
StatementStatus = Literal["draft", "saved", "sent"]


@dataclass(frozen=True)
class Room:
    """Un alloggio gestito, collegato a una camera Krossbooking."""
    id: str
    external_room_id: str
    name: str


@dataclass(frozen=True)
class Reservation:
    """Una prenotazione normalizzata (API o export)."""
    id: str
    room_external_id: str
    guest_name: str
    check_in: date
    check_out: date
    status: ReservationStatus = "confirmed"
    channel: Channel = "unknown"
    amount_paid_by_guest: float = 0.0
    platform_commission: float = 0.0
    payment_processing_fee: float = 0.0
    stay_price: float = 0.0
    cleaning_fee: float = 0.0
    tourist_tax: float = 0.0
    nights: int = 0
    guest_count: int = 0

    @property
    def is_zero_night(self) -> bool:
        return self.check_in == self.check_out


@dataclass(frozen=True)
class ParseWarning:
    """Riga scartata durante l'import: mai un errore fatale per il batch."""
    row_number: int
    reason: str
    raw: Tuple = ()

    def __str__(self) -> str:
        return f"Riga {self.row_number} ignorata: {self.reason}"


@dataclass(frozen=True)
class ConflictInfo:
    """Conflitto leggibile per l'utente."""
    reservation_id: str
    guest_name: str
    check_in: date
    check_out: date


@dataclass(frozen=True)
class ProcessedReservation:
    """
    Una riga del relevé. I campi calcolati sono proprietà: derivano sempre
    dagli input, quindi una correzione non può lasciarli disallineati.
    """
    channel: str             # testo portale come nell'export (es. "Airbnb")
    guest_name: str
    check_in: Optional[date]
    check_out: Optional[date]
    nights: int
    guest_count: int
    stay_price: float
    cleaning_fee: float
    tourist_tax: float
    platform_commission: float
    payment_fee: float
    commission_rate: float
    amount_paid_by_guest: float = 0.0   # colonna "total payé", solo informativo

    @property
    def gross_revenue(self) -> float:
        return self.stay_price + self.cleaning_fee + self.tourist_tax

    @property
    def net_paid_to_owner(self) -> float:
        return self.gross_revenue - self.platform_commission - self.payment_fee

    @property
    def owner_net_revenue(self) -> float:
        return self.net_paid_to_owner - self.cleaning_fee - self.tourist_tax

    @property
    def management_commission(self) -> float:
        return self.owner_net_revenue * self.commission_rate

    def to_dict(self) -> dict:
        """Serializza input + campi calcolati (per salvataggio ed export)."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["check_in"] = self.check_in.isoformat() if self.check_in else ""
        data["check_out"] = self.check_out.isoformat() if self.check_out else ""
        data["gross_revenue"] = self.gross_revenue
        data["net_paid_to_owner"] = self.net_paid_to_owner
        data["owner_net_revenue"] = self.owner_net_revenue
        data["management_commission"] = self.management_commission
        return data


@dataclass(frozen=True)
class StatementTotals:
    """Totali del relevé, prodotti da un unico fold sulle righe."""
    total_commission: float = 0.0
    total_stay_price: float = 0.0
    total_cleaning_fee: float = 0.0
    total_tourist_tax: float = 0.0
    total_gross_revenue: float = 0.0
    total_net_paid_to_owner: float = 0.0
    total_owner_net_revenue: float = 0.0
    total_nights: int = 0
    total_guests: int = 0
    owner_cleaning_fee: float = 0.0     # override manuale, fuori dal fold

    @property
    def invoice_total(self) -> float:
        return self.total_commission + self.total_cleaning_fee + self.owner_cleaning_fee

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["invoice_total"] = self.invoice_total
        return data


@dataclass(frozen=True)
class TransferGroup:
    """Bonifico verso il proprietario per una sorgente di pagamento."""
    source_key: str
    reservations: Tuple[ProcessedReservation, ...] = ()
    total: float = 0.0
    deducted: float = 0.0


@dataclass(frozen=True)
class Statement:
    """Relevé di un cliente per un periodo."""
    client_id: str
    period: str
    rows: Tuple[ProcessedReservation, ...]
    totals: StatementTotals
    status: StatementStatus = "draft"
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    transfer_details: Optional[dict] = field(default=None, compare=False)
