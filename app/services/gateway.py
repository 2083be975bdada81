# app/services/gateway.py
"""
Persistence gateway, the only shared mutable resource the engine talks to.

ParkingGateway is the contract; two implementations exist:
  - SqlAlchemyGateway (app/services/sql_gateway.py) for the real database
  - InMemoryGateway (below) for engine tests and local experiments

Write methods never commit on their own. Callers group writes inside
`with gateway.atomic():` so a transition lands completely or not at all.
"""

import copy
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from app.models.transaction import VehicleType
from app.services.errors import NotFoundError
from app.services.fee_calculator import FeeBreakdown, PricingSettings
from app.services.reservation_workflow import is_active_for_client, is_pending_for_owner, number_key
from app.services.space_state import SpaceState
from app.utils.logger import get_logger

logger = get_logger(__name__)


# ── Records ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LotRecord:
    id: str
    name: str
    address: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class SpaceRecord:
    id: str
    lot_id: str
    number: str
    is_vip: bool
    state: SpaceState


@dataclass(frozen=True)
class NewTransaction:
    vehicle_plate: str
    vehicle_type: VehicleType
    space_id: str
    space_number: str
    entry_time: datetime
    employee_id: str
    is_vip_stay: bool
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    lot_id: str
    vehicle_plate: str
    vehicle_type: VehicleType
    space_id: str
    space_number: str
    entry_time: datetime
    employee_id: str
    is_vip_stay: bool
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    exit_time: Optional[datetime] = None
    original_fee: Optional[Decimal] = None
    discount_applied: Optional[Decimal] = None
    total_fee: Optional[Decimal] = None

    @property
    def is_open(self) -> bool:
        return self.exit_time is None


@dataclass(frozen=True)
class CustomerRecord:
    id: str
    lot_id: str
    name: str
    plate: Optional[str] = None


def overlaps(txn: TransactionRecord, start: Optional[datetime], end: Optional[datetime]) -> bool:
    """True if the stay touches [start, end]. Open stays run until now."""
    if end is not None and txn.entry_time > end:
        return False
    if start is not None and txn.exit_time is not None and txn.exit_time < start:
        return False
    return True


# ── Contract ─────────────────────────────────────────────────────────────────

class ParkingGateway(ABC):
    """Storage contract for lots, spaces, transactions, pricing and customers."""

    @abstractmethod
    def atomic(self):
        """Context manager: writes inside commit together or roll back together."""

    # Lots
    @abstractmethod
    def add_lot(self, lot: LotRecord) -> LotRecord: ...

    @abstractmethod
    def get_lot(self, lot_id: str) -> LotRecord: ...

    @abstractmethod
    def list_lots(self) -> List[LotRecord]: ...

    # Spaces
    @abstractmethod
    def get_space(self, lot_id: str, space_id: str, lock: bool = False) -> SpaceRecord:
        """lock=True asks the store to hold the row until the atomic block ends."""

    @abstractmethod
    def save_space(self, lot_id: str, space_id: str, state: SpaceState) -> SpaceRecord: ...

    @abstractmethod
    def list_spaces(self, lot_id: str) -> List[SpaceRecord]: ...

    @abstractmethod
    def replace_spaces(self, lot_id: str, spaces: List[SpaceRecord]) -> List[SpaceRecord]:
        """Drop every space of the lot and store `spaces` instead."""

    # Transactions
    @abstractmethod
    def open_transaction(self, lot_id: str, data: NewTransaction) -> TransactionRecord: ...

    @abstractmethod
    def close_transaction(self, lot_id: str, transaction_id: str, exit_time: datetime,
                          fee: FeeBreakdown) -> TransactionRecord: ...

    @abstractmethod
    def get_transaction(self, lot_id: str, transaction_id: str) -> TransactionRecord: ...

    @abstractmethod
    def find_open_transaction(self, lot_id: str, plate: str) -> Optional[TransactionRecord]: ...

    @abstractmethod
    def list_transactions(self, lot_id: str, start: Optional[datetime] = None,
                          end: Optional[datetime] = None,
                          employee_id: Optional[str] = None) -> List[TransactionRecord]:
        """Stays overlapping [start, end], newest entry first."""

    # Pricing
    @abstractmethod
    def get_pricing(self, lot_id: str) -> PricingSettings: ...

    @abstractmethod
    def save_pricing(self, lot_id: str, pricing: PricingSettings) -> PricingSettings: ...

    # Reservation queries
    @abstractmethod
    def list_pending_reservations(self, lot_id: str, now: datetime) -> List[SpaceRecord]: ...

    @abstractmethod
    def list_client_reservations(self, client_id: str, now: datetime) -> List[Tuple[SpaceRecord, str]]:
        """(space, lot name) pairs, soonest expiry first."""

    # Customers
    @abstractmethod
    def add_customer(self, customer: CustomerRecord) -> CustomerRecord: ...

    @abstractmethod
    def list_customers(self, lot_id: str) -> List[CustomerRecord]: ...

    @abstractmethod
    def find_customer_by_plate(self, lot_id: str, plate: str) -> Optional[CustomerRecord]: ...


# ── In-memory implementation ─────────────────────────────────────────────────

class InMemoryGateway(ParkingGateway):
    """
    Dict-backed gateway. atomic() snapshots the whole store and restores it if
    the block raises. One re-entrant lock serialises all access.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._data = {
            "lots": {},            # lot_id -> LotRecord
            "spaces": {},          # lot_id -> {space_id: SpaceRecord}
            "transactions": {},    # lot_id -> {txn_id: TransactionRecord}
            "pricing": {},         # lot_id -> PricingSettings
            "customers": {},       # lot_id -> [CustomerRecord]
        }
        self._txn_seq = 0

    @contextmanager
    def atomic(self):
        with self._lock:
            snapshot = copy.deepcopy(self._data), self._txn_seq
            try:
                yield self
            except Exception:
                self._data, self._txn_seq = snapshot
                logger.debug("[STORE] in-memory changes rolled back")
                raise

    def _lot_section(self, section: str, lot_id: str):
        if lot_id not in self._data["lots"]:
            raise NotFoundError(f"Parking lot {lot_id} not found")
        return self._data[section][lot_id]

    # Lots
    def add_lot(self, lot):
        with self._lock:
            self._data["lots"][lot.id] = lot
            self._data["spaces"][lot.id] = {}
            self._data["transactions"][lot.id] = {}
            self._data["customers"][lot.id] = []
            return lot

    def get_lot(self, lot_id):
        lot = self._data["lots"].get(lot_id)
        if lot is None:
            raise NotFoundError(f"Parking lot {lot_id} not found")
        return lot

    def list_lots(self):
        return sorted(self._data["lots"].values(), key=lambda lot: lot.created_at)

    # Spaces
    def get_space(self, lot_id, space_id, lock=False):
        space = self._lot_section("spaces", lot_id).get(space_id)
        if space is None:
            raise NotFoundError(f"Space {space_id} not found in lot {lot_id}")
        return space

    def save_space(self, lot_id, space_id, state):
        with self._lock:
            space = replace(self.get_space(lot_id, space_id), state=state)
            self._data["spaces"][lot_id][space_id] = space
            return space

    def list_spaces(self, lot_id):
        spaces = self._lot_section("spaces", lot_id).values()
        return sorted(spaces, key=lambda s: number_key(s.number))

    def replace_spaces(self, lot_id, spaces):
        with self._lock:
            self._lot_section("spaces", lot_id)
            self._data["spaces"][lot_id] = {s.id: s for s in spaces}
            return self.list_spaces(lot_id)

    # Transactions
    def open_transaction(self, lot_id, data):
        with self._lock:
            transactions = self._lot_section("transactions", lot_id)
            self._txn_seq += 1
            txn = TransactionRecord(id=f"txn-{self._txn_seq:06d}", lot_id=lot_id, **data.__dict__)
            transactions[txn.id] = txn
            return txn

    def close_transaction(self, lot_id, transaction_id, exit_time, fee):
        with self._lock:
            txn = replace(
                self.get_transaction(lot_id, transaction_id),
                exit_time=exit_time,
                original_fee=fee.original_fee,
                discount_applied=fee.discount_applied,
                total_fee=fee.final_fee,
            )
            self._data["transactions"][lot_id][transaction_id] = txn
            return txn

    def get_transaction(self, lot_id, transaction_id):
        txn = self._lot_section("transactions", lot_id).get(transaction_id)
        if txn is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return txn

    def find_open_transaction(self, lot_id, plate):
        plate = plate.strip().upper()
        matches = [t for t in self._lot_section("transactions", lot_id).values()
                   if t.is_open and t.vehicle_plate.upper() == plate]
        return max(matches, key=lambda t: t.entry_time) if matches else None

    def list_transactions(self, lot_id, start=None, end=None, employee_id=None):
        result = [t for t in self._lot_section("transactions", lot_id).values()
                  if overlaps(t, start, end)
                  and (employee_id is None or t.employee_id == employee_id)]
        return sorted(result, key=lambda t: t.entry_time, reverse=True)

    # Pricing
    def get_pricing(self, lot_id):
        self.get_lot(lot_id)
        pricing = self._data["pricing"].get(lot_id)
        if pricing is None:
            raise NotFoundError(f"Pricing for lot {lot_id} not found")
        return pricing

    def save_pricing(self, lot_id, pricing):
        with self._lock:
            self.get_lot(lot_id)
            self._data["pricing"][lot_id] = pricing
            return pricing

    # Reservation queries
    def list_pending_reservations(self, lot_id, now):
        pending = [s for s in self.list_spaces(lot_id) if is_pending_for_owner(s.state, now)]
        return sorted(pending, key=lambda s: s.state.reservation.until)

    def list_client_reservations(self, client_id, now):
        found = []
        for lot in self._data["lots"].values():
            for space in self._data["spaces"][lot.id].values():
                if is_active_for_client(space.state, client_id, now):
                    found.append((space, lot.name))
        return sorted(found, key=lambda pair: pair[0].state.reservation.until)

    # Customers
    def add_customer(self, customer):
        with self._lock:
            self._lot_section("customers", customer.lot_id).append(customer)
            return customer

    def list_customers(self, lot_id):
        return list(self._lot_section("customers", lot_id))

    def find_customer_by_plate(self, lot_id, plate):
        plate = plate.strip().upper()
        for customer in self._lot_section("customers", lot_id):
            if customer.plate and customer.plate.upper() == plate:
                return customer
        return None
