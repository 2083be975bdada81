# app/services/parking_engine.py
"""
Parking engine: runs operator and client actions against the gateway.

Flow for every mutation:
  1. take the per-space lock (single writer per space)
  2. open gateway.atomic()
  3. fetch a fresh space record, run the pure transition, write the result
A failed guard raises before anything is written, so the stored space is
left exactly as it was.

The engine keeps no state between calls apart from the lock registry.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from app.models.parking_space import SpaceStatus
from app.models.transaction import VehicleType
from app.services.errors import ConflictError, NotFoundError, ValidationError
from app.services.fee_calculator import FeeBreakdown, compute_fee, parking_duration, resolve_discount
from app.services.gateway import ParkingGateway, NewTransaction, SpaceRecord, TransactionRecord
from app.services import reservation_workflow as workflow
from app.services import space_state as rules
from app.utils.logger import get_logger

logger = get_logger(__name__)


class SpaceLocks:
    """Lazily created threading.Lock per (lot_id, space_id)."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}

    def get(self, lot_id: str, space_id: str) -> threading.Lock:
        key = (lot_id, space_id)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, lot_id: str, space_id: str):
        with self.get(lot_id, space_id):
            yield


# Shared by every engine in the process; routers build one engine per request.
space_locks = SpaceLocks()


@dataclass(frozen=True)
class EntryResult:
    space: SpaceRecord
    transaction: TransactionRecord
    overridden_reservation: Optional[str] = None


@dataclass(frozen=True)
class ExitQuote:
    transaction: TransactionRecord
    space: SpaceRecord
    exit_time: datetime
    hours: int
    minutes: int
    fee: FeeBreakdown
    discount_code: Optional[str] = None


@dataclass(frozen=True)
class ExitResult:
    transaction: TransactionRecord
    space: SpaceRecord
    fee: FeeBreakdown
    discount_code: Optional[str] = None


def parse_vehicle_type(value) -> VehicleType:
    try:
        return VehicleType(value)
    except ValueError:
        raise ValidationError(f"Unknown vehicle type '{value}'", code="invalid_vehicle_type")


class ParkingEngine:

    def __init__(self, gateway: ParkingGateway, locks: SpaceLocks = None,
                 clock: Callable[[], datetime] = None, discount_codes: Dict[str, float] = None):
        self.gateway = gateway
        self.locks = locks or space_locks
        self.clock = clock or datetime.now
        self.discount_codes = discount_codes     # None → settings.DISCOUNT_CODES

    def _now(self, now: Optional[datetime]) -> datetime:
        return now or self.clock()

    def _mutate(self, lot_id: str, space_id: str, transition) -> SpaceRecord:
        with self.locks.hold(lot_id, space_id), self.gateway.atomic():
            space = self.gateway.get_space(lot_id, space_id, lock=True)
            new_state = transition(space.state)
            return self.gateway.save_space(lot_id, space_id, new_state)

    # ── Vehicle entry / exit ─────────────────────────────────────────────

    def register_entry(self, lot_id: str, space_id: str, plate: str, vehicle_type, employee_id: str,
                       override: bool = False, customer_name: Optional[str] = None,
                       now: Optional[datetime] = None) -> EntryResult:
        now = self._now(now)
        vehicle_type = parse_vehicle_type(vehicle_type)
        plate = (plate or "").strip().upper()
        if not employee_id:
            raise ValidationError("Employee id is required", code="empty_identifier")

        with self.locks.hold(lot_id, space_id), self.gateway.atomic():
            space = self.gateway.get_space(lot_id, space_id, lock=True)
            rules.check_entry(space.state, plate, override)
            mismatch = rules.mismatch_message(space.state, plate)

            customer = self.gateway.find_customer_by_plate(lot_id, plate)
            txn = self.gateway.open_transaction(lot_id, NewTransaction(
                vehicle_plate=plate,
                vehicle_type=vehicle_type,
                space_id=space.id,
                space_number=space.number,
                entry_time=now,
                employee_id=employee_id,
                is_vip_stay=space.is_vip,
                customer_id=customer.id if customer else None,
                customer_name=customer.name if customer else customer_name,
            ))
            new_state = rules.enter_vehicle(space.state, plate, txn.id, now, override)
            saved = self.gateway.save_space(lot_id, space_id, new_state)

        if mismatch:
            logger.warning(f"[ENTRY] Reservation on #{space.number} overridden by {employee_id}: {mismatch}")
        logger.info(f"[ENTRY] Lot={lot_id} | Space=#{space.number} | Plate={plate} | "
                    f"Type={vehicle_type.value} | VIP={space.is_vip} | Txn={txn.id}")
        return EntryResult(space=saved, transaction=txn, overridden_reservation=mismatch)

    def _current_transaction(self, lot_id: str, space: SpaceRecord) -> TransactionRecord:
        if space.state.status != SpaceStatus.OCCUPIED:
            raise ConflictError(f"Space #{space.number} is not occupied", code="not_occupied")
        txn = self.gateway.get_transaction(lot_id, space.state.occupancy.transaction_id)
        if not txn.is_open:
            raise ConflictError(f"Transaction {txn.id} is already closed", code="transaction_closed")
        if txn.space_id != space.id:
            raise ConflictError(f"Transaction {txn.id} belongs to another space", code="transaction_mismatch")
        return txn

    def quote_exit(self, lot_id: str, space_id: str, discount_code: Optional[str] = None,
                   discount_percent=0, now: Optional[datetime] = None) -> ExitQuote:
        """Fee preview for the confirmation step; writes nothing."""
        now = self._now(now)
        percent = resolve_discount(discount_code, discount_percent, self.discount_codes)
        space = self.gateway.get_space(lot_id, space_id)
        txn = self._current_transaction(lot_id, space)
        fee = compute_fee(txn.entry_time, now, txn.vehicle_type, txn.is_vip_stay,
                          self.gateway.get_pricing(lot_id), percent)
        _, hours, minutes = parking_duration(txn.entry_time, now)
        return ExitQuote(transaction=txn, space=space, exit_time=now, hours=hours, minutes=minutes,
                         fee=fee, discount_code=(discount_code or "").strip().upper() or None)

    def register_exit(self, lot_id: str, space_id: str, discount_code: Optional[str] = None,
                      discount_percent=0, employee_id: Optional[str] = None,
                      now: Optional[datetime] = None) -> ExitResult:
        now = self._now(now)
        percent = resolve_discount(discount_code, discount_percent, self.discount_codes)

        with self.locks.hold(lot_id, space_id), self.gateway.atomic():
            space = self.gateway.get_space(lot_id, space_id, lock=True)
            txn = self._current_transaction(lot_id, space)
            new_state = rules.exit_vehicle(space.state)
            # Priced on the VIP flag captured at entry, not the space's current flag
            fee = compute_fee(txn.entry_time, now, txn.vehicle_type, txn.is_vip_stay,
                              self.gateway.get_pricing(lot_id), percent)
            closed = self.gateway.close_transaction(lot_id, txn.id, now, fee)
            saved = self.gateway.save_space(lot_id, space_id, new_state)

        logger.info(f"[EXIT] Lot={lot_id} | Space=#{space.number} | Plate={txn.vehicle_plate} | "
                    f"{fee.total_minutes} min | Fee={fee.original_fee} -{fee.discount_applied}% = {fee.final_fee} | "
                    f"By={employee_id or '-'}")
        return ExitResult(transaction=closed, space=saved, fee=fee,
                          discount_code=(discount_code or "").strip().upper() or None)

    def register_exit_by_plate(self, lot_id: str, plate: str, discount_code: Optional[str] = None,
                               discount_percent=0, employee_id: Optional[str] = None,
                               now: Optional[datetime] = None) -> ExitResult:
        txn = self.gateway.find_open_transaction(lot_id, plate or "")
        if txn is None:
            raise NotFoundError(f"No parked vehicle with plate {(plate or '').upper()}")
        return self.register_exit(lot_id, txn.space_id, discount_code, discount_percent, employee_id, now)

    # ── Staff reservations & maintenance ─────────────────────────────────

    def set_reservation(self, lot_id: str, space_id: str, holder: str, until: datetime,
                        now: Optional[datetime] = None) -> SpaceRecord:
        now = self._now(now)
        saved = self._mutate(lot_id, space_id,
                             lambda state: rules.set_manual_reservation(state, holder, until, now))
        logger.info(f"[RESERVATION] Manual hold on #{saved.number} for '{holder}' until {saved.state.reservation.until}")
        return saved

    def clear_reservation(self, lot_id: str, space_id: str) -> SpaceRecord:
        saved = self._mutate(lot_id, space_id, rules.clear_reservation)
        logger.info(f"[RESERVATION] Cleared hold on #{saved.number}")
        return saved

    def set_maintenance(self, lot_id: str, space_id: str, notes: Optional[str] = None) -> SpaceRecord:
        saved = self._mutate(lot_id, space_id, lambda state: rules.set_maintenance(state, notes))
        logger.info(f"[MAINTENANCE] #{saved.number} out of service: {notes or '-'}")
        return saved

    def clear_maintenance(self, lot_id: str, space_id: str) -> SpaceRecord:
        saved = self._mutate(lot_id, space_id, rules.clear_maintenance)
        logger.info(f"[MAINTENANCE] #{saved.number} back in service")
        return saved

    # ── Client reservations ──────────────────────────────────────────────

    def request_client_reservation(self, lot_id: str, client_id: str, vehicle_plate: str,
                                   now: Optional[datetime] = None) -> SpaceRecord:
        now = self._now(now)
        self.gateway.get_lot(lot_id)
        tried = set()
        while True:
            candidates = [s for s in self.gateway.list_spaces(lot_id) if s.id not in tried]
            candidate = workflow.pick_space_for_request(candidates)
            tried.add(candidate.id)
            try:
                saved = self._mutate(lot_id, candidate.id,
                                     lambda state: workflow.request_reservation(state, client_id, vehicle_plate, now))
            except ConflictError as e:
                if e.code != "not_bookable":
                    raise
                logger.debug(f"[RESERVATION] #{candidate.number} taken meanwhile, trying next space")
                continue
            logger.info(f"[RESERVATION] Client {client_id} requested #{saved.number} in {lot_id} "
                        f"for {vehicle_plate.upper()}, pending confirmation")
            return saved

    def accept_client_reservation(self, lot_id: str, space_id: str, owner_id: Optional[str] = None,
                                  now: Optional[datetime] = None) -> SpaceRecord:
        now = self._now(now)
        saved = self._mutate(lot_id, space_id, lambda state: workflow.accept_reservation(state, now))
        logger.info(f"[RESERVATION] Owner {owner_id or '-'} confirmed #{saved.number} "
                    f"(plate {saved.state.reservation.vehicle_plate})")
        return saved

    def reject_client_reservation(self, lot_id: str, space_id: str, owner_id: Optional[str] = None,
                                  now: Optional[datetime] = None) -> SpaceRecord:
        now = self._now(now)
        saved = self._mutate(lot_id, space_id, lambda state: workflow.reject_reservation(state, now))
        logger.info(f"[RESERVATION] Owner {owner_id or '-'} rejected #{saved.number} "
                    f"(plate {saved.state.reservation.vehicle_plate})")
        return saved

    def cancel_client_reservation(self, lot_id: str, space_id: str, client_id: str) -> SpaceRecord:
        saved = self._mutate(lot_id, space_id, lambda state: workflow.cancel_reservation(state, client_id))
        logger.info(f"[RESERVATION] Client {client_id} cancelled #{saved.number}")
        return saved

    # ── Queries ──────────────────────────────────────────────────────────

    def pending_reservations(self, lot_id: str, now: Optional[datetime] = None) -> List[SpaceRecord]:
        return self.gateway.list_pending_reservations(lot_id, self._now(now))

    def client_reservations(self, client_id: str, now: Optional[datetime] = None):
        return self.gateway.list_client_reservations(client_id, self._now(now))

    def next_free_space(self, lot_id: str) -> SpaceRecord:
        """Non-VIP first, then VIP; reserved spaces are skipped."""
        return workflow.pick_space_for_request(self.gateway.list_spaces(lot_id))

    def active_transactions(self, lot_id: str) -> List[TransactionRecord]:
        current = {
            s.state.occupancy.transaction_id
            for s in self.gateway.list_spaces(lot_id)
            if s.state.status == SpaceStatus.OCCUPIED
        }
        return [t for t in self.gateway.list_transactions(lot_id) if t.is_open and t.id in current]
