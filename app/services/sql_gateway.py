# app/services/sql_gateway.py
"""
SQLAlchemy implementation of ParkingGateway.
Maps ORM rows to the engine's records and back; one instance per DB session.
"""

import uuid
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.customer import Customer
from app.models.parking_lot import ParkingLot
from app.models.parking_space import ParkingSpace, SpaceStatus, ReservationKind, ClientReservationStatus
from app.models.pricing import PricingSetting
from app.models.transaction import Transaction, VehicleType
from app.services.errors import NotFoundError
from app.services.fee_calculator import PricingSettings
from app.services.gateway import (
    ParkingGateway, LotRecord, SpaceRecord, TransactionRecord, CustomerRecord,
)
from app.services.reservation_workflow import number_key
from app.services.space_state import SpaceState, Occupancy, ManualReservation, ClientReservation
from app.utils.logger import get_logger

logger = get_logger(__name__)


# ── Row <-> record mapping ───────────────────────────────────────────────────

def space_state_from_row(row: ParkingSpace) -> SpaceState:
    status = SpaceStatus(row.status)
    occupancy = None
    if status == SpaceStatus.OCCUPIED:
        occupancy = Occupancy(row.vehicle_plate, row.entry_time, row.current_transaction_id)

    reservation = None
    if row.reservation_kind == ReservationKind.CLIENT.value:
        reservation = ClientReservation(
            client_id=row.reserved_for,
            vehicle_plate=row.reserved_vehicle_plate,
            until=row.reserved_until,
            status=ClientReservationStatus(row.client_reservation_status),
        )
    elif row.reservation_kind == ReservationKind.MANUAL.value:
        reservation = ManualReservation(holder=row.reserved_for, until=row.reserved_until)

    return SpaceState(status=status, occupancy=occupancy, reservation=reservation,
                      maintenance_notes=row.maintenance_notes)


def apply_state_to_row(row: ParkingSpace, state: SpaceState):
    """Overwrite every state column, so stale fields can't survive a transition."""
    row.status = state.status.value

    occupancy = state.occupancy
    row.vehicle_plate = occupancy.vehicle_plate if occupancy else None
    row.entry_time = occupancy.entry_time if occupancy else None
    row.current_transaction_id = occupancy.transaction_id if occupancy else None

    row.reservation_kind = None
    row.reserved_until = None
    row.reserved_for = None
    row.reserved_vehicle_plate = None
    row.client_reservation_status = None
    reservation = state.reservation
    if isinstance(reservation, ClientReservation):
        row.reservation_kind = ReservationKind.CLIENT.value
        row.reserved_until = reservation.until
        row.reserved_for = reservation.client_id
        row.reserved_vehicle_plate = reservation.vehicle_plate
        row.client_reservation_status = reservation.status.value
    elif isinstance(reservation, ManualReservation):
        row.reservation_kind = ReservationKind.MANUAL.value
        row.reserved_until = reservation.until
        row.reserved_for = reservation.holder

    row.maintenance_notes = state.maintenance_notes


def space_record(row: ParkingSpace) -> SpaceRecord:
    return SpaceRecord(id=row.id, lot_id=row.lot_id, number=row.number,
                       is_vip=bool(row.is_vip), state=space_state_from_row(row))


def transaction_record(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        lot_id=row.lot_id,
        vehicle_plate=row.vehicle_plate,
        vehicle_type=VehicleType(row.vehicle_type),
        space_id=row.space_id,
        space_number=row.space_number,
        entry_time=row.entry_time,
        employee_id=row.employee_id,
        is_vip_stay=bool(row.is_vip_stay),
        customer_id=row.customer_id,
        customer_name=row.customer_name,
        exit_time=row.exit_time,
        original_fee=row.original_fee,
        discount_applied=row.discount_applied,
        total_fee=row.total_fee,
    )


def lot_record(row: ParkingLot) -> LotRecord:
    return LotRecord(id=row.id, name=row.name, address=row.address, created_at=row.created_at)


def customer_record(row: Customer) -> CustomerRecord:
    return CustomerRecord(id=row.id, lot_id=row.lot_id, name=row.name, plate=row.plate)


# ── Gateway ──────────────────────────────────────────────────────────────────

class SqlAlchemyGateway(ParkingGateway):

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def atomic(self):
        try:
            yield self
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _lot_row(self, lot_id: str) -> ParkingLot:
        lot = self.db.query(ParkingLot).filter(ParkingLot.id == lot_id).first()
        if not lot:
            raise NotFoundError(f"Parking lot {lot_id} not found")
        return lot

    def _space_row(self, lot_id: str, space_id: str, lock: bool = False) -> ParkingSpace:
        self._lot_row(lot_id)
        q = self.db.query(ParkingSpace).filter(ParkingSpace.lot_id == lot_id, ParkingSpace.id == space_id)
        if lock:
            q = q.with_for_update()
        row = q.first()
        if not row:
            raise NotFoundError(f"Space {space_id} not found in lot {lot_id}")
        return row

    def _transaction_row(self, lot_id: str, transaction_id: str) -> Transaction:
        row = self.db.query(Transaction).filter(
            Transaction.lot_id == lot_id, Transaction.id == transaction_id
        ).first()
        if not row:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return row

    # Lots
    def add_lot(self, lot):
        self.db.add(ParkingLot(id=lot.id, name=lot.name, address=lot.address, created_at=lot.created_at))
        self.db.flush()
        return lot

    def get_lot(self, lot_id):
        return lot_record(self._lot_row(lot_id))

    def list_lots(self):
        return [lot_record(r) for r in self.db.query(ParkingLot).order_by(ParkingLot.created_at).all()]

    # Spaces
    def get_space(self, lot_id, space_id, lock=False):
        return space_record(self._space_row(lot_id, space_id, lock))

    def save_space(self, lot_id, space_id, state):
        row = self._space_row(lot_id, space_id)
        apply_state_to_row(row, state)
        self.db.flush()
        return space_record(row)

    def list_spaces(self, lot_id):
        self._lot_row(lot_id)
        rows = self.db.query(ParkingSpace).filter(ParkingSpace.lot_id == lot_id).all()
        return sorted((space_record(r) for r in rows), key=lambda s: number_key(s.number))

    def replace_spaces(self, lot_id, spaces):
        self._lot_row(lot_id)
        for row in self.db.query(ParkingSpace).filter(ParkingSpace.lot_id == lot_id).all():
            self.db.delete(row)
        self.db.flush()
        for space in spaces:
            row = ParkingSpace(id=space.id, lot_id=lot_id, number=space.number, is_vip=space.is_vip)
            apply_state_to_row(row, space.state)
            self.db.add(row)
        self.db.flush()
        return self.list_spaces(lot_id)

    # Transactions
    def open_transaction(self, lot_id, data):
        self._lot_row(lot_id)
        row = Transaction(
            id=str(uuid.uuid4()),
            lot_id=lot_id,
            vehicle_plate=data.vehicle_plate,
            vehicle_type=VehicleType(data.vehicle_type).value,
            space_id=data.space_id,
            space_number=data.space_number,
            entry_time=data.entry_time,
            employee_id=data.employee_id,
            customer_id=data.customer_id,
            customer_name=data.customer_name,
            is_vip_stay=data.is_vip_stay,
        )
        self.db.add(row)
        self.db.flush()
        return transaction_record(row)

    def close_transaction(self, lot_id, transaction_id, exit_time, fee):
        row = self._transaction_row(lot_id, transaction_id)
        row.exit_time = exit_time
        row.original_fee = fee.original_fee
        row.discount_applied = fee.discount_applied
        row.total_fee = fee.final_fee
        self.db.flush()
        return transaction_record(row)

    def get_transaction(self, lot_id, transaction_id):
        return transaction_record(self._transaction_row(lot_id, transaction_id))

    def find_open_transaction(self, lot_id, plate):
        row = (
            self.db.query(Transaction)
            .filter(
                Transaction.lot_id == lot_id,
                Transaction.vehicle_plate == plate.strip().upper(),
                Transaction.exit_time == None,  # noqa: E711
            )
            .order_by(Transaction.entry_time.desc())
            .first()
        )
        return transaction_record(row) if row else None

    def list_transactions(self, lot_id, start=None, end=None, employee_id=None):
        q = self.db.query(Transaction).filter(Transaction.lot_id == lot_id)
        if end is not None:
            q = q.filter(Transaction.entry_time <= end)
        if start is not None:
            q = q.filter(or_(Transaction.exit_time == None, Transaction.exit_time >= start))  # noqa: E711
        if employee_id:
            q = q.filter(Transaction.employee_id == employee_id)
        return [transaction_record(r) for r in q.order_by(Transaction.entry_time.desc()).all()]

    # Pricing
    def get_pricing(self, lot_id):
        self._lot_row(lot_id)
        row = self.db.query(PricingSetting).filter(PricingSetting.lot_id == lot_id).first()
        if not row:
            raise NotFoundError(f"Pricing for lot {lot_id} not found")
        return PricingSettings.from_dict(row.vip_multiplier, row.rates)

    def save_pricing(self, lot_id, pricing):
        self._lot_row(lot_id)
        row = self.db.query(PricingSetting).filter(PricingSetting.lot_id == lot_id).first()
        if not row:
            row = PricingSetting(lot_id=lot_id)
            self.db.add(row)
        row.vip_multiplier = pricing.vip_multiplier
        row.rates = pricing.rates_as_dict()
        self.db.flush()
        return pricing

    # Reservation queries
    def list_pending_reservations(self, lot_id, now):
        self._lot_row(lot_id)
        rows = (
            self.db.query(ParkingSpace)
            .filter(
                ParkingSpace.lot_id == lot_id,
                ParkingSpace.status == SpaceStatus.FREE.value,
                ParkingSpace.reservation_kind == ReservationKind.CLIENT.value,
                ParkingSpace.client_reservation_status == ClientReservationStatus.PENDING_CONFIRMATION.value,
                ParkingSpace.reserved_until > now,
            )
            .order_by(ParkingSpace.reserved_until)
            .all()
        )
        return [space_record(r) for r in rows]

    def list_client_reservations(self, client_id, now):
        rows = (
            self.db.query(ParkingSpace, ParkingLot.name)
            .join(ParkingLot, ParkingLot.id == ParkingSpace.lot_id)
            .filter(
                ParkingSpace.reservation_kind == ReservationKind.CLIENT.value,
                ParkingSpace.reserved_for == client_id,
                ParkingSpace.status != SpaceStatus.OCCUPIED.value,
                ParkingSpace.reserved_until > now,
            )
            .order_by(ParkingSpace.reserved_until)
            .all()
        )
        return [(space_record(space), lot_name) for space, lot_name in rows]

    # Customers
    def add_customer(self, customer):
        self._lot_row(customer.lot_id)
        self.db.add(Customer(id=customer.id, lot_id=customer.lot_id, name=customer.name, plate=customer.plate))
        self.db.flush()
        return customer

    def list_customers(self, lot_id):
        self._lot_row(lot_id)
        rows = self.db.query(Customer).filter(Customer.lot_id == lot_id).order_by(Customer.name).all()
        return [customer_record(r) for r in rows]

    def find_customer_by_plate(self, lot_id: str, plate: str) -> Optional[CustomerRecord]:
        row = self.db.query(Customer).filter(
            Customer.lot_id == lot_id, Customer.plate == plate.strip().upper()
        ).first()
        return customer_record(row) if row else None
