# app/models/parking_space.py
"""
Parking spaces table: one row per numbered slot in a lot.
Occupancy columns and reservation columns are mutually exclusive; the
rules live in app/services/space_state.py, this table only stores them.
"""

from enum import Enum

from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey
from app.database import Base


class SpaceStatus(str, Enum):
    FREE = "free"
    OCCUPIED = "occupied"
    RESERVED = "reserved"          # Legacy value, no transition produces it
    MAINTENANCE = "maintenance"


class ReservationKind(str, Enum):
    MANUAL = "manual"              # Staff hold, free text or a plate
    CLIENT = "client"              # Registered client, needs owner confirmation


class ClientReservationStatus(str, Enum):
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED_BY_OWNER = "confirmed_by_owner"
    REJECTED_BY_OWNER = "rejected_by_owner"


class ParkingSpace(Base):
    __tablename__ = "parking_spaces"

    id = Column(String(100), primary_key=True)
    lot_id = Column(String(64), ForeignKey("parking_lots.id"), nullable=False, index=True)
    number = Column(String(20), nullable=False)
    is_vip = Column(Boolean, default=False, nullable=False)
    status = Column(String(20), default=SpaceStatus.FREE.value, nullable=False, index=True)

    # Set iff status == occupied
    vehicle_plate = Column(String(20))
    entry_time = Column(DateTime)
    current_transaction_id = Column(String(36))

    # Reservation (null kind = not reserved)
    reservation_kind = Column(String(10))
    reserved_until = Column(DateTime)
    reserved_for = Column(String(100))           # Manual holder text or client id
    reserved_vehicle_plate = Column(String(20))  # Plate declared by a client
    client_reservation_status = Column(String(30), index=True)

    maintenance_notes = Column(Text)

    @property
    def is_reserved(self) -> bool:
        return self.reservation_kind is not None

    def __repr__(self):
        return f"<ParkingSpace {self.id} #{self.number} status={self.status}>"
