# app/schemas/space.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from app.services.gateway import SpaceRecord
from app.services.space_state import ClientReservation, ManualReservation


class SpaceOut(BaseModel):
    id: str
    lot_id: str
    number: str
    is_vip: bool
    status: str
    vehicle_plate: Optional[str] = None
    entry_time: Optional[datetime] = None
    current_transaction_id: Optional[str] = None
    is_reserved: bool = False
    reservation_kind: Optional[str] = None
    reserved_until: Optional[datetime] = None
    reserved_for: Optional[str] = None
    reserved_vehicle_plate: Optional[str] = None
    client_reservation_status: Optional[str] = None
    maintenance_notes: Optional[str] = None

    @classmethod
    def from_record(cls, space: SpaceRecord) -> "SpaceOut":
        state = space.state
        out = cls(
            id=space.id,
            lot_id=space.lot_id,
            number=space.number,
            is_vip=space.is_vip,
            status=state.status.value,
            is_reserved=state.is_reserved,
            maintenance_notes=state.maintenance_notes,
        )
        if state.occupancy:
            out.vehicle_plate = state.occupancy.vehicle_plate
            out.entry_time = state.occupancy.entry_time
            out.current_transaction_id = state.occupancy.transaction_id

        reservation = state.reservation
        if isinstance(reservation, ClientReservation):
            out.reservation_kind = "client"
            out.reserved_until = reservation.until
            out.reserved_for = reservation.client_id
            out.reserved_vehicle_plate = reservation.vehicle_plate
            out.client_reservation_status = reservation.status.value
        elif isinstance(reservation, ManualReservation):
            out.reservation_kind = "manual"
            out.reserved_until = reservation.until
            out.reserved_for = reservation.holder
        return out


class ClientReservationOut(SpaceOut):
    lot_name: str


class EntryRequest(BaseModel):
    vehicle_plate: str = Field(..., min_length=1)
    vehicle_type: str = "auto"
    employee_id: str = Field(..., min_length=1)
    customer_name: Optional[str] = None
    override: bool = False      # staff confirmed the reservation mismatch prompt


class ExitRequest(BaseModel):
    discount_code: Optional[str] = None
    discount_percent: float = 0
    employee_id: Optional[str] = None


class ExitByPlateRequest(ExitRequest):
    vehicle_plate: str = Field(..., min_length=1)


class ManualReservationRequest(BaseModel):
    reserved_for: str = Field(..., min_length=1)
    reserved_until: datetime


class MaintenanceRequest(BaseModel):
    notes: Optional[str] = None


class ClientReservationRequest(BaseModel):
    client_id: str = Field(..., min_length=1)
    vehicle_plate: str = Field(..., min_length=1)
