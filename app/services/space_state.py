# app/services/space_state.py
"""
Parking space state machine.

A space has two axes:
  - status / occupancy:  FREE | OCCUPIED(plate, entry, txn) | MAINTENANCE(notes)
  - reservation:         None | ManualReservation | ClientReservation
Reservations only compose with FREE. SpaceState validates this on construction,
so an illegal combination can't be built, saved or returned.

Every transition is a pure function: it returns a new SpaceState or raises a
domain error, and never touches storage.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Union

from app.models.parking_space import SpaceStatus, ClientReservationStatus
from app.services.errors import ConflictError, OverrideRequiredError, ValidationError


@dataclass(frozen=True)
class Occupancy:
    vehicle_plate: str
    entry_time: datetime
    transaction_id: str


@dataclass(frozen=True)
class ManualReservation:
    holder: str                    # plate or free text typed by staff
    until: Optional[datetime]


@dataclass(frozen=True)
class ClientReservation:
    client_id: str
    vehicle_plate: str
    until: datetime
    status: ClientReservationStatus


Reservation = Union[ManualReservation, ClientReservation]


@dataclass(frozen=True)
class SpaceState:
    status: SpaceStatus = SpaceStatus.FREE
    occupancy: Optional[Occupancy] = None
    reservation: Optional[Reservation] = None
    maintenance_notes: Optional[str] = None

    def __post_init__(self):
        occupied = self.status == SpaceStatus.OCCUPIED
        if occupied != (self.occupancy is not None):
            raise ValidationError("Occupancy details must be set exactly when a space is occupied",
                                  code="invalid_space_state")
        if self.reservation is not None and self.status in (SpaceStatus.OCCUPIED, SpaceStatus.MAINTENANCE):
            raise ValidationError(f"A {self.status.value} space cannot hold a reservation",
                                  code="invalid_space_state")
        if self.maintenance_notes and self.status != SpaceStatus.MAINTENANCE:
            raise ValidationError("Maintenance notes are only kept while in maintenance",
                                  code="invalid_space_state")

    @property
    def is_reserved(self) -> bool:
        return self.reservation is not None

    @property
    def client_reservation(self) -> Optional[ClientReservation]:
        if isinstance(self.reservation, ClientReservation):
            return self.reservation
        return None

    @property
    def client_status(self) -> Optional[ClientReservationStatus]:
        client = self.client_reservation
        return client.status if client else None


FREE_SPACE = SpaceState()


def _reject_if_occupied(state: SpaceState, action: str):
    if state.status == SpaceStatus.OCCUPIED:
        raise ConflictError(f"Cannot {action} an occupied space", code="occupied_conflict")


def mismatch_message(state: SpaceState, plate: str) -> Optional[str]:
    """Prompt for staff when the space is held for someone else, else None."""
    reservation = state.reservation
    plate = plate.strip().upper()

    if isinstance(reservation, ClientReservation):
        if (reservation.status == ClientReservationStatus.CONFIRMED_BY_OWNER
                and reservation.vehicle_plate
                and reservation.vehicle_plate.upper() != plate):
            return (f"Space is reserved for plate {reservation.vehicle_plate} (confirmed client). "
                    f"Entered plate is {plate}. Occupying it will drop the client's reservation.")
        return None

    if isinstance(reservation, ManualReservation) and reservation.holder.upper() != plate:
        return (f"Space is reserved for {reservation.holder}. Entered plate is {plate}. "
                f"Occupying it will drop the manual reservation.")
    return None


def check_entry(state: SpaceState, plate: str, override: bool = False):
    """Raises if a vehicle with `plate` may not enter right now."""
    if not plate or not plate.strip():
        raise ValidationError("Vehicle plate is required", code="empty_identifier")
    if state.status == SpaceStatus.MAINTENANCE:
        raise ConflictError("Space is under maintenance and cannot be occupied",
                            code="maintenance_conflict")
    if state.status == SpaceStatus.OCCUPIED:
        raise ConflictError("Space is already occupied", code="occupied_conflict")
    if state.status != SpaceStatus.FREE:
        raise ConflictError(f"Space is {state.status.value} and cannot be occupied",
                            code="not_free")
    if state.client_status == ClientReservationStatus.PENDING_CONFIRMATION:
        raise ConflictError("Space has a client reservation pending owner confirmation",
                            code="pending_reservation")

    message = mismatch_message(state, plate)
    if message and not override:
        raise OverrideRequiredError(message)


def enter_vehicle(state: SpaceState, plate: str, transaction_id: str, entry_time: datetime,
                  override: bool = False) -> SpaceState:
    check_entry(state, plate, override)
    return SpaceState(
        status=SpaceStatus.OCCUPIED,
        occupancy=Occupancy(plate.strip().upper(), entry_time, transaction_id),
    )


def exit_vehicle(state: SpaceState) -> SpaceState:
    if state.status != SpaceStatus.OCCUPIED:
        raise ConflictError("Space is not occupied", code="not_occupied")
    # Reservations are never restored on exit
    return FREE_SPACE


def local_naive(value) -> datetime:
    """Engine times are naive local; aware values are converted to local time."""
    if not isinstance(value, datetime):
        raise ValidationError(f"'{value}' is not a date and time", code="invalid_date")
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def set_manual_reservation(state: SpaceState, holder: str, until: datetime, now: datetime) -> SpaceState:
    _reject_if_occupied(state, "reserve")
    if state.status == SpaceStatus.MAINTENANCE:
        raise ConflictError("Cannot reserve a space under maintenance", code="maintenance_conflict")
    until = local_naive(until)
    if until <= local_naive(now):
        raise ValidationError("Reservation end must be in the future", code="past_date")
    if not holder or not holder.strip():
        raise ValidationError("Reservation must say who it is for", code="empty_identifier")
    return replace(state, reservation=ManualReservation(holder.strip(), until))


def clear_reservation(state: SpaceState) -> SpaceState:
    _reject_if_occupied(state, "change the reservation of")
    return replace(state, reservation=None)


def set_maintenance(state: SpaceState, notes: Optional[str] = None) -> SpaceState:
    _reject_if_occupied(state, "put into maintenance")
    return SpaceState(
        status=SpaceStatus.MAINTENANCE,
        maintenance_notes=(notes or "").strip() or None,
    )


def clear_maintenance(state: SpaceState) -> SpaceState:
    _reject_if_occupied(state, "clear maintenance on")
    return replace(state, status=SpaceStatus.FREE, maintenance_notes=None)
