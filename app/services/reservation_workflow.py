# app/services/reservation_workflow.py
"""
Client-initiated reservation workflow, layered on SpaceState.reservation.

  request ──► PENDING_CONFIRMATION ──accept──► CONFIRMED_BY_OWNER ──entry──► (occupied)
                     │
                     └──reject──► REJECTED_BY_OWNER (identity kept so the client sees it)

A pending reservation blocks vehicle entry entirely (see space_state.check_entry).
A client may cancel its own reservation unless the owner already rejected it.
"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable

from app.models.parking_space import SpaceStatus, ClientReservationStatus
from app.services.errors import ConflictError, ExpiredError, NoAvailabilityError, ValidationError
from app.services.space_state import SpaceState, ClientReservation


def end_of_day(now: datetime) -> datetime:
    """Last millisecond of `now`'s calendar day, same timezone as `now`."""
    return now.replace(hour=23, minute=59, second=59, microsecond=999000)


def number_key(number: str):
    """Sort "2" before "10"; non-numeric labels go last, alphabetically."""
    return (0, int(number), "") if number.isdigit() else (1, 0, number)


def is_bookable(state: SpaceState) -> bool:
    return state.status == SpaceStatus.FREE and state.reservation is None


def pick_space_for_request(spaces: Iterable):
    """
    First bookable non-VIP space, else first bookable VIP space.
    `spaces` are SpaceRecords (anything with .number, .is_vip, .state).
    """
    candidates = sorted((s for s in spaces if is_bookable(s.state)), key=lambda s: number_key(s.number))
    for space in candidates:
        if not space.is_vip:
            return space
    if candidates:
        return candidates[0]
    raise NoAvailabilityError("No spaces available to reserve right now")


def request_reservation(state: SpaceState, client_id: str, vehicle_plate: str, now: datetime) -> SpaceState:
    if not client_id or not client_id.strip():
        raise ValidationError("Client id is required", code="empty_identifier")
    if not vehicle_plate or not vehicle_plate.strip():
        raise ValidationError("Vehicle plate is required", code="empty_identifier")
    if not is_bookable(state):
        raise ConflictError("Space is no longer available for reservation", code="not_bookable")

    return replace(state, reservation=ClientReservation(
        client_id=client_id.strip(),
        vehicle_plate=vehicle_plate.strip().upper(),
        until=end_of_day(now),
        status=ClientReservationStatus.PENDING_CONFIRMATION,
    ))


def _pending_for_decision(state: SpaceState, now: datetime) -> ClientReservation:
    client = state.client_reservation
    if client is None:
        raise ConflictError("Space has no client reservation", code="not_client_reservation")
    if state.status != SpaceStatus.FREE:
        raise ConflictError("Only reservations on free spaces can be decided", code="occupied_conflict")
    if client.status != ClientReservationStatus.PENDING_CONFIRMATION:
        raise ConflictError(f"Reservation is not pending (status: {client.status.value})",
                            code="not_pending")
    if client.until is None or client.until <= now:
        raise ExpiredError("Reservation has expired")
    return client


def accept_reservation(state: SpaceState, now: datetime) -> SpaceState:
    client = _pending_for_decision(state, now)
    return replace(state, reservation=replace(client, status=ClientReservationStatus.CONFIRMED_BY_OWNER))


def reject_reservation(state: SpaceState, now: datetime) -> SpaceState:
    client = _pending_for_decision(state, now)
    # client_id, plate and until stay so the client can see the rejection
    return replace(state, reservation=replace(client, status=ClientReservationStatus.REJECTED_BY_OWNER))


def cancel_reservation(state: SpaceState, client_id: str) -> SpaceState:
    if state.status == SpaceStatus.OCCUPIED:
        raise ConflictError("Cannot cancel the reservation of an occupied space", code="occupied_conflict")
    client = state.client_reservation
    if client is None or client.client_id != client_id:
        raise ConflictError("This space is not reserved by you", code="not_reservation_holder")
    if client.status == ClientReservationStatus.REJECTED_BY_OWNER:
        raise ConflictError("Reservation was already rejected and cannot be cancelled",
                            code="already_rejected")
    return replace(state, reservation=None)


def is_pending_for_owner(state: SpaceState, now: datetime) -> bool:
    client = state.client_reservation
    return (
        client is not None
        and state.status == SpaceStatus.FREE
        and client.status == ClientReservationStatus.PENDING_CONFIRMATION
        and client.until is not None
        and client.until > now
    )


def is_active_for_client(state: SpaceState, client_id: str, now: datetime) -> bool:
    client = state.client_reservation
    return (
        client is not None
        and client.client_id == client_id
        and state.status != SpaceStatus.OCCUPIED
        and client.until is not None
        and client.until > now
    )
