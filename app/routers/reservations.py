# app/routers/reservations.py
"""
Client reservation workflow.
Clients request a space, the lot owner accepts or rejects, and a client may
cancel a request that was not rejected.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.routers.dependencies import get_engine
from app.schemas.space import SpaceOut, ClientReservationOut, ClientReservationRequest
from app.services.parking_engine import ParkingEngine

router = APIRouter()


@router.post("/lots/{lot_id}/client-reservations", response_model=SpaceOut, status_code=201,
             summary="Request a space until end of day")
def request_reservation(lot_id: str, body: ClientReservationRequest, engine: ParkingEngine = Depends(get_engine)):
    """
    Picks the first free regular space (VIP if none left) and marks it pending
    owner confirmation. 409 when nothing is free.
    """
    return SpaceOut.from_record(engine.request_client_reservation(lot_id, body.client_id, body.vehicle_plate))


@router.get("/lots/{lot_id}/client-reservations/pending", response_model=list[SpaceOut])
def list_pending(lot_id: str, engine: ParkingEngine = Depends(get_engine)):
    """Unexpired requests waiting for the owner, soonest expiry first."""
    return [SpaceOut.from_record(s) for s in engine.pending_reservations(lot_id)]


@router.post("/lots/{lot_id}/client-reservations/{space_id}/accept", response_model=SpaceOut)
def accept_reservation(lot_id: str, space_id: str, owner_id: Optional[str] = None,
                       engine: ParkingEngine = Depends(get_engine)):
    return SpaceOut.from_record(engine.accept_client_reservation(lot_id, space_id, owner_id))


@router.post("/lots/{lot_id}/client-reservations/{space_id}/reject", response_model=SpaceOut)
def reject_reservation(lot_id: str, space_id: str, owner_id: Optional[str] = None,
                       engine: ParkingEngine = Depends(get_engine)):
    """The rejected reservation stays visible to the client until it expires."""
    return SpaceOut.from_record(engine.reject_client_reservation(lot_id, space_id, owner_id))


@router.delete("/lots/{lot_id}/client-reservations/{space_id}", response_model=SpaceOut)
def cancel_reservation(lot_id: str, space_id: str, client_id: str = Query(..., min_length=1),
                       engine: ParkingEngine = Depends(get_engine)):
    return SpaceOut.from_record(engine.cancel_client_reservation(lot_id, space_id, client_id))


@router.get("/clients/{client_id}/reservations", response_model=list[ClientReservationOut],
            summary="A client's active reservations across lots")
def list_client_reservations(client_id: str, engine: ParkingEngine = Depends(get_engine)):
    return [
        ClientReservationOut(**SpaceOut.from_record(space).model_dump(), lot_name=lot_name)
        for space, lot_name in engine.client_reservations(client_id)
    ]
