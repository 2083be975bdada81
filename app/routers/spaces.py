# app/routers/spaces.py
"""
Operator actions on individual spaces: vehicle entry/exit, staff
reservations and maintenance.
"""

from fastapi import APIRouter, Depends

from app.routers.dependencies import get_engine, get_gateway
from app.schemas.space import (
    SpaceOut, EntryRequest, ExitRequest, ExitByPlateRequest, ManualReservationRequest, MaintenanceRequest,
)
from app.schemas.transaction import TransactionOut, FeeOut, EntryOut, ExitOut, ExitQuoteOut
from app.services.parking_engine import ParkingEngine, ExitResult
from app.services.sql_gateway import SqlAlchemyGateway

router = APIRouter()


def exit_out(result: ExitResult) -> ExitOut:
    return ExitOut(
        transaction=TransactionOut.model_validate(result.transaction),
        space=SpaceOut.from_record(result.space),
        fee=FeeOut.model_validate(result.fee),
        discount_code=result.discount_code,
    )


@router.get("/lots/{lot_id}/spaces", response_model=list[SpaceOut])
def list_spaces(lot_id: str, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    """All spaces of the lot ordered by number."""
    return [SpaceOut.from_record(s) for s in gateway.list_spaces(lot_id)]


@router.get("/lots/{lot_id}/spaces/next-free", response_model=SpaceOut, summary="Suggest a space for a walk-in")
def next_free_space(lot_id: str, engine: ParkingEngine = Depends(get_engine)):
    """First free, unreserved regular space; VIP spaces only when no regular one is left."""
    return SpaceOut.from_record(engine.next_free_space(lot_id))


@router.post("/lots/{lot_id}/spaces/{space_id}/entry", response_model=EntryOut, status_code=201,
             summary="Register vehicle entry")
def register_entry(lot_id: str, space_id: str, body: EntryRequest, engine: ParkingEngine = Depends(get_engine)):
    """
    Occupies the space and opens a transaction.
    If the space is held for another plate the call fails with 409 and
    `override_required: true`; repeat it with `override: true` to proceed.
    """
    result = engine.register_entry(
        lot_id, space_id, body.vehicle_plate, body.vehicle_type, body.employee_id,
        override=body.override, customer_name=body.customer_name,
    )
    return EntryOut(
        space=SpaceOut.from_record(result.space),
        transaction=TransactionOut.model_validate(result.transaction),
        overridden_reservation=result.overridden_reservation,
    )


@router.post("/lots/{lot_id}/spaces/{space_id}/exit/quote", response_model=ExitQuoteOut,
             summary="Preview the exit fee")
def quote_exit(lot_id: str, space_id: str, body: ExitRequest, engine: ParkingEngine = Depends(get_engine)):
    """Computes the fee as of now without closing anything."""
    quote = engine.quote_exit(lot_id, space_id, body.discount_code, body.discount_percent)
    return ExitQuoteOut(
        transaction=TransactionOut.model_validate(quote.transaction),
        space=SpaceOut.from_record(quote.space),
        exit_time=quote.exit_time,
        hours=quote.hours,
        minutes=quote.minutes,
        fee=FeeOut.model_validate(quote.fee),
        discount_code=quote.discount_code,
    )


@router.post("/lots/{lot_id}/spaces/{space_id}/exit", response_model=ExitOut, summary="Register vehicle exit")
def register_exit(lot_id: str, space_id: str, body: ExitRequest, engine: ParkingEngine = Depends(get_engine)):
    result = engine.register_exit(lot_id, space_id, body.discount_code, body.discount_percent, body.employee_id)
    return exit_out(result)


@router.post("/lots/{lot_id}/exit-by-plate", response_model=ExitOut, summary="Register exit by plate")
def register_exit_by_plate(lot_id: str, body: ExitByPlateRequest, engine: ParkingEngine = Depends(get_engine)):
    """Finds the parked vehicle by plate, then exits it like the per-space call."""
    result = engine.register_exit_by_plate(
        lot_id, body.vehicle_plate, body.discount_code, body.discount_percent, body.employee_id,
    )
    return exit_out(result)


@router.put("/lots/{lot_id}/spaces/{space_id}/reservation", response_model=SpaceOut,
            summary="Hold a space for a plate or name")
def set_reservation(lot_id: str, space_id: str, body: ManualReservationRequest,
                    engine: ParkingEngine = Depends(get_engine)):
    return SpaceOut.from_record(engine.set_reservation(lot_id, space_id, body.reserved_for, body.reserved_until))


@router.delete("/lots/{lot_id}/spaces/{space_id}/reservation", response_model=SpaceOut)
def clear_reservation(lot_id: str, space_id: str, engine: ParkingEngine = Depends(get_engine)):
    """Drops any reservation on the space, staff or client."""
    return SpaceOut.from_record(engine.clear_reservation(lot_id, space_id))


@router.put("/lots/{lot_id}/spaces/{space_id}/maintenance", response_model=SpaceOut)
def set_maintenance(lot_id: str, space_id: str, body: MaintenanceRequest,
                    engine: ParkingEngine = Depends(get_engine)):
    """Takes the space out of service. Any reservation on it is dropped."""
    return SpaceOut.from_record(engine.set_maintenance(lot_id, space_id, body.notes))


@router.delete("/lots/{lot_id}/spaces/{space_id}/maintenance", response_model=SpaceOut)
def clear_maintenance(lot_id: str, space_id: str, engine: ParkingEngine = Depends(get_engine)):
    return SpaceOut.from_record(engine.clear_maintenance(lot_id, space_id))
