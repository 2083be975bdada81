# app/routers/lots.py
"""Parking lots: creation, space layout, availability and daily figures."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from app.routers.dependencies import get_gateway
from app.schemas.lot import LotCreate, LotOut, SpaceLayoutUpdate, AvailabilityOut, DailySummaryOut
from app.schemas.space import SpaceOut
from app.services import lot_service
from app.services.sql_gateway import SqlAlchemyGateway

router = APIRouter()


@router.post("/lots", response_model=LotOut, status_code=201, summary="Create a parking lot")
def create_lot(body: LotCreate, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    """Creates the lot with the default layout (20 spaces, first 5 VIP) and default pricing."""
    return LotOut.model_validate(lot_service.create_lot(gateway, body.name, body.address))


@router.get("/lots", response_model=list[LotOut])
def list_lots(gateway: SqlAlchemyGateway = Depends(get_gateway)):
    return [LotOut.model_validate(lot) for lot in gateway.list_lots()]


@router.get("/lots/{lot_id}", response_model=LotOut)
def get_lot(lot_id: str, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    return LotOut.model_validate(gateway.get_lot(lot_id))


@router.put("/lots/{lot_id}/spaces/configure", response_model=list[SpaceOut],
            summary="Replace the lot's space layout")
def configure_spaces(lot_id: str, body: SpaceLayoutUpdate, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    """
    Rebuilds every space as FREE. Reservations and maintenance flags are lost.
    Refused with 409 while any vehicle is parked.
    """
    spaces = lot_service.configure_spaces(gateway, lot_id, body.total_spaces, body.vip_spaces)
    return [SpaceOut.from_record(s) for s in spaces]


@router.get("/lots/{lot_id}/availability", response_model=AvailabilityOut)
def get_availability(lot_id: str, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    return AvailabilityOut.model_validate(lot_service.availability(gateway, lot_id))


@router.get("/lots/{lot_id}/summary/daily", response_model=DailySummaryOut, summary="Entries, exits and income for a day")
def get_daily_summary(lot_id: str, day: Optional[date] = None, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    """Defaults to today."""
    return DailySummaryOut.model_validate(lot_service.daily_summary(gateway, lot_id, day or date.today()))
