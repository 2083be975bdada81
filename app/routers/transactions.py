# app/routers/transactions.py
"""Parking stay history."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from app.routers.dependencies import get_engine, get_gateway
from app.schemas.transaction import TransactionOut
from app.services.parking_engine import ParkingEngine
from app.services.space_state import local_naive
from app.services.sql_gateway import SqlAlchemyGateway

router = APIRouter()


@router.get("/lots/{lot_id}/transactions", response_model=list[TransactionOut], summary="Stays in a time window")
def list_transactions(lot_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None,
                      employee_id: Optional[str] = None, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    """
    Stays that overlap [start, end], newest entry first. Vehicles still parked
    count as running until now.
    """
    gateway.get_lot(lot_id)
    start = local_naive(start) if start else None
    end = local_naive(end) if end else None
    return [TransactionOut.model_validate(t) for t in gateway.list_transactions(lot_id, start, end, employee_id)]


@router.get("/lots/{lot_id}/transactions/active", response_model=list[TransactionOut])
def list_active(lot_id: str, engine: ParkingEngine = Depends(get_engine)):
    """Vehicles currently parked."""
    return [TransactionOut.model_validate(t) for t in engine.active_transactions(lot_id)]
