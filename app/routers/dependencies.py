# app/routers/dependencies.py
"""Per-request wiring: DB session → gateway → engine."""

from fastapi import Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.parking_engine import ParkingEngine
from app.services.sql_gateway import SqlAlchemyGateway


def get_gateway(db: Session = Depends(get_db)) -> SqlAlchemyGateway:
    return SqlAlchemyGateway(db)


def get_engine(gateway: SqlAlchemyGateway = Depends(get_gateway)) -> ParkingEngine:
    return ParkingEngine(gateway)
