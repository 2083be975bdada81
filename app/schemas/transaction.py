# app/schemas/transaction.py
from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional

from app.models.transaction import VehicleType
from app.schemas.space import SpaceOut


class TransactionOut(BaseModel):
    id: str
    lot_id: str
    vehicle_plate: str
    vehicle_type: VehicleType
    space_id: str
    space_number: str
    entry_time: datetime
    exit_time: Optional[datetime] = None
    employee_id: str
    is_vip_stay: bool
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    original_fee: Optional[Decimal] = None
    discount_applied: Optional[Decimal] = None
    total_fee: Optional[Decimal] = None

    class Config:
        from_attributes = True


class FeeOut(BaseModel):
    total_minutes: int
    original_fee: Decimal
    discount_applied: Decimal
    final_fee: Decimal

    class Config:
        from_attributes = True


class EntryOut(BaseModel):
    space: SpaceOut
    transaction: TransactionOut
    overridden_reservation: Optional[str] = None


class ExitQuoteOut(BaseModel):
    transaction: TransactionOut
    space: SpaceOut
    exit_time: datetime
    hours: int
    minutes: int
    fee: FeeOut
    discount_code: Optional[str] = None


class ExitOut(BaseModel):
    transaction: TransactionOut
    space: SpaceOut
    fee: FeeOut
    discount_code: Optional[str] = None
