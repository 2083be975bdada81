# app/schemas/lot.py
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional


class LotCreate(BaseModel):
    name: str = Field(..., min_length=1)
    address: Optional[str] = None


class LotOut(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SpaceLayoutUpdate(BaseModel):
    total_spaces: int = Field(..., ge=1)
    vip_spaces: List[str] = []


class AvailabilityOut(BaseModel):
    total: int
    free: int
    occupied: int
    reserved: int
    maintenance: int
    vip: int
    free_vip: int

    class Config:
        from_attributes = True


class DailySummaryOut(BaseModel):
    day: date
    vehicles_entered: int
    vehicles_exited: int
    income: Decimal

    class Config:
        from_attributes = True
