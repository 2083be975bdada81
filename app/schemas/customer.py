# app/schemas/customer.py
from pydantic import BaseModel, Field
from typing import Optional


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    plate: Optional[str] = None


class CustomerOut(BaseModel):
    id: str
    lot_id: str
    name: str
    plate: Optional[str] = None

    class Config:
        from_attributes = True
