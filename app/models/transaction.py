# app/models/transaction.py
"""
Transactions table: one row per parking stay.
Created on vehicle entry, fee columns filled exactly once on exit, never deleted.
space_id is a weak reference: lot reconfiguration removes spaces, not history.
"""

from enum import Enum

from sqlalchemy import Column, String, DateTime, Boolean, Numeric, ForeignKey
from app.database import Base


class VehicleType(str, Enum):
    AUTO = "auto"
    PICKUP = "pickup"
    MOTORCYCLE = "motorcycle"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True)
    lot_id = Column(String(64), ForeignKey("parking_lots.id"), nullable=False, index=True)
    vehicle_plate = Column(String(20), nullable=False, index=True)
    vehicle_type = Column(String(20), nullable=False)
    space_id = Column(String(100), nullable=False)
    space_number = Column(String(20), nullable=False)
    entry_time = Column(DateTime, nullable=False, index=True)
    exit_time = Column(DateTime, index=True)       # null while parked
    original_fee = Column(Numeric(10, 2))
    discount_applied = Column(Numeric(5, 2))       # percent 0-100
    total_fee = Column(Numeric(10, 2))
    employee_id = Column(String(100), nullable=False)
    customer_id = Column(String(36))
    customer_name = Column(String(200))
    is_vip_stay = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<Transaction {self.id} plate={self.vehicle_plate} space={self.space_number}>"
