# app/models/parking_lot.py
"""
Parking lots table: the tenancy boundary.
Spaces, transactions, pricing and customers all hang off lot_id.
"""

from sqlalchemy import Column, String, DateTime
from app.database import Base


class ParkingLot(Base):
    __tablename__ = "parking_lots"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    address = Column(String(300))
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<ParkingLot {self.id} name={self.name}>"
