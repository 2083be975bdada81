# app/models/customer.py
"""
Lot customers: walk-in regulars known by plate, not login accounts.
Looked up by plate on vehicle entry to tag the transaction.
"""

from sqlalchemy import Column, String, ForeignKey
from app.database import Base


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True)
    lot_id = Column(String(64), ForeignKey("parking_lots.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    plate = Column(String(20), index=True)

    def __repr__(self):
        return f"<Customer {self.name} plate={self.plate}>"
