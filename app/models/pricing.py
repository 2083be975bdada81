# app/models/pricing.py
"""
Pricing settings table: exactly one row per lot.
rates is JSON keyed by vehicle type: {"auto": {"first_hour_min_fee": 30, "minutely_rate": 0.5}, ...}
"""

from sqlalchemy import Column, String, Numeric, JSON, ForeignKey
from app.database import Base


class PricingSetting(Base):
    __tablename__ = "pricing_settings"

    lot_id = Column(String(64), ForeignKey("parking_lots.id"), primary_key=True)
    vip_multiplier = Column(Numeric(6, 3), nullable=False)
    rates = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<PricingSetting lot={self.lot_id} vip={self.vip_multiplier}>"
