# app/schemas/pricing.py
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Dict

from app.models.transaction import VehicleType
from app.services.fee_calculator import PricingSettings, RateSettings


class RateIn(BaseModel):
    first_hour_min_fee: Decimal = Field(..., ge=0)
    minutely_rate: Decimal = Field(..., ge=0)


class PricingIn(BaseModel):
    vip_multiplier: Decimal = Field(..., ge=1)
    rates: Dict[VehicleType, RateIn]

    def to_settings(self) -> PricingSettings:
        return PricingSettings(
            vip_multiplier=self.vip_multiplier,
            rates={vt: RateSettings(r.first_hour_min_fee, r.minutely_rate) for vt, r in self.rates.items()},
        )


class PricingOut(BaseModel):
    vip_multiplier: Decimal
    rates: Dict[str, RateIn]

    @classmethod
    def from_settings(cls, pricing: PricingSettings) -> "PricingOut":
        return cls(
            vip_multiplier=pricing.vip_multiplier,
            rates={
                vt.value: RateIn(first_hour_min_fee=r.first_hour_min_fee, minutely_rate=r.minutely_rate)
                for vt, r in pricing.rates.items()
            },
        )
