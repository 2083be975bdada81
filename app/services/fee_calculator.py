# app/services/fee_calculator.py
"""
Parking fee computation. Pure functions, no DB access.

Pricing rule per vehicle type:
  - stay of 60 minutes or less  → flat first_hour_min_fee
  - stay over 60 minutes        → total_minutes × minutely_rate (not fee + overage)
  - VIP stay                    → × vip_multiplier, before any discount
Minutes are rounded up: 60m01s is a 61-minute stay.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Tuple

from app.config import settings
from app.models.transaction import VehicleType
from app.services.errors import ConfigurationError, ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
FIRST_HOUR_MINUTES = 60

DEFAULT_RATES = {
    VehicleType.AUTO: ("30", "0.5"),
    VehicleType.PICKUP: ("42", "0.7"),
    VehicleType.MOTORCYCLE: ("18", "0.3"),
}


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal) -> Decimal:
    """Half-up to cents, never negative."""
    return max(ZERO, amount.quantize(CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class RateSettings:
    first_hour_min_fee: Decimal
    minutely_rate: Decimal


@dataclass(frozen=True)
class PricingSettings:
    vip_multiplier: Decimal
    rates: Dict[VehicleType, RateSettings] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "PricingSettings":
        return cls(
            vip_multiplier=to_decimal(settings.DEFAULT_VIP_MULTIPLIER),
            rates={
                vt: RateSettings(Decimal(fee), Decimal(rate))
                for vt, (fee, rate) in DEFAULT_RATES.items()
            },
        )

    @classmethod
    def from_dict(cls, vip_multiplier, rates: dict) -> "PricingSettings":
        """Build from the JSON shape stored in pricing_settings.rates."""
        return cls(
            vip_multiplier=to_decimal(vip_multiplier),
            rates={
                VehicleType(key): RateSettings(
                    first_hour_min_fee=to_decimal(value["first_hour_min_fee"]),
                    minutely_rate=to_decimal(value["minutely_rate"]),
                )
                for key, value in rates.items()
            },
        )

    def rates_as_dict(self) -> dict:
        return {
            vt.value: {
                "first_hour_min_fee": float(rate.first_hour_min_fee),
                "minutely_rate": float(rate.minutely_rate),
            }
            for vt, rate in self.rates.items()
        }

    def rate_for(self, vehicle_type) -> RateSettings:
        rate = self.rates.get(vehicle_type)
        if rate is None:
            raise ConfigurationError(
                f"No rate configured for vehicle type '{getattr(vehicle_type, 'value', vehicle_type)}'",
                code="missing_rate",
            )
        return rate


@dataclass(frozen=True)
class FeeBreakdown:
    total_minutes: int
    original_fee: Decimal
    discount_applied: Decimal      # percent
    final_fee: Decimal


def parking_duration(entry_time: datetime, exit_time: datetime) -> Tuple[int, int, int]:
    """Returns (total_minutes, hours, minutes). Partial minutes count as a full minute."""
    seconds = (exit_time - entry_time).total_seconds()
    total_minutes = max(0, math.ceil(seconds / 60))
    return total_minutes, total_minutes // 60, total_minutes % 60


def resolve_discount(discount_code: Optional[str] = None, discount_percent=0,
                     codes: Optional[Dict[str, float]] = None) -> Decimal:
    """
    Turn operator input into a discount percent.
    A code wins over a manually typed percent; an unknown code is an error,
    not a silent zero.
    """
    table = {k.upper(): v for k, v in (codes if codes is not None else settings.DISCOUNT_CODES).items()}
    code = (discount_code or "").strip().upper()

    if code:
        if code not in table:
            raise ValidationError(f"Invalid discount code '{code}'", code="invalid_discount_code")
        percent = to_decimal(table[code])
    else:
        try:
            percent = to_decimal(discount_percent if discount_percent is not None else 0)
        except ArithmeticError:
            raise ValidationError(f"Discount percent '{discount_percent}' is not a number",
                                  code="invalid_discount")

    _check_discount_range(percent)
    return percent


def _check_discount_range(percent: Decimal):
    if not percent.is_finite() or percent < ZERO or percent > HUNDRED:
        raise ValidationError(f"Discount percent must be between 0 and 100, got {percent}",
                              code="discount_out_of_range")


def compute_fee(entry_time: datetime, exit_time: datetime, vehicle_type, is_vip: bool,
                pricing: PricingSettings, discount_percent=0) -> FeeBreakdown:
    rate = pricing.rate_for(vehicle_type)
    percent = to_decimal(discount_percent)
    _check_discount_range(percent)

    total_minutes, _, _ = parking_duration(entry_time, exit_time)

    if total_minutes <= FIRST_HOUR_MINUTES:
        original = rate.first_hour_min_fee
    else:
        original = total_minutes * rate.minutely_rate

    if is_vip:
        original = original * pricing.vip_multiplier

    original = round_money(original)
    final = round_money(original - original * percent / HUNDRED)

    return FeeBreakdown(
        total_minutes=total_minutes,
        original_fee=original,
        discount_applied=percent,
        final_fee=final,
    )
