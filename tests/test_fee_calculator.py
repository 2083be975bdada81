# tests/test_fee_calculator.py
"""Unit tests for fee computation and discount resolution."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from app.models.transaction import VehicleType
from app.services.errors import ConfigurationError, ValidationError
from app.services.fee_calculator import (
    PricingSettings, RateSettings, compute_fee, parking_duration, resolve_discount,
)

ENTRY = datetime(2024, 5, 10, 10, 0, 0)
CODES = {"NITU10": 10, "SAVE20": 20, "PROMO50": 50}


def pricing(vip="1.5"):
    return PricingSettings(
        vip_multiplier=Decimal(vip),
        rates={VehicleType.AUTO: RateSettings(Decimal("30"), Decimal("0.5"))},
    )


class TestParkingDuration:
    def test_partial_minute_rounds_up(self):
        total, hours, minutes = parking_duration(ENTRY, ENTRY + timedelta(minutes=60, seconds=1))
        assert (total, hours, minutes) == (61, 1, 1)

    def test_exit_before_entry_is_zero(self):
        assert parking_duration(ENTRY, ENTRY - timedelta(minutes=5)) == (0, 0, 0)


class TestComputeFee:
    def test_short_stay_pays_first_hour_fee(self):
        fee = compute_fee(ENTRY, ENTRY + timedelta(minutes=45), VehicleType.AUTO, False, pricing())
        assert fee.original_fee == Decimal("30.00")
        assert fee.final_fee == Decimal("30.00")

    def test_long_stay_is_minutes_times_rate(self):
        fee = compute_fee(ENTRY, ENTRY + timedelta(minutes=65), VehicleType.AUTO, False, pricing())
        assert fee.total_minutes == 65
        assert fee.original_fee == Decimal("32.50")
        assert fee.final_fee == Decimal("32.50")

    def test_vip_multiplier(self):
        fee = compute_fee(ENTRY, ENTRY + timedelta(minutes=65), VehicleType.AUTO, True, pricing())
        assert fee.original_fee == Decimal("48.75")
        assert fee.final_fee == Decimal("48.75")

    def test_vip_with_twenty_percent_discount(self):
        percent = resolve_discount("SAVE20", codes=CODES)
        fee = compute_fee(ENTRY, ENTRY + timedelta(minutes=65), VehicleType.AUTO, True, pricing(), percent)
        assert fee.discount_applied == Decimal("20")
        assert fee.final_fee == Decimal("39.00")

    def test_sixty_minutes_is_still_first_hour(self):
        fee = compute_fee(ENTRY, ENTRY + timedelta(minutes=60), VehicleType.AUTO, False, pricing())
        assert fee.original_fee == Decimal("30.00")

    def test_sixty_one_minutes_switches_to_minutely(self):
        # 61 × 0.5 = 30.5: no overage added on top of the first-hour fee
        fee = compute_fee(ENTRY, ENTRY + timedelta(minutes=61), VehicleType.AUTO, False, pricing())
        assert fee.original_fee == Decimal("30.50")

    def test_zero_minutes_pays_first_hour_fee(self):
        fee = compute_fee(ENTRY, ENTRY, VehicleType.AUTO, False, pricing())
        assert fee.total_minutes == 0
        assert fee.original_fee == Decimal("30.00")

    def test_full_discount_is_free(self):
        fee = compute_fee(ENTRY, ENTRY + timedelta(hours=3), VehicleType.AUTO, False, pricing(), 100)
        assert fee.final_fee == Decimal("0.00")

    def test_final_fee_never_increases_with_discount(self):
        exit_time = ENTRY + timedelta(minutes=137)
        fees = [compute_fee(ENTRY, exit_time, VehicleType.AUTO, True, pricing(), p).final_fee
                for p in (0, 5, 10, 33.3, 50, 99, 100)]
        assert fees == sorted(fees, reverse=True)

    def test_half_up_rounding(self):
        rates = PricingSettings(Decimal("1"), {VehicleType.AUTO: RateSettings(Decimal("30"), Decimal("0.333"))})
        fee = compute_fee(ENTRY, ENTRY + timedelta(minutes=65), VehicleType.AUTO, False, rates)
        # 65 × 0.333 = 21.645
        assert fee.original_fee == Decimal("21.65")

    def test_missing_rate_is_configuration_error(self):
        with pytest.raises(ConfigurationError) as exc:
            compute_fee(ENTRY, ENTRY + timedelta(minutes=10), VehicleType.PICKUP, False, pricing())
        assert exc.value.code == "missing_rate"

    def test_out_of_range_discount_rejected(self):
        with pytest.raises(ValidationError):
            compute_fee(ENTRY, ENTRY + timedelta(minutes=10), VehicleType.AUTO, False, pricing(), 101)

    def test_default_pricing_has_every_vehicle_type(self):
        defaults = PricingSettings.default()
        assert set(defaults.rates) == set(VehicleType)
        fee = compute_fee(ENTRY, ENTRY + timedelta(minutes=30), VehicleType.MOTORCYCLE, False, defaults)
        assert fee.final_fee == Decimal("18.00")


class TestResolveDiscount:
    def test_code_is_case_insensitive(self):
        assert resolve_discount(" save20 ", codes=CODES) == Decimal("20")

    def test_code_overrides_manual_percent(self):
        assert resolve_discount("NITU10", 75, codes=CODES) == Decimal("10")

    def test_manual_percent_used_without_code(self):
        assert resolve_discount(None, 15, codes=CODES) == Decimal("15")

    def test_unknown_code_is_error_not_zero(self):
        with pytest.raises(ValidationError) as exc:
            resolve_discount("BOGUS", codes=CODES)
        assert exc.value.code == "invalid_discount_code"

    @pytest.mark.parametrize("percent", [-1, 100.01, "nan"])
    def test_percent_out_of_range(self, percent):
        with pytest.raises(ValidationError):
            resolve_discount(None, percent, codes=CODES)

    def test_bounds_are_inclusive(self):
        assert resolve_discount(None, 0, codes=CODES) == Decimal("0")
        assert resolve_discount(None, 100, codes=CODES) == Decimal("100")

    def test_non_numeric_percent(self):
        with pytest.raises(ValidationError) as exc:
            resolve_discount(None, "ten", codes=CODES)
        assert exc.value.code == "invalid_discount"
