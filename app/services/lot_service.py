# app/services/lot_service.py
"""
Lot administration: creating lots, laying out spaces, pricing, customers,
and the derived counts shown on dashboards (availability, daily activity).
"""

import re
import uuid
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable, List, Optional

from app.config import settings
from app.models.parking_space import SpaceStatus
from app.models.transaction import VehicleType
from app.services.errors import ConflictError, ValidationError
from app.services.fee_calculator import PricingSettings
from app.services.gateway import ParkingGateway, LotRecord, SpaceRecord, CustomerRecord
from app.services.parking_engine import space_locks
from app.services.space_state import FREE_SPACE
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Availability:
    total: int
    free: int
    occupied: int
    reserved: int
    maintenance: int
    vip: int
    free_vip: int


@dataclass(frozen=True)
class DailySummary:
    day: date
    vehicles_entered: int
    vehicles_exited: int
    income: Decimal


def slugify(text: str) -> str:
    text = re.sub(r"\s+", "-", str(text).lower())
    text = re.sub(r"[^\w-]+", "", text)
    return re.sub(r"-{2,}", "-", text).strip("-")


def space_id_for(lot_id: str, number: str) -> str:
    return f"space_{lot_id}_{number}"


def build_spaces(lot_id: str, total: int, vip_numbers: Iterable[str]) -> List[SpaceRecord]:
    """Fresh FREE spaces numbered "1".."total"."""
    if total < 1:
        raise ValidationError("A lot needs at least one space", code="invalid_space_count")
    vip = {str(n).strip() for n in vip_numbers if str(n).strip()}
    unknown = sorted(vip - {str(i) for i in range(1, total + 1)})
    if unknown:
        raise ValidationError(f"VIP spaces out of range: {', '.join(unknown)}", code="invalid_vip_space")
    return [
        SpaceRecord(id=space_id_for(lot_id, str(i)), lot_id=lot_id, number=str(i),
                    is_vip=str(i) in vip, state=FREE_SPACE)
        for i in range(1, total + 1)
    ]


def create_lot(gateway: ParkingGateway, name: str, address: Optional[str] = None,
               now: Optional[datetime] = None) -> LotRecord:
    if not name or not name.strip():
        raise ValidationError("Lot name is required", code="empty_identifier")
    name = name.strip()
    lot = LotRecord(
        id=f"lot_{slugify(name)}_{uuid.uuid4().hex[:4]}",
        name=name,
        address=(address or "").strip() or None,
        created_at=now or datetime.now(),
    )
    count = settings.INITIAL_PARKING_SPACES_COUNT
    vip_count = min(settings.INITIAL_VIP_SPACES_COUNT, count)

    with gateway.atomic():
        gateway.add_lot(lot)
        gateway.replace_spaces(lot.id, build_spaces(lot.id, count, [str(i) for i in range(1, vip_count + 1)]))
        gateway.save_pricing(lot.id, PricingSettings.default())

    logger.info(f"[LOT] Created {lot.id} '{lot.name}' with {count} spaces ({vip_count} VIP)")
    return lot


def configure_spaces(gateway: ParkingGateway, lot_id: str, total: int,
                     vip_numbers: Iterable[str]) -> List[SpaceRecord]:
    """
    Replace the lot's layout. Every current space state is discarded; past
    transactions keep their space_id/space_number. Refused while any vehicle
    is parked, since its open transaction would lose its space.
    """
    new_spaces = build_spaces(lot_id, total, vip_numbers)
    current = gateway.list_spaces(lot_id)

    with ExitStack() as stack:
        for space in sorted(current, key=lambda s: s.id):
            stack.enter_context(space_locks.hold(lot_id, space.id))
        with gateway.atomic():
            occupied = [s.number for s in gateway.list_spaces(lot_id) if s.state.status == SpaceStatus.OCCUPIED]
            if occupied:
                raise ConflictError(f"Cannot reconfigure while spaces are occupied: {', '.join(occupied)}",
                                    code="occupied_conflict")
            saved = gateway.replace_spaces(lot_id, new_spaces)

    logger.info(f"[LOT] {lot_id} reconfigured: {total} spaces, VIP={sorted(s.number for s in saved if s.is_vip)}")
    return saved


def availability(gateway: ParkingGateway, lot_id: str) -> Availability:
    spaces = gateway.list_spaces(lot_id)

    def count(predicate) -> int:
        return sum(1 for s in spaces if predicate(s))

    def truly_free(s) -> bool:
        return s.state.status == SpaceStatus.FREE and not s.state.is_reserved

    return Availability(
        total=len(spaces),
        free=count(truly_free),
        occupied=count(lambda s: s.state.status == SpaceStatus.OCCUPIED),
        reserved=count(lambda s: s.state.is_reserved and s.state.status == SpaceStatus.FREE),
        maintenance=count(lambda s: s.state.status == SpaceStatus.MAINTENANCE),
        vip=count(lambda s: s.is_vip),
        free_vip=count(lambda s: s.is_vip and truly_free(s)),
    )


def daily_summary(gateway: ParkingGateway, lot_id: str, day: date) -> DailySummary:
    start, end = datetime.combine(day, time.min), datetime.combine(day, time.max)
    stays = gateway.list_transactions(lot_id, start=start, end=end)
    exited = [t for t in stays if t.exit_time is not None and start <= t.exit_time <= end]
    return DailySummary(
        day=day,
        vehicles_entered=sum(1 for t in stays if start <= t.entry_time <= end),
        vehicles_exited=len(exited),
        income=sum((Decimal(t.total_fee or 0) for t in exited), Decimal("0")),
    )


def validate_pricing(pricing: PricingSettings):
    if pricing.vip_multiplier < 1:
        raise ValidationError("VIP multiplier must be at least 1", code="invalid_pricing")
    missing = [vt.value for vt in VehicleType if vt not in pricing.rates]
    if missing:
        raise ValidationError(f"Missing rates for: {', '.join(missing)}", code="invalid_pricing")
    for vt, rate in pricing.rates.items():
        if rate.first_hour_min_fee < 0 or rate.minutely_rate < 0:
            raise ValidationError(f"Rates for {vt.value} cannot be negative", code="invalid_pricing")


def update_pricing(gateway: ParkingGateway, lot_id: str, pricing: PricingSettings) -> PricingSettings:
    validate_pricing(pricing)
    with gateway.atomic():
        saved = gateway.save_pricing(lot_id, pricing)
    logger.info(f"[LOT] Pricing updated for {lot_id}: VIP x{pricing.vip_multiplier}")
    return saved


def add_customer(gateway: ParkingGateway, lot_id: str, name: str, plate: Optional[str] = None) -> CustomerRecord:
    if not name or not name.strip():
        raise ValidationError("Customer name is required", code="empty_identifier")
    customer = CustomerRecord(
        id=str(uuid.uuid4()),
        lot_id=lot_id,
        name=name.strip(),
        plate=(plate or "").strip().upper() or None,
    )
    with gateway.atomic():
        return gateway.add_customer(customer)
