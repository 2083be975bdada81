# app/routers/pricing.py
"""Per-lot pricing: VIP multiplier and rates per vehicle type."""

from fastapi import APIRouter, Depends

from app.routers.dependencies import get_gateway
from app.schemas.pricing import PricingIn, PricingOut
from app.services import lot_service
from app.services.sql_gateway import SqlAlchemyGateway

router = APIRouter()


@router.get("/lots/{lot_id}/pricing", response_model=PricingOut)
def get_pricing(lot_id: str, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    return PricingOut.from_settings(gateway.get_pricing(lot_id))


@router.put("/lots/{lot_id}/pricing", response_model=PricingOut, summary="Replace pricing settings")
def update_pricing(lot_id: str, body: PricingIn, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    """Every vehicle type needs a rate. Applies to exits from now on, including vehicles already parked."""
    return PricingOut.from_settings(lot_service.update_pricing(gateway, lot_id, body.to_settings()))
