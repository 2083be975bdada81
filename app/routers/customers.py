# app/routers/customers.py
"""Known customers of a lot, matched by plate on vehicle entry."""

from fastapi import APIRouter, Depends

from app.routers.dependencies import get_gateway
from app.schemas.customer import CustomerCreate, CustomerOut
from app.services import lot_service
from app.services.sql_gateway import SqlAlchemyGateway

router = APIRouter()


@router.get("/lots/{lot_id}/customers", response_model=list[CustomerOut])
def list_customers(lot_id: str, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    return [CustomerOut.model_validate(c) for c in gateway.list_customers(lot_id)]


@router.post("/lots/{lot_id}/customers", response_model=CustomerOut, status_code=201)
def add_customer(lot_id: str, body: CustomerCreate, gateway: SqlAlchemyGateway = Depends(get_gateway)):
    return CustomerOut.model_validate(lot_service.add_customer(gateway, lot_id, body.name, body.plate))
