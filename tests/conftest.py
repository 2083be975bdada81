# tests/conftest.py
"""Shared fixtures. Points the app at in-memory SQLite before anything imports it."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from datetime import datetime

from app.services.gateway import InMemoryGateway, LotRecord
from app.services.lot_service import build_spaces
from app.services.fee_calculator import PricingSettings

LOT_ID = "lot_test_0001"
NOW = datetime(2024, 5, 10, 10, 0, 0)


@pytest.fixture
def gateway():
    """In-memory lot with spaces 1-6; spaces 1 and 2 are VIP."""
    gw = InMemoryGateway()
    with gw.atomic():
        gw.add_lot(LotRecord(id=LOT_ID, name="Test Lot", address=None, created_at=NOW))
        gw.replace_spaces(LOT_ID, build_spaces(LOT_ID, 6, ["1", "2"]))
        gw.save_pricing(LOT_ID, PricingSettings.default())
    return gw


@pytest.fixture
def db_session():
    """Fresh tables on the shared in-memory SQLite engine."""
    from app.database import Base, SessionLocal, engine, create_tables

    create_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
