# tests/test_sql_gateway.py
"""SqlAlchemyGateway against in-memory SQLite."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import timedelta
from decimal import Decimal
from app.models.parking_space import ParkingSpace, SpaceStatus, ClientReservationStatus
from app.models.transaction import Transaction
from app.services import lot_service
from app.services.errors import ConflictError, NotFoundError
from app.services.parking_engine import ParkingEngine, SpaceLocks
from app.services.space_state import SpaceState, ManualReservation
from app.services.sql_gateway import SqlAlchemyGateway, apply_state_to_row, space_state_from_row

from conftest import NOW


@pytest.fixture
def gateway(db_session):
    return SqlAlchemyGateway(db_session)


@pytest.fixture
def lot(gateway):
    return lot_service.create_lot(gateway, "SQL Lot", now=NOW)


@pytest.fixture
def engine(gateway):
    return ParkingEngine(gateway, locks=SpaceLocks(), clock=lambda: NOW)


def space_row(db, lot_id, number):
    return db.query(ParkingSpace).filter(ParkingSpace.lot_id == lot_id, ParkingSpace.number == number).one()


class TestRowMapping:
    def test_manual_reservation_round_trip(self):
        row = ParkingSpace(id="s1", lot_id="l1", number="1", is_vip=False)
        state = SpaceState(reservation=ManualReservation("Guest", NOW))
        apply_state_to_row(row, state)
        assert row.reservation_kind == "manual"
        assert row.is_reserved
        assert space_state_from_row(row) == state

    def test_clearing_state_nulls_every_column(self):
        row = ParkingSpace(id="s1", lot_id="l1", number="1", is_vip=False)
        apply_state_to_row(row, SpaceState(reservation=ManualReservation("Guest", NOW)))
        apply_state_to_row(row, SpaceState())
        assert row.status == "free"
        assert (row.reservation_kind, row.reserved_for, row.reserved_until) == (None, None, None)


class TestSqlAlchemyGateway:
    def test_create_lot_persists_layout_and_pricing(self, gateway, lot, db_session):
        assert db_session.query(ParkingSpace).filter(ParkingSpace.lot_id == lot.id).count() == 20
        assert gateway.get_pricing(lot.id).vip_multiplier == Decimal("1.5")
        assert [s.number for s in gateway.list_spaces(lot.id)][:3] == ["1", "2", "3"]

    def test_unknown_lot(self, gateway):
        with pytest.raises(NotFoundError):
            gateway.get_lot("lot_missing")

    def test_entry_and_exit_round_trip(self, engine, lot, db_session):
        space = space_row(db_session, lot.id, "7")
        entry = engine.register_entry(lot.id, space.id, "abc123", "auto", "emp-1")

        db_session.expire_all()
        row = space_row(db_session, lot.id, "7")
        assert row.status == "occupied"
        assert row.vehicle_plate == "ABC123"
        assert row.current_transaction_id == entry.transaction.id

        result = engine.register_exit(lot.id, space.id, discount_code="NITU10", now=NOW + timedelta(minutes=65))
        assert result.transaction.total_fee == Decimal("29.25")

        db_session.expire_all()
        txn = db_session.query(Transaction).filter(Transaction.id == entry.transaction.id).one()
        assert txn.exit_time == NOW + timedelta(minutes=65)
        assert txn.total_fee == Decimal("29.25")
        assert space_row(db_session, lot.id, "7").status == "free"

    def test_failed_entry_is_rolled_back(self, engine, lot, db_session):
        space = space_row(db_session, lot.id, "7")
        engine.set_maintenance(lot.id, space.id, "paint")
        with pytest.raises(ConflictError):
            engine.register_entry(lot.id, space.id, "ABC123", "auto", "emp-1")
        assert db_session.query(Transaction).count() == 0
        assert space_row(db_session, lot.id, "7").maintenance_notes == "paint"

    def test_client_reservation_queries(self, engine, gateway, lot):
        space = engine.request_client_reservation(lot.id, "client-1", "XYZ999")
        assert space.number == "6"
        assert [s.id for s in gateway.list_pending_reservations(lot.id, NOW)] == [space.id]

        engine.reject_client_reservation(lot.id, space.id)
        assert gateway.list_pending_reservations(lot.id, NOW) == []
        mine = gateway.list_client_reservations("client-1", NOW)
        assert len(mine) == 1
        record, lot_name = mine[0]
        assert lot_name == "SQL Lot"
        assert record.state.client_status == ClientReservationStatus.REJECTED_BY_OWNER

    def test_find_open_transaction_and_history(self, engine, gateway, lot):
        spaces = gateway.list_spaces(lot.id)
        engine.register_entry(lot.id, spaces[10].id, "AAA111", "pickup", "emp-1")
        engine.register_entry(lot.id, spaces[11].id, "BBB222", "auto", "emp-2")
        engine.register_exit(lot.id, spaces[10].id, now=NOW + timedelta(minutes=20))

        assert gateway.find_open_transaction(lot.id, "aaa111") is None
        assert gateway.find_open_transaction(lot.id, "bbb222").space_id == spaces[11].id
        assert len(gateway.list_transactions(lot.id)) == 2
        assert [t.vehicle_plate for t in gateway.list_transactions(lot.id, employee_id="emp-2")] == ["BBB222"]
        assert gateway.list_transactions(lot.id, start=NOW + timedelta(hours=1))[0].vehicle_plate == "BBB222"

    def test_configure_spaces_replaces_rows(self, gateway, lot, db_session):
        lot_service.configure_spaces(gateway, lot.id, 4, ["1", "4"])
        spaces = gateway.list_spaces(lot.id)
        assert [(s.number, s.is_vip) for s in spaces] == [("1", True), ("2", False), ("3", False), ("4", True)]
        assert all(s.state.status == SpaceStatus.FREE for s in spaces)

    def test_customer_lookup(self, gateway, lot):
        lot_service.add_customer(gateway, lot.id, "Ana", "abc123")
        assert gateway.find_customer_by_plate(lot.id, "ABC123").name == "Ana"
        assert gateway.find_customer_by_plate(lot.id, "ZZZ") is None
