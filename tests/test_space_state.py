# tests/test_space_state.py
"""Unit tests for the space state machine transitions."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta, timezone
from app.models.parking_space import SpaceStatus, ClientReservationStatus
from app.services.errors import ConflictError, OverrideRequiredError, ValidationError
from app.services import space_state as rules
from app.services.space_state import (
    SpaceState, Occupancy, ManualReservation, ClientReservation, FREE_SPACE,
)

NOW = datetime(2024, 5, 10, 10, 0, 0)
LATER = NOW + timedelta(hours=4)


def occupied(plate="ABC123"):
    return SpaceState(status=SpaceStatus.OCCUPIED, occupancy=Occupancy(plate, NOW, "txn-1"))


def client_held(status, plate="XYZ999"):
    return SpaceState(reservation=ClientReservation("client-1", plate, LATER, status))


class TestSpaceStateInvariants:
    def test_occupied_requires_occupancy(self):
        with pytest.raises(ValidationError):
            SpaceState(status=SpaceStatus.OCCUPIED)

    def test_free_cannot_carry_occupancy(self):
        with pytest.raises(ValidationError):
            SpaceState(occupancy=Occupancy("ABC", NOW, "txn-1"))

    def test_occupied_cannot_be_reserved(self):
        with pytest.raises(ValidationError):
            SpaceState(status=SpaceStatus.OCCUPIED, occupancy=Occupancy("ABC", NOW, "txn-1"),
                       reservation=ManualReservation("ABC", LATER))

    def test_maintenance_cannot_be_reserved(self):
        with pytest.raises(ValidationError):
            SpaceState(status=SpaceStatus.MAINTENANCE, reservation=ManualReservation("ABC", LATER))


class TestEntry:
    def test_entry_on_free_space(self):
        state = rules.enter_vehicle(FREE_SPACE, " abc123 ", "txn-1", NOW)
        assert state.status == SpaceStatus.OCCUPIED
        assert state.occupancy == Occupancy("ABC123", NOW, "txn-1")
        assert state.reservation is None

    def test_entry_blocked_by_maintenance(self):
        state = rules.set_maintenance(FREE_SPACE, "broken barrier")
        with pytest.raises(ConflictError) as exc:
            rules.enter_vehicle(state, "ABC123", "txn-1", NOW)
        assert exc.value.code == "maintenance_conflict"

    def test_entry_blocked_when_occupied(self):
        with pytest.raises(ConflictError) as exc:
            rules.enter_vehicle(occupied(), "DEF456", "txn-2", NOW)
        assert exc.value.code == "occupied_conflict"

    def test_empty_plate_rejected(self):
        with pytest.raises(ValidationError):
            rules.check_entry(FREE_SPACE, "  ")

    def test_pending_client_reservation_blocks_even_with_override(self):
        state = client_held(ClientReservationStatus.PENDING_CONFIRMATION)
        with pytest.raises(ConflictError) as exc:
            rules.enter_vehicle(state, "XYZ999", "txn-1", NOW, override=True)
        assert exc.value.code == "pending_reservation"

    def test_confirmed_reservation_matching_plate_enters(self):
        state = client_held(ClientReservationStatus.CONFIRMED_BY_OWNER)
        new_state = rules.enter_vehicle(state, "xyz999", "txn-1", NOW)
        assert new_state.status == SpaceStatus.OCCUPIED
        assert new_state.reservation is None

    def test_confirmed_reservation_other_plate_needs_override(self):
        state = client_held(ClientReservationStatus.CONFIRMED_BY_OWNER)
        with pytest.raises(OverrideRequiredError) as exc:
            rules.enter_vehicle(state, "OTHER1", "txn-1", NOW)
        assert "XYZ999" in exc.value.message
        assert isinstance(exc.value, ConflictError)

        new_state = rules.enter_vehicle(state, "OTHER1", "txn-1", NOW, override=True)
        assert new_state.occupancy.vehicle_plate == "OTHER1"
        assert new_state.reservation is None

    def test_manual_reservation_other_plate_needs_override(self):
        state = SpaceState(reservation=ManualReservation("Mr. Smith", LATER))
        assert rules.mismatch_message(state, "ABC123") is not None
        with pytest.raises(OverrideRequiredError):
            rules.check_entry(state, "ABC123")

    def test_manual_reservation_same_plate_no_prompt(self):
        state = SpaceState(reservation=ManualReservation("abc123", LATER))
        assert rules.mismatch_message(state, "ABC123") is None
        rules.check_entry(state, "ABC123")

    def test_rejected_reservation_needs_no_override(self):
        state = client_held(ClientReservationStatus.REJECTED_BY_OWNER)
        new_state = rules.enter_vehicle(state, "OTHER1", "txn-1", NOW)
        assert new_state.status == SpaceStatus.OCCUPIED

    def test_legacy_reserved_status_cannot_be_entered(self):
        with pytest.raises(ConflictError) as exc:
            rules.check_entry(SpaceState(status=SpaceStatus.RESERVED), "ABC123")
        assert exc.value.code == "not_free"


class TestExit:
    def test_exit_frees_space(self):
        assert rules.exit_vehicle(occupied()) == FREE_SPACE

    def test_exit_of_free_space_fails(self):
        with pytest.raises(ConflictError) as exc:
            rules.exit_vehicle(FREE_SPACE)
        assert exc.value.code == "not_occupied"


class TestManualReservation:
    def test_set_and_clear(self):
        state = rules.set_manual_reservation(FREE_SPACE, " VIP guest ", LATER, NOW)
        assert state.reservation == ManualReservation("VIP guest", LATER)
        assert state.is_reserved
        assert rules.clear_reservation(state) == FREE_SPACE

    def test_aware_until_converted_to_local_time(self):
        until = (NOW + timedelta(days=2)).replace(tzinfo=timezone.utc)
        state = rules.set_manual_reservation(FREE_SPACE, "ABC", until, NOW)
        assert state.reservation.until.tzinfo is None
        assert state.reservation.until == until.astimezone().replace(tzinfo=None)

    def test_aware_until_in_the_past_rejected(self):
        until = (NOW - timedelta(days=2)).replace(tzinfo=timezone(timedelta(hours=2)))
        with pytest.raises(ValidationError) as exc:
            rules.set_manual_reservation(FREE_SPACE, "ABC", until, NOW)
        assert exc.value.code == "past_date"

    @pytest.mark.parametrize("until", [None, "tomorrow", 1700000000])
    def test_non_datetime_until_rejected(self, until):
        with pytest.raises(ValidationError) as exc:
            rules.set_manual_reservation(FREE_SPACE, "ABC", until, NOW)
        assert exc.value.code == "invalid_date"

    def test_past_date_rejected(self):
        with pytest.raises(ValidationError) as exc:
            rules.set_manual_reservation(FREE_SPACE, "ABC", NOW - timedelta(minutes=1), NOW)
        assert exc.value.code == "past_date"

    def test_cannot_reserve_occupied(self):
        with pytest.raises(ConflictError):
            rules.set_manual_reservation(occupied(), "ABC", LATER, NOW)

    def test_cannot_reserve_maintenance(self):
        with pytest.raises(ConflictError) as exc:
            rules.set_manual_reservation(rules.set_maintenance(FREE_SPACE), "ABC", LATER, NOW)
        assert exc.value.code == "maintenance_conflict"

    def test_manual_overwrites_rejected_client_reservation(self):
        state = client_held(ClientReservationStatus.REJECTED_BY_OWNER)
        new_state = rules.set_manual_reservation(state, "ABC", LATER, NOW)
        assert isinstance(new_state.reservation, ManualReservation)


class TestMaintenance:
    def test_maintenance_drops_reservation(self):
        state = rules.set_maintenance(client_held(ClientReservationStatus.CONFIRMED_BY_OWNER), "  paint  ")
        assert state.status == SpaceStatus.MAINTENANCE
        assert state.reservation is None
        assert state.maintenance_notes == "paint"

    def test_clear_maintenance(self):
        state = rules.clear_maintenance(rules.set_maintenance(FREE_SPACE, "paint"))
        assert state == FREE_SPACE

    def test_cannot_maintain_occupied(self):
        with pytest.raises(ConflictError):
            rules.set_maintenance(occupied())

    def test_legacy_reserved_can_go_to_maintenance(self):
        state = rules.set_maintenance(SpaceState(status=SpaceStatus.RESERVED))
        assert state.status == SpaceStatus.MAINTENANCE
