"""Integration tests for the tank registry service."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from cellar.config import settings
from cellar.database import unit_of_work
from cellar.domain.exceptions import (
    CapacityBelowContentsError,
    DuplicateTankLabelError,
    ErrorKind,
    InvalidQuantityError,
    InvalidTankLabelError,
    NonVolumeUnitError,
    RuleViolationError,
    StorageUnavailableError,
    TankDeletedError,
    TankNotDeletedError,
    TankNotFoundError,
    UnitNotFoundError,
)
from cellar.domain.models import Tank
from cellar.domain.services.tank_service import TankService
from cellar.domain.value_objects import TankStatus


class TestCreateTank:
    def test_create_defaults(self, session: Session):
        """A new tank is empty, active and measured in barrels."""
        tank = TankService(session).create_tank("FV-1", Decimal("120.5"))

        assert tank.id is not None
        assert tank.current_quantity == Decimal("0")
        assert tank.capacity == Decimal("120.5")
        assert tank.current_batch_id is None
        assert tank.status == TankStatus.ACTIVE
        assert tank.capacity_unit_abbreviation == "bbls"

    def test_every_tank_shares_the_canonical_unit(self, session: Session, make_tank):
        first = make_tank("FV-1")
        second = make_tank("BT-1")
        assert first.capacity_unit_id == second.capacity_unit_id
        assert second.capacity_unit_abbreviation == settings.canonical_volume_unit

    def test_weight_canonical_unit_rejected(self, session: Session, monkeypatch):
        monkeypatch.setattr(settings, "canonical_volume_unit", "kg")
        with pytest.raises(NonVolumeUnitError):
            TankService(session).create_tank("FV-1", "100")

    def test_unknown_canonical_unit_rejected(self, session: Session, monkeypatch):
        monkeypatch.setattr(settings, "canonical_volume_unit", "hl")
        with pytest.raises(UnitNotFoundError):
            TankService(session).create_tank("FV-1", "100")

    def test_oversized_capacity_rejected(self, session: Session):
        with pytest.raises(InvalidQuantityError):
            TankService(session).create_tank("FV-1", Decimal("1E+9"))

    @pytest.mark.parametrize("capacity", ["0", "-5"])
    def test_non_positive_capacity_rejected(self, session: Session, capacity):
        with pytest.raises(RuleViolationError) as exc_info:
            TankService(session).create_tank("FV-1", capacity)
        assert exc_info.value.kind == ErrorKind.VALIDATION

    def test_invalid_label_rejected(self, session: Session):
        with pytest.raises(InvalidTankLabelError):
            TankService(session).create_tank("FV 1", "100")

    def test_duplicate_label_rejected(self, session: Session, make_tank):
        make_tank("FV-1")
        with pytest.raises(DuplicateTankLabelError) as exc_info:
            make_tank("FV-1")
        assert exc_info.value.kind == ErrorKind.CONFLICT

    def test_label_of_deleted_tank_cannot_be_reused(self, session: Session, make_tank):
        make_tank("FV-1")
        TankService(session).delete_tank("FV-1")

        with pytest.raises(DuplicateTankLabelError):
            make_tank("FV-1")


class TestQueryTanks:
    def test_get_by_label_and_id(self, session: Session, make_tank):
        tank = make_tank("FV-1")
        service = TankService(session)

        assert service.get_tank_by_label("FV-1").id == tank.id
        assert service.get_tank(tank.id).label == "FV-1"

    def test_unknown_label(self, session: Session):
        with pytest.raises(TankNotFoundError) as exc_info:
            TankService(session).get_tank_by_label("nope")
        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    def test_list_filters(self, session: Session, make_tank, start_batch):
        make_tank("FV-2")
        occupied = make_tank("FV-1")
        make_tank("BT-1")
        start_batch(occupied)
        service = TankService(session)

        assert [t.label for t in service.list_tanks()] == ["BT-1", "FV-1", "FV-2"]
        assert [t.label for t in service.list_available_tanks()] == ["BT-1", "FV-2"]
        assert [t.label for t in service.list_occupied_tanks()] == ["FV-1"]


class TestUpdateTank:
    def test_rename_and_resize(self, session: Session, make_tank):
        make_tank("FV-1")
        tank = TankService(session).update_tank(
            "FV-1", new_label="FV-1A", new_capacity=Decimal("150")
        )

        assert tank.label == "FV-1A"
        assert tank.capacity == Decimal("150")
        with pytest.raises(TankNotFoundError):
            TankService(session).get_tank_by_label("FV-1")

    def test_rename_to_taken_label(self, session: Session, make_tank):
        make_tank("FV-1")
        make_tank("FV-2")
        with pytest.raises(DuplicateTankLabelError):
            TankService(session).update_tank("FV-1", new_label="FV-2")

    def test_capacity_cannot_drop_below_contents(self, session: Session, make_tank, start_batch):
        tank = make_tank("FV-1", capacity="100")
        start_batch(tank, quantity="80")

        with pytest.raises(CapacityBelowContentsError):
            TankService(session).update_tank("FV-1", new_capacity="79.9999")

        resized = TankService(session).update_tank("FV-1", new_capacity="80")
        assert resized.capacity == Decimal("80")


class TestSoftDelete:
    def test_delete_hides_tank(self, session: Session, make_tank):
        tank = make_tank("FV-1")
        service = TankService(session)

        deleted = service.delete_tank("FV-1")

        assert deleted.status == TankStatus.DELETED
        assert deleted.deleted_at is not None
        assert service.list_tanks() == []
        assert [t.label for t in service.list_deleted_tanks()] == ["FV-1"]
        with pytest.raises(TankNotFoundError):
            service.get_tank(tank.id)
        assert service.get_tank(tank.id, include_deleted=True).label == "FV-1"

    def test_delete_keeps_quantity_and_batch(self, session: Session, make_tank, start_batch):
        tank = make_tank("FV-1")
        batch = start_batch(tank, quantity="40")

        deleted = TankService(session).delete_tank("FV-1")

        assert deleted.current_quantity == Decimal("40")
        assert deleted.current_batch_id == batch.id

    def test_delete_twice(self, session: Session, make_tank):
        make_tank("FV-1")
        TankService(session).delete_tank("FV-1")
        with pytest.raises(TankDeletedError):
            TankService(session).delete_tank("FV-1")

    def test_restore(self, session: Session, make_tank):
        make_tank("FV-1")
        service = TankService(session)
        service.delete_tank("FV-1")

        restored = service.restore_tank("FV-1")

        assert restored.status == TankStatus.ACTIVE
        assert restored.deleted_at is None
        assert [t.label for t in service.list_tanks()] == ["FV-1"]

    def test_restore_active_tank(self, session: Session, make_tank):
        make_tank("FV-1")
        with pytest.raises(TankNotDeletedError):
            TankService(session).restore_tank("FV-1")


class TestUnitOfWork:
    def test_rolls_back_on_error(self, session: Session):
        with pytest.raises(RuntimeError):
            with unit_of_work(session):
                session.add(Tank(label="FV-9", capacity=Decimal("10"), capacity_unit_id=1))
                session.flush()
                raise RuntimeError("boom")

        assert TankService(session).list_tanks() == []

    def test_operational_error_becomes_storage_unavailable(self, session: Session):
        with pytest.raises(StorageUnavailableError) as exc_info:
            with unit_of_work(session):
                raise OperationalError("SELECT 1", {}, Exception("connection lost"))

        assert exc_info.value.kind == ErrorKind.INFRASTRUCTURE
        assert exc_info.value.context["reason"] == "connection lost"
