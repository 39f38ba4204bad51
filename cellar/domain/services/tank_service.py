"""Business logic layer for the tank registry."""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from cellar.config import settings
from cellar.database import unit_of_work
from cellar.domain.exceptions import (
    CapacityBelowContentsError,
    DuplicateTankLabelError,
    InvalidCapacityError,
    NonVolumeUnitError,
    TankDeletedError,
    TankNotDeletedError,
)
from cellar.domain.models import Tank, utcnow
from cellar.domain.value_objects import Quantity, TankLabel
from cellar.repositories.reference_repository import ReferenceDataRepository
from cellar.repositories.tank_repository import TankRepository

logger = logging.getLogger(__name__)


def _parse_capacity(capacity: Decimal | int | float | str) -> Decimal:
    amount = Quantity.parse(capacity).amount
    if amount <= 0:
        raise InvalidCapacityError(capacity=capacity)
    return amount


class TankService:
    """Service layer for tank registry business logic."""

    def __init__(self, session: Session):
        self.session = session
        self.repository = TankRepository(session)
        self.reference = ReferenceDataRepository(session)

    def create_tank(
        self,
        label: str,
        capacity: Decimal | int | float | str,
    ) -> Tank:
        """
        Register a new, empty tank.

        Args:
            label: Unique URL-safe label (e.g. "FV-1")
            capacity: Capacity in the canonical volume unit, strictly positive

        Returns:
            Created tank with quantity 0

        Raises:
            InvalidTankLabelError: Label is not URL-safe
            InvalidCapacityError: Capacity is not positive
            UnitNotFoundError: Canonical unit is not seeded
            NonVolumeUnitError: Canonical unit measures weight
            DuplicateTankLabelError: Label taken, soft-deleted tanks included
        """
        tank_label = TankLabel(label)
        amount = _parse_capacity(capacity)
        unit = self.reference.get_unit_by_abbreviation(settings.canonical_volume_unit)
        if not unit.is_volume:
            raise NonVolumeUnitError(abbreviation=unit.abbreviation)

        with unit_of_work(self.session):
            if self.repository.label_exists(tank_label.value):
                raise DuplicateTankLabelError(label=tank_label.value)
            tank = Tank(
                label=tank_label.value,
                capacity=amount,
                capacity_unit_id=unit.id,
                current_quantity=Decimal("0"),
            )
            try:
                self.repository.add(tank)
            except IntegrityError:
                # Lost a race with a concurrent create of the same label
                raise DuplicateTankLabelError(label=tank_label.value) from None

        logger.info(
            "Created tank %s", tank.label, extra={"tank_id": tank.id, "capacity": amount}
        )
        return tank

    def get_tank(self, tank_id: int, include_deleted: bool = False) -> Tank:
        """Retrieve tank by ID; administrative callers may include deleted tanks."""
        return self.repository.get_by_id(tank_id, include_deleted=include_deleted)

    def get_tank_by_label(self, label: str, include_deleted: bool = False) -> Tank:
        """Retrieve tank by label."""
        return self.repository.get_by_label(label, include_deleted=include_deleted)

    def list_tanks(self) -> List[Tank]:
        return self.repository.list_active()

    def list_deleted_tanks(self) -> List[Tank]:
        return self.repository.list_deleted()

    def list_available_tanks(self) -> List[Tank]:
        """Tanks a new batch can start in."""
        return self.repository.list_available()

    def list_occupied_tanks(self) -> List[Tank]:
        return self.repository.list_occupied()

    def update_tank(
        self,
        label: str,
        new_label: Optional[str] = None,
        new_capacity: Decimal | int | float | str | None = None,
    ) -> Tank:
        """
        Rename a tank and/or change its capacity.

        Raises:
            TankNotFoundError: No active tank with this label
            DuplicateTankLabelError: new_label already used
            CapacityBelowContentsError: new capacity below current quantity
        """
        with unit_of_work(self.session):
            tank = self.repository.get_by_label(label)
            tank = self.repository.get_for_update(tank.id)

            if new_label is not None and new_label != tank.label:
                renamed = TankLabel(new_label)
                if self.repository.label_exists(renamed.value):
                    raise DuplicateTankLabelError(label=renamed.value)
                tank.label = renamed.value

            if new_capacity is not None:
                amount = _parse_capacity(new_capacity)
                if amount < tank.current_quantity:
                    raise CapacityBelowContentsError(
                        label=tank.label,
                        capacity=amount,
                        current_quantity=tank.current_quantity,
                    )
                tank.capacity = amount

            tank.updated_at = utcnow()
            self.session.add(tank)

        logger.info("Updated tank %s", tank.label, extra={"tank_id": tank.id})
        return tank

    def delete_tank(self, label: str) -> Tank:
        """
        Soft-delete a tank. Quantity and batch reference are left untouched.

        Raises:
            TankNotFoundError: Tank doesn't exist
            TankDeletedError: Tank already deleted
        """
        with unit_of_work(self.session):
            tank = self.repository.get_by_label(label, include_deleted=True)
            if tank.is_deleted:
                raise TankDeletedError(label=label)
            tank.mark_deleted()
            self.session.add(tank)

        logger.info("Soft-deleted tank %s", label, extra={"tank_id": tank.id})
        return tank

    def restore_tank(self, label: str) -> Tank:
        """
        Undo a soft delete.

        Raises:
            TankNotFoundError: Tank doesn't exist
            TankNotDeletedError: Tank is not deleted
        """
        with unit_of_work(self.session):
            tank = self.repository.get_by_label(label, include_deleted=True)
            if not tank.is_deleted:
                raise TankNotDeletedError(label=label)
            tank.mark_restored()
            self.session.add(tank)

        logger.info("Restored tank %s", label, extra={"tank_id": tank.id})
        return tank
