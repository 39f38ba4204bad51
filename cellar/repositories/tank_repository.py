"""Data access layer for Tank operations."""

from typing import Iterable, List

from sqlmodel import Session, select

from cellar.domain.exceptions import TankNotFoundError
from cellar.domain.models import Tank
from cellar.domain.value_objects import TankStatus


class TankRepository:
    """Repository for tank database operations. Never commits."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, tank: Tank) -> Tank:
        """Stage a tank and flush so it gets an ID."""
        self.session.add(tank)
        self.session.flush()
        return tank

    def get_by_id(self, tank_id: int, include_deleted: bool = False) -> Tank:
        """
        Retrieve tank by ID.

        Args:
            tank_id: Tank ID
            include_deleted: Whether to include soft-deleted tanks

        Raises:
            TankNotFoundError: If tank doesn't exist or is deleted
        """
        statement = select(Tank).where(Tank.id == tank_id)
        if not include_deleted:
            statement = statement.where(Tank.status == TankStatus.ACTIVE)

        tank = self.session.exec(statement).first()
        if not tank:
            raise TankNotFoundError(tank_id=tank_id)
        return tank

    def get_by_label(self, label: str, include_deleted: bool = False) -> Tank:
        """
        Retrieve tank by label; soft-deleted tanks are excluded by default.

        Raises:
            TankNotFoundError: If no matching tank exists
        """
        statement = select(Tank).where(Tank.label == label)
        if not include_deleted:
            statement = statement.where(Tank.status == TankStatus.ACTIVE)

        tank = self.session.exec(statement).first()
        if not tank:
            raise TankNotFoundError(label=label)
        return tank

    def label_exists(self, label: str) -> bool:
        """Check a label against every tank, soft-deleted ones included."""
        statement = select(Tank.id).where(Tank.label == label)
        return self.session.exec(statement).first() is not None

    def get_for_update(self, tank_id: int) -> Tank:
        """
        Load a tank holding an exclusive row lock until the unit of work ends.

        Uses SELECT FOR UPDATE so concurrent quantity changes on the same
        tank serialise instead of losing updates. Includes deleted tanks:
        a batch already inside a tank keeps working on it.

        Raises:
            TankNotFoundError: Tank doesn't exist
        """
        statement = (
            select(Tank)
            .where(Tank.id == tank_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        tank = self.session.exec(statement).first()
        if not tank:
            raise TankNotFoundError(tank_id=tank_id)
        return tank

    def lock_many(self, tank_ids: Iterable[int]) -> List[Tank]:
        """Lock several tanks in ascending ID order so lockers never deadlock."""
        statement = (
            select(Tank)
            .where(Tank.id.in_(sorted(set(tank_ids))))  # type: ignore[union-attr]
            .order_by(Tank.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return list(self.session.exec(statement).all())

    def list_active(self) -> List[Tank]:
        """List non-deleted tanks ordered by label."""
        statement = (
            select(Tank)
            .where(Tank.status == TankStatus.ACTIVE)
            .order_by(Tank.label)
        )
        return list(self.session.exec(statement).all())

    def list_deleted(self) -> List[Tank]:
        """List soft-deleted tanks, most recently deleted first."""
        statement = (
            select(Tank)
            .where(Tank.status == TankStatus.DELETED)
            .order_by(Tank.deleted_at.desc())  # type: ignore[union-attr]
        )
        return list(self.session.exec(statement).all())

    def list_available(self) -> List[Tank]:
        """List non-deleted tanks without a current batch."""
        statement = (
            select(Tank)
            .where(
                Tank.status == TankStatus.ACTIVE,
                Tank.current_batch_id.is_(None),  # type: ignore[union-attr]
            )
            .order_by(Tank.label)
        )
        return list(self.session.exec(statement).all())

    def list_occupied(self) -> List[Tank]:
        """List non-deleted tanks holding a current batch."""
        statement = (
            select(Tank)
            .where(
                Tank.status == TankStatus.ACTIVE,
                Tank.current_batch_id.is_not(None),  # type: ignore[union-attr]
            )
            .order_by(Tank.label)
        )
        return list(self.session.exec(statement).all())
