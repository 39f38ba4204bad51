"""Data access layer for Batch operations."""

from typing import List

from sqlmodel import Session, select

from cellar.domain.exceptions import BatchNotFoundError
from cellar.domain.models import Batch


class BatchRepository:
    """Repository for batch database operations. Never commits."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, batch: Batch) -> Batch:
        """Stage a batch and flush so it gets an ID."""
        self.session.add(batch)
        self.session.flush()
        return batch

    def get_by_id(self, batch_id: int) -> Batch:
        """
        Retrieve batch by ID.

        Raises:
            BatchNotFoundError: If batch doesn't exist
        """
        batch = self.session.get(Batch, batch_id)
        if not batch:
            raise BatchNotFoundError(batch_id=batch_id)
        return batch

    def list_active(self) -> List[Batch]:
        """List batches that have not been completed, newest start first."""
        statement = (
            select(Batch)
            .where(Batch.completed_at.is_(None))  # type: ignore[union-attr]
            .order_by(Batch.started_at.desc(), Batch.id.desc())  # type: ignore[union-attr]
        )
        return list(self.session.exec(statement).all())

    def list_completed(self) -> List[Batch]:
        """List completed batches, most recently completed first."""
        statement = (
            select(Batch)
            .where(Batch.completed_at.is_not(None))  # type: ignore[union-attr]
            .order_by(Batch.completed_at.desc(), Batch.id.desc())  # type: ignore[union-attr]
        )
        return list(self.session.exec(statement).all())

    def list_for_tank(self, tank_id: int) -> List[Batch]:
        """List every batch a tank has held, newest start first."""
        statement = (
            select(Batch)
            .where(Batch.tank_id == tank_id)
            .order_by(Batch.started_at.desc(), Batch.id.desc())  # type: ignore[union-attr]
        )
        return list(self.session.exec(statement).all())
