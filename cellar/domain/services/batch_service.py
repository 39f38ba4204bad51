"""Business logic layer for batch operations."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlmodel import Session

from cellar.config import settings
from cellar.database import unit_of_work
from cellar.domain.exceptions import (
    BatchCompletedError,
    InvalidBatchNameError,
    TankOccupiedError,
)
from cellar.domain.lookup import TransactionTypeCache
from cellar.domain.models import Batch, Tank, utcnow
from cellar.domain.services.ledger_service import LedgerService
from cellar.repositories.batch_repository import BatchRepository
from cellar.repositories.tank_repository import TankRepository

logger = logging.getLogger(__name__)

AUTO_WASTE_NOTE = "Auto-generated waste at batch completion"


class BatchService:
    """Service layer for the batch lifecycle: Active -> Completed."""

    def __init__(
        self,
        session: Session,
        transaction_types: TransactionTypeCache,
        waste_type_name: Optional[str] = None,
    ):
        self.session = session
        self.transaction_types = transaction_types
        self.waste_type_name = waste_type_name or settings.waste_transaction_type
        self.repository = BatchRepository(session)
        self.tanks = TankRepository(session)
        self.ledger = LedgerService(session, transaction_types)

    def start_batch(
        self,
        tank_id: int,
        name: str,
        transaction_type_id: Optional[int],
        initial_quantity: Decimal | int | float | str,
        note: Optional[str] = None,
        started_at: Optional[datetime] = None,
        actor_id: Optional[int] = None,
    ) -> Batch:
        """
        Start a batch in an empty tank together with its opening transaction.

        Batch row, opening transaction and tank occupancy commit together;
        if the opening transaction is rejected (e.g. exceeds capacity) no
        batch is left behind.

        Args:
            tank_id: Tank to fill
            name: Batch name (e.g. "Left Turn IPA")
            transaction_type_id: Opening transaction type; defaults to the
                configured opening type
            initial_quantity: Opening quantity
            note: Note on the opening transaction
            started_at: Start timestamp (default: now)
            actor_id: Who started the batch

        Returns:
            Created batch

        Raises:
            TankNotFoundError: Tank doesn't exist or is deleted
            TankOccupiedError: Tank already holds an active batch
            plus any error of LedgerService.apply
        """
        batch_name = (name or "").strip()
        if not batch_name or len(batch_name) > 100:
            raise InvalidBatchNameError(name=name)
        if transaction_type_id is None:
            transaction_type_id = self.transaction_types.require_name(
                settings.opening_transaction_type
            ).id
        started = started_at or utcnow()

        try:
            with unit_of_work(self.session):
                tank = self.tanks.get_by_id(tank_id)
                tank = self.tanks.get_for_update(tank.id)
                if tank.current_batch_id is not None:
                    raise TankOccupiedError(
                        tank_id=tank.id,
                        label=tank.label,
                        current_batch_id=tank.current_batch_id,
                    )

                batch = self.repository.add(
                    Batch(tank_id=tank.id, name=batch_name, started_at=started)
                )
                self.ledger.apply(
                    batch,
                    tank,
                    transaction_type_id,
                    initial_quantity,
                    occurred_at=started,
                    actor_id=actor_id,
                    note=note,
                )
                tank.current_batch_id = batch.id
                tank.updated_at = utcnow()
                self.session.add(tank)
        except Exception as e:
            logger.warning(
                "Rejected batch start in tank %s: %s", tank_id, e, extra={"tank_id": tank_id}
            )
            raise

        logger.info(
            "Started batch %s in tank %s",
            batch.id,
            tank_id,
            extra={"batch_id": batch.id, "tank_id": tank_id},
        )
        return batch

    def get_batch(self, batch_id: int) -> Batch:
        """Retrieve batch by ID."""
        return self.repository.get_by_id(batch_id)

    def list_active_batches(self) -> List[Batch]:
        return self.repository.list_active()

    def list_completed_batches(self) -> List[Batch]:
        """Completed batches, most recent first."""
        return self.repository.list_completed()

    def list_batches_for_tank(self, tank_id: int) -> List[Batch]:
        """Batch history of one tank."""
        self.tanks.get_by_id(tank_id, include_deleted=True)
        return self.repository.list_for_tank(tank_id)

    def complete_batch(self, batch_id: int) -> Batch:
        """
        Complete a batch (atomic operation).

        Any quantity still in the tank is written off with one auto-generated
        waste transaction, then the tank is emptied and released.

        Raises:
            BatchNotFoundError: Batch doesn't exist
            BatchCompletedError: Batch already completed
        """
        try:
            with unit_of_work(self.session):
                batch = self.repository.get_by_id(batch_id)
                tank = self.tanks.get_for_update(batch.tank_id)
                self.session.refresh(batch)
                self.finalize(batch, tank)
        except Exception as e:
            logger.warning(
                "Rejected completion of batch %s: %s", batch_id, e, extra={"batch_id": batch_id}
            )
            raise

        logger.info("Completed batch %s", batch_id, extra={"batch_id": batch_id})
        return batch

    def finalize(self, batch: Batch, tank: Tank) -> Batch:
        """
        Stage the completion of ``batch`` without committing.

        The caller owns the unit of work and the lock on ``tank``.
        """
        if not batch.is_active:
            raise BatchCompletedError(batch_id=batch.id)

        occupies_tank = tank.current_batch_id == batch.id
        remaining = Decimal(tank.current_quantity)
        if occupies_tank and remaining > 0:
            waste_type = self.transaction_types.require_name(self.waste_type_name)
            self.ledger.apply(
                batch, tank, waste_type.id, remaining, note=AUTO_WASTE_NOTE
            )
            logger.info(
                "Wrote off %s remaining in tank %s",
                remaining,
                tank.label,
                extra={"batch_id": batch.id, "tank_id": tank.id, "quantity": remaining},
            )

        now = utcnow()
        batch.completed_at = now
        batch.updated_at = now
        self.session.add(batch)

        if occupies_tank:
            tank.current_batch_id = None
            if tank.current_quantity != 0:
                tank.current_quantity = Decimal("0")
                tank.version += 1
            tank.updated_at = now
            self.session.add(tank)

        return batch
