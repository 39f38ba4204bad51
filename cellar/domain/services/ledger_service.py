"""Business logic layer for the transaction ledger.

The ledger is the only writer of tank quantity. Every event against a batch
goes through ``LedgerService.apply``, which validates the event, appends the
transaction row, moves the tank quantity within ``[0, capacity]`` and stamps
milestone dates. ``apply`` never commits; ``record`` wraps it in its own unit
of work, and the batch and transfer services call it inside theirs.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlmodel import Session

from cellar.database import unit_of_work
from cellar.domain.exceptions import (
    BatchCompletedError,
    CapacityExceededError,
    InsufficientQuantityError,
    UnitMismatchError,
)
from cellar.domain.lookup import TransactionTypeCache, TransactionTypeDef
from cellar.domain.models import Batch, Tank, Transaction, utcnow
from cellar.domain.value_objects import MilestonePolicy, Quantity
from cellar.repositories.batch_repository import BatchRepository
from cellar.repositories.tank_repository import TankRepository
from cellar.repositories.transaction_repository import TransactionRepository

logger = logging.getLogger(__name__)


class LedgerService:
    """Service layer validating and applying batch transactions."""

    def __init__(self, session: Session, transaction_types: TransactionTypeCache):
        self.session = session
        self.transaction_types = transaction_types
        self.batches = BatchRepository(session)
        self.tanks = TankRepository(session)
        self.transactions = TransactionRepository(session)

    def record(
        self,
        batch_id: int,
        transaction_type_id: int,
        quantity: Decimal | int | float | str,
        occurred_at: Optional[datetime] = None,
        actor_id: Optional[int] = None,
        note: Optional[str] = None,
    ) -> Transaction:
        """
        Record one transaction against an active batch (atomic operation).

        The batch's tank is locked for the duration, so concurrent events on
        the same tank apply one after the other against fresh quantities.

        Args:
            batch_id: Batch the event belongs to
            transaction_type_id: Catalog type of the event
            quantity: Non-negative amount in the type's unit
            occurred_at: When the event happened (default: now)
            actor_id: Who recorded it
            note: Free text

        Returns:
            The created Transaction

        Raises:
            BatchNotFoundError: Batch doesn't exist
            BatchCompletedError: Batch is completed
            UnknownTransactionTypeError: Type is not in the catalog
            InvalidQuantityError: Quantity negative or too precise
            InsufficientQuantityError: Removal would go below zero
            CapacityExceededError: Addition would exceed capacity
        """
        try:
            with unit_of_work(self.session):
                batch = self.batches.get_by_id(batch_id)
                tank = self.tanks.get_for_update(batch.tank_id)
                # Re-read under the lock in case the batch was completed meanwhile
                self.session.refresh(batch)
                transaction = self.apply(
                    batch,
                    tank,
                    transaction_type_id,
                    quantity,
                    occurred_at=occurred_at,
                    actor_id=actor_id,
                    note=note,
                )
        except Exception as e:
            logger.warning(
                "Rejected transaction on batch %s: %s",
                batch_id,
                e,
                extra={"batch_id": batch_id, "transaction_type_id": transaction_type_id},
            )
            raise

        logger.info(
            "Recorded transaction %s on batch %s",
            transaction.id,
            batch_id,
            extra={
                "batch_id": batch_id,
                "transaction_type_id": transaction_type_id,
                "quantity": transaction.quantity,
            },
        )
        return transaction

    def apply(
        self,
        batch: Batch,
        tank: Tank,
        transaction_type_id: int,
        quantity: Decimal | int | float | str,
        occurred_at: Optional[datetime] = None,
        actor_id: Optional[int] = None,
        note: Optional[str] = None,
        related_tank_id: Optional[int] = None,
    ) -> Transaction:
        """
        Validate and stage one transaction without committing.

        The caller owns the unit of work and must already hold the lock on
        ``tank``, the tank ``batch`` occupies.
        """
        if not batch.is_active:
            raise BatchCompletedError(batch_id=batch.id)

        type_def = self.transaction_types.require(transaction_type_id)
        amount = Quantity.parse(quantity)
        when = occurred_at or utcnow()

        new_quantity: Optional[Decimal] = None
        if type_def.affects_tank_quantity:
            new_quantity = self._adjusted_quantity(tank, type_def, amount)

        transaction = self.transactions.add(
            Transaction(
                batch_id=batch.id,
                transaction_type_id=type_def.id,
                quantity=amount.amount,
                unit_id=type_def.unit_id,
                occurred_at=when,
                actor_id=actor_id,
                note=note,
                related_tank_id=related_tank_id,
            )
        )

        if new_quantity is not None:
            tank.current_quantity = new_quantity
            tank.version += 1
            tank.updated_at = utcnow()
            self.session.add(tank)

        if type_def.milestone is not None:
            self._stamp_milestone(batch, type_def, when)

        return transaction

    def list_transactions(self, batch_id: int) -> List[Transaction]:
        """List a batch's transactions, newest first."""
        self.batches.get_by_id(batch_id)
        return self.transactions.list_for_batch(batch_id)

    def list_transactions_by_type(
        self, batch_id: int, transaction_type_id: int
    ) -> List[Transaction]:
        """List a batch's transactions of one type, newest first."""
        self.batches.get_by_id(batch_id)
        self.transaction_types.require(transaction_type_id)
        return self.transactions.list_for_batch_by_type(batch_id, transaction_type_id)

    @staticmethod
    def _adjusted_quantity(
        tank: Tank, type_def: TransactionTypeDef, amount: Quantity
    ) -> Decimal:
        """Tank quantity after the event; both bounds are inclusive."""
        if type_def.unit_id != tank.capacity_unit_id:
            raise UnitMismatchError(
                tank_id=tank.id,
                tank_unit_id=tank.capacity_unit_id,
                transaction_unit_id=type_def.unit_id,
            )
        current = Decimal(tank.current_quantity)
        new_quantity = current + amount.signed(type_def.quantity_multiplier)

        if new_quantity < 0:
            raise InsufficientQuantityError(
                tank_id=tank.id, available=current, requested=amount.amount
            )
        if new_quantity > tank.capacity:
            raise CapacityExceededError(
                tank_id=tank.id, capacity=tank.capacity, resulting=new_quantity
            )
        return new_quantity

    def _stamp_milestone(
        self, batch: Batch, type_def: TransactionTypeDef, when: datetime
    ) -> None:
        field = type_def.milestone.batch_field
        if (
            getattr(batch, field) is None
            or type_def.milestone_policy == MilestonePolicy.ALWAYS_LATEST
        ):
            setattr(batch, field, when)
            batch.updated_at = utcnow()
            self.session.add(batch)
