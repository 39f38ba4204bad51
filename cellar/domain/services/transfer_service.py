"""Business logic layer for tank-to-tank transfers."""

import logging
from decimal import Decimal
from typing import Optional, Tuple

from sqlmodel import Session

from cellar.config import settings
from cellar.database import unit_of_work
from cellar.domain.exceptions import (
    BatchCompletedError,
    CapacityExceededError,
    DestinationNotActiveError,
    NothingToTransferError,
    SameTankTransferError,
    UnitMismatchError,
)
from cellar.domain.lookup import TransactionTypeCache
from cellar.domain.models import Transaction
from cellar.domain.services.batch_service import BatchService
from cellar.domain.services.ledger_service import LedgerService
from cellar.repositories.batch_repository import BatchRepository
from cellar.repositories.tank_repository import TankRepository

logger = logging.getLogger(__name__)


class TransferService:
    """Moves a batch's entire contents into another tank's active batch."""

    def __init__(
        self,
        session: Session,
        transaction_types: TransactionTypeCache,
        outgoing_type_name: Optional[str] = None,
        incoming_type_name: Optional[str] = None,
    ):
        self.session = session
        self.transaction_types = transaction_types
        self.outgoing_type_name = (
            outgoing_type_name or settings.transfer_out_transaction_type
        )
        self.incoming_type_name = incoming_type_name or settings.transfer_in_transaction_type
        self.batches = BatchRepository(session)
        self.tanks = TankRepository(session)
        self.ledger = LedgerService(session, transaction_types)
        self.lifecycle = BatchService(session, transaction_types)

    def transfer(
        self,
        source_batch_id: int,
        destination_tank_label: str,
        actor_id: Optional[int] = None,
        note: Optional[str] = None,
    ) -> Tuple[Transaction, Transaction]:
        """
        Transfer everything in the source batch's tank (atomic operation).

        Records the outgoing transaction on the source batch and the incoming
        one on the destination tank's active batch, each pointing at the
        other tank, then completes the source batch. Either all of it
        commits or none of it does.

        Args:
            source_batch_id: Active batch to empty
            destination_tank_label: Tank whose active batch receives the contents
            actor_id: Who performed the transfer
            note: Note stored on both transactions

        Returns:
            (outgoing transaction, incoming transaction)

        Raises:
            BatchNotFoundError: Source batch doesn't exist
            BatchCompletedError: Source batch already completed
            TankNotFoundError: Destination label unknown or deleted
            SameTankTransferError: Destination is the source tank
            NothingToTransferError: Source tank is empty
            DestinationNotActiveError: Destination has no active batch
            UnitMismatchError: Tanks measure capacity in different units
            CapacityExceededError: Destination cannot hold the contents
        """
        outgoing_type = self.transaction_types.require_name(self.outgoing_type_name)
        incoming_type = self.transaction_types.require_name(self.incoming_type_name)

        try:
            with unit_of_work(self.session):
                source_batch = self.batches.get_by_id(source_batch_id)
                destination = self.tanks.get_by_label(destination_tank_label)
                if destination.id == source_batch.tank_id:
                    raise SameTankTransferError(label=destination.label)

                locked = {
                    t.id: t
                    for t in self.tanks.lock_many([source_batch.tank_id, destination.id])
                }
                source = locked[source_batch.tank_id]
                destination = locked[destination.id]
                self.session.refresh(source_batch)

                if not source_batch.is_active:
                    raise BatchCompletedError(batch_id=source_batch.id)

                amount = Decimal(source.current_quantity)
                if amount <= 0:
                    raise NothingToTransferError(batch_id=source_batch.id, tank_id=source.id)

                if destination.current_batch_id is None:
                    raise DestinationNotActiveError(label=destination.label)
                destination_batch = self.batches.get_by_id(destination.current_batch_id)
                if not destination_batch.is_active:
                    raise DestinationNotActiveError(label=destination.label)

                if destination.capacity_unit_id != source.capacity_unit_id:
                    raise UnitMismatchError(
                        tank_id=destination.id,
                        tank_unit_id=destination.capacity_unit_id,
                        transaction_unit_id=source.capacity_unit_id,
                    )

                if destination.current_quantity + amount > destination.capacity:
                    raise CapacityExceededError(
                        tank_id=destination.id,
                        capacity=destination.capacity,
                        resulting=destination.current_quantity + amount,
                    )

                outgoing = self.ledger.apply(
                    source_batch,
                    source,
                    outgoing_type.id,
                    amount,
                    actor_id=actor_id,
                    note=note,
                    related_tank_id=destination.id,
                )
                incoming = self.ledger.apply(
                    destination_batch,
                    destination,
                    incoming_type.id,
                    amount,
                    occurred_at=outgoing.occurred_at,
                    actor_id=actor_id,
                    note=note,
                    related_tank_id=source.id,
                )
                self.lifecycle.finalize(source_batch, source)
        except Exception as e:
            logger.warning(
                "Rejected transfer of batch %s to %s: %s",
                source_batch_id,
                destination_tank_label,
                e,
                extra={"batch_id": source_batch_id},
            )
            raise

        logger.info(
            "Transferred %s from batch %s to tank %s",
            amount,
            source_batch_id,
            destination_tank_label,
            extra={
                "batch_id": source_batch_id,
                "destination_batch_id": incoming.batch_id,
                "quantity": amount,
            },
        )
        return outgoing, incoming
