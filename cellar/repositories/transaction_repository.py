"""Data access layer for the append-only transaction ledger."""

from typing import List

from sqlmodel import Session, select

from cellar.domain.models import Transaction


class TransactionRepository:
    """Repository for transaction rows. Insert and read only."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, transaction: Transaction) -> Transaction:
        """Stage a new transaction and flush so it gets an ID."""
        self.session.add(transaction)
        self.session.flush()
        return transaction

    def list_for_batch(self, batch_id: int) -> List[Transaction]:
        """List a batch's transactions, newest first."""
        statement = (
            select(Transaction)
            .where(Transaction.batch_id == batch_id)
            .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())  # type: ignore[union-attr]
        )
        return list(self.session.exec(statement).all())

    def list_for_batch_by_type(
        self, batch_id: int, transaction_type_id: int
    ) -> List[Transaction]:
        """List a batch's transactions of one type, newest first."""
        statement = (
            select(Transaction)
            .where(
                Transaction.batch_id == batch_id,
                Transaction.transaction_type_id == transaction_type_id,
            )
            .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())  # type: ignore[union-attr]
        )
        return list(self.session.exec(statement).all())
