"""Data access for read-mostly reference data: units and transaction types."""

from typing import List, Optional

from sqlmodel import Session, select

from cellar.domain.exceptions import UnitNotFoundError
from cellar.domain.models import TransactionType, Unit


class ReferenceDataRepository:
    """Repository for unit and transaction type lookups."""

    def __init__(self, session: Session):
        self.session = session

    def list_transaction_types(self) -> List[TransactionType]:
        """List the full transaction type catalog ordered by ID."""
        statement = select(TransactionType).order_by(TransactionType.id)
        return list(self.session.exec(statement).all())

    def get_transaction_type_by_name(self, name: str) -> Optional[TransactionType]:
        statement = select(TransactionType).where(TransactionType.name == name)
        return self.session.exec(statement).first()

    def get_unit_by_abbreviation(self, abbreviation: str) -> Unit:
        """
        Retrieve a unit by abbreviation.

        Raises:
            UnitNotFoundError: If no unit uses the abbreviation
        """
        statement = select(Unit).where(Unit.abbreviation == abbreviation)
        unit = self.session.exec(statement).first()
        if not unit:
            raise UnitNotFoundError(abbreviation=abbreviation)
        return unit

    def list_units(self, is_volume: Optional[bool] = None) -> List[Unit]:
        """List units, optionally only volume (True) or weight (False) ones."""
        statement = select(Unit).order_by(Unit.id)
        if is_volume is not None:
            statement = statement.where(Unit.is_volume == is_volume)
        return list(self.session.exec(statement).all())

    def add_unit(self, unit: Unit) -> Unit:
        self.session.add(unit)
        self.session.flush()
        return unit

    def add_transaction_type(self, transaction_type: TransactionType) -> TransactionType:
        self.session.add(transaction_type)
        self.session.flush()
        return transaction_type
