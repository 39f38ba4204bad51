"""In-memory lookup cache for transaction type definitions.

The catalog is read once at startup and frozen; the resulting cache is
shared by every request and passed into the services explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional

from sqlmodel import Session

from cellar.domain.exceptions import UnknownTransactionTypeError
from cellar.domain.models import TransactionType
from cellar.domain.value_objects import Milestone, MilestonePolicy
from cellar.repositories.reference_repository import ReferenceDataRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransactionTypeDef:
    """Session-independent snapshot of a TransactionType row."""

    id: int
    name: str
    description: Optional[str]
    unit_id: int
    affects_tank_quantity: bool
    quantity_multiplier: int
    milestone: Optional[Milestone] = None
    milestone_policy: MilestonePolicy = MilestonePolicy.FIRST_OCCURRENCE

    @classmethod
    def from_row(cls, row: TransactionType) -> TransactionTypeDef:
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            unit_id=row.unit_id,
            affects_tank_quantity=row.affects_tank_quantity,
            quantity_multiplier=row.quantity_multiplier,
            milestone=row.milestone,
            milestone_policy=row.milestone_policy,
        )


class TransactionTypeCache:
    """Immutable id -> TransactionTypeDef map, safe for concurrent reads."""

    def __init__(self, types: Iterable[TransactionTypeDef] = ()):
        by_id = {t.id: t for t in types}
        self._by_id: Mapping[int, TransactionTypeDef] = MappingProxyType(by_id)
        self._by_name: Mapping[str, TransactionTypeDef] = MappingProxyType(
            {t.name: t for t in by_id.values()}
        )

    @classmethod
    def load(cls, session: Session) -> TransactionTypeCache:
        """
        Read every transaction type once and freeze the result.

        When the catalog has not been seeded yet the cache is simply empty
        and every later lookup reports an unknown type.
        """
        rows = ReferenceDataRepository(session).list_transaction_types()
        cache = cls(TransactionTypeDef.from_row(row) for row in rows)
        if not cache:
            logger.warning("Transaction type catalog is empty")
        else:
            logger.info("Loaded %d transaction types", len(cache))
        return cache

    def get(self, type_id: int) -> Optional[TransactionTypeDef]:
        return self._by_id.get(type_id)

    def get_by_name(self, name: str) -> Optional[TransactionTypeDef]:
        return self._by_name.get(name)

    def require(self, type_id: int) -> TransactionTypeDef:
        """Return the type or raise UnknownTransactionTypeError."""
        type_def = self._by_id.get(type_id)
        if type_def is None:
            raise UnknownTransactionTypeError(transaction_type=type_id)
        return type_def

    def require_name(self, name: str) -> TransactionTypeDef:
        type_def = self._by_name.get(name)
        if type_def is None:
            raise UnknownTransactionTypeError(transaction_type=name)
        return type_def

    def __iter__(self) -> Iterator[TransactionTypeDef]:
        return iter(sorted(self._by_id.values(), key=lambda t: t.id))

    def __len__(self) -> int:
        return len(self._by_id)
