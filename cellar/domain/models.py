"""SQLModel database models for units, transaction types, tanks, batches and transactions."""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import event
from sqlmodel import Field, Relationship, SQLModel

from cellar.domain.exceptions import TransactionImmutableError
from cellar.domain.value_objects import (
    QUANTITY_MAX_DIGITS,
    QUANTITY_SCALE,
    Milestone,
    MilestonePolicy,
    TankStatus,
)


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as SQLite returns them) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Unit(SQLModel, table=True):
    """A measurement unit (e.g. barrels, grams). Immutable reference data."""

    __tablename__ = "units"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, max_length=50)
    abbreviation: str = Field(unique=True, index=True, max_length=10)
    is_volume: bool = Field(description="True for volume units, False for weight")


class TransactionType(SQLModel, table=True):
    """
    Catalog entry describing one kind of batch event.

    Business Rules:
    - affects_tank_quantity gates whether the event moves tank quantity
    - quantity_multiplier is +1 for additions, -1 for removals, 0 otherwise
    - milestone, when set, names the batch date this type stamps; the
      milestone_policy decides whether later events overwrite it
    """

    __tablename__ = "transaction_types"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True, max_length=50)
    description: Optional[str] = Field(default=None, max_length=255)
    unit_id: int = Field(foreign_key="units.id")
    affects_tank_quantity: bool = Field(default=True)
    quantity_multiplier: int = Field(default=0, ge=-1, le=1)
    milestone: Optional[Milestone] = Field(default=None)
    milestone_policy: MilestonePolicy = Field(default=MilestonePolicy.FIRST_OCCURRENCE)

    unit: Optional[Unit] = Relationship()


class Tank(SQLModel, table=True):
    """
    A physical fermentation vessel.

    Business Rules:
    - label is unique across active and soft-deleted tanks
    - 0 <= current_quantity <= capacity after every committed operation
    - current_batch_id is NULL or points at exactly one active batch
    - version is bumped on every quantity change (optimistic locking support)
    - status and deleted_at implement soft delete
    """

    __tablename__ = "tanks"

    id: Optional[int] = Field(default=None, primary_key=True)
    label: str = Field(unique=True, index=True, max_length=100)
    capacity: Decimal = Field(
        max_digits=QUANTITY_MAX_DIGITS,
        decimal_places=QUANTITY_SCALE,
        description="Capacity in the tank's (volume) capacity unit",
    )
    capacity_unit_id: int = Field(foreign_key="units.id")
    current_quantity: Decimal = Field(
        default=Decimal("0"),
        max_digits=QUANTITY_MAX_DIGITS,
        decimal_places=QUANTITY_SCALE,
    )
    # No foreign key: tanks and batches reference each other
    current_batch_id: Optional[int] = Field(default=None, index=True)

    # Concurrency Control
    version: int = Field(default=1)

    # Soft Delete
    status: TankStatus = Field(default=TankStatus.ACTIVE, index=True)
    deleted_at: Optional[datetime] = Field(default=None)

    # Audit Trail
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    capacity_unit: Optional[Unit] = Relationship()

    @property
    def is_deleted(self) -> bool:
        return self.status == TankStatus.DELETED

    @property
    def is_occupied(self) -> bool:
        return self.current_batch_id is not None

    @property
    def percent_full(self) -> Decimal:
        """Share of capacity in use, 0-100 with two decimal places."""
        if not self.capacity:
            return Decimal("0.00")
        ratio = (Decimal(self.current_quantity) / Decimal(self.capacity)).quantize(
            Decimal("0.0001"), rounding=ROUND_HALF_UP
        )
        return (ratio * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @property
    def capacity_unit_abbreviation(self) -> Optional[str]:
        return self.capacity_unit.abbreviation if self.capacity_unit else None

    def mark_deleted(self) -> None:
        self.status = TankStatus.DELETED
        self.deleted_at = utcnow()
        self.updated_at = utcnow()

    def mark_restored(self) -> None:
        self.status = TankStatus.ACTIVE
        self.deleted_at = None
        self.updated_at = utcnow()


class Batch(SQLModel, table=True):
    """
    A production run occupying one tank from start until completion.

    A batch is active while completed_at is NULL; once completed it is
    terminal and accepts no further transactions.
    """

    __tablename__ = "batches"

    id: Optional[int] = Field(default=None, primary_key=True)
    tank_id: int = Field(foreign_key="tanks.id", index=True)
    name: str = Field(max_length=100)
    started_at: datetime = Field(default_factory=utcnow, index=True)

    # Milestones
    yeast_added_at: Optional[datetime] = Field(default=None)
    stabilizer_added_at: Optional[datetime] = Field(default=None)

    completed_at: Optional[datetime] = Field(default=None, index=True)

    # Audit Trail
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.completed_at is None

    @property
    def days_in_fermentation(self) -> int:
        """Whole days from start to completion, or to now while active."""
        end = self.completed_at if self.completed_at is not None else utcnow()
        return (as_utc(end) - as_utc(self.started_at)).days


class Transaction(SQLModel, table=True):
    """
    An immutable event recorded against a batch.

    Rows are append-only: an ORM listener rejects any update or delete.
    related_tank_id names the other tank of a transfer.
    """

    __tablename__ = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    batch_id: int = Field(foreign_key="batches.id", index=True)
    transaction_type_id: int = Field(foreign_key="transaction_types.id", index=True)
    quantity: Decimal = Field(
        max_digits=QUANTITY_MAX_DIGITS,
        decimal_places=QUANTITY_SCALE,
    )
    unit_id: int = Field(foreign_key="units.id")
    occurred_at: datetime = Field(default_factory=utcnow, index=True)
    actor_id: Optional[int] = Field(default=None)
    note: Optional[str] = Field(default=None)
    related_tank_id: Optional[int] = Field(default=None, foreign_key="tanks.id")
    created_at: datetime = Field(default_factory=utcnow)

    transaction_type: Optional[TransactionType] = Relationship()

    @property
    def transaction_type_name(self) -> Optional[str]:
        return self.transaction_type.name if self.transaction_type else None


@event.listens_for(Transaction, "before_update")
def _reject_transaction_update(mapper, connection, target: Transaction) -> None:
    raise TransactionImmutableError(transaction_id=target.id)


@event.listens_for(Transaction, "before_delete")
def _reject_transaction_delete(mapper, connection, target: Transaction) -> None:
    raise TransactionImmutableError(transaction_id=target.id)
