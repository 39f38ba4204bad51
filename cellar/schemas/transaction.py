"""Pydantic schemas for transaction API requests and responses."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, Field, field_validator


class TransactionCreateRequest(BaseModel):
    """Request schema for recording a transaction against a batch."""

    transaction_type_id: int
    quantity: Decimal = Field(
        ge=0,
        max_digits=12,
        decimal_places=4,
        description="Amount in the transaction type's unit",
    )
    occurred_at: datetime | None = Field(
        default=None,
        description="When the event happened (default: now)",
    )
    actor_id: int | None = None
    note: str | None = None


class TransactionResponse(BaseModel):
    """Response schema for a single ledger entry."""

    id: int
    batch_id: int
    transaction_type_id: int
    transaction_type_name: str | None
    quantity: Decimal
    unit_id: int
    occurred_at: AwareDatetime
    actor_id: int | None
    note: str | None
    related_tank_id: int | None

    model_config = {"from_attributes": True}

    @field_validator("occurred_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, value: datetime) -> datetime:
        """Ensure datetime has timezone info, defaulting to UTC if naive."""
        if value and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class TransactionListResponse(BaseModel):
    """Response schema for a batch's transaction history."""

    transactions: list[TransactionResponse]
    total: int
