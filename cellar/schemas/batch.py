"""Pydantic schemas for batch API requests and responses."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, Field, field_validator

from cellar.schemas.transaction import TransactionResponse


class BatchStartRequest(BaseModel):
    """Request schema for starting a batch with its opening transaction."""

    tank_id: int
    name: str = Field(
        min_length=1,
        max_length=100,
        description="Batch name",
        examples=["Left Turn IPA"],
    )
    transaction_type_id: int | None = Field(
        default=None,
        description="Opening transaction type (default: Transfer In)",
    )
    initial_quantity: Decimal = Field(
        ge=0,
        max_digits=12,
        decimal_places=4,
        description="Quantity put into the tank",
    )
    note: str | None = None
    started_at: datetime | None = Field(
        default=None,
        description="Start timestamp (default: now)",
    )
    actor_id: int | None = None


class BatchResponse(BaseModel):
    """Response schema for batch details."""

    id: int
    tank_id: int
    name: str
    started_at: AwareDatetime
    yeast_added_at: AwareDatetime | None
    stabilizer_added_at: AwareDatetime | None
    completed_at: AwareDatetime | None
    is_active: bool
    days_in_fermentation: int
    created_at: AwareDatetime
    updated_at: AwareDatetime

    model_config = {"from_attributes": True}

    @field_validator(
        "started_at",
        "yeast_added_at",
        "stabilizer_added_at",
        "completed_at",
        "created_at",
        "updated_at",
        mode="before",
    )
    @classmethod
    def ensure_timezone_aware(cls, value: datetime | None) -> datetime | None:
        """Ensure datetime has timezone info, defaulting to UTC if naive."""
        if value and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class BatchListResponse(BaseModel):
    """Response schema for batch list."""

    batches: list[BatchResponse]
    total: int


class TransferRequest(BaseModel):
    """Request schema for moving a batch's contents into another tank."""

    destination_tank_label: str = Field(min_length=1, max_length=100)
    actor_id: int | None = None
    note: str | None = None


class TransferResponse(BaseModel):
    """Response schema for a completed transfer."""

    outgoing: TransactionResponse
    incoming: TransactionResponse
    source_batch: BatchResponse
