"""Pydantic schemas for tank API requests and responses."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import AwareDatetime, BaseModel, Field, field_validator

from cellar.domain.value_objects import TankStatus


class TankCreateRequest(BaseModel):
    """Request schema for registering a tank."""

    label: str = Field(
        pattern=r"^[A-Za-z0-9_-]+$",
        max_length=100,
        description="URL-safe tank label",
        examples=["FV-1"],
    )
    capacity: Decimal = Field(
        gt=0,
        max_digits=12,
        decimal_places=4,
        description="Tank capacity",
    )


class TankUpdateRequest(BaseModel):
    """Request schema for renaming and/or resizing a tank."""

    new_label: str | None = Field(
        default=None,
        pattern=r"^[A-Za-z0-9_-]+$",
        max_length=100,
    )
    new_capacity: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=12,
        decimal_places=4,
    )


class TankResponse(BaseModel):
    """Response schema for tank details."""

    id: int
    label: str
    capacity: Decimal
    capacity_unit: str | None = Field(
        default=None, validation_alias="capacity_unit_abbreviation"
    )
    current_quantity: Decimal
    current_batch_id: int | None
    percent_full: Decimal
    status: TankStatus
    version: int
    created_at: AwareDatetime
    updated_at: AwareDatetime
    deleted_at: AwareDatetime | None

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at", "deleted_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, value: datetime | None) -> datetime | None:
        """Ensure datetime has timezone info, defaulting to UTC if naive."""
        if value and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class TankListResponse(BaseModel):
    """Response schema for tank list."""

    tanks: list[TankResponse]
    total: int
