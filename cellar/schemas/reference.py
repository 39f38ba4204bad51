"""Pydantic schemas for reference data responses."""

from pydantic import BaseModel

from cellar.domain.value_objects import Milestone, MilestonePolicy


class UnitResponse(BaseModel):
    id: int
    name: str
    abbreviation: str
    is_volume: bool

    model_config = {"from_attributes": True}


class TransactionTypeResponse(BaseModel):
    id: int
    name: str
    description: str | None
    unit_id: int
    affects_tank_quantity: bool
    quantity_multiplier: int
    milestone: Milestone | None
    milestone_policy: MilestonePolicy

    model_config = {"from_attributes": True}
