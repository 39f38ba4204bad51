"""API endpoints for the tank registry."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from cellar.api.dependencies import get_transaction_types
from cellar.database import get_session
from cellar.domain.lookup import TransactionTypeCache
from cellar.domain.services.batch_service import BatchService
from cellar.domain.services.tank_service import TankService
from cellar.schemas.batch import BatchListResponse, BatchResponse
from cellar.schemas.tank import (
    TankCreateRequest,
    TankListResponse,
    TankResponse,
    TankUpdateRequest,
)

router = APIRouter(prefix="/tanks", tags=["tanks"])


def _tank_list(tanks: list) -> TankListResponse:
    return TankListResponse(
        tanks=[TankResponse.model_validate(t) for t in tanks],
        total=len(tanks),
    )


@router.post("/", response_model=TankResponse, status_code=status.HTTP_201_CREATED)
def create_tank(
    tank_data: TankCreateRequest,
    session: Annotated[Session, Depends(get_session)],
) -> TankResponse:
    """Register a new empty tank."""
    tank = TankService(session).create_tank(
        label=tank_data.label,
        capacity=tank_data.capacity,
    )
    return TankResponse.model_validate(tank)


@router.get("/", response_model=TankListResponse)
def list_tanks(
    occupancy: str | None = Query(
        None,
        pattern="^(available|occupied|deleted)$",
        description="Filter: available, occupied or deleted tanks",
    ),
    session: Annotated[Session, Depends(get_session)] = None,
) -> TankListResponse:
    """List non-deleted tanks, optionally filtered by occupancy."""
    service = TankService(session)
    if occupancy == "available":
        return _tank_list(service.list_available_tanks())
    if occupancy == "occupied":
        return _tank_list(service.list_occupied_tanks())
    if occupancy == "deleted":
        return _tank_list(service.list_deleted_tanks())
    return _tank_list(service.list_tanks())


@router.get("/by-id/{tank_id}", response_model=TankResponse)
def get_tank_by_id(
    tank_id: int,
    session: Annotated[Session, Depends(get_session)],
    include_deleted: bool = Query(False, description="Also match soft-deleted tanks"),
) -> TankResponse:
    """Retrieve a tank by ID (administrative lookup)."""
    tank = TankService(session).get_tank(tank_id, include_deleted=include_deleted)
    return TankResponse.model_validate(tank)


@router.get("/{label}", response_model=TankResponse)
def get_tank(
    label: str,
    session: Annotated[Session, Depends(get_session)],
) -> TankResponse:
    """Retrieve a tank by label."""
    return TankResponse.model_validate(TankService(session).get_tank_by_label(label))


@router.get("/{label}/batches", response_model=BatchListResponse)
def list_tank_batches(
    label: str,
    session: Annotated[Session, Depends(get_session)],
    transaction_types: Annotated[TransactionTypeCache, Depends(get_transaction_types)],
) -> BatchListResponse:
    """Batch history of a tank, newest first."""
    tank = TankService(session).get_tank_by_label(label, include_deleted=True)
    batches = BatchService(session, transaction_types).list_batches_for_tank(tank.id)
    return BatchListResponse(
        batches=[BatchResponse.model_validate(b) for b in batches],
        total=len(batches),
    )


@router.patch("/{label}", response_model=TankResponse)
def update_tank(
    label: str,
    update: TankUpdateRequest,
    session: Annotated[Session, Depends(get_session)],
) -> TankResponse:
    """Rename and/or resize a tank."""
    tank = TankService(session).update_tank(
        label,
        new_label=update.new_label,
        new_capacity=update.new_capacity,
    )
    return TankResponse.model_validate(tank)


@router.delete("/{label}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tank(
    label: str,
    session: Annotated[Session, Depends(get_session)],
) -> None:
    """Soft-delete a tank."""
    TankService(session).delete_tank(label)


@router.post("/{label}/restore", response_model=TankResponse)
def restore_tank(
    label: str,
    session: Annotated[Session, Depends(get_session)],
) -> TankResponse:
    """Restore a soft-deleted tank."""
    return TankResponse.model_validate(TankService(session).restore_tank(label))
