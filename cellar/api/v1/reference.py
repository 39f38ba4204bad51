"""API endpoints for reference data."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from cellar.api.dependencies import get_transaction_types
from cellar.database import get_session
from cellar.domain.lookup import TransactionTypeCache
from cellar.repositories.reference_repository import ReferenceDataRepository
from cellar.schemas.reference import TransactionTypeResponse, UnitResponse

router = APIRouter(tags=["reference"])


@router.get("/transaction-types", response_model=list[TransactionTypeResponse])
def list_transaction_types(
    transaction_types: Annotated[TransactionTypeCache, Depends(get_transaction_types)],
) -> list[TransactionTypeResponse]:
    """List the cached transaction type catalog."""
    return [TransactionTypeResponse.model_validate(t) for t in transaction_types]


@router.get("/units", response_model=list[UnitResponse])
def list_units(
    volume: bool | None = Query(None, description="True: volume units, False: weight units"),
    session: Annotated[Session, Depends(get_session)] = None,
) -> list[UnitResponse]:
    """List measurement units."""
    units = ReferenceDataRepository(session).list_units(is_volume=volume)
    return [UnitResponse.model_validate(u) for u in units]
