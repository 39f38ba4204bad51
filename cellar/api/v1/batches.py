"""API endpoints for batches, their transactions and transfers."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from cellar.api.dependencies import get_transaction_types
from cellar.database import get_session
from cellar.domain.lookup import TransactionTypeCache
from cellar.domain.services.batch_service import BatchService
from cellar.domain.services.ledger_service import LedgerService
from cellar.domain.services.transfer_service import TransferService
from cellar.schemas.batch import (
    BatchListResponse,
    BatchResponse,
    BatchStartRequest,
    TransferRequest,
    TransferResponse,
)
from cellar.schemas.transaction import (
    TransactionCreateRequest,
    TransactionListResponse,
    TransactionResponse,
)

router = APIRouter(prefix="/batches", tags=["batches"])

SessionDep = Annotated[Session, Depends(get_session)]
TypesDep = Annotated[TransactionTypeCache, Depends(get_transaction_types)]


@router.post("/", response_model=BatchResponse, status_code=status.HTTP_201_CREATED)
def start_batch(
    batch_data: BatchStartRequest,
    session: SessionDep,
    transaction_types: TypesDep,
) -> BatchResponse:
    """Start a batch in an empty tank with its opening transaction."""
    batch = BatchService(session, transaction_types).start_batch(
        tank_id=batch_data.tank_id,
        name=batch_data.name,
        transaction_type_id=batch_data.transaction_type_id,
        initial_quantity=batch_data.initial_quantity,
        note=batch_data.note,
        started_at=batch_data.started_at,
        actor_id=batch_data.actor_id,
    )
    return BatchResponse.model_validate(batch)


@router.get("/", response_model=BatchListResponse)
def list_batches(
    session: SessionDep,
    transaction_types: TypesDep,
    completed: bool = Query(False, description="List completed instead of active batches"),
) -> BatchListResponse:
    """List active batches, or completed ones newest first."""
    service = BatchService(session, transaction_types)
    batches = (
        service.list_completed_batches() if completed else service.list_active_batches()
    )
    return BatchListResponse(
        batches=[BatchResponse.model_validate(b) for b in batches],
        total=len(batches),
    )


@router.get("/{batch_id}", response_model=BatchResponse)
def get_batch(
    batch_id: int,
    session: SessionDep,
    transaction_types: TypesDep,
) -> BatchResponse:
    """Retrieve a batch by ID."""
    batch = BatchService(session, transaction_types).get_batch(batch_id)
    return BatchResponse.model_validate(batch)


@router.post("/{batch_id}/complete", response_model=BatchResponse)
def complete_batch(
    batch_id: int,
    session: SessionDep,
    transaction_types: TypesDep,
) -> BatchResponse:
    """Complete a batch, writing off any remaining quantity as waste."""
    batch = BatchService(session, transaction_types).complete_batch(batch_id)
    return BatchResponse.model_validate(batch)


@router.post(
    "/{batch_id}/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_transaction(
    batch_id: int,
    transaction_data: TransactionCreateRequest,
    session: SessionDep,
    transaction_types: TypesDep,
) -> TransactionResponse:
    """Record a transaction against an active batch (atomic operation)."""
    transaction = LedgerService(session, transaction_types).record(
        batch_id=batch_id,
        transaction_type_id=transaction_data.transaction_type_id,
        quantity=transaction_data.quantity,
        occurred_at=transaction_data.occurred_at,
        actor_id=transaction_data.actor_id,
        note=transaction_data.note,
    )
    return TransactionResponse.model_validate(transaction)


@router.get("/{batch_id}/transactions", response_model=TransactionListResponse)
def list_transactions(
    batch_id: int,
    session: SessionDep,
    transaction_types: TypesDep,
    transaction_type_id: int | None = Query(None, description="Only this type"),
) -> TransactionListResponse:
    """List a batch's transactions, newest first."""
    service = LedgerService(session, transaction_types)
    if transaction_type_id is None:
        transactions = service.list_transactions(batch_id)
    else:
        transactions = service.list_transactions_by_type(batch_id, transaction_type_id)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        total=len(transactions),
    )


@router.post("/{batch_id}/transfer", response_model=TransferResponse)
def transfer_batch(
    batch_id: int,
    transfer_data: TransferRequest,
    session: SessionDep,
    transaction_types: TypesDep,
) -> TransferResponse:
    """Move the batch's entire contents into another tank's active batch."""
    outgoing, incoming = TransferService(session, transaction_types).transfer(
        source_batch_id=batch_id,
        destination_tank_label=transfer_data.destination_tank_label,
        actor_id=transfer_data.actor_id,
        note=transfer_data.note,
    )
    source_batch = BatchService(session, transaction_types).get_batch(batch_id)
    return TransferResponse(
        outgoing=TransactionResponse.model_validate(outgoing),
        incoming=TransactionResponse.model_validate(incoming),
        source_batch=BatchResponse.model_validate(source_batch),
    )
