"""Shared FastAPI dependencies."""

from fastapi import Request

from cellar.domain.lookup import TransactionTypeCache

_EMPTY_CACHE = TransactionTypeCache()


def get_transaction_types(request: Request) -> TransactionTypeCache:
    """Return the lookup cache loaded at startup (empty if startup never ran)."""
    return getattr(request.app.state, "transaction_types", _EMPTY_CACHE)
