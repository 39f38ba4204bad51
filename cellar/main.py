"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlmodel import Session

from cellar.api.v1.router import router as api_v1_router
from cellar.config import settings
from cellar.database import get_engine, init_db
from cellar.domain.exceptions import CellarError, ErrorKind
from cellar.domain.lookup import TransactionTypeCache
from cellar.logging_config import configure_logging
from cellar.middleware import CorrelationIdMiddleware
from cellar.seed import seed_reference_data

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INFRASTRUCTURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Configure logging, prepare the schema and load the lookup cache."""
    configure_logging(log_level=settings.log_level, sql_echo=settings.debug)

    engine = get_engine()
    if settings.create_schema:
        init_db(engine)
    with Session(engine) as session:
        if settings.seed_reference_data:
            seed_reference_data(session)
        # Must be in place before the first ledger call is served
        application.state.transaction_types = TransactionTypeCache.load(session)
    yield


app = FastAPI(
    title="Cellar Tank Ledger API",
    description="Fermentation tank, batch and transaction tracking",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Attach correlation ID middleware (must be added before routes)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(api_v1_router)


@app.exception_handler(CellarError)
async def cellar_error_handler(request: Request, exc: CellarError) -> JSONResponse:
    """Translate a domain error into a response carrying its kind and context."""
    return JSONResponse(
        status_code=STATUS_BY_KIND[exc.kind],
        content={
            "detail": exc.message,
            "kind": exc.kind.value,
            "context": jsonable_encoder(exc.context, custom_encoder={Decimal: str}),
        },
    )


@app.get("/health", tags=["health"])
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cellar.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        workers=None if settings.api_reload else settings.api_workers,
    )
