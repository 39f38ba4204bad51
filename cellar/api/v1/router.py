"""Main router aggregator for API v1."""

from fastapi import APIRouter

from cellar.api.v1.batches import router as batches_router
from cellar.api.v1.reference import router as reference_router
from cellar.api.v1.tanks import router as tanks_router

router = APIRouter(prefix="/api")

router.include_router(tanks_router)
router.include_router(batches_router)
router.include_router(reference_router)
