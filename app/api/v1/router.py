"""API v1 router aggregator."""

from fastapi import APIRouter

from app.api.v1 import ebay, health

api_router = APIRouter()

# Health check
api_router.include_router(health.router, prefix="/health", tags=["health"])

# eBay connection and catalog
api_router.include_router(ebay.router, prefix="/ebay", tags=["ebay"])
