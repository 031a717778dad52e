"""API routes for the FastAPI application."""

from fastapi import APIRouter

from prepcoach.api.v1.endpoints import billing, coaching, entitlements, health

api_router = APIRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
api_router.include_router(entitlements.router, prefix="/entitlements", tags=["entitlements"])
api_router.include_router(coaching.router, prefix="/coaching", tags=["coaching"])
