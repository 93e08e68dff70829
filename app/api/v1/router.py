from fastapi import APIRouter

from app.api.v1.endpoints import alerts, claims, config, policies

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(alerts.router, prefix="/alerts", tags=["Alerts"])
api_router.include_router(claims.router, prefix="/claims", tags=["Claims"])
api_router.include_router(policies.router, prefix="/policies", tags=["Policies"])
api_router.include_router(config.router, prefix="/config", tags=["Config"])

__all__ = ["api_router"]
