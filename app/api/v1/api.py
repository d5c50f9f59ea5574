"""
API v1 router
"""
from fastapi import APIRouter

from app.api.v1.endpoints import auth, cohorts, tokens

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(auth.router)
api_router.include_router(tokens.router, prefix="/tokens", tags=["Invitation Tokens"])
api_router.include_router(cohorts.router, prefix="/cohorts", tags=["Cohorts"])


@api_router.get("/")
async def api_root():
    """API v1 root endpoint"""
    return {
        "message": "Cohort Onboarding API v1",
        "status": "active",
        "version": "1.0.0",
        "endpoints": {
            "auth": "/auth",
            "tokens": "/tokens (ADMIN/STAFF, /tokens/verify public)",
            "cohorts": "/cohorts (ADMIN/STAFF)",
            "docs": "/docs",
            "health": "/health"
        }
    }
