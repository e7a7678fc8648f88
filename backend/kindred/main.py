"""
FastAPI application entry point.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kindred.api import auth, claims, health, invites, members, org_invites, organisations, profiles
from kindred.api.admin import claims as admin_claims
from kindred.api.admin import invites as admin_invites
from kindred.api.admin import suppliers as admin_suppliers
from kindred.core.config import CORS_ORIGINS, ENABLE_HOUSEKEEPING
from kindred.core.errors import register_exception_handlers
from kindred.services.scheduler import start_housekeeping, stop_housekeeping

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Kindred Collective API",
    description="Invite-gated signup, organisations and supplier claims",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(invites.router, prefix="/api/invites", tags=["invites"])
app.include_router(members.router, prefix="/api/me", tags=["members"])
app.include_router(profiles.router, prefix="/api/me", tags=["profiles"])
app.include_router(organisations.router, prefix="/api/me", tags=["organisations"])
app.include_router(org_invites.router, prefix="/api/me", tags=["organisation-invites"])
app.include_router(claims.router, prefix="/api/suppliers", tags=["supplier-claims"])
app.include_router(admin_invites.router, prefix="/api/admin/invites", tags=["admin"])
app.include_router(admin_claims.router, prefix="/api/admin/claims", tags=["admin"])
app.include_router(admin_suppliers.router, prefix="/api/admin/suppliers", tags=["admin"])


@app.on_event("startup")
async def startup_event():
    if ENABLE_HOUSEKEEPING:
        try:
            start_housekeeping()
        except Exception as e:
            logger.error(f"Failed to start housekeeping scheduler: {e}", exc_info=True)


@app.on_event("shutdown")
async def shutdown_event():
    stop_housekeeping()
