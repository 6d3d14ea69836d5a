"""
API v1 Router

Tenant-scoped endpoints take the organization from the session's active-org
pointer, never from the URL.
"""

from fastapi import APIRouter
from . import (
    associations,
    documents,
    fractions,
    invites,
    maintenance,
    members,
    notifications,
    suppliers,
    tickets,
)
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

router = APIRouter()

# Session-scoped routes (list, create, switch, join, invite acceptance)
router.include_router(orgs_global_router)
router.include_router(invites.router_accept)

# Active-org routes
router.include_router(orgs_scoped_router, prefix="/org", tags=["Organizations"])
router.include_router(members.router, prefix="/members", tags=["Members"])
router.include_router(fractions.router, prefix="/fractions", tags=["Fractions"])
router.include_router(associations.router, prefix="/associations", tags=["Associations"])
router.include_router(associations.router_me, prefix="/me", tags=["Associations"])
router.include_router(invites.router, prefix="/invites", tags=["Invites"])
router.include_router(tickets.router, prefix="/tickets", tags=["Tickets"])
router.include_router(suppliers.router, prefix="/suppliers", tags=["Suppliers"])
router.include_router(maintenance.router, prefix="/maintenance", tags=["Maintenance"])
router.include_router(documents.router, prefix="/documents", tags=["Documents"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])


@router.get("/", tags=["API"])
async def api_root():
    """Version and top-level resource listing."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/org",
            "/members",
            "/fractions",
            "/associations",
            "/invites",
            "/tickets",
            "/suppliers",
            "/maintenance",
            "/documents",
            "/notifications",
        ],
    }
