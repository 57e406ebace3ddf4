"""API routes."""

from wash_ledger.api.routes.approvals import router as approvals_router
from wash_ledger.api.routes.cutoff import router as cutoff_router
from wash_ledger.api.routes.health import router as health_router
from wash_ledger.api.routes.vehicles import router as vehicles_router
from wash_ledger.api.routes.wash_entries import router as wash_entries_router

__all__ = [
    "approvals_router",
    "cutoff_router",
    "health_router",
    "vehicles_router",
    "wash_entries_router",
]
