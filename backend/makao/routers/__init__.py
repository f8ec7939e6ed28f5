"""API Routers for MAKAO Rental Management."""

from makao.routers.webhooks import router as webhooks_router
from makao.routers.users import router as users_router
from makao.routers.properties import router as properties_router
from makao.routers.properties import units_router
from makao.routers.leases import router as leases_router
from makao.routers.payments import router as payments_router
from makao.routers.tenant import router as tenant_router
from makao.routers.maintenance import router as maintenance_router
from makao.routers.notifications import router as notifications_router
from makao.routers.calendar import router as calendar_router
from makao.routers.dashboard import router as dashboard_router

__all__ = [
    "webhooks_router",
    "users_router",
    "properties_router",
    "units_router",
    "leases_router",
    "payments_router",
    "tenant_router",
    "maintenance_router",
    "notifications_router",
    "calendar_router",
    "dashboard_router",
]
