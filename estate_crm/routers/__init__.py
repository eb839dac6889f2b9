"""
API route handlers for the Estate CRM API.
"""

from .auth import router as auth_router
from .users import router as users_router
from .properties import router as properties_router
from .buyers import router as buyers_router
from .matches import router as matches_router
from .notifications import router as notifications_router
from .activity import router as activity_router
from .invites import router as invites_router
from .integrations import router as integrations_router
from .catalog import router as catalog_router
from .analytics import router as analytics_router

__all__ = [
    "auth_router",
    "users_router",
    "properties_router",
    "buyers_router",
    "matches_router",
    "notifications_router",
    "activity_router",
    "invites_router",
    "integrations_router",
    "catalog_router",
    "analytics_router",
]
