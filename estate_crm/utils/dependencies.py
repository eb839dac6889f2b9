"""
FastAPI dependency injection utilities for authentication and services.
Provides reusable dependencies for route protection and user extraction.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.database import get_db
from estate_crm.models.user import User
from estate_crm.services.activity_log import ActivityLogService
from estate_crm.services.analytics import AnalyticsService
from estate_crm.services.auth import AuthService
from estate_crm.services.buyer import BuyerService
from estate_crm.services.buyer_property import BuyerPropertyService
from estate_crm.services.catalog import CatalogService, BuyerPortalService
from estate_crm.services.email import EmailService
from estate_crm.services.invite import InviteService
from estate_crm.services.matching import MatchingService
from estate_crm.services.neighborhood import NeighborhoodService
from estate_crm.services.notification import NotificationService
from estate_crm.services.property import PropertyService
from estate_crm.services.taste_profile import TasteProfileService
from estate_crm.services.webtiv import WebtivSyncService
from estate_crm.utils.exceptions import (
    UnauthorizedError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    InsufficientPermissionsError
)


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    """
    Get authentication service instance.

    Args:
        db: Database session

    Returns:
        AuthService instance
    """
    return AuthService(db)


async def get_property_service(db: AsyncSession = Depends(get_db)) -> PropertyService:
    return PropertyService(db)


async def get_buyer_service(db: AsyncSession = Depends(get_db)) -> BuyerService:
    return BuyerService(db)


async def get_buyer_property_service(db: AsyncSession = Depends(get_db)) -> BuyerPropertyService:
    return BuyerPropertyService(db)


async def get_matching_service(db: AsyncSession = Depends(get_db)) -> MatchingService:
    return MatchingService(db)


async def get_notification_service(db: AsyncSession = Depends(get_db)) -> NotificationService:
    return NotificationService(db)


async def get_activity_log_service(db: AsyncSession = Depends(get_db)) -> ActivityLogService:
    return ActivityLogService(db)


async def get_invite_service(db: AsyncSession = Depends(get_db)) -> InviteService:
    return InviteService(db)


async def get_taste_profile_service(db: AsyncSession = Depends(get_db)) -> TasteProfileService:
    return TasteProfileService(db)


async def get_webtiv_service(db: AsyncSession = Depends(get_db)) -> WebtivSyncService:
    return WebtivSyncService(db)


async def get_email_service(db: AsyncSession = Depends(get_db)) -> EmailService:
    return EmailService(db)


async def get_catalog_service(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


async def get_portal_service(db: AsyncSession = Depends(get_db)) -> BuyerPortalService:
    return BuyerPortalService(db)


async def get_analytics_service(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db)


async def get_neighborhood_service(db: AsyncSession = Depends(get_db)) -> NeighborhoodService:
    return NeighborhoodService(db)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Get current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer credentials
        auth_service: Authentication service

    Returns:
        Current User object

    Raises:
        UnauthorizedError: If no token provided or token is invalid
        TokenExpiredError: If token is expired
        InactiveUserError: If user account is inactive
    """
    if not credentials:
        raise UnauthorizedError("Authentication token required")

    try:
        return await auth_service.get_current_user(credentials.credentials)
    except (InvalidTokenError, TokenExpiredError, InactiveUserError):
        raise
    except Exception as e:
        raise UnauthorizedError(f"Authentication failed: {str(e)}")


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get current active user (additional check for user status).

    Raises:
        InactiveUserError: If user account is inactive
    """
    if not current_user.is_active:
        raise InactiveUserError()

    return current_user


async def get_current_agent_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current user with a staff role: agent, manager or admin.

    Raises:
        InsufficientPermissionsError: If user is a client or has no role
    """
    if not current_user.is_agent:
        raise InsufficientPermissionsError("access agent resources")

    return current_user


async def get_current_manager_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current user with manager or admin role.

    Raises:
        InsufficientPermissionsError: If user is not a manager or admin
    """
    if not current_user.is_manager:
        raise InsufficientPermissionsError("access manager resources")

    return current_user


async def get_current_admin_user(
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Get current user with admin role.

    Raises:
        InsufficientPermissionsError: If user is not an admin
    """
    if not current_user.is_admin:
        raise InsufficientPermissionsError("access admin resources")

    return current_user


async def authenticate_websocket(token: Optional[str], db: AsyncSession) -> User:
    """
    Resolve the staff user behind a WebSocket query token.

    Raises:
        UnauthorizedError: If the token is missing or invalid
        InsufficientPermissionsError: If the user is not staff
    """
    if not token:
        raise UnauthorizedError("Authentication token required")

    user = await AuthService(db).get_current_user(token)
    if not user.is_agent:
        raise InsufficientPermissionsError("subscribe to match updates")
    return user
