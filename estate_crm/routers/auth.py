"""
Authentication endpoints: login, sign-up, token refresh and the signed-in user.
"""

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from typing import Optional

from estate_crm.config import settings
from estate_crm.models.user import User
from estate_crm.services.auth import AuthService
from estate_crm.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RefreshTokenRequest,
    AccessTokenResponse,
    CurrentUserResponse,
    TokenValidationResponse
)
from estate_crm.schemas.error import get_auth_error_responses, get_error_responses
from estate_crm.utils.dependencies import get_auth_service, get_current_active_user, security
from estate_crm.utils.exceptions import UnauthorizedError, InactiveUserError


router = APIRouter(prefix="/auth", tags=["Authentication"])

ACCESS_TOKEN_TTL = settings.access_token_expire_minutes * 60


def _session(user: User, access_token: str, refresh_token: str) -> LoginResponse:
    return LoginResponse(
        user=CurrentUserResponse.model_validate(user.to_dict()),
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=ACCESS_TOKEN_TTL
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login",
    description="Exchange email and password for an access and a refresh token",
    responses=get_auth_error_responses()
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        InactiveUserError: The account was deactivated by an admin
    """
    user, access_token, refresh_token = await auth_service.login(
        email=login_data.email,
        password=login_data.password
    )
    return _session(user, access_token, refresh_token)


@router.post(
    "/register",
    response_model=LoginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up",
    description="Create an account without a role. It becomes a client account when an invitation is claimed.",
    responses=get_error_responses(400, 409, 422)
)
async def register(
    register_data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    user = await auth_service.register(
        email=register_data.email,
        password=register_data.password,
        full_name=register_data.full_name
    )
    return _session(user, *await auth_service.create_tokens(user))


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    summary="Refresh access token",
    description="Issue a new access token from a refresh token",
    responses=get_auth_error_responses()
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> AccessTokenResponse:
    access_token = await auth_service.refresh_access_token(refresh_token=refresh_data.refresh_token)
    return AccessTokenResponse(access_token=access_token, token_type="bearer", expires_in=ACCESS_TOKEN_TTL)


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    summary="Current user",
    responses=get_auth_error_responses()
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
) -> CurrentUserResponse:
    return CurrentUserResponse.model_validate(current_user.to_dict())


@router.post(
    "/validate",
    response_model=TokenValidationResponse,
    summary="Validate token",
    description="Report whether the bearer token is usable. A missing or bad token gives valid=false, not an error."
)
async def validate_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> TokenValidationResponse:
    if not credentials:
        return TokenValidationResponse(valid=False)

    try:
        user = await auth_service.get_current_user(credentials.credentials)
    except (UnauthorizedError, InactiveUserError):
        return TokenValidationResponse(valid=False)

    return TokenValidationResponse(valid=True, user_id=str(user.id), email=user.email, role=user.role)
