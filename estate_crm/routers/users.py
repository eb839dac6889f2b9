"""
User administration endpoints.
Admins create users, change roles and active flags, and reset passwords.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from typing import List
from uuid import UUID

from estate_crm.models.user import User
from estate_crm.services.auth import AuthService
from estate_crm.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UserListResponse,
    PasswordResetRequest
)
from estate_crm.schemas.error import get_crud_error_responses, get_common_error_responses
from estate_crm.utils.dependencies import (
    get_auth_service,
    get_current_admin_user,
    get_current_agent_user,
    get_current_manager_user
)


router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create an agent, manager, admin or client account. Admin only.",
    responses=get_crud_error_responses()
)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(get_current_admin_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    user = await auth_service.create_user(user_data, current_user)
    return UserResponse.model_validate(user.to_dict())


@router.get(
    "",
    response_model=UserListResponse,
    summary="List users",
    description="All accounts, newest first. Managers and admins only.",
    responses=get_common_error_responses()
)
async def list_users(
    skip: int = Query(0, ge=0, description="Number of users to skip"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of users"),
    current_user: User = Depends(get_current_manager_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserListResponse:
    users = await auth_service.list_users(current_user, skip=skip, limit=limit)
    return UserListResponse(
        users=[UserResponse.model_validate(user.to_dict()) for user in users],
        total=len(users)
    )


@router.get(
    "/agents",
    response_model=List[UserResponse],
    summary="List agents",
    description="Active staff accounts a buyer can be assigned to"
)
async def list_agents(
    current_user: User = Depends(get_current_agent_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> List[UserResponse]:
    agents = await auth_service.list_agents()
    return [UserResponse.model_validate(agent.to_dict()) for agent in agents]


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update user",
    description="Change profile, role or active flag. Admins cannot deactivate or demote themselves.",
    responses=get_crud_error_responses()
)
async def update_user(
    user_id: UUID = Path(..., description="User ID"),
    update_data: UserUpdate = ...,
    current_user: User = Depends(get_current_admin_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    user = await auth_service.update_user(user_id, update_data, current_user)
    return UserResponse.model_validate(user.to_dict())


@router.post(
    "/{user_id}/reset-password",
    response_model=UserResponse,
    summary="Reset password",
    description="Set a new password for another user. Admin only.",
    responses=get_crud_error_responses()
)
async def reset_password(
    user_id: UUID = Path(..., description="User ID"),
    reset_data: PasswordResetRequest = ...,
    current_user: User = Depends(get_current_admin_user),
    auth_service: AuthService = Depends(get_auth_service)
) -> UserResponse:
    user = await auth_service.reset_password(user_id, reset_data.new_password, current_user)
    return UserResponse.model_validate(user.to_dict())
