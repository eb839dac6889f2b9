"""
Authentication service for user login, token management, and user administration.
Handles JWT token generation, validation, self sign-up and admin user management.
"""

from typing import Tuple, List
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.user import UserRepository
from estate_crm.models.user import User, UserRole
from estate_crm.schemas.user import UserCreate, UserUpdate
from estate_crm.utils.auth import (
    create_access_token,
    create_refresh_token,
    verify_token
)
from estate_crm.utils.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    TokenExpiredError,
    InactiveUserError,
    NotFoundError,
    ForbiddenError,
    ValidationError,
    BadRequestError,
    ConflictError,
    DuplicateResourceError,
    InsufficientPermissionsError
)
from jose import JWTError
import uuid
import logging

logger = logging.getLogger(__name__)


class AuthService:
    """
    Authentication service for managing user authentication and user administration.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        Authenticate user with email and password.

        Args:
            email: User's email address
            password: Plain text password

        Returns:
            Authenticated User object

        Raises:
            InvalidCredentialsError: If credentials are invalid
            InactiveUserError: If user account is inactive
            ValidationError: If input validation fails
        """
        try:
            if not email or not email.strip():
                raise ValidationError("Email is required")

            if not password:
                raise ValidationError("Password is required")

            existing = await self.user_repo.get_by_email(email)
            if existing and not existing.is_active:
                raise InactiveUserError()

            user = await self.user_repo.authenticate_user(email, password)

            if not user:
                logger.warning(f"Failed authentication attempt for email: {email}")
                raise InvalidCredentialsError()

            logger.info(f"User authenticated successfully: {user.email}")
            return user

        except (ValidationError, InvalidCredentialsError, InactiveUserError):
            raise
        except Exception as e:
            logger.error(f"Authentication error for {email}: {e}")
            raise InvalidCredentialsError()

    async def create_tokens(self, user: User) -> Tuple[str, str]:
        """
        Create access and refresh tokens for user.

        Returns:
            Tuple of (access_token, refresh_token)
        """
        access_token = create_access_token(
            user_id=user.id,
            email=user.email,
            role=user.role
        )

        refresh_token = create_refresh_token(
            user_id=user.id,
            email=user.email
        )

        return access_token, refresh_token

    async def login(self, email: str, password: str) -> Tuple[User, str, str]:
        """
        Authenticate user and create tokens.

        Returns:
            Tuple of (user, access_token, refresh_token)
        """
        user = await self.authenticate_user(email, password)
        access_token, refresh_token = await self.create_tokens(user)

        return user, access_token, refresh_token

    async def register(self, email: str, password: str, full_name: str) -> User:
        """
        Self sign-up. The account has no role until an invitation is claimed.

        Raises:
            DuplicateResourceError: If the email is already registered
        """
        try:
            if await self.user_repo.get_by_email(email):
                raise DuplicateResourceError("User", email)

            user = await self.user_repo.create_user({
                "email": email,
                "password": password,
                "full_name": full_name,
                "role": None,
            })
            logger.info(f"User signed up: {user.email} (ID: {user.id})")
            return user

        except ConflictError:
            raise
        except Exception as e:
            logger.error(f"Failed to register user {email}: {e}")
            raise BadRequestError(f"Failed to register user: {str(e)}")

    async def refresh_access_token(self, refresh_token: str) -> str:
        """
        Create new access token from refresh token.

        Raises:
            InvalidTokenError: If refresh token is invalid
            TokenExpiredError: If refresh token is expired
            NotFoundError: If user not found
            InactiveUserError: If user account is inactive
        """
        try:
            token_payload = verify_token(refresh_token, token_type="refresh")

            user = await self.get_user_by_id(uuid.UUID(token_payload.user_id))

            if not user.is_active:
                raise InactiveUserError()

            return create_access_token(
                user_id=user.id,
                email=user.email,
                role=user.role
            )

        except JWTError as e:
            if "expired" in str(e).lower():
                raise TokenExpiredError()
            raise InvalidTokenError(str(e))

    async def get_current_user(self, token: str) -> User:
        """
        Get current user from access token.

        Args:
            token: JWT access token

        Returns:
            Current User object

        Raises:
            InvalidTokenError: If token is invalid
            TokenExpiredError: If token is expired
            InactiveUserError: If user account is inactive
        """
        try:
            token_payload = verify_token(token, token_type="access")
            user = await self.user_repo.get_by_id(uuid.UUID(token_payload.user_id))
        except JWTError as e:
            if "expired" in str(e).lower():
                raise TokenExpiredError()
            raise InvalidTokenError(str(e))
        except ValueError:
            raise InvalidTokenError("Invalid token subject")

        if not user:
            raise InvalidTokenError("User no longer exists")

        if not user.is_active:
            raise InactiveUserError()

        return user

    async def get_user_by_id(self, user_id: uuid.UUID) -> User:
        """
        Get user by ID.

        Raises:
            NotFoundError: If user not found
        """
        try:
            user = await self.user_repo.get_by_id(user_id)

            if not user:
                raise NotFoundError("User", str(user_id))

            return user

        except NotFoundError:
            raise
        except Exception as e:
            logger.error(f"Failed to get user by ID {user_id}: {e}")
            raise BadRequestError(f"Failed to retrieve user: {str(e)}")

    async def create_user(self, user_data: UserCreate, current_user: User) -> User:
        """
        Create a new user as an admin.

        Args:
            user_data: User creation data
            current_user: Admin performing the action

        Returns:
            Created user instance

        Raises:
            InsufficientPermissionsError: If the caller is not an admin
            DuplicateResourceError: If the email is taken
        """
        try:
            if not current_user.is_admin:
                raise InsufficientPermissionsError("create users")

            if await self.user_repo.get_by_email(user_data.email):
                raise DuplicateResourceError("User", user_data.email)

            user = await self.user_repo.create_user(user_data.model_dump())

            logger.info(f"User created by {current_user.email}: {user.email} (ID: {user.id})")
            return user

        except (ForbiddenError, ConflictError):
            raise
        except Exception as e:
            logger.error(f"Failed to create user: {e}")
            raise BadRequestError(f"Failed to create user: {str(e)}")

    async def list_users(self, current_user: User, skip: int = 0, limit: int = 100) -> List[User]:
        if not current_user.is_manager:
            raise InsufficientPermissionsError("list users")
        return await self.user_repo.list_users(skip=skip, limit=limit)

    async def list_agents(self) -> List[User]:
        """Active agents, managers and admins, e.g. for buyer assignment."""
        return await self.user_repo.get_users_by_roles(
            [UserRole.AGENT, UserRole.MANAGER, UserRole.ADMIN]
        )

    async def update_user(self, user_id: uuid.UUID, update_data: UserUpdate, current_user: User) -> User:
        """
        Update another user's profile, role or status as an admin.

        Raises:
            InsufficientPermissionsError: If the caller is not an admin
            BadRequestError: If an admin tries to deactivate or demote themselves
        """
        try:
            if not current_user.is_admin:
                raise InsufficientPermissionsError("update users")

            await self.get_user_by_id(user_id)
            changes = update_data.model_dump(exclude_unset=True)

            if user_id == current_user.id:
                if changes.get("is_active") is False:
                    raise BadRequestError("You cannot deactivate your own account")
                if "role" in changes and changes["role"] != UserRole.ADMIN:
                    raise BadRequestError("You cannot remove your own admin role")

            updated_user = await self.user_repo.update(user_id, changes)
            logger.info(f"User {user_id} updated by {current_user.email}: {sorted(changes)}")
            return updated_user

        except (NotFoundError, ForbiddenError, BadRequestError):
            raise
        except Exception as e:
            logger.error(f"Failed to update user {user_id}: {e}")
            raise BadRequestError(f"Failed to update user: {str(e)}")

    async def reset_password(self, user_id: uuid.UUID, new_password: str, current_user: User) -> User:
        """
        Reset another user's password as an admin.

        Raises:
            InsufficientPermissionsError: If the caller is not an admin
            NotFoundError: If the user does not exist
        """
        try:
            if not current_user.is_admin:
                raise InsufficientPermissionsError("reset passwords")

            await self.get_user_by_id(user_id)
            user = await self.user_repo.update_password(user_id, new_password)

            logger.info(f"Password reset by {current_user.email} for user {user_id}")
            return user

        except (NotFoundError, ForbiddenError):
            raise
        except Exception as e:
            logger.error(f"Failed to reset password for {user_id}: {e}")
            raise BadRequestError(f"Failed to reset password: {str(e)}")
