"""
User repository for authentication and user management operations.
Provides secure user operations with password handling and role lookups.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from estate_crm.repositories.base import BaseRepository
from estate_crm.models.user import User, UserRole
from typing import Optional, List, Dict, Any
import uuid
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """
    Repository for user management with authentication support.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def create_user(self, user_data: Dict[str, Any]) -> User:
        """
        Create a new user with email validation and password hashing.

        Args:
            user_data: Dictionary containing user information
                      Must include: email, password, full_name
                      Optional: role (defaults to AGENT), phone, is_active

        Returns:
            Created user instance

        Raises:
            ValueError: If validation fails or the email is taken
        """
        try:
            data = dict(user_data)
            email = User.validate_email_format(data["email"])

            if await self.get_by_email(email):
                raise ValueError(f"User with email {email} already exists")

            password = data.pop("password")
            create_data = {
                **data,
                "email": email,
                "hashed_password": User.hash_password(password),
                "role": data.get("role", UserRole.AGENT),
                "is_active": data.get("is_active", True),
            }

            created_user = await self.create(create_data)
            logger.info(f"Created user: {created_user.email} (ID: {created_user.id})")
            return created_user
        except ValueError as e:
            logger.error(f"User validation failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create user: {e}")
            raise

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email address.

        Args:
            email: Email address to search for

        Returns:
            User instance if found, None otherwise
        """
        try:
            normalized_email = email.lower().strip()
            result = await self.db.execute(select(User).where(User.email == normalized_email))
            user = result.scalar_one_or_none()

            if user:
                logger.debug(f"Retrieved user by email: {email}")
            else:
                logger.debug(f"User with email {email} not found")

            return user
        except Exception as e:
            logger.error(f"Failed to get user by email {email}: {e}")
            raise

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate user with email and password.

        Returns:
            User instance if authentication successful, None otherwise
        """
        try:
            user = await self.get_by_email(email)

            if not user:
                logger.debug(f"Authentication failed: user {email} not found")
                return None

            if not user.is_active:
                logger.debug(f"Authentication failed: user {email} is inactive")
                return None

            if not user.verify_password(password):
                logger.debug(f"Authentication failed: invalid password for {email}")
                return None

            return user
        except Exception as e:
            logger.error(f"Failed to authenticate user {email}: {e}")
            raise

    async def update_password(self, user_id: uuid.UUID, new_password: str) -> Optional[User]:
        """
        Update user's password with proper hashing.

        Raises:
            ValueError: If password validation fails
        """
        hashed_password = User.hash_password(new_password)
        updated_user = await self.update(user_id, {"hashed_password": hashed_password})

        if updated_user:
            logger.info(f"Password updated for user: {updated_user.email}")

        return updated_user

    async def get_users_by_roles(self, roles: List[UserRole], limit: int = 100) -> List[User]:
        """
        Get active users having any of the given roles, oldest first.

        Args:
            roles: Roles to include
            limit: Maximum number of users to return

        Returns:
            List of users
        """
        try:
            query = (
                select(User)
                .where(User.role.in_(roles), User.is_active.is_(True))
                .order_by(User.created_at)
                .limit(limit)
            )
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Failed to get users by roles {roles}: {e}")
            raise

    async def get_first_manager(self) -> Optional[User]:
        """First admin or manager account, used as fallback recipient for catalog leads."""
        managers = await self.get_users_by_roles([UserRole.ADMIN, UserRole.MANAGER], limit=1)
        return managers[0] if managers else None

    async def list_users(self, skip: int = 0, limit: int = 100) -> List[User]:
        result = await self.db.execute(
            select(User).order_by(desc(User.created_at)).offset(skip).limit(limit)
        )
        return list(result.scalars().all())
