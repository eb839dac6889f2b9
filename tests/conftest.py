"""
Test configuration and fixtures for the estate CRM API.
Provides database fixtures, test data factories, and common test utilities.
"""

import os

# Must be set before the application modules build their engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
import uuid
from typing import AsyncGenerator, Dict, List, Optional
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from estate_crm.main import app
from estate_crm.database import Base, get_db, get_session_factory
from estate_crm.models.user import User, UserRole
from estate_crm.models.buyer import Buyer, BuyerStatus
from estate_crm.models.property import Property, PropertyStatus
from estate_crm.repositories.user import UserRepository
from estate_crm.repositories.property import PropertyRepository
from estate_crm.repositories.buyer import BuyerRepository
from estate_crm.services.auth import AuthService
from estate_crm.services.property import PropertyService
from estate_crm.services.buyer import BuyerService
from estate_crm.services.matching import MatchingService
from estate_crm.services.realtime import MatchEventBroker
from estate_crm.utils.auth import create_access_token


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "testpassword123"


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest.fixture
async def async_client(db_session: AsyncSession, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database session override."""
    def override_get_db():
        return db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def broker() -> MatchEventBroker:
    return MatchEventBroker(queue_size=10)


# Repository fixtures
@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def property_repository(db_session: AsyncSession) -> PropertyRepository:
    return PropertyRepository(db_session)


@pytest.fixture
def buyer_repository(db_session: AsyncSession) -> BuyerRepository:
    return BuyerRepository(db_session)


# Service fixtures
@pytest.fixture
def auth_service(db_session: AsyncSession) -> AuthService:
    return AuthService(db_session)


@pytest.fixture
def property_service(db_session: AsyncSession) -> PropertyService:
    return PropertyService(db_session)


@pytest.fixture
def buyer_service(db_session: AsyncSession) -> BuyerService:
    return BuyerService(db_session)


@pytest.fixture
def matching_service(db_session: AsyncSession, broker: MatchEventBroker) -> MatchingService:
    return MatchingService(db_session, broker)


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    async def create_user(
        user_repo: UserRepository,
        email: str = None,
        password: str = TEST_PASSWORD,
        full_name: str = "Test User",
        role: Optional[UserRole] = UserRole.AGENT,
        is_active: bool = True
    ) -> User:
        """Create a test user in the database."""
        return await user_repo.create_user({
            "email": email or f"test{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "full_name": full_name,
            "role": role,
            "is_active": is_active
        })


class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def create_property_data(
        agent_id: uuid.UUID = None,
        address: str = "הרצל 12",
        city: str = "רחובות",
        neighborhood: Optional[str] = "מרכז העיר",
        price: Optional[Decimal] = Decimal("2000000"),
        rooms: Optional[Decimal] = Decimal("4"),
        floor: Optional[int] = 3,
        total_floors: Optional[int] = 8,
        parking_spots: int = 1,
        has_elevator: bool = True,
        has_safe_room: bool = True,
        has_sun_balcony: bool = False,
        status: PropertyStatus = PropertyStatus.AVAILABLE,
        **extra
    ) -> dict:
        return {
            "agent_id": agent_id,
            "address": address,
            "city": city,
            "neighborhood": neighborhood,
            "price": price,
            "rooms": rooms,
            "size_sqm": 100,
            "floor": floor,
            "total_floors": total_floors,
            "parking_spots": parking_spots,
            "has_elevator": has_elevator,
            "has_safe_room": has_safe_room,
            "has_sun_balcony": has_sun_balcony,
            "air_directions": [],
            "status": status,
            **extra
        }

    @staticmethod
    async def create_property(property_repo: PropertyRepository, **kwargs) -> Property:
        """Create a test property in the database."""
        return await property_repo.create_property(PropertyFactory.create_property_data(**kwargs))


class BuyerFactory:
    """Factory for creating test buyers."""

    @staticmethod
    def create_buyer_data(
        agent_id: uuid.UUID = None,
        full_name: str = "יוסי לוי",
        phone: Optional[str] = None,
        budget_min: Optional[Decimal] = Decimal("1800000"),
        budget_max: Optional[Decimal] = Decimal("2200000"),
        min_rooms: Optional[Decimal] = Decimal("3"),
        target_cities: List[str] = None,
        target_neighborhoods: List[str] = None,
        required_features: List[str] = None,
        floor_min: Optional[int] = None,
        floor_max: Optional[int] = None,
        status: BuyerStatus = BuyerStatus.ACTIVE
    ) -> dict:
        return {
            "agent_id": agent_id,
            "full_name": full_name,
            "phone": phone,
            "budget_min": budget_min,
            "budget_max": budget_max,
            "min_rooms": min_rooms,
            "target_cities": ["רחובות"] if target_cities is None else target_cities,
            "target_neighborhoods": target_neighborhoods or [],
            "required_features": required_features or [],
            "floor_min": floor_min,
            "floor_max": floor_max,
            "status": status,
        }

    @staticmethod
    async def create_buyer(buyer_repo: BuyerRepository, **kwargs) -> Buyer:
        """Create a test buyer in the database."""
        return await buyer_repo.create(BuyerFactory.create_buyer_data(**kwargs))


# Common test fixtures
@pytest.fixture
async def test_agent(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="agent@test.com",
        full_name="Test Agent",
        role=UserRole.AGENT
    )


@pytest.fixture
async def test_other_agent(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="other.agent@test.com",
        full_name="Other Agent",
        role=UserRole.AGENT
    )


@pytest.fixture
async def test_manager(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="manager@test.com",
        full_name="Test Manager",
        role=UserRole.MANAGER
    )


@pytest.fixture
async def test_admin(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="admin@test.com",
        full_name="Test Admin",
        role=UserRole.ADMIN
    )


@pytest.fixture
async def test_inactive_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository,
        email="inactive@test.com",
        full_name="Inactive User",
        is_active=False
    )


@pytest.fixture
async def test_property(property_repository: PropertyRepository, test_agent: User) -> Property:
    return await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)


@pytest.fixture
async def test_buyer(buyer_repository: BuyerRepository, test_agent: User) -> Buyer:
    return await BuyerFactory.create_buyer(buyer_repository, agent_id=test_agent.id)


# Utility functions for tests
def auth_headers(user: User) -> Dict[str, str]:
    """Bearer header carrying a fresh access token for the user."""
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}
