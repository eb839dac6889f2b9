"""
Tests for repository classes.
Tests CRUD operations, search, matching queries and notification bookkeeping.
"""

import pytest
from decimal import Decimal

from estate_crm.models.user import User, UserRole
from estate_crm.models.buyer import BuyerStatus
from estate_crm.models.property import Property, PropertyStatus
from estate_crm.repositories.user import UserRepository
from estate_crm.repositories.property import PropertyRepository, PropertySearchFilters
from estate_crm.repositories.buyer import BuyerRepository
from estate_crm.repositories.match import MatchRepository
from estate_crm.repositories.notification import NotificationRepository
from estate_crm.repositories.buyer_property import BuyerPropertyRepository
from estate_crm.models.buyer_property import BuyerPropertyStatus
from tests.conftest import UserFactory, PropertyFactory, BuyerFactory, TEST_PASSWORD


class TestUserRepository:
    """Test UserRepository functionality."""

    async def test_create_user_hashes_password(self, user_repository: UserRepository):
        user = await UserFactory.create_user(user_repository, email="New.Agent@Test.com")

        assert user.id is not None
        assert user.email == "new.agent@test.com"
        assert user.hashed_password != TEST_PASSWORD
        assert user.verify_password(TEST_PASSWORD)
        assert user.role == UserRole.AGENT

    async def test_create_user_duplicate_email(self, user_repository: UserRepository, test_agent: User):
        with pytest.raises(ValueError, match="already exists"):
            await UserFactory.create_user(user_repository, email=test_agent.email)

    async def test_create_user_short_password(self, user_repository: UserRepository):
        with pytest.raises(ValueError, match="at least 8 characters"):
            await UserFactory.create_user(user_repository, password="short")

    async def test_create_user_without_role(self, user_repository: UserRepository):
        user = await UserFactory.create_user(user_repository, role=None)

        assert user.role is None
        assert not user.is_agent

    async def test_get_by_email_case_insensitive(self, user_repository: UserRepository, test_agent: User):
        found = await user_repository.get_by_email("AGENT@test.com")

        assert found is not None
        assert found.id == test_agent.id

    async def test_authenticate_user(self, user_repository: UserRepository, test_agent: User):
        assert (await user_repository.authenticate_user(test_agent.email, TEST_PASSWORD)).id == test_agent.id
        assert await user_repository.authenticate_user(test_agent.email, "wrongpassword") is None

    async def test_get_users_by_roles(
        self,
        user_repository: UserRepository,
        test_agent: User,
        test_manager: User,
        test_admin: User
    ):
        staff = await user_repository.get_users_by_roles([UserRole.AGENT, UserRole.MANAGER])

        assert {u.id for u in staff} == {test_agent.id, test_manager.id}

    async def test_get_first_manager(self, user_repository: UserRepository, test_agent: User, test_manager: User):
        manager = await user_repository.get_first_manager()

        assert manager is not None
        assert manager.id == test_manager.id


class TestPropertyRepository:
    """Test PropertyRepository functionality."""

    async def test_create_property(self, property_repository: PropertyRepository, test_agent: User):
        prop = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)

        assert prop.id is not None
        assert prop.status == PropertyStatus.AVAILABLE
        assert prop.agent.id == test_agent.id
        assert prop.images == []

    async def test_create_property_invalid_floor(self, property_repository: PropertyRepository, test_agent: User):
        with pytest.raises(ValueError, match="Floor cannot be above"):
            await PropertyFactory.create_property(
                property_repository, agent_id=test_agent.id, floor=9, total_floors=4
            )

    async def test_search_properties_filters(self, property_repository: PropertyRepository, test_agent: User):
        await PropertyFactory.create_property(property_repository, agent_id=test_agent.id, price=Decimal("1500000"))
        await PropertyFactory.create_property(property_repository, agent_id=test_agent.id, price=Decimal("2500000"))
        await PropertyFactory.create_property(property_repository, agent_id=test_agent.id, city="יבנה")
        await PropertyFactory.create_property(
            property_repository, agent_id=test_agent.id, status=PropertyStatus.SOLD
        )

        properties, total = await property_repository.search_properties(
            PropertySearchFilters(city="רחובות", max_price=Decimal("2100000"), status=PropertyStatus.AVAILABLE)
        )

        assert total == 1
        assert properties[0].price == Decimal("1500000")

    async def test_search_properties_text(self, property_repository: PropertyRepository, test_agent: User):
        await PropertyFactory.create_property(property_repository, agent_id=test_agent.id, address="הרצל 12")
        await PropertyFactory.create_property(property_repository, agent_id=test_agent.id, address="בילו 40")

        properties, total = await property_repository.search_properties(PropertySearchFilters(search_text="בילו"))

        assert total == 1
        assert properties[0].address == "בילו 40"

    async def test_available_properties_exclude(self, property_repository: PropertyRepository, test_agent: User):
        first = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)
        second = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)
        await PropertyFactory.create_property(
            property_repository, agent_id=test_agent.id, status=PropertyStatus.PENDING
        )

        available = await property_repository.get_available_properties(exclude_ids={first.id})

        assert [p.id for p in available] == [second.id]

    async def test_first_image_becomes_primary(self, property_repository: PropertyRepository, test_property: Property):
        first = await property_repository.add_image(test_property.id, "https://cdn.example.com/1.jpg")
        second = await property_repository.add_image(test_property.id, "https://cdn.example.com/2.jpg")

        assert first.is_primary
        assert not second.is_primary
        assert second.display_order == 1

    async def test_delete_primary_promotes_next(self, property_repository: PropertyRepository, test_property: Property):
        first = await property_repository.add_image(test_property.id, "https://cdn.example.com/1.jpg")
        await property_repository.add_image(test_property.id, "https://cdn.example.com/2.jpg")

        await property_repository.delete_image(first)
        prop = await property_repository.get_property_with_details(test_property.id)

        assert len(prop.images) == 1
        assert prop.images[0].is_primary
        assert prop.primary_image.url == "https://cdn.example.com/2.jpg"

    async def test_upsert_extended_details(self, property_repository: PropertyRepository, test_property: Property):
        await property_repository.upsert_extended_details(test_property.id, {"storage_room": True})
        details = await property_repository.upsert_extended_details(test_property.id, {"furnished": "partial"})

        assert details.storage_room is True
        assert details.furnished == "partial"


class TestBuyerRepository:
    """Test BuyerRepository functionality."""

    async def test_search_scoped_to_agent(
        self,
        buyer_repository: BuyerRepository,
        test_agent: User,
        test_other_agent: User
    ):
        await BuyerFactory.create_buyer(buyer_repository, agent_id=test_agent.id, full_name="דנה כהן")
        await BuyerFactory.create_buyer(buyer_repository, agent_id=test_other_agent.id, full_name="רון לוי")

        buyers, total = await buyer_repository.search_buyers(agent_id=test_agent.id)

        assert total == 1
        assert buyers[0].full_name == "דנה כהן"

    async def test_search_by_city_and_text(self, buyer_repository: BuyerRepository, test_agent: User):
        await BuyerFactory.create_buyer(
            buyer_repository, agent_id=test_agent.id, full_name="דנה כהן", target_cities=["יבנה"]
        )
        await BuyerFactory.create_buyer(
            buyer_repository, agent_id=test_agent.id, full_name="רון לוי", phone="0501234567"
        )

        by_city, city_total = await buyer_repository.search_buyers(city="יבנה")
        by_phone, phone_total = await buyer_repository.search_buyers(search_text="050123")

        assert city_total == 1 and by_city[0].full_name == "דנה כהן"
        assert phone_total == 1 and by_phone[0].full_name == "רון לוי"

    async def test_matchable_buyers(self, buyer_repository: BuyerRepository, test_agent: User):
        lead = await BuyerFactory.create_buyer(buyer_repository, agent_id=test_agent.id, status=BuyerStatus.LEAD)
        active = await BuyerFactory.create_buyer(buyer_repository, agent_id=test_agent.id)
        await BuyerFactory.create_buyer(buyer_repository, agent_id=test_agent.id, status=BuyerStatus.CLOSED)

        buyers = await buyer_repository.get_matchable_buyers()

        assert {b.id for b in buyers} == {lead.id, active.id}


class TestMatchRepository:
    """Test MatchRepository functionality."""

    async def test_upsert_match(self, db_session, test_buyer, test_property):
        repo = MatchRepository(db_session)

        match, created = await repo.upsert_match(test_buyer.id, test_property.id, 70, "עיר מועדפת", True)
        again, created_again = await repo.upsert_match(test_buyer.id, test_property.id, 85, "עיר מועדפת", True)
        await db_session.commit()

        assert created is True
        assert created_again is False
        assert again.id == match.id
        assert (await repo.get_pair(test_buyer.id, test_property.id)).match_score == 85

    async def test_delete_stale_by_kind(
        self,
        db_session,
        property_repository: PropertyRepository,
        test_buyer,
        test_agent: User
    ):
        repo = MatchRepository(db_session)
        keep = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)
        stale = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)
        excluded = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)

        await repo.upsert_match(test_buyer.id, keep.id, 80, None, True)
        await repo.upsert_match(test_buyer.id, stale.id, 60, None, True)
        await repo.upsert_match(test_buyer.id, excluded.id, 0, "עיר לא תואמת", False)

        removed_passed = await repo.delete_stale(test_buyer.id, [keep.id], passed=True)
        await db_session.commit()

        passed = await repo.get_for_buyer(test_buyer.id, passed_only=True)
        assert removed_passed == 1
        assert [m.property_id for m in passed] == [keep.id]
        assert len(await repo.get_for_buyer(test_buyer.id, passed_only=False)) == 2

        removed_excluded = await repo.delete_stale(test_buyer.id, [], passed=False)
        await db_session.commit()

        remaining = await repo.get_for_buyer(test_buyer.id, passed_only=False)
        assert removed_excluded == 1
        assert [m.property_id for m in remaining] == [keep.id]

    async def test_top_exclusion_reasons(
        self,
        db_session,
        property_repository: PropertyRepository,
        buyer_repository: BuyerRepository,
        test_agent: User
    ):
        repo = MatchRepository(db_session)
        first = await BuyerFactory.create_buyer(buyer_repository, agent_id=test_agent.id)
        second = await BuyerFactory.create_buyer(buyer_repository, agent_id=test_agent.id)
        prop_a = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)
        prop_b = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)

        await repo.upsert_match(first.id, prop_a.id, 0, "עיר לא תואמת", False)
        await repo.upsert_match(second.id, prop_a.id, 0, "עיר לא תואמת", False)
        await repo.upsert_match(first.id, prop_b.id, 0, "אין מעלית", False)
        await repo.upsert_match(second.id, prop_b.id, 90, "עיר מועדפת", True)
        await db_session.commit()

        reasons = await repo.top_exclusion_reasons(agent_id=test_agent.id)

        assert reasons == [
            {"reason": "עיר לא תואמת", "count": 2},
            {"reason": "אין מעלית", "count": 1},
        ]


class TestNotificationRepository:
    """Test NotificationRepository functionality."""

    async def test_unread_counts_and_mark_all(self, db_session, test_buyer, test_property, test_agent: User):
        repo = NotificationRepository(db_session)
        for score in (70, 90):
            await repo.create({
                "buyer_id": test_buyer.id,
                "property_id": test_property.id,
                "agent_id": test_agent.id,
                "match_score": score,
                "message": "התאמה חדשה",
                "is_read_by_agent": False,
                "is_read_by_manager": False,
            })

        assert await repo.exists_for_pair(test_buyer.id, test_property.id)
        assert await repo.count_unread(test_agent.id) == 2

        updated = await repo.mark_all_read_for_agent(test_agent.id)

        assert updated == 2
        assert await repo.count_unread(test_agent.id) == 0
        assert len(await repo.get_for_manager()) == 2


class TestBuyerPropertyRepository:
    """Test BuyerPropertyRepository functionality."""

    async def test_property_ids_for_buyer(self, db_session, test_buyer, test_property):
        repo = BuyerPropertyRepository(db_session)
        await repo.create({
            "buyer_id": test_buyer.id,
            "property_id": test_property.id,
            "status": BuyerPropertyStatus.OFFERED,
            "source": "agent",
        })

        assert await repo.get_property_ids_for_buyer(test_buyer.id) == {test_property.id}
        assert (await repo.get_pair(test_buyer.id, test_property.id)).status == BuyerPropertyStatus.OFFERED
        rows = await repo.list_for_buyer(test_buyer.id)
        assert rows[0].property.id == test_property.id
