"""
Integration tests for the HTTP API.
Requests go through the full FastAPI stack against an in-memory database.
"""

from httpx import AsyncClient

from estate_crm.models.user import User
from estate_crm.models.buyer import Buyer
from estate_crm.models.property import Property
from tests.conftest import auth_headers, TEST_PASSWORD


API = "/api/v1"


class TestAuthEndpoints:
    """Test login, sign-up and token endpoints."""

    async def test_login(self, async_client: AsyncClient, test_agent: User):
        response = await async_client.post(
            f"{API}/auth/login", json={"email": test_agent.email, "password": TEST_PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == test_agent.email
        assert data["user"]["role"] == "agent"

    async def test_login_wrong_password(self, async_client: AsyncClient, test_agent: User):
        response = await async_client.post(
            f"{API}/auth/login", json={"email": test_agent.email, "password": "wrongpassword"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_register_then_me(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{API}/auth/register",
            json={"email": "new.client@test.com", "password": "Secure#Pass1", "full_name": "לקוח חדש"}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["role"] is None

        me = await async_client.get(
            f"{API}/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert me.status_code == 200
        assert me.json()["email"] == "new.client@test.com"

    async def test_registered_account_has_no_staff_access(self, async_client: AsyncClient):
        registered = await async_client.post(
            f"{API}/auth/register",
            json={"email": "walk.in@test.com", "password": "Secure#Pass1", "full_name": "מבקר"}
        )
        headers = {"Authorization": f"Bearer {registered.json()['access_token']}"}

        create = await async_client.post(
            f"{API}/properties",
            json={"address": "הרצל 1", "city": "רחובות", "price": 1500000},
            headers=headers
        )
        buyers = await async_client.get(f"{API}/buyers", headers=headers)

        assert create.status_code == 403
        assert create.json()["error"]["code"] == "FORBIDDEN"
        assert buyers.status_code == 403

    async def test_refresh(self, async_client: AsyncClient, test_agent: User):
        login = await async_client.post(
            f"{API}/auth/login", json={"email": test_agent.email, "password": TEST_PASSWORD}
        )

        response = await async_client.post(
            f"{API}/auth/refresh", json={"refresh_token": login.json()["refresh_token"]}
        )

        assert response.status_code == 200
        assert response.json()["access_token"]

    async def test_validate_without_token(self, async_client: AsyncClient):
        response = await async_client.post(f"{API}/auth/validate")

        assert response.status_code == 200
        assert response.json()["valid"] is False


class TestPropertyEndpoints:
    """Test listing CRUD."""

    async def test_create_and_get(self, async_client: AsyncClient, test_agent: User):
        response = await async_client.post(
            f"{API}/properties",
            json={
                "address": "ויצמן 20",
                "city": "רחובות",
                "price": 2100000,
                "rooms": 4,
                "image_urls": ["https://cdn.example.com/a.jpg"],
            },
            headers=auth_headers(test_agent)
        )

        assert response.status_code == 201
        created = response.json()
        assert created["agent_id"] == str(test_agent.id)

        fetched = await async_client.get(f"{API}/properties/{created['id']}", headers=auth_headers(test_agent))
        assert fetched.status_code == 200
        assert fetched.json()["primary_image"]["url"] == "https://cdn.example.com/a.jpg"

    async def test_list_filters(self, async_client: AsyncClient, test_property: Property, test_agent: User):
        response = await async_client.get(
            f"{API}/properties", params={"city": "רחובות", "min_rooms": 3}, headers=auth_headers(test_agent)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["has_next"] is False

    async def test_other_agent_cannot_delete(
        self,
        async_client: AsyncClient,
        test_property: Property,
        test_other_agent: User
    ):
        response = await async_client.delete(
            f"{API}/properties/{test_property.id}", headers=auth_headers(test_other_agent)
        )

        assert response.status_code == 403

    async def test_owner_deletes(self, async_client: AsyncClient, test_property: Property, test_agent: User):
        response = await async_client.delete(f"{API}/properties/{test_property.id}", headers=auth_headers(test_agent))

        assert response.status_code == 204


class TestBuyerEndpoints:
    """Test buyers, offered properties and matching through the API."""

    async def test_create_buyer_runs_matching(
        self,
        async_client: AsyncClient,
        test_property: Property,
        test_agent: User
    ):
        response = await async_client.post(
            f"{API}/buyers",
            json={
                "full_name": "מיכל ברק",
                "phone": "052-123-4567",
                "budget_min": 1800000,
                "budget_max": 2200000,
                "min_rooms": 3,
                "target_cities": ["רחובות"],
            },
            headers=auth_headers(test_agent)
        )

        assert response.status_code == 201
        buyer = response.json()
        assert buyer["phone"] == "0521234567"

        # Matching ran as a background task before the response completed
        matches = await async_client.get(f"{API}/buyers/{buyer['id']}/matches", headers=auth_headers(test_agent))
        assert matches.status_code == 200
        assert [m["property_id"] for m in matches.json()] == [str(test_property.id)]

    async def test_run_matching(self, async_client: AsyncClient, test_buyer: Buyer, test_property: Property, test_agent: User):
        response = await async_client.post(
            f"{API}/buyers/{test_buyer.id}/matching", headers=auth_headers(test_agent)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_filtered"] == 1
        assert data["matches"][0]["match_score"] == 70
        assert data["filters_applied"]["cities"] == ["רחובות"]

        notifications = await async_client.get(f"{API}/notifications", headers=auth_headers(test_agent))
        assert notifications.json()["unread_count"] == 1

    async def test_preview(self, async_client: AsyncClient, test_buyer: Buyer, test_property: Property, test_agent: User):
        response = await async_client.get(
            f"{API}/buyers/{test_buyer.id}/matches/preview", headers=auth_headers(test_agent)
        )

        assert response.status_code == 200
        assert response.json()[0]["property"]["id"] == str(test_property.id)

    async def test_other_agent_forbidden(self, async_client: AsyncClient, test_buyer: Buyer, test_other_agent: User):
        response = await async_client.get(f"{API}/buyers/{test_buyer.id}", headers=auth_headers(test_other_agent))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    async def test_offer_and_timeline(
        self,
        async_client: AsyncClient,
        test_buyer: Buyer,
        test_property: Property,
        test_agent: User
    ):
        offered = await async_client.post(
            f"{API}/buyers/{test_buyer.id}/properties",
            json={"property_ids": [str(test_property.id)]},
            headers=auth_headers(test_agent)
        )
        assert offered.status_code == 201
        row_id = offered.json()[0]["id"]

        updated = await async_client.put(
            f"{API}/buyers/{test_buyer.id}/properties/{row_id}",
            json={"status": "seen", "liked_text": "נוף פתוח"},
            headers=auth_headers(test_agent)
        )
        assert updated.status_code == 200
        assert updated.json()["status"] == "seen"

        timeline = await async_client.get(f"{API}/buyers/{test_buyer.id}/activity", headers=auth_headers(test_agent))
        actions = {entry["action_type"] for entry in timeline.json()}
        assert {"property_offered", "status_changed", "feedback_added"} <= actions

    async def test_client_cannot_list_buyers(self, async_client: AsyncClient, user_repository):
        from tests.conftest import UserFactory
        from estate_crm.models.user import UserRole

        client_user = await UserFactory.create_user(user_repository, role=UserRole.CLIENT)

        response = await async_client.get(f"{API}/buyers", headers=auth_headers(client_user))

        assert response.status_code == 403


class TestCatalogEndpoints:
    """Test the public catalog and buyer portal."""

    async def test_catalog_is_public(self, async_client: AsyncClient, test_property: Property):
        response = await async_client.get(f"{API}/catalog/properties")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["properties"][0]["formatted_price"] == "₪2,000,000"

    async def test_register_and_save(self, async_client: AsyncClient, test_property: Property, test_manager: User):
        registered = await async_client.post(
            f"{API}/catalog/register", json={"full_name": "אורי", "phone": "054-765-4321"}
        )
        assert registered.status_code == 201
        assert registered.json()["is_new"] is True
        buyer_id = registered.json()["buyer_id"]

        again = await async_client.post(
            f"{API}/catalog/register", json={"full_name": "אורי", "phone": "0547654321"}
        )
        assert again.json() == {"buyer_id": buyer_id, "is_new": False}

        saved = await async_client.post(
            f"{API}/catalog/save", json={"buyer_id": buyer_id, "property_id": str(test_property.id)}
        )
        assert saved.status_code == 200
        assert saved.json()["already_saved"] is False

        journal = await async_client.get(f"{API}/portal/{buyer_id}/properties")
        assert [row["property_id"] for row in journal.json()] == [str(test_property.id)]

    async def test_register_invalid_phone(self, async_client: AsyncClient):
        response = await async_client.post(f"{API}/catalog/register", json={"full_name": "אורי", "phone": "123456789"})

        assert response.status_code == 422


class TestInviteEndpoints:
    """Test invite links end to end."""

    async def test_send_and_claim(self, async_client: AsyncClient, test_property: Property, test_agent: User):
        sent = await async_client.post(
            f"{API}/invites",
            json={"property_ids": [str(test_property.id)], "client_name": "משפחת כהן"},
            headers=auth_headers(test_agent)
        )
        assert sent.status_code == 201
        token = sent.json()["invite_url"].rsplit("/", 1)[-1]

        signup = await async_client.post(
            f"{API}/auth/register",
            json={"email": "family@test.com", "password": "Secure#Pass1", "full_name": "משפחת כהן"}
        )
        client_headers = {"Authorization": f"Bearer {signup.json()['access_token']}"}

        claimed = await async_client.post(f"{API}/invites/claim", json={"token": token}, headers=client_headers)
        assert claimed.status_code == 200
        assert claimed.json()["property_count"] == 1

        properties = await async_client.get(f"{API}/client/properties", headers=client_headers)
        assert [p["id"] for p in properties.json()] == [str(test_property.id)]

        again = await async_client.post(f"{API}/invites/claim", json={"token": token}, headers=client_headers)
        assert again.status_code == 400


class TestToolEndpoints:
    """Test calculators, neighborhoods and the dashboard."""

    async def test_mortgage_calculator_is_public(self, async_client: AsyncClient):
        response = await async_client.post(
            f"{API}/calculators/mortgage", json={"principal": 1200000, "annual_rate_percent": 0, "years": 10}
        )

        assert response.status_code == 200
        assert response.json()["monthly_payment"] == 10000.0

    async def test_transaction_cost_invalid_price(self, async_client: AsyncClient):
        response = await async_client.post(f"{API}/calculators/transaction-cost", json={"price": 0})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    async def test_neighborhoods(self, async_client: AsyncClient, test_admin: User, test_agent: User):
        added = await async_client.post(
            f"{API}/neighborhoods", json={"city": "יבנה", "name": "נאות הים"}, headers=auth_headers(test_admin)
        )
        assert added.status_code == 201

        forbidden = await async_client.post(
            f"{API}/neighborhoods", json={"city": "יבנה", "name": "אחר"}, headers=auth_headers(test_agent)
        )
        assert forbidden.status_code == 403

        lookup = await async_client.get(f"{API}/neighborhoods", params={"city": "יבנה"})
        assert "נאות הים" in lookup.json()["cities"]["יבנה"]

    async def test_dashboard(self, async_client: AsyncClient, test_buyer: Buyer, test_agent: User):
        response = await async_client.get(f"{API}/analytics/dashboard", headers=auth_headers(test_agent))

        assert response.status_code == 200
        assert response.json()["buyers"] == 1


class TestHealthEndpoints:
    async def test_root(self, async_client: AsyncClient):
        response = await async_client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "connected"
