"""
Tests for outbound integrations and supporting services.
HTTP calls go through httpx.MockTransport; nothing leaves the process.
"""

import json
import pytest
import httpx
import uuid
from datetime import datetime, timedelta

from estate_crm.config import settings
from estate_crm.models.user import User, UserRole
from estate_crm.models.buyer import Buyer
from estate_crm.models.property import Property
from estate_crm.models.buyer_property import BuyerPropertyStatus
from estate_crm.repositories.buyer_property import BuyerPropertyRepository
from estate_crm.repositories.property import PropertyRepository
from estate_crm.repositories.user import UserRepository
from estate_crm.services.taste_profile import (
    AIGatewayClient,
    TasteProfileService,
    build_prompt,
    parse_profile
)
from estate_crm.services.webtiv import (
    WebtivClient,
    WebtivSyncService,
    parse_feed,
    map_listing,
    parse_parking,
    pictures_for
)
from estate_crm.services.email import EmailService, ResendClient
from estate_crm.services.neighborhood import NeighborhoodService, merge_neighborhoods, SEED_NEIGHBORHOODS
from estate_crm.services.analytics import AnalyticsService, transaction_cost
from estate_crm.services.matching import MatchingService
from estate_crm.services.realtime import MatchEventBroker
from estate_crm.schemas.analytics import NeighborhoodCreate, TransactionCostRequest
from estate_crm.schemas.integrations import AgentEmailRequest
from estate_crm.utils.exceptions import (
    BadRequestError,
    DuplicateResourceError,
    ForbiddenError,
    InsufficientPermissionsError,
    NotFoundError,
    PaymentRequiredError,
    RateLimitExceededError,
    ServiceUnavailableError,
    ValidationError
)
from tests.conftest import PropertyFactory


WEBTIV_FEED = """<?xml version="1.0" encoding="utf-8"?>
<NewDataSet>
  <Properties>
    <serial>1001</serial>
    <street>הרצל</street>
    <number>12</number>
    <city>רחובות</city>
    <shcuna>מרכז</shcuna>
    <comments2>  דירה מוארת  </comments2>
    <room>4.5</room>
    <builtsqmr>110</builtsqmr>
    <floor>0</floor>
    <priceshekel>2350000</priceshekel>
    <mamadYN>True</mamadYN>
    <mirpesetShemeshYN>false</mirpesetShemeshYN>
    <park>חניה כפולה</park>
  </Properties>
  <Properties>
    <serial>1002</serial>
    <street>בילו</street>
    <city>רחובות</city>
    <priceshekel>0</priceshekel>
  </Properties>
  <pictures>
    <picserial>1001</picserial>
    <picurl>https://img.example.com/1001-b.jpg</picurl>
    <picOrder>2</picOrder>
  </pictures>
  <pictures>
    <picserial>1001</picserial>
    <picurl>https://img.example.com/1001-a.jpg</picurl>
    <picOrder>1</picOrder>
  </pictures>
  <officeAgentsProfile>
    <AgentSerial>7</AgentSerial>
    <AgentName>דני רוזן</AgentName>
  </officeAgentsProfile>
</NewDataSet>
"""


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestTasteProfile:
    """Test feedback summarization through the AI gateway."""

    def test_parse_profile_json_block(self):
        content = 'הנה הניתוח:\n```json\n{"global_liked_profile": "אור טבעי", "global_disliked_profile": "רעש"}\n```'

        assert parse_profile(content) == {"liked": "אור טבעי", "disliked": "רעש"}

    def test_parse_profile_invalid_json_keeps_raw(self):
        content = "{not json at all}"

        assert parse_profile(content) == {"liked": content, "disliked": ""}

    def test_parse_profile_no_json(self):
        assert parse_profile("אין מספיק מידע") == {"liked": "", "disliked": ""}

    def test_build_prompt_lists_rejected_locations(self):
        prompt = build_prompt([
            {"liked_text": "מטבח גדול", "property_address": "הרצל 1", "property_city": "רחובות"},
            {"status": "not_interested", "property_address": "בילו 3", "property_city": "רחובות"},
        ])

        assert "- מטבח גדול (נכס: הרצל 1, רחובות)" in prompt
        assert "- בילו 3, רחובות" in prompt
        assert "global_liked_profile" in prompt

    async def test_extract_without_feedback(self, db_session, test_buyer: Buyer, test_agent: User):
        result = await TasteProfileService(db_session).extract(test_buyer.id, test_agent)

        assert result == {"liked": "", "disliked": "", "error": "No feedback data provided"}

    async def test_extract_other_agent_forbidden(self, db_session, test_buyer: Buyer, test_other_agent: User):
        with pytest.raises(ForbiddenError):
            await TasteProfileService(db_session).extract(test_buyer.id, test_other_agent)

    async def test_extract_stores_profile(
        self,
        db_session,
        monkeypatch,
        test_buyer: Buyer,
        test_property: Property,
        test_agent: User
    ):
        monkeypatch.setattr(settings, "ai_gateway_api_key", "test-key")
        await BuyerPropertyRepository(db_session).create({
            "buyer_id": test_buyer.id,
            "property_id": test_property.id,
            "status": BuyerPropertyStatus.SEEN,
            "liked_text": "מרפסת גדולה",
        })
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion(
                '{"global_liked_profile": "מרפסות", "global_disliked_profile": "קומות נמוכות"}'
            ))

        service = TasteProfileService(db_session, AIGatewayClient(transport=httpx.MockTransport(handler)))
        result = await service.extract(test_buyer.id, test_agent)

        assert result == {"liked": "מרפסות", "disliked": "קומות נמוכות", "error": None}
        assert captured["auth"] == "Bearer test-key"
        assert "מרפסת גדולה" in captured["body"]["messages"][1]["content"]
        assert test_buyer.global_liked_profile == "מרפסות"

    async def test_gateway_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "ai_gateway_api_key", None)

        with pytest.raises(ServiceUnavailableError):
            await AIGatewayClient().complete("system", "prompt")

    @pytest.mark.parametrize("status_code,error", [
        (429, RateLimitExceededError),
        (402, PaymentRequiredError),
        (500, ServiceUnavailableError),
    ])
    async def test_gateway_error_statuses(self, monkeypatch, status_code, error):
        monkeypatch.setattr(settings, "ai_gateway_api_key", "test-key")
        client = AIGatewayClient(transport=httpx.MockTransport(lambda request: httpx.Response(status_code)))

        with pytest.raises(error):
            await client.complete("system", "prompt")


class TestWebtiv:
    """Test Webtiv feed parsing and import."""

    def test_parse_feed_sections(self):
        feed = parse_feed(WEBTIV_FEED)

        assert len(feed["properties"]) == 2
        assert len(feed["pictures"]) == 2
        assert feed["agents"][0]["AgentName"] == "דני רוזן"

    def test_parse_feed_invalid_xml(self):
        with pytest.raises(BadRequestError):
            parse_feed("<NewDataSet><Properties>")

    def test_map_listing(self):
        row = parse_feed(WEBTIV_FEED)["properties"][0]

        data = map_listing(row)

        assert data["external_id"] == "1001"
        assert data["address"] == "הרצל 12"
        assert data["neighborhood"] == "מרכז"
        assert data["description"] == "דירה מוארת"
        assert data["rooms"] == 4.5
        assert data["size_sqm"] == 110
        assert data["floor"] == 0
        assert data["price"] == 2350000
        assert data["has_safe_room"] is True
        assert data["has_sun_balcony"] is False
        assert data["parking_spots"] == 2

    def test_map_listing_missing_values(self):
        data = map_listing({"serial": "9", "priceshekel": "0"})

        assert data["address"] == "לא צוין"
        assert data["city"] == "לא צוין"
        assert data["price"] is None
        assert data["floor"] is None

    @pytest.mark.parametrize("value,expected", [
        ("חניה כפולה", 2),
        ("חניה עוקבת", 2),
        ("יש", 1),
        ("אין", 0),
        (None, 0),
    ])
    def test_parse_parking(self, value, expected):
        assert parse_parking(value) == expected

    def test_pictures_ordered(self):
        pictures = parse_feed(WEBTIV_FEED)["pictures"]

        assert pictures_for("1001", pictures) == [
            "https://img.example.com/1001-a.jpg",
            "https://img.example.com/1001-b.jpg",
        ]
        assert pictures_for("1002", pictures) == []

    async def test_import_inserts_then_updates(self, db_session):
        service = WebtivSyncService(db_session)

        first = await service.import_feed(WEBTIV_FEED)
        second = await service.import_feed(WEBTIV_FEED.replace("2350000", "2290000"))

        assert first == {
            "inserted": 1,
            "updated": 0,
            "filtered": {"no_pictures": 1},
            "inserted_agents": 1,
            "total_images": 2,
        }
        assert second["inserted"] == 0
        assert second["updated"] == 1
        assert second["inserted_agents"] == 0

        prop = await PropertyRepository(db_session).get_by_external_id("1001")
        assert float(prop.price) == 2290000
        assert len(prop.images) == 2
        assert prop.primary_image.url == "https://img.example.com/1001-a.jpg"

        agent = await UserRepository(db_session).get_by_email("agent7@extra-mile.co.il")
        assert agent.role == UserRole.AGENT

    async def test_sync_requires_staff(self, db_session, user_repository):
        from tests.conftest import UserFactory

        client_user = await UserFactory.create_user(user_repository, role=UserRole.CLIENT)

        with pytest.raises(InsufficientPermissionsError):
            await WebtivSyncService(db_session).sync(client_user)

    async def test_sync_fetches_feed(self, db_session, monkeypatch, test_agent: User):
        monkeypatch.setattr(settings, "webtiv_client_guid", "client-guid")
        monkeypatch.setattr(settings, "webtiv_agents_guid", "agents-guid")

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["clientguid"] == "client-guid"
            return httpx.Response(200, text=WEBTIV_FEED)

        service = WebtivSyncService(db_session, WebtivClient(transport=httpx.MockTransport(handler)))
        result = await service.sync(test_agent)

        assert result["inserted"] == 1

    async def test_fetch_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "webtiv_client_guid", None)

        with pytest.raises(ServiceUnavailableError):
            await WebtivClient().fetch_feed()


class TestEmailService:
    """Test agent emails through Resend."""

    def _request(self, agent: User, **overrides) -> AgentEmailRequest:
        data = {
            "agent_id": str(agent.id),
            "buyer_name": "רונית",
            "buyer_phone": "0501234567",
            "property_address": "הרצל 12",
            "property_city": "רחובות",
        }
        data.update(overrides)
        return AgentEmailRequest(**data)

    async def test_missing_fields(self, db_session, test_agent: User):
        with pytest.raises(BadRequestError, match="Missing required fields"):
            await EmailService(db_session).notify_agent(self._request(test_agent, buyer_name=None))

    async def test_unknown_agent(self, db_session, test_agent: User):
        with pytest.raises(NotFoundError):
            await EmailService(db_session).notify_agent(self._request(test_agent, agent_id=str(uuid.uuid4())))

    async def test_not_configured(self, db_session, monkeypatch, test_agent: User):
        monkeypatch.setattr(settings, "resend_api_key", None)

        result = await EmailService(db_session).notify_agent(self._request(test_agent))

        assert result == {"sent": False, "email_id": None, "reason": "Email service not configured"}

    async def test_sends_email(self, db_session, monkeypatch, test_agent: User):
        monkeypatch.setattr(settings, "resend_api_key", "re_test")
        sent = {}

        def handler(request: httpx.Request) -> httpx.Response:
            sent.update(json.loads(request.content))
            return httpx.Response(200, json={"id": "email-123"})

        service = EmailService(db_session, ResendClient(transport=httpx.MockTransport(handler)))
        result = await service.notify_agent(self._request(test_agent, message="<b>דחוף</b>"))

        assert result == {"sent": True, "email_id": "email-123", "reason": None}
        assert sent["to"] == [test_agent.email]
        assert sent["subject"] == "בקשת מידע חדשה מ-רונית"
        assert "הרצל 12, רחובות" in sent["html"]
        assert "&lt;b&gt;" in sent["html"]

    async def test_resend_failure(self, db_session, monkeypatch, test_agent: User):
        monkeypatch.setattr(settings, "resend_api_key", "re_test")
        client = ResendClient(transport=httpx.MockTransport(lambda request: httpx.Response(422, json={})))

        with pytest.raises(ServiceUnavailableError):
            await EmailService(db_session, client).notify_agent(self._request(test_agent))


class TestNeighborhoodService:
    """Test the neighborhood lookup."""

    async def test_lookup_single_city(self, db_session):
        result = await NeighborhoodService(db_session).lookup("רחובות")

        assert list(result["cities"]) == ["רחובות"]
        assert "נווה יהודה" in result["cities"]["רחובות"]

    async def test_lookup_unknown_city(self, db_session):
        assert await NeighborhoodService(db_session).lookup("אילת") == {"cities": {"אילת": []}}

    async def test_admin_adds_neighborhood(self, db_session, test_admin: User):
        service = NeighborhoodService(db_session)

        await service.add_custom(NeighborhoodCreate(city="רחובות", name=" כפר המדע "), test_admin)
        result = await service.lookup("רחובות")

        assert "כפר המדע" in result["cities"]["רחובות"]
        assert [row.name for row in await service.list_custom()] == ["כפר המדע"]

    async def test_duplicate_neighborhood(self, db_session, test_admin: User):
        with pytest.raises(DuplicateResourceError):
            await NeighborhoodService(db_session).add_custom(
                NeighborhoodCreate(city="רחובות", name="נווה יהודה"), test_admin
            )

    async def test_agent_cannot_add(self, db_session, test_agent: User):
        with pytest.raises(InsufficientPermissionsError):
            await NeighborhoodService(db_session).add_custom(NeighborhoodCreate(city="יבנה", name="חדש"), test_agent)

    def test_merge_sorted_and_deduplicated(self):
        merged = merge_neighborhoods({"עיר": ["ב", "א"]}, [])

        assert merged == {"עיר": ["א", "ב"]}
        assert "רחובות" in merge_neighborhoods(SEED_NEIGHBORHOODS, [])


class TestAnalyticsService:
    """Test dashboard counters and exclusion statistics."""

    async def test_dashboard_after_matching(
        self,
        db_session,
        broker: MatchEventBroker,
        property_repository,
        test_buyer: Buyer,
        test_property: Property,
        test_agent: User,
        test_other_agent: User
    ):
        await PropertyFactory.create_property(property_repository, agent_id=test_agent.id, city="יבנה")
        await MatchingService(db_session, broker).run_matching(test_buyer.id)
        service = AnalyticsService(db_session)

        mine = await service.dashboard_stats(test_agent)
        theirs = await service.dashboard_stats(test_other_agent)

        assert mine == {
            "buyers": 1,
            "properties": 2,
            "available_properties": 2,
            "high_score_matches": 1,
            "unread_notifications": 1,
        }
        assert theirs["buyers"] == 0
        assert theirs["high_score_matches"] == 0

        reasons = await service.top_exclusion_reasons(test_agent)
        assert reasons == [{"reason": "עיר לא תואמת", "count": 1}]

    async def test_exclusion_reasons_invalid_range(self, db_session, test_manager: User):
        now = datetime.utcnow()

        with pytest.raises(ValidationError, match="date_from must be before date_to"):
            await AnalyticsService(db_session).top_exclusion_reasons(
                test_manager, date_from=now, date_to=now - timedelta(days=1)
            )

    def test_transaction_cost_requires_price(self):
        with pytest.raises(BadRequestError):
            transaction_cost(TransactionCostRequest(price=0))


class TestMatchEventBroker:
    """Test the in-process realtime broker."""

    def test_publish_to_all_subscribers(self):
        broker = MatchEventBroker()
        first = broker.subscribe()
        second = broker.subscribe()

        delivered = broker.publish("matches", "matches_changed", buyer_id=uuid.UUID(int=1))

        assert delivered == 2
        expected = {"table": "matches", "event": "matches_changed", "buyer_id": str(uuid.UUID(int=1))}
        assert first.get_nowait() == expected
        assert second.get_nowait() == expected

    def test_unsubscribe(self):
        broker = MatchEventBroker()
        queue = broker.subscribe()

        broker.unsubscribe(queue)

        assert broker.publish("activity_logs", "insert") == 0
        assert queue.empty()

    def test_full_queue_drops_oldest(self):
        broker = MatchEventBroker(queue_size=2)
        queue = broker.subscribe()

        for index in range(3):
            broker.publish("activity_logs", "insert", sequence=index)

        assert [queue.get_nowait()["sequence"] for _ in range(2)] == [1, 2]
