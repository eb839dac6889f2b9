"""
Tests for the match updates WebSocket.
The synchronous TestClient runs the app on its own event loop, so data setup and
broker events go through the client's portal to stay on that loop.
"""

import functools
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.websockets import WebSocketDisconnect

from estate_crm.main import app
from estate_crm.database import Base, get_session_factory
from estate_crm.models.user import UserRole
from estate_crm.repositories.buyer import BuyerRepository
from estate_crm.repositories.property import PropertyRepository
from estate_crm.repositories.user import UserRepository
from estate_crm.services.matching import MatchingService
from estate_crm.services.realtime import MatchEventBroker, get_match_event_broker
from estate_crm.utils.auth import create_access_token
from tests.conftest import TEST_DATABASE_URL, UserFactory, PropertyFactory, BuyerFactory

WS_PATH = "/api/v1/ws/matches"


async def _seed(broker: MatchEventBroker):
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        agent = await UserFactory.create_user(UserRepository(session), email="ws.agent@test.com")
        walk_in = await UserFactory.create_user(UserRepository(session), email="ws.walkin@test.com", role=None)
        buyer = await BuyerFactory.create_buyer(BuyerRepository(session), agent_id=agent.id)
        await PropertyFactory.create_property(PropertyRepository(session), agent_id=agent.id)
        await MatchingService(session, broker).run_matching(buyer.id)

    tokens = {
        "agent": create_access_token(user_id=agent.id, email=agent.email, role=agent.role),
        "walk_in": create_access_token(user_id=walk_in.id, email=walk_in.email, role=walk_in.role),
    }
    return engine, factory, tokens, str(buyer.id)


@pytest.fixture
def ws_env():
    """TestClient with its own database and broker living on the client's loop."""
    broker = MatchEventBroker(queue_size=10)
    with TestClient(app) as client:
        engine, factory, tokens, buyer_id = client.portal.call(_seed, broker)
        app.dependency_overrides[get_session_factory] = lambda: factory
        app.dependency_overrides[get_match_event_broker] = lambda: broker
        try:
            yield client, broker, tokens, buyer_id
        finally:
            app.dependency_overrides.clear()
            client.portal.call(engine.dispose)


class TestMatchUpdatesWebSocket:
    """Test the realtime match snapshot stream."""

    @pytest.mark.parametrize("query", ["", "?token=not-a-jwt"])
    def test_rejects_missing_or_invalid_token(self, ws_env, query):
        client, broker, _, _ = ws_env

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"{WS_PATH}{query}"):
                pass

        assert exc_info.value.code == 1008
        assert broker.subscriber_count == 0

    def test_rejects_account_without_staff_role(self, ws_env):
        client, _, tokens, _ = ws_env

        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"{WS_PATH}?token={tokens['walk_in']}"):
                pass

        assert exc_info.value.code == 1008

    def test_snapshot_stream(self, ws_env):
        client, broker, tokens, buyer_id = ws_env

        with client.websocket_connect(f"{WS_PATH}?token={tokens['agent']}") as websocket:
            initial = websocket.receive_json()
            assert initial["event"] == "snapshot"
            assert initial["data"]["trigger"] is None
            assert [b["buyer_id"] for b in initial["data"]["buyers"]] == [buyer_id]
            assert len(initial["data"]["buyers"][0]["passed"]) == 1
            assert broker.subscriber_count == 1

            websocket.send_json({"event": "ping"})
            assert websocket.receive_json() == {"event": "pong"}

            websocket.send_text("{not json")
            error = websocket.receive_json()
            assert error["event"] == "error"
            assert error["data"]["code"] == "INVALID_JSON"

            client.portal.call(functools.partial(broker.publish, "matches", "matches_changed", buyer_id=buyer_id))
            pushed = websocket.receive_json()
            assert pushed["event"] == "snapshot"
            assert pushed["data"]["trigger"]["table"] == "matches"
            assert pushed["data"]["trigger"]["event"] == "matches_changed"
            assert pushed["data"]["trigger"]["buyer_id"] == buyer_id
            assert [b["buyer_id"] for b in pushed["data"]["buyers"]] == [buyer_id]

        assert broker.subscriber_count == 0
