"""
Matching endpoints: manual triggers, the realtime snapshot and its WebSocket feed.

Routes:
    POST /matching/trigger
    GET  /matches/realtime
    WS   /ws/matches?token=...
"""

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import async_sessionmaker
from typing import Optional, List, Dict, Any
import asyncio
import json
import logging
import uuid

from estate_crm.database import get_session_factory
from estate_crm.models.user import User
from estate_crm.services.matching import MatchingService
from estate_crm.services.realtime import MatchEventBroker, get_match_event_broker
from estate_crm.schemas.match import MatchingTriggerRequest, TriggerResult, BuyerRealtimeMatches
from estate_crm.schemas.error import get_common_error_responses
from estate_crm.utils.dependencies import (
    get_current_agent_user,
    get_matching_service,
    authenticate_websocket
)
from estate_crm.utils.exceptions import APIException, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Matching"])


def _parse_optional_id(value: Optional[str], label: str) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationError(f"Invalid {label} ID format")


@router.post(
    "/matching/trigger",
    response_model=TriggerResult,
    summary="Trigger matching",
    description="Rematch the buyers affected by a property change, or one buyer after a filter change",
    responses=get_common_error_responses()
)
async def trigger_matching(
    request: MatchingTriggerRequest,
    current_user: User = Depends(get_current_agent_user),
    matching_service: MatchingService = Depends(get_matching_service)
) -> TriggerResult:
    result = await matching_service.trigger_matching(
        request.type,
        property_id=_parse_optional_id(request.property_id, "property"),
        buyer_id=_parse_optional_id(request.buyer_id, "buyer")
    )
    return TriggerResult.model_validate(result)


@router.get(
    "/matches/realtime",
    response_model=List[BuyerRealtimeMatches],
    summary="Matches by buyer",
    description="Passed and excluded matches grouped by buyer. Agents see their own buyers only.",
    responses=get_common_error_responses()
)
async def realtime_matches(
    current_user: User = Depends(get_current_agent_user),
    matching_service: MatchingService = Depends(get_matching_service)
) -> List[BuyerRealtimeMatches]:
    snapshot = await matching_service.realtime_matches_for_user(current_user)
    return [BuyerRealtimeMatches.model_validate(item) for item in snapshot]


async def _snapshot(session_factory: async_sessionmaker, user: User) -> List[Dict[str, Any]]:
    async with session_factory() as session:
        return await MatchingService(session).realtime_matches_for_user(user)


@router.websocket("/ws/matches")
async def match_updates(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    broker: MatchEventBroker = Depends(get_match_event_broker)
) -> None:
    """
    Push a fresh realtime snapshot whenever matches or activity change.

    Client sends:
        {"event": "ping"}

    Server sends:
        {"event": "snapshot", "data": {"trigger": null, "buyers": [...]}}
        {"event": "snapshot", "data": {"trigger": {"table": ..., "event": ..., "buyer_id": ...}, "buyers": [...]}}
        {"event": "pong"}
        {"event": "error", "data": {"code": "...", "message": "..."}}
    """
    async with session_factory() as session:
        try:
            user = await authenticate_websocket(token, session)
        except APIException as e:
            logger.warning(f"Rejected match updates subscription: {e.detail}")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e.detail))
            return

    await websocket.accept()
    queue = broker.subscribe()
    logger.info(f"Match updates subscriber connected: {user.email}")

    receive_task: Optional[asyncio.Task] = None
    event_task: Optional[asyncio.Task] = None
    try:
        await websocket.send_json({
            "event": "snapshot",
            "data": {"trigger": None, "buyers": await _snapshot(session_factory, user)},
        })

        while True:
            if receive_task is None:
                receive_task = asyncio.create_task(websocket.receive_text())
            if event_task is None:
                event_task = asyncio.create_task(queue.get())

            done, _ = await asyncio.wait({receive_task, event_task}, return_when=asyncio.FIRST_COMPLETED)

            if receive_task in done:
                raw_data = receive_task.result()
                receive_task = None
                try:
                    data = json.loads(raw_data)
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "event": "error",
                        "data": {"code": "INVALID_JSON", "message": "Invalid JSON format"},
                    })
                    continue
                if isinstance(data, dict) and data.get("event") == "ping":
                    await websocket.send_json({"event": "pong"})

            if event_task in done:
                trigger = event_task.result()
                event_task = None
                await websocket.send_json({
                    "event": "snapshot",
                    "data": {"trigger": trigger, "buyers": await _snapshot(session_factory, user)},
                })

    except WebSocketDisconnect:
        logger.info(f"Match updates subscriber disconnected: {user.email}")
    finally:
        broker.unsubscribe(queue)
        for task in (receive_task, event_task):
            if task is not None and not task.done():
                task.cancel()
