"""
Matching service for the persisted property-buyer matching pipeline.
Runs hard filters and scoring, stores results, creates notifications and publishes match events.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from estate_crm.repositories.buyer import BuyerRepository
from estate_crm.repositories.property import PropertyRepository
from estate_crm.repositories.buyer_property import BuyerPropertyRepository
from estate_crm.repositories.match import MatchRepository
from estate_crm.models.activity_log import ActionType
from estate_crm.models.buyer import Buyer
from estate_crm.models.match import Match
from estate_crm.models.property import Property
from estate_crm.models.user import User
from estate_crm.schemas.match import TriggerType
from estate_crm.services import match_engine
from estate_crm.services.notification import NotificationService
from estate_crm.services.activity_log import ActivityLogService
from estate_crm.services.realtime import MatchEventBroker, match_event_broker
from estate_crm.utils.exceptions import APIException, NotFoundError, BadRequestError, ForbiddenError
from estate_crm.config import settings
import uuid
import logging

logger = logging.getLogger(__name__)

REASON_SEPARATOR = ", "


class MatchingService:
    """
    Service for computing and persisting buyer-property matches.
    """

    def __init__(self, db_session: AsyncSession, broker: Optional[MatchEventBroker] = None):
        self.db = db_session
        self.buyer_repo = BuyerRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.buyer_property_repo = BuyerPropertyRepository(db_session)
        self.match_repo = MatchRepository(db_session)
        self.broker = broker or match_event_broker
        self.notification_service = NotificationService(db_session)
        self.activity_service = ActivityLogService(db_session, self.broker)

    async def _get_buyer(self, buyer_id: uuid.UUID) -> Buyer:
        buyer = await self.buyer_repo.get_by_id(buyer_id)
        if not buyer:
            raise NotFoundError("Buyer", str(buyer_id))
        return buyer

    async def run_matching(self, buyer_id: uuid.UUID, save_to_db: bool = True) -> Dict[str, Any]:
        """
        Match one buyer against every available property.

        Properties already offered to the buyer are skipped. Excluded properties
        are stored with a zero score and their exclusion reason; the best scoring
        properties replace the buyer's previous passing matches.

        Args:
            buyer_id: UUID of the buyer
            save_to_db: Persist matches, notifications and activity when True

        Returns:
            Dictionary shaped like MatchingResult

        Raises:
            NotFoundError: If the buyer does not exist
        """
        try:
            buyer = await self._get_buyer(buyer_id)

            offered_ids = await self.buyer_property_repo.get_property_ids_for_buyer(buyer_id)
            candidates = await self.property_repo.get_available_properties(exclude_ids=offered_ids)

            passed: List[Property] = []
            failed: List[tuple] = []
            for prop in candidates:
                ok, reason = match_engine.apply_hard_filters(buyer, prop)
                if ok:
                    passed.append(prop)
                else:
                    failed.append((prop, reason))

            scored = []
            for prop in passed:
                score, reasons = match_engine.score_property(buyer, prop)
                if score >= settings.match_min_score:
                    scored.append({"property": prop, "match_score": score, "match_reasons": reasons})
            scored.sort(key=lambda item: item["match_score"], reverse=True)
            top_matches = scored[:settings.match_max_results]

            new_matches = 0
            notifications_created = 0

            if save_to_db:
                for prop, reason in failed:
                    await self.match_repo.upsert_match(buyer.id, prop.id, 0, reason, False)

                await self.match_repo.delete_stale(buyer.id, [prop.id for prop, _ in failed], passed=False)
                await self.match_repo.delete_stale(
                    buyer.id, [item["property"].id for item in top_matches], passed=True
                )

                for item in top_matches:
                    _, created = await self.match_repo.upsert_match(
                        buyer.id,
                        item["property"].id,
                        item["match_score"],
                        REASON_SEPARATOR.join(item["match_reasons"]),
                        True
                    )
                    if created:
                        new_matches += 1

                await self.db.commit()

                for item in top_matches:
                    if item["match_score"] < settings.match_notify_threshold:
                        continue
                    prop = item["property"]
                    notification = await self.notification_service.create_notification(
                        buyer_id=buyer.id,
                        property_id=prop.id,
                        agent_id=buyer.agent_id,
                        match_score=item["match_score"],
                        message=f"התאמה חדשה: {buyer.full_name} - {prop.address}, {prop.city} ({item['match_score']})"
                    )
                    if notification:
                        notifications_created += 1

                if new_matches:
                    await self.activity_service.log(
                        ActionType.MATCH_FOUND,
                        f"נמצאו {new_matches} התאמות חדשות",
                        buyer_id=buyer.id,
                        agent_id=buyer.agent_id,
                        metadata={
                            "new_matches": new_matches,
                            "property_ids": [str(item["property"].id) for item in top_matches],
                        }
                    )

                self.broker.publish("matches", "matches_changed", buyer_id=buyer.id)

            logger.info(
                f"Matching for buyer {buyer.id}: {len(passed)} passed, {len(failed)} excluded, "
                f"{len(top_matches)} kept, {notifications_created} notifications"
            )

            return {
                "buyer_id": str(buyer.id),
                "buyer_name": buyer.full_name,
                "matches": [
                    {
                        **item["property"].to_summary(),
                        "match_score": item["match_score"],
                        "match_reasons": item["match_reasons"],
                    }
                    for item in top_matches
                ],
                "total_filtered": len(passed),
                "failed_count": len(failed),
                "new_matches": new_matches,
                "notifications_created": notifications_created,
                "filters_applied": match_engine.describe_filters(buyer),
            }

        except NotFoundError:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Matching failed for buyer {buyer_id}: {e}")
            raise BadRequestError(f"Failed to run matching: {str(e)}")

    async def trigger_matching(
        self,
        trigger_type: TriggerType,
        property_id: Optional[uuid.UUID] = None,
        buyer_id: Optional[uuid.UUID] = None
    ) -> Dict[str, Any]:
        """
        Rematch the buyers affected by a change.

        Args:
            trigger_type: property_change or buyer_filter_change
            property_id: Changed property, required for property_change
            buyer_id: Changed buyer, required for buyer_filter_change

        Returns:
            Dictionary shaped like TriggerResult

        Raises:
            BadRequestError: If the id required by the trigger type is missing
            NotFoundError: If the property or buyer does not exist
        """
        results = []
        failed_buyer_ids: List[str] = []

        if trigger_type == TriggerType.PROPERTY_CHANGE:
            if property_id is None:
                raise BadRequestError("property_id is required for property_change")

            prop = await self.property_repo.get_property_with_details(property_id)
            if not prop:
                raise NotFoundError("Property", str(property_id))

            buyers = await self.buyer_repo.get_matchable_buyers()
            candidates = [
                b for b in buyers
                if match_engine.is_candidate_buyer(b, prop, settings.match_budget_tolerance)
            ]
            logger.info(f"Property {property_id} changed, rematching {len(candidates)} of {len(buyers)} buyers")

            # A failed run rolls back and expires loaded rows, so iterate plain ids
            for candidate_id in [b.id for b in candidates]:
                try:
                    results.append(await self.run_matching(candidate_id))
                except APIException as e:
                    logger.error(f"Rematch of buyer {candidate_id} after property {property_id} change failed: {e.detail}")
                    failed_buyer_ids.append(str(candidate_id))

        elif trigger_type == TriggerType.BUYER_FILTER_CHANGE:
            if buyer_id is None:
                raise BadRequestError("buyer_id is required for buyer_filter_change")

            results.append(await self.run_matching(buyer_id))

        return {
            "type": trigger_type,
            "buyers_processed": len(results),
            "failed_buyer_ids": failed_buyer_ids,
            "results": results,
        }

    async def realtime_matches(self, agent_id: Optional[uuid.UUID] = None) -> List[Dict[str, Any]]:
        """
        Current matches grouped by buyer.

        Args:
            agent_id: Only buyers of this agent, or None for all buyers

        Returns:
            One entry per buyer with passed matches (score descending) and
            excluded matches (newest first)
        """
        matches = await self.match_repo.get_for_agent(agent_id)

        grouped: Dict[str, Dict[str, List[Match]]] = {}
        for match in matches:
            bucket = grouped.setdefault(str(match.buyer_id), {"passed": [], "excluded": []})
            bucket["passed" if match.hard_filter_passed else "excluded"].append(match)

        result = []
        for buyer_id, bucket in grouped.items():
            passed = sorted(bucket["passed"], key=lambda m: m.match_score, reverse=True)
            excluded = sorted(bucket["excluded"], key=lambda m: m.created_at, reverse=True)
            result.append({
                "buyer_id": buyer_id,
                "passed": [m.to_dict(include_property=True) for m in passed],
                "excluded": [m.to_dict(include_property=True) for m in excluded],
            })
        return result

    async def realtime_matches_for_user(self, current_user: User) -> List[Dict[str, Any]]:
        """Managers see every buyer, agents only their own."""
        return await self.realtime_matches(None if current_user.is_manager else current_user.id)

    async def get_buyer_matches(self, buyer_id: uuid.UUID, current_user: User) -> List[Match]:
        """
        Persisted passing matches of one buyer, best first.

        Raises:
            NotFoundError: If the buyer does not exist
            ForbiddenError: If the caller cannot manage the buyer
        """
        buyer = await self._get_buyer(buyer_id)
        if not current_user.can_manage(buyer.agent_id):
            raise ForbiddenError("You can only view matches of your own buyers")
        return await self.match_repo.get_for_buyer(buyer_id, passed_only=True)

    async def preview_matches(self, buyer_id: uuid.UUID, current_user: User) -> List[Dict[str, Any]]:
        """
        Rank available properties for a buyer without hard filters or persistence.

        Raises:
            NotFoundError: If the buyer does not exist
            ForbiddenError: If the caller cannot manage the buyer
        """
        buyer = await self._get_buyer(buyer_id)
        if not current_user.can_manage(buyer.agent_id):
            raise ForbiddenError("You can only preview matches of your own buyers")

        properties = await self.property_repo.get_available_properties()
        ranked = match_engine.match_properties(buyer, properties)
        return [
            {
                "property": item["property"].to_summary(),
                "match_score": item["match_score"],
                "match_reasons": item["match_reasons"],
            }
            for item in ranked
        ]


async def run_matching_trigger(
    session_factory: async_sessionmaker,
    trigger_type: TriggerType,
    property_id: Optional[uuid.UUID] = None,
    buyer_id: Optional[uuid.UUID] = None
) -> None:
    """
    Background task entry point.

    Opens its own session since the request session is closed when this runs.
    Failures are logged and never propagate.
    """
    async with session_factory() as session:
        try:
            service = MatchingService(session)
            result = await service.trigger_matching(trigger_type, property_id=property_id, buyer_id=buyer_id)
            logger.info(f"Background {trigger_type.value} matching processed {result['buyers_processed']} buyers")
        except Exception as e:
            logger.error(f"Background {trigger_type.value} matching failed: {e}")
