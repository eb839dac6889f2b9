"""
Analytics service.
Dashboard counters, hard-filter exclusion statistics and the financial calculators.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.buyer import BuyerRepository
from estate_crm.repositories.match import MatchRepository
from estate_crm.repositories.notification import NotificationRepository
from estate_crm.repositories.property import PropertyRepository
from estate_crm.models.property import PropertyStatus
from estate_crm.models.user import User
from estate_crm.schemas.analytics import MortgageRequest, ROIRequest, TransactionCostRequest
from estate_crm.utils.calculators import calculate_mortgage, calculate_roi, calculate_transaction_cost
from estate_crm.utils.exceptions import BadRequestError, ValidationError
from estate_crm.config import settings
import logging

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    Service for dashboard statistics.

    Agents see their own buyers; managers and admins see the whole office.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.buyer_repo = BuyerRepository(db_session)
        self.match_repo = MatchRepository(db_session)
        self.notification_repo = NotificationRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    @staticmethod
    def _scope(current_user: User):
        return None if current_user.is_manager else current_user.id

    async def top_exclusion_reasons(
        self,
        current_user: User,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        """
        Most common reasons properties were excluded by the hard filters.

        Raises:
            ValidationError: If date_from is after date_to
        """
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must be before date_to")

        return await self.match_repo.top_exclusion_reasons(
            agent_id=self._scope(current_user),
            date_from=date_from,
            date_to=date_to,
            limit=limit
        )

    async def dashboard_stats(self, current_user: User) -> Dict[str, int]:
        """Counters shown on the CRM dashboard, shaped like DashboardStats."""
        agent_id = self._scope(current_user)
        try:
            return {
                "buyers": await self.buyer_repo.count_for_agent(agent_id),
                "properties": await self.property_repo.count(),
                "available_properties": await self.property_repo.count({"status": PropertyStatus.AVAILABLE}),
                "high_score_matches": await self.match_repo.count_above(settings.match_notify_threshold, agent_id),
                "unread_notifications": await self.notification_repo.count_unread(agent_id),
            }
        except Exception as e:
            logger.error(f"Failed to compute dashboard stats: {e}")
            raise BadRequestError(f"Failed to compute dashboard stats: {str(e)}")


def mortgage(request: MortgageRequest) -> Dict[str, float]:
    return calculate_mortgage(request.principal, request.annual_rate_percent, request.years)


def roi(request: ROIRequest) -> Dict[str, Any]:
    return calculate_roi(request.price, request.monthly_rent, request.annual_expenses)


def transaction_cost(request: TransactionCostRequest) -> Dict[str, float]:
    """
    Transaction cost breakdown.

    Raises:
        BadRequestError: If the price is not positive
    """
    result = calculate_transaction_cost(**request.model_dump())
    if result is None:
        raise BadRequestError("Price must be greater than 0")
    return result
