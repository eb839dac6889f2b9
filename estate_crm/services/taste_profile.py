"""
Taste profile extraction.
Summarizes a buyer's property feedback through the AI gateway and stores the result on the buyer.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.buyer import BuyerRepository
from estate_crm.repositories.buyer_property import BuyerPropertyRepository
from estate_crm.models.buyer_property import BuyerPropertyStatus
from estate_crm.models.user import User
from estate_crm.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    RateLimitExceededError,
    PaymentRequiredError,
    ServiceUnavailableError
)
from estate_crm.config import settings
import httpx
import json
import re
import uuid
import logging

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "לא צוין"

SYSTEM_PROMPT = "אתה עוזר AI שמנתח משוב לקוחות על נכסי נדל\"ן. תמיד החזר תשובה בפורמט JSON תקין בעברית."

JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def _location(item: Dict[str, Any]) -> str:
    return ", ".join(part for part in (item.get("property_address"), item.get("property_city")) if part)


def _bullets(feedback: List[Dict[str, Any]], field: str) -> str:
    lines = []
    for item in feedback:
        text = item.get(field)
        if not text:
            continue
        location = _location(item)
        lines.append(f"- {text} (נכס: {location})" if location else f"- {text}")
    return "\n".join(lines)


def build_prompt(feedback: List[Dict[str, Any]]) -> str:
    """
    Build the Hebrew analysis prompt from feedback items.

    Args:
        feedback: Dicts with liked_text, disliked_text, not_interested_reason,
            status, property_address and property_city

    Returns:
        Prompt text
    """
    liked = _bullets(feedback, "liked_text")
    disliked = _bullets(feedback, "disliked_text")
    reasons = _bullets(feedback, "not_interested_reason")
    rejected_locations = [
        _location(item) for item in feedback
        if item.get("status") == BuyerPropertyStatus.NOT_INTERESTED.value or item.get("not_interested_reason")
    ]
    rejected_locations = [loc for loc in rejected_locations if loc]
    locations = "\n".join(f"- {loc}" for loc in rejected_locations)

    return f"""אתה עוזר לסוכני נדל"ן לזהות טעם של לקוחות.

להלן משוב שנאסף מלקוח על מספר נכסים שונים:

**מה הלקוח אהב:**
{liked or NOT_SPECIFIED}

**מה הלקוח פחות אהב:**
{disliked or NOT_SPECIFIED}

**סיבות לחוסר עניין:**
{reasons or NOT_SPECIFIED}

**מיקומים של נכסים שהלקוח לא רצה:**
{locations or NOT_SPECIFIED}

נא לנתח את המשוב ולחלץ:
1. 3-5 נושאים חוזרים חיוביים שהלקוח מעדיף (אהבות כלליות)
2. 3-5 נושאים חוזרים שליליים או דברים שפוסלים נכס (פסילות כלליות)

זהה מיקומים ספציפיים (שכונות, רחובות, ערים) שחוזרים על עצמם בנכסים שהלקוח דחה, וציין אותם במפורש ב-global_disliked_profile.

החזר את התשובה בפורמט JSON הבא בלבד, בעברית:
{{
  "global_liked_profile": "תיאור קצר של מה שהלקוח אוהב בנכסים",
  "global_disliked_profile": "תיאור קצר של מה שפוסל נכסים עבור הלקוח"
}}"""


def parse_profile(content: str) -> Dict[str, str]:
    """
    Pull liked and disliked summaries out of the model reply.

    The first {...} block is parsed as JSON. When that fails the raw reply is
    returned as the liked profile.
    """
    result = {"liked": "", "disliked": ""}
    match = JSON_OBJECT_RE.search(content or "")
    if not match:
        return result

    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        logger.warning("AI reply is not valid JSON, keeping raw content")
        result["liked"] = content
        return result

    result["liked"] = parsed.get("global_liked_profile") or ""
    result["disliked"] = parsed.get("global_disliked_profile") or ""
    return result


class AIGatewayClient:
    """Chat-completions client for the AI gateway."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def complete(self, system: str, prompt: str) -> str:
        """
        Send one chat completion request.

        Returns:
            Content of the first choice

        Raises:
            RateLimitExceededError: On HTTP 429
            PaymentRequiredError: On HTTP 402
            ServiceUnavailableError: On any other failure
        """
        if not settings.ai_gateway_api_key:
            raise ServiceUnavailableError("AI gateway is not configured")

        payload = {
            "model": settings.ai_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {"Authorization": f"Bearer {settings.ai_gateway_api_key}"}

        try:
            async with httpx.AsyncClient(
                base_url=settings.ai_gateway_url,
                timeout=settings.http_timeout,
                transport=self.transport
            ) as client:
                response = await client.post("/v1/chat/completions", json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"AI gateway request failed: {e}")
            raise ServiceUnavailableError("AI gateway is unreachable")

        if response.status_code == 429:
            raise RateLimitExceededError(detail="מגבלת בקשות - נסה שוב מאוחר יותר")
        if response.status_code == 402:
            raise PaymentRequiredError("נדרש תשלום - אנא הוסף קרדיטים")
        if not response.is_success:
            logger.error(f"AI gateway error: {response.status_code} {response.text}")
            raise ServiceUnavailableError(f"AI gateway error: {response.status_code}")

        data = response.json()
        choices = data.get("choices") or [{}]
        return (choices[0].get("message") or {}).get("content") or ""


class TasteProfileService:
    """
    Service extracting a buyer's taste profile from their feedback.
    """

    def __init__(self, db_session: AsyncSession, client: Optional[AIGatewayClient] = None):
        self.db = db_session
        self.buyer_repo = BuyerRepository(db_session)
        self.buyer_property_repo = BuyerPropertyRepository(db_session)
        self.client = client or AIGatewayClient()

    async def collect_feedback(self, buyer_id: uuid.UUID) -> List[Dict[str, Any]]:
        """Feedback rows of a buyer that carry any text or a not-interested status."""
        rows = await self.buyer_property_repo.list_for_buyer(buyer_id)
        feedback = []
        for row in rows:
            if not (row.liked_text or row.disliked_text or row.not_interested_reason
                    or row.status == BuyerPropertyStatus.NOT_INTERESTED):
                continue
            feedback.append({
                "liked_text": row.liked_text,
                "disliked_text": row.disliked_text,
                "not_interested_reason": row.not_interested_reason,
                "status": row.status.value,
                "property_address": row.property.address if row.property else None,
                "property_city": row.property.city if row.property else None,
            })
        return feedback

    async def extract(self, buyer_id: uuid.UUID, current_user: User) -> Dict[str, Any]:
        """
        Extract and store the buyer's liked and disliked profiles.

        Args:
            buyer_id: UUID of the buyer
            current_user: Agent requesting the extraction

        Returns:
            Dict with liked, disliked and an optional error

        Raises:
            NotFoundError: If the buyer doesn't exist
            ForbiddenError: If the buyer belongs to another agent
        """
        buyer = await self.buyer_repo.get_by_id(buyer_id)
        if not buyer:
            raise NotFoundError("Buyer", str(buyer_id))
        if not current_user.can_manage(buyer.agent_id):
            raise ForbiddenError("You can only analyze your own buyers")

        feedback = await self.collect_feedback(buyer_id)
        if not feedback:
            return {"liked": "", "disliked": "", "error": "No feedback data provided"}

        content = await self.client.complete(SYSTEM_PROMPT, build_prompt(feedback))
        profile = parse_profile(content)

        await self.buyer_repo.update(buyer_id, {
            "global_liked_profile": profile["liked"],
            "global_disliked_profile": profile["disliked"],
        })
        logger.info(f"Taste profile extracted for buyer {buyer_id} from {len(feedback)} feedback items")
        return {**profile, "error": None}
