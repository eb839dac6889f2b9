"""
Agent email notifications sent through Resend.
"""

from typing import Optional, Dict, Any
from html import escape
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.user import UserRepository
from estate_crm.schemas.integrations import AgentEmailRequest
from estate_crm.utils.exceptions import BadRequestError, NotFoundError, ServiceUnavailableError
from estate_crm.config import settings
import httpx
import uuid
import logging

logger = logging.getLogger(__name__)


def render_agent_email(
    agent_name: str,
    buyer_name: str,
    location: str,
    buyer_phone: Optional[str] = None,
    property_id: Optional[str] = None,
    message: Optional[str] = None
) -> str:
    """Right-to-left HTML body of the information request email."""
    extra = ""
    if property_id:
        extra += f'<p style="margin: 5px 0 0 0; font-size: 12px; color: #6b7280;">מזהה נכס: {escape(property_id)}</p>'
    phone = f"<p>טלפון: <strong>{escape(buyer_phone)}</strong></p>" if buyer_phone else ""
    note = f"<p>{escape(message)}</p>" if message else ""

    return f"""
<div dir="rtl" style="font-family: Arial, sans-serif; padding: 20px; max-width: 600px;">
  <h2 style="color: #2563eb;">בקשת מידע חדשה</h2>
  <p>שלום {escape(agent_name)},</p>
  <p>הלקוח <strong>{escape(buyer_name)}</strong> מעוניין לקבל מידע נוסף על הנכס:</p>
  <div style="background: #f3f4f6; padding: 15px; border-radius: 8px; margin: 15px 0;">
    <p style="margin: 0; font-size: 16px;"><strong>{escape(location)}</strong></p>
    {extra}
  </div>
  {phone}
  {note}
  <p>מומלץ ליצור קשר עם הלקוח בהקדם האפשרי.</p>
</div>
"""


class ResendClient:
    """Minimal client for the Resend emails endpoint."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(settings.resend_api_key)

    async def send(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        """
        Send one email.

        Returns:
            Resend response body, including the email id

        Raises:
            ServiceUnavailableError: If Resend rejects the request or is unreachable
        """
        payload = {"from": settings.email_from, "to": [to], "subject": subject, "html": html}
        headers = {"Authorization": f"Bearer {settings.resend_api_key}"}

        try:
            async with httpx.AsyncClient(
                base_url=settings.resend_api_url,
                timeout=settings.http_timeout,
                transport=self.transport
            ) as client:
                response = await client.post("/emails", json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Resend request failed: {e}")
            raise ServiceUnavailableError("Email service is unreachable")

        if not response.is_success:
            logger.error(f"Resend API error: {response.status_code} {response.text}")
            raise ServiceUnavailableError("Failed to send email")

        return response.json()


class EmailService:
    """
    Service notifying agents about buyer requests by email.
    """

    def __init__(self, db_session: AsyncSession, client: Optional[ResendClient] = None):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.client = client or ResendClient()

    async def notify_agent(self, request: AgentEmailRequest) -> Dict[str, Any]:
        """
        Email an agent that a buyer wants information about a property.

        Args:
            request: Agent, buyer and property details

        Returns:
            Dict with sent, email_id and reason

        Raises:
            BadRequestError: If agent_id, buyer_name or property_address is missing
            NotFoundError: If the agent doesn't exist or has no email
        """
        if not request.agent_id or not request.buyer_name or not request.property_address:
            raise BadRequestError("Missing required fields: agent_id, buyer_name, property_address")

        try:
            agent_id = uuid.UUID(request.agent_id)
        except ValueError:
            raise BadRequestError("Invalid agent ID format")

        agent = await self.user_repo.get_by_id(agent_id)
        if not agent or not agent.email:
            raise NotFoundError("Agent", request.agent_id)

        if not self.client.is_configured:
            logger.warning(f"Resend is not configured, skipping email to agent {agent_id}")
            return {"sent": False, "email_id": None, "reason": "Email service not configured"}

        location = request.property_address
        if request.property_city:
            location = f"{location}, {request.property_city}"

        html = render_agent_email(
            agent.full_name or "סוכן",
            request.buyer_name,
            location,
            buyer_phone=request.buyer_phone,
            property_id=request.property_id,
            message=request.message
        )
        result = await self.client.send(agent.email, f"בקשת מידע חדשה מ-{request.buyer_name}", html)

        logger.info(f"Information request email sent to {agent.email} for buyer {request.buyer_name}")
        return {"sent": True, "email_id": result.get("id"), "reason": None}
