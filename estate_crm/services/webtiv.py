"""
Webtiv listing sync.
Fetches the office XML feed, maps listings onto properties and upserts them by Webtiv serial.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.property import PropertyRepository
from estate_crm.repositories.user import UserRepository
from estate_crm.models.property import Property, PropertyStatus
from estate_crm.models.image import PropertyImage
from estate_crm.models.user import User, UserRole
from estate_crm.utils.exceptions import (
    BadRequestError,
    InsufficientPermissionsError,
    ServiceUnavailableError
)
from estate_crm.config import settings
import xml.etree.ElementTree as ET
import httpx
import secrets
import logging

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "לא צוין"
DEFAULT_AGENT_NAME = "סוכן"


def _rows(root: ET.Element, tag: str) -> List[Dict[str, str]]:
    """Flatten every <tag> element into a dict of its attributes and child texts."""
    rows = []
    for element in root.iter(tag):
        row = dict(element.attrib)
        for child in element:
            row[child.tag] = (child.text or "").strip()
        rows.append(row)
    return rows


def parse_feed(xml_text: str) -> Dict[str, List[Dict[str, str]]]:
    """
    Parse a Webtiv NewDataSet document.

    Returns:
        Dict with "properties", "pictures" and "agents" row lists

    Raises:
        BadRequestError: If the document is not well-formed XML
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise BadRequestError(f"Invalid Webtiv XML: {e}")

    return {
        "properties": _rows(root, "Properties"),
        "pictures": _rows(root, "pictures"),
        "agents": _rows(root, "officeAgentsProfile"),
    }


def _to_float(value: Optional[str]) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _to_int(value: Optional[str], positive: bool = True) -> Optional[int]:
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    if positive and number <= 0:
        return None
    return number


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def parse_parking(value: Optional[str]) -> int:
    """Double or tandem parking counts as two spots, any other parking as one."""
    text = value or ""
    if "כפולה" in text or "עוקבת" in text:
        return 2
    if "יש" in text:
        return 1
    return 0


def map_listing(row: Dict[str, str]) -> Dict[str, Any]:
    """Map one Webtiv Properties row onto property columns."""
    street = row.get("street") or row.get("Street") or ""
    number = row.get("number") or row.get("Number") or ""
    address = f"{street} {number}".strip()

    return {
        "external_id": row.get("serial"),
        "address": address or NOT_SPECIFIED,
        "city": row.get("city") or row.get("City") or NOT_SPECIFIED,
        "neighborhood": row.get("shcuna") or None,
        "description": (row.get("comments2") or "").strip() or None,
        "rooms": _to_float(row.get("room")),
        "size_sqm": _to_int(row.get("builtsqmr")),
        "floor": _to_int(row.get("floor"), positive=False),
        "price": _to_float(row.get("priceshekel")),
        "has_safe_room": _flag(row.get("mamadYN")),
        "has_sun_balcony": _flag(row.get("mirpesetShemeshYN")),
        "parking_spots": parse_parking(row.get("park")),
        "status": PropertyStatus.AVAILABLE,
    }


def pictures_for(serial: str, pictures: List[Dict[str, str]]) -> List[str]:
    """Picture URLs of one listing ordered by picOrder."""
    own = [p for p in pictures if p.get("picserial") == serial and p.get("picurl")]
    own.sort(key=lambda p: _to_int(p.get("picOrder"), positive=False) or 0)
    return [p["picurl"] for p in own]


class WebtivClient:
    """HTTP client for the Webtiv XML feed."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def fetch_feed(self) -> str:
        """
        Download the office feed.

        Raises:
            ServiceUnavailableError: If the feed is not configured or cannot be fetched
        """
        if not settings.webtiv_client_guid or not settings.webtiv_agents_guid:
            raise ServiceUnavailableError("Webtiv sync is not configured")

        params = {
            "clientguid": settings.webtiv_client_guid,
            "agentsguid": settings.webtiv_agents_guid,
        }
        try:
            async with httpx.AsyncClient(
                base_url=settings.webtiv_base_url,
                timeout=settings.http_timeout,
                transport=self.transport
            ) as client:
                response = await client.get("/xml.aspx", params=params)
        except httpx.HTTPError as e:
            logger.error(f"Webtiv request failed: {e}")
            raise ServiceUnavailableError("Webtiv feed is unreachable")

        if not response.is_success:
            logger.error(f"Webtiv feed returned {response.status_code}")
            raise ServiceUnavailableError(f"XML fetch failed, status: {response.status_code}")

        return response.text


class WebtivSyncService:
    """
    Service importing Webtiv listings and agents.
    """

    def __init__(self, db_session: AsyncSession, client: Optional[WebtivClient] = None):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.user_repo = UserRepository(db_session)
        self.client = client or WebtivClient()

    async def sync(self, current_user: User) -> Dict[str, Any]:
        """
        Fetch the feed and import it.

        Raises:
            InsufficientPermissionsError: If the user is not staff
        """
        if not current_user.is_agent:
            raise InsufficientPermissionsError("sync listings")

        xml_text = await self.client.fetch_feed()
        return await self.import_feed(xml_text)

    async def _import_agents(self, agents: List[Dict[str, str]]) -> int:
        inserted = 0
        for row in agents:
            email = row.get("AgentEmail") or f"agent{row.get('AgentSerial', '')}@extra-mile.co.il"
            if await self.user_repo.get_by_email(email):
                continue
            try:
                await self.user_repo.create_user({
                    "email": email,
                    "full_name": row.get("AgentName") or DEFAULT_AGENT_NAME,
                    "phone": row.get("AgentMobilePhone") or None,
                    "password": secrets.token_urlsafe(16),
                    "role": UserRole.AGENT,
                })
                inserted += 1
            except ValueError as e:
                logger.warning(f"Skipping Webtiv agent {email}: {e}")
        return inserted

    async def import_feed(self, xml_text: str) -> Dict[str, Any]:
        """
        Import a feed document.

        Listings without pictures are skipped. Known serials are updated in place
        and their images replaced; new serials are inserted.

        Returns:
            Dict shaped like WebtivSyncResponse
        """
        feed = parse_feed(xml_text)
        logger.info(
            f"Webtiv feed: {len(feed['properties'])} properties, "
            f"{len(feed['pictures'])} pictures, {len(feed['agents'])} agents"
        )

        inserted_agents = await self._import_agents(feed["agents"])

        inserted = updated = skipped = total_images = 0
        try:
            for row in feed["properties"]:
                serial = row.get("serial")
                urls = pictures_for(serial, feed["pictures"]) if serial else []
                if not urls:
                    skipped += 1
                    continue

                data = map_listing(row)
                existing = await self.property_repo.get_by_external_id(serial)

                if existing:
                    for field, value in data.items():
                        setattr(existing, field, value)
                    await self.property_repo.replace_images(existing, urls)
                    updated += 1
                else:
                    self.db.add(Property(
                        **data,
                        images=[
                            PropertyImage(url=url, is_primary=index == 0, display_order=index)
                            for index, url in enumerate(urls)
                        ]
                    ))
                    inserted += 1

                total_images += len(urls)

            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Webtiv import failed: {e}")
            raise BadRequestError(f"Failed to import Webtiv listings: {str(e)}")

        result = {
            "inserted": inserted,
            "updated": updated,
            "filtered": {"no_pictures": skipped},
            "inserted_agents": inserted_agents,
            "total_images": total_images,
        }
        logger.info(f"Webtiv sync completed: {result}")
        return result
