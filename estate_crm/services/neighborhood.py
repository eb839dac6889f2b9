"""
Neighborhood lookup service.
Built-in neighborhood lists per city, extended by admins.
"""

from typing import Optional, List, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from estate_crm.repositories.neighborhood import NeighborhoodRepository
from estate_crm.models.neighborhood import Neighborhood
from estate_crm.models.user import User
from estate_crm.schemas.analytics import NeighborhoodCreate
from estate_crm.utils.exceptions import (
    DuplicateResourceError,
    InsufficientPermissionsError,
    BadRequestError
)
import logging

logger = logging.getLogger(__name__)

SEED_NEIGHBORHOODS: Dict[str, List[str]] = {
    "רחובות": [
        "אושיות", "אזור תעשיה", "אזורי ויצמן", "אחוזת הנשיא", "אפרים", "גבעת האהבה",
        "גבעתי", "גינות סביון", "גן הפקאן", "גני דיזנגוף", "דניה", "ההולנדית", "הפרחים",
        "חבצלת", "חצרות המושבה", "כפר גבירול", "מזרח", "מילצן", "מקוב", "מרכז", "מרמורק",
        "נוה עמית", "נווה יהודה", "סלע", "פארק הורוביץ", "פארק המדע", "צפון מזרח",
        "צפון מערב", "קרית דוד", "קרית ההגנה", "קרית היובל", "קרית משה", "רחובות החדשה",
        "רחובות המדע", "רחובות הצעירה", "רמת אהרון", "רמת יגאל", "שילר", "שעריים",
    ],
    "נס ציונה": [
        "א.ת.", "ארגמן", "גבעת הצבר", "גבעת התור", "גבעת מיכאל", "גבעת נוף", "גני איריס",
        "גני הדרים", "הדגל", "הדרי סמל", "וואלי", "טירת שלום", "יד אליעזר", "כפר אהרון",
        "לב המושבה", "מרכז מזרח", "מרכז מערב", "נווה כרמית", "סביוני הפארק", "סביוני נצר",
        "עמידר", "פארק המדע", "פארק מדע", "פסגת סלע", "צפון נס ציונה", "רמת בן צבי",
        "רמת סמל", "שמורת מליבו",
    ],
    "מזכרת בתיה": [
        "בר לב", "המושבה", "מ.בתיה", "נאות יצחק רבין", "נאות ראשונים",
    ],
    "יבנה": [
        "א.ת דרום", "א.ת צפוני", "התעשיה", "יבנה הירוקה", "נאות אשכול", "נאות בגין",
        "נאות גוריון", "נאות רבין", "נאות שזר", "נאות שמיר", "נווה אילן", "רמות בן צבי",
        "רמות ויצמן",
    ],
}


def merge_neighborhoods(
    seed: Dict[str, List[str]],
    rows: List[Neighborhood],
    city: Optional[str] = None
) -> Dict[str, List[str]]:
    """
    Merge stored rows into the built-in lists.

    Names are de-duplicated and sorted per city. When city is given only that
    city is returned, empty if nothing is known about it.
    """
    merged: Dict[str, set] = {name: set(values) for name, values in seed.items()}
    for row in rows:
        merged.setdefault(row.city, set()).add(row.name)

    if city is not None:
        return {city: sorted(merged.get(city, set()))}
    return {name: sorted(values) for name, values in sorted(merged.items())}


class NeighborhoodService:
    """
    Service for the neighborhood lookup.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.neighborhood_repo = NeighborhoodRepository(db_session)

    async def lookup(self, city: Optional[str] = None) -> Dict[str, Dict[str, List[str]]]:
        """Neighborhood names per city, shaped like NeighborhoodLookup."""
        rows = await self.neighborhood_repo.list_all(city)
        return {"cities": merge_neighborhoods(SEED_NEIGHBORHOODS, rows, city)}

    async def list_custom(self) -> List[Neighborhood]:
        rows = await self.neighborhood_repo.list_all()
        return [row for row in rows if row.is_custom]

    async def add_custom(self, data: NeighborhoodCreate, current_user: User) -> Neighborhood:
        """
        Add a neighborhood to a city.

        Args:
            data: City and neighborhood name
            current_user: Admin adding the entry

        Returns:
            Created neighborhood row

        Raises:
            InsufficientPermissionsError: If the user is not an admin
            DuplicateResourceError: If the city already has this neighborhood
        """
        if not current_user.is_admin:
            raise InsufficientPermissionsError("add neighborhoods")

        city = data.city.strip()
        name = data.name.strip()

        if name in SEED_NEIGHBORHOODS.get(city, []) or await self.neighborhood_repo.get_by_city_and_name(city, name):
            raise DuplicateResourceError("Neighborhood", f"{city} / {name}")

        try:
            row = await self.neighborhood_repo.create({
                "city": city,
                "name": name,
                "is_custom": True,
                "added_by": current_user.id,
            })
            logger.info(f"Neighborhood '{name}' added to {city} by {current_user.email}")
            return row
        except Exception as e:
            logger.error(f"Failed to add neighborhood {city} / {name}: {e}")
            raise BadRequestError(f"Failed to add neighborhood: {str(e)}")
