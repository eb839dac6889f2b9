"""
Repository layer for data access operations.
Provides database operations with proper error handling for every CRM table.
"""

from estate_crm.repositories.base import BaseRepository
from estate_crm.repositories.user import UserRepository
from estate_crm.repositories.buyer import BuyerRepository
from estate_crm.repositories.property import PropertyRepository, PropertySearchFilters
from estate_crm.repositories.buyer_property import BuyerPropertyRepository
from estate_crm.repositories.match import MatchRepository
from estate_crm.repositories.notification import NotificationRepository
from estate_crm.repositories.activity_log import ActivityLogRepository
from estate_crm.repositories.invite import InviteRepository
from estate_crm.repositories.upload import BuyerUploadRepository
from estate_crm.repositories.neighborhood import NeighborhoodRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "BuyerRepository",
    "PropertyRepository",
    "PropertySearchFilters",
    "BuyerPropertyRepository",
    "MatchRepository",
    "NotificationRepository",
    "ActivityLogRepository",
    "InviteRepository",
    "BuyerUploadRepository",
    "NeighborhoodRepository",
]
