"""
Database models for the Estate CRM API.
Importing this package registers every table on the shared metadata.
"""

from estate_crm.models.user import User, UserRole
from estate_crm.models.buyer import Buyer, BuyerStatus
from estate_crm.models.property import Property, PropertyStatus
from estate_crm.models.image import PropertyImage
from estate_crm.models.property_details import PropertyExtendedDetails
from estate_crm.models.buyer_property import BuyerProperty, BuyerPropertyStatus
from estate_crm.models.match import Match
from estate_crm.models.notification import Notification
from estate_crm.models.activity_log import ActivityLog, ActionType
from estate_crm.models.invite import Invite, InviteProperty, InviteStatus, PropertyView
from estate_crm.models.upload import BuyerUpload
from estate_crm.models.neighborhood import Neighborhood

__all__ = [
    "User",
    "UserRole",
    "Buyer",
    "BuyerStatus",
    "Property",
    "PropertyStatus",
    "PropertyImage",
    "PropertyExtendedDetails",
    "BuyerProperty",
    "BuyerPropertyStatus",
    "Match",
    "Notification",
    "ActivityLog",
    "ActionType",
    "Invite",
    "InviteProperty",
    "InviteStatus",
    "PropertyView",
    "BuyerUpload",
    "Neighborhood",
]
