"""
Service layer for business logic implementation.
Contains services for authentication, listings, buyers, matching and error handling.
"""

from .auth import AuthService
from .property import PropertyService
from .buyer import BuyerService
from .matching import MatchingService
from .error_handler import ErrorHandlerService

__all__ = [
    "AuthService",
    "PropertyService",
    "BuyerService",
    "MatchingService",
    "ErrorHandlerService"
]
