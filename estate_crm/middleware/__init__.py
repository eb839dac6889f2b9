"""
Middleware package for request validation and tracing.
"""

from estate_crm.middleware.validation import ValidationMiddleware

__all__ = ["ValidationMiddleware"]
