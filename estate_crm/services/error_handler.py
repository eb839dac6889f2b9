"""
Error handling service for consistent error response formatting and logging.

Every handler returns the same envelope:

    {"error": {"code": ..., "message": ..., "timestamp": ..., "details": [...], "request_id": ...}}
"""

from typing import Dict, Any, Optional, List, Union
from datetime import datetime, timezone
from fastapi import Request, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from pydantic import ValidationError as PydanticValidationError
from estate_crm.utils.exceptions import APIException, ValidationError
import logging
import uuid

logger = logging.getLogger(__name__)

# Named constraints mapped to messages an agent can act on
CONSTRAINT_MESSAGES = {
    "uq_buyer_properties_buyer_property": "This property was already offered to the buyer",
    "uq_matches_buyer_property": "A match for this buyer and property already exists",
    "uq_neighborhoods_city_name": "This neighborhood already exists in the city",
    "uq_property_views_user_property": "This property is already assigned to the client",
    "users.email": "A user with this email already exists",
    "properties.external_id": "A listing with this Webtiv serial already exists",
    "invites.token": "Invitation token collision, please retry",
}

# Upstream failures the caller can retry
RETRYABLE_CODES = {"RATE_LIMIT_EXCEEDED", "SERVICE_UNAVAILABLE"}


class ErrorHandlerService:
    """
    Formats errors raised anywhere in the CRM into the shared error envelope.
    """

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Build the error envelope.

        Args:
            error_code: Error code identifier
            message: Human-readable error message
            details: Optional list of detailed error information
            request_id: Optional request identifier for tracking
        """
        error: Dict[str, Any] = {
            "code": error_code,
            "message": message,
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        }
        if details:
            error["details"] = details
        if request_id:
            error["request_id"] = request_id
        return {"error": error}

    @staticmethod
    def _respond(
        status_code: int,
        error_code: str,
        message: str,
        request: Optional[Request],
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> JSONResponse:
        content = ErrorHandlerService.format_error_response(
            error_code=error_code,
            message=message,
            details=details,
            request_id=ErrorHandlerService._get_request_id(request)
        )
        return JSONResponse(status_code=status_code, content=content, headers=headers)

    @staticmethod
    def handle_api_exception(
        exception: APIException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle CRM exceptions (not found, ownership, invites, upstream integrations).

        Field errors of a ValidationError become details. Retryable upstream
        failures carry retry_after when the exception set a Retry-After header.
        """
        error_code = exception.error_code or "API_ERROR"
        path = request.url.path if request else None

        log = logger.error if exception.status_code >= 500 else logger.warning
        log(
            f"API Exception [{path}]: {error_code} - {exception.detail}",
            extra={"error_code": error_code, "status_code": exception.status_code, "path": path}
        )

        details = None
        if isinstance(exception, ValidationError) and exception.field_errors:
            details = exception.field_errors
        elif error_code in RETRYABLE_CODES and exception.headers and "Retry-After" in exception.headers:
            details = [{"retry_after": int(exception.headers["Retry-After"])}]

        return ErrorHandlerService._respond(
            exception.status_code,
            error_code,
            exception.detail,
            request,
            details=details,
            headers=exception.headers
        )

    @staticmethod
    def handle_validation_error(
        exception: Union[PydanticValidationError, RequestValidationError],
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle request body, query and path validation errors.

        Each failing field is listed with its location, message, error type and input.
        """
        details = [
            {
                "field": " -> ".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
                "input": jsonable_encoder(
                    error.get("input"),
                    custom_encoder={bytes: lambda b: b.decode(errors="replace")}
                ),
            }
            for error in exception.errors()
        ]

        logger.warning(
            f"Validation Error: {len(details)} field errors",
            extra={"error_count": len(details), "path": request.url.path if request else None}
        )

        return ErrorHandlerService._respond(422, "VALIDATION_ERROR", "Request validation failed", request, details)

    @staticmethod
    def handle_database_error(
        exception: SQLAlchemyError,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle database errors.

        Integrity errors become 409 with a message naming the violated constraint;
        anything else is a 500 that hides the database message.
        """
        if isinstance(exception, IntegrityError):
            status_code = 409
            error_code = "INTEGRITY_ERROR"
            message = ErrorHandlerService._describe_integrity_error(exception)
        else:
            status_code = 500
            error_code = "DATABASE_ERROR"
            message = "Database operation failed"

        logger.error(
            f"Database Error: {error_code} - {exception}",
            extra={
                "error_code": error_code,
                "path": request.url.path if request else None,
                "exception_type": type(exception).__name__
            },
            exc_info=True
        )

        return ErrorHandlerService._respond(status_code, error_code, message, request)

    @staticmethod
    def handle_http_exception(
        exception: HTTPException,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle framework HTTP errors such as unknown routes and unsupported methods."""
        logger.warning(
            f"HTTP Exception: {exception.status_code} - {exception.detail}",
            extra={"status_code": exception.status_code, "path": request.url.path if request else None}
        )

        return ErrorHandlerService._respond(
            exception.status_code,
            f"HTTP_{exception.status_code}",
            str(exception.detail),
            request,
            headers=getattr(exception, "headers", None)
        )

    @staticmethod
    def handle_unexpected_error(
        exception: Exception,
        request: Optional[Request] = None
    ) -> JSONResponse:
        """Handle anything else. The response never leaks the exception text."""
        logger.error(
            f"Unexpected Error: {type(exception).__name__} - {exception}",
            extra={
                "path": request.url.path if request else None,
                "exception_type": type(exception).__name__
            },
            exc_info=True
        )

        return ErrorHandlerService._respond(
            500,
            "INTERNAL_SERVER_ERROR",
            "An unexpected error occurred. Please try again later.",
            request
        )

    @staticmethod
    def _get_request_id(request: Optional[Request]) -> str:
        """Reuse the ID stamped by ValidationMiddleware, or generate one."""
        if request is not None:
            request_id = getattr(request.state, "request_id", None)
            if request_id:
                return request_id
        return str(uuid.uuid4())[:8]

    @staticmethod
    def _describe_integrity_error(exception: IntegrityError) -> str:
        """
        Message for an integrity error.

        PostgreSQL reports the constraint name and SQLite the table.column, so both
        are looked up before falling back to the kind of violation.
        """
        error_msg = str(exception.orig)

        for constraint, message in CONSTRAINT_MESSAGES.items():
            if constraint in error_msg:
                return message

        lowered = error_msg.lower()
        if "unique" in lowered:
            return "Constraint violation: duplicate value for unique field"
        if "foreign key" in lowered:
            return "Constraint violation: referenced record does not exist"
        if "not null" in lowered:
            return "Constraint violation: required field cannot be empty"
        return "Data integrity constraint violation"
