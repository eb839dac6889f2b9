"""
Error envelope models and the per-status ``responses=`` maps used by the routers.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Any, Dict


class ErrorDetail(BaseModel):
    """One entry of error.details: a failing field, or retry information from an upstream service."""

    field: Optional[str] = Field(None, examples=["phone"])
    message: Optional[str] = Field(None, examples=["Invalid Israeli phone number"])
    type: Optional[str] = Field(None, description="Pydantic error type", examples=["value_error"])
    input: Optional[Any] = Field(None, description="Rejected input value", examples=["12345"])
    retry_after: Optional[int] = Field(
        None,
        description="Seconds to wait before retrying a rate-limited AI request",
        examples=[60]
    )


class ErrorResponse(BaseModel):
    code: str = Field(..., description="Machine-readable error code", examples=["NOT_FOUND"])
    message: str = Field(..., examples=["Buyer not found"])
    timestamp: str = Field(..., description="UTC time of the failure", examples=["2024-01-01T00:00:00Z"])
    request_id: Optional[str] = Field(None, description="Matches the X-Request-ID header", examples=["abc12345"])
    details: Optional[List[ErrorDetail]] = None


class APIErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: ErrorResponse


# status -> (description, code, example message)
_ERROR_EXAMPLES = {
    400: ("Bad request", "BAD_REQUEST", "Invitation has expired"),
    401: ("Authentication required", "UNAUTHORIZED", "Token has expired"),
    402: ("AI credits exhausted", "PAYMENT_REQUIRED", "Payment required, please add credits"),
    403: ("Access denied", "FORBIDDEN", "Insufficient permissions to update buyer"),
    404: ("Resource not found", "NOT_FOUND", "Buyer not found with ID: 123e4567-e89b-12d3-a456-426614174000"),
    409: ("Duplicate resource", "CONFLICT", "Neighborhood already exists"),
    422: ("Validation error", "VALIDATION_ERROR", "Request validation failed"),
    429: ("Upstream rate limit", "RATE_LIMIT_EXCEEDED", "Rate limit exceeded"),
    500: ("Unexpected error", "INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again later."),
    503: ("Upstream service failed", "SERVICE_UNAVAILABLE", "AI gateway error"),
}


def _response_doc(status_code: int) -> Dict[str, Any]:
    description, code, message = _ERROR_EXAMPLES[status_code]
    example: Dict[str, Any] = {
        "code": code,
        "message": message,
        "timestamp": "2024-01-01T00:00:00Z",
        "request_id": "abc12345",
    }
    if status_code == 422:
        example["details"] = [{
            "field": "body -> budget_min",
            "message": "Value error, Minimum budget cannot be greater than maximum budget",
            "type": "value_error",
        }]
    elif status_code == 429:
        example["details"] = [{"retry_after": 60}]
    return {
        "description": description,
        "model": APIErrorResponse,
        "content": {"application/json": {"example": {"error": example}}},
    }


COMMON_ERROR_RESPONSES = {status_code: _response_doc(status_code) for status_code in _ERROR_EXAMPLES}


def get_error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    return {code: COMMON_ERROR_RESPONSES[code] for code in status_codes if code in COMMON_ERROR_RESPONSES}


def get_auth_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(401, 403)


def get_common_error_responses() -> Dict[int, Dict[str, Any]]:
    return get_error_responses(400, 401, 403, 404, 422, 500)


def get_crud_error_responses() -> Dict[int, Dict[str, Any]]:
    """Common errors plus 409 for unique constraints."""
    return get_error_responses(400, 401, 403, 404, 409, 422, 500)


def get_integration_error_responses() -> Dict[int, Dict[str, Any]]:
    """Errors of endpoints that call the AI gateway, Webtiv or Resend."""
    return get_error_responses(400, 401, 402, 403, 404, 429, 503)
