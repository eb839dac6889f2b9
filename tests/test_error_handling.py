"""
Tests for the structured error responses returned by the global exception handlers.
"""

import uuid
import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError

from estate_crm.models.user import User, UserRole
from estate_crm.models.buyer import Buyer
from estate_crm.services.error_handler import ErrorHandlerService
from estate_crm.utils.exceptions import ValidationError, RateLimitExceededError
from estate_crm.utils.auth import create_access_token
from tests.conftest import auth_headers


API = "/api/v1"


def assert_error_shape(body: dict, code: str) -> None:
    assert set(body) == {"error"}
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    assert "timestamp" in body["error"]


class TestErrorResponses:
    """Test error JSON produced by the API."""

    async def test_missing_token(self, async_client: AsyncClient):
        response = await async_client.get(f"{API}/buyers")

        assert response.status_code == 401
        assert_error_shape(response.json(), "UNAUTHORIZED")

    async def test_invalid_token(self, async_client: AsyncClient):
        response = await async_client.get(f"{API}/buyers", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401
        assert_error_shape(response.json(), "UNAUTHORIZED")

    async def test_token_for_unknown_user(self, async_client: AsyncClient):
        token = create_access_token(user_id=uuid.uuid4(), email="ghost@test.com", role=UserRole.AGENT)

        response = await async_client.get(f"{API}/buyers", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_not_found(self, async_client: AsyncClient, test_agent: User):
        response = await async_client.get(f"{API}/buyers/{uuid.uuid4()}", headers=auth_headers(test_agent))

        assert response.status_code == 404
        assert_error_shape(response.json(), "NOT_FOUND")

    async def test_forbidden(self, async_client: AsyncClient, test_buyer: Buyer, test_other_agent: User):
        response = await async_client.post(
            f"{API}/buyers/{test_buyer.id}/matching", headers=auth_headers(test_other_agent)
        )

        assert response.status_code == 403
        assert_error_shape(response.json(), "FORBIDDEN")

    async def test_request_validation(self, async_client: AsyncClient, test_agent: User):
        response = await async_client.post(
            f"{API}/buyers",
            json={"full_name": "", "budget_min": 3000000, "budget_max": 1000000},
            headers=auth_headers(test_agent)
        )

        assert response.status_code == 422
        body = response.json()
        assert_error_shape(body, "VALIDATION_ERROR")
        assert body["error"]["details"]

    async def test_invalid_path_uuid(self, async_client: AsyncClient, test_agent: User):
        response = await async_client.get(f"{API}/buyers/not-a-uuid", headers=auth_headers(test_agent))

        assert response.status_code == 422
        assert_error_shape(response.json(), "VALIDATION_ERROR")

    async def test_unknown_route(self, async_client: AsyncClient):
        response = await async_client.get(f"{API}/does-not-exist")

        assert response.status_code == 404
        assert_error_shape(response.json(), "HTTP_404")

    async def test_duplicate_registration(self, async_client: AsyncClient, test_agent: User):
        response = await async_client.post(
            f"{API}/auth/register",
            json={"email": test_agent.email, "password": "Secure#Pass1", "full_name": "Copy"}
        )

        assert response.status_code == 409
        assert_error_shape(response.json(), "CONFLICT")

    async def test_wrong_content_type(self, async_client: AsyncClient, test_agent: User):
        response = await async_client.post(
            f"{API}/buyers",
            content="full_name=x",
            headers={**auth_headers(test_agent), "Content-Type": "application/x-www-form-urlencoded"}
        )

        assert response.status_code == 400
        assert_error_shape(response.json(), "BAD_REQUEST")

    async def test_request_id_header(self, async_client: AsyncClient):
        response = await async_client.get("/", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"


class TestErrorHandlerService:
    """Test error formatting helpers directly."""

    def test_format_error_response(self):
        body = ErrorHandlerService.format_error_response("NOT_FOUND", "Buyer not found", request_id="r1")

        assert body["error"]["code"] == "NOT_FOUND"
        assert body["error"]["request_id"] == "r1"
        assert "details" not in body["error"]

    def test_validation_error_details(self):
        exc = ValidationError("Invalid input", field_errors=[{"field": "phone", "message": "Invalid"}])

        response = ErrorHandlerService.handle_api_exception(exc)

        assert response.status_code == 422
        assert b'"details"' in response.body

    def test_rate_limit_retry_after(self):
        response = ErrorHandlerService.handle_api_exception(RateLimitExceededError(retry_after=30))

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "30"

    def test_rate_limit_details(self):
        response = ErrorHandlerService.handle_api_exception(RateLimitExceededError(retry_after=15))

        assert b'"retry_after":15' in response.body

    @pytest.mark.parametrize("orig,expected", [
        ("UNIQUE constraint failed: users.email", "A user with this email already exists"),
        (
            'duplicate key value violates unique constraint "uq_buyer_properties_buyer_property"',
            "This property was already offered to the buyer",
        ),
        ("FOREIGN KEY constraint failed", "Constraint violation: referenced record does not exist"),
    ])
    def test_integrity_error_messages(self, orig, expected):
        exc = IntegrityError("INSERT ...", {}, Exception(orig))

        response = ErrorHandlerService.handle_database_error(exc)

        assert response.status_code == 409
        assert expected.encode() in response.body
