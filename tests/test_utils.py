"""
Tests for phone, formatting and calculator helpers plus JWT utilities.
"""

import pytest
import uuid
from datetime import timedelta
from decimal import Decimal

from estate_crm.models.user import UserRole
from estate_crm.utils.phone import sanitize_phone, is_valid_israeli_phone, format_phone_display
from estate_crm.utils.formatting import format_price, NOT_SPECIFIED
from estate_crm.utils.calculators import (
    monthly_mortgage_payment,
    calculate_mortgage,
    calculate_roi,
    calculate_transaction_cost
)
from estate_crm.utils.auth import create_access_token, create_refresh_token, verify_token
from jose import JWTError


class TestPhone:
    """Test Israeli phone normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("+972-50-123-4567", "0501234567"),
        ("972501234567", "0501234567"),
        ("50 123 4567", "0501234567"),
        ("(08) 945-1234", "089451234"),
        ("052-1234567", "0521234567"),
        ("", ""),
    ])
    def test_sanitize_phone(self, raw, expected):
        assert sanitize_phone(raw) == expected

    def test_is_valid_israeli_phone(self):
        assert is_valid_israeli_phone("054-765-4321")
        assert is_valid_israeli_phone("08-9451234")
        assert not is_valid_israeli_phone("12345")
        assert not is_valid_israeli_phone("0601234567")

    def test_format_phone_display(self):
        assert format_phone_display("+972501234567") == "050-1234567"
        assert format_phone_display("089451234") == "089451234"


class TestFormatting:
    """Test price formatting."""

    def test_format_price(self):
        assert format_price(Decimal("1250000")) == "₪1,250,000"
        assert format_price(999.6) == "₪1,000"

    def test_format_price_missing(self):
        assert format_price(None) == NOT_SPECIFIED


class TestCalculators:
    """Test mortgage, yield and transaction cost calculators."""

    def test_monthly_payment(self):
        payment = monthly_mortgage_payment(1000000, 4.0, 25)

        assert payment == pytest.approx(5278.37, abs=0.5)

    def test_monthly_payment_zero_rate(self):
        assert monthly_mortgage_payment(1200000, 0, 10) == pytest.approx(10000.0)

    def test_monthly_payment_invalid_input(self):
        assert monthly_mortgage_payment(0, 4.0, 25) == 0.0
        assert monthly_mortgage_payment(1000000, 4.0, 0) == 0.0

    def test_calculate_mortgage(self):
        result = calculate_mortgage(1200000, 0, 10)

        assert result == {"monthly_payment": 10000.0, "total_paid": 1200000.0, "total_interest": 0.0}

    def test_calculate_roi(self):
        result = calculate_roi(2000000, 6000, annual_expenses=12000)

        assert result["annual_income"] == 72000
        assert result["gross_yield"] == 3.6
        assert result["net_yield"] == 3.0
        assert result["payback_years"] == pytest.approx(33.3)

    def test_calculate_roi_without_expenses(self):
        result = calculate_roi(2000000, 5000)

        assert result["net_yield"] is None
        assert result["payback_years"] == pytest.approx(33.3)

    def test_calculate_roi_invalid_price(self):
        with pytest.raises(ValueError, match="Price must be greater than 0"):
            calculate_roi(0, 5000)

    def test_transaction_cost(self):
        result = calculate_transaction_cost(
            2000000,
            purchase_tax=20000,
            lawyer_fee=10000,
            broker_fee=40000,
            loan_amount=1200000,
            annual_rate_percent=0,
            loan_years=10,
        )

        assert result["financing_cost"] == 0
        assert result["total_cost"] == 2070000
        assert result["equity_required"] == 870000

    def test_transaction_cost_with_interest(self):
        result = calculate_transaction_cost(2000000, loan_amount=1000000, annual_rate_percent=4.0, loan_years=25)

        assert result["financing_cost"] == pytest.approx(583510, abs=200)
        assert result["equity_required"] == 1000000

    def test_transaction_cost_invalid_price(self):
        assert calculate_transaction_cost(0) is None


class TestTokens:
    """Test JWT helpers."""

    def test_access_token_round_trip(self):
        user_id = uuid.uuid4()
        token = create_access_token(user_id=user_id, email="agent@test.com", role=UserRole.AGENT)

        payload = verify_token(token)

        assert payload.user_id == str(user_id)
        assert payload.email == "agent@test.com"
        assert payload.role == "agent"

    def test_access_token_without_role(self):
        token = create_access_token(user_id=uuid.uuid4(), email="new@test.com", role=None)

        assert verify_token(token).role is None

    def test_refresh_token_rejected_as_access(self):
        token = create_refresh_token(user_id=uuid.uuid4(), email="agent@test.com")

        with pytest.raises(JWTError):
            verify_token(token, token_type="access")

    def test_expired_token(self):
        token = create_access_token(
            user_id=uuid.uuid4(),
            email="agent@test.com",
            role=UserRole.AGENT,
            expires_delta=timedelta(seconds=-1)
        )

        with pytest.raises(JWTError, match="expired"):
            verify_token(token)

    def test_garbage_token(self):
        with pytest.raises(JWTError):
            verify_token("not-a-token")
