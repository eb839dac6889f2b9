"""
Financial calculators for agents and buyers.
Mortgage payment, rental yield and total transaction cost.
"""

from typing import Optional, Dict, Any


def monthly_mortgage_payment(principal: float, annual_rate_percent: float, years: int) -> float:
    """
    Compute the fixed monthly payment of an amortized loan.

    Args:
        principal: Loan amount
        annual_rate_percent: Annual interest rate in percent
        years: Loan term in years

    Returns:
        Monthly payment
    """
    months = years * 12
    if principal <= 0 or months <= 0:
        return 0.0

    rate = annual_rate_percent / 100 / 12
    if rate == 0:
        return principal / months

    growth = (1 + rate) ** months
    return principal * rate * growth / (growth - 1)


def calculate_mortgage(principal: float, annual_rate_percent: float, years: int) -> Dict[str, float]:
    """
    Mortgage summary.

    Returns:
        Dictionary with monthly_payment, total_paid and total_interest
    """
    monthly = monthly_mortgage_payment(principal, annual_rate_percent, years)
    total_paid = monthly * years * 12
    return {
        "monthly_payment": round(monthly, 2),
        "total_paid": round(total_paid, 2),
        "total_interest": round(max(total_paid - principal, 0.0), 2),
    }


def calculate_roi(price: float, monthly_rent: float, annual_expenses: Optional[float] = None) -> Dict[str, Any]:
    """
    Rental yield for an investment property.

    Args:
        price: Purchase price
        monthly_rent: Expected monthly rent
        annual_expenses: Yearly running costs; net yield is computed only when given and non-negative

    Returns:
        Dictionary with gross_yield, net_yield (or None), annual_income and payback_years
    """
    if price <= 0:
        raise ValueError("Price must be greater than 0")

    annual_income = monthly_rent * 12
    gross_yield = annual_income / price * 100

    net_yield = None
    net_income = annual_income
    if annual_expenses is not None and annual_expenses >= 0:
        net_income = annual_income - annual_expenses
        net_yield = net_income / price * 100

    payback_years = price / net_income if net_income > 0 else None

    return {
        "annual_income": round(annual_income, 2),
        "gross_yield": round(gross_yield, 2),
        "net_yield": round(net_yield, 2) if net_yield is not None else None,
        "payback_years": round(payback_years, 1) if payback_years is not None else None,
    }


def calculate_transaction_cost(
    price: float,
    purchase_tax: float = 0.0,
    lawyer_fee: float = 0.0,
    broker_fee: float = 0.0,
    renovation: float = 0.0,
    other_fees: float = 0.0,
    loan_amount: float = 0.0,
    annual_rate_percent: float = 0.0,
    loan_years: int = 0,
) -> Optional[Dict[str, float]]:
    """
    Total cost of buying a property.

    Financing cost is what the loan costs on top of its principal.

    Returns:
        Breakdown dictionary, or None when price is not positive
    """
    if price <= 0:
        return None

    financing_cost = 0.0
    if loan_amount > 0 and loan_years > 0:
        monthly = monthly_mortgage_payment(loan_amount, annual_rate_percent, loan_years)
        financing_cost = monthly * loan_years * 12 - loan_amount

    total = price + purchase_tax + lawyer_fee + broker_fee + renovation + other_fees + financing_cost

    return {
        "price": round(price, 2),
        "purchase_tax": round(purchase_tax, 2),
        "lawyer_fee": round(lawyer_fee, 2),
        "broker_fee": round(broker_fee, 2),
        "renovation": round(renovation, 2),
        "other_fees": round(other_fees, 2),
        "financing_cost": round(financing_cost, 2),
        "total_cost": round(total, 2),
        "equity_required": round(total - financing_cost - loan_amount, 2),
    }
