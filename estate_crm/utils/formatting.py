"""
Display formatting helpers.
"""

from decimal import Decimal
from typing import Optional, Union

NOT_SPECIFIED = "לא צוין"


def format_price(price: Optional[Union[int, float, Decimal]]) -> str:
    """
    Format a price in shekels without decimals.

    Args:
        price: Price value or None

    Returns:
        String such as "₪1,250,000", or the not-specified label
    """
    if price is None:
        return NOT_SPECIFIED

    return f"₪{round(float(price)):,}"
