# backoffice/core/validation.py

import re
from datetime import date
from decimal import Decimal

EXPIRY_DATE_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2})$")


def parse_expiry_date(value: str) -> date:
    """Parse a DD/MM/YY date; two-digit years are read as 20YY."""
    if not value or not value.strip():
        raise ValueError("Date is required")

    match = EXPIRY_DATE_PATTERN.match(value.strip())
    if not match:
        raise ValueError("Date must be in DD/MM/YY format (e.g., 31/12/25)")

    day, month, year = (int(part) for part in match.groups())

    try:
        return date(2000 + year, month, day)
    except ValueError:
        raise ValueError("Invalid date provided")


def check_product_rules(
    cost_price: Decimal,
    selling_price: Decimal,
    quantity: int,
    threshold_value: int,
    expiry_date: date | None,
    today: date,
    check_threshold: bool = True,
) -> str | None:
    """Return the first business-rule violation, or None when the values are valid.

    ``check_threshold`` is turned off for updates of existing stock, which
    orders are expected to drain below the threshold.
    """
    if cost_price < 0:
        return "Cost price must be a positive number"

    if selling_price < 0:
        return "Selling price must be a positive number"

    if quantity < 0:
        return "Quantity must be a positive number"

    if threshold_value < 0:
        return "Threshold value must be a positive number"

    if selling_price < cost_price:
        return "Selling price should be greater than or equal to cost price"

    if check_threshold and threshold_value > quantity:
        return "Threshold value should not exceed quantity"

    if expiry_date is not None and expiry_date < today:
        return "Expiry date must be in the future"

    return None
