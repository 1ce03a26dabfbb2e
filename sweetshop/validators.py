"""
Business-rule validation for sweets and stock quantities.

Pydantic schemas reject malformed requests at the HTTP boundary; these checks
run again inside the store and the stock service so that the rules hold for
every caller, not only for HTTP requests.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple

NAME_MAX_LENGTH = 100
CATEGORY_MAX_LENGTH = 50

# Range of the 32-bit integer quantity column
MAX_QUANTITY = 2**31 - 1

# Numeric(10, 2): eight integer digits, two decimal places
MAX_PRICE = Decimal("99999999.99")
PRICE_STEP = Decimal("0.01")


def validate_text(value: Any, field: str, max_length: int) -> Tuple[bool, str]:
    """
    Validate a required, whitespace-stripped text field.

    Args:
        value: Value to check (expected to be already stripped)
        field: Field name used in the error message
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str) or not value.strip():
        return False, f"{field} is required"
    if len(value.strip()) > max_length:
        return False, f"{field} must be at most {max_length} characters"
    return True, ""


def validate_price(value: Any) -> Tuple[bool, str]:
    if isinstance(value, bool) or value is None:
        return False, "price must be a number"
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return False, "price must be a number"
    if not price.is_finite():
        return False, "price must be a number"
    if price < 0:
        return False, "price cannot be negative"
    if price > MAX_PRICE:
        return False, f"price cannot exceed {MAX_PRICE}"
    if price != price.quantize(PRICE_STEP):
        return False, "price must have at most 2 decimal places"
    return True, ""


def validate_stock_level(value: Any) -> Tuple[bool, str]:
    """Validate a stored quantity: a non-negative integer."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False, "quantity must be an integer"
    if value < 0:
        return False, "quantity cannot be negative"
    if value > MAX_QUANTITY:
        return False, f"quantity cannot exceed {MAX_QUANTITY}"
    return True, ""


def validate_sweet_fields(fields: dict) -> Tuple[bool, str]:
    """
    Validate the sweet fields present in `fields`.

    Only keys that are present are checked, so the same function serves both
    full creates and partial updates (after merging with the stored values).

    Returns:
        Tuple of (is_valid, error_message)
    """
    checks = {
        "name": lambda v: validate_text(v, "name", NAME_MAX_LENGTH),
        "category": lambda v: validate_text(v, "category", CATEGORY_MAX_LENGTH),
        "price": validate_price,
        "quantity": validate_stock_level,
    }
    for key, check in checks.items():
        if key in fields:
            ok, message = check(fields[key])
            if not ok:
                return False, message
    return True, ""


def validate_mutation_quantity(quantity: Optional[Any]) -> Tuple[bool, str]:
    """
    Validate the quantity of a purchase or restock request.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if quantity is None:
        return False, "Quantity is required"
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        return False, "Quantity must be an integer"
    if quantity <= 0:
        return False, "Quantity must be a positive integer"
    if quantity > MAX_QUANTITY:
        return False, f"Quantity cannot exceed {MAX_QUANTITY}"
    return True, ""
