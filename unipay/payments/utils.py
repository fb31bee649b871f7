"""
Payment System Utilities
Helper functions for payment processing.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Any, Optional

from .config import PAYMENT_METHOD_DISPLAY_NAMES
from .exceptions import PaymentValidationException


def generate_payment_reference(method: str) -> str:
    """
    Generate a unique payment reference.

    Args:
        method: Payment method (esewa, khalti, etc.)

    Returns:
        Unique payment reference string
    """
    timestamp = int(datetime.now(timezone.utc).timestamp())
    return f"{method.upper()}{timestamp}{uuid.uuid4().hex[:8].upper()}"


def parse_amount(value: Any) -> Decimal:
    """
    Parse a positive payment amount.

    Raises:
        PaymentValidationException: If the value is not a positive number
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise PaymentValidationException(f"Invalid payment amount: {value}")

    if not amount.is_finite() or amount <= 0:
        raise PaymentValidationException(f"Invalid payment amount: {value}")
    return amount


def format_payment_response(success: bool, message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Format a standardized payment API response.

    Args:
        success: Whether the operation was successful
        message: Response message
        data: Additional response data

    Returns:
        Formatted response dictionary
    """
    response = {
        'success': success,
        'message': message,
        'timestamp': datetime.now(timezone.utc).isoformat()
    }

    if data:
        response.update(data)

    return response


def get_payment_method_display_name(method: str) -> str:
    """
    Get display name for a payment method.

    Args:
        method: Payment method code

    Returns:
        Display name for the payment method
    """
    return PAYMENT_METHOD_DISPLAY_NAMES.get(method.lower(), method.upper())


# Currencies providers expect without a minor unit
ZERO_DECIMAL_CURRENCIES = {
    'BIF', 'CLP', 'DJF', 'GNF', 'JPY', 'KMF', 'KRW', 'MGA',
    'PYG', 'RWF', 'UGX', 'VND', 'VUV', 'XAF', 'XOF', 'XPF',
}


def _minor_exponent(currency: str) -> int:
    return 0 if (currency or '').upper() in ZERO_DECIMAL_CURRENCIES else 2


def to_minor_units(amount: Any, currency: str = '') -> int:
    """
    Convert a major-unit amount to the provider's integer minor units
    (paisa, cents), rounding half up.

    Args:
        amount: Amount in major units
        currency: ISO currency code

    Returns:
        Integer amount in minor units
    """
    scaled = Decimal(str(amount)).scaleb(_minor_exponent(currency))
    return int(scaled.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_minor_units(value: Any, currency: str = '') -> Optional[Decimal]:
    """Convert integer minor units back to a major-unit Decimal."""
    if value is None or value == '':
        return None
    return Decimal(str(value)).scaleb(-_minor_exponent(currency))


def format_major_units(amount: Any, currency: str = '') -> str:
    """Format an amount with the currency's decimal places, rounding half up."""
    places = _minor_exponent(currency)
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(str(amount or 0)).quantize(quantum, rounding=ROUND_HALF_UP))
