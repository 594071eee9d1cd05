from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Union

from app.core.config import get_settings
from app.models.application import ApplicationType

settings = get_settings()

CENT = Decimal('0.01')


def _to_decimal(value: Union[Decimal, float, int, str]) -> Decimal:
    # str() keeps 35.80 as 35.80 instead of its binary float expansion
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def calculate_fees(
    base_amount: Union[Decimal, float, int, str],
    rate: Decimal = None
) -> Dict[str, Decimal]:
    """
    Calculate the total charged for a service

    Args:
        base_amount: Service base price in EUR
        rate: International payment surcharge (default from settings, 2.5%)

    Returns:
        Dictionary with base_amount, international_fee and total

    The surcharge is kept unrounded; only the total is rounded half-up
    to cents.
    """
    if rate is None:
        rate = settings.INTERNATIONAL_FEE_RATE

    base = _to_decimal(base_amount)
    if base <= 0:
        raise ValueError("Base amount must be positive")

    international_fee = base * _to_decimal(rate)
    total = (base + international_fee).quantize(CENT, rounding=ROUND_HALF_UP)

    return {
        "base_amount": base,
        "international_fee": international_fee,
        "total": total
    }


def base_price_for(application_type: ApplicationType) -> Decimal:
    """
    Fixed base price of the service behind each form

    Tourist form is EASE assistance, agency form is visa assistance.
    """
    if ApplicationType(application_type) == ApplicationType.AGENCY:
        return settings.VISA_BASE_PRICE
    return settings.EASE_BASE_PRICE


def fees_for_service(application_type: ApplicationType) -> Dict[str, Decimal]:
    """Fee breakdown for the given form type"""
    return calculate_fees(base_price_for(application_type))


def format_amount(amount: Union[Decimal, float, int, str]) -> str:
    """
    Format amount for display

    Args:
        amount: Amount in EUR

    Returns:
        Formatted string, e.g. €36.70
    """
    value = _to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    return f"€{value}"
