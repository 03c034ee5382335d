"""
Amount-in-words conversion using the Indian numbering system.

Groups read crore (2 digits), lakh (2), thousand (2) and hundreds (3)
from the left, e.g. 12,34,567 -> TWELVE LAKH THIRTY FOUR THOUSAND FIVE
HUNDRED AND SIXTY SEVEN.
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from hvac_billing.utils.config import settings
from hvac_billing.utils.errors import OutOfRangeError
from hvac_billing.utils.money import round_rupees

logger = logging.getLogger(__name__)

MAX_AMOUNT = 999_999_999
OVERFLOW = "Overflow"

ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

GROUPS = [
    (10_000_000, "Crore"),
    (100_000, "Lakh"),
    (1_000, "Thousand"),
]


def _two_digits(n: int) -> str:
    if n < 20:
        return ONES[n]
    tens, ones = divmod(n, 10)
    return f"{TENS[tens]} {ONES[ones]}".strip()


def number_to_words(n: int) -> str:
    """
    Convert a whole amount in 0..999,999,999 to upper-case words.
    
    Zero is rendered as ZERO. Empty groups are left out, and "AND" joins
    the last two digits to whatever came before them.
    
    Raises:
        OutOfRangeError: if n is negative or above MAX_AMOUNT
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError(f"Expected an int, got {type(n).__name__}")
    if n < 0 or n > MAX_AMOUNT:
        raise OutOfRangeError(f"{n} is outside 0..{MAX_AMOUNT}")
    if n == 0:
        return "ZERO"
    
    parts = []
    rest = n
    for size, name in GROUPS:
        group, rest = divmod(rest, size)
        if group:
            parts.append(f"{_two_digits(group)} {name}")
    
    hundreds, remainder = divmod(rest, 100)
    if hundreds:
        parts.append(f"{ONES[hundreds]} Hundred")
    if remainder:
        if parts:
            parts.append("and")
        parts.append(_two_digits(remainder))
    
    return " ".join(parts).upper()


def amount_in_words(amount: Union[Decimal, int], suffix: Optional[str] = None) -> str:
    """
    Words line printed on invoices: the amount rounded to whole rupees,
    followed by the configured suffix ("RUPEES ONLY").
    
    Raises:
        OutOfRangeError: if the rounded amount cannot be converted
    """
    suffix = settings.WORDS_SUFFIX if suffix is None else suffix
    words = number_to_words(round_rupees(Decimal(amount)))
    return f"{words} {suffix}".strip()


def amount_in_words_or_overflow(amount: Union[Decimal, int], suffix: Optional[str] = None) -> str:
    """Like amount_in_words, but returns the Overflow marker instead of raising."""
    try:
        return amount_in_words(amount, suffix)
    except OutOfRangeError as e:
        logger.warning(f"Amount too large for words: {e}")
        return OVERFLOW
