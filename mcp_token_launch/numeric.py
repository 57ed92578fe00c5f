"""
Precision-Safe Number Handling for Token Amounts

Token supplies reach 10**12 whole tokens at 18 implied decimals, far past the 53-bit
mantissa of a float. Every conversion that ends in base units therefore runs on Python
integers parsed straight from the decimal string; floats are only used for values that
are sent or compared as plain percentages (tax rates, range checks).

Percentages of supply are converted with a fixed-point scale equal to the precision of
the input itself (``"2.5"`` is 25 / 10), so no digit the user typed is ever dropped and
the result is truncated, never rounded up past the stated percentage.

Both ``.`` and ``,`` are accepted as decimal separators.
"""
import re
from datetime import datetime, timezone
from typing import Optional, Tuple

from mcp_token_launch.errors import MalformedNumberError

_DECIMAL_RE = re.compile(r"^(\d+)(?:\.(\d+))?$")
_INT_RE = re.compile(r"^\d+$")
_SIGNED_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


def normalize_decimal(value) -> str:
    """Strips whitespace and turns a comma decimal separator into a dot."""
    if value is None:
        return ""
    return str(value).strip().replace(",", ".")


def is_int_string(value) -> bool:
    """True for a plain non-negative integer string such as ``"300"``."""
    if value is None:
        return False
    return bool(_INT_RE.match(str(value).strip()))


def safe_parse_float(value) -> Optional[float]:
    """Parses a number, returning None for blank or invalid input instead of raising."""
    text = normalize_decimal(value)
    if not text or not _FLOAT_RE.match(text):
        return None
    return float(text)


def safe_parse_int(value) -> Optional[int]:
    """Parses a whole number, returning None for blank or invalid input instead of raising."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = normalize_decimal(value)
    if not text or not _SIGNED_INT_RE.match(text):
        return None
    return int(text)


def parse_percent(value) -> Optional[float]:
    """Alias of safe_parse_float used where the input is a percentage field."""
    return safe_parse_float(value)


def _split_decimal(value) -> Tuple[str, str]:
    text = normalize_decimal(value)
    match = _DECIMAL_RE.match(text)
    if not match:
        raise MalformedNumberError(f"'{value}' is not a non-negative decimal number")
    return match.group(1), match.group(2) or ""


def to_base_units(amount, decimals: int) -> int:
    """
    Converts a human amount such as ``"1.5"`` to integer base units.

    Args:
        amount: Non-negative integer or decimal string.
        decimals: Implied decimal places of the token.

    Returns:
        ``amount * 10**decimals`` as an exact integer.

    Raises:
        MalformedNumberError: If the string does not match the number grammar or carries
            more fractional digits than ``decimals`` can represent.
    """
    if decimals < 0:
        raise ValueError("decimals must be >= 0")
    whole, fraction = _split_decimal(amount)
    fraction = fraction.rstrip("0")
    if len(fraction) > decimals:
        raise MalformedNumberError(f"'{amount}' has more than {decimals} fractional digits")
    return int(whole) * 10**decimals + int(fraction.ljust(decimals, "0") or "0")


def from_base_units(value: int, decimals: int) -> str:
    """Formats base units as a human amount, trimming trailing fractional zeros."""
    if value < 0:
        raise MalformedNumberError("base unit amounts cannot be negative")
    if decimals == 0:
        return str(value)
    whole, fraction = divmod(value, 10**decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{fraction_text}" if fraction_text else str(whole)


def percent_of_supply_to_base_units(percent, total_supply_base_units: int) -> int:
    """
    Returns ``percent``% of a supply given in base units, truncated toward zero.

    Integer arithmetic only: ``"2.5"`` becomes 25 at scale 10, and the result is
    ``supply * 25 // (100 * 10)``.
    """
    if total_supply_base_units < 0:
        raise MalformedNumberError("total supply cannot be negative")
    whole, fraction = _split_decimal(percent)
    scale = 10 ** len(fraction)
    scaled_percent = int(whole + fraction)
    return total_supply_base_units * scaled_percent // (100 * scale)


def resolve_launch_timestamp(launch_date_time: Optional[str], start_time: int = 0) -> Optional[int]:
    """
    Epoch seconds for a scheduled launch.

    ``launch_date_time`` (ISO-8601; naive values are read as UTC) wins over a stored
    ``start_time``. Returns None when neither gives a usable time.
    """
    if launch_date_time:
        try:
            moment = datetime.fromisoformat(str(launch_date_time).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return int(moment.timestamp())
    start = safe_parse_int(start_time)
    if start is not None and start > 0:
        return start
    return None
