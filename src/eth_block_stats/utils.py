"""
Utility functions for addresses, units and time ranges.
"""

from typing import Optional, Tuple
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_DOWN
import re
import logging

logger = logging.getLogger(__name__)


ADDRESS_PATTERN = re.compile(r'^(0x)?[0-9a-fA-F]{40}$')


def is_valid_ethereum_address(address: str) -> bool:
    """40 hex digits, with or without the 0x prefix. Checksum casing is not verified."""
    return isinstance(address, str) and ADDRESS_PATTERN.fullmatch(address) is not None


def normalize_address(address: Optional[str]) -> str:
    """Normalize an Ethereum address to lowercase with 0x prefix."""
    if not address:
        return ""

    address = address.lower()
    if not address.startswith('0x'):
        address = '0x' + address

    return address


def address_from_word(word: bytes) -> str:
    """Address from a 32-byte ABI word (last 20 bytes)."""
    return '0x' + word[-20:].hex()


def wei_to_ether(wei: int) -> Decimal:
    """Convert Wei to Ether."""
    return Decimal(wei) / Decimal('1000000000000000000')


def format_token_amount(amount: int, decimals: int) -> Decimal:
    """Scale a raw token amount by the token's decimals."""
    if decimals == 0:
        return Decimal(amount)

    divisor = Decimal(10) ** decimals
    return (Decimal(amount) / divisor).quantize(Decimal('0.000001'), rounding=ROUND_DOWN)


def format_number(number: Decimal, decimals: int = 2) -> str:
    """Format a number with thousands separators."""
    return f"{number:,.{decimals}f}"


def format_percent(part: int, total: int) -> str:
    if total == 0:
        return "0.00%"
    return f"{part / total * 100:.2f}%"


def make_time(day: str, hour: int = 0, minute: int = 0) -> datetime:
    """UTC datetime from 'yyyy-mm-dd', hour and minute."""
    try:
        date = datetime.strptime(day, "%Y-%m-%d")
    except ValueError:
        raise ValueError(f"Not a valid date: {day}")
    return date.replace(hour=hour, minute=minute, tzinfo=timezone.utc)


def parse_relative_date(value: str, now: Optional[datetime] = None) -> datetime:
    """
    Start of the UTC day that lies one day, month or year back.

    Accepts '-1d', '-1m' and '-1y'.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    if value.endswith('d'):
        start = now - timedelta(days=1)
    elif value.endswith('m'):
        start = add_months(now, -1)
    elif value.endswith('y'):
        start = add_months(now, -12)
    else:
        raise ValueError(f"Not a valid date: {value}")

    return start.replace(hour=0, minute=0, second=0, microsecond=0)


def add_months(dt: datetime, months: int) -> datetime:
    """Shift by whole months; a day past the end of the target month rolls over (Mar 31 - 1 month = Mar 3)."""
    year, month_index = divmod(dt.year * 12 + dt.month - 1 + months, 12)
    first_of_month = dt.replace(year=year, month=month_index + 1, day=1)
    return first_of_month + timedelta(days=dt.day - 1)


def parse_length(value: str) -> Tuple[int, int]:
    """
    Parse a range length into (num_blocks, timespan_sec).

    '10' is ten blocks, '4s', '5m', '1h', '1d' are timespans. Empty means one block.
    """
    if not value:
        return 1, 0

    multipliers = {'s': 1, 'm': 60, 'h': 60 * 60, 'd': 60 * 60 * 24}
    suffix = value[-1]
    try:
        if suffix in multipliers:
            return 0, int(value[:-1]) * multipliers[suffix]
        return int(value), 0
    except ValueError:
        raise ValueError(f"Not a valid length: {value}")
