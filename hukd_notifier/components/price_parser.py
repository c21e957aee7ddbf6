"""Price parsing for free-form deal price strings."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

# Currency symbols, thousands separators and whitespace are ignored
_STRIP_PATTERN = re.compile(r"[£$€\s,]")
# Leading decimal number, mirroring how feed prices like "12.50ish" are read
_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)")


def parse_price(text: Optional[str]) -> Optional[int]:
    """
    Parse a price string into integer pence.

    "£1,234.56" -> 123456, "£10.999" -> 1100 (round half up),
    "free" -> None, None -> None.
    """
    if not text:
        return None

    cleaned = _STRIP_PATTERN.sub("", text)
    match = _NUMBER_PATTERN.match(cleaned)
    if not match:
        return None

    try:
        value = Decimal(match.group(0))
    except InvalidOperation:
        return None

    pence = (value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(pence)


def format_pence(pence: int) -> str:
    """Format pence as a pound amount, e.g. 5000 -> "£50.00"."""
    return f"£{pence / 100:.2f}"
