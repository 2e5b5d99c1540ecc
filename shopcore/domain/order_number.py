# shopcore/domain/order_number.py
import re
from typing import NamedTuple

_PATTERN = re.compile(r"^([A-Z][A-Z0-9]*)-(\d{4})-(\d+)$")


class OrderNumber(NamedTuple):
    prefix: str
    year: int
    sequence: int


def format_order_number(prefix: str, year: int, sequence: int, width: int = 4) -> str:
    # zfill nie obcina, 10000 -> "10000"
    return f"{prefix}-{year}-{str(sequence).zfill(width)}"


def parse_order_number(value: str) -> OrderNumber | None:
    match = _PATTERN.match(value.strip().upper())
    if not match:
        return None
    prefix, year, sequence = match.groups()
    return OrderNumber(prefix, int(year), int(sequence))
