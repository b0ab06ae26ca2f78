# Overview: Receipt code generation, formatting and lookup.

"""
Receipt Codes

A receipt code is a human-shareable validation token attached to each sale
when it is created: an upper-case base-36 millisecond timestamp, a dash and
four random base-36 characters (e.g. "LQ3K9Z0A-7F2X"). It is collision
resistant for a single store's volume but not unique by construction; it is
never used as a primary key.
"""

from __future__ import annotations

import secrets
import string
import time
from typing import Iterable

from ..models import Sale

_ALPHABET = string.digits + string.ascii_uppercase
SUFFIX_LENGTH = 4


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_receipt_code(now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"{_to_base36(now_ms)}-{suffix}"


def format_receipt_code(code: str | None) -> str:
    """Display form: dashes become spaces; missing codes read "N/A"."""
    if not code:
        return "N/A"
    return code.replace("-", " ")


def normalize_receipt_code(code: str) -> str:
    """Accept codes typed in display form or lower case."""
    return "-".join((code or "").strip().upper().split())


def validate_receipt_code(code: str, sales: Iterable[Sale]) -> bool:
    wanted = normalize_receipt_code(code)
    return any(sale.receipt_code == wanted for sale in sales)
