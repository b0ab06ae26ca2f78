"""
Input validation for API and CLI payloads.

Each writable record type declares a ModelValidationPolicy: the fields a
client may set and how to coerce them. Anything outside the policy is
refused, so ids, store bindings the caller may not choose, and timestamps
never arrive through a payload. The same coercers decode numbers and
timestamps read back from storage (see models.records).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from storedesk.time_utils import parse_iso_datetime


# Largest accepted price/cost
MAX_AMOUNT = 9_999_999.99


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate owner email)."""


class NotFoundError(LookupError):
    """404-level missing record (scoped reads report foreign records as missing)."""


TEXT = "text"
AMOUNT = "amount"
INTEGER = "integer"
BOOLEAN = "boolean"
DATETIME = "datetime"

_TRUTHY = {"1", "true", "yes", "on", "sim"}


@dataclass(frozen=True)
class Field:
    kind: str = TEXT
    nullable: bool = True
    max_length: int | None = None


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Allowed fields with their kinds, and the ones a create must supply."""
    fields: dict[str, Field]
    required_on_create: frozenset[str] = frozenset()


def coerce_integer(key: str, value: Any) -> int:
    """Whole numbers only: 3, 3.0 and "3" pass; 3.5, "3.5", "1e3" and True do not."""
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{key} must be a whole number")
        return int(value)
    if isinstance(value, str):
        digits = value.strip()
        if digits.startswith(("-", "+")):
            sign, digits = digits[0], digits[1:]
        else:
            sign = ""
        if not digits.isdigit():
            raise ValidationError(f"{key} must be a whole number")
        return int(sign + digits)
    raise ValidationError(f"{key} must be an integer")


def coerce_amount(key: str, value: Any) -> float:
    """Money and cost values; strings may use a decimal comma ("449,90")."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, str):
        try:
            value = float(value.strip().replace(",", "."))
        except ValueError:
            raise ValidationError(f"{key} must be a number") from None
    amount = float(value)
    if not math.isfinite(amount):
        raise ValidationError(f"{key} must be a finite number")
    return amount


def coerce_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed
    raise ValidationError(f"{key} must be an ISO-8601 datetime")


def _coerce_boolean(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _coerce_text(key: str, field: Field, value: Any) -> str:
    text = str(value).strip()
    if not field.nullable and not text:
        raise ValidationError(f"{key} is required")
    if field.max_length and len(text) > field.max_length:
        raise ValidationError(f"{key} must be at most {field.max_length} characters")
    return text


_COERCERS = {
    INTEGER: lambda key, field, value: coerce_integer(key, value),
    AMOUNT: lambda key, field, value: coerce_amount(key, value),
    BOOLEAN: lambda key, field, value: _coerce_boolean(value),
    DATETIME: lambda key, field, value: coerce_datetime(key, value),
    TEXT: _coerce_text,
}


def validate_payload(
    *,
    payload: dict | None,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a client payload against a policy and return the cleaned values.

    partial=False is a create: every required field must be present and
    non-blank. partial=True is an edit: only the given keys are checked.
    Explicit nulls are kept (they clear optional fields).
    """
    payload = {} if payload is None else payload
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = sorted(set(payload) - set(policy.fields))
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}")

    if not partial:
        missing = sorted(name for name in policy.required_on_create if payload.get(name) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cleaned: dict = {}
    for key, raw in payload.items():
        field = policy.fields[key]
        if raw is None:
            if not field.nullable:
                raise ValidationError(f"{key} cannot be null")
            cleaned[key] = None
        else:
            cleaned[key] = _COERCERS[field.kind](key, field, raw)
    return cleaned


def require_non_negative(patch: dict, *keys: str) -> None:
    """Reject negative (or absurdly large) amounts and counts in a cleaned patch."""
    for key in keys:
        value = patch.get(key)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{key} cannot be negative")
        if isinstance(value, float) and value > MAX_AMOUNT:
            raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT:,.2f}")
