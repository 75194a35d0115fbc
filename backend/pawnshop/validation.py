from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidInput


# Maximum loan/auction amount: 99,999,999.99 (9,999,999,999 cents)
MAX_AMOUNT_CENTS = 9_999_999_999

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) / 100


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value.strip())
        raise InvalidInput(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise InvalidInput(f"{col.key} must be true or false")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise InvalidInput(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise InvalidInput(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise InvalidInput(f"Field not allowed: {k}")
        if k not in cols:
            raise InvalidInput(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise InvalidInput(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise InvalidInput(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise InvalidInput(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def parse_decimal(value: Any, field: str) -> Decimal:
    """
    Parse a JSON number or numeric string into a finite Decimal.

    Floats go through str() so 10.5 becomes Decimal("10.5"), not its
    binary expansion. Booleans are rejected even though they are ints.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidInput(f"{field} must be a finite number")
    if isinstance(value, (int, float, Decimal)):
        result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidInput(f"{field} must be a number")
    else:
        raise InvalidInput(f"{field} must be a number")
    if not result.is_finite():
        raise InvalidInput(f"{field} must be a finite number")
    return result


def parse_positive_number(value: Any, field: str) -> Decimal:
    result = parse_decimal(value, field)
    if result <= 0:
        raise InvalidInput(f"{field} must be greater than zero")
    return result


def check_amount_cents(cents: int, field: str) -> int:
    if cents > MAX_AMOUNT_CENTS:
        raise InvalidInput(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    return cents


def to_cents(value: Any, field: str) -> int:
    """Currency units -> integer cents (half-up), rejecting negatives."""
    amount = parse_decimal(value, field)
    if amount < 0:
        raise InvalidInput(f"{field} must be >= 0")
    # Checked before quantize: huge values exceed the Decimal context precision
    if amount > MAX_AMOUNT:
        raise InvalidInput(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return check_amount_cents(cents, field)


def cents_to_decimal(cents: int | None) -> Decimal:
    return (Decimal(cents or 0) / 100).quantize(CENT)


def cents_to_float(cents: int | None) -> float:
    return float(cents_to_decimal(cents))


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    if value is None or not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise InvalidInput(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise InvalidInput(f"{field} is required")
    if len(text) > max_length:
        raise InvalidInput(f"{field} exceeds max length {max_length}")
    return text


def optional_text(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return require_text(value, field, max_length=max_length)
