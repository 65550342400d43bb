from __future__ import annotations
from datetime import date, datetime
from posapp.time_utils import parse_iso_date

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import BigInteger, Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ServiceError
from .money import MAX_AMOUNT_CENTS, MoneyFormatError, to_cents


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Largest value a 32-bit INTEGER column holds
MAX_INT = 2**31 - 1


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""
    status_code = 400


class ConflictError(ServiceError, ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""
    status_code = 409


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


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        result = _coerce_int(col.key, value)
        if not isinstance(coltype, BigInteger) and abs(result) > MAX_INT:
            raise ValidationError(f"{col.key} must be <= {MAX_INT}")
        return result

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
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

    Money fields are not model columns (they are stored as *_cents); callers
    pop them with parse_money() before calling this.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def parse_money(
    payload: dict,
    key: str,
    *,
    required: bool = True,
    default: int | None = None,
    allow_zero: bool = True,
) -> int | None:
    """
    Pop a two-decimal amount from payload and return it as cents.

    Negative amounts are always rejected; allow_zero=False makes the amount
    strictly positive.
    """
    if key not in payload or payload.get(key) is None:
        payload.pop(key, None)
        if required:
            raise ValidationError(f"{key} is required")
        return default

    raw = payload.pop(key)
    if isinstance(raw, bool):
        raise ValidationError(f"{key} must be a number")
    try:
        cents = to_cents(raw)
    except MoneyFormatError as e:
        raise ValidationError(f"{key}: {e}")

    if cents < 0:
        raise ValidationError(f"{key} must be >= 0")
    if not allow_zero and cents == 0:
        raise ValidationError(f"{key} must be > 0")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{key} exceeds the maximum amount")
    return cents


def parse_int(
    value: Any,
    key: str,
    *,
    minimum: int | None = None,
    maximum: int = MAX_INT,
) -> int:
    if value is None:
        raise ValidationError(f"{key} is required")
    result = _coerce_int(key, value)
    if minimum is not None and result < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    if result > maximum or result < -maximum:
        raise ValidationError(f"{key} is out of range (limit {maximum})")
    return result


def parse_optional_int(value: Any, key: str) -> int | None:
    if value is None or value == "":
        return None
    return parse_int(value, key)


def parse_choice(value: Any, key: str, choices) -> str:
    if not isinstance(value, str) or value not in choices:
        raise ValidationError(f"{key} must be one of: {', '.join(choices)}")
    return value


def parse_date(value: Any, key: str) -> date:
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a YYYY-MM-DD date")
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{key} must be a YYYY-MM-DD date")
    if parsed is None:
        raise ValidationError(f"{key} is required")
    return parsed


def parse_bool(value: Any, key: str, *, default: bool | None = None) -> bool:
    if value is None:
        if default is None:
            raise ValidationError(f"{key} is required")
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.lower() in ("false", "0", "no"):
        return False
    raise ValidationError(f"{key} must be a boolean")


def validate_email(value: str | None, key: str = "email") -> str | None:
    if value is None:
        return None
    if not _EMAIL_RE.match(value):
        raise ValidationError(f"{key} must be a valid email address")
    return value
