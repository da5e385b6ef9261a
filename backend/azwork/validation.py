from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from azwork.time_utils import parse_iso_date, parse_iso_datetime

from typing import Any, Iterable

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Funding columns are DECIMAL(10,2): largest storable amount is 99,999,999.99
MAX_AMOUNT = Decimal("99999999.99")
AMOUNT_QUANTUM = Decimal("0.01")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValidationError):
    """409-level business rule conflict (e.g., editing a void allocation)."""


class NotFoundError(LookupError):
    """404-level missing or soft-deleted record."""


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_integer(col, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{col.key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{col.key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{col.key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{col.key} must be an integer, not a decimal")
    raise ValidationError(f"{col.key} must be an integer")


def _coerce_amount(col, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{col.key} must be a decimal amount")
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        # Blank amount inputs post as "" and mean zero
        if not value:
            return Decimal("0.00")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{col.key} must be a decimal amount")
    if not amount.is_finite():
        raise ValidationError(f"{col.key} must be a decimal amount")
    if amount != amount.quantize(AMOUNT_QUANTUM):
        raise ValidationError(f"{col.key} cannot have more than 2 decimal places")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{col.key} cannot exceed {MAX_AMOUNT:,}")
    return amount.quantize(AMOUNT_QUANTUM)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_integer(col, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            if not value.strip():
                return None
            try:
                return parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
        raise ValidationError(f"{col.key} must be a datetime")

    # Dates (form inputs post "YYYY-MM-DD"; blank means unset)
    if isinstance(coltype, Date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be a date (YYYY-MM-DD)")
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, Numeric):
        return _coerce_amount(col, value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def coerce_fields(
    *,
    model: DeclarativeMeta,
    payload: dict,
    fields: Iterable[str],
) -> dict:
    """
    Coerce the given payload keys against SQLAlchemy column metadata.

    Only keys listed in `fields` that are present in `payload` are returned;
    callers decide beforehand which fields an actor may write, so anything
    else is ignored here rather than rejected.

    - type coercion (integer, boolean, date, datetime, decimal, string)
    - nullable check (blank dates become None)
    - String(n) max length check
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload")

    cols = _columns_by_key(model)
    patch: dict = {}

    for k in fields:
        if k not in payload:
            continue
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")
        col = cols[k]
        val = _coerce_value(col, payload[k])

        # NULL handling
        if val is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be empty")
            patch[k] = None
            continue

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def parse_positive_int(value: Any, name: str) -> int | None:
    """
    Parse an optional positive integer query/form value.

    None / "" -> None; anything else must be an integer >= 1.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer")
    if isinstance(value, float) or parsed < 1:
        raise ValidationError(f"{name} must be a positive integer")
    return parsed
