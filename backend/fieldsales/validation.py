from __future__ import annotations
from datetime import date, datetime
from fieldsales.time_utils import parse_iso_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Largest quantity a single pick or stock level may carry
MAX_QUANTITY = 1_000_000


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - aliases: client-side field names accepted in place of column keys
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    aliases: dict[str, str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_int(value: Any, field: str) -> int:
    """
    Strict integer parsing for request values.

    Accepts ints and plain digit strings. Rejects bools, floats,
    decimals and scientific notation ("1e3").
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_quantity(value: Any, field: str = "quantity", *, minimum: int = 1) -> int:
    """Parse a unit count and enforce the [minimum, MAX_QUANTITY] range."""
    if value is None:
        raise ValidationError(f"{field} is required")
    qty = parse_int(value, field)
    if qty < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return qty


def parse_bool(value: Any) -> bool:
    """Lenient boolean parsing for form-style flags ("true", "1", True)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return parse_int(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        return parse_bool(value)

    # Dates (accept YYYY-MM-DD or the date part of an ISO datetime)
    if isinstance(coltype, Date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                parsed = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return parsed
        raise ValidationError(f"{col.key} must be a date")

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

    Keys outside the allowlist are ignored rather than rejected, so clients
    can send back a full record they received without tripping on
    server-owned fields such as owner_admin_id (which is never writable).

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    aliases = policy.aliases or {}
    normalized = {}
    for key, raw in payload.items():
        normalized[aliases.get(key, key)] = raw

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(
            f for f in required
            if normalized.get(f) is None or (isinstance(normalized.get(f), str) and not normalized[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in normalized.items():
        if k not in policy.writable_fields or k not in cols:
            continue
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

    if "email" in patch and patch["email"]:
        patch["email"] = normalize_email(patch["email"])
        if "@" not in patch["email"]:
            raise ValidationError("email must be a valid email address")

    return patch


def normalize_email(value: Any) -> str:
    return str(value or "").strip().lower()


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")

    if "quantity" in patch:
        qty = patch["quantity"]
        if qty is None or qty < 0:
            raise ValidationError("Quantity must be a number greater than or equal to 0")
        if qty > MAX_QUANTITY:
            raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")
