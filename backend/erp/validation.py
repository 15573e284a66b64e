from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from erp.number_utils import to_decimal_str
from erp.time_utils import parse_business_date, to_iso_date


# Upper bound for quantities and money amounts (fits Numeric(18, 4))
MAX_AMOUNT = Decimal("99999999999999")


class ValidationError(ValueError):
    """400-level input problem (rejected before any write)."""


class NotFoundError(LookupError):
    """404-level: a document, payment or master record id did not resolve."""


class ConflictError(ValueError):
    """
    409-level business rule conflict.

    When a soft-delete is blocked by a downstream document, the blocking
    document's identity is carried so the caller can resolve it manually.
    """

    def __init__(
        self,
        message: str,
        *,
        blocking_type: str | None = None,
        blocking_id: int | None = None,
        blocking_date: date | None = None,
    ):
        super().__init__(message)
        self.blocking_type = blocking_type
        self.blocking_id = blocking_id
        self.blocking_date = blocking_date

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        if self.blocking_type is not None:
            body["blocking_document"] = {
                "type": self.blocking_type,
                "id": self.blocking_id,
                "date": to_iso_date(self.blocking_date),
            }
        return body


@dataclass(frozen=True)
class Shortfall:
    item_id: int
    warehouse_id: int
    available: Decimal
    requested: Decimal

    @property
    def shortfall(self) -> Decimal:
        return self.requested - self.available

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "warehouse_id": self.warehouse_id,
            "available": to_decimal_str(self.available),
            "requested": to_decimal_str(self.requested),
            "shortfall": to_decimal_str(self.shortfall),
        }


class InsufficientStockError(ValueError):
    """Outbound document would drive one or more item balances negative."""

    def __init__(self, shortfalls: list[Shortfall]):
        self.shortfalls = list(shortfalls)
        details = "; ".join(
            f"Item {s.item_id}: Available {s.available:.2f}, Requested {s.requested:.2f} (Short by {s.shortfall:.2f})"
            for s in self.shortfalls
        )
        super().__init__(f"Insufficient stock for {len(self.shortfalls)} item(s): {details}")

    def to_dict(self) -> dict:
        return {
            "error": f"Insufficient stock for {len(self.shortfalls)} item(s)",
            "shortfalls": [s.to_dict() for s in self.shortfalls],
        }


class PersistenceError(RuntimeError):
    """Generic persistence failure (wraps store constraint violations)."""


def persistence_error_from(exc: IntegrityError) -> PersistenceError:
    """Map a driver-level IntegrityError to a caller-facing PersistenceError."""
    text = str(getattr(exc, "orig", exc)).lower()
    if "unique" in text or "duplicate" in text:
        return PersistenceError("A record with this information already exists")
    if "foreign key" in text:
        return PersistenceError("Cannot delete/update because it is referenced by other records.")
    return PersistenceError("Database constraint violated")


# =============================================================================
# FIELD COERCION
# =============================================================================

def require_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} is required and must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer")


def optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return require_int(value, field)


def to_decimal(
    value: Any,
    field: str,
    *,
    positive: bool = False,
    non_negative: bool = False,
    default: Decimal | None = None,
) -> Decimal:
    """
    Coerce numbers and numeric strings to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large")
    if positive and result <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    if non_negative and result < 0:
        raise ValidationError(f"{field} cannot be negative")
    return result


def require_date(value: Any, field: str) -> date:
    try:
        parsed = parse_business_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date (YYYY-MM-DD)")
    if parsed is None:
        raise ValidationError(f"{field} is required")
    return parsed


def optional_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    return require_date(value, field)


def require_lines(lines: Any) -> list[dict]:
    if not lines or not isinstance(lines, (list, tuple)):
        raise ValidationError("No line items provided")
    for idx, line in enumerate(lines):
        if not isinstance(line, dict):
            raise ValidationError(f"line {idx + 1} must be an object")
    return list(lines)


# =============================================================================
# HTTP MAPPING
# =============================================================================

def register_error_handlers(app) -> None:
    """Translate the service-layer error taxonomy into JSON responses."""

    @app.errorhandler(ValidationError)
    def _validation(exc):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(InsufficientStockError)
    def _insufficient(exc):
        return jsonify(exc.to_dict()), 400

    @app.errorhandler(NotFoundError)
    def _not_found(exc):
        return jsonify({"error": str(exc)}), 404

    @app.errorhandler(ConflictError)
    def _conflict(exc):
        return jsonify(exc.to_dict()), 409

    @app.errorhandler(PersistenceError)
    def _persistence(exc):
        current_app.logger.error("Persistence failure: %s", exc)
        return jsonify({"error": str(exc)}), 500

    @app.errorhandler(IntegrityError)
    def _integrity(exc):
        current_app.logger.exception("Unhandled integrity error")
        return jsonify({"error": str(persistence_error_from(exc))}), 500

    @app.errorhandler(Exception)
    def _unexpected(exc):
        if isinstance(exc, HTTPException):
            return exc
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500
