"""
Structured Extraction Validator

The single point where untyped model output becomes a TicketRecord.

Strict on ticket identity (store, total), lenient on items: missing item
fields take defaults, but an item without a name rejects the ticket.
Pure function, no I/O.
"""
import json
from typing import Any, Optional

from pydantic import ValidationError

from packages.common.errors import TicketValidationError, ValidationErrorKind
from packages.common.schemas.ticket import TicketRecord, coerce_number

STORE_KEYS = ("tienda", "store")
TOTAL_KEYS = ("total_ticket", "total_amount", "total")


def _first_present(raw: dict, keys) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def validate_ticket(raw: Any, ticket_id: Optional[str] = None) -> TicketRecord:
    """
    Validate raw model output into a TicketRecord.

    Args:
        raw: Parsed JSON from the model
        ticket_id: Caller-generated id; overrides any id echoed by the model

    Returns:
        Validated TicketRecord

    Raises:
        TicketValidationError: kind tells which rule failed
    """
    if not isinstance(raw, dict):
        raise TicketValidationError(ValidationErrorKind.MALFORMED,
                                    f"expected a JSON object, got {type(raw).__name__}")

    store = _first_present(raw, STORE_KEYS)
    if not isinstance(store, str) or not store.strip():
        raise TicketValidationError(ValidationErrorKind.MISSING_STORE, "store name is required")

    total = _first_present(raw, TOTAL_KEYS)
    try:
        total_value = coerce_number(total)
    except ValueError as e:
        raise TicketValidationError(ValidationErrorKind.INVALID_TOTAL, str(e)) from e
    if total_value < 0:
        raise TicketValidationError(ValidationErrorKind.INVALID_TOTAL,
                                    f"total must be non-negative, got {total_value}")

    if not isinstance(raw.get("items"), list):
        raise TicketValidationError(ValidationErrorKind.MALFORMED, "items must be an array")

    data = dict(raw)
    if ticket_id is not None:
        data["id"] = ticket_id

    try:
        return TicketRecord.model_validate(data)
    except ValidationError as e:
        raise _translate(e) from e


def parse_ticket_json(text: str, ticket_id: Optional[str] = None) -> TicketRecord:
    """Parse raw JSON text from the model and validate it"""
    try:
        raw = json.loads(text or "")
    except (json.JSONDecodeError, TypeError) as e:
        raise TicketValidationError(ValidationErrorKind.MALFORMED_JSON, str(e)) from e
    return validate_ticket(raw, ticket_id=ticket_id)


def _translate(error: ValidationError) -> TicketValidationError:
    """Map the first pydantic error onto a validation kind"""
    first = error.errors()[0]
    loc = first.get("loc") or ()
    field = loc[0] if loc else ""
    message = f"{'.'.join(str(p) for p in loc)}: {first.get('msg', 'invalid')}"

    if field == "items":
        return TicketValidationError(ValidationErrorKind.INVALID_ITEM, message)
    if field in STORE_KEYS:
        return TicketValidationError(ValidationErrorKind.MISSING_STORE, message)
    if field in TOTAL_KEYS:
        return TicketValidationError(ValidationErrorKind.INVALID_TOTAL, message)
    return TicketValidationError(ValidationErrorKind.MALFORMED, message)
