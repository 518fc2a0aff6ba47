from __future__ import annotations

import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

TICKET_CODE_PREFIX = "TKT-"
TICKET_CODE_LENGTH = 9
# No I, O, 0, 1: they are easy to misread on a printed ticket
TICKET_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# Accepts legacy / externally issued codes, so it is wider than the alphabet above
_TICKET_CODE_RE = re.compile(r"^TKT-[A-Z0-9]{9}$")
_GENERATED_CODE_RE = re.compile(rf"^TKT-[{TICKET_CODE_ALPHABET}]{{9}}$")

BARCODE_PREFIX = "200"
METADATA_VERSION = "1.0"
METADATA_SOURCE = "parlomo-ticketing"


class CodeSpaceExhausted(Exception):
    pass


class TicketStatus(str, Enum):
    VALID = "valid"
    USED = "used"
    CANCELLED = "cancelled"
    TRANSFERRED = "transferred"
    REFUNDED = "refunded"


TICKET_STATUS_DISPLAY = {
    TicketStatus.VALID: {
        "label": "Valid",
        "color": "green",
        "icon": "check-circle",
        "description": "This ticket is valid and ready to use",
    },
    TicketStatus.USED: {
        "label": "Used",
        "color": "gray",
        "icon": "check",
        "description": "This ticket has been scanned and used",
    },
    TicketStatus.CANCELLED: {
        "label": "Cancelled",
        "color": "red",
        "icon": "x-circle",
        "description": "This ticket has been cancelled",
    },
    TicketStatus.TRANSFERRED: {
        "label": "Transferred",
        "color": "blue",
        "icon": "arrow-right",
        "description": "This ticket has been transferred to another person",
    },
    TicketStatus.REFUNDED: {
        "label": "Refunded",
        "color": "orange",
        "icon": "rotate-ccw",
        "description": "This ticket has been refunded",
    },
}

_UNKNOWN_STATUS_DISPLAY = {
    "label": "Unknown",
    "color": "gray",
    "icon": "help-circle",
    "description": "Unknown ticket status",
}


@dataclass(frozen=True)
class ParsedTicketCode:
    prefix: str
    identifier: str
    full_code: str


@dataclass
class TicketInstance:
    code: str
    uuid: str
    order_id: str | int
    order_item_id: str | int | None
    ticket_type_id: str | int
    event_id: str | int
    attendee_name: str
    attendee_email: str
    seat_id: str | int | None = None
    status: TicketStatus = TicketStatus.VALID
    transfer_history: list[dict] | None = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class TicketTypeRules:
    transfer_allowed: bool = False
    refundable: bool = False


@dataclass(frozen=True)
class TransferEligibility:
    can_transfer: bool
    reason: str | None = None


@dataclass(frozen=True)
class RefundEligibility:
    can_refund: bool
    reason: str | None = None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# -------------------------
# Codes
# -------------------------

def generate_ticket_code() -> str:
    return TICKET_CODE_PREFIX + "".join(
        secrets.choice(TICKET_CODE_ALPHABET) for _ in range(TICKET_CODE_LENGTH)
    )


def generate_ticket_codes(count: int, *, max_attempts: int | None = None) -> list[str]:
    """
    Return `count` distinct ticket codes.

    Sampling stops after `max_attempts` draws (default count * 10 + 100) and
    raises CodeSpaceExhausted instead of looping forever.
    """
    if max_attempts is None:
        max_attempts = count * 10 + 100

    codes: dict[str, None] = {}  # insertion-ordered set
    attempts = 0
    while len(codes) < count:
        if attempts >= max_attempts:
            raise CodeSpaceExhausted(
                f"Generated {len(codes)} of {count} unique ticket codes in {attempts} attempts."
            )
        codes[generate_ticket_code()] = None
        attempts += 1

    return list(codes)


def is_valid_ticket_code(code) -> bool:
    if not code or not isinstance(code, str):
        return False
    return _TICKET_CODE_RE.match(code) is not None


def is_generated_ticket_code(code) -> bool:
    if not code or not isinstance(code, str):
        return False
    return _GENERATED_CODE_RE.match(code) is not None


def parse_ticket_code(code) -> ParsedTicketCode | None:
    if not is_valid_ticket_code(code):
        return None
    prefix, identifier = code.split("-", 1)
    return ParsedTicketCode(prefix=prefix, identifier=identifier, full_code=code)


def generate_ticket_number(event_id, sequence: int) -> str:
    return f"E{event_id}-{sequence:06d}"


def generate_barcode_number(ticket_id: int) -> str:
    """13-digit EAN-13 number: "200" + ticket id padded to 9 digits + check digit."""
    base = f"{BARCODE_PREFIX}{int(ticket_id):09d}"

    total = 0
    for i, ch in enumerate(base):
        digit = int(ch)
        total += digit if i % 2 == 0 else digit * 3
    check_digit = (10 - total % 10) % 10

    return f"{base}{check_digit}"


# -------------------------
# Ticket records
# -------------------------

def generate_ticket_metadata(**extra) -> dict:
    return {
        "generated_at": _now_iso(),
        "version": METADATA_VERSION,
        "source": METADATA_SOURCE,
        **extra,
    }


def generate_ticket_instance(
    *,
    order_id,
    order_item_id,
    ticket_type_id,
    event_id,
    attendee_name: str,
    attendee_email: str,
    seat_id=None,
    code: str | None = None,
) -> TicketInstance:
    return TicketInstance(
        code=code or generate_ticket_code(),
        uuid=str(uuid4()),
        order_id=order_id,
        order_item_id=order_item_id,
        ticket_type_id=ticket_type_id,
        event_id=event_id,
        seat_id=seat_id,
        attendee_name=attendee_name,
        attendee_email=attendee_email,
        status=TicketStatus.VALID,
        transfer_history=None,
        metadata={"generated_at": _now_iso(), "version": METADATA_VERSION},
    )


def generate_ticket_instances(params: dict, quantity: int) -> list[TicketInstance]:
    codes = generate_ticket_codes(quantity)
    return [generate_ticket_instance(**params, code=code) for code in codes]


def create_transfer_record(*, from_email: str, to_email: str, transferred_by=None) -> dict:
    return {
        "id": str(uuid4()),
        "from_email": from_email,
        "to_email": to_email,
        "transferred_by": transferred_by,
        "transferred_at": _now_iso(),
        "status": "completed",
    }


# -------------------------
# Status
# -------------------------

def is_valid_ticket_status(status) -> bool:
    try:
        TicketStatus(status)
    except ValueError:
        return False
    return True


def get_ticket_status_display(status) -> dict:
    try:
        return dict(TICKET_STATUS_DISPLAY[TicketStatus(status)])
    except ValueError:
        return dict(_UNKNOWN_STATUS_DISPLAY)


def _status_value(status) -> str:
    return status.value if isinstance(status, TicketStatus) else str(status)


def can_transfer_ticket(ticket, ticket_type: TicketTypeRules) -> TransferEligibility:
    if not ticket_type.transfer_allowed:
        return TransferEligibility(False, "This ticket type does not allow transfers")

    status = _status_value(ticket.status)
    if status != TicketStatus.VALID.value:
        return TransferEligibility(False, f"Cannot transfer {status} tickets")

    return TransferEligibility(True)


def can_refund_ticket(
    ticket,
    ticket_type: TicketTypeRules,
    event_date: datetime | None,
    *,
    now: datetime | None = None,
) -> RefundEligibility:
    if not ticket_type.refundable:
        return RefundEligibility(False, "This ticket type is non-refundable")

    status = _status_value(ticket.status)
    if status != TicketStatus.VALID.value:
        return RefundEligibility(False, f"Cannot refund {status} tickets")

    if event_date is not None:
        current = now or datetime.now(timezone.utc)
        if event_date.tzinfo is None:
            event_date = event_date.replace(tzinfo=timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        if event_date < current:
            return RefundEligibility(False, "Cannot refund tickets for past events")

    return RefundEligibility(True)
