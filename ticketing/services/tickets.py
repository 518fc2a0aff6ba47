from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.security import QRSigner, QRTokenStatus
from ticketing.models.ticket import Ticket
from ticketing.services.ticket_codes import (
    TicketStatus,
    TicketTypeRules,
    can_refund_ticket,
    can_transfer_ticket,
    create_transfer_record,
    generate_barcode_number,
    generate_ticket_codes,
    generate_ticket_instance,
    is_valid_ticket_code,
)

logger = logging.getLogger(__name__)

# status -> (error, message) shown by the scanner
_REJECTED_SCANS = {
    TicketStatus.CANCELLED.value: ("Ticket cancelled", "This ticket has been cancelled"),
    TicketStatus.USED.value: ("Ticket already used", "This ticket has already been scanned"),
    TicketStatus.TRANSFERRED.value: (
        "Ticket transferred",
        "This ticket has been transferred to another person",
    ),
    TicketStatus.REFUNDED.value: ("Ticket refunded", "This ticket has been refunded"),
}


class TicketError(Exception):
    pass


class TicketNotFound(TicketError):
    pass


@dataclass
class ScanResult:
    valid: bool
    message: str
    error: str | None = None
    ticket: Ticket | None = None


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _id(value) -> str | None:
    return None if value is None else str(value)


async def get_ticket_by_code(db: AsyncSession, code: str) -> Ticket:
    res = await db.execute(select(Ticket).where(Ticket.code == code))
    ticket = res.scalar_one_or_none()
    if ticket is None:
        raise TicketNotFound(f"Ticket {code} not found.")
    return ticket


async def list_order_tickets(db: AsyncSession, order_id) -> list[Ticket]:
    res = await db.execute(
        select(Ticket).where(Ticket.order_id == str(order_id)).order_by(Ticket.id.asc())
    )
    return list(res.scalars().all())


async def _unused_codes(db: AsyncSession, count: int) -> list[str]:
    codes = generate_ticket_codes(count)

    # Avoid an IntegrityError at commit: replace codes already stored
    for _attempt in range(20):
        res = await db.execute(select(Ticket.code).where(Ticket.code.in_(codes)))
        taken = set(res.scalars().all())
        if not taken:
            return codes
        fresh = iter(generate_ticket_codes(len(taken)))
        codes = [next(fresh) if c in taken else c for c in codes]

    raise TicketError("Failed to generate unique ticket codes.")


def _new_ticket(instance, **extra) -> Ticket:
    # every column set explicitly so nothing lazy-loads after flush
    return Ticket(
        code=instance.code,
        uuid=instance.uuid,
        order_id=instance.order_id,
        order_item_id=instance.order_item_id,
        ticket_type_id=instance.ticket_type_id,
        event_id=instance.event_id,
        seat_id=instance.seat_id,
        attendee_name=instance.attendee_name,
        attendee_email=instance.attendee_email,
        status=instance.status.value,
        transfer_history=extra.pop("transfer_history", instance.transfer_history),
        meta=extra.pop("meta", instance.metadata),
        qr_code=None,
        barcode=None,
        used_at=None,
        used_by=None,
        **extra,
    )


def _attach_scan_codes(ticket: Ticket, signer: QRSigner) -> None:
    ticket.qr_code = signer.generate_qr_payload(
        ticket_id=ticket.id,
        ticket_code=ticket.code,
        event_id=ticket.event_id,
        ticket_type_id=ticket.ticket_type_id,
        order_id=ticket.order_id,
    )
    ticket.barcode = generate_barcode_number(ticket.id)


# -------------------------
# Issue
# -------------------------

async def issue_tickets(
    db: AsyncSession,
    *,
    signer: QRSigner,
    order_id,
    order_item_id,
    ticket_type_id,
    event_id,
    attendee_name: str,
    attendee_email: str,
    quantity: int = 1,
    seat_ids: Sequence | None = None,
) -> list[Ticket]:
    """
    Issue `quantity` tickets for one order item.

    Ids are assigned on flush, then each ticket gets its signed QR payload
    and EAN-13 barcode. Single commit.
    """
    if quantity < 1:
        raise TicketError("quantity must be >= 1.")
    if seat_ids is not None and len(seat_ids) != quantity:
        raise TicketError("seat_ids must match quantity.")

    codes = await _unused_codes(db, quantity)

    tickets: list[Ticket] = []
    for i, code in enumerate(codes):
        instance = generate_ticket_instance(
            order_id=_id(order_id),
            order_item_id=_id(order_item_id),
            ticket_type_id=_id(ticket_type_id),
            event_id=_id(event_id),
            attendee_name=attendee_name.strip(),
            attendee_email=attendee_email.strip().lower(),
            seat_id=_id(seat_ids[i]) if seat_ids is not None else None,
            code=code,
        )
        ticket = _new_ticket(instance)
        db.add(ticket)
        tickets.append(ticket)

    await db.flush()  # ensures ticket.id

    for ticket in tickets:
        _attach_scan_codes(ticket, signer)

    await db.commit()
    logger.info("Issued %d ticket(s) for order %s", len(tickets), order_id)
    return tickets


# -------------------------
# Scan
# -------------------------

async def scan_ticket(
    db: AsyncSession,
    *,
    signer: QRSigner,
    ticket_code: str | None = None,
    qr_payload: str | None = None,
    scanned_by=None,
    event_id=None,
) -> ScanResult:
    if not ticket_code and not qr_payload:
        raise TicketError("Ticket code or QR payload is required.")

    if qr_payload and not ticket_code:
        claims = signer.verify_qr_payload(qr_payload)
        if claims is None:
            if signer.qr_token_status(qr_payload) is QRTokenStatus.EXPIRED:
                return ScanResult(False, "This ticket's QR code has expired", error="QR code expired")
            return ScanResult(False, "This QR code could not be verified", error="Invalid QR code")
        ticket_code = claims.ticket_code

    if not is_valid_ticket_code(ticket_code):
        return ScanResult(False, "This ticket does not exist in our system", error="Ticket not found")

    try:
        ticket = await get_ticket_by_code(db, ticket_code)
    except TicketNotFound:
        return ScanResult(False, "This ticket does not exist in our system", error="Ticket not found")

    if event_id is not None and ticket.event_id != str(event_id):
        return ScanResult(False, "You can only scan tickets for your own events", error="Unauthorized")

    rejected = _REJECTED_SCANS.get(ticket.status)
    if rejected is not None:
        error, message = rejected
        return ScanResult(False, message, error=error, ticket=ticket)

    ticket.status = TicketStatus.USED.value
    ticket.used_at = _now_utc()
    ticket.used_by = _id(scanned_by)
    await db.commit()

    logger.info("Ticket %s scanned by %s", ticket.code, scanned_by)
    return ScanResult(True, "Ticket validated successfully", ticket=ticket)


# -------------------------
# Transfer / refund / cancel
# -------------------------

async def transfer_ticket(
    db: AsyncSession,
    *,
    signer: QRSigner,
    ticket_code: str,
    rules: TicketTypeRules,
    to_name: str,
    to_email: str,
    transferred_by=None,
) -> Ticket:
    """
    Move a valid ticket to a new holder.

    The old ticket becomes `transferred`; the new holder gets a fresh code and
    QR payload so the old printout no longer scans.
    """
    ticket = await get_ticket_by_code(db, ticket_code)

    eligibility = can_transfer_ticket(ticket, rules)
    if not eligibility.can_transfer:
        raise TicketError(eligibility.reason)

    record = create_transfer_record(
        from_email=ticket.attendee_email,
        to_email=to_email.strip().lower(),
        transferred_by=transferred_by,
    )
    history = list(ticket.transfer_history or []) + [record]

    ticket.status = TicketStatus.TRANSFERRED.value
    ticket.transfer_history = history

    (new_code,) = await _unused_codes(db, 1)
    instance = generate_ticket_instance(
        order_id=ticket.order_id,
        order_item_id=ticket.order_item_id,
        ticket_type_id=ticket.ticket_type_id,
        event_id=ticket.event_id,
        attendee_name=to_name.strip(),
        attendee_email=to_email.strip().lower(),
        seat_id=ticket.seat_id,
        code=new_code,
    )
    new_ticket = _new_ticket(
        instance,
        transfer_history=list(history),
        meta={**instance.metadata, "transferred_from": ticket.code},
    )
    db.add(new_ticket)
    await db.flush()
    _attach_scan_codes(new_ticket, signer)

    await db.commit()
    logger.info("Ticket %s transferred as %s", ticket.code, new_ticket.code)
    return new_ticket


async def refund_ticket(
    db: AsyncSession,
    *,
    ticket_code: str,
    rules: TicketTypeRules,
    event_date: datetime | None,
    now: datetime | None = None,
) -> Ticket:
    ticket = await get_ticket_by_code(db, ticket_code)

    eligibility = can_refund_ticket(ticket, rules, event_date, now=now)
    if not eligibility.can_refund:
        raise TicketError(eligibility.reason)

    ticket.status = TicketStatus.REFUNDED.value
    await db.commit()
    logger.info("Ticket %s refunded", ticket.code)
    return ticket


async def cancel_ticket(db: AsyncSession, *, ticket_code: str) -> Ticket:
    ticket = await get_ticket_by_code(db, ticket_code)

    if ticket.status != TicketStatus.VALID.value:
        raise TicketError(f"Cannot cancel {ticket.status} tickets")

    ticket.status = TicketStatus.CANCELLED.value
    await db.commit()
    logger.info("Ticket %s cancelled", ticket.code)
    return ticket
