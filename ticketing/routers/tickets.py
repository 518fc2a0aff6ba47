from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from ticketing.core.db import get_db
from ticketing.core.deps import get_api_client, get_signer
from ticketing.core.security import QRSigner
from ticketing.integrations.ticketing_api_client import TicketingApiClient, TicketingApiError
from ticketing.schemas.tickets import IssueTicketsIn, ScanIn, ScanOut, TicketOut, TicketTypeInfo, TransferIn
from ticketing.services.ticket_codes import TicketTypeRules
from ticketing.services.tickets import (
    TicketError,
    TicketNotFound,
    cancel_ticket,
    get_ticket_by_code,
    issue_tickets,
    list_order_tickets,
    refund_ticket,
    scan_ticket,
    transfer_ticket,
)
from ticketing.services.tickets_pdf import TicketsPdfError, build_tickets_pdf

router = APIRouter(prefix="/ticketing", tags=["Ticketing - Tickets"])


def _to_http(e: TicketError) -> HTTPException:
    if isinstance(e, TicketNotFound):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


async def _ticket_type_for(
    db: AsyncSession,
    client: TicketingApiClient,
    code: str,
) -> TicketTypeInfo:
    try:
        ticket = await get_ticket_by_code(db, code)
    except TicketError as e:
        raise _to_http(e)

    try:
        return await client.get_ticket_type(ticket.event_id, ticket.ticket_type_id)
    except TicketingApiError as e:
        raise HTTPException(status_code=502, detail=str(e))


# -------------------------
# Orders
# -------------------------

@router.post("/orders/{order_id}/tickets", response_model=list[TicketOut])
async def issue_order_tickets(
    order_id: str,
    body: IssueTicketsIn,
    db: AsyncSession = Depends(get_db),
    signer: QRSigner = Depends(get_signer),
):
    try:
        return await issue_tickets(
            db,
            signer=signer,
            order_id=order_id,
            order_item_id=body.order_item_id,
            ticket_type_id=body.ticket_type_id,
            event_id=body.event_id,
            attendee_name=body.attendee_name,
            attendee_email=body.attendee_email,
            quantity=body.quantity,
            seat_ids=body.seat_ids,
        )
    except TicketError as e:
        raise _to_http(e)


@router.get("/orders/{order_id}/tickets", response_model=list[TicketOut])
async def get_order_tickets(order_id: str, db: AsyncSession = Depends(get_db)):
    return await list_order_tickets(db, order_id)


@router.get("/orders/{order_id}/tickets.pdf")
async def order_tickets_pdf(
    order_id: str,
    event_title: str | None = Query(default=None, max_length=200),
    db: AsyncSession = Depends(get_db),
):
    tickets = await list_order_tickets(db, order_id)
    try:
        pdf_bytes = build_tickets_pdf(tickets, event_title=event_title)
    except TicketsPdfError as e:
        raise HTTPException(status_code=404, detail=str(e))

    filename = f"tickets_{order_id}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


# -------------------------
# Scanner
# -------------------------

@router.post("/scanner/scan", response_model=ScanOut)
async def scan(
    body: ScanIn,
    db: AsyncSession = Depends(get_db),
    signer: QRSigner = Depends(get_signer),
):
    try:
        result = await scan_ticket(
            db,
            signer=signer,
            ticket_code=body.ticket_code,
            qr_payload=body.qr_payload,
            scanned_by=body.scanned_by,
            event_id=body.event_id,
        )
    except TicketError as e:
        raise _to_http(e)

    return ScanOut(
        valid=result.valid,
        message=result.message,
        error=result.error,
        ticket=TicketOut.model_validate(result.ticket) if result.ticket is not None else None,
    )


# -------------------------
# Lifecycle
# -------------------------

@router.post("/tickets/{code}/transfer", response_model=TicketOut)
async def transfer(
    code: str,
    body: TransferIn,
    db: AsyncSession = Depends(get_db),
    signer: QRSigner = Depends(get_signer),
    client: TicketingApiClient = Depends(get_api_client),
):
    ticket_type = await _ticket_type_for(db, client, code)
    try:
        return await transfer_ticket(
            db,
            signer=signer,
            ticket_code=code,
            rules=TicketTypeRules(
                transfer_allowed=ticket_type.transfer_allowed,
                refundable=ticket_type.refundable,
            ),
            to_name=body.to_name,
            to_email=body.to_email,
            transferred_by=body.transferred_by,
        )
    except TicketError as e:
        raise _to_http(e)


@router.post("/tickets/{code}/refund", response_model=TicketOut)
async def refund(
    code: str,
    db: AsyncSession = Depends(get_db),
    client: TicketingApiClient = Depends(get_api_client),
):
    ticket_type = await _ticket_type_for(db, client, code)
    try:
        return await refund_ticket(
            db,
            ticket_code=code,
            rules=TicketTypeRules(
                transfer_allowed=ticket_type.transfer_allowed,
                refundable=ticket_type.refundable,
            ),
            event_date=ticket_type.event_start_date,
        )
    except TicketError as e:
        raise _to_http(e)


@router.post("/tickets/{code}/cancel", response_model=TicketOut)
async def cancel(code: str, db: AsyncSession = Depends(get_db)):
    try:
        return await cancel_ticket(db, ticket_code=code)
    except TicketError as e:
        raise _to_http(e)
