from __future__ import annotations

import html
from datetime import datetime
from io import BytesIO
from typing import Optional, Sequence

from reportlab.graphics.barcode import eanbc, qr
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ticketing.models.ticket import Ticket
from ticketing.services.ticket_codes import get_ticket_status_display


class TicketsPdfError(Exception):
    pass


def _fmt_dt(dt: Optional[datetime]) -> str:
    if not dt:
        return ""
    return dt.isoformat().replace("+00:00", "Z")


def _qr_drawing(value: str, size: float = 45 * mm) -> Drawing:
    widget = qr.QrCodeWidget(value)
    x1, y1, x2, y2 = widget.getBounds()
    w, h = x2 - x1, y2 - y1
    d = Drawing(size, size, transform=[size / w, 0, 0, size / h, 0, 0])
    d.add(widget)
    return d


def _barcode_drawing(number: str) -> Drawing:
    # reportlab appends its own check digit; it matches ours
    widget = eanbc.Ean13BarcodeWidget(number[:12])
    x1, y1, x2, y2 = widget.getBounds()
    d = Drawing(x2 - x1, y2 - y1)
    d.add(widget)
    return d


def _ticket_block(ticket: Ticket, styles, event_title: str | None) -> list:
    status = get_ticket_status_display(ticket.status)
    story = []

    story.append(Paragraph(f"<b>{html.escape(event_title or 'Event ticket')}</b>", styles["Title"]))
    story.append(Spacer(1, 6))

    details = [
        ["Ticket", ticket.code],
        ["Attendee", ticket.attendee_name],
        ["Email", ticket.attendee_email],
        ["Order", ticket.order_id],
        ["Seat", ticket.seat_id or "General admission"],
        ["Status", status["label"]],
        ["Issued", _fmt_dt(ticket.created_at)],
    ]
    tbl = Table(details, colWidths=[30 * mm, 120 * mm])
    tbl.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ("BACKGROUND", (0, 0), (0, -1), colors.whitesmoke),
                ("LEFTPADDING", (0, 0), (-1, -1), 4),
                ("RIGHTPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    story.append(tbl)
    story.append(Spacer(1, 10))

    codes = []
    if ticket.qr_code:
        codes.append(_qr_drawing(ticket.qr_code))
    if ticket.barcode:
        codes.append(_barcode_drawing(ticket.barcode))
    if codes:
        story.append(Table([codes]))

    return story


def build_tickets_pdf(tickets: Sequence[Ticket], *, event_title: str | None = None) -> bytes:
    if not tickets:
        raise TicketsPdfError("No tickets to print.")

    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=event_title or "Tickets",
    )

    styles = getSampleStyleSheet()
    story = []
    for i, ticket in enumerate(tickets):
        if i:
            story.append(PageBreak())
        story.extend(_ticket_block(ticket, styles, event_title))

    doc.build(story)
    return buf.getvalue()
