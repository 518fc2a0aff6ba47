from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TicketTypeInfo(BaseModel):
    """Transfer/refund policy of a ticket type, as served by the ticketing API."""

    model_config = ConfigDict(extra="ignore")

    id: str | int
    event_id: str | int | None = None
    transfer_allowed: bool = False
    refundable: bool = False
    event_start_date: datetime | None = None


class IssueTicketsIn(BaseModel):
    order_item_id: str | int | None = None
    ticket_type_id: str | int
    event_id: str | int
    attendee_name: str = Field(min_length=1, max_length=255)
    attendee_email: str = Field(min_length=3, max_length=255)
    quantity: int = Field(default=1, ge=1, le=200)
    seat_ids: list[str | int] | None = None


class TicketOut(BaseModel):
    id: int
    code: str
    uuid: str
    order_id: str
    order_item_id: str | None
    ticket_type_id: str
    event_id: str
    seat_id: str | None
    attendee_name: str
    attendee_email: str
    status: str
    qr_code: str | None
    barcode: str | None
    used_at: datetime | None
    used_by: str | None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ScanIn(BaseModel):
    ticket_code: str | None = None
    qr_payload: str | None = None
    scanned_by: str | int | None = None
    event_id: str | int | None = None

    @model_validator(mode="after")
    def _needs_code_or_payload(self):
        if not self.ticket_code and not self.qr_payload:
            raise ValueError("Ticket code or QR payload is required")
        return self


class ScanOut(BaseModel):
    valid: bool
    message: str
    error: str | None = None
    ticket: TicketOut | None = None


class TransferIn(BaseModel):
    to_name: str = Field(min_length=1, max_length=255)
    to_email: str = Field(min_length=3, max_length=255)
    transferred_by: str | int | None = None
