# ticketing/models/ticket.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, BigInteger, CheckConstraint, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from ticketing.core.db import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        CheckConstraint(
            "status IN ('valid','used','cancelled','transferred','refunded')",
            name="tickets_status_check",
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)

    code: Mapped[str] = mapped_column(String(16), unique=True, index=True, nullable=False)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)

    # ids owned by the ticketing API (orders, events, ticket types, seats)
    order_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    order_item_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    ticket_type_id: Mapped[str] = mapped_column(String(64), nullable=False)
    event_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    seat_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    attendee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    attendee_email: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="valid")

    qr_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(13), nullable=True)

    transfer_history: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    meta: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    used_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_now_utc,
        server_default=func.now(),
    )
