from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SessionCartItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ticket_type_id: str | int
    ticket_type_name: str | None = None
    quantity: int
    unit_price: int | None = None
    subtotal: int | None = None


class SessionFeeLine(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    amount: int
    type: str | None = None


class CheckoutSession(BaseModel):
    """Checkout session created by the ticketing API's start-checkout call."""

    model_config = ConfigDict(extra="ignore")

    session_id: str
    event_id: str | int
    cart_items: list[SessionCartItem] = Field(default_factory=list)

    subtotal: int = 0
    discount: int = 0
    fees: int = 0
    fee_breakdown: list[SessionFeeLine] = Field(default_factory=list)
    tax: int = 0
    total: int = 0
    currency: str = "GBP"

    promo_code: str | None = None
    promo_code_id: str | int | None = None
    fee_paid_by: str = "buyer"

    expires_at: datetime

    @field_validator("expires_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)


class BuyerInfo(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str | None = None

    def is_complete(self) -> bool:
        # phone is optional
        return all((v or "").strip() for v in (self.first_name, self.last_name, self.email))
