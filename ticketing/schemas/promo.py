from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PromoCode(BaseModel):
    """Promo code record as served by the ticketing API (read-only here)."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str | int | None = None
    code: str
    event_id: str | int | None = None

    active: bool = True
    valid_from: datetime
    valid_to: datetime

    type: Literal["percent", "fixed"]
    amount: float = Field(ge=0)  # percentage or minor units

    max_uses: int = Field(default=0, ge=0)  # 0 = unlimited
    current_uses: int = Field(default=0, ge=0)
    max_per_user: int = Field(default=0, ge=0)  # 0 = unlimited
    min_order_value: int = Field(default=0, ge=0)

    applies_to_ticket_type_ids: list[str | int] = Field(default_factory=list)
    description: str | None = None

    @field_validator("valid_from", "valid_to")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

    @model_validator(mode="after")
    def _window_is_ordered(self):
        if self.valid_from > self.valid_to:
            raise ValueError("valid_from must be <= valid_to")
        return self


class CartItemIn(BaseModel):
    ticket_type_id: str | int
    quantity: int = Field(ge=1)
    unit_price: int | None = Field(default=None, ge=0)


class PromoValidateIn(BaseModel):
    event_id: str | int
    code: str = Field(min_length=1, max_length=64)
    cart_total: int = Field(ge=0)
    cart_items: list[CartItemIn] = Field(default_factory=list)
    user_id: str | int | None = None
    user_use_count: int = Field(default=0, ge=0)


class PromoValidateOut(BaseModel):
    valid: bool
    code: str
    discount: int = 0
    discount_display: str | None = None
    error: str | None = None
    error_code: str | None = None
