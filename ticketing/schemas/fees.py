from __future__ import annotations

from pydantic import BaseModel, Field


class FeeLineOut(BaseModel):
    name: str
    amount: int
    description: str

    class Config:
        from_attributes = True


class OrderQuoteIn(BaseModel):
    subtotal: int = Field(ge=0)
    discount: int = Field(default=0, ge=0)
    include_fees: bool = True
    tax_rate: float = Field(default=0, ge=0, le=100)


class OrderQuoteOut(BaseModel):
    subtotal: int
    discount: int
    discounted_subtotal: int
    fees: int
    fee_breakdown: list[FeeLineOut]
    tax: int = 0
    total: int
    currency: str


class PayoutIn(BaseModel):
    ticket_revenue: int = Field(ge=0)
    refunds: int = Field(default=0, ge=0)


class PayoutOut(BaseModel):
    ticket_revenue: int
    refunds: int
    net_revenue: int
    platform_fee: int
    payout: int
    currency: str
    breakdown: dict[str, int]
