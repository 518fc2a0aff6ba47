from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from ticketing.core.deps import get_fee_config
from ticketing.schemas.fees import OrderQuoteIn, OrderQuoteOut, PayoutIn, PayoutOut
from ticketing.services.fees import (
    FeeConfig,
    calculate_order_total,
    calculate_organizer_payout,
    calculate_tax,
    get_fee_config as fee_config_display,
)

router = APIRouter(prefix="/ticketing", tags=["Ticketing - Fees"])


@router.get("/fees/config")
async def fees_config(config: FeeConfig = Depends(get_fee_config)):
    return fee_config_display(config=config)


@router.post("/fees/quote", response_model=OrderQuoteOut)
async def quote_order(
    payload: OrderQuoteIn,
    config: FeeConfig = Depends(get_fee_config),
) -> OrderQuoteOut:
    # the calculator does not clamp; keep the discount inside the subtotal here
    discount = min(payload.discount, payload.subtotal)
    totals = calculate_order_total(
        payload.subtotal,
        discount=discount,
        include_fees=payload.include_fees,
        config=config,
    )
    tax = calculate_tax(totals.discounted_subtotal, payload.tax_rate)

    return OrderQuoteOut(
        subtotal=totals.subtotal,
        discount=totals.discount,
        discounted_subtotal=totals.discounted_subtotal,
        fees=totals.fees,
        fee_breakdown=[asdict(line) for line in totals.fee_breakdown],
        tax=tax,
        total=totals.total + tax,
        currency=totals.currency,
    )


@router.post("/organizer/payout", response_model=PayoutOut)
async def organizer_payout(
    payload: PayoutIn,
    config: FeeConfig = Depends(get_fee_config),
) -> PayoutOut:
    refunds = min(payload.refunds, payload.ticket_revenue)
    result = calculate_organizer_payout(payload.ticket_revenue, refunds=refunds, config=config)
    return PayoutOut(**asdict(result))
