from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ticketing.core.deps import get_api_client
from ticketing.integrations.ticketing_api_client import TicketingApiClient, TicketingApiError
from ticketing.schemas.promo import PromoValidateIn, PromoValidateOut
from ticketing.services.promo import (
    PromoContext,
    PromoErrorCode,
    calculate_promo_discount,
    get_promo_display_info,
    sanitize_promo_code,
    validate_promo_code,
)

router = APIRouter(prefix="/ticketing/promo", tags=["Ticketing - Promo Codes"])


@router.post("/validate", response_model=PromoValidateOut)
async def validate_promo(
    payload: PromoValidateIn,
    client: TicketingApiClient = Depends(get_api_client),
) -> PromoValidateOut:
    code = sanitize_promo_code(payload.code)
    if not code:
        return PromoValidateOut(
            valid=False,
            code=code,
            error="Promo code not found",
            error_code=PromoErrorCode.NOT_FOUND.value,
        )

    try:
        promo = await client.lookup_promo_code(code, payload.event_id)
    except TicketingApiError as e:
        raise HTTPException(status_code=502, detail=str(e))

    context = PromoContext(
        cart_total=payload.cart_total,
        ticket_type_ids=[item.ticket_type_id for item in payload.cart_items],
        user_id=payload.user_id,
        user_use_count=payload.user_use_count,
    )
    result = validate_promo_code(promo, context)

    if not result.valid:
        return PromoValidateOut(
            valid=False,
            code=code,
            error=result.error,
            error_code=result.error_code.value if result.error_code else None,
        )

    info = get_promo_display_info(promo)
    return PromoValidateOut(
        valid=True,
        code=promo.code,
        discount=calculate_promo_discount(promo, payload.cart_total),
        discount_display=info["discount_display"] if info else None,
    )
