from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Sequence

from ticketing.schemas.promo import PromoCode
from ticketing.services.money import GBP, Money, percent_of

logger = logging.getLogger(__name__)

PROMO_LETTERS = "ABCDEFGHJKLMNPQRSTUVWXYZ"  # no I, O
PROMO_NUMBERS = "23456789"  # no 0, 1

_NOT_CODE_CHARS = re.compile(r"[^A-Z0-9]")
_SECONDS_PER_DAY = 24 * 60 * 60


class PromoErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    NOT_YET_VALID = "NOT_YET_VALID"
    EXPIRED = "EXPIRED"
    MAX_USES_REACHED = "MAX_USES_REACHED"
    USER_LIMIT_REACHED = "USER_LIMIT_REACHED"
    MIN_ORDER_NOT_MET = "MIN_ORDER_NOT_MET"
    NOT_APPLICABLE = "NOT_APPLICABLE"


@dataclass(frozen=True)
class PromoContext:
    cart_total: int
    ticket_type_ids: Sequence[str | int] = ()
    user_id: str | int | None = None
    user_use_count: int = 0
    currency: str = GBP


@dataclass(frozen=True)
class PromoValidation:
    valid: bool
    error: str | None = None
    error_code: PromoErrorCode | None = None
    promo_code: PromoCode | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    min_order_value: int | None = None


@dataclass(frozen=True)
class MultiPromoValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)
    total_discount: int = 0
    applied_codes: list[str] = field(default_factory=list)


def _now_utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return now if now.tzinfo else now.replace(tzinfo=timezone.utc)


def _fail(code: PromoErrorCode, error: str, **extra) -> PromoValidation:
    logger.debug("Promo code rejected: %s", code.value)
    return PromoValidation(valid=False, error=error, error_code=code, **extra)


def _intersects(cart_ids: Iterable[str | int], allowed: Iterable[str | int]) -> bool:
    # API ids arrive as either ints or strings; compare their string form
    allowed_set = {str(x) for x in allowed}
    return any(str(x) in allowed_set for x in cart_ids)


# -------------------------
# Validation
# -------------------------

def validate_promo_code(
    promo: PromoCode | None,
    context: PromoContext,
    *,
    now: datetime | None = None,
) -> PromoValidation:
    """
    Run the eligibility checks in order; the first failure wins.

    Order: existence, active flag, validity window, global uses,
    per-user uses, minimum order value, ticket type applicability.
    """
    if promo is None:
        return _fail(PromoErrorCode.NOT_FOUND, "Promo code not found")

    if not promo.active:
        return _fail(PromoErrorCode.INACTIVE, "This promo code is no longer active")

    current = _now_utc(now)

    if current < promo.valid_from:
        return _fail(
            PromoErrorCode.NOT_YET_VALID,
            f"This promo code is not valid until {promo.valid_from.strftime('%d/%m/%Y')}",
            valid_from=promo.valid_from,
        )

    if current > promo.valid_to:
        return _fail(
            PromoErrorCode.EXPIRED,
            "This promo code has expired",
            valid_to=promo.valid_to,
        )

    if promo.max_uses > 0 and promo.current_uses >= promo.max_uses:
        return _fail(
            PromoErrorCode.MAX_USES_REACHED,
            "This promo code has reached its maximum number of uses",
        )

    if promo.max_per_user > 0 and context.user_use_count >= promo.max_per_user:
        return _fail(
            PromoErrorCode.USER_LIMIT_REACHED,
            f"You have already used this promo code {promo.max_per_user} time(s)",
        )

    if promo.min_order_value > 0 and context.cart_total < promo.min_order_value:
        minimum = Money(promo.min_order_value, context.currency)
        return _fail(
            PromoErrorCode.MIN_ORDER_NOT_MET,
            f"Minimum order value of {minimum} required",
            min_order_value=promo.min_order_value,
        )

    if promo.applies_to_ticket_type_ids:
        if not _intersects(context.ticket_type_ids, promo.applies_to_ticket_type_ids):
            return _fail(
                PromoErrorCode.NOT_APPLICABLE,
                "This promo code is not applicable to the selected tickets",
            )

    return PromoValidation(valid=True, promo_code=promo)


def calculate_promo_discount(promo: PromoCode | None, cart_total: int) -> int:
    if promo is None:
        return 0

    discount = 0
    if promo.type == "percent":
        discount = percent_of(cart_total, promo.amount)
    elif promo.type == "fixed":
        discount = int(promo.amount)

    # a discount never takes the order below zero
    return min(discount, cart_total)


def validate_multiple_promo_codes(
    promos: Sequence[PromoCode | None],
    context: PromoContext,
    *,
    now: datetime | None = None,
) -> MultiPromoValidation:
    results = [validate_promo_code(p, context, now=now) for p in promos]

    errors = [r.error for r in results if not r.valid and r.error]
    if not all(r.valid for r in results):
        return MultiPromoValidation(valid=False, errors=errors)

    total = sum(calculate_promo_discount(p, context.cart_total) for p in promos)

    return MultiPromoValidation(
        valid=True,
        total_discount=min(total, context.cart_total),
        applied_codes=[p.code for p in promos if p is not None],
    )


# -------------------------
# Helpers
# -------------------------

def is_promo_expiring_soon(
    promo: PromoCode | None,
    days_threshold: float = 7,
    *,
    now: datetime | None = None,
) -> bool:
    if promo is None:
        return False

    days_left = (promo.valid_to - _now_utc(now)).total_seconds() / _SECONDS_PER_DAY
    return 0 < days_left <= days_threshold


def is_promo_running_low(promo: PromoCode | None, threshold: float = 10) -> bool:
    if promo is None or promo.max_uses == 0:
        return False

    remaining = promo.max_uses - promo.current_uses
    remaining_pct = remaining / promo.max_uses * 100
    return 0 < remaining_pct <= threshold


def get_promo_display_info(promo: PromoCode | None, *, currency: str = GBP) -> dict | None:
    if promo is None:
        return None

    if promo.type == "percent":
        discount_display = f"{promo.amount:g}% off"
    else:
        discount_display = f"{Money(int(promo.amount), currency)} off"

    return {
        "code": promo.code,
        "discount_display": discount_display,
        "description": promo.description or "",
        "valid_until": promo.valid_to.strftime("%d/%m/%Y"),
        "uses_remaining": promo.max_uses - promo.current_uses if promo.max_uses > 0 else None,
    }


def generate_promo_code(length: int = 8, include_numbers: bool = True, prefix: str = "") -> str:
    chars = PROMO_LETTERS + PROMO_NUMBERS if include_numbers else PROMO_LETTERS
    return prefix + "".join(secrets.choice(chars) for _ in range(length))


def sanitize_promo_code(code: str | None) -> str:
    if not code:
        return ""
    return _NOT_CODE_CHARS.sub("", code.upper().strip())
