from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from ticketing.services.money import GBP, Money, format_currency, percent_of

FeeType = Literal["percent", "fixed"]
FeePayer = Literal["buyer", "organizer"]


@dataclass(frozen=True)
class FeeRule:
    type: FeeType
    amount: float  # percentage for "percent", minor units for "fixed"
    payer: FeePayer
    cap: int | None = None


@dataclass(frozen=True)
class FeeConfig:
    service_fee: FeeRule = FeeRule(type="percent", amount=5, payer="buyer", cap=1000)
    processing_fee: FeeRule = FeeRule(type="fixed", amount=200, payer="buyer")
    platform_fee: FeeRule = FeeRule(type="percent", amount=3, payer="organizer")
    currency: str = GBP

    @classmethod
    def from_settings(cls, s) -> "FeeConfig":
        return cls(
            service_fee=FeeRule(
                type="percent",
                amount=s.SERVICE_FEE_PERCENT,
                payer="buyer",
                cap=s.SERVICE_FEE_CAP_CENTS,
            ),
            processing_fee=FeeRule(type="fixed", amount=s.PROCESSING_FEE_CENTS, payer="buyer"),
            platform_fee=FeeRule(type="percent", amount=s.PLATFORM_FEE_PERCENT, payer="organizer"),
            currency=s.DEFAULT_CURRENCY,
        )


DEFAULT_FEE_CONFIG = FeeConfig()


@dataclass(frozen=True)
class FeeLine:
    name: str
    amount: int
    description: str


@dataclass(frozen=True)
class BuyerFees:
    service_fee: int
    processing_fee: int
    total_fees: int
    breakdown: list[FeeLine]


@dataclass(frozen=True)
class OrganizerFees:
    platform_fee: int
    total_fees: int
    breakdown: list[FeeLine]


@dataclass(frozen=True)
class OrderTotals:
    subtotal: int
    discount: int
    discounted_subtotal: int
    fees: int
    fee_breakdown: list[FeeLine] = field(default_factory=list)
    total: int = 0
    currency: str = GBP


@dataclass(frozen=True)
class OrganizerPayout:
    ticket_revenue: int
    refunds: int
    net_revenue: int
    platform_fee: int
    payout: int
    currency: str
    breakdown: dict[str, int]


def _percent_label(amount: float) -> str:
    # 5.0 -> "5", 2.5 -> "2.5"
    return f"{amount:g}"


# -------------------------
# Single fees
# -------------------------

def calculate_service_fee(subtotal: int, *, config: FeeConfig = DEFAULT_FEE_CONFIG) -> int:
    rule = config.service_fee
    fee = percent_of(subtotal, rule.amount)
    if rule.cap is not None:
        fee = min(fee, rule.cap)
    return fee


def calculate_processing_fee(*, config: FeeConfig = DEFAULT_FEE_CONFIG) -> int:
    return int(config.processing_fee.amount)


def calculate_platform_fee(subtotal: int, *, config: FeeConfig = DEFAULT_FEE_CONFIG) -> int:
    return percent_of(subtotal, config.platform_fee.amount)


# -------------------------
# Fee groups
# -------------------------

def calculate_buyer_fees(subtotal: int, *, config: FeeConfig = DEFAULT_FEE_CONFIG) -> BuyerFees:
    service_fee = calculate_service_fee(subtotal, config=config)
    processing_fee = calculate_processing_fee(config=config)

    service_desc = f"{_percent_label(config.service_fee.amount)}%"
    if config.service_fee.cap is not None:
        service_desc += f" (max {Money(config.service_fee.cap, config.currency)})"

    return BuyerFees(
        service_fee=service_fee,
        processing_fee=processing_fee,
        total_fees=service_fee + processing_fee,
        breakdown=[
            FeeLine(name="Service Fee", amount=service_fee, description=service_desc),
            FeeLine(name="Processing Fee", amount=processing_fee, description="Per order"),
        ],
    )


def calculate_organizer_fees(subtotal: int, *, config: FeeConfig = DEFAULT_FEE_CONFIG) -> OrganizerFees:
    platform_fee = calculate_platform_fee(subtotal, config=config)
    return OrganizerFees(
        platform_fee=platform_fee,
        total_fees=platform_fee,
        breakdown=[
            FeeLine(
                name="Platform Fee",
                amount=platform_fee,
                description=f"{_percent_label(config.platform_fee.amount)}% of ticket price",
            ),
        ],
    )


# -------------------------
# Totals
# -------------------------

def calculate_order_total(
    subtotal: int,
    discount: int = 0,
    include_fees: bool = True,
    *,
    config: FeeConfig = DEFAULT_FEE_CONFIG,
) -> OrderTotals:
    """
    Order totals with buyer fees charged on the discounted subtotal.

    Callers must keep discount <= subtotal; it is not clamped here.
    """
    discounted_subtotal = subtotal - discount

    fees = 0
    fee_breakdown: list[FeeLine] = []
    if include_fees:
        buyer_fees = calculate_buyer_fees(discounted_subtotal, config=config)
        fees = buyer_fees.total_fees
        fee_breakdown = buyer_fees.breakdown

    return OrderTotals(
        subtotal=subtotal,
        discount=discount,
        discounted_subtotal=discounted_subtotal,
        fees=fees,
        fee_breakdown=fee_breakdown,
        total=discounted_subtotal + fees,
        currency=config.currency,
    )


def calculate_organizer_payout(
    ticket_revenue: int,
    refunds: int = 0,
    *,
    config: FeeConfig = DEFAULT_FEE_CONFIG,
) -> OrganizerPayout:
    net_revenue = ticket_revenue - refunds
    organizer_fees = calculate_organizer_fees(net_revenue, config=config)
    payout = net_revenue - organizer_fees.total_fees

    return OrganizerPayout(
        ticket_revenue=ticket_revenue,
        refunds=refunds,
        net_revenue=net_revenue,
        platform_fee=organizer_fees.platform_fee,
        payout=payout,
        currency=config.currency,
        breakdown={
            "gross": ticket_revenue,
            "refunds": -refunds,
            "platform_fee": -organizer_fees.platform_fee,
            "net": payout,
        },
    )


def calculate_tax(amount: int, tax_rate: float = 0) -> int:
    if tax_rate <= 0:
        return 0
    return percent_of(amount, tax_rate)


def apply_discount(amount: int, discount_type: str, discount_value) -> int:
    if discount_type == "percent":
        return percent_of(amount, discount_value)
    if discount_type == "fixed":
        # never more than the amount it applies to
        return min(int(discount_value), amount)
    return 0


def get_fee_config(*, config: FeeConfig = DEFAULT_FEE_CONFIG) -> dict:
    service = config.service_fee
    service_display = f"{_percent_label(service.amount)}%"
    if service.cap is not None:
        service_display += f" (max {Money(service.cap, config.currency)})"

    return {
        "service_fee": {"type": service.type, "amount": service.amount, "cap": service.cap, "payer": service.payer},
        "processing_fee": {
            "type": config.processing_fee.type,
            "amount": config.processing_fee.amount,
            "payer": config.processing_fee.payer,
        },
        "platform_fee": {
            "type": config.platform_fee.type,
            "amount": config.platform_fee.amount,
            "payer": config.platform_fee.payer,
        },
        "currency": config.currency,
        "service_fee_display": service_display,
        "processing_fee_display": format_currency(int(config.processing_fee.amount), config.currency),
        "platform_fee_display": f"{_percent_label(config.platform_fee.amount)}%",
    }
