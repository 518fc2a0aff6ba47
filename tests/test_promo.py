"""Tests for promo code eligibility and discounts."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from tests.conftest import NOW
from ticketing.services.promo import (
    PROMO_LETTERS,
    PROMO_NUMBERS,
    PromoContext,
    PromoErrorCode,
    calculate_promo_discount,
    generate_promo_code,
    get_promo_display_info,
    is_promo_expiring_soon,
    is_promo_running_low,
    sanitize_promo_code,
    validate_multiple_promo_codes,
    validate_promo_code,
)


def ctx(cart_total=10000, **kwargs) -> PromoContext:
    return PromoContext(cart_total=cart_total, **kwargs)


class TestValidatePromoCode:
    def test_valid(self, make_promo):
        promo = make_promo()
        result = validate_promo_code(promo, ctx(), now=NOW)

        assert result.valid is True
        assert result.promo_code is promo
        assert result.error is None

    def test_not_found(self):
        result = validate_promo_code(None, ctx(), now=NOW)
        assert result.valid is False
        assert result.error_code is PromoErrorCode.NOT_FOUND
        assert result.error == "Promo code not found"

    def test_inactive(self, make_promo):
        result = validate_promo_code(make_promo(active=False), ctx(), now=NOW)
        assert result.error_code is PromoErrorCode.INACTIVE

    def test_not_yet_valid(self, make_promo):
        promo = make_promo(valid_from=NOW + timedelta(days=2), valid_to=NOW + timedelta(days=5))
        result = validate_promo_code(promo, ctx(), now=NOW)

        assert result.error_code is PromoErrorCode.NOT_YET_VALID
        assert result.error == "This promo code is not valid until 03/06/2026"
        assert result.valid_from == promo.valid_from

    def test_expired_yesterday(self, make_promo):
        promo = make_promo(valid_to=NOW - timedelta(days=1))
        result = validate_promo_code(promo, ctx(), now=NOW)

        assert result.valid is False
        assert result.error_code is PromoErrorCode.EXPIRED
        assert result.error == "This promo code has expired"

    def test_window_bounds_are_inclusive(self, make_promo):
        promo = make_promo(valid_from=NOW, valid_to=NOW)
        assert validate_promo_code(promo, ctx(), now=NOW).valid is True

    def test_max_uses_reached(self, make_promo):
        promo = make_promo(max_uses=10, current_uses=10)
        result = validate_promo_code(promo, ctx(), now=NOW)
        assert result.error_code is PromoErrorCode.MAX_USES_REACHED

    def test_zero_max_uses_is_unlimited(self, make_promo):
        promo = make_promo(max_uses=0, current_uses=5000)
        assert validate_promo_code(promo, ctx(), now=NOW).valid is True

    def test_user_limit_reached(self, make_promo):
        promo = make_promo(max_per_user=1)
        result = validate_promo_code(promo, ctx(user_id=3, user_use_count=1), now=NOW)

        assert result.error_code is PromoErrorCode.USER_LIMIT_REACHED
        assert "1 time(s)" in result.error

    def test_min_order_not_met(self, make_promo):
        promo = make_promo(min_order_value=5000)
        result = validate_promo_code(promo, ctx(cart_total=4999), now=NOW)

        assert result.error_code is PromoErrorCode.MIN_ORDER_NOT_MET
        assert result.error == "Minimum order value of £50.00 required"
        assert result.min_order_value == 5000

    def test_ticket_type_ids_compare_as_strings(self, make_promo):
        promo = make_promo(applies_to_ticket_type_ids=[3, "7"])

        assert validate_promo_code(promo, ctx(ticket_type_ids=["3"]), now=NOW).valid is True
        assert validate_promo_code(promo, ctx(ticket_type_ids=[7]), now=NOW).valid is True

        result = validate_promo_code(promo, ctx(ticket_type_ids=[4]), now=NOW)
        assert result.error_code is PromoErrorCode.NOT_APPLICABLE

    def test_first_failing_check_wins(self, make_promo):
        # inactive, expired and exhausted at once: inactive is reported
        promo = make_promo(
            active=False,
            valid_to=NOW - timedelta(days=1),
            max_uses=1,
            current_uses=1,
        )
        assert validate_promo_code(promo, ctx(), now=NOW).error_code is PromoErrorCode.INACTIVE

        # expired before min order
        promo = make_promo(valid_to=NOW - timedelta(days=1), min_order_value=99999)
        assert validate_promo_code(promo, ctx(), now=NOW).error_code is PromoErrorCode.EXPIRED

    def test_naive_datetimes_are_utc(self, make_promo):
        promo = make_promo(valid_to=NOW.replace(tzinfo=None) + timedelta(hours=1))
        assert promo.valid_to.tzinfo is not None
        assert validate_promo_code(promo, ctx(), now=NOW.replace(tzinfo=None)).valid is True

    def test_reversed_window_is_rejected(self, make_promo):
        with pytest.raises(ValidationError):
            make_promo(valid_from=NOW, valid_to=NOW - timedelta(days=1))


class TestDiscount:
    def test_percent(self, make_promo):
        assert calculate_promo_discount(make_promo(type="percent", amount=20), 10000) == 2000

    def test_fixed(self, make_promo):
        assert calculate_promo_discount(make_promo(type="fixed", amount=1500), 10000) == 1500

    def test_percent_over_100_is_clamped(self, make_promo):
        assert calculate_promo_discount(make_promo(type="percent", amount=150), 1000) == 1000

    def test_fixed_over_cart_is_clamped(self, make_promo):
        assert calculate_promo_discount(make_promo(type="fixed", amount=5000), 1200) == 1200

    def test_no_promo(self):
        assert calculate_promo_discount(None, 1000) == 0


class TestMultiple:
    def test_all_valid_sums_and_clamps(self, make_promo):
        a = make_promo(code="A", type="fixed", amount=600)
        b = make_promo(code="B", type="percent", amount=50)

        result = validate_multiple_promo_codes([a, b], ctx(cart_total=1000), now=NOW)

        assert result.valid is True
        assert result.total_discount == 1000
        assert result.applied_codes == ["A", "B"]

    def test_any_invalid_reports_errors(self, make_promo):
        good = make_promo(code="GOOD")
        bad = make_promo(code="BAD", active=False)

        result = validate_multiple_promo_codes([good, bad, None], ctx(), now=NOW)

        assert result.valid is False
        assert result.total_discount == 0
        assert result.errors == ["This promo code is no longer active", "Promo code not found"]


class TestHelpers:
    def test_expiring_soon(self, make_promo):
        assert is_promo_expiring_soon(make_promo(valid_to=NOW + timedelta(days=3)), now=NOW) is True
        assert is_promo_expiring_soon(make_promo(valid_to=NOW + timedelta(days=30)), now=NOW) is False
        assert is_promo_expiring_soon(make_promo(valid_to=NOW - timedelta(days=1)), now=NOW) is False
        assert is_promo_expiring_soon(None) is False

    def test_running_low(self, make_promo):
        assert is_promo_running_low(make_promo(max_uses=100, current_uses=95)) is True
        assert is_promo_running_low(make_promo(max_uses=100, current_uses=50)) is False
        assert is_promo_running_low(make_promo(max_uses=100, current_uses=100)) is False
        assert is_promo_running_low(make_promo(max_uses=0)) is False

    def test_display_info(self, make_promo):
        info = get_promo_display_info(make_promo(type="fixed", amount=500, max_uses=10, current_uses=4))

        assert info["discount_display"] == "£5.00 off"
        assert info["valid_until"] == "11/06/2026"
        assert info["uses_remaining"] == 6

        info = get_promo_display_info(make_promo(type="percent", amount=12.5))
        assert info["discount_display"] == "12.5% off"
        assert info["uses_remaining"] is None

    def test_generate_promo_code(self):
        code = generate_promo_code(10, prefix="VIP")
        assert code.startswith("VIP")
        assert len(code) == 13
        assert all(c in PROMO_LETTERS + PROMO_NUMBERS for c in code[3:])

        letters_only = generate_promo_code(include_numbers=False)
        assert all(c in PROMO_LETTERS for c in letters_only)

    @pytest.mark.parametrize(
        "raw, expected",
        [(" summer-20 ", "SUMMER20"), ("early bird!", "EARLYBIRD"), ("", ""), (None, "")],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_promo_code(raw) == expected
