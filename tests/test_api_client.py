"""Tests for the ticketing API client against a mocked transport."""

import json

import httpx
import pytest

from ticketing.integrations.ticketing_api_client import TicketingApiClient, TicketingApiError
from ticketing.schemas.checkout import BuyerInfo

PROMO = {
    "id": 3,
    "code": "SUMMER20",
    "event_id": 12,
    "active": True,
    "valid_from": "2026-01-01T00:00:00Z",
    "valid_to": "2026-12-31T23:59:59Z",
    "type": "percent",
    "amount": 20,
    "max_uses": 100,
    "current_uses": 4,
}


def make_client(handler, token="api-token"):
    return TicketingApiClient(
        base_url="https://api.example.test/",
        token=token,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


async def test_start_checkout_payload_and_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": {"session_id": "sess-1"}})

    client = make_client(handler)
    resp = await client.start_checkout(
        event_id=12,
        cart_items=[{"ticket_type_id": 4, "quantity": "2", "unit_price": 1500}],
        promo_code="SUMMER20",
    )

    assert resp["data"]["session_id"] == "sess-1"
    assert seen["url"] == "https://api.example.test/api/ticketing/checkout/start"
    assert seen["auth"] == "Bearer api-token"
    assert seen["body"] == {
        "event_id": 12,
        "cart_items": [{"ticket_type_id": 4, "quantity": 2}],
        "promo_code": "SUMMER20",
    }


async def test_no_auth_header_without_token():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "authorization" not in request.headers
        return httpx.Response(200, json={"success": True, "data": {}})

    client = make_client(handler, token="")
    await client.create_payment_intent("sess-1")


async def test_verify_payment_sends_buyer_info():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.url.path == "/api/ticketing/checkout/verify-payment"
        assert body["payment_intent_id"] == "pi_1"
        assert body["buyer_info"] == {"first_name": "Sam", "last_name": "Doe", "email": "s@example.com"}
        return httpx.Response(200, json={"success": True, "data": {"order": {"id": 1}}})

    client = make_client(handler)
    resp = await client.verify_payment(
        session_id="sess-1",
        payment_intent_id="pi_1",
        buyer_info=BuyerInfo(first_name="Sam", last_name="Doe", email="s@example.com"),
    )
    assert resp["data"]["order"]["id"] == 1


async def test_error_status_raises_with_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(410, json={"success": False, "message": "Session has expired"})

    client = make_client(handler)
    with pytest.raises(TicketingApiError) as exc:
        await client.complete_checkout({"session_id": "sess-1"})

    assert exc.value.status_code == 410
    assert exc.value.detail == "Session has expired"


async def test_error_with_non_json_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad Gateway")

    client = make_client(handler)
    with pytest.raises(TicketingApiError) as exc:
        await client.create_payment_intent("sess-1")

    assert exc.value.detail == "Bad Gateway"


async def test_lookup_promo_code():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/ticketing/events/12/promo-codes/lookup"
        assert request.url.params["code"] == "SUMMER20"
        return httpx.Response(200, json={"success": True, "data": PROMO})

    promo = await make_client(handler).lookup_promo_code("SUMMER20", 12)

    assert promo.code == "SUMMER20"
    assert promo.type == "percent"
    assert promo.valid_to.tzinfo is not None


async def test_lookup_promo_code_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"success": False, "message": "Not found"})

    assert await make_client(handler).lookup_promo_code("NOPE", 12) is None


async def test_get_ticket_type():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/ticketing/events/12/ticket-types/4"
        return httpx.Response(
            200,
            json={
                "data": {
                    "id": 4,
                    "event_id": 12,
                    "transfer_allowed": True,
                    "refundable": False,
                    "event_start_date": "2026-09-01T19:00:00Z",
                }
            },
        )

    info = await make_client(handler).get_ticket_type(12, 4)

    assert info.transfer_allowed is True
    assert info.refundable is False
    assert info.event_start_date.year == 2026
