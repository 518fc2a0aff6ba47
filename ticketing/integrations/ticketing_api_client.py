from __future__ import annotations

import logging
from typing import Any

import httpx

from ticketing.core.config import settings
from ticketing.schemas.checkout import BuyerInfo
from ticketing.schemas.promo import PromoCode
from ticketing.schemas.tickets import TicketTypeInfo

logger = logging.getLogger(__name__)


class TicketingApiError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"Ticketing API error ({status_code}): {detail}")
        self.status_code = status_code
        self.detail = detail


class TicketingApiClient:
    """
    Client for the remote ticketing API.

    Owns checkout sessions, payment intents, order creation and promo code
    records. No retries here; callers decide their own policy.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.TICKETING_API_BASE_URL).rstrip("/")
        self.token = token if token is not None else settings.TICKETING_API_TOKEN
        self.timeout = timeout if timeout is not None else settings.TICKETING_API_TIMEOUT
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        ) as client:
            return await client.request(method, path, **kwargs)

    @staticmethod
    def _json(r: httpx.Response) -> dict[str, Any]:
        if r.status_code >= 400:
            try:
                body = r.json()
                detail = (body.get("message") or body.get("error")) if isinstance(body, dict) else None
                detail = detail or r.text
            except ValueError:
                detail = r.text
            logger.warning("Ticketing API %s %s -> %s", r.request.method, r.request.url.path, r.status_code)
            raise TicketingApiError(r.status_code, str(detail))
        return r.json()

    # -------------------------
    # Checkout
    # -------------------------

    async def start_checkout(
        self,
        *,
        event_id,
        cart_items: list[dict],
        promo_code: str | None = None,
        selected_seats: list[str] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "event_id": event_id,
            "cart_items": [
                {"ticket_type_id": item["ticket_type_id"], "quantity": int(item["quantity"])}
                for item in cart_items
            ],
        }
        if promo_code:
            payload["promo_code"] = promo_code
        if selected_seats:
            payload["selected_seats"] = list(selected_seats)

        r = await self._request("POST", "/api/ticketing/checkout/start", json=payload)
        return self._json(r)

    async def create_payment_intent(self, session_id: str) -> dict[str, Any]:
        r = await self._request(
            "POST",
            "/api/ticketing/checkout/create-payment-intent",
            json={"session_id": session_id},
        )
        return self._json(r)

    async def verify_payment(
        self,
        *,
        session_id: str,
        payment_intent_id: str,
        buyer_info: BuyerInfo,
    ) -> dict[str, Any]:
        r = await self._request(
            "POST",
            "/api/ticketing/checkout/verify-payment",
            json={
                "session_id": session_id,
                "payment_intent_id": payment_intent_id,
                "buyer_info": buyer_info.model_dump(exclude_none=True),
            },
        )
        return self._json(r)

    async def complete_checkout(self, payload: dict[str, Any]) -> dict[str, Any]:
        r = await self._request("POST", "/api/ticketing/checkout/complete", json=payload)
        return self._json(r)

    # -------------------------
    # Promo codes
    # -------------------------

    async def lookup_promo_code(self, code: str, event_id) -> PromoCode | None:
        r = await self._request(
            "GET",
            f"/api/ticketing/events/{event_id}/promo-codes/lookup",
            params={"code": code},
        )
        if r.status_code == 404:
            return None

        body = self._json(r)
        data = body.get("data", body)
        if not data:
            return None
        return PromoCode.model_validate(data)

    # -------------------------
    # Ticket types
    # -------------------------

    async def get_ticket_type(self, event_id, ticket_type_id) -> TicketTypeInfo:
        r = await self._request(
            "GET",
            f"/api/ticketing/events/{event_id}/ticket-types/{ticket_type_id}",
        )
        body = self._json(r)
        return TicketTypeInfo.model_validate(body.get("data", body))
