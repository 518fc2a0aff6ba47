from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

from ticketing.core.config import settings
from ticketing.schemas.checkout import BuyerInfo, CheckoutSession

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_ERROR = "Please fill in all required fields"
PAYMENT_INIT_ERROR = "Failed to initialize payment. Please try again."
PAYMENT_VERIFY_ERROR = "Payment verification failed. Please contact support."
FREE_CHECKOUT_ERROR = "Failed to complete your order. Please try again."


class CheckoutStep(str, Enum):
    INFO = "info"
    PAYMENT = "payment"
    COMPLETE = "complete"
    EXPIRED = "expired"


TERMINAL_STEPS = (CheckoutStep.COMPLETE, CheckoutStep.EXPIRED)


@dataclass(frozen=True)
class CheckoutState:
    step: CheckoutStep
    time_remaining: int
    payment_error: str | None = None
    client_secret: str | None = None
    processing: bool = False
    order: dict | None = None


class CheckoutGateway(Protocol):
    async def create_payment_intent(self, session_id: str) -> dict[str, Any]: ...

    async def verify_payment(
        self, *, session_id: str, payment_intent_id: str, buyer_info: BuyerInfo
    ) -> dict[str, Any]: ...

    async def complete_checkout(self, payload: dict[str, Any]) -> dict[str, Any]: ...


Listener = Callable[[CheckoutState], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _envelope_data(resp: dict[str, Any]) -> dict[str, Any]:
    data = resp.get("data")
    return data if isinstance(data, dict) else {}


def _envelope_failed(resp: dict[str, Any]) -> bool:
    return resp.get("success") is False


class CheckoutFlow:
    """
    Buyer-side checkout for one session: info -> payment -> complete.

    The countdown is advisory. It is recomputed from the wall clock on every
    poll and, at zero, forces the flow into the terminal expired step; the
    API still re-checks session validity when the order is created.
    """

    def __init__(
        self,
        session: CheckoutSession,
        gateway: CheckoutGateway,
        *,
        buyer_info: BuyerInfo | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
        interval: float | None = None,
        on_expired: Callable[[], None] | None = None,
        on_complete: Callable[[dict], None] | None = None,
    ):
        self.session = session
        self.gateway = gateway
        self.buyer_info = buyer_info or BuyerInfo()

        self._clock = clock or _utcnow
        self._sleep = sleep or asyncio.sleep
        self.interval = interval if interval is not None else settings.CHECKOUT_POLL_SECONDS
        self._on_expired = on_expired
        self._on_complete = on_complete

        self._step = CheckoutStep.INFO
        self._time_remaining = self._seconds_left()
        self._payment_error: str | None = None
        self._client_secret: str | None = None
        self._payment_intent_id: str | None = None
        self._processing = False
        self._order: dict | None = None

        self._listeners: list[Listener] = []
        self._task: asyncio.Task | None = None

    # -------------------------
    # Observable state
    # -------------------------

    @property
    def state(self) -> CheckoutState:
        return CheckoutState(
            step=self._step,
            time_remaining=self._time_remaining,
            payment_error=self._payment_error,
            client_secret=self._client_secret,
            processing=self._processing,
            order=self._order,
        )

    @property
    def step(self) -> CheckoutStep:
        return self._step

    @property
    def is_terminal(self) -> bool:
        return self._step in TERMINAL_STEPS

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)

    # -------------------------
    # Countdown
    # -------------------------

    def _seconds_left(self) -> int:
        delta = (self.session.expires_at - self._clock()).total_seconds()
        return max(0, math.floor(delta))

    def start(self) -> None:
        """Compute the countdown now, then poll every `interval` seconds."""
        if self._task is not None:
            return
        self.tick()
        if self.is_terminal:
            return
        self._task = asyncio.get_running_loop().create_task(self._poll())

    async def _poll(self) -> None:
        while not self.is_terminal:
            await self._sleep(self.interval)
            self.tick()

    def close(self) -> None:
        """Stop the countdown; call when the checkout view goes away."""
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    def tick(self) -> int:
        if self.is_terminal:
            return self._time_remaining

        self._time_remaining = self._seconds_left()
        if self._time_remaining == 0:
            self._expire()
        else:
            self._notify()
        return self._time_remaining

    def _expire(self) -> None:
        logger.info("Checkout session %s expired at step %s", self.session.session_id, self._step.value)
        self._step = CheckoutStep.EXPIRED
        self._client_secret = None
        self._payment_intent_id = None
        self._payment_error = None
        self._processing = False
        self._order = None
        self.buyer_info = BuyerInfo()
        self.close()
        self._notify()
        if self._on_expired is not None:
            self._on_expired()

    # -------------------------
    # Commands
    # -------------------------

    def update_buyer_info(self, **fields) -> None:
        if self.is_terminal:
            return
        self.buyer_info = self.buyer_info.model_copy(update=fields)
        self._notify()

    def _set_error(self, message: str) -> None:
        self._payment_error = message
        self._notify()

    def _begin(self) -> None:
        self._processing = True
        self._payment_error = None
        self._notify()

    async def proceed_to_payment(self) -> bool:
        """info -> payment, or straight to complete for free orders."""
        if self._step is not CheckoutStep.INFO or self._processing:
            return False

        if not self.buyer_info.is_complete():
            self._set_error(REQUIRED_FIELDS_ERROR)
            return False

        if self.tick() == 0:
            return False

        self._begin()
        try:
            resp = await self.gateway.create_payment_intent(self.session.session_id)
        except Exception:
            logger.warning("Payment intent creation failed for %s", self.session.session_id, exc_info=True)
            self._processing = False
            if not self.is_terminal:
                self._set_error(PAYMENT_INIT_ERROR)
            return False
        self._processing = False

        # the countdown may have run out while we were waiting
        if self.is_terminal:
            return False

        if _envelope_failed(resp):
            self._set_error(resp.get("message") or PAYMENT_INIT_ERROR)
            return False

        data = _envelope_data(resp)
        if data.get("requires_payment") is False:
            return await self._complete_free_checkout()

        client_secret = data.get("client_secret")
        if not client_secret:
            self._set_error(PAYMENT_INIT_ERROR)
            return False

        self._client_secret = client_secret
        self._payment_intent_id = data.get("payment_intent_id")
        self._step = CheckoutStep.PAYMENT
        logger.info("Checkout %s moved to payment", self.session.session_id)
        self._notify()
        return True

    async def _complete_free_checkout(self) -> bool:
        s = self.session
        payload = {
            "session_id": s.session_id,
            "event_id": s.event_id,
            "cart_items": [item.model_dump() for item in s.cart_items],
            "buyer_info": self.buyer_info.model_dump(exclude_none=True),
            "subtotal": s.subtotal,
            "discount": s.discount,
            "fees": s.fees,
            "tax": s.tax,
            "total": s.total,
            "promo_code": s.promo_code,
            "promo_code_id": s.promo_code_id,
            "payment_intent_id": None,
            "payment_method": "free",
        }

        self._begin()
        try:
            resp = await self.gateway.complete_checkout(payload)
        except Exception:
            logger.warning("Free checkout failed for %s", s.session_id, exc_info=True)
            self._processing = False
            if not self.is_terminal:
                self._set_error(FREE_CHECKOUT_ERROR)
            return False
        self._processing = False

        if self.is_terminal:
            return False
        if _envelope_failed(resp):
            self._set_error(resp.get("message") or FREE_CHECKOUT_ERROR)
            return False

        data = _envelope_data(resp)
        self._complete(data.get("order") or data)
        return True

    async def handle_payment_success(self, payment_intent_id: str) -> bool:
        """Gateway confirmed the card payment; ask the API to verify and create the order."""
        if self._step is not CheckoutStep.PAYMENT or self._processing:
            return False

        self._begin()
        try:
            resp = await self.gateway.verify_payment(
                session_id=self.session.session_id,
                payment_intent_id=payment_intent_id,
                buyer_info=self.buyer_info,
            )
        except Exception:
            logger.warning("Payment verification failed for %s", self.session.session_id, exc_info=True)
            self._processing = False
            if not self.is_terminal:
                self._set_error(PAYMENT_VERIFY_ERROR)
            return False
        self._processing = False

        if self.is_terminal:
            return False
        if _envelope_failed(resp):
            self._set_error(resp.get("message") or PAYMENT_VERIFY_ERROR)
            return False

        data = _envelope_data(resp)
        self._complete(data.get("order") or data)
        return True

    def handle_payment_error(self, message: str) -> None:
        if self.is_terminal:
            return
        self._set_error(message)

    def back_to_info(self) -> None:
        if self._step is not CheckoutStep.PAYMENT or self._processing:
            return
        self._step = CheckoutStep.INFO
        self._client_secret = None
        self._payment_intent_id = None
        self._payment_error = None
        self._notify()

    def _complete(self, order: dict) -> None:
        logger.info("Checkout %s complete", self.session.session_id)
        self._step = CheckoutStep.COMPLETE
        self._order = order
        self._client_secret = None
        self.close()
        self._notify()
        if self._on_complete is not None:
            self._on_complete(order)


async def start_checkout_flow(
    gateway,
    *,
    event_id,
    cart_items: list[dict],
    promo_code: str | None = None,
    selected_seats: list[str] | None = None,
    **flow_kwargs,
) -> CheckoutFlow:
    """
    Create the session through the API and return a running flow.

    API errors from the start call propagate: there is no flow to report them on yet.
    """
    resp = await gateway.start_checkout(
        event_id=event_id,
        cart_items=cart_items,
        promo_code=promo_code,
        selected_seats=selected_seats,
    )
    data = resp.get("data") or resp.get("session") or resp
    session = CheckoutSession.model_validate(data)

    flow = CheckoutFlow(session, gateway, **flow_kwargs)
    flow.start()
    return flow
