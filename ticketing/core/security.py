from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache

import jwt

from ticketing.core.config import settings

logger = logging.getLogger(__name__)

QR_ISSUER = "parlomo-ticketing"
QR_SUBJECT = "ticket-qr"
QR_TTL = timedelta(days=365)


class SigningKeyMissing(Exception):
    pass


class QRTokenStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass(frozen=True)
class QRClaims:
    ticket_id: int | str | None
    ticket_code: str
    event_id: int | str | None
    ticket_type_id: int | str | None
    order_id: int | str | None
    issued_at: int


class QRSigner:
    """Signs and verifies ticket QR payloads (HS256 JWT)."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        issuer: str = QR_ISSUER,
        subject: str = QR_SUBJECT,
        ttl: timedelta = QR_TTL,
    ):
        if not secret:
            raise SigningKeyMissing("QR signing secret is required.")
        self._secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.subject = subject
        self.ttl = ttl

    def generate_qr_payload(
        self,
        *,
        ticket_id,
        ticket_code: str,
        event_id,
        ticket_type_id,
        order_id,
        now: datetime | None = None,
    ) -> str:
        issued = now or datetime.now(timezone.utc)
        payload = {
            "ticketId": ticket_id,
            "ticketCode": ticket_code,
            "eventId": event_id,
            "ticketTypeId": ticket_type_id,
            "orderId": order_id,
            "iat": int(issued.timestamp()),
            "exp": int((issued + self.ttl).timestamp()),
            "iss": self.issuer,
            "sub": self.subject,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def _decode(self, token: str) -> dict:
        return jwt.decode(
            token,
            self._secret,
            algorithms=[self.algorithm],
            issuer=self.issuer,
            subject=self.subject,
            options={"require": ["exp", "iat", "iss", "sub"]},
        )

    def verify_qr_payload(self, token: str) -> QRClaims | None:
        try:
            decoded = self._decode(token)
        except jwt.InvalidTokenError as e:
            logger.warning("QR verification error: %s", e)
            return None

        return QRClaims(
            ticket_id=decoded.get("ticketId"),
            ticket_code=decoded.get("ticketCode"),
            event_id=decoded.get("eventId"),
            ticket_type_id=decoded.get("ticketTypeId"),
            order_id=decoded.get("orderId"),
            issued_at=decoded["iat"],
        )

    def qr_token_status(self, token: str) -> QRTokenStatus:
        try:
            self._decode(token)
        except jwt.ExpiredSignatureError:
            return QRTokenStatus.EXPIRED
        except jwt.InvalidTokenError:
            return QRTokenStatus.INVALID
        return QRTokenStatus.VALID

    def is_qr_expired(self, token: str) -> bool:
        # True only for an expired but otherwise well-formed token
        return self.qr_token_status(token) is QRTokenStatus.EXPIRED


def extract_ticket_code(token: str) -> str | None:
    """
    Read the ticket code WITHOUT verifying the signature.

    For a quick lookup before full verification only; never authorize on it.
    """
    try:
        decoded = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None
    code = decoded.get("ticketCode") if isinstance(decoded, dict) else None
    return code or None


def is_valid_qr_format(qr_data) -> bool:
    if not qr_data or not isinstance(qr_data, str):
        return False
    return len(qr_data.split(".")) == 3


@lru_cache
def get_qr_signer() -> QRSigner:
    secret = settings.QR_SIGNING_SECRET
    if not secret:
        if settings.is_production:
            raise SigningKeyMissing("QR_SIGNING_SECRET must be set in production.")
        # dev/test only: tokens stop verifying after a restart
        logger.warning("QR_SIGNING_SECRET not set; using an ephemeral signing key.")
        secret = secrets.token_urlsafe(32)

    return QRSigner(
        secret,
        algorithm=settings.QR_JWT_ALG,
        issuer=settings.QR_ISSUER,
        subject=settings.QR_SUBJECT,
        ttl=timedelta(days=settings.QR_TTL_DAYS),
    )
