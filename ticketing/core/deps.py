from __future__ import annotations

from ticketing.core.config import settings
from ticketing.core.security import QRSigner, get_qr_signer
from ticketing.integrations.ticketing_api_client import TicketingApiClient
from ticketing.services.fees import FeeConfig


def get_fee_config() -> FeeConfig:
    return FeeConfig.from_settings(settings)


def get_signer() -> QRSigner:
    return get_qr_signer()


def get_api_client() -> TicketingApiClient:
    return TicketingApiClient()
