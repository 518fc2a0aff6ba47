import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# IMPORTANT:
# This imports ALL models so SQLAlchemy registers tables correctly
import ticketing.models  # noqa: F401
from ticketing.core.config import settings
from ticketing.core.db import create_all
from ticketing.core.security import get_qr_signer

# Routers
from ticketing.routers.fees import router as fees_router
from ticketing.routers.promo import router as promo_router
from ticketing.routers.tickets import router as tickets_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Fail at boot, not at the first scan, when the QR key is missing in production
    get_qr_signer()
    await create_all()
    yield


app = FastAPI(title="Parlomo Ticketing", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Fees & payouts
app.include_router(fees_router)

# Promo codes
app.include_router(promo_router)

# Tickets, scanner
app.include_router(tickets_router)
