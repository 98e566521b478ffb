"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import api_router
from .config import get_settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if not settings.has_credentials:
        logger.warning("EXPENSE_AI_API_KEY is not set; receipts will have to be filled in manually")
    if not settings.submission_webhook_url:
        logger.warning("SUBMISSION_WEBHOOK_URL is not set; report submission will fail")
    if not settings.otp_webhook_url:
        logger.warning("OTP_WEBHOOK_URL is not set; override codes cannot be delivered")
    logger.info(f"Expense Agent API {__version__} using model {settings.vision_model}")
    yield


app = FastAPI(title="Expense Agent API", version=__version__, lifespan=lifespan)

# Allow local frontend development by enabling CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "Expense Agent API is running"}
