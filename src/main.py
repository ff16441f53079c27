"""Entry point for the Twilio to OpenAI Realtime call relay service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.routes import health_router
from api.routes import router as api_router
from config.settings import Settings, get_settings
from db.base import dispose_db, init_db
from relay.errors import ConfigurationError

LOGGER = logging.getLogger(__name__)


def check_required_settings(settings: Settings) -> None:
    if not settings.openai_api_key:
        raise ConfigurationError("Missing OpenAI API key. Set OPENAI_API_KEY in the environment or .env file.")
    if not settings.backend_webhook_url:
        LOGGER.warning("BACKEND_WEBHOOK_URL is not set; greetings and actions will use fallbacks.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    check_required_settings(get_settings())
    await init_db()
    yield
    await dispose_db()


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Bart's Automotive Call Relay",
    description="Relays Twilio calls to the OpenAI Realtime API and dispatches backend actions.",
    lifespan=lifespan,
)
app.include_router(health_router)
app.include_router(api_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
