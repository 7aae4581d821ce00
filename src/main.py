"""
Main entry point for the clinic booking webhook.

This module builds the FastAPI application that serves the platform's
fulfillment requests and runs it with uvicorn.
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from loguru import logger

from config import get_settings
from models.database import init_db, create_tables
from conversation.session_store import SessionStore
from services.webhook_service import WebhookService
from error_handling.error_messages import GENERIC_APOLOGY
from error_handling.logging_config import init_logging


def create_app(service: Optional[WebhookService] = None) -> FastAPI:
    """
    Build the webhook application.

    Args:
        service: Pre-built WebhookService. When omitted, the database and
                 session store are set up from settings at startup.

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.service is None:
            settings = get_settings()
            init_logging(settings.environment, settings.log_level, settings.log_dir)
            init_db()
            create_tables()
            app.state.service = WebhookService(
                store=SessionStore(capacity=settings.session_store_capacity),
            )
        logger.info("Clinic booking webhook started")
        yield
        logger.info("Clinic booking webhook stopped")

    app = FastAPI(title="Clinic Booking Webhook", lifespan=lifespan)
    app.state.service = service

    @app.post("/webhook")
    async def webhook(request: Request) -> JSONResponse:
        """
        Fulfillment endpoint. Always answers 200 with a fulfillmentText,
        since the platform shows nothing to the user on other statuses.
        """
        try:
            payload: Any = await request.json()
        except ValueError as e:
            logger.warning(f"Webhook body is not valid JSON: {e}")
            return JSONResponse(status_code=200, content={"fulfillmentText": GENERIC_APOLOGY})

        # Blocking database work runs off the event loop
        body = await run_in_threadpool(app.state.service.process, payload)
        return JSONResponse(status_code=200, content=body)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "sessions": len(app.state.service.store) if app.state.service else 0}

    return app


app = create_app()


def run() -> None:
    """Serve the webhook with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
