"""Middleware registration."""

from fastapi import FastAPI

from prepquest.config import Settings
from prepquest.middleware.cors import setup_cors
from prepquest.middleware.error_handler import setup_error_handlers
from prepquest.middleware.logging import setup_logging
from prepquest.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware.

    Starlette runs middleware in reverse-add order, so CORS (added last) is
    outermost and also wraps error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
