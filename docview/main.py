# File: /docview/main.py | Version: 2.0 | Title: FastAPI App (document view reference API)
from __future__ import annotations

from fastapi import FastAPI

from docview import __version__
from docview.core.config import settings
from docview.core.logging import configure_logging
from docview.observability.sentry import init_sentry_if_configured
from docview.routers import health, modules, properties, records, views

# Initialize logging & observability
configure_logging()
init_sentry_if_configured()


def create_app() -> FastAPI:
    app = FastAPI(title="Document View API", version=__version__)

    app.include_router(health.router)
    app.include_router(modules.router)
    app.include_router(views.router)
    app.include_router(properties.router)
    app.include_router(records.router)

    # Envelope-shaped error responses (the client facade relies on them)
    if getattr(settings, "ENABLE_STD_ERRORS", True):
        from docview.core.error_handlers import register_exception_handlers

        register_exception_handlers(app)
    return app


app = create_app()
