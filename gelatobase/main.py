"""FastAPI entrypoint for the tasting log API."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.dependencies import get_settings
from .api.routers import admin, dashboard, entries, health
from .infra.logging import configure_logging


def create_app() -> FastAPI:
    """Instantiate the FastAPI app and register routers."""

    settings = get_settings()
    configure_logging(settings.logging)
    application = FastAPI(title="Gelato Base API", version="0.1.0")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    for router in (
        health.router,
        entries.router,
        admin.router,
        dashboard.router,
    ):
        application.include_router(router)
    return application


app = create_app()
