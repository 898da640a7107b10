"""Application factory that serves both the API and the browser interface."""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import create_app as create_api_app
from .config import Settings, load_settings
from .store import RecordStore
from .users import UserService
from .web import create_app as create_web_app

API_PREFIX = "/api"


def create_application(
    *,
    settings: Optional[Settings] = None,
    service: Optional[UserService] = None,
) -> FastAPI:
    """Create the combined ASGI application."""

    if settings is None:
        settings = load_settings()

    if service is None:
        store = RecordStore(settings.data_file)
        store.initialize()
        service = UserService(store)

    api_app = create_api_app(service=service)
    web_app = create_web_app(api_base_url=f"{API_PREFIX}/users")

    app = FastAPI(
        title="User Registry",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.service = service
    app.state.api = api_app
    app.state.web = web_app

    app.mount(API_PREFIX, api_app)
    app.mount("/", web_app)

    return app


__all__ = ["create_application", "API_PREFIX"]
