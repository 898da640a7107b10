"""Browser interface for the user registry."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

logger = logging.getLogger("user_registry.web")

PACKAGE_DIR = Path(__file__).resolve().parent
TEMPLATE_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

DEFAULT_API_BASE_URL = "/api/users"
MESSAGE_TIMEOUT_MS = 5000


def _template_environment(api_base_url: str) -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
    templates.env.globals["api_base_url"] = api_base_url
    templates.env.globals["message_timeout_ms"] = MESSAGE_TIMEOUT_MS
    return templates


def register_ui_routes(app: FastAPI, *, api_base_url: str = DEFAULT_API_BASE_URL) -> None:
    """Expose the single-page interface and its static assets on ``app``."""

    templates = _template_environment(api_base_url)
    if STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    else:
        logger.warning("Static asset directory %s is missing", STATIC_DIR)

    router = APIRouter(include_in_schema=False)

    @router.get("/", response_class=HTMLResponse, name="ui_index")
    async def index(request: Request) -> HTMLResponse:
        return templates.TemplateResponse(request, "index.html", {"title": "User Registration"})

    app.include_router(router)


def create_app(*, api_base_url: str = DEFAULT_API_BASE_URL) -> FastAPI:
    """Create the web-only application serving the page and its assets."""

    app = FastAPI(
        title="User Registry Interface",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    register_ui_routes(app, api_base_url=api_base_url)
    return app


__all__ = ["create_app", "register_ui_routes", "MESSAGE_TIMEOUT_MS"]
