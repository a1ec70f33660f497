"""FastAPI application entrypoint.

Wires settings, middleware, static/media file serving and the feature
routers listed in `settings.INSTALLED_APPS`:

- catalog:  server-rendered product pages (`views.py`)
- accounts: browser login/registration (`accounts.py`)
- admin:    staff management pages (`admin.py`)
- api:      JSON endpoints under /auth and /api (`api.py`)

Any other entry names an importable package exposing `views.router`,
such as one generated by `manage.py startapp`.
"""

import importlib
import json
import logging
import time
import uuid

from fastapi import APIRouter, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware

from . import accounts, admin, api, views
from .auth import LoginRequired
from .config import Settings, settings
from .database import create_db_and_tables
from .templating import render
from .utils.staticfiles import PACKAGE_STATIC

APPS = {
    'catalog': views.router,
    'accounts': accounts.router,
    'admin': admin.router,
    'api': api.router,
}
JSON_PREFIXES = ('/api/', '/auth/')

logger = logging.getLogger("storefront.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)


def resolve_router(name: str) -> APIRouter:
    """Return the router of a built-in app or of the package `<name>.views`."""
    if name in APPS:
        return APPS[name]
    try:
        module = importlib.import_module(f"{name}.views")
    except ModuleNotFoundError as e:
        if e.name not in (name, f"{name}.views"):
            raise
        raise RuntimeError(f"INSTALLED_APPS entry {name!r} is not importable as {name}.views")
    router = getattr(module, 'router', None)
    if not isinstance(router, APIRouter):
        raise RuntimeError(f"{name}.views does not define an APIRouter named 'router'")
    return router


def static_directory(conf: Settings):
    """Collected assets are only served once DEBUG is off; in development the
    package directory is served directly so edits show up without collecting."""
    if not conf.DEBUG and conf.STATIC_ROOT.exists():
        return conf.STATIC_ROOT
    return PACKAGE_STATIC


async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(url=exc.login_url, status_code=303)


async def html_http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render the 404 page for browser routes; JSON everywhere else."""
    if exc.status_code == 404 and not request.url.path.startswith(JSON_PREFIXES):
        return render(request, '404.html', {'detail': exc.detail}, status_code=404)
    return await http_exception_handler(request, exc)


def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


def create_app(conf: Settings = settings) -> FastAPI:
    """Build the application for `conf`."""
    application = FastAPI(title="Storefront", debug=conf.DEBUG)

    if conf.is_dev and conf.ALLOW_DEV_CORS:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    if conf.ALLOWED_HOSTS != ["*"]:
        application.add_middleware(TrustedHostMiddleware, allowed_hosts=conf.ALLOWED_HOSTS)
    application.middleware("http")(request_context_middleware)

    application.mount(conf.STATIC_URL.rstrip("/"), StaticFiles(directory=static_directory(conf)), name="static")
    conf.MEDIA_ROOT.mkdir(parents=True, exist_ok=True)
    application.mount(conf.MEDIA_URL.rstrip("/"), StaticFiles(directory=conf.MEDIA_ROOT), name="media")

    for app_name in conf.INSTALLED_APPS:
        application.include_router(resolve_router(app_name))

    application.add_exception_handler(LoginRequired, login_required_handler)
    application.add_exception_handler(StarletteHTTPException, html_http_exception_handler)
    application.add_api_route("/health", health, methods=["GET"])
    return application


create_db_and_tables()
app = create_app()
