from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
import uvicorn

from .config import Settings, settings
from .deps import build_store
from .routers import files
from .services.file_store import SandboxedFileStore

logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    'X-Frame-Options': 'DENY',
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}


def _parse_cors_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def _apply_security_headers(response):
    for key, value in _SECURITY_HEADERS.items():
        response.headers[key] = value
    return response


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)-8s %(name)s: %(message)s',
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    if request.url.path.startswith('/api/'):
        return _apply_security_headers(JSONResponse({'detail': 'Internal server error. Please try again.'}, status_code=500))
    return _apply_security_headers(HTMLResponse('<h1>Unexpected error</h1>', status_code=500))


def create_app(cfg: Optional[Settings] = None, store: Optional[SandboxedFileStore] = None) -> FastAPI:
    cfg = cfg or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(cfg.log_level)
        if getattr(app.state, 'store', None) is None:
            app.state.store = build_store(cfg)
        logger.info('Serving %s from %s', cfg.app_name, app.state.store.root)
        yield

    app = FastAPI(title=cfg.app_name, lifespan=lifespan)
    app.state.store = store
    app.add_exception_handler(Exception, unhandled_exception_handler)

    cors_origins = _parse_cors_origins(cfg.cors_origins)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=['GET', 'POST', 'DELETE', 'OPTIONS'],
            allow_headers=['Content-Type'],
        )

    @app.middleware('http')
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        return _apply_security_headers(response)

    @app.get('/healthz')
    def healthz():
        return {'ok': True}

    app.include_router(files.router)

    if cfg.static_dir and Path(cfg.static_dir).is_dir():
        app.mount('/', StaticFiles(directory=cfg.static_dir, html=True), name='static')

    return app


app = create_app()


def run() -> None:
    uvicorn.run(app, host=settings.app_host, port=settings.app_port, log_level=settings.log_level)
