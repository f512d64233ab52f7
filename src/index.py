from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, load_settings
from .middleware.request_logging import RequestLoggingMiddleware
from .routes import build, frontend, system
from .services.build_service import BuildService
from .services.errors import BuildError
from .services.workspace import ensure_root

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    ensure_root(settings.temp_dir)
    logger.info(
        f"Sketch build service ready: temp_dir={settings.temp_dir}, "
        f"toolchain={' '.join(settings.cli_command)}"
    )
    yield


async def build_error_handler(request: Request, exc: BuildError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    logger.info(f"Rejected request body for {request.url.path}: {problems}")
    return JSONResponse(
        {"error": "Invalid request body", "details": problems},
        status_code=400,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(
        title="Sketch Build Service",
        version="1.0.0",
        description="Compiles Arduino sketches with arduino-cli and flashes them over serial.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.build_service = BuildService(settings)

    app.add_exception_handler(BuildError, build_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(system.router)
    app.include_router(build.router)
    # Catch-all frontend route must be registered last
    app.include_router(frontend.router)
    return app


app = create_app()
