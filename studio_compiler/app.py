from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .adapters.compiler_client import (CompilerClient, CompilerClientConfig,
                                       PayloadLimits)
from .config import Settings, get_settings
from .metrics import setup_metrics
from .middleware.errors import install_error_handlers
from .middleware.logging import install_access_log_middleware
from .middleware.request_id import install_request_id_middleware
from .routers.compile import router as compile_router
from .routers.engine import router as engine_router
from .routers.health import router as health_router
from .security.cors import setup_cors
from .version import __version__


def build_compiler_client(settings: Settings, **kwargs) -> CompilerClient:
    c = settings.compiler
    return CompilerClient(
        CompilerClientConfig(
            url=c.url,
            timeout_s=c.timeout_s,
            max_retries=c.max_retries,
            backoff_base_s=c.backoff_s,
        ),
        limits=PayloadLimits(
            max_files=settings.limits.max_files,
            max_file_size=settings.limits.max_file_size,
            max_total_size=settings.limits.max_total_size,
        ),
        **kwargs,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    App lifespan: open the compiler client, close it on shutdown.
    """
    client: CompilerClient = app.state.compiler
    await client.start()
    try:
        yield
    finally:
        await client.close()


def create_app(settings: Optional[Settings] = None, *, compiler: Optional[CompilerClient] = None) -> FastAPI:
    """
    FastAPI factory. Mounts routers, middleware and metrics.

    ``compiler`` overrides the client built from settings (tests pass one
    backed by ``httpx.MockTransport``).
    """
    cfg = settings or get_settings()

    app = FastAPI(
        title="Studio Compiler",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.settings = cfg
    app.state.registry = cfg.registry()
    app.state.compiler = compiler or build_compiler_client(cfg)

    install_access_log_middleware(app)
    install_request_id_middleware(app)
    setup_cors(app, cfg.cors)
    install_error_handlers(app)
    setup_metrics(app, service_name="studio-compiler", service_version=__version__)

    app.include_router(health_router)
    app.include_router(engine_router)
    app.include_router(compile_router)

    return app


__all__ = ["build_compiler_client", "create_app"]
