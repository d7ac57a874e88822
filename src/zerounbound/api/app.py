"""FastAPI application factory."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from zerounbound import __version__
from zerounbound.api.errors import zerounbound_error_handler
from zerounbound.config import get_settings
from zerounbound.errors import ContractArtifactsMissing, NoReachableEndpoint, ZeroUnboundError
from zerounbound.networks import get_default_network
from zerounbound.origination.artifacts import get_configured_artifacts
from zerounbound.origination.pipeline import OriginationPipeline
from zerounbound.session.manager import WalletSession
from zerounbound.utils.diagnostics import configure_logging

logger = logging.getLogger(__name__)


async def _build_services(app: FastAPI) -> None:
    """Create and initialize the session and pipeline for this process."""
    settings = get_settings()
    log = configure_logging(settings.debug)

    session = WalletSession(get_default_network(settings), settings=settings, log=log)
    app.state.session = session
    try:
        await session.initialize()
    except NoReachableEndpoint as e:
        # keep serving; session endpoints report the toolkit as not ready
        log.error(f"Session initialization failed: {e}")

    try:
        artifacts = get_configured_artifacts(settings)
    except ContractArtifactsMissing as e:
        log.error(str(e))
        artifacts = None

    if artifacts is None:
        log.warning("Contract artifacts not configured - deploy disabled")
    else:
        app.state.pipeline = OriginationPipeline(
            session,
            artifacts,
            confirmations=settings.confirmations,
            log=log,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    owns_session = app.state.session is None
    if owns_session:
        await _build_services(app)
    yield
    # Shutdown
    pipeline = app.state.pipeline
    if pipeline is not None:
        pipeline.reset()
    task = app.state.deploy_task
    if task is not None and not task.done():
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("Deploy in progress cancelled at shutdown")
    if owns_session and app.state.session is not None:
        await app.state.session.close()


def create_app(
    session: Optional[WalletSession] = None,
    pipeline: Optional[OriginationPipeline] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        session: Pre-built session (skips building one at startup)
        pipeline: Pre-built pipeline to go with the session
    """
    settings = get_settings()

    app = FastAPI(
        title="ZeroUnbound Deploy API",
        description="Wallet session and contract origination backend",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.session = session
    app.state.pipeline = pipeline
    app.state.deploy_task = None

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ZeroUnboundError, zerounbound_error_handler)

    # Register routes
    from zerounbound.api.routes import deploy, health, session as session_routes

    app.include_router(health.router, tags=["Health"])
    app.include_router(session_routes.router, prefix="/api/v1", tags=["Session"])
    app.include_router(deploy.router, prefix="/api/v1", tags=["Deploy"])

    return app
