"""FastAPI application entrypoint.

Sports Arbitrage & Hedge Recommendation Engine

ADVISORY-ONLY: This system does not place bets.
All actions must be executed by humans.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import register_exception_handlers, router
from .config import Settings
from .engine.instructions import generate_disclaimer
from .services import Services, build_services
from .utils.logging import setup_logging

logger = structlog.get_logger()


def create_app(services: Services | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the app around one Services instance."""
    if services is None:
        settings = settings or Settings()
        setup_logging(settings.log_level)
        services = build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("app_starting", disclaimer=generate_disclaimer())
        await services.startup()
        yield
        logger.info("app_stopping")
        await services.shutdown()

    app = FastAPI(
        title="Sports Arbitrage & Hedge Engine",
        description="""
    Jurisdiction-aware sports arbitrage detection and hedge recommendations.

    **ADVISORY-ONLY**: This system provides information only.
    No bets are placed automatically. All betting decisions
    and executions must be made by humans.

    Features:
    - Credit-conscious scan estimates before any paid provider call
    - Arbitrage detection limited to sportsbooks legal in every selected jurisdiction
    - Ranked opportunities with exact stake sizing
    - Hedge suggestions for tracked bets
    """,
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,  # Must be False when using "*"
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/")
    async def root():
        return {
            "message": "Sports Arbitrage & Hedge Engine",
            "docs": "/docs",
            "api": "/api",
            "disclaimer": generate_disclaimer(),
        }

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "arbwatch.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )
