"""Main FastAPI application for the Twiller backend."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from twiller.dependencies import Services, build_services
from twiller.errors import ServiceError
from twiller.models import Error
from twiller.rate_limit import limiter
from twiller.routers import auth, chatbot, health, otp, posts, subscriptions, users

logger = logging.getLogger(__name__)


def create_app(services: Services | None = None) -> FastAPI:
    """
    Build the application.

    Pass *services* to run against explicitly constructed collaborators
    (tests do this); otherwise they are built from twiller.config.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = services or build_services()
        await svc.db.connect()
        await svc.sweeper.start()
        app.state.services = svc
        try:
            yield
        finally:
            await svc.sweeper.stop()
            for close in svc.closers:
                await close()
            await svc.db.close()

    app = FastAPI(
        title="Twiller API",
        description="Posts, passcode verification and subscription quotas",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning("%s %s failed upstream: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=Error(error=exc.code, message=exc.message, details=exc.details).model_dump(),
        )

    @app.exception_handler(RateLimitExceeded)
    async def _rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content=Error(
                error="rate_limited", message=f"Rate limit exceeded: {exc.detail}"
            ).model_dump(),
        )

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(otp.router)
    app.include_router(auth.router)
    app.include_router(subscriptions.router)
    app.include_router(chatbot.router)
    return app


app = create_app()
