"""atsbridge FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from atsbridge.api.assessments import public_router as submissions_router
from atsbridge.api.assessments import router as assessments_router
from atsbridge.api.health import router as health_router
from atsbridge.api.integrations import router as integrations_router
from atsbridge.api.invitations import public_router as validate_router
from atsbridge.api.invitations import router as invitations_router
from atsbridge.config import Settings
from atsbridge.config import settings as default_settings
from atsbridge.database import build_engine, build_session_maker
from atsbridge.engine.result_sync import ClientFactory
from atsbridge.errors import IntegrationError
from atsbridge.notifications.email import EmailSender, build_email_sender
from atsbridge.providers import client_factory as build_client_factory

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(
    settings: Settings | None = None,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    email_sender: EmailSender | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    """Build the app. Collaborators not given are built from settings."""
    settings = settings or default_settings
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if app.state.session_maker is None:
            engine = build_engine(settings.database_url, echo=settings.log_level == "DEBUG")
            app.state.session_maker = build_session_maker(engine)
        yield
        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="atsbridge - ATS Integration Service",
        description="Ashby, Greenhouse and Lever webhooks, assessment invitations and result push-back",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_maker = session_maker
    app.state.email_sender = email_sender or build_email_sender(settings)
    app.state.client_factory = client_factory or build_client_factory(
        timeout=settings.provider_timeout_seconds
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(IntegrationError)
    async def integration_error_handler(request: Request, exc: IntegrationError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": _validation_message(exc)},
        )

    app.include_router(health_router, tags=["Health"])
    app.include_router(invitations_router, prefix="/v1", tags=["Invitations"])
    app.include_router(assessments_router, prefix="/v1", tags=["Assessments"])
    app.include_router(validate_router, tags=["Invitations"])
    app.include_router(submissions_router, tags=["Assessments"])
    app.include_router(integrations_router, prefix="/integrations", tags=["Integrations"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"service": "atsbridge", "version": "0.1.0", "docs": "/docs"}

    return app


app = create_app()
