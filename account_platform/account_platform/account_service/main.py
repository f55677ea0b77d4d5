from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging

from .config import Settings, get_settings
from .errors import AccountError
from .routes import account, health
from .service import AccountService

logger = logging.getLogger(__name__)


def _field_name(loc) -> str:
    # ("body", "points") -> "points"; a missing body reports as "body"
    parts = [str(part) for part in loc if part != "body"]
    return ".".join(parts) or "body"


def create_app(settings: Optional[Settings] = None, service: Optional[AccountService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    When ``service`` is given it is used as-is (and left open on shutdown);
    otherwise one is built from ``settings`` at startup and closed on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_service = app.state.account_service is None
        if owns_service:
            app.state.account_service = AccountService.from_settings(settings)
            logger.info("Account service started: environment=%s, data_dir=%s", settings.ENVIRONMENT, settings.DATA_DIR)
        yield
        if owns_service:
            app.state.account_service.close()
            app.state.account_service = None

    app = FastAPI(
        title="Account Service",
        description="User registration, login and profile management",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.account_service = service

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AccountError)
    async def account_error_handler(request: Request, exc: AccountError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        fields = sorted({_field_name(err.get("loc", ())) for err in exc.errors()})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"Invalid value for: {', '.join(fields)}", "fields": fields},
        )

    app.include_router(account.router)
    app.include_router(health.router)

    @app.get("/")
    def root():
        return {"message": "hello world"}

    return app


app = create_app()
