# converter_service/main.py
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from converter_service.api.convert import router as convert_router
from converter_service.api.tokens import router as tokens_router
from converter_service.core.auth import AuthRejected, auth_rejected_handler
from converter_service.core.config import Settings, settings as default_settings
from converter_service.core.converter import Converter, SofficeConverter
from converter_service.core.cors import cors_options
from converter_service.core.crypto import AuthGate, ConfigurationError
from converter_service.core.logging import configure_logging

SERVICE_NAME = "document-converter-service"

logger = structlog.get_logger(__name__)


def build_router(expose_token_minting: bool) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health():
        return {"status": "ok", "service": SERVICE_NAME}

    router.include_router(convert_router, prefix="/convert", tags=["convert"])
    if expose_token_minting:
        router.include_router(tokens_router, prefix="/auth", tags=["auth"])
    return router


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": "Unexpected error"},
    )


def create_app(
    settings: Settings | None = None,
    *,
    auth_gate: AuthGate | None = None,
    converter: Converter | None = None,
) -> FastAPI:
    """Assemble the application.

    Raises ConfigurationError when no usable JWT secret is configured.
    """
    if settings is None:
        settings = default_settings
    gate = auth_gate or AuthGate.from_settings(settings)
    expose_minting = settings.is_development

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "service_started",
            environment=settings.environment,
            token_minting=expose_minting,
        )
        yield

    app = FastAPI(title="Document Converter Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.auth_gate = gate
    app.state.converter = converter or SofficeConverter(
        settings.soffice_bin, timeout=settings.conversion_timeout_sec
    )

    app.add_middleware(CORSMiddleware, **cors_options(settings))
    app.add_exception_handler(AuthRejected, auth_rejected_handler)
    app.add_exception_handler(Exception, _unhandled_error)
    app.include_router(build_router(expose_minting))
    return app


def run() -> None:
    """Serve with uvicorn on HOST:PORT. Exits with status 1 if misconfigured."""
    import uvicorn

    configure_logging(default_settings.log_format, default_settings.log_level)
    try:
        app = create_app(default_settings)
    except ConfigurationError as e:
        logger.critical("startup_failed", error=str(e))
        raise SystemExit(1) from e

    uvicorn.run(app, host=default_settings.host, port=default_settings.port, log_config=None)


if __name__ == "__main__":
    run()
