"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docchat.api.routes import ask, chat, documents, metrics, realtime
from docchat.api.schemas import HealthResponse
from docchat.config import Settings
from docchat.container import Services, build_services
from docchat.exceptions import (
    ConfigurationError,
    DocChatError,
    DocumentBusyError,
    DocumentNotFoundError,
    DuplicateDocumentError,
    ExtractionError,
    MessageEditForbiddenError,
    MessageEditWindowExpiredError,
    MessageNotFoundError,
    ValidationError,
)
from docchat.utils.logger import logger, set_log_level
from docchat.utils.tracer import initialize_tracing, shutdown_tracing

VERSION = "1.0.0"

# Checked in order; the first matching class decides the status code.
ERROR_STATUS = [
    (DuplicateDocumentError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ExtractionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (DocumentNotFoundError, status.HTTP_404_NOT_FOUND),
    (MessageNotFoundError, status.HTTP_404_NOT_FOUND),
    (DocumentBusyError, status.HTTP_409_CONFLICT),
    (MessageEditForbiddenError, status.HTTP_403_FORBIDDEN),
    (MessageEditWindowExpiredError, status.HTTP_400_BAD_REQUEST),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: DocChatError) -> int:
    for error_class, status_code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; read from the environment when omitted
        services: Prebuilt service graph; built from settings at startup when omitted
    """
    settings = settings or (services.settings if services else Settings())
    set_log_level(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup/shutdown."""
        logger.info("Starting docchat")
        tracer_provider = initialize_tracing(
            service_version=VERSION,
            otlp_endpoint=settings.otlp_endpoint or None,
            tracing_enabled=settings.tracing_enabled,
        )
        owned = services is None
        app_services = build_services(settings) if owned else services

        app.state.services = app_services
        app.state.synthesizer = app_services.synthesizer
        app.state.coordinator = app_services.coordinator
        app.state.document_service = app_services.document_service
        app.state.chat_service = app_services.chat_service
        logger.info("All services initialized successfully")

        yield

        logger.info("Shutting down docchat")
        if owned:
            await app_services.close()
        else:
            await app_services.coordinator.close()
        shutdown_tracing(tracer_provider)

    app = FastAPI(
        title="docchat",
        description="Shared chat rooms with a document-grounded AI assistant",
        version=VERSION,
        lifespan=lifespan,
    )

    @app.exception_handler(DocChatError)
    async def docchat_exception_handler(request: Request, exc: DocChatError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(f"Request failed: {str(exc)}", exc_info=exc)
        content = {"detail": str(exc)}
        if isinstance(exc, DuplicateDocumentError):
            content["existing_document_id"] = exc.existing_document_id
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed JSON bodies with a readable message."""
        errors = exc.errors()
        for error in errors:
            if error.get("type") == "json_invalid":
                return JSONResponse(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    content={
                        "detail": "Invalid JSON in request body. "
                        "Please ensure text fields don't contain raw control characters.",
                        "error": "json_parse_error",
                    },
                )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        app_services: Services = request.app.state.services
        return HealthResponse(
            status="healthy",
            cache="connected" if app_services.cache.available else "unavailable",
            documents=await app_services.document_store.count(),
            connections=len(app_services.coordinator.sessions),
        )

    app.include_router(documents.router, prefix="/api/documents", tags=["documents"])
    app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
    app.include_router(ask.router, prefix="/api", tags=["ask"])
    app.include_router(metrics.router, tags=["metrics"])
    app.include_router(metrics.router, prefix="/api", tags=["metrics"])
    app.include_router(realtime.router, tags=["realtime"])
    return app


def run() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
