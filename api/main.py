import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request

from api.shared.dtos import ErrorResponse, HealthCheckResponse
from api.shared.exceptions import ChatRelayException
from core.logging import configure_logging
from core.settings import SETTINGS, Settings
from di.container import ApplicationContainer as DependencyContainer

logger = logging.getLogger("chat")


class CustomFastAPI(FastAPI):
    container: DependencyContainer
    settings: Settings


@asynccontextmanager
async def lifespan(_app: CustomFastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()

    try:
        logger.info("Initializing database connection...")
        db_start = time.time()
        db_resource = _app.container.infrastructure.database()
        await db_resource.init()
        if _app.settings.DATABASE.AUTO_CREATE_SCHEMA:
            from api.shared.entities.registry import BaseEntity

            await db_resource.create_schema(BaseEntity.metadata)
        logger.info(
            f"✅ Database connection established in {time.time() - db_start:.2f}s"
        )
        logger.info(
            f"✅ Application startup completed in {time.time() - start_time:.2f}s"
        )
    except Exception as e:
        logger.exception(f"❌ Failed to initialize application: {str(e)}")
        raise

    yield

    try:
        producer = _app.container.infrastructure.completion_producer()
        close = getattr(producer, "close", None)
        if close is not None:
            await close()
        db_resource = _app.container.infrastructure.database()
        if db_resource:
            await db_resource.shutdown()
        logger.info("Application shutdown complete")
    except Exception:
        logger.exception("Error during shutdown")


def _error_response(status_code: int, error: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, details=details).to_content(),
    )


def register_exception_handlers(_app: FastAPI) -> None:
    @_app.exception_handler(ChatRelayException)
    async def chat_relay_exception_handler(request: Request, exc: ChatRelayException):
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")
        return _error_response(exc.status_code, exc.message, exc.details.get("reason"))

    @_app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        return _error_response(400, "Validation Error", str(exc))

    @_app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail))

    @_app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _error_response(500, "Internal Server Error", str(exc))


def create_fastapi_app(settings: Optional[Settings] = None) -> CustomFastAPI:
    settings = settings or SETTINGS
    configure_logging(settings.APP)

    _app = CustomFastAPI(
        title="Chat Relay API",
        description="Streams LLM chat completions and persists per-session history",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    _app.settings = settings

    # Initialize dependency container
    _app.container = DependencyContainer()
    _app.container.config.from_dict(settings.model_dump())
    _app.container.init_resources()

    _app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include feature routers
    from api.features.chat.router import router as chat_router
    from api.features.conversation.router import router as conversation_router

    _app.include_router(conversation_router, prefix="/api", tags=["Conversation"])
    _app.include_router(chat_router, prefix="/api", tags=["Chat"])

    @_app.get("/api/health", response_model=HealthCheckResponse, tags=["Health"])
    async def health():
        return HealthCheckResponse(status="OK")

    register_exception_handlers(_app)
    return _app


app = create_fastapi_app()
