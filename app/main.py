"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import auth, chat, health
from app.core.auth import AuthenticationMiddleware
from app.core.config import settings
from app.core.exceptions import ChatAppException
from app.core.logging import setup_logger
from app.db.database import Base, engine

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting DeepSeek Chat Application, version={app.version}")
    if not settings.DEEPSEEK_API_KEY:
        logger.warning("DEEPSEEK_API_KEY is not configured; chat requests will fail")

    # Initialize database tables (create if they don't exist)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database tables: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Shutting down DeepSeek Chat Application")
    await engine.dispose()


async def chat_app_exception_handler(
    request: Request, exc: ChatAppException
) -> JSONResponse:
    """Render application errors as the `{"error": ...}` envelope."""
    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def create_application() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        description="Chat relay for the DeepSeek chat-completion API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc" if settings.DEBUG else None,
        servers=[
            {
                "url": f"http://localhost:{settings.DOCS_PORT}",
                "description": "Local Environment",
            }
        ],
        lifespan=lifespan,
    )

    app.add_exception_handler(ChatAppException, chat_app_exception_handler)

    # Authentication middleware (must be added before other middlewares)
    app.add_middleware(AuthenticationMiddleware)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(chat.router)

    return app


app = create_application()
