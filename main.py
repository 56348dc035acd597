import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

import models  # noqa: F401
import schemas
from config import Settings, settings as default_settings
from database import Base, build_engine, build_session_factory, check_connection
from errors import install_exception_handlers
from logging_config import setup_logging
from redis_client import build_redis_client
from routers import admin, books, transactions, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Starting up library service...")

    engine = build_engine(settings.DATABASE_URL)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.redis = build_redis_client(settings.REDIS_URL)
    app.state.started_at = time.monotonic()

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database ready")
    except SQLAlchemyError as exc:
        # Keep serving; /api/health reports the outage.
        logger.error("Database connection failed at startup: %s", exc)

    yield

    logger.info("Shutting down library service...")
    if app.state.redis is not None:
        app.state.redis.close()
    engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Library Lending Service",
        description="Users, books and borrow/return transactions",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.redis = None

    install_exception_handlers(app)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000
        logger.info(
            "%s %s -> %s (%.2f ms) ip=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request.client.host if request.client else "unknown",
        )
        return response

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check endpoint
    @app.get("/api/health", tags=["System"])
    def health_check(request: Request):
        health = {
            "status": "OK",
            "uptime": round(time.monotonic() - request.app.state.started_at, 3),
            "timestamp": int(time.time() * 1000),
            "database": "connected",
        }
        try:
            check_connection(request.app.state.engine)
        except SQLAlchemyError as exc:
            logger.error("Health check failed: %s", exc)
            health["status"] = "ERROR"
            health["database"] = "disconnected"
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content=schemas.envelope(health, success=False),
            )
        return schemas.envelope(health)

    app.include_router(users.router)
    app.include_router(books.router)
    app.include_router(transactions.router)
    app.include_router(admin.router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=default_settings.PORT)
