# Sourdough Planner API Main Entry Point
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import Database
from .errors import BakeError
from .infra.redis_client import close_redis
from .limiter import limiter
from .routers.bakes import router as bakes_router
from .routers.dev import router as dev_router
from .routers.genai import router as genai_router
from .routers.ingredients import router as ingredients_router
from .routers.ready import router as ready_router
from .routers.recipes import router as recipes_router
from .settings import Settings, get_settings

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger("sourdough")


def _error_body(message: str, code: str) -> dict:
    return {"detail": message, "error": code}


HTTP_ERROR_CODES = {
    400: "invalid_input",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(BakeError)
    async def bake_error_handler(request: Request, exc: BakeError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_ERROR_CODES.get(exc.status_code, "http_error")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail), code),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        return JSONResponse(status_code=400, content=_error_body(message, "invalid_input"))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = f"Internal server error: {exc}" if settings.debug else "Internal server error"
        return JSONResponse(status_code=500, content=_error_body(message, "unexpected"))


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = database or Database(settings)
        app.state.database = db
        logger.info(f"Sourdough API starting (environment={settings.environment})")
        try:
            yield
        finally:
            await close_redis()
            if database is None:
                db.dispose()

    app = FastAPI(title="Sourdough Planner API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(ready_router, prefix="/api", tags=["ready"])
    app.include_router(recipes_router, prefix="/api")
    app.include_router(ingredients_router, prefix="/api")
    app.include_router(bakes_router, prefix="/api")
    app.include_router(genai_router, prefix="/api")
    app.include_router(dev_router, prefix="/api", tags=["dev"])
    return app


app = create_app()
