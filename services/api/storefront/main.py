"""FastAPI application entry point.

Seasonal Storefront API: the active season's curated Avasam products with
live prices (VAT-inclusive, marked up, GBP) and cached shipping quotes.

Startup never fails on a missing backing service: without Postgres the API
reports "no active season", without Redis shipping refreshes run unlocked.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.routes import api_router
from storefront.schemas import error_response
from storefront.services.avasam_client import close_avasam_client
from storefront.settings import get_settings
from storefront.stores.postgres import close_db, init_db, ping_db
from storefront.stores.redis import close_redis, init_redis

logger = logging.getLogger("uvicorn.error")

HTTP_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


async def _start_postgres() -> bool:
    try:
        await init_db()
        await ping_db()
    except Exception:
        logger.exception("Postgres unavailable at startup")
        return False
    return True


async def _start_redis() -> bool:
    try:
        await init_redis()
    except Exception as e:
        logger.warning(f"Redis unavailable, shipping refresh will run unlocked: {e}")
        return False
    return True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    postgres_ok = await _start_postgres()
    redis_ok = await _start_redis()
    logger.info(f"Storefront API started (postgres={postgres_ok}, redis={redis_ok})")

    yield

    await close_avasam_client()
    await close_redis()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Seasonal product catalogue with live supplier pricing and shipping",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        return error_response(exc.status_code, code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = str(exc) if settings.debug else "Internal server error"
        return error_response(500, "INTERNAL_ERROR", message)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Liveness probe (does not touch Postgres or Avasam)."""
        return {"ok": True}

    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
