"""docsync service: cron-triggered document reconciliation over FastAPI."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docsync.api.v1.endpoints import health
from docsync.api.v1.router import api_router
from docsync.core.database import DatabaseClient
from docsync.dependencies import get_app_settings, get_engine
from docsync.utils.exceptions import CronAuthError
from docsync.utils.logging import get_logger, set_package_level

settings = get_app_settings()

LOGGER = get_logger(__name__, level=settings.log_level)
set_package_level(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report configuration gaps and check the database before serving cron calls."""
    missing = settings.missing_ocr_credentials() + settings.missing_llm_credentials()
    if missing:
        LOGGER.error(
            "OCR/LLM configuration incomplete; reconcile runs will skip analysis",
            extra={"missing": missing},
        )
    if not settings.cron_secret:
        LOGGER.error("CRON_SECRET is missing; cron endpoints will answer 500")

    db_client = DatabaseClient(get_engine())
    try:
        await db_client.connect()
    except Exception as e:
        # Serve anyway; each run reports its own database failures
        LOGGER.error("Database unreachable at startup", exc_info=True, extra={"error": str(e)})

    LOGGER.info(
        "docsync started",
        extra={"version": settings.app_version, "environment": settings.environment},
    )
    yield

    await db_client.disconnect()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Reconciles client document lists with the normalized document store",
    lifespan=lifespan,
)


@app.exception_handler(CronAuthError)
async def cron_auth_error_handler(request: Request, exc: CronAuthError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": str(exc)})


app.include_router(api_router, prefix=settings.api_v1_prefix)
app.include_router(health.router, prefix="/health", tags=["Health"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docsync.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
