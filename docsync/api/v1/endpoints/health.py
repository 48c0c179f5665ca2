"""Readiness of the reconciliation service."""

from typing import Annotated, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from docsync.config import Settings
from docsync.core.database import DatabaseClient
from docsync.dependencies import get_app_settings, get_engine

router = APIRouter()


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="'healthy', or 'degraded' when runs cannot do all their work")
    version: str
    database: str = Field(..., description="Database probe status")
    analysis_enabled: bool = Field(..., description="Whether OCR and LLM credentials are configured")
    missing_config: List[str] = Field(default_factory=list)


async def get_database_client() -> DatabaseClient:
    return DatabaseClient(get_engine())


@router.get(
    "/",
    response_model=HealthCheckResponse,
    summary="Service readiness",
    operation_id="get_service_health_status",
)
async def health_check(
    settings: Annotated[Settings, Depends(get_app_settings)],
    db_client: Annotated[DatabaseClient, Depends(get_database_client)],
) -> HealthCheckResponse:
    db_health = await db_client.health_check()
    missing_analysis = settings.missing_ocr_credentials() + settings.missing_llm_credentials()
    missing = list(missing_analysis)
    if not settings.cron_secret:
        missing.append("CRON_SECRET")

    healthy = db_health["status"] == "healthy" and not missing
    return HealthCheckResponse(
        status="healthy" if healthy else "degraded",
        version=settings.app_version,
        database=db_health["status"],
        analysis_enabled=not missing_analysis,
        missing_config=missing,
    )
