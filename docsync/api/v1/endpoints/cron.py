"""Cron-triggered batch endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from docsync.config import Settings
from docsync.core.auth import verify_cron_secret
from docsync.dependencies import get_app_settings, get_doc_type_backfill, get_reconciliation_runner
from docsync.models.reconciliation import RunOptions
from docsync.schemas.cron import BackfillResponse, RunReportResponse
from docsync.services.reconciliation.doc_type_backfill import DocTypeBackfill
from docsync.services.reconciliation.runner import ReconciliationRunner
from docsync.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter(dependencies=[Depends(verify_cron_secret)])


def parse_int_param(value: Optional[str]) -> Optional[int]:
    """Read an integer query value; anything unparseable counts as absent."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_flag_param(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() == "true"


@router.api_route(
    "/document-reconcile",
    methods=["GET", "POST"],
    response_model=RunReportResponse,
    summary="Reconcile embedded document lists",
    description="Sync metadata of known documents and analyze new ones within the run budget",
    operation_id="run_document_reconcile",
)
async def run_document_reconcile(
    settings: Annotated[Settings, Depends(get_app_settings)],
    runner: Annotated[ReconciliationRunner, Depends(get_reconciliation_runner)],
    days_back: Optional[str] = Query(None, description="Only entries acquired within this many days"),
    limit: Optional[str] = Query(None, description="Processing budget for this run"),
    dry_run: Optional[str] = Query(None, description="'true' to plan without writing"),
    verbose: Optional[str] = Query(None, description="'true' to log every decision"),
) -> JSONResponse:
    """Run one reconciliation pass; 500 when the report is not ok."""
    limit_value = parse_int_param(limit)
    options = RunOptions(
        days_back=parse_int_param(days_back),
        limit=limit_value if limit_value is not None else settings.reconcile_default_limit,
        dry_run=parse_flag_param(dry_run),
        verbose=parse_flag_param(verbose),
    )

    report = await runner.run(options)
    response = RunReportResponse.from_report(report)

    LOGGER.info(
        "Document reconcile request finished",
        extra={
            "ok": report.ok,
            "analyzed": report.analyzed_count,
            "updated_meta": report.updated_meta_count,
            "error_count": len(report.errors),
        },
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if report.ok else status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=response.model_dump(),
    )


@router.api_route(
    "/doc-type-backfill",
    methods=["GET", "POST"],
    response_model=BackfillResponse,
    summary="Backfill document types from display names",
    operation_id="run_doc_type_backfill",
)
async def run_doc_type_backfill(
    backfill: Annotated[DocTypeBackfill, Depends(get_doc_type_backfill)],
    limit: Optional[str] = Query(None, description="Rows to inspect (0 or absent = 5000)"),
) -> JSONResponse:
    """Fill ``doc_type_id`` on named but untyped rows."""
    try:
        report = await backfill.run(parse_int_param(limit) or 0)
    except SQLAlchemyError as e:
        LOGGER.error("Document type backfill failed", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": str(e)},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=BackfillResponse.from_report(report).model_dump(),
    )
