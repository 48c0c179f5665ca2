"""Centralized dependency injection for the FastAPI application.

Settings, engine and session factory are built once per process; services
are built per request around that request's session.
"""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from docsync.config import Settings, get_settings
from docsync.core.database import create_engine, create_session_maker
from docsync.repositories.client_document_repository import ClientDocumentRepository
from docsync.repositories.document_type_repository import DocumentTypeRepository
from docsync.services.reconciliation.doc_type_backfill import DocTypeBackfill
from docsync.services.reconciliation.label_master import LabelMasterLoader
from docsync.services.reconciliation.runner import ReconciliationRunner


@lru_cache
def get_app_settings() -> Settings:
    """Get the process-wide settings instance."""
    return get_settings()


@lru_cache
def get_engine() -> AsyncEngine:
    return create_engine(get_app_settings())


@lru_cache
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return create_session_maker(get_engine())


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting async database session.

    Yields:
        AsyncSession: Database session
    """
    async with get_session_maker()() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_reconciliation_runner(
    settings: Annotated[Settings, Depends(get_app_settings)],
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
) -> ReconciliationRunner:
    """Get a reconciliation runner bound to the request's session.

    Args:
        settings: Application settings
        db_session: Database session from dependency injection

    Returns:
        ReconciliationRunner: Runner with production collaborators
    """
    return ReconciliationRunner.from_settings(settings, db_session)


async def get_doc_type_backfill(
    settings: Annotated[Settings, Depends(get_app_settings)],
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
) -> DocTypeBackfill:
    """Get a document type backfill bound to the request's session."""
    return DocTypeBackfill(
        document_repository=ClientDocumentRepository(db_session),
        label_loader=LabelMasterLoader(
            DocumentTypeRepository(db_session), category=settings.document_type_category
        ),
    )
