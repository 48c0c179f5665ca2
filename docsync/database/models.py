"""SQLAlchemy models for the client document tables."""

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, TIMESTAMP, Boolean, Date, Float, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from docsync.core.database import Base

JSONType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


class ClientInfo(Base):
    """Client (利用者) record owning the embedded ``documents`` list.

    The list is written by the client edit screens and RPA imports; this
    service only reads it, except for :class:`SourceListSync` write-backs.
    """

    __tablename__ = "cs_kaipoke_info"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    kaipoke_cs_id: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Array of entries, a JSON-encoded string of one, or NULL
    documents: Mapped[Any | None] = mapped_column(JSONType, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class DocumentTypeMaster(Base):
    """Document type master row (label -> type id)."""

    __tablename__ = "user_doc_master"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    label: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ClientDocument(Base):
    """Normalized document row, one per distinct file URL."""

    __tablename__ = "cs_docs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    url: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    kaipoke_cs_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="documents_json")
    doc_type_id: Mapped[str | None] = mapped_column(String, nullable=True)
    doc_name: Mapped[str | None] = mapped_column(String, nullable=True)
    ocr_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    applicable_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    doc_date_raw: Mapped[str | None] = mapped_column(String, nullable=True)
    cs_documents_entry_id: Mapped[str | None] = mapped_column(String, nullable=True)
    llm_model: Mapped[str | None] = mapped_column(String, nullable=True)
    classification_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    meta: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )
