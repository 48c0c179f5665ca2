"""Pytest configuration and shared fixtures."""

import uuid
from datetime import date
from types import SimpleNamespace
from typing import Any, Dict, Iterable, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from docsync.config import Settings
from docsync.main import app
from docsync.models.documents import StoredDocument
from docsync.models.reconciliation import DocumentSummary
from docsync.models.result import Result
from docsync.services.document_fetcher import FetchedDocument
from docsync.services.reconciliation.analysis import AnalysisOrchestrator
from docsync.services.reconciliation.candidate_scanner import CandidateScanner
from docsync.services.reconciliation.label_master import LabelMasterLoader
from docsync.services.reconciliation.persistence import PersistenceWriter
from docsync.services.reconciliation.runner import ReconciliationRunner
from docsync.utils.exceptions import DuplicateDocumentError


class FakeClientInfoRepository:
    """In-memory stand-in for ClientInfoRepository."""

    def __init__(self, records: Optional[List[SimpleNamespace]] = None):
        self.records = records or []
        self.replaced: List[Any] = []

    def add(self, kaipoke_cs_id: str, documents: Any) -> SimpleNamespace:
        record = SimpleNamespace(id=uuid.uuid4(), kaipoke_cs_id=kaipoke_cs_id, documents=documents)
        self.records.append(record)
        return record

    async def list_with_documents(self) -> List[SimpleNamespace]:
        return [r for r in self.records if r.documents is not None]

    async def get_by_owner_key(self, kaipoke_cs_id: str) -> Optional[SimpleNamespace]:
        return next((r for r in self.records if r.kaipoke_cs_id == kaipoke_cs_id), None)

    async def replace_documents(self, client_info_id, documents) -> bool:
        for record in self.records:
            if record.id == client_info_id:
                record.documents = documents
                self.replaced.append(documents)
                return True
        return False


class FakeDocumentTypeRepository:
    """In-memory stand-in for DocumentTypeRepository."""

    def __init__(self, labels: Optional[Dict[str, str]] = None):
        self.rows = [
            SimpleNamespace(id=type_id, label=label, category="cs_doc", is_active=True)
            for label, type_id in (labels or {}).items()
        ]

    async def list_active(self, category: str) -> List[SimpleNamespace]:
        return [r for r in self.rows if r.category == category and r.is_active]


class FakeClientDocumentRepository:
    """In-memory normalized store keyed by URL that records every write."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.inserts: List[Dict[str, Any]] = []
        self.updates: List[Dict[str, Any]] = []

    def seed(self, url: str, **fields) -> Dict[str, Any]:
        row = {
            "id": uuid.uuid4(),
            "url": url,
            "kaipoke_cs_id": None,
            "doc_type_id": None,
            "doc_name": None,
            "applicable_date": None,
            "cs_documents_entry_id": None,
            "ocr_text": None,
            "summary": None,
        }
        row.update(fields)
        self.rows[url] = row
        return row

    async def fetch_by_urls(self, urls: Iterable[str]) -> Dict[str, StoredDocument]:
        result = {}
        for url in set(urls):
            row = self.rows.get(url)
            if row is not None:
                result[url] = StoredDocument(
                    id=row["id"],
                    url=url,
                    owner_key=row["kaipoke_cs_id"],
                    doc_type_id=row["doc_type_id"],
                    doc_name=row["doc_name"],
                    applicable_date=row["applicable_date"],
                    entry_id=row["cs_documents_entry_id"],
                )
        return result

    async def update_metadata(
        self, document_id, doc_name, applicable_date, doc_type_id, entry_id, owner_key
    ) -> bool:
        for row in self.rows.values():
            if row["id"] == document_id:
                changes = {
                    "doc_name": doc_name,
                    "applicable_date": applicable_date,
                    "doc_type_id": doc_type_id,
                    "cs_documents_entry_id": entry_id,
                    "kaipoke_cs_id": owner_key,
                }
                row.update(changes)
                self.updates.append({"url": row["url"], **changes})
                return True
        return False

    async def insert_document(self, **fields) -> Dict[str, Any]:
        if fields["url"] in self.rows:
            raise DuplicateDocumentError(f"cs_docs already has a row for url {fields['url']}")
        row = {"id": uuid.uuid4(), **fields}
        self.rows[fields["url"]] = row
        self.inserts.append(row)
        return row


@pytest.fixture
def test_client() -> TestClient:
    """Create FastAPI test client.

    Returns:
        TestClient: FastAPI test client instance
    """
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest.fixture
def test_settings() -> Settings:
    """Settings with every credential filled in and no .env lookup."""
    return Settings(
        _env_file=None,
        ocr_application_id="app-id",
        ocr_api_key="ocr-key",
        ocr_endpoint="https://ocr.example.com",
        openai_api_key="sk-test",
        cron_secret="cron-secret",
    )


@pytest.fixture
def client_repository() -> FakeClientInfoRepository:
    return FakeClientInfoRepository()


@pytest.fixture
def document_repository() -> FakeClientDocumentRepository:
    return FakeClientDocumentRepository()


@pytest.fixture
def type_repository() -> FakeDocumentTypeRepository:
    return FakeDocumentTypeRepository({"保険証": "type-insurance", "介護保険証": "type-care-insurance"})


@pytest.fixture
def sample_pdf_content() -> bytes:
    """Two-page PDF skeleton.

    Returns:
        bytes: Sample PDF content
    """
    return (
        b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
        b"2 0 obj\n<< /Type /Pages /Kids [3 0 R 4 0 R] /Count 2 >>\nendobj\n"
        b"3 0 obj\n<< /Type /Page /Parent 2 0 R >>\nendobj\n"
        b"4 0 obj\n<< /Type/Page /Parent 2 0 R >>\nendobj\n"
    )


@pytest.fixture
def fetcher(sample_pdf_content: bytes) -> Mock:
    fetcher = Mock()
    fetcher.fetch = AsyncMock(return_value=Result.success(FetchedDocument(content=sample_pdf_content)))
    return fetcher


@pytest.fixture
def ocr_client() -> Mock:
    client = Mock()
    client.extract_text = AsyncMock(return_value=Result.success("介護保険被保険者証 令和6年4月1日から"))
    return client


@pytest.fixture
def summarizer() -> Mock:
    summarizer = Mock()
    summarizer.summarize = AsyncMock(
        return_value=Result.success(
            DocumentSummary(
                summary="介護保険被保険者証。有効期間は2024年4月1日から。",
                applicable_date=None,
                confidence=None,
                model="gpt-4.1-mini",
            )
        )
    )
    return summarizer


@pytest.fixture
def analyzer(fetcher: Mock, ocr_client: Mock, summarizer: Mock) -> AnalysisOrchestrator:
    return AnalysisOrchestrator(fetcher=fetcher, ocr_client=ocr_client, summarizer=summarizer)


@pytest.fixture
def build_runner(
    client_repository: FakeClientInfoRepository,
    document_repository: FakeClientDocumentRepository,
    type_repository: FakeDocumentTypeRepository,
    analyzer: AnalysisOrchestrator,
):
    """Factory for runners wired to the in-memory repositories."""

    def _build(missing_credentials: Optional[List[str]] = None, today: date = date(2024, 6, 1)):
        return ReconciliationRunner(
            scanner=CandidateScanner(client_repository),
            document_repository=document_repository,
            label_loader=LabelMasterLoader(type_repository),
            analyzer=analyzer,
            writer=PersistenceWriter(document_repository),
            missing_credentials=missing_credentials,
            today=lambda: today,
        )

    return _build
