"""End-to-end tests for ReconciliationRunner over in-memory repositories."""

from datetime import date
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from docsync.models.reconciliation import DocumentSummary, RunOptions, RunState
from docsync.models.result import Result
from docsync.utils.exceptions import DocumentFetchError


DOC1 = "https://x/doc1"


def _entry(url, label=None, acquired_at=None, entry_id=None, doc_type_id=None):
    entry = {"url": url}
    if label is not None:
        entry["label"] = label
    if acquired_at is not None:
        entry["acquired_at"] = acquired_at
    if entry_id is not None:
        entry["id"] = entry_id
    if doc_type_id is not None:
        entry["doc_type_id"] = doc_type_id
    return entry


class TestScenarios:
    """Reconciliation of new, relabelled and over-budget documents."""

    @pytest.mark.asyncio
    async def test_new_document_is_analyzed_and_inserted(
        self, build_runner, client_repository, document_repository, ocr_client
    ):
        client_repository.add(
            "CS001", [_entry(DOC1, label="保険証", acquired_at="2024-03-01", entry_id="e1")]
        )

        report = await build_runner().run(RunOptions(limit=5))

        assert report.ok is True
        assert report.state == RunState.DONE
        assert report.scanned_docs == 1
        assert report.to_analyze_count == 1
        assert report.analyzed_count == 1
        assert report.degraded_count == 0

        assert len(document_repository.inserts) == 1
        row = document_repository.rows[DOC1]
        assert row["doc_type_id"] == "type-insurance"
        assert row["doc_name"] == "保険証"
        assert row["kaipoke_cs_id"] == "CS001"
        assert row["cs_documents_entry_id"] == "e1"
        assert row["doc_date_raw"] == "2024-03-01"
        # No date from the model: falls back to the acquisition date
        assert row["applicable_date"] == date(2024, 3, 1)
        assert row["ocr_text"].startswith("介護保険被保険者証")
        assert row["llm_model"] == "gpt-4.1-mini"

        # Two page markers in the fixture PDF
        ocr_client.extract_text.assert_awaited_once()
        assert ocr_client.extract_text.await_args.args[1] == 2

    @pytest.mark.asyncio
    async def test_unmapped_label_leaves_type_empty(
        self, build_runner, client_repository, document_repository
    ):
        client_repository.add("CS001", [_entry(DOC1, label="その他書類", acquired_at="2024-03-01")])

        await build_runner().run(RunOptions(limit=5))

        assert document_repository.rows[DOC1]["doc_type_id"] is None

    @pytest.mark.asyncio
    async def test_model_date_takes_precedence_over_acquisition_date(
        self, build_runner, client_repository, document_repository, summarizer
    ):
        summarizer.summarize.return_value = Result.success(
            DocumentSummary(
                summary="契約書", applicable_date=date(2024, 4, 1), confidence=85.0, model="gpt-4.1-mini"
            )
        )
        client_repository.add("CS001", [_entry(DOC1, label="保険証", acquired_at="2024-03-01")])

        await build_runner().run(RunOptions(limit=5))

        row = document_repository.rows[DOC1]
        assert row["applicable_date"] == date(2024, 4, 1)
        assert row["classification_confidence"] == 85.0

    @pytest.mark.asyncio
    async def test_relabelled_document_gets_metadata_update_only(
        self, build_runner, client_repository, document_repository, fetcher
    ):
        document_repository.seed(
            DOC1,
            kaipoke_cs_id="CS001",
            doc_type_id="type-insurance",
            doc_name="保険証",
            applicable_date=date(2024, 3, 1),
            cs_documents_entry_id="e1",
            ocr_text="original text",
            summary="original summary",
        )
        client_repository.add(
            "CS001", [_entry(DOC1, label="健康保険証", acquired_at="2024-03-01", entry_id="e1")]
        )

        report = await build_runner().run(RunOptions(limit=5))

        assert report.ok is True
        assert report.updated_meta_count == 1
        assert report.analyzed_count == 0
        row = document_repository.rows[DOC1]
        assert row["doc_name"] == "健康保険証"
        assert row["ocr_text"] == "original text"
        assert row["summary"] == "original summary"
        assert document_repository.inserts == []
        fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_budget_of_one_prefers_metadata_updates(
        self, build_runner, client_repository, document_repository, fetcher
    ):
        for index in range(2):
            document_repository.seed(f"https://x/known{index}", doc_name="旧ラベル")
        client_repository.add(
            "CS001",
            [_entry(f"https://x/known{index}", label="新ラベル") for index in range(2)]
            + [_entry(f"https://x/new{index}", label="保険証") for index in range(3)],
        )

        report = await build_runner().run(RunOptions(limit=1))

        assert report.updated_meta_count == 1
        assert report.analyzed_count == 0
        assert report.to_analyze_count == 0
        assert report.skipped_limit_metadata == 1
        assert report.skipped_limit_analyze == 3
        assert report.skipped_limit == 4
        assert len(document_repository.updates) == 1
        assert document_repository.inserts == []
        fetcher.fetch.assert_not_awaited()


class TestRunProperties:
    """Run-level guarantees."""

    @pytest.mark.asyncio
    async def test_second_run_writes_nothing(self, build_runner, client_repository, document_repository):
        client_repository.add(
            "CS001",
            [
                _entry(DOC1, label="保険証", acquired_at="2024-03-01T10:00:00+09:00", entry_id="e1"),
                _entry("https://x/doc2", label="介護保険証", entry_id="e2"),
            ],
        )
        document_repository.seed(
            "https://x/doc3", kaipoke_cs_id="CS001", doc_name="古い名前", cs_documents_entry_id="e3"
        )
        client_repository.add("CS002", [_entry("https://x/doc3", label="計画書", entry_id="e3")])
        runner = build_runner()

        first = await runner.run(RunOptions(limit=10))
        inserts_after_first = len(document_repository.inserts)
        updates_after_first = len(document_repository.updates)
        second = await runner.run(RunOptions(limit=10))

        assert first.analyzed_count == 2
        assert first.updated_meta_count == 1
        assert len(document_repository.inserts) == inserts_after_first
        assert len(document_repository.updates) == updates_after_first
        assert second.analyzed_count == 0
        assert second.updated_meta_count == 0
        assert second.unchanged_count == 3
        assert second.ok is True

    @pytest.mark.asyncio
    async def test_model_date_is_replaced_by_acquisition_date_once(
        self, build_runner, client_repository, document_repository, summarizer
    ):
        summarizer.summarize.return_value = Result.success(
            DocumentSummary(
                summary="契約書", applicable_date=date(2024, 4, 1), confidence=85.0, model="gpt-4.1-mini"
            )
        )
        client_repository.add("CS001", [_entry(DOC1, label="保険証", acquired_at="2024-03-01", entry_id="e1")])
        runner = build_runner()

        first = await runner.run(RunOptions(limit=5))
        assert document_repository.rows[DOC1]["applicable_date"] == date(2024, 4, 1)

        second = await runner.run(RunOptions(limit=5))
        assert second.updated_meta_count == 1
        assert second.analyzed_count == 0
        assert document_repository.rows[DOC1]["applicable_date"] == date(2024, 3, 1)

        third = await runner.run(RunOptions(limit=5))
        assert first.analyzed_count == 1
        assert third.updated_meta_count == 0
        assert third.unchanged_count == 1
        assert len(document_repository.inserts) == 1

    @pytest.mark.asyncio
    async def test_shared_url_produces_single_row_with_last_metadata(
        self, build_runner, client_repository, document_repository
    ):
        client_repository.add("CS001", [_entry(DOC1, label="保険証", acquired_at="2024-01-10")])
        client_repository.add("CS002", [_entry(DOC1, label="介護保険証", acquired_at="2024-02-20")])

        report = await build_runner().run(RunOptions(limit=5))

        assert report.ok is True
        assert len(document_repository.inserts) == 1
        row = document_repository.rows[DOC1]
        assert row["doc_name"] == "介護保険証"
        assert row["kaipoke_cs_id"] == "CS002"
        assert row["applicable_date"] == date(2024, 2, 20)

    @pytest.mark.asyncio
    async def test_entries_without_url_are_counted_and_ignored(
        self, build_runner, client_repository, document_repository
    ):
        client_repository.add(
            "CS001",
            [
                {"label": "URLなし"},
                {"url": "", "label": "空URL"},
                {"url": None, "label": "null URL"},
                _entry(DOC1, label="保険証"),
            ],
        )

        report = await build_runner().run(RunOptions(limit=5))

        assert report.scanned_docs == 4
        assert report.skipped_no_url == 3
        assert list(document_repository.rows) == [DOC1]

    @pytest.mark.asyncio
    async def test_days_back_drops_older_entries(self, build_runner, client_repository, document_repository):
        client_repository.add(
            "CS001",
            [
                _entry("https://x/old", acquired_at="2024-03-01"),
                _entry("https://x/recent", acquired_at="2024-05-20"),
                _entry("https://x/undated"),
            ],
        )

        report = await build_runner(today=date(2024, 6, 1)).run(RunOptions(days_back=30, limit=5))

        assert report.scanned_docs == 3
        assert sorted(document_repository.rows) == ["https://x/recent", "https://x/undated"]

    @pytest.mark.asyncio
    async def test_dry_run_plans_without_writing(
        self, build_runner, client_repository, document_repository, fetcher
    ):
        document_repository.seed("https://x/known", doc_name="旧ラベル")
        client_repository.add(
            "CS001", [_entry("https://x/known", label="新ラベル"), _entry(DOC1, label="保険証")]
        )

        report = await build_runner().run(RunOptions(limit=5, dry_run=True))

        assert report.ok is True
        assert report.dry_run is True
        assert report.state == RunState.DONE
        assert report.to_analyze_count == 1
        assert report.updated_meta_count == 0
        assert report.analyzed_count == 0
        assert document_repository.inserts == []
        assert document_repository.updates == []
        fetcher.fetch.assert_not_awaited()


class TestFailureHandling:
    """Failures end up in the report, never as exceptions."""

    @pytest.mark.asyncio
    async def test_missing_credentials_skip_analysis_but_sync_metadata(
        self, build_runner, client_repository, document_repository, fetcher
    ):
        document_repository.seed("https://x/known", doc_name="旧ラベル")
        client_repository.add(
            "CS001", [_entry("https://x/known", label="新ラベル"), _entry(DOC1, label="保険証")]
        )

        report = await build_runner(missing_credentials=["OPENAI_API_KEY"]).run(RunOptions(limit=5))

        assert report.ok is False
        assert report.state == RunState.DONE
        assert len(report.errors) == 1
        assert report.errors[0].url == ""
        assert "OPENAI_API_KEY" in report.errors[0].error
        assert report.updated_meta_count == 1
        assert report.analyzed_count == 0
        assert document_repository.inserts == []
        fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_download_still_inserts_degraded_row(
        self, build_runner, client_repository, document_repository, fetcher
    ):
        fetcher.fetch.return_value = Result.from_exception(
            DocumentFetchError("fetch PDF failed: 404 Not Found")
        )
        client_repository.add("CS001", [_entry(DOC1, label="保険証", acquired_at="2024-03-01")])

        report = await build_runner().run(RunOptions(limit=5))

        assert report.ok is True
        assert report.analyzed_count == 1
        assert report.degraded_count == 1
        row = document_repository.rows[DOC1]
        assert row["ocr_text"] is None
        assert row["summary"] == "OCR_FAILED: fetch PDF failed: 404 Not Found"
        assert row["doc_type_id"] == "type-insurance"
        assert row["applicable_date"] == date(2024, 3, 1)
        assert row["llm_model"] is None

    @pytest.mark.asyncio
    async def test_insert_failure_is_reported_and_run_continues(
        self, build_runner, client_repository, document_repository
    ):
        original_insert = document_repository.insert_document

        async def insert_with_race(**fields):
            if fields["url"] == DOC1:
                # Another run inserted the same URL in the meantime
                document_repository.seed(DOC1)
            return await original_insert(**fields)

        document_repository.insert_document = insert_with_race
        client_repository.add("CS001", [_entry(DOC1, label="保険証"), _entry("https://x/doc2", label="保険証")])

        report = await build_runner().run(RunOptions(limit=5))

        assert report.ok is False
        assert report.analyzed_count == 1
        assert [error.url for error in report.errors] == [DOC1]
        assert "already has a row" in report.errors[0].error
        assert "https://x/doc2" in document_repository.rows

    @pytest.mark.asyncio
    async def test_label_master_failure_leaves_types_empty(
        self, build_runner, client_repository, document_repository, type_repository
    ):
        type_repository.list_active = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
        client_repository.add("CS001", [_entry(DOC1, label="保険証")])

        report = await build_runner().run(RunOptions(limit=5))

        assert report.ok is True
        assert report.state == RunState.DONE
        assert report.analyzed_count == 1
        assert document_repository.rows[DOC1]["doc_type_id"] is None

    @pytest.mark.asyncio
    async def test_unexpected_error_is_folded_into_report(self, build_runner, client_repository):
        client_repository.list_with_documents = AsyncMock(side_effect=RuntimeError("connection reset"))

        report = await build_runner().run(RunOptions(limit=5))

        assert report.ok is False
        assert report.state == RunState.SCANNING
        assert report.errors[0].url == ""
        assert "connection reset" in report.errors[0].error
