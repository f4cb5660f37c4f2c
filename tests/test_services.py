import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ledger_bank_recon.app import build_app
from ledger_bank_recon.config import load_config
from ledger_bank_recon.ingestion.ingestor import StreamingIngestor
from ledger_bank_recon.models.events import CompilerEvent, CompilerRequest, ReconciliationEvent
from ledger_bank_recon.services.compiler import FileCompiler
from ledger_bank_recon.services.events import InProcessPublisher
from ledger_bank_recon.services.listing import ListService
from ledger_bank_recon.services.recon_manager import ReconManager
from ledger_bank_recon.services.reconciliation import ReconciliationService
from ledger_bank_recon.storage.database import create_db_and_tables
from ledger_bank_recon.storage.object_store import LocalObjectStore
from ledger_bank_recon.utils.exceptions import (
    ConfigurationError,
    IngestionError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from tests.conftest import JAN_1, JAN_31

LEDGER_CSV = (
    "id,amount,type,transaction_time,description\n"
    "L1,100.00,CREDIT,2024-01-10T09:00:00Z,invoice 1\n"
    "L2,100.00,CREDIT,2024-01-11T09:00:00Z,invoice 2\n"
    "L3,200.00,DEBIT,2024-01-12T09:00:00Z,supplier\n"
)
BANK_CSV = (
    "id,amount,date,reference\n"
    "B1,100.00,2024-01-10,R1\n"
    "B2,100.00,2024-01-11,R2\n"
    "B3,100.00,2024-01-12,R3\n"
)


class RecordingHandler:
    def __init__(self):
        self.events = []

    def process_event(self, event):
        self.events.append(json.loads(event))


class TestReconciliationService:
    """Tests for one reconciliation run."""

    def test_reconcile_stores_summary(self, ledger_repo, bank_repo, recon_repo, sample_ledger, sample_bank):
        ledger_repo.save_batch(sample_ledger)
        bank_repo.save_batch(sample_bank)
        service = ReconciliationService(ledger_repo, bank_repo, recon_repo)

        summary = service.reconcile(ReconciliationEvent(task_id="task-1", start_date=JAN_1, end_date=JAN_31))

        assert summary.total_matched == 2
        assert summary.total_discrepancy == Decimal("-100")
        stored = recon_repo.get_summary("task-1")
        assert stored.total_transaction == 4
        assert stored.discrepancy == Decimal("-100")

    def test_process_event_decodes_aliases(self, ledger_repo, bank_repo, recon_repo):
        service = ReconciliationService(ledger_repo, bank_repo, recon_repo)
        payload = json.dumps(
            {"taskID": "task-1", "startDate": "2024-01-01T00:00:00Z", "endDate": "2024-01-31T00:00:00Z"}
        ).encode("utf-8")

        summary = service.process_event(payload)

        assert summary.task_id == "task-1"
        assert summary.total_transaction == 0

    @pytest.mark.parametrize(
        "event",
        [
            ReconciliationEvent(task_id="", start_date=JAN_1, end_date=JAN_31),
            ReconciliationEvent(task_id="t", start_date=JAN_1),
            ReconciliationEvent(task_id="t", end_date=JAN_31),
            ReconciliationEvent(task_id="t", start_date=JAN_31, end_date=JAN_1),
        ],
    )
    def test_invalid_event_rejected_before_io(self, event):
        class Untouchable:
            def __getattr__(self, name):
                raise AssertionError(f"unexpected call to {name}")

        service = ReconciliationService(Untouchable(), Untouchable(), Untouchable())
        with pytest.raises(ValidationError):
            service.reconcile(event)

    def test_malformed_payload(self, ledger_repo, bank_repo, recon_repo):
        service = ReconciliationService(ledger_repo, bank_repo, recon_repo)
        with pytest.raises(ValidationError, match="failed to unmarshal"):
            service.process_event(b"{not json")

    def test_store_failure_propagates(self, ledger_repo, bank_repo, recon_repo, monkeypatch):
        def broken(*args, **kwargs):
            raise StorageError("disk full", stage="store_summary")

        monkeypatch.setattr(recon_repo, "store_summary", broken)
        service = ReconciliationService(ledger_repo, bank_repo, recon_repo)

        with pytest.raises(StorageError, match="disk full"):
            service.reconcile(ReconciliationEvent(task_id="t", start_date=JAN_1, end_date=JAN_31))


class TestFileCompiler:
    """Tests for compiling uploaded objects."""

    @pytest.fixture
    def store(self, tmp_path):
        store = LocalObjectStore(tmp_path / "objects")
        for ref, content in [("u/t1/transactions.csv", LEDGER_CSV), ("u/t1/bank_statement.csv", BANK_CSV)]:
            path = store.path_for(ref)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return store

    @pytest.fixture
    def handler(self):
        return RecordingHandler()

    @pytest.fixture
    def publisher(self, handler):
        publisher = InProcessPublisher()
        publisher.subscribe("recon", handler)
        return publisher

    def test_ingests_both_and_triggers_reconciliation(self, store, publisher, handler, ledger_repo, bank_repo):
        compiler = FileCompiler(store, StreamingIngestor(ledger_repo, bank_repo), publisher, "recon")
        event = CompilerEvent(
            task_id="t1",
            bank_name="ACME",
            transaction="u/t1/transactions.csv",
            bank_statement="u/t1/bank_statement.csv",
            start_date=JAN_1,
            end_date=JAN_31,
        )

        results = compiler.process_event(event.model_dump_json(by_alias=True))

        assert results["ledger"].saved == 3
        assert results["bank"].saved == 3
        assert {line.bank_name for line in bank_repo.fetch_all(JAN_1, JAN_31)} == {"ACME"}
        assert handler.events == [
            {"taskID": "t1", "startDate": "2024-01-01T00:00:00Z", "endDate": "2024-01-31T23:59:59Z"}
        ]

    def test_empty_reference_skipped(self, store, publisher, ledger_repo, bank_repo):
        compiler = FileCompiler(store, StreamingIngestor(ledger_repo, bank_repo), publisher, "recon")
        event = CompilerEvent(task_id="t1", bank_name="ACME", bank_statement="u/t1/bank_statement.csv")

        results = compiler.process_event(event.model_dump_json(by_alias=True))

        assert list(results) == ["bank"]
        assert ledger_repo.fetch_all(JAN_1, JAN_31) == []

    def test_no_window_no_trigger(self, store, publisher, handler, ledger_repo, bank_repo):
        compiler = FileCompiler(store, StreamingIngestor(ledger_repo, bank_repo), publisher, "recon")
        event = CompilerEvent(task_id="t1", bank_name="ACME", transaction="u/t1/transactions.csv")

        compiler.process_event(event.model_dump_json(by_alias=True))

        assert handler.events == []

    def test_both_references_empty(self, store, publisher, ledger_repo, bank_repo):
        compiler = FileCompiler(store, StreamingIngestor(ledger_repo, bank_repo), publisher, "recon")
        with pytest.raises(ValidationError, match="empty"):
            compiler.process_event(
                CompilerEvent(task_id="t1", bank_name="ACME").model_dump_json(by_alias=True)
            )

    @pytest.mark.parametrize(
        "task_id, bank_name, message",
        [("", "ACME", "taskID is required"), ("t1", " ", "bankName is required")],
    )
    def test_identity_checked_before_ingesting(
        self, store, publisher, handler, ledger_repo, bank_repo, task_id, bank_name, message
    ):
        compiler = FileCompiler(store, StreamingIngestor(ledger_repo, bank_repo), publisher, "recon")
        event = CompilerEvent(
            task_id=task_id,
            bank_name=bank_name,
            transaction="u/t1/transactions.csv",
            bank_statement="u/t1/bank_statement.csv",
            start_date=JAN_1,
            end_date=JAN_31,
        )

        with pytest.raises(ValidationError, match=message):
            compiler.process_event(event.model_dump_json(by_alias=True))

        assert ledger_repo.fetch_all(JAN_1, JAN_31) == []
        assert bank_repo.fetch_all(JAN_1, JAN_31) == []
        assert handler.events == []

    def test_reversed_window_rejected_before_ingesting(self, store, publisher, ledger_repo, bank_repo):
        compiler = FileCompiler(store, StreamingIngestor(ledger_repo, bank_repo), publisher, "recon")
        event = CompilerEvent(
            task_id="t1",
            bank_name="ACME",
            transaction="u/t1/transactions.csv",
            start_date=JAN_31,
            end_date=JAN_1,
        )

        with pytest.raises(ValidationError, match="after"):
            compiler.process_event(event.model_dump_json(by_alias=True))
        assert ledger_repo.fetch_all(JAN_1, JAN_31) == []

    def test_missing_object(self, store, publisher, handler, ledger_repo, bank_repo):
        compiler = FileCompiler(store, StreamingIngestor(ledger_repo, bank_repo), publisher, "recon")
        event = CompilerEvent(
            task_id="t1", bank_name="ACME", transaction="u/t1/nope.csv", start_date=JAN_1, end_date=JAN_31
        )

        with pytest.raises(NotFoundError):
            compiler.process_event(event.model_dump_json(by_alias=True))
        assert handler.events == []

    def test_bad_header_is_ingestion_error(self, store, publisher, ledger_repo, bank_repo):
        store.path_for("u/t1/empty.csv").write_text("")
        compiler = FileCompiler(store, StreamingIngestor(ledger_repo, bank_repo), publisher, "recon")
        event = CompilerEvent(task_id="t1", bank_name="ACME", transaction="u/t1/empty.csv")

        with pytest.raises(IngestionError):
            compiler.process_event(event.model_dump_json(by_alias=True))


class TestObjectStore:
    def test_reference_cannot_escape(self, tmp_path):
        store = LocalObjectStore(tmp_path)
        with pytest.raises(ValidationError):
            store.path_for("../outside.csv")

    def test_put_and_open(self, tmp_path):
        source = tmp_path / "ledger.csv"
        source.write_text(LEDGER_CSV)
        store = LocalObjectStore(tmp_path / "store")

        store.put("uploads/t/transactions.csv", source)

        assert store.exists("uploads/t/transactions.csv")
        with store.open("uploads/t/transactions.csv") as stream:
            assert stream.read().decode("utf-8") == LEDGER_CSV


class TestReconManager:
    """Tests for task allocation and compilation requests."""

    def test_new_task_references(self):
        manager = ReconManager(InProcessPublisher(), "compiler", upload_prefix="uploads")
        task = manager.new_task()

        assert task.task_id
        assert task.transaction_object == f"uploads/{task.task_id}/transactions.csv"
        assert task.bank_statement_object == f"uploads/{task.task_id}/bank_statement.csv"
        assert manager.new_task().task_id != task.task_id

    def test_initiate_publishes_compiler_event(self):
        publisher = InProcessPublisher()
        handler = RecordingHandler()
        publisher.subscribe("compiler", handler)
        manager = ReconManager(publisher, "compiler")

        manager.initiate_compilation(
            CompilerRequest(task_id="t1", bank_name="ACME", start_date=JAN_1, end_date=JAN_31)
        )

        assert handler.events[0]["taskID"] == "t1"
        assert handler.events[0]["bankName"] == "ACME"
        assert handler.events[0]["transaction"] == "uploads/t1/transactions.csv"
        assert handler.events[0]["bank_statement"] == "uploads/t1/bank_statement.csv"

    def test_missing_uploads_left_empty(self, tmp_path):
        store = LocalObjectStore(tmp_path)
        path = store.path_for("uploads/t1/bank_statement.csv")
        path.parent.mkdir(parents=True)
        path.write_text(BANK_CSV)
        manager = ReconManager(InProcessPublisher(), "compiler", object_store=store)

        event = manager.initiate_compilation(CompilerRequest(task_id="t1", bank_name="ACME"))

        assert event.transaction == ""
        assert event.bank_statement == "uploads/t1/bank_statement.csv"

    def test_nothing_uploaded(self, tmp_path):
        manager = ReconManager(InProcessPublisher(), "compiler", object_store=LocalObjectStore(tmp_path))
        with pytest.raises(ValidationError, match="no files uploaded"):
            manager.initiate_compilation(CompilerRequest(task_id="t1", bank_name="ACME"))

    @pytest.mark.parametrize("task_id, bank_name", [("", "ACME"), ("t1", "")])
    def test_request_validation(self, task_id, bank_name):
        publisher = InProcessPublisher()
        handler = RecordingHandler()
        publisher.subscribe("compiler", handler)
        manager = ReconManager(publisher, "compiler")

        with pytest.raises(ValidationError):
            manager.initiate_compilation(CompilerRequest(task_id=task_id, bank_name=bank_name))
        assert handler.events == []


class TestListService:
    """Tests for paginated listings."""

    def test_pagination_validation(self, recon_repo):
        service = ListService(recon_repo)
        with pytest.raises(ValidationError):
            service.list_summaries(0, 0)
        with pytest.raises(ValidationError):
            service.list_summaries(10, -1)
        with pytest.raises(ValidationError):
            service.list_unmatched_transactions("", 10, 0)

    def test_listings_map_rows(self, ledger_repo, bank_repo, recon_repo, sample_ledger, sample_bank):
        ledger_repo.save_batch(sample_ledger)
        bank_repo.save_batch(sample_bank)
        ReconciliationService(ledger_repo, bank_repo, recon_repo).reconcile(
            ReconciliationEvent(task_id="task-1", start_date=JAN_1, end_date=JAN_31)
        )
        service = ListService(recon_repo)

        summaries = service.list_summaries(10, 0)
        assert summaries.total_count == 1
        assert summaries.data[0].task_id == "task-1"
        assert summaries.data[0].start_date.tzinfo is not None
        assert summaries.model_dump(by_alias=True)["totalCount"] == 1

        ledger_page = service.list_unmatched_transactions("task-1", 10, 0)
        assert [t.id for t in ledger_page.data] == ["L3"]
        assert ledger_page.data[0].type == "DEBIT"

        bank_page = service.list_unmatched_bank_statements("task-1", 10, 0)
        assert [b.id for b in bank_page.data] == ["B3"]
        assert bank_page.total_count == 1

    def test_summary_not_found(self, recon_repo):
        with pytest.raises(NotFoundError):
            ListService(recon_repo).get_summary("missing")


class TestBuildApp:
    """End to end through the in-process event bus."""

    def test_compile_then_reconcile(self, tmp_path):
        config = load_config()
        config.database.url = "sqlite://"
        config.storage.base_dir = str(tmp_path / "objects")
        app = build_app(config)
        create_db_and_tables(app.engine)

        task = app.manager.new_task()
        for ref, content in [(task.transaction_object, LEDGER_CSV), (task.bank_statement_object, BANK_CSV)]:
            source = tmp_path / ref.replace("/", "_")
            source.write_text(content)
            app.object_store.put(ref, source)

        app.manager.initiate_compilation(
            CompilerRequest(
                task_id=task.task_id,
                bank_name="ACME",
                start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
                end_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
            )
        )

        summary = app.listing.get_summary(task.task_id)
        assert summary.total_matched == 2
        assert summary.total_unmatched_internal == 1
        assert summary.total_unmatched_bank == 1
        assert summary.total_discrepancy == Decimal("-100")

    def test_unknown_policy(self):
        config = load_config()
        config.matching.selection_policy = "random"
        with pytest.raises(ConfigurationError):
            build_app(config)
