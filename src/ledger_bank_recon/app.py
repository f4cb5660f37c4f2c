"""Wiring of stores, services and the in-process event bus from configuration."""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import ReconConfig
from .ingestion.ingestor import BANK_BATCH_SIZE, StreamingIngestor
from .matching.engine import MatchingEngine
from .matching.selection import get_policy
from .services.compiler import FileCompiler
from .services.events import InProcessPublisher
from .services.listing import ListService
from .services.recon_manager import ReconManager
from .services.reconciliation import ReconciliationService
from .storage.bank_repository import SqlBankStatementRepository
from .storage.database import create_engine_from_config, create_session_factory
from .storage.ledger_repository import SqlLedgerRepository
from .storage.object_store import LocalObjectStore
from .storage.recon_result_repository import SqlReconResultRepository
from .utils.exceptions import ConfigurationError


@dataclass
class ReconApp:
    """Everything one process needs, already connected."""

    config: ReconConfig
    engine: Engine
    session_factory: sessionmaker
    ledger_repo: SqlLedgerRepository
    bank_repo: SqlBankStatementRepository
    recon_repo: SqlReconResultRepository
    object_store: LocalObjectStore
    publisher: InProcessPublisher
    ingestor: StreamingIngestor
    compiler: FileCompiler
    reconciliation: ReconciliationService
    manager: ReconManager
    listing: ListService


def build_app(config: ReconConfig, engine: Optional[Engine] = None) -> ReconApp:
    """
    Build the application graph.

    The compiler is subscribed to the compiler topic and the reconciliation
    service to the reconciliation topic, so publishing a compiler event runs
    ingestion and reconciliation end to end.

    Raises:
        ConfigurationError: If the configured selection policy is unknown
    """
    try:
        selection = get_policy(config.matching.selection_policy)
    except ValueError as e:
        raise ConfigurationError(str(e), stage="build_app") from e

    if engine is None:
        engine = create_engine_from_config(config.database)
    session_factory = create_session_factory(engine)

    ledger_repo = SqlLedgerRepository(session_factory)
    bank_repo = SqlBankStatementRepository(session_factory)
    recon_repo = SqlReconResultRepository(session_factory, chunk_size=config.persistence.chunk_size)
    object_store = LocalObjectStore(config.storage.base_dir)
    publisher = InProcessPublisher()

    ingestor = StreamingIngestor(
        ledger_repo,
        bank_repo,
        ledger_batch_size=config.ingestion.ledger_batch_size,
        bank_batch_size=BANK_BATCH_SIZE,
        encoding=config.ingestion.encoding,
        delimiter=config.ingestion.delimiter,
    )
    compiler = FileCompiler(object_store, ingestor, publisher, config.events.recon_topic)
    reconciliation = ReconciliationService(
        ledger_repo, bank_repo, recon_repo, engine=MatchingEngine(selection)
    )
    manager = ReconManager(
        publisher,
        config.events.compiler_topic,
        upload_prefix=config.storage.upload_prefix,
        object_store=object_store,
    )

    publisher.subscribe(config.events.compiler_topic, compiler)
    publisher.subscribe(config.events.recon_topic, reconciliation)

    return ReconApp(
        config=config,
        engine=engine,
        session_factory=session_factory,
        ledger_repo=ledger_repo,
        bank_repo=bank_repo,
        recon_repo=recon_repo,
        object_store=object_store,
        publisher=publisher,
        ingestor=ingestor,
        compiler=compiler,
        reconciliation=reconciliation,
        manager=manager,
        listing=ListService(recon_repo),
    )
