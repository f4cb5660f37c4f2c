"""
Streaming ingestion of header-prefixed delimited files.

Files are read with pandas in chunks, every field kept as text. Rows are
parsed one at a time, buffered into fixed-size batches and each batch is
handed to the repository's bulk save. Malformed rows are logged and skipped.
A failed flush stops the stream; batches flushed before it stay committed.
"""

from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterator, Optional, Sequence, TypeVar
import logging

import pandas as pd

from ..parsers.bank_parser import parse_bank_statement
from ..parsers.ledger_parser import parse_transaction_record
from ..storage.interfaces import BankStatementRepository, LedgerRepository
from ..utils.exceptions import IngestionError, RowParseError

logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_LEDGER_BATCH_SIZE = 100
BANK_BATCH_SIZE = 100

# Widest row each file may carry: optional description / reference last
LEDGER_COLUMNS = 5
BANK_COLUMNS = 4


def read_rows(
    stream: BinaryIO,
    columns: int,
    chunk_size: int = DEFAULT_LEDGER_BATCH_SIZE,
    encoding: str = "utf-8",
    delimiter: str = ",",
    on_bad_row: Optional[Callable[[list[str]], None]] = None,
    stage: str = "read_rows",
) -> Iterator[list[str]]:
    """
    Yield the data rows of a header-prefixed delimited stream.

    The header line is discarded and the remainder is read ``chunk_size``
    rows at a time. Short rows are padded with empty fields. Blank lines are
    skipped. Rows wider than ``columns`` are passed to ``on_bad_row``
    (truncated to one field past the limit) and dropped. The stream itself is
    left open.

    Raises:
        IngestionError: If the stream is empty or cannot be read
    """
    try:
        header = stream.readline()
        header.decode(encoding)
    except (OSError, UnicodeDecodeError) as e:
        raise IngestionError(f"error reading stream: {e}", stage=stage) from e
    if not header:
        raise IngestionError("error reading header: stream is empty", stage=stage)

    try:
        with pd.read_csv(
            stream,
            header=None,
            # One spare column flags rows that are too wide
            names=list(range(columns + 1)),
            index_col=False,
            dtype=str,
            keep_default_na=False,
            sep=delimiter,
            encoding=encoding,
            engine="python",
            chunksize=chunk_size,
        ) as reader:
            for frame in reader:
                for row in frame.itertuples(index=False, name=None):
                    if not pd.isna(row[columns]):
                        if on_bad_row is not None:
                            on_bad_row(list(row))
                        continue
                    yield ["" if pd.isna(value) else value for value in row[:columns]]
    except pd.errors.EmptyDataError:
        return
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise IngestionError(f"error reading stream: {e}", stage=stage) from e


@dataclass
class IngestionResult:
    """Counters for one ingested stream."""

    source: str
    rows_read: int = 0
    saved: int = 0
    skipped: int = 0
    batches: int = 0


class StreamingIngestor:
    """Streams ledger and bank statement files into their repositories."""

    def __init__(
        self,
        ledger_repo: LedgerRepository,
        bank_repo: BankStatementRepository,
        ledger_batch_size: int = DEFAULT_LEDGER_BATCH_SIZE,
        bank_batch_size: int = BANK_BATCH_SIZE,
        encoding: str = "utf-8",
        delimiter: str = ",",
    ):
        """
        Initialize the ingestor.

        Args:
            ledger_repo: Destination for ledger transactions
            bank_repo: Destination for bank statement lines
            ledger_batch_size: Ledger records buffered per flush
            bank_batch_size: Bank records buffered per flush
            encoding: Text encoding of the incoming streams
            delimiter: Field delimiter
        """
        if ledger_batch_size <= 0 or bank_batch_size <= 0:
            raise ValueError("batch sizes must be positive")

        self.ledger_repo = ledger_repo
        self.bank_repo = bank_repo
        self.ledger_batch_size = ledger_batch_size
        self.bank_batch_size = bank_batch_size
        self.encoding = encoding
        self.delimiter = delimiter

    def ingest_ledger(self, stream: BinaryIO) -> IngestionResult:
        """
        Ingest a ledger transaction file.

        Raises:
            IngestionError: If the stream cannot be read or a batch cannot be saved
        """
        result = self._ingest(
            stream,
            parse_row=parse_transaction_record,
            save_batch=self.ledger_repo.save_batch,
            batch_size=self.ledger_batch_size,
            columns=LEDGER_COLUMNS,
            source="ledger",
        )
        logger.info(f"Processed {result.saved} internal transactions ({result.skipped} skipped)")
        return result

    def ingest_bank(self, stream: BinaryIO, bank_name: str = "") -> IngestionResult:
        """
        Ingest a bank statement file, tagging each line with ``bank_name``.

        Raises:
            IngestionError: If the stream cannot be read or a batch cannot be saved
        """
        result = self._ingest(
            stream,
            parse_row=lambda record: parse_bank_statement(record, bank_name),
            save_batch=self.bank_repo.save_batch,
            batch_size=self.bank_batch_size,
            columns=BANK_COLUMNS,
            source="bank",
        )
        logger.info(
            f"Processed {result.saved} bank statements for {bank_name or 'unnamed bank'} "
            f"({result.skipped} skipped)"
        )
        return result

    def _ingest(
        self,
        stream: BinaryIO,
        parse_row: Callable[[Sequence[str]], R],
        save_batch: Callable[[Sequence[R]], None],
        batch_size: int,
        columns: int,
        source: str,
    ) -> IngestionResult:
        stage = f"ingest_{source}"
        result = IngestionResult(source=source)
        batch: list[R] = []

        def _too_wide(fields: list[str]) -> None:
            result.rows_read += 1
            result.skipped += 1
            logger.warning(
                f"Row {result.rows_read}: {source} record has more than {columns} fields, skipping"
            )

        rows = read_rows(
            stream,
            columns,
            chunk_size=batch_size,
            encoding=self.encoding,
            delimiter=self.delimiter,
            on_bad_row=_too_wide,
            stage=stage,
        )
        for record in rows:
            result.rows_read += 1
            parsed = self._parse(parse_row, record, result.rows_read, source)
            if parsed is None:
                result.skipped += 1
                continue

            batch.append(parsed)
            if len(batch) >= batch_size:
                self._flush(batch, save_batch, result, stage)
                batch = []

        if batch:
            self._flush(batch, save_batch, result, stage)

        return result

    def _parse(
        self,
        parse_row: Callable[[Sequence[str]], R],
        record: list[str],
        row_num: int,
        source: str,
    ) -> Optional[R]:
        try:
            return parse_row(record)
        except RowParseError as e:
            logger.warning(f"Row {row_num}: error parsing {source} record: {e}, skipping")
            return None

    def _flush(
        self,
        batch: list[R],
        save_batch: Callable[[Sequence[R]], None],
        result: IngestionResult,
        stage: str,
    ) -> None:
        try:
            save_batch(batch)
        except Exception as e:
            logger.error(
                f"Failed saving batch {result.batches + 1} ({len(batch)} records); "
                f"{result.saved} records already committed"
            )
            raise IngestionError(f"error saving batch: {e}", stage=stage) from e

        result.saved += len(batch)
        result.batches += 1
        logger.debug(f"Flushed batch {result.batches} of {len(batch)} records")
