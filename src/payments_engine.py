import csv
import logging
import threading
import time
from typing import Dict, Iterable, Mapping, Optional

from config import EngineConfig
from errors import LedgerError, ProcessingResult
from message_queue import ShardedQueue
from models import Transaction, ClientAccount, ProcessingStats
from record_parser import parse_row
from state_manager import AccountRegistry, TransactionLedger
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Feeds parsed CSV records to the transaction processor and collects the final accounts.

    With a single worker every record is applied inline in arrival order.
    With more workers one publisher thread routes records to per-client
    shards and one consumer thread drains each shard, so a client's
    records keep their relative order. Nothing is retried or reordered:
    a dispute arriving before its deposit fails as an unknown transaction.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self._config = config or EngineConfig()
        self._ledger = TransactionLedger()
        self._registry = AccountRegistry()
        self._processor = TransactionProcessor(self._ledger, self._registry)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    @property
    def registry(self) -> AccountRegistry:
        return self._registry

    @property
    def ledger(self) -> TransactionLedger:
        return self._ledger

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """
        Process CSV file and return final account states.
        Raises OSError if the file cannot be opened, before any record is applied,
        and UnicodeDecodeError or csv.Error if the stream turns unreadable part way.
        """
        with open(filepath, "r", encoding="utf-8", newline="") as f:
            return self.process_rows(csv.DictReader(f))

    def process_rows(self, rows: Iterable[Mapping[str, str]]) -> Dict[int, ClientAccount]:
        """Process already-split CSV rows (header name -> value) and return final account states."""
        start = time.perf_counter()
        logger.info(f"Starting processing with {self._config.num_workers} worker(s)")

        if self._config.num_workers == 1:
            for transaction in self._parse_rows(rows):
                self._apply(transaction)
        else:
            self._process_concurrently(rows)

        elapsed = time.perf_counter() - start
        logger.info(f"{self._stats.summary()} in {elapsed:.2f}s")
        return self._registry.all_accounts()

    def _process_concurrently(self, rows: Iterable[Mapping[str, str]]) -> None:
        queue = ShardedQueue(self._config.num_workers)
        errors = []

        def publish() -> None:
            try:
                for transaction in self._parse_rows(rows):
                    queue.publish_message(transaction)
            except Exception as e:
                errors.append(e)
            finally:
                queue.shutdown()

        # Phase 1: 1 publisher thread, 1 consumer thread per shard
        publisher_thread = threading.Thread(target=publish)
        publisher_thread.start()

        consumer_threads = []
        for shard in range(queue.num_shards):
            consumer_thread = threading.Thread(target=self._consume_transactions, args=(queue, shard, errors))
            consumer_thread.start()
            consumer_threads.append(consumer_thread)

        publisher_thread.join()
        for consumer_thread in consumer_threads:
            consumer_thread.join()

        if errors:
            raise errors[0]

    def _consume_transactions(self, queue: ShardedQueue, shard: int, errors: list) -> None:
        """Consumer loop: pull from one shard and apply under the client lock."""
        while True:
            transaction = queue.consume_message(shard)
            if transaction is None:
                if queue.is_shutdown() and queue.is_empty(shard):
                    break
                continue

            try:
                self._apply(transaction)
            except Exception as e:
                errors.append(e)
                return

    def _apply(self, transaction: Transaction) -> ProcessingResult:
        lock = self._registry.get_client_lock(transaction.client_id)
        with lock:
            result = self._processor.process_transaction(transaction)
        self._stats.record(result)
        return result

    def _parse_rows(self, rows: Iterable[Mapping[str, str]]) -> Iterable[Transaction]:
        for line_number, row in enumerate(rows, start=2):
            try:
                transaction = parse_row(row)
            except LedgerError as e:
                self._stats.record(e.result)
                logger.warning(f"Skipping row {line_number} {dict(row)}: {e}")
                continue

            # Runs on the single parsing thread, so ids are claimed in arrival order.
            if transaction.transaction_type.carries_amount and not self._ledger.claim(
                transaction.transaction_id, transaction.client_id
            ):
                self._stats.record(ProcessingResult.DUPLICATE_TRANSACTION)
                logger.warning(
                    f"Skipping row {line_number} {transaction}: tx {transaction.transaction_id} "
                    f"belongs to client {self._ledger.claimed_by(transaction.transaction_id)}"
                )
                continue

            yield transaction
