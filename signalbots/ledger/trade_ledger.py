"""JSON-array trade ledger, one file per bot.

File layout is a single JSON array of trade objects with camelCase keys,
rewritten wholesale on every change. A bot loop and the monitor may share a
ledger from separate processes, so every load-modify-write holds an
exclusive ``flock`` on ``<ledger>.lock`` for its duration.
"""

import fcntl
import json
import logging
import os
import threading
from contextlib import contextmanager
from typing import Callable, Iterable, List, Optional

from signalbots.errors import LedgerCorruptError
from signalbots.models import Trade

logger = logging.getLogger(__name__)


@contextmanager
def file_lock(path: str, thread_lock: threading.RLock):
    """Hold ``thread_lock`` and an exclusive advisory lock on ``path + '.lock'``."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with thread_lock:
        with open(f"{path}.lock", "a") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def write_json_array(path: str, records: List[dict]) -> None:
    """Replace ``path`` atomically with ``records``."""
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(records, f, indent=2, ensure_ascii=False)
    os.replace(tmp_path, path)


class TradeLedger:
    """Load/append/rewrite access to one ledger file."""

    def __init__(self, path: str, max_records: Optional[int] = None) -> None:
        self.path = path
        self.max_records = max_records
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    def load(self) -> List[Trade]:
        """
        Read every trade in the ledger.

        A missing or empty file is an empty ledger. Writers replace the file
        atomically, so reads need no file lock.

        Raises:
            LedgerCorruptError: If the file is not a JSON array of valid trades
        """
        with self._lock:
            if not os.path.exists(self.path):
                return []
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
            if not content.strip():
                return []
            try:
                raw = json.loads(content)
            except json.JSONDecodeError as e:
                logger.error(f"Ledger {self.path} is not valid JSON: {e}")
                raise LedgerCorruptError(self.path, str(e)) from e
            if not isinstance(raw, list):
                logger.error(f"Ledger {self.path} top level is {type(raw).__name__}, expected array")
                raise LedgerCorruptError(self.path, f"top level is {type(raw).__name__}, expected array")

            trades = []
            for index, record in enumerate(raw):
                try:
                    trades.append(Trade.from_dict(record))
                except (KeyError, TypeError, ValueError, AttributeError) as e:
                    logger.error(f"Ledger {self.path} record {index} is invalid: {e}")
                    raise LedgerCorruptError(self.path, f"record {index}: {e}") from e
            return trades

    def append(self, trade: Trade) -> None:
        """Append one trade; a missing file is treated as an empty ledger."""
        with file_lock(self.path, self._lock):
            trades = self.load()
            trades.append(trade)
            self._write(trades)
        logger.info(f"Saved {trade.action} {trade.symbol} to {self.name} ({len(trades)} records)")

    def load_pending(self) -> List[Trade]:
        return [t for t in self.load() if t.is_pending]

    def has_pending(self, symbol: str) -> bool:
        return any(t.symbol == symbol for t in self.load_pending())

    def count_pending(self) -> int:
        return len(self.load_pending())

    def update(self, apply: Callable[[List[Trade]], bool]) -> bool:
        """
        Re-read the ledger under the file lock and let ``apply`` mutate it.

        The ledger is rewritten only when ``apply`` returns True.

        Returns:
            Whatever ``apply`` returned
        """
        with file_lock(self.path, self._lock):
            trades = self.load()
            changed = apply(trades)
            if changed:
                self._write(trades)
            return changed

    def update_and_persist(self, trades: Iterable[Trade]) -> None:
        """Overwrite the ledger with ``trades``."""
        with file_lock(self.path, self._lock):
            self._write(list(trades))

    def _write(self, trades: List[Trade]) -> None:
        if self.max_records and len(trades) > self.max_records:
            trades = trades[-self.max_records:]
        write_json_array(self.path, [t.to_dict() for t in trades])
