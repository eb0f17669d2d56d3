"""JSON-array store for smart entry orders."""

import json
import logging
import os
import threading
from typing import Callable, Iterable, List

from signalbots.errors import LedgerCorruptError
from signalbots.ledger.trade_ledger import file_lock, write_json_array
from signalbots.models import SmartEntryOrder

logger = logging.getLogger(__name__)

SMART_ENTRY_ORDERS_FILE = "smartEntryOrders.json"


class SmartEntryOrderStore:
    """Same file discipline as TradeLedger, keeping only the newest ``max_records`` orders."""

    def __init__(self, path: str, max_records: int = 50) -> None:
        self.path = path
        self.max_records = max_records
        self._lock = threading.RLock()

    def load(self) -> List[SmartEntryOrder]:
        with self._lock:
            if not os.path.exists(self.path):
                return []
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
            if not content.strip():
                return []
            try:
                raw = json.loads(content)
                if not isinstance(raw, list):
                    raise ValueError(f"top level is {type(raw).__name__}, expected array")
                return [SmartEntryOrder.from_dict(record) for record in raw]
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Order file {self.path} is corrupt: {e}")
                raise LedgerCorruptError(self.path, str(e)) from e

    def append(self, order: SmartEntryOrder) -> None:
        with file_lock(self.path, self._lock):
            orders = self.load()
            orders.append(order)
            self._write(orders)

    def has_open(self, symbol: str) -> bool:
        return any(o.symbol == symbol and o.is_open for o in self.load())

    def update(self, apply: Callable[[List[SmartEntryOrder]], bool]) -> bool:
        """Re-read the orders under the file lock; rewrite them if ``apply`` returns True."""
        with file_lock(self.path, self._lock):
            orders = self.load()
            changed = apply(orders)
            if changed:
                self._write(orders)
            return changed

    def save(self, orders: Iterable[SmartEntryOrder]) -> None:
        with file_lock(self.path, self._lock):
            self._write(list(orders))

    def _write(self, orders: List[SmartEntryOrder]) -> None:
        write_json_array(self.path, [o.to_dict() for o in orders[-self.max_records:]])
