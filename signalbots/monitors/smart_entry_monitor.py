"""Tracks smart entry orders: fill, expiry, missed moves and outcome."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from signalbots.errors import MarketDataError
from signalbots.ledger.order_store import SmartEntryOrderStore
from signalbots.models import (BUY, CANCELLED, EXPIRED, PENDING, TRIGGERED, WIN, SmartEntryOrder,
                               timestamp_ms)
from signalbots.monitors.trade_monitor import resolve

logger = logging.getLogger(__name__)

ENTRY_TOLERANCE = 0.001


@dataclass
class SmartEntryReport:
    checked: int = 0
    triggered: int = 0
    wins: int = 0
    losses: int = 0
    expired: int = 0
    cancelled: int = 0
    errors: List[str] = field(default_factory=list)


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class SmartEntryMonitor:
    """Advances open smart entry orders using recent candles."""

    def __init__(self, fetcher, interval: str = "1m", lookback: int = 30):
        self.fetcher = fetcher
        self.interval = interval
        self.lookback = lookback

    def check(self, store: SmartEntryOrderStore, now: Optional[datetime] = None) -> SmartEntryReport:
        """
        Process every open order in ``store`` and persist once.

        Pending orders fill when a candle reaches the entry price (within 0.1%),
        are cancelled when the target is reached before the fill, and expire
        once ``validUntil`` has passed unfilled. Triggered orders resolve with
        the same candle scan as pending trades.

        Candles are fetched before the store is locked; the orders are then
        re-read under the lock so orders placed meanwhile are kept.
        """
        now = now or datetime.now(timezone.utc)
        report = SmartEntryReport()
        candles: Dict[str, Optional[list]] = {}
        for order in store.load():
            if not order.is_open or order.symbol in candles:
                continue
            try:
                candles[order.symbol] = self.fetcher.fetch_klines(order.symbol, self.interval, self.lookback)
            except MarketDataError as e:
                logger.warning(f"Smart entry {order.id}: could not fetch {order.symbol}: {e}")
                report.errors.append(f"{order.symbol}: {e}")
                candles[order.symbol] = None

        def apply(orders: List[SmartEntryOrder]) -> bool:
            changed = False
            for order in orders:
                if not order.is_open or order.symbol not in candles:
                    continue
                report.checked += 1
                klines = candles[order.symbol]
                before = order.status
                if klines is None:
                    if order.status == PENDING and order.is_expired(now):
                        order.close(EXPIRED)
                        report.expired += 1
                else:
                    self._advance(order, klines, now, report)
                changed = changed or order.status != before
            return changed

        store.update(apply)
        return report

    def _advance(self, order: SmartEntryOrder, klines, now: datetime, report: SmartEntryReport) -> None:
        if order.status == PENDING:
            created_ms = timestamp_ms(order.timestamp)
            deadline_ms = timestamp_ms(order.valid_until)
            window = [k for k in klines if created_ms <= k.open_time <= deadline_ms]
            for index, kline in enumerate(window):
                if self._fills(order, kline):
                    order.trigger(_iso(kline.open_time))
                    report.triggered += 1
                    logger.info(f"Smart entry {order.id} filled at {order.target_entry_price:.6f}")
                    klines = window[index + 1:]
                    break
                if self._missed(order, kline):
                    order.close(CANCELLED)
                    report.cancelled += 1
                    logger.info(f"Smart entry {order.id} cancelled: target reached before entry")
                    return
            else:
                if order.is_expired(now):
                    order.close(EXPIRED)
                    report.expired += 1
                    logger.info(f"Smart entry {order.id} expired unfilled")
                return
        else:
            triggered_ms = timestamp_ms(order.triggered_at or order.timestamp)
            klines = [k for k in klines if k.open_time > triggered_ms]

        if order.status == TRIGGERED:
            outcome = resolve(order, klines)
            if outcome is not None:
                result, exit_price = outcome
                order.complete(result, exit_price)
                if result == WIN:
                    report.wins += 1
                else:
                    report.losses += 1
                logger.info(f"Smart entry {order.id} {result.upper()} at {exit_price:.6f}")

    @staticmethod
    def _fills(order: SmartEntryOrder, kline) -> bool:
        if order.action == BUY:
            return kline.low <= order.target_entry_price * (1 + ENTRY_TOLERANCE)
        return kline.high >= order.target_entry_price * (1 - ENTRY_TOLERANCE)

    @staticmethod
    def _missed(order: SmartEntryOrder, kline) -> bool:
        if order.action == BUY:
            return kline.high >= order.target_price
        return kline.low <= order.target_price
