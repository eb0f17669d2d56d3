"""Smart entry cycle: advance open orders, then plan new ones."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from signalbots.analyzers.smart_entry_planner import SmartEntryPlanner
from signalbots.config import Config
from signalbots.errors import MarketDataError
from signalbots.ledger.order_store import SmartEntryOrderStore
from signalbots.models import SmartEntryOrder
from signalbots.monitors.smart_entry_monitor import SmartEntryMonitor, SmartEntryReport

logger = logging.getLogger(__name__)


@dataclass
class SmartEntryCycleResult:
    report: SmartEntryReport
    placed: List[SmartEntryOrder] = field(default_factory=list)


class SmartEntryCycle:
    """One pass of the smart entry simulator over ``config.symbols``."""

    def __init__(self, config: Config, fetcher, store: SmartEntryOrderStore,
                 planner: Optional[SmartEntryPlanner] = None, monitor: Optional[SmartEntryMonitor] = None):
        self.config = config
        self.fetcher = fetcher
        self.store = store
        self.planner = planner or SmartEntryPlanner(config.trading)
        self.monitor = monitor or SmartEntryMonitor(fetcher, config.monitor_interval, config.monitor_lookback)

    def run_cycle(self, now: Optional[datetime] = None) -> SmartEntryCycleResult:
        """
        Update existing orders, then place at most one new order per symbol.

        Symbols that still have a pending or triggered order are skipped.
        """
        report = self.monitor.check(self.store, now=now)
        result = SmartEntryCycleResult(report=report)

        for symbol in self.config.symbols:
            if self.store.has_open(symbol):
                logger.info(f"{symbol}: smart entry order already open, skipping")
                continue
            try:
                market = self.fetcher.get_market_data(symbol)
            except MarketDataError as e:
                logger.warning(f"{symbol}: market data unavailable, skipping: {e}")
                continue

            order = self.planner.plan(market, now=now)
            if order is None:
                logger.info(f"{symbol}: no smart entry setup")
                continue
            self.store.append(order)
            result.placed.append(order)
            logger.info(
                f"{symbol}: {order.action} entry at {order.target_entry_price:.6f} "
                f"(target {order.target_price:.6f}, stop {order.stop_price:.6f}, {order.confidence}%)"
            )

        logger.info(
            f"Smart entry: {len(result.placed)} placed, {report.triggered} triggered, "
            f"{report.wins} win(s), {report.losses} loss(es), {report.expired} expired, {report.cancelled} cancelled"
        )
        return result
