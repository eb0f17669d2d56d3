"""Resolves pending trades against recent candles."""

import glob
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from signalbots.errors import LedgerCorruptError, MarketDataError
from signalbots.ledger.trade_ledger import TradeLedger
from signalbots.models import BUY, LOSS, WIN, Kline, Trade, timestamp_ms

logger = logging.getLogger(__name__)


@dataclass
class MonitorReport:
    """Counts from one pass over a ledger."""

    ledger: str
    checked: int = 0
    wins: int = 0
    losses: int = 0
    still_pending: int = 0
    errors: List[str] = field(default_factory=list)


def resolve(trade: Trade, klines: Sequence[Kline]) -> Optional[Tuple[str, float]]:
    """
    Walk candles oldest to newest and report the first level hit.

    Within a candle the target is checked before the stop.

    Args:
        trade: Pending Trade or triggered SmartEntryOrder
        klines: Candles after (or around) the entry

    Returns:
        ``(result, exit_price)`` or None when neither level was reached
    """
    for kline in klines:
        if trade.action == BUY:
            if kline.high >= trade.target_price:
                return WIN, trade.target_price
            if kline.low <= trade.stop_price:
                return LOSS, trade.stop_price
        else:
            if kline.low <= trade.target_price:
                return WIN, trade.target_price
            if kline.high >= trade.stop_price:
                return LOSS, trade.stop_price
    return None


class TradeMonitor:
    """Checks pending trades in ledgers and records wins and losses."""

    def __init__(self, fetcher, interval: str = "1m", lookback: int = 30):
        """
        Args:
            fetcher: MarketDataFetcher used for candle lookups
            interval: Candle interval to scan
            lookback: Number of most recent candles to scan
        """
        self.fetcher = fetcher
        self.interval = interval
        self.lookback = lookback

    def check_ledger(self, ledger: TradeLedger) -> MonitorReport:
        """
        Resolve every pending trade in ``ledger`` and persist the result once.

        Only candles opened at or after the trade's timestamp count; the candle
        in progress when the trade was created also holds earlier prices and is
        skipped. Candles are fetched without holding the ledger lock, and the
        outcomes are applied to a fresh read of the ledger so trades appended
        meanwhile survive. A fetch failure leaves that trade pending and is
        recorded in the report.
        """
        report = MonitorReport(ledger=ledger.name)
        pending = ledger.load_pending()
        if not pending:
            logger.info(f"{ledger.name}: no pending trades")
            return report

        outcomes: List[Tuple[Trade, str, float]] = []
        for trade in pending:
            report.checked += 1
            try:
                klines = self.fetcher.fetch_klines(trade.symbol, self.interval, self.lookback)
            except MarketDataError as e:
                logger.warning(f"{ledger.name}: could not check {trade.symbol}: {e}")
                report.errors.append(f"{trade.symbol}: {e}")
                report.still_pending += 1
                continue

            opened_ms = timestamp_ms(trade.timestamp)
            outcome = resolve(trade, [k for k in klines if k.open_time >= opened_ms])
            if outcome is None:
                report.still_pending += 1
                continue
            outcomes.append((trade, *outcome))

        if not outcomes:
            return report

        def apply(trades: List[Trade]) -> bool:
            changed = False
            for current in trades:
                if not current.is_pending:
                    continue
                for snapshot, result, exit_price in outcomes:
                    if current == snapshot:
                        self._complete(ledger, current, result, exit_price, report)
                        changed = True
                        break
            return changed

        ledger.update(apply)
        return report

    @staticmethod
    def _complete(ledger: TradeLedger, trade: Trade, result: str, exit_price: float, report: MonitorReport) -> None:
        trade.complete(result, exit_price)
        if result == WIN:
            report.wins += 1
        else:
            report.losses += 1
        logger.info(
            f"{ledger.name}: {trade.symbol} {trade.action} {result.upper()} "
            f"at {exit_price:.6f} (return {trade.actual_return:+.6f})"
        )

    def check_directory(self, trades_dir: str, exclude: Iterable[str] = ()) -> Dict[str, MonitorReport]:
        """
        Run ``check_ledger`` on every ``*.json`` ledger in ``trades_dir``.

        Files named in ``exclude`` are not trade ledgers and are left alone.
        A corrupt ledger is logged and skipped; the others are still checked.
        """
        skip = set(exclude)
        reports: Dict[str, MonitorReport] = {}
        for path in sorted(glob.glob(os.path.join(trades_dir, "*.json"))):
            if os.path.basename(path) in skip:
                continue
            ledger = TradeLedger(path)
            try:
                reports[ledger.name] = self.check_ledger(ledger)
            except LedgerCorruptError as e:
                logger.error(f"Skipping {ledger.name}: {e}")
                reports[ledger.name] = MonitorReport(ledger=ledger.name, errors=[str(e)])
        return reports
