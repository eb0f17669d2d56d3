"""One parameterised bot cycle: limit check, selection, execution, persistence."""

import logging
from dataclasses import replace
from typing import Optional

from signalbots.analyzers.volume_analyzer import VolumeAnalyzer
from signalbots.config import Config
from signalbots.executors.trade_executor import TradeExecutor
from signalbots.ledger.trade_ledger import TradeLedger
from signalbots.models import CycleResult, MarketData, TradeDecision
from signalbots.risk.risk_calculator import RiskCalculator
from signalbots.selection.multi_symbol_selector import MultiSymbolSelector

logger = logging.getLogger(__name__)

TRADED = "traded"
NO_OPPORTUNITY = "no_opportunity"
LIMIT_REACHED = "limit_reached"
ERROR = "error"


class BotPipeline:
    """Runs a BotSpec against its ledger.

    Every bot in the registry shares this cycle; they differ only in the
    analyze function, the executor and the ledger file.
    """

    def __init__(self, spec, config: Config, selector: MultiSymbolSelector, ledger: TradeLedger,
                 executor: TradeExecutor, risk_calculator: Optional[RiskCalculator] = None,
                 volume_analyzer: Optional[VolumeAnalyzer] = None):
        """
        Args:
            spec: BotSpec describing the bot
            config: Runtime configuration (symbols, amount, active-trade limit)
            selector: Multi-symbol selector bound to a market data fetcher
            ledger: Ledger the bot appends to
            executor: Simulated or real executor
            risk_calculator: Target/stop builder (defaults to config.trading thresholds)
            volume_analyzer: Used when the bot asks for volume confirmation
        """
        self.spec = spec
        self.config = config
        self.selector = selector
        self.ledger = ledger
        self.executor = executor
        self.risk_calculator = risk_calculator or RiskCalculator(config.trading)
        self.volume_analyzer = volume_analyzer or VolumeAnalyzer(config.trading)

    def analyze(self, symbol: str, market: MarketData) -> TradeDecision:
        decision = self.spec.analyze(symbol, market)
        if self.spec.confirm_volume and decision.is_actionable:
            decision = self.volume_analyzer.confirm(decision, market.klines)
        return decision

    def run_cycle(self) -> CycleResult:
        """
        Execute one cycle.

        Returns:
            CycleResult with status traded, no_opportunity, limit_reached or error
        """
        name = self.spec.name
        active = self.ledger.count_pending()
        if active >= self.config.max_active_trades:
            logger.info(f"[{name}] {active} active trade(s), limit {self.config.max_active_trades} reached")
            return CycleResult(bot_name=name, status=LIMIT_REACHED)

        best = self.selector.select(self.config.symbols, self.analyze, self.ledger.has_pending)
        if best is None:
            return CycleResult(bot_name=name, status=NO_OPPORTUNITY)

        decision = best.decision
        amount = self.config.trade_amount_usd
        result = self.executor.execute(decision, amount)
        if not result.executed:
            logger.error(f"[{name}] {decision.action} {decision.symbol} not executed: {result.error}")
            return CycleResult(bot_name=name, status=ERROR, analysis=best, error=result.error)

        if result.fill_price and result.fill_price != decision.price:
            decision = replace(decision, price=result.fill_price)
        trade = self.risk_calculator.build_trade(decision, amount, bot_name=name, order_id=result.order_id)
        self.ledger.append(trade)

        logger.info(
            f"[{name}] {trade.action} {trade.symbol} at {trade.entry_price:.6f} "
            f"target {trade.target_price:.6f} stop {trade.stop_price:.6f} ({trade.confidence}%)"
        )
        return CycleResult(bot_name=name, status=TRADED, trade=trade, analysis=best)
