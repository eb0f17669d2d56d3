"""Picks the best trade candidate across several symbols."""

import logging
from typing import Callable, Iterable, Optional

from signalbots.models import MarketData, SymbolAnalysis, TradeDecision

logger = logging.getLogger(__name__)

Analyze = Callable[[str, MarketData], TradeDecision]
IsActive = Callable[[str], bool]


class MultiSymbolSelector:
    """Sequential pass over symbols: fetch, analyze, keep the highest-confidence BUY/SELL."""

    def __init__(self, fetcher):
        """
        Args:
            fetcher: MarketDataFetcher (anything with ``get_market_data(symbol)``)
        """
        self.fetcher = fetcher

    def select(self, symbols: Iterable[str], analyze: Analyze,
               is_active: Optional[IsActive] = None) -> Optional[SymbolAnalysis]:
        """
        Analyze each symbol in order and return the best candidate.

        Symbols for which ``is_active`` is true are skipped without fetching.
        A failure on one symbol is logged and the symbol dropped. HOLD
        decisions are never candidates. Ties keep the first symbol seen.

        Args:
            symbols: Symbols in priority order
            analyze: ``(symbol, market_data) -> TradeDecision``
            is_active: Predicate for symbols that already have an open trade

        Returns:
            Winning SymbolAnalysis, or None when nothing is actionable
        """
        best: Optional[SymbolAnalysis] = None
        for symbol in symbols:
            if is_active is not None and is_active(symbol):
                logger.info(f"{symbol}: pending trade exists, skipping")
                continue
            try:
                market = self.fetcher.get_market_data(symbol)
                decision = analyze(symbol, market)
            except Exception as e:
                logger.warning(f"{symbol}: analysis failed, skipping this cycle: {e}")
                continue

            if not decision.symbol:
                decision.symbol = symbol
            if not decision.price:
                decision.price = market.price
            logger.info(f"{symbol}: {decision.action} {decision.confidence}% - {decision.reason}")

            if not decision.is_actionable:
                continue
            candidate = SymbolAnalysis(symbol=symbol, decision=decision, score=float(decision.confidence))
            if best is None or candidate.score > best.score:
                best = candidate

        if best is None:
            logger.info("No actionable opportunity across symbols")
        else:
            logger.info(f"Selected {best.symbol} {best.decision.action} ({best.score:.0f}%)")
        return best
