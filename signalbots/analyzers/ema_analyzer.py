"""EMA crossover analyzer."""

import logging
from typing import Optional, Sequence

from signalbots.config import TradingConfig
from signalbots.indicators.technical_indicators import ema
from signalbots.models import BUY, HOLD, SELL, TradeDecision

logger = logging.getLogger(__name__)


class EmaAnalyzer:
    """Fast/slow EMA trend detector with a separation and trend-strength filter."""

    def __init__(self, config: Optional[TradingConfig] = None,
                 fast_period: Optional[int] = None, slow_period: Optional[int] = None):
        self.config = config or TradingConfig()
        self.fast_period = fast_period or self.config.ema_fast_period
        self.slow_period = slow_period or self.config.ema_slow_period

    def analyze(self, prices: Sequence[float], current_price: float) -> TradeDecision:
        """
        Analyze a close-price series.

        Args:
            prices: Closes, oldest first
            current_price: Latest traded price

        Returns:
            TradeDecision (HOLD/50 when there is not enough data)
        """
        cfg = self.config
        if len(prices) < self.slow_period:
            return TradeDecision.hold(
                cfg.rejected_confidence,
                f"Insufficient data for EMA analysis ({len(prices)} < {self.slow_period} prices)",
                price=current_price,
            )

        ema_fast = ema(prices, self.fast_period)
        ema_slow = ema(prices, self.slow_period)
        price_change_pct = (current_price - prices[0]) / prices[0] * 100

        separation = abs(ema_fast - ema_slow) / ema_slow
        if separation < cfg.ema_min_separation:
            return TradeDecision.hold(
                cfg.volume_low_score,
                f"EMA separation too small: {separation * 100:.2f}% < {cfg.ema_min_separation * 100:.1f}% minimum",
                price=current_price,
            )

        distance = abs(current_price - ema_fast) / ema_fast
        strength = min(100.0, separation * 1000 + distance * 500)
        confidence = (cfg.min_approval_score + 5) + strength * (cfg.ema_separation_score / 80)
        confidence = min(cfg.high_confidence, max(cfg.min_confidence, confidence))
        min_change_pct = cfg.ema_min_trend_strength * 100

        action = HOLD
        reason = "Market stable"
        if current_price > ema_fast > ema_slow and price_change_pct > min_change_pct:
            action = BUY
            reason = (f"Uptrend confirmed (EMA{self.fast_period} > EMA{self.slow_period}, "
                      f"separation: {separation * 100:.2f}%)")
        elif current_price < ema_fast < ema_slow and price_change_pct < -min_change_pct:
            action = SELL
            reason = (f"Downtrend confirmed (EMA{self.fast_period} < EMA{self.slow_period}, "
                      f"separation: {separation * 100:.2f}%)")

        if action == HOLD:
            return TradeDecision.hold(cfg.rejected_confidence, reason, price=current_price)

        logger.debug(f"EMA fast={ema_fast:.4f} slow={ema_slow:.4f} -> {action} {confidence:.0f}%")
        return TradeDecision(action=action, confidence=confidence, reason=reason, price=current_price)
