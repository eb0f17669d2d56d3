"""Momentum analyzer: price change, multi-period vote, RSI and acceleration."""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from signalbots.config import TradingConfig
from signalbots.indicators.technical_indicators import price_change, rsi
from signalbots.models import BUY, SELL, TradeDecision

logger = logging.getLogger(__name__)

BULLISH = "bullish"
BEARISH = "bearish"
NEUTRAL = "neutral"
MIXED = "mixed"

PERIOD_THRESHOLD = 0.002
CONSENSUS_SCORES = {BULLISH: 80.0, BEARISH: 20.0}
STRONG_BUY_SCORE = 80.0
BUY_SCORE = 60.0
SELL_SCORE = 40.0
STRONG_SELL_SCORE = 20.0


@dataclass
class MomentumReading:
    momentum: float
    direction: str
    score: float
    is_valid: bool
    reason: str


@dataclass
class MomentumScore:
    total: float
    breakdown: Dict[str, float]
    recommendation: str  # STRONG_BUY | BUY | HOLD | SELL | STRONG_SELL
    direction: str


class MomentumAnalyzer:
    """Short-horizon momentum scoring over close prices."""

    def __init__(self, config: Optional[TradingConfig] = None):
        self.config = config or TradingConfig()

    def validate(self, prices: Sequence[float]) -> MomentumReading:
        """
        Basic momentum over ``momentum_period`` closes.

        Valid only for upward momentum above ``momentum_threshold``.
        """
        period = self.config.momentum_period
        threshold = self.config.momentum_threshold
        if len(prices) < period:
            return MomentumReading(0.0, NEUTRAL, 0.0, False, "Insufficient data for momentum")

        momentum = price_change(prices, period)
        direction = _direction(momentum, threshold)
        if momentum < threshold:
            return MomentumReading(
                momentum, direction, momentum * 1000, False,
                f"Momentum {momentum * 100:.2f}% < {threshold * 100:.1f}%",
            )
        return MomentumReading(momentum, direction, min(100.0, momentum * 1000), True,
                               f"Momentum {momentum * 100:.2f}% OK")

    def multi_period(self, prices: Sequence[float]) -> Dict[str, object]:
        """Vote over 3/5/10-candle windows; two agreeing windows form a consensus."""
        readings = {period: self._period_reading(prices, period) for period in (3, 5, 10)}
        directions = [reading.direction for reading in readings.values()]
        bullish = directions.count(BULLISH)
        bearish = directions.count(BEARISH)
        if bullish >= 2:
            consensus = BULLISH
        elif bearish >= 2:
            consensus = BEARISH
        elif bullish and bearish:
            consensus = MIXED
        else:
            consensus = NEUTRAL
        return {"readings": readings, "consensus": consensus}

    def rsi_score(self, prices: Sequence[float]) -> float:
        if len(prices) < self.config.rsi_period:
            return 0.0
        momentum = price_change(prices, 5)
        value = rsi(prices, self.config.rsi_period)
        momentum_score = min(50.0, abs(momentum) * 1000)
        rsi_score = 50.0 if 30 < value < 70 else max(0.0, 50 - abs(value - 50))
        return momentum_score + rsi_score

    def acceleration_score(self, prices: Sequence[float]) -> float:
        if len(prices) < 10:
            return 0.0
        recent = price_change(prices[-5:], 5)
        previous = price_change(prices[-10:-5], 5)
        return min(100.0, abs(recent - previous) * 5000)

    def score(self, prices: Sequence[float]) -> MomentumScore:
        """
        Blend basic, multi-period, RSI and acceleration scores.

        Returns:
            MomentumScore with a five-level recommendation
        """
        basic = self.validate(prices)
        consensus = self.multi_period(prices)["consensus"]
        breakdown = {
            "basic": basic.score,
            "multi_period": CONSENSUS_SCORES.get(consensus, 50.0),
            "rsi": self.rsi_score(prices),
            "acceleration": self.acceleration_score(prices),
        }
        total = (breakdown["basic"] * 0.3 + breakdown["multi_period"] * 0.3
                 + breakdown["rsi"] * 0.2 + breakdown["acceleration"] * 0.2)

        if total >= STRONG_BUY_SCORE and basic.direction == BULLISH:
            recommendation = "STRONG_BUY"
        elif total >= BUY_SCORE and basic.direction == BULLISH:
            recommendation = "BUY"
        elif total <= STRONG_SELL_SCORE and basic.direction == BEARISH:
            recommendation = "STRONG_SELL"
        elif total <= SELL_SCORE and basic.direction == BEARISH:
            recommendation = "SELL"
        else:
            recommendation = "HOLD"
        return MomentumScore(total, breakdown, recommendation, basic.direction)

    def analyze(self, prices: Sequence[float], current_price: float) -> TradeDecision:
        """Map the momentum score onto a BUY/SELL/HOLD decision."""
        cfg = self.config
        result = self.score(prices)
        summary = f"momentum score {result.total:.1f} ({result.direction})"

        if result.recommendation in ("STRONG_BUY", "BUY"):
            action = BUY
        elif result.recommendation in ("STRONG_SELL", "SELL"):
            action = SELL
        else:
            return TradeDecision.hold(cfg.rejected_confidence, f"No momentum signal: {summary}", price=current_price)

        strong = result.recommendation.startswith("STRONG")
        confidence = cfg.high_confidence if strong else cfg.min_confidence
        logger.debug(f"Momentum {result.recommendation} breakdown={result.breakdown}")
        return TradeDecision(
            action=action,
            confidence=confidence,
            reason=f"{result.recommendation.replace('_', ' ').title()}: {summary}",
            price=current_price,
        )

    def _period_reading(self, prices: Sequence[float], period: int) -> MomentumReading:
        if len(prices) < period:
            return MomentumReading(0.0, NEUTRAL, 0.0, False, f"Insufficient data for {period}-period momentum")
        momentum = price_change(prices, period)
        return MomentumReading(
            momentum,
            _direction(momentum, PERIOD_THRESHOLD),
            min(100.0, abs(momentum) * 1000),
            abs(momentum) > 0.001,
            f"Momentum {period}p: {momentum * 100:.2f}%",
        )


def _direction(momentum: float, threshold: float) -> str:
    if momentum > threshold:
        return BULLISH
    if momentum < -threshold:
        return BEARISH
    return NEUTRAL
