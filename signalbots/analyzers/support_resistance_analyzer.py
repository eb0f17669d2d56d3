"""Support/resistance analyzer built on pivot clustering."""

import logging
import math
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from signalbots.config import TradingConfig
from signalbots.indicators.technical_indicators import Pivot, find_pivots, group_pivots
from signalbots.models import BUY, HOLD, SELL, Kline, TradeDecision

logger = logging.getLogger(__name__)

SUPPORT = "support"
RESISTANCE = "resistance"

MIN_CANDLES = 10
PIVOT_PERIOD = 3
TREND_CANDLES = 10
NEUTRAL_CONFIDENCE = 30
MAX_AGE_MS = 30 * 24 * 60 * 60 * 1000
PSYCHOLOGICAL_STRENGTH = 0.7


@dataclass
class Level:
    price: float
    touches: int
    strength: float
    kind: str  # "support" | "resistance"
    zone_low: Optional[float] = None
    zone_high: Optional[float] = None

    @property
    def is_zone(self) -> bool:
        return self.zone_low is not None


class SupportResistanceAnalyzer:
    """Trades bounces off recurring price levels, filtered by the short-term trend."""

    def __init__(self, config: Optional[TradingConfig] = None, tolerance: Optional[float] = None,
                 min_touches: Optional[int] = None, lookback: Optional[int] = None):
        self.config = config or TradingConfig()
        self.tolerance = tolerance or self.config.sr_tolerance
        self.min_touches = min_touches or self.config.sr_min_touches
        self.lookback = lookback or self.config.sr_lookback

    def analyze(self, klines: Sequence[Kline], current_price: float,
                now_ms: Optional[int] = None) -> TradeDecision:
        """
        Analyze candles against pivot and round-number levels.

        Args:
            klines: Candles, oldest first
            current_price: Latest price
            now_ms: Clock for level ageing (defaults to wall clock)

        Returns:
            TradeDecision
        """
        if len(klines) < MIN_CANDLES:
            return TradeDecision.hold(
                0, f"Insufficient data: {len(klines)} candles (minimum {MIN_CANDLES})", price=current_price
            )

        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        levels = self.find_levels(klines, now_ms) + self.psychological_levels(current_price)
        logger.debug(f"{len(levels)} S/R levels around {current_price:.4f}")
        return self._evaluate(current_price, levels, klines)

    def find_levels(self, klines: Sequence[Kline], now_ms: int) -> List[Level]:
        """Cluster pivots of the last ``lookback`` candles into levels, strongest first."""
        recent = list(klines[-self.lookback:])
        last_close = recent[-1].close
        levels = []
        for group in group_pivots(find_pivots(recent, PIVOT_PERIOD), self.tolerance):
            if len(group) < self.min_touches:
                continue
            average = sum(p.price for p in group) / len(group)
            kinds = {p.kind for p in group}
            if kinds == {"high", "low"}:
                kind = RESISTANCE if average > last_close else SUPPORT
            else:
                kind = RESISTANCE if "high" in kinds else SUPPORT
            prices = [p.price for p in group]
            zone = len(group) > 3
            levels.append(Level(
                price=average,
                touches=len(group),
                strength=self._strength(group, now_ms),
                kind=kind,
                zone_low=min(prices) if zone else None,
                zone_high=max(prices) if zone else None,
            ))
        return sorted(levels, key=lambda level: level.strength, reverse=True)

    def psychological_levels(self, current_price: float) -> List[Level]:
        """Round numbers within the minimum-volatility band around price."""
        if current_price <= 0:
            return []
        band = current_price * (self.config.min_volatility_percent / 100)
        if current_price >= 1000:
            step = 100.0
        elif current_price >= 100:
            step = 10.0
        elif current_price >= 1:
            step = 1.0
        else:
            step = 0.1
        base = math.floor(current_price / step) * step
        levels = []
        for i in range(-5, 6):
            price = round(base + i * step, 10)
            if price > 0 and abs(price - current_price) <= band:
                levels.append(Level(
                    price=price,
                    touches=self.min_touches,
                    strength=PSYCHOLOGICAL_STRENGTH,
                    kind=RESISTANCE if price > current_price else SUPPORT,
                ))
        return levels

    def _strength(self, group: Sequence[Pivot], now_ms: int) -> float:
        strength = min(len(group) * 0.25, 0.8)
        if group and group[0].timestamp:
            average_age = sum(now_ms - (p.timestamp or now_ms) for p in group) / len(group)
            strength += max(0.0, 1 - average_age / MAX_AGE_MS) * 0.2
        else:
            strength += 0.15
        return min(strength, 1.0)

    def _trend(self, klines: Sequence[Kline]) -> str:
        if len(klines) < 3:
            return "sideways"
        first, last = klines[0].close, klines[-1].close
        change = (last - first) / first
        threshold = self.config.ema_min_trend_strength
        if change > threshold:
            return "up"
        if change < -threshold:
            return "down"
        return "sideways"

    def _evaluate(self, current_price: float, levels: Sequence[Level], klines: Sequence[Kline]) -> TradeDecision:
        cfg = self.config
        tolerance = current_price * self.tolerance
        nearby = [
            level for level in levels
            if abs(level.price - current_price) <= tolerance * 3 and level.touches >= min(self.min_touches, 2)
        ]
        if not nearby:
            return TradeDecision.hold(
                NEUTRAL_CONFIDENCE, "Price in neutral zone, no significant levels nearby", price=current_price
            )

        trend = self._trend(klines[-TREND_CANDLES:])
        strongest = nearby[0]
        for level in nearby[1:]:
            if level.strength > strongest.strength:
                strongest = level

        confidence = min(cfg.high_confidence, cfg.min_confidence + strongest.strength * 25 + strongest.touches * 2)
        if strongest.kind == SUPPORT and current_price <= strongest.price + tolerance and trend in ("down", "sideways"):
            return TradeDecision(
                action=BUY,
                confidence=confidence,
                reason=f"Price near strong support at ${strongest.price:.4f} ({strongest.touches} touches, trend {trend})",
                price=current_price,
            )
        if strongest.kind == RESISTANCE and current_price >= strongest.price - tolerance and trend in ("up", "sideways"):
            return TradeDecision(
                action=SELL,
                confidence=confidence,
                reason=f"Price near strong resistance at ${strongest.price:.4f} ({strongest.touches} touches, trend {trend})",
                price=current_price,
            )
        return TradeDecision(
            action=HOLD,
            confidence=cfg.rejected_confidence,
            reason=f"Nearest {strongest.kind} at ${strongest.price:.4f} not confirmed by {trend} trend",
            price=current_price,
        )
