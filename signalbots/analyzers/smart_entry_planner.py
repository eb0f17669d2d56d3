"""Plans limit-style entries near support or resistance."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from signalbots.config import TradingConfig
from signalbots.indicators.technical_indicators import ema, find_swing_levels, rsi
from signalbots.models import BUY, SELL, MarketData, SmartEntryOrder

logger = logging.getLogger(__name__)

FAST_PERIOD = 21
SLOW_PERIOD = 50
VOLUME_AVERAGE_WINDOW = 20
ORDER_VALIDITY = timedelta(hours=24)
TARGET_MOVE = 0.03
MAX_CONFIDENCE = 95


@dataclass
class EntrySetup:
    current_price: float
    supports: List[float]
    resistances: List[float]
    rsi: float
    ema_fast: float
    ema_slow: float
    volume: float
    average_volume: float
    trend: str  # "UP" | "DOWN" | "SIDEWAYS"
    strength: float


class SmartEntryPlanner:
    """Schedules an entry at a nearby level instead of trading at market."""

    def __init__(self, config: Optional[TradingConfig] = None):
        self.config = config or TradingConfig()

    def assess(self, market: MarketData) -> EntrySetup:
        closes = market.closes
        volumes = market.volumes
        price = market.price
        ema_fast = ema(closes, FAST_PERIOD) if len(closes) >= FAST_PERIOD else closes[-1]
        ema_slow = ema(closes, SLOW_PERIOD) if len(closes) >= SLOW_PERIOD else closes[-1]
        window = volumes[-VOLUME_AVERAGE_WINDOW:]

        trend, strength = "SIDEWAYS", 0.0
        if ema_fast > ema_slow and price > ema_fast:
            trend, strength = "UP", (ema_fast - ema_slow) / ema_slow
        elif ema_fast < ema_slow and price < ema_fast:
            trend, strength = "DOWN", (ema_slow - ema_fast) / ema_fast

        return EntrySetup(
            current_price=price,
            supports=find_swing_levels([k.low for k in market.klines], price, "support"),
            resistances=find_swing_levels([k.high for k in market.klines], price, "resistance"),
            rsi=rsi(closes, self.config.rsi_period),
            ema_fast=ema_fast,
            ema_slow=ema_slow,
            volume=volumes[-1],
            average_volume=sum(window) / len(window),
            trend=trend,
            strength=strength,
        )

    def plan(self, market: MarketData, now: Optional[datetime] = None) -> Optional[SmartEntryOrder]:
        """
        Build a SmartEntryOrder for ``market`` or return None.

        BUY in an uptrend near support (RSI < 70), SELL in a downtrend near
        resistance (RSI > 30). The order expires after 24 hours.
        """
        if not market.klines:
            return None
        now = now or datetime.now(timezone.utc)
        setup = self.assess(market)
        price = setup.current_price

        if setup.trend == "UP" and setup.rsi < 70 and setup.supports:
            support = setup.supports[0]
            if abs(price - support) / price <= 0.01 or price <= support * 1.005:
                return self._order(market.symbol, BUY, setup, now,
                                   entry=support * 1.002, target=price * (1 + TARGET_MOVE), stop=support * 0.995,
                                   reason=f"Entry near support ${support:.2f} in uptrend",
                                   conditions={"supportLevel": support, "rsiTarget": 65})

        if setup.trend == "DOWN" and setup.rsi > 30 and setup.resistances:
            resistance = setup.resistances[0]
            if abs(price - resistance) / price <= 0.01 or price >= resistance * 0.995:
                return self._order(market.symbol, SELL, setup, now,
                                   entry=resistance * 0.998, target=price * (1 - TARGET_MOVE),
                                   stop=resistance * 1.005,
                                   reason=f"Entry near resistance ${resistance:.2f} in downtrend",
                                   conditions={"resistanceLevel": resistance, "rsiTarget": 35})
        return None

    def confidence(self, setup: EntrySetup, action: str) -> int:
        score = 70
        if action == BUY and setup.ema_fast > setup.ema_slow:
            score += 10
        if action == SELL and setup.ema_fast < setup.ema_slow:
            score += 10
        if 30 < setup.rsi < 70:
            score += 5
        if setup.volume > setup.average_volume * 1.5:
            score += 5
        if setup.strength > 0.01:
            score += 5
        return min(score, MAX_CONFIDENCE)

    def _order(self, symbol: str, action: str, setup: EntrySetup, now: datetime, entry: float,
               target: float, stop: float, reason: str, conditions: dict) -> Optional[SmartEntryOrder]:
        confidence = self.confidence(setup, action)
        if confidence < self.config.min_confidence:
            logger.debug(f"{symbol} {action} entry skipped: confidence {confidence}% < {self.config.min_confidence}%")
            return None
        conditions.update({
            "volumeSpike": setup.volume > setup.average_volume * 1.5,
            "emaAlignment": setup.trend in ("UP", "DOWN"),
        })
        return SmartEntryOrder(
            id=f"SE_{symbol}_{int(now.timestamp() * 1000)}",
            timestamp=now.isoformat().replace("+00:00", "Z"),
            symbol=symbol,
            action=action,
            current_price=setup.current_price,
            target_entry_price=entry,
            target_price=target,
            stop_price=stop,
            confidence=confidence,
            reason=reason,
            valid_until=(now + ORDER_VALIDITY).isoformat().replace("+00:00", "Z"),
            entry_conditions=conditions,
        )
