"""Technical indicator calculations and utilities."""

import logging
from dataclasses import dataclass
from typing import List, Sequence

import pandas as pd

from signalbots.models import Kline

logger = logging.getLogger(__name__)


@dataclass
class Pivot:
    """A local swing point in a candle series."""

    price: float
    kind: str  # "high" | "low"
    timestamp: int


def ema(prices: Sequence[float], period: int) -> float:
    """
    Exponential moving average of the full series.

    The first ``period`` points seed the average with their simple mean; each
    later point is folded in with multiplier ``2 / (period + 1)``.

    Args:
        prices: Price series, oldest first
        period: EMA period

    Returns:
        Last EMA value

    Raises:
        ValueError: If fewer than ``period`` points are given
    """
    if period <= 0:
        raise ValueError("period must be positive")
    if len(prices) < period:
        raise ValueError(f"EMA({period}) needs at least {period} prices, got {len(prices)}")
    seed = sum(prices[:period]) / period
    series = pd.Series([seed] + [float(p) for p in prices[period:]])
    return float(series.ewm(span=period, adjust=False).mean().iloc[-1])


def price_change(prices: Sequence[float], period: int) -> float:
    """Fractional change across the last ``period`` points (0.0 when too short)."""
    if period < 2 or len(prices) < period:
        return 0.0
    window = prices[-period:]
    if window[0] == 0:
        return 0.0
    return (window[-1] - window[0]) / window[0]


def rsi(prices: Sequence[float], period: int = 14) -> float:
    """
    Relative strength index over a rolling ``period`` window.

    Returns:
        RSI in [0, 100]; 50.0 when there is not enough data
    """
    if len(prices) <= period:
        return 50.0
    close = pd.Series([float(p) for p in prices])
    delta = close.diff()
    gain = delta.where(delta > 0, 0.0).rolling(window=period).mean().iloc[-1]
    loss = (-delta.where(delta < 0, 0.0)).rolling(window=period).mean().iloc[-1]
    if loss == 0:
        return 100.0 if gain > 0 else 50.0
    rs = gain / loss
    return float(100 - (100 / (1 + rs)))


def volume_ratio(volumes: Sequence[float], window: int = 10) -> float:
    """Last volume divided by the mean of the last ``window`` volumes."""
    if len(volumes) < window or window <= 0:
        return 0.0
    average = float(pd.Series(volumes[-window:], dtype=float).mean())
    if average == 0:
        return 0.0
    return float(volumes[-1]) / average


def find_pivots(klines: Sequence[Kline], period: int = 3) -> List[Pivot]:
    """
    Find pivot highs and lows.

    A candle is a pivot high when its high is strictly greater than the high of
    every candle within ``period`` positions on either side (pivot low mirrors
    with lows). Edge candles without a full window are never pivots.
    """
    pivots: List[Pivot] = []
    for i in range(period, len(klines) - period):
        current = klines[i]
        neighbours = [klines[j] for j in range(i - period, i + period + 1) if j != i]
        if all(current.high > other.high for other in neighbours):
            pivots.append(Pivot(price=current.high, kind="high", timestamp=current.open_time))
        if all(current.low < other.low for other in neighbours):
            pivots.append(Pivot(price=current.low, kind="low", timestamp=current.open_time))
    return pivots


def find_swing_levels(values: Sequence[float], current_price: float, kind: str,
                      tolerance: float = 0.01) -> List[float]:
    """
    Swing lows below (``support``) or swing highs above (``resistance``) the current price.

    A swing point is at least as extreme as both direct neighbours. Levels within
    ``tolerance`` (fraction of current price) of an already collected level are dropped.

    Args:
        values: Candle lows for support, highs for resistance
        current_price: Reference price
        kind: "support" or "resistance"
        tolerance: De-duplication distance

    Returns:
        Levels ordered nearest first
    """
    if kind not in ("support", "resistance"):
        raise ValueError(f"kind must be 'support' or 'resistance', got {kind!r}")
    min_distance = current_price * tolerance
    levels: List[float] = []
    for i in range(1, len(values) - 1):
        value = values[i]
        if kind == "support":
            is_swing = value <= values[i - 1] and value <= values[i + 1] and value < current_price
        else:
            is_swing = value >= values[i - 1] and value >= values[i + 1] and value > current_price
        if is_swing and not any(abs(level - value) < min_distance for level in levels):
            levels.append(value)
    return sorted(levels, reverse=(kind == "support"))


def group_pivots(pivots: Sequence[Pivot], tolerance: float) -> List[List[Pivot]]:
    """
    Cluster pivots whose price lies within ``tolerance`` (fraction) of a group's running mean.

    Pivots are visited in order; each joins the first group that accepts it.
    """
    groups: List[List[Pivot]] = []
    for pivot in pivots:
        for group in groups:
            average = sum(p.price for p in group) / len(group)
            if abs(pivot.price - average) <= average * tolerance:
                group.append(pivot)
                break
        else:
            groups.append([pivot])
    return groups
