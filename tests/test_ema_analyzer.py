"""Unit tests for :mod:`signalbots.analyzers.ema_analyzer` and the indicator helpers."""

import pytest

from signalbots.analyzers.ema_analyzer import EmaAnalyzer
from signalbots.config import TradingConfig
from signalbots.indicators.technical_indicators import ema, rsi, volume_ratio
from signalbots.models import BUY, HOLD, SELL


def test_ema_is_seeded_with_simple_average() -> None:
    assert ema([1.0, 2.0, 3.0], 3) == pytest.approx(2.0)
    # seed 2.0, then 4.0 folded in with k = 0.5
    assert ema([1.0, 2.0, 3.0, 4.0], 3) == pytest.approx(3.0)


def test_ema_requires_enough_points() -> None:
    with pytest.raises(ValueError):
        ema([1.0, 2.0], 3)


def test_rsi_bounds() -> None:
    assert rsi(list(range(1, 30))) == 100.0
    assert rsi([100.0] * 30) == 50.0
    assert rsi([1.0, 2.0]) == 50.0
    assert rsi(list(range(30, 1, -1))) == pytest.approx(0.0)


def test_volume_ratio() -> None:
    assert volume_ratio([100.0] * 9 + [200.0], 10) == pytest.approx(200.0 / 110.0)
    assert volume_ratio([100.0] * 5, 10) == 0.0


def test_rising_series_is_buy_at_high_confidence() -> None:
    prices = [float(p) for p in range(100, 130)]

    decision = EmaAnalyzer().analyze(prices, 129.0)

    assert decision.action == BUY
    assert decision.confidence == 80
    assert "EMA12 > EMA26" in decision.reason


def test_weak_signal_is_lifted_to_minimum_confidence() -> None:
    prices = [float(p) for p in range(100, 130)]

    decision = EmaAnalyzer(TradingConfig(min_approval_score=0)).analyze(prices, 129.0)

    assert decision.action == BUY
    assert decision.confidence == 75


def test_falling_series_is_sell() -> None:
    prices = [float(p) for p in range(129, 99, -1)]

    decision = EmaAnalyzer().analyze(prices, 100.0)

    assert decision.action == SELL
    assert decision.confidence == 80


def test_short_series_holds_at_fifty() -> None:
    decision = EmaAnalyzer().analyze([100.0] * 10, 100.0)

    assert decision.action == HOLD
    assert decision.confidence == 50
    assert "Insufficient data" in decision.reason


def test_flat_series_holds_on_small_separation() -> None:
    prices = [100.0, 101.0] * 15

    decision = EmaAnalyzer().analyze(prices, 100.5)

    assert decision.action == HOLD
    assert decision.confidence == 40
    assert "separation too small" in decision.reason
