"""Unit tests for :mod:`signalbots.analyzers.support_resistance_analyzer`."""

from signalbots.analyzers.support_resistance_analyzer import RESISTANCE, SUPPORT, SupportResistanceAnalyzer
from signalbots.indicators.technical_indicators import find_pivots, group_pivots
from signalbots.models import BUY, HOLD, Kline

from conftest import HOUR_MS, make_klines


def _double_bottom(closes):
    """Candles whose lows dip to 150 at positions 5 and 15 and sit at 153 elsewhere."""
    klines = []
    for i, close in enumerate(closes):
        low = 150.0 if i in (5, 15) else 153.0
        klines.append(Kline(open_time=i * HOUR_MS, open=close, high=160.0, low=low, close=close, volume=100.0))
    return klines


def test_find_pivots_needs_strict_extremes() -> None:
    klines = _double_bottom([153.5] * 30)

    pivots = find_pivots(klines, 3)

    assert [(p.kind, p.price) for p in pivots] == [("low", 150.0), ("low", 150.0)]
    assert len(group_pivots(pivots, 0.005)) == 1


def test_insufficient_candles_hold_at_zero() -> None:
    decision = SupportResistanceAnalyzer().analyze(make_klines([100.0] * 9), 100.0)

    assert decision.action == HOLD
    assert decision.confidence == 0


def test_psychological_levels_around_price() -> None:
    levels = SupportResistanceAnalyzer().psychological_levels(50000.0)

    assert [level.price for level in levels] == [49800.0, 49900.0, 50000.0, 50100.0, 50200.0]
    assert levels[0].kind == SUPPORT
    assert levels[-1].kind == RESISTANCE
    assert all(level.strength == 0.7 for level in levels)


def test_no_nearby_level_is_neutral() -> None:
    # Monotonic candles have no pivots and 155 is not near a round number.
    klines = make_klines([150.0 + i * 0.2 for i in range(26)])

    decision = SupportResistanceAnalyzer().analyze(klines, 155.0, now_ms=30 * HOUR_MS)

    assert decision.action == HOLD
    assert decision.confidence == 30


def test_buy_near_support_in_sideways_market() -> None:
    klines = _double_bottom([153.5] * 30)

    decision = SupportResistanceAnalyzer().analyze(klines, 150.5, now_ms=30 * HOUR_MS)

    assert decision.action == BUY
    assert decision.confidence == 80
    assert "support" in decision.reason


def test_support_against_uptrend_is_rejected() -> None:
    closes = [153.5] * 20 + [150.0 + i for i in range(10)]
    klines = _double_bottom(closes)

    decision = SupportResistanceAnalyzer().analyze(klines, 150.5, now_ms=30 * HOUR_MS)

    assert decision.action == HOLD
    assert decision.confidence == 50
