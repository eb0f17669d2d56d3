"""Unit tests for :mod:`signalbots.models`."""

import pytest

from signalbots.errors import TradeStateError
from signalbots.models import (BUY, COMPLETED, LOSS, PENDING, SELL, WIN, Kline, RiskReturn, SmartEntryOrder, Trade,
                               TradeDecision)


def _trade(**overrides) -> Trade:
    fields = dict(
        timestamp="2024-01-01T00:00:00Z",
        symbol="BTCUSDT",
        action=BUY,
        entry_price=100.0,
        target_price=101.0,
        stop_price=99.5,
        confidence=80,
        reason="test",
        amount=15.0,
        risk_return=RiskReturn(potential_gain=1.0, potential_loss=0.5, risk_reward_ratio=2.0),
    )
    fields.update(overrides)
    return Trade(**fields)


def test_kline_from_raw_converts_string_prices() -> None:
    kline = Kline.from_raw([1700000000000, "100.5", "101", "99.9", "100.7", "12.5", 1700000059999, "x"])

    assert kline.open_time == 1700000000000
    assert kline.high == 101.0
    assert kline.close == 100.7
    assert kline.volume == 12.5
    assert kline.close_time == 1700000059999


def test_kline_from_raw_rejects_short_rows() -> None:
    with pytest.raises(ValueError):
        Kline.from_raw([1, "2", "3"])


def test_decision_normalises_action_and_clamps_confidence() -> None:
    decision = TradeDecision(action="buy", confidence=140, reason="x")

    assert decision.action == BUY
    assert decision.confidence == 100
    assert decision.is_actionable
    assert not TradeDecision.hold(50, "flat").is_actionable


def test_decision_rejects_unknown_action() -> None:
    with pytest.raises(ValueError):
        TradeDecision(action="SHORT", confidence=60, reason="x")


def test_trade_dict_round_trip_preserves_unknown_keys() -> None:
    trade = _trade(order_id="SIM_1", bot_name="ema-simulator", extra={"note": "kept"})

    data = trade.to_dict()
    restored = Trade.from_dict(data)

    assert data["price"] == data["entryPrice"] == 100.0
    assert "result" not in data
    assert restored == trade
    assert restored.to_dict()["note"] == "kept"


def test_trade_from_dict_falls_back_to_price_field() -> None:
    data = _trade().to_dict()
    del data["entryPrice"]

    assert Trade.from_dict(data).entry_price == 100.0


def test_buy_trade_requires_stop_below_entry_below_target() -> None:
    with pytest.raises(ValueError):
        _trade(target_price=99.0)
    with pytest.raises(ValueError):
        _trade(stop_price=100.5)


def test_sell_trade_requires_target_below_entry_below_stop() -> None:
    trade = _trade(action=SELL, target_price=99.0, stop_price=100.5)
    assert trade.action == SELL

    with pytest.raises(ValueError):
        _trade(action=SELL, target_price=101.0, stop_price=99.5)


def test_pending_trade_cannot_carry_result() -> None:
    with pytest.raises(ValueError):
        _trade(result=WIN)


def test_complete_sets_signed_actual_return() -> None:
    buy = _trade()
    buy.complete(LOSS, 99.5)
    sell = _trade(action=SELL, target_price=99.0, stop_price=100.5)
    sell.complete(WIN, 99.0)

    assert buy.status == COMPLETED
    assert buy.actual_return == pytest.approx(-0.5)
    assert sell.actual_return == pytest.approx(1.0)


def test_completed_trade_is_never_mutated_again() -> None:
    trade = _trade()
    trade.complete(WIN, 101.0)

    with pytest.raises(TradeStateError):
        trade.complete(LOSS, 99.5)
    assert trade.result == WIN


def test_smart_entry_order_lifecycle() -> None:
    order = SmartEntryOrder(
        id="SE_BTCUSDT_1", symbol="BTCUSDT", action=BUY, current_price=100.0, target_entry_price=99.0,
        target_price=103.0, stop_price=98.5, confidence=85, reason="support", valid_until="2024-01-02T00:00:00Z",
        timestamp="2024-01-01T00:00:00Z",
    )
    assert order.status == PENDING and order.is_open

    order.trigger("2024-01-01T01:00:00Z")
    order.complete(WIN, 103.0)

    assert order.actual_return == pytest.approx(4.0)
    assert not order.is_open
    restored = SmartEntryOrder.from_dict(order.to_dict())
    assert restored.triggered_at == "2024-01-01T01:00:00Z"
    assert restored.result == WIN

    with pytest.raises(TradeStateError):
        order.trigger("2024-01-01T02:00:00Z")


@pytest.mark.parametrize("action, entry, target, stop", [
    (BUY, 99.0, 98.0, 98.5),
    (BUY, 99.0, 103.0, 99.5),
    (SELL, 101.0, 103.0, 102.0),
    (SELL, 101.0, 97.0, 100.5),
])
def test_smart_entry_order_rejects_inverted_levels(action, entry, target, stop) -> None:
    with pytest.raises(ValueError, match="order requires"):
        SmartEntryOrder(
            id="SE_BTCUSDT_1", symbol="BTCUSDT", action=action, current_price=100.0, target_entry_price=entry,
            target_price=target, stop_price=stop, confidence=85, reason="level",
            valid_until="2024-01-02T00:00:00Z",
        )
