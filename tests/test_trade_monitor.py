"""Unit tests for :mod:`signalbots.monitors.trade_monitor`."""

import json

from signalbots.ledger.trade_ledger import TradeLedger
from signalbots.models import BUY, COMPLETED, LOSS, PENDING, SELL, WIN, Kline, RiskReturn, Trade
from signalbots.monitors.trade_monitor import TradeMonitor, resolve

from conftest import MINUTE_MS, make_klines

OPENED = "2024-01-01T00:00:00Z"
OPENED_MS = 1_704_067_200_000


def _trade(symbol="BTCUSDT", action=BUY, entry=100.0, target=101.0, stop=99.0, timestamp=OPENED) -> Trade:
    return Trade(
        timestamp=timestamp, symbol=symbol, action=action, entry_price=entry, target_price=target,
        stop_price=stop, confidence=80, reason="test", amount=15.0, risk_return=RiskReturn(1.0, 1.0, 1.0),
    )


def _candle(high, low, open_time=0):
    return Kline(open_time=open_time, open=100.0, high=high, low=low, close=100.0, volume=1.0)


def test_buy_resolution() -> None:
    trade = _trade()

    assert resolve(trade, [_candle(100.5, 99.5), _candle(101.2, 99.8)]) == (WIN, 101.0)
    assert resolve(trade, [_candle(100.5, 98.9)]) == (LOSS, 99.0)
    assert resolve(trade, [_candle(100.5, 99.5)]) is None


def test_target_checked_before_stop_within_candle() -> None:
    assert resolve(_trade(), [_candle(101.5, 98.5)]) == (WIN, 101.0)


def test_first_candle_to_hit_decides() -> None:
    assert resolve(_trade(), [_candle(100.2, 98.5), _candle(102.0, 99.5)]) == (LOSS, 99.0)


def test_sell_resolution_mirrors() -> None:
    trade = _trade(action=SELL, target=99.0, stop=101.0)

    assert resolve(trade, [_candle(100.5, 98.9)]) == (WIN, 99.0)
    assert resolve(trade, [_candle(101.1, 99.5)]) == (LOSS, 101.0)


def test_check_ledger_completes_and_persists(tmp_path, fetcher, fake_exchange) -> None:
    fake_exchange.set_market("BTCUSDT", make_klines([100.0, 100.5, 101.0], start_ms=OPENED_MS, spread=0.2))
    fake_exchange.set_market("ETHUSDT", make_klines([100.0, 100.1, 100.2], start_ms=OPENED_MS, spread=0.1))
    ledger = TradeLedger(str(tmp_path / "ledger.json"))
    ledger.append(_trade("BTCUSDT"))
    ledger.append(_trade("ETHUSDT"))

    report = TradeMonitor(fetcher).check_ledger(ledger)

    assert (report.checked, report.wins, report.losses, report.still_pending) == (2, 1, 0, 1)
    trades = ledger.load()
    assert trades[0].status == COMPLETED and trades[0].result == WIN
    assert trades[0].exit_price == 101.0
    assert trades[0].actual_return == 1.0
    assert trades[1].status == PENDING
    assert fake_exchange.kline_requests[0] == {"symbol": "BTCUSDT", "interval": "1m", "limit": 30}


def test_moves_before_the_trade_opened_are_ignored(tmp_path, fetcher, fake_exchange) -> None:
    before = make_klines([102.0] * 5, start_ms=OPENED_MS - 5 * MINUTE_MS, step_ms=MINUTE_MS)
    after = make_klines([100.0] * 5, start_ms=OPENED_MS, step_ms=MINUTE_MS)
    fake_exchange.set_market("BTCUSDT", before + after)
    ledger = TradeLedger(str(tmp_path / "ledger.json"))
    ledger.append(_trade())

    report = TradeMonitor(fetcher).check_ledger(ledger)

    assert (report.wins, report.still_pending) == (0, 1)
    assert ledger.load()[0].status == PENDING


def test_candle_in_progress_at_creation_is_skipped(tmp_path, fetcher, fake_exchange) -> None:
    fake_exchange.set_market("BTCUSDT", [
        _candle(100.2, 98.5, open_time=OPENED_MS),
        _candle(101.5, 99.8, open_time=OPENED_MS + MINUTE_MS),
    ])
    ledger = TradeLedger(str(tmp_path / "ledger.json"))
    ledger.append(_trade(timestamp="2024-01-01T00:00:30Z"))

    report = TradeMonitor(fetcher).check_ledger(ledger)

    assert report.wins == 1
    assert ledger.load()[0].result == WIN


def test_trade_appended_during_a_pass_is_kept(tmp_path, fetcher, fake_exchange) -> None:
    fake_exchange.set_market("BTCUSDT", make_klines([100.0, 98.0], start_ms=OPENED_MS, spread=0.5))
    path = str(tmp_path / "ledger.json")
    TradeLedger(path).append(_trade("BTCUSDT"))
    bot_ledger = TradeLedger(path)

    class AppendingFetcher:
        """Simulates the bot process writing while candles are fetched."""

        def fetch_klines(self, symbol, interval, limit):
            bot_ledger.append(_trade("ETHUSDT", timestamp="2024-01-01T00:05:00Z"))
            return fetcher.fetch_klines(symbol, interval, limit)

    report = TradeMonitor(AppendingFetcher()).check_ledger(TradeLedger(path))

    trades = TradeLedger(path).load()
    assert report.losses == 1
    assert [(t.symbol, t.status) for t in trades] == [("BTCUSDT", COMPLETED), ("ETHUSDT", PENDING)]
    assert trades[0].result == LOSS


def test_fetch_failure_leaves_trade_pending(tmp_path, fetcher, fake_exchange) -> None:
    fake_exchange.failing.add("BTCUSDT")
    ledger = TradeLedger(str(tmp_path / "ledger.json"))
    ledger.append(_trade("BTCUSDT"))

    report = TradeMonitor(fetcher).check_ledger(ledger)

    assert report.still_pending == 1
    assert len(report.errors) == 1
    assert ledger.load()[0].status == PENDING


def test_check_directory_skips_corrupt_and_excluded_files(tmp_path, fetcher, fake_exchange) -> None:
    fake_exchange.set_market("BTCUSDT", make_klines([100.0, 98.0], start_ms=OPENED_MS, spread=0.5))
    TradeLedger(str(tmp_path / "good.json")).append(_trade("BTCUSDT"))
    (tmp_path / "broken.json").write_text("{oops")
    (tmp_path / "smartEntryOrders.json").write_text(json.dumps([{"id": "SE_1"}]))

    reports = TradeMonitor(fetcher).check_directory(str(tmp_path), exclude=["smartEntryOrders.json"])

    assert sorted(reports) == ["broken.json", "good.json"]
    assert reports["good.json"].losses == 1
    assert reports["broken.json"].errors
    assert (tmp_path / "broken.json").read_text() == "{oops"
