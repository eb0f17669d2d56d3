"""Tests for the bot pipeline and the registry that builds it."""

import json

import pytest

from signalbots.errors import ConfigurationError
from signalbots.executors.trade_executor import BinanceExecutor, ExecutionResult, SimulatedExecutor
from signalbots.ledger.trade_ledger import TradeLedger
from signalbots.models import BUY, RiskReturn, Trade, TradeDecision
from signalbots.pipeline.bot_pipeline import BotPipeline
from signalbots.pipeline.registry import BotSpec, build_bot, list_bots
from signalbots.exchange_adapters.exchange_adapter import ExchangeAdapter
from signalbots.selection.multi_symbol_selector import MultiSymbolSelector

from conftest import FakeProvider, make_klines


class _FailingExecutor(SimulatedExecutor):
    def execute(self, decision, amount_usd):
        return ExecutionResult(executed=False, order_id=None, filled_size=None, fill_price=None, error="rejected")


def _pending(symbol: str) -> Trade:
    return Trade(
        timestamp="2024-01-01T00:00:00Z", symbol=symbol, action=BUY, entry_price=100.0, target_price=101.0,
        stop_price=99.0, confidence=80, reason="test", amount=15.0, risk_return=RiskReturn(1.0, 1.0, 1.0),
    )


def _pipeline(config, fetcher, decisions, executor=None, confirm_volume=False) -> BotPipeline:
    def analyze(symbol, market):
        action, confidence = decisions.get(symbol, ("HOLD", 50))
        return TradeDecision(action=action, confidence=confidence, reason=f"{symbol} test signal")

    spec = BotSpec(name="test-bot", ledger_file="testBot.json", analyze=analyze, confirm_volume=confirm_volume)
    ledger = TradeLedger(config.ledger_path(spec.ledger_file))
    return BotPipeline(spec, config, MultiSymbolSelector(fetcher), ledger, executor or SimulatedExecutor())


@pytest.fixture
def markets(fake_exchange):
    fake_exchange.set_market("BTCUSDT", make_klines([100.0] * 60))
    fake_exchange.set_market("ETHUSDT", make_klines([200.0] * 60))
    return fake_exchange


def test_cycle_records_best_trade(config, fetcher, markets) -> None:
    pipeline = _pipeline(config, fetcher, {"BTCUSDT": (BUY, 76), "ETHUSDT": (BUY, 82)})

    result = pipeline.run_cycle()

    assert result.status == "traded"
    assert result.trade.symbol == "ETHUSDT"
    assert result.trade.order_id.startswith("SIM_")
    assert result.trade.bot_name == "test-bot"
    assert result.trade.amount == 15.0
    saved = json.loads(open(config.ledger_path("testBot.json")).read())
    assert [record["symbol"] for record in saved] == ["ETHUSDT"]


def test_second_cycle_skips_symbol_with_pending_trade(config, fetcher, markets) -> None:
    pipeline = _pipeline(config, fetcher, {"BTCUSDT": (BUY, 76), "ETHUSDT": (BUY, 82)})

    pipeline.run_cycle()
    result = pipeline.run_cycle()

    assert result.trade.symbol == "BTCUSDT"
    assert pipeline.ledger.count_pending() == 2


def test_active_trade_limit(config, fetcher, markets) -> None:
    pipeline = _pipeline(config, fetcher, {"BTCUSDT": (BUY, 76)})
    pipeline.ledger.append(_pending("SOLUSDT"))
    pipeline.ledger.append(_pending("BNBUSDT"))

    result = pipeline.run_cycle()

    assert result.status == "limit_reached"
    assert pipeline.ledger.count_pending() == 2


def test_no_opportunity_writes_nothing(config, fetcher, markets) -> None:
    pipeline = _pipeline(config, fetcher, {})

    assert pipeline.run_cycle().status == "no_opportunity"
    assert pipeline.ledger.load() == []


def test_execution_failure_persists_nothing(config, fetcher, markets) -> None:
    pipeline = _pipeline(config, fetcher, {"BTCUSDT": (BUY, 80)}, executor=_FailingExecutor())

    result = pipeline.run_cycle()

    assert result.status == "error"
    assert result.error == "rejected"
    assert pipeline.ledger.load() == []


def test_volume_confirmation_blocks_flat_volume(config, fetcher, markets) -> None:
    pipeline = _pipeline(config, fetcher, {"BTCUSDT": (BUY, 80)}, confirm_volume=True)

    assert pipeline.run_cycle().status == "no_opportunity"


def test_registry_lists_all_bots() -> None:
    assert set(list_bots()) == {
        "ema-simulator", "ema-real", "momentum-simulator", "support-resistance-simulator",
        "deepseek-simulator", "deepseek-real",
    }


def test_unknown_bot_is_a_configuration_error(config) -> None:
    with pytest.raises(ConfigurationError):
        build_bot("nope", config)


def test_real_bot_requires_exchange_keys(config, fake_exchange) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        build_bot("ema-real", config, exchange_adapter=ExchangeAdapter(config, exchange=fake_exchange))

    assert "BINANCE_API_KEY" in str(excinfo.value)


def test_llm_bot_requires_deepseek_key(config, fake_exchange) -> None:
    with pytest.raises(ConfigurationError):
        build_bot("deepseek-simulator", config, exchange_adapter=ExchangeAdapter(config, exchange=fake_exchange))


def test_real_bot_uses_binance_executor(config, fake_exchange) -> None:
    config.binance_api_key = "key"
    config.binance_api_secret = "secret"

    pipeline = build_bot("ema-real", config, exchange_adapter=ExchangeAdapter(config, exchange=fake_exchange))

    assert isinstance(pipeline.executor, BinanceExecutor)
    assert pipeline.ledger.name == "emaTradingBot.json"


def test_deepseek_simulator_end_to_end(config, markets) -> None:
    provider = FakeProvider(
        {"BTCUSDT": '{"action": "SELL", "confidence": 78, "reason": "lower highs"}'},
        failing={"ETHUSDT"},
    )
    pipeline = build_bot(
        "deepseek-simulator", config, exchange_adapter=ExchangeAdapter(config, exchange=markets), provider=provider,
    )

    result = pipeline.run_cycle()

    assert result.status == "traded"
    assert result.trade.symbol == "BTCUSDT"
    assert result.trade.action == "SELL"
    assert result.trade.reason == "DeepSeek AI: lower highs"
    assert pipeline.ledger.name == "realTradingBotSimulator.json"
    assert provider.calls == ["BTCUSDT", "ETHUSDT"]
    history = open(f"{config.logs_dir}/deepseek_history.jsonl").read().splitlines()
    assert len(history) == 1


def test_binance_executor_checks_balance(fake_exchange, config) -> None:
    executor = BinanceExecutor(ExchangeAdapter(config, exchange=fake_exchange))
    decision = TradeDecision(action=BUY, confidence=80, reason="x", symbol="BTCUSDT", price=100.0)

    placed = executor.execute(decision, 15.0)
    fake_exchange.balance["USDT"] = 5.0
    refused = executor.execute(decision, 15.0)

    assert placed.executed and placed.order_id == "123456"
    assert placed.fill_price == 100.0
    assert fake_exchange.orders == [("BTC/USDT", "market", "buy", 0.15)]
    assert not refused.executed
    assert "Insufficient USDT" in refused.error
