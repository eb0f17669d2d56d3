"""Shared fixtures: fake exchange, candle factories and a canned LLM provider."""

from typing import Dict, List, Optional

import ccxt
import pytest

from signalbots.config import Config
from signalbots.data_fetchers.market_data_fetcher import MarketDataFetcher
from signalbots.decision_provider import DecisionProvider
from signalbots.exchange_adapters.exchange_adapter import ExchangeAdapter
from signalbots.models import Kline, MarketData

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


def make_klines(closes, start_ms: int = 0, step_ms: int = HOUR_MS, volume: float = 100.0,
                spread: float = 0.0) -> List[Kline]:
    """Candles with open == close and high/low ``spread`` away from the close."""
    return [
        Kline(open_time=start_ms + i * step_ms, open=c, high=c + spread, low=c - spread, close=c, volume=volume)
        for i, c in enumerate(closes)
    ]


def make_market(symbol: str, closes, price: Optional[float] = None, **kwargs) -> MarketData:
    klines = make_klines(closes, **kwargs)
    return MarketData(symbol=symbol, price=price if price is not None else closes[-1], stats={}, klines=klines)


def raw_rows(klines: List[Kline]) -> List[list]:
    """Klines back in the Binance array layout with string prices."""
    return [
        [k.open_time, str(k.open), str(k.high), str(k.low), str(k.close), str(k.volume), k.open_time + 59_999]
        for k in klines
    ]


class FakeExchange:
    """Stands in for ccxt.binance: implicit public endpoints, balance and market orders."""

    def __init__(self):
        self.prices: Dict[str, float] = {}
        self.klines: Dict[str, List[Kline]] = {}
        self.failing = set()
        self.balance: Dict[str, float] = {"USDT": 1000.0}
        self.orders: List[tuple] = []
        self.kline_requests: List[dict] = []

    def set_market(self, symbol: str, klines: List[Kline], price: Optional[float] = None) -> None:
        self.klines[symbol] = klines
        self.prices[symbol] = price if price is not None else klines[-1].close

    def _check(self, symbol):
        if symbol in self.failing:
            raise ccxt.NetworkError(f"binance GET failed for {symbol}")

    def publicGetTickerPrice(self, params):
        self._check(params["symbol"])
        return {"symbol": params["symbol"], "price": str(self.prices[params["symbol"]])}

    def publicGetTicker24hr(self, params):
        self._check(params["symbol"])
        return {"symbol": params["symbol"], "priceChangePercent": "1.25", "volume": "12345.6"}

    def publicGetKlines(self, params):
        self._check(params["symbol"])
        self.kline_requests.append(dict(params))
        return raw_rows(self.klines[params["symbol"]][-params["limit"]:])

    def fetch_balance(self):
        return {"free": dict(self.balance)}

    def create_order(self, symbol, order_type, side, amount):
        self.orders.append((symbol, order_type, side, amount))
        return {"id": "123456", "average": None, "price": None, "filled": amount}


class FakeProvider(DecisionProvider):
    """Returns canned responses per symbol; raises for symbols listed in ``failing``."""

    def __init__(self, responses: Dict[str, str], failing=()):
        self.responses = responses
        self.failing = set(failing)
        self.calls: List[str] = []

    @property
    def last_prompt(self) -> str:
        return f"prompt for {self.calls[-1]}" if self.calls else ""

    def get_decision(self, market: MarketData) -> str:
        self.calls.append(market.symbol)
        if market.symbol in self.failing:
            raise TimeoutError("LLM request timed out")
        return self.responses.get(market.symbol, '{"action": "HOLD", "confidence": 50, "reason": "flat"}')


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        symbols=["BTCUSDT", "ETHUSDT"],
        trades_dir=str(tmp_path / "trades"),
        logs_dir=str(tmp_path / "logs"),
        chart_periods=60,
    )


@pytest.fixture
def fake_exchange() -> FakeExchange:
    return FakeExchange()


@pytest.fixture
def fetcher(fake_exchange, config) -> MarketDataFetcher:
    return MarketDataFetcher(ExchangeAdapter(config, exchange=fake_exchange), config)
