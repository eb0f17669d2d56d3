"""Market data fetching logic for ticker and kline data."""

import logging
from typing import Any, Dict, List

from signalbots.errors import MarketDataError
from signalbots.models import Kline, MarketData

logger = logging.getLogger(__name__)


class MarketDataFetcher:
    """Handles fetching of ticker and kline market data.

    Raw exchange payloads stop here: callers only see floats, dicts of
    24h stats and ``Kline`` objects.
    """

    def __init__(self, exchange_adapter, config):
        """
        Initialize market data fetcher.

        Args:
            exchange_adapter: Exchange adapter for API calls
            config: Configuration object
        """
        self.exchange_adapter = exchange_adapter
        self.config = config

    def fetch_price(self, symbol: str) -> float:
        """
        Fetch the last traded price.

        Args:
            symbol: Exchange-native pair (e.g. "BTCUSDT")

        Returns:
            Last price as float

        Raises:
            MarketDataError: On transport failure or a malformed payload
        """
        payload = self.exchange_adapter.get_ticker_price(symbol)
        try:
            return float(payload['price'])
        except (KeyError, TypeError, ValueError) as e:
            raise MarketDataError(f"Malformed ticker price for {symbol}: {payload!r}") from e

    def fetch_24h_stats(self, symbol: str) -> Dict[str, Any]:
        """Fetch the 24h rolling ticker as returned by the exchange."""
        return dict(self.exchange_adapter.get_ticker_24h(symbol))

    def fetch_klines(self, symbol: str, interval: str, limit: int) -> List[Kline]:
        """
        Fetch candles oldest first.

        Args:
            symbol: Exchange-native pair
            interval: Binance interval string ("1m", "1h", ...)
            limit: Number of candles

        Returns:
            List of Kline
        """
        raw = self.exchange_adapter.get_klines(symbol, interval, limit)
        try:
            return [Kline.from_raw(row) for row in raw]
        except (TypeError, ValueError) as e:
            raise MarketDataError(f"Malformed klines for {symbol}: {e}") from e

    def get_market_data(self, symbol: str) -> MarketData:
        """
        Fetch price, 24h stats and chart candles for one symbol.

        Uses ``config.chart_timeframe`` and ``config.chart_periods``.
        """
        price = self.fetch_price(symbol)
        stats = self.fetch_24h_stats(symbol)
        klines = self.fetch_klines(symbol, self.config.chart_timeframe, self.config.chart_periods)
        logger.debug(f"{symbol}: price={price} candles={len(klines)} interval={self.config.chart_timeframe}")
        return MarketData(symbol=symbol, price=price, stats=stats, klines=klines)
