"""Exchange adapter for the Binance spot REST API."""

import logging
from typing import Any, Dict, List

import ccxt

from signalbots.config import Config
from signalbots.errors import ExecutionError, MarketDataError

logger = logging.getLogger(__name__)

QUOTE_ASSETS = ("USDT", "BUSD", "USDC", "BTC", "ETH", "BNB")


def to_unified_symbol(symbol: str) -> str:
    """
    Convert an exchange-native pair to the ccxt unified form.

    Args:
        symbol: Pair such as "BTCUSDT" (already unified pairs pass through)

    Returns:
        Unified symbol, e.g. "BTC/USDT"
    """
    if "/" in symbol:
        return symbol
    for quote in QUOTE_ASSETS:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return f"{symbol[:-len(quote)]}/{quote}"
    return symbol


class ExchangeAdapter:
    """Handles the ccxt Binance connection and the raw endpoints the bots use."""

    def __init__(self, config: Config, exchange=None):
        """
        Initialize exchange adapter.

        Args:
            config: Configuration object with exchange settings
            exchange: Optional pre-built ccxt-compatible client (tests inject fakes)
        """
        self.config = config
        self.exchange = exchange if exchange is not None else self._init_exchange(config)

    def _init_exchange(self, config: Config):
        """
        Initialize ccxt exchange client.

        Public endpoints need no keys; keys are attached only when present so
        simulator bots run without credentials.
        """
        params: Dict[str, Any] = {
            'enableRateLimit': True,
            'timeout': config.exchange_timeout_ms,
            'options': {
                'defaultType': 'spot',
                'adjustForTimeDifference': True,
            },
        }
        if config.binance_api_key and config.binance_api_secret:
            params['apiKey'] = config.binance_api_key
            params['secret'] = config.binance_api_secret
        else:
            logger.debug("Binance keys not configured - public market data only")
        return ccxt.binance(params)

    def get_ticker_price(self, symbol: str) -> Dict[str, Any]:
        """GET /api/v3/ticker/price"""
        return self._call("ticker price", self.exchange.publicGetTickerPrice, {'symbol': symbol})

    def get_ticker_24h(self, symbol: str) -> Dict[str, Any]:
        """GET /api/v3/ticker/24hr"""
        return self._call("24h ticker", self.exchange.publicGetTicker24hr, {'symbol': symbol})

    def get_klines(self, symbol: str, interval: str, limit: int) -> List[List[Any]]:
        """
        GET /api/v3/klines

        Returns:
            Raw kline arrays, oldest first
        """
        return self._call(
            "klines",
            self.exchange.publicGetKlines,
            {'symbol': symbol, 'interval': interval, 'limit': limit},
        )

    def fetch_free_balance(self) -> Dict[str, float]:
        """Free balances by asset (requires keys)."""
        try:
            balance = self.exchange.fetch_balance()
        except ccxt.BaseError as e:
            raise ExecutionError(f"Balance fetch failed: {e}") from e
        return {asset: float(amount or 0.0) for asset, amount in (balance.get('free') or {}).items()}

    def create_market_order(self, symbol: str, side: str, amount: float) -> Dict[str, Any]:
        """
        Place a spot market order.

        Args:
            symbol: Exchange-native pair (e.g. "BTCUSDT")
            side: "buy" or "sell"
            amount: Base-asset quantity

        Returns:
            ccxt order structure

        Raises:
            ExecutionError: If the exchange rejects the order
        """
        unified = to_unified_symbol(symbol)
        logger.info(f"Placing market {side.upper()} {amount:.8f} {unified}")
        try:
            return self.exchange.create_order(unified, 'market', side.lower(), amount)
        except ccxt.BaseError as e:
            raise ExecutionError(f"Order placement failed for {symbol}: {e}") from e

    def _call(self, label: str, method, params: Dict[str, Any]):
        try:
            return method(params)
        except ccxt.BaseError as e:
            raise MarketDataError(f"Failed to fetch {label} for {params.get('symbol')}: {e}") from e

