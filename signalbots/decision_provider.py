"""Decision provider interface and the DeepSeek implementation."""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from openai import OpenAI

from signalbots.models import MarketData

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a crypto market analyst. Analyze the provided market data and give insights."

JSON_INSTRUCTIONS = """Respond with ONLY a JSON object, no markdown:
{"action": "BUY|SELL|HOLD", "confidence": 0-100, "reason": "short explanation"}"""

TEXT_INSTRUCTIONS = ("Provide a CLEAR recommendation line in the form 'Recommendation: BUY|SELL|HOLD', "
                     "then your reasoning.")


class DecisionProvider(ABC):
    """Abstract base class for LLM decision providers."""

    @abstractmethod
    def get_decision(self, market: MarketData) -> str:
        """
        Ask for a recommendation on one symbol.

        Args:
            market: Market snapshot for the symbol

        Returns:
            str: Raw LLM response
        """

    @property
    def last_prompt(self) -> str:
        return ""


class DeepSeekDecisionProvider(DecisionProvider):
    """DeepSeek LLM decision provider implementation (OpenAI-compatible API)."""

    def __init__(self, api_key: str, model: str = "deepseek-chat", base_url: str = "https://api.deepseek.com",
                 timeout: float = 60.0, response_format: str = "json", client=None):
        """
        Initialize DeepSeek decision provider.

        Args:
            api_key: DeepSeek API key
            model: Chat model name
            base_url: API base URL
            timeout: Request timeout in seconds
            response_format: "json" to request a JSON object, "text" for free text
            client: Optional pre-built OpenAI-compatible client
        """
        self.model = model
        self.timeout = timeout
        self.response_format = response_format
        self.client = client if client is not None else OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self._last_prompt = ""

    @property
    def last_prompt(self) -> str:
        return self._last_prompt

    def _build_prompt(self, market: MarketData) -> str:
        """
        Build the user prompt: instructions plus the serialized market data.

        Candles are sent in the exchange array layout
        ``[openTime, open, high, low, close, volume]``.
        """
        payload: Dict[str, Any] = {
            "symbol": market.symbol,
            "price": market.price,
            "stats24h": market.stats,
            "klines": [[k.open_time, k.open, k.high, k.low, k.close, k.volume] for k in market.klines],
        }
        instructions = JSON_INSTRUCTIONS if self.response_format == "json" else TEXT_INSTRUCTIONS
        return (
            f"Analyze {market.symbol} market data including recent klines. "
            "Recommend BUY, SELL or HOLD with a confidence level, considering price action, "
            "volume and technical indicators.\n\n"
            f"{instructions}\n\n"
            f"Market Data: {json.dumps(payload)}"
        )

    def get_decision(self, market: MarketData) -> str:
        """
        Get trading decision from DeepSeek API.

        Transport errors propagate; the selector treats them as a per-symbol failure.
        """
        prompt = self._build_prompt(market)
        self._last_prompt = prompt
        kwargs: Dict[str, Any] = {}
        if self.response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            timeout=self.timeout,
            **kwargs,
        )
        raw_response = response.choices[0].message.content or ""
        logger.debug(f"DeepSeek raw response for {market.symbol}: {raw_response[:200]}")
        return raw_response
