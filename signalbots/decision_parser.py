"""Decision parsing and validation layer."""

import json
import logging
import re
from typing import Optional

from signalbots.models import ACTIONS, BUY, HOLD, SELL, TradeDecision


logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 50


def _strip_code_fence(raw_response: str) -> str:
    cleaned = raw_response.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split('\n')
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = '\n'.join(lines).strip()
    return cleaned


class DecisionParser:
    """Parses a JSON LLM reply into a TradeDecision.

    Any ambiguity (malformed JSON, unknown action, missing or out-of-range
    confidence) yields HOLD/50. Never raises.
    """

    def parse(self, raw_response: Optional[str], symbol: str = "", price: float = 0.0) -> TradeDecision:
        """
        Parse LLM response into TradeDecision.

        Args:
            raw_response: Raw string response from LLM
            symbol: Symbol the analysis was for
            price: Price at analysis time

        Returns:
            TradeDecision with validated fields (or HOLD on error)
        """
        def hold(reason: str) -> TradeDecision:
            return TradeDecision.hold(FALLBACK_CONFIDENCE, reason, symbol=symbol, price=price)

        if not raw_response or not raw_response.strip():
            logger.error("Empty LLM response")
            return hold("Empty LLM response")

        try:
            data = json.loads(_strip_code_fence(raw_response))
        except json.JSONDecodeError as e:
            logger.error(f"JSON parsing failed: {e}. Raw response: {raw_response}")
            return hold("JSON parsing error")

        if not isinstance(data, dict):
            logger.error(f"Parsed JSON is not an object. Type: {type(data)}. Raw response: {raw_response}")
            return hold("Invalid JSON structure")

        action = str(data.get("action", "")).strip().upper()
        if action not in ACTIONS:
            logger.error(f"Invalid action '{data.get('action')}'. Must be one of {ACTIONS}. Raw response: {raw_response}")
            return hold("Invalid action")

        confidence = data.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            logger.error(f"Invalid confidence type: {type(confidence)}. Raw response: {raw_response}")
            return hold("Invalid confidence")
        if not (0 <= confidence <= 100):
            logger.error(f"Confidence {confidence} out of range [0, 100]. Raw response: {raw_response}")
            return hold("Confidence out of range")

        reason = data.get("reason", "")
        if not isinstance(reason, str):
            logger.warning(f"Reason field is not a string, converting. Raw response: {raw_response}")
            reason = str(reason)

        return TradeDecision(action=action, confidence=confidence, reason=f"DeepSeek AI: {reason}".strip(),
                             symbol=symbol, price=price)


# Checked in order; the first match wins.
_EXPLICIT_RECOMMENDATIONS = (
    (re.compile(r"recommendation:\s*\**hold\**", re.IGNORECASE), HOLD, 60),
    (re.compile(r"recommendation:\s*\**sell\**", re.IGNORECASE), SELL, 75),
    (re.compile(r"recommendation:\s*\**buy\**", re.IGNORECASE), BUY, 75),
)


class KeywordDecisionParser:
    """Free-text parser using case-insensitive phrase matching."""

    def parse(self, raw_response: Optional[str], symbol: str = "", price: float = 0.0) -> TradeDecision:
        text = raw_response or ""
        lower = text.lower()

        for pattern, action, confidence in _EXPLICIT_RECOMMENDATIONS:
            if pattern.search(text):
                return TradeDecision(action, confidence, f"DeepSeek AI: explicit {action} recommendation",
                                     symbol=symbol, price=price)

        if "strong sell" in lower or "break below" in lower:
            return TradeDecision(SELL, 80, "DeepSeek AI: strong sell signal", symbol=symbol, price=price)
        if "strong buy" in lower or "breakout above" in lower:
            return TradeDecision(BUY, 85, "DeepSeek AI: strong buy signal", symbol=symbol, price=price)
        if "bearish" in lower or ("sell" in lower and "oversell" not in lower):
            return TradeDecision(SELL, 70, "DeepSeek AI: bearish trend", symbol=symbol, price=price)
        if "bullish" in lower or ("buy" in lower and "overbuy" not in lower):
            return TradeDecision(BUY, 75, "DeepSeek AI: bullish trend", symbol=symbol, price=price)

        return TradeDecision.hold(FALLBACK_CONFIDENCE, "DeepSeek AI: market undefined", symbol=symbol, price=price)


def build_parser(response_format: str):
    """Parser for ``LLM_RESPONSE_FORMAT`` ("json" or "text")."""
    if response_format == "text":
        return KeywordDecisionParser()
    return DecisionParser()
