"""History log of LLM analyses."""

import json
import os
from typing import Any, Dict, Optional

from signalbots.models import MarketData, TradeDecision, utc_now_iso


class DecisionHistoryLogger:
    """Appends one JSON line per LLM analysis."""

    SENSITIVE_PATTERNS = (
        'api_key', 'api_secret', 'secret', 'password',
        'authorization', 'bearer ', 'credential',
    )

    def __init__(self, log_file: str):
        """
        Initialize logger with output file path.

        Args:
            log_file: Path to JSONL log file (will be created if doesn't exist)
        """
        self.log_file = log_file
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

    def log_analysis(self, bot_name: str, market: MarketData, prompt: str, response: str,
                     decision: Optional[TradeDecision], execution_time: float) -> None:
        """
        Append one analysis record to the JSONL file.

        Writes one JSON object per line in append-only mode and flushes after
        each write. Secrets are never written.

        Args:
            bot_name: Bot that requested the analysis
            market: Market data the analysis was made on
            prompt: Prompt sent to the model
            response: Raw model response
            decision: Parsed decision (None when the call failed)
            execution_time: Seconds spent on the call
        """
        record: Dict[str, Any] = {
            "timestamp": utc_now_iso(),
            "bot": bot_name,
            "symbol": market.symbol,
            "prompt": prompt,
            "response": response,
            "action": decision.action if decision else None,
            "confidence": decision.confidence if decision else None,
            "reason": decision.reason if decision else None,
            "market": {
                "price": market.price,
                "change24h": market.change_24h_percent,
                "volume24h": _to_float(market.stats.get("volume")),
            },
            "execution_time": round(execution_time, 3),
        }
        record = self._sanitize_log(record)

        with open(self.log_file, 'a', encoding='utf-8') as f:
            json.dump(record, f)
            f.write('\n')
            f.flush()

    def _sanitize_log(self, log_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Redact string fields that look like they carry credentials.

        Args:
            log_dict: Log dictionary to sanitize

        Returns:
            Sanitized log dictionary
        """
        for key, value in log_dict.items():
            if isinstance(value, str):
                lower_value = value.lower()
                for pattern in self.SENSITIVE_PATTERNS:
                    if pattern in lower_value and len(value) > 20:
                        log_dict[key] = "[REDACTED]"
                        break
        return log_dict


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
