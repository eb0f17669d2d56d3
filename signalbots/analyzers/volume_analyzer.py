"""Volume confirmation analyzer."""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from signalbots.config import TradingConfig
from signalbots.indicators.technical_indicators import volume_ratio
from signalbots.models import Kline, TradeDecision

logger = logging.getLogger(__name__)


@dataclass
class VolumeAnalysis:
    is_valid: bool
    ratio: float
    score: float
    reason: str


class VolumeAnalyzer:
    """Compares the latest candle volume with the recent average."""

    def __init__(self, config: Optional[TradingConfig] = None):
        self.config = config or TradingConfig()

    def analyze(self, klines: Sequence[Kline]) -> VolumeAnalysis:
        window = self.config.volume_window
        required = self.config.volume_multiplier
        if len(klines) < window:
            return VolumeAnalysis(False, 0.0, 0.0, "Insufficient volume data")

        ratio = volume_ratio([k.volume for k in klines], window)
        if ratio < required:
            return VolumeAnalysis(False, ratio, ratio * 10, f"Volume {ratio:.1f}x < {required}x")
        return VolumeAnalysis(True, ratio, min(100.0, ratio * 10), f"Volume {ratio:.1f}x OK")

    def confirm(self, decision: TradeDecision, klines: Sequence[Kline]) -> TradeDecision:
        """
        Downgrade a BUY/SELL to HOLD when volume does not back it.

        Args:
            decision: Decision to confirm
            klines: Candles the decision was made on

        Returns:
            The same decision, or a HOLD carrying the volume reason
        """
        if not decision.is_actionable:
            return decision
        volume = self.analyze(klines)
        if volume.is_valid:
            return decision
        logger.info(f"{decision.symbol or 'signal'} {decision.action} rejected by volume filter: {volume.reason}")
        return TradeDecision.hold(
            self.config.volume_low_score,
            f"{decision.reason} | rejected: {volume.reason}",
            symbol=decision.symbol,
            price=decision.price,
        )
