"""Dynamic risk/reward sizing and trade construction."""

import logging
from typing import Optional, Tuple

from signalbots.config import TradingConfig
from signalbots.models import BUY, RiskReturn, Trade, TradeDecision, utc_now_iso

logger = logging.getLogger(__name__)

# Confidence at which risk starts to shrink, and the span over which it reaches the base.
CONFIDENCE_FLOOR = 70
CONFIDENCE_SPAN = 15


class RiskCalculator:
    """Turns an actionable decision into a Trade with target/stop levels."""

    def __init__(self, config: Optional[TradingConfig] = None):
        self.config = config or TradingConfig()

    def risk_reward(self, confidence: float) -> Tuple[float, float]:
        """
        Risk and reward as fractions of the entry price.

        Higher confidence means a tighter stop: risk moves linearly from
        ``risk_max_percent`` at 70% confidence to ``risk_base_percent`` at 85%,
        clamped to that range. Reward is ``reward_multiplier`` times risk.

        Args:
            confidence: Decision confidence (0-100)

        Returns:
            Tuple of (risk, reward) fractions
        """
        base = self.config.risk_base_percent
        high = self.config.risk_max_percent
        risk_pct = high - ((confidence - CONFIDENCE_FLOOR) / CONFIDENCE_SPAN) * (high - base)
        risk_pct = max(base, min(high, risk_pct))
        risk = risk_pct / 100
        return risk, risk * self.config.reward_multiplier

    def build_trade(self, decision: TradeDecision, amount: float, bot_name: Optional[str] = None,
                    order_id: Optional[str] = None, timestamp: Optional[str] = None) -> Trade:
        """
        Create a pending Trade from a BUY/SELL decision.

        Args:
            decision: Actionable decision carrying symbol and price
            amount: Notional in quote currency
            bot_name: Name recorded on the trade
            order_id: Exchange or simulated order id
            timestamp: ISO-8601 creation time (defaults to now)

        Returns:
            Trade with target/stop and riskReturn set
        """
        if not decision.is_actionable:
            raise ValueError(f"Cannot build a trade from a {decision.action} decision")
        price = decision.price
        risk, reward = self.risk_reward(decision.confidence)
        if decision.action == BUY:
            target, stop = price * (1 + reward), price * (1 - risk)
        else:
            target, stop = price * (1 - reward), price * (1 + risk)

        logger.debug(f"{decision.symbol} {decision.action}: risk {risk * 100:.3f}% reward {reward * 100:.3f}%")
        return Trade(
            timestamp=timestamp or utc_now_iso(),
            symbol=decision.symbol,
            action=decision.action,
            entry_price=price,
            target_price=target,
            stop_price=stop,
            amount=amount,
            reason=decision.reason,
            confidence=decision.confidence,
            risk_return=RiskReturn(
                potential_gain=price * reward,
                potential_loss=price * risk,
                risk_reward_ratio=reward / risk,
            ),
            order_id=order_id,
            bot_name=bot_name,
        )
