"""Order execution: simulated fills and real Binance market orders."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from signalbots.errors import ExecutionError
from signalbots.models import BUY, TradeDecision

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    executed: bool
    order_id: Optional[str]
    filled_size: Optional[float]
    fill_price: Optional[float]
    error: Optional[str] = None


class TradeExecutor(ABC):
    """Places the order for an approved decision."""

    is_simulation = True

    @abstractmethod
    def execute(self, decision: TradeDecision, amount_usd: float) -> ExecutionResult:
        """
        Execute a BUY/SELL decision for ``amount_usd`` of notional.

        Returns:
            ExecutionResult (executed=False with ``error`` on failure)
        """


class SimulatedExecutor(TradeExecutor):
    """Fills instantly at the decision price."""

    def execute(self, decision: TradeDecision, amount_usd: float) -> ExecutionResult:
        order_id = f"SIM_{int(time.time() * 1000)}"
        size = amount_usd / decision.price if decision.price else 0.0
        logger.info(f"Simulated {decision.action} {decision.symbol}: {size:.8f} at {decision.price} ({order_id})")
        return ExecutionResult(executed=True, order_id=order_id, filled_size=size, fill_price=decision.price)


class BinanceExecutor(TradeExecutor):
    """Spot market orders through the exchange adapter."""

    is_simulation = False

    def __init__(self, exchange_adapter):
        """
        Args:
            exchange_adapter: ExchangeAdapter with API keys configured
        """
        self.exchange_adapter = exchange_adapter

    def execute(self, decision: TradeDecision, amount_usd: float) -> ExecutionResult:
        try:
            self._validate_balance(decision, amount_usd)
            quantity = amount_usd / decision.price
            logger.warning(f"REAL ORDER: {decision.action} {decision.symbol} ~${amount_usd:.2f}")
            order = self.exchange_adapter.create_market_order(decision.symbol, decision.action.lower(), quantity)
        except ExecutionError as e:
            logger.error(f"{decision.action} {decision.symbol} execution failed: {e}")
            return ExecutionResult(executed=False, order_id=None, filled_size=None, fill_price=None, error=str(e))

        fill_price = order.get('average') or order.get('price') or decision.price
        filled = order.get('filled') or quantity
        logger.info(f"Order {order.get('id')} filled {filled} at {fill_price}")
        return ExecutionResult(
            executed=True,
            order_id=str(order.get('id')) if order.get('id') is not None else None,
            filled_size=float(filled),
            fill_price=float(fill_price),
        )

    def _validate_balance(self, decision: TradeDecision, amount_usd: float) -> None:
        balances = self.exchange_adapter.fetch_free_balance()
        if decision.action == BUY:
            free = balances.get('USDT', 0.0)
            if free < amount_usd:
                raise ExecutionError(f"Insufficient USDT: need ${amount_usd:.2f}, have ${free:.2f}")
            return
        base = decision.symbol[:-4] if decision.symbol.endswith('USDT') else decision.symbol
        value = balances.get(base, 0.0) * decision.price
        if value < amount_usd:
            raise ExecutionError(f"Insufficient {base}: need ~${amount_usd:.2f}, have ~${value:.2f}")
