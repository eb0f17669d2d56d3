"""Data models for the signal bots."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from signalbots.errors import TradeStateError


BUY = "BUY"
SELL = "SELL"
HOLD = "HOLD"
ACTIONS = (BUY, SELL, HOLD)

PENDING = "pending"
COMPLETED = "completed"
WIN = "win"
LOSS = "loss"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def timestamp_ms(value: str) -> int:
    return int(parse_iso(value).timestamp() * 1000)


@dataclass(frozen=True)
class Kline:
    """One OHLCV candle."""

    open_time: int  # Unix milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: Optional[int] = None

    @classmethod
    def from_raw(cls, row: Sequence[Any]) -> "Kline":
        """
        Build a candle from a Binance kline array.

        Binance returns ``[openTime, open, high, low, close, volume, closeTime, ...]``
        with prices as strings; the positions are a wire contract.

        Args:
            row: Raw kline array

        Returns:
            Kline with numeric fields
        """
        if len(row) < 6:
            raise ValueError(f"Kline row too short ({len(row)} fields): {row!r}")
        return cls(
            open_time=int(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
            close_time=int(row[6]) if len(row) > 6 and row[6] is not None else None,
        )


@dataclass
class MarketData:
    """Snapshot of one symbol: last price, 24h stats and recent candles."""

    symbol: str
    price: float
    stats: Dict[str, Any]
    klines: List[Kline]

    @property
    def closes(self) -> List[float]:
        return [k.close for k in self.klines]

    @property
    def volumes(self) -> List[float]:
        return [k.volume for k in self.klines]

    @property
    def change_24h_percent(self) -> float:
        try:
            return float(self.stats.get("priceChangePercent", 0.0))
        except (TypeError, ValueError):
            return 0.0

    def to_frame(self) -> pd.DataFrame:
        """Candles as a DataFrame indexed by open time."""
        frame = pd.DataFrame(
            [(k.open_time, k.open, k.high, k.low, k.close, k.volume) for k in self.klines],
            columns=["open_time", "open", "high", "low", "close", "volume"],
        )
        return frame.set_index("open_time")


@dataclass
class TradeDecision:
    """Analyzer or LLM output: action, 0-100 confidence and a reason."""

    action: str
    confidence: int
    reason: str
    symbol: str = ""
    price: float = 0.0

    def __post_init__(self):
        self.action = str(self.action).upper()
        if self.action not in ACTIONS:
            raise ValueError(f"Unknown action: {self.action}")
        self.confidence = int(round(max(0, min(100, float(self.confidence)))))

    @property
    def is_actionable(self) -> bool:
        return self.action in (BUY, SELL)

    @classmethod
    def hold(cls, confidence: int, reason: str, symbol: str = "", price: float = 0.0) -> "TradeDecision":
        return cls(action=HOLD, confidence=confidence, reason=reason, symbol=symbol, price=price)


@dataclass
class SymbolAnalysis:
    """Ephemeral selection candidate; discarded after each pass."""

    symbol: str
    decision: TradeDecision
    score: float


@dataclass
class RiskReturn:
    """Risk/reward snapshot fixed at trade creation."""

    potential_gain: float
    potential_loss: float
    risk_reward_ratio: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "potentialGain": self.potential_gain,
            "potentialLoss": self.potential_loss,
            "riskRewardRatio": self.risk_reward_ratio,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskReturn":
        return cls(
            potential_gain=float(data.get("potentialGain", 0.0)),
            potential_loss=float(data.get("potentialLoss", 0.0)),
            risk_reward_ratio=float(data.get("riskRewardRatio", 0.0)),
        )


# Keys owned by Trade; anything else found in a ledger record is kept in ``extra``.
_TRADE_KEYS = {
    "timestamp", "symbol", "action", "price", "entryPrice", "targetPrice", "stopPrice",
    "amount", "reason", "confidence", "status", "riskReturn", "result", "exitPrice",
    "actualReturn", "orderId", "botName",
}


@dataclass
class Trade:
    """
    One persisted decision and its eventual outcome.

    Lifecycle: ``pending`` -> ``completed`` (``result`` win|loss). A completed
    trade is never mutated again.
    """

    symbol: str
    action: str
    entry_price: float
    target_price: float
    stop_price: float
    confidence: int
    reason: str
    risk_return: RiskReturn
    amount: float = 0.0
    timestamp: str = field(default_factory=utc_now_iso)
    status: str = PENDING
    result: Optional[str] = None
    exit_price: Optional[float] = None
    actual_return: Optional[float] = None
    order_id: Optional[str] = None
    bot_name: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.action not in (BUY, SELL):
            raise ValueError(f"Trade action must be BUY or SELL, got {self.action!r}")
        if min(self.entry_price, self.target_price, self.stop_price) <= 0:
            raise ValueError("Trade prices must be positive")
        if self.action == BUY and not (self.stop_price < self.entry_price < self.target_price):
            raise ValueError(
                f"BUY requires stop < entry < target (got {self.stop_price} / {self.entry_price} / {self.target_price})"
            )
        if self.action == SELL and not (self.target_price < self.entry_price < self.stop_price):
            raise ValueError(
                f"SELL requires target < entry < stop (got {self.target_price} / {self.entry_price} / {self.stop_price})"
            )
        if self.status == PENDING and (self.result is not None or self.exit_price is not None):
            raise ValueError("Pending trade cannot carry a result or exit price")
        if self.status == COMPLETED and (self.result not in (WIN, LOSS) or self.exit_price is None):
            raise ValueError("Completed trade requires result (win|loss) and exit price")
        if self.status not in (PENDING, COMPLETED):
            raise ValueError(f"Unknown trade status: {self.status!r}")

    @property
    def is_pending(self) -> bool:
        return self.status == PENDING

    def complete(self, result: str, exit_price: float) -> None:
        """
        Resolve a pending trade.

        Raises:
            TradeStateError: If the trade is already completed
            ValueError: If result is not win/loss
        """
        if self.status != PENDING:
            raise TradeStateError(f"{self.symbol} {self.action} trade from {self.timestamp} is already {self.status}")
        if result not in (WIN, LOSS):
            raise ValueError(f"Unknown result: {result!r}")
        self.status = COMPLETED
        self.result = result
        self.exit_price = float(exit_price)
        if self.action == BUY:
            self.actual_return = self.exit_price - self.entry_price
        else:
            self.actual_return = self.entry_price - self.exit_price

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "timestamp": self.timestamp,
            "symbol": self.symbol,
            "action": self.action,
            "price": self.entry_price,
            "entryPrice": self.entry_price,
            "targetPrice": self.target_price,
            "stopPrice": self.stop_price,
            "amount": self.amount,
            "reason": self.reason,
            "confidence": self.confidence,
            "status": self.status,
            "riskReturn": self.risk_return.to_dict(),
        })
        optional = {
            "result": self.result,
            "exitPrice": self.exit_price,
            "actualReturn": self.actual_return,
            "orderId": self.order_id,
            "botName": self.bot_name,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trade":
        entry = data.get("entryPrice", data.get("price"))
        exit_price = data.get("exitPrice")
        actual_return = data.get("actualReturn")
        return cls(
            timestamp=data.get("timestamp") or utc_now_iso(),
            symbol=data["symbol"],
            action=data["action"],
            entry_price=float(entry),
            target_price=float(data["targetPrice"]),
            stop_price=float(data["stopPrice"]),
            amount=float(data.get("amount", 0.0)),
            reason=data.get("reason", ""),
            confidence=int(data.get("confidence", 0)),
            status=data.get("status", PENDING),
            risk_return=RiskReturn.from_dict(data.get("riskReturn") or {}),
            result=data.get("result"),
            exit_price=float(exit_price) if exit_price is not None else None,
            actual_return=float(actual_return) if actual_return is not None else None,
            order_id=data.get("orderId"),
            bot_name=data.get("botName"),
            extra={k: v for k, v in data.items() if k not in _TRADE_KEYS},
        )


# Smart entry order statuses
TRIGGERED = "triggered"
EXPIRED = "expired"
CANCELLED = "cancelled"
SMART_ENTRY_STATUSES = (PENDING, TRIGGERED, COMPLETED, EXPIRED, CANCELLED)


@dataclass
class SmartEntryOrder:
    """A planned entry that waits for price to reach ``target_entry_price`` before it counts as a trade."""

    id: str
    symbol: str
    action: str
    current_price: float
    target_entry_price: float
    target_price: float
    stop_price: float
    confidence: int
    reason: str
    valid_until: str
    timestamp: str = field(default_factory=utc_now_iso)
    status: str = PENDING
    entry_conditions: Dict[str, Any] = field(default_factory=dict)
    triggered_at: Optional[str] = None
    result: Optional[str] = None
    exit_price: Optional[float] = None
    actual_return: Optional[float] = None

    def __post_init__(self):
        if self.action not in (BUY, SELL):
            raise ValueError(f"Order action must be BUY or SELL, got {self.action!r}")
        if min(self.current_price, self.target_entry_price, self.target_price, self.stop_price) <= 0:
            raise ValueError("Order prices must be positive")
        if self.action == BUY and not (self.stop_price < self.target_entry_price < self.target_price):
            raise ValueError(
                f"BUY order requires stop < entry < target "
                f"(got {self.stop_price} / {self.target_entry_price} / {self.target_price})"
            )
        if self.action == SELL and not (self.target_price < self.target_entry_price < self.stop_price):
            raise ValueError(
                f"SELL order requires target < entry < stop "
                f"(got {self.target_price} / {self.target_entry_price} / {self.stop_price})"
            )
        if self.status not in SMART_ENTRY_STATUSES:
            raise ValueError(f"Unknown order status: {self.status!r}")

    @property
    def is_open(self) -> bool:
        return self.status in (PENDING, TRIGGERED)

    def is_expired(self, now: datetime) -> bool:
        return parse_iso(self.valid_until) < now

    def trigger(self, when: str) -> None:
        if self.status != PENDING:
            raise TradeStateError(f"Order {self.id} cannot trigger from {self.status}")
        self.status = TRIGGERED
        self.triggered_at = when

    def close(self, status: str) -> None:
        """Expire or cancel a pending order."""
        if status not in (EXPIRED, CANCELLED):
            raise ValueError(f"Unknown closing status: {status!r}")
        if self.status != PENDING:
            raise TradeStateError(f"Order {self.id} cannot become {status} from {self.status}")
        self.status = status

    def complete(self, result: str, exit_price: float) -> None:
        if self.status != TRIGGERED:
            raise TradeStateError(f"Order {self.id} must be triggered before completion (is {self.status})")
        self.status = COMPLETED
        self.result = result
        self.exit_price = float(exit_price)
        if self.action == BUY:
            self.actual_return = self.exit_price - self.target_entry_price
        else:
            self.actual_return = self.target_entry_price - self.exit_price

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "timestamp": self.timestamp,
            "symbol": self.symbol,
            "action": self.action,
            "currentPrice": self.current_price,
            "targetEntryPrice": self.target_entry_price,
            "targetPrice": self.target_price,
            "stopPrice": self.stop_price,
            "confidence": self.confidence,
            "reason": self.reason,
            "status": self.status,
            "validUntil": self.valid_until,
            "entryConditions": dict(self.entry_conditions),
        }
        if self.triggered_at is not None:
            data["triggeredAt"] = self.triggered_at
        if self.result is not None:
            data["result"] = self.result
        if self.exit_price is not None:
            data["exitPrice"] = self.exit_price
        if self.actual_return is not None:
            data["actualReturn"] = self.actual_return
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SmartEntryOrder":
        return cls(
            id=data["id"],
            timestamp=data.get("timestamp") or utc_now_iso(),
            symbol=data["symbol"],
            action=data["action"],
            current_price=float(data["currentPrice"]),
            target_entry_price=float(data["targetEntryPrice"]),
            target_price=float(data["targetPrice"]),
            stop_price=float(data["stopPrice"]),
            confidence=int(data.get("confidence", 0)),
            reason=data.get("reason", ""),
            status=data.get("status", PENDING),
            valid_until=data["validUntil"],
            entry_conditions=dict(data.get("entryConditions") or {}),
            triggered_at=data.get("triggeredAt"),
            result=data.get("result"),
            exit_price=data.get("exitPrice"),
            actual_return=data.get("actualReturn"),
        )


@dataclass
class CycleResult:
    """Outcome of one bot cycle, returned instead of printing and returning nothing."""

    bot_name: str
    status: str  # "traded" | "no_opportunity" | "limit_reached" | "error"
    trade: Optional[Trade] = None
    analysis: Optional[SymbolAnalysis] = None
    error: Optional[str] = None
