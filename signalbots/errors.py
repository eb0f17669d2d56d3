"""Exception types shared across the signal bots."""


class ConfigurationError(ValueError):
    """Missing credentials or invalid configuration values."""


class MarketDataError(Exception):
    """Exchange data could not be fetched or decoded."""


class LedgerCorruptError(Exception):
    """A ledger file exists but does not contain a JSON array of trades."""

    def __init__(self, path: str, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Ledger {path} is corrupt: {detail}")


class TradeStateError(Exception):
    """Illegal trade lifecycle transition (e.g. completing a completed trade)."""


class ExecutionError(Exception):
    """Order placement failed on the exchange."""
