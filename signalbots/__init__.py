"""Binance signal bots: technical/LLM analysis, JSON trade ledgers and outcome monitoring."""

__version__ = "1.0.0"
